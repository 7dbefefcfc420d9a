"""Cross-platform device geolocation.

Provides a unified "sample current position" interface across Windows,
macOS, and Linux. Callers get a ``GPSFix`` or one of the ``GPSError``
subclasses; a ``GPSPermissionError`` means the user (or OS policy) has
denied location access and retrying will not help.

Platform support:
- Windows: System.Device.Location via PowerShell
- macOS: CoreLocation via pyobjc (optional)
- Linux: GeoClue2 ``where-am-i`` (optional)
"""

import re
import subprocess
import sys
from typing import NamedTuple, Optional


class GPSFix(NamedTuple):
    latitude: float
    longitude: float
    accuracy: Optional[float] = None  # metres


class GPSError(Exception):
    """Base exception for GPS errors."""


class GPSUnavailableError(GPSError):
    """GPS hardware or service is not available."""


class GPSTimeoutError(GPSError):
    """GPS detection timed out."""


class GPSPermissionError(GPSError):
    """Location access was denied for this application."""


def get_platform() -> str:
    """Return a normalized platform identifier.

    Returns one of: 'windows', 'macos', 'linux', 'unknown'
    """
    if sys.platform == "win32":
        return "windows"
    elif sys.platform == "darwin":
        return "macos"
    elif sys.platform.startswith("linux"):
        return "linux"
    return "unknown"


def get_gps_instructions() -> str:
    """Return platform-specific instructions for enabling location access."""
    platform = get_platform()
    if platform == "windows":
        return (
            "Enable Location Services in "
            "Windows Settings > Privacy & Security > Location."
        )
    if platform == "macos":
        return (
            "Enable Location Services in "
            "System Settings > Privacy & Security > Location Services."
        )
    if platform == "linux":
        return (
            "Install geoclue2 and ensure location services are enabled. "
            "On most distros: sudo apt install geoclue-2.0"
        )
    return "Location detection is not available on this platform."


def fetch_position() -> GPSFix:
    """Sample the device's current position.

    Raises:
        GPSPermissionError: Location access is denied.
        GPSUnavailableError: Detection failed or is unsupported.
        GPSTimeoutError: Detection timed out.
    """
    platform = get_platform()
    if platform == "windows":
        return _fetch_windows()
    if platform == "macos":
        return _fetch_macos()
    if platform == "linux":
        return _fetch_linux()
    raise GPSUnavailableError(
        "Location detection is not supported on this platform."
    )


# ── Windows ────────────────────────────────────────────────────

_ANSI_RE = re.compile(
    r"\x1b\].*?\x07"
    r"|\x1b\[[0-9;]*[A-Za-z]"
    r"|\x1b[^[\]].?"
)


def _fetch_windows() -> GPSFix:
    """Fetch position via Windows Location API (PowerShell)."""
    ps_script = (
        "Add-Type -AssemblyName System.Device; "
        "$w = New-Object System.Device.Location.GeoCoordinateWatcher; "
        "$w.Start(); "
        "$timeout = 10; $elapsed = 0; "
        "while ($w.Status -ne 'Ready' -and $w.Permission -ne 'Denied' "
        "-and $elapsed -lt $timeout) "
        "{ Start-Sleep -Milliseconds 500; $elapsed += 0.5 }; "
        "if ($w.Permission -eq 'Denied') { Write-Output 'DENIED' } "
        "elseif ($w.Status -eq 'Ready') { "
        "$c = $w.Position.Location; "
        "Write-Output \"$($c.Latitude),$($c.Longitude),"
        "$($c.HorizontalAccuracy)\" } "
        "else { Write-Output 'FAILED' }; "
        "$w.Stop()"
    )
    try:
        result = subprocess.run(
            ["powershell", "-NoProfile", "-Command", ps_script],
            capture_output=True, text=True, timeout=15,
        )
    except FileNotFoundError:
        raise GPSUnavailableError(
            "PowerShell not found; cannot query Windows location services."
        )
    except subprocess.TimeoutExpired:
        raise GPSTimeoutError(
            f"Location request timed out. {get_gps_instructions()}"
        )
    output = _ANSI_RE.sub("", result.stdout).strip()
    if output == "DENIED":
        raise GPSPermissionError(
            f"Location access denied. {get_gps_instructions()}"
        )
    if not output or output == "FAILED" or "," not in output:
        raise GPSUnavailableError(
            f"Location unavailable. {get_gps_instructions()}"
        )
    try:
        parts = output.split(",")
        accuracy = float(parts[2]) if len(parts) > 2 and parts[2] else None
        return GPSFix(float(parts[0]), float(parts[1]), accuracy)
    except ValueError as e:
        raise GPSUnavailableError(f"Could not parse location output: {e}")


# ── macOS ──────────────────────────────────────────────────────

# CLAuthorizationStatus values meaning "no access"
_MACOS_DENIED_STATUSES = (1, 2)  # restricted, denied


def _fetch_macos() -> GPSFix:
    """Fetch position via macOS CoreLocation (requires pyobjc)."""
    try:
        import CoreLocation
    except ImportError:
        raise GPSUnavailableError(
            "CoreLocation not available. Install "
            "pyobjc-framework-CoreLocation for automatic location."
        )

    import time

    if (CoreLocation.CLLocationManager.authorizationStatus()
            in _MACOS_DENIED_STATUSES):
        raise GPSPermissionError(
            f"Location access denied. {get_gps_instructions()}"
        )

    manager = CoreLocation.CLLocationManager.alloc().init()
    manager.startUpdatingLocation()
    try:
        # CoreLocation is async, poll briefly
        for _ in range(20):  # Up to 10 seconds
            location = manager.location()
            if location is not None:
                coord = location.coordinate()
                return GPSFix(
                    coord.latitude, coord.longitude,
                    location.horizontalAccuracy(),
                )
            time.sleep(0.5)
    finally:
        manager.stopUpdatingLocation()
    raise GPSTimeoutError(
        f"Location request timed out. {get_gps_instructions()}"
    )


# ── Linux ──────────────────────────────────────────────────────

def _parse_where_am_i(stdout: str) -> Optional[GPSFix]:
    """Pull latitude/longitude/accuracy out of ``where-am-i`` output."""
    lat = lon = acc = None
    for line in stdout.splitlines():
        line = line.strip()
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        number = value.strip().rstrip("°").split(" ")[0]
        if key == "Latitude":
            lat = float(number)
        elif key == "Longitude":
            lon = float(number)
        elif key == "Accuracy":
            acc = float(number)
    if lat is None or lon is None:
        return None
    return GPSFix(lat, lon, acc)


def _fetch_linux() -> GPSFix:
    """Fetch position via the GeoClue2 demo agent."""
    try:
        result = subprocess.run(
            ["where-am-i", "-t", "10"],
            capture_output=True, text=True, timeout=15,
        )
    except FileNotFoundError:
        raise GPSUnavailableError(
            "GeoClue2 'where-am-i' tool not found. "
            "Install geoclue-2.0 for automatic location."
        )
    except subprocess.TimeoutExpired:
        raise GPSTimeoutError(
            f"Location request timed out. {get_gps_instructions()}"
        )

    stderr = (result.stderr or "").lower()
    if "not authorized" in stderr or "access denied" in stderr:
        raise GPSPermissionError(
            f"Location access denied. {get_gps_instructions()}"
        )
    if result.returncode == 0:
        try:
            fix = _parse_where_am_i(result.stdout)
        except ValueError as e:
            raise GPSUnavailableError(f"Could not parse GeoClue output: {e}")
        if fix is not None:
            return fix
    raise GPSUnavailableError(
        f"GeoClue2 could not determine location. {get_gps_instructions()}"
    )
