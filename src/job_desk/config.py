"""Application configuration — loads .env, then overrides from settings.json."""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

# Find the project root (where .env lives)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# Runtime settings file for in-app configuration
_SETTINGS_FILE = _PROJECT_ROOT / "data" / "settings.json"


def _load_settings() -> dict:
    """Load saved runtime settings from JSON file."""
    if _SETTINGS_FILE.exists():
        try:
            return json.loads(_SETTINGS_FILE.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            pass
    return {}


def _save_settings(settings: dict):
    """Persist runtime settings to JSON file."""
    _SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    _SETTINGS_FILE.write_text(
        json.dumps(settings, indent=2), encoding="utf-8"
    )


# Load saved settings once at import time
_runtime = _load_settings()


class Config:
    """Central configuration: .env defaults, settings.json overrides."""

    # Paths
    DATABASE_PATH: Path = Path(
        os.getenv("DATABASE_PATH", str(_PROJECT_ROOT / "data" / "job_desk.db"))
    )
    BACKUP_PATH: Path = Path(
        os.getenv("DATABASE_BACKUP_PATH", str(_PROJECT_ROOT / "data" / "backups"))
    )
    EXPORTS_DIRECTORY: str = _runtime.get(
        "exports_directory",
        os.getenv("EXPORTS_DIRECTORY", str(_PROJECT_ROOT / "data" / "exports")),
    )

    # Tracking (settings.json overrides .env)
    LOCATION_PING_INTERVAL_MS: int = int(_runtime.get(
        "location_ping_interval_ms",
        os.getenv("LOCATION_PING_INTERVAL_MS", "300000"),
    ))
    TIMER_TICK_MS: int = int(os.getenv("TIMER_TICK_MS", "1000"))

    # Billing
    INVOICE_NUMBER_PREFIX: str = _runtime.get(
        "invoice_number_prefix",
        os.getenv("INVOICE_NUMBER_PREFIX", "INV"),
    )
    INVOICE_DUE_DAYS: int = int(_runtime.get(
        "invoice_due_days",
        os.getenv("INVOICE_DUE_DAYS", "30"),
    ))
    DEFAULT_TAX_RATE: float = float(_runtime.get(
        "default_tax_rate",
        os.getenv("DEFAULT_TAX_RATE", "0.0"),
    ))
    DEFAULT_LABOR_RATE: float = float(_runtime.get(
        "default_labor_rate",
        os.getenv("DEFAULT_LABOR_RATE", "0.0"),
    ))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def update_billing_settings(cls, tax_rate: float, labor_rate: float,
                                due_days: int):
        """Update invoice defaults and persist."""
        cls.DEFAULT_TAX_RATE = tax_rate
        cls.DEFAULT_LABOR_RATE = labor_rate
        cls.INVOICE_DUE_DAYS = due_days

        settings = _load_settings()
        settings["default_tax_rate"] = tax_rate
        settings["default_labor_rate"] = labor_rate
        settings["invoice_due_days"] = due_days
        _save_settings(settings)

    @classmethod
    def update_tracking_settings(cls, ping_interval_ms: int):
        """Update the location ping period (milliseconds) and persist.

        Values under one second are raised to 1000 ms.
        """
        ping_interval_ms = max(int(ping_interval_ms), 1000)
        cls.LOCATION_PING_INTERVAL_MS = ping_interval_ms

        settings = _load_settings()
        settings["location_ping_interval_ms"] = ping_interval_ms
        _save_settings(settings)

    @classmethod
    def update_export_directory(cls, path: str):
        cls.EXPORTS_DIRECTORY = path
        settings = _load_settings()
        settings["exports_directory"] = path
        _save_settings(settings)
