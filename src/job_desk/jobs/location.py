"""Periodic technician location sampling while tracking is switched on."""

import logging
import sqlite3
from datetime import datetime

from PySide6.QtCore import QObject, QThread, QTimer, Signal

from job_desk.config import Config
from job_desk.database.models import LocationSample
from job_desk.database.repository import Repository
from job_desk.identity import Identity
from job_desk.utils.constants import (
    ALERT_LOCATION_DENIED,
    TRACKER_IDLE,
    TRACKER_TRACKING,
)
from job_desk.utils.gps import GPSPermissionError, fetch_position

logger = logging.getLogger(__name__)


class PositionWorker(QThread):
    """Takes a single position fix in a thread."""

    fixed = Signal(object)  # GPSFix
    failed = Signal(object)  # the exception raised by the sampler

    def __init__(self, sampler, parent=None):
        super().__init__(parent)
        self.sampler = sampler

    def run(self):
        try:
            fix = self.sampler()
        except Exception as e:
            self.failed.emit(e)
            return
        self.fixed.emit(fix)


def _thread_worker(sampler, parent) -> PositionWorker:
    worker = PositionWorker(sampler, parent)
    worker.finished.connect(worker.deleteLater)
    return worker


class LocationPinger(QObject):
    """Two-state tracker: ``idle`` and ``tracking``.

    While tracking, a sample is requested immediately and then every
    ``Config.LOCATION_PING_INTERVAL_MS``. Each fix is taken on a
    ``PositionWorker`` thread and recorded when its result comes back;
    a tick that arrives while a fix is still pending is skipped.
    Denied permission switches tracking off; other geolocation or
    storage failures are logged and the next tick tries again.
    """

    state_changed = Signal(str)
    sample_recorded = Signal(object)  # LocationSample
    notice = Signal(str)

    def __init__(self, repo: Repository, identity: Identity,
                 sampler=None, timer_factory=None, worker_factory=None,
                 parent=None):
        super().__init__(parent)
        self.repo = repo
        self.identity = identity
        self._sampler = sampler or fetch_position
        self._timer_factory = timer_factory or (lambda: QTimer(self))
        self._worker_factory = worker_factory or (
            lambda sampler: _thread_worker(sampler, self)
        )
        self._timer = None
        self._worker = None
        self._state = TRACKER_IDLE

    @property
    def state(self) -> str:
        return self._state

    @property
    def tracking(self) -> bool:
        return self._state == TRACKER_TRACKING

    @property
    def sampling(self) -> bool:
        """True while a position fix is pending."""
        return self._worker is not None

    def start(self):
        if self.tracking:
            return
        self._set_state(TRACKER_TRACKING)
        logger.info("Location tracking started for user %s",
                    self.identity.user_id)
        self.sample()
        # A synchronous worker may already have been denied
        if not self.tracking:
            return
        self._timer = self._timer_factory()
        self._timer.timeout.connect(self.sample)
        self._timer.start(Config.LOCATION_PING_INTERVAL_MS)

    def stop(self):
        if self._timer is not None:
            self._timer.stop()
            self._timer = None
        if self.tracking:
            self._set_state(TRACKER_IDLE)
            logger.info("Location tracking stopped for user %s",
                        self.identity.user_id)

    def sample(self):
        """Request one position fix."""
        if not self.tracking:
            return
        if self._worker is not None:
            logger.debug("Previous location fix still pending; skipping")
            return
        worker = self._worker_factory(self._sampler)
        worker.fixed.connect(self._on_fix)
        worker.failed.connect(self._on_failure)
        self._worker = worker
        worker.start()

    def _on_fix(self, fix):
        self._worker = None
        if not self.tracking:
            return
        sample = LocationSample(
            company_id=self.identity.company_id,
            technician_id=self.identity.user_id,
            latitude=fix.latitude,
            longitude=fix.longitude,
            accuracy=fix.accuracy,
            recorded_at=datetime.now().isoformat(),
        )
        try:
            sample.id = self.repo.create_location_sample(sample)
        except sqlite3.Error:
            logger.exception("Could not record location sample")
            return
        self.sample_recorded.emit(sample)

    def _on_failure(self, error: Exception):
        self._worker = None
        if not self.tracking:
            return
        if isinstance(error, GPSPermissionError):
            logger.warning("Location permission denied; stopping tracking")
            self.stop()
            self.notice.emit(ALERT_LOCATION_DENIED)
            return
        logger.warning("Location sample failed: %s", error)

    def _set_state(self, state: str):
        self._state = state
        self.state_changed.emit(state)
