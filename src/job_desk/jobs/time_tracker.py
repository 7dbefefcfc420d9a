"""Time tracking against work orders.

A technician has at most one running entry per work order. Durations are
derived from wall-clock start/stop times when the timer stops; nothing is
accumulated incrementally, so clock changes mid-timer are not compensated.
"""

import logging
import math
import sqlite3
from datetime import datetime
from typing import Iterable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from job_desk.config import Config
from job_desk.database.models import TimeEntry, WorkOrder
from job_desk.database.repository import Repository
from job_desk.identity import Identity
from job_desk.utils.constants import MIN_TIME_ENTRY_MINUTES

logger = logging.getLogger(__name__)


def _parse(value) -> datetime:
    return value if isinstance(value, datetime) else datetime.fromisoformat(value)


def elapsed_seconds(start_time, now: datetime = None) -> int:
    """Whole seconds between ``start_time`` and ``now`` (never negative)."""
    now = now or datetime.now()
    delta = (now - _parse(start_time)).total_seconds()
    return max(int(math.floor(delta)), 0)


def duration_minutes(start_time, end_time) -> int:
    """Billable minutes for a closed interval, floored, minimum one."""
    delta = (_parse(end_time) - _parse(start_time)).total_seconds()
    return max(MIN_TIME_ENTRY_MINUTES, int(math.floor(delta / 60)))


def total_hours(entries: Iterable[TimeEntry], now: datetime = None) -> float:
    """Total logged hours, counting a running entry by its elapsed time."""
    minutes = 0
    for entry in entries:
        if entry.end_time is None and entry.start_time:
            minutes += elapsed_seconds(entry.start_time, now) // 60
        else:
            minutes += entry.duration_minutes or 0
    return minutes / 60


def start_timer(repo: Repository, identity: Identity, job: WorkOrder,
                description: str = None,
                now: datetime = None) -> Optional[TimeEntry]:
    """Open a time entry for the current user on ``job``.

    Returns None if the user already has a running entry on this job.
    """
    active = repo.get_active_time_entry(job.id, identity.user_id)
    if active:
        logger.warning(
            "Timer already running on %s for user %s (entry %s)",
            job.wo_number, identity.user_id, active.id,
        )
        return None

    entry = TimeEntry(
        company_id=identity.company_id,
        work_order_id=job.id,
        user_id=identity.user_id,
        start_time=(now or datetime.now()).isoformat(),
        duration_minutes=0,
        description=description or f"Working on {job.title}",
        status="pending",
    )
    try:
        entry.id = repo.create_time_entry(entry)
    except sqlite3.IntegrityError:
        # Another session opened a timer between the check and the insert
        logger.warning(
            "Timer start on %s lost a race for user %s",
            job.wo_number, identity.user_id,
        )
        return None
    logger.info("Timer started on %s (entry %s)", job.wo_number, entry.id)
    return entry


def stop_timer(repo: Repository, entry: TimeEntry,
               now: datetime = None) -> Optional[TimeEntry]:
    """Close a running entry. Returns None if it was already closed."""
    if entry.end_time is not None:
        return None

    end = now or datetime.now()
    minutes = duration_minutes(entry.start_time, end)
    if not repo.close_time_entry(entry.id, end.isoformat(), minutes):
        logger.warning("Time entry %s was already stopped", entry.id)
        return None

    logger.info("Timer stopped on entry %s after %d min", entry.id, minutes)
    return repo.get_time_entry_by_id(entry.id)


class TimerTicker(QObject):
    """Emits the running entry's elapsed seconds once per tick.

    Display only: it reads ``start_time`` and never writes to the store.
    """

    tick = Signal(int)

    def __init__(self, timer_factory=None, parent=None):
        super().__init__(parent)
        self._timer_factory = timer_factory or (lambda: QTimer(self))
        self._timer = None
        self._start_time = None

    @property
    def running(self) -> bool:
        return self._timer is not None

    def start(self, entry: TimeEntry):
        self.stop()
        self._start_time = entry.start_time
        self._timer = self._timer_factory()
        self._timer.timeout.connect(self._on_timeout)
        self._timer.start(Config.TIMER_TICK_MS)
        self._on_timeout()

    def stop(self):
        if self._timer is not None:
            self._timer.stop()
            self._timer = None
        self._start_time = None

    def _on_timeout(self):
        if self._start_time is not None:
            self.tick.emit(elapsed_seconds(self._start_time))
