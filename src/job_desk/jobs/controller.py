"""View-model for the technician's "My Jobs" screen.

The controller owns the screen state and turns every job action into a
signal: results go out on their own signals, failures become a generic
``alert`` and are logged. No action lets an exception escape to the view.
"""

import dataclasses
import functools
import logging
import sqlite3
from typing import Optional

from PySide6.QtCore import QObject, Signal

from job_desk.database.models import Invoice, TimeEntry, WorkOrder
from job_desk.database.repository import Repository
from job_desk.identity import Identity
from job_desk.jobs import invoicing, photos, status, time_tracker
from job_desk.jobs.errors import JobActionError
from job_desk.jobs.loader import load_assigned_jobs, load_job_context
from job_desk.jobs.location import LocationPinger
from job_desk.jobs.session import JobSession
from job_desk.utils.constants import (
    ALERT_INVOICE_FAILED,
    ALERT_LOAD_FAILED,
    ALERT_PHOTO_FAILED,
    ALERT_SAVE_FAILED,
    ALERT_TIMER_FAILED,
    TRACKER_TRACKING,
)

logger = logging.getLogger(__name__)


def _action(alert_message: str):
    """Wrap a controller action with the busy flag and error reporting."""
    def decorator(method):
        @functools.wraps(method)
        def wrapper(self, *args, **kwargs):
            if self._busy:
                logger.warning("%s ignored: another action is in flight",
                               method.__name__)
                return None
            self._set_busy(True)
            try:
                return method(self, *args, **kwargs)
            except ValueError as e:
                logger.warning("%s rejected: %s", method.__name__, e)
                return None
            except (sqlite3.Error, JobActionError):
                logger.exception("%s failed", method.__name__)
                self.alert.emit(alert_message)
                return None
            finally:
                self._set_busy(False)
        return wrapper
    return decorator


class MyJobsController(QObject):
    """Glue between the job screen and the job operations."""

    alert = Signal(str)
    busy_changed = Signal(bool)
    jobs_loaded = Signal(object)  # list[WorkOrder]
    job_selected = Signal(object)  # JobContext
    timer_changed = Signal(object)  # running TimeEntry or None
    timer_tick = Signal(int)  # elapsed seconds
    job_saved = Signal(object)  # WorkOrder
    invoice_created = Signal(object)  # Invoice
    photo_added = Signal(object)  # WorkOrderPhoto
    tracking_changed = Signal(str)

    def __init__(self, repo: Repository, identity: Identity,
                 sampler=None, timer_factory=None, worker_factory=None,
                 parent=None):
        super().__init__(parent)
        self.repo = repo
        self.session = JobSession(identity=identity)
        self.jobs: list[WorkOrder] = []
        self._busy = False

        self._ticker = time_tracker.TimerTicker(timer_factory, parent=self)
        self._ticker.tick.connect(self.timer_tick)

        self._pinger = LocationPinger(
            repo, identity, sampler=sampler, timer_factory=timer_factory,
            worker_factory=worker_factory, parent=self,
        )
        self._pinger.state_changed.connect(self._on_tracking_state)
        self._pinger.notice.connect(self.alert)

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def ticker(self) -> time_tracker.TimerTicker:
        return self._ticker

    @property
    def pinger(self) -> LocationPinger:
        return self._pinger

    def _set_busy(self, busy: bool):
        self._busy = busy
        self.busy_changed.emit(busy)

    # ── Job list ────────────────────────────────────────────────

    @_action(ALERT_LOAD_FAILED)
    def refresh_jobs(self) -> list[WorkOrder]:
        self.jobs = load_assigned_jobs(self.repo, self.session.identity)
        self.jobs_loaded.emit(self.jobs)
        return self.jobs

    @_action(ALERT_LOAD_FAILED)
    def select_job(self, job: WorkOrder):
        context = load_job_context(self.repo, self.session.identity, job.id)
        self.session.select_job(job, context.inventory, context.time_entries)
        if self.session.active_entry is not None:
            self._ticker.start(self.session.active_entry)
        else:
            self._ticker.stop()
        self.timer_changed.emit(self.session.active_entry)
        self.job_selected.emit(context)
        return context

    # ── Timer ───────────────────────────────────────────────────

    @_action(ALERT_TIMER_FAILED)
    def start_timer(self, description: str = None) -> Optional[TimeEntry]:
        if self.session.job is None:
            raise ValueError("No work order selected")
        entry = time_tracker.start_timer(
            self.repo, self.session.identity, self.session.job, description
        )
        if entry is None:
            return None
        self.session.active_entry = entry
        self._ticker.start(entry)
        self.timer_changed.emit(entry)
        return entry

    @_action(ALERT_TIMER_FAILED)
    def stop_timer(self) -> Optional[TimeEntry]:
        entry = self.session.active_entry
        if entry is None:
            return None
        stopped = time_tracker.stop_timer(self.repo, entry)
        self._ticker.stop()
        self.session.active_entry = None
        self.timer_changed.emit(None)
        return stopped

    # ── Parts & progress ────────────────────────────────────────

    def set_part_quantity(self, item_id: int, qty: int) -> Optional[int]:
        return self.session.parts.set_quantity_used(item_id, qty)

    @_action(ALERT_SAVE_FAILED)
    def save_job(self, new_status: str, actual_hours: float,
                 notes: str = "") -> Optional[WorkOrder]:
        updated = status.update_job_status(
            self.repo, self.session, new_status, actual_hours, notes
        )
        self.job_saved.emit(updated)
        return updated

    @_action(ALERT_INVOICE_FAILED)
    def convert_to_invoice(
        self, inputs: invoicing.InvoiceInputs
    ) -> Optional[Invoice]:
        """Invoice the selected job.

        When ``inputs.parts_subtotal`` is left unset, the parts consumed
        by this job's saves are billed.
        """
        if self.session.job is None:
            raise ValueError("No work order selected")
        use_saved_parts = inputs.parts_subtotal is None
        if use_saved_parts:
            inputs = dataclasses.replace(
                inputs, parts_subtotal=self.session.billed_parts
            )
        invoice = invoicing.convert_job_to_invoice(
            self.repo, self.session.identity, self.session.job, inputs
        )
        if use_saved_parts:
            self.session.billed_parts = 0.0
        self.invoice_created.emit(invoice)
        return invoice

    @_action(ALERT_PHOTO_FAILED)
    def add_photo(self, photo_url: str, caption: str = None):
        if self.session.job is None:
            raise ValueError("No work order selected")
        photo = photos.add_photo(
            self.repo, self.session.identity, self.session.job,
            photo_url, caption,
        )
        self.photo_added.emit(photo)
        return photo

    # ── Location tracking ───────────────────────────────────────

    def start_tracking(self):
        self._pinger.start()

    def stop_tracking(self):
        self._pinger.stop()

    def _on_tracking_state(self, state: str):
        self.session.tracking = state == TRACKER_TRACKING
        self.tracking_changed.emit(state)

    def teardown(self):
        """Release timers when the screen goes away."""
        self._ticker.stop()
        self._pinger.stop()
