"""Per-view state for the technician's job screen."""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from job_desk.database.models import InventoryItem, TimeEntry, WorkOrder
from job_desk.identity import Identity
from job_desk.jobs.parts import PartsUsage


@dataclass
class JobSession:
    """Everything the job screen holds between user actions.

    Operations take the session explicitly instead of reading
    screen-level globals.
    """

    identity: Identity
    job: Optional[WorkOrder] = None
    active_entry: Optional[TimeEntry] = None
    parts: PartsUsage = field(default_factory=PartsUsage)
    # Value of parts consumed by saves and not yet invoiced
    billed_parts: float = 0.0
    tracking: bool = False

    def select_job(self, job: WorkOrder,
                   inventory: Iterable[InventoryItem] = (),
                   entries: Iterable[TimeEntry] = ()):
        """Switch to ``job``; parts usage starts empty for a new job."""
        if self.job is None or self.job.id != job.id:
            self.parts.load(inventory)
            self.billed_parts = 0.0
        self.job = job
        self.active_entry = next(
            (e for e in entries
             if e.end_time is None and e.user_id == self.identity.user_id),
            None,
        )

    def clear(self):
        self.job = None
        self.active_entry = None
        self.parts.load(())
        self.billed_parts = 0.0
