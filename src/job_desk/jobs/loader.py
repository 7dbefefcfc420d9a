"""Loading the technician's job list and the context for one job."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from PySide6.QtCore import QThread, Signal

from job_desk.database.models import (
    InventoryItem,
    PurchaseOrder,
    TimeEntry,
    WorkOrder,
    WorkOrderPhoto,
)
from job_desk.database.repository import Repository
from job_desk.identity import Identity
from job_desk.utils.constants import ACTIVE_WORK_ORDER_STATUSES

logger = logging.getLogger(__name__)


@dataclass
class JobContext:
    work_order_id: int
    time_entries: list[TimeEntry] = field(default_factory=list)
    photos: list[WorkOrderPhoto] = field(default_factory=list)
    purchase_orders: list[PurchaseOrder] = field(default_factory=list)
    inventory: list[InventoryItem] = field(default_factory=list)


def load_assigned_jobs(repo: Repository,
                       identity: Identity) -> list[WorkOrder]:
    """Open, scheduled and in-progress jobs assigned to the current user."""
    jobs = repo.get_assigned_work_orders(
        identity.company_id, identity.user_id, ACTIVE_WORK_ORDER_STATUSES
    )
    logger.debug("Loaded %d assigned job(s) for user %s",
                 len(jobs), identity.user_id)
    return jobs


def load_job_context(repo: Repository, identity: Identity,
                     work_order_id: int) -> JobContext:
    """Fetch everything the job screen needs for one work order.

    The four reads are independent and run concurrently; the first one
    to fail raises out of here.
    """
    with ThreadPoolExecutor(max_workers=4) as pool:
        entries = pool.submit(repo.get_time_entries_for_work_order,
                              work_order_id)
        photos = pool.submit(repo.get_photos_for_work_order, work_order_id)
        pos = pool.submit(repo.get_purchase_orders_for_work_order,
                          work_order_id)
        inventory = pool.submit(repo.get_inventory_items,
                                identity.company_id)
        return JobContext(
            work_order_id=work_order_id,
            time_entries=entries.result(),
            photos=photos.result(),
            purchase_orders=pos.result(),
            inventory=inventory.result(),
        )


class JobContextWorker(QThread):
    """Runs ``load_job_context`` off the UI thread."""

    loaded = Signal(object)  # JobContext
    error = Signal(str)

    def __init__(self, repo: Repository, identity: Identity,
                 work_order_id: int, parent=None):
        super().__init__(parent)
        self.repo = repo
        self.identity = identity
        self.work_order_id = work_order_id

    def run(self):
        try:
            context = load_job_context(
                self.repo, self.identity, self.work_order_id
            )
        except Exception as e:
            logger.exception("Loading work order %s failed",
                             self.work_order_id)
            self.error.emit(str(e))
            return
        self.loaded.emit(context)
