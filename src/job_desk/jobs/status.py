"""Saving a technician's progress on a work order."""

import logging
import sqlite3
from datetime import datetime

from job_desk.database.models import WorkOrder
from job_desk.database.repository import Repository
from job_desk.jobs.errors import JobUpdateError
from job_desk.jobs.parts import apply_parts_usage
from job_desk.jobs.reconciliation import record_partial_failure
from job_desk.jobs.session import JobSession
from job_desk.utils.constants import (
    RECON_INVENTORY_THEN_STATUS,
    WORK_ORDER_STATUSES,
)

logger = logging.getLogger(__name__)


def update_job_status(repo: Repository, session: JobSession, status: str,
                      actual_hours: float, notes: str,
                      now: datetime = None) -> WorkOrder:
    """Consume the session's parts, then write the work order.

    Inventory is decremented first. If the work order write then fails,
    the decrement stays, a reconciliation record is written and
    ``JobUpdateError`` is raised. The session's parts usage is cleared as
    soon as inventory has been decremented, so retrying the save cannot
    consume the same parts twice. The value of the consumed parts is kept
    on the session as ``billed_parts`` for the job's invoice.
    """
    job = session.job
    if job is None:
        raise ValueError("No work order selected")
    if status not in WORK_ORDER_STATUSES:
        raise ValueError(f"Unknown work order status: {status}")
    if actual_hours is None or actual_hours < 0:
        raise ValueError("Actual hours cannot be negative")
    if job.company_id != session.identity.company_id:
        raise ValueError(f"Work order {job.id} not found")

    applied = apply_parts_usage(repo, session.identity, session.parts)
    session.billed_parts += session.parts.subtotal()
    session.parts.reset()

    completed_date = None
    if status == "completed":
        completed_date = (now or datetime.now()).isoformat()

    try:
        repo.update_work_order_progress(
            session.identity.company_id, job.id, status, actual_hours,
            notes or "", completed_date,
        )
    except sqlite3.Error as e:
        if not applied:
            raise
        recon_id = record_partial_failure(
            repo, session.identity, RECON_INVENTORY_THEN_STATUS,
            {
                "status": status,
                "actual_hours": actual_hours,
                "decrements": [
                    {"item_id": i, "old": old, "new": new}
                    for i, old, new in applied
                ],
                "error": str(e),
            },
            work_order_id=job.id,
        )
        raise JobUpdateError(
            f"Inventory updated but work order {job.wo_number} was not saved",
            job.id, applied, recon_id,
        ) from e

    logger.info(
        "Work order %s -> %s (%.2f h, %d part line(s))",
        job.wo_number, status, actual_hours, len(applied),
    )
    updated = repo.get_work_order_by_id(job.id)
    session.job = updated
    return updated
