"""Durable notes for multi-step writes that stopped halfway.

The store offers no transaction spanning both steps of a job save or an
invoice conversion as seen by the caller, so when the second step fails
the first is left in place and a record is written here for someone to
clean up by hand.
"""

import json
import logging
import sqlite3
from typing import Optional

from job_desk.database.models import ReconciliationRecord
from job_desk.database.repository import Repository
from job_desk.identity import Identity

logger = logging.getLogger(__name__)


def record_partial_failure(repo: Repository, identity: Identity, kind: str,
                           detail: dict, work_order_id: int = None,
                           invoice_id: int = None) -> Optional[int]:
    """Write a reconciliation record; returns its id, or None if that failed too.

    Never raises: this runs while another failure is already being
    reported.
    """
    record = ReconciliationRecord(
        company_id=identity.company_id,
        kind=kind,
        work_order_id=work_order_id,
        invoice_id=invoice_id,
        detail=json.dumps(detail),
    )
    try:
        record_id = repo.create_reconciliation_record(record)
    except sqlite3.Error:
        logger.exception(
            "Could not record %s partial failure: %s", kind, detail
        )
        return None
    logger.warning(
        "Partial failure recorded (%s #%s) for work order %s",
        kind, record_id, work_order_id,
    )
    return record_id


def open_reconciliations(repo: Repository,
                         identity: Identity) -> list[ReconciliationRecord]:
    return repo.get_reconciliation_records(identity.company_id, "open")


def resolve_reconciliation(repo: Repository, identity: Identity,
                           record_id: int) -> bool:
    """Mark a record handled. Returns False if it was not open."""
    resolved = repo.resolve_reconciliation_record(identity.company_id,
                                                  record_id)
    if resolved:
        logger.info("Reconciliation #%s resolved", record_id)
    return resolved
