"""Tests for saving job progress, including the partial failure path."""

import sqlite3
import threading
from datetime import datetime
from unittest.mock import patch

import pytest

from job_desk.database.models import InventoryItem
from job_desk.jobs.errors import JobUpdateError
from job_desk.jobs.reconciliation import (
    open_reconciliations,
    resolve_reconciliation,
)
from job_desk.jobs.session import JobSession
from job_desk.jobs.status import update_job_status
from job_desk.utils.constants import RECON_INVENTORY_THEN_STATUS

NOW = datetime(2026, 10, 16, 15, 30, 0)


@pytest.fixture
def session(identity, job, inventory):
    s = JobSession(identity=identity)
    s.select_job(job, inventory)
    return s


class TestUpdateJobStatus:
    def test_writes_status_hours_notes(self, repo, session, job):
        updated = update_job_status(repo, session, "in_progress", 2.5,
                                    "Roughed in", now=NOW)
        assert updated.status == "in_progress"
        assert updated.actual_hours == 2.5
        assert updated.notes == "Roughed in"
        assert updated.completed_date is None
        assert session.job.status == "in_progress"

    def test_completed_sets_completed_date(self, repo, session):
        updated = update_job_status(repo, session, "completed", 3, "",
                                    now=NOW)
        assert updated.completed_date == NOW.isoformat()

    def test_consumes_parts_once(self, repo, session, inventory):
        outlet = inventory[0]
        session.parts.set_quantity_used(outlet.id, 4)

        update_job_status(repo, session, "in_progress", 1, "", now=NOW)
        update_job_status(repo, session, "in_progress", 2, "", now=NOW)

        assert repo.get_inventory_item_by_id(outlet.id).quantity == 6
        assert session.parts.used_items() == []

    def test_billed_parts_accumulate_across_saves(self, repo, session,
                                                  inventory):
        outlet, breaker = inventory
        session.parts.set_quantity_used(outlet.id, 2)
        update_job_status(repo, session, "in_progress", 1, "", now=NOW)
        session.parts.set_quantity_used(breaker.id, 1)
        update_job_status(repo, session, "in_progress", 2, "", now=NOW)
        assert session.billed_parts == pytest.approx(45.25)

    def test_other_company_job_rejected(self, repo, rival_identity, job,
                                        inventory):
        rival_session = JobSession(identity=rival_identity)
        rival_session.select_job(job, inventory)
        rival_session.parts.set_quantity_used(inventory[0].id, 3)
        with pytest.raises(ValueError):
            update_job_status(repo, rival_session, "completed", 1, "")
        assert repo.get_inventory_item_by_id(inventory[0].id).quantity == 10
        assert repo.get_work_order_by_id(job.id).status == "scheduled"

    def test_invalid_status(self, repo, session, inventory):
        session.parts.set_quantity_used(inventory[0].id, 1)
        with pytest.raises(ValueError):
            update_job_status(repo, session, "done-ish", 1, "")
        # Nothing consumed on a rejected save
        assert repo.get_inventory_item_by_id(inventory[0].id).quantity == 10

    def test_negative_hours(self, repo, session):
        with pytest.raises(ValueError):
            update_job_status(repo, session, "open", -0.5, "")

    def test_no_job_selected(self, repo, identity):
        with pytest.raises(ValueError):
            update_job_status(repo, JobSession(identity=identity),
                              "open", 0, "")


class TestPartialFailure:
    def test_status_write_fails_after_decrement(self, repo, session, job,
                                                inventory, identity):
        outlet = inventory[0]
        session.parts.set_quantity_used(outlet.id, 4)

        with patch.object(repo, "update_work_order_progress",
                          side_effect=sqlite3.OperationalError("disk I/O")):
            with pytest.raises(JobUpdateError) as exc_info:
                update_job_status(repo, session, "completed", 3, "", now=NOW)

        err = exc_info.value
        assert err.work_order_id == job.id
        assert err.applied == [(outlet.id, 10, 6)]
        assert isinstance(err.__cause__, sqlite3.OperationalError)

        # Decrement stays, status does not change
        assert repo.get_inventory_item_by_id(outlet.id).quantity == 6
        assert repo.get_work_order_by_id(job.id).status == "scheduled"
        # Retrying cannot consume the same parts again
        assert session.parts.used_items() == []

        records = open_reconciliations(repo, identity)
        assert len(records) == 1
        record = records[0]
        assert record.id == err.reconciliation_id
        assert record.kind == RECON_INVENTORY_THEN_STATUS
        assert record.work_order_id == job.id
        detail = record.detail_dict
        assert detail["status"] == "completed"
        assert detail["decrements"] == [
            {"item_id": outlet.id, "old": 10, "new": 6},
        ]

    def test_failure_without_parts_propagates_raw(self, repo, session,
                                                  identity):
        with patch.object(repo, "update_work_order_progress",
                          side_effect=sqlite3.OperationalError("locked")):
            with pytest.raises(sqlite3.OperationalError):
                update_job_status(repo, session, "in_progress", 1, "")
        assert open_reconciliations(repo, identity) == []

    def test_reconciliation_can_be_resolved(self, repo, session, inventory,
                                            identity):
        session.parts.set_quantity_used(inventory[1].id, 1)
        with patch.object(repo, "update_work_order_progress",
                          side_effect=sqlite3.OperationalError("locked")):
            with pytest.raises(JobUpdateError) as exc_info:
                update_job_status(repo, session, "in_progress", 1, "")

        assert resolve_reconciliation(repo, identity,
                                      exc_info.value.reconciliation_id)
        assert open_reconciliations(repo, identity) == []

    def test_reconciliation_write_failure_still_raises(self, repo, session,
                                                       inventory):
        session.parts.set_quantity_used(inventory[1].id, 1)
        with patch.object(repo, "update_work_order_progress",
                          side_effect=sqlite3.OperationalError("locked")), \
             patch.object(repo, "create_reconciliation_record",
                          side_effect=sqlite3.OperationalError("locked")):
            with pytest.raises(JobUpdateError) as exc_info:
                update_job_status(repo, session, "in_progress", 1, "")
        assert exc_info.value.reconciliation_id is None


class TestConcurrentSaves:
    def test_two_sessions_never_drive_stock_negative(self, repo, identity,
                                                     job, inventory):
        breaker = inventory[1]
        sessions = []
        for _ in range(2):
            s = JobSession(identity=identity)
            s.select_job(job, inventory)
            s.parts.set_quantity_used(breaker.id, 3)
            sessions.append(s)

        errors = []

        def save(s):
            try:
                update_job_status(repo, s, "in_progress", 1, "")
            except sqlite3.Error as e:
                errors.append(e)

        threads = [threading.Thread(target=save, args=(s,))
                   for s in sessions]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert repo.get_inventory_item_by_id(breaker.id).quantity == 0

    def test_last_unit_claimed_twice(self, repo, identity, job, company_id):
        item = InventoryItem(company_id=company_id, name="Fuse", quantity=1)
        item.id = repo.create_inventory_item(item)
        sessions = []
        for _ in range(2):
            s = JobSession(identity=identity)
            s.select_job(job, [item])
            s.parts.set_quantity_used(item.id, 1)
            sessions.append(s)

        threads = [
            threading.Thread(target=update_job_status,
                             args=(repo, s, "in_progress", 1, ""))
            for s in sessions
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert repo.get_inventory_item_by_id(item.id).quantity == 0
