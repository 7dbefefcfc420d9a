"""Tests for the Repository CRUD layer."""

import sqlite3
import threading

import pytest

from job_desk.database.models import (
    Company,
    Customer,
    InventoryItem,
    Invoice,
    LocationSample,
    PurchaseOrder,
    ReconciliationRecord,
    TimeEntry,
    User,
    WorkOrder,
    WorkOrderPhoto,
)
from job_desk.database.repository import Repository
from job_desk.utils.constants import ACTIVE_WORK_ORDER_STATUSES


def _make_job(repo, company_id, customer_id, user_id, wo_number,
              status="open", scheduled=None):
    wo = WorkOrder(
        company_id=company_id, wo_number=wo_number, title=wo_number,
        status=status, scheduled_date=scheduled, customer_id=customer_id,
        assigned_to=user_id,
    )
    return repo.create_work_order(wo)


class TestUsers:
    def test_authenticate_with_correct_pin(self, repo, tech_user):
        user = repo.authenticate_user("tech@acme.test", "1234")
        assert user is not None
        assert user.id == tech_user.id

    def test_authenticate_with_wrong_pin(self, repo, tech_user):
        assert repo.authenticate_user("tech@acme.test", "0000") is None

    def test_authenticate_unknown_email(self, repo):
        assert repo.authenticate_user("nobody@acme.test", "1234") is None

    def test_inactive_user_cannot_authenticate(self, repo, company_id):
        repo.create_user(User(
            company_id=company_id, email="gone@acme.test",
            pin_hash=Repository.hash_pin("1111"), is_active=0,
        ))
        assert repo.authenticate_user("gone@acme.test", "1111") is None

    def test_duplicate_email_rejected(self, repo, company_id, tech_user):
        with pytest.raises(sqlite3.IntegrityError):
            repo.create_user(User(company_id=company_id,
                                  email="tech@acme.test"))

    def test_display_name(self, tech_user):
        assert tech_user.display_name == "Terry Tech"

    def test_get_by_id(self, repo, tech_user):
        assert repo.get_user_by_id(tech_user.id).email == "tech@acme.test"
        assert repo.get_user_by_id(9999) is None


class TestCompaniesAndCustomers:
    def test_company_settings(self, repo):
        cid = repo.create_company(Company(name="Volt Co",
                                          settings='{"tax_rate": 7}'))
        assert repo.get_company_by_id(cid).settings_dict == {"tax_rate": 7}

    def test_malformed_settings_read_as_empty(self):
        assert Company(settings="not json").settings_dict == {}

    def test_customer_display_name(self, repo, customer_id):
        customer = repo.get_customer_by_id(customer_id)
        assert customer.display_name == "Dana Whitfield"
        customer.company_name = "Whitfield Homes"
        assert customer.display_name == "Whitfield Homes"


class TestWorkOrders:
    def test_joined_names(self, job):
        assert job.customer_name == "Dana Whitfield"
        assert job.project_name == "Kitchen Remodel"

    def test_company_name_preferred_for_customer(self, repo, company_id,
                                                 tech_user):
        cid = repo.create_customer(Customer(
            company_id=company_id, first_name="Pat", last_name="Lee",
            company_name="Riverside Dental",
        ))
        wo_id = _make_job(repo, company_id, cid, tech_user.id, "WO-X")
        assert repo.get_work_order_by_id(wo_id).customer_name == \
            "Riverside Dental"

    def test_assigned_orders_sorted_with_unscheduled_last(
        self, repo, company_id, customer_id, tech_user
    ):
        _make_job(repo, company_id, customer_id, tech_user.id, "WO-C")
        _make_job(repo, company_id, customer_id, tech_user.id, "WO-B",
                  scheduled="2026-11-02")
        _make_job(repo, company_id, customer_id, tech_user.id, "WO-A",
                  scheduled="2026-10-30")
        jobs = repo.get_assigned_work_orders(
            company_id, tech_user.id, ACTIVE_WORK_ORDER_STATUSES
        )
        assert [j.wo_number for j in jobs] == ["WO-A", "WO-B", "WO-C"]

    def test_assigned_orders_filter_status(self, repo, company_id,
                                           customer_id, tech_user):
        _make_job(repo, company_id, customer_id, tech_user.id, "WO-1",
                  status="completed")
        _make_job(repo, company_id, customer_id, tech_user.id, "WO-2",
                  status="in_progress")
        jobs = repo.get_assigned_work_orders(
            company_id, tech_user.id, ACTIVE_WORK_ORDER_STATUSES
        )
        assert [j.wo_number for j in jobs] == ["WO-2"]

    def test_update_progress(self, repo, job):
        repo.update_work_order_progress(job.company_id, job.id, "in_progress",
                                        2.5, "roughed")
        updated = repo.get_work_order_by_id(job.id)
        assert updated.status == "in_progress"
        assert updated.actual_hours == 2.5
        assert updated.notes == "roughed"
        assert updated.completed_date is None
        assert not updated.is_closed

    def test_completed_date_kept_when_not_given(self, repo, job):
        repo.update_work_order_progress(job.company_id, job.id, "completed",
                                        3, "", "2026-10-16T10:00:00")
        repo.update_work_order_progress(job.company_id, job.id, "completed",
                                        3.5, "fixed")
        assert repo.get_work_order_by_id(job.id).completed_date == \
            "2026-10-16T10:00:00"
        assert repo.get_work_order_by_id(job.id).is_closed

    def test_invalid_status_rejected(self, repo, job):
        with pytest.raises(sqlite3.IntegrityError):
            repo.update_work_order_progress(job.company_id, job.id,
                                            "bogus", 0, "")

    def test_negative_hours_rejected(self, repo, job):
        with pytest.raises(sqlite3.IntegrityError):
            repo.update_work_order_progress(job.company_id, job.id,
                                            "open", -1, "")

    def test_update_progress_ignores_other_company(self, repo, job, rival):
        repo.update_work_order_progress(rival, job.id, "cancelled", 9, "x")
        unchanged = repo.get_work_order_by_id(job.id)
        assert unchanged.status == "scheduled"
        assert unchanged.actual_hours == 0

    def test_generate_wo_number(self, repo, company_id):
        number = repo.generate_wo_number(company_id)
        assert number.startswith("WO-")
        assert number.endswith("-0001")


class TestTimeEntries:
    def _entry(self, job, user_id, start="2026-10-16T08:00:00"):
        return TimeEntry(company_id=job.company_id, work_order_id=job.id,
                         user_id=user_id, start_time=start)

    def test_only_one_active_entry_per_job_and_user(self, repo, job,
                                                    tech_user):
        repo.create_time_entry(self._entry(job, tech_user.id))
        with pytest.raises(sqlite3.IntegrityError):
            repo.create_time_entry(self._entry(job, tech_user.id))

    def test_closed_entries_do_not_block_new_ones(self, repo, job,
                                                  tech_user):
        first = repo.create_time_entry(self._entry(job, tech_user.id))
        assert repo.close_time_entry(first, "2026-10-16T09:00:00", 60)
        second = repo.create_time_entry(self._entry(
            job, tech_user.id, "2026-10-16T10:00:00"
        ))
        assert second != first

    def test_close_is_conditional(self, repo, job, tech_user):
        entry_id = repo.create_time_entry(self._entry(job, tech_user.id))
        assert repo.close_time_entry(entry_id, "2026-10-16T09:00:00", 60)
        assert not repo.close_time_entry(entry_id, "2026-10-16T09:30:00", 90)
        entry = repo.get_time_entry_by_id(entry_id)
        assert entry.end_time == "2026-10-16T09:00:00"
        assert entry.duration_minutes == 60
        assert not entry.is_active

    def test_get_active_entry(self, repo, job, tech_user):
        assert repo.get_active_time_entry(job.id, tech_user.id) is None
        entry_id = repo.create_time_entry(self._entry(job, tech_user.id))
        active = repo.get_active_time_entry(job.id, tech_user.id)
        assert active.id == entry_id
        assert active.user_name == "Terry Tech"

    def test_entries_newest_first(self, repo, job, tech_user):
        a = repo.create_time_entry(self._entry(
            job, tech_user.id, "2026-10-15T08:00:00"))
        repo.close_time_entry(a, "2026-10-15T09:00:00", 60)
        b = repo.create_time_entry(self._entry(
            job, tech_user.id, "2026-10-16T08:00:00"))
        entries = repo.get_time_entries_for_work_order(job.id)
        assert [e.id for e in entries] == [b, a]


class TestInventory:
    def test_decrement(self, repo, company_id, inventory):
        outlet, breaker = inventory
        applied = repo.decrement_inventory(
            company_id, [(outlet.id, 4), (breaker.id, 1)]
        )
        assert applied == [(outlet.id, 10, 6), (breaker.id, 3, 2)]
        assert repo.get_inventory_item_by_id(outlet.id).quantity == 6

    def test_decrement_clamps_at_zero(self, repo, company_id, inventory):
        breaker = inventory[1]
        applied = repo.decrement_inventory(company_id, [(breaker.id, 50)])
        assert applied == [(breaker.id, 3, 0)]
        assert repo.get_inventory_item_by_id(breaker.id).quantity == 0

    def test_decrement_skips_other_tenants(self, repo, inventory):
        other = repo.create_company(Company(name="Other Co"))
        assert repo.decrement_inventory(other, [(inventory[0].id, 1)]) == []
        assert repo.get_inventory_item_by_id(inventory[0].id).quantity == 10

    def test_concurrent_decrements_do_not_lose_updates(self, repo,
                                                       company_id,
                                                       inventory):
        outlet = inventory[0]
        errors = []

        def consume():
            try:
                repo.decrement_inventory(company_id, [(outlet.id, 2)])
            except sqlite3.Error as e:
                errors.append(e)

        threads = [threading.Thread(target=consume) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert repo.get_inventory_item_by_id(outlet.id).quantity == 2

    def test_concurrent_overdraw_never_negative(self, repo, company_id,
                                                inventory):
        breaker = inventory[1]
        threads = [
            threading.Thread(
                target=repo.decrement_inventory,
                args=(company_id, [(breaker.id, 2)]),
            )
            for _ in range(5)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert repo.get_inventory_item_by_id(breaker.id).quantity == 0

    def test_reorder_items(self, repo, company_id, inventory):
        repo.decrement_inventory(company_id, [(inventory[0].id, 7)])
        names = [i.name for i in repo.get_reorder_items(company_id)]
        assert names == ["GFCI Outlet 20A"]

    def test_needs_reorder_property(self):
        assert InventoryItem(quantity=2, reorder_level=2).needs_reorder
        assert not InventoryItem(quantity=2, reorder_level=0).needs_reorder


class TestPhotos:
    def test_newest_first(self, repo, job, identity):
        for ts, url in [("2026-10-16T08:00:00", "a.jpg"),
                        ("2026-10-16T09:00:00", "b.jpg")]:
            repo.create_photo(WorkOrderPhoto(
                company_id=identity.company_id, work_order_id=job.id,
                photo_url=url, created_at=ts,
            ))
        photos = repo.get_photos_for_work_order(job.id)
        assert [p.photo_url for p in photos] == ["b.jpg", "a.jpg"]

    def test_delete(self, repo, job, identity):
        pid = repo.create_photo(WorkOrderPhoto(
            company_id=identity.company_id, work_order_id=job.id,
            photo_url="x.jpg",
        ))
        assert repo.delete_photo(identity.company_id, pid)
        assert repo.get_photos_for_work_order(job.id) == []

    def test_delete_scoped_to_company(self, repo, job, identity, rival):
        pid = repo.create_photo(WorkOrderPhoto(
            company_id=identity.company_id, work_order_id=job.id,
            photo_url="x.jpg",
        ))
        assert not repo.delete_photo(rival, pid)
        assert len(repo.get_photos_for_work_order(job.id)) == 1


class TestLocations:
    def test_samples_newest_first(self, repo, identity):
        for ts, lat in [("2026-10-16T08:00:00", 40.1),
                        ("2026-10-16T08:05:00", 40.2)]:
            repo.create_location_sample(LocationSample(
                company_id=identity.company_id,
                technician_id=identity.user_id,
                latitude=lat, longitude=-80.0, recorded_at=ts,
            ))
        samples = repo.get_location_samples(identity.user_id)
        assert [s.latitude for s in samples] == [40.2, 40.1]


class TestInvoices:
    def _invoice(self, job, number, status="sent", due="2026-10-01",
                 total=100.0, paid=0.0):
        return Invoice(
            company_id=job.company_id, customer_id=job.customer_id,
            work_order_id=job.id, invoice_number=number, status=status,
            issue_date="2026-09-01", due_date=due, subtotal=total,
            total_amount=total, paid_amount=paid,
        )

    def test_invoice_number_unique(self, repo, job):
        repo.create_invoice(self._invoice(job, "INV-1"))
        with pytest.raises(sqlite3.IntegrityError):
            repo.create_invoice(self._invoice(job, "INV-1"))

    def test_joined_fields(self, repo, job):
        inv_id = repo.create_invoice(self._invoice(job, "INV-1"))
        invoice = repo.get_invoice_by_id(inv_id)
        assert invoice.customer_name == "Dana Whitfield"
        assert invoice.wo_number == job.wo_number
        assert invoice.balance_due == 100.0

    def test_mark_overdue(self, repo, job):
        late = repo.create_invoice(self._invoice(job, "INV-1"))
        draft = repo.create_invoice(self._invoice(job, "INV-2",
                                                  status="draft"))
        future = repo.create_invoice(self._invoice(job, "INV-3",
                                                   due="2026-12-01"))
        settled = repo.create_invoice(self._invoice(job, "INV-4",
                                                    paid=100.0))
        count = repo.mark_invoices_overdue(job.company_id, "2026-10-16")
        assert count == 1
        assert repo.get_invoice_by_id(late).status == "overdue"
        assert repo.get_invoice_by_id(draft).status == "draft"
        assert repo.get_invoice_by_id(future).status == "sent"
        assert repo.get_invoice_by_id(settled).status == "sent"

    def test_filter_by_status(self, repo, job):
        repo.create_invoice(self._invoice(job, "INV-1"))
        repo.create_invoice(self._invoice(job, "INV-2", status="draft"))
        assert len(repo.get_invoices(job.company_id)) == 2
        drafts = repo.get_invoices(job.company_id, "draft")
        assert [i.invoice_number for i in drafts] == ["INV-2"]

    def test_status_and_payment_writes_scoped(self, repo, job, rival):
        inv_id = repo.create_invoice(self._invoice(job, "INV-1"))
        assert not repo.update_invoice_status(rival, inv_id, "cancelled")
        assert not repo.update_invoice_payment(rival, inv_id, 100.0, "paid",
                                               "2026-10-16", "")
        invoice = repo.get_invoice_by_id(inv_id)
        assert invoice.status == "sent"
        assert invoice.paid_amount == 0

        assert repo.update_invoice_status(job.company_id, inv_id, "cancelled")
        assert repo.get_invoice_by_id(inv_id).status == "cancelled"


class TestPurchaseOrders:
    def test_for_work_order(self, repo, job):
        repo.create_purchase_order(PurchaseOrder(
            company_id=job.company_id, work_order_id=job.id,
            po_number="PO-1", vendor_name="Graybar", total_amount=50.0,
        ))
        pos = repo.get_purchase_orders_for_work_order(job.id)
        assert [p.po_number for p in pos] == ["PO-1"]


class TestReconciliationLog:
    def test_create_and_resolve(self, repo, company_id, job):
        rid = repo.create_reconciliation_record(ReconciliationRecord(
            company_id=company_id, kind="inventory_then_status",
            work_order_id=job.id, detail='{"status": "completed"}',
        ))
        records = repo.get_reconciliation_records(company_id)
        assert [r.id for r in records] == [rid]
        assert records[0].detail_dict == {"status": "completed"}

        assert not repo.resolve_reconciliation_record(company_id + 1, rid)
        assert repo.resolve_reconciliation_record(company_id, rid)
        assert not repo.resolve_reconciliation_record(company_id, rid)
        assert repo.get_reconciliation_records(company_id) == []
        assert len(repo.get_reconciliation_records(company_id, None)) == 1

    def test_unknown_kind_rejected(self, repo, company_id):
        with pytest.raises(sqlite3.IntegrityError):
            repo.create_reconciliation_record(ReconciliationRecord(
                company_id=company_id, kind="mystery",
            ))
