"""Repository layer — all CRUD operations and queries.

Every listing query is scoped by ``company_id`` (the tenant). Callers pass
the tenant from the current ``Identity``; nothing here reads global state.
"""

import hashlib
from datetime import datetime
from typing import Iterable, Optional

from .connection import DatabaseConnection
from .models import (
    Company,
    Customer,
    InventoryItem,
    Invoice,
    InvoiceLineItem,
    LocationSample,
    Project,
    PurchaseOrder,
    ReconciliationRecord,
    TimeEntry,
    User,
    WorkOrder,
    WorkOrderPhoto,
)


def _to(model, row):
    """Build a dataclass from a row, ignoring columns it does not declare."""
    return model(**{
        k: row[k] for k in row.keys() if k in model.__dataclass_fields__
    })


class Repository:
    """Provides all database operations for the application."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    # ── Companies ───────────────────────────────────────────────

    def create_company(self, company: Company) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO companies (name, settings) VALUES (?, ?)",
                (company.name, company.settings or "{}"),
            )
            return cursor.lastrowid

    def get_company_by_id(self, company_id: int) -> Optional[Company]:
        rows = self.db.execute(
            "SELECT * FROM companies WHERE id = ?", (company_id,)
        )
        return _to(Company, rows[0]) if rows else None

    # ── Users ───────────────────────────────────────────────────

    @staticmethod
    def hash_pin(pin: str) -> str:
        return hashlib.sha256(pin.encode()).hexdigest()

    def create_user(self, user: User) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO users
                    (company_id, email, first_name, last_name, role,
                     phone, pin_hash, is_active)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                user.company_id, user.email, user.first_name,
                user.last_name, user.role, user.phone, user.pin_hash,
                user.is_active,
            ))
            return cursor.lastrowid

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        rows = self.db.execute("SELECT * FROM users WHERE id = ?", (user_id,))
        return _to(User, rows[0]) if rows else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        rows = self.db.execute(
            "SELECT * FROM users WHERE email = ?", (email,)
        )
        return _to(User, rows[0]) if rows else None

    def authenticate_user(self, email: str, pin: str) -> Optional[User]:
        user = self.get_user_by_email(email)
        if user and user.is_active and user.pin_hash == self.hash_pin(pin):
            return user
        return None

    # ── Customers & Projects ────────────────────────────────────

    def create_customer(self, customer: Customer) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO customers
                    (company_id, first_name, last_name, company_name,
                     email, phone, address)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                customer.company_id, customer.first_name,
                customer.last_name, customer.company_name,
                customer.email, customer.phone, customer.address,
            ))
            return cursor.lastrowid

    def get_customer_by_id(self, customer_id: int) -> Optional[Customer]:
        rows = self.db.execute(
            "SELECT * FROM customers WHERE id = ?", (customer_id,)
        )
        return _to(Customer, rows[0]) if rows else None

    def create_project(self, project: Project) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO projects
                    (company_id, customer_id, project_number,
                     project_name, status)
                VALUES (?, ?, ?, ?, ?)
            """, (
                project.company_id, project.customer_id,
                project.project_number, project.project_name,
                project.status,
            ))
            return cursor.lastrowid

    # ── Work Orders ─────────────────────────────────────────────

    _WORK_ORDER_SELECT = """
        SELECT wo.*,
               COALESCE(NULLIF(c.company_name, ''),
                        TRIM(c.first_name || ' ' || c.last_name),
                        '') AS customer_name,
               COALESCE(p.project_name, '') AS project_name
        FROM work_orders wo
        JOIN customers c ON wo.customer_id = c.id
        LEFT JOIN projects p ON wo.project_id = p.id
    """

    def create_work_order(self, wo: WorkOrder) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO work_orders
                    (company_id, wo_number, title, description, status,
                     priority, scheduled_date, actual_hours, notes,
                     customer_id, project_id, assigned_to)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                wo.company_id, wo.wo_number, wo.title, wo.description,
                wo.status, wo.priority, wo.scheduled_date,
                wo.actual_hours, wo.notes, wo.customer_id,
                wo.project_id, wo.assigned_to,
            ))
            return cursor.lastrowid

    def get_work_order_by_id(self, wo_id: int) -> Optional[WorkOrder]:
        rows = self.db.execute(
            self._WORK_ORDER_SELECT + " WHERE wo.id = ?", (wo_id,)
        )
        return _to(WorkOrder, rows[0]) if rows else None

    def get_work_orders(self, company_id: int,
                        status: Optional[str] = None) -> list[WorkOrder]:
        if status and status != "all":
            rows = self.db.execute(
                self._WORK_ORDER_SELECT
                + " WHERE wo.company_id = ? AND wo.status = ?"
                  " ORDER BY wo.created_at DESC",
                (company_id, status),
            )
        else:
            rows = self.db.execute(
                self._WORK_ORDER_SELECT
                + " WHERE wo.company_id = ? ORDER BY wo.created_at DESC",
                (company_id,),
            )
        return [_to(WorkOrder, r) for r in rows]

    def get_assigned_work_orders(
        self, company_id: int, user_id: int, statuses: Iterable[str]
    ) -> list[WorkOrder]:
        """Work orders assigned to a user, earliest scheduled first."""
        statuses = list(statuses)
        placeholders = ", ".join("?" for _ in statuses)
        rows = self.db.execute(
            self._WORK_ORDER_SELECT + f"""
            WHERE wo.company_id = ? AND wo.assigned_to = ?
              AND wo.status IN ({placeholders})
            ORDER BY wo.scheduled_date IS NULL, wo.scheduled_date ASC,
                     wo.id ASC
            """,
            (company_id, user_id, *statuses),
        )
        return [_to(WorkOrder, r) for r in rows]

    def update_work_order_progress(self, company_id: int, wo_id: int,
                                   status: str, actual_hours: float,
                                   notes: str,
                                   completed_date: Optional[str] = None):
        """Write status, hours and notes in a single statement.

        ``completed_date`` is only overwritten when a value is given.
        Work orders of other companies are left untouched.
        """
        with self.db.get_connection() as conn:
            conn.execute("""
                UPDATE work_orders SET
                    status = ?, actual_hours = ?, notes = ?,
                    completed_date = COALESCE(?, completed_date)
                WHERE id = ? AND company_id = ?
            """, (status, actual_hours, notes, completed_date, wo_id,
                  company_id))

    def generate_wo_number(self, company_id: int) -> str:
        """Generate next sequential work order number like WO-2026-0001."""
        year = datetime.now().year
        rows = self.db.execute(
            "SELECT COUNT(*) AS cnt FROM work_orders "
            "WHERE company_id = ? AND wo_number LIKE ?",
            (company_id, f"WO-{year}-%"),
        )
        count = rows[0]["cnt"] + 1 if rows else 1
        return f"WO-{year}-{count:04d}"

    # ── Time Entries ────────────────────────────────────────────

    _TIME_ENTRY_SELECT = """
        SELECT te.*,
               TRIM(u.first_name || ' ' || u.last_name) AS user_name
        FROM time_entries te
        JOIN users u ON te.user_id = u.id
    """

    def create_time_entry(self, entry: TimeEntry) -> int:
        """Insert a time entry.

        Raises ``sqlite3.IntegrityError`` when an open entry already
        exists for the same work order and user.
        """
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO time_entries
                    (company_id, work_order_id, user_id, start_time,
                     end_time, duration_minutes, description, status)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                entry.company_id, entry.work_order_id, entry.user_id,
                entry.start_time, entry.end_time, entry.duration_minutes,
                entry.description, entry.status,
            ))
            return cursor.lastrowid

    def get_time_entry_by_id(self, entry_id: int) -> Optional[TimeEntry]:
        rows = self.db.execute(
            self._TIME_ENTRY_SELECT + " WHERE te.id = ?", (entry_id,)
        )
        return _to(TimeEntry, rows[0]) if rows else None

    def get_time_entries_for_work_order(self, wo_id: int) -> list[TimeEntry]:
        rows = self.db.execute(
            self._TIME_ENTRY_SELECT
            + " WHERE te.work_order_id = ? ORDER BY te.start_time DESC",
            (wo_id,),
        )
        return [_to(TimeEntry, r) for r in rows]

    def get_active_time_entry(self, wo_id: int,
                              user_id: int) -> Optional[TimeEntry]:
        rows = self.db.execute(
            self._TIME_ENTRY_SELECT + """
            WHERE te.work_order_id = ? AND te.user_id = ?
              AND te.end_time IS NULL
            """,
            (wo_id, user_id),
        )
        return _to(TimeEntry, rows[0]) if rows else None

    def close_time_entry(self, entry_id: int, end_time: str,
                         duration_minutes: int) -> bool:
        """Close an open entry. Returns False if it was already closed."""
        changed = self.db.execute_write("""
            UPDATE time_entries
            SET end_time = ?, duration_minutes = ?
            WHERE id = ? AND end_time IS NULL
        """, (end_time, duration_minutes, entry_id))
        return changed == 1

    # ── Inventory ───────────────────────────────────────────────

    def create_inventory_item(self, item: InventoryItem) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO inventory_items
                    (company_id, name, sku, quantity, unit_price,
                     reorder_level)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                item.company_id, item.name, item.sku, item.quantity,
                item.unit_price, item.reorder_level,
            ))
            return cursor.lastrowid

    def get_inventory_item_by_id(self, item_id: int) -> Optional[InventoryItem]:
        rows = self.db.execute(
            "SELECT * FROM inventory_items WHERE id = ?", (item_id,)
        )
        return _to(InventoryItem, rows[0]) if rows else None

    def get_inventory_items(self, company_id: int) -> list[InventoryItem]:
        rows = self.db.execute(
            "SELECT * FROM inventory_items WHERE company_id = ? ORDER BY name",
            (company_id,),
        )
        return [_to(InventoryItem, r) for r in rows]

    def decrement_inventory(
        self, company_id: int, usage: Iterable[tuple[int, int]]
    ) -> list[tuple[int, int, int]]:
        """Consume stock for each ``(item_id, quantity)`` pair.

        Each decrement is one ``MAX(quantity - n, 0)`` statement under the
        write lock, so concurrent callers serialize instead of overwriting
        each other and stock never drops below zero. Returns
        ``(item_id, old_quantity, new_quantity)`` per item touched; items
        outside the tenant are skipped.
        """
        applied = []
        with self.db.transaction() as conn:
            for item_id, quantity in usage:
                row = conn.execute(
                    "SELECT quantity FROM inventory_items "
                    "WHERE id = ? AND company_id = ?",
                    (item_id, company_id),
                ).fetchone()
                if not row:
                    continue
                conn.execute(
                    "UPDATE inventory_items "
                    "SET quantity = MAX(quantity - ?, 0) WHERE id = ?",
                    (quantity, item_id),
                )
                new_qty = conn.execute(
                    "SELECT quantity FROM inventory_items WHERE id = ?",
                    (item_id,),
                ).fetchone()["quantity"]
                applied.append((item_id, row["quantity"], new_qty))
        return applied

    def get_reorder_items(self, company_id: int) -> list[InventoryItem]:
        rows = self.db.execute("""
            SELECT * FROM inventory_items
            WHERE company_id = ? AND reorder_level > 0
              AND quantity <= reorder_level
            ORDER BY name
        """, (company_id,))
        return [_to(InventoryItem, r) for r in rows]

    # ── Photos ──────────────────────────────────────────────────

    def create_photo(self, photo: WorkOrderPhoto) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO work_order_photos
                    (company_id, work_order_id, photo_url, caption,
                     uploaded_by, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                photo.company_id, photo.work_order_id, photo.photo_url,
                photo.caption, photo.uploaded_by,
                photo.created_at or datetime.now().isoformat(),
            ))
            return cursor.lastrowid

    def get_photos_for_work_order(self, wo_id: int) -> list[WorkOrderPhoto]:
        rows = self.db.execute("""
            SELECT * FROM work_order_photos WHERE work_order_id = ?
            ORDER BY created_at DESC, id DESC
        """, (wo_id,))
        return [_to(WorkOrderPhoto, r) for r in rows]

    def delete_photo(self, company_id: int, photo_id: int) -> bool:
        """Delete a photo whose work order belongs to ``company_id``."""
        deleted = self.db.execute_write("""
            DELETE FROM work_order_photos
            WHERE id = ? AND work_order_id IN (
                SELECT id FROM work_orders WHERE company_id = ?
            )
        """, (photo_id, company_id))
        return deleted == 1

    # ── Technician Locations ────────────────────────────────────

    def create_location_sample(self, sample: LocationSample) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO technician_locations
                    (company_id, technician_id, latitude, longitude,
                     accuracy, recorded_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                sample.company_id, sample.technician_id, sample.latitude,
                sample.longitude, sample.accuracy,
                sample.recorded_at or datetime.now().isoformat(),
            ))
            return cursor.lastrowid

    def get_location_samples(self, technician_id: int,
                             limit: int = 100) -> list[LocationSample]:
        rows = self.db.execute("""
            SELECT * FROM technician_locations WHERE technician_id = ?
            ORDER BY recorded_at DESC, id DESC LIMIT ?
        """, (technician_id, limit))
        return [_to(LocationSample, r) for r in rows]

    # ── Invoices ────────────────────────────────────────────────

    _INVOICE_SELECT = """
        SELECT i.*,
               COALESCE(NULLIF(c.company_name, ''),
                        TRIM(c.first_name || ' ' || c.last_name),
                        '') AS customer_name,
               COALESCE(wo.wo_number, '') AS wo_number
        FROM invoices i
        JOIN customers c ON i.customer_id = c.id
        LEFT JOIN work_orders wo ON i.work_order_id = wo.id
    """

    def create_invoice(self, invoice: Invoice) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO invoices
                    (company_id, customer_id, work_order_id,
                     invoice_number, status, issue_date, due_date,
                     subtotal, tax_rate, tax_amount, total_amount,
                     paid_amount, notes)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                invoice.company_id, invoice.customer_id,
                invoice.work_order_id, invoice.invoice_number,
                invoice.status, invoice.issue_date, invoice.due_date,
                invoice.subtotal, invoice.tax_rate, invoice.tax_amount,
                invoice.total_amount, invoice.paid_amount, invoice.notes,
            ))
            return cursor.lastrowid

    def add_invoice_line_item(self, item: InvoiceLineItem) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO invoice_line_items
                    (invoice_id, description, quantity, unit_price, total)
                VALUES (?, ?, ?, ?, ?)
            """, (
                item.invoice_id, item.description, item.quantity,
                item.unit_price, item.total,
            ))
            return cursor.lastrowid

    def get_invoice_by_id(self, invoice_id: int) -> Optional[Invoice]:
        rows = self.db.execute(
            self._INVOICE_SELECT + " WHERE i.id = ?", (invoice_id,)
        )
        return _to(Invoice, rows[0]) if rows else None

    def get_invoices(self, company_id: int,
                     status: Optional[str] = None) -> list[Invoice]:
        if status and status != "all":
            rows = self.db.execute(
                self._INVOICE_SELECT
                + " WHERE i.company_id = ? AND i.status = ?"
                  " ORDER BY i.created_at DESC, i.id DESC",
                (company_id, status),
            )
        else:
            rows = self.db.execute(
                self._INVOICE_SELECT
                + " WHERE i.company_id = ? ORDER BY i.created_at DESC, i.id DESC",
                (company_id,),
            )
        return [_to(Invoice, r) for r in rows]

    def get_invoices_for_work_order(self, wo_id: int) -> list[Invoice]:
        rows = self.db.execute(
            self._INVOICE_SELECT
            + " WHERE i.work_order_id = ? ORDER BY i.id",
            (wo_id,),
        )
        return [_to(Invoice, r) for r in rows]

    def get_invoice_line_items(self, invoice_id: int) -> list[InvoiceLineItem]:
        rows = self.db.execute(
            "SELECT * FROM invoice_line_items WHERE invoice_id = ? ORDER BY id",
            (invoice_id,),
        )
        return [_to(InvoiceLineItem, r) for r in rows]

    def update_invoice_status(self, company_id: int, invoice_id: int,
                              status: str) -> bool:
        changed = self.db.execute_write(
            "UPDATE invoices SET status = ? WHERE id = ? AND company_id = ?",
            (status, invoice_id, company_id),
        )
        return changed == 1

    def update_invoice_payment(self, company_id: int, invoice_id: int,
                               paid_amount: float, status: str,
                               payment_date: Optional[str],
                               notes: str) -> bool:
        changed = self.db.execute_write("""
            UPDATE invoices SET
                paid_amount = ?, status = ?,
                payment_date = COALESCE(?, payment_date), notes = ?
            WHERE id = ? AND company_id = ?
        """, (paid_amount, status, payment_date, notes, invoice_id,
              company_id))
        return changed == 1

    def mark_invoices_overdue(self, company_id: int, today: str) -> int:
        """Flag sent, unpaid invoices whose due date has passed."""
        return self.db.execute_write("""
            UPDATE invoices SET status = 'overdue'
            WHERE company_id = ? AND status = 'sent'
              AND due_date IS NOT NULL AND due_date < ?
              AND paid_amount < total_amount
        """, (company_id, today))

    # ── Purchase Orders ─────────────────────────────────────────

    def create_purchase_order(self, po: PurchaseOrder) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO purchase_orders
                    (company_id, work_order_id, po_number, vendor_name,
                     total_amount, status, order_date, expected_delivery)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                po.company_id, po.work_order_id, po.po_number,
                po.vendor_name, po.total_amount, po.status,
                po.order_date, po.expected_delivery,
            ))
            return cursor.lastrowid

    def get_purchase_orders_for_work_order(
        self, wo_id: int
    ) -> list[PurchaseOrder]:
        rows = self.db.execute("""
            SELECT * FROM purchase_orders WHERE work_order_id = ?
            ORDER BY created_at DESC, id DESC
        """, (wo_id,))
        return [_to(PurchaseOrder, r) for r in rows]

    # ── Reconciliation Log ──────────────────────────────────────

    def create_reconciliation_record(
        self, record: ReconciliationRecord
    ) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.execute("""
                INSERT INTO reconciliation_log
                    (company_id, kind, work_order_id, invoice_id, detail,
                     status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                record.company_id, record.kind, record.work_order_id,
                record.invoice_id, record.detail, record.status,
                record.created_at or datetime.now().isoformat(),
            ))
            return cursor.lastrowid

    def get_reconciliation_records(
        self, company_id: int, status: Optional[str] = "open"
    ) -> list[ReconciliationRecord]:
        if status:
            rows = self.db.execute("""
                SELECT * FROM reconciliation_log
                WHERE company_id = ? AND status = ?
                ORDER BY created_at, id
            """, (company_id, status))
        else:
            rows = self.db.execute("""
                SELECT * FROM reconciliation_log WHERE company_id = ?
                ORDER BY created_at, id
            """, (company_id,))
        return [_to(ReconciliationRecord, r) for r in rows]

    def resolve_reconciliation_record(self, company_id: int,
                                      record_id: int) -> bool:
        changed = self.db.execute_write("""
            UPDATE reconciliation_log
            SET status = 'resolved', resolved_at = ?
            WHERE id = ? AND company_id = ? AND status = 'open'
        """, (datetime.now().isoformat(), record_id, company_id))
        return changed == 1
