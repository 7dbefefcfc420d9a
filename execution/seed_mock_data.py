"""Seed the database with realistic mock data for development and demos.

Creates:
  - 1 company ("Brightline Electric & HVAC")
  - 4 users (all PIN 1423): an admin, an office user, two technicians
  - 5 customers and 2 projects
  - 18 inventory items (wire, devices, fittings, HVAC consumables)
  - 8 work orders across every status, most assigned to the technicians
  - a few closed time entries, photos and purchase orders
  - 3 invoices (draft, sent past due, paid)

Run:
    python -m execution.seed_mock_data          (from project root)
    python execution/seed_mock_data.py          (direct)

WARNING: This script INSERTS data — run against a fresh DB to avoid
duplicates. Delete data/job_desk.db first for a clean start.
"""

import os
import sys
from datetime import date, datetime, timedelta

# Ensure project src is on the path
_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(_ROOT, "src"))

from job_desk.database.connection import DatabaseConnection
from job_desk.database.models import (
    Company,
    Customer,
    InventoryItem,
    Project,
    PurchaseOrder,
    TimeEntry,
    User,
    WorkOrder,
    WorkOrderPhoto,
)
from job_desk.database.repository import Repository
from job_desk.database.schema import initialize_database
from job_desk.identity import Identity
from job_desk.jobs.invoicing import (
    InvoiceInputs,
    convert_job_to_invoice,
    record_payment,
)

PIN = "1423"


def seed(repo: Repository, today: date = None) -> dict:
    """Populate the database with mock data. Returns counts per kind."""
    today = today or date.today()
    pin_hash = Repository.hash_pin(PIN)

    # ── 1. Company & users ───────────────────────────────────────
    print("Creating company and users...")
    company_id = repo.create_company(Company(
        name="Brightline Electric & HVAC",
        settings='{"default_labor_rate": 95.0, "default_tax_rate": 8.25}',
    ))
    users = [
        ("mike@brightline.test", "Mike", "Torres", "admin"),
        ("sarah@brightline.test", "Sarah", "Chen", "office"),
        ("kevin@brightline.test", "Kevin", "O'Brien", "tech"),
        ("carlos@brightline.test", "Carlos", "Vega", "tech"),
    ]
    user_ids = {}
    for email, first, last, role in users:
        user_ids[first.lower()] = repo.create_user(User(
            company_id=company_id, email=email, first_name=first,
            last_name=last, role=role, pin_hash=pin_hash,
        ))
    print(f"  → {len(users)} users created (all PIN {PIN})")

    # ── 2. Customers & projects ──────────────────────────────────
    print("Creating customers...")
    customers_data = [
        ("Dana", "Whitfield", "", "dana.w@example.com", "412 Oak Ln"),
        ("", "", "Riverside Dental", "office@riversidedental.test",
         "88 River Rd Ste 2"),
        ("Marcus", "Lee", "", "mlee@example.com", "19 Birch Ct"),
        ("", "", "Summit Self Storage", "ops@summitstorage.test",
         "3300 Industrial Pkwy"),
        ("Priya", "Nair", "", "priya.nair@example.com", "7 Harbor View"),
    ]
    customer_ids = []
    for first, last, company, email, address in customers_data:
        customer_ids.append(repo.create_customer(Customer(
            company_id=company_id, first_name=first, last_name=last,
            company_name=company, email=email, address=address,
        )))
    project_ids = [
        repo.create_project(Project(
            company_id=company_id, customer_id=customer_ids[1],
            project_number="PRJ-2026-001",
            project_name="Riverside Dental Remodel", status="in_progress",
        )),
        repo.create_project(Project(
            company_id=company_id, customer_id=customer_ids[3],
            project_number="PRJ-2026-002",
            project_name="Storage Lighting Retrofit", status="in_progress",
        )),
    ]
    print(f"  → {len(customer_ids)} customers, {len(project_ids)} projects")

    # ── 3. Inventory ─────────────────────────────────────────────
    print("Creating inventory...")
    inventory_data = [
        ("12/2 NM-B Wire 250ft", "WC-12-250", 8, 98.75, 3),
        ("14/2 NM-B Wire 250ft", "WC-14-250", 6, 78.50, 3),
        ("Duplex Outlet 15A", "SR-DPLX-15", 120, 1.85, 40),
        ("GFCI Outlet 20A", "SR-GFCI-20", 18, 18.25, 10),
        ("Single Pole Switch", "SW-SP-15", 75, 2.10, 25),
        ("3-Way Switch", "SW-3W-15", 30, 3.25, 10),
        ("1-Gang Old Work Box", "BX-1G-OW", 90, 1.20, 30),
        ("2-Gang Old Work Box", "BX-2G-OW", 40, 2.05, 15),
        ("1/2in EMT Connector", "FT-EMT-050", 200, 0.45, 50),
        ("20A Single Pole Breaker", "BR-SP-20", 14, 8.75, 6),
        ("LED Flat Panel 2x4", "LT-LED-24", 9, 65.00, 4),
        ("LED Exit Sign", "LT-EXIT", 5, 32.00, 2),
        ("Wire Nuts (100 pk)", "CN-WN-100", 22, 9.50, 8),
        ("Electrical Tape", "CN-TAPE", 35, 1.95, 12),
        ("Furnace Filter 16x25x1", "HV-FLT-16251", 48, 6.40, 20),
        ("Condensate Pump", "HV-CPUMP", 3, 54.00, 2),
        ("Capacitor 45/5 MFD", "HV-CAP-455", 7, 14.80, 4),
        ("Thermostat, Programmable", "HV-TSTAT-P", 4, 89.00, 2),
    ]
    for name, sku, qty, price, reorder in inventory_data:
        repo.create_inventory_item(InventoryItem(
            company_id=company_id, name=name, sku=sku, quantity=qty,
            unit_price=price, reorder_level=reorder,
        ))
    print(f"  → {len(inventory_data)} inventory items")

    # ── 4. Work orders ───────────────────────────────────────────
    print("Creating work orders...")
    kevin, carlos = user_ids["kevin"], user_ids["carlos"]
    jobs_data = [
        ("Replace kitchen GFCI outlets", 0, None, "scheduled", "high",
         1, kevin),
        ("Install operatory lighting", 1, 0, "in_progress", "medium",
         0, kevin),
        ("Troubleshoot tripping breaker", 2, None, "open", "urgent",
         None, kevin),
        ("Retrofit aisle lighting, bldg A", 3, 1, "scheduled", "medium",
         3, carlos),
        ("Furnace tune-up", 4, None, "open", "low", 5, carlos),
        ("Add dedicated 20A circuit", 0, None, "completed", "medium",
         -6, kevin),
        ("Exit sign replacement", 3, 1, "completed", "low", -12, carlos),
        ("Panel inspection", 2, None, "cancelled", "low", -3, kevin),
    ]
    wo_ids = []
    for title, cust, proj, status, prio, offset, tech in jobs_data:
        scheduled = (
            (today + timedelta(days=offset)).isoformat()
            if offset is not None else None
        )
        wo_ids.append(repo.create_work_order(WorkOrder(
            company_id=company_id,
            wo_number=repo.generate_wo_number(company_id),
            title=title,
            description=f"{title} per customer request.",
            status=status,
            priority=prio,
            scheduled_date=scheduled,
            customer_id=customer_ids[cust],
            project_id=project_ids[proj] if proj is not None else None,
            assigned_to=tech,
        )))
    print(f"  → {len(wo_ids)} work orders")

    # ── 5. Time entries, photos, purchase orders ─────────────────
    print("Creating time entries, photos and purchase orders...")
    day = datetime.combine(today - timedelta(days=1), datetime.min.time())
    entries = [
        (wo_ids[1], kevin, 8, 0, 150),
        (wo_ids[1], kevin, 13, 0, 95),
        (wo_ids[5], kevin, 9, 30, 210),
        (wo_ids[6], carlos, 10, 0, 75),
    ]
    for wo_id, tech, hour, minute, minutes in entries:
        start = day.replace(hour=hour, minute=minute)
        repo.create_time_entry(TimeEntry(
            company_id=company_id, work_order_id=wo_id, user_id=tech,
            start_time=start.isoformat(),
            end_time=(start + timedelta(minutes=minutes)).isoformat(),
            duration_minutes=minutes,
            description="Mock labor",
            status="approved",
        ))
    for wo_id, url, caption in [
        (wo_ids[1], "https://photos.example.com/op1-before.jpg",
         "Operatory 1 before"),
        (wo_ids[1], "https://photos.example.com/op1-rough.jpg",
         "Rough-in complete"),
        (wo_ids[5], "https://photos.example.com/panel-new-circuit.jpg",
         None),
    ]:
        repo.create_photo(WorkOrderPhoto(
            company_id=company_id, work_order_id=wo_id, photo_url=url,
            caption=caption, uploaded_by=kevin,
        ))
    for wo_id, po_number, vendor, amount, status in [
        (wo_ids[1], "PO-2026-001", "Graybar", 585.00, "received"),
        (wo_ids[3], "PO-2026-002", "City Electric Supply", 1240.50, "sent"),
    ]:
        repo.create_purchase_order(PurchaseOrder(
            company_id=company_id, work_order_id=wo_id, po_number=po_number,
            vendor_name=vendor, total_amount=amount, status=status,
            order_date=(today - timedelta(days=4)).isoformat(),
        ))
    print(f"  → {len(entries)} time entries, 3 photos, 2 purchase orders")

    # ── 6. Invoices ──────────────────────────────────────────────
    print("Creating invoices...")
    office = Identity(user_id=user_ids["sarah"], company_id=company_id)
    done = repo.get_work_order_by_id(wo_ids[5])
    paid = convert_job_to_invoice(
        repo, office, done,
        InvoiceInputs(labor_hours=3.5, labor_rate=95.0, service_charge=45.0,
                      tax_rate=8.25, parts_subtotal=26.95),
        issue_date=today - timedelta(days=5),
    )
    record_payment(repo, office, paid.id, paid.total_amount, "check",
                   today - timedelta(days=1), reference="1187")

    exit_job = repo.get_work_order_by_id(wo_ids[6])
    sent = convert_job_to_invoice(
        repo, office, exit_job,
        InvoiceInputs(labor_hours=1.25, labor_rate=95.0, tax_rate=8.25,
                      parts_subtotal=160.00),
        issue_date=today - timedelta(days=40),
        now=datetime.now() - timedelta(seconds=1),
    )
    repo.update_invoice_status(company_id, sent.id, "sent")

    in_progress = repo.get_work_order_by_id(wo_ids[1])
    convert_job_to_invoice(
        repo, office, in_progress,
        InvoiceInputs(labor_hours=4.0, labor_rate=95.0, service_charge=75.0,
                      notes="Progress billing, phase 1"),
        now=datetime.now() - timedelta(seconds=2),
    )
    print("  → 3 invoices (paid, sent past due, draft)")

    counts = {
        "users": len(users),
        "customers": len(customer_ids),
        "inventory_items": len(inventory_data),
        "work_orders": len(wo_ids),
        "time_entries": len(entries),
        "invoices": 3,
    }

    # ── Done ──────────────────────────────────────────────────────
    print("\n✓ Mock data seeded successfully!")
    print(f"  Users: {len(users)} (all PIN {PIN})")
    print(f"  Work orders: {len(wo_ids)}")
    print(f"  Inventory items: {len(inventory_data)}")
    return counts


def main():
    from job_desk.config import Config
    db_path = Config.DATABASE_PATH
    print(f"Database: {db_path}")

    # Confirm if DB exists
    if os.path.exists(db_path):
        resp = input("Database already exists. Seed anyway? (y/N): ").strip().lower()
        if resp != "y":
            print("Aborted.")
            return

    db = DatabaseConnection(db_path)
    initialize_database(db)
    repo = Repository(db)
    seed(repo)


if __name__ == "__main__":
    main()
