"""CSV export for invoices and work orders."""

import csv
from pathlib import Path

from job_desk.database.repository import Repository

INVOICE_CSV_COLUMNS = [
    "invoice_number", "customer", "work_order", "status", "issue_date",
    "due_date", "subtotal", "tax_amount", "total_amount", "paid_amount",
    "balance_due",
]

WORK_ORDER_CSV_COLUMNS = [
    "wo_number", "title", "customer", "project", "status", "priority",
    "scheduled_date", "completed_date", "actual_hours",
]


def export_invoices_csv(repo: Repository, company_id: int,
                        filepath: str | Path, status: str = None) -> int:
    """Export a company's invoices to CSV. Returns the number of rows written."""
    invoices = repo.get_invoices(company_id, status)
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=INVOICE_CSV_COLUMNS)
        writer.writeheader()
        for inv in invoices:
            writer.writerow({
                "invoice_number": inv.invoice_number,
                "customer": inv.customer_name,
                "work_order": inv.wo_number,
                "status": inv.status,
                "issue_date": inv.issue_date or "",
                "due_date": inv.due_date or "",
                "subtotal": f"{inv.subtotal:.2f}",
                "tax_amount": f"{inv.tax_amount:.2f}",
                "total_amount": f"{inv.total_amount:.2f}",
                "paid_amount": f"{inv.paid_amount:.2f}",
                "balance_due": f"{inv.balance_due:.2f}",
            })
    return len(invoices)


def export_work_orders_csv(repo: Repository, company_id: int,
                           filepath: str | Path, status: str = None) -> int:
    """Export a company's work orders to CSV. Returns the number of rows written."""
    work_orders = repo.get_work_orders(company_id, status)
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=WORK_ORDER_CSV_COLUMNS)
        writer.writeheader()
        for wo in work_orders:
            writer.writerow({
                "wo_number": wo.wo_number,
                "title": wo.title,
                "customer": wo.customer_name,
                "project": wo.project_name,
                "status": wo.status,
                "priority": wo.priority,
                "scheduled_date": wo.scheduled_date or "",
                "completed_date": wo.completed_date or "",
                "actual_hours": wo.actual_hours,
            })
    return len(work_orders)
