"""Excel (XLSX) export for invoices and work orders."""

from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font

from job_desk.database.repository import Repository


def _autofit(ws):
    # Approximate; openpyxl has no real auto-size
    for col in ws.columns:
        max_len = max(len(str(cell.value or "")) for cell in col)
        ws.column_dimensions[col[0].column_letter].width = min(max_len + 2, 40)


def export_invoices_excel(repo: Repository, company_id: int,
                          filepath: str | Path, status: str = None) -> int:
    """Export a company's invoices to an Excel workbook. Returns row count.

    A totals row is appended below the data when there is at least one
    invoice.
    """
    invoices = repo.get_invoices(company_id, status)
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = "Invoices"

    ws.append([
        "Invoice #", "Customer", "Work Order", "Status", "Issued", "Due",
        "Subtotal", "Tax", "Total", "Paid", "Balance",
    ])
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for inv in invoices:
        ws.append([
            inv.invoice_number,
            inv.customer_name,
            inv.wo_number,
            inv.status,
            inv.issue_date,
            inv.due_date,
            inv.subtotal,
            inv.tax_amount,
            inv.total_amount,
            inv.paid_amount,
            inv.balance_due,
        ])

    if invoices:
        ws.append([
            "Total", "", "", "", "", "",
            sum(i.subtotal for i in invoices),
            sum(i.tax_amount for i in invoices),
            sum(i.total_amount for i in invoices),
            sum(i.paid_amount for i in invoices),
            sum(i.balance_due for i in invoices),
        ])
        for cell in ws[ws.max_row]:
            cell.font = Font(bold=True)

    for row in ws.iter_rows(min_row=2, min_col=7, max_col=11):
        for cell in row:
            cell.number_format = "#,##0.00"

    _autofit(ws)
    wb.save(filepath)
    return len(invoices)


def export_work_orders_excel(repo: Repository, company_id: int,
                             filepath: str | Path,
                             status: str = None) -> int:
    """Export a company's work orders to an Excel workbook. Returns row count."""
    work_orders = repo.get_work_orders(company_id, status)
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = "Work Orders"

    ws.append([
        "WO #", "Title", "Customer", "Project", "Status", "Priority",
        "Scheduled", "Completed", "Hours",
    ])
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for wo in work_orders:
        ws.append([
            wo.wo_number,
            wo.title,
            wo.customer_name,
            wo.project_name,
            wo.status,
            wo.priority,
            wo.scheduled_date,
            wo.completed_date,
            wo.actual_hours,
        ])

    _autofit(ws)
    wb.save(filepath)
    return len(work_orders)
