"""Render an invoice as a one-page PDF.

Layout: company/invoice header, bill-to block, line item table and a
totals block. Long line item lists continue onto further pages.

Usage::

    from job_desk.io.invoice_pdf import render_invoice_pdf

    pdf_path = render_invoice_pdf(repo, invoice_id)
"""

import os
import tempfile
from pathlib import Path

from reportlab.lib.pagesizes import LETTER
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

from job_desk.database.repository import Repository
from job_desk.utils.formatters import format_currency

PAGE_WIDTH, PAGE_HEIGHT = LETTER
MARGIN = 0.75 * inch
ROW_HEIGHT = 0.25 * inch
FONT_NAME = "Helvetica"

# Column x positions for the line item table
COL_DESCRIPTION = MARGIN
COL_QUANTITY = 4.6 * inch
COL_UNIT_PRICE = 5.7 * inch
COL_TOTAL = PAGE_WIDTH - MARGIN


def render_invoice_pdf(repo: Repository, invoice_id: int,
                       output_path: str | Path | None = None,
                       company_name: str = "") -> str:
    """Write the invoice to ``output_path`` and return the path.

    If *output_path* is None, the PDF goes to the system temp directory
    named after the invoice number.

    Raises:
        ValueError: The invoice does not exist.
    """
    invoice = repo.get_invoice_by_id(invoice_id)
    if invoice is None:
        raise ValueError(f"Invoice {invoice_id} not found")
    items = repo.get_invoice_line_items(invoice_id)
    if not company_name:
        company = repo.get_company_by_id(invoice.company_id)
        company_name = company.name if company else ""

    if not output_path:
        output_path = os.path.join(
            tempfile.gettempdir(), f"{invoice.invoice_number}.pdf"
        )
    output_path = str(output_path)
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)

    c = canvas.Canvas(output_path, pagesize=LETTER)
    c.setTitle(f"Invoice {invoice.invoice_number}")

    # Header
    y = PAGE_HEIGHT - MARGIN
    c.setFont(FONT_NAME + "-Bold", 18)
    c.drawString(MARGIN, y, company_name or "Invoice")
    c.setFont(FONT_NAME + "-Bold", 14)
    c.drawRightString(PAGE_WIDTH - MARGIN, y, "INVOICE")

    y -= 0.3 * inch
    c.setFont(FONT_NAME, 10)
    for label, value in (
        ("Invoice #", invoice.invoice_number),
        ("Issued", invoice.issue_date or ""),
        ("Due", invoice.due_date or ""),
        ("Status", invoice.status.title()),
    ):
        c.drawRightString(PAGE_WIDTH - MARGIN, y, f"{label}: {value}")
        y -= 0.18 * inch

    # Bill-to
    y -= 0.1 * inch
    c.setFont(FONT_NAME + "-Bold", 10)
    c.drawString(MARGIN, y, "Bill To:")
    c.setFont(FONT_NAME, 10)
    c.drawString(MARGIN + 0.7 * inch, y, invoice.customer_name)
    if invoice.wo_number:
        y -= 0.18 * inch
        c.drawString(MARGIN, y, f"Work Order: {invoice.wo_number}")

    # Line items
    y -= 0.4 * inch
    y = _draw_table_header(c, y)
    c.setFont(FONT_NAME, 10)
    for item in items:
        if y < MARGIN + 1.5 * inch:
            c.showPage()
            y = _draw_table_header(c, PAGE_HEIGHT - MARGIN)
            c.setFont(FONT_NAME, 10)
        c.drawString(COL_DESCRIPTION, y, _truncate(item.description, 60))
        c.drawRightString(COL_QUANTITY, y, f"{item.quantity:g}")
        c.drawRightString(COL_UNIT_PRICE, y, format_currency(item.unit_price))
        c.drawRightString(COL_TOTAL, y, format_currency(item.total))
        y -= ROW_HEIGHT

    # Totals
    y -= 0.1 * inch
    c.line(COL_QUANTITY, y + 0.15 * inch, COL_TOTAL, y + 0.15 * inch)
    rows = [
        ("Subtotal", invoice.subtotal),
        (f"Tax ({invoice.tax_rate:g}%)", invoice.tax_amount),
        ("Total", invoice.total_amount),
    ]
    if invoice.paid_amount:
        rows.append(("Paid", invoice.paid_amount))
        rows.append(("Balance Due", invoice.balance_due))
    for label, amount in rows:
        bold = label in ("Total", "Balance Due")
        c.setFont(FONT_NAME + ("-Bold" if bold else ""), 10)
        c.drawRightString(COL_UNIT_PRICE, y, label)
        c.drawRightString(COL_TOTAL, y, format_currency(amount))
        y -= ROW_HEIGHT

    c.save()
    return output_path


def _draw_table_header(c: canvas.Canvas, y: float) -> float:
    c.setFont(FONT_NAME + "-Bold", 10)
    c.drawString(COL_DESCRIPTION, y, "Description")
    c.drawRightString(COL_QUANTITY, y, "Qty")
    c.drawRightString(COL_UNIT_PRICE, y, "Unit Price")
    c.drawRightString(COL_TOTAL, y, "Amount")
    c.line(MARGIN, y - 0.08 * inch, PAGE_WIDTH - MARGIN, y - 0.08 * inch)
    return y - ROW_HEIGHT


def _truncate(text: str, max_len: int) -> str:
    """Truncate text with ellipsis if too long."""
    if len(text) > max_len:
        return text[: max_len - 1] + "…"
    return text
