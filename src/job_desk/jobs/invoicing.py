"""Converting a work order into a draft invoice, and invoice follow-up.

Totals::

    labor_cost = labor_hours × labor_rate
    subtotal   = labor_cost + service_charge + parts_subtotal
    tax_amount = subtotal × tax_rate / 100
    total      = subtotal + tax_amount

Invoice numbers are derived from the current time, not a sequence, so
numbering has gaps and a retried conversion gets a new number.
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from job_desk.config import Config
from job_desk.database.models import Invoice, InvoiceLineItem, WorkOrder
from job_desk.database.repository import Repository
from job_desk.identity import Identity
from job_desk.jobs.errors import InvoiceConversionError
from job_desk.jobs.reconciliation import record_partial_failure
from job_desk.utils.constants import (
    INVOICE_STATUSES,
    LABOR_LINE_DESCRIPTION,
    PARTS_LINE_DESCRIPTION,
    PAYMENT_METHODS,
    RECON_INVOICE_LINE_ITEMS,
    SERVICE_CHARGE_LINE_DESCRIPTION,
)
from job_desk.utils.formatters import format_currency

logger = logging.getLogger(__name__)


@dataclass
class InvoiceInputs:
    """Billing figures entered by the technician at conversion time."""

    labor_hours: float
    labor_rate: float = field(
        default_factory=lambda: Config.DEFAULT_LABOR_RATE
    )
    service_charge: float = 0.0
    tax_rate: float = field(
        default_factory=lambda: Config.DEFAULT_TAX_RATE
    )  # percent
    notes: str = ""
    # None: not entered; the job screen fills in the parts it consumed
    parts_subtotal: Optional[float] = None

    def __post_init__(self):
        for name in ("labor_hours", "labor_rate", "service_charge",
                     "tax_rate"):
            value = getattr(self, name)
            if value is None or value < 0:
                raise ValueError(f"{name} cannot be negative")
        if self.parts_subtotal is not None and self.parts_subtotal < 0:
            raise ValueError("parts_subtotal cannot be negative")


@dataclass(frozen=True)
class InvoiceTotals:
    labor_cost: float
    service_charge: float
    parts_cost: float
    subtotal: float
    tax_amount: float
    total: float


def compute_invoice_totals(inputs: InvoiceInputs) -> InvoiceTotals:
    labor_cost = inputs.labor_hours * inputs.labor_rate
    parts_cost = inputs.parts_subtotal or 0.0
    subtotal = labor_cost + inputs.service_charge + parts_cost
    tax_amount = subtotal * inputs.tax_rate / 100
    return InvoiceTotals(
        labor_cost=labor_cost,
        service_charge=inputs.service_charge,
        parts_cost=parts_cost,
        subtotal=subtotal,
        tax_amount=tax_amount,
        total=subtotal + tax_amount,
    )


def generate_invoice_number(now: datetime = None,
                            prefix: str = None) -> str:
    """Time-derived invoice number like INV-20261016143005123456."""
    now = now or datetime.now()
    prefix = prefix or Config.INVOICE_NUMBER_PREFIX
    return f"{prefix}-{now:%Y%m%d%H%M%S%f}"


def build_cost_breakdown(job: WorkOrder, inputs: InvoiceInputs,
                         totals: InvoiceTotals) -> str:
    """Human-readable notes describing how the invoice was built."""
    lines = [f"Invoice generated from Work Order {job.wo_number}", ""]
    lines.append("Cost Breakdown:")
    if totals.labor_cost > 0:
        lines.append(
            f"Labor: {inputs.labor_hours:g}h × "
            f"{format_currency(inputs.labor_rate)}/h = "
            f"{format_currency(totals.labor_cost)}"
        )
    if totals.service_charge > 0:
        lines.append(
            f"Service Charge: {format_currency(totals.service_charge)}"
        )
    if totals.parts_cost > 0:
        lines.append(f"Parts: {format_currency(totals.parts_cost)}")
    lines.append("")
    lines.append(f"Subtotal: {format_currency(totals.subtotal)}")
    if inputs.notes:
        lines.extend(["", inputs.notes])
    return "\n".join(lines)


def _line_items(inputs: InvoiceInputs,
                totals: InvoiceTotals) -> list[InvoiceLineItem]:
    items = []
    if totals.labor_cost > 0:
        items.append(InvoiceLineItem(
            description=LABOR_LINE_DESCRIPTION,
            quantity=inputs.labor_hours,
            unit_price=inputs.labor_rate,
            total=totals.labor_cost,
        ))
    if totals.service_charge > 0:
        items.append(InvoiceLineItem(
            description=SERVICE_CHARGE_LINE_DESCRIPTION,
            quantity=1,
            unit_price=totals.service_charge,
            total=totals.service_charge,
        ))
    if totals.parts_cost > 0:
        items.append(InvoiceLineItem(
            description=PARTS_LINE_DESCRIPTION,
            quantity=1,
            unit_price=totals.parts_cost,
            total=totals.parts_cost,
        ))
    return items


def convert_job_to_invoice(repo: Repository, identity: Identity,
                           job: WorkOrder, inputs: InvoiceInputs,
                           issue_date: date = None,
                           now: datetime = None) -> Invoice:
    """Create a draft invoice for ``job``: header first, then line items.

    A failure saving the header raises the store's error and leaves
    nothing behind. A failure saving line items leaves the header in
    place, writes a reconciliation record and raises
    ``InvoiceConversionError``.
    """
    now = now or datetime.now()
    issue_date = issue_date or now.date()
    totals = compute_invoice_totals(inputs)

    invoice = Invoice(
        company_id=identity.company_id,
        customer_id=job.customer_id,
        work_order_id=job.id,
        invoice_number=generate_invoice_number(now),
        status="draft",
        issue_date=issue_date.isoformat(),
        due_date=(issue_date
                  + timedelta(days=Config.INVOICE_DUE_DAYS)).isoformat(),
        subtotal=totals.subtotal,
        tax_rate=inputs.tax_rate,
        tax_amount=totals.tax_amount,
        total_amount=totals.total,
        notes=build_cost_breakdown(job, inputs, totals),
    )
    invoice.id = repo.create_invoice(invoice)

    items = _line_items(inputs, totals)
    try:
        for item in items:
            item.invoice_id = invoice.id
            item.id = repo.add_invoice_line_item(item)
    except sqlite3.Error as e:
        recon_id = record_partial_failure(
            repo, identity, RECON_INVOICE_LINE_ITEMS,
            {
                "invoice_number": invoice.invoice_number,
                "saved_lines": [i.description for i in items if i.id],
                "missing_lines": [i.description for i in items if not i.id],
                "error": str(e),
            },
            work_order_id=job.id, invoice_id=invoice.id,
        )
        raise InvoiceConversionError(
            f"Invoice {invoice.invoice_number} saved without line items",
            invoice.id, recon_id,
        ) from e

    logger.info(
        "Invoice %s created from %s: subtotal %.2f, total %.2f",
        invoice.invoice_number, job.wo_number, totals.subtotal, totals.total,
    )
    return repo.get_invoice_by_id(invoice.id)


# ── Follow-up ─────────────────────────────────────────────────

def _company_invoice(repo: Repository, identity: Identity,
                     invoice_id: int) -> Invoice:
    invoice = repo.get_invoice_by_id(invoice_id)
    if invoice is None or invoice.company_id != identity.company_id:
        raise ValueError(f"Invoice {invoice_id} not found")
    return invoice


def update_invoice_status(repo: Repository, identity: Identity,
                          invoice_id: int, status: str,
                          today: date = None) -> Invoice:
    """Move an invoice to ``status``; marking paid settles the balance."""
    if status not in INVOICE_STATUSES:
        raise ValueError(f"Unknown invoice status: {status}")
    invoice = _company_invoice(repo, identity, invoice_id)

    if status == "paid":
        repo.update_invoice_payment(
            identity.company_id, invoice_id, invoice.total_amount, "paid",
            (today or date.today()).isoformat(), invoice.notes,
        )
    else:
        repo.update_invoice_status(identity.company_id, invoice_id, status)
    return repo.get_invoice_by_id(invoice_id)


def record_payment(repo: Repository, identity: Identity, invoice_id: int,
                   amount: float, method: str, payment_date: date = None,
                   reference: str = "", notes: str = "") -> Invoice:
    """Apply a payment; the invoice becomes paid once fully covered.

    Each payment is appended to the invoice notes as an audit line.
    """
    if amount is None or amount <= 0:
        raise ValueError("Payment amount must be positive")
    if method not in PAYMENT_METHODS:
        raise ValueError(f"Unknown payment method: {method}")
    invoice = _company_invoice(repo, identity, invoice_id)

    payment_date = payment_date or date.today()
    paid = invoice.paid_amount + amount
    fully_paid = paid >= invoice.total_amount
    status = "paid" if fully_paid else invoice.status

    line = (f"Payment: {format_currency(amount)} via {method} "
            f"on {payment_date.isoformat()}")
    if reference:
        line += f" (Ref: {reference})"
    if notes:
        line += f" - {notes}"
    all_notes = f"{invoice.notes}\n\n{line}" if invoice.notes else line

    repo.update_invoice_payment(
        identity.company_id, invoice_id, paid, status,
        payment_date.isoformat() if fully_paid else None,
        all_notes,
    )
    logger.info(
        "Payment of %.2f recorded on %s (%s)",
        amount, invoice.invoice_number, status,
    )
    return repo.get_invoice_by_id(invoice_id)


def mark_overdue_invoices(repo: Repository, identity: Identity,
                          today: Optional[date] = None) -> int:
    """Flag the company's sent, unpaid, past-due invoices as overdue."""
    count = repo.mark_invoices_overdue(
        identity.company_id, (today or date.today()).isoformat()
    )
    if count:
        logger.info("%d invoice(s) marked overdue", count)
    return count
