"""Exceptions raised by job actions."""


class JobActionError(Exception):
    """Base exception for job actions that failed after touching the store."""


class JobUpdateError(JobActionError):
    """Parts were consumed but the work order update did not land."""

    def __init__(self, message: str, work_order_id: int,
                 applied: list = None, reconciliation_id: int = None):
        super().__init__(message)
        self.work_order_id = work_order_id
        self.applied = applied or []
        self.reconciliation_id = reconciliation_id


class InvoiceConversionError(JobActionError):
    """The invoice header was saved but its line items were not."""

    def __init__(self, message: str, invoice_id: int,
                 reconciliation_id: int = None):
        super().__init__(message)
        self.invoice_id = invoice_id
        self.reconciliation_id = reconciliation_id
