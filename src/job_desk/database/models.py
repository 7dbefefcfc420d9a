"""Data models for the database layer."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class Company:
    id: Optional[int] = None
    name: str = ""
    settings: str = "{}"  # JSON object
    created_at: Optional[datetime] = None

    @property
    def settings_dict(self) -> dict:
        try:
            return json.loads(self.settings) if self.settings else {}
        except (json.JSONDecodeError, TypeError):
            return {}


@dataclass
class User:
    id: Optional[int] = None
    company_id: Optional[int] = None
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    role: str = "tech"  # admin, manager, tech, office
    phone: str = ""
    pin_hash: str = ""
    is_active: int = 1
    created_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.email


@dataclass
class Customer:
    id: Optional[int] = None
    company_id: Optional[int] = None
    first_name: str = ""
    last_name: str = ""
    company_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    created_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        if self.company_name:
            return self.company_name
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Project:
    id: Optional[int] = None
    company_id: Optional[int] = None
    customer_id: Optional[int] = None
    project_number: str = ""
    project_name: str = ""
    status: str = "planning"
    created_at: Optional[datetime] = None


@dataclass
class WorkOrder:
    id: Optional[int] = None
    company_id: Optional[int] = None
    wo_number: str = ""
    title: str = ""
    description: str = ""
    status: str = "open"  # open, scheduled, in_progress, completed, cancelled
    priority: str = "medium"  # low, medium, high, urgent
    scheduled_date: Optional[str] = None
    completed_date: Optional[str] = None
    actual_hours: float = 0.0
    notes: str = ""
    customer_id: Optional[int] = None
    project_id: Optional[int] = None
    assigned_to: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    # Joined fields (not stored directly)
    customer_name: str = field(default="", repr=False)
    project_name: str = field(default="", repr=False)

    @property
    def is_closed(self) -> bool:
        return self.status in ("completed", "cancelled")


@dataclass
class TimeEntry:
    id: Optional[int] = None
    company_id: Optional[int] = None
    work_order_id: Optional[int] = None
    user_id: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_minutes: int = 0
    description: str = ""
    status: str = "pending"  # pending, approved, rejected
    created_at: Optional[datetime] = None
    # Joined fields
    user_name: str = field(default="", repr=False)

    @property
    def is_active(self) -> bool:
        return self.end_time is None


@dataclass
class InventoryItem:
    id: Optional[int] = None
    company_id: Optional[int] = None
    name: str = ""
    sku: str = ""
    quantity: int = 0
    unit_price: float = 0.0
    reorder_level: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def needs_reorder(self) -> bool:
        return self.reorder_level > 0 and self.quantity <= self.reorder_level


@dataclass
class WorkOrderPhoto:
    id: Optional[int] = None
    company_id: Optional[int] = None
    work_order_id: Optional[int] = None
    photo_url: str = ""
    caption: Optional[str] = None
    uploaded_by: Optional[int] = None
    created_at: Optional[str] = None


@dataclass
class LocationSample:
    id: Optional[int] = None
    company_id: Optional[int] = None
    technician_id: Optional[int] = None
    latitude: float = 0.0
    longitude: float = 0.0
    accuracy: Optional[float] = None
    recorded_at: Optional[str] = None


@dataclass
class Invoice:
    id: Optional[int] = None
    company_id: Optional[int] = None
    customer_id: Optional[int] = None
    work_order_id: Optional[int] = None
    invoice_number: str = ""
    status: str = "draft"  # draft, sent, paid, overdue, cancelled
    issue_date: Optional[str] = None
    due_date: Optional[str] = None
    subtotal: float = 0.0
    tax_rate: float = 0.0
    tax_amount: float = 0.0
    total_amount: float = 0.0
    paid_amount: float = 0.0
    payment_date: Optional[str] = None
    notes: str = ""
    created_at: Optional[datetime] = None
    # Joined fields
    customer_name: str = field(default="", repr=False)
    wo_number: str = field(default="", repr=False)

    @property
    def balance_due(self) -> float:
        return max(self.total_amount - self.paid_amount, 0.0)


@dataclass
class InvoiceLineItem:
    id: Optional[int] = None
    invoice_id: Optional[int] = None
    description: str = ""
    quantity: float = 0.0
    unit_price: float = 0.0
    total: float = 0.0


@dataclass
class PurchaseOrder:
    id: Optional[int] = None
    company_id: Optional[int] = None
    work_order_id: Optional[int] = None
    po_number: str = ""
    vendor_name: str = ""
    total_amount: float = 0.0
    status: str = "draft"  # draft, sent, approved, received, cancelled
    order_date: Optional[str] = None
    expected_delivery: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class ReconciliationRecord:
    id: Optional[int] = None
    company_id: Optional[int] = None
    kind: str = ""  # inventory_then_status, invoice_line_items
    work_order_id: Optional[int] = None
    invoice_id: Optional[int] = None
    detail: str = "{}"  # JSON object
    status: str = "open"  # open, resolved
    created_at: Optional[str] = None
    resolved_at: Optional[str] = None

    @property
    def detail_dict(self) -> dict:
        try:
            return json.loads(self.detail) if self.detail else {}
        except (json.JSONDecodeError, TypeError):
            return {}
