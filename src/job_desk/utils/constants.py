"""Application-wide constants."""

APP_NAME = "Job-Desk"
APP_VERSION = "1.0.0"

# Work order lifecycle
WORK_ORDER_STATUSES = [
    "open", "scheduled", "in_progress", "completed", "cancelled",
]
# Statuses that show up on a technician's job list
ACTIVE_WORK_ORDER_STATUSES = ["open", "scheduled", "in_progress"]
# A stopped timer always bills at least this many minutes
MIN_TIME_ENTRY_MINUTES = 1

INVOICE_STATUSES = ["draft", "sent", "paid", "overdue", "cancelled"]
PAYMENT_METHODS = ["check", "cash", "credit_card", "ach", "other"]

# Location tracker states
TRACKER_IDLE = "idle"
TRACKER_TRACKING = "tracking"

# Invoice line descriptions
LABOR_LINE_DESCRIPTION = "Labor"
SERVICE_CHARGE_LINE_DESCRIPTION = "Service Charge"
PARTS_LINE_DESCRIPTION = "Parts & Materials"

# Reconciliation kinds
RECON_INVENTORY_THEN_STATUS = "inventory_then_status"
RECON_INVOICE_LINE_ITEMS = "invoice_line_items"

# Generic user-facing alerts
ALERT_SAVE_FAILED = "Error saving job. Please try again."
ALERT_TIMER_FAILED = "Error updating the timer. Please try again."
ALERT_INVOICE_FAILED = "Error creating invoice. Please try again."
ALERT_PHOTO_FAILED = "Error saving photo. Please try again."
ALERT_LOAD_FAILED = "Error loading jobs. Please try again."
ALERT_LOCATION_DENIED = (
    "Location access was denied. Location tracking has been turned off."
)
