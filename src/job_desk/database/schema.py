"""Database schema definition and initialization."""

import sqlite3

SCHEMA_VERSION = 1

# Each statement is a separate string to avoid executescript issues
_SCHEMA_STATEMENTS = [
    # Companies (tenants)
    """CREATE TABLE IF NOT EXISTS companies (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        settings TEXT NOT NULL DEFAULT '{}',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    # Users (profiles): every user belongs to exactly one company
    """CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER NOT NULL,
        email TEXT NOT NULL UNIQUE,
        first_name TEXT NOT NULL DEFAULT '',
        last_name TEXT NOT NULL DEFAULT '',
        role TEXT NOT NULL DEFAULT 'tech'
            CHECK (role IN ('admin', 'manager', 'tech', 'office')),
        phone TEXT,
        pin_hash TEXT NOT NULL DEFAULT '',
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE
    )""",

    """CREATE TABLE IF NOT EXISTS customers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER NOT NULL,
        first_name TEXT NOT NULL DEFAULT '',
        last_name TEXT NOT NULL DEFAULT '',
        company_name TEXT,
        email TEXT,
        phone TEXT,
        address TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE
    )""",

    """CREATE TABLE IF NOT EXISTS projects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER NOT NULL,
        customer_id INTEGER NOT NULL,
        project_number TEXT NOT NULL,
        project_name TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'planning'
            CHECK (status IN ('planning', 'in_progress', 'on_hold',
                              'completed', 'cancelled')),
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE,
        FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE CASCADE
    )""",

    """CREATE TABLE IF NOT EXISTS work_orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER NOT NULL,
        wo_number TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        status TEXT NOT NULL DEFAULT 'open'
            CHECK (status IN ('open', 'scheduled', 'in_progress',
                              'completed', 'cancelled')),
        priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
        scheduled_date TEXT,
        completed_date TEXT,
        actual_hours REAL NOT NULL DEFAULT 0 CHECK (actual_hours >= 0),
        notes TEXT,
        customer_id INTEGER NOT NULL,
        project_id INTEGER,
        assigned_to INTEGER,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE,
        FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE RESTRICT,
        FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE SET NULL,
        FOREIGN KEY (assigned_to) REFERENCES users(id) ON DELETE SET NULL
    )""",

    """CREATE TABLE IF NOT EXISTS time_entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER NOT NULL,
        work_order_id INTEGER NOT NULL,
        user_id INTEGER NOT NULL,
        start_time TEXT NOT NULL,
        end_time TEXT,
        duration_minutes INTEGER NOT NULL DEFAULT 0
            CHECK (duration_minutes >= 0),
        description TEXT,
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'approved', 'rejected')),
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE,
        FOREIGN KEY (work_order_id) REFERENCES work_orders(id) ON DELETE CASCADE,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )""",

    """CREATE TABLE IF NOT EXISTS inventory_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        sku TEXT NOT NULL DEFAULT '',
        quantity INTEGER NOT NULL DEFAULT 0 CHECK (quantity >= 0),
        unit_price REAL NOT NULL DEFAULT 0.0 CHECK (unit_price >= 0),
        reorder_level INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE
    )""",

    """CREATE TABLE IF NOT EXISTS work_order_photos (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER NOT NULL,
        work_order_id INTEGER NOT NULL,
        photo_url TEXT NOT NULL,
        caption TEXT,
        uploaded_by INTEGER,
        created_at TEXT NOT NULL,
        FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE,
        FOREIGN KEY (work_order_id) REFERENCES work_orders(id) ON DELETE CASCADE,
        FOREIGN KEY (uploaded_by) REFERENCES users(id) ON DELETE SET NULL
    )""",

    """CREATE TABLE IF NOT EXISTS technician_locations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER NOT NULL,
        technician_id INTEGER NOT NULL,
        latitude REAL NOT NULL,
        longitude REAL NOT NULL,
        accuracy REAL,
        recorded_at TEXT NOT NULL,
        FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE,
        FOREIGN KEY (technician_id) REFERENCES users(id) ON DELETE CASCADE
    )""",

    """CREATE TABLE IF NOT EXISTS invoices (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER NOT NULL,
        customer_id INTEGER NOT NULL,
        work_order_id INTEGER,
        invoice_number TEXT NOT NULL UNIQUE,
        status TEXT NOT NULL DEFAULT 'draft'
            CHECK (status IN ('draft', 'sent', 'paid', 'overdue',
                              'cancelled')),
        issue_date TEXT NOT NULL,
        due_date TEXT,
        subtotal REAL NOT NULL DEFAULT 0.0,
        tax_rate REAL NOT NULL DEFAULT 0.0,
        tax_amount REAL NOT NULL DEFAULT 0.0,
        total_amount REAL NOT NULL DEFAULT 0.0,
        paid_amount REAL NOT NULL DEFAULT 0.0,
        payment_date TEXT,
        notes TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE,
        FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE RESTRICT,
        FOREIGN KEY (work_order_id) REFERENCES work_orders(id) ON DELETE SET NULL
    )""",

    """CREATE TABLE IF NOT EXISTS invoice_line_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        invoice_id INTEGER NOT NULL,
        description TEXT NOT NULL,
        quantity REAL NOT NULL CHECK (quantity >= 0),
        unit_price REAL NOT NULL CHECK (unit_price >= 0),
        total REAL NOT NULL,
        FOREIGN KEY (invoice_id) REFERENCES invoices(id) ON DELETE CASCADE
    )""",

    """CREATE TABLE IF NOT EXISTS purchase_orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER NOT NULL,
        work_order_id INTEGER,
        po_number TEXT NOT NULL,
        vendor_name TEXT NOT NULL DEFAULT '',
        total_amount REAL NOT NULL DEFAULT 0.0,
        status TEXT NOT NULL DEFAULT 'draft'
            CHECK (status IN ('draft', 'sent', 'approved', 'received',
                              'cancelled')),
        order_date TEXT,
        expected_delivery TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE,
        FOREIGN KEY (work_order_id) REFERENCES work_orders(id) ON DELETE SET NULL
    )""",

    # Multi-step writes that stopped halfway, awaiting manual cleanup
    """CREATE TABLE IF NOT EXISTS reconciliation_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        company_id INTEGER NOT NULL,
        kind TEXT NOT NULL
            CHECK (kind IN ('inventory_then_status', 'invoice_line_items')),
        work_order_id INTEGER,
        invoice_id INTEGER,
        detail TEXT NOT NULL DEFAULT '{}',
        status TEXT NOT NULL DEFAULT 'open'
            CHECK (status IN ('open', 'resolved')),
        created_at TEXT NOT NULL,
        resolved_at TEXT,
        FOREIGN KEY (company_id) REFERENCES companies(id) ON DELETE CASCADE
    )""",

    # Schema version tracking
    """CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",

    # ── Indexes ──────────────────────────────────────────────────
    "CREATE INDEX IF NOT EXISTS idx_users_company ON users(company_id)",
    "CREATE INDEX IF NOT EXISTS idx_customers_company ON customers(company_id)",
    "CREATE INDEX IF NOT EXISTS idx_wo_company ON work_orders(company_id)",
    "CREATE INDEX IF NOT EXISTS idx_wo_assigned ON work_orders(assigned_to)",
    "CREATE INDEX IF NOT EXISTS idx_wo_status ON work_orders(status)",
    "CREATE INDEX IF NOT EXISTS idx_time_wo ON time_entries(work_order_id)",
    "CREATE INDEX IF NOT EXISTS idx_time_user ON time_entries(user_id)",
    # At most one running timer per (work order, user)
    """CREATE UNIQUE INDEX IF NOT EXISTS idx_time_active
        ON time_entries(work_order_id, user_id) WHERE end_time IS NULL""",
    "CREATE INDEX IF NOT EXISTS idx_inventory_company ON inventory_items(company_id)",
    "CREATE INDEX IF NOT EXISTS idx_photos_wo ON work_order_photos(work_order_id)",
    "CREATE INDEX IF NOT EXISTS idx_locations_tech ON technician_locations(technician_id)",
    "CREATE INDEX IF NOT EXISTS idx_locations_time ON technician_locations(recorded_at)",
    "CREATE INDEX IF NOT EXISTS idx_invoices_company ON invoices(company_id)",
    "CREATE INDEX IF NOT EXISTS idx_invoices_wo ON invoices(work_order_id)",
    "CREATE INDEX IF NOT EXISTS idx_line_items_invoice ON invoice_line_items(invoice_id)",
    "CREATE INDEX IF NOT EXISTS idx_po_wo ON purchase_orders(work_order_id)",
    "CREATE INDEX IF NOT EXISTS idx_recon_status ON reconciliation_log(status)",

    # ── Triggers ─────────────────────────────────────────────────
    """CREATE TRIGGER IF NOT EXISTS trg_work_orders_updated
        AFTER UPDATE ON work_orders
        FOR EACH ROW
        BEGIN
            UPDATE work_orders SET updated_at = CURRENT_TIMESTAMP
            WHERE id = OLD.id;
        END""",
    """CREATE TRIGGER IF NOT EXISTS trg_inventory_updated
        AFTER UPDATE OF quantity, unit_price ON inventory_items
        FOR EACH ROW
        BEGIN
            UPDATE inventory_items SET updated_at = CURRENT_TIMESTAMP
            WHERE id = OLD.id;
        END""",
]


def _get_schema_version(conn) -> int:
    """Get the current schema version, or 0 if no schema exists."""
    try:
        row = conn.execute(
            "SELECT MAX(version) as v FROM schema_version"
        ).fetchone()
        return row["v"] if row and row["v"] else 0
    except sqlite3.OperationalError:
        return 0


def initialize_database(db_connection):
    """Create all tables, indexes and triggers on a fresh database.

    Safe to call on every start-up; an already-current database is left
    untouched.
    """
    with db_connection.get_connection() as conn:
        version = _get_schema_version(conn)
        if version >= SCHEMA_VERSION:
            return

        for stmt in _SCHEMA_STATEMENTS:
            conn.execute(stmt)
        conn.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
