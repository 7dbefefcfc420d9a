"""Shared test fixtures."""

import pytest
from PySide6.QtCore import QCoreApplication

from job_desk.database.connection import DatabaseConnection
from job_desk.database.models import (
    Company,
    Customer,
    InventoryItem,
    Project,
    User,
    WorkOrder,
)
from job_desk.database.repository import Repository
from job_desk.database.schema import initialize_database
from job_desk.identity import Identity


@pytest.fixture(scope="session")
def qapp():
    """A Qt core application for tests that touch QObject machinery."""
    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture
def db_path(tmp_path):
    """Provide a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
def db(db_path):
    """Provide an initialized database connection."""
    conn = DatabaseConnection(db_path)
    initialize_database(conn)
    return conn


@pytest.fixture
def repo(db):
    """Provide a repository with an initialized database."""
    return Repository(db)


@pytest.fixture
def company_id(repo):
    return repo.create_company(Company(name="Acme Electric"))


@pytest.fixture
def tech_user(repo, company_id):
    """Technician who will be assigned the test jobs."""
    user = User(
        company_id=company_id,
        email="tech@acme.test",
        first_name="Terry",
        last_name="Tech",
        role="tech",
        pin_hash=Repository.hash_pin("1234"),
    )
    user.id = repo.create_user(user)
    return user


@pytest.fixture
def identity(tech_user):
    return Identity(user_id=tech_user.id, company_id=tech_user.company_id)


@pytest.fixture
def rival(repo):
    """A second company whose data must stay out of reach."""
    return repo.create_company(Company(name="Rival Plumbing"))


@pytest.fixture
def rival_identity(repo, rival):
    user_id = repo.create_user(User(company_id=rival, email="sam@rival.test",
                                    pin_hash=Repository.hash_pin("4321")))
    return Identity(user_id=user_id, company_id=rival)


@pytest.fixture
def customer_id(repo, company_id):
    return repo.create_customer(Customer(
        company_id=company_id, first_name="Dana", last_name="Whitfield",
        email="dana@example.com", address="412 Oak Ln",
    ))


@pytest.fixture
def project_id(repo, company_id, customer_id):
    return repo.create_project(Project(
        company_id=company_id, customer_id=customer_id,
        project_number="PRJ-001", project_name="Kitchen Remodel",
    ))


@pytest.fixture
def job(repo, company_id, customer_id, project_id, tech_user):
    """A scheduled work order assigned to the technician."""
    wo = WorkOrder(
        company_id=company_id,
        wo_number="WO-2026-0001",
        title="Replace GFCI outlets",
        status="scheduled",
        priority="high",
        scheduled_date="2026-10-20",
        customer_id=customer_id,
        project_id=project_id,
        assigned_to=tech_user.id,
    )
    wo.id = repo.create_work_order(wo)
    return repo.get_work_order_by_id(wo.id)


@pytest.fixture
def inventory(repo, company_id):
    """Two stocked items: 10 outlets at $18.25 and 3 breakers at $8.75."""
    items = [
        InventoryItem(company_id=company_id, name="GFCI Outlet 20A",
                      sku="SR-GFCI-20", quantity=10, unit_price=18.25,
                      reorder_level=4),
        InventoryItem(company_id=company_id, name="20A Breaker",
                      sku="BR-SP-20", quantity=3, unit_price=8.75,
                      reorder_level=2),
    ]
    for item in items:
        item.id = repo.create_inventory_item(item)
    return items


class FakeSignal:
    def __init__(self):
        self._slots = []

    def connect(self, slot):
        self._slots.append(slot)

    def emit(self, *args):
        for slot in list(self._slots):
            slot(*args)


class FakeTimer:
    """Stands in for QTimer: records start/stop and fires on demand."""

    def __init__(self):
        self.timeout = FakeSignal()
        self.interval = None
        self.active = False

    def start(self, interval):
        self.interval = interval
        self.active = True

    def stop(self):
        self.active = False

    def fire(self):
        self.timeout.emit()


class FakeTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self):
        timer = FakeTimer()
        self.timers.append(timer)
        return timer

    @property
    def last(self):
        return self.timers[-1] if self.timers else None


@pytest.fixture
def timer_factory():
    return FakeTimerFactory()


class FakePositionWorker:
    """Stands in for PositionWorker: runs the sampler inside start()."""

    def __init__(self, sampler):
        self.sampler = sampler
        self.fixed = FakeSignal()
        self.failed = FakeSignal()

    def start(self):
        try:
            fix = self.sampler()
        except Exception as e:
            self.failed.emit(e)
            return
        self.fixed.emit(fix)


class DeferredPositionWorker(FakePositionWorker):
    """A worker whose result arrives only when ``finish()`` is called."""

    def start(self):
        pass

    def finish(self):
        FakePositionWorker.start(self)


class FakeWorkerFactory:
    def __init__(self, worker_class=FakePositionWorker):
        self.worker_class = worker_class
        self.workers = []

    def __call__(self, sampler):
        worker = self.worker_class(sampler)
        self.workers.append(worker)
        return worker


@pytest.fixture
def worker_factory():
    return FakeWorkerFactory()


@pytest.fixture
def deferred_worker_factory():
    return FakeWorkerFactory(DeferredPositionWorker)
