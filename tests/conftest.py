from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from pytz import UTC

from billable.db import get_stores
from billable.main import app
from billable.models.clients import Client
from billable.models.employees import Employee
from billable.models.packages import Package
from billable.models.tasks import Task
from billable.stores.memory import build_memory_stores
from billable.utils.app_utils import Actor, create_access_token, get_clock
from billable.utils.timer_utils import TimerService

# A Monday
T0 = datetime(2024, 3, 4, 9, 0, tzinfo=UTC)


class FakeClock:
    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def admin():
    return Actor(employee_id="emp-admin", role="ADMIN")


@pytest.fixture
def alice():
    return Actor(employee_id="emp-alice", role="EMPLOYEE")


@pytest.fixture
def bob():
    return Actor(employee_id="emp-bob", role="EMPLOYEE")


@pytest.fixture
def stores():
    return build_memory_stores(
        clients=[
            Client(id="client-acme", name="Acme Trading"),
            Client(id="client-globex", name="Globex"),
        ],
        employees=[
            Employee(id="emp-alice", name="Alice", monthly_cost=4000, monthly_working_hours=160),
            Employee(id="emp-bob", name="Bob", monthly_cost=6000, monthly_working_hours=120),
            Employee(id="emp-admin", name="Admin", monthly_cost=0),
        ],
        packages=[
            Package(id="pkg-monthly", client_id="client-acme", name="Monthly bookkeeping",
                    type="RECURRING", billing_frequency="MONTHLY", contract_value=3000,
                    start_date=datetime(2024, 1, 1, tzinfo=UTC)),
            Package(id="pkg-quarterly", client_id="client-acme", name="VAT returns",
                    type="RECURRING", billing_frequency="QUARTERLY", contract_value=9000,
                    start_date=datetime(2024, 1, 1, tzinfo=UTC)),
            Package(id="pkg-setup", client_id="client-globex", name="Company setup",
                    type="ONE_TIME", contract_value=12000,
                    start_date=datetime(2024, 1, 1, tzinfo=UTC)),
        ],
        tasks=[
            Task(id="task-books", client_id="client-acme", package_id="pkg-monthly",
                 name="Reconcile bank", assigned_to=["emp-alice"],
                 due_date=datetime(2024, 3, 8, 17, 0, tzinfo=UTC)),
            Task(id="task-vat", client_id="client-acme", package_id="pkg-quarterly",
                 name="File VAT return", assigned_to=["emp-bob"],
                 due_date=datetime(2024, 3, 28, 17, 0, tzinfo=UTC)),
        ],
    )


@pytest.fixture
def service(stores, clock):
    return TimerService(stores, clock)


@pytest.fixture
def auth_headers():
    def _headers(actor: Actor):
        token = create_access_token({"sub": actor.employee_id, "role": actor.role}, timedelta(hours=1))
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def client(stores, clock):
    app.dependency_overrides[get_stores] = lambda: stores
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()
