"""Pytest configuration and fixtures for Invoicey tests.

Provides an in-memory storage adapter, a controllable clock and
ready-made services / clients so each test can focus on one rule.
"""

from datetime import date
from typing import List

import pytest

from invoicey.clients import ClientService
from invoicey.config import Settings
from invoicey.invoices import InvoiceService
from invoicey.models import Client, ClientInput, InvoiceInput, LineItemInput
from invoicey.numbering import InvoiceNumberSequencer
from invoicey.storage import InMemoryStorage

TENANT = "tenant_test"


class FakeClock:
    """Callable returning a date the test can move around."""

    def __init__(self, current: date):
        self.current = current

    def __call__(self) -> date:
        return self.current


# ── Core fixtures ────────────────────────────────────────────────

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(date(2026, 3, 15))


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        storage_backend="memory",
        data_dir=str(tmp_path / "data"),
        default_tenant=TENANT,
        _env_file=None,
    )


@pytest.fixture
def sequencer(storage, clock) -> InvoiceNumberSequencer:
    return InvoiceNumberSequencer(storage, clock=clock)


@pytest.fixture
def client_service(storage, clock) -> ClientService:
    return ClientService(storage, TENANT, clock=clock)


@pytest.fixture
def invoice_service(storage, sequencer, clock) -> InvoiceService:
    return InvoiceService(storage, TENANT, sequencer=sequencer, clock=clock)


# ── Test data fixtures ───────────────────────────────────────────

@pytest.fixture
def acme(client_service) -> Client:
    return client_service.create(
        ClientInput(name="Jane Cooper", email="jane@acme.test", company="Acme Corp")
    )


@pytest.fixture
def globex(client_service) -> Client:
    return client_service.create(ClientInput(name="Hank Scorpio", email="hank@globex.test"))


@pytest.fixture
def clients(client_service, acme, globex) -> List[Client]:
    return client_service.list()


def make_invoice_input(client_id: str, **overrides) -> InvoiceInput:
    data = {
        "client_id": client_id,
        "issue_date": date(2026, 3, 15),
        "due_date": date(2026, 4, 14),
        "line_items": [
            LineItemInput(description="Design", quantity=2, rate=100),
            LineItemInput(description="Hosting", quantity=1, rate=50),
        ],
        "notes": "Thanks!",
    }
    data.update(overrides)
    return InvoiceInput(**data)


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: HTTP API tests")
    config.addinivalue_line("markers", "cli: CLI tests")
