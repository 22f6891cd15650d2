"""Pytest fixtures for the quotation portal core."""

import pytest

from quoteportal.auth.gate import ANONYMOUS, AuthorizationGate, Caller, Role
from quoteportal.database.postgres import PostgresDB
from quoteportal.files.broker import FileAccessBroker
from quoteportal.integrations.clients.mocks import MockObjectStore, MockPaymentGateway
from quoteportal.payments.orchestrator import PaymentOrchestrator
from quoteportal.payments.outbox import ReconciliationOutbox
from quoteportal.quotations.lifecycle import QuotationLifecycle
from quoteportal.quotations.pricing import PricingEditor

WEBHOOK_SECRET = "whsec_test"


@pytest.fixture
def db():
    """In-memory PostgresDB stub for tests."""
    return PostgresDB()


@pytest.fixture
def gate():
    return AuthorizationGate()


@pytest.fixture
def admin():
    return Caller(role=Role.ADMINISTRATOR, user_id="admin-1", email="admin@example.com")


@pytest.fixture
def alice():
    return Caller(role=Role.CUSTOMER, user_id="user-alice", email="alice@example.com")


@pytest.fixture
def bob():
    return Caller(role=Role.CUSTOMER, user_id="user-bob", email="bob@example.com")


@pytest.fixture
def anonymous():
    return ANONYMOUS


@pytest.fixture
def lifecycle(db, gate):
    return QuotationLifecycle(db, gate)


@pytest.fixture
def pricing(lifecycle):
    return PricingEditor(lifecycle)


@pytest.fixture
def gateway():
    return MockPaymentGateway(webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def object_store():
    return MockObjectStore()


@pytest.fixture
def broker(db, object_store, gate):
    return FileAccessBroker(db, object_store, gate)


@pytest.fixture
def outbox(tmp_path):
    return ReconciliationOutbox(tmp_path / "outbox")


@pytest.fixture
def orchestrator(lifecycle, gateway, outbox):
    return PaymentOrchestrator(lifecycle, gateway, outbox)


@pytest.fixture
def submitted(lifecycle, alice):
    """A fresh PCB quotation owned by alice, still Pending Review."""
    return lifecycle.submit(
        alice,
        type="PCB",
        config={"layers": 4, "quantity": 10},
        file_path="user-alice/board.zip",
        user_name="Alice",
    )


@pytest.fixture
def quoted(pricing, admin, submitted):
    """alice's quotation priced at 150.00 USD."""
    return pricing.set_quote(admin, submitted.id, total=150.00, currency="USD", status="Quoted")
