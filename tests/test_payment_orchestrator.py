import json

import pytest

from quoteportal.database.postgres import PostgresDB
from quoteportal.database.records import Profile, QuotationStatus
from quoteportal.errors import (
    Conflict,
    Forbidden,
    InvalidState,
    SignatureMismatch,
    Unauthorized,
    UpstreamRejected,
    UpstreamUnavailable,
    ValidationError,
)
from quoteportal.integrations.clients.mocks.payments import MockPaymentGateway
from quoteportal.integrations.contracts.interfaces import SignedPayload
from quoteportal.integrations.contracts.payments import compute_signature
from quoteportal.integrations.gateway.response_wrappers import IntegrationResponseError
from quoteportal.payments.orchestrator import PaymentOrchestrator
from quoteportal.quotations.lifecycle import QuotationLifecycle
from quoteportal.quotations.pricing import PricingEditor

S = QuotationStatus


class FlakyStore(PostgresDB):
    """In-memory store whose writes can be switched off to simulate an outage."""

    def __init__(self):
        super().__init__()
        self.writes_down = False

    def update_quotation_if_status(self, *args, **kwargs):
        if self.writes_down:
            raise UpstreamUnavailable("Database unavailable: connection refused")
        return super().update_quotation_if_status(*args, **kwargs)


class RepricingStore(PostgresDB):
    """Lands one administrator re-price just before the next write that marks a quotation paid."""

    def __init__(self, new_total):
        super().__init__()
        self.new_total = new_total
        self.armed = False

    def update_quotation_if_status(self, quotation_id, expected_status, **kwargs):
        if self.armed and kwargs.get("status") == S.PAID:
            self.armed = False
            current = self.get_quotation(quotation_id)
            super().update_quotation_if_status(
                quotation_id, S.QUOTED, status=S.QUOTED, config=dict(current.config, total=self.new_total)
            )
        return super().update_quotation_if_status(quotation_id, expected_status, **kwargs)


class RefusingGateway(MockPaymentGateway):
    async def create_checkout_session(self, request):
        raise IntegrationResponseError("Payment gateway rejected the order (HTTP 400)")


def _completion(gateway, quoted, payment_id="pay_123", **overrides):
    params = dict(
        correlation_id=quoted.id,
        payment_id=payment_id,
        amount_minor=15000,
        currency="USD",
    )
    params.update(overrides)
    return gateway.sign(gateway.build_event(**params))


@pytest.mark.asyncio
async def test_initiate_checkout_builds_session_from_quotation(orchestrator, gateway, db, quoted, alice):
    db.upsert_profile(Profile(id="user-alice", full_name="Alice Rao", phone="+911234567890"))

    session = await orchestrator.initiate_checkout(alice, quoted.id)

    assert session.correlation_id == quoted.id
    assert session.amount_minor == 15000
    assert session.currency == "USD"
    assert session.key_id == gateway.key_id
    assert session.prefill.name == "Alice Rao"
    assert session.prefill.email == "alice@example.com"
    assert session.prefill.contact == "+911234567890"
    assert session.to_dict()["notes"] == {"quotation_id": quoted.id, "user_id": "user-alice"}
    assert gateway.sessions[session.session_id] is session


@pytest.mark.asyncio
async def test_initiate_checkout_on_pending_quotation_is_invalid(orchestrator, submitted, alice):
    with pytest.raises(InvalidState):
        await orchestrator.initiate_checkout(alice, submitted.id)


@pytest.mark.asyncio
async def test_initiate_checkout_is_owner_only(orchestrator, quoted, bob, admin, anonymous):
    with pytest.raises(Forbidden):
        await orchestrator.initiate_checkout(bob, quoted.id)
    with pytest.raises(Forbidden):
        await orchestrator.initiate_checkout(admin, quoted.id)
    with pytest.raises(Unauthorized):
        await orchestrator.initiate_checkout(anonymous, quoted.id)


@pytest.mark.asyncio
async def test_initiate_checkout_gateway_down(orchestrator, gateway, quoted, alice):
    gateway.available = False
    with pytest.raises(UpstreamUnavailable):
        await orchestrator.initiate_checkout(alice, quoted.id)


@pytest.mark.asyncio
async def test_end_to_end_quote_pay_and_move_to_past(lifecycle, pricing, orchestrator, gateway, alice, admin):
    quotation = lifecycle.submit(alice, type="PCB", config={"layers": 2})
    assert quotation.total is None

    pricing.set_quote(admin, quotation.id, total=150.00, currency="USD", status="Quoted")
    mine = lifecycle.list_mine(alice)
    assert [q.id for q in mine.active] == [quotation.id]
    assert float(mine.active[0].total) == 150.0

    session = await orchestrator.initiate_checkout(alice, quotation.id)
    result = orchestrator.complete_checkout(quotation.id, "pay_123", gateway.simulate_completion(session, "pay_123"))

    assert not result.already_processed
    assert result.quotation.status == S.PAID
    assert result.quotation.payment_id == "pay_123"

    mine = lifecycle.list_mine(alice)
    assert mine.active == []
    assert [q.id for q in mine.past] == [quotation.id]


def test_completion_is_idempotent(orchestrator, gateway, lifecycle, quoted):
    payload = _completion(gateway, quoted)

    first = orchestrator.complete_checkout(quoted.id, "pay_123", payload)
    second = orchestrator.complete_checkout(quoted.id, "pay_123", payload)

    assert not first.already_processed
    assert second.already_processed
    assert lifecycle.load(quoted.id).payment_id == "pay_123"


def test_second_payment_for_paid_quotation_keeps_first(orchestrator, gateway, lifecycle, quoted):
    orchestrator.complete_checkout(quoted.id, "pay_123", _completion(gateway, quoted))
    result = orchestrator.complete_checkout(quoted.id, "pay_999", _completion(gateway, quoted, payment_id="pay_999"))

    assert result.already_processed
    assert lifecycle.load(quoted.id).payment_id == "pay_123"


@pytest.mark.parametrize("signature", [None, "", "deadbeef"])
def test_bad_signature_is_rejected_and_nothing_changes(orchestrator, gateway, lifecycle, quoted, signature):
    payload = _completion(gateway, quoted)
    with pytest.raises(SignatureMismatch):
        orchestrator.complete_checkout(quoted.id, "pay_123", SignedPayload(body=payload.body, signature=signature))

    stored = lifecycle.load(quoted.id)
    assert stored.status == S.QUOTED
    assert stored.payment_id is None


def test_tampered_body_is_rejected(orchestrator, gateway, quoted):
    payload = _completion(gateway, quoted)
    tampered = payload.body.replace(b"15000", b"100")
    with pytest.raises(SignatureMismatch):
        orchestrator.complete_checkout(quoted.id, "pay_123", SignedPayload(body=tampered, signature=payload.signature))


def test_payload_must_match_quotation_and_payment(orchestrator, gateway, quoted):
    with pytest.raises(ValidationError):
        orchestrator.complete_checkout("another-quotation", "pay_123", _completion(gateway, quoted))
    with pytest.raises(ValidationError):
        orchestrator.complete_checkout(quoted.id, "pay_other", _completion(gateway, quoted))


def test_uncaptured_payment_is_rejected(orchestrator, gateway, lifecycle, quoted):
    with pytest.raises(ValidationError):
        orchestrator.complete_checkout(quoted.id, "pay_123", _completion(gateway, quoted, status="failed"))
    assert lifecycle.load(quoted.id).status == S.QUOTED


def test_amount_mismatch_after_re_price_conflicts(orchestrator, gateway, pricing, lifecycle, quoted, admin):
    payload = _completion(gateway, quoted)
    pricing.set_quote(admin, quoted.id, total=175, currency="USD", status="Quoted")

    with pytest.raises(Conflict):
        orchestrator.complete_checkout(quoted.id, "pay_123", payload)
    assert lifecycle.load(quoted.id).status == S.QUOTED


def test_pending_quotation_cannot_be_paid(orchestrator, gateway, submitted):
    payload = _completion(gateway, submitted)
    with pytest.raises(Conflict):
        orchestrator.complete_checkout(submitted.id, "pay_123", payload)


def test_webhook_delegates_and_ignores_other_events(orchestrator, gateway, lifecycle, quoted):
    ignored = gateway.sign(gateway.build_event(quoted.id, "pay_1", 15000, "USD", event="payment.authorized", status="authorized"))
    assert orchestrator.handle_webhook(ignored) is None
    assert lifecycle.load(quoted.id).status == S.QUOTED

    result = orchestrator.handle_webhook(_completion(gateway, quoted))
    assert result.quotation.status == S.PAID


def test_webhook_with_bad_signature(orchestrator, gateway, quoted):
    payload = _completion(gateway, quoted)
    with pytest.raises(SignatureMismatch):
        orchestrator.handle_webhook(SignedPayload(body=payload.body, signature="0" * 64))


def test_malformed_body_is_a_validation_error(orchestrator, gateway):
    payload = gateway.sign({"event": "payment.captured", "payload": {}})
    with pytest.raises(ValidationError):
        orchestrator.handle_webhook(payload)

    body = b"not json"
    with pytest.raises(ValidationError):
        orchestrator.handle_webhook(SignedPayload(body=body, signature=compute_signature(body, gateway.webhook_secret)))


def test_outage_parks_completion_and_replay_applies_it(gateway, gate, outbox, admin, alice):
    store = FlakyStore()
    lifecycle = QuotationLifecycle(store, gate)
    orchestrator = PaymentOrchestrator(lifecycle, gateway, outbox)
    quotation = lifecycle.submit(alice, type="PCB", config={})
    quoted = PricingEditor(lifecycle).set_quote(admin, quotation.id, total=150, currency="USD", status="Quoted")
    payload = _completion(gateway, quoted)

    store.writes_down = True
    with pytest.raises(UpstreamUnavailable):
        orchestrator.complete_checkout(quoted.id, "pay_123", payload)

    [entry] = outbox.pending()
    assert entry.quotation_id == quoted.id
    assert entry.payment_id == "pay_123"
    assert json.loads(entry.body)["payload"]["payment"]["entity"]["id"] == "pay_123"
    assert lifecycle.load(quoted.id).status == S.QUOTED

    # still down: entry stays, attempt recorded
    assert orchestrator.replay_outbox() == {"reconciled": 0, "pending": 1, "failed": 0}
    [entry] = outbox.pending()
    assert entry.attempts == 1

    store.writes_down = False
    assert orchestrator.replay_outbox() == {"reconciled": 1, "pending": 0, "failed": 0}
    assert outbox.pending() == []
    stored = lifecycle.load(quoted.id)
    assert stored.status == S.PAID
    assert stored.payment_id == "pay_123"


def test_replay_quarantines_entries_that_fail_terminally(orchestrator, gateway, outbox, pricing, lifecycle, quoted, admin):
    entry = outbox.record(quoted.id, "pay_123", _completion(gateway, quoted))
    pricing.set_quote(admin, quoted.id, total=10, currency="USD", status="Quoted")

    assert orchestrator.replay_outbox() == {"reconciled": 0, "pending": 0, "failed": 1}
    assert outbox.pending() == []
    [kept] = outbox.failed()
    assert kept.entry_id == entry.entry_id
    assert kept.payment_id == "pay_123"
    assert kept.last_error.startswith("conflict:")
    assert (outbox.directory / "failed" / f"{entry.entry_id}.json").exists()

    # quarantined entries are not replayed again
    assert orchestrator.replay_outbox() == {"reconciled": 0, "pending": 0, "failed": 0}
    assert lifecycle.load(quoted.id).status == S.QUOTED


def test_replay_without_outbox(lifecycle, gateway):
    assert PaymentOrchestrator(lifecycle, gateway).replay_outbox() == {"reconciled": 0, "pending": 0, "failed": 0}


def _racing_orchestrator(gateway, gate, admin, alice, new_total):
    store = RepricingStore(new_total)
    lifecycle = QuotationLifecycle(store, gate)
    quotation = lifecycle.submit(alice, type="PCB", config={})
    quoted = PricingEditor(lifecycle).set_quote(admin, quotation.id, total=150, currency="USD", status="Quoted")
    return store, lifecycle, PaymentOrchestrator(lifecycle, gateway), quoted


def test_re_price_landing_before_the_paid_write_is_detected(gateway, gate, admin, alice):
    store, lifecycle, orchestrator, quoted = _racing_orchestrator(gateway, gate, admin, alice, new_total=175)
    store.armed = True

    with pytest.raises(Conflict):
        orchestrator.complete_checkout(quoted.id, "pay_123", _completion(gateway, quoted))

    stored = lifecycle.load(quoted.id)
    assert stored.status == S.QUOTED
    assert float(stored.total) == 175.0
    assert stored.payment_id is None


def test_same_price_re_save_during_reconciliation_still_pays(gateway, gate, admin, alice):
    store, lifecycle, orchestrator, quoted = _racing_orchestrator(gateway, gate, admin, alice, new_total=150)
    store.armed = True

    result = orchestrator.complete_checkout(quoted.id, "pay_123", _completion(gateway, quoted))

    assert result.quotation.status == S.PAID
    assert result.quotation.payment_id == "pay_123"


@pytest.mark.asyncio
async def test_gateway_refusal_is_not_retryable(lifecycle, quoted, alice):
    orchestrator = PaymentOrchestrator(lifecycle, RefusingGateway())

    with pytest.raises(UpstreamRejected) as excinfo:
        await orchestrator.initiate_checkout(alice, quoted.id)
    assert excinfo.value.retryable is False
    assert excinfo.value.status_code == 502


def test_uncorrelated_capture_is_ignored(orchestrator, gateway, lifecycle, quoted):
    payload = gateway.sign(gateway.build_event(None, "pay_123", 15000, "USD"))

    assert orchestrator.handle_webhook(payload) is None
    assert lifecycle.load(quoted.id).status == S.QUOTED
