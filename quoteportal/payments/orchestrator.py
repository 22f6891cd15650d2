"""
Checkout initiation and payment reconciliation.

The browser only ever receives a checkout handle. A quotation becomes ``Paid``
solely through a completion payload signed by the gateway with the shared
webhook secret, and only via a write conditioned on the quotation still being
``Quoted``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from quoteportal.auth.gate import Caller, Role
from quoteportal.database.records import Quotation, QuotationStatus
from quoteportal.errors import (
    Conflict,
    Forbidden,
    InvalidState,
    PortalError,
    SignatureMismatch,
    UpstreamRejected,
    UpstreamUnavailable,
    ValidationError,
)
from quoteportal.integrations.contracts.interfaces import (
    CheckoutPrefill,
    CheckoutRequest,
    CheckoutSession,
    PaymentCompletionEvent,
    PaymentGateway,
    SignedPayload,
)
from quoteportal.integrations.contracts.payments import (
    is_successful_status,
    to_minor_units,
    validate_checkout_request,
)
from quoteportal.integrations.gateway.response_wrappers import (
    IntegrationResponseError,
    normalize_payment_event,
    parse_webhook_payload,
)
from quoteportal.payments.outbox import ReconciliationOutbox
from quoteportal.quotations.lifecycle import Actor, QuotationLifecycle, check_transition

logger = logging.getLogger(__name__)

COMPLETION_EVENTS = frozenset({"payment.captured", "order.paid"})


@dataclass
class ReconciliationResult:
    quotation: Quotation
    already_processed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quotation": self.quotation.to_dict(),
            "already_processed": self.already_processed,
        }


class PaymentOrchestrator:
    def __init__(
        self,
        lifecycle: QuotationLifecycle,
        gateway: PaymentGateway,
        outbox: Optional[ReconciliationOutbox] = None,
        merchant_name: str = "Miccroten Circuits",
    ) -> None:
        self.lifecycle = lifecycle
        self.gateway = gateway
        self.outbox = outbox
        self.merchant_name = merchant_name

    # ------------------------------------------------------------------ #
    # Checkout
    # ------------------------------------------------------------------ #
    async def initiate_checkout(self, caller: Caller, quotation_id: str) -> CheckoutSession:
        self.lifecycle.gate.require_role(caller, Role.CUSTOMER)
        quotation = self.lifecycle.load(quotation_id)
        if quotation.user_id != caller.user_id:
            raise Forbidden("Only the quotation owner can pay for it")
        if quotation.status != QuotationStatus.QUOTED:
            raise InvalidState(
                f"Quotation {quotation_id} is {quotation.status.value!r}, not 'Quoted'",
                details={"current": quotation.status.value},
            )
        if not quotation.is_priced:
            raise InvalidState(f"Quotation {quotation_id} has no total")

        amount_minor = to_minor_units(quotation.total, quotation.currency)
        if amount_minor <= 0:
            raise InvalidState(f"Quotation {quotation_id} has nothing to pay")

        profile = self.lifecycle.store.get_profile(caller.user_id)
        prefill = CheckoutPrefill(
            name=(profile.full_name if profile else None) or quotation.user_name or "",
            email=caller.email or "",
            contact=(profile.phone if profile else None) or "",
        )
        request = CheckoutRequest(
            correlation_id=quotation.id,
            amount_minor=amount_minor,
            currency=quotation.currency,
            description=f"{self.merchant_name}: payment for Quote #{quotation.id[:8]}",
            customer_id=caller.user_id,
            prefill=prefill,
            notes={"quotation_id": quotation.id, "user_id": caller.user_id},
        )
        errors = validate_checkout_request(request)
        if errors:
            raise ValidationError("; ".join(errors))

        try:
            session = await self.gateway.create_checkout_session(request)
        except IntegrationResponseError as exc:
            logger.error("Gateway refused checkout for quotation %s: %s", quotation_id, exc)
            raise UpstreamRejected(f"Payment gateway refused the checkout: {exc}") from exc

        logger.info(
            "Checkout %s opened for quotation %s (%d %s)",
            session.session_id, quotation.id, session.amount_minor, session.currency,
        )
        return session

    # ------------------------------------------------------------------ #
    # Reconciliation
    # ------------------------------------------------------------------ #
    def handle_webhook(self, payload: SignedPayload) -> Optional[ReconciliationResult]:
        """Entry point for the gateway webhook. Non-payment events are ignored (``None``)."""
        event = self._verified_event(payload)
        if event.event not in COMPLETION_EVENTS:
            logger.info("Ignoring gateway event %r for payment %s", event.event, event.payment_id)
            return None
        if not event.correlation_id:
            # the order.paid event for the same payment carries the order receipt
            logger.warning(
                "Ignoring %r for payment %s: no quotation id in payload", event.event, event.payment_id
            )
            return None
        return self.complete_checkout(event.correlation_id, event.payment_id, payload)

    def complete_checkout(
        self,
        quotation_id: str,
        gateway_payment_id: str,
        payload: SignedPayload,
        *,
        park_on_outage: bool = True,
    ) -> ReconciliationResult:
        """
        Reconcile a gateway-confirmed payment against a quotation.

        Safe to call repeatedly with the same arguments: once the quotation is
        ``Paid`` further calls succeed without writing.
        """
        event = self._verified_event(payload)
        if event.correlation_id != quotation_id:
            raise ValidationError(
                f"Completion payload is for quotation {event.correlation_id!r}, not {quotation_id!r}"
            )
        if event.payment_id != gateway_payment_id:
            raise ValidationError(
                f"Completion payload is for payment {event.payment_id!r}, not {gateway_payment_id!r}"
            )
        if not is_successful_status(event.status):
            raise ValidationError(f"Payment {gateway_payment_id} is {event.status.value}, not captured")

        try:
            return self._reconcile(quotation_id, event)
        except UpstreamUnavailable as exc:
            if park_on_outage and self.outbox is not None:
                self.outbox.record(quotation_id, gateway_payment_id, payload, error=exc.message)
            logger.error(
                "Payment %s for quotation %s confirmed by gateway but not recorded: %s",
                gateway_payment_id, quotation_id, exc.message,
            )
            raise

    def replay_outbox(self) -> Dict[str, int]:
        """Re-run parked completions. Returns counts per outcome."""
        counts = {"reconciled": 0, "pending": 0, "failed": 0}
        if self.outbox is None:
            return counts

        for entry in self.outbox.pending():
            try:
                self.complete_checkout(entry.quotation_id, entry.payment_id, entry.signed_payload, park_on_outage=False)
            except UpstreamUnavailable as exc:
                self.outbox.mark_attempt(entry, exc.message)
                counts["pending"] += 1
                continue
            except PortalError as exc:
                logger.error(
                    "Outbox entry %s for quotation %s needs manual review: %s (%s)",
                    entry.entry_id, entry.quotation_id, exc.message, exc.code,
                )
                self.outbox.quarantine(entry, f"{exc.code}: {exc.message}")
                counts["failed"] += 1
                continue
            self.outbox.remove(entry)
            counts["reconciled"] += 1

        logger.info("Outbox replay finished: %s", counts)
        return counts

    def _verified_event(self, payload: SignedPayload) -> PaymentCompletionEvent:
        if payload is None or not self.gateway.verify_signature(payload.body, payload.signature):
            logger.warning("Rejected payment completion with invalid or missing signature")
            raise SignatureMismatch("Payment completion signature is invalid")
        try:
            return normalize_payment_event(parse_webhook_payload(payload.body))
        except IntegrationResponseError as exc:
            raise ValidationError(f"Malformed completion payload: {exc}") from exc

    def _reconcile(
        self,
        quotation_id: str,
        event: PaymentCompletionEvent,
        retry_on_reprice: bool = True,
    ) -> ReconciliationResult:
        quotation = self.lifecycle.load(quotation_id)

        if quotation.status == QuotationStatus.PAID:
            if quotation.payment_id != event.payment_id:
                logger.warning(
                    "Quotation %s already paid by %s; ignoring payment %s",
                    quotation_id, quotation.payment_id, event.payment_id,
                )
            return ReconciliationResult(quotation=quotation, already_processed=True)

        if quotation.status != QuotationStatus.QUOTED:
            raise Conflict(
                f"Quotation {quotation_id} is {quotation.status.value!r}; cannot record payment",
                details={"current": quotation.status.value, "payment_id": event.payment_id},
            )
        check_transition(Actor.PAYMENT_ORCHESTRATOR, quotation.status, QuotationStatus.PAID)

        if not quotation.is_priced or event.currency != quotation.currency or \
                event.amount_minor != to_minor_units(quotation.total, quotation.currency):
            logger.error(
                "Payment %s (%d %s) does not match quotation %s (%s %s)",
                event.payment_id, event.amount_minor, event.currency,
                quotation_id, quotation.total, quotation.currency,
            )
            raise Conflict(
                f"Paid amount does not match the current price of quotation {quotation_id}",
                details={"payment_id": event.payment_id},
            )

        try:
            updated = self.lifecycle.apply_transition(
                quotation_id,
                QuotationStatus.QUOTED,
                QuotationStatus.PAID,
                # the amount check above is only valid for this exact version
                expected_version=quotation.version,
                payment_id=event.payment_id,
            )
        except Conflict:
            latest = self.lifecycle.load(quotation_id)
            if latest.status == QuotationStatus.PAID and latest.payment_id == event.payment_id:
                return ReconciliationResult(quotation=latest, already_processed=True)
            if latest.status == QuotationStatus.QUOTED and retry_on_reprice:
                logger.info("Quotation %s re-priced during reconciliation; re-checking amount", quotation_id)
                return self._reconcile(quotation_id, event, retry_on_reprice=False)
            raise

        logger.info("Quotation %s paid (payment %s)", quotation_id, event.payment_id)
        return ReconciliationResult(quotation=updated, already_processed=False)
