"""
Mock Payment Gateway.

Purpose:
- Provides a fake checkout gateway used for development/testing
- Does NOT make any network calls
- Signs simulated completion webhooks with the same HMAC scheme as the real
  gateway, so the reconciliation path is exercised end to end

Usage:
- Wired in quoteportal/api/main.py when INTEGRATIONS_MODE is mock (the default)
- Tests call ``simulate_completion`` to produce a signed webhook body

Swap:
Replace with clients/real_http/payments.py (RazorpayClient) when gateway
credentials are configured.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, Optional

from quoteportal.errors import UpstreamUnavailable
from quoteportal.integrations.contracts.interfaces import (
    CheckoutRequest,
    CheckoutSession,
    PaymentGateway,
    SignedPayload,
)
from quoteportal.integrations.contracts.payments import compute_signature, verify_signature

logger = logging.getLogger(__name__)


class MockPaymentGateway(PaymentGateway):
    """
    In-memory checkout gateway.

    Parameters
    ----------
    webhook_secret : str
        Secret used to sign simulated completion payloads.
    available : bool
        When False every call raises ``UpstreamUnavailable``.
    """

    def __init__(self, webhook_secret: str = "mock-webhook-secret", key_id: str = "rzp_test_mock", available: bool = True):
        self.webhook_secret = webhook_secret
        self._key_id = key_id
        self.available = available
        self.sessions: Dict[str, CheckoutSession] = {}

        logger.info("[GATEWAY MOCK] Client initialised (key_id=%s)", key_id)

    @property
    def key_id(self) -> str:
        return self._key_id

    async def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession:
        if not self.available:
            raise UpstreamUnavailable("Mock payment gateway is unavailable")

        order_id = f"order_MOCK{uuid.uuid4().hex[:14]}"
        session = CheckoutSession(
            session_id=order_id,
            correlation_id=request.correlation_id,
            amount_minor=request.amount_minor,
            currency=request.currency,
            key_id=self._key_id,
            description=request.description,
            prefill=request.prefill,
            notes={"quotation_id": request.correlation_id, **request.notes},
            metadata={"receipt": request.correlation_id},
        )
        self.sessions[order_id] = session
        logger.info("[GATEWAY MOCK] Order %s created for %s (%d %s)", order_id, request.correlation_id, request.amount_minor, request.currency)
        return session

    def verify_signature(self, payload: bytes, signature: Optional[str]) -> bool:
        return verify_signature(payload, signature, self.webhook_secret)

    # ------------------------------------------------------------------
    # Simulation helpers
    # ------------------------------------------------------------------

    def build_event(
        self,
        correlation_id: Optional[str],
        payment_id: str,
        amount_minor: int,
        currency: str,
        *,
        order_id: Optional[str] = None,
        status: str = "captured",
        event: str = "payment.captured",
    ) -> Dict[str, Any]:
        return {
            "entity": "event",
            "event": event,
            "payload": {
                "payment": {
                    "entity": {
                        "id": payment_id,
                        "entity": "payment",
                        "order_id": order_id,
                        "amount": amount_minor,
                        "currency": currency,
                        "status": status,
                        "notes": {"quotation_id": correlation_id} if correlation_id else {},
                    }
                }
            },
        }

    def sign(self, event: Dict[str, Any]) -> SignedPayload:
        body = json.dumps(event, separators=(",", ":")).encode("utf-8")
        return SignedPayload(body=body, signature=compute_signature(body, self.webhook_secret))

    def simulate_completion(self, session: CheckoutSession, payment_id: str, status: str = "captured") -> SignedPayload:
        """Signed webhook the gateway would send once the customer pays ``session``."""
        event = self.build_event(
            session.correlation_id,
            payment_id,
            session.amount_minor,
            session.currency,
            order_id=session.session_id,
            status=status,
        )
        return self.sign(event)
