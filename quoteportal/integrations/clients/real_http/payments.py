"""
Real Payments HTTP Client (Razorpay Orders API).

Used when gateway credentials are configured.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import httpx

from quoteportal.errors import UpstreamRejected, UpstreamUnavailable
from quoteportal.integrations.contracts.interfaces import (
    CheckoutRequest,
    CheckoutSession,
    PaymentGateway,
)
from quoteportal.integrations.contracts.payments import verify_signature
from quoteportal.integrations.gateway.response_wrappers import (
    IntegrationResponseError,
    normalize_order_response,
)

logger = logging.getLogger(__name__)


class RazorpayClient(PaymentGateway):
    def __init__(
        self,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._key_id = key_id or os.getenv("RAZORPAY_KEY_ID", "")
        self.key_secret = key_secret or os.getenv("RAZORPAY_KEY_SECRET", "")
        self.webhook_secret = webhook_secret or os.getenv("RAZORPAY_WEBHOOK_SECRET", "")
        self.base_url = (base_url or os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com")).rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def key_id(self) -> str:
        return self._key_id

    async def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession:
        if not self._key_id or not self.key_secret:
            raise UpstreamRejected("RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET are not configured.")

        notes = {"quotation_id": request.correlation_id, **request.notes}
        payload: Dict[str, Any] = {
            "amount": request.amount_minor,
            "currency": request.currency,
            "receipt": request.correlation_id,
            "notes": notes,
        }

        url = f"{self.base_url}/v1/orders"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                auth=(self._key_id, self.key_secret),
                transport=self._transport,
            ) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
                data = response.json() if response.content else {}
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error("Gateway rejected order for %s: HTTP %s", request.correlation_id, status)
            if status >= 500 or status == 429:
                raise UpstreamUnavailable(f"Payment gateway error (HTTP {status})") from exc
            raise IntegrationResponseError(
                f"Payment gateway rejected the order (HTTP {status})",
                payload={"body": exc.response.text},
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Payment gateway unreachable: %s", exc)
            raise UpstreamUnavailable(f"Payment gateway unreachable: {exc}") from exc

        order = normalize_order_response(
            data,
            fallback_amount_minor=request.amount_minor,
            fallback_currency=request.currency,
            fallback_receipt=request.correlation_id,
        )

        return CheckoutSession(
            session_id=order.order_id,
            correlation_id=request.correlation_id,
            amount_minor=order.amount_minor,
            currency=order.currency,
            key_id=self._key_id,
            description=request.description,
            prefill=request.prefill,
            status=order.status,
            notes=notes,
            metadata={"gateway_raw": order.raw, "receipt": order.receipt},
        )

    def verify_signature(self, payload: bytes, signature: Optional[str]) -> bool:
        return verify_signature(payload, signature, self.webhook_secret)
