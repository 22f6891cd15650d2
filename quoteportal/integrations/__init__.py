"""
Integrations layer.
This package contains all code used to communicate with external systems:
- Payment gateway (checkout orders + signed completion webhooks)
- Object storage (signed, time-bounded file links)

Key rule:
- Core components MUST NOT call external APIs directly.
- They call clients through the contracts in ``contracts.interfaces``.
- We use MOCK clients during development and swap to REAL_HTTP clients when
  credentials are configured.

Switching implementations:
- The selection of mock vs real clients happens in ONE place (quoteportal/api/main.py).
"""

from .contracts.interfaces import (
    CheckoutPrefill,
    CheckoutRequest,
    CheckoutSession,
    GatewayPaymentStatus,
    ObjectStore,
    PaymentCompletionEvent,
    PaymentGateway,
    SignedPayload,
    SignedUrl,
)
from .contracts.payments import (
    compute_signature,
    from_minor_units,
    is_successful_status,
    to_minor_units,
    validate_checkout_request,
    verify_signature,
)

__all__ = [
    # interfaces
    "CheckoutPrefill", "CheckoutRequest", "CheckoutSession", "GatewayPaymentStatus",
    "ObjectStore", "PaymentCompletionEvent", "PaymentGateway", "SignedPayload", "SignedUrl",
    # payments
    "compute_signature", "from_minor_units", "is_successful_status", "to_minor_units",
    "validate_checkout_request", "verify_signature",
]
