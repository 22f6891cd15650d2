import hashlib
import hmac
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Union

from .interfaces import CheckoutRequest, GatewayPaymentStatus

"""
Payment contract helpers.

Shared by:
- clients/mocks/payments.py (fake gateway for development/testing)
- clients/real_http/payments.py (Razorpay Orders API)
- payments/orchestrator.py (amount conversion, signature checks)
"""

# Both supported currencies have 100 minor units (paise / cents).
MINOR_UNITS = {"INR": 100, "USD": 100}


def to_minor_units(amount: Union[Decimal, float, str], currency: str) -> int:
    factor = MINOR_UNITS.get(str(currency).upper())
    if factor is None:
        raise ValueError(f"Unsupported currency: {currency!r}")
    value = (Decimal(str(amount)) * factor).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(value)


def from_minor_units(amount_minor: int, currency: str) -> Decimal:
    factor = MINOR_UNITS.get(str(currency).upper())
    if factor is None:
        raise ValueError(f"Unsupported currency: {currency!r}")
    return (Decimal(int(amount_minor)) / factor).quantize(Decimal("0.01"))


def compute_signature(payload: bytes, secret: str) -> str:
    """HMAC-SHA256 hex digest of the raw payload, as sent in the webhook header."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    if not secret or not signature:
        return False
    expected = compute_signature(payload, secret)
    return hmac.compare_digest(expected, signature.strip())


def validate_checkout_request(request: CheckoutRequest) -> List[str]:
    """
    Return a list of validation errors.
    Empty list means the request is valid.
    """
    errors: List[str] = []

    if not request.correlation_id:
        errors.append("correlation_id is required")
    if request.amount_minor <= 0:
        errors.append("amount must be greater than zero")
    if str(request.currency).upper() not in MINOR_UNITS:
        errors.append(f"currency '{request.currency}' is not supported")
    if not request.description:
        errors.append("description is required")

    return errors


def is_successful_status(status: GatewayPaymentStatus) -> bool:
    """Return True if the gateway reports money actually collected."""
    return status == GatewayPaymentStatus.CAPTURED
