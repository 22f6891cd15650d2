from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class GatewayPaymentStatus(str, Enum):
    CREATED = "CREATED"
    AUTHORIZED = "AUTHORIZED"
    CAPTURED = "CAPTURED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


# ---------------------------------------------------------------------------
# Shared data models
# ---------------------------------------------------------------------------

@dataclass
class CheckoutPrefill:
    name: str = ""
    email: str = ""
    contact: str = ""


@dataclass
class CheckoutRequest:
    correlation_id: str                  # quotation id
    amount_minor: int                    # paise / cents
    currency: str
    description: str
    customer_id: Optional[str] = None
    prefill: CheckoutPrefill = field(default_factory=CheckoutPrefill)
    notes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CheckoutSession:
    """Handle the browser needs to open the gateway's own checkout UI."""
    session_id: str                      # gateway order id
    correlation_id: str
    amount_minor: int
    currency: str
    key_id: str
    description: str = ""
    prefill: CheckoutPrefill = field(default_factory=CheckoutPrefill)
    status: str = "created"
    # passed to the browser checkout so the payment entity carries them too
    notes: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "correlation_id": self.correlation_id,
            "amount": self.amount_minor,
            "currency": self.currency,
            "key": self.key_id,
            "description": self.description,
            "prefill": {
                "name": self.prefill.name,
                "email": self.prefill.email,
                "contact": self.prefill.contact,
            },
            "notes": dict(self.notes),
            "status": self.status,
        }


@dataclass
class SignedPayload:
    """Raw webhook body exactly as received, plus the gateway's signature header."""
    body: bytes
    signature: Optional[str]


@dataclass
class PaymentCompletionEvent:
    event: str
    payment_id: str
    order_id: Optional[str]
    correlation_id: Optional[str]
    amount_minor: int
    currency: str
    status: GatewayPaymentStatus
    raw_payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SignedUrl:
    url: str
    path: str
    expires_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "path": self.path, "expires_at": self.expires_at.isoformat()}


# ---------------------------------------------------------------------------
# Abstract collaborator interfaces
# ---------------------------------------------------------------------------

class PaymentGateway(ABC):
    """Every payment gateway client must implement this interface."""

    @property
    @abstractmethod
    def key_id(self) -> str:
        """Public key the browser checkout is opened with."""

    @abstractmethod
    async def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession:
        """Create a gateway order the customer completes in the gateway UI."""

    @abstractmethod
    def verify_signature(self, payload: bytes, signature: Optional[str]) -> bool:
        """Check a completion payload against the shared webhook secret."""


class ObjectStore(ABC):
    """Object storage issuing time-bounded read links."""

    @abstractmethod
    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        """Return a URL granting read access to ``path`` for ``ttl_seconds``."""
