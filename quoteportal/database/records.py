"""
Plain records shared by both store implementations.

``postgres.PostgresDB`` keeps these in memory; ``postgres_real.PostgresDB``
converts ORM rows into them so callers never hold a detached SQLAlchemy object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional

CENTS = Decimal("0.01")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuotationStatus(str, Enum):
    PENDING_REVIEW = "Pending Review"
    QUOTED = "Quoted"
    PAID = "Paid"
    IN_PRODUCTION = "In Production"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = [
    QuotationStatus.PENDING_REVIEW,
    QuotationStatus.QUOTED,
    QuotationStatus.PAID,
    QuotationStatus.IN_PRODUCTION,
    QuotationStatus.SHIPPED,
    QuotationStatus.DELIVERED,
]

# Statuses a customer still acts on; everything else is a past order.
ACTIVE_STATUSES = frozenset({QuotationStatus.PENDING_REVIEW, QuotationStatus.QUOTED})


class QuotationType(str, Enum):
    PCB = "PCB"
    ASSEMBLY = "Assembly"


class Currency(str, Enum):
    INR = "INR"
    USD = "USD"


def to_amount(value: Any) -> Decimal:
    """Coerce a stored/submitted amount to a 2-decimal ``Decimal``."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount.quantize(CENTS)


@dataclass
class Quotation:
    id: str
    type: QuotationType
    status: QuotationStatus
    user_id: str
    config: Dict[str, Any] = field(default_factory=dict)
    additional_message: Optional[str] = None
    user_name: Optional[str] = None
    file_path: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    payment_id: Optional[str] = None
    # bumped on every write; guards same-status re-pricing
    version: int = 1

    @property
    def total(self) -> Optional[Decimal]:
        raw = self.config.get("total")
        if raw is None:
            return None
        return to_amount(raw)

    @property
    def currency(self) -> Optional[str]:
        return self.config.get("currency")

    @property
    def is_priced(self) -> bool:
        return self.total is not None and self.currency is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "status": self.status.value,
            "config": dict(self.config),
            "total": float(self.total) if self.total is not None else None,
            "currency": self.currency,
            "additional_message": self.additional_message,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "file_path": self.file_path,
            "created_at": self.created_at.isoformat(),
            "payment_id": self.payment_id,
            "version": self.version,
        }


@dataclass
class ContactSubmission:
    id: int
    name: Optional[str] = None
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    service_type: Optional[str] = None
    message: Optional[str] = None
    file_path: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "company": self.company,
            "email": self.email,
            "phone": self.phone,
            "service_type": self.service_type,
            "message": self.message,
            "file_path": self.file_path,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class Profile:
    id: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
