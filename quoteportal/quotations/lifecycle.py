"""
Quotation lifecycle: valid statuses, who may move a quotation between them,
and the listing views for customers and administrators.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from quoteportal.auth.gate import AuthorizationGate, Caller, Role
from quoteportal.database.base import QuotationStore
from quoteportal.database.records import (
    ACTIVE_STATUSES,
    Quotation,
    QuotationStatus,
    QuotationType,
)
from quoteportal.errors import Conflict, Forbidden, NotFound, ValidationError

logger = logging.getLogger(__name__)

S = QuotationStatus


class Actor(str, Enum):
    ADMINISTRATOR = "administrator"
    PAYMENT_ORCHESTRATOR = "payment_orchestrator"


# Forward-only, one stage at a time. Same-status entries are re-pricing.
TRANSITIONS: Dict[Actor, FrozenSet[Tuple[QuotationStatus, QuotationStatus]]] = {
    Actor.ADMINISTRATOR: frozenset({
        (S.PENDING_REVIEW, S.PENDING_REVIEW),
        (S.PENDING_REVIEW, S.QUOTED),
        (S.QUOTED, S.QUOTED),
        (S.PAID, S.IN_PRODUCTION),
        (S.IN_PRODUCTION, S.SHIPPED),
        (S.SHIPPED, S.DELIVERED),
    }),
    Actor.PAYMENT_ORCHESTRATOR: frozenset({
        (S.QUOTED, S.PAID),
    }),
}


def parse_status(value: Any) -> QuotationStatus:
    if isinstance(value, QuotationStatus):
        return value
    raw = str(value or "").strip()
    for status in QuotationStatus:
        if raw in (status.value, status.name, status.name.replace("_", "")):
            return status
    compact = raw.replace(" ", "").replace("_", "").lower()
    for status in QuotationStatus:
        if compact == status.value.replace(" ", "").lower():
            return status
    raise ValidationError(f"Unknown quotation status: {value!r}")


def check_transition(actor: Actor, current: QuotationStatus, target: QuotationStatus) -> None:
    if (current, target) not in TRANSITIONS[actor]:
        raise Forbidden(
            f"{actor.value} may not move a quotation from {current.value!r} to {target.value!r}",
            details={"current": current.value, "target": target.value},
        )


@dataclass
class MyQuotations:
    active: List[Quotation] = field(default_factory=list)
    past: List[Quotation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active": [q.to_dict() for q in self.active],
            "past": [q.to_dict() for q in self.past],
        }


class QuotationLifecycle:
    def __init__(self, store: QuotationStore, gate: AuthorizationGate) -> None:
        self.store = store
        self.gate = gate

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #
    def load(self, quotation_id: str) -> Quotation:
        """Unchecked read used by the other core components."""
        quotation = self.store.get_quotation(quotation_id)
        if quotation is None:
            raise NotFound(f"Quotation {quotation_id} not found")
        return quotation

    def get(self, caller: Caller, quotation_id: str) -> Quotation:
        self.gate.require_role(caller, Role.CUSTOMER)
        quotation = self.load(quotation_id)
        self.gate.require_owner_or_admin(caller, quotation.user_id)
        return quotation

    def list_all(self, caller: Caller) -> List[Quotation]:
        self.gate.require_role(caller, Role.ADMINISTRATOR)
        return self.store.list_quotations()

    def list_mine(self, caller: Caller, owner_user_id: Optional[str] = None) -> MyQuotations:
        self.gate.require_role(caller, Role.CUSTOMER)
        owner = owner_user_id or caller.user_id
        if owner != caller.user_id and not caller.is_admin:
            raise Forbidden("Cannot list another customer's quotations")

        views = MyQuotations()
        for quotation in self.store.list_quotations(user_id=owner):
            if quotation.status in ACTIVE_STATUSES:
                views.active.append(quotation)
            else:
                views.past.append(quotation)
        return views

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #
    def submit(
        self,
        caller: Caller,
        *,
        type: Any,
        config: Optional[Dict[str, Any]] = None,
        additional_message: Optional[str] = None,
        file_path: Optional[str] = None,
        user_name: Optional[str] = None,
    ) -> Quotation:
        """Customer submission: always starts unpriced in ``Pending Review``."""
        self.gate.require_role(caller, Role.CUSTOMER)
        try:
            quotation_type = QuotationType(type)
        except ValueError as exc:
            raise ValidationError(f"Unknown quotation type: {type!r}") from exc

        board_fields = {k: v for k, v in (config or {}).items() if k not in ("total", "currency")}
        quotation = self.store.create_quotation(
            user_id=caller.user_id,
            type=quotation_type,
            config=board_fields,
            additional_message=additional_message,
            user_name=user_name,
            file_path=file_path or None,
        )
        logger.info("Quotation %s submitted by user_id=%s type=%s", quotation.id, caller.user_id, quotation_type.value)
        return quotation

    def advance(
        self,
        caller: Caller,
        quotation_id: str,
        target: Any,
        expected_status: Optional[Any] = None,
        expected_version: Optional[int] = None,
    ) -> Quotation:
        """Administrator fulfillment step (Paid -> In Production -> Shipped -> Delivered)."""
        self.gate.require_administrator(caller)
        target_status = parse_status(target)
        current = self.load(quotation_id)
        expected = parse_status(expected_status) if expected_status is not None else current.status

        check_transition(Actor.ADMINISTRATOR, expected, target_status)
        return self.apply_transition(quotation_id, expected, target_status, expected_version=expected_version)

    def apply_transition(
        self,
        quotation_id: str,
        expected: QuotationStatus,
        target: QuotationStatus,
        expected_version: Optional[int] = None,
        **fields: Any,
    ) -> Quotation:
        """
        Conditional write shared by every actor.

        Raises ``Conflict`` when the status moved on or, if ``expected_version``
        is given, when another write landed in between.
        """
        updated = self.store.update_quotation_if_status(
            quotation_id, expected, expected_version=expected_version, status=target, **fields
        )
        if updated is None:
            latest = self.load(quotation_id)
            logger.warning(
                "Conflict on quotation %s: expected %r (version %s), found %r (version %s)",
                quotation_id, expected.value, expected_version, latest.status.value, latest.version,
            )
            details: Dict[str, Any] = {"expected": expected.value, "current": latest.status.value}
            if latest.status != expected:
                message = f"Quotation {quotation_id} is no longer {expected.value!r}"
            else:
                message = f"Quotation {quotation_id} was modified concurrently"
            if expected_version is not None:
                details.update(expected_version=expected_version, current_version=latest.version)
            raise Conflict(message, details=details)
        logger.info("Quotation %s: %s -> %s", quotation_id, expected.value, target.value)
        return updated
