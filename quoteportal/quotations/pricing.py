"""Administrator pricing of quotations."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from quoteportal.database.records import Currency, Quotation, QuotationStatus, to_amount
from quoteportal.errors import InvalidState, ValidationError
from quoteportal.auth.gate import Caller
from quoteportal.quotations.lifecycle import Actor, QuotationLifecycle, check_transition, parse_status

logger = logging.getLogger(__name__)

PRICEABLE_STATUSES = frozenset({QuotationStatus.PENDING_REVIEW, QuotationStatus.QUOTED})


def validate_total(total: Any) -> Decimal:
    if isinstance(total, bool):
        raise ValidationError(f"Invalid total: {total!r}")
    try:
        amount = to_amount(total)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if amount < 0:
        raise ValidationError(f"Total must be >= 0; got {amount}")
    return amount


def validate_currency(currency: Any) -> Currency:
    try:
        return Currency(str(currency or "").strip().upper())
    except ValueError as exc:
        raise ValidationError(f"Unsupported currency: {currency!r}") from exc


class PricingEditor:
    def __init__(self, lifecycle: QuotationLifecycle) -> None:
        self.lifecycle = lifecycle

    def set_quote(
        self,
        caller: Caller,
        quotation_id: str,
        total: Any,
        currency: Any,
        status: Any,
        expected_status: Optional[Any] = None,
        expected_version: Optional[int] = None,
    ) -> Quotation:
        """
        Write total, currency and status in one conditional update.

        ``expected_status`` and ``expected_version`` describe the quotation the
        administrator was looking at; when omitted the values read here are
        used. If another write lands before ours (a status change or a
        competing re-price) the call fails with ``Conflict``.
        """
        self.lifecycle.gate.require_administrator(caller)
        amount = validate_total(total)
        quote_currency = validate_currency(currency)
        target = parse_status(status)
        if target == QuotationStatus.QUOTED and amount == 0:
            raise ValidationError("A quotation offered for payment must have a total > 0")

        current = self.lifecycle.load(quotation_id)
        expected = parse_status(expected_status) if expected_status is not None else current.status
        version = int(expected_version) if expected_version is not None else current.version
        if expected not in PRICEABLE_STATUSES:
            raise InvalidState(
                f"Quotation {quotation_id} cannot be priced in status {expected.value!r}",
                details={"current": expected.value},
            )
        check_transition(Actor.ADMINISTRATOR, expected, target)

        config = dict(current.config)
        config["total"] = float(amount)
        config["currency"] = quote_currency.value

        updated = self.lifecycle.apply_transition(
            quotation_id, expected, target, expected_version=version, config=config
        )
        logger.info(
            "Quotation %s priced at %s %s by user_id=%s",
            quotation_id, amount, quote_currency.value, caller.user_id,
        )
        return updated
