from __future__ import annotations

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError

from quoteportal.integrations.contracts.interfaces import GatewayPaymentStatus, PaymentCompletionEvent


class IntegrationResponseError(ValueError):
    def __init__(self, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.payload = payload or {}


class GatewayOrderModel(BaseModel):
    order_id: str
    amount_minor: int
    currency: str
    receipt: Optional[str] = None
    status: str = "created"
    raw: Dict[str, Any] = Field(default_factory=dict)


class GatewayPaymentModel(BaseModel):
    payment_id: str
    order_id: Optional[str] = None
    correlation_id: Optional[str] = None
    amount_minor: int
    currency: str
    status: GatewayPaymentStatus
    raw: Dict[str, Any] = Field(default_factory=dict)


def normalize_order_response(
    raw: Dict[str, Any],
    *,
    fallback_amount_minor: int,
    fallback_currency: str,
    fallback_receipt: Optional[str] = None,
) -> GatewayOrderModel:
    order_id = _first_non_empty(raw, "id", "order_id")
    amount = _coerce_minor_amount(_first_non_empty(raw, "amount", default=fallback_amount_minor), "order amount")
    currency = str(_first_non_empty(raw, "currency", default=fallback_currency)).upper()
    receipt = raw.get("receipt") or fallback_receipt
    status = str(_first_non_empty(raw, "status", default="created")).lower()

    return _build_model(
        GatewayOrderModel,
        {
            "order_id": str(order_id),
            "amount_minor": amount,
            "currency": currency,
            "receipt": receipt,
            "status": status,
            "raw": raw,
        },
        raw,
    )


def parse_webhook_payload(body: bytes) -> Dict[str, Any]:
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise IntegrationResponseError(f"Webhook body is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise IntegrationResponseError("Webhook body must be a JSON object")
    return data


def normalize_payment_event(raw: Dict[str, Any]) -> PaymentCompletionEvent:
    """
    Normalize a gateway webhook event.

    Expected shape (Razorpay ``payment.captured`` / ``order.paid``)::

        {"event": "payment.captured",
         "payload": {"payment": {"entity": {"id": ..., "order_id": ..., "amount": ...,
                                            "currency": ..., "status": ...,
                                            "notes": {"quotation_id": ...}}}}}
    """
    event = str(raw.get("event") or "").strip()
    payload = raw.get("payload") if isinstance(raw.get("payload"), dict) else {}
    payment_wrapper = payload.get("payment") if isinstance(payload.get("payment"), dict) else {}
    entity = payment_wrapper.get("entity") if isinstance(payment_wrapper.get("entity"), dict) else {}
    if not entity:
        raise IntegrationResponseError("Webhook payload has no payment entity.", payload=raw)

    notes = entity.get("notes") if isinstance(entity.get("notes"), dict) else {}
    order_entity = {}
    order_wrapper = payload.get("order")
    if isinstance(order_wrapper, dict) and isinstance(order_wrapper.get("entity"), dict):
        order_entity = order_wrapper["entity"]

    correlation_id = notes.get("quotation_id") or order_entity.get("receipt")

    model = _build_model(
        GatewayPaymentModel,
        {
            "payment_id": str(_first_non_empty(entity, "id", "payment_id")),
            "order_id": entity.get("order_id"),
            "correlation_id": str(correlation_id) if correlation_id else None,
            "amount_minor": _coerce_minor_amount(_first_non_empty(entity, "amount"), "payment amount"),
            "currency": str(_first_non_empty(entity, "currency")).upper(),
            "status": _map_payment_status(_first_non_empty(entity, "status")),
            "raw": raw,
        },
        raw,
    )
    return PaymentCompletionEvent(
        event=event,
        payment_id=model.payment_id,
        order_id=model.order_id,
        correlation_id=model.correlation_id,
        amount_minor=model.amount_minor,
        currency=model.currency,
        status=model.status,
        raw_payload=raw,
    )


def _first_non_empty(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    if default is not None:
        return default
    raise IntegrationResponseError(f"Missing required field. Checked keys: {', '.join(keys)}", payload=data)


def _coerce_minor_amount(value: Any, label: str) -> int:
    try:
        amount = int(value)
    except (TypeError, ValueError) as exc:
        raise IntegrationResponseError(f"Invalid {label}: {value!r}") from exc
    if amount <= 0:
        raise IntegrationResponseError(f"{label.capitalize()} must be > 0; got {amount}.")
    return amount


def _map_payment_status(raw_status: Any) -> GatewayPaymentStatus:
    value = str(raw_status or "").strip().upper()
    mapping = {
        "CREATED": GatewayPaymentStatus.CREATED,
        "AUTHORIZED": GatewayPaymentStatus.AUTHORIZED,
        "CAPTURED": GatewayPaymentStatus.CAPTURED,
        "PAID": GatewayPaymentStatus.CAPTURED,
        "FAILED": GatewayPaymentStatus.FAILED,
        "REFUNDED": GatewayPaymentStatus.REFUNDED,
    }
    if value not in mapping:
        raise IntegrationResponseError(f"Unsupported payment status '{value}'.")
    return mapping[value]


def _build_model(model_type, payload: Dict[str, Any], raw: Dict[str, Any]):
    try:
        return model_type(**payload)
    except ValidationError as exc:
        raise IntegrationResponseError(f"Response validation failed: {exc}", payload=raw) from exc
