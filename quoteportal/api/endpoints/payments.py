import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from quoteportal.api.dependencies import PortalServices, get_services
from quoteportal.integrations.contracts.interfaces import SignedPayload

logger = logging.getLogger(__name__)

api = APIRouter()
payments_api = api


@api.post("/webhook", tags=["Payments"])
async def payment_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(default=None, alias="X-Razorpay-Signature"),
    services: PortalServices = Depends(get_services),
):
    """
    Gateway callback. The signature covers the raw body, so the body is read
    as bytes and never re-serialized before verification.
    """
    body = await request.body()
    result = services.orchestrator.handle_webhook(SignedPayload(body=body, signature=x_razorpay_signature))
    if result is None:
        return {"status": "ignored"}
    return {"status": "processed", **result.to_dict()}
