"""
Administrator endpoints: all quotations, pricing, fulfillment and the contact inbox.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from quoteportal.api.dependencies import PortalServices, get_caller, get_services
from quoteportal.auth.gate import Caller

api = APIRouter()


class SetQuoteRequest(BaseModel):
    total: float = Field(..., description="Quoted total in major units")
    currency: str = Field(..., description="INR or USD")
    status: str = Field(default="Quoted", description="Status to write together with the price")
    expected_status: Optional[str] = Field(default=None, description="Status the administrator last saw")
    expected_version: Optional[int] = Field(default=None, description="Version the administrator last saw")


class AdvanceRequest(BaseModel):
    status: str
    expected_status: Optional[str] = None
    expected_version: Optional[int] = None


@api.get("/admin/quotations", tags=["Admin"])
async def list_all_quotations(
    caller: Caller = Depends(get_caller),
    services: PortalServices = Depends(get_services),
):
    return [q.to_dict() for q in services.lifecycle.list_all(caller)]


@api.put("/admin/quotations/{quotation_id}/quote", tags=["Admin"])
async def set_quote(
    quotation_id: str,
    request: SetQuoteRequest,
    caller: Caller = Depends(get_caller),
    services: PortalServices = Depends(get_services),
):
    quotation = services.pricing.set_quote(
        caller,
        quotation_id,
        total=request.total,
        currency=request.currency,
        status=request.status,
        expected_status=request.expected_status,
        expected_version=request.expected_version,
    )
    return quotation.to_dict()


@api.post("/admin/quotations/{quotation_id}/advance", tags=["Admin"])
async def advance_quotation(
    quotation_id: str,
    request: AdvanceRequest,
    caller: Caller = Depends(get_caller),
    services: PortalServices = Depends(get_services),
):
    quotation = services.lifecycle.advance(
        caller, quotation_id, request.status, request.expected_status, request.expected_version
    )
    return quotation.to_dict()


@api.get("/admin/contact-submissions", tags=["Admin"])
async def list_contact_submissions(
    caller: Caller = Depends(get_caller),
    services: PortalServices = Depends(get_services),
):
    return [c.to_dict() for c in services.contacts.list_submissions(caller)]
