"""
Customer-facing quotation endpoints: submit, read, list own, start checkout.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from quoteportal.api.dependencies import PortalServices, get_caller, get_services
from quoteportal.auth.gate import Caller

api = APIRouter()


class QuotationSubmitRequest(BaseModel):
    type: str = Field(..., description="PCB or Assembly")
    config: Dict[str, Any] = Field(default_factory=dict, description="Board/assembly specification fields")
    additional_message: Optional[str] = None
    file_path: Optional[str] = Field(default=None, description="Object path of the uploaded design file")
    user_name: Optional[str] = None


@api.post("/quotations", status_code=201, tags=["Quotations"])
async def submit_quotation(
    request: QuotationSubmitRequest,
    caller: Caller = Depends(get_caller),
    services: PortalServices = Depends(get_services),
):
    quotation = services.lifecycle.submit(
        caller,
        type=request.type,
        config=request.config,
        additional_message=request.additional_message,
        file_path=request.file_path,
        user_name=request.user_name,
    )
    return quotation.to_dict()


@api.get("/quotations/mine", tags=["Quotations"])
async def list_my_quotations(
    caller: Caller = Depends(get_caller),
    services: PortalServices = Depends(get_services),
):
    return services.lifecycle.list_mine(caller).to_dict()


@api.get("/quotations/{quotation_id}", tags=["Quotations"])
async def get_quotation(
    quotation_id: str,
    caller: Caller = Depends(get_caller),
    services: PortalServices = Depends(get_services),
):
    return services.lifecycle.get(caller, quotation_id).to_dict()


@api.post("/quotations/{quotation_id}/checkout", tags=["Payments"])
async def start_checkout(
    quotation_id: str,
    caller: Caller = Depends(get_caller),
    services: PortalServices = Depends(get_services),
):
    session = await services.orchestrator.initiate_checkout(caller, quotation_id)
    return session.to_dict()
