from typing import Optional

from fastapi import APIRouter, Depends, Query

from quoteportal.api.dependencies import PortalServices, get_caller, get_services
from quoteportal.auth.gate import Caller

api = APIRouter()
files_api = api


@api.get("/signed-url", tags=["Files"])
async def issue_signed_url(
    path: str = Query(default=""),
    ttl: Optional[int] = Query(default=None, description="Seconds; storage.signed_url_ttl_seconds when omitted"),
    caller: Caller = Depends(get_caller),
    services: PortalServices = Depends(get_services),
):
    return services.broker.issue_signed_url(caller, path, ttl).to_dict()
