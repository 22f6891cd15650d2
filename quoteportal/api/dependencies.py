import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, Request

from quoteportal.auth.gate import AuthorizationGate, Caller
from quoteportal.auth.identity import JWTIdentityProvider, extract_bearer_token
from quoteportal.auth.session_events import AuthStateChannel
from quoteportal.database.base import QuotationStore
from quoteportal.files.broker import FileAccessBroker
from quoteportal.integrations.contracts.interfaces import ObjectStore, PaymentGateway
from quoteportal.payments.orchestrator import PaymentOrchestrator
from quoteportal.payments.outbox import ReconciliationOutbox
from quoteportal.quotations.contacts import ContactInbox
from quoteportal.quotations.lifecycle import QuotationLifecycle
from quoteportal.quotations.pricing import PricingEditor
from quoteportal.utils.config_loader import PortalConfig

logger = logging.getLogger(__name__)


@dataclass
class PortalServices:
    """Everything a request handler may touch, built once per application lifespan."""

    config: PortalConfig
    store: QuotationStore
    gate: AuthorizationGate
    identity: JWTIdentityProvider
    gateway: PaymentGateway
    object_store: ObjectStore
    outbox: ReconciliationOutbox
    lifecycle: QuotationLifecycle
    pricing: PricingEditor
    contacts: ContactInbox
    broker: FileAccessBroker
    orchestrator: PaymentOrchestrator
    auth_events: AuthStateChannel


def get_services(request: Request) -> PortalServices:
    return request.app.state.services


def get_caller(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> Caller:
    """Resolve the bearer token into a caller; no token means anonymous."""
    services = get_services(request)
    claims = services.identity.decode(extract_bearer_token(authorization))
    caller = services.gate.resolve(claims)
    logger.debug("Caller for %s: user_id=%s role=%s", request.url.path, caller.user_id, caller.role.name)
    return caller
