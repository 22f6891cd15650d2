"""
FastAPI application - Main entry point
"""

from dotenv import load_dotenv

load_dotenv()

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quoteportal import __version__
from quoteportal.api.admin_router import api as admin_api
from quoteportal.api.dependencies import PortalServices
from quoteportal.api.endpoints.files import files_api
from quoteportal.api.endpoints.payments import payments_api
from quoteportal.api.quotations_router import api as quotations_api
from quoteportal.auth.gate import AuthorizationGate
from quoteportal.auth.session_events import AuthStateChannel
from quoteportal.auth.identity import JWTIdentityProvider
from quoteportal.error_handler import ErrorHandler
from quoteportal.errors import PortalError
from quoteportal.files.broker import FileAccessBroker
from quoteportal.payments.orchestrator import PaymentOrchestrator
from quoteportal.payments.outbox import ReconciliationOutbox
from quoteportal.quotations.contacts import ContactInbox
from quoteportal.quotations.lifecycle import QuotationLifecycle
from quoteportal.quotations.pricing import PricingEditor
from quoteportal.utils.config_loader import (
    PortalConfig,
    load_portal_config,
    should_use_real_integrations,
    uses_persistent_store,
)

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

error_handler = ErrorHandler()


# ============================================================================
# DEPENDENCY WIRING
# ============================================================================


def build_store(config: PortalConfig):
    """Use real Postgres when configured, else the in-memory stand-in."""
    if uses_persistent_store(config):
        from quoteportal.database.postgres_real import PostgresDB

        return PostgresDB(connection_string=config.database.url)

    from quoteportal.database.postgres import PostgresDB

    return PostgresDB()


def build_integrations(config: PortalConfig):
    """Payment gateway and object store: the only place mocks and real clients are chosen."""
    if should_use_real_integrations(config):
        from quoteportal.integrations.clients.real_http import RazorpayClient, S3ObjectStore

        gateway = RazorpayClient(
            key_id=config.payments.key_id,
            key_secret=config.payments.key_secret,
            webhook_secret=config.payments.webhook_secret,
            base_url=config.payments.api_url,
            timeout_seconds=config.payments.timeout_seconds,
        )
        object_store = S3ObjectStore(
            bucket=config.storage.bucket,
            region=config.storage.region,
            endpoint_url=config.storage.endpoint_url,
        )
        logger.info("Using Razorpay gateway and S3 bucket %s", config.storage.bucket)
        return gateway, object_store

    from quoteportal.integrations.clients.mocks import MockObjectStore, MockPaymentGateway

    gateway = MockPaymentGateway(webhook_secret=config.payments.webhook_secret or "mock-webhook-secret")
    object_store = MockObjectStore()
    logger.info("Using mock payment gateway and object store")
    return gateway, object_store


def build_services(config: PortalConfig) -> PortalServices:
    store = build_store(config)
    gate = AuthorizationGate(role_claim=config.auth.role_claim, admin_role=config.auth.admin_role)
    identity = JWTIdentityProvider(
        secret=config.auth.jwt_secret,
        audience=config.auth.jwt_audience,
        algorithms=config.auth.algorithms,
        leeway_seconds=config.auth.leeway_seconds,
    )
    gateway, object_store = build_integrations(config)
    outbox = ReconciliationOutbox(Path(config.outbox.directory))

    lifecycle = QuotationLifecycle(store, gate)
    return PortalServices(
        config=config,
        store=store,
        gate=gate,
        identity=identity,
        gateway=gateway,
        object_store=object_store,
        outbox=outbox,
        lifecycle=lifecycle,
        pricing=PricingEditor(lifecycle),
        contacts=ContactInbox(store, gate),
        broker=FileAccessBroker(store, object_store, gate, default_ttl_seconds=config.storage.signed_url_ttl_seconds),
        auth_events=AuthStateChannel(gate),
        orchestrator=PaymentOrchestrator(lifecycle, gateway, outbox, merchant_name=config.payments.merchant_name),
    )


def _log_database_target(config: PortalConfig) -> None:
    if not uses_persistent_store(config):
        logger.info("DATABASE_URL not set or USE_POSTGRES off; using in-memory store")
        return
    try:
        parsed = urlparse(config.database.url)
        logger.info(
            "DATABASE_URL target: scheme=%s host=%s port=%s db=%s",
            parsed.scheme,
            parsed.hostname,
            parsed.port or 5432,
            (parsed.path or "").lstrip("/"),
        )
    except ValueError as e:
        logger.warning("Could not parse DATABASE_URL for startup logging: %s", e)


# ============================================================================
# APPLICATION
# ============================================================================


def create_app(config: Optional[PortalConfig] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = config or load_portal_config()
        logger.info("Starting quotation portal API...")
        _log_database_target(cfg)

        services = build_services(cfg)
        services.store.create_tables()
        app.state.services = services
        logger.info("Quotation store ready (%s)", type(services.store).__module__)
        try:
            yield
        finally:
            logger.info("Shutting down quotation portal API...")
            dispose = getattr(services.store, "dispose", None)
            if dispose is not None:
                dispose()

    app = FastAPI(
        title="Quotation Portal API",
        description="PCB and assembly quotations: pricing, fulfillment, file access and payments",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError):
        status_code, body = error_handler.handle_portal_error(exc, {"path": request.url.path})
        return JSONResponse(status_code=status_code, content=body)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        status_code, body = error_handler.handle_exception(exc, {"path": request.url.path})
        return JSONResponse(status_code=status_code, content=body)

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {
            "service": "Quotation Portal API",
            "status": "healthy",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    app.include_router(quotations_api, prefix="/api/v1")
    app.include_router(admin_api, prefix="/api/v1")
    app.include_router(payments_api, prefix="/api/v1/payments", tags=["Payments"])
    app.include_router(files_api, prefix="/api/v1/files", tags=["Files"])
    return app


app = create_app()
