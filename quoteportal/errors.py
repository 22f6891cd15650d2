"""Typed errors raised by the portal core.

Every operation surfaces one of these to its caller. The HTTP layer maps them
to status codes through ``quoteportal.error_handler.ErrorHandler``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class PortalError(Exception):
    code = "portal_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class Unauthorized(PortalError):
    """Caller lacks the required role (usually: no session at all)."""

    code = "unauthorized"
    status_code = 401


class Forbidden(PortalError):
    """Role is sufficient but the caller is not entitled to this resource/action."""

    code = "forbidden"
    status_code = 403


class SignatureMismatch(Forbidden):
    code = "signature_mismatch"


class NotFound(PortalError):
    code = "not_found"
    status_code = 404


class InvalidState(PortalError):
    """Operation is not valid for the quotation's current status."""

    code = "invalid_state"
    status_code = 409


class Conflict(PortalError):
    """Optimistic-update precondition failed."""

    code = "conflict"
    status_code = 409


class ValidationError(PortalError):
    code = "validation_error"
    status_code = 422


class UpstreamUnavailable(PortalError):
    """Store, gateway or object store could not be reached. Safe to retry."""

    code = "upstream_unavailable"
    status_code = 503
    retryable = True


class UpstreamRejected(PortalError):
    """Gateway refused the request or is not configured. Retrying will not help."""

    code = "upstream_rejected"
    status_code = 502
