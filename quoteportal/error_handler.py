"""Error handling helpers for the HTTP layer."""
from typing import Any, Dict, Tuple
import logging

from quoteportal.errors import PortalError

logger = logging.getLogger(__name__)


class ErrorHandler:
    def handle_portal_error(self, exc: PortalError, context: Dict[str, Any] = None) -> Tuple[int, Dict[str, Any]]:
        if exc.status_code >= 500:
            logger.warning("Upstream failure (%s): %s context=%s", exc.code, exc.message, context or {})
        else:
            logger.info("Request rejected (%s): %s", exc.code, exc.message)
        payload = {
            "error": exc.code,
            "message": exc.message,
            "retryable": exc.retryable,
        }
        if exc.details:
            payload["details"] = exc.details
        return exc.status_code, payload

    def handle_exception(self, exc: Exception, context: Dict[str, Any] = None) -> Tuple[int, Dict[str, Any]]:
        if isinstance(exc, PortalError):
            return self.handle_portal_error(exc, context)
        logger.error("Unhandled exception in quote portal: %s", exc, exc_info=True)
        return 500, {
            "error": "internal_error",
            "message": "An internal error occurred while processing your request. Please try again later.",
            "retryable": False,
            "metadata": {"context": context or {}},
        }
