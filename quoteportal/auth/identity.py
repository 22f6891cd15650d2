"""Identity provider adapter: verifies session tokens and returns their claims."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import jwt

from quoteportal.errors import Unauthorized

logger = logging.getLogger(__name__)


class JWTIdentityProvider:
    """
    Verifies access tokens issued by the hosted identity provider.

    The provider signs tokens with a shared secret (HS256 by default); the
    audience check is skipped when no audience is configured.
    """

    def __init__(
        self,
        secret: str,
        audience: Optional[str] = None,
        algorithms: Optional[List[str]] = None,
        leeway_seconds: int = 0,
    ) -> None:
        self.secret = secret
        self.audience = audience
        self.algorithms = algorithms or ["HS256"]
        self.leeway_seconds = leeway_seconds

    def decode(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        """Return verified claims, ``None`` for a missing token."""
        if not token:
            return None
        if not self.secret:
            raise Unauthorized("Token verification is not configured")

        options = {"verify_aud": bool(self.audience)}
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=self.algorithms,
                audience=self.audience,
                options=options,
                leeway=self.leeway_seconds,
            )
        except jwt.ExpiredSignatureError as exc:
            raise Unauthorized("Session expired") from exc
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected session token: %s", exc)
            raise Unauthorized("Invalid session token") from exc


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
