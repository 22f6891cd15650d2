"""
Role resolution and authorization checks.

The caller's role comes from a role claim issued by the identity provider
(``app_metadata.role`` by default). Which claim to read and which value means
"administrator" are configuration, never a comparison against a specific
account baked into business rules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterable, Optional

from quoteportal.errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)


class Role(IntEnum):
    ANONYMOUS = 0
    CUSTOMER = 1
    ADMINISTRATOR = 2


@dataclass(frozen=True)
class Caller:
    role: Role
    user_id: Optional[str] = None
    email: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_authenticated(self) -> bool:
        return self.role > Role.ANONYMOUS and bool(self.user_id)

    @property
    def is_admin(self) -> bool:
        return self.role >= Role.ADMINISTRATOR


ANONYMOUS = Caller(role=Role.ANONYMOUS)


class AuthorizationGate:
    def __init__(self, role_claim: str = "app_metadata.role", admin_role: str = "admin") -> None:
        self.role_claim = role_claim
        self.admin_role = admin_role

    def resolve(self, claims: Optional[Dict[str, Any]]) -> Caller:
        """Resolve session claims into a ``Caller``. No subject means anonymous."""
        if not claims or not claims.get("sub"):
            return ANONYMOUS

        role = Role.CUSTOMER
        if self.admin_role in _as_role_set(_lookup(claims, self.role_claim)):
            role = Role.ADMINISTRATOR

        return Caller(
            role=role,
            user_id=str(claims["sub"]),
            email=claims.get("email"),
            claims=dict(claims),
        )

    def require_role(self, caller: Caller, minimum: Role) -> Caller:
        if caller.role < minimum:
            logger.info("Rejected caller user_id=%s role=%s (requires %s)", caller.user_id, caller.role.name, minimum.name)
            raise Unauthorized(f"{minimum.name.lower()} role required")
        return caller

    def require_administrator(self, caller: Caller) -> Caller:
        """Anonymous callers are ``Unauthorized``; signed-in non-admins are ``Forbidden``."""
        self.require_role(caller, Role.CUSTOMER)
        if not caller.is_admin:
            logger.info("Forbidden administrator action for user_id=%s", caller.user_id)
            raise Forbidden("Administrator privileges required")
        return caller

    def require_owner_or_admin(self, caller: Caller, owner_user_id: Optional[str]) -> Caller:
        self.require_role(caller, Role.CUSTOMER)
        if caller.is_admin or (owner_user_id is not None and caller.user_id == owner_user_id):
            return caller
        raise Forbidden("Not the owner of this resource")


def _lookup(claims: Dict[str, Any], path: str) -> Any:
    value: Any = claims
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _as_role_set(value: Any) -> set:
    if value is None:
        return set()
    if isinstance(value, str):
        return {value}
    if isinstance(value, Iterable):
        return {str(v) for v in value}
    return {str(value)}
