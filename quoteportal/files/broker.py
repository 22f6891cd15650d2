"""Short-lived signed links to uploaded specification files."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from quoteportal.auth.gate import AuthorizationGate, Caller, Role
from quoteportal.database.base import QuotationStore
from quoteportal.errors import Forbidden, NotFound, ValidationError
from quoteportal.integrations.contracts.interfaces import ObjectStore, SignedUrl

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60


class FileAccessBroker:
    def __init__(
        self,
        store: QuotationStore,
        object_store: ObjectStore,
        gate: AuthorizationGate,
        default_ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        self.store = store
        self.object_store = object_store
        self.gate = gate
        self.default_ttl_seconds = default_ttl_seconds

    def issue_signed_url(self, caller: Caller, object_path: str, ttl_seconds: Optional[int] = None) -> SignedUrl:
        """
        Sign ``object_path`` for ``ttl_seconds`` (the configured default when omitted).

        Administrators may open any referenced file; customers only files
        attached to their own quotations. Expiry is enforced by the object
        store, not here.
        """
        self.gate.require_role(caller, Role.CUSTOMER)
        path = (object_path or "").strip()
        if not path:
            raise NotFound("File path is missing for this entry.")
        if ttl_seconds is None:
            ttl_seconds = self.default_ttl_seconds
        try:
            ttl = int(ttl_seconds)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid ttl_seconds: {ttl_seconds!r}") from exc
        if isinstance(ttl_seconds, bool) or ttl <= 0:
            raise ValidationError(f"ttl_seconds must be positive; got {ttl_seconds!r}")

        quotation = self.store.find_quotation_by_file_path(path)
        if quotation is not None:
            self.gate.require_owner_or_admin(caller, quotation.user_id)
        elif self.store.find_contact_submission_by_file_path(path) is not None:
            if not caller.is_admin:
                raise Forbidden("Contact attachments are visible to administrators only")
        else:
            raise NotFound(f"No record references {path!r}")

        url = self.object_store.create_signed_url(path, ttl)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
        logger.info("Signed %s for user_id=%s ttl=%ss", path, caller.user_id, ttl)
        return SignedUrl(url=url, path=path, expires_at=expires_at)
