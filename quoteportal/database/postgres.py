"""
Lightweight in-memory PostgresDB replacement for local development.

Implements the ``QuotationStore`` interface so the API and the core components
can run without a real database. Conditional updates are atomic under a lock,
which is what the concurrency tests rely on. It is NOT intended for production
use.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from itertools import count
from typing import Any, Dict, List, Optional

from quoteportal.database.base import QuotationStore
from quoteportal.database.records import (
    ContactSubmission,
    Profile,
    Quotation,
    QuotationStatus,
    QuotationType,
)


class PostgresDB(QuotationStore):
    """
    In-memory stand-in for the Postgres-backed data access layer.

    Records are copied on the way in and out so callers cannot mutate stored
    state without going through the store.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seq = count()
        self._quotations: Dict[str, Quotation] = {}
        self._quotation_order: Dict[str, int] = {}
        self._contacts: Dict[int, ContactSubmission] = {}
        self._contact_ids = count(1)
        self._profiles: Dict[str, Profile] = {}

    # ------------------------------------------------------------------ #
    # Schema / lifecycle
    # ------------------------------------------------------------------ #
    def create_tables(self) -> None:
        """
        No-op for the in-memory implementation. Kept for compatibility
        with the startup hook in `quoteportal/api/main.py`.
        """
        return None

    # ------------------------------------------------------------------ #
    # Quotations
    # ------------------------------------------------------------------ #
    def create_quotation(
        self,
        *,
        user_id: str,
        type: QuotationType,
        config: Optional[Dict[str, Any]] = None,
        additional_message: Optional[str] = None,
        user_name: Optional[str] = None,
        file_path: Optional[str] = None,
    ) -> Quotation:
        quotation = Quotation(
            id=str(uuid.uuid4()),
            type=QuotationType(type),
            status=QuotationStatus.PENDING_REVIEW,
            user_id=user_id,
            config=dict(config or {}),
            additional_message=additional_message,
            user_name=user_name,
            file_path=file_path,
        )
        with self._lock:
            self._quotations[quotation.id] = quotation
            self._quotation_order[quotation.id] = next(self._seq)
        return _copy(quotation)

    def get_quotation(self, quotation_id: str) -> Optional[Quotation]:
        with self._lock:
            quotation = self._quotations.get(str(quotation_id))
            return _copy(quotation) if quotation else None

    def list_quotations(self, user_id: Optional[str] = None) -> List[Quotation]:
        with self._lock:
            rows = [q for q in self._quotations.values() if user_id is None or q.user_id == user_id]
            rows.sort(key=lambda q: (q.created_at, self._quotation_order[q.id]), reverse=True)
            return [_copy(q) for q in rows]

    def find_quotation_by_file_path(self, file_path: str) -> Optional[Quotation]:
        with self._lock:
            for quotation in self._quotations.values():
                if quotation.file_path == file_path:
                    return _copy(quotation)
        return None

    def update_quotation_if_status(
        self,
        quotation_id: str,
        expected_status: QuotationStatus,
        *,
        expected_version: Optional[int] = None,
        status: Optional[QuotationStatus] = None,
        config: Optional[Dict[str, Any]] = None,
        payment_id: Optional[str] = None,
    ) -> Optional[Quotation]:
        with self._lock:
            current = self._quotations.get(str(quotation_id))
            if current is None or current.status != expected_status:
                return None
            if expected_version is not None and current.version != expected_version:
                return None
            updated = replace(
                current,
                version=current.version + 1,
                status=status if status is not None else current.status,
                config=dict(config) if config is not None else dict(current.config),
                payment_id=payment_id if payment_id is not None else current.payment_id,
            )
            self._quotations[updated.id] = updated
            return _copy(updated)

    # ------------------------------------------------------------------ #
    # Contact submissions
    # ------------------------------------------------------------------ #
    def create_contact_submission(self, **fields: Any) -> ContactSubmission:
        with self._lock:
            submission = ContactSubmission(id=next(self._contact_ids), **fields)
            self._contacts[submission.id] = submission
            return replace(submission)

    def list_contact_submissions(self) -> List[ContactSubmission]:
        with self._lock:
            rows = sorted(self._contacts.values(), key=lambda c: (c.created_at, c.id), reverse=True)
            return [replace(c) for c in rows]

    def find_contact_submission_by_file_path(self, file_path: str) -> Optional[ContactSubmission]:
        with self._lock:
            for submission in self._contacts.values():
                if submission.file_path == file_path:
                    return replace(submission)
        return None

    # ------------------------------------------------------------------ #
    # Profiles
    # ------------------------------------------------------------------ #
    def get_profile(self, user_id: str) -> Optional[Profile]:
        profile = self._profiles.get(user_id)
        return replace(profile) if profile else None

    def upsert_profile(self, profile: Profile) -> Profile:
        self._profiles[profile.id] = replace(profile)
        return replace(profile)


def _copy(quotation: Quotation) -> Quotation:
    return replace(quotation, config=dict(quotation.config))
