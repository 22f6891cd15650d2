"""
Real Postgres-backed store for production when USE_POSTGRES and DATABASE_URL are set.
Implements the same interface as quoteportal.database.postgres (in-memory stub).
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
from uuid import uuid4

from sqlalchemy import create_engine, select, update
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from quoteportal.database.base import QuotationStore
from quoteportal.database.models import Base, ContactSubmissionRow, ProfileRow, QuotationRow
from quoteportal.database.records import (
    ContactSubmission,
    Profile,
    Quotation,
    QuotationStatus,
    QuotationType,
    utcnow,
)
from quoteportal.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


def _normalize_connection_string(s: str) -> str:
    """Strip common mistakes: 'psql \'...\'', extra quotes, whitespace."""
    s = s.strip()
    if re.match(r"^psql\s+", s, re.IGNORECASE):
        s = re.sub(r"^psql\s+", "", s, flags=re.IGNORECASE).strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ("'", '"'):
        s = s[1:-1].strip()
    if s.startswith("postgres://"):
        s = "postgresql+psycopg://" + s[len("postgres://"):]
    elif s.startswith("postgresql://"):
        s = "postgresql+psycopg://" + s[len("postgresql://"):]
    return s


class PostgresDB(QuotationStore):
    """
    Postgres data access using SQLAlchemy. Use when DATABASE_URL is set and
    USE_POSTGRES=true. Any SQLAlchemy URL works; tests run it against SQLite.
    """

    def __init__(self, connection_string: str) -> None:
        connection_string = _normalize_connection_string(connection_string)
        engine_kwargs: Dict[str, Any] = {"pool_pre_ping": True}
        if not connection_string.startswith("sqlite"):
            engine_kwargs.update(pool_size=5, max_overflow=10)
        self.engine = create_engine(connection_string, **engine_kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, expire_on_commit=False)

    def create_tables(self) -> None:
        try:
            Base.metadata.create_all(bind=self.engine)
        except (OperationalError, InterfaceError) as exc:
            raise UpstreamUnavailable(f"Database unavailable: {exc}") from exc

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        s = self.SessionLocal()
        try:
            yield s
            s.commit()
        except (OperationalError, InterfaceError) as exc:
            s.rollback()
            logger.error("Database unavailable: %s", exc)
            raise UpstreamUnavailable(f"Database unavailable: {exc}") from exc
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

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
        with self._session() as s:
            row = QuotationRow(
                id=str(uuid4()),
                type=QuotationType(type).value,
                status=QuotationStatus.PENDING_REVIEW.value,
                config=dict(config or {}),
                additional_message=additional_message,
                user_id=user_id,
                user_name=user_name,
                file_path=file_path,
                created_at=utcnow(),
            )
            s.add(row)
            s.flush()
            s.refresh(row)
            return _to_quotation(row)

    def get_quotation(self, quotation_id: str) -> Optional[Quotation]:
        with self._session() as s:
            row = s.get(QuotationRow, str(quotation_id))
            return _to_quotation(row) if row else None

    def list_quotations(self, user_id: Optional[str] = None) -> List[Quotation]:
        with self._session() as s:
            stmt = select(QuotationRow)
            if user_id:
                stmt = stmt.where(QuotationRow.user_id == str(user_id))
            stmt = stmt.order_by(QuotationRow.created_at.desc())
            return [_to_quotation(r) for r in s.execute(stmt).scalars().all()]

    def find_quotation_by_file_path(self, file_path: str) -> Optional[Quotation]:
        with self._session() as s:
            stmt = select(QuotationRow).where(QuotationRow.file_path == file_path).limit(1)
            row = s.execute(stmt).scalar_one_or_none()
            return _to_quotation(row) if row else None

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
        values: Dict[str, Any] = {"version": QuotationRow.version + 1}
        if status is not None:
            values["status"] = QuotationStatus(status).value
        if config is not None:
            values["config"] = dict(config)
        if payment_id is not None:
            values["payment_id"] = payment_id

        stmt = (
            update(QuotationRow)
            .where(QuotationRow.id == str(quotation_id))
            .where(QuotationRow.status == QuotationStatus(expected_status).value)
        )
        if expected_version is not None:
            stmt = stmt.where(QuotationRow.version == int(expected_version))
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        with self._session() as s:
            result = s.execute(stmt)
            if result.rowcount != 1:
                return None
            row = s.get(QuotationRow, str(quotation_id), populate_existing=True)
            return _to_quotation(row) if row else None

    # ------------------------------------------------------------------ #
    # Contact submissions
    # ------------------------------------------------------------------ #
    def create_contact_submission(self, **fields: Any) -> ContactSubmission:
        with self._session() as s:
            fields.setdefault("created_at", utcnow())
            row = ContactSubmissionRow(**fields)
            s.add(row)
            s.flush()
            s.refresh(row)
            return _to_contact(row)

    def list_contact_submissions(self) -> List[ContactSubmission]:
        with self._session() as s:
            stmt = select(ContactSubmissionRow).order_by(ContactSubmissionRow.created_at.desc())
            return [_to_contact(r) for r in s.execute(stmt).scalars().all()]

    def find_contact_submission_by_file_path(self, file_path: str) -> Optional[ContactSubmission]:
        with self._session() as s:
            stmt = select(ContactSubmissionRow).where(ContactSubmissionRow.file_path == file_path).limit(1)
            row = s.execute(stmt).scalar_one_or_none()
            return _to_contact(row) if row else None

    # ------------------------------------------------------------------ #
    # Profiles
    # ------------------------------------------------------------------ #
    def get_profile(self, user_id: str) -> Optional[Profile]:
        with self._session() as s:
            row = s.get(ProfileRow, str(user_id))
            return Profile(id=row.id, full_name=row.full_name, phone=row.phone) if row else None

    def upsert_profile(self, profile: Profile) -> Profile:
        with self._session() as s:
            s.merge(ProfileRow(id=profile.id, full_name=profile.full_name, phone=profile.phone))
            return profile


def _to_quotation(row: QuotationRow) -> Quotation:
    return Quotation(
        id=row.id,
        type=QuotationType(row.type),
        status=QuotationStatus(row.status),
        user_id=row.user_id,
        config=dict(row.config or {}),
        additional_message=row.additional_message,
        user_name=row.user_name,
        file_path=row.file_path,
        created_at=row.created_at,
        payment_id=row.payment_id,
        version=row.version or 1,
    )


def _to_contact(row: ContactSubmissionRow) -> ContactSubmission:
    return ContactSubmission(
        id=row.id,
        name=row.name,
        company=row.company,
        email=row.email,
        phone=row.phone,
        service_type=row.service_type,
        message=row.message,
        file_path=row.file_path,
        created_at=row.created_at,
    )
