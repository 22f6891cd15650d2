from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from quoteportal.database.records import (
    ContactSubmission,
    Profile,
    Quotation,
    QuotationStatus,
    QuotationType,
)


class QuotationStore(ABC):
    """Persistence interface consumed by the lifecycle, pricing and payment components."""

    @abstractmethod
    def create_tables(self) -> None:
        """Create the backing schema if needed."""

    # -- Quotations --

    @abstractmethod
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
        """Insert a new quotation in ``Pending Review``."""

    @abstractmethod
    def get_quotation(self, quotation_id: str) -> Optional[Quotation]:
        """Fetch a quotation by id."""

    @abstractmethod
    def list_quotations(self, user_id: Optional[str] = None) -> List[Quotation]:
        """All quotations (optionally for one owner), newest first."""

    @abstractmethod
    def find_quotation_by_file_path(self, file_path: str) -> Optional[Quotation]:
        """Return the quotation whose uploaded design file is ``file_path``."""

    @abstractmethod
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
        """
        Conditionally update a quotation.

        Applies the given fields only when the stored status still equals
        ``expected_status`` and, if given, the stored version still equals
        ``expected_version``. Every successful write bumps ``version``.
        Returns the updated quotation, or ``None`` when no row matched
        (unknown id, or status/version moved on).
        """

    # -- Contact submissions --

    @abstractmethod
    def create_contact_submission(self, **fields: Any) -> ContactSubmission:
        """Insert an inbound contact inquiry."""

    @abstractmethod
    def list_contact_submissions(self) -> List[ContactSubmission]:
        """All contact submissions, newest first."""

    @abstractmethod
    def find_contact_submission_by_file_path(self, file_path: str) -> Optional[ContactSubmission]:
        """Return the contact submission that attached ``file_path``."""

    # -- Profiles --

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[Profile]:
        """Fetch a customer's profile."""

    @abstractmethod
    def upsert_profile(self, profile: Profile) -> Profile:
        """Create or replace a customer's profile."""
