from typing import List

from quoteportal.auth.gate import AuthorizationGate, Caller, Role
from quoteportal.database.base import QuotationStore
from quoteportal.database.records import ContactSubmission


class ContactInbox:
    """Administrator view over inbound contact inquiries (read-only)."""

    def __init__(self, store: QuotationStore, gate: AuthorizationGate) -> None:
        self.store = store
        self.gate = gate

    def list_submissions(self, caller: Caller) -> List[ContactSubmission]:
        self.gate.require_role(caller, Role.ADMINISTRATOR)
        return self.store.list_contact_submissions()
