"""
Quotation lifecycle, pricing and the administrator contact inbox.
"""

from .contacts import ContactInbox
from .lifecycle import Actor, MyQuotations, QuotationLifecycle, check_transition, parse_status
from .pricing import PricingEditor

__all__ = [
    "Actor",
    "ContactInbox",
    "MyQuotations",
    "PricingEditor",
    "QuotationLifecycle",
    "check_transition",
    "parse_status",
]
