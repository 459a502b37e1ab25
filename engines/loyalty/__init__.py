"""
POS Loyalty Engine — Public API
==================================
"""

from engines.loyalty.errors import InvalidPhone, RedemptionExceedsLimit
from engines.loyalty.models import LedgerKind, LoyaltyAccount, LoyaltyLedgerEntry
from engines.loyalty.services import LoyaltyPreview, LoyaltyResolver, validate_phone
from engines.loyalty.stores import InMemoryLoyaltyStore, LoyaltyStore

__all__ = [
    "InMemoryLoyaltyStore",
    "InvalidPhone",
    "LedgerKind",
    "LoyaltyAccount",
    "LoyaltyLedgerEntry",
    "LoyaltyPreview",
    "LoyaltyResolver",
    "LoyaltyStore",
    "RedemptionExceedsLimit",
    "validate_phone",
]
