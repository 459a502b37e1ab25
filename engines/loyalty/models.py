"""
POS Loyalty Engine — Records
===============================
LoyaltyAccount is read at checkout and written only by the
settlement reconciler, once per completed sale.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class LedgerKind(Enum):
    EARN = "earn"
    REDEEM = "redeem"


@dataclass(frozen=True)
class LoyaltyAccount:
    id: str
    phone: str
    display_name: Optional[str] = None
    points_balance: int = 0
    lifetime_earned: int = 0
    lifetime_redeemed: int = 0

    def __post_init__(self):
        if not self.id:
            raise ValueError("id must be non-empty.")
        if not self.phone:
            raise ValueError("phone must be non-empty.")

    def label(self) -> str:
        return self.display_name or self.phone


@dataclass(frozen=True)
class LoyaltyLedgerEntry:
    """
    One line of the loyalty audit trail.

    entry_id is deterministic per sale and kind so a retried
    write never appends the same entry twice.
    """
    entry_id: str
    account_id: str
    kind: LedgerKind
    points: int
    sale_id: str
    description: str
    sale_amount: Optional[Decimal] = None

    def __post_init__(self):
        if self.points < 0:
            raise ValueError("points must be >= 0.")
