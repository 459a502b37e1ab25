"""
POS Loyalty Engine — Loyalty Resolver
========================================
Looks up or enrolls a customer by phone and works out what the
current cart lets them redeem and earn.

Redemption is capped twice: by the account balance and by the
number of whole redemption units the subtotal can absorb.
Earned points are computed on the discounted, pre-tax base.
Nothing here writes balances; that happens once, at settlement.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from core.config.rules import PricingRules
from engines.cart.models import CartTotals
from engines.loyalty.errors import InvalidPhone, RedemptionExceedsLimit
from engines.loyalty.models import LoyaltyAccount
from engines.loyalty.policies import (
    redemption_within_limit_policy,
    valid_phone_policy,
)
from engines.loyalty.stores import LoyaltyStore

logger = logging.getLogger("pos.loyalty")


def validate_phone(phone: str) -> str:
    """Return the phone stripped of spaces, or raise InvalidPhone."""
    rejection = valid_phone_policy(phone)
    if rejection is not None:
        raise InvalidPhone(rejection)
    return phone.replace(" ", "")


@dataclass(frozen=True)
class LoyaltyPreview:
    """What the cart would do to an account if it settled now."""
    max_redeemable: int
    points_to_redeem: int
    loyalty_discount: Decimal
    points_to_earn: int
    projected_balance: int


class LoyaltyResolver:

    def __init__(self, *, store: LoyaltyStore, rules: Optional[PricingRules] = None):
        self._store = store
        self._rules = rules or PricingRules()

    def find_by_phone(self, phone: str) -> Optional[LoyaltyAccount]:
        """Exact-match lookup. None means: offer to enroll."""
        phone = validate_phone(phone)
        account = self._store.find_by_phone(phone)
        if account is None:
            logger.info(f"No loyalty account for {phone}")
        return account

    def create(self, phone: str, name: Optional[str] = None) -> LoyaltyAccount:
        phone = validate_phone(phone)
        account = self._store.create(phone, (name or "").strip() or None)
        logger.info(f"Enrolled loyalty account {account.id} for {phone}")
        return account

    def max_redeemable(self, subtotal: Decimal, account: LoyaltyAccount) -> int:
        """min(balance, floor(subtotal / unit_value) × points_per_unit)."""
        rules = self._rules
        units = int(subtotal // rules.redemption_unit_value)
        cap = units * rules.points_per_redemption_unit
        return max(0, min(account.points_balance, cap))

    def validate_redemption(
        self,
        points: int,
        subtotal: Decimal,
        account: LoyaltyAccount,
    ) -> int:
        """Return points unchanged if redeemable, else raise."""
        rejection = redemption_within_limit_policy(
            points_requested=points,
            max_redeemable=self.max_redeemable(subtotal, account),
        )
        if rejection is not None:
            raise RedemptionExceedsLimit(rejection)
        return points

    def preview_earn_and_redeem(
        self,
        cart_totals: CartTotals,
        account: LoyaltyAccount,
    ) -> LoyaltyPreview:
        return LoyaltyPreview(
            max_redeemable=self.max_redeemable(cart_totals.subtotal, account),
            points_to_redeem=cart_totals.points_redeemed,
            loyalty_discount=cart_totals.loyalty_discount,
            points_to_earn=cart_totals.points_to_earn,
            projected_balance=(
                account.points_balance
                - cart_totals.points_redeemed
                + cart_totals.points_to_earn
            ),
        )
