"""
POS Checkout Engine — Rejections
===================================
"""

from __future__ import annotations

from core.commands.rejection import CheckoutRejected, ReasonCode


class EmptyCart(CheckoutRejected):
    default_code = ReasonCode.EMPTY_CART


class NoLoyaltyAccount(CheckoutRejected):
    default_code = ReasonCode.NO_LOYALTY_ACCOUNT
