"""
POS Loyalty Engine — Rejections
==================================
"""

from __future__ import annotations

from core.commands.rejection import CheckoutRejected, ReasonCode


class InvalidPhone(CheckoutRejected):
    default_code = ReasonCode.INVALID_PHONE


class RedemptionExceedsLimit(CheckoutRejected):
    default_code = ReasonCode.REDEMPTION_EXCEEDS_LIMIT
