"""
POS Loyalty Engine — Policies
================================
Phone format and redemption guards.
"""

from __future__ import annotations

import re
from typing import Optional

from core.commands.rejection import ReasonCode, RejectionReason

MIN_PHONE_DIGITS = 10

_PHONE_PATTERN = re.compile(r"^\+?\d+$")


def valid_phone_policy(phone: str) -> Optional[RejectionReason]:
    """Digits only (optional leading +), at least MIN_PHONE_DIGITS of them."""
    candidate = (phone or "").replace(" ", "")
    digits = candidate.lstrip("+")
    if not _PHONE_PATTERN.match(candidate) or len(digits) < MIN_PHONE_DIGITS:
        return RejectionReason(
            code=ReasonCode.INVALID_PHONE,
            message=f"Enter a valid phone number (got {phone!r}).",
            policy_name="valid_phone_policy",
        )
    return None


def redemption_within_limit_policy(
    *,
    points_requested: int,
    max_redeemable: int,
) -> Optional[RejectionReason]:
    """Redemption must be non-negative and no more than max_redeemable."""
    if points_requested < 0:
        return RejectionReason(
            code=ReasonCode.INVALID_REDEMPTION,
            message=f"Cannot redeem a negative number of points ({points_requested}).",
            policy_name="redemption_within_limit_policy",
        )
    if points_requested > max_redeemable:
        return RejectionReason(
            code=ReasonCode.REDEMPTION_EXCEEDS_LIMIT,
            message=(
                f"Cannot redeem {points_requested} points; "
                f"at most {max_redeemable} redeemable on this sale."
            ),
            policy_name="redemption_within_limit_policy",
        )
    return None
