"""
POS Cart Engine — Policies
=============================
Stock guards for cart mutations.

Policies are pure: they return a RejectionReason or None and
never touch the cart. Stock is never clamped; an increment that
would exceed what is on the shelf is refused outright.
"""

from __future__ import annotations

from typing import Optional

from core.commands.rejection import ReasonCode, RejectionReason


def product_in_stock_policy(
    *,
    product_name: str,
    quantity_available: int,
) -> Optional[RejectionReason]:
    """A product with nothing on the shelf cannot enter the cart."""
    if quantity_available <= 0:
        return RejectionReason(
            code=ReasonCode.OUT_OF_STOCK,
            message=f"'{product_name}' is out of stock.",
            policy_name="product_in_stock_policy",
        )
    return None


def quantity_within_stock_policy(
    *,
    product_name: str,
    requested_quantity: int,
    quantity_available: int,
) -> Optional[RejectionReason]:
    """Reserved quantity may not exceed available stock."""
    if requested_quantity > quantity_available:
        return RejectionReason(
            code=ReasonCode.INSUFFICIENT_STOCK,
            message=(
                f"Not enough stock for '{product_name}': "
                f"requested {requested_quantity}, "
                f"available {quantity_available}."
            ),
            policy_name="quantity_within_stock_policy",
        )
    return None
