"""
POS Checkout Engine — Public API
===================================
"""

from engines.checkout.errors import EmptyCart, NoLoyaltyAccount
from engines.checkout.models import CheckoutResult
from engines.checkout.services import CheckoutSession

__all__ = [
    "CheckoutResult",
    "CheckoutSession",
    "EmptyCart",
    "NoLoyaltyAccount",
]
