"""
POS Cart Engine — Public API
===============================
Cart lines, stock guards and pure totals.
"""

from engines.cart.errors import (
    InsufficientStock,
    LineNotFound,
    OutOfStock,
    ProductNotFound,
)
from engines.cart.models import CartLine, CartTotals, Product
from engines.cart.services import (
    Cart,
    InMemoryProductCatalog,
    ProductCatalog,
    ScanIntake,
    compute_totals,
)

__all__ = [
    "Cart",
    "CartLine",
    "CartTotals",
    "InMemoryProductCatalog",
    "InsufficientStock",
    "LineNotFound",
    "OutOfStock",
    "Product",
    "ProductCatalog",
    "ProductNotFound",
    "ScanIntake",
    "compute_totals",
]
