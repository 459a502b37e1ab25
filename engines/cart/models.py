"""
POS Cart Engine — Value Types
================================
Product (catalog input), CartLine (one selected product) and
CartTotals (derived, never stored).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from core.config.rules import to_decimal


@dataclass(frozen=True)
class Product:
    """Catalog product as seen by the till at the moment it was picked."""
    product_id: str
    name: str
    unit_price: Decimal
    quantity_available: int
    sku: Optional[str] = None
    category: Optional[str] = None

    def __post_init__(self):
        if not self.product_id:
            raise ValueError("product_id must be non-empty.")
        object.__setattr__(
            self, "unit_price", to_decimal(self.unit_price, field_name="unit_price"),
        )
        if self.unit_price < 0:
            raise ValueError("unit_price must be >= 0.")


@dataclass(frozen=True)
class CartLine:
    """
    One product in the cart.

    Invariant: quantity_reserved <= quantity_available at the
    time the line was added or incremented.
    """
    product_ref: str
    name: str
    unit_price: Decimal
    quantity_reserved: int
    quantity_available: int
    sku: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity_reserved

    def with_quantity(self, quantity: int) -> "CartLine":
        return CartLine(
            product_ref=self.product_ref,
            name=self.name,
            unit_price=self.unit_price,
            quantity_reserved=quantity,
            quantity_available=self.quantity_available,
            sku=self.sku,
        )

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_ref,
            "description": self.name,
            "sku": self.sku,
            "quantity": self.quantity_reserved,
            "unit_price": str(self.unit_price),
            "total": str(self.line_total),
        }


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    points_redeemed: int
    loyalty_discount: Decimal
    taxable_base: Decimal
    tax: Decimal
    total: Decimal
    points_to_earn: int

    def to_dict(self) -> dict:
        return {
            "subtotal": str(self.subtotal),
            "points_redeemed": self.points_redeemed,
            "loyalty_discount": str(self.loyalty_discount),
            "taxable_base": str(self.taxable_base),
            "tax": str(self.tax),
            "total": str(self.total),
            "points_to_earn": self.points_to_earn,
        }
