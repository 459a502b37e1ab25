"""
POS Cart Engine — Cart Aggregator
====================================
Holds the selected lines of one checkout session and derives
totals from them. No I/O: the catalog lookup used by barcode
intake is injected.

Totals are recomputed from scratch on every call. Loyalty
discount is always floored to whole redemption units so the
discount can never exceed what the redeemed points are worth.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, Optional, Protocol, Tuple

from core.config.rules import PricingRules
from engines.cart.errors import (
    InsufficientStock,
    LineNotFound,
    OutOfStock,
    ProductNotFound,
)
from engines.cart.models import CartLine, CartTotals, Product
from engines.cart.policies import (
    product_in_stock_policy,
    quantity_within_stock_policy,
)

logger = logging.getLogger("pos.cart")


# ══════════════════════════════════════════════════════════════
# PURE TOTALS
# ══════════════════════════════════════════════════════════════

def compute_totals(
    lines: Iterable[CartLine],
    rules: PricingRules,
    points_to_redeem: int = 0,
) -> CartTotals:
    """
    Derive CartTotals from lines and a redemption request.

    subtotal       = Σ(unit_price × qty)
    discount       = floor(points / points_per_unit) × unit_value
    taxable_base   = max(0, subtotal − discount)
    tax            = taxable_base × rate   (0 when not registered)
    total          = taxable_base + tax
    points_to_earn = floor(taxable_base / earn_unit) × earn_points
    """
    if points_to_redeem < 0:
        raise ValueError("points_to_redeem must be >= 0.")

    subtotal = sum((line.line_total for line in lines), Decimal(0))

    units = points_to_redeem // rules.points_per_redemption_unit
    points_redeemed = units * rules.points_per_redemption_unit
    loyalty_discount = rules.redemption_unit_value * units

    taxable_base = max(Decimal(0), subtotal - loyalty_discount)
    if rules.tax_registered:
        tax = rules.tax.compute_tax(taxable_base)
    else:
        tax = Decimal(0)

    points_to_earn = int(taxable_base // rules.earn_unit) * rules.earn_points_per_unit

    return CartTotals(
        subtotal=subtotal,
        points_redeemed=points_redeemed,
        loyalty_discount=loyalty_discount,
        taxable_base=taxable_base,
        tax=tax,
        total=taxable_base + tax,
        points_to_earn=points_to_earn,
    )


# ══════════════════════════════════════════════════════════════
# CART
# ══════════════════════════════════════════════════════════════

class Cart:
    """Line items of one checkout session, keyed by product id."""

    def __init__(self, rules: Optional[PricingRules] = None):
        self._rules = rules or PricingRules()
        self._lines: Dict[str, CartLine] = {}

    @property
    def rules(self) -> PricingRules:
        return self._rules

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def get_line(self, product_id: str) -> Optional[CartLine]:
        return self._lines.get(product_id)

    def add_line(self, product: Product, quantity: int = 1) -> CartLine:
        """
        Add a product, or increment it if already present.

        Raises OutOfStock when nothing is available and
        InsufficientStock when the new quantity would exceed stock.
        """
        if quantity <= 0:
            raise ValueError("quantity must be positive.")

        rejection = product_in_stock_policy(
            product_name=product.name,
            quantity_available=product.quantity_available,
        )
        if rejection is not None:
            raise OutOfStock(rejection)

        existing = self._lines.get(product.product_id)
        current = existing.quantity_reserved if existing else 0
        requested = current + quantity

        rejection = quantity_within_stock_policy(
            product_name=product.name,
            requested_quantity=requested,
            quantity_available=product.quantity_available,
        )
        if rejection is not None:
            raise InsufficientStock(rejection)

        line = CartLine(
            product_ref=product.product_id,
            name=product.name,
            unit_price=product.unit_price,
            quantity_reserved=requested,
            quantity_available=product.quantity_available,
            sku=product.sku,
        )
        self._lines[product.product_id] = line
        logger.debug(f"Cart line {product.product_id} now x{requested}")
        return line

    def adjust_quantity(self, product_id: str, delta: int) -> CartLine:
        """
        Change a line's quantity by delta.

        A delta that would take the quantity to zero or below leaves
        the line untouched; use remove_line for that.
        """
        line = self._lines.get(product_id)
        if line is None:
            raise LineNotFound.because(
                f"Product '{product_id}' is not in the cart.",
                policy_name="adjust_quantity",
            )

        new_quantity = line.quantity_reserved + delta
        if delta == 0 or new_quantity <= 0:
            return line

        rejection = quantity_within_stock_policy(
            product_name=line.name,
            requested_quantity=new_quantity,
            quantity_available=line.quantity_available,
        )
        if rejection is not None:
            raise InsufficientStock(rejection)

        updated = line.with_quantity(new_quantity)
        self._lines[product_id] = updated
        return updated

    def remove_line(self, product_id: str) -> bool:
        """Drop a line. Returns False if it was not in the cart."""
        return self._lines.pop(product_id, None) is not None

    def clear(self) -> None:
        self._lines.clear()

    def totals(self, points_to_redeem: int = 0) -> CartTotals:
        return compute_totals(self._lines.values(), self._rules, points_to_redeem)


# ══════════════════════════════════════════════════════════════
# BARCODE INTAKE
# ══════════════════════════════════════════════════════════════

class ProductCatalog(Protocol):
    def find_by_sku(self, sku: str) -> Optional[Product]:
        ...


class InMemoryProductCatalog:
    """Catalog snapshot keyed by SKU (tests and offline tills)."""

    def __init__(self, products: Iterable[Product] = ()):
        self._by_sku: Dict[str, Product] = {}
        for product in products:
            self.put(product)

    def put(self, product: Product) -> None:
        if product.sku:
            self._by_sku[product.sku] = product

    def find_by_sku(self, sku: str) -> Optional[Product]:
        return self._by_sku.get(sku)


class ScanIntake:
    """Turns decoded barcode strings into cart additions."""

    def __init__(self, *, cart: Cart, catalog: ProductCatalog):
        self._cart = cart
        self._catalog = catalog

    def on_scan(self, code: str) -> CartLine:
        code = (code or "").strip()
        product = self._catalog.find_by_sku(code) if code else None
        if product is None:
            logger.info(f"Scanned code not in catalog: {code!r}")
            raise ProductNotFound.because(
                f"Product not found: {code}",
                policy_name="on_scan",
            )
        return self._cart.add_line(product)
