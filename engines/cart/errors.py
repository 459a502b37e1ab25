"""
POS Cart Engine — Rejections
===============================
Precondition failures raised by cart mutations. The cart is
left unchanged whenever one of these is raised.
"""

from __future__ import annotations

from core.commands.rejection import CheckoutRejected, ReasonCode


class OutOfStock(CheckoutRejected):
    default_code = ReasonCode.OUT_OF_STOCK


class InsufficientStock(CheckoutRejected):
    default_code = ReasonCode.INSUFFICIENT_STOCK


class LineNotFound(CheckoutRejected):
    default_code = ReasonCode.LINE_NOT_FOUND


class ProductNotFound(CheckoutRejected):
    default_code = ReasonCode.PRODUCT_NOT_FOUND
