"""
POS Receipt Engine — Document Model
======================================
A ReceiptDocument is a render-ready snapshot: every field is
already resolved, so renderers only lay it out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple


@dataclass(frozen=True)
class BusinessProfile:
    business_name: str
    tax_pin: Optional[str] = None
    is_tax_registered: bool = True
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    logo_url: Optional[str] = None
    currency: str = "KES"
    timezone: str = "UTC"


@dataclass(frozen=True)
class ReceiptLine:
    description: str
    quantity: int
    unit_price: Decimal
    total: Decimal


@dataclass(frozen=True)
class ReceiptDocument:
    business_name: str
    receipt_no: str
    issued_at: datetime
    payment_label: str
    currency: str
    lines: Tuple[ReceiptLine, ...]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    header_lines: Tuple[str, ...] = field(default_factory=tuple)
    logo_url: Optional[str] = None
    tax_label: Optional[str] = None
    loyalty_discount: Decimal = Decimal(0)
    points_redeemed: int = 0
    points_earned: int = 0
    external_receipt_ref: Optional[str] = None
    customer_phone: Optional[str] = None
    cash_received: Optional[Decimal] = None
    change_due: Optional[Decimal] = None
    footer_lines: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "business_name": self.business_name,
            "header_lines": list(self.header_lines),
            "logo_url": self.logo_url,
            "receipt_no": self.receipt_no,
            "issued_at": self.issued_at.isoformat(),
            "payment_label": self.payment_label,
            "external_receipt_ref": self.external_receipt_ref,
            "customer_phone": self.customer_phone,
            "currency": self.currency,
            "lines": [
                {
                    "description": line.description,
                    "quantity": line.quantity,
                    "unit_price": str(line.unit_price),
                    "total": str(line.total),
                }
                for line in self.lines
            ],
            "subtotal": str(self.subtotal),
            "loyalty_discount": str(self.loyalty_discount),
            "points_redeemed": self.points_redeemed,
            "tax_label": self.tax_label,
            "tax": str(self.tax),
            "total": str(self.total),
            "cash_received": None if self.cash_received is None else str(self.cash_received),
            "change_due": None if self.change_due is None else str(self.change_due),
            "points_earned": self.points_earned,
            "footer_lines": list(self.footer_lines),
        }
