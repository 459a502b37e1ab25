"""
POS Settlement Engine — Records
==================================
SaleRecord is the source of truth for a completed checkout. It is
written once, before any side effect, and never changed after.

SettlementEffect is one outbox row: a stock decrement, a loyalty
balance write or a loyalty ledger append. Effect ids are derived
from the sale id so a retried settlement finds the same rows.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from engines.cart.models import CartLine, CartTotals
from engines.loyalty.models import LoyaltyAccount
from engines.payment.models import PaymentMethod, PaymentSnapshot
from engines.receipt.models import ReceiptDocument

SALE_NAMESPACE = uuid.UUID("6f1c3a52-2f0e-4d8e-9b0a-5c1e7d3f9a41")


def sale_id_for(attempt_id: str) -> str:
    """One payment attempt settles into exactly one sale."""
    return str(uuid.uuid5(SALE_NAMESPACE, attempt_id))


# ══════════════════════════════════════════════════════════════
# SALE RECORD
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SaleLineSnapshot:
    product_id: str
    description: str
    quantity: int
    unit_price: Decimal
    sku: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @classmethod
    def from_cart_line(cls, line: CartLine) -> "SaleLineSnapshot":
        return cls(
            product_id=line.product_ref,
            description=line.name,
            quantity=line.quantity_reserved,
            unit_price=line.unit_price,
            sku=line.sku,
        )


@dataclass(frozen=True)
class SaleRecord:
    sale_id: str
    payment_attempt_id: str
    lines: Tuple[SaleLineSnapshot, ...]
    subtotal: Decimal
    loyalty_discount: Decimal
    tax: Decimal
    total: Decimal
    payment_method: PaymentMethod
    completed_at: datetime
    tax_label: Optional[str] = None
    customer_phone: Optional[str] = None
    loyalty_account_id: Optional[str] = None
    points_earned: int = 0
    points_redeemed: int = 0
    external_receipt_ref: Optional[str] = None
    cash_received: Optional[Decimal] = None
    change_due: Optional[Decimal] = None
    amount_mismatch: bool = False

    def __post_init__(self):
        if not self.sale_id or not self.payment_attempt_id:
            raise ValueError("sale_id and payment_attempt_id are required.")
        if not self.lines:
            raise ValueError("A sale needs at least one line.")
        if self.completed_at.tzinfo is None:
            raise ValueError("completed_at must be timezone-aware.")
        object.__setattr__(self, "lines", tuple(self.lines))


# ══════════════════════════════════════════════════════════════
# OUTBOX EFFECTS
# ══════════════════════════════════════════════════════════════

class EffectKind(Enum):
    STOCK_DECREMENT = "stock_decrement"
    LOYALTY_BALANCE = "loyalty_balance"
    LOYALTY_LEDGER = "loyalty_ledger"


class EffectStatus(Enum):
    PENDING = "pending"
    APPLIED = "applied"
    FAILED = "failed"


@dataclass(frozen=True)
class SettlementEffect:
    """
    payload holds only JSON-safe values (str, int, None) so the
    row can be stored as-is by any outbox backend.
    """
    effect_id: str
    sale_id: str
    kind: EffectKind
    payload: Dict[str, Any]
    status: EffectStatus = EffectStatus.PENDING
    attempts: int = 0
    last_error: Optional[str] = None

    @property
    def is_applied(self) -> bool:
        return self.status is EffectStatus.APPLIED


# ══════════════════════════════════════════════════════════════
# REQUEST / RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SettlementRequest:
    """Everything the reconciler needs, captured at payment success."""
    payment: PaymentSnapshot
    lines: Tuple[CartLine, ...]
    totals: CartTotals
    loyalty_account: Optional[LoyaltyAccount] = None
    customer_phone: Optional[str] = None
    tax_label: Optional[str] = None
    cash_received: Optional[Decimal] = None
    change_due: Optional[Decimal] = None

    def __post_init__(self):
        object.__setattr__(self, "lines", tuple(self.lines))


@dataclass(frozen=True)
class SettlementResult:
    sale: SaleRecord
    receipt: ReceiptDocument
    effects: Tuple[SettlementEffect, ...] = field(default_factory=tuple)
    replayed: bool = False

    @property
    def failed_effects(self) -> Tuple[SettlementEffect, ...]:
        return tuple(e for e in self.effects if not e.is_applied)

    @property
    def fully_applied(self) -> bool:
        return not self.failed_effects
