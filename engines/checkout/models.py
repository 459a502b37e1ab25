"""
POS Checkout Engine — Result Types
=====================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from engines.payment.models import PaymentSnapshot, PaymentState
from engines.receipt.models import ReceiptDocument
from engines.settlement.models import SettlementResult


@dataclass(frozen=True)
class CheckoutResult:
    """
    Outcome of one pay_* call. settlement and receipt are set only
    when the payment succeeded and the sale was recorded.
    """
    attempt: PaymentSnapshot
    settlement: Optional[SettlementResult] = None
    receipt: Optional[ReceiptDocument] = None

    @property
    def succeeded(self) -> bool:
        return self.attempt.state is PaymentState.SUCCESS and self.settlement is not None

    @property
    def pending(self) -> bool:
        return self.attempt.state is PaymentState.PENDING
