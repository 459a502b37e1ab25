"""
POS Payment Engine — Payment Attempt
=======================================
One attempt to collect one sale total by one method.

    idle ──► pending ──► success
      │         ├──────► failed
      │         └──────► cancelled
      ├──────────────────► success   (cash)
      └──────────────────► failed    (push request never sent)

Terminal states never transition. Retrying means a fresh
attempt. The orchestrator is the only writer; everything else
reads PaymentSnapshot.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import ROUND_CEILING, Decimal
from enum import Enum
from typing import Dict, FrozenSet, Optional

from engines.payment.errors import InvalidPaymentTransition


class PaymentMethod(Enum):
    CASH = "cash"
    MOBILE_MONEY = "mobile_money"


class PaymentState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES: FrozenSet[PaymentState] = frozenset({
    PaymentState.SUCCESS,
    PaymentState.FAILED,
    PaymentState.CANCELLED,
})

ALLOWED_TRANSITIONS: Dict[PaymentState, FrozenSet[PaymentState]] = {
    PaymentState.IDLE: frozenset({
        PaymentState.PENDING, PaymentState.SUCCESS, PaymentState.FAILED,
    }),
    PaymentState.PENDING: frozenset({
        PaymentState.SUCCESS, PaymentState.FAILED, PaymentState.CANCELLED,
    }),
}


class FailureCode:
    GATEWAY_REJECTED = "GATEWAY_REJECTED"
    GATEWAY_FAILED = "GATEWAY_FAILED"
    POLL_TIMEOUT = "POLL_TIMEOUT"
    CUSTOMER_CANCELLED = "CUSTOMER_CANCELLED"


def gateway_amount(total: Decimal) -> Decimal:
    """Round up to the smallest currency unit so we never undercollect."""
    return total.to_integral_value(rounding=ROUND_CEILING)


@dataclass(frozen=True)
class PaymentSnapshot:
    attempt_id: str
    method: PaymentMethod
    state: PaymentState
    amount_due: Decimal
    poll_count: int
    external_request_id: Optional[str]
    settled_amount: Optional[Decimal]
    external_receipt_ref: Optional[str]
    failure_code: Optional[str]
    failure_reason: Optional[str]
    amount_mismatch: bool
    requires_manual_verification: bool
    abandoned: bool

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass
class PaymentAttempt:
    method: PaymentMethod
    amount_due: Decimal
    attempt_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: PaymentState = PaymentState.IDLE
    customer_phone: Optional[str] = None
    external_request_id: Optional[str] = None
    settled_amount: Optional[Decimal] = None
    external_receipt_ref: Optional[str] = None
    poll_count: int = 0
    failure_code: Optional[str] = None
    failure_reason: Optional[str] = None
    amount_mismatch: bool = False
    requires_manual_verification: bool = False
    abandoned: bool = False
    cash_received: Optional[Decimal] = None
    change_due: Optional[Decimal] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def expected_gateway_amount(self) -> Decimal:
        return gateway_amount(self.amount_due)

    def transition_to(
        self,
        new_state: PaymentState,
        *,
        failure_code: Optional[str] = None,
        failure_reason: Optional[str] = None,
    ) -> None:
        allowed = ALLOWED_TRANSITIONS.get(self.state, frozenset())
        if new_state not in allowed:
            raise InvalidPaymentTransition(
                f"Attempt {self.attempt_id}: cannot move "
                f"{self.state.value} → {new_state.value}."
            )
        self.state = new_state
        if failure_code is not None:
            self.failure_code = failure_code
        if failure_reason is not None:
            self.failure_reason = failure_reason

    def snapshot(self) -> PaymentSnapshot:
        return PaymentSnapshot(
            attempt_id=self.attempt_id,
            method=self.method,
            state=self.state,
            amount_due=self.amount_due,
            poll_count=self.poll_count,
            external_request_id=self.external_request_id,
            settled_amount=self.settled_amount,
            external_receipt_ref=self.external_receipt_ref,
            failure_code=self.failure_code,
            failure_reason=self.failure_reason,
            amount_mismatch=self.amount_mismatch,
            requires_manual_verification=self.requires_manual_verification,
            abandoned=self.abandoned,
        )
