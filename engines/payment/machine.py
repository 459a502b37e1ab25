"""
POS Payment Engine — Transition Functions
============================================
Pure reactions of a PaymentAttempt to the events of its rail:
cash tendered, push request sent or refused, poll answered or
errored, poll budget spent, session closed.

No I/O and no timers here. The orchestrator feeds events in and
reads back a PollDirective telling it whether to keep polling.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from core.commands.rejection import RejectionReason
from engines.payment.errors import InsufficientCash
from engines.payment.gateway import GatewayStatus, StatusResult
from engines.payment.models import (
    FailureCode,
    PaymentAttempt,
    PaymentMethod,
    PaymentState,
)


class PollDirective(Enum):
    POLL_AGAIN = "poll_again"
    STOP = "stop"


# ── Cash ──────────────────────────────────────────────────────

def tender_cash(attempt: PaymentAttempt, cash_received: Decimal) -> None:
    """
    idle → success once cash covers the total.

    A shortfall is a precondition, not a failure: the attempt
    stays idle and the operator collects more cash.
    """
    if attempt.method is not PaymentMethod.CASH:
        raise ValueError("tender_cash requires a cash attempt.")
    if cash_received < attempt.amount_due:
        raise InsufficientCash(
            RejectionReason(
                code=InsufficientCash.default_code,
                message=(
                    f"Cash received ({cash_received}) is less than "
                    f"the total ({attempt.amount_due})."
                ),
                policy_name="tender_cash",
            )
        )
    attempt.transition_to(PaymentState.SUCCESS)
    attempt.cash_received = cash_received
    attempt.change_due = cash_received - attempt.amount_due
    attempt.settled_amount = attempt.amount_due


# ── Mobile money: issuance ────────────────────────────────────

def record_initiated(attempt: PaymentAttempt, request_id: str) -> None:
    attempt.transition_to(PaymentState.PENDING)
    attempt.external_request_id = request_id


def record_initiation_failed(attempt: PaymentAttempt, message: str) -> None:
    attempt.transition_to(
        PaymentState.FAILED,
        failure_code=FailureCode.GATEWAY_REJECTED,
        failure_reason=message or "Failed to initiate mobile-money payment.",
    )


# ── Mobile money: polling ─────────────────────────────────────

def record_poll_started(attempt: PaymentAttempt) -> None:
    attempt.poll_count += 1


def record_status(
    attempt: PaymentAttempt,
    result: StatusResult,
    *,
    rounding_tolerance: Decimal,
) -> PollDirective:
    """Map one status answer onto the attempt."""
    if result.status is GatewayStatus.PENDING:
        return PollDirective.POLL_AGAIN

    if result.status is GatewayStatus.SUCCESS:
        attempt.transition_to(PaymentState.SUCCESS)
        attempt.external_receipt_ref = result.receipt_ref
        attempt.settled_amount = result.settled_amount
        if result.settled_amount is not None:
            drift = abs(result.settled_amount - attempt.amount_due)
            # A real payment is never rejected over rounding noise.
            attempt.amount_mismatch = drift > rounding_tolerance
        return PollDirective.STOP

    if result.status is GatewayStatus.CANCELLED:
        attempt.transition_to(
            PaymentState.CANCELLED,
            failure_code=FailureCode.CUSTOMER_CANCELLED,
            failure_reason=result.message or "Payment was cancelled.",
        )
        return PollDirective.STOP

    attempt.transition_to(
        PaymentState.FAILED,
        failure_code=FailureCode.GATEWAY_FAILED,
        failure_reason=result.message or "Payment failed.",
    )
    return PollDirective.STOP


def record_query_error(attempt: PaymentAttempt, error: Exception) -> PollDirective:
    """Status endpoint unreachable: same as still pending."""
    return PollDirective.POLL_AGAIN


def record_budget_exhausted(attempt: PaymentAttempt) -> None:
    """
    No terminal answer within the poll budget.

    The charge may still complete on the customer's handset, so
    the attempt is flagged for manual verification.
    """
    attempt.transition_to(
        PaymentState.FAILED,
        failure_code=FailureCode.POLL_TIMEOUT,
        failure_reason=(
            f"No confirmation after {attempt.poll_count} status checks. "
            f"Verify the payment manually before retrying."
        ),
    )
    attempt.requires_manual_verification = True


def record_abandoned(attempt: PaymentAttempt) -> None:
    """
    Session closed while pending. The state stays pending: nobody
    knows whether the customer will still approve the charge.
    """
    if attempt.state is not PaymentState.PENDING:
        return
    attempt.abandoned = True
    attempt.requires_manual_verification = True
