"""
POS Payment Engine — Operator Notices
========================================
Turns attempt snapshots into what the operator sees: one of
collecting payment, success, failed or cancelled, with an
advancing check counter while collecting.

describe() is pure. Sinks deliver the notice (toast, log line,
test recorder) and are the only side effect.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Tuple

from engines.payment.models import PaymentMethod, PaymentSnapshot, PaymentState

logger = logging.getLogger("pos.payment")


class OperatorStatus(Enum):
    IDLE = "idle"
    COLLECTING = "collecting_payment"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


class NoticeLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_STATUS_BY_STATE = {
    PaymentState.IDLE: OperatorStatus.IDLE,
    PaymentState.PENDING: OperatorStatus.COLLECTING,
    PaymentState.SUCCESS: OperatorStatus.SUCCESS,
    PaymentState.FAILED: OperatorStatus.FAILED,
    PaymentState.CANCELLED: OperatorStatus.CANCELLED,
}


@dataclass(frozen=True)
class PaymentNotice:
    attempt_id: str
    status: OperatorStatus
    level: NoticeLevel
    message: str
    attempt_count: int = 0
    warnings: Tuple[str, ...] = ()


def describe(snapshot: PaymentSnapshot) -> PaymentNotice:
    status = _STATUS_BY_STATE[snapshot.state]
    warnings: List[str] = []

    if snapshot.amount_mismatch:
        warnings.append(
            f"Paid amount ({snapshot.settled_amount}) differs from "
            f"total ({snapshot.amount_due}). Review this sale."
        )
    if snapshot.requires_manual_verification:
        warnings.append(
            "Payment may still complete on the customer's phone. "
            "Verify manually."
        )

    if status is OperatorStatus.COLLECTING:
        if snapshot.poll_count:
            message = f"Waiting for customer confirmation (check {snapshot.poll_count})"
        else:
            message = "Check your phone for the payment prompt"
        level = NoticeLevel.WARNING if snapshot.abandoned else NoticeLevel.INFO
    elif status is OperatorStatus.SUCCESS:
        if snapshot.method is PaymentMethod.MOBILE_MONEY and snapshot.external_receipt_ref:
            message = f"Payment received! Receipt: {snapshot.external_receipt_ref}"
        else:
            message = "Payment received"
        level = NoticeLevel.WARNING if warnings else NoticeLevel.SUCCESS
    elif status is OperatorStatus.CANCELLED:
        message = snapshot.failure_reason or "Payment was cancelled"
        level = NoticeLevel.ERROR
    elif status is OperatorStatus.FAILED:
        message = snapshot.failure_reason or "Payment failed"
        level = NoticeLevel.ERROR
    else:
        message = "Ready to collect payment"
        level = NoticeLevel.INFO

    return PaymentNotice(
        attempt_id=snapshot.attempt_id,
        status=status,
        level=level,
        message=message,
        attempt_count=snapshot.poll_count,
        warnings=tuple(warnings),
    )


class NotificationSink(Protocol):
    def notify(self, notice: PaymentNotice) -> None:
        ...


class LoggingNotificationSink:
    """Default sink: one log line per notice."""

    _LEVELS = {
        NoticeLevel.INFO: logging.INFO,
        NoticeLevel.SUCCESS: logging.INFO,
        NoticeLevel.WARNING: logging.WARNING,
        NoticeLevel.ERROR: logging.ERROR,
    }

    def __init__(self, target: Optional[logging.Logger] = None):
        self._logger = target or logger

    def notify(self, notice: PaymentNotice) -> None:
        text = f"[{notice.status.value}] {notice.message}"
        if notice.warnings:
            text += " | " + " | ".join(notice.warnings)
        self._logger.log(self._LEVELS[notice.level], text)


class RecordingNotificationSink:
    """Keeps every notice; handy for UIs that render a history."""

    def __init__(self):
        self.notices: List[PaymentNotice] = []

    def notify(self, notice: PaymentNotice) -> None:
        self.notices.append(notice)

    @property
    def last(self) -> Optional[PaymentNotice]:
        return self.notices[-1] if self.notices else None
