"""
POS Payment Engine — Public API
==================================
Cash and mobile-money attempts, the poll loop, operator notices
and the out-of-band watchlist.
"""

from engines.payment.errors import (
    CheckoutInProgress,
    GatewayError,
    InsufficientCash,
    InvalidPaymentTransition,
)
from engines.payment.gateway import (
    GatewayStatus,
    InitiationResult,
    MobileMoneyGateway,
    StatusResult,
)
from engines.payment.machine import PollDirective
from engines.payment.models import (
    FailureCode,
    PaymentAttempt,
    PaymentMethod,
    PaymentSnapshot,
    PaymentState,
    TERMINAL_STATES,
    gateway_amount,
)
from engines.payment.notifications import (
    LoggingNotificationSink,
    NoticeLevel,
    OperatorStatus,
    PaymentNotice,
    RecordingNotificationSink,
    describe,
)
from engines.payment.polling import PollingTask, PollOutcome
from engines.payment.services import PaymentOrchestrator
from engines.payment.watchlist import (
    GatewayReport,
    InMemoryPaymentWatchlist,
    PaymentWatchlist,
    ReportDisposition,
    WatchEntry,
    WatchStatus,
    reconcile_report,
)

__all__ = [
    "CheckoutInProgress",
    "FailureCode",
    "GatewayError",
    "GatewayReport",
    "GatewayStatus",
    "InMemoryPaymentWatchlist",
    "InitiationResult",
    "InsufficientCash",
    "InvalidPaymentTransition",
    "LoggingNotificationSink",
    "MobileMoneyGateway",
    "NoticeLevel",
    "OperatorStatus",
    "PaymentAttempt",
    "PaymentMethod",
    "PaymentNotice",
    "PaymentOrchestrator",
    "PaymentSnapshot",
    "PaymentState",
    "PaymentWatchlist",
    "PollDirective",
    "PollOutcome",
    "PollingTask",
    "RecordingNotificationSink",
    "ReportDisposition",
    "StatusResult",
    "TERMINAL_STATES",
    "WatchEntry",
    "WatchStatus",
    "describe",
    "gateway_amount",
    "reconcile_report",
]
