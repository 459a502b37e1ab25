"""
POS Payment Engine — Payment Orchestrator
============================================
Drives one payment attempt at a time to a terminal state.

Cash settles synchronously. Mobile money sends a push request,
then polls the gateway from a cancellable PollingTask until the
customer approves, declines, the gateway fails the charge, or
the poll budget runs out. Status-query errors count as "still
pending"; only the exhausted budget surfaces them.

The orchestrator is the single writer of its PaymentAttempt.
Callers read snapshots; every change is published to the
notification sink.

Not re-entrant: a new attempt cannot begin while one is pending.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Awaitable, Callable, Optional

from core.commands.rejection import RejectionReason
from core.config.rules import PaymentPollingRules, to_decimal
from engines.loyalty.services import validate_phone
from engines.payment.errors import CheckoutInProgress, GatewayError
from engines.payment.gateway import MobileMoneyGateway
from engines.payment.machine import (
    PollDirective,
    record_abandoned,
    record_budget_exhausted,
    record_initiated,
    record_initiation_failed,
    record_poll_started,
    record_query_error,
    record_status,
    tender_cash,
)
from engines.payment.models import (
    PaymentAttempt,
    PaymentMethod,
    PaymentSnapshot,
    PaymentState,
)
from engines.payment.notifications import (
    LoggingNotificationSink,
    NotificationSink,
    describe,
)
from engines.payment.polling import PollingTask, Sleep
from engines.payment.watchlist import (
    PaymentWatchlist,
    WatchStatus,
    mark,
    track,
)

logger = logging.getLogger("pos.payment")

RunBlocking = Callable[..., Awaitable[Any]]

ABANDONED_NOTE = "Checkout closed while payment was pending."


def default_reference(attempt: PaymentAttempt) -> str:
    return f"POS-{attempt.attempt_id[:8].upper()}"


class PaymentOrchestrator:

    def __init__(
        self,
        *,
        gateway: Optional[MobileMoneyGateway] = None,
        rules: Optional[PaymentPollingRules] = None,
        notifier: Optional[NotificationSink] = None,
        watchlist: Optional[PaymentWatchlist] = None,
        sleep: Sleep = asyncio.sleep,
        run_blocking: RunBlocking = asyncio.to_thread,
        reference_factory: Callable[[PaymentAttempt], str] = default_reference,
    ):
        self._gateway = gateway
        self._rules = rules or PaymentPollingRules()
        self._notifier = notifier or LoggingNotificationSink()
        self._watchlist = watchlist
        self._sleep = sleep
        self._run_blocking = run_blocking
        self._reference_factory = reference_factory
        self._attempt: Optional[PaymentAttempt] = None
        self._poller: Optional[PollingTask] = None
        self._closing = False

    # ── Read side ─────────────────────────────────────────────

    @property
    def attempt(self) -> Optional[PaymentAttempt]:
        return self._attempt

    def snapshot(self) -> Optional[PaymentSnapshot]:
        return self._attempt.snapshot() if self._attempt else None

    @property
    def is_busy(self) -> bool:
        return (
            self._attempt is not None
            and self._attempt.state is PaymentState.PENDING
            and not self._attempt.abandoned
        )

    # ── Lifecycle ─────────────────────────────────────────────

    def begin(self, method: PaymentMethod, amount_due) -> PaymentAttempt:
        """Start a fresh attempt. Refused while another is pending."""
        if self.is_busy:
            raise CheckoutInProgress(
                RejectionReason(
                    code=CheckoutInProgress.default_code,
                    message="A payment is already being collected.",
                    policy_name="PaymentOrchestrator.begin",
                )
            )
        amount = to_decimal(amount_due, field_name="amount_due")
        if amount < 0:
            raise ValueError("amount_due must be >= 0.")
        self._attempt = PaymentAttempt(method=method, amount_due=amount)
        self._poller = None
        self._closing = False
        logger.info(
            f"Payment attempt {self._attempt.attempt_id} "
            f"({method.value}) for {amount}"
        )
        return self._attempt

    def _require(self, method: PaymentMethod) -> PaymentAttempt:
        attempt = self._attempt
        if attempt is None:
            raise RuntimeError("No payment attempt. Call begin() first.")
        if attempt.method is not method:
            raise ValueError(
                f"Current attempt is {attempt.method.value}, not {method.value}."
            )
        return attempt

    def _publish(self) -> None:
        if self._attempt is None:
            return
        try:
            self._notifier.notify(describe(self._attempt.snapshot()))
        except Exception as exc:
            logger.error(f"Notification sink failed: {exc}", exc_info=True)

    # ── Cash ──────────────────────────────────────────────────

    def pay_cash(self, cash_received) -> PaymentAttempt:
        attempt = self._require(PaymentMethod.CASH)
        tender_cash(attempt, to_decimal(cash_received, field_name="cash_received"))
        logger.info(
            f"Cash attempt {attempt.attempt_id} settled, "
            f"change {attempt.change_due}"
        )
        self._publish()
        return attempt

    # ── Mobile money ──────────────────────────────────────────

    async def initiate_mobile_money(self, phone: str) -> PaymentAttempt:
        """idle → pending, or idle → failed if the push cannot be sent."""
        attempt = self._require(PaymentMethod.MOBILE_MONEY)
        if attempt.state is not PaymentState.IDLE:
            return attempt
        if self._gateway is None:
            raise RuntimeError("No mobile-money gateway configured.")

        attempt.customer_phone = validate_phone(phone)
        amount = attempt.expected_gateway_amount
        reference = self._reference_factory(attempt)

        try:
            result = await self._run_blocking(
                self._gateway.initiate, attempt.customer_phone, amount, reference,
            )
        except GatewayError as exc:
            logger.warning(
                f"Push request for attempt {attempt.attempt_id} refused: {exc.message}"
            )
            record_initiation_failed(attempt, exc.message)
            self._publish()
            return attempt
        except Exception as exc:
            logger.error(
                f"Push request for attempt {attempt.attempt_id} errored: {exc}",
                exc_info=True,
            )
            record_initiation_failed(attempt, "Failed to initiate mobile-money payment.")
            self._publish()
            return attempt

        record_initiated(attempt, result.request_id)
        logger.info(
            f"Push request {result.request_id} sent for attempt "
            f"{attempt.attempt_id} ({amount} to {attempt.customer_phone})"
        )
        await self._watch(
            track,
            request_id=result.request_id,
            attempt_id=attempt.attempt_id,
            amount_due=attempt.amount_due,
            phone=attempt.customer_phone,
        )
        self._publish()
        return attempt

    async def poll_once(self) -> PollDirective:
        """
        One status query. After a terminal state this is a no-op
        that never reaches the gateway.
        """
        attempt = self._require(PaymentMethod.MOBILE_MONEY)
        if attempt.state is not PaymentState.PENDING or attempt.abandoned:
            return PollDirective.STOP

        record_poll_started(attempt)
        try:
            result = await self._run_blocking(
                self._gateway.query_status,
                attempt.external_request_id,
                attempt.expected_gateway_amount,
            )
        except Exception as exc:
            logger.warning(
                f"Status check {attempt.poll_count} for "
                f"{attempt.external_request_id} failed: {exc}"
            )
            directive = record_query_error(attempt, exc)
            self._publish()
            return directive

        directive = record_status(
            attempt, result, rounding_tolerance=self._rules.rounding_tolerance,
        )
        if attempt.is_terminal:
            await self._on_terminal(attempt)
        self._publish()
        return directive

    async def await_settlement(self) -> PaymentAttempt:
        """Poll until terminal, budget exhausted, or close()."""
        attempt = self._require(PaymentMethod.MOBILE_MONEY)
        if attempt.state is not PaymentState.PENDING:
            return attempt
        if self._closing:
            # closed while the push request was in flight
            if self._abandon(attempt):
                await self._flag_abandoned(attempt)
            return attempt

        self._poller = PollingTask(
            tick=self.poll_once,
            rules=self._rules,
            on_exhausted=self._on_budget_exhausted,
            sleep=self._sleep,
        )
        task = self._poller.start()
        try:
            await task
        except asyncio.CancelledError:
            self._abandon(attempt)
            if attempt.abandoned:
                await self._flag_abandoned(attempt)
            if not self._closing:
                raise
        return attempt

    async def collect_mobile_money(self, phone: str) -> PaymentAttempt:
        attempt = await self.initiate_mobile_money(phone)
        if attempt.state is PaymentState.PENDING:
            await self.await_settlement()
        return attempt

    def close(self) -> None:
        """
        Closing the checkout dialog. Stops polling; a pending charge
        is left pending and flagged, never assumed cancelled.
        """
        self._closing = True
        attempt = self._attempt
        polling = self._poller is not None and self._poller.running
        if polling:
            # await_settlement flags the watchlist once the task unwinds
            self._poller.cancel()
        if attempt is None or not self._abandon(attempt):
            return
        if not polling and self._watchlist is not None and attempt.external_request_id:
            mark(
                self._watchlist,
                attempt.external_request_id,
                WatchStatus.NEEDS_VERIFICATION,
                note=ABANDONED_NOTE,
            )

    # ── Internals ─────────────────────────────────────────────

    def _abandon(self, attempt: PaymentAttempt) -> bool:
        if attempt.state is not PaymentState.PENDING or attempt.abandoned:
            return False
        record_abandoned(attempt)
        logger.warning(
            f"Attempt {attempt.attempt_id} abandoned while pending "
            f"(request {attempt.external_request_id}); verify manually"
        )
        self._publish()
        return True

    async def _flag_abandoned(self, attempt: PaymentAttempt) -> None:
        await self._watch(
            mark,
            attempt.external_request_id,
            WatchStatus.NEEDS_VERIFICATION,
            note=ABANDONED_NOTE,
        )

    async def _watch(self, operation: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """
        Watchlist writes run like gateway calls, off the event loop.
        A failed write is logged; it never changes the payment outcome.
        """
        if self._watchlist is None:
            return
        try:
            await self._run_blocking(partial(operation, self._watchlist, *args, **kwargs))
        except Exception as exc:
            logger.error(f"Watchlist update {operation.__name__} failed: {exc}", exc_info=True)

    async def _on_budget_exhausted(self) -> None:
        attempt = self._attempt
        if attempt is None or attempt.is_terminal:
            return
        record_budget_exhausted(attempt)
        logger.warning(
            f"Attempt {attempt.attempt_id} timed out after "
            f"{attempt.poll_count} status checks"
        )
        await self._watch(
            mark,
            attempt.external_request_id,
            WatchStatus.NEEDS_VERIFICATION,
            note=attempt.failure_reason,
        )
        self._publish()

    async def _on_terminal(self, attempt: PaymentAttempt) -> None:
        if attempt.state is PaymentState.SUCCESS:
            logger.info(
                f"Attempt {attempt.attempt_id} paid "
                f"(receipt {attempt.external_receipt_ref}, "
                f"amount {attempt.settled_amount})"
            )
            if attempt.amount_mismatch:
                logger.warning(
                    f"Attempt {attempt.attempt_id}: settled "
                    f"{attempt.settled_amount} vs due {attempt.amount_due}"
                )
            status = WatchStatus.SETTLED
        else:
            logger.info(
                f"Attempt {attempt.attempt_id} ended {attempt.state.value}: "
                f"{attempt.failure_reason}"
            )
            status = WatchStatus.CLOSED
        await self._watch(mark, attempt.external_request_id, status)
