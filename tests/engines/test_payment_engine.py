"""POS Payment Engine tests: state machine, poll loop, notices, watchlist."""

import asyncio
from decimal import Decimal

import pytest

from core.config.rules import PaymentPollingRules
from engines.loyalty import InvalidPhone
from engines.payment import (
    CheckoutInProgress,
    FailureCode,
    GatewayError,
    GatewayReport,
    GatewayStatus,
    InMemoryPaymentWatchlist,
    InitiationResult,
    InsufficientCash,
    InvalidPaymentTransition,
    OperatorStatus,
    PaymentAttempt,
    PaymentMethod,
    PaymentOrchestrator,
    PaymentState,
    PollDirective,
    PollingTask,
    PollOutcome,
    RecordingNotificationSink,
    ReportDisposition,
    StatusResult,
    WatchStatus,
    gateway_amount,
    reconcile_report,
)

PHONE = "0712345678"
REQUEST_ID = "ws_CO_0001"

PENDING = StatusResult(status=GatewayStatus.PENDING)


def paid(amount="1160", receipt="QK12ABC"):
    return StatusResult(
        status=GatewayStatus.SUCCESS,
        settled_amount=Decimal(amount),
        receipt_ref=receipt,
        message="Payment successful",
    )


class ScriptedGateway:
    """Answers status queries from a script; repeats the last answer."""

    def __init__(self, script=(), *, refuse=None):
        self.script = list(script)
        self.refuse = refuse
        self.initiated = []
        self.queries = 0

    def initiate(self, phone, amount, reference):
        self.initiated.append((phone, amount, reference))
        if self.refuse:
            raise GatewayError(self.refuse, status_code=400)
        return InitiationResult(request_id=REQUEST_ID)

    def query_status(self, request_id, expected_amount):
        self.queries += 1
        answer = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(answer, Exception):
            raise answer
        return answer


async def inline(fn, *args):
    return fn(*args)


class HeldCall:
    """run_blocking that holds the first call until released."""

    def __init__(self):
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self, fn, *args):
        if not self.release.is_set():
            self.entered.set()
            await self.release.wait()
        return fn(*args)


class SleepLog:
    def __init__(self, yield_control=False):
        self.delays = []
        self.yield_control = yield_control

    async def __call__(self, seconds):
        self.delays.append(seconds)
        if self.yield_control:
            await asyncio.sleep(0)


def _orchestrator(
    gateway, *, max_polls=12, sleep=None, watchlist=None, notifier=None, run_blocking=inline,
):
    return PaymentOrchestrator(
        gateway=gateway,
        rules=PaymentPollingRules(max_poll_attempts=max_polls),
        notifier=notifier or RecordingNotificationSink(),
        watchlist=watchlist,
        sleep=sleep or SleepLog(),
        run_blocking=run_blocking,
    )


# ══════════════════════════════════════════════════════════════
# STATE MACHINE
# ══════════════════════════════════════════════════════════════

class TestAttemptTransitions:
    def test_terminal_states_are_final(self):
        attempt = PaymentAttempt(method=PaymentMethod.MOBILE_MONEY, amount_due=Decimal(10))
        attempt.transition_to(PaymentState.PENDING)
        attempt.transition_to(PaymentState.SUCCESS)
        with pytest.raises(InvalidPaymentTransition):
            attempt.transition_to(PaymentState.FAILED)
        assert attempt.state is PaymentState.SUCCESS

    def test_idle_cannot_jump_to_cancelled(self):
        attempt = PaymentAttempt(method=PaymentMethod.MOBILE_MONEY, amount_due=Decimal(10))
        with pytest.raises(InvalidPaymentTransition):
            attempt.transition_to(PaymentState.CANCELLED)

    def test_gateway_amount_rounds_up(self):
        assert gateway_amount(Decimal("928.01")) == Decimal(929)
        assert gateway_amount(Decimal("1160.00")) == Decimal(1160)


class TestCash:
    def test_shortfall_keeps_attempt_idle(self):
        orch = _orchestrator(None)
        orch.begin(PaymentMethod.CASH, Decimal("1160"))
        with pytest.raises(InsufficientCash) as info:
            orch.pay_cash("1000")
        assert info.value.code == "INSUFFICIENT_CASH"
        assert orch.attempt.state is PaymentState.IDLE

    def test_exact_cash(self):
        orch = _orchestrator(None)
        orch.begin(PaymentMethod.CASH, Decimal("1160"))
        attempt = orch.pay_cash("1160")
        assert attempt.state is PaymentState.SUCCESS
        assert attempt.change_due == Decimal(0)

    def test_change_is_computed(self):
        orch = _orchestrator(None)
        orch.begin(PaymentMethod.CASH, Decimal("928"))
        attempt = orch.pay_cash(1000)
        assert attempt.change_due == Decimal(72)
        assert attempt.settled_amount == Decimal(928)

    def test_success_notice_published(self):
        sink = RecordingNotificationSink()
        orch = _orchestrator(None, notifier=sink)
        orch.begin(PaymentMethod.CASH, Decimal("50"))
        orch.pay_cash(50)
        assert sink.last.status is OperatorStatus.SUCCESS


# ══════════════════════════════════════════════════════════════
# MOBILE MONEY
# ══════════════════════════════════════════════════════════════

class TestMobileMoney:
    def test_n_pending_then_success_polls_n_plus_one_times(self):
        gateway = ScriptedGateway([PENDING, PENDING, PENDING, paid()])
        sleep = SleepLog()
        orch = _orchestrator(gateway, sleep=sleep)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))

        attempt = asyncio.run(orch.collect_mobile_money("0712 345 678"))

        assert attempt.state is PaymentState.SUCCESS
        assert attempt.poll_count == 4
        assert gateway.queries == 4
        assert attempt.external_receipt_ref == "QK12ABC"
        assert attempt.amount_mismatch is False
        assert sleep.delays == [5.0, 5.0, 5.0, 5.0]
        assert gateway.initiated[0][0] == PHONE

    def test_push_amount_is_ceiled_total(self):
        gateway = ScriptedGateway([paid("929")])
        orch = _orchestrator(gateway)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("928.40"))
        asyncio.run(orch.collect_mobile_money(PHONE))
        assert gateway.initiated[0][1] == Decimal(929)
        assert orch.attempt.amount_mismatch is False

    def test_poll_after_terminal_does_not_query(self):
        gateway = ScriptedGateway([paid()])
        orch = _orchestrator(gateway)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))
        asyncio.run(orch.collect_mobile_money(PHONE))

        directive = asyncio.run(orch.poll_once())

        assert directive is PollDirective.STOP
        assert gateway.queries == 1
        assert orch.attempt.poll_count == 1

    def test_budget_exhausted_flags_manual_verification(self):
        watchlist = InMemoryPaymentWatchlist()
        gateway = ScriptedGateway([PENDING])
        orch = _orchestrator(gateway, max_polls=3, watchlist=watchlist)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))

        attempt = asyncio.run(orch.collect_mobile_money(PHONE))

        assert attempt.state is PaymentState.FAILED
        assert attempt.failure_code == FailureCode.POLL_TIMEOUT
        assert attempt.requires_manual_verification is True
        assert gateway.queries == 3
        assert watchlist.get(REQUEST_ID).status is WatchStatus.NEEDS_VERIFICATION

    def test_query_errors_count_as_pending(self):
        gateway = ScriptedGateway([
            GatewayError("timeout"),
            RuntimeError("connection reset"),
            paid(),
        ])
        orch = _orchestrator(gateway)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))

        attempt = asyncio.run(orch.collect_mobile_money(PHONE))

        assert attempt.state is PaymentState.SUCCESS
        assert attempt.poll_count == 3

    def test_initiation_refused_fails_without_polling(self):
        gateway = ScriptedGateway([PENDING], refuse="M-Pesa credentials not configured")
        orch = _orchestrator(gateway)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))

        attempt = asyncio.run(orch.collect_mobile_money(PHONE))

        assert attempt.state is PaymentState.FAILED
        assert attempt.failure_code == FailureCode.GATEWAY_REJECTED
        assert attempt.failure_reason == "M-Pesa credentials not configured"
        assert gateway.queries == 0

    def test_customer_cancellation(self):
        gateway = ScriptedGateway([
            PENDING,
            StatusResult(status=GatewayStatus.CANCELLED, message="Request cancelled by user"),
        ])
        sink = RecordingNotificationSink()
        orch = _orchestrator(gateway, notifier=sink)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))

        attempt = asyncio.run(orch.collect_mobile_money(PHONE))

        assert attempt.state is PaymentState.CANCELLED
        assert sink.last.status is OperatorStatus.CANCELLED
        assert sink.last.message == "Request cancelled by user"

    def test_amount_mismatch_is_flagged_not_rejected(self):
        gateway = ScriptedGateway([paid("1100")])
        sink = RecordingNotificationSink()
        orch = _orchestrator(gateway, notifier=sink)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))

        attempt = asyncio.run(orch.collect_mobile_money(PHONE))

        assert attempt.state is PaymentState.SUCCESS
        assert attempt.amount_mismatch is True
        assert sink.last.warnings

    def test_invalid_phone_rejected_before_gateway(self):
        gateway = ScriptedGateway([paid()])
        orch = _orchestrator(gateway)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))
        with pytest.raises(InvalidPhone):
            asyncio.run(orch.initiate_mobile_money("123"))
        assert gateway.initiated == []
        assert orch.attempt.state is PaymentState.IDLE

    def test_cannot_begin_while_pending(self):
        gateway = ScriptedGateway([PENDING])
        orch = _orchestrator(gateway)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))
        asyncio.run(orch.initiate_mobile_money(PHONE))

        with pytest.raises(CheckoutInProgress):
            orch.begin(PaymentMethod.CASH, Decimal("1160"))

    def test_notices_follow_the_attempt(self):
        gateway = ScriptedGateway([PENDING, paid()])
        sink = RecordingNotificationSink()
        orch = _orchestrator(gateway, notifier=sink)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))
        asyncio.run(orch.collect_mobile_money(PHONE))

        statuses = [n.status for n in sink.notices]
        assert statuses[0] is OperatorStatus.COLLECTING
        assert statuses[-1] is OperatorStatus.SUCCESS
        assert sink.last.message == "Payment received! Receipt: QK12ABC"


class TestClose:
    def test_close_stops_polling_and_keeps_charge_pending(self):
        watchlist = InMemoryPaymentWatchlist()
        gateway = ScriptedGateway([PENDING])
        orch = _orchestrator(gateway, sleep=SleepLog(yield_control=True), watchlist=watchlist)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))

        async def scenario():
            await orch.initiate_mobile_money(PHONE)
            waiter = asyncio.ensure_future(orch.await_settlement())
            while orch.attempt.poll_count < 2:
                await asyncio.sleep(0)
            orch.close()
            attempt = await waiter
            queries_at_close = gateway.queries
            for _ in range(10):
                await asyncio.sleep(0)
            return attempt, queries_at_close

        attempt, queries_at_close = asyncio.run(scenario())

        assert attempt.state is PaymentState.PENDING
        assert attempt.abandoned is True
        assert attempt.requires_manual_verification is True
        assert gateway.queries == queries_at_close
        assert watchlist.get(REQUEST_ID).status is WatchStatus.NEEDS_VERIFICATION

    def test_close_during_push_request_never_starts_polling(self):
        watchlist = InMemoryPaymentWatchlist()
        gateway = ScriptedGateway([PENDING])
        gate = HeldCall()
        orch = _orchestrator(
            gateway, max_polls=5, watchlist=watchlist,
            sleep=SleepLog(yield_control=True), run_blocking=gate,
        )
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))

        async def scenario():
            collector = asyncio.ensure_future(orch.collect_mobile_money(PHONE))
            await gate.entered.wait()
            orch.close()
            gate.release.set()
            return await collector

        attempt = asyncio.run(scenario())

        assert gateway.queries == 0
        assert attempt.state is PaymentState.PENDING
        assert attempt.abandoned is True
        assert attempt.requires_manual_verification is True
        assert orch.is_busy is False
        assert watchlist.get(REQUEST_ID).status is WatchStatus.NEEDS_VERIFICATION

    def test_abandoned_attempt_does_not_block_next_checkout(self):
        gateway = ScriptedGateway([PENDING])
        orch = _orchestrator(gateway)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))
        asyncio.run(orch.initiate_mobile_money(PHONE))
        orch.close()

        attempt = orch.begin(PaymentMethod.CASH, Decimal("1160"))
        assert attempt.state is PaymentState.IDLE

    def test_close_without_attempt_is_harmless(self):
        _orchestrator(None).close()


# ══════════════════════════════════════════════════════════════
# POLLING TASK
# ══════════════════════════════════════════════════════════════

class TestPollingTask:
    def test_stops_when_tick_says_stop(self):
        answers = [PollDirective.POLL_AGAIN, PollDirective.STOP]

        async def tick():
            return answers.pop(0)

        exhausted = []

        async def on_exhausted():
            exhausted.append(True)

        task = PollingTask(
            tick=tick,
            rules=PaymentPollingRules(initial_delay_seconds=2, poll_interval_seconds=3),
            on_exhausted=on_exhausted,
            sleep=SleepLog(),
        )
        outcome = asyncio.run(task.run())
        assert outcome is PollOutcome.STOPPED
        assert task.ticks == 2
        assert exhausted == []

    def test_budget_calls_on_exhausted_once(self):
        async def tick():
            return PollDirective.POLL_AGAIN

        exhausted = []
        sleep = SleepLog()

        async def on_exhausted():
            exhausted.append(True)

        task = PollingTask(
            tick=tick,
            rules=PaymentPollingRules(
                initial_delay_seconds=2, poll_interval_seconds=3, max_poll_attempts=4,
            ),
            on_exhausted=on_exhausted,
            sleep=sleep,
        )
        outcome = asyncio.run(task.run())
        assert outcome is PollOutcome.EXHAUSTED
        assert task.ticks == 4
        assert exhausted == [True]
        assert sleep.delays == [2, 3, 3, 3]

    def test_cannot_start_twice(self):
        async def tick():
            return PollDirective.STOP

        async def on_exhausted():
            return None

        async def scenario():
            task = PollingTask(
                tick=tick, rules=PaymentPollingRules(), on_exhausted=on_exhausted, sleep=SleepLog(),
            )
            await task.start()
            with pytest.raises(RuntimeError):
                task.start()
            return task

        task = asyncio.run(scenario())
        assert task.outcome is PollOutcome.STOPPED
        assert task.running is False


# ══════════════════════════════════════════════════════════════
# WATCHLIST
# ══════════════════════════════════════════════════════════════

class TestWatchlist:
    def _timed_out(self):
        watchlist = InMemoryPaymentWatchlist()
        orch = _orchestrator(ScriptedGateway([PENDING]), max_polls=1, watchlist=watchlist)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))
        asyncio.run(orch.collect_mobile_money(PHONE))
        return watchlist

    def test_late_success_after_timeout(self):
        watchlist = self._timed_out()
        report = GatewayReport(
            request_id=REQUEST_ID, status=GatewayStatus.SUCCESS,
            settled_amount=Decimal("1160"), receipt_ref="QK99LATE",
        )
        assert reconcile_report(watchlist, report) is ReportDisposition.LATE_SUCCESS
        entry = watchlist.get(REQUEST_ID)
        assert entry.status is WatchStatus.LATE_SUCCESS
        assert entry.receipt_ref == "QK99LATE"
        assert entry in watchlist.needing_attention()

    def test_late_failure_closes_entry(self):
        watchlist = self._timed_out()
        report = GatewayReport(request_id=REQUEST_ID, status=GatewayStatus.FAILED, message="Insufficient funds")
        assert reconcile_report(watchlist, report) is ReportDisposition.CLOSED
        assert watchlist.get(REQUEST_ID).status is WatchStatus.CLOSED
        assert watchlist.needing_attention() == []

    def test_report_for_settled_attempt_is_already_final(self):
        watchlist = InMemoryPaymentWatchlist()
        orch = _orchestrator(ScriptedGateway([paid()]), watchlist=watchlist)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))
        asyncio.run(orch.collect_mobile_money(PHONE))

        report = GatewayReport(request_id=REQUEST_ID, status=GatewayStatus.SUCCESS)
        assert reconcile_report(watchlist, report) is ReportDisposition.ALREADY_FINAL

    def test_report_while_polling_is_in_flight(self):
        watchlist = InMemoryPaymentWatchlist()
        orch = _orchestrator(ScriptedGateway([PENDING]), watchlist=watchlist)
        orch.begin(PaymentMethod.MOBILE_MONEY, Decimal("1160"))
        asyncio.run(orch.initiate_mobile_money(PHONE))

        report = GatewayReport(request_id=REQUEST_ID, status=GatewayStatus.SUCCESS)
        assert reconcile_report(watchlist, report) is ReportDisposition.IN_FLIGHT

    def test_unknown_success_is_kept_as_unmatched(self):
        watchlist = InMemoryPaymentWatchlist()
        report = GatewayReport(request_id="ws_CO_unknown", status=GatewayStatus.SUCCESS)
        assert reconcile_report(watchlist, report) is ReportDisposition.UNMATCHED
        assert watchlist.unmatched == [report]

    def test_unknown_failure_is_ignored(self):
        watchlist = InMemoryPaymentWatchlist()
        report = GatewayReport(request_id="ws_CO_unknown", status=GatewayStatus.FAILED)
        assert reconcile_report(watchlist, report) is ReportDisposition.IGNORED
        assert watchlist.unmatched == []
