"""
POS Payment Engine — Polling Task
====================================
A cancellable repeating task: wait the initial delay, tick,
then tick again every interval until the tick says STOP or the
budget of ticks is spent.

Cancellation and the attempt budget are properties of the task
itself, not of accumulated timer callbacks. Cancelling the task
stops all future ticks; nothing is left scheduled.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from core.config.rules import PaymentPollingRules
from engines.payment.machine import PollDirective

logger = logging.getLogger("pos.payment")

Sleep = Callable[[float], Awaitable[None]]


class PollOutcome(Enum):
    STOPPED = "stopped"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class PollingTask:

    def __init__(
        self,
        *,
        tick: Callable[[], Awaitable[PollDirective]],
        rules: PaymentPollingRules,
        on_exhausted: Callable[[], Awaitable[None]],
        sleep: Sleep = asyncio.sleep,
    ):
        self._tick = tick
        self._rules = rules
        self._on_exhausted = on_exhausted
        self._sleep = sleep
        self._ticks = 0
        self._task: Optional[asyncio.Task] = None
        self._outcome: Optional[PollOutcome] = None

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def outcome(self) -> Optional[PollOutcome]:
        return self._outcome

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self) -> PollOutcome:
        try:
            await self._sleep(self._rules.initial_delay_seconds)
            while True:
                directive = await self._tick()
                self._ticks += 1
                if directive is PollDirective.STOP:
                    self._outcome = PollOutcome.STOPPED
                    return self._outcome
                if self._ticks >= self._rules.max_poll_attempts:
                    await self._on_exhausted()
                    self._outcome = PollOutcome.EXHAUSTED
                    return self._outcome
                await self._sleep(self._rules.poll_interval_seconds)
        except asyncio.CancelledError:
            self._outcome = PollOutcome.CANCELLED
            logger.info(f"Polling cancelled after {self._ticks} tick(s)")
            raise

    def start(self) -> asyncio.Task:
        """Schedule run() on the running loop. Call from a coroutine."""
        if self._task is not None:
            raise RuntimeError("PollingTask already started.")
        self._task = asyncio.ensure_future(self.run())
        return self._task

    def cancel(self) -> bool:
        if self._task is None or self._task.done():
            return False
        return self._task.cancel()
