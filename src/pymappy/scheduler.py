"""Poll scheduler.

Owns all timing: the one-time startup delay, the regular poll cadence and
the slower settle cadence used after a zone change. Every callback runs on
a single asyncio task, one at a time, so tick handlers never overlap.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
import time
from collections.abc import Awaitable, Callable
from enum import StrEnum

from pymappy.config import SchedulerConfig
from pymappy.exceptions import SchedulerStateError

_logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[None]]


class SchedulerState(StrEnum):
    CREATED = "created"
    DELAYING = "delaying"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


async def _noop() -> None:
    return None


class PollScheduler:
    """Drive the read-and-decide cycle.

    Lifecycle::

        CREATED -> start() -> DELAYING -> (delay elapsed) -> RUNNING <-> PAUSED
        any state -> stop() -> STOPPED (terminal)

    ``start()`` on a scheduler that is not ``CREATED`` raises
    :class:`SchedulerStateError`.

    While paused, ticks still elapse but return immediately without invoking
    any callback. :meth:`enter_settle` switches to the settle cadence and
    invokes ``on_settle_tick`` instead of ``on_tick`` until
    :meth:`leave_settle`. The two are independent: leaving settle mode keeps
    a pause requested with :meth:`pause`.

    A tick that overruns its interval causes the missed ticks to be dropped
    with a warning rather than fired back to back.

    Parameters
    ----------
    config : SchedulerConfig
        Timing.
    on_start : callable
        Awaited once when the startup delay has elapsed.
    on_tick : callable
        Awaited once per poll interval while not paused.
    on_settle_tick : callable or None
        Awaited once per settle interval while in settle mode.
    clock, sleep
        Monotonic clock and sleep coroutine; injectable for tests.
    """

    def __init__(
        self,
        config: SchedulerConfig,
        *,
        on_start: TickCallback = _noop,
        on_tick: TickCallback = _noop,
        on_settle_tick: TickCallback = _noop,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._on_start = on_start
        self._on_tick = on_tick
        self._on_settle_tick = on_settle_tick
        self._clock = clock
        self._sleep = sleep
        self._state = SchedulerState.CREATED
        self._paused = False
        self._settling = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task[None] | None = None
        self._ticks = 0
        self._settle_ticks = 0
        self._dropped_ticks = 0

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def state(self) -> SchedulerState:
        if self._state == SchedulerState.RUNNING and (self._paused or self._settling):
            return SchedulerState.PAUSED
        return self._state

    @property
    def is_paused(self) -> bool:
        """Whether polling was paused with :meth:`pause`. Settle mode is separate."""
        return self._paused

    @property
    def is_settling(self) -> bool:
        return self._settling

    @property
    def ticks(self) -> int:
        """Number of ``on_tick`` invocations so far."""
        return self._ticks

    @property
    def settle_ticks(self) -> int:
        return self._settle_ticks

    @property
    def dropped_ticks(self) -> int:
        return self._dropped_ticks

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Schedule the startup delay. Must be called from a running loop."""
        if self._state != SchedulerState.CREATED:
            raise SchedulerStateError(f"Cannot start scheduler in state {self._state}")
        self._loop = asyncio.get_running_loop()
        self._state = SchedulerState.DELAYING
        self._task = self._loop.create_task(self._run(), name="pymappy-poll-scheduler")
        _logger.debug(
            "Scheduler started delay_ms=%s interval_ms=%s",
            self._config.startup_delay_ms,
            self._config.poll_interval_ms,
        )

    def pause(self) -> None:
        """Suspend every callback, settle ticks included, until :meth:`resume`."""
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    def enter_settle(self) -> None:
        """Replace regular ticks with settle ticks on the settle cadence."""
        self._settling = True

    def leave_settle(self) -> None:
        """Return to regular ticks. A pause set with :meth:`pause` is kept."""
        self._settling = False

    async def stop(self) -> None:
        """Cancel all timers. No callback fires after this returns."""
        self._state = SchedulerState.STOPPED
        self._paused = False
        self._settling = False
        task = self._task
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        _logger.debug("Scheduler stopped after %d ticks", self._ticks)

    def stop_threadsafe(self, timeout: float | None = None) -> None:
        """Stop from a thread other than the scheduler's loop, blocking until done."""
        loop = self._loop
        if loop is None or loop.is_closed():
            self._state = SchedulerState.STOPPED
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            raise SchedulerStateError("stop_threadsafe() called from the scheduler loop; await stop() instead")
        future = asyncio.run_coroutine_threadsafe(self.stop(), loop)
        future.result(timeout)

    async def wait(self) -> None:
        """Wait for the scheduler task to finish."""
        task = self._task
        if task is None or task.done():
            return
        # asyncio.wait never cancels the task when the waiter is cancelled.
        await asyncio.wait({task})

    # ------------------------------------------------------------------
    # Task body
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        await self._sleep(self._config.startup_delay)
        if self._state == SchedulerState.STOPPED:
            return
        await self._invoke(self._on_start, "start")
        if self._state == SchedulerState.STOPPED:
            return
        self._state = SchedulerState.RUNNING

        deadline = self._clock()
        while self._state != SchedulerState.STOPPED:
            interval = self._config.settle_interval if self._settling else self._config.poll_interval
            deadline += interval
            now = self._clock()
            delay = deadline - now
            if delay < 0:
                overrun = -delay
                skipped = math.ceil(overrun / interval)
                self._dropped_ticks += skipped
                deadline += skipped * interval
                delay = deadline - now
                _logger.warning("Tick overran its interval by %.3fs; dropping %d tick(s)", overrun, skipped)
            await self._sleep(delay)

            if self._state == SchedulerState.STOPPED:
                return
            if self._paused:
                continue
            if self._settling:
                self._settle_ticks += 1
                await self._invoke(self._on_settle_tick, "settle tick")
            else:
                self._ticks += 1
                await self._invoke(self._on_tick, "tick")

    async def _invoke(self, callback: TickCallback, label: str) -> None:
        # Each tick is isolated: a failure is logged and the loop keeps running.
        try:
            await callback()
        except Exception:
            _logger.warning("Scheduler %s callback failed", label, exc_info=True)
