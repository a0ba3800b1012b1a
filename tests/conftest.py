from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest


class FakeTime:
    """Deterministic clock/sleep pair for the poll scheduler.

    ``sleep`` advances the clock instantly, runs any timers that became due
    and yields to the event loop once.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []
        self._timers: list[tuple[float, Callable[[], object]]] = []

    def clock(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def call_at(self, when: float, callback: Callable[[], object]) -> None:
        self._timers.append((when, callback))

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
        due = [timer for timer in self._timers if timer[0] <= self.now + 1e-9]
        self._timers = [timer for timer in self._timers if timer not in due]
        for _when, callback in due:
            callback()
        await asyncio.sleep(0)


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()
