from __future__ import annotations

import asyncio

from ports.time import ClockPort, SleeperPort


class FakeClockPort(ClockPort):
    """Virtual clock; only moves when advanced."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += max(0.0, float(seconds))


class FakeSleeperPort(SleeperPort):
    """Jumps the fake clock forward instead of waiting; still yields to the loop."""

    def __init__(self, clock: FakeClockPort) -> None:
        self.clock = clock
        self.calls: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)
        await asyncio.sleep(0)
