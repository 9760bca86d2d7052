from __future__ import annotations

import asyncio
import time

from ports.time import ClockPort, SleeperPort


class MonotonicClock(ClockPort):
    """Wall-clock using perf_counter for monotonic timing."""

    def now(self) -> float:
        return time.perf_counter()


class AsyncioSleeper(SleeperPort):
    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
