from __future__ import annotations

from collections.abc import Callable

from ports.surface import FrameSchedulerPort


class ManualFrameScheduler(FrameSchedulerPort):
    """Queues ops until the test calls tick()."""

    def __init__(self) -> None:
        self.pending: dict[str, Callable[[], None]] = {}
        self.deferred = 0
        self.ticks = 0

    def defer(self, key: str, work: Callable[[], None]) -> None:
        self.deferred += 1
        self.pending[key] = work

    def cancel_all(self) -> None:
        self.pending.clear()

    def tick(self) -> int:
        pending, self.pending = self.pending, {}
        for work in pending.values():
            work()
        self.ticks += 1
        return len(pending)
