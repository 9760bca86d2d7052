from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Final

from ports.surface import FrameSchedulerPort

LOG: Final = logging.getLogger("scanner.scheduler")


class AsyncioFrameScheduler(FrameSchedulerPort):
    """Refresh-tick scheduler on the running event loop.

    The first defer() after a flush arms one timer for the next tick; later
    defers ride along, replacing any op already queued under the same key.
    """

    def __init__(self, refresh_hz: float = 60.0) -> None:
        self._interval = 1.0 / max(1.0, refresh_hz)
        self._pending: dict[str, Callable[[], None]] = {}
        self._timer: asyncio.TimerHandle | None = None
        self.ticks = 0

    def defer(self, key: str, work: Callable[[], None]) -> None:
        self._pending[key] = work
        if self._timer is None:
            self._timer = asyncio.get_running_loop().call_later(self._interval, self._flush)

    def cancel_all(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending.clear()

    def _flush(self) -> None:
        self._timer = None
        pending, self._pending = self._pending, {}
        for key, work in pending.items():
            try:
                work()
            except Exception:
                LOG.exception("deferred '%s' op failed", key)
        self.ticks += 1
