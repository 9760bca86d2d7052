from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Union

from ports.camera import FrameImage
from ports.decode import DecodeResult

Scripted = Union[DecodeResult, Exception]


class ScriptedDecodeWorker:
    """Replays scripted results (or raises scripted errors), then repeats the last one.

    Tracks how many decodes overlap so tests can check single-flight use.
    """

    def __init__(self, script: Iterable[Scripted] = (), latency: float = 0.0) -> None:
        self._script = list(script) or [DecodeResult.empty()]
        self.latency = latency
        self.frames: list[FrameImage] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def decode(self, frame: FrameImage) -> DecodeResult:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                await asyncio.sleep(self.latency)
            idx = min(len(self.frames), len(self._script) - 1)
            self.frames.append(frame)
            item = self._script[idx]
            if isinstance(item, Exception):
                raise item
            return item
        finally:
            self.in_flight -= 1

    @property
    def calls(self) -> int:
        return len(self.frames)

    def close(self) -> None:
        self.closed = True
