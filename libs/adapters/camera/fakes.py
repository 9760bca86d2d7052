from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from ports.camera import CameraHandle, CameraSelector, FrameImage


class FakeCameraHandle(CameraHandle):
    """Solid-grey frames; counts captures and stops."""

    def __init__(
        self,
        width: int = 64,
        height: int = 48,
        capabilities: Mapping[str, Any] | None = None,
        selector: CameraSelector = "auto",
        torch: bool = False,
    ) -> None:
        self.width = width
        self.height = height
        self.selector = selector
        self.torch = torch
        self._caps = dict(capabilities or {"torch": torch, "resolution": [width, height]})
        self.captures = 0
        self.stop_calls = 0
        self.stopped = False

    @property
    def capabilities(self) -> Mapping[str, Any]:
        return self._caps

    @property
    def resolution(self) -> tuple[int, int]:
        return self.width, self.height

    def capture_frame(self) -> FrameImage:
        if self.stopped:
            raise RuntimeError("capture on a stopped camera")
        self.captures += 1
        shade = self.captures % 256
        return FrameImage(
            width=self.width,
            height=self.height,
            bgra=bytes((shade, shade, shade, 255)) * (self.width * self.height),
        )

    def stop(self) -> None:
        self.stop_calls += 1
        self.stopped = True


class FakeCameraAcquirer:
    """Hands out FakeCameraHandles.

    With ``hold=True`` each acquire() waits until the test calls release(),
    which lets a test tear things down while an acquisition is in flight.
    """

    def __init__(
        self,
        width: int = 64,
        height: int = 48,
        hold: bool = False,
        fail: Exception | None = None,
    ) -> None:
        self.width = width
        self.height = height
        self.hold = hold
        self.fail = fail
        self.requests: list[tuple[str | None, CameraSelector, bool]] = []
        self.handles: list[FakeCameraHandle] = []
        self._gates: list[asyncio.Future[None]] = []

    async def acquire(
        self, target: str | None, selector: CameraSelector, torch: bool
    ) -> FakeCameraHandle:
        self.requests.append((target, selector, torch))
        if self.hold:
            gate: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self._gates.append(gate)
            await gate
        if self.fail is not None:
            raise self.fail
        handle = FakeCameraHandle(self.width, self.height, selector=selector, torch=torch)
        self.handles.append(handle)
        return handle

    def release(self) -> None:
        for gate in self._gates:
            if not gate.done():
                gate.set_result(None)
        self._gates.clear()

    def live_handles(self) -> list[FakeCameraHandle]:
        return [h for h in self.handles if not h.stopped]
