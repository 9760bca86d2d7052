# libs/ports/camera.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, Protocol, runtime_checkable

CameraSelector = Literal["auto", "rear", "front", "off"]
CAMERA_SELECTORS: tuple[str, ...] = ("auto", "rear", "front", "off")


@dataclass(frozen=True)
class FrameImage:
    width: int
    height: int
    # raw BGRA bytes (row-major). Keep it tech-agnostic.
    bgra: bytes

    def size(self) -> tuple[int, int]:
        return self.width, self.height


@runtime_checkable
class CameraHandle(Protocol):
    """A live stream. Only the lifecycle controller holds one."""

    @property
    def capabilities(self) -> Mapping[str, Any]: ...

    @property
    def resolution(self) -> tuple[int, int]: ...  # raw frame w, h; (0, 0) until known

    def capture_frame(self) -> FrameImage: ...

    def stop(self) -> None: ...  # must tolerate repeated calls


class CameraAcquirePort(Protocol):
    """Opens a stream for a selector. The returned handle stays stoppable after resolution."""

    async def acquire(
        self, target: str | None, selector: CameraSelector, torch: bool
    ) -> CameraHandle: ...


__all__ = [
    "CameraSelector",
    "CAMERA_SELECTORS",
    "FrameImage",
    "CameraHandle",
    "CameraAcquirePort",
]
