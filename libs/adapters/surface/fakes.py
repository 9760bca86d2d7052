from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ports.camera import FrameImage
from ports.surface import RenderSurface


@dataclass
class FakeDrawContext:
    calls: list[tuple[str, Any]] = field(default_factory=list)

    def line(self, xy: Any, **kwargs: Any) -> None:
        self.calls.append(("line", xy))


class FakeSurface(RenderSurface):
    """Records what would have been drawn."""

    def __init__(self) -> None:
        self._w = 0
        self._h = 0
        self.ops: list[str] = []
        self.frame: FrameImage | None = None
        self.ctx = FakeDrawContext()

    @property
    def width(self) -> int:
        return self._w

    @property
    def height(self) -> int:
        return self._h

    def resize(self, width: int, height: int) -> None:
        self.ops.append(f"resize:{width}x{height}")
        self._w, self._h = width, height
        self.frame = None
        self.ctx = FakeDrawContext()

    def clear(self) -> None:
        self.ops.append("clear")
        self.frame = None
        self.ctx = FakeDrawContext()

    def put_frame(self, frame: FrameImage) -> None:
        self.ops.append("put_frame")
        self.frame = frame

    def drawing_context(self) -> FakeDrawContext:
        return self.ctx

    def state(self) -> tuple[int, int, FrameImage | None, list[tuple[str, Any]]]:
        return self._w, self._h, self.frame, list(self.ctx.calls)
