from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Protocol

from .camera import FrameImage


@dataclass(frozen=True)
class Point:
    x: float
    y: float


# corner name -> point; None is the "no location" sentinel
Location = Mapping[str, Point]

CORNERS: tuple[str, ...] = ("top_left", "top_right", "bottom_right", "bottom_left")


class DecodeError(RuntimeError):
    """One frame could not be analysed; callers treat it as "nothing found"."""


@dataclass(frozen=True)
class DecodeResult:
    location: Location | None = None
    content: str | None = None

    @classmethod
    def empty(cls) -> DecodeResult:
        return cls()


class DecodeWorkerPort(Protocol):
    """Turns one frame into a location and (maybe) a payload. One request at a time."""

    async def decode(self, frame: FrameImage) -> DecodeResult: ...

    def close(self) -> None: ...


DecodeWorkerFactory = Callable[[], DecodeWorkerPort]

__all__ = [
    "Point",
    "Location",
    "CORNERS",
    "DecodeError",
    "DecodeResult",
    "DecodeWorkerPort",
    "DecodeWorkerFactory",
]
