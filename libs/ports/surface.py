from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Protocol

from .camera import FrameImage
from .decode import Location

# (mapped_location, drawing_context) -> None
RenderFn = Callable[[Location, Any], None]


class RenderSurface(ABC):
    """Off-screen bitmap the host composites over the live view."""

    @property
    @abstractmethod
    def width(self) -> int: ...

    @property
    @abstractmethod
    def height(self) -> int: ...

    @abstractmethod
    def resize(self, width: int, height: int) -> None: ...  # always leaves a blank surface

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def put_frame(self, frame: FrameImage) -> None: ...

    @abstractmethod
    def drawing_context(self) -> Any: ...


class FrameSchedulerPort(ABC):
    """Runs work on the next display-refresh tick.

    At most one pending op per key; deferring again under the same key
    replaces the earlier op.
    """

    @abstractmethod
    def defer(self, key: str, work: Callable[[], None]) -> None: ...

    @abstractmethod
    def cancel_all(self) -> None: ...


class ViewportPort(Protocol):
    def display_size(self) -> tuple[int, int]: ...  # on-screen w, h of the video box
