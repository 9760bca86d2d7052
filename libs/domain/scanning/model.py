from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, Union

from ports.camera import FrameImage
from ports.decode import Location
from ports.surface import RenderFn

TRACKING_INTERVAL_S = 0.04  # ~25 fps while the overlay is live
DETECT_ONLY_INTERVAL_S = 0.5

TrackingMode = Union[Literal["on", "off"], RenderFn]


@dataclass(frozen=True)
class Detection:
    content: str
    location: Location | None
    frame: FrameImage


DetectHandler = Callable[[Detection], None]
LocateHandler = Callable[[Location | None], None]


@dataclass(frozen=True)
class ScanConfig:
    min_delay: float
    detect_handler: DetectHandler
    locate_handler: LocateHandler
    suppress_repeats: bool = False


def scan_interval_for(render_fn: RenderFn | None) -> float:
    """Sample slowly when nothing is drawn; only payloads matter then."""
    return DETECT_ONLY_INTERVAL_S if render_fn is None else TRACKING_INTERVAL_S
