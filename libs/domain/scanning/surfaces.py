from __future__ import annotations

import logging
from typing import Final

from ports.camera import FrameImage
from ports.decode import Location
from ports.surface import FrameSchedulerPort, RenderFn, RenderSurface

from ..geometry import DisplayGeometry, map_location

LOG: Final = logging.getLogger("scanner.surfaces")

PAUSE_KEY: Final = "pause"
TRACKING_KEY: Final = "tracking"


class FrameSurfaceManager:
    """Pause-frame and tracking-overlay surfaces.

    Every mutation goes through the scheduler under the surface's key, so
    several calls before the next refresh tick collapse into the last one.
    Nothing here reports completion.
    """

    def __init__(
        self,
        pause: RenderSurface,
        tracking: RenderSurface,
        scheduler: FrameSchedulerPort,
    ) -> None:
        self.pause: Final = pause
        self.tracking: Final = tracking
        self.scheduler: Final = scheduler

    def paint_pause_frame(self, frame: FrameImage) -> None:
        def work() -> None:
            self.pause.resize(frame.width, frame.height)
            self.pause.put_frame(frame)

        self.scheduler.defer(PAUSE_KEY, work)

    def clear_pause_frame(self) -> None:
        self.scheduler.defer(PAUSE_KEY, self.pause.clear)

    def clear_tracking_layer(self) -> None:
        self.scheduler.defer(TRACKING_KEY, self.tracking.clear)

    def discard_pending(self) -> None:
        """Drop queued surface work; nothing queued so far reaches a surface."""
        self.scheduler.cancel_all()

    def repaint_tracking_layer(
        self,
        location: Location | None,
        geometry: DisplayGeometry,
        render_fn: RenderFn | None,
    ) -> None:
        # Custom renderers are not asked to draw an idle state; no location clears.
        if render_fn is None or location is None:
            self.clear_tracking_layer()
            return
        if not geometry.has_resolution:
            LOG.debug("no stream resolution yet; clearing overlay")
            self.clear_tracking_layer()
            return

        mapped = map_location(location, geometry)

        def work() -> None:
            self.tracking.resize(geometry.display_width, geometry.display_height)
            render_fn(mapped, self.tracking.drawing_context())

        self.scheduler.defer(TRACKING_KEY, work)
