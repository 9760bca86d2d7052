# libs/domain/geometry.py
"""Detector-space → display-space mapping for a video box using "cover" fit.

The displayed video fills its box and crops whichever axis overflows, so a
raw-resolution point is scaled by the larger of the two axis ratios and then
shifted by half of the overflow (negative offset on the cropped axis).
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from ports.decode import Location, Point


@dataclass(frozen=True)
class DisplayGeometry:
    display_width: int
    display_height: int
    resolution_width: int
    resolution_height: int

    @property
    def has_resolution(self) -> bool:
        return self.resolution_width > 0 and self.resolution_height > 0


def cover_scale(geometry: DisplayGeometry) -> float:
    return max(
        geometry.display_width / geometry.resolution_width,
        geometry.display_height / geometry.resolution_height,
    )


def map_location(location: Location, geometry: DisplayGeometry) -> dict[str, Point]:
    if not geometry.has_resolution:
        raise ValueError(f"cannot map without a resolution: {geometry!r}")

    scale = cover_scale(geometry)
    uncut_width = geometry.resolution_width * scale
    uncut_height = geometry.resolution_height * scale
    x_offset = (geometry.display_width - uncut_width) / 2
    y_offset = (geometry.display_height - uncut_height) / 2

    return {
        key: Point(
            x=math.floor(p.x * scale + x_offset),
            y=math.floor(p.y * scale + y_offset),
        )
        for key, p in location.items()
    }
