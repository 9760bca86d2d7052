from __future__ import annotations

from pathlib import Path
from typing import Final

from PIL import Image, ImageDraw

from ports.camera import FrameImage
from ports.decode import CORNERS, Location
from ports.surface import RenderSurface

OUTLINE_RGBA: Final = (255, 0, 0, 255)
OUTLINE_WIDTH: Final = 2


class PillowSurface(RenderSurface):
    """RGBA bitmap; ImageDraw is the drawing context handed to renderers."""

    def __init__(self, width: int = 0, height: int = 0) -> None:
        self._image = Image.new("RGBA", (max(0, width), max(0, height)), (0, 0, 0, 0))

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    @property
    def image(self) -> Image.Image:
        return self._image

    def resize(self, width: int, height: int) -> None:
        self._image = Image.new("RGBA", (max(0, width), max(0, height)), (0, 0, 0, 0))

    def clear(self) -> None:
        self.resize(self.width, self.height)

    def put_frame(self, frame: FrameImage) -> None:
        expected = frame.width * frame.height * 4
        if len(frame.bgra) != expected:
            raise ValueError(f"frame buffer is {len(frame.bgra)} bytes, expected {expected}")
        src = Image.frombuffer(
            "RGBA", (frame.width, frame.height), frame.bgra, "raw", "BGRA", 0, 1
        )
        self._image.paste(src, (0, 0))

    def drawing_context(self) -> ImageDraw.ImageDraw:
        return ImageDraw.Draw(self._image)

    def is_blank(self) -> bool:
        return self._image.getbbox() is None

    def save(self, path: str | Path) -> Path:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        self._image.save(p, format="PNG")
        return p


def draw_outline(location: Location, ctx: ImageDraw.ImageDraw) -> None:
    """Default tracking shape: closed outline through the four corners."""
    points = [(location[c].x, location[c].y) for c in CORNERS if c in location]
    if len(points) < 2:
        return
    ctx.line(points + [points[0]], fill=OUTLINE_RGBA, width=OUTLINE_WIDTH)
