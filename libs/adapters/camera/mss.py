from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any, cast

try:
    import mss  # type: ignore
except Exception:  # pragma: no cover
    mss = None

from ports.camera import CameraHandle, CameraSelector, FrameImage

Rect = Mapping[str, int]  # {"left": int, "top": int, "width": int, "height": int}


class MSSCameraHandle(CameraHandle):
    """A monitor treated as a camera: each capture is a fresh screen grab."""

    def __init__(self, monitor: int = 1, region: tuple[int, int, int, int] | None = None) -> None:
        self._monitor_idx = int(monitor)
        self._region = region
        self._sct: mss.mss | None = None
        self._rect: dict[str, int] | None = None
        self._last_times: list[float] = []

    def open(self) -> None:
        if mss is None:
            raise RuntimeError("mss is not installed")
        sct = mss.mss()
        monitors = sct.monitors  # has attribute at runtime
        # clamp to a real monitor (monitors[0] is "all")
        idx = self._monitor_idx
        if idx < 1 or idx >= len(monitors):
            idx = 1
        mon = cast(dict[str, int], dict(monitors[idx]))
        if self._region is not None:
            x, y, w, h = self._region
            mon = {
                "left": int(mon["left"]) + int(x),
                "top": int(mon["top"]) + int(y),
                "width": int(w),
                "height": int(h),
            }
        self._sct = sct
        self._rect = mon

    @property
    def capabilities(self) -> Mapping[str, Any]:
        w, h = self.resolution
        return {
            "source": "screen",
            "monitor": self._monitor_idx,
            "resolution": [w, h],
            "torch": False,
        }

    @property
    def resolution(self) -> tuple[int, int]:
        if self._rect is None:
            return 0, 0
        return int(self._rect["width"]), int(self._rect["height"])

    def capture_frame(self) -> FrameImage:
        if self._sct is None or self._rect is None:
            raise RuntimeError("screen capture is stopped")
        shot: Any = self._sct.grab(self._rect)
        # Prefer BGRA if available; fall back to raw
        if hasattr(shot, "bgra"):
            bgra_bytes = bytes(shot.bgra)
        else:
            bgra_bytes = bytes(shot.raw)
        self._last_times.append(time.perf_counter())
        return FrameImage(width=shot.width, height=shot.height, bgra=bgra_bytes)

    def fps(self) -> float:
        now = time.perf_counter()
        self._last_times = [t for t in self._last_times if now - t <= 1.0]
        return float(len(self._last_times))

    def stop(self) -> None:
        if self._sct:
            try:
                self._sct.close()
            except Exception:
                pass
        self._sct = None
        self._rect = None
        self._last_times.clear()


class MSSCameraAcquirer:
    """Any selector other than "off" opens the configured monitor; there is no torch."""

    def __init__(self, monitor: int = 1, region: tuple[int, int, int, int] | None = None) -> None:
        self.monitor = monitor
        self.region = region

    async def acquire(
        self, target: str | None, selector: CameraSelector, torch: bool
    ) -> MSSCameraHandle:
        monitor = int(target) if target and target.isdigit() else self.monitor
        handle = MSSCameraHandle(monitor=monitor, region=self.region)
        handle.open()
        return handle
