from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Mapping
from typing import Any, Final

import cv2
import numpy as np

from ports.camera import CameraHandle, CameraSelector, FrameImage

LOG: Final = logging.getLogger("scanner.camera")


class OpenCvCameraHandle(CameraHandle):
    """cv2.VideoCapture plus a reader thread that keeps only the newest frame.

    capture_frame() never blocks on the device; it returns whatever the
    reader saw last, the same way a displayed video element would.
    """

    def __init__(self, cap: cv2.VideoCapture, source: int | str, torch: bool) -> None:
        self._fps = float(cap.get(cv2.CAP_PROP_FPS) or 0.0)
        self._source = source
        self._torch = torch
        self._lock = threading.Lock()
        self._latest: np.ndarray | None = None
        self._stop = threading.Event()
        self._first = threading.Event()
        self._thread = threading.Thread(
            target=self._reader, args=(cap,), name="camera-reader", daemon=True
        )
        self._thread.start()

    def _reader(self, cap: cv2.VideoCapture) -> None:
        # the only thread that touches cap.read() also releases it
        try:
            while not self._stop.is_set():
                ok, frame = cap.read()
                if not ok:
                    self._stop.wait(0.05)
                    continue
                with self._lock:
                    self._latest = frame
                self._first.set()
        finally:
            cap.release()
            LOG.info("camera %s released", self._source)

    def wait_first_frame(self, timeout: float) -> bool:
        return self._first.wait(timeout)

    @property
    def capabilities(self) -> Mapping[str, Any]:
        w, h = self.resolution
        # OpenCV exposes no portable torch control
        return {"source": self._source, "resolution": [w, h], "fps": self._fps, "torch": False}

    @property
    def resolution(self) -> tuple[int, int]:
        with self._lock:
            latest = self._latest
        if latest is None:
            return 0, 0
        h, w = latest.shape[:2]
        return int(w), int(h)

    def capture_frame(self) -> FrameImage:
        with self._lock:
            latest = self._latest
        if latest is None:
            raise RuntimeError("no frame available yet")
        bgra = cv2.cvtColor(latest, cv2.COLOR_BGR2BGRA)
        h, w = bgra.shape[:2]
        return FrameImage(width=int(w), height=int(h), bgra=bgra.tobytes())

    def stop(self) -> None:
        """Returns at once; the reader releases the device after its current read."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def join(self, timeout: float | None = None) -> bool:
        self._thread.join(timeout)
        return not self._thread.is_alive()


class OpenCvCameraAcquirer:
    """Maps selectors onto device indices; a target string (path/URL/index) wins."""

    def __init__(
        self,
        rear_index: int = 0,
        front_index: int = 1,
        width: int = 1280,
        height: int = 720,
        first_frame_timeout: float = 3.0,
    ) -> None:
        self.rear_index = rear_index
        self.front_index = front_index
        self.width = width
        self.height = height
        self.first_frame_timeout = first_frame_timeout

    def source_for(self, target: str | None, selector: CameraSelector) -> int | str:
        if target:
            return int(target) if target.isdigit() else target
        if selector == "front":
            return self.front_index
        return self.rear_index

    async def acquire(
        self, target: str | None, selector: CameraSelector, torch: bool
    ) -> OpenCvCameraHandle:
        if selector == "off":
            raise ValueError("selector 'off' has no device")
        source = self.source_for(target, selector)
        handle = await asyncio.to_thread(self._open, source, torch)
        LOG.info("camera %s opened (%s)", source, selector)
        return handle

    def _open(self, source: int | str, torch: bool) -> OpenCvCameraHandle:
        cap = cv2.VideoCapture(source)
        if not cap.isOpened():
            cap.release()
            raise RuntimeError(f"cannot open camera {source!r}")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        if torch:
            LOG.warning("torch requested but not supported for camera %s", source)
        handle = OpenCvCameraHandle(cap, source, torch)
        if not handle.wait_first_frame(self.first_frame_timeout):
            handle.stop()
            raise RuntimeError(f"camera {source!r} produced no frames")
        return handle
