from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor

import cv2
import numpy as np

from ports.camera import FrameImage
from ports.decode import CORNERS, DecodeError, DecodeResult, Point


class OpenCvQrWorker:
    """cv2.QRCodeDetector on its own single thread, so decodes never overlap."""

    def __init__(self) -> None:
        self._detector = cv2.QRCodeDetector()
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="qr-decode")
        self._closed = False

    async def decode(self, frame: FrameImage) -> DecodeResult:
        if self._closed:
            raise DecodeError("worker is closed")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._pool, self.decode_sync, frame)

    def decode_sync(self, frame: FrameImage) -> DecodeResult:
        if frame.width <= 0 or frame.height <= 0:
            return DecodeResult.empty()
        try:
            bgra = np.frombuffer(frame.bgra, dtype=np.uint8).reshape(frame.height, frame.width, 4)
            gray = cv2.cvtColor(bgra, cv2.COLOR_BGRA2GRAY)
            data, points, _ = self._detector.detectAndDecode(gray)
        except (ValueError, cv2.error) as ex:
            raise DecodeError(f"cannot decode {frame.width}x{frame.height} frame: {ex}") from ex

        content = data or None
        if points is None:
            return DecodeResult(location=None, content=content)
        corners = np.asarray(points, dtype=np.float32).reshape(-1, 2)
        if len(corners) < len(CORNERS):
            return DecodeResult(location=None, content=content)
        location = {
            name: Point(x=float(x), y=float(y)) for name, (x, y) in zip(CORNERS, corners)
        }
        return DecodeResult(location=location, content=content)

    def close(self) -> None:
        self._closed = True
        self._pool.shutdown(wait=False, cancel_futures=True)
