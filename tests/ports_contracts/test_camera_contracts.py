from __future__ import annotations

import asyncio
import importlib.util
import os
import sys
import threading
import time

import pytest

pytestmark = pytest.mark.contract

cv2_available = importlib.util.find_spec("cv2") is not None
mss_available = importlib.util.find_spec("mss") is not None
headless = sys.platform.startswith("linux") and not os.environ.get("DISPLAY")


@pytest.mark.skipif(not cv2_available, reason="opencv not installed")
def test_opencv_selector_mapping():
    from adapters.camera.opencv import OpenCvCameraAcquirer

    acq = OpenCvCameraAcquirer(rear_index=0, front_index=2)
    assert acq.source_for(None, "auto") == 0
    assert acq.source_for(None, "rear") == 0
    assert acq.source_for(None, "front") == 2
    assert acq.source_for("5", "front") == 5
    assert acq.source_for("clip.mp4", "auto") == "clip.mp4"


@pytest.mark.skipif(not cv2_available, reason="opencv not installed")
def test_opencv_missing_source_fails_acquisition(tmp_path):
    from adapters.camera.opencv import OpenCvCameraAcquirer

    acq = OpenCvCameraAcquirer(first_frame_timeout=0.2)
    with pytest.raises(RuntimeError):
        asyncio.run(acq.acquire(str(tmp_path / "missing.mp4"), "auto", False))
    with pytest.raises(ValueError):
        asyncio.run(acq.acquire(None, "off", False))



class _StallingCapture:
    """VideoCapture stand-in whose reads after the first block until released."""

    def __init__(self) -> None:
        self.gate = threading.Event()
        self.released = threading.Event()
        self.reading = False
        self.release_during_read = False
        self.reads = 0

    def get(self, prop: int) -> float:
        return 30.0

    def read(self):
        import numpy as np

        self.reading = True
        try:
            self.reads += 1
            if self.reads > 1:
                self.gate.wait(2.0)
            return True, np.zeros((4, 6, 3), dtype=np.uint8)
        finally:
            self.reading = False

    def release(self) -> None:
        if self.reading:
            self.release_during_read = True
        self.released.set()


@pytest.mark.skipif(not cv2_available, reason="opencv not installed")
def test_opencv_stop_returns_at_once_and_releases_after_the_read():
    from adapters.camera.opencv import OpenCvCameraHandle

    cap = _StallingCapture()
    handle = OpenCvCameraHandle(cap, 0, False)  # type: ignore[arg-type]
    assert handle.wait_first_frame(1.0)
    assert handle.capabilities["resolution"] == [6, 4]
    assert handle.capabilities["fps"] == 30.0

    t0 = time.perf_counter()
    handle.stop()
    assert time.perf_counter() - t0 < 0.1
    assert handle.stopped
    # the reader is still inside read(); the device must stay open
    assert not cap.released.is_set()

    cap.gate.set()
    assert cap.released.wait(1.0)
    assert handle.join(1.0)
    assert not cap.release_during_read

    handle.stop()  # idempotent


@pytest.mark.skipif(not mss_available or headless, reason="mss or a display not available")
def test_mss_handle_grabs_bgra_frames():
    from adapters.camera.mss import MSSCameraAcquirer
    from ports.camera import CameraHandle

    acq = MSSCameraAcquirer(monitor=1, region=(0, 0, 64, 32))
    handle = asyncio.run(acq.acquire(None, "auto", False))
    try:
        assert isinstance(handle, CameraHandle)
        assert handle.resolution == (64, 32)
        frame = handle.capture_frame()
        assert (frame.width, frame.height) == (64, 32)
        assert len(frame.bgra) == frame.width * frame.height * 4
        assert handle.capabilities["torch"] is False
    finally:
        handle.stop()
        handle.stop()
    with pytest.raises(RuntimeError):
        handle.capture_frame()
