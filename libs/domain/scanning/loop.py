# libs/domain/scanning/loop.py
from __future__ import annotations

import asyncio
import logging
from typing import Final

from ports.camera import CameraHandle, FrameImage
from ports.decode import DecodeResult, DecodeWorkerPort
from ports.time import ClockPort, SleeperPort

from .model import Detection, ScanConfig

LOG: Final = logging.getLogger("scanner.loop")


class ScanHandle:
    """Cancel token for one scan-loop run. Safe to cancel more than once."""

    def cancel(self) -> None:
        pass

    @property
    def active(self) -> bool:
        return False


NOOP_SCAN: Final = ScanHandle()


class ScanLoop(ScanHandle):
    """Poll camera → worker → handlers, one round in flight at a time."""

    def __init__(
        self,
        worker: DecodeWorkerPort,
        camera: CameraHandle,
        config: ScanConfig,
        clock: ClockPort,
        sleeper: SleeperPort,
    ) -> None:
        self.worker: Final = worker
        self.camera: Final = camera
        self.config: Final = config
        self._clock = clock
        self._sleeper = sleeper
        self._cancelled = False
        self._task: asyncio.Task[None] | None = None
        self._last_content: str | None = None
        self.iterations = 0

    def start(self) -> ScanLoop:
        self._task = asyncio.get_running_loop().create_task(self._run(), name="scan-loop")
        return self

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        LOG.debug("scan loop cancelled after %d iterations", self.iterations)

    @property
    def active(self) -> bool:
        return not self._cancelled and self._task is not None and not self._task.done()

    async def _run(self) -> None:
        last_scanned: float | None = None
        while not self._cancelled:
            if last_scanned is not None:
                wait = last_scanned + self.config.min_delay - self._clock.now()
                await self._sleeper.sleep(max(0.0, wait))
                if self._cancelled:
                    break

            last_scanned = self._clock.now()
            frame, result = await self._poll()
            if self._cancelled:
                break

            self.iterations += 1
            self._dispatch(frame, result)

    async def _poll(self) -> tuple[FrameImage | None, DecodeResult]:
        try:
            frame = self.camera.capture_frame()
        except Exception as ex:
            LOG.warning("frame capture failed: %r", ex)
            return None, DecodeResult.empty()
        try:
            return frame, await self.worker.decode(frame)
        except asyncio.CancelledError:
            raise
        except Exception as ex:
            # a bad frame counts as "nothing found"; keep polling
            LOG.warning("decode failed: %r", ex)
            return frame, DecodeResult.empty()

    def _dispatch(self, frame: FrameImage | None, result: DecodeResult) -> None:
        try:
            self.config.locate_handler(result.location)
        except Exception:
            LOG.exception("locate handler raised")

        content = result.content
        if content is None or frame is None or self._cancelled:
            return
        if self.config.suppress_repeats and content == self._last_content:
            return
        self._last_content = content
        try:
            self.config.detect_handler(
                Detection(content=content, location=result.location, frame=frame)
            )
        except Exception:
            LOG.exception("detect handler raised")


class ScanLoopController:
    """Keeps exactly one ScanLoop alive; a new start() cancels the previous run."""

    def __init__(self, clock: ClockPort, sleeper: SleeperPort) -> None:
        self.clock: Final = clock
        self.sleeper: Final = sleeper
        self._current: ScanHandle = NOOP_SCAN

    @property
    def current(self) -> ScanHandle:
        return self._current

    def start(
        self, worker: DecodeWorkerPort, camera: CameraHandle, config: ScanConfig
    ) -> ScanHandle:
        self._current.cancel()
        self._current = ScanLoop(worker, camera, config, self.clock, self.sleeper).start()
        return self._current

    def cancel(self) -> None:
        self._current.cancel()
        self._current = NOOP_SCAN
