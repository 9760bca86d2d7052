# libs/domain/scanning/lifecycle.py
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Final

from ports.camera import CAMERA_SELECTORS, CameraAcquirePort, CameraHandle, CameraSelector
from ports.decode import DecodeWorkerFactory, DecodeWorkerPort, Location
from ports.events import InitObserverPort, InitResult
from ports.surface import RenderFn, ViewportPort

from ..geometry import DisplayGeometry
from .errors import AcquisitionError, ScannerError
from .loop import ScanLoopController
from .model import Detection, DetectHandler, ScanConfig, TrackingMode, scan_interval_for
from .surfaces import FrameSurfaceManager

LOG: Final = logging.getLogger("scanner.lifecycle")


class StreamLifecycleController:
    """Owns the camera handle and keeps scanning and surfaces in step with it.

    Two predicates drive everything and are never stored:

    * ``should_stream``: enabled and the selector is not ``"off"``
    * ``should_scan``: ``should_stream`` and a handle is installed

    Each mutation snapshots both before and after and reacts to the edges:
    stream on→off freezes a pause frame from the still-live handle; scan
    off→on clears both surfaces and starts a loop; scan on→off cancels it.

    Acquisitions race against newer ``configure()`` calls and ``close()`` via
    a generation counter; a handle resolved under a stale generation is
    stopped instead of installed.
    """

    def __init__(
        self,
        *,
        acquirer: CameraAcquirePort,
        surfaces: FrameSurfaceManager,
        scan_loops: ScanLoopController,
        worker_factory: DecodeWorkerFactory,
        viewport: ViewportPort,
        default_renderer: RenderFn | None = None,
        observer: InitObserverPort | None = None,
        on_detect: DetectHandler | None = None,
        tracking: TrackingMode = "on",
        suppress_repeats: bool = False,
        target: str | None = None,
    ) -> None:
        self.acquirer: Final = acquirer
        self.surfaces: Final = surfaces
        self.scan_loops: Final = scan_loops
        self.worker_factory: Final = worker_factory
        self.viewport: Final = viewport
        self.default_renderer: Final = default_renderer
        self.observer = observer
        self.on_detect = on_detect
        self.suppress_repeats = suppress_repeats
        self.target = target

        self._tracking: TrackingMode = tracking
        self._selector: CameraSelector = "off"
        self._torch = False
        self._enabled = True
        self._closed = False
        self._handle: CameraHandle | None = None
        self._capabilities: dict[str, Any] = {}
        self._worker: DecodeWorkerPort | None = None
        self._generation = 0

    # ----- derived state -----

    @property
    def should_stream(self) -> bool:
        return self._enabled and self._selector != "off"

    @property
    def should_scan(self) -> bool:
        return self.should_stream and self._handle is not None

    @property
    def handle(self) -> CameraHandle | None:
        return self._handle

    @property
    def capabilities(self) -> Mapping[str, Any]:
        return dict(self._capabilities)

    @property
    def selector(self) -> CameraSelector:
        return self._selector

    @property
    def torch(self) -> bool:
        return self._torch

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def render_fn(self) -> RenderFn | None:
        if self._tracking == "on":
            return self.default_renderer
        if self._tracking == "off":
            return None
        return self._tracking

    # ----- host API -----

    def configure(
        self, selector: CameraSelector = "auto", torch: bool = False
    ) -> asyncio.Future[InitResult]:
        """(Re)open the stream. Must run inside the event loop.

        The "off" branch completes before returning; any other selector
        resolves asynchronously. The outcome goes to the observer as well.
        """
        if self._closed:
            raise ScannerError("controller is closed")
        if selector not in CAMERA_SELECTORS:
            raise ValueError(f"unknown camera selector: {selector!r}")

        loop = asyncio.get_running_loop()
        self._generation += 1
        generation = self._generation

        with self._transitions():
            self._selector = selector
            self._torch = bool(torch)
        # never hold two device locks at once
        self._release_handle()

        outcome: asyncio.Future[InitResult]
        if selector == "off":
            outcome = loop.create_future()
            outcome.set_result(InitResult(capabilities={}))
        else:
            outcome = loop.create_task(
                self._acquire(generation, selector, self._torch), name=f"acquire-{selector}"
            )
            outcome.add_done_callback(self._log_outcome)

        LOG.info("configure selector=%s torch=%s (gen %d)", selector, self._torch, generation)
        if self.observer is not None:
            self.observer.on_init(outcome)
        return outcome

    def set_enabled(self, enabled: bool) -> None:
        if self._closed:
            return
        with self._transitions():
            self._enabled = bool(enabled)

    def set_tracking(self, mode: TrackingMode) -> None:
        self._tracking = mode
        if self.should_scan:
            # min_delay depends on the renderer; restart with the new one
            self._stop_scanning()
            self.surfaces.clear_tracking_layer()
            self._start_scanning()

    def close(self) -> None:
        """Cancel scanning, release the handle, then go inert. Idempotent."""
        if self._closed:
            return
        self._stop_scanning()
        self._release_handle()
        self.surfaces.discard_pending()
        self._generation += 1
        self._closed = True
        LOG.info("lifecycle controller closed")

    # ----- transitions -----

    @contextmanager
    def _transitions(self) -> Iterator[None]:
        was_stream, was_scan = self.should_stream, self.should_scan
        yield
        if was_scan and not self.should_scan:
            self._stop_scanning()
        if was_stream and not self.should_stream:
            self._freeze_pause_frame()
        if not was_scan and self.should_scan:
            self.surfaces.clear_pause_frame()
            self.surfaces.clear_tracking_layer()
            self._start_scanning()

    def _freeze_pause_frame(self) -> None:
        handle = self._handle
        if handle is None:
            return
        try:
            frame = handle.capture_frame()
        except Exception as ex:
            LOG.warning("could not capture pause frame: %r", ex)
            return
        self.surfaces.paint_pause_frame(frame)

    def _start_scanning(self) -> None:
        handle = self._handle
        if handle is None:
            raise ScannerError("scanning requested without a camera handle")
        render_fn = self.render_fn
        self._worker = self.worker_factory()
        config = ScanConfig(
            min_delay=scan_interval_for(render_fn),
            detect_handler=self._handle_detect,
            locate_handler=self._handle_locate,
            suppress_repeats=self.suppress_repeats,
        )
        self.scan_loops.start(self._worker, handle, config)
        LOG.debug("scanning every %.0f ms", config.min_delay * 1000)

    def _stop_scanning(self) -> None:
        self.scan_loops.cancel()
        worker, self._worker = self._worker, None
        if worker is not None:
            try:
                worker.close()
            except Exception as ex:
                LOG.debug("worker close failed: %r", ex)

    # ----- camera handle -----

    def _release_handle(self) -> None:
        handle = self._handle
        if handle is None:
            return
        with self._transitions():
            self._handle = None
            self._capabilities = {}
        self._stop_quietly(handle)

    @staticmethod
    def _stop_quietly(handle: CameraHandle) -> None:
        try:
            handle.stop()
        except Exception as ex:
            LOG.debug("camera stop failed: %r", ex)

    async def _acquire(
        self, generation: int, selector: CameraSelector, torch: bool
    ) -> InitResult:
        try:
            handle = await self.acquirer.acquire(self.target, selector, torch)
        except AcquisitionError:
            raise
        except Exception as ex:
            raise AcquisitionError(selector, repr(ex)) from ex

        capabilities = dict(handle.capabilities)
        if generation != self._generation:
            LOG.debug("dropping stale camera '%s' (gen %d)", selector, generation)
            self._stop_quietly(handle)
            return InitResult(superseded=True)

        with self._transitions():
            self._handle = handle
            self._capabilities = capabilities
        return InitResult(capabilities=capabilities)

    @staticmethod
    def _log_outcome(task: asyncio.Future[InitResult]) -> None:
        if task.cancelled():
            return
        ex = task.exception()
        if ex is not None:
            LOG.warning("camera init failed: %s", ex)

    # ----- scan callbacks -----

    def _handle_locate(self, location: Location | None) -> None:
        handle = self._handle
        display_w, display_h = self.viewport.display_size()
        res_w, res_h = handle.resolution if handle is not None else (0, 0)
        geometry = DisplayGeometry(
            display_width=display_w,
            display_height=display_h,
            resolution_width=res_w,
            resolution_height=res_h,
        )
        self.surfaces.repaint_tracking_layer(location, geometry, self.render_fn)

    def _handle_detect(self, detection: Detection) -> None:
        LOG.info("detected %r", detection.content)
        if self.on_detect is not None:
            self.on_detect(detection)
