from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from pathlib import Path
from typing import Any, Final

from adapters.scheduler import AsyncioFrameScheduler
from adapters.surface import FixedViewport, PillowSurface, draw_outline
from adapters.time import AsyncioSleeper, MonotonicClock
from domain.scanning import (
    Detection,
    FrameSurfaceManager,
    ScanLoopController,
    StreamLifecycleController,
)
from ports.camera import CAMERA_SELECTORS, CameraAcquirePort
from ports.decode import DecodeWorkerFactory
from ports.events import InitResult
from ports.ipc import CommandServerPort, EventPubPort
from ports.surface import FrameSchedulerPort
from ports.time import ClockPort, SleeperPort
from shared.contracts.v1.events import DetectEvent, InitEvent, ScannerState, StateEvent

from apps.scanner.commands import ScanCommandDispatcher, parse_switch
from apps.scanner.settings import ScannerSettings

LOG: Final = logging.getLogger("scanner")


def build_ipc(settings: ScannerSettings) -> tuple[CommandServerPort, EventPubPort]:
    cmd_server: CommandServerPort
    event_pub: EventPubPort

    if settings.ipc_impl == "zmq":
        from adapters.ipc_zmq.zmq import ZmqEventPubPort, ZmqScanCommandPort

        cmd_server = ZmqScanCommandPort.bind_rep(settings.cmd_bind)
        event_pub = ZmqEventPubPort.bind_pub(settings.event_bind)
    else:
        from adapters.ipc_inproc import InprocCommandServerPort, InprocEventPubPort

        cmd_server = InprocCommandServerPort.create(settings.cmd_bind)
        event_pub = InprocEventPubPort.create(settings.event_bind)

    return cmd_server, event_pub


def build_acquirer(settings: ScannerSettings) -> CameraAcquirePort:
    cam = settings.camera
    if cam.adapter == "opencv":
        from adapters.camera.opencv import OpenCvCameraAcquirer

        return OpenCvCameraAcquirer(
            rear_index=cam.rear_index,
            front_index=cam.front_index,
            width=cam.width,
            height=cam.height,
        )
    if cam.adapter == "mss":
        from adapters.camera.mss import MSSCameraAcquirer

        return MSSCameraAcquirer(monitor=cam.monitor)
    raise ValueError(f"Unknown camera adapter: {cam.adapter}")


def build_worker_factory(settings: ScannerSettings) -> DecodeWorkerFactory:
    from adapters.decode.opencv_qr import OpenCvQrWorker

    return OpenCvQrWorker


class ScannerApp:
    """Composition root: lifecycle controller wired to Pillow surfaces and an event bus.

    Every port can be swapped for a fake; by default the real adapters named
    in the settings are built.
    """

    def __init__(
        self,
        settings: ScannerSettings,
        *,
        acquirer: CameraAcquirePort | None = None,
        worker_factory: DecodeWorkerFactory | None = None,
        event_pub: EventPubPort | None = None,
        clock: ClockPort | None = None,
        sleeper: SleeperPort | None = None,
        scheduler: FrameSchedulerPort | None = None,
    ) -> None:
        self.settings = settings
        self.scanner_id = settings.scanner_id
        if event_pub is None:
            from adapters.ipc_inproc import InprocEventPubPort

            event_pub = InprocEventPubPort.create(settings.event_bind)
        self.events: Final = event_pub
        self.clock: Final = clock or MonotonicClock()
        self.scheduler: Final = scheduler or AsyncioFrameScheduler(settings.display.refresh_hz)
        self.pause_surface: Final = PillowSurface()
        self.tracking_surface: Final = PillowSurface()
        self.viewport: Final = FixedViewport(settings.display.width, settings.display.height)

        self.controller: Final = StreamLifecycleController(
            acquirer=acquirer or build_acquirer(settings),
            surfaces=FrameSurfaceManager(self.pause_surface, self.tracking_surface, self.scheduler),
            scan_loops=ScanLoopController(self.clock, sleeper or AsyncioSleeper()),
            worker_factory=worker_factory or build_worker_factory(settings),
            viewport=self.viewport,
            default_renderer=draw_outline,
            observer=self,
            on_detect=self._on_detect,
            tracking=settings.scan.tracking,
            suppress_repeats=settings.scan.suppress_repeats,
            target=settings.camera.target,
        )
        self.detections = 0
        self.last_detection: Detection | None = None
        self.dispatcher = self._make_dispatcher()

    # ----- lifecycle -----

    def start(self) -> asyncio.Future[InitResult]:
        cam = self.settings.camera
        return self.controller.configure(cam.selector, cam.torch)

    def close(self) -> None:
        self.controller.close()
        self.publish_state()

    # ----- events -----

    def _publish(self, topic: str, payload: dict[str, Any]) -> None:
        try:
            self.events.publish(topic, payload)
        except Exception as ex:
            LOG.warning("publish %s failed: %r", topic, ex)

    def on_init(self, outcome: Awaitable[InitResult]) -> None:
        selector, torch = self.controller.selector, self.controller.torch

        def _done(fut: asyncio.Future[InitResult]) -> None:
            if fut.cancelled():
                return
            ex = fut.exception()
            if ex is None and fut.result().superseded:
                LOG.debug("camera '%s' superseded before it came up", selector)
                return
            if ex is None:
                event = InitEvent(
                    scanner_id=self.scanner_id,
                    selector=selector,
                    torch=torch,
                    ok=True,
                    capabilities=dict(fut.result().capabilities),
                )
            else:
                event = InitEvent(
                    scanner_id=self.scanner_id,
                    selector=selector,
                    torch=torch,
                    ok=False,
                    error=str(ex),
                )
            self._publish("init", event.model_dump(mode="json"))
            self.publish_state()

        asyncio.ensure_future(outcome).add_done_callback(_done)

    def _on_detect(self, detection: Detection) -> None:
        self.detections += 1
        self.last_detection = detection
        location = (
            {k: (p.x, p.y) for k, p in detection.location.items()}
            if detection.location is not None
            else None
        )
        event = DetectEvent(
            scanner_id=self.scanner_id,
            content=detection.content,
            location=location,
            frame_width=detection.frame.width,
            frame_height=detection.frame.height,
            ts=self.clock.now(),
        )
        self._publish("detect", event.model_dump(mode="json"))

    def state(self) -> ScannerState:
        c = self.controller
        if c.closed:
            return "CLOSED"
        if c.selector == "off":
            return "OFF"
        if not c.enabled:
            return "PAUSED"
        return "STREAMING" if c.should_scan else "STARTING"

    def state_event(self) -> StateEvent:
        c = self.controller
        if c.render_fn is None:
            tracking = "off"
        else:
            tracking = "on" if c.render_fn is draw_outline else "custom"
        return StateEvent(
            scanner_id=self.scanner_id,
            state=self.state(),
            selector=c.selector,
            torch=c.torch,
            tracking=tracking,
            scanning=c.scan_loops.current.active,
            detections=self.detections,
            ts=self.clock.now(),
        )

    def publish_state(self) -> None:
        self._publish("state", self.state_event().model_dump(mode="json"))

    def snapshot(self, directory: str | Path) -> list[Path]:
        d = Path(directory)
        return [
            self.pause_surface.save(d / f"{self.scanner_id}-pause.png"),
            self.tracking_surface.save(d / f"{self.scanner_id}-tracking.png"),
        ]

    # ----- commands -----

    def _make_dispatcher(self) -> ScanCommandDispatcher:
        d = ScanCommandDispatcher()
        c = self.controller

        @d.route("PING")
        def _ping(cmd: dict) -> dict:
            return {"pong": True, "scanner_id": self.scanner_id, "state": self.state()}

        @d.route("CAMERA")
        def _camera(cmd: dict) -> dict:
            selector = str(cmd.get("arg") or "auto").lower()
            if selector not in CAMERA_SELECTORS:
                raise ValueError(f"unknown camera selector: {selector!r}")
            c.configure(selector, c.torch)  # type: ignore[arg-type]
            return self._ack()

        @d.route("TORCH")
        def _torch(cmd: dict) -> dict:
            c.configure(c.selector, parse_switch(cmd.get("arg"), c.torch))
            return self._ack()

        @d.route("TRACK")
        def _track(cmd: dict) -> dict:
            on = parse_switch(cmd.get("arg"), c.render_fn is not None)
            c.set_tracking("on" if on else "off")
            return self._ack()

        @d.route("PAUSE", "RESUME")
        def _pause_resume(cmd: dict) -> dict:
            c.set_enabled(str(cmd["type"]).upper() == "RESUME")
            return self._ack()

        return d

    def _ack(self) -> dict[str, Any]:
        self.publish_state()
        c = self.controller
        return {
            "ok": True,
            "scanner_id": self.scanner_id,
            "state": self.state(),
            "selector": c.selector,
            "torch": c.torch,
        }

    def handle_command(self, cmd: dict[str, Any]) -> dict[str, Any]:
        return self.dispatcher.handle(cmd)
