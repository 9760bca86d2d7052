from .camera import CameraAcquirePort, CameraHandle, CameraSelector, FrameImage
from .decode import (
    DecodeError,
    DecodeResult,
    DecodeWorkerFactory,
    DecodeWorkerPort,
    Location,
    Point,
)
from .events import InitObserverPort, InitResult
from .ipc import CommandServerPort, EventPubPort, EventSubPort, ScanCommandPort
from .surface import FrameSchedulerPort, RenderFn, RenderSurface, ViewportPort
from .time import ClockPort, SleeperPort

__all__ = [
    "CameraAcquirePort",
    "CameraHandle",
    "CameraSelector",
    "FrameImage",
    "DecodeError",
    "DecodeResult",
    "DecodeWorkerFactory",
    "DecodeWorkerPort",
    "Location",
    "Point",
    "InitObserverPort",
    "InitResult",
    "ScanCommandPort",
    "EventSubPort",
    "EventPubPort",
    "CommandServerPort",
    "FrameSchedulerPort",
    "RenderFn",
    "RenderSurface",
    "ViewportPort",
    "ClockPort",
    "SleeperPort",
]
