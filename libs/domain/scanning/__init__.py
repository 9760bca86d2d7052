from .errors import AcquisitionError, DecodeError, ScannerError
from .lifecycle import StreamLifecycleController
from .loop import NOOP_SCAN, ScanHandle, ScanLoop, ScanLoopController
from .model import Detection, ScanConfig, TrackingMode, scan_interval_for
from .surfaces import FrameSurfaceManager

__all__ = [
    "AcquisitionError",
    "DecodeError",
    "ScannerError",
    "StreamLifecycleController",
    "NOOP_SCAN",
    "ScanHandle",
    "ScanLoop",
    "ScanLoopController",
    "Detection",
    "ScanConfig",
    "TrackingMode",
    "scan_interval_for",
    "FrameSurfaceManager",
]
