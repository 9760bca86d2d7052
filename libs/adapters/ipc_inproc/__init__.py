from .inproc import (
    DEFAULT_BUS,
    InprocBus,
    InprocCommandServerPort,
    InprocEventPubPort,
    InprocEventSubPort,
    InprocScanCommandPort,
)

__all__ = [
    "DEFAULT_BUS",
    "InprocBus",
    "InprocScanCommandPort",
    "InprocEventSubPort",
    "InprocEventPubPort",
    "InprocCommandServerPort",
]
