from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Final

from ports.ipc import EventSubPort, ScanCommandPort

from apps.monitor.settings import MonitorSettings

LOG: Final = logging.getLogger("monitor")


def build_ipc(
    settings: MonitorSettings, topics: Iterable[str] = ()
) -> tuple[ScanCommandPort, EventSubPort]:
    """Command client plus an event subscriber connected to every ``event_subs`` endpoint."""
    cmd_port: ScanCommandPort
    event_sub: EventSubPort

    if settings.ipc_impl == "zmq":
        from adapters.ipc_zmq.zmq import ZmqEventSubPort, ZmqScanCommandPort

        cmd_port = ZmqScanCommandPort(timeout_ms=settings.command_timeout_ms)
        event_sub = ZmqEventSubPort(topics)
    else:
        from adapters.ipc_inproc import InprocEventSubPort, InprocScanCommandPort

        cmd_port = InprocScanCommandPort.create()
        event_sub = InprocEventSubPort.create(topics)

    for addr in settings.event_subs:
        event_sub.subscribe(addr)
        LOG.debug("subscribed to %s", addr)

    return cmd_port, event_sub
