from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from queue import Empty, Full, Queue
from typing import Any, Final

from ports.ipc import EventPubPort, EventSubPort, ScanCommandPort
from shared.contracts.v1.ipc_wire import (
    EVENT_TOPICS,
    CommandEnvelope,
    EventEnvelope,
    ResponseEnvelope,
    answer_request,
    command_dict,
    event_message,
)

LOG: Final = logging.getLogger("ipc.inproc")


class InprocBus:
    """Process-local wire: command servers and event subscribers keyed by address.

    Commands are answered synchronously on the caller's thread by the handler the
    server last polled with.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._servers: dict[str, InprocCommandServerPort] = {}
        self._subscribers: dict[str, list[Queue[EventEnvelope]]] = defaultdict(list)

    def bind(self, addr: str, server: InprocCommandServerPort) -> None:
        with self._lock:
            if addr in self._servers:
                LOG.warning("rebinding %s; previous server replaced", addr)
            self._servers[addr] = server

    def unbind(self, addr: str) -> None:
        with self._lock:
            self._servers.pop(addr, None)

    def server(self, addr: str) -> InprocCommandServerPort | None:
        with self._lock:
            return self._servers.get(addr)

    def attach(self, addr: str, queue: Queue[EventEnvelope]) -> None:
        with self._lock:
            self._subscribers[addr].append(queue)

    def detach(self, queue: Queue[EventEnvelope]) -> None:
        with self._lock:
            for queues in self._subscribers.values():
                if queue in queues:
                    queues.remove(queue)

    def deliver(self, addr: str, env: EventEnvelope) -> int:
        with self._lock:
            queues = list(self._subscribers.get(addr, ()))
        delivered = 0
        for queue in queues:
            try:
                queue.put_nowait(env)
                delivered += 1
            except Full:
                LOG.debug("subscriber queue full on %s; dropping %s", addr, env.topic)
        return delivered


DEFAULT_BUS: Final = InprocBus()


class InprocCommandServerPort:
    """Scanner side. ``poll_once`` only records the handler; requests never queue."""

    def __init__(self, addr: str, bus: InprocBus) -> None:
        self.addr = addr
        self._bus = bus
        self._handler: Callable[[dict], dict] | None = None
        bus.bind(addr, self)

    @classmethod
    def create(
        cls, addr: str = "inproc://scanner", bus: InprocBus | None = None
    ) -> InprocCommandServerPort:
        return cls(addr, bus or DEFAULT_BUS)

    def poll_once(self, handler: Callable[[dict], dict]) -> bool:
        self._handler = handler
        return False

    def answer(self, request: dict[str, Any]) -> ResponseEnvelope:
        if self._handler is None:
            return ResponseEnvelope.failure(
                str(request.get("msg_id", "<unknown>")), "timeout", "server not polling yet"
            )
        return answer_request(request, self._handler)

    def close(self) -> None:
        self._bus.unbind(self.addr)
        self._handler = None


class InprocScanCommandPort(ScanCommandPort):
    """Monitor side; looks the scanner up on the bus and asks it directly."""

    def __init__(self, bus: InprocBus) -> None:
        self._bus = bus

    @classmethod
    def create(cls, bus: InprocBus | None = None) -> InprocScanCommandPort:
        return cls(bus or DEFAULT_BUS)

    def send(self, addr: str, cmd: Any) -> dict[str, Any]:
        request = CommandEnvelope(command=command_dict(cmd)).model_dump()
        server = self._bus.server(addr)
        if server is None:
            msg_id = request["msg_id"]
            resp = ResponseEnvelope.failure(msg_id, "timeout", f"nothing bound at {addr}")
        else:
            resp = server.answer(request)
        return resp.model_dump(mode="json")


class InprocEventPubPort(EventPubPort):
    def __init__(self, addr: str, bus: InprocBus) -> None:
        self.addr = addr
        self._bus = bus

    @classmethod
    def create(
        cls, addr: str = "inproc://events", bus: InprocBus | None = None
    ) -> InprocEventPubPort:
        return cls(addr, bus or DEFAULT_BUS)

    def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        if topic not in EVENT_TOPICS:
            raise ValueError(f"Unknown event topic: {topic!r}")
        env = EventEnvelope(topic=topic, data=dict(payload))  # type: ignore[arg-type]
        self._bus.deliver(self.addr, env)


class InprocEventSubPort(EventSubPort):
    """Bounded queue per subscriber; events published before subscribe are not seen."""

    def __init__(self, bus: InprocBus, topics: Iterable[str] = (), maxsize: int = 1000) -> None:
        self._bus = bus
        self.topics = frozenset(topics)
        self._queue: Queue[EventEnvelope] = Queue(maxsize=maxsize)

    @classmethod
    def create(
        cls, topics: Iterable[str] = (), bus: InprocBus | None = None
    ) -> InprocEventSubPort:
        return cls(bus or DEFAULT_BUS, topics)

    def subscribe(self, addr: str) -> None:
        self._bus.attach(addr, self._queue)

    def recv(self, timeout_ms: int = 100) -> dict | None:
        wait_s = max(timeout_ms, 0) / 1000.0
        while True:
            try:
                env = self._queue.get(timeout=wait_s) if wait_s else self._queue.get_nowait()
            except Empty:
                return None
            if not self.topics or env.topic in self.topics:
                return event_message(env)
            wait_s = 0.0

    def close(self) -> None:
        self._bus.detach(self._queue)
