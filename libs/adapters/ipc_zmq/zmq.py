from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from time import monotonic
from typing import Any, Final, cast

import zmq
from pydantic import ValidationError
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

LOG: Final = logging.getLogger("ipc.zmq")


def _socket(kind: int, *, timeout_ms: int = 500) -> zmq.Socket:
    sock = zmq.Context.instance().socket(kind)
    sock.setsockopt(zmq.LINGER, 0)
    sock.setsockopt(zmq.RCVTIMEO, timeout_ms)
    sock.setsockopt(zmq.SNDTIMEO, timeout_ms)
    return sock


# --------- Commands (REQ client / REP server) ---------


class ZmqScanCommandPort(ScanCommandPort):
    """Monitor-side REQ client, one cached socket per scanner endpoint.

    A REQ socket that timed out mid-exchange is stuck, so it is dropped and
    rebuilt before the next attempt.
    """

    def __init__(self, timeout_ms: int = 500, attempts: int = 2) -> None:
        self.timeout_ms = timeout_ms
        self.attempts = max(1, attempts)
        self._req: dict[str, zmq.Socket] = {}

    @classmethod
    def bind_rep(cls, addr: str, poll_timeout_ms: int = 10) -> ZmqCommandREPServer:
        return ZmqCommandREPServer(addr=addr, poll_timeout_ms=poll_timeout_ms)

    def _socket_for(self, addr: str) -> zmq.Socket:
        sock = self._req.get(addr)
        if sock is None:
            sock = _socket(zmq.REQ, timeout_ms=self.timeout_ms)
            sock.connect(addr)
            self._req[addr] = sock
        return sock

    def _drop(self, addr: str) -> None:
        sock = self._req.pop(addr, None)
        if sock is not None:
            sock.close(0)

    def send(self, addr: str, cmd: Any) -> dict[str, Any]:
        env = CommandEnvelope(command=command_dict(cmd))
        payload = env.model_dump(mode="json")

        for attempt in range(1, self.attempts + 1):
            sock = self._socket_for(addr)
            try:
                sock.send_json(payload)
                return cast(dict[str, Any], sock.recv_json())
            except zmq.error.Again:
                LOG.debug("REQ %s timed out (attempt %d/%d)", addr, attempt, self.attempts)
                self._drop(addr)
            except (zmq.ZMQError, ValueError) as ex:
                self._drop(addr)
                return ResponseEnvelope.failure(env.msg_id, "internal", repr(ex)).model_dump()
        return ResponseEnvelope.failure(env.msg_id, "timeout", "REQ timeout").model_dump()

    def close(self) -> None:
        for addr in list(self._req):
            self._drop(addr)


@dataclass
class ZmqCommandREPServer:
    """Scanner-side REP socket; the scanner loop calls ``poll_once(handler)``."""

    addr: str
    poll_timeout_ms: int = 10

    def __post_init__(self) -> None:
        self._sock = _socket(zmq.REP)
        self._sock.bind(self.addr)

    def poll_once(self, handler: Callable[[dict], dict]) -> bool:
        """Answer at most one request; True when one was handled."""
        try:
            if not self._sock.poll(timeout=self.poll_timeout_ms):
                return False
            raw = self._sock.recv()
        except zmq.error.Again:
            return False
        resp = answer_request(raw, handler)
        if not resp.ok and resp.error is not None:
            LOG.info("command rejected: %s %s", resp.error.code, resp.error.detail)
        self._sock.send_json(resp.model_dump(mode="json"))
        return True

    def serve_for(self, seconds: float, handler: Callable[[dict], dict]) -> int:
        handled = 0
        deadline = monotonic() + seconds
        while monotonic() < deadline:
            handled += self.poll_once(handler)
        return handled

    def close(self) -> None:
        self._sock.close(0)


# --------- Events (PUB/SUB) ---------


class ZmqEventPubPort(EventPubPort):
    """Scanner-side PUB socket. Frames are ``[topic, EventEnvelope json]``."""

    def __init__(self, addr: str) -> None:
        self._pub = _socket(zmq.PUB)
        self._pub.bind(addr)

    @classmethod
    def bind_pub(cls, addr: str) -> ZmqEventPubPort:
        return cls(addr)

    def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        if topic not in EVENT_TOPICS:
            raise ValueError(f"Unknown event topic: {topic!r}")
        env = EventEnvelope(topic=topic, data=dict(payload))  # type: ignore[arg-type]
        self._pub.send_multipart([topic.encode("utf-8"), env.model_dump_json().encode("utf-8")])

    def close(self) -> None:
        self._pub.close(0)


class ZmqEventSubPort(EventSubPort):
    """Monitor-side SUB socket; ``topics`` narrows the subscription (default: all)."""

    def __init__(self, topics: Iterable[str] = (), hwm: int = 1000) -> None:
        self._sub = _socket(zmq.SUB)
        self._sub.setsockopt(zmq.RCVHWM, hwm)
        self.topics = tuple(topics)
        for topic in self.topics or ("",):
            self._sub.setsockopt(zmq.SUBSCRIBE, topic.encode("utf-8"))

    def subscribe(self, addr: str) -> None:
        self._sub.connect(addr)

    def recv(self, timeout_ms: int = 100) -> dict[str, Any] | None:
        if not self._sub.poll(timeout=timeout_ms):
            return None
        topic, data = self._sub.recv_multipart()
        try:
            env = EventEnvelope.model_validate_json(data)
        except ValidationError:
            LOG.warning("dropping malformed event on topic %r", topic)
            return {"topic": topic.decode("utf-8", "replace"), "error": {"code": "bad-json"}}
        return event_message(env)

    def close(self) -> None:
        self._sub.close(0)
