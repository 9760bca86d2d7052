from __future__ import annotations

from collections.abc import Mapping
from queue import Empty, SimpleQueue
from typing import Any

from ports.ipc import EventPubPort, EventSubPort, ScanCommandPort


class FakeScanCommandPort(ScanCommandPort):
    """Records last command per addr and returns a canned ok-dict."""

    def __init__(self) -> None:
        self.sent: dict[str, dict] = {}

    def send(self, addr: str, cmd: Any) -> dict:
        # Accept any mapping or Pydantic model.
        if hasattr(cmd, "model_dump"):
            payload: dict[str, Any] = cmd.model_dump()
        else:
            payload = dict(cmd) if not isinstance(cmd, dict) else cmd
        self.sent[addr] = payload
        return {"ok": True, "echo": payload}


class FakeEventPubPort(EventPubPort):
    """Keeps every published (topic, payload) pair."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        self.events.append((topic, dict(payload)))

    def topics(self) -> list[str]:
        return [t for t, _ in self.events]

    def last(self, topic: str) -> dict[str, Any] | None:
        for t, payload in reversed(self.events):
            if t == topic:
                return payload
        return None


class FakeEventSubPort(EventSubPort):
    """Local queue-based event channel suitable for tests."""

    def __init__(self) -> None:
        self._subs: set[str] = set()
        self._q: SimpleQueue[dict] = SimpleQueue()

    def subscribe(self, addr: str) -> None:
        self._subs.add(addr)

    def recv(self, timeout_ms: int = 100) -> dict | None:
        try:
            return self._q.get(timeout=timeout_ms / 1000.0)
        except Empty:
            return None

    # Test/helper API: inject an event as the SUB side would see it
    def inject(self, topic: str, data: dict) -> None:
        self._q.put({"topic": topic, "data": data})
