from __future__ import annotations

import pytest
from adapters.ipc_inproc import (
    InprocBus,
    InprocCommandServerPort,
    InprocEventPubPort,
    InprocEventSubPort,
    InprocScanCommandPort,
)
from ports.ipc import CommandServerPort, EventPubPort, EventSubPort, ScanCommandPort
from shared.contracts.v1.commands import ScanCommand


class _Cmd:
    # Minimal Command Protocol impl for tests
    def __init__(self, t: str) -> None:
        self.type = t


def test_command_reaches_the_polling_server():
    bus = InprocBus()
    server = InprocCommandServerPort.create("inproc://door", bus)
    client: ScanCommandPort = InprocScanCommandPort.create(bus)
    assert isinstance(server, CommandServerPort)

    seen: list[dict] = []

    def handler(cmd: dict) -> dict:
        seen.append(cmd)
        return {"pong": True}

    assert server.poll_once(handler) is False
    resp = client.send("inproc://door", ScanCommand(type="CAMERA", arg="front"))
    assert resp["ok"] is True
    assert resp["data"] == {"pong": True}
    assert seen[0]["type"] == "CAMERA" and seen[0]["arg"] == "front"

    # plain objects with a ``type`` work too
    assert client.send("inproc://door", _Cmd("PING"))["ok"] is True
    server.close()


def test_unbound_or_idle_server_times_out():
    bus = InprocBus()
    client = InprocScanCommandPort.create(bus)
    resp = client.send("inproc://nobody", ScanCommand(type="PING"))
    assert resp["ok"] is False
    assert resp["error"]["code"] == "timeout"

    server = InprocCommandServerPort.create("inproc://idle", bus)
    assert client.send("inproc://idle", ScanCommand(type="PING"))["error"]["code"] == "timeout"
    server.close()
    assert bus.server("inproc://idle") is None


def test_rejections_match_the_wire_codes():
    bus = InprocBus()
    server = InprocCommandServerPort.create("inproc://door", bus)
    client = InprocScanCommandPort.create(bus)

    def broken(cmd: dict) -> dict:
        raise ValueError("unknown camera selector")

    server.poll_once(broken)
    resp = client.send("inproc://door", {"type": "CAMERA", "arg": "x"})
    assert resp["error"]["code"] == "internal"
    assert "unknown camera selector" in resp["error"]["detail"]

    resp = client.send("inproc://door", {"type": "HOLD"})
    assert resp["error"]["code"] == "bad-command"


def test_events_fan_out_to_subscribers_of_the_address():
    bus = InprocBus()
    pub: EventPubPort = InprocEventPubPort.create("inproc://events", bus)
    a: EventSubPort = InprocEventSubPort.create(bus=bus)
    b = InprocEventSubPort.create(topics=["detect"], bus=bus)
    other = InprocEventSubPort.create(bus=bus)

    pub.publish("state", {"scanner_id": "door", "state": "OFF"})  # before anyone listens
    a.subscribe("inproc://events")
    b.subscribe("inproc://events")
    other.subscribe("inproc://elsewhere")

    pub.publish("state", {"scanner_id": "door", "state": "STREAMING"})
    pub.publish("detect", {"scanner_id": "door", "content": "hello"})

    got = a.recv(timeout_ms=10)
    assert got is not None
    assert got["topic"] == "state" and got["data"]["state"] == "STREAMING"
    assert got["envelope"]["schema_version"] == 1
    assert a.recv(timeout_ms=10)["topic"] == "detect"
    assert a.recv(timeout_ms=1) is None

    filtered = b.recv(timeout_ms=10)
    assert filtered is not None and filtered["data"]["content"] == "hello"
    assert b.recv(timeout_ms=1) is None

    assert other.recv(timeout_ms=1) is None


def test_publish_rejects_unknown_topics():
    pub = InprocEventPubPort.create("inproc://events", InprocBus())
    with pytest.raises(ValueError):
        pub.publish("telemetry", {})


def test_closed_subscriber_stops_receiving():
    bus = InprocBus()
    pub = InprocEventPubPort.create("inproc://events", bus)
    sub = InprocEventSubPort.create(bus=bus)
    sub.subscribe("inproc://events")
    sub.close()
    pub.publish("state", {"state": "OFF"})
    assert sub.recv(timeout_ms=1) is None
