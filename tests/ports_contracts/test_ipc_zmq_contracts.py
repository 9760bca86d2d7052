from __future__ import annotations

import socket
import threading
import time
from collections.abc import Callable
from contextlib import closing
from time import perf_counter

import pytest

try:
    import zmq  # noqa: F401
except Exception:
    pytest.skip("pyzmq not installed", allow_module_level=True)

from adapters.ipc_zmq.zmq import ZmqEventPubPort, ZmqEventSubPort, ZmqScanCommandPort
from shared.contracts.v1.commands import ScanCommand

pytestmark = pytest.mark.contract


def _free_port() -> int:
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("127.0.0.1", 0))
        return int(s.getsockname()[1])


def _cmd_handler(cmd: dict) -> dict:
    t = (cmd or {}).get("type", "")
    if t == "PING":
        return {"pong": True}
    if t == "CAMERA":
        return {"selector": cmd.get("arg")}
    return {"echo": t}


def _run_rep_server(addr: str, stop_event: threading.Event, handler: Callable[[dict], dict]):
    rep = ZmqScanCommandPort.bind_rep(addr)
    try:
        while not stop_event.is_set():
            rep.poll_once(handler)
            time.sleep(0.001)
    finally:
        rep.close()


class _Server:
    def __init__(self, handler: Callable[[dict], dict] = _cmd_handler) -> None:
        self.addr = f"tcp://127.0.0.1:{_free_port()}"
        self._stop = threading.Event()
        self._th = threading.Thread(
            target=_run_rep_server, args=(self.addr, self._stop, handler), daemon=True
        )

    def __enter__(self) -> _Server:
        self._th.start()
        return self

    def __exit__(self, *exc) -> None:
        self._stop.set()
        self._th.join(timeout=1.0)


def _raw_req(addr: str):
    ctx = zmq.Context.instance()
    s = ctx.socket(zmq.REQ)
    s.setsockopt(zmq.LINGER, 0)
    s.setsockopt(zmq.RCVTIMEO, 500)
    s.setsockopt(zmq.SNDTIMEO, 500)
    s.connect(addr)
    return s


def test_zmq_ping_under_500ms():
    with _Server() as server:
        client = ZmqScanCommandPort()
        try:
            t0 = perf_counter()
            resp = client.send(server.addr, ScanCommand(type="PING"))
            dt = perf_counter() - t0
        finally:
            client.close()

        assert resp.get("ok") is True
        assert resp.get("data", {}).get("pong") is True
        assert dt < 0.5, f"Round-trip too slow: {dt:.3f}s"


def test_zmq_command_arg_reaches_handler():
    with _Server() as server:
        client = ZmqScanCommandPort()
        try:
            resp = client.send(server.addr, ScanCommand(type="CAMERA", arg="front"))
        finally:
            client.close()
        assert resp.get("data") == {"selector": "front"}


def test_zmq_bad_json_error():
    with _Server() as server:
        s = _raw_req(server.addr)
        try:
            s.send(b"\x80\x81\x82")
            resp = s.recv_json()
        finally:
            s.close(0)
        assert resp.get("ok") is False
        assert resp.get("error", {}).get("code") == "bad-json"


def test_zmq_api_mismatch_error():
    with _Server() as server:
        s = _raw_req(server.addr)
        try:
            s.send_json({"schema_version": 999, "msg_id": "x", "command": {"type": "PING"}})
            resp = s.recv_json()
        finally:
            s.close(0)
        assert resp.get("ok") is False
        assert resp.get("error", {}).get("code") == "api-mismatch"
        assert resp.get("correlates_to") == "x"


def test_zmq_unknown_command_is_rejected():
    with _Server() as server:
        s = _raw_req(server.addr)
        try:
            s.send_json({"schema_version": 1, "msg_id": "y", "command": {"type": "HOLD"}})
            resp = s.recv_json()
        finally:
            s.close(0)
        assert resp.get("ok") is False
        assert resp.get("error", {}).get("code") == "bad-command"


def test_zmq_handler_exception_is_internal_error():
    def broken(cmd: dict) -> dict:
        raise ValueError("unknown camera selector")

    with _Server(broken) as server:
        client = ZmqScanCommandPort()
        try:
            resp = client.send(server.addr, ScanCommand(type="CAMERA", arg="sideways"))
        finally:
            client.close()
        assert resp.get("ok") is False
        assert resp.get("error", {}).get("code") == "internal"
        assert "unknown camera selector" in resp["error"]["detail"]


def test_zmq_event_receive():
    addr = f"tcp://127.0.0.1:{_free_port()}"
    pub = ZmqEventPubPort.bind_pub(addr)
    sub = ZmqEventSubPort()
    sub.subscribe(addr)
    try:
        # slow-joiner: keep publishing until the SUB side is connected
        got = None
        end = time.time() + 1.0
        while time.time() < end and got is None:
            pub.publish("detect", {"scanner_id": "scan1", "content": "hello"})
            got = sub.recv(timeout_ms=50)
    finally:
        sub.close()
        pub.close()

    assert got is not None, "Did not receive event within timeout"
    assert got.get("topic") == "detect"
    assert got.get("data", {}).get("content") == "hello"
    assert got["envelope"]["schema_version"] == 1


def test_zmq_topic_filter_and_unknown_topic():
    addr = f"tcp://127.0.0.1:{_free_port()}"
    pub = ZmqEventPubPort.bind_pub(addr)
    sub = ZmqEventSubPort(topics=["state"])
    sub.subscribe(addr)
    try:
        with pytest.raises(ValueError):
            pub.publish("telemetry", {})

        got = None
        end = time.time() + 1.0
        while time.time() < end and got is None:
            pub.publish("detect", {"scanner_id": "scan1", "content": "skip me"})
            pub.publish("state", {"scanner_id": "scan1", "state": "OFF"})
            got = sub.recv(timeout_ms=50)
    finally:
        sub.close()
        pub.close()

    assert got is not None
    assert got["topic"] == "state"
