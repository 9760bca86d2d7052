from __future__ import annotations

import json

import pytest
from pydantic import ValidationError
from shared.contracts.v1.commands import ScanCommand
from shared.contracts.v1.events import DetectEvent, InitEvent, StateEvent
from shared.contracts.v1.ipc_wire import (
    CommandEnvelope,
    EventEnvelope,
    answer_request,
    command_dict,
)


def test_contracts_import():
    e = StateEvent(scanner_id="scan1", state="STREAMING", selector="auto", ts=0.0)
    assert e.api == "v1"
    assert e.tracking == "on"


def test_command_types_are_closed():
    assert ScanCommand(type="CAMERA", arg="front").arg == "front"
    with pytest.raises(ValidationError):
        ScanCommand(type="HOLD")  # type: ignore[arg-type]


def test_detect_event_dumps_plain_json():
    e = DetectEvent(
        scanner_id="scan1",
        content="hello",
        location={"top_left": (1.0, 2.0)},
        frame_width=640,
        frame_height=480,
        ts=1.5,
    )
    dumped = e.model_dump(mode="json")
    assert dumped["location"] == {"top_left": [1.0, 2.0]}
    assert DetectEvent.model_validate(dumped) == e


def test_failed_init_carries_the_error():
    e = InitEvent(scanner_id="scan1", selector="front", ok=False, error="denied")
    assert e.capabilities == {}
    assert e.error == "denied"


def test_envelopes_default_schema_and_timestamp():
    cmd = CommandEnvelope(msg_id="m1", command=ScanCommand(type="PING").model_dump())
    assert cmd.schema_version == 1
    assert cmd.ts.tzinfo is not None

    ev = EventEnvelope(msg_id="m2", topic="state", data={"state": "OFF"})
    assert ev.model_dump(mode="json")["topic"] == "state"


def _echo(cmd: dict) -> dict:
    return {"type": cmd["type"], "arg": cmd["arg"]}


def test_answer_request_success_and_error_codes():
    req = CommandEnvelope(command={"type": "TORCH", "arg": "on"}).model_dump(mode="json")
    ok = answer_request(json.dumps(req).encode("utf-8"), _echo)
    assert ok.ok and ok.correlates_to == req["msg_id"]
    assert ok.data == {"type": "TORCH", "arg": "on"}

    assert answer_request(b"\xff", _echo).error.code == "bad-json"
    assert answer_request(b"[1, 2]", _echo).error.code == "bad-json"
    assert answer_request({**req, "schema_version": 2}, _echo).error.code == "api-mismatch"
    assert answer_request({**req, "command": {"type": "HOLD"}}, _echo).error.code == "bad-command"

    def broken(cmd: dict) -> dict:
        raise RuntimeError("boom")

    failed = answer_request(req, broken)
    assert failed.error.code == "internal" and "boom" in failed.error.detail


def test_command_dict_accepts_models_mappings_and_objects():
    class Obj:
        type = "PING"

    assert command_dict(ScanCommand(type="PAUSE"))["type"] == "PAUSE"
    assert command_dict({"type": "RESUME"}) == {"type": "RESUME"}
    assert command_dict(Obj()) == {"type": "PING", "arg": None}
