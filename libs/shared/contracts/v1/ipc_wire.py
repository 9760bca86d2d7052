from __future__ import annotations

import json
import uuid
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any, Literal, cast

from pydantic import BaseModel, Field, ValidationError

from shared.contracts.v1.commands import ScanCommand

SCHEMA_V1: Literal[1] = 1

ErrorCode = Literal["bad-json", "api-mismatch", "bad-command", "timeout", "internal"]
EventTopic = Literal["init", "detect", "state"]
EVENT_TOPICS: tuple[str, ...] = ("init", "detect", "state")


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_msg_id() -> str:
    return uuid.uuid4().hex


def command_dict(cmd: Any) -> dict[str, Any]:
    """Accepts a ScanCommand, a mapping or anything with ``type``/``arg`` attributes."""
    if isinstance(cmd, Mapping):
        return dict(cmd)
    if hasattr(cmd, "model_dump"):
        return cast(dict[str, Any], cmd.model_dump(mode="json"))
    return {"type": getattr(cmd, "type", "UNKNOWN"), "arg": getattr(cmd, "arg", None)}


class ErrorInfo(BaseModel):
    code: ErrorCode
    detail: str | None = None


class CommandEnvelope(BaseModel):
    schema_version: Literal[1] = Field(default=SCHEMA_V1)
    msg_id: str = Field(default_factory=new_msg_id)
    ts: datetime = Field(default_factory=utc_now)
    command: dict  # ScanCommand.model_dump()


class ResponseEnvelope(BaseModel):
    ok: bool
    correlates_to: str
    data: Any | None = None
    error: ErrorInfo | None = None

    @classmethod
    def success(cls, correlates_to: str, data: Any) -> ResponseEnvelope:
        return cls(ok=True, correlates_to=correlates_to, data=data)

    @classmethod
    def failure(cls, correlates_to: str, code: ErrorCode, detail: str) -> ResponseEnvelope:
        return cls(ok=False, correlates_to=correlates_to, error=ErrorInfo(code=code, detail=detail))


class EventEnvelope(BaseModel):
    schema_version: Literal[1] = Field(default=SCHEMA_V1)
    msg_id: str = Field(default_factory=new_msg_id)
    ts: datetime = Field(default_factory=utc_now)
    topic: EventTopic
    data: dict  # InitEvent / DetectEvent / StateEvent dump


def answer_request(
    raw: bytes | str | dict, handler: Callable[[dict], dict | None]
) -> ResponseEnvelope:
    """Decode one command request, run ``handler(command_dict)`` and wrap the outcome.

    Error codes: ``bad-json`` (undecodable), ``api-mismatch`` (schema_version),
    ``bad-command`` (outside the closed command set), ``internal`` (handler raised).
    """
    if isinstance(raw, dict):
        req: Any = raw
    else:
        try:
            req = json.loads(raw)
        except (UnicodeDecodeError, ValueError):
            return ResponseEnvelope.failure("<unknown>", "bad-json", "Invalid JSON")
    if not isinstance(req, dict):
        return ResponseEnvelope.failure("<unknown>", "bad-json", "Request is not an object")

    msg_id = str(req.get("msg_id") or "<unknown>")
    try:
        version = int(req.get("schema_version", 0))
    except (TypeError, ValueError):
        version = 0
    if version != SCHEMA_V1:
        return ResponseEnvelope.failure(msg_id, "api-mismatch", f"schema_version != {SCHEMA_V1}")

    try:
        cmd = ScanCommand.model_validate(req.get("command") or {})
    except ValidationError as ex:
        return ResponseEnvelope.failure(msg_id, "bad-command", str(ex.errors()[0].get("msg", ex)))

    try:
        return ResponseEnvelope.success(msg_id, handler(cmd.model_dump()) or {})
    except Exception as ex:
        return ResponseEnvelope.failure(msg_id, "internal", repr(ex))


def event_message(envelope: EventEnvelope) -> dict[str, Any]:
    """The dict an EventSubPort hands to its caller for one received envelope."""
    dumped = envelope.model_dump(mode="json")
    return {"topic": envelope.topic, "data": dumped["data"], "envelope": dumped}
