from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

CommandType = Literal["PING", "CAMERA", "TORCH", "TRACK", "PAUSE", "RESUME"]


class ScanCommand(BaseModel):
    api: Literal["v1"] = "v1"
    type: CommandType
    arg: str | None = None  # CAMERA <selector> | TORCH on|off | TRACK on|off
