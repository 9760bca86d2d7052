from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

ScannerState = Literal["STREAMING", "STARTING", "PAUSED", "OFF", "CLOSED"]


class InitEvent(BaseModel):
    api: Literal["v1"] = "v1"
    scanner_id: str
    selector: Literal["auto", "rear", "front", "off"]
    torch: bool = False
    ok: bool
    capabilities: dict[str, Any] = {}
    error: str | None = None


class DetectEvent(BaseModel):
    api: Literal["v1"] = "v1"
    scanner_id: str
    content: str
    # corner name -> [x, y] in raw camera pixels
    location: dict[str, tuple[float, float]] | None = None
    frame_width: int
    frame_height: int
    ts: float


class StateEvent(BaseModel):
    api: Literal["v1"] = "v1"
    scanner_id: str
    state: ScannerState
    selector: Literal["auto", "rear", "front", "off"]
    torch: bool = False
    tracking: Literal["on", "off", "custom"] = "on"
    scanning: bool = False
    detections: int = 0
    ts: float
