from __future__ import annotations

from typing import Literal

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class CameraSettings(BaseModel):
    adapter: Literal["opencv", "mss"] = "opencv"
    selector: Literal["auto", "rear", "front", "off"] = "auto"
    torch: bool = False
    target: str | None = None  # device index, file path or stream URL; overrides selector mapping
    rear_index: int = 0
    front_index: int = 1
    width: int = 1280
    height: int = 720
    monitor: int = 1  # mss only


class ScanSettings(BaseModel):
    tracking: Literal["on", "off"] = "on"
    suppress_repeats: bool = False


class DisplaySettings(BaseModel):
    # size of the on-screen video box the overlay is drawn for
    width: int = 640
    height: int = 480
    refresh_hz: float = 60.0
    snapshot_dir: str | None = None


class ScannerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LSC_", extra="ignore")

    scanner_id: str = "scan1"
    heartbeat_hz: float = 1.0
    log_level: str = "INFO"

    # choose transport impl
    ipc_impl: Literal["inproc", "zmq"] = "inproc"
    cmd_bind: str = "tcp://127.0.0.1:7788"
    event_bind: str = "tcp://127.0.0.1:7789"

    camera: CameraSettings = CameraSettings()
    scan: ScanSettings = ScanSettings()
    display: DisplaySettings = DisplaySettings()
