from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class MonitorSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LSC_", extra="ignore")

    refresh_hz: float = 4.0
    heartbeat_hz: float = 1.0  # expected scanner heartbeat rate
    log_level: str = "WARNING"
    max_detections: int = 200
    command_timeout_ms: int = 500

    # choose transport impl
    ipc_impl: Literal["inproc", "zmq"] = "inproc"

    scanners_cmd: dict[str, str] = {}  # name -> REQ endpoint
    event_subs: list[str] = []  # list of SUB endpoints
