from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from shared.config.loader import (
    load_monitor_settings,
    load_scanner_settings,
)


def _write_profile(dirpath: Path, name: str, text: str) -> Path:
    dirpath.mkdir(parents=True, exist_ok=True)
    p = dirpath / f"{name}.toml"
    p.write_text(text, encoding="utf-8")
    return p


def test_scanner_defaults_when_no_profile_and_no_env(tmp_path: Path):
    # Empty profile dir → fall back to model defaults
    s = load_scanner_settings(env={"LSC_CONFIG_DIR": str(tmp_path)}, profile="dev")
    assert s.scanner_id == "scan1"
    assert s.heartbeat_hz == 1.0
    assert s.ipc_impl == "inproc"
    assert s.camera.adapter == "opencv"
    assert s.camera.selector == "auto"
    assert s.scan.tracking == "on"
    assert s.scan.suppress_repeats is False
    assert (s.display.width, s.display.height) == (640, 480)


def test_shipped_dev_profile_uses_zmq():
    s = load_scanner_settings(env={}, profile="dev")
    assert s.ipc_impl == "zmq"
    assert s.cmd_bind.endswith(":7788")
    assert s.event_bind.endswith(":7789")

    m = load_monitor_settings(env={}, profile="dev")
    assert m.scanners_cmd == {"scan1": "tcp://127.0.0.1:7788"}
    assert m.event_subs == ["tcp://127.0.0.1:7789"]


def test_scanner_toml_overlay(tmp_path: Path):
    profiles = tmp_path / "profiles"
    _write_profile(
        profiles,
        "dev",
        """
        [scanner]
        scanner_id = "door"
        heartbeat_hz = 2.5
        ipc_impl = "zmq"
        cmd_bind = "tcp://127.0.0.1:9991"
        event_bind = "tcp://127.0.0.1:9992"

        [scanner.camera]
        adapter = "mss"
        monitor = 2

        [scanner.scan]
        tracking = "off"
        """,
    )

    env = {"LSC_CONFIG_DIR": str(profiles), "LSC_PROFILE": "dev"}
    s = load_scanner_settings(env=env)
    assert s.scanner_id == "door"
    assert s.heartbeat_hz == 2.5
    assert s.cmd_bind.endswith(":9991")
    assert s.event_bind.endswith(":9992")
    assert s.camera.adapter == "mss"
    assert s.camera.monitor == 2
    # untouched keys of a partially given section keep their defaults
    assert s.camera.selector == "auto"
    assert s.scan.tracking == "off"


def test_scanner_env_overrides_toml(tmp_path: Path):
    profiles = tmp_path / "profiles"
    _write_profile(
        profiles,
        "dev",
        """
        [scanner]
        scanner_id = "from_toml"
        heartbeat_hz = 1.0
        ipc_impl = "inproc"

        [scanner.camera]
        adapter = "mss"
        """,
    )

    env = {
        "LSC_CONFIG_DIR": str(profiles),
        "LSC_PROFILE": "dev",
        "LSC_SCANNER_ID": "from_env",
        "LSC_HEARTBEAT_HZ": "4.0",
        "LSC_IPC_IMPL": "zmq",
        # nested sections take a JSON object and merge into the section
        "LSC_CAMERA": '{"selector": "front", "torch": true}',
    }
    s = load_scanner_settings(env=env)
    assert s.scanner_id == "from_env"
    assert s.heartbeat_hz == 4.0
    assert s.ipc_impl == "zmq"
    assert s.camera.selector == "front"
    assert s.camera.torch is True
    assert s.camera.adapter == "mss"


def test_monitor_toml_overlay_and_env_json(tmp_path: Path):
    profiles = tmp_path / "profiles"
    _write_profile(
        profiles,
        "dev",
        """
        [monitor]
        refresh_hz = 2.0
        ipc_impl = "zmq"
        scanners_cmd = { scan1 = "tcp://127.0.0.1:7788" }
        event_subs = ["tcp://127.0.0.1:7789"]
        """,
    )

    env: dict[str, Any] = {
        "LSC_CONFIG_DIR": str(profiles),
        "LSC_PROFILE": "dev",
        # Case-insensitive after the prefix
        "LSC_scanners_cmd": '{"door":"tcp://127.0.0.1:9901","gate":"tcp://127.0.0.1:9902"}',
        "LSC_EVENT_SUBS": '["tcp://127.0.0.1:9910","tcp://127.0.0.1:9911"]',
        "LSC_REFRESH_HZ": "3",
    }

    m = load_monitor_settings(env=env)
    assert m.refresh_hz == 3
    assert m.scanners_cmd == {
        "door": "tcp://127.0.0.1:9901",
        "gate": "tcp://127.0.0.1:9902",
    }
    assert m.event_subs == [
        "tcp://127.0.0.1:9910",
        "tcp://127.0.0.1:9911",
    ]


def test_profile_selected_via_env(tmp_path: Path):
    profiles = tmp_path / "custom_profiles"
    _write_profile(
        profiles,
        "lab",
        """
        [scanner]
        scanner_id = "lab-bench"
        """,
    )

    s = load_scanner_settings(env={"LSC_CONFIG_DIR": str(profiles), "LSC_PROFILE": "lab"})
    assert s.scanner_id == "lab-bench"


def test_bad_toml_raises_runtime_error(tmp_path: Path):
    profiles = tmp_path / "profiles"
    profiles.mkdir(parents=True, exist_ok=True)
    (profiles / "dev.toml").write_text("[scanner]\nthis = not_valid\n", encoding="utf-8")

    with pytest.raises(RuntimeError):
        load_scanner_settings(env={"LSC_CONFIG_DIR": str(profiles), "LSC_PROFILE": "dev"})


def test_invalid_value_is_a_validation_error(tmp_path: Path):
    from pydantic import ValidationError

    with pytest.raises(ValidationError):
        load_scanner_settings(
            env={"LSC_CONFIG_DIR": str(tmp_path), "LSC_CAMERA": '{"selector": "sideways"}'}
        )
