from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, TypeVar

from pydantic_settings import BaseSettings

from apps.monitor.settings import MonitorSettings
from apps.scanner.settings import ScannerSettings

S = TypeVar("S", bound=BaseSettings)

# --- paths --------------------------------------------------------------------


def _repo_root() -> Path:
    """Heuristic: walk up from this file until we find pyproject.toml."""
    p = Path(__file__).resolve()
    for ancestor in [p, *p.parents]:
        if (ancestor / "pyproject.toml").exists():
            return ancestor
    return Path.cwd()


def _profiles_dir(env: Mapping[str, str]) -> Path:
    # Allow override (useful for tests): LSC_CONFIG_DIR points *at* profiles/
    override = env.get("LSC_CONFIG_DIR")
    if override:
        return Path(override)
    return _repo_root() / "configs" / "profiles"


def _load_profile_table(env: Mapping[str, str], profile: str) -> dict[str, Any]:
    f = _profiles_dir(env) / f"{profile}.toml"
    if not f.exists():
        return {}
    text = f.read_text("utf-8")
    try:
        return tomllib.loads(text)
    except Exception as e:
        raise RuntimeError(f"Failed to parse profile TOML: {f}") from e


# --- overlay helpers ----------------------------------------------------------


def _deep_merge(base: dict[str, Any], over: Mapping[str, Any]) -> dict[str, Any]:
    """Nested tables merge key by key; anything else replaces."""
    out = dict(base)
    for k, v in over.items():
        if isinstance(v, Mapping) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _coerce_env_value(raw: str) -> Any:
    """
    Try to parse JSON first (so lists/dicts/numbers/bools work),
    then fall back to the original string.
    """
    try:
        return json.loads(raw)
    except Exception:
        return raw


def _collect_env_for(
    fields: set[str], env: Mapping[str, str], prefix: str = "LSC_"
) -> dict[str, Any]:
    """
    Collect overrides like LSC_SCANNER_ID, LSC_HEARTBEAT_HZ -> {'scanner_id': '...'}.
    Case-insensitive; underscores only. Nested sections take a JSON object
    (LSC_CAMERA={"selector": "front"}) which merges into the section.
    """
    out: dict[str, Any] = {}
    upper_to_field = {f.upper(): f for f in fields}
    plen = len(prefix)
    for k, v in env.items():
        if not k.startswith(prefix):
            continue
        key = k[plen:].upper()
        if key in upper_to_field:
            out[upper_to_field[key]] = _coerce_env_value(v)
    return out


def _load(
    model: type[S], table: str, env: Mapping[str, str] | None, profile: str | None
) -> S:
    env = os.environ if env is None else env
    profile = (profile or env.get("LSC_PROFILE") or "dev").strip()

    # start from defaults exposed by the model, with no env applied yet
    base = model.model_construct().model_dump()

    toml_table = _load_profile_table(env, profile)
    section = toml_table.get(table, {}) if isinstance(toml_table, dict) else {}
    if isinstance(section, dict):
        base = _deep_merge(base, section)

    base = _deep_merge(base, _collect_env_for(set(base.keys()), env))

    return model.model_validate(base)


# --- public API ---------------------------------------------------------------


def load_scanner_settings(
    env: Mapping[str, str] | None = None, profile: str | None = None
) -> ScannerSettings:
    """
    Merge defaults (ScannerSettings) <- TOML [scanner] <- env LSC_*.
    Env examples: LSC_SCANNER_ID=door, LSC_HEARTBEAT_HZ=2, LSC_CAMERA={"selector":"front"}
    """
    return _load(ScannerSettings, "scanner", env, profile)


def load_monitor_settings(
    env: Mapping[str, str] | None = None, profile: str | None = None
) -> MonitorSettings:
    """
    Merge defaults (MonitorSettings) <- TOML [monitor] <- env LSC_*.
    Env examples: LSC_REFRESH_HZ=5, LSC_SCANNERS_CMD={"door":"tcp://..."},
    LSC_EVENT_SUBS=["tcp://...","tcp://..."]
    """
    return _load(MonitorSettings, "monitor", env, profile)
