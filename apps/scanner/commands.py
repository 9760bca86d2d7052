from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Final

LOG: Final = logging.getLogger("scanner.commands")

Handler = Callable[[dict[str, Any]], dict[str, Any]]


class ScanCommandDispatcher:
    """Routes ``{"type": ..., "arg": ...}`` command dicts to handlers by type."""

    def __init__(self) -> None:
        self._routes: dict[str, Handler] = {}

    def route(self, *cmd_types: str) -> Callable[[Handler], Handler]:
        def deco(fn: Handler) -> Handler:
            for cmd_type in cmd_types:
                self._routes[cmd_type.upper()] = fn
            return fn

        return deco

    @property
    def commands(self) -> list[str]:
        return sorted(self._routes)

    def handle(self, cmd: Mapping[str, Any] | None) -> dict[str, Any]:
        t = str((cmd or {}).get("type") or "").upper()
        fn = self._routes.get(t)
        if fn is None:
            LOG.debug("unrouted command %r", t)
            return {"echo": t or "UNKNOWN", "known": self.commands}
        return fn(dict(cmd or {}))


def parse_switch(arg: str | None, current: bool) -> bool:
    """on/off/true/false/1/0; anything else (or nothing) toggles."""
    value = (arg or "").strip().lower()
    if value in {"on", "true", "1", "yes"}:
        return True
    if value in {"off", "false", "0", "no"}:
        return False
    return not current
