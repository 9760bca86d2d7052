from __future__ import annotations

from collections.abc import Awaitable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class InitResult:
    capabilities: Mapping[str, Any] = field(default_factory=dict)
    # a newer configure() or close() won; the handle was stopped, not installed
    superseded: bool = False


class InitObserverPort(Protocol):
    """Host hook; gets one outcome per configure() call.

    The outcome resolves to an InitResult or fails with AcquisitionError.
    """

    def on_init(self, outcome: Awaitable[InitResult]) -> None: ...
