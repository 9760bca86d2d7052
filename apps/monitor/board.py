from __future__ import annotations

from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Literal

SortMode = Literal["last", "scanner", "state"]
Health = Literal["OK", "STALE", "DOWN"]

CAMERA_CYCLE: tuple[str, ...] = ("auto", "rear", "front", "off")
_SORT_CYCLE: dict[SortMode, SortMode] = {"last": "scanner", "scanner": "state", "state": "last"}
_EPOCH = datetime.fromtimestamp(0, UTC)


def next_selector(current: str) -> str:
    """auto → rear → front → off → auto; anything unknown starts at auto."""
    if current not in CAMERA_CYCLE:
        return CAMERA_CYCLE[0]
    return CAMERA_CYCLE[(CAMERA_CYCLE.index(current) + 1) % len(CAMERA_CYCLE)]


@dataclass
class ScannerRow:
    name: str
    cmd_ep: str
    state: str = "-"
    selector: str = "-"
    torch: bool = False
    tracking: str = "-"
    detections: int = 0
    last_content: str = ""
    last_seen_ts: datetime | None = None

    @property
    def last_seen(self) -> str:
        if self.last_seen_ts is None:
            return "-"
        return self.last_seen_ts.replace(microsecond=0).isoformat()


@dataclass(frozen=True)
class DetectionRow:
    scanner: str
    seen: str
    content: str


class ScannerBoard:
    """What the monitor knows about each scanner, folded from received events.

    A row is STALE once no event arrived for ``stale_factor`` heartbeats and stops
    counting as connected after ``ttl_factor`` heartbeats.
    """

    def __init__(
        self,
        scanners_cmd: Mapping[str, str],
        *,
        heartbeat_hz: float = 1.0,
        max_detections: int = 200,
        stale_factor: float = 2.0,
        ttl_factor: float = 3.0,
    ) -> None:
        self.rows: dict[str, ScannerRow] = {
            name: ScannerRow(name=name, cmd_ep=ep) for name, ep in scanners_cmd.items()
        }
        self.detections: deque[DetectionRow] = deque(maxlen=max(1, max_detections))
        self.heartbeat_hz = heartbeat_hz
        self.stale_factor = stale_factor
        self.ttl_factor = ttl_factor
        self.sort_mode: SortMode = "last"
        self.last_msg_ts: datetime | None = None

    @property
    def _period_s(self) -> float:
        return 1.0 / max(self.heartbeat_hz, 0.001)

    def apply(self, msg: Mapping[str, Any], now: datetime | None = None) -> ScannerRow | None:
        """Fold one ``{"topic", "data"}`` message in; returns the touched row."""
        data = msg.get("data") or {}
        scanner_id = data.get("scanner_id")
        if not scanner_id:
            return None
        row = self.rows.get(scanner_id)
        if row is None:
            # scanners outside the config still show up, just without a command endpoint
            row = self.rows[scanner_id] = ScannerRow(name=scanner_id, cmd_ep="")

        now = now or datetime.now(UTC)
        row.last_seen_ts = now
        self.last_msg_ts = now

        topic = msg.get("topic")
        if topic == "state":
            row.state = str(data.get("state") or row.state).upper()
            row.selector = str(data.get("selector") or row.selector)
            row.torch = bool(data.get("torch", row.torch))
            row.tracking = str(data.get("tracking") or row.tracking)
            row.detections = int(data.get("detections", row.detections))
        elif topic == "init":
            if not data.get("ok", False):
                row.state = "ERROR"
        elif topic == "detect":
            row.last_content = str(data.get("content", ""))
            row.detections += 1
            self.detections.appendleft(
                DetectionRow(scanner=scanner_id, seen=row.last_seen, content=row.last_content)
            )
        return row

    def health(self, row: ScannerRow, now: datetime | None = None) -> Health:
        if row.last_seen_ts is None:
            return "DOWN"
        age = ((now or datetime.now(UTC)) - row.last_seen_ts).total_seconds()
        return "STALE" if age > self.stale_factor * self._period_s else "OK"

    def connected(self, now: datetime | None = None) -> int:
        now = now or datetime.now(UTC)
        ttl = timedelta(seconds=self.ttl_factor * self._period_s)
        return sum(
            1 for r in self.rows.values() if r.last_seen_ts and now - r.last_seen_ts <= ttl
        )

    def cycle_sort(self) -> SortMode:
        self.sort_mode = _SORT_CYCLE[self.sort_mode]
        return self.sort_mode

    def sorted_rows(self) -> list[ScannerRow]:
        items = list(self.rows.values())
        if self.sort_mode == "scanner":
            items.sort(key=lambda r: r.name.lower())
        elif self.sort_mode == "state":
            items.sort(key=lambda r: (r.state, r.name.lower()))
        else:
            items.sort(key=lambda r: r.last_seen_ts or _EPOCH, reverse=True)
        return items

    def status_line(self, now: datetime | None = None) -> str:
        last = self.last_msg_ts.isoformat(timespec="seconds") if self.last_msg_ts else "-"
        return (
            f"Scanners: {self.connected(now)}/{len(self.rows)} • "
            f"Detections: {len(self.detections)} • Last msg: {last} • Sort: {self.sort_mode}"
        )
