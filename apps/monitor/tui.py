from __future__ import annotations

import logging
import threading
import time
from typing import Final

from rich.text import Text
from shared.config.loader import load_monitor_settings
from shared.contracts.v1.commands import ScanCommand
from textual.app import App, ComposeResult
from textual.widgets import DataTable, Footer, Header, Static

from apps.monitor.board import ScannerBoard, ScannerRow, next_selector
from apps.monitor.compose import build_ipc
from apps.monitor.settings import MonitorSettings

LOG: Final = logging.getLogger("monitor.tui")

_STATE_STYLE = {
    "STREAMING": "green",
    "STARTING": "cyan",
    "PAUSED": "yellow",
    "OFF": "dim",
    "ERROR": "red",
}


def state_cell(board: ScannerBoard, row: ScannerRow) -> Text:
    health = board.health(row)
    if health == "DOWN":
        return Text("DOWN", style="red")
    if health == "STALE":
        return Text(f"{row.state} (STALE)", style="yellow")
    return Text(row.state, style=_STATE_STYLE.get(row.state, ""))


class MonitorTUI(App):
    """Live table of scanners plus the newest detections; keys send commands."""

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("p", "ping", "Ping"),
        ("c", "camera", "Camera"),
        ("t", "torch", "Torch"),
        ("k", "track", "Tracking"),
        ("z", "pause", "Pause/Resume"),
        ("s", "sort", "Sort"),
        ("?", "help", "Help"),
    ]

    def __init__(self, settings: MonitorSettings | None = None) -> None:
        super().__init__()
        self.settings = settings or load_monitor_settings()
        self.board = ScannerBoard(
            self.settings.scanners_cmd,
            heartbeat_hz=self.settings.heartbeat_hz,
            max_detections=self.settings.max_detections,
        )
        self.cmd_port, self.sub_port = build_ipc(self.settings)
        self._stop = threading.Event()
        self._sub_thread: threading.Thread | None = None
        self._scanners: DataTable | None = None
        self._detections: DataTable | None = None
        self._status: Static | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static(
            f"[b]ipc_impl[/b]= {self.settings.ipc_impl} • event_subs: "
            f"{', '.join(self.settings.event_subs) or '-'}"
        )
        self._scanners = DataTable(zebra_stripes=True)
        self._detections = DataTable(zebra_stripes=True)
        self._status = Static("")
        yield self._scanners
        yield self._detections
        yield self._status
        yield Footer()

    def on_mount(self) -> None:
        assert self._scanners is not None and self._detections is not None
        self._scanners.add_columns(
            "Scanner", "Last Seen (UTC)", "State", "Camera", "Torch", "Tracking", "Detections"
        )
        self._detections.add_columns("Seen (UTC)", "Scanner", "Content")
        self.refresh_tables()
        self._sub_thread = threading.Thread(target=self._pump_events, daemon=True)
        self._sub_thread.start()
        # ages advance with no events too
        self.set_interval(1.0 / max(self.settings.refresh_hz, 0.1), self.refresh_tables)

    def on_unmount(self) -> None:
        self._stop.set()
        if self._sub_thread and self._sub_thread.is_alive():
            self._sub_thread.join(timeout=1.0)

    # ----- events -----

    def _pump_events(self) -> None:
        while not self._stop.is_set():
            try:
                msg = self.sub_port.recv(timeout_ms=250)
            except Exception:
                LOG.exception("event receive failed")
                continue
            if msg and self.board.apply(msg) is not None:
                self.call_from_thread(self.refresh_tables)

    def refresh_tables(self) -> None:
        if self._scanners is None or self._detections is None or self._status is None:
            return
        self._scanners.clear()
        for row in self.board.sorted_rows():
            self._scanners.add_row(
                row.name,
                row.last_seen,
                state_cell(self.board, row),
                row.selector,
                "on" if row.torch else "off",
                row.tracking,
                str(row.detections),
            )
        self._detections.clear()
        for det in self.board.detections:
            self._detections.add_row(det.seen, det.scanner, det.content)
        self._status.update(self.board.status_line() + "  • q quit  ? help")

    # ----- commands -----

    def selected_row(self) -> ScannerRow | None:
        rows = self.board.sorted_rows()
        idx = self._scanners.cursor_row if self._scanners is not None else -1
        return rows[idx] if 0 <= idx < len(rows) else None

    def send_command(self, ctype: str, arg: str | None = None) -> dict | None:
        row = self.selected_row()
        if row is None:
            self.notify("No scanner selected", severity="warning")
            return None
        if not row.cmd_ep:
            self.notify(f"{row.name} has no command endpoint", severity="warning")
            return None
        t0 = time.perf_counter()
        cmd = ScanCommand(type=ctype, arg=arg)  # type: ignore[arg-type]
        resp = self.cmd_port.send(row.cmd_ep, cmd)
        dt_ms = int((time.perf_counter() - t0) * 1000)
        if resp.get("ok"):
            self.notify(f"{ctype} → {row.name}: ✓ {dt_ms}ms")
        else:
            code = (resp.get("error") or {}).get("code", "unknown")
            LOG.info("%s to %s failed: %s", ctype, row.name, resp.get("error"))
            self.notify(f"{ctype} → {row.name}: ✕ {code}", severity="error")
        return resp

    def action_ping(self) -> None:
        self.send_command("PING")

    def action_camera(self) -> None:
        row = self.selected_row()
        self.send_command("CAMERA", next_selector(row.selector if row else "off"))

    def action_torch(self) -> None:
        self.send_command("TORCH")

    def action_track(self) -> None:
        self.send_command("TRACK")

    def action_pause(self) -> None:
        row = self.selected_row()
        self.send_command("RESUME" if row and row.state == "PAUSED" else "PAUSE")

    def action_sort(self) -> None:
        self.notify(f"Sort: {self.board.cycle_sort()}")
        self.refresh_tables()

    def action_help(self) -> None:
        self.notify(
            "p ping • c camera (auto → rear → front → off) • t torch • k tracking\n"
            "z pause/resume • s sort • q quit\n"
            "Rows read STALE after two missed heartbeats and DOWN before the first event.",
        )
