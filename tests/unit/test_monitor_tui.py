from __future__ import annotations

from datetime import UTC, datetime

from apps.monitor.settings import MonitorSettings
from apps.monitor.tui import MonitorTUI, state_cell


def _tui() -> MonitorTUI:
    # inproc transport: no sockets, no network
    return MonitorTUI(
        MonitorSettings(
            ipc_impl="inproc",
            max_detections=5,
            scanners_cmd={"scan1": "inproc://scan1"},
            event_subs=["inproc://tui-test"],
        )
    )


def test_tui_builds_its_board_from_settings():
    app = _tui()
    assert list(app.board.rows) == ["scan1"]
    assert app.board.detections.maxlen == 5
    # nothing mounted yet
    assert app.selected_row() is None
    app.refresh_tables()


def test_state_cell_reflects_health():
    app = _tui()
    row = app.board.rows["scan1"]
    assert state_cell(app.board, row).plain == "DOWN"

    app.board.apply({"topic": "state", "data": {"scanner_id": "scan1", "state": "PAUSED"}})
    cell = state_cell(app.board, row)
    assert cell.plain == "PAUSED"
    assert str(cell.style) == "yellow"

    row.last_seen_ts = datetime(2000, 1, 1, tzinfo=UTC)
    assert state_cell(app.board, row).plain == "PAUSED (STALE)"
