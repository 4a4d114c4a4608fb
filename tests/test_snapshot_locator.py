"""Tests for global line lookup with context."""

from __future__ import annotations

from mcp_servers.span_browser.snapshot import SnapshotStore


def _store() -> SnapshotStore:
    # 30 lines of 9 chars: three spans of 10 lines at size 100.
    store = SnapshotStore(span_size=100)
    store.update("\n".join(f"line-{i:02d}.." for i in range(1, 31)))
    return store


def test_no_snapshot() -> None:
    location = SnapshotStore().locate(1)
    assert not location.success
    assert location.info == "No snapshot available. Take a snapshot first."


def test_out_of_range_lines() -> None:
    store = _store()
    low = store.locate(0)
    assert not low.success
    assert low.info == "Line 0 is out of range. Snapshot has 30 lines."
    high = store.locate(31)
    assert not high.success
    assert high.info == "Line 31 is out of range. Snapshot has 30 lines."


def test_context_window_marks_target_line() -> None:
    location = _store().locate(5, 2)
    assert location.success
    assert (location.start_line, location.end_line) == (3, 7)
    assert location.content.splitlines() == [
        "    3: line-03..",
        "    4: line-04..",
        ">>> 5: line-05..",
        "    6: line-06..",
        "    7: line-07..",
    ]
    assert location.info == "Showing lines 3-7 (±2 context around line 5)\nLines from spans: 1"


def test_window_crossing_span_boundary_lists_both_spans() -> None:
    location = _store().locate(10)
    assert (location.start_line, location.end_line) == (7, 13)
    assert location.span_indices == [0, 1]
    assert location.info.endswith("Lines from spans: 1, 2")


def test_window_is_clipped_at_snapshot_edges() -> None:
    store = _store()
    first = store.locate(1, 3)
    assert (first.start_line, first.end_line) == (1, 4)
    last = store.locate(30, 3)
    assert (last.start_line, last.end_line) == (27, 30)
    assert last.span_indices == [2]


def test_context_lines_are_clamped() -> None:
    store = _store()
    wide = store.locate(15, 50)
    assert (wide.start_line, wide.end_line) == (5, 25)
    assert "±10 context" in wide.info

    none = store.locate(15, -4)
    assert (none.start_line, none.end_line) == (15, 15)
    assert none.content == ">>> 15: line-15.."

    default = store.locate(15, None)
    assert (default.start_line, default.end_line) == (12, 18)
