"""Tests for the snapshot store: cursor reconciliation and span navigation."""

from __future__ import annotations

from mcp_servers.span_browser.snapshot import WHOLE_SNAPSHOT, SnapshotStore, reconcile_cursor


def _block(tag: str, lines: int = 10) -> str:
    # Each block is 10 lines of 9 chars + newline = 100 chars, one span at size 100.
    return "\n".join(f"{tag}{i}".ljust(9, ".") for i in range(lines))


def _three_spans(middle: str = "B") -> str:
    return "\n".join([_block("A"), _block(middle), _block("C")])


# ═══════════════════════════════════════════════════════════════════════════════
# RECONCILIATION
# ═══════════════════════════════════════════════════════════════════════════════


def test_reconcile_without_previous_spans_starts_at_zero() -> None:
    assert reconcile_cursor([], ["a", "b"], 1) == 0


def test_reconcile_keeps_cursor_when_only_current_span_changed() -> None:
    assert reconcile_cursor(["a", "b", "c"], ["a", "B", "c"], 1) == 1


def test_reconcile_resets_when_another_span_changed() -> None:
    assert reconcile_cursor(["a", "b", "c"], ["A", "B", "c"], 1) == 0


def test_reconcile_resets_when_span_count_changed() -> None:
    assert reconcile_cursor(["a", "b", "c"], ["a", "b", "c", "d"], 2) == 0


def test_reconcile_resets_when_cursor_out_of_bounds() -> None:
    assert reconcile_cursor(["a", "b"], ["a", "b"], 5) == 0


def test_store_preserves_cursor_across_local_change() -> None:
    store = SnapshotStore(span_size=100)
    assert store.update(_three_spans())
    assert store.total_spans == 3
    store.navigate_to_span(1)

    assert store.update(_three_spans(middle="M"))
    assert store.current_span_index == 1
    assert store.current_span.startswith("M0")


def test_store_resets_cursor_when_other_spans_change() -> None:
    store = SnapshotStore(span_size=100)
    store.update(_three_spans())
    store.navigate_to_span(2)

    store.update("\n".join([_block("Z"), _block("B"), _block("Y")]))
    assert store.current_span_index == 0


def test_unchanged_text_is_a_no_op() -> None:
    store = SnapshotStore(span_size=100)
    text = _three_spans()
    store.update(text)
    store.navigate_to_span(2)
    generation = store.generation

    assert store.update(text) is False
    assert store.generation is generation
    assert store.current_span_index == 2


# ═══════════════════════════════════════════════════════════════════════════════
# NAVIGATION
# ═══════════════════════════════════════════════════════════════════════════════


def test_navigation_without_snapshot_fails() -> None:
    store = SnapshotStore()
    for view in (
        store.navigate_to_span(0),
        store.navigate_to_first_span(),
        store.navigate_to_last_span(),
        store.navigate_to_next_span(),
        store.navigate_to_prev_span(),
    ):
        assert view.success is False
        assert view.total_spans == 0


def test_navigate_to_span_clamps_into_range() -> None:
    store = SnapshotStore(span_size=100)
    store.update(_three_spans())

    low = store.navigate_to_span(-5)
    assert low.success and low.span_index == 0

    high = store.navigate_to_span(99)
    assert high.success and high.span_index == 2
    assert high.total_spans == 3
    assert store.current_span_index == 2


def test_next_and_prev_stop_at_boundaries() -> None:
    store = SnapshotStore(span_size=100)
    store.update(_three_spans())

    assert store.navigate_to_prev_span().span_index == 0
    store.navigate_to_last_span()
    view = store.navigate_to_next_span()
    assert view.success and view.span_index == 2
    assert view.span == store.current_span

    assert store.navigate_to_prev_span().span_index == 1
    assert store.navigate_to_first_span().span_index == 0


def test_set_span_size_resplits_and_clamps_cursor() -> None:
    store = SnapshotStore(span_size=100)
    store.update(_three_spans())
    store.navigate_to_last_span()

    assert store.set_span_size(WHOLE_SNAPSHOT) == WHOLE_SNAPSHOT
    assert store.total_spans == 1
    assert store.current_span_index == 0
    assert store.current_span == _three_spans()

    assert store.set_span_size(5) == 100
    assert store.total_spans == 3


def test_reset_clears_everything() -> None:
    store = SnapshotStore(span_size=100)
    store.update(_three_spans())
    store.navigate_to_span(1)
    store.reset()
    assert not store.has_snapshot
    assert store.total_spans == 0
    assert store.line_count == 0
    assert store.current_span == ""
    assert store.current_span_index == 0
