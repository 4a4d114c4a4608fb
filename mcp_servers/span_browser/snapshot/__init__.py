"""Snapshot span engine.

- spanner: text -> bounded, line-aligned spans
- store: latest snapshot generation + span cursor (reconciled on change)
- search: regex search with span-local and global line numbers
- locator: global line -> context window + touching spans
"""

from .locator import DEFAULT_CONTEXT_LINES, MAX_CONTEXT_LINES, LineLocation, locate_line
from .search import MAX_DISPLAYED_MATCHES, SearchMatch, SearchResult, SnapshotPatternError, search_spans
from .spanner import DEFAULT_SPAN_SIZE, MIN_SPAN_SIZE, WHOLE_SNAPSHOT, Span, line_map, split_into_spans
from .store import SnapshotGeneration, SnapshotStore, SpanView, reconcile_cursor

__all__ = [
    "DEFAULT_CONTEXT_LINES",
    "DEFAULT_SPAN_SIZE",
    "MAX_CONTEXT_LINES",
    "MAX_DISPLAYED_MATCHES",
    "MIN_SPAN_SIZE",
    "WHOLE_SNAPSHOT",
    "LineLocation",
    "SearchMatch",
    "SearchResult",
    "SnapshotGeneration",
    "SnapshotPatternError",
    "SnapshotStore",
    "Span",
    "SpanView",
    "line_map",
    "locate_line",
    "reconcile_cursor",
    "search_spans",
    "split_into_spans",
]
