"""Snapshot store: latest snapshot text, its spans, and the span cursor.

Each new snapshot text produces a fresh immutable :class:`SnapshotGeneration`;
reconciliation compares the previous generation's spans with the new ones by
value, so nothing is ever mutated in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .locator import DEFAULT_CONTEXT_LINES, LineLocation, locate_line
from .search import SearchResult, search_spans
from .spanner import DEFAULT_SPAN_SIZE, WHOLE_SNAPSHOT, Span, normalize_span_size, split_into_spans

logger = logging.getLogger("mcp.span_browser.snapshot")


@dataclass(frozen=True, slots=True)
class SnapshotGeneration:
    text: str
    lines: tuple[str, ...]
    spans: tuple[Span, ...]

    @classmethod
    def build(cls, text: str, span_size: int) -> SnapshotGeneration:
        return cls(text=text, lines=tuple(text.split("\n")), spans=split_into_spans(text, span_size))

    def span_texts(self) -> list[str]:
        return [span.text for span in self.spans]


@dataclass(frozen=True, slots=True)
class SpanView:
    """Result of a cursor move."""

    success: bool
    span: str = ""
    span_index: int = 0
    total_spans: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "span": self.span,
            "spanIndex": self.span_index,
            "totalSpans": self.total_spans,
        }


def reconcile_cursor(previous: list[str], current: list[str], cursor: int) -> int:
    """Decide where the cursor lands after the span list was regenerated.

    The cursor survives only when the span count is unchanged and every span
    other than the one under the cursor is identical; otherwise it resets to 0.
    """
    if not current:
        return 0
    if not previous:
        new_cursor = 0
    elif len(current) == len(previous) and 0 <= cursor < len(current):
        unchanged = all(current[i] == previous[i] for i in range(len(current)) if i != cursor)
        new_cursor = cursor if unchanged else 0
    else:
        new_cursor = 0
    return max(0, min(new_cursor, len(current) - 1))


@dataclass
class SnapshotStore:
    """Per-page snapshot state. Owned by a single :class:`~..tab.Tab`."""

    span_size: int = DEFAULT_SPAN_SIZE
    _generation: SnapshotGeneration | None = field(default=None, init=False, repr=False)
    _cursor: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.span_size = normalize_span_size(self.span_size)

    # ─────────────────────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def generation(self) -> SnapshotGeneration | None:
        return self._generation

    @property
    def has_snapshot(self) -> bool:
        return self._generation is not None

    @property
    def text(self) -> str:
        return self._generation.text if self._generation is not None else ""

    @property
    def spans(self) -> tuple[Span, ...]:
        return self._generation.spans if self._generation is not None else ()

    @property
    def total_spans(self) -> int:
        return len(self.spans)

    @property
    def line_count(self) -> int:
        return len(self._generation.lines) if self._generation is not None else 0

    @property
    def current_span_index(self) -> int:
        return self._cursor

    @property
    def current_span(self) -> str:
        spans = self.spans
        if not spans:
            return ""
        return spans[self._cursor].text

    @property
    def whole_snapshot(self) -> bool:
        return self.span_size == WHOLE_SNAPSHOT

    def reset(self) -> None:
        self._generation = None
        self._cursor = 0

    def update(self, text: str) -> bool:
        """Store a freshly captured snapshot. Returns False when the text is unchanged."""
        previous = self._generation
        if previous is not None and previous.text == text:
            return False

        generation = SnapshotGeneration.build(text, self.span_size)
        old_cursor = self._cursor
        self._cursor = reconcile_cursor(
            previous.span_texts() if previous is not None else [],
            generation.span_texts(),
            old_cursor,
        )
        self._generation = generation
        logger.debug(
            "snapshot updated spans=%d lines=%d cursor=%d->%d",
            len(generation.spans),
            len(generation.lines),
            old_cursor,
            self._cursor,
        )
        return True

    def set_span_size(self, size: int) -> int:
        self.span_size = normalize_span_size(size)
        if self._generation is not None and self._generation.text:
            self._generation = SnapshotGeneration.build(self._generation.text, self.span_size)
            self._cursor = min(self._cursor, len(self._generation.spans) - 1)
        return self.span_size

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────────

    def navigate_to_span(self, index: int) -> SpanView:
        spans = self.spans
        if not spans:
            return SpanView(success=False)
        clamped = max(0, min(int(index), len(spans) - 1))
        self._cursor = clamped
        return SpanView(success=True, span=spans[clamped].text, span_index=clamped, total_spans=len(spans))

    def navigate_to_first_span(self) -> SpanView:
        return self.navigate_to_span(0)

    def navigate_to_last_span(self) -> SpanView:
        return self.navigate_to_span(self.total_spans - 1)

    def navigate_to_next_span(self) -> SpanView:
        return self.navigate_to_span(self._cursor + 1)

    def navigate_to_prev_span(self) -> SpanView:
        return self.navigate_to_span(self._cursor - 1)

    # ─────────────────────────────────────────────────────────────────────────
    # Read-only queries
    # ─────────────────────────────────────────────────────────────────────────

    def search(self, pattern: str, flags: str | None = None) -> SearchResult:
        return search_spans(self.spans, pattern, flags)

    def locate(self, global_line: int, context_lines: int | None = DEFAULT_CONTEXT_LINES) -> LineLocation:
        generation = self._generation
        if generation is None:
            return locate_line((), (), global_line, context_lines)
        return locate_line(generation.lines, generation.spans, global_line, context_lines)
