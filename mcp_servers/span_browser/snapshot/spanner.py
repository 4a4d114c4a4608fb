"""Split a text snapshot into bounded, line-aligned spans.

Pure functions only: identical input and span size always produce identical
span boundaries (cursor reconciliation relies on that).
"""

from __future__ import annotations

from dataclasses import dataclass

WHOLE_SNAPSHOT = -1
MIN_SPAN_SIZE = 100
DEFAULT_SPAN_SIZE = 2000

# Room kept for the truncation marker when a single line exceeds the budget.
TRUNCATION_RESERVE = 50


@dataclass(frozen=True, slots=True)
class Span:
    """A contiguous slice of snapshot lines (1-based, inclusive range)."""

    index: int
    text: str
    start_line: int
    end_line: int

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def contains_line(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line

    def overlaps(self, start: int, end: int) -> bool:
        return self.start_line <= end and self.end_line >= start


def normalize_span_size(size: int) -> int:
    """Return the effective span size: -1 stays whole-snapshot, others clamp up to 100."""
    size = int(size)
    if size == WHOLE_SNAPSHOT:
        return WHOLE_SNAPSHOT
    return max(MIN_SPAN_SIZE, size)


def truncate_line(line: str, span_size: int) -> str:
    """Fit a single over-long line into one span, leaving an explicit marker."""
    keep = max(0, span_size - TRUNCATION_RESERVE)
    return f"{line[:keep]}... [line truncated, originally with {len(line)} chars]"


def split_into_spans(text: str, span_size: int = DEFAULT_SPAN_SIZE) -> tuple[Span, ...]:
    """Greedily pack lines into spans of at most ``span_size`` characters.

    Every line of ``text`` lands in exactly one span and the spans' line ranges
    partition ``[1, line_count]``. Closed spans have trailing whitespace removed.
    """
    lines = text.split("\n")
    line_count = len(lines)
    span_size = normalize_span_size(span_size)

    if span_size == WHOLE_SNAPSHOT:
        return (Span(index=0, text=text, start_line=1, end_line=line_count),)

    spans: list[Span] = []
    pending: list[str] = []
    pending_len = 0
    start_index = 0

    for i, line in enumerate(lines):
        chunk = line + "\n"
        if len(chunk) > span_size:
            chunk = truncate_line(line, span_size) + "\n"

        if pending and pending_len + len(chunk) > span_size:
            spans.append(
                Span(index=len(spans), text="".join(pending).rstrip(), start_line=start_index + 1, end_line=i)
            )
            pending = [chunk]
            pending_len = len(chunk)
            start_index = i
        else:
            pending.append(chunk)
            pending_len += len(chunk)

    if pending:
        spans.append(
            Span(index=len(spans), text="".join(pending).rstrip(), start_line=start_index + 1, end_line=line_count)
        )

    if not spans:
        return (Span(index=0, text="", start_line=1, end_line=max(1, line_count)),)
    return tuple(spans)


def line_map(spans: tuple[Span, ...] | list[Span]) -> list[tuple[int, int]]:
    """Global (start_line, end_line) pairs, one per span."""
    return [(span.start_line, span.end_line) for span in spans]


__all__ = [
    "DEFAULT_SPAN_SIZE",
    "MIN_SPAN_SIZE",
    "TRUNCATION_RESERVE",
    "WHOLE_SNAPSHOT",
    "Span",
    "line_map",
    "normalize_span_size",
    "split_into_spans",
    "truncate_line",
]
