"""Resolve a global line number to its surrounding context and spans."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from .spanner import Span

DEFAULT_CONTEXT_LINES = 3
MAX_CONTEXT_LINES = 10

NO_SNAPSHOT_MESSAGE = "No snapshot available. Take a snapshot first."

TARGET_MARKER = ">>> "
CONTEXT_MARKER = "    "


@dataclass(frozen=True, slots=True)
class LineLocation:
    success: bool
    content: str
    info: str
    span_indices: list[int] = field(default_factory=list)
    start_line: int = 0
    end_line: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "content": self.content,
            "info": self.info,
            "spanIndices": list(self.span_indices),
        }


def clamp_context_lines(context_lines: int | None) -> int:
    if context_lines is None:
        return DEFAULT_CONTEXT_LINES
    return max(0, min(int(context_lines), MAX_CONTEXT_LINES))


def locate_line(
    lines: Sequence[str],
    spans: Sequence[Span],
    global_line: int,
    context_lines: int | None = DEFAULT_CONTEXT_LINES,
) -> LineLocation:
    """Render ``global_line`` with ``context_lines`` of context on each side."""
    if not lines:
        return LineLocation(success=False, content="", info=NO_SNAPSHOT_MESSAGE)

    total = len(lines)
    if global_line < 1 or global_line > total:
        return LineLocation(
            success=False,
            content="",
            info=f"Line {global_line} is out of range. Snapshot has {total} lines.",
        )

    context = clamp_context_lines(context_lines)
    start = max(1, global_line - context)
    end = min(total, global_line + context)

    involved = [span.index for span in spans if span.overlaps(start, end)]

    rendered = []
    for number in range(start, end + 1):
        marker = TARGET_MARKER if number == global_line else CONTEXT_MARKER
        rendered.append(f"{marker}{number}: {lines[number - 1]}")

    if involved:
        span_info = "Lines from spans: " + ", ".join(str(i + 1) for i in involved)
    else:
        span_info = "Span information unavailable"

    return LineLocation(
        success=True,
        content="\n".join(rendered),
        info=f"Showing lines {start}-{end} (±{context} context around line {global_line})\n{span_info}",
        span_indices=involved,
        start_line=start,
        end_line=end,
    )
