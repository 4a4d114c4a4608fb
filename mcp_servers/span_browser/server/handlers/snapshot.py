"""
Snapshot span tool handlers - span navigation, search, line lookup, span size.

These tools read the snapshot already captured for the current tab and never
start a browser. Without a tab they answer as if no snapshot was taken.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ...snapshot import MAX_DISPLAYED_MATCHES, WHOLE_SNAPSHOT, SnapshotPatternError, SnapshotStore, SpanView
from ...snapshot.locator import NO_SNAPSHOT_MESSAGE
from ...tools.base import SmartToolError, require_int
from ..types import ToolResult

if TYPE_CHECKING:
    from ...context import BrowserContext


def _store(context: BrowserContext) -> SnapshotStore:
    tab = context.current_tab()
    if tab is None:
        return SnapshotStore(context.span_size)
    return tab.snapshot


def _span_result(view: SpanView, header: str) -> ToolResult:
    if not view.success:
        return ToolResult.text(NO_SNAPSHOT_MESSAGE, data=view.to_dict())
    return ToolResult.lines([header, "```yaml\n" + view.span + "\n```"], data=view.to_dict())


async def handle_navigate_to_span(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    index = require_int("browser_snapshot_navigate_to_span", "span_index", args.get("span_index"))
    view = _store(context).navigate_to_span(index)
    return _span_result(view, f"Navigated to span {view.span_index + 1} of {view.total_spans}")


async def handle_navigate_to_first_span(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    view = _store(context).navigate_to_first_span()
    return _span_result(view, f"Navigated to first span (1 of {view.total_spans})")


async def handle_navigate_to_last_span(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    view = _store(context).navigate_to_last_span()
    return _span_result(view, f"Navigated to last span ({view.span_index + 1} of {view.total_spans})")


async def handle_navigate_to_next_span(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    view = _store(context).navigate_to_next_span()
    return _span_result(view, f"Navigated to span {view.span_index + 1} of {view.total_spans}")


async def handle_navigate_to_prev_span(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    view = _store(context).navigate_to_prev_span()
    return _span_result(view, f"Navigated to span {view.span_index + 1} of {view.total_spans}")


async def handle_search(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    pattern = args.get("pattern")
    flags = args.get("flags")
    if not isinstance(pattern, str) or (flags is not None and not isinstance(flags, str)):
        raise SmartToolError(
            tool="browser_snapshot_search",
            action="validate",
            reason="'pattern' (and 'flags', if given) must be strings",
            suggestion='Pass pattern="button" and optionally flags="i"',
        )

    try:
        result = _store(context).search(pattern, flags)
    except SnapshotPatternError as e:
        return ToolResult.text(f"Error searching: {e}")

    if not result.span_indices:
        return ToolResult.text(f"No matches found for pattern: {pattern}", data=result.to_dict())

    lines = [
        f"Found {result.total} matches in {len(result.span_indices)} spans:",
        "Spans with matches: " + ", ".join(str(i + 1) for i in result.span_indices),
    ]
    for match in result.matches[:MAX_DISPLAYED_MATCHES]:
        lines.append(
            f"\n**Span {match.span_index + 1}, Global Line {match.global_line}, In-Span Line {match.local_line}:**"
        )
        lines.append(match.text)
    if result.total > MAX_DISPLAYED_MATCHES:
        lines.append(f"\n... and {result.total - MAX_DISPLAYED_MATCHES} more matches")
    lines.append("\nUse navigation tools to view specific spans with matches.")
    return ToolResult.lines(lines, data=result.to_dict())


async def handle_navigate_to_line(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    global_line = require_int("browser_snapshot_navigate_to_line", "global_line", args.get("global_line"))
    context_lines = args.get("context_lines")
    if context_lines is not None:
        context_lines = require_int("browser_snapshot_navigate_to_line", "context_lines", context_lines)

    location = _store(context).locate(global_line, context_lines)
    if not location.success:
        return ToolResult.text(location.info, data=location.to_dict())
    return ToolResult.lines([location.info, "```yaml\n" + location.content + "\n```"], data=location.to_dict())


async def handle_span_size(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    size = args.get("size")
    if size is not None:
        context.set_span_size(require_int("browser_snapshot_span_size", "size", size))

    store = _store(context)
    data = {
        "spanSize": store.span_size,
        "currentSpanIndex": store.current_span_index,
        "totalSpans": store.total_spans,
    }
    if store.span_size == WHOLE_SNAPSHOT:
        lines = ["Snapshot span size: whole snapshot (-1)"]
    else:
        lines = [f"Snapshot span size: {store.span_size} characters"]
    if store.has_snapshot:
        lines.append(f"Current span: {store.current_span_index + 1} of {store.total_spans}")
    else:
        lines.append(NO_SNAPSHOT_MESSAGE)
    return ToolResult.lines(lines, data=data)


SNAPSHOT_HANDLERS: dict[str, tuple] = {
    "browser_snapshot_navigate_to_span": (handle_navigate_to_span, False),
    "browser_snapshot_navigate_to_first_span": (handle_navigate_to_first_span, False),
    "browser_snapshot_navigate_to_last_span": (handle_navigate_to_last_span, False),
    "browser_snapshot_navigate_to_next_span": (handle_navigate_to_next_span, False),
    "browser_snapshot_navigate_to_prev_span": (handle_navigate_to_prev_span, False),
    "browser_snapshot_search": (handle_search, False),
    "browser_snapshot_navigate_to_line": (handle_navigate_to_line, False),
    "browser_snapshot_span_size": (handle_span_size, False),
}
