"""Tool schema definitions (MCP ``tools/list`` payload)."""

from __future__ import annotations

from typing import Any

_SCHEMA = "http://json-schema.org/draft-07/schema#"


def _tool(name: str, description: str, properties: dict[str, Any] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {
        "$schema": _SCHEMA,
        "type": "object",
        "properties": properties or {},
        "additionalProperties": False,
    }
    if required:
        schema["required"] = required
    return {"name": name, "description": description, "inputSchema": schema}


_AMOUNT = {
    "amount": {
        "type": "number",
        "description": "Amount to scroll in pixels. Defaults to one viewport height.",
    }
}

SNAPSHOT_TOOLS: list[dict[str, Any]] = [
    _tool(
        "browser_snapshot_navigate_to_span",
        "Navigate to a specific span in the current page snapshot by index. Each span contains a portion "
        "of the page content (limited by span size). Use this when you know the exact span number, "
        "typically after browser_snapshot_search.",
        {"span_index": {"type": "integer", "minimum": 0, "description": "The span index to navigate to (0-based)"}},
        ["span_index"],
    ),
    _tool(
        "browser_snapshot_navigate_to_first_span",
        "Navigate to the first span of the current page snapshot (top of the page).",
    ),
    _tool(
        "browser_snapshot_navigate_to_last_span",
        "Navigate to the last span of the current page snapshot (footer, final form elements).",
    ),
    _tool(
        "browser_snapshot_navigate_to_next_span",
        "Navigate to the next span. At the last span, stays at the last span.",
    ),
    _tool(
        "browser_snapshot_navigate_to_prev_span",
        "Navigate to the previous span. At the first span, stays at the first span.",
    ),
    _tool(
        "browser_snapshot_search",
        "Search all spans of the current page snapshot with a regular expression. Returns global line "
        "numbers (whole snapshot) and in-span line numbers, and lists the spans that contain matches.",
        {
            "pattern": {
                "type": "string",
                "description": "The regex pattern to search for (JavaScript named groups like (?<name>...) are accepted)",
            },
            "flags": {
                "type": "string",
                "description": 'Optional regex flags (default "gi"): i=ignore case, m=multiline, s=dotall, y=anchored',
            },
        },
        ["pattern"],
    ),
    _tool(
        "browser_snapshot_navigate_to_line",
        "Show a global line of the current page snapshot with surrounding context. The target line is "
        'marked with ">>>" and the spans holding the shown lines are listed.',
        {
            "global_line": {"type": "integer", "minimum": 1, "description": "Global line number (1-based)"},
            "context_lines": {
                "type": "integer",
                "minimum": 0,
                "maximum": 10,
                "default": 3,
                "description": "Lines of context before and after the target line",
            },
        },
        ["global_line"],
    ),
    _tool(
        "browser_snapshot_span_size",
        "Get or set the snapshot span size in characters. Values below 100 are raised to 100; "
        "-1 shows the whole snapshot as one span.",
        {"size": {"type": "integer", "description": "New span size (omit to read the current one)"}},
    ),
]

PAGE_TOOLS: list[dict[str, Any]] = [
    _tool(
        "browser_navigate",
        "Navigate to a URL and return the page snapshot.",
        {"url": {"type": "string", "description": "The URL to navigate to"}},
        ["url"],
    ),
    _tool("browser_snapshot", "Capture the current page state (URL, title, current snapshot span)."),
    _tool("browser_scroll_up", "Scroll the page up to see content above the current viewport.", _AMOUNT),
    _tool("browser_scroll_down", "Scroll the page down to see content below the current viewport.", _AMOUNT),
    _tool("browser_scroll_to_top", "Scroll to the top of the page."),
    _tool("browser_scroll_to_bottom", "Scroll to the bottom of the page."),
    _tool(
        "browser_click",
        "Click an element from the page snapshot.",
        {
            "element": {"type": "string", "description": "Human-readable element description"},
            "ref": {"type": "string", "description": "Exact target element reference from the page snapshot"},
        },
        ["element", "ref"],
    ),
    _tool(
        "browser_wait_for",
        "Wait for a number of seconds (at most 30).",
        {"time": {"type": "number", "minimum": 0, "description": "Seconds to wait"}},
        ["time"],
    ),
    _tool(
        "browser_handle_dialog",
        "Accept or dismiss the JavaScript dialog blocking the page.",
        {
            "accept": {"type": "boolean", "description": "Whether to accept the dialog"},
            "prompt_text": {"type": "string", "description": "Text for prompt() dialogs"},
        },
        ["accept"],
    ),
    _tool(
        "browser_file_upload",
        "Upload files into the open file chooser. An empty list cancels the chooser.",
        {
            "paths": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Absolute paths of the files to upload",
            }
        },
        ["paths"],
    ),
    _tool("browser_console_messages", "Return all console messages since the last navigation."),
]

TOOL_DEFINITIONS: list[dict[str, Any]] = [*PAGE_TOOLS, *SNAPSHOT_TOOLS]
