"""
Type definitions for MCP server responses and handlers.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..context import BrowserContext


@dataclass(slots=True)
class ToolContent:
    """Single content item in tool response."""

    type: str  # "text"
    text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to MCP content format."""
        return {"type": self.type, "text": self.text}


@dataclass(slots=True)
class ToolResult:
    """Result of a tool execution."""

    content: list[ToolContent] = field(default_factory=list)
    is_error: bool = False
    # Raw payload for tests and logging; not part of the MCP wire format.
    data: Any | None = None

    @classmethod
    def text(cls, text: str, *, data: Any | None = None) -> ToolResult:
        """Create result with single text content."""
        return cls(content=[ToolContent(type="text", text=text or "")], data=data)

    @classmethod
    def lines(cls, lines: list[str], *, data: Any | None = None) -> ToolResult:
        """Create result from markdown lines (joined with newlines)."""
        return cls.text("\n".join(lines), data=data)

    @classmethod
    def error(
        cls,
        message: str,
        *,
        tool: str | None = None,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ToolResult:
        """Create error result as plain text: message, then optional suggestion and details."""
        lines = [message]
        if suggestion:
            lines.append(f"Suggestion: {suggestion}")
        for key, value in (details or {}).items():
            lines.append(f"{key}: {value}")
        payload: dict[str, Any] = {"ok": False, "error": message}
        if tool:
            payload["tool"] = tool
        if suggestion:
            payload["suggestion"] = suggestion
        if details:
            payload["details"] = details
        return cls(content=[ToolContent(type="text", text="\n".join(lines))], is_error=True, data=payload)

    @property
    def first_text(self) -> str:
        return next((c.text or "" for c in self.content if c.type == "text"), "")

    def to_content_list(self) -> list[dict[str, Any]]:
        """Convert to MCP content list format."""
        return [c.to_dict() for c in self.content]


class ToolHandler(Protocol):
    """Protocol for tool handler coroutines."""

    def __call__(self, context: BrowserContext, arguments: dict[str, Any]) -> Awaitable[ToolResult]: ...


@dataclass(slots=True, frozen=True)
class ToolSpec:
    """Specification for a registered tool."""

    name: str
    handler: Callable[[BrowserContext, dict[str, Any]], Awaitable[ToolResult]]
    requires_browser: bool = True  # Whether to open the tab (and check modal states) before the handler
    clears_modal_state: str | None = None  # Modal kind this tool resolves, if any
