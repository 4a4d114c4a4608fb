"""
Base utilities for page tools.

Provides:
- SmartToolError: Structured errors for AI agents
- URL validation for browser navigation
- Argument coercion helpers
"""

from __future__ import annotations

import urllib.parse
from dataclasses import dataclass, field
from typing import Any

from ..config import BrowserConfig
from ..http_client import HttpClientError


def ensure_allowed_navigation(url: str, config: BrowserConfig) -> None:
    """Allowlist check for browser navigation - allows about:, data:, blob: and (permissive) file: schemes."""
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme in ("about", "data", "blob"):
        return
    if parsed.scheme == "file":
        if config.allow_hosts:
            raise HttpClientError("file:// scheme requires permissive allowlist (unset MCP_ALLOW_HOSTS)")
        return
    if parsed.scheme not in ("http", "https"):
        raise HttpClientError(f"Unsupported scheme: {parsed.scheme} (allowed: http, https, about, data, blob, file)")

    if not config.is_host_allowed(parsed.hostname or ""):
        raise HttpClientError(f"Host {parsed.hostname} is not in allowlist")


@dataclass
class SmartToolError(Exception):
    """Structured error with context for AI agents."""

    tool: str
    action: str
    reason: str
    suggestion: str
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.tool}] {self.action} failed: {self.reason}. Suggestion: {self.suggestion}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": True,
            "tool": self.tool,
            "action": self.action,
            "reason": self.reason,
            "suggestion": self.suggestion,
            "details": self.details,
        }


def require_int(tool: str, name: str, value: Any, *, minimum: int | None = None) -> int:
    """Coerce a JSON number argument to int (bools and fractions are rejected)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
        raise SmartToolError(
            tool=tool,
            action="validate",
            reason=f"'{name}' must be an integer, got {value!r}",
            suggestion=f"Pass {name} as a whole number",
        )
    number = int(value)
    if minimum is not None and number < minimum:
        raise SmartToolError(
            tool=tool,
            action="validate",
            reason=f"'{name}' must be >= {minimum}, got {number}",
            suggestion=f"Pass {name} >= {minimum}",
        )
    return number


def optional_number(tool: str, name: str, value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SmartToolError(
            tool=tool,
            action="validate",
            reason=f"'{name}' must be a number, got {value!r}",
            suggestion=f"Pass {name} as a number or omit it",
        )
    return float(value)
