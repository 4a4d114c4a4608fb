"""
Waiting.

Provides:
- wait_for: Sleep inside the page for a number of seconds (capped)
"""

from __future__ import annotations

from typing import Any

from ..tab import Tab
from .base import SmartToolError, optional_number

MAX_WAIT_SECONDS = 30.0


async def wait_for(tab: Tab, seconds: Any) -> dict[str, Any]:
    value = optional_number("browser_wait_for", "time", seconds)
    if value is None or value < 0:
        raise SmartToolError(
            tool="browser_wait_for",
            action="validate",
            reason=f"'time' must be a non-negative number of seconds, got {seconds!r}",
            suggestion="Pass time in seconds, e.g. time=2",
        )
    waited = min(value, MAX_WAIT_SECONDS)
    await tab.wait_for_timeout(waited)
    return {"waited": waited}
