"""
Scroll tools.

Provides:
- scroll_up / scroll_down: Scroll by a pixel amount (default one viewport)
- scroll_to_top / scroll_to_bottom: Jump to the page edges
"""

from __future__ import annotations

from typing import Any

from ..tab import Tab
from .base import optional_number


async def _scroll_amount(tab: Tab, tool: str, amount: Any) -> int:
    value = optional_number(tool, "amount", amount)
    if value:
        return int(value)
    return await tab.page.viewport_height()


async def _run(tab: Tab, expression: str) -> dict[str, Any]:
    modal = await tab.wait_for_completion(lambda: tab.page.evaluate(expression))
    return {"expression": expression, "modalState": modal.description if modal is not None else None}


async def scroll_up(tab: Tab, amount: Any = None) -> dict[str, Any]:
    pixels = await _scroll_amount(tab, "browser_scroll_up", amount)
    return await _run(tab, f"window.scrollBy(0, {-pixels})")


async def scroll_down(tab: Tab, amount: Any = None) -> dict[str, Any]:
    pixels = await _scroll_amount(tab, "browser_scroll_down", amount)
    return await _run(tab, f"window.scrollBy(0, {pixels})")


async def scroll_to_top(tab: Tab) -> dict[str, Any]:
    return await _run(tab, "window.scrollTo(0, 0)")


async def scroll_to_bottom(tab: Tab) -> dict[str, Any]:
    return await _run(tab, "window.scrollTo(0, document.body.scrollHeight)")
