"""
Page tool handlers - navigation, snapshot, scrolling, clicking, waiting, console.

Every page-changing tool answers with the fresh page state, or with the modal
state report when a dialog or file chooser interrupted it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ... import tools as smart_tools
from ..types import ToolResult

if TYPE_CHECKING:
    from ...context import BrowserContext
    from ...tab import Tab


async def _with_snapshot(tab: Tab, data: Any, *header: str) -> ToolResult:
    snapshot = await tab.capture_snapshot()
    return ToolResult.lines([*header, snapshot], data=data)


async def handle_browser_navigate(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    tab = await context.ensure_tab()
    result = await smart_tools.navigate_to(tab, context.config, args.get("url"))
    return await _with_snapshot(tab, result)


async def handle_browser_snapshot(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    tab = await context.ensure_tab()
    return await _with_snapshot(tab, None)


async def handle_browser_scroll_up(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    tab = await context.ensure_tab()
    return await _with_snapshot(tab, await smart_tools.scroll_up(tab, args.get("amount")))


async def handle_browser_scroll_down(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    tab = await context.ensure_tab()
    return await _with_snapshot(tab, await smart_tools.scroll_down(tab, args.get("amount")))


async def handle_browser_scroll_to_top(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    tab = await context.ensure_tab()
    return await _with_snapshot(tab, await smart_tools.scroll_to_top(tab))


async def handle_browser_scroll_to_bottom(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    tab = await context.ensure_tab()
    return await _with_snapshot(tab, await smart_tools.scroll_to_bottom(tab))


async def handle_browser_click(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    tab = await context.ensure_tab()
    result = await smart_tools.click_ref(tab, str(args.get("element") or ""), args.get("ref"))
    return await _with_snapshot(tab, result)


async def handle_browser_wait_for(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    tab = await context.ensure_tab()
    result = await smart_tools.wait_for(tab, args.get("time"))
    return await _with_snapshot(tab, result, f"Waited for {result['waited']:g} seconds")


async def handle_browser_console_messages(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    tab = await context.ensure_tab()
    messages = [str(message) for message in tab.console_messages()]
    if not messages:
        return ToolResult.text("No console messages", data=[])
    return ToolResult.lines([f"- {message}" for message in messages], data=messages)


PAGE_HANDLERS: dict[str, tuple] = {
    "browser_navigate": (handle_browser_navigate, True),
    "browser_snapshot": (handle_browser_snapshot, True),
    "browser_scroll_up": (handle_browser_scroll_up, True),
    "browser_scroll_down": (handle_browser_scroll_down, True),
    "browser_scroll_to_top": (handle_browser_scroll_to_top, True),
    "browser_scroll_to_bottom": (handle_browser_scroll_to_bottom, True),
    "browser_click": (handle_browser_click, True),
    "browser_wait_for": (handle_browser_wait_for, True),
    "browser_console_messages": (handle_browser_console_messages, True),
}
