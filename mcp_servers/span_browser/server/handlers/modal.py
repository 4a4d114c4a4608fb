"""
Modal state handlers - JavaScript dialogs and file choosers.

The registry only lets these run while a matching modal state is pending.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ... import tools as smart_tools
from ..types import ToolResult

if TYPE_CHECKING:
    from ...context import BrowserContext


async def handle_browser_handle_dialog(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    tab = await context.ensure_tab()
    prompt_text = args.get("prompt_text")
    result = await smart_tools.handle_dialog(
        tab,
        accept=bool(args.get("accept", True)),
        prompt_text=str(prompt_text) if prompt_text is not None else None,
    )
    return ToolResult.lines([await tab.capture_snapshot()], data=result)


async def handle_browser_file_upload(context: BrowserContext, args: dict[str, Any]) -> ToolResult:
    tab = await context.ensure_tab()
    result = await smart_tools.upload_files(tab, args.get("paths"))
    return ToolResult.lines([await tab.capture_snapshot()], data=result)


MODAL_HANDLERS: dict[str, tuple] = {
    "browser_handle_dialog": (handle_browser_handle_dialog, True),
    "browser_file_upload": (handle_browser_file_upload, True),
}
