"""
Dialog handling for JavaScript alerts, confirms, and prompts.

Provides:
- handle_dialog: Accept or dismiss the oldest pending dialog
"""

from __future__ import annotations

from typing import Any

from ..modal import DIALOG
from ..tab import Tab
from .base import SmartToolError


async def handle_dialog(tab: Tab, accept: bool = True, prompt_text: str | None = None) -> dict[str, Any]:
    """Handle the oldest JavaScript dialog blocking the page.

    The modal state is cleared before the dialog is answered, so the
    follow-up snapshot no longer reports it.

    Args:
        tab: Page session
        accept: True to accept/OK, False to dismiss/cancel
        prompt_text: Text to enter for prompt() dialogs
    """
    state = tab.modal_states.first(DIALOG)
    if state is None:
        raise SmartToolError(
            tool="browser_handle_dialog",
            action="handle",
            reason="No dialog visible",
            suggestion="Call browser_snapshot to see the current page state",
        )

    dialog = state.handle
    tab.modal_states.clear(state)
    if accept:
        modal = await tab.wait_for_completion(lambda: dialog.accept(prompt_text))
    else:
        modal = await tab.wait_for_completion(dialog.dismiss)
    return {
        "accepted": bool(accept),
        "dialog": state.description,
        "modalState": modal.description if modal is not None else None,
    }
