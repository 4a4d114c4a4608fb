"""
Input tools.

Provides:
- click_ref: Click an element by the ref shown in the page snapshot
"""

from __future__ import annotations

from typing import Any

from ..tab import RefNotFoundError, Tab
from .base import SmartToolError


async def click_ref(tab: Tab, element: str, ref: str) -> dict[str, Any]:
    """Click the element rendered as ``[ref=<ref>]`` in the page snapshot.

    Args:
        tab: Page session
        element: Human-readable element description (used for logs only)
        ref: Exact ref from the snapshot, e.g. "e12"
    """
    if not isinstance(ref, str) or not ref:
        raise SmartToolError(
            tool="browser_click",
            action="validate",
            reason="Missing ref",
            suggestion="Pass the ref shown as [ref=...] in the page snapshot",
        )
    try:
        backend_id = await tab.ref_backend_node(element, ref)
    except RefNotFoundError as e:
        raise SmartToolError(
            tool="browser_click",
            action="resolve",
            reason=str(e),
            suggestion="Call browser_snapshot and use a ref from the new snapshot",
        ) from e

    modal = await tab.wait_for_completion(lambda: tab.page.click_backend_node(backend_id))
    return {"ref": ref, "element": element, "modalState": modal.description if modal is not None else None}
