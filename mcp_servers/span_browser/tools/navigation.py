"""
Navigation tools.

Provides:
- navigate_to: Navigate the current tab to a URL
"""

from __future__ import annotations

from typing import Any

from ..config import BrowserConfig
from ..page import NavigationError
from ..session_cdp import CdpTimeoutError
from ..tab import Tab
from .base import SmartToolError, ensure_allowed_navigation


async def navigate_to(tab: Tab, config: BrowserConfig, url: str) -> dict[str, Any]:
    """Navigate to a URL in the current tab.

    Args:
        tab: Page session
        config: Browser configuration
        url: URL to navigate to

    Returns:
        Dict with url and the modal state that interrupted the navigation, if any
    """
    if not isinstance(url, str) or not url.strip():
        raise SmartToolError(
            tool="browser_navigate",
            action="validate",
            reason="Missing url",
            suggestion="Pass an absolute URL, e.g. https://example.com",
        )
    ensure_allowed_navigation(url, config)

    try:
        modal = await tab.race(lambda: tab.navigate(url))
    except (NavigationError, CdpTimeoutError) as e:
        raise SmartToolError(
            tool="browser_navigate",
            action="navigate",
            reason=str(e),
            suggestion="Check URL is valid and accessible",
        ) from e
    return {"url": url, "modalState": modal.description if modal is not None else None}
