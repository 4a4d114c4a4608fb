"""Browser context: launcher + the page target the tools operate on."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .config import BrowserConfig
from .http_client import HttpClientError, list_page_targets, new_page_target
from .launcher import BrowserLauncher
from .page import CdpPage
from .session_cdp import CdpConnection
from .snapshot.spanner import normalize_span_size
from .tab import Tab

logger = logging.getLogger("mcp.span_browser.context")


class BrowserContext:
    """Owns at most one live :class:`Tab`; opens it on first use."""

    def __init__(self, config: BrowserConfig, launcher: BrowserLauncher | None = None) -> None:
        self.config = config
        self.launcher = launcher or BrowserLauncher(config)
        self.span_size = config.span_size
        self._tab: Tab | None = None
        self._lock: asyncio.Lock | None = None

    def current_tab(self) -> Tab | None:
        return self._tab

    def set_span_size(self, size: int) -> int:
        """Span size for the current tab and any tab opened later."""
        self.span_size = normalize_span_size(size)
        if self._tab is not None:
            self._tab.set_snapshot_span_size(self.span_size)
        return self.span_size

    async def ensure_tab(self) -> Tab:
        if self._tab is not None:
            return self._tab
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self._tab is None:
                self._tab = await self._open_tab()
        return self._tab

    async def _open_tab(self) -> Tab:
        launch = await asyncio.to_thread(self.launcher.ensure_running)
        if launch.message:
            logger.info("browser: %s", launch.message)
        try:
            targets = await asyncio.to_thread(list_page_targets, self.config)
            target: dict[str, Any] = targets[0] if targets else await asyncio.to_thread(new_page_target, self.config)
        except HttpClientError as exc:
            raise HttpClientError(f"{exc} ({launch.message})") from exc

        conn = await CdpConnection.connect(target["webSocketDebuggerUrl"], timeout=self.config.action_timeout)
        page = await CdpPage.attach(conn, self.config, url=str(target.get("url") or ""))
        logger.info("attached to page target %s", target.get("id"))
        return Tab(page, self.config, span_size=self.span_size, on_close=self._tab_closed)

    def _tab_closed(self, tab: Tab) -> None:
        if self._tab is tab:
            logger.info("page closed")
            self._tab = None

    async def close(self) -> None:
        tab, self._tab = self._tab, None
        if tab is not None:
            await tab.page.close()
        await asyncio.to_thread(self.launcher.stop)
