"""Asynchronous Chrome DevTools Protocol connection over a WebSocket.

One background reader task owns the socket: command responses resolve the
matching pending future, events are fanned out to listeners. Listener failures
are logged and never break the reader.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .http_client import HttpClientError

logger = logging.getLogger("mcp.span_browser.cdp")

EventListener = Callable[[str, dict[str, Any]], None]


class CdpError(HttpClientError):
    """CDP command failed or the connection is gone."""


class CdpTimeoutError(CdpError):
    """CDP command did not answer within its timeout."""


class CdpConnection:
    """Low-level CDP WebSocket connection."""

    def __init__(self, ws: Any, ws_url: str, *, timeout: float = 5.0) -> None:
        self.ws = ws
        self.ws_url = ws_url
        self.timeout = timeout
        self.closed = False
        self._next_id = 1
        self._pending: dict[int, asyncio.Future[dict[str, Any]]] = {}
        self._listeners: list[EventListener] = []
        self._close_listeners: list[Callable[[], None]] = []
        self._event_waiters: dict[str, list[asyncio.Future[dict[str, Any]]]] = {}
        self._reader: asyncio.Task[None] | None = None

    @classmethod
    async def connect(cls, ws_url: str, *, timeout: float = 5.0) -> CdpConnection:
        try:
            ws = await asyncio.wait_for(
                websockets.connect(ws_url, max_size=None, ping_interval=None),
                timeout=timeout,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            raise CdpError(f"Cannot connect to CDP at {ws_url}: {exc}") from exc
        conn = cls(ws, ws_url, timeout=timeout)
        conn.start()
        return conn

    def start(self) -> None:
        if self._reader is None:
            self._reader = asyncio.ensure_future(self._read_loop())

    # ─────────────────────────────────────────────────────────────────────────
    # Listeners
    # ─────────────────────────────────────────────────────────────────────────

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def on_close(self, callback: Callable[[], None]) -> None:
        self._close_listeners.append(callback)

    def expect_event(self, method: str) -> asyncio.Future[dict[str, Any]]:
        """Future for the params of the next ``method`` event.

        Register before issuing the command that triggers the event.
        """
        waiter: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._event_waiters.setdefault(method, []).append(waiter)
        return waiter

    def _dispatch_event(self, method: str, params: dict[str, Any]) -> None:
        for waiter in self._event_waiters.pop(method, []):
            if not waiter.done():
                waiter.set_result(params)
        for listener in list(self._listeners):
            try:
                listener(method, params)
            except Exception:  # noqa: BLE001
                logger.warning("cdp listener failed for %s", method, exc_info=True)

    # ─────────────────────────────────────────────────────────────────────────
    # Commands
    # ─────────────────────────────────────────────────────────────────────────

    async def send(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Send CDP command and wait for its result."""
        if self.closed:
            raise CdpError(f"CDP connection closed ({method})")

        msg_id = self._next_id
        self._next_id += 1
        msg: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            msg["params"] = params

        fut: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = fut
        wait_s = self.timeout if timeout is None else float(timeout)
        try:
            try:
                await self.ws.send(json.dumps(msg))
            except ConnectionClosed as exc:
                raise CdpError(f"CDP connection closed ({method}): {exc}") from exc
            try:
                return await asyncio.wait_for(fut, timeout=wait_s)
            except asyncio.TimeoutError as exc:
                raise CdpTimeoutError(f"CDP response timed out after {wait_s:.1f}s ({method})") from exc
        finally:
            self._pending.pop(msg_id, None)

    async def close(self) -> None:
        if self.closed:
            return
        try:
            await self.ws.close()
        except (OSError, WebSocketException):
            pass
        if self._reader is not None:
            try:
                await asyncio.wait_for(self._reader, timeout=1.0)
            except (asyncio.TimeoutError, asyncio.CancelledError):
                pass
        self._mark_closed()

    # ─────────────────────────────────────────────────────────────────────────
    # Reader
    # ─────────────────────────────────────────────────────────────────────────

    async def _read_loop(self) -> None:
        try:
            async for raw in self.ws:
                try:
                    data = json.loads(raw)
                except (TypeError, ValueError):
                    continue
                if not isinstance(data, dict):
                    continue

                msg_id = data.get("id")
                if isinstance(msg_id, int):
                    self._resolve(msg_id, data)
                    continue

                method = data.get("method")
                if isinstance(method, str):
                    params = data.get("params")
                    self._dispatch_event(method, params if isinstance(params, dict) else {})
        except ConnectionClosed:
            pass
        except Exception as exc:  # noqa: BLE001
            logger.warning("cdp reader stopped: %s", exc)
        finally:
            self._mark_closed()

    def _resolve(self, msg_id: int, data: dict[str, Any]) -> None:
        fut = self._pending.get(msg_id)
        if fut is None or fut.done():
            return
        error = data.get("error")
        if isinstance(error, dict):
            fut.set_exception(CdpError(f"{error.get('message') or 'CDP error'} (code={error.get('code')})"))
            return
        result = data.get("result")
        fut.set_result(result if isinstance(result, dict) else {})

    def _mark_closed(self) -> None:
        if self.closed:
            return
        self.closed = True
        for fut in self._pending.values():
            if not fut.done():
                fut.set_exception(CdpError("CDP connection closed"))
        self._pending.clear()
        for waiters in self._event_waiters.values():
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_exception(CdpError("CDP connection closed"))
        self._event_waiters.clear()
        for callback in list(self._close_listeners):
            try:
                callback()
            except Exception:  # noqa: BLE001
                logger.warning("cdp close listener failed", exc_info=True)
