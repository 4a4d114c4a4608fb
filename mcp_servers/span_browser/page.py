"""Page-level driver on top of a CDP connection.

``CdpPage`` turns raw CDP events into a small set of page events
(``dialog``, ``filechooser``, ``download``, ``console``, ``pageerror``,
``request``, ``response``, ``requestfinished``, ``requestfailed``, ``close``)
and offers the handful of page operations the tools need.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .ax_snapshot import render_ax_snapshot
from .config import BrowserConfig
from .session_cdp import CdpConnection, CdpError, CdpTimeoutError

logger = logging.getLogger("mcp.span_browser.page")

PageListener = Callable[..., None]

DEFAULT_VIEWPORT_HEIGHT = 800


class NavigationError(CdpError):
    """Page.navigate reported an errorText (net::ERR_ABORTED, ...)."""


# ─────────────────────────────────────────────────────────────────────────────
# Event payloads
# ─────────────────────────────────────────────────────────────────────────────


class Dialog:
    """A JavaScript dialog (alert/confirm/prompt/beforeunload) waiting for an answer."""

    def __init__(self, page: CdpPage, type: str, message: str, default_prompt: str = "") -> None:
        self.page = page
        self.type = type
        self.message = message
        self.default_prompt = default_prompt
        self.handled = False

    async def accept(self, prompt_text: str | None = None) -> None:
        params: dict[str, Any] = {"accept": True}
        if prompt_text is not None:
            params["promptText"] = prompt_text
        await self.page.send("Page.handleJavaScriptDialog", params)
        self.handled = True

    async def dismiss(self) -> None:
        await self.page.send("Page.handleJavaScriptDialog", {"accept": False})
        self.handled = True


class FileChooser:
    """An intercepted file chooser bound to its <input type=file> element."""

    def __init__(self, page: CdpPage, backend_node_id: int, mode: str = "selectSingle") -> None:
        self.page = page
        self.backend_node_id = backend_node_id
        self.mode = mode

    @property
    def is_multiple(self) -> bool:
        return self.mode == "selectMultiple"

    async def set_files(self, paths: list[str]) -> None:
        await self.page.send(
            "DOM.setFileInputFiles",
            {"files": [str(p) for p in paths], "backendNodeId": self.backend_node_id},
        )


class Download:
    """A download routed into the page's download directory under its guid."""

    def __init__(self, guid: str, url: str, suggested_filename: str, download_dir: str) -> None:
        self.guid = guid
        self.url = url
        self.suggested_filename = suggested_filename or "download"
        self.download_dir = download_dir
        self.state = "inProgress"
        self._done: asyncio.Future[str] = asyncio.get_running_loop().create_future()

    def _progress(self, state: str) -> None:
        self.state = state
        if state in ("completed", "canceled") and not self._done.done():
            self._done.set_result(state)

    def _abort(self) -> None:
        self._progress("canceled")

    async def save_as(self, path: str | Path) -> Path:
        state = await self._done
        if state != "completed":
            raise CdpError(f"Download of {self.suggested_filename} was canceled")
        source = Path(self.download_dir) / self.guid
        target = Path(path)
        if source != target:
            await asyncio.to_thread(shutil.move, str(source), str(target))
        return target


@dataclass
class ConsoleMessage:
    type: str | None
    text: str
    url: str = ""
    line_number: int = 0
    stack: str = ""

    def __str__(self) -> str:
        if self.type is None:
            return self.stack or self.text
        return f"[{self.type.upper()}] {self.text} @ {self.url}:{self.line_number}"


@dataclass
class Request:
    request_id: str
    url: str
    method: str = "GET"
    resource_type: str = ""
    status: int | None = None
    failure: str | None = None
    finished: bool = False


@dataclass
class _EventHub:
    listeners: dict[str, list[PageListener]] = field(default_factory=dict)
    waiters: dict[str, list[asyncio.Future[Any]]] = field(default_factory=dict)

    def emit(self, event: str, *args: Any) -> None:
        for waiter in self.waiters.pop(event, []):
            if not waiter.done():
                waiter.set_result(args[0] if args else None)
        for listener in list(self.listeners.get(event, [])):
            try:
                listener(*args)
            except Exception:  # noqa: BLE001
                logger.warning("page listener failed for %s", event, exc_info=True)


def _remote_object_text(obj: Any) -> str:
    if not isinstance(obj, dict):
        return str(obj)
    if "value" in obj:
        value = obj.get("value")
        return value if isinstance(value, str) else str(value)
    if obj.get("unserializableValue"):
        return str(obj["unserializableValue"])
    return str(obj.get("description") or obj.get("type") or "")


# ─────────────────────────────────────────────────────────────────────────────
# Page
# ─────────────────────────────────────────────────────────────────────────────


class CdpPage:
    """One page target driven over its own CDP connection."""

    def __init__(self, conn: CdpConnection, config: BrowserConfig, *, url: str = "") -> None:
        self.conn = conn
        self.config = config
        self.closed = False
        self.refs: dict[str, int] = {}
        self._url = url
        self._main_frame_id: str | None = None
        self._hub = _EventHub()
        self._requests: dict[str, Request] = {}
        self._downloads: dict[str, Download] = {}
        conn.add_listener(self._on_cdp_event)
        conn.on_close(self._on_connection_closed)

    @classmethod
    async def attach(cls, conn: CdpConnection, config: BrowserConfig, *, url: str = "") -> CdpPage:
        page = cls(conn, config, url=url)
        await page.setup()
        return page

    async def setup(self) -> None:
        for domain in ("Page", "Runtime", "Network", "DOM"):
            await self.send(f"{domain}.enable")
        await self.send("Page.setInterceptFileChooserDialog", {"enabled": True})
        download_dir = Path(self.config.output_dir)
        download_dir.mkdir(parents=True, exist_ok=True)
        try:
            await self.send(
                "Browser.setDownloadBehavior",
                {"behavior": "allowAndName", "downloadPath": str(download_dir), "eventsEnabled": True},
            )
        except CdpError as exc:
            logger.warning("downloads will not be captured: %s", exc)
        try:
            tree = await self.send("Page.getFrameTree")
            frame = (tree.get("frameTree") or {}).get("frame") or {}
            self._main_frame_id = frame.get("id")
            self._url = frame.get("url") or self._url
        except CdpError as exc:
            logger.debug("frame tree unavailable: %s", exc)

    async def send(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None) -> dict[str, Any]:
        return await self.conn.send(method, params, timeout=timeout if timeout is not None else self.config.action_timeout)

    # ─────────────────────────────────────────────────────────────────────────
    # Page events
    # ─────────────────────────────────────────────────────────────────────────

    def on(self, event: str, listener: PageListener) -> None:
        self._hub.listeners.setdefault(event, []).append(listener)

    def off(self, event: str, listener: PageListener) -> None:
        listeners = self._hub.listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def wait_for_event(self, event: str) -> asyncio.Future[Any]:
        """Future resolved with the payload of the next ``event``."""
        waiter: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._hub.waiters.setdefault(event, []).append(waiter)
        return waiter

    def discard_waiter(self, event: str, waiter: asyncio.Future[Any]) -> None:
        """Drop a ``wait_for_event`` future that is no longer awaited."""
        waiters = self._hub.waiters.get(event, [])
        if waiter in waiters:
            waiters.remove(waiter)
        if not waiters:
            self._hub.waiters.pop(event, None)
        if not waiter.done():
            waiter.cancel()

    def _on_cdp_event(self, method: str, params: dict[str, Any]) -> None:
        handler = _CDP_HANDLERS.get(method)
        if handler is not None:
            handler(self, params)

    def _on_dialog(self, params: dict[str, Any]) -> None:
        dialog = Dialog(
            self,
            str(params.get("type") or "alert"),
            str(params.get("message") or ""),
            str(params.get("defaultPrompt") or ""),
        )
        self._hub.emit("dialog", dialog)

    def _on_file_chooser(self, params: dict[str, Any]) -> None:
        backend_id = params.get("backendNodeId")
        if not isinstance(backend_id, int):
            logger.warning("file chooser without backendNodeId ignored")
            return
        self._hub.emit("filechooser", FileChooser(self, backend_id, str(params.get("mode") or "selectSingle")))

    def _on_download_begin(self, params: dict[str, Any]) -> None:
        guid = str(params.get("guid") or "")
        if not guid or guid in self._downloads:
            return
        download = Download(
            guid,
            str(params.get("url") or ""),
            str(params.get("suggestedFilename") or ""),
            self.config.output_dir,
        )
        self._downloads[guid] = download
        self._hub.emit("download", download)

    def _on_download_progress(self, params: dict[str, Any]) -> None:
        download = self._downloads.get(str(params.get("guid") or ""))
        if download is not None:
            download._progress(str(params.get("state") or "inProgress"))

    def _on_console(self, params: dict[str, Any]) -> None:
        args = params.get("args") or []
        frames = (params.get("stackTrace") or {}).get("callFrames") or []
        top = frames[0] if frames else {}
        message = ConsoleMessage(
            type=str(params.get("type") or "log"),
            text=" ".join(_remote_object_text(a) for a in args),
            url=str(top.get("url") or ""),
            line_number=int(top.get("lineNumber") or 0),
        )
        self._hub.emit("console", message)

    def _on_exception(self, params: dict[str, Any]) -> None:
        details = params.get("exceptionDetails") or {}
        exception = details.get("exception") or {}
        description = str(exception.get("description") or "")
        text = description.split("\n", 1)[0] if description else str(details.get("text") or "Uncaught error")
        self._hub.emit("pageerror", ConsoleMessage(type=None, text=text, stack=description))

    def _on_request(self, params: dict[str, Any]) -> None:
        request_id = str(params.get("requestId") or "")
        req = params.get("request") or {}
        request = Request(
            request_id=request_id,
            url=str(req.get("url") or ""),
            method=str(req.get("method") or "GET"),
            resource_type=str(params.get("type") or ""),
        )
        # Redirects reuse the request id; the new hop replaces the old one.
        self._requests[request_id] = request
        self._hub.emit("request", request)

    def _on_response(self, params: dict[str, Any]) -> None:
        request = self._requests.get(str(params.get("requestId") or ""))
        if request is None:
            return
        status = (params.get("response") or {}).get("status")
        request.status = int(status) if isinstance(status, (int, float)) else None
        self._hub.emit("response", request)

    def _on_loading_finished(self, params: dict[str, Any]) -> None:
        request = self._requests.pop(str(params.get("requestId") or ""), None)
        if request is None:
            return
        request.finished = True
        self._hub.emit("requestfinished", request)

    def _on_loading_failed(self, params: dict[str, Any]) -> None:
        request = self._requests.pop(str(params.get("requestId") or ""), None)
        if request is None:
            return
        request.failure = str(params.get("errorText") or "failed")
        request.finished = True
        self._hub.emit("requestfailed", request)

    def _on_frame_navigated(self, params: dict[str, Any]) -> None:
        frame = params.get("frame") or {}
        if frame.get("parentId"):
            return
        self._main_frame_id = frame.get("id") or self._main_frame_id
        self._url = str(frame.get("url") or "") + str(frame.get("urlFragment") or "")

    def _on_same_document(self, params: dict[str, Any]) -> None:
        if params.get("frameId") == self._main_frame_id and params.get("url"):
            self._url = str(params["url"])

    def _on_detached(self, params: dict[str, Any]) -> None:
        self._on_connection_closed()

    def _on_connection_closed(self) -> None:
        if self.closed:
            return
        self.closed = True
        for download in self._downloads.values():
            download._abort()
        self._hub.emit("close")

    # ─────────────────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def url(self) -> str:
        return self._url

    async def goto(self, url: str, *, timeout: float | None = None) -> None:
        """Navigate and wait for DOMContentLoaded."""
        wait_s = self.config.navigation_timeout if timeout is None else float(timeout)
        dom_ready = self.conn.expect_event("Page.domContentEventFired")
        try:
            result = await self.send("Page.navigate", {"url": url}, timeout=wait_s)
            error_text = result.get("errorText")
            if error_text:
                raise NavigationError(f"{error_text} at {url}")
            if not result.get("loaderId"):
                # Same-document navigation: no new document, no DOMContentLoaded.
                return
            try:
                await asyncio.wait_for(asyncio.shield(dom_ready), timeout=wait_s)
            except asyncio.TimeoutError as exc:
                raise CdpTimeoutError(f"Navigation to {url} timed out after {wait_s:.1f}s") from exc
        finally:
            if not dom_ready.done():
                dom_ready.cancel()

    async def wait_for_load(self, *, timeout: float) -> None:
        """Wait for the load event, giving up silently after ``timeout``."""
        loaded = self.conn.expect_event("Page.loadEventFired")
        try:
            if await self.evaluate("document.readyState") == "complete":
                return
            await asyncio.wait_for(asyncio.shield(loaded), timeout=timeout)
        except (asyncio.TimeoutError, CdpError) as exc:
            logger.debug("load state not reached: %s", exc)
        finally:
            if not loaded.done():
                loaded.cancel()

    async def evaluate(self, expression: str, *, timeout: float | None = None) -> Any:
        result = await self.send(
            "Runtime.evaluate",
            {"expression": expression, "returnByValue": True, "awaitPromise": True},
            timeout=timeout,
        )
        details = result.get("exceptionDetails")
        if isinstance(details, dict):
            exception = details.get("exception") or {}
            raise CdpError(f"JavaScript error: {exception.get('description') or details.get('text')}")
        return (result.get("result") or {}).get("value")

    async def title(self) -> str:
        value = await self.evaluate("document.title")
        return value if isinstance(value, str) else ""

    async def viewport_height(self) -> int:
        value = await self.evaluate("window.innerHeight")
        if isinstance(value, (int, float)) and value > 0:
            return int(value)
        return DEFAULT_VIEWPORT_HEIGHT

    async def click_backend_node(self, backend_node_id: int) -> None:
        await self.send("DOM.scrollIntoViewIfNeeded", {"backendNodeId": backend_node_id})
        box = await self.send("DOM.getBoxModel", {"backendNodeId": backend_node_id})
        quad = (box.get("model") or {}).get("content") or []
        if len(quad) < 8:
            raise CdpError(f"Element {backend_node_id} has no clickable box")
        x = sum(quad[0::2]) / 4
        y = sum(quad[1::2]) / 4
        await self.send("Input.dispatchMouseEvent", {"type": "mouseMoved", "x": x, "y": y})
        for kind in ("mousePressed", "mouseReleased"):
            await self.send(
                "Input.dispatchMouseEvent",
                {"type": kind, "x": x, "y": y, "button": "left", "clickCount": 1},
            )

    async def snapshot_for_ai(self) -> str:
        tree = await self.send("Accessibility.getFullAXTree")
        snapshot = render_ax_snapshot(tree.get("nodes") or [])
        self.refs = snapshot.refs
        return snapshot.text

    async def close(self) -> None:
        await self.conn.close()


_CDP_HANDLERS: dict[str, Callable[[CdpPage, dict[str, Any]], None]] = {
    "Page.javascriptDialogOpening": CdpPage._on_dialog,
    "Page.fileChooserOpened": CdpPage._on_file_chooser,
    "Browser.downloadWillBegin": CdpPage._on_download_begin,
    "Page.downloadWillBegin": CdpPage._on_download_begin,
    "Browser.downloadProgress": CdpPage._on_download_progress,
    "Page.downloadProgress": CdpPage._on_download_progress,
    "Runtime.consoleAPICalled": CdpPage._on_console,
    "Runtime.exceptionThrown": CdpPage._on_exception,
    "Network.requestWillBeSent": CdpPage._on_request,
    "Network.responseReceived": CdpPage._on_response,
    "Network.loadingFinished": CdpPage._on_loading_finished,
    "Network.loadingFailed": CdpPage._on_loading_failed,
    "Page.frameNavigated": CdpPage._on_frame_navigated,
    "Page.navigatedWithinDocument": CdpPage._on_same_document,
    "Inspector.detached": CdpPage._on_detached,
}
