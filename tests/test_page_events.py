"""Tests for turning CDP events into page events and for page operations."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from mcp_servers.span_browser.config import BrowserConfig
from mcp_servers.span_browser.page import CdpPage, NavigationError
from mcp_servers.span_browser.session_cdp import CdpError
from mcp_servers.span_browser.tab import Tab


class DummyConnection:
    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = responses or {}
        self.sent: list[tuple[str, dict | None]] = []
        self.listeners: list[Any] = []
        self.close_listeners: list[Any] = []
        self.event_waiters: dict[str, list[asyncio.Future]] = {}
        self.auto_events: dict[str, list[str]] = {}

    def add_listener(self, listener: Any) -> None:
        self.listeners.append(listener)

    def on_close(self, callback: Any) -> None:
        self.close_listeners.append(callback)

    def expect_event(self, method: str) -> asyncio.Future:
        fut: asyncio.Future = asyncio.get_running_loop().create_future()
        self.event_waiters.setdefault(method, []).append(fut)
        return fut

    def fire(self, method: str, params: dict[str, Any] | None = None) -> None:
        for waiter in self.event_waiters.pop(method, []):
            if not waiter.done():
                waiter.set_result(params or {})
        for listener in list(self.listeners):
            listener(method, params or {})

    async def send(self, method: str, params: dict | None = None, *, timeout: float | None = None) -> dict:
        self.sent.append((method, params))
        for event in self.auto_events.get(method, []):
            asyncio.get_running_loop().call_soon(self.fire, event, {})
        response = self.responses.get(method, {})
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self) -> None:
        for callback in self.close_listeners:
            callback()


def _config(tmp_path: Path) -> BrowserConfig:
    return BrowserConfig(binary_path="chromium", profile_path=str(tmp_path / "p"), output_dir=str(tmp_path / "out"))


def _page(tmp_path: Path, conn: DummyConnection) -> CdpPage:
    return CdpPage(conn, _config(tmp_path), url="about:blank")  # type: ignore[arg-type]


def test_setup_enables_domains_and_intercepts_choosers(tmp_path: Path) -> None:
    conn = DummyConnection({"Page.getFrameTree": {"frameTree": {"frame": {"id": "F1", "url": "https://a.test/"}}}})

    page = asyncio.run(CdpPage.attach(conn, _config(tmp_path)))  # type: ignore[arg-type]

    methods = [m for m, _ in conn.sent]
    assert methods[:4] == ["Page.enable", "Runtime.enable", "Network.enable", "DOM.enable"]
    assert ("Page.setInterceptFileChooserDialog", {"enabled": True}) in conn.sent
    download = dict(conn.sent)["Browser.setDownloadBehavior"]
    assert download["behavior"] == "allowAndName"
    assert download["downloadPath"] == str(tmp_path / "out")
    assert page.url == "https://a.test/"


def test_dialog_event_and_answer(tmp_path: Path) -> None:
    conn = DummyConnection()
    page = _page(tmp_path, conn)
    dialogs: list[Any] = []
    page.on("dialog", dialogs.append)

    conn.fire("Page.javascriptDialogOpening", {"type": "prompt", "message": "Name?", "defaultPrompt": "anon"})
    assert len(dialogs) == 1
    dialog = dialogs[0]
    assert (dialog.type, dialog.message, dialog.default_prompt) == ("prompt", "Name?", "anon")

    asyncio.run(dialog.accept("Ada"))
    assert conn.sent[-1] == ("Page.handleJavaScriptDialog", {"accept": True, "promptText": "Ada"})
    asyncio.run(dialog.dismiss())
    assert conn.sent[-1] == ("Page.handleJavaScriptDialog", {"accept": False})


def test_file_chooser_sets_files_on_backend_node(tmp_path: Path) -> None:
    conn = DummyConnection()
    page = _page(tmp_path, conn)
    choosers: list[Any] = []
    page.on("filechooser", choosers.append)

    conn.fire("Page.fileChooserOpened", {"frameId": "F1", "mode": "selectMultiple", "backendNodeId": 77})
    conn.fire("Page.fileChooserOpened", {"frameId": "F1", "mode": "selectSingle"})
    assert len(choosers) == 1
    assert choosers[0].is_multiple

    asyncio.run(choosers[0].set_files(["/tmp/a.txt"]))
    assert conn.sent[-1] == ("DOM.setFileInputFiles", {"files": ["/tmp/a.txt"], "backendNodeId": 77})


def test_console_and_exceptions_become_messages(tmp_path: Path) -> None:
    conn = DummyConnection()
    page = _page(tmp_path, conn)
    messages: list[Any] = []
    page.on("console", messages.append)
    page.on("pageerror", messages.append)

    conn.fire(
        "Runtime.consoleAPICalled",
        {
            "type": "warning",
            "args": [{"type": "string", "value": "low"}, {"type": "number", "value": 3}, {"type": "object", "description": "Object"}],
            "stackTrace": {"callFrames": [{"url": "https://a.test/app.js", "lineNumber": 12}]},
        },
    )
    conn.fire(
        "Runtime.exceptionThrown",
        {"exceptionDetails": {"text": "Uncaught", "exception": {"description": "TypeError: x is undefined\n    at f"}}},
    )

    assert str(messages[0]) == "[WARNING] low 3 Object @ https://a.test/app.js:12"
    assert messages[1].text == "TypeError: x is undefined"
    assert str(messages[1]) == "TypeError: x is undefined\n    at f"


def test_request_lifecycle(tmp_path: Path) -> None:
    conn = DummyConnection()
    page = _page(tmp_path, conn)
    seen: list[tuple[str, Any]] = []
    for event in ("request", "response", "requestfinished", "requestfailed"):
        page.on(event, lambda r, event=event: seen.append((event, r)))

    conn.fire("Network.requestWillBeSent", {"requestId": "1", "request": {"url": "https://a.test/x", "method": "POST"}, "type": "Fetch"})
    conn.fire("Network.responseReceived", {"requestId": "1", "response": {"status": 201}})
    conn.fire("Network.loadingFinished", {"requestId": "1"})
    conn.fire("Network.requestWillBeSent", {"requestId": "2", "request": {"url": "https://a.test/y"}})
    conn.fire("Network.loadingFailed", {"requestId": "2", "errorText": "net::ERR_FAILED"})

    assert [e for e, _ in seen] == ["request", "response", "requestfinished", "request", "requestfailed"]
    first = seen[0][1]
    assert (first.method, first.status, first.finished) == ("POST", 201, True)
    assert seen[-1][1].failure == "net::ERR_FAILED"


def test_download_is_moved_to_requested_path(tmp_path: Path) -> None:
    conn = DummyConnection()
    page = _page(tmp_path, conn)
    out = tmp_path / "out"
    out.mkdir()

    async def scenario() -> Path:
        downloads: list[Any] = []
        page.on("download", downloads.append)
        conn.fire("Browser.downloadWillBegin", {"guid": "g1", "url": "https://a.test/f", "suggestedFilename": "f.csv"})
        conn.fire("Page.downloadWillBegin", {"guid": "g1", "url": "https://a.test/f", "suggestedFilename": "f.csv"})
        assert len(downloads) == 1
        (out / "g1").write_text("a,b")
        asyncio.get_running_loop().call_soon(conn.fire, "Browser.downloadProgress", {"guid": "g1", "state": "completed"})
        return await downloads[0].save_as(out / "f.csv")

    target = asyncio.run(scenario())
    assert target.read_text() == "a,b"
    assert not (out / "g1").exists()


def test_canceled_download_raises(tmp_path: Path) -> None:
    conn = DummyConnection()
    page = _page(tmp_path, conn)

    async def scenario() -> None:
        downloads: list[Any] = []
        page.on("download", downloads.append)
        conn.fire("Browser.downloadWillBegin", {"guid": "g2", "suggestedFilename": "big.iso"})
        conn.fire("Browser.downloadProgress", {"guid": "g2", "state": "canceled"})
        await downloads[0].save_as(tmp_path / "big.iso")

    with pytest.raises(CdpError, match="canceled"):
        asyncio.run(scenario())


def test_goto_waits_for_dom_content_loaded(tmp_path: Path) -> None:
    conn = DummyConnection({"Page.navigate": {"frameId": "F1", "loaderId": "L1"}})
    conn.auto_events["Page.navigate"] = ["Page.domContentEventFired"]
    page = _page(tmp_path, conn)

    asyncio.run(page.goto("https://a.test/", timeout=1.0))
    assert conn.sent[-1] == ("Page.navigate", {"url": "https://a.test/"})


def test_goto_reports_navigation_error(tmp_path: Path) -> None:
    conn = DummyConnection({"Page.navigate": {"frameId": "F1", "errorText": "net::ERR_ABORTED"}})
    page = _page(tmp_path, conn)

    with pytest.raises(NavigationError, match="net::ERR_ABORTED"):
        asyncio.run(page.goto("https://a.test/file.zip", timeout=1.0))


def test_frame_navigation_tracks_main_frame_url(tmp_path: Path) -> None:
    conn = DummyConnection()
    page = _page(tmp_path, conn)
    conn.fire("Page.frameNavigated", {"frame": {"id": "F1", "url": "https://a.test/page"}})
    conn.fire("Page.frameNavigated", {"frame": {"id": "F2", "parentId": "F1", "url": "https://ads.test/"}})
    conn.fire("Page.navigatedWithinDocument", {"frameId": "F1", "url": "https://a.test/page#top"})
    assert page.url == "https://a.test/page#top"


def test_evaluate_raises_on_exception(tmp_path: Path) -> None:
    conn = DummyConnection(
        {"Runtime.evaluate": {"result": {}, "exceptionDetails": {"text": "Uncaught", "exception": {"description": "ReferenceError: nope"}}}}
    )
    page = _page(tmp_path, conn)
    with pytest.raises(CdpError, match="ReferenceError"):
        asyncio.run(page.evaluate("nope"))


def test_click_dispatches_mouse_events_at_box_center(tmp_path: Path) -> None:
    conn = DummyConnection({"DOM.getBoxModel": {"model": {"content": [10, 20, 30, 20, 30, 40, 10, 40]}}})
    page = _page(tmp_path, conn)

    asyncio.run(page.click_backend_node(5))

    mouse = [p for m, p in conn.sent if m == "Input.dispatchMouseEvent"]
    assert [p["type"] for p in mouse] == ["mouseMoved", "mousePressed", "mouseReleased"]
    assert all((p["x"], p["y"]) == (20, 30) for p in mouse)


def test_snapshot_for_ai_renders_tree_and_keeps_refs(tmp_path: Path) -> None:
    conn = DummyConnection(
        {
            "Accessibility.getFullAXTree": {
                "nodes": [
                    {"nodeId": "1", "role": {"value": "RootWebArea"}, "childIds": ["2"]},
                    {"nodeId": "2", "parentId": "1", "role": {"value": "link"}, "name": {"value": "Docs"}, "backendDOMNodeId": 8},
                ]
            }
        }
    )
    page = _page(tmp_path, conn)
    assert asyncio.run(page.snapshot_for_ai()) == '- link "Docs" [ref=e1]'
    assert page.refs == {"e1": 8}


def test_connection_close_emits_close_once(tmp_path: Path) -> None:
    conn = DummyConnection()
    page = _page(tmp_path, conn)
    closes: list[None] = []
    page.on("close", lambda: closes.append(None))

    asyncio.run(page.close())
    conn.fire("Inspector.detached", {"reason": "target_closed"})
    assert closes == [None]
    assert page.closed


def test_navigations_without_download_leave_no_waiters(tmp_path: Path) -> None:
    conn = DummyConnection(
        {
            "Page.navigate": {"frameId": "F1"},
            "Runtime.evaluate": {"result": {"type": "string", "value": "complete"}},
        }
    )
    page = _page(tmp_path, conn)
    tab = Tab(page, _config(tmp_path))

    async def scenario() -> None:
        for i in range(50):
            await tab.navigate(f"https://a.test/#{i}")

    asyncio.run(scenario())
    assert page._hub.waiters.get("download", []) == []
