"""Page session: everything the tools know about the current page.

A ``Tab`` owns the snapshot store (spans + cursor), the modal-state queue,
console messages, the request map and downloads. Artifacts are reset on every
navigation and when the page closes; modal states survive until a tool
resolves them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .config import BrowserConfig, output_file
from .modal import DIALOG, FILE_CHOOSER, ModalState, ModalStates
from .page import ConsoleMessage, Dialog, Download, FileChooser, NavigationError, Request
from .snapshot import LineLocation, SearchResult, SnapshotStore, SpanView

logger = logging.getLogger("mcp.span_browser.tab")

LOAD_STATE_CAP = 5.0
DOWNLOAD_GRACE = 3.0
DOWNLOAD_LISTENER_DELAY = 0.5
SETTLE_DELAY = 0.5
SETTLE_TIMEOUT = 5.0
CONSOLE_TRIM = 100


class RefNotFoundError(LookupError):
    """An element ref is not present in the current page snapshot."""


@dataclass
class DownloadEntry:
    download: Download
    output_file: Path
    finished: bool = False


def _trim(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


class Tab:
    def __init__(
        self,
        page: Any,
        config: BrowserConfig,
        *,
        span_size: int | None = None,
        on_close: Callable[[Tab], None] | None = None,
    ) -> None:
        self.page = page
        self.config = config
        self.snapshot = SnapshotStore(config.span_size if span_size is None else span_size)
        self.modal_states = ModalStates()
        self._on_page_close = on_close
        self._console_messages: list[ConsoleMessage] = []
        self._recent_console_messages: list[ConsoleMessage] = []
        self._requests: dict[str, Request] = {}
        self._downloads: list[DownloadEntry] = []
        self._background: set[asyncio.Task[Any]] = set()

        page.on("console", self._handle_console_message)
        page.on("pageerror", self._handle_console_message)
        page.on("request", self._handle_request)
        page.on("close", self._on_close)
        page.on("filechooser", self._file_chooser_shown)
        page.on("dialog", self._dialog_shown)
        page.on("download", self._download_started)

    # ─────────────────────────────────────────────────────────────────────────
    # Page events
    # ─────────────────────────────────────────────────────────────────────────

    def _handle_console_message(self, message: ConsoleMessage) -> None:
        self._console_messages.append(message)
        self._recent_console_messages.append(message)

    def _handle_request(self, request: Request) -> None:
        self._requests[request.request_id] = request

    def _dialog_shown(self, dialog: Dialog) -> None:
        self.modal_states.push(
            ModalState(DIALOG, f'"{dialog.type}" dialog with message "{dialog.message}"', dialog)
        )

    def _file_chooser_shown(self, chooser: FileChooser) -> None:
        self.modal_states.push(ModalState(FILE_CHOOSER, "File chooser", chooser))

    def _download_started(self, download: Download) -> None:
        entry = DownloadEntry(download, output_file(self.config, download.suggested_filename))
        self._downloads.append(entry)
        task = asyncio.ensure_future(self._save_download(entry))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _save_download(self, entry: DownloadEntry) -> None:
        try:
            await entry.download.save_as(entry.output_file)
        except Exception as exc:  # noqa: BLE001
            logger.warning("download %s failed: %s", entry.download.suggested_filename, exc)
            return
        entry.finished = True
        logger.info("download saved to %s", entry.output_file)

    def _on_close(self) -> None:
        self._clear_collected_artifacts()
        # Nothing can answer a dialog or chooser of a closed page.
        self.modal_states.clear_all()
        if self._on_page_close is not None:
            self._on_page_close(self)

    def _clear_collected_artifacts(self) -> None:
        self._console_messages.clear()
        self._recent_console_messages.clear()
        self._requests.clear()
        self.snapshot.reset()

    # ─────────────────────────────────────────────────────────────────────────
    # Modal states
    # ─────────────────────────────────────────────────────────────────────────

    def modal_states_markdown(self) -> list[str]:
        result = ["### Modal state"]
        if not self.modal_states:
            result.append("- There is no modal state present")
        for state in self.modal_states.items():
            result.append(f'- [{state.description}]: can be handled by the "{state.resolving_tool}" tool')
        return result

    def javascript_blocked(self) -> bool:
        return self.modal_states.first(DIALOG) is not None

    async def race(self, action: Callable[[], Awaitable[Any]]) -> ModalState | None:
        return await self.modal_states.race(action)

    async def wait_for_completion(self, callback: Callable[[], Awaitable[Any]]) -> ModalState | None:
        """Run a page action and let the requests it started settle, unless a modal interrupts."""
        return await self.race(lambda: self._settle(callback))

    async def _settle(self, callback: Callable[[], Awaitable[Any]]) -> None:
        started: list[Request] = []
        track = started.append
        self.page.on("request", track)
        try:
            await callback()
            await asyncio.sleep(SETTLE_DELAY)
        finally:
            self.page.off("request", track)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + SETTLE_TIMEOUT
        while any(not r.finished for r in started):
            if loop.time() >= deadline:
                logger.debug("%d requests still in flight after settle", sum(not r.finished for r in started))
                break
            await asyncio.sleep(0.1)

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────────

    async def title(self) -> str:
        return await self.page.title()

    async def navigate(self, url: str) -> None:
        self._clear_collected_artifacts()

        download_event = self.page.wait_for_event("download")
        try:
            try:
                await self.page.goto(url, timeout=self.config.navigation_timeout)
            except NavigationError as exc:
                if "net::ERR_ABORTED" not in str(exc):
                    raise
                # Chromium reports the download only after the navigation was aborted.
                try:
                    await asyncio.wait_for(asyncio.shield(download_event), timeout=DOWNLOAD_GRACE)
                except asyncio.TimeoutError:
                    raise exc from None
                await asyncio.sleep(DOWNLOAD_LISTENER_DELAY)
                return
        finally:
            self.page.discard_waiter("download", download_event)

        await self.page.wait_for_load(timeout=LOAD_STATE_CAP)

    async def wait_for_timeout(self, seconds: float) -> None:
        if self.javascript_blocked():
            await asyncio.sleep(seconds)
            return
        await self.page.evaluate(
            f"new Promise(f => setTimeout(f, {int(seconds * 1000)}))",
            timeout=seconds + self.config.action_timeout,
        )

    async def ref_backend_node(self, element: str, ref: str) -> int:
        """Backend node id for ``ref`` as rendered in a fresh page snapshot."""
        snapshot = await self.page.snapshot_for_ai()
        backend_id = self.page.refs.get(ref)
        if f"[ref={ref}]" not in snapshot or backend_id is None:
            raise RefNotFoundError(f"Ref {ref} not found in the current page snapshot. Try capturing new snapshot.")
        logger.debug("resolved %s (%s) to backend node %s", ref, element, backend_id)
        return backend_id

    # ─────────────────────────────────────────────────────────────────────────
    # Collected artifacts
    # ─────────────────────────────────────────────────────────────────────────

    def console_messages(self) -> list[ConsoleMessage]:
        return list(self._console_messages)

    def requests(self) -> dict[str, Request]:
        return dict(self._requests)

    def downloads(self) -> list[DownloadEntry]:
        return list(self._downloads)

    def _take_recent_console_markdown(self) -> list[str]:
        if not self._recent_console_messages:
            return []
        result = [f"- {_trim(str(message), CONSOLE_TRIM)}" for message in self._recent_console_messages]
        self._recent_console_messages.clear()
        return ["### New console messages", *result, ""]

    def _list_downloads_markdown(self) -> list[str]:
        if not self._downloads:
            return []
        result = ["### Downloads"]
        for entry in self._downloads:
            name = entry.download.suggested_filename
            if entry.finished:
                result.append(f"- Downloaded file {name} to {entry.output_file}")
            else:
                result.append(f"- Downloading file {name} ...")
        result.append("")
        return result

    # ─────────────────────────────────────────────────────────────────────────
    # Snapshot
    # ─────────────────────────────────────────────────────────────────────────

    async def capture_snapshot(self) -> str:
        if self.modal_states:
            return "\n".join(self.modal_states_markdown())

        result = [*self._take_recent_console_markdown(), *self._list_downloads_markdown()]

        async def capture() -> None:
            self.snapshot.update(await self.page.snapshot_for_ai())
            title = await self.page.title()
            store = self.snapshot
            if store.whole_snapshot:
                header = "- Page Snapshot:"
            else:
                header = f"- Page Snapshot (Span {store.current_span_index + 1} of {store.total_spans}):"
            result.extend(
                [
                    "### Page state",
                    f"- Page URL: {self.page.url}",
                    f"- Page Title: {title}",
                    header,
                    "```yaml",
                    store.current_span,
                    "```",
                ]
            )
            if not store.whole_snapshot:
                result.extend(
                    [
                        "",
                        "*Use snapshot navigation tools to view other spans. "
                        f"Current span size: {store.span_size} characters*",
                    ]
                )

        interrupted = await self.race(capture)
        if interrupted is not None:
            return "\n".join([*result, *self.modal_states_markdown()])
        return "\n".join(result)

    def navigate_to_span(self, index: int) -> SpanView:
        return self.snapshot.navigate_to_span(index)

    def navigate_to_first_span(self) -> SpanView:
        return self.snapshot.navigate_to_first_span()

    def navigate_to_last_span(self) -> SpanView:
        return self.snapshot.navigate_to_last_span()

    def navigate_to_next_span(self) -> SpanView:
        return self.snapshot.navigate_to_next_span()

    def navigate_to_prev_span(self) -> SpanView:
        return self.snapshot.navigate_to_prev_span()

    def search_in_snapshot(self, pattern: str, flags: str | None = None) -> SearchResult:
        return self.snapshot.search(pattern, flags)

    def navigate_to_line(self, global_line: int, context_lines: int | None = None) -> LineLocation:
        return self.snapshot.locate(global_line, context_lines)

    def set_snapshot_span_size(self, size: int) -> int:
        return self.snapshot.set_span_size(size)

    @property
    def snapshot_span_size(self) -> int:
        return self.snapshot.span_size

    @property
    def current_span_index(self) -> int:
        return self.snapshot.current_span_index

    @property
    def total_spans(self) -> int:
        return self.snapshot.total_spans
