"""Modal states (dialogs, file choosers) and the race that guards page actions.

A JavaScript dialog or an intercepted file chooser can appear while a page
action is suspended on CDP I/O. ``ModalStates.race`` returns as soon as either
the action finishes or a modal state is raised, whichever comes first. The
action itself is never cancelled; when the modal wins it keeps running in the
background and only its result is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger("mcp.span_browser.modal")

DIALOG = "dialog"
FILE_CHOOSER = "fileChooser"

# Tool that resolves each kind of modal state.
RESOLVING_TOOLS: dict[str, str] = {
    DIALOG: "browser_handle_dialog",
    FILE_CHOOSER: "browser_file_upload",
}


@dataclass(eq=False)
class ModalState:
    """A pending page interruption.

    Identity-compared: two dialogs with the same text are still two states.
    """

    kind: str
    description: str
    handle: Any = None

    @property
    def resolving_tool(self) -> str | None:
        return RESOLVING_TOOLS.get(self.kind)


class ModalStates:
    """Oldest-first queue of modal states with a "next raised" signal."""

    def __init__(self) -> None:
        self._states: list[ModalState] = []
        self._waiters: list[asyncio.Future[ModalState]] = []

    def __len__(self) -> int:
        return len(self._states)

    def __bool__(self) -> bool:
        return bool(self._states)

    def items(self) -> list[ModalState]:
        return list(self._states)

    def first(self, kind: str | None = None) -> ModalState | None:
        for state in self._states:
            if kind is None or state.kind == kind:
                return state
        return None

    def push(self, state: ModalState) -> None:
        self._states.append(state)
        logger.info("modal state raised kind=%s description=%s", state.kind, state.description)
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(state)

    def clear(self, state: ModalState) -> None:
        self._states = [s for s in self._states if s is not state]

    def clear_all(self) -> None:
        self._states = []

    def next_raised(self) -> asyncio.Future[ModalState]:
        """Future resolved by the next ``push``."""
        waiter: asyncio.Future[ModalState] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return waiter

    def _detach(self, waiter: asyncio.Future[ModalState]) -> None:
        if waiter in self._waiters:
            self._waiters.remove(waiter)
        if not waiter.done():
            waiter.cancel()

    async def race(self, action: Callable[[], Awaitable[Any]]) -> ModalState | None:
        """Run ``action`` unless a modal state is (or becomes) present.

        Returns None when the action finished first, otherwise the modal state.
        """
        if self._states:
            return self._states[0]

        raised = self.next_raised()
        task = asyncio.ensure_future(action())
        try:
            await asyncio.wait({task, raised}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            # The caller stopped waiting; the action still runs to completion.
            self._detach(raised)
            task.add_done_callback(_log_background_failure)
            raise

        if task.done():
            self._detach(raised)
            task.result()
            return None

        task.add_done_callback(_log_background_failure)
        return raised.result()


def _log_background_failure(task: asyncio.Future[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("background page action failed after modal state: %s", exc)


__all__ = ["DIALOG", "FILE_CHOOSER", "RESOLVING_TOOLS", "ModalState", "ModalStates"]
