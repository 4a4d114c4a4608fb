"""
Tool registry with dispatch table for MCP server.

Handlers are registered as ``name -> (handler, requires_browser)``. Tools that
require a browser get the current tab opened and are gated on modal states:
while a dialog or file chooser is pending only the tool resolving it may run.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from ..modal import RESOLVING_TOOLS
from .types import ToolResult, ToolSpec

if TYPE_CHECKING:
    from ..context import BrowserContext

logger = logging.getLogger("mcp.span_browser.registry")

HandlerFunc = Callable[["BrowserContext", dict[str, Any]], Awaitable[ToolResult]]

# tool name -> modal kind it resolves
CLEARS_MODAL_STATE: dict[str, str] = {tool: kind for kind, tool in RESOLVING_TOOLS.items()}


class ToolRegistry:
    """Registry for tool handlers with browser lifecycle and modal gating."""

    def __init__(self) -> None:
        self._specs: dict[str, ToolSpec] = {}

    def register(self, name: str, handler: HandlerFunc, requires_browser: bool = True) -> None:
        """Register a tool handler."""
        self._specs[name] = ToolSpec(
            name=name,
            handler=handler,
            requires_browser=requires_browser,
            clears_modal_state=CLEARS_MODAL_STATE.get(name),
        )

    def register_many(self, handlers: dict[str, tuple[HandlerFunc, bool]]) -> None:
        """Register multiple handlers at once."""
        for name, (handler, requires_browser) in handlers.items():
            self.register(name, handler, requires_browser)

    def get(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    def has(self, name: str) -> bool:
        return name in self._specs

    def names(self) -> list[str]:
        return list(self._specs)

    async def dispatch(self, name: str, context: BrowserContext, arguments: dict[str, Any]) -> ToolResult:
        """
        Dispatch tool call to appropriate handler.

        Raises:
            KeyError: If tool not found
        """
        spec = self._specs.get(name)
        if spec is None:
            raise KeyError(f"Unknown tool: {name}")

        if spec.requires_browser:
            tab = await context.ensure_tab()
            states = tab.modal_states
            if spec.clears_modal_state is None and states:
                logger.info("tool=%s blocked by modal state", name)
                return ToolResult.error(
                    "\n".join([f"Tool {name} does not handle the modal state.", *tab.modal_states_markdown()]),
                    tool=name,
                )
            if spec.clears_modal_state is not None and states.first(spec.clears_modal_state) is None:
                return ToolResult.error(
                    "\n".join(
                        [
                            f"The tool {name} can only be used when there is related modal state present.",
                            *tab.modal_states_markdown(),
                        ]
                    ),
                    tool=name,
                )

        return await spec.handler(context, arguments)


def create_default_registry() -> ToolRegistry:
    """Create registry with all handlers."""
    from .handlers import ALL_HANDLERS

    registry = ToolRegistry()
    registry.register_many(ALL_HANDLERS)
    return registry
