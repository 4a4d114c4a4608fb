"""
Tool handlers organized by domain.

Each handler module provides coroutines that handle specific tool calls.
All handlers follow the signature: (context, arguments) -> ToolResult
"""

from .modal import MODAL_HANDLERS
from .page import PAGE_HANDLERS
from .snapshot import SNAPSHOT_HANDLERS

# Aggregate all handlers
ALL_HANDLERS: dict[str, tuple] = {
    **PAGE_HANDLERS,
    **MODAL_HANDLERS,
    **SNAPSHOT_HANDLERS,
}

__all__ = [
    "ALL_HANDLERS",
    "MODAL_HANDLERS",
    "PAGE_HANDLERS",
    "SNAPSHOT_HANDLERS",
]
