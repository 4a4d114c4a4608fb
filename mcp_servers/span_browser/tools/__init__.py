"""
Page tools organized by domain.

Each module provides focused functionality:
- base: Common utilities, errors, URL validation
- navigation: Page navigation
- scroll: Viewport scrolling
- input: Clicking snapshot refs
- dialog: JavaScript dialog handling
- upload: File chooser handling
- wait: Timed waits
"""

from .base import SmartToolError, ensure_allowed_navigation
from .dialog import handle_dialog
from .input import click_ref
from .navigation import navigate_to
from .scroll import scroll_down, scroll_to_bottom, scroll_to_top, scroll_up
from .upload import upload_files
from .wait import MAX_WAIT_SECONDS, wait_for

__all__ = [
    "MAX_WAIT_SECONDS",
    "SmartToolError",
    "click_ref",
    "ensure_allowed_navigation",
    "handle_dialog",
    "navigate_to",
    "scroll_down",
    "scroll_to_bottom",
    "scroll_to_top",
    "scroll_up",
    "upload_files",
    "wait_for",
]
