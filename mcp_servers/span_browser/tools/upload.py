"""
File upload through an intercepted file chooser.

Provides:
- upload_files: Answer the oldest pending file chooser with local files
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..modal import FILE_CHOOSER
from ..tab import Tab
from .base import SmartToolError


def _validate_paths(paths: Any) -> list[str]:
    if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
        raise SmartToolError(
            tool="browser_file_upload",
            action="validate",
            reason="'paths' must be a list of strings",
            suggestion="Pass absolute paths, e.g. paths=[\"/tmp/report.pdf\"]",
        )
    validated: list[str] = []
    for path in paths:
        p = Path(path)
        if not p.is_absolute():
            raise SmartToolError(
                tool="browser_file_upload",
                action="validate",
                reason=f"Path is not absolute: {path}",
                suggestion="Provide absolute paths to existing files",
            )
        if not p.exists():
            raise SmartToolError(
                tool="browser_file_upload",
                action="validate",
                reason=f"File not found: {path}",
                suggestion="Provide absolute paths to existing files",
            )
        validated.append(str(p))
    return validated


async def upload_files(tab: Tab, paths: Any) -> dict[str, Any]:
    """Upload files into the oldest pending file chooser.

    An empty list cancels the chooser without selecting anything.
    """
    validated = _validate_paths(paths)
    state = tab.modal_states.first(FILE_CHOOSER)
    if state is None:
        raise SmartToolError(
            tool="browser_file_upload",
            action="upload",
            reason="No file chooser visible",
            suggestion="Click the upload control first so the page opens a file chooser",
        )

    chooser = state.handle
    if len(validated) > 1 and not chooser.is_multiple:
        raise SmartToolError(
            tool="browser_file_upload",
            action="upload",
            reason=f"File chooser accepts a single file, got {len(validated)}",
            suggestion="Pass exactly one path",
        )
    tab.modal_states.clear(state)
    modal = await tab.wait_for_completion(lambda: chooser.set_files(validated))
    return {"files": validated, "modalState": modal.description if modal is not None else None}
