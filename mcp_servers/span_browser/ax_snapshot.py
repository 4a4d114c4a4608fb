"""
Render the CDP accessibility tree as indented YAML-like text.

Output lines look like::

    - heading "Example Domain" [level=1] [ref=e3]
    - paragraph:
      - text: This domain is for use in illustrative examples.
    - link "More information..." [ref=e5]

Refs are stable only within one rendering; ``AxSnapshot.refs`` maps them to
backend DOM node ids for input tools.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

MAX_DEPTH = 200
MAX_NAME_CHARS = 300

# Never rendered; their text is already carried by the parent StaticText.
_SKIP_ROLES = frozenset({"InlineTextBox"})
# Rendered through their children only, unless they carry a name.
_TRANSPARENT_ROLES = frozenset({"none", "generic", "presentation", "LineBreak", "Ignored"})
_TEXT_ROLES = frozenset({"StaticText", "text"})
_BOOL_STATES = ("checked", "disabled", "expanded", "pressed", "selected", "required")
_VALUE_STATES = ("level",)


@dataclass
class AxSnapshot:
    text: str
    refs: dict[str, int] = field(default_factory=dict)


def _ax_value(value: Any) -> Any:
    """CDP AXValue is usually a dict with {type,value}. Return the underlying value."""
    if isinstance(value, dict) and "value" in value:
        return value.get("value")
    return value


def _clean_name(raw: Any) -> str:
    name = " ".join(str(raw or "").split())
    if len(name) > MAX_NAME_CHARS:
        name = name[:MAX_NAME_CHARS].rstrip() + "…"
    return name


def _state_suffix(node: dict[str, Any]) -> str:
    props = node.get("properties")
    if not isinstance(props, list):
        return ""
    bits: list[str] = []
    for prop in props:
        if not isinstance(prop, dict):
            continue
        name = prop.get("name")
        value = _ax_value(prop.get("value"))
        if name in _BOOL_STATES and value in (True, "true", "mixed"):
            bits.append(f"[{name}=mixed]" if value == "mixed" else f"[{name}]")
        elif name in _VALUE_STATES and value not in (None, ""):
            bits.append(f"[{name}={value}]")
    return (" " + " ".join(bits)) if bits else ""


class _Renderer:
    def __init__(self, nodes: list[dict[str, Any]]) -> None:
        self.by_id: dict[str, dict[str, Any]] = {}
        for node in nodes:
            node_id = node.get("nodeId")
            if node_id is not None:
                self.by_id[str(node_id)] = node
        self.refs: dict[str, int] = {}

    def root(self, nodes: list[dict[str, Any]]) -> dict[str, Any] | None:
        for node in nodes:
            if not node.get("parentId"):
                return node
        return nodes[0] if nodes else None

    def children(self, node: dict[str, Any]) -> list[dict[str, Any]]:
        out = []
        for child_id in node.get("childIds") or []:
            child = self.by_id.get(str(child_id))
            if child is not None:
                out.append(child)
        return out

    def _ref_for(self, node: dict[str, Any]) -> str | None:
        backend_id = node.get("backendDOMNodeId")
        if not isinstance(backend_id, int) or backend_id <= 0:
            return None
        ref = f"e{len(self.refs) + 1}"
        self.refs[ref] = backend_id
        return ref

    def render_children(self, node: dict[str, Any], depth: int) -> list[str]:
        lines: list[str] = []
        for child in self.children(node):
            lines.extend(self.render(child, depth))
        return lines

    def render(self, node: dict[str, Any], depth: int) -> list[str]:
        if depth > MAX_DEPTH:
            return []
        role = str(_ax_value(node.get("role")) or "")
        if role in _SKIP_ROLES:
            return []
        name = _clean_name(_ax_value(node.get("name")))

        if node.get("ignored") is True or (role in _TRANSPARENT_ROLES and not name) or not role:
            return self.render_children(node, depth)

        indent = "  " * depth
        if role in _TEXT_ROLES:
            return [f"{indent}- text: {name}"] if name else []

        line = f"{indent}- {role}"
        if name:
            line += f' "{name}"'
        line += _state_suffix(node)
        ref = self._ref_for(node)
        if ref:
            line += f" [ref={ref}]"

        child_lines = self.render_children(node, depth + 1)
        if child_lines:
            return [line + ":", *child_lines]
        return [line]


def render_ax_snapshot(nodes: list[dict[str, Any]]) -> AxSnapshot:
    """Render ``Accessibility.getFullAXTree`` nodes (the root itself is not printed)."""
    nodes = [n for n in nodes if isinstance(n, dict)]
    renderer = _Renderer(nodes)
    root = renderer.root(nodes)
    if root is None:
        return AxSnapshot(text="")
    lines = renderer.render_children(root, 0)
    return AxSnapshot(text="\n".join(lines), refs=renderer.refs)
