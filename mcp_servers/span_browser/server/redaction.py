"""Redaction utilities for logging.

Removes obvious secrets from tool arguments and traced frames: credential-like
URL parameters, prompt texts typed into dialogs, and sensitive keys.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_SENSITIVE_KEYS = {
    "secret",
    "password",
    "pass",
    "pwd",
    "token",
    "access_token",
    "id_token",
    "auth",
    "authorization",
    "cookie",
    "api-key",
    "api_key",
    "apikey",
    "key",
    "sig",
    "signature",
}

# tool -> argument keys whose values never reach the log
_TOOL_SENSITIVE_ARGS: dict[str, set[str]] = {
    "browser_handle_dialog": {"prompt_text"},
}


def _redacted_summary(value: Any) -> str:
    if value is None:
        return "<redacted>"
    if isinstance(value, str):
        return f"<redacted str len={len(value)}>"
    if isinstance(value, (list, tuple, set)):
        return f"<redacted list len={len(value)}>"
    if isinstance(value, dict):
        return f"<redacted dict keys={len(value)}>"
    return "<redacted>"


def _redact_pairs(raw: str) -> tuple[str, bool]:
    pairs = parse_qsl(raw, keep_blank_values=True)
    out_pairs: list[tuple[str, str]] = []
    redacted_any = False
    for k, v in pairs:
        if k.strip().lower() in _SENSITIVE_KEYS and v:
            out_pairs.append((k, "<redacted>"))
            redacted_any = True
        else:
            out_pairs.append((k, v))
    return (urlencode(out_pairs, doseq=True), True) if redacted_any else (raw, False)


def redact_url(url: str) -> str:
    """Redact credential-like query/fragment parameters and userinfo.

    Returns the original URL unchanged when no redaction is needed.
    """
    if not isinstance(url, str) or not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url

    netloc = parts.netloc
    changed = False
    if "@" in netloc:
        netloc = netloc.split("@", 1)[1]
        changed = True

    query, query_changed = _redact_pairs(parts.query) if parts.query else ("", False)
    fragment = parts.fragment
    fragment_changed = False
    if fragment and "=" in fragment:
        fragment, fragment_changed = _redact_pairs(fragment)

    if not (changed or query_changed or fragment_changed):
        return url
    return urlunsplit((parts.scheme, netloc, parts.path, query, fragment))


def _redact_any(value: Any, *, tool: str, key: str | None) -> Any:
    if isinstance(value, dict):
        return {k: _redact_any(v, tool=tool, key=str(k)) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact_any(v, tool=tool, key=key) for v in value]

    lk = (key or "").lower()
    if isinstance(value, str) and lk == "url":
        return redact_url(value)
    if lk in _TOOL_SENSITIVE_ARGS.get(tool, set()) or lk in _SENSITIVE_KEYS:
        return _redacted_summary(value)
    return value


def redact_tool_arguments(tool: str, args: dict[str, Any]) -> dict[str, Any]:
    """Redact tool arguments for safe logging."""
    return _redact_any(args, tool=tool, key=None)


def redact_jsonrpc_for_log(payload: dict[str, Any]) -> dict[str, Any]:
    """Redact a received JSON-RPC frame (tool call arguments only)."""
    msg = dict(payload) if isinstance(payload, dict) else {}
    if msg.get("method") in {"tools/call", "call_tool"}:
        params = msg.get("params")
        if isinstance(params, dict):
            name = params.get("name")
            args = params.get("arguments")
            if isinstance(name, str) and isinstance(args, dict):
                msg["params"] = {**params, "arguments": redact_tool_arguments(name, args)}
    return msg
