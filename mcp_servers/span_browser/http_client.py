"""CDP HTTP discovery endpoints (/json/version, /json/list, /json/new)."""

from __future__ import annotations

import json
import urllib.parse
from typing import Any
from urllib.error import URLError
from urllib.request import Request, urlopen

from .config import BrowserConfig


class HttpClientError(Exception):
    pass


def _cdp_endpoint(config: BrowserConfig, path: str) -> str:
    return f"http://127.0.0.1:{config.cdp_port}{path}"


def cdp_get_json(config: BrowserConfig, path: str, *, method: str = "GET", timeout: float | None = None) -> Any:
    req = Request(_cdp_endpoint(config, path), headers={"User-Agent": "mcp-span-browser/1.0"}, method=method)
    try:
        with urlopen(req, timeout=timeout if timeout is not None else config.http_timeout) as resp:
            return json.loads(resp.read().decode(errors="replace"))
    except (TimeoutError, URLError, OSError) as exc:
        raise HttpClientError(f"CDP endpoint {path} not reachable on port {config.cdp_port}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise HttpClientError(f"CDP endpoint {path} returned invalid JSON: {exc}") from exc


def list_page_targets(config: BrowserConfig) -> list[dict[str, Any]]:
    payload = cdp_get_json(config, "/json/list")
    if not isinstance(payload, list):
        return []
    return [t for t in payload if isinstance(t, dict) and t.get("type") == "page" and t.get("webSocketDebuggerUrl")]


def new_page_target(config: BrowserConfig, url: str = "about:blank") -> dict[str, Any]:
    # Chrome >= 111 requires PUT for /json/new.
    payload = cdp_get_json(config, "/json/new?" + urllib.parse.quote(url, safe=":/?&=%"), method="PUT")
    if not isinstance(payload, dict) or not payload.get("webSocketDebuggerUrl"):
        raise HttpClientError("CDP /json/new did not return a debuggable page target")
    return payload
