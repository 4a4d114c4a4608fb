"""
MCP server for span-based browser snapshots via Chrome DevTools Protocol.

This module provides the main entry point and protocol handling.
Tool dispatch is handled via registry pattern in server/registry.py.

The server runs on one asyncio loop. Stdin is read in a worker thread so the
CDP reader, downloads and page actions left running after a modal interruption
keep making progress between tool calls.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from typing import Any

from .config import BrowserConfig
from .context import BrowserContext
from .http_client import HttpClientError
from .launcher import BrowserLauncher
from .server.contract import (
    DEFAULT_PROTOCOL_VERSION,
    LATEST_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    initialize_result,
    select_protocol,
    tools_list,
)
from .server.redaction import redact_jsonrpc_for_log, redact_tool_arguments
from .server.registry import create_default_registry
from .server.types import ToolResult
from .tools.base import SmartToolError

logger = logging.getLogger("mcp.span_browser")

__all__ = [
    "SUPPORTED_PROTOCOL_VERSIONS",
    "LATEST_PROTOCOL_VERSION",
    "DEFAULT_PROTOCOL_VERSION",
    "McpServer",
    "main",
]

_MALFORMED = object()


def _write_message(payload: dict[str, Any]) -> None:
    """Write JSON-RPC message to stdout."""
    data = json.dumps(payload, ensure_ascii=False)
    sys.stdout.buffer.write((data + "\n").encode())
    sys.stdout.buffer.flush()


def _read_line() -> bytes | None:
    line = sys.stdin.buffer.readline()
    return line if line else None


def _parse_message(line: bytes) -> Any:
    """Decode one frame. Blank lines give None, undecodable ones ``_MALFORMED``."""
    line = line.strip()
    if not line:
        return None
    try:
        msg = json.loads(line.decode())
    except (UnicodeDecodeError, ValueError):
        logger.warning("malformed frame: %r", line[:200])
        return _MALFORMED
    if not isinstance(msg, dict):
        return _MALFORMED
    if os.environ.get("MCP_TRACE"):
        logger.info("recv %s", redact_jsonrpc_for_log(msg))
    return msg


class McpServer:
    """MCP Server with registry-based tool dispatch."""

    def __init__(self, config: BrowserConfig | None = None, context: BrowserContext | None = None) -> None:
        self.config = config or BrowserConfig.from_env()
        self.launcher = BrowserLauncher(self.config)
        self.context = context or BrowserContext(self.config, self.launcher)
        self.registry = create_default_registry()

    def handle_initialize(self, request_id: Any, params: dict[str, Any] | None = None) -> None:
        """Handle initialize request."""
        requested = (params or {}).get("protocolVersion") if isinstance(params, dict) else None
        protocol = select_protocol(requested)
        _write_message(
            {
                "jsonrpc": "2.0",
                "id": request_id,
                "result": initialize_result(protocol),
            }
        )

    def handle_list_tools(self, request_id: Any) -> None:
        """Handle tools/list request."""
        _write_message(
            {
                "jsonrpc": "2.0",
                "id": request_id,
                "result": {"tools": tools_list()},
            }
        )

    def _log_call(self, name: str, arguments: dict[str, Any]) -> None:
        """Log tool call with sanitized arguments."""
        logger.info("tool=%s args=%s", name, redact_tool_arguments(name, arguments))

    async def handle_call_tool(self, request_id: Any, name: str, arguments: dict[str, Any]) -> None:
        """Handle tool call via registry dispatch. Every failure becomes an ``isError`` result."""
        self._log_call(name, arguments)

        try:
            if not name:
                result = ToolResult.error("Missing tool name")
            elif not self.registry.has(name):
                result = ToolResult.error(f"Unknown tool: {name}", tool=name)
            else:
                result = await self.registry.dispatch(name, self.context, arguments)
        except SmartToolError as e:
            logger.info("tool_error tool=%s action=%s reason=%s", e.tool, e.action, e.reason)
            result = ToolResult.error(e.reason, tool=e.tool, suggestion=e.suggestion, details=e.details)
        except HttpClientError as e:
            logger.info("http_error %s", str(e))
            result = ToolResult.error(str(e), tool=name)
        except Exception as exc:
            logger.exception("tool_call_failed")
            result = ToolResult.error(str(exc) or type(exc).__name__, tool=name)

        _write_message(
            {
                "jsonrpc": "2.0",
                "id": request_id,
                "result": {"content": result.to_content_list(), "isError": result.is_error},
            }
        )

    async def dispatch(self, message: dict[str, Any]) -> None:
        """Dispatch incoming JSON-RPC message to appropriate handler."""
        if not message:
            return

        method = message.get("method")
        request_id = message.get("id")
        params = message.get("params") or {}

        if method == "initialize":
            self.handle_initialize(request_id, params)
        elif method == "notifications/initialized" or (isinstance(method, str) and method.startswith("notifications/")):
            return
        elif method in ("tools/list", "list_tools"):
            self.handle_list_tools(request_id)
        elif method in ("tools/call", "call_tool"):
            name = params.get("name")
            arguments = params.get("arguments") or params.get("args") or {}
            await self.handle_call_tool(request_id, name or "", arguments if isinstance(arguments, dict) else {})
        elif method == "ping":
            _write_message({"jsonrpc": "2.0", "id": request_id, "result": {}})
        else:
            _write_message(
                {
                    "jsonrpc": "2.0",
                    "id": request_id,
                    "error": {"code": -32601, "message": f"Method {method} not found"},
                }
            )

    async def serve(self) -> None:
        """Read frames from stdin until EOF."""
        try:
            while True:
                line = await asyncio.to_thread(_read_line)
                if line is None:
                    break
                message = _parse_message(line)
                if message is _MALFORMED:
                    _write_message({"jsonrpc": "2.0", "id": None, "error": {"code": -32700, "message": "Parse error"}})
                    continue
                if message is not None:
                    await self.dispatch(message)
        finally:
            await self.context.close()


def main() -> None:
    """Main entry point for MCP server."""
    logging.basicConfig(
        level=logging.DEBUG if os.environ.get("MCP_DEBUG") else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    server = McpServer()
    asyncio.run(server.serve())


if __name__ == "__main__":
    main()
