#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

print(
    f"[mcp] binary={os.environ.get('MCP_BROWSER_BINARY', 'auto')} | "
    f"mode={os.environ.get('MCP_BROWSER_MODE', 'launch')} | "
    f"port={os.environ.get('MCP_BROWSER_PORT', '9222')} | "
    f"span_size={os.environ.get('MCP_SNAPSHOT_SPAN_SIZE', '2000')} | "
    f"allowlist={os.environ.get('MCP_ALLOW_HOSTS', '*')}",
    file=sys.stderr,
)

from mcp_servers.span_browser.main import main  # noqa: E402

if __name__ == "__main__":
    main()
