from __future__ import annotations

import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from .snapshot.spanner import DEFAULT_SPAN_SIZE, normalize_span_size

DEFAULT_BINARY_CANDIDATES: list[str] = [
    # Prefer Chromium. Snap builds ignore --user-data-dir, so they come last.
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/local/bin/chromium",
    "/opt/chromium/chromium",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "C:\\Program Files\\Chromium\\Application\\chrome.exe",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/opt/google/chrome/chrome",
    "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
    "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
    "/snap/bin/chromium",
]

DEFAULT_ACTION_TIMEOUT = 5.0
DEFAULT_NAVIGATION_TIMEOUT = 60.0


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass
class BrowserConfig:
    binary_path: str
    profile_path: str
    cdp_port: int = 9222
    mode: str = "launch"
    headless: bool = True
    extra_flags: list[str] = field(default_factory=list)
    allow_hosts: list[str] = field(default_factory=list)
    span_size: int = DEFAULT_SPAN_SIZE
    action_timeout: float = DEFAULT_ACTION_TIMEOUT
    navigation_timeout: float = DEFAULT_NAVIGATION_TIMEOUT
    http_timeout: float = 10.0
    output_dir: str = field(default_factory=lambda: str(Path(tempfile.gettempdir()) / "mcp-span-browser-output"))

    @staticmethod
    def normalize_mode(raw: str | None) -> str:
        mode = (raw or "").strip().lower()
        if mode in {"attach", "connect", "external"}:
            return "attach"
        return "launch"

    @classmethod
    def detect_binary(cls) -> str:
        env_path = os.environ.get("MCP_BROWSER_BINARY")
        if env_path:
            return expand_path(env_path)
        for candidate in DEFAULT_BINARY_CANDIDATES:
            path = Path(candidate)
            if path.exists() and os.access(str(path), os.X_OK):
                return str(path)
        # Last resort: rely on PATH lookup
        return "chromium"

    @classmethod
    def from_env(cls) -> BrowserConfig:
        mode = cls.normalize_mode(os.environ.get("MCP_BROWSER_MODE"))
        profile = expand_path(os.environ.get("MCP_BROWSER_PROFILE", "~/.cache/mcp-span-browser/profile"))
        port = int(os.environ.get("MCP_BROWSER_PORT", "9222"))
        flags_raw = os.environ.get("MCP_BROWSER_FLAGS", "")
        extra_flags = [flag.strip() for flag in flags_raw.split(",") if flag.strip()]
        allow_raw = os.environ.get("MCP_ALLOW_HOSTS", "")
        allow_hosts = [host.strip().lower() for host in allow_raw.split(",") if host.strip() and host.strip() != "*"]
        span_size = normalize_span_size(int(os.environ.get("MCP_SNAPSHOT_SPAN_SIZE", str(DEFAULT_SPAN_SIZE))))
        output_dir = os.environ.get("MCP_OUTPUT_DIR")
        return cls(
            binary_path=cls.detect_binary(),
            profile_path=profile,
            cdp_port=port,
            mode=mode,
            headless=os.environ.get("MCP_HEADLESS", "1") != "0",
            extra_flags=extra_flags,
            allow_hosts=allow_hosts,
            span_size=span_size,
            action_timeout=_env_float("MCP_ACTION_TIMEOUT", DEFAULT_ACTION_TIMEOUT),
            navigation_timeout=_env_float("MCP_NAVIGATION_TIMEOUT", DEFAULT_NAVIGATION_TIMEOUT),
            http_timeout=_env_float("MCP_HTTP_TIMEOUT", 10.0),
            **({"output_dir": expand_path(output_dir)} if output_dir else {}),
        )

    def is_host_allowed(self, host: str) -> bool:
        host = (host or "").strip().lower().rstrip(".")
        if not self.allow_hosts:
            return True
        for raw_allowed in self.allow_hosts:
            allowed = (raw_allowed or "").strip().lower().lstrip(".").rstrip(".")
            if not allowed:
                continue
            if host == allowed or host.endswith("." + allowed):
                return True
        return False


def safe_filename(name: str) -> str:
    cleaned = re.sub(r"[\\/:*?\"<>|]+", "_", name or "").strip().strip(".")
    return cleaned or "download"


def output_file(config: BrowserConfig, name: str) -> Path:
    """Path for a saved artifact inside the output directory (created on demand)."""
    out_dir = Path(config.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir / safe_filename(name)
