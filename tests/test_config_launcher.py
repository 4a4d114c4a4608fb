"""Tests for configuration parsing, the launcher, CDP discovery and navigation policy."""

from __future__ import annotations

import json
from pathlib import Path
from urllib.error import URLError

import pytest

from mcp_servers.span_browser import http_client as http_client_module
from mcp_servers.span_browser.config import BrowserConfig, output_file, safe_filename
from mcp_servers.span_browser.http_client import HttpClientError, list_page_targets, new_page_target
from mcp_servers.span_browser.launcher import BrowserLauncher
from mcp_servers.span_browser.tools.base import SmartToolError, ensure_allowed_navigation, require_int

# ═══════════════════════════════════════════════════════════════════════════════
# CONFIG TESTS
# ═══════════════════════════════════════════════════════════════════════════════


def test_detect_binary_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MCP_BROWSER_BINARY", raising=False)
    monkeypatch.setenv("PATH", "")
    cfg = BrowserConfig.from_env()
    assert cfg.binary_path


def test_config_parses_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MCP_BROWSER_PROFILE", "/tmp/profile")
    monkeypatch.setenv("MCP_BROWSER_MODE", "Connect")
    monkeypatch.setenv("MCP_ALLOW_HOSTS", "example.com, github.com,*")
    monkeypatch.setenv("MCP_HEADLESS", "0")
    monkeypatch.setenv("MCP_BROWSER_FLAGS", "--lang=en, --mute-audio")
    monkeypatch.setenv("MCP_ACTION_TIMEOUT", "2.5")
    monkeypatch.setenv("MCP_NAVIGATION_TIMEOUT", "")
    monkeypatch.setenv("MCP_OUTPUT_DIR", "/tmp/out")
    cfg = BrowserConfig.from_env()
    assert cfg.profile_path == "/tmp/profile"
    assert cfg.mode == "attach"
    assert cfg.allow_hosts == ["example.com", "github.com"]
    assert cfg.headless is False
    assert cfg.extra_flags == ["--lang=en", "--mute-audio"]
    assert cfg.action_timeout == 2.5
    assert cfg.navigation_timeout == 60.0
    assert cfg.output_dir == "/tmp/out"


@pytest.mark.parametrize(("raw", "expected"), [("5000", 5000), ("20", 100), ("-1", -1), ("-7", 100)])
def test_config_normalizes_span_size(monkeypatch: pytest.MonkeyPatch, raw: str, expected: int) -> None:
    monkeypatch.setenv("MCP_SNAPSHOT_SPAN_SIZE", raw)
    assert BrowserConfig.from_env().span_size == expected


def test_host_allowlist_matches_subdomains_only() -> None:
    cfg = BrowserConfig(binary_path="chromium", profile_path="/tmp/p", allow_hosts=["github.com"])
    assert cfg.is_host_allowed("github.com")
    assert cfg.is_host_allowed("api.github.com.")
    assert not cfg.is_host_allowed("evilgithub.com")
    assert BrowserConfig(binary_path="chromium", profile_path="/tmp/p").is_host_allowed("anything.test")


def test_output_file_sanitizes_name(tmp_path: Path) -> None:
    cfg = BrowserConfig(binary_path="chromium", profile_path="/tmp/p", output_dir=str(tmp_path / "out"))
    target = output_file(cfg, "../re:port?.pdf")
    assert target.parent == tmp_path / "out"
    assert target.parent.is_dir()
    assert "/" not in target.name and ":" not in target.name
    assert safe_filename("...") == "download"


# ═══════════════════════════════════════════════════════════════════════════════
# LAUNCHER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


def test_launcher_builds_command(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MCP_BROWSER_BINARY", "/usr/bin/chrome")
    monkeypatch.setenv("MCP_BROWSER_PROFILE", "/tmp/profile")
    monkeypatch.setenv("MCP_BROWSER_PORT", "9999")
    monkeypatch.setenv("MCP_BROWSER_FLAGS", "--mute-audio")
    launcher = BrowserLauncher(BrowserConfig.from_env())
    cmd = launcher.build_launch_command(["--lang=en"])
    assert cmd[0] == "/usr/bin/chrome"
    assert "--remote-debugging-port=9999" in cmd
    assert "--user-data-dir=/tmp/profile" in cmd
    assert "--headless=new" in cmd
    assert cmd[-2:] == ["--mute-audio", "--lang=en"]


def test_launcher_headful_has_no_headless_flag() -> None:
    cfg = BrowserConfig(binary_path="chromium", profile_path="/tmp/p", headless=False)
    assert "--headless=new" not in BrowserLauncher(cfg).build_launch_command()


def test_launcher_skips_if_ready(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(BrowserLauncher, "cdp_ready", lambda self, timeout=0.4: True)
    result = BrowserLauncher(BrowserConfig(binary_path="chromium", profile_path="/tmp/p")).ensure_running()
    assert result.started is False
    assert "already" in result.message


def test_launcher_attach_mode_never_spawns(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(BrowserLauncher, "cdp_ready", lambda self, timeout=0.4: False)

    def fail_popen(*args: object, **kwargs: object) -> None:
        raise AssertionError("attach mode must not launch Chrome")

    monkeypatch.setattr("subprocess.Popen", fail_popen)
    cfg = BrowserConfig(binary_path="chromium", profile_path="/tmp/p", mode="attach", cdp_port=9333)
    result = BrowserLauncher(cfg).ensure_running()
    assert result.started is False
    assert "no Chrome listening on CDP port 9333" in result.message


def test_launcher_stop_without_process() -> None:
    assert BrowserLauncher(BrowserConfig(binary_path="chromium", profile_path="/tmp/p")).stop() is False


# ═══════════════════════════════════════════════════════════════════════════════
# CDP DISCOVERY
# ═══════════════════════════════════════════════════════════════════════════════


class DummyResp:
    def __init__(self, payload: object) -> None:
        self.payload = payload

    def read(self) -> bytes:
        return json.dumps(self.payload).encode()

    def __enter__(self) -> DummyResp:
        return self

    def __exit__(self, *exc: object) -> None:
        return None


def test_list_page_targets_filters_pages(monkeypatch: pytest.MonkeyPatch) -> None:
    payload = [
        {"type": "page", "id": "A", "webSocketDebuggerUrl": "ws://a"},
        {"type": "service_worker", "id": "B", "webSocketDebuggerUrl": "ws://b"},
        {"type": "page", "id": "C"},
    ]
    monkeypatch.setattr(http_client_module, "urlopen", lambda *args, **kwargs: DummyResp(payload))
    cfg = BrowserConfig(binary_path="chromium", profile_path="/tmp/p")
    assert [t["id"] for t in list_page_targets(cfg)] == ["A"]


def test_new_page_target_uses_put(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[str] = []

    def fake_urlopen(req, timeout=None):  # noqa: ANN001
        seen.append(req.get_method())
        return DummyResp({"id": "N", "webSocketDebuggerUrl": "ws://n"})

    monkeypatch.setattr(http_client_module, "urlopen", fake_urlopen)
    cfg = BrowserConfig(binary_path="chromium", profile_path="/tmp/p")
    assert new_page_target(cfg)["id"] == "N"
    assert seen == ["PUT"]


def test_discovery_failure_is_http_client_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(http_client_module, "urlopen", lambda *args, **kwargs: (_ for _ in ()).throw(URLError("down")))
    cfg = BrowserConfig(binary_path="chromium", profile_path="/tmp/p", cdp_port=9444)
    with pytest.raises(HttpClientError, match="not reachable on port 9444"):
        list_page_targets(cfg)


# ═══════════════════════════════════════════════════════════════════════════════
# NAVIGATION POLICY AND ARGUMENTS
# ═══════════════════════════════════════════════════════════════════════════════


def test_navigation_policy() -> None:
    open_cfg = BrowserConfig(binary_path="chromium", profile_path="/tmp/p")
    strict_cfg = BrowserConfig(binary_path="chromium", profile_path="/tmp/p", allow_hosts=["example.com"])

    for url in ("about:blank", "data:text/html,hi", "file:///tmp/a.html", "https://any.test/"):
        ensure_allowed_navigation(url, open_cfg)
    ensure_allowed_navigation("https://www.example.com/", strict_cfg)

    with pytest.raises(HttpClientError, match="not in allowlist"):
        ensure_allowed_navigation("https://other.test/", strict_cfg)
    with pytest.raises(HttpClientError, match="file://"):
        ensure_allowed_navigation("file:///etc/passwd", strict_cfg)
    with pytest.raises(HttpClientError, match="Unsupported scheme: javascript"):
        ensure_allowed_navigation("javascript:alert(1)", open_cfg)


def test_require_int_rejects_bools_and_fractions() -> None:
    assert require_int("t", "n", 3.0) == 3
    for bad in (True, 1.5, "3", None):
        with pytest.raises(SmartToolError):
            require_int("t", "n", bad)
    with pytest.raises(SmartToolError, match=">= 0"):
        require_int("t", "n", -1, minimum=0)
