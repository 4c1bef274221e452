"""
Pytest fixtures for HubSpot MCP Bridge tests.
"""

import copy
import sys
from pathlib import Path
from typing import Callable

import pytest

# Add project root to path for package imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

FAKE_SERVER = Path(__file__).parent / "support" / "fake_mcp_server.py"

# Fast timeouts so lifecycle tests finish in well under a second each
FAST_TIMEOUTS = {
    "handshake_delay": 0.05,
    "ready_poll_interval": 0.05,
    "ready_poll_attempts": 60,
    "terminate_grace": 2,
    "request": 3,
    "cache_ttl": 300,
    "startup_delay": 0,
    "shutdown_grace": 5,
    "heartbeat_interval": 0,
    "keep_alive": 5,
    "self_check_delay": 0,
    "http_self_check": 1,
}


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep host configuration and tokens out of every test."""
    monkeypatch.setenv("BRIDGE_CONFIG_FILE", str(tmp_path / "missing-config.yaml"))
    for name in (
        "PORT",
        "HOST",
        "BRIDGE_MCP_COMMAND",
        "BRIDGE_REQUEST_TIMEOUT",
        "BRIDGE_CACHE_TTL",
        "PRIVATE_APP_ACCESS_TOKEN",
        "HUBSPOT_ACCESS_TOKEN",
        "FAKE_MCP_MODE",
        "FAKE_MCP_COUNTER_FILE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_command() -> list[str]:
    """Command line that runs the fake MCP server."""
    return [sys.executable, str(FAKE_SERVER)]


@pytest.fixture
def counter_file(tmp_path, monkeypatch) -> Path:
    """File the fake MCP server appends to on every tools/list."""
    path = tmp_path / "tools_list.count"
    monkeypatch.setenv("FAKE_MCP_COUNTER_FILE", str(path))
    return path


@pytest.fixture
def bridge_config(fake_command) -> Callable[..., dict]:
    """Factory for a bridge config pointing at the fake MCP server."""

    def _make(**overrides) -> dict:
        timeouts = copy.deepcopy(FAST_TIMEOUTS)
        timeouts.update(overrides.pop("timeouts", {}))
        config = {
            "host": "127.0.0.1",
            "port": 3000,
            "mcp_command": fake_command,
            "cache_enabled": True,
            "auto_start": False,
            "self_check": False,
            "timeouts": timeouts,
            "access_token": None,
            "platform": {"environment": "test", "public_domain": None, "static_url": None},
        }
        config.update(overrides)
        return config

    return _make
