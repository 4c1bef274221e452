"""
Bridge Runtime Configuration

Runtime defaults and configuration merging logic.
Combines defaults, YAML config, and environment variables.
"""

import copy
import os
import shlex
from typing import Mapping, Optional

from hubspot_bridge.configs.constants import DEFAULT_MCP_COMMAND, TIMEOUTS, TOKEN_ENV_VARS
from hubspot_bridge.configs.logging import get_logger
from hubspot_bridge.configs.yaml_config import load_yaml_config
from hubspot_bridge.exceptions import ConfigurationError

logger = get_logger("config")

# --- Default Runtime Configuration ---

DEFAULT_CONFIG = {
    "host": "0.0.0.0",
    "port": 3000,
    "mcp_command": DEFAULT_MCP_COMMAND,
    "cache_enabled": True,
    "auto_start": True,  # Spawn the MCP server shortly after the port binds
    "self_check": True,  # GET our own /health once after startup
    "timeouts": TIMEOUTS,
}

# Environment variable -> timeout key
_TIMEOUT_ENV_VARS = {
    "BRIDGE_REQUEST_TIMEOUT": "request",
    "BRIDGE_CACHE_TTL": "cache_ttl",
    "BRIDGE_HANDSHAKE_DELAY": "handshake_delay",
    "BRIDGE_STARTUP_DELAY": "startup_delay",
    "BRIDGE_SHUTDOWN_GRACE": "shutdown_grace",
}


def get_access_token(env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """
    Get the HubSpot access token.

    Priority:
    1. PRIVATE_APP_ACCESS_TOKEN
    2. HUBSPOT_ACCESS_TOKEN

    Returns:
        Token string, or None when neither is set
    """
    env = os.environ if env is None else env
    for name in TOKEN_ENV_VARS:
        if env.get(name):
            return env[name]
    return None


def _parse_command(value) -> list[str]:
    if isinstance(value, str):
        return shlex.split(value)
    return [str(part) for part in value]


def _parse_number(name: str, raw, cast=float):
    try:
        return cast(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid value for {name}: {raw!r}")
        return None


def get_full_config(env: Optional[Mapping[str, str]] = None) -> dict:
    """
    Get full configuration merged from defaults, YAML, and environment.

    Priority (highest wins):
    1. Environment variables
    2. YAML config file
    3. DEFAULT_CONFIG

    Args:
        env: Environment mapping (defaults to os.environ)

    Returns:
        Merged configuration dictionary

    Raises:
        ConfigurationError: The resolved MCP server command is empty
    """
    env = os.environ if env is None else env

    # Start with defaults
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["mcp_command"] = list(config["mcp_command"])

    # Merge YAML config
    yaml_config = load_yaml_config()

    runtime = yaml_config.get("runtime") or {}
    for key, value in runtime.items():
        if key == "mcp_command":
            config["mcp_command"] = _parse_command(value)
        elif key == "port":
            port = _parse_number("runtime.port", value, int)
            if port:
                config["port"] = port
        elif key in config and key != "timeouts":
            config[key] = value

    for key, value in (yaml_config.get("timeouts") or {}).items():
        if key in config["timeouts"]:
            number = _parse_number(f"timeouts.{key}", value)
            if number is not None:
                config["timeouts"][key] = number

    # Environment overrides
    if env.get("HOST"):
        config["host"] = env["HOST"]

    if env.get("PORT"):
        port = _parse_number("PORT", env["PORT"], int)
        if port:
            config["port"] = port

    if env.get("BRIDGE_MCP_COMMAND"):
        config["mcp_command"] = _parse_command(env["BRIDGE_MCP_COMMAND"])

    if env.get("BRIDGE_CACHE_ENABLED"):
        config["cache_enabled"] = env["BRIDGE_CACHE_ENABLED"].lower() in ("true", "1", "yes")

    for name, key in _TIMEOUT_ENV_VARS.items():
        if env.get(name):
            number = _parse_number(name, env[name])
            if number is not None:
                config["timeouts"][key] = number

    if not config["mcp_command"]:
        raise ConfigurationError("MCP server command is empty", {"env": "BRIDGE_MCP_COMMAND"})

    config["access_token"] = get_access_token(env)
    config["platform"] = {
        "environment": env.get("RAILWAY_ENVIRONMENT"),
        "public_domain": env.get("RAILWAY_PUBLIC_DOMAIN"),
        "static_url": env.get("RAILWAY_STATIC_URL"),
    }

    return config
