"""
Bridge YAML Configuration

Loading of the optional config.yaml. The file is never required: on hosting
platforms everything usually arrives through environment variables.

Example:

    runtime:
      port: 3000
      mcp_command: "npx @hubspot/mcp-server"
    timeouts:
      request: 15
      cache_ttl: 120
"""

import os
from pathlib import Path

import yaml

from hubspot_bridge.configs.logging import get_logger
from hubspot_bridge.configs.paths import get_data_path

logger = get_logger("config")


def get_config_path() -> Path:
    """Get the path to config.yaml (BRIDGE_CONFIG_FILE overrides)."""
    env_path = os.environ.get("BRIDGE_CONFIG_FILE")
    if env_path:
        return Path(env_path).expanduser()
    return get_data_path() / "config.yaml"


def load_yaml_config(path: Path | None = None) -> dict:
    """
    Load configuration from config.yaml.

    Args:
        path: Explicit file path (defaults to get_config_path())

    Returns:
        Configuration dictionary (empty if the file doesn't exist or is invalid)
    """
    config_path = path or get_config_path()
    if not config_path.exists():
        return {}

    try:
        loaded = yaml.safe_load(config_path.read_text())
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Ignoring unreadable config file {config_path}: {e}")
        return {}

    if not isinstance(loaded, dict):
        logger.warning(f"Ignoring config file {config_path}: top level is not a mapping")
        return {}
    return loaded
