"""
Bridge Configuration Module

Re-exports commonly used functions for cleaner imports across the codebase.
"""

# Logging (most commonly used)
from hubspot_bridge.configs.logging import get_logger, setup_logging

# Paths
from hubspot_bridge.configs.paths import get_data_path

# Constants
from hubspot_bridge.configs.constants import (
    DEFAULT_MCP_COMMAND,
    SERVICE_NAME,
    TIMEOUTS,
    get_timeout,
)

# YAML config
from hubspot_bridge.configs.yaml_config import get_config_path, load_yaml_config

# Runtime
from hubspot_bridge.configs.runtime import (
    DEFAULT_CONFIG,
    get_access_token,
    get_full_config,
)

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Paths
    "get_data_path",
    # Constants
    "DEFAULT_MCP_COMMAND",
    "SERVICE_NAME",
    "TIMEOUTS",
    "get_timeout",
    # YAML config
    "get_config_path",
    "load_yaml_config",
    # Runtime
    "DEFAULT_CONFIG",
    "get_access_token",
    "get_full_config",
]
