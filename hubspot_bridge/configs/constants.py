"""
Bridge Constants

Static configuration values that rarely change: protocol identifiers,
the default MCP server command, and timeout configuration.
"""

# --- Service Identity ---

SERVICE_NAME = "HubSpot MCP Server Bridge"
CLIENT_NAME = "hubspot-mcp-bridge"
CLIENT_VERSION = "1.0.0"

# --- MCP Protocol ---

JSONRPC_VERSION = "2.0"
MCP_PROTOCOL_VERSION = "2024-11-05"
HANDSHAKE_REQUEST_ID = "init"

DEFAULT_MCP_COMMAND = ["npx", "@hubspot/mcp-server"]

# Environment variable names the access token may arrive under, in priority order
TOKEN_ENV_VARS = ("PRIVATE_APP_ACCESS_TOKEN", "HUBSPOT_ACCESS_TOKEN")

# Name the MCP server reads its token from
CHILD_TOKEN_ENV_VAR = "HUBSPOT_ACCESS_TOKEN"

# asyncio StreamReader line limit; tools/list output easily exceeds the 64KiB default
STREAM_LIMIT = 16 * 1024 * 1024

# --- Timeout Configuration ---
# Centralized timeout values (in seconds unless noted)

TIMEOUTS = {
    # Child process lifecycle
    "handshake_delay": 1.0,  # Delay before sending initialize
    "ready_poll_interval": 0.5,  # Readiness poll interval
    "ready_poll_attempts": 20,  # Readiness poll bound (count, not seconds)
    "terminate_grace": 5,  # SIGTERM -> SIGKILL grace
    # Requests
    "request": 10,  # Per-request response timeout
    "cache_ttl": 300,  # Response cache expiry
    # Server lifecycle
    "startup_delay": 2.0,  # Delay before spawning the MCP server
    "shutdown_grace": 10,  # Forced exit(1) after this long
    "heartbeat_interval": 60,  # Heartbeat log interval
    "keep_alive": 120,  # HTTP keep-alive
    # Startup self-check
    "self_check_delay": 1.0,
    "http_self_check": 5,
}


def get_timeout(key: str, default: int | float | None = None) -> int | float:
    """
    Get a timeout value by key.

    Args:
        key: Timeout key from TIMEOUTS dict
        default: Default value if key not found

    Returns:
        Timeout value in seconds (or a count for ready_poll_attempts)
    """
    if default is None:
        default = TIMEOUTS.get("request", 10)
    return TIMEOUTS.get(key, default)
