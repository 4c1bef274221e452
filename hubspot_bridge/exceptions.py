"""
HubSpot MCP Bridge Exception Hierarchy

Centralized exception classes for structured error handling across the bridge.
All bridge-specific exceptions inherit from BridgeError.

Usage:
    from hubspot_bridge.exceptions import BridgeError, RequestTimeoutError

    try:
        result = await correlator.call("tools/list")
    except BridgeError as e:
        logger.error(f"MCP call failed: {e}")
"""


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(BridgeError):
    """Error in bridge configuration."""

    pass


# =============================================================================
# Server Startup Errors
# =============================================================================


class ServerStartupError(BridgeError):
    """The HTTP server could not start listening."""

    pass


class PortInUseError(ServerStartupError):
    """The configured port is already bound by another process."""

    def __init__(self, message: str, host: str | None = None, port: int | None = None):
        details = {"address": f"{host}:{port}"} if port is not None else {}
        super().__init__(message, details)
        self.port = port


# =============================================================================
# Transport Errors (child process not usable)
# =============================================================================


class TransportError(BridgeError):
    """Base class for failures reaching the MCP server process."""

    pass


class ProcessSpawnError(TransportError):
    """The MCP server process could not be spawned."""

    def __init__(self, message: str, command: list[str] | None = None):
        details = {"command": " ".join(command)} if command else {}
        super().__init__(message, details)
        self.command = command


class ProcessNotRunningError(TransportError):
    """No MCP server process is tracked, or its stdin is closed."""

    pass


class ProcessNotReadyError(TransportError):
    """The MCP server did not complete its handshake in time."""

    pass


class ProcessExitedError(TransportError):
    """The MCP server process exited while a request was in flight."""

    def __init__(self, message: str = "MCP server process exited", returncode: int | None = None):
        details = {"returncode": returncode} if returncode is not None else {}
        super().__init__(message, details)
        self.returncode = returncode


class RequestTimeoutError(TransportError):
    """No response arrived for a request within the timeout."""

    def __init__(self, message: str = "MCP request timeout", timeout: float | None = None):
        details = {"timeout": timeout} if timeout is not None else {}
        super().__init__(message, details)
        self.timeout = timeout


# =============================================================================
# Protocol Errors
# =============================================================================


class ProtocolError(BridgeError):
    """Malformed JSON or JSON-RPC from either side of the bridge."""

    pass


# =============================================================================
# Application Errors
# =============================================================================


class MCPServerError(BridgeError):
    """The MCP server answered with an explicit JSON-RPC error."""

    def __init__(self, message: str, code: int | None = None, data=None):
        details = {"code": code} if code is not None else {}
        super().__init__(message, details)
        self.code = code
        self.data = data


# =============================================================================
# HTTP Client Errors
# =============================================================================


class ClientError(BridgeError):
    """Base class for outbound HTTP client errors."""

    pass


class HTTPRequestError(ClientError):
    """HTTP request returned an error status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
    ):
        details = {}
        if status_code is not None:
            details["status_code"] = status_code
        if response_text:
            details["response_text"] = response_text[:200]
        super().__init__(message, details)
        self.status_code = status_code
        self.response_text = response_text


class HTTPConnectionError(ClientError):
    """Failed to connect to HTTP endpoint."""

    pass


class HTTPTimeoutError(ClientError):
    """HTTP request timed out."""

    pass
