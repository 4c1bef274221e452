"""
MCP Protocol Endpoint

JSON-RPC 2.0 over HTTP (POST /mcp) for clients that speak MCP themselves.
The bridge owns the stdio handshake with the MCP server, so `initialize` is
answered locally and the client's `notifications/initialized` is absorbed;
everything else is forwarded through the correlator.
"""

from typing import Any, Literal, Optional, Union

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from hubspot_bridge import __version__
from hubspot_bridge.configs import get_logger
from hubspot_bridge.configs.constants import CLIENT_NAME, JSONRPC_VERSION, MCP_PROTOCOL_VERSION
from hubspot_bridge.context import BridgeContext
from hubspot_bridge.controllers.http.dependencies import get_bridge, read_json_body
from hubspot_bridge.exceptions import BridgeError, MCPServerError, ProtocolError

logger = get_logger("http.mcp")

router = APIRouter()

# JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
INTERNAL_ERROR = -32603
SERVER_ERROR = -32000


class JSONRPCRequest(BaseModel):
    """Inbound JSON-RPC request or notification."""

    model_config = ConfigDict(extra="ignore")

    jsonrpc: Literal["2.0"]
    method: str = Field(..., min_length=1)
    params: Optional[dict[str, Any]] = None
    id: Optional[Union[int, str]] = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


def rpc_error(request_id, code: int, message: str, data: Any = None) -> dict[str, Any]:
    """Build a JSON-RPC error response."""
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def rpc_result(request_id, result: Any) -> dict[str, Any]:
    """Build a JSON-RPC success response."""
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def initialize_result() -> dict[str, Any]:
    """What the bridge announces to MCP clients."""
    return {
        "protocolVersion": MCP_PROTOCOL_VERSION,
        "capabilities": {"tools": {}},
        "serverInfo": {"name": CLIENT_NAME, "version": __version__},
    }


@router.post("/mcp")
async def mcp_jsonrpc(request: Request, bridge: BridgeContext = Depends(get_bridge)) -> Response:
    """Handle one JSON-RPC message."""
    try:
        payload = await read_json_body(request)
    except ProtocolError as e:
        logger.error(f"Invalid JSON-RPC payload: {e}")
        return JSONResponse(status_code=400, content=rpc_error(None, PARSE_ERROR, "Parse error"))

    if isinstance(payload, list):
        return JSONResponse(
            status_code=400,
            content=rpc_error(None, INVALID_REQUEST, "Batch requests are not supported"),
        )

    try:
        rpc = JSONRPCRequest.model_validate(payload)
    except ValidationError as e:
        request_id = payload.get("id") if isinstance(payload, dict) else None
        return JSONResponse(
            status_code=400,
            content=rpc_error(
                request_id,
                INVALID_REQUEST,
                "Invalid Request",
                data=[err["msg"] for err in e.errors()],
            ),
        )

    logger.info(f"MCP {rpc.method} (id: {rpc.id})")

    if rpc.method == "initialize":
        return JSONResponse(rpc_result(rpc.id, initialize_result()))

    try:
        if rpc.is_notification:
            if rpc.method != "notifications/initialized":
                await bridge.correlator.notify(rpc.method, rpc.params)
            return Response(status_code=204)

        result = await bridge.correlator.call(rpc.method, rpc.params or {})
    except MCPServerError as e:
        # Application errors are ordinary JSON-RPC responses
        code = e.code if isinstance(e.code, int) else INTERNAL_ERROR
        return JSONResponse(rpc_error(rpc.id, code, e.message, data=e.data))
    except BridgeError as e:
        logger.error(f"MCP {rpc.method} failed: {e}")
        return JSONResponse(status_code=500, content=rpc_error(rpc.id, SERVER_ERROR, e.message))

    return JSONResponse(rpc_result(rpc.id, result))
