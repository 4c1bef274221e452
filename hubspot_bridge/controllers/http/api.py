"""
Bridge HTTP API

Health, status, and tool endpoints:
- GET  /, /health, /healthz  -> liveness, never touches the MCP server
- GET  /status               -> diagnostic snapshot
- GET  /api                  -> route listing
- GET  /api/tools            -> tools/list
- POST /api/call             -> tools/call with the request body as params
"""

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from hubspot_bridge import __version__
from hubspot_bridge.configs import SERVICE_NAME, get_logger
from hubspot_bridge.context import BridgeContext
from hubspot_bridge.controllers.http.dependencies import get_bridge, read_json_body
from hubspot_bridge.exceptions import ProtocolError

logger = get_logger("http.api")

router = APIRouter()


# =============================================================================
# Liveness
# =============================================================================


@router.api_route("/", methods=["GET", "HEAD"], include_in_schema=False)
@router.api_route("/health", methods=["GET", "HEAD"])
@router.api_route("/healthz", methods=["GET", "HEAD"], include_in_schema=False)
async def health(bridge: BridgeContext = Depends(get_bridge)) -> PlainTextResponse:
    """Health check endpoint. Must answer immediately regardless of MCP state."""
    bridge.record_health_check()
    return PlainTextResponse("OK")


# =============================================================================
# Diagnostics
# =============================================================================


@router.get("/status")
async def status(bridge: BridgeContext = Depends(get_bridge)) -> dict[str, Any]:
    """
    Detailed status.

    Returns uptime, request counters, memory, token presence, and the
    MCP server and cache snapshots.
    """
    return bridge.status()


@router.get("/api")
async def api_info() -> dict[str, Any]:
    """Static listing of the bridge's endpoints."""
    return {
        "name": SERVICE_NAME,
        "version": __version__,
        "endpoints": {
            "health": "GET /health",
            "status": "GET /status",
            "api": "GET /api",
            "tools": "GET /api/tools",
            "call": "POST /api/call",
            "mcp": "POST /mcp",
        },
        "description": "HTTP bridge for HubSpot MCP Server",
    }


# =============================================================================
# Tools
# =============================================================================


@router.get("/api/tools")
async def list_tools(bridge: BridgeContext = Depends(get_bridge)) -> JSONResponse:
    """List the MCP server's tools."""
    tools = await bridge.correlator.call("tools/list")
    logger.info("Tools list request completed")
    return JSONResponse(tools)


@router.post("/api/call")
async def call_tool(request: Request, bridge: BridgeContext = Depends(get_bridge)) -> JSONResponse:
    """
    Call an MCP tool.

    The body is forwarded verbatim as tools/call params, e.g.
    {"name": "hubspot-list-objects", "arguments": {"objectType": "contacts"}}.
    """
    try:
        payload = await read_json_body(request)
    except ProtocolError as e:
        logger.error(f"Invalid JSON in request: {e}")
        return JSONResponse(status_code=400, content={"error": e.message})

    if not isinstance(payload, dict):
        logger.error("Tool call body is not a JSON object")
        return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object"})

    result = await bridge.correlator.call("tools/call", payload)
    logger.info(f"Tool call completed successfully: {payload.get('name', '?')}")
    return JSONResponse(result)
