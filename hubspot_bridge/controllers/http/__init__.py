"""
Bridge HTTP Server

FastAPI app exposing health, status, tool and MCP protocol endpoints.
The BridgeContext is built inside the lifespan so its queues and tasks
belong to the serving event loop.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hubspot_bridge import __version__
from hubspot_bridge.configs import SERVICE_NAME, get_logger
from hubspot_bridge.context import BridgeContext
from hubspot_bridge.controllers.http.api import router as api_router
from hubspot_bridge.controllers.http.mcp_protocol import router as mcp_router
from hubspot_bridge.controllers.http.middleware import bridge_middleware
from hubspot_bridge.controllers.http.runner import run_server
from hubspot_bridge.exceptions import BridgeError

logger = get_logger("http")


def log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """Log unhandled asynchronous failures instead of letting them take the process down."""
    exc = context.get("exception")
    message = context.get("message", "Unhandled exception in event loop")
    if exc is not None:
        logger.error(f"Unhandled async error: {message}: {exc!r}", exc_info=exc)
    else:
        logger.error(f"Unhandled async error: {message}")


def create_app(config: Optional[dict] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        config: Merged configuration (defaults to get_full_config() at startup)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        asyncio.get_running_loop().set_exception_handler(log_loop_exception)
        bridge = BridgeContext(config)
        app.state.bridge = bridge
        await bridge.startup()
        logger.info("Application started successfully")
        try:
            yield
        finally:
            await bridge.shutdown()
            logger.info("HTTP server closed")

    app = FastAPI(
        title=SERVICE_NAME,
        description="HTTP bridge for the HubSpot MCP server",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.middleware("http")(bridge_middleware)
    app.include_router(api_router, tags=["api"])
    app.include_router(mcp_router, tags=["mcp"])

    @app.exception_handler(BridgeError)
    async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=500, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code in (404, 405):
            logger.info(f"404 - Unknown route: {request.method} {request.url.path}")
            return JSONResponse(
                status_code=404,
                content={"error": "Not found", "path": request.url.path, "method": request.method},
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    return app


__all__ = ["create_app", "log_loop_exception", "run_server"]
