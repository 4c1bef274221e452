"""
HTTP Middleware

Request accounting, permissive CORS, and OPTIONS preflight handling.
Health checks are counted but not logged per request, since platforms poll
them frequently.
"""

import time

from fastapi import Request, Response

from hubspot_bridge.configs import get_logger

logger = get_logger("http")

HEALTH_PATHS = frozenset({"/", "/health", "/healthz"})

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


async def bridge_middleware(request: Request, call_next) -> Response:
    """Count, time and CORS-decorate every request."""
    bridge = request.app.state.bridge
    bridge.stats.total += 1
    request_number = bridge.stats.total
    path = request.url.path
    is_health = path in HEALTH_PATHS

    if not is_health:
        client = request.client.host if request.client else "unknown"
        logger.info(f"[REQ-{request_number}] {request.method} {path} from {client}")

    if request.method == "OPTIONS":
        logger.info(f"[REQ-{request_number}] OPTIONS request completed")
        return Response(status_code=200, headers=CORS_HEADERS)

    bridge.stats.active += 1
    started = time.perf_counter()
    try:
        response = await call_next(request)
    finally:
        bridge.stats.active -= 1

    duration_ms = (time.perf_counter() - started) * 1000
    if is_health:
        logger.debug(f"[REQ-{request_number}] Health check completed in {duration_ms:.1f}ms")
    else:
        response.headers.update(CORS_HEADERS)
        logger.info(f"[REQ-{request_number}] {response.status_code} in {duration_ms:.1f}ms")
    return response
