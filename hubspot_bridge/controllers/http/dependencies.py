"""FastAPI dependencies and request helpers shared by the routers."""

import json
from typing import Any

from fastapi import Request

from hubspot_bridge.context import BridgeContext
from hubspot_bridge.exceptions import ProtocolError


def get_bridge(request: Request) -> BridgeContext:
    """The BridgeContext created by the app lifespan."""
    return request.app.state.bridge


async def read_json_body(request: Request) -> Any:
    """
    Read and decode a JSON request body.

    Raises:
        ProtocolError: Body is not valid UTF-8 JSON
    """
    body = await request.body()
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ProtocolError(f"Invalid JSON: {e}", {"bytes": len(body)}) from e
