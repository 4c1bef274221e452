"""
Standardized HTTP Client Utilities

Thin wrapper over `requests` with the bridge's error types. Used for the
startup self-check against our own health endpoint.

Usage:
    from hubspot_bridge.utils.http_client import http_get

    response = http_get("http://127.0.0.1:3000/health", timeout=5)
"""

import requests

from hubspot_bridge.configs.constants import get_timeout
from hubspot_bridge.exceptions import HTTPConnectionError, HTTPRequestError, HTTPTimeoutError

DEFAULT_TIMEOUT = get_timeout("http_self_check", 5)


def http_get(
    url: str,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    raise_for_status: bool = True,
) -> requests.Response:
    """
    Make a GET request with standardized error handling.

    Args:
        url: Request URL
        headers: Optional headers dict
        timeout: Request timeout in seconds
        raise_for_status: Raise HTTPRequestError on 4xx/5xx responses

    Returns:
        requests.Response object

    Raises:
        HTTPConnectionError: Connection failed
        HTTPTimeoutError: Request timed out
        HTTPRequestError: Bad status code (if raise_for_status=True)
    """
    try:
        response = requests.get(url, headers=headers, timeout=timeout)
        if raise_for_status:
            response.raise_for_status()
        return response
    except requests.exceptions.ConnectionError as e:
        raise HTTPConnectionError(f"Connection failed: {url}") from e
    except requests.exceptions.Timeout as e:
        raise HTTPTimeoutError(f"Request timed out: {url}") from e
    except requests.exceptions.HTTPError as e:
        raise HTTPRequestError(
            f"HTTP {e.response.status_code}: {url}",
            status_code=e.response.status_code,
            response_text=e.response.text[:500] if e.response.text else None,
        ) from e
