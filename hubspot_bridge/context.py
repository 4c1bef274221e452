"""
Bridge Context

Explicit owner of everything that lives for the duration of the server:
the MCP server handle, the correlator, the response cache, request counters
and configuration. Created by the HTTP app's lifespan and reachable from
route handlers through `request.app.state.bridge`.
"""

import asyncio
import os
import resource
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from hubspot_bridge import __version__
from hubspot_bridge.configs import SERVICE_NAME, get_full_config, get_logger
from hubspot_bridge.exceptions import BridgeError, ClientError
from hubspot_bridge.process import ChildProcess, RequestCorrelator, ResponseCache
from hubspot_bridge.utils.http_client import http_get

logger = get_logger("context")


@dataclass
class RequestStats:
    """HTTP request counters reported by /status and the heartbeat."""

    total: int = 0
    health_checks: int = 0
    active: int = 0


def memory_usage() -> dict[str, Any]:
    """Peak resident set size of this process."""
    max_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes on Linux
    if sys.platform == "darwin":
        max_rss //= 1024
    return {"maxRssKb": max_rss, "maxRssMb": round(max_rss / 1024, 1)}


def self_check_url(host: str, port: int) -> str:
    """Health URL the server can reach itself on; wildcard binds use loopback."""
    if host in ("", "0.0.0.0", "::"):
        host = "127.0.0.1"
    elif ":" in host:
        host = f"[{host}]"
    return f"http://{host}:{port}/health"


class BridgeContext:
    """
    Lifetime container for the bridge's runtime state.

    Args:
        config: Merged configuration (defaults to get_full_config())
    """

    def __init__(self, config: Optional[dict] = None):
        self.config = config if config is not None else get_full_config()
        timeouts = self.config["timeouts"]

        self.cache = ResponseCache(ttl_seconds=timeouts["cache_ttl"]) if self.config.get("cache_enabled", True) else None
        self.process = ChildProcess(
            command=self.config["mcp_command"],
            access_token=self.config.get("access_token"),
            handshake_delay=timeouts["handshake_delay"],
            terminate_grace=timeouts["terminate_grace"],
        )
        self.correlator = RequestCorrelator(
            self.process,
            cache=self.cache,
            request_timeout=timeouts["request"],
            ready_poll_interval=timeouts["ready_poll_interval"],
            ready_poll_attempts=int(timeouts["ready_poll_attempts"]),
        )
        self.stats = RequestStats()
        self.started_at = time.time()
        self.shutting_down = False
        self._background: list[asyncio.Task] = []

    # --- Derived values ---

    @property
    def has_token(self) -> bool:
        return bool(self.config.get("access_token"))

    @property
    def uptime_seconds(self) -> float:
        return time.time() - self.started_at

    def record_health_check(self) -> None:
        self.stats.health_checks += 1
        if self.stats.health_checks % 10 == 0:
            logger.info(
                f"Total health checks: {self.stats.health_checks}, "
                f"uptime: {int(self.uptime_seconds)}s"
            )

    # --- Lifecycle ---

    async def startup(self) -> None:
        """Start background work. The MCP server itself is spawned lazily or after a delay."""
        timeouts = self.config["timeouts"]
        self.correlator.start()

        if self.config.get("auto_start", True):
            self._spawn(self._deferred_start(timeouts["startup_delay"]), "mcp-deferred-start")
        if timeouts.get("heartbeat_interval"):
            self._spawn(self._heartbeat(timeouts["heartbeat_interval"]), "heartbeat")
        if self.config.get("self_check", False):
            self._spawn(self._self_check(timeouts["self_check_delay"]), "self-check")

        logger.info(f"HubSpot access token: {'CONFIGURED' if self.has_token else 'NOT CONFIGURED'}")

    async def shutdown(self) -> None:
        """Terminate the MCP server and fail anything still in flight."""
        self.shutting_down = True
        logger.info(
            f"Shutting down after {int(self.uptime_seconds)}s, "
            f"{self.stats.total} requests served, {self.stats.active} active"
        )

        for task in self._background:
            task.cancel()
        await asyncio.gather(*self._background, return_exceptions=True)
        self._background = []

        await self.process.terminate()
        await self.correlator.stop()

    def _spawn(self, coro, name: str) -> None:
        self._background.append(asyncio.create_task(coro, name=name))

    async def _deferred_start(self, delay: float) -> None:
        await asyncio.sleep(delay)
        logger.info("Initializing HubSpot MCP server...")
        try:
            await self.process.start()
        except BridgeError as e:
            logger.error(f"Deferred MCP server start failed: {e}")

    async def _heartbeat(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            logger.info(
                f"Heartbeat: uptime {int(self.uptime_seconds)}s, "
                f"memory {memory_usage()['maxRssMb']}MB, "
                f"requests {self.stats.total}, "
                f"MCP {'Ready' if self.process.is_ready else 'Not Ready'}"
            )

    async def _self_check(self, delay: float) -> None:
        await asyncio.sleep(delay)
        url = self_check_url(self.config["host"], self.config["port"])
        logger.info(f"Testing internal connectivity to: {url}")
        try:
            response = await asyncio.to_thread(
                http_get, url, timeout=self.config["timeouts"]["http_self_check"]
            )
            logger.info(f"Internal health check: {response.status_code} {response.text[:50]}")
        except ClientError as e:
            logger.error(f"Internal connectivity failed: {e}")

    # --- Reporting ---

    def status(self) -> dict[str, Any]:
        """Diagnostic snapshot for GET /status."""
        platform = self.config.get("platform") or {}
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(self.uptime_seconds, 3),
            "memory": memory_usage(),
            "requests": {
                "total": self.stats.total,
                "healthChecks": self.stats.health_checks,
                "active": self.stats.active,
            },
            "hasToken": self.has_token,
            "mcp": {
                **self.process.snapshot(),
                "pendingRequests": self.correlator.pending_count,
            },
            "cache": self.cache.stats() if self.cache is not None else None,
            "environment": {
                "port": self.config["port"],
                "python": sys.version.split()[0],
                "platform": sys.platform,
                "pid": os.getpid(),
                "railwayEnv": platform.get("environment"),
            },
        }
