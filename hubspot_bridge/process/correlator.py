"""
Request Correlator

Turns (method, params) into a JSON-RPC round trip with the MCP server.
Outgoing requests get a fresh integer id and a pending future; a dispatch
task consumes the process handle's event queue and resolves futures by id.

Every call resolves exactly once: the pending entry is popped at the first
resolution (response, timeout or process exit) and later events for the same
id are dropped.
"""

import asyncio
import itertools
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from hubspot_bridge.configs import get_logger, get_timeout
from hubspot_bridge.configs.constants import JSONRPC_VERSION
from hubspot_bridge.exceptions import (
    BridgeError,
    MCPServerError,
    ProcessExitedError,
    ProcessNotReadyError,
    ProcessNotRunningError,
    RequestTimeoutError,
)
from hubspot_bridge.process.cache import ResponseCache
from hubspot_bridge.process.handle import ChildProcess, EventKind, ProcessEvent, ProcessState

logger = get_logger("correlator")


@dataclass
class PendingRequest:
    """An in-flight request waiting for its response."""

    id: int | str
    method: str
    future: asyncio.Future
    created_at: float = field(default_factory=time.monotonic)


class RequestCorrelator:
    """
    Correlates JSON-RPC requests with responses from a ChildProcess.

    Args:
        process: Transport to the MCP server
        cache: Optional response cache; None disables caching
        request_timeout: Seconds to wait for a response
        ready_poll_interval: Seconds between readiness checks
        ready_poll_attempts: Readiness checks before giving up
    """

    def __init__(
        self,
        process: ChildProcess,
        cache: Optional[ResponseCache] = None,
        request_timeout: float | None = None,
        ready_poll_interval: float | None = None,
        ready_poll_attempts: int | None = None,
    ):
        self.process = process
        self.cache = cache
        self.request_timeout = (
            request_timeout if request_timeout is not None else get_timeout("request")
        )
        self.ready_poll_interval = (
            ready_poll_interval if ready_poll_interval is not None else get_timeout("ready_poll_interval")
        )
        self.ready_poll_attempts = int(
            ready_poll_attempts if ready_poll_attempts is not None else get_timeout("ready_poll_attempts")
        )

        self._pending: dict[int | str, PendingRequest] = {}
        self._ids = itertools.count(1)
        self._dispatcher: Optional[asyncio.Task] = None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # --- Dispatch loop ---

    def start(self) -> None:
        """Start consuming process events."""
        if self._dispatcher is None or self._dispatcher.done():
            self._dispatcher = asyncio.create_task(self._dispatch_loop(), name="mcp-dispatch")

    async def stop(self) -> None:
        """Stop the dispatch task and fail everything still in flight."""
        if self._dispatcher is not None:
            self._dispatcher.cancel()
            await asyncio.gather(self._dispatcher, return_exceptions=True)
            self._dispatcher = None
        self.fail_all(ProcessExitedError("MCP bridge shutting down"))

    async def _dispatch_loop(self) -> None:
        while True:
            event = await self.process.events.get()
            try:
                self.handle_event(event)
            except Exception as e:
                logger.error(f"Error dispatching MCP event: {e}")

    def handle_event(self, event: ProcessEvent) -> None:
        """Apply one process event to the pending map."""
        if event.kind == EventKind.EXITED:
            if self._pending:
                logger.warning(f"Failing {len(self._pending)} pending request(s): MCP server exited")
            self.fail_all(ProcessExitedError("MCP server process exited", returncode=event.returncode))
            return

        message = event.message or {}
        request_id = message.get("id")
        if request_id is None:
            logger.debug(f"Ignoring MCP message without id: {message.get('method', '?')}")
            return

        pending = self._pending.pop(request_id, None)
        if pending is None:
            logger.debug(f"Ignoring MCP response for unknown id {request_id!r}")
            return
        if pending.future.done():
            return

        error = message.get("error")
        if error is not None:
            if isinstance(error, dict):
                pending.future.set_exception(
                    MCPServerError(
                        error.get("message") or "MCP server error",
                        code=error.get("code"),
                        data=error.get("data"),
                    )
                )
            else:
                pending.future.set_exception(MCPServerError(str(error) or "MCP server error"))
            return

        pending.future.set_result(message["result"] if "result" in message else message)

    def fail_all(self, error: BridgeError) -> None:
        """Reject every pending request with the given error."""
        pending, self._pending = self._pending, {}
        for entry in pending.values():
            if not entry.future.done():
                entry.future.set_exception(error)

    # --- Calls ---

    async def ensure_ready(self) -> None:
        """
        Start the MCP server if needed and wait for its handshake.

        Raises:
            ProcessSpawnError: The process could not be spawned
            ProcessExitedError: The process exited while we waited
            ProcessNotReadyError: Readiness bound exceeded
        """
        self.start()
        if self.process.is_ready:
            return

        logger.info("MCP server not ready, initializing...")
        await self.process.start()

        for _ in range(self.ready_poll_attempts):
            if self.process.is_ready:
                return
            if self.process.state == ProcessState.EXITED:
                raise ProcessExitedError(
                    "MCP server process exited during initialization",
                    returncode=self.process.returncode,
                )
            await asyncio.sleep(self.ready_poll_interval)

        if not self.process.is_ready:
            raise ProcessNotReadyError("MCP server failed to initialize")

    async def call(self, method: str, params: Optional[dict] = None) -> Any:
        """
        Send a JSON-RPC request and wait for its result.

        Returns:
            The response's result field (or the whole response if it has none)

        Raises:
            TransportError: Process unavailable, exited, or timed out
            MCPServerError: The MCP server answered with an error
        """
        params = params if params is not None else {}

        cache_key = None
        if self.cache is not None:
            cache_key = self.cache.make_key(method, params)
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info(f"Cache hit for {method}")
                return cached

        await self.ensure_ready()
        result = await self._request(method, params)

        if cache_key is not None:
            self.cache.put(cache_key, result)
        return result

    async def _request(self, method: str, params: dict) -> Any:
        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = PendingRequest(id=request_id, method=method, future=future)

        logger.info(f"Sending request: {method} (id: {request_id})")
        try:
            await self.process.send(
                {"jsonrpc": JSONRPC_VERSION, "method": method, "params": params, "id": request_id}
            )
        except ProcessNotRunningError as e:
            self._pending.pop(request_id, None)
            raise ProcessNotRunningError(f"Failed to send MCP request: {e.message}") from e

        try:
            return await asyncio.wait_for(future, timeout=self.request_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Request {method} (id: {request_id}) timed out after {self.request_timeout}s")
            raise RequestTimeoutError(timeout=self.request_timeout) from None
        finally:
            self._pending.pop(request_id, None)

    async def notify(self, method: str, params: Optional[dict] = None) -> None:
        """Send a JSON-RPC notification; nothing is awaited in return."""
        await self.ensure_ready()
        message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": method}
        if params is not None:
            message["params"] = params
        logger.info(f"Sending notification: {method}")
        await self.process.send(message)
