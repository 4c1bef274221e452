"""
MCP Server Process Handle

Owns the lifecycle of the spawned MCP server: spawn, handshake, readiness,
exit detection and termination. Parsed stdout messages are published as
ProcessEvents on an asyncio queue for the request correlator to consume.

State machine:

    NOT_STARTED --start()--> STARTING --init result--> READY
         ^                      |                        |
         |                      +-------- exit ----------+--> EXITED
         +--------------------- start() ------------------------+

The handle never restarts the process by itself; the next start() call
(usually triggered by an incoming request) spawns a fresh one.
"""

import asyncio
import json
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from hubspot_bridge.configs import get_logger, get_timeout
from hubspot_bridge.configs.constants import (
    CHILD_TOKEN_ENV_VAR,
    CLIENT_NAME,
    CLIENT_VERSION,
    DEFAULT_MCP_COMMAND,
    HANDSHAKE_REQUEST_ID,
    JSONRPC_VERSION,
    MCP_PROTOCOL_VERSION,
    STREAM_LIMIT,
)
from hubspot_bridge.exceptions import ProcessNotRunningError, ProcessSpawnError

logger = get_logger("process")
stdout_logger = get_logger("process.stdout")
stderr_logger = get_logger("process.stderr")


class ProcessState(str, Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    EXITED = "exited"


class EventKind(str, Enum):
    MESSAGE = "message"
    EXITED = "exited"


@dataclass
class ProcessEvent:
    """Something the correlator needs to know about the child process."""

    kind: EventKind
    message: Optional[dict] = None
    returncode: Optional[int] = None


class ChildProcess:
    """
    Handle for a single MCP server process speaking JSON-RPC over stdio.

    At most one process is tracked at a time. All methods must be called
    from the event loop that owns the handle.
    """

    def __init__(
        self,
        command: Optional[list[str]] = None,
        access_token: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        handshake_delay: float | None = None,
        terminate_grace: float | None = None,
    ):
        self.command = list(command or DEFAULT_MCP_COMMAND)
        self.handshake_delay = (
            handshake_delay if handshake_delay is not None else get_timeout("handshake_delay")
        )
        self.terminate_grace = (
            terminate_grace if terminate_grace is not None else get_timeout("terminate_grace")
        )
        self.events: asyncio.Queue[ProcessEvent] = asyncio.Queue()

        self._access_token = access_token
        self._base_env = env
        self._process: Optional[asyncio.subprocess.Process] = None
        self._state = ProcessState.NOT_STARTED
        self._returncode: Optional[int] = None
        self._started_at: Optional[float] = None
        self._server_info: Optional[dict] = None
        self._tasks: list[asyncio.Task] = []

    # --- Introspection ---

    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == ProcessState.READY

    @property
    def returncode(self) -> Optional[int]:
        return self._returncode

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    def snapshot(self) -> dict[str, Any]:
        """Diagnostic view of the handle for the status endpoint."""
        return {
            "state": self._state.value,
            "pid": self.pid,
            "returncode": self._returncode,
            "startedAt": self._started_at,
            "serverInfo": self._server_info,
            "command": self.command,
        }

    # --- Lifecycle ---

    def _build_env(self) -> dict[str, str]:
        env = dict(os.environ if self._base_env is None else self._base_env)
        if self._access_token:
            env[CHILD_TOKEN_ENV_VAR] = self._access_token
        return env

    async def start(self) -> None:
        """
        Spawn the MCP server unless one is already tracked.

        Raises:
            ProcessSpawnError: The command could not be executed
        """
        if self._state in (ProcessState.STARTING, ProcessState.READY):
            logger.debug("MCP server already running")
            return

        # Claim the slot before the first await so concurrent callers no-op
        self._state = ProcessState.STARTING
        self._returncode = None
        self._server_info = None

        logger.info(f"Starting MCP server: {' '.join(self.command)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._build_env(),
                limit=STREAM_LIMIT,
            )
        except OSError as e:
            self._state = ProcessState.EXITED
            logger.error(f"Failed to start MCP server: {e}")
            raise ProcessSpawnError(f"Failed to start MCP server: {e}", command=self.command) from e

        self._process = process
        self._started_at = time.time()
        logger.info(f"MCP server started (pid {process.pid})")

        self._tasks = [
            asyncio.create_task(self._read_stdout(process), name="mcp-stdout"),
            asyncio.create_task(self._read_stderr(process), name="mcp-stderr"),
            asyncio.create_task(self._send_handshake(process), name="mcp-handshake"),
        ]

    async def terminate(self, grace: float | None = None) -> None:
        """Stop the process: SIGTERM, then SIGKILL after the grace period."""
        process = self._process
        if process is None:
            return

        grace = self.terminate_grace if grace is None else grace
        logger.info(f"Terminating MCP server (pid {process.pid})...")
        try:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=grace)
            except asyncio.TimeoutError:
                logger.warning(f"MCP server did not exit within {grace}s, killing")
                process.kill()
                await process.wait()
        except ProcessLookupError:
            pass

        self._on_exit(process, process.returncode)

        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    def _on_exit(self, process: asyncio.subprocess.Process, returncode: Optional[int]) -> None:
        if self._process is not process:
            return

        logger.warning(f"MCP server exited with code {returncode}")
        self._process = None
        self._state = ProcessState.EXITED
        self._returncode = returncode
        self.events.put_nowait(ProcessEvent(EventKind.EXITED, returncode=returncode))

    # --- Writing ---

    async def send(self, message: dict) -> None:
        """
        Write one JSON-RPC message to the MCP server.

        Raises:
            ProcessNotRunningError: No process is tracked or stdin is closed
        """
        process = self._process
        if process is None:
            raise ProcessNotRunningError("MCP server is not running")
        await self._write(process, message)

    async def _write(self, process: asyncio.subprocess.Process, message: dict) -> None:
        stdin = process.stdin
        if stdin is None or stdin.is_closing():
            raise ProcessNotRunningError("MCP server stdin is closed")
        try:
            stdin.write((json.dumps(message) + "\n").encode("utf-8"))
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ProcessNotRunningError(f"MCP server stdin is closed: {e}") from e

    # --- Handshake ---

    async def _send_handshake(self, process: asyncio.subprocess.Process) -> None:
        await asyncio.sleep(self.handshake_delay)
        if self._process is not process or self._state != ProcessState.STARTING:
            return

        logger.info("Sending initialization request...")
        try:
            await self._write(
                process,
                {
                    "jsonrpc": JSONRPC_VERSION,
                    "method": "initialize",
                    "params": {
                        "protocolVersion": MCP_PROTOCOL_VERSION,
                        "capabilities": {},
                        "clientInfo": {"name": CLIENT_NAME, "version": CLIENT_VERSION},
                    },
                    "id": HANDSHAKE_REQUEST_ID,
                },
            )
        except ProcessNotRunningError as e:
            logger.warning(f"Could not send initialization request: {e}")

    async def _complete_handshake(self, process: asyncio.subprocess.Process, message: dict) -> None:
        if "error" in message:
            logger.error(f"MCP server rejected initialization: {message['error']}")
            return
        result = message.get("result")
        if not result:
            logger.warning("Initialization response carried no result")
            return
        if self._state == ProcessState.READY:
            return

        try:
            await self._write(
                process,
                {"jsonrpc": JSONRPC_VERSION, "method": "notifications/initialized"},
            )
        except ProcessNotRunningError as e:
            logger.warning(f"Could not send initialized notification: {e}")
            return

        if isinstance(result, dict):
            self._server_info = result.get("serverInfo")
        self._state = ProcessState.READY
        logger.info("MCP server initialized successfully")

    # --- Reading ---

    async def _read_stdout(self, process: asyncio.subprocess.Process) -> None:
        assert process.stdout is not None
        while True:
            try:
                line = await process.stdout.readline()
            except ValueError as e:
                # Over-long line; the reader has already discarded it
                logger.warning(f"Dropped oversized line from MCP server: {e}")
                continue
            if not line:
                break

            text = line.decode("utf-8", errors="replace").strip()
            if not text:
                continue
            stdout_logger.debug(text)

            try:
                message = json.loads(text)
            except json.JSONDecodeError:
                if "Server connected" in text or "ready" in text:
                    logger.info("MCP server appears ready")
                continue

            if not isinstance(message, dict):
                logger.debug("Ignoring non-object JSON from MCP server")
                continue

            if message.get("id") == HANDSHAKE_REQUEST_ID:
                await self._complete_handshake(process, message)
                continue

            self.events.put_nowait(ProcessEvent(EventKind.MESSAGE, message=message))

        returncode = await process.wait()
        self._on_exit(process, returncode)

    async def _read_stderr(self, process: asyncio.subprocess.Process) -> None:
        assert process.stderr is not None
        while True:
            try:
                line = await process.stderr.readline()
            except ValueError:
                continue
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip()
            stderr_logger.debug(text)
            if "Server connected" in text:
                logger.info("MCP server connected via stderr")
