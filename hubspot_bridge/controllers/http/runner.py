"""
Server Runner

Binds the listening socket, runs uvicorn, and enforces the shutdown grace
period. Exit codes:
- 0: graceful shutdown after SIGTERM, SIGINT, SIGHUP or SIGUSR2
- 1: port already in use, startup failure, or grace period exceeded
"""

import contextlib
import errno
import os
import signal
import socket
import sys
import threading
from types import FrameType
from typing import Iterator, Optional

import uvicorn

from hubspot_bridge.configs import get_full_config, get_logger
from hubspot_bridge.exceptions import PortInUseError

logger = get_logger("runner")

# Signals that start a graceful shutdown
SHUTDOWN_SIGNALS = tuple(
    getattr(signal, name)
    for name in ("SIGINT", "SIGTERM", "SIGHUP", "SIGUSR2")
    if hasattr(signal, name)
)


class BridgeServer(uvicorn.Server):
    """
    uvicorn server that treats every shutdown signal as a graceful exit.

    Signals are consumed rather than re-raised after shutdown, so the process
    exits with status 0. A watchdog forces exit(1) if shutdown stalls.
    """

    def __init__(self, config: uvicorn.Config, shutdown_grace: float):
        super().__init__(config)
        self.shutdown_grace = shutdown_grace
        self.received_signal: Optional[int] = None
        self._watchdog: Optional[threading.Timer] = None

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        # Signal handlers can only be installed from the main thread
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        original_handlers = {sig: signal.signal(sig, self.handle_exit) for sig in SHUTDOWN_SIGNALS}
        try:
            yield
        finally:
            for sig, handler in original_handlers.items():
                signal.signal(sig, handler)

    def handle_exit(self, sig: int, frame: Optional[FrameType]) -> None:
        name = signal.Signals(sig).name
        if self._watchdog is not None:
            logger.info(f"Already shutting down, ignoring {name}")
            return

        logger.info(f"Received {name}, initiating graceful shutdown...")
        self.received_signal = sig
        self._watchdog = threading.Timer(self.shutdown_grace, self._force_exit)
        self._watchdog.daemon = True
        self._watchdog.start()
        self.should_exit = True

    def _force_exit(self) -> None:
        logger.error(f"Graceful shutdown exceeded {self.shutdown_grace}s, forcing exit")
        os._exit(1)

    def cancel_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()


def bind_socket(host: str, port: int) -> socket.socket:
    """
    Bind the listening socket ourselves so a busy port is detected up front.

    Raises:
        PortInUseError: Port is already in use
        OSError: Any other bind failure
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        if e.errno == errno.EADDRINUSE:
            raise PortInUseError(f"Port {port} is already in use", host=host, port=port) from e
        raise
    return sock


def run_server(config: Optional[dict] = None) -> None:
    """Serve the bridge until a shutdown signal arrives, then exit."""
    from hubspot_bridge.controllers.http import create_app

    config = config if config is not None else get_full_config()
    host, port = config["host"], config["port"]
    timeouts = config["timeouts"]

    logger.info(f"Will bind to {host}:{port}")
    try:
        sock = bind_socket(host, port)
    except PortInUseError as e:
        logger.error(e.message)
        sys.exit(1)

    uv_config = uvicorn.Config(
        create_app(config),
        log_level="warning",
        timeout_keep_alive=int(timeouts["keep_alive"]),
        timeout_graceful_shutdown=int(timeouts["shutdown_grace"]),
    )
    server = BridgeServer(uv_config, shutdown_grace=float(timeouts["shutdown_grace"]))

    logger.info(f"Server listening on http://{host}:{port}")
    logger.info(f"Health check: http://{host}:{port}/health")
    server.run(sockets=[sock])
    server.cancel_watchdog()

    if not server.started:
        logger.error("Server failed to start")
        sys.exit(1)

    logger.info("Exiting with code 0")
    sys.exit(0)
