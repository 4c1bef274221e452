"""
Bridge Logging

Everything logs under the "bridge" logger tree, one child per component
(bridge.process, bridge.http.api, ...). Container platforms collect stderr,
so stderr is the primary sink; a file can be added for local debugging.

Environment:
- BRIDGE_DEBUG: true/1/yes switches to DEBUG (child stdout/stderr lines included)
- BRIDGE_LOG_FILE: also write to this file; stderr then carries warnings only
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "bridge"

LOG_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _debug_from_env() -> bool:
    return os.environ.get("BRIDGE_DEBUG", "").lower() in ("true", "1", "yes")


def _file_handler(log_file: str, level: int, formatter: logging.Formatter) -> logging.FileHandler:
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return handler


def setup_logging(
    debug: Optional[bool] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Install handlers on the bridge root logger. Safe to call again; previous
    handlers are replaced.

    Args:
        debug: DEBUG instead of INFO (default: BRIDGE_DEBUG)
        log_file: Extra file sink (default: BRIDGE_LOG_FILE; "" disables)

    Returns:
        The "bridge" logger
    """
    if debug is None:
        debug = _debug_from_env()
    if log_file is None:
        log_file = os.environ.get("BRIDGE_LOG_FILE", "")

    level = logging.DEBUG if debug else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.setLevel(logging.WARNING if log_file else level)
    root.addHandler(console)

    if log_file:
        file_handler = _file_handler(log_file, level, formatter)
        root.addHandler(file_handler)
        root.info(f"Logging to file: {file_handler.baseFilename}")

    return root


def get_logger(component: str) -> logging.Logger:
    """Logger for one component, e.g. get_logger("correlator") -> bridge.correlator."""
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")
