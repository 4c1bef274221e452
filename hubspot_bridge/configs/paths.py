"""
Bridge Data Paths

Locates the bridge's data directory (config file, optional log file).
"""

import os
from pathlib import Path

DEFAULT_DATA_PATH = Path.home() / ".hubspot-bridge"


def get_data_path() -> Path:
    """Get the bridge data directory path.

    Honors BRIDGE_DATA_PATH, otherwise ~/.hubspot-bridge.
    """
    data_path = os.environ.get("BRIDGE_DATA_PATH")
    if data_path:
        return Path(data_path).expanduser()
    return DEFAULT_DATA_PATH
