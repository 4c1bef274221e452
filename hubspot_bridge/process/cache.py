"""
Response Cache

In-memory TTL cache for MCP results, keyed by method and canonical params.
Expiry is checked on read only; entries live until overwritten.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from hubspot_bridge.configs import get_logger, get_timeout

logger = get_logger("cache")


@dataclass
class CacheEntry:
    """A cached successful result."""

    key: str
    value: Any
    timestamp: float


class ResponseCache:
    """
    Cache of successful MCP results.

    Not size-limited. Expired entries are replaced by the next successful
    call with the same key.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = float(ttl_seconds if ttl_seconds is not None else get_timeout("cache_ttl"))
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(method: str, params: Optional[dict] = None) -> str:
        """Build a deterministic key from a method name and its params."""
        canonical = json.dumps(params or {}, sort_keys=True, separators=(",", ":"), default=str)
        return f"{method}:{canonical}"

    def get(self, key: str) -> Any:
        """Return the cached value, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None or self._clock() - entry.timestamp >= self.ttl_seconds:
            self.misses += 1
            return None
        self.hits += 1
        return entry.value

    def put(self, key: str, value: Any) -> None:
        """Store a value, overwriting any previous entry."""
        if value is None:
            return
        self._entries[key] = CacheEntry(key=key, value=value, timestamp=self._clock())
        logger.debug(f"Cached {key[:80]}")

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict:
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "ttl_seconds": self.ttl_seconds,
        }
