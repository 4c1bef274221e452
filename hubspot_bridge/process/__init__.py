"""
MCP Server Process Layer

Child process handle, request correlation, and response caching.
"""

from hubspot_bridge.process.cache import CacheEntry, ResponseCache
from hubspot_bridge.process.correlator import PendingRequest, RequestCorrelator
from hubspot_bridge.process.handle import ChildProcess, EventKind, ProcessEvent, ProcessState

__all__ = [
    "CacheEntry",
    "ChildProcess",
    "EventKind",
    "PendingRequest",
    "ProcessEvent",
    "ProcessState",
    "RequestCorrelator",
    "ResponseCache",
]
