"""
Streaming sessions.

Local state for remote activities that answer one request with a stream of
events: spawned processes and filesystem watches.
"""

from distant.client.sessions.process import (
    Process,
    ProcessEvent,
    ProcessOutput,
    ProcessSessions,
)
from distant.client.sessions.watch import (
    WatchChange,
    WatchEvent,
    WatchSession,
    WatchSessions,
)

__all__ = [
    "Process",
    "ProcessEvent",
    "ProcessOutput",
    "ProcessSessions",
    "WatchChange",
    "WatchEvent",
    "WatchSession",
    "WatchSessions",
]
