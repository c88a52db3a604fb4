"""
Distant transport contract.

The client does not implement the wire transport; it consumes any object
implementing ``Transport``.
"""

from distant.client.transport.types import SendOptions
from distant.client.transport.base import Transport, StopHandle, EventHandler

__all__ = [
    "Transport",
    "StopHandle",
    "EventHandler",
    "SendOptions",
]
