"""
Operation machinery.

Descriptors, the operation factory, the blocking result channel and the
polling accessor shared by session managers.
"""

from distant.client.operations.channel import (
    Callback,
    OperationResult,
    ResultChannel,
)
from distant.client.operations.options import CallOptions
from distant.client.operations.factory import (
    Intercepted,
    Interceptor,
    Operation,
    OperationDescriptor,
)
from distant.client.operations.poll import Poller

__all__ = [
    "Callback",
    "OperationResult",
    "ResultChannel",
    "CallOptions",
    "Intercepted",
    "Interceptor",
    "Operation",
    "OperationDescriptor",
    "Poller",
]
