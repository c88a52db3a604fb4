"""
Distant client dispatch layer.

Turns the tagged distant protocol into typed operations that can be awaited
for a result or given a callback for every event.

Submodules:
- protocol: message types, schemas, errors and response classification
- transport: the transport contract consumed by the client
- operations: operation factory, blocking result channel, polling
- sessions: process and watch session registries
- api: the operation catalog bound to one transport
- functions: module-level functions over a lazily loaded API
"""

from distant.client.config import ApiSettings, load_settings

from distant.client.protocol import (
    NULL,
    Message,
    Event,
    DistantError,
    ValidationError,
    ProtocolError,
    RemoteError,
    TimeoutError,
    SessionError,
    TransportError,
    MessageSchema,
    parse_response,
)

from distant.client.transport import (
    Transport,
    StopHandle,
    SendOptions,
)

from distant.client.operations import (
    CallOptions,
    Intercepted,
    Interceptor,
    Operation,
    OperationDescriptor,
    OperationResult,
    Poller,
    ResultChannel,
)

from distant.client.sessions import (
    Process,
    ProcessOutput,
    WatchChange,
    WatchSession,
)

from distant.client.api import DistantApi
from distant.client.functions import bind_functions

__all__ = [
    # Config
    "ApiSettings",
    "load_settings",
    # Protocol
    "NULL",
    "Message",
    "Event",
    "DistantError",
    "ValidationError",
    "ProtocolError",
    "RemoteError",
    "TimeoutError",
    "SessionError",
    "TransportError",
    "MessageSchema",
    "parse_response",
    # Transport
    "Transport",
    "StopHandle",
    "SendOptions",
    # Operations
    "CallOptions",
    "Intercepted",
    "Interceptor",
    "Operation",
    "OperationDescriptor",
    "OperationResult",
    "Poller",
    "ResultChannel",
    # Sessions
    "Process",
    "ProcessOutput",
    "WatchChange",
    "WatchSession",
    # API
    "DistantApi",
    "bind_functions",
]
