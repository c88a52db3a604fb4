"""
Distant protocol core.

Tagged message types, local schema validation, and response
classification.
"""

from distant.client.protocol.messages import (
    NULL,
    Message,
    Event,
    normalize,
    to_messages,
)
from distant.client.protocol.errors import (
    DistantError,
    ValidationError,
    ProtocolError,
    RemoteError,
    TimeoutError,
    SessionError,
    TransportError,
)
from distant.client.protocol.schema import (
    FieldSpec,
    MessageSchema,
    optional,
    validate_message,
)
from distant.client.protocol.response import (
    OK,
    ERROR,
    Parsed,
    parse_response,
)

__all__ = [
    # Messages
    "NULL",
    "Message",
    "Event",
    "normalize",
    "to_messages",
    # Errors
    "DistantError",
    "ValidationError",
    "ProtocolError",
    "RemoteError",
    "TimeoutError",
    "SessionError",
    "TransportError",
    # Schemas
    "FieldSpec",
    "MessageSchema",
    "optional",
    "validate_message",
    # Responses
    "OK",
    "ERROR",
    "Parsed",
    "parse_response",
]
