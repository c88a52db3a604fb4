"""Error types reported by distant operations.

Errors are handed to callers as values (the first element of an operation
result or the first callback argument), never raised across the event loop.
"""

from dataclasses import dataclass
from typing import Any

# Fixed texts for malformed error responses
MISSING_DESCRIPTION = "Error response received without description"
MISSING_PAYLOAD = "Error response received without data payload"


@dataclass
class DistantError(Exception):
    """
    Base error for the distant client.

    ``str(err)`` is the human readable message, so remote descriptions pass
    through verbatim.
    """

    message: str
    data: dict[str, Any] | None = None

    def __post_init__(self):
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, data={self.data})"


@dataclass
class ValidationError(DistantError):
    """A message did not match its declared schema. Never transmitted."""

    field: str | None = None

    @classmethod
    def invalid_field(cls, field: str, details: str) -> "ValidationError":
        """Create an error for one bad field."""
        return cls(
            message=f"[INVALID MSG] Validation failed for field '{field}': {details}",
            data={"field": field, "details": details},
            field=field,
        )

    @classmethod
    def type_mismatch(cls, expected: str, received: str) -> "ValidationError":
        """Create an error for a message carrying the wrong tag."""
        return cls(
            message=f"[INVALID MSG] Expected {expected} but got {received}",
            data={"expected": expected, "received": received},
            field="type",
        )


@dataclass
class ProtocolError(DistantError):
    """A response could not be interpreted."""

    @classmethod
    def unexpected_type(cls, received: str, expected: tuple[str, ...]) -> "ProtocolError":
        """Create an error for a response tag outside the expected set."""
        return cls(
            message=f"Received invalid response of type {received}, wanted {list(expected)!r}",
            data={"received": received, "expected": list(expected)},
        )

    @classmethod
    def missing_description(cls) -> "ProtocolError":
        """Create an error for an error response without a description."""
        return cls(message=MISSING_DESCRIPTION)

    @classmethod
    def missing_payload(cls) -> "ProtocolError":
        """Create an error for an error response without data."""
        return cls(message=MISSING_PAYLOAD)

    @classmethod
    def malformed(cls, received: str, reason: str) -> "ProtocolError":
        """Create an error for a response that could not be handled."""
        return cls(
            message=f"Malformed {received} response: {reason}",
            data={"received": received},
        )


@dataclass
class RemoteError(DistantError):
    """The remote peer reported a failure."""

    kind: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "RemoteError":
        """Create from an error response's data payload."""
        return cls(
            message=str(payload["description"]),
            data=payload,
            kind=payload.get("kind"),
        )


@dataclass
class TimeoutError(DistantError):
    """A blocking call was not resolved within its budget."""

    timeout: float | None = None

    @classmethod
    def after(cls, seconds: float) -> "TimeoutError":
        """Create a timeout error for the given budget."""
        return cls(
            message=f"Request timed out after {seconds}s",
            data={"timeout": seconds},
            timeout=seconds,
        )


@dataclass
class SessionError(DistantError):
    """Local session bookkeeping failed (unknown watch path, finished process)."""


@dataclass
class TransportError(DistantError):
    """The transport refused or failed to dispatch a batch."""

    cause: Exception | None = None

    @classmethod
    def from_exception(cls, exc: Exception) -> "TransportError":
        """Wrap an exception raised by a transport."""
        return cls(message=f"Transport failed to send: {exc}", cause=exc)
