"""Tagged wire message types for the distant protocol."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


class _Null:
    """Wire-level explicit null, distinct from Python's ``None``."""

    _instance: "_Null | None" = None

    def __new__(cls) -> "_Null":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NULL"


NULL = _Null()


@dataclass
class Message:
    """
    Outgoing request message.

    The ``type`` tag names the remote operation and ``data`` carries its
    fields.
    """

    type: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to wire dict."""
        return {"type": self.type, "data": dict(self.data)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], default_type: str | None = None) -> "Message":
        """
        Create from a dict.

        Accepts either the wire shape ``{"type": ..., "data": {...}}`` or a
        flat mapping of fields, where a ``"type"`` key (if any) is the tag
        and every other key is a field.

        Args:
            data: The mapping to convert.
            default_type: Tag used when the mapping does not carry one.

        Raises:
            TypeError: If no tag can be determined.
        """
        if set(data.keys()) <= {"type", "data"} and isinstance(data.get("data"), Mapping):
            msg_type = data.get("type", default_type)
            fields = dict(data["data"])
        else:
            msg_type = data.get("type", default_type)
            fields = {k: v for k, v in data.items() if k != "type"}

        if msg_type is None:
            raise TypeError("Message has no type tag")
        return cls(type=msg_type, data=fields)

    def __str__(self) -> str:
        return f"Message({self.type})"


@dataclass
class Event:
    """
    Incoming response event.

    ``data`` is ``None`` when the peer sent a bare tag (e.g. ``ok``).
    """

    type: str
    data: Any = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Event":
        """Create from wire dict."""
        return cls(type=data["type"], data=data.get("data"))

    def to_dict(self) -> dict[str, Any]:
        """Convert to wire dict."""
        return {"type": self.type, "data": self.data}

    def __str__(self) -> str:
        return f"Event({self.type})"


def normalize(value: Any) -> Any:
    """
    Deep copy ``value`` with every wire null replaced by true absence.

    Mapping entries holding ``NULL`` (or ``None``) are dropped; sequence
    elements holding ``NULL`` become ``None`` so positions are preserved.
    """
    if isinstance(value, Mapping):
        return {
            key: normalize(item)
            for key, item in value.items()
            if item is not NULL and item is not None
        }
    if isinstance(value, (list, tuple)):
        return [None if item is NULL else normalize(item) for item in value]
    if value is NULL:
        return None
    return value


def to_messages(
    request: Message | Mapping[str, Any] | list | tuple,
    default_type: str | None = None,
) -> list[Message]:
    """
    Normalize one request or a batch of requests into a list of messages.

    Args:
        request: A message, a mapping, or a list/tuple of either.
        default_type: Tag applied to mappings that do not carry one.

    Raises:
        TypeError: If an item is neither a message nor a mapping.
    """
    items = list(request) if isinstance(request, (list, tuple)) else [request]
    messages: list[Message] = []
    for item in items:
        if isinstance(item, Message):
            messages.append(item)
        elif isinstance(item, Mapping):
            messages.append(Message.from_dict(item, default_type))
        else:
            raise TypeError(f"Cannot send {type(item).__name__} as a message")
    return messages
