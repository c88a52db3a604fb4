"""Response classification."""

from __future__ import annotations

from typing import Any, Callable, Iterable, NamedTuple, TYPE_CHECKING

from distant.client.protocol.errors import DistantError, ProtocolError, RemoteError
from distant.client.protocol.messages import Event, normalize

if TYPE_CHECKING:
    from distant.client.transport.base import StopHandle

OK = "ok"
ERROR = "error"

# (data, tag, stop) -> mapped value
MapFn = Callable[[Any, str, "StopHandle | None"], Any]


class Parsed(NamedTuple):
    """Outcome of classifying one response event."""

    error: DistantError | None
    value: Any


def expected_tags(expected: str | Iterable[str]) -> tuple[str, ...]:
    """Normalize one tag or a collection of tags into a tuple."""
    if isinstance(expected, str):
        return (expected,)
    return tuple(expected)


def _identity(data: Any, tag: str, stop: "StopHandle | None") -> Any:
    return data


def parse_response(
    payload: Event | dict[str, Any],
    expected: str | Iterable[str],
    map_fn: MapFn | None = None,
    stop: "StopHandle | None" = None,
) -> Parsed:
    """
    Classify one response payload against the expected result tags.

    The payload is normalized first so ``map_fn`` never observes the wire
    null sentinel.

    Args:
        payload: The response event (or its wire dict).
        expected: Accepted result tag or tags.
        map_fn: Transform applied to successful data.
        stop: Stop handle of the subscription, passed to ``map_fn``.

    Returns:
        ``Parsed(error, value)``; exactly one of them is meaningful.
    """
    if isinstance(payload, Event):
        payload = payload.to_dict()
    payload = normalize(payload)

    tags = expected_tags(expected)
    map_fn = map_fn or _identity
    tag = payload.get("type")
    data = payload.get("data")

    if tag in tags and tag == OK:
        return Parsed(None, map_fn(True, tag, stop))
    if tag in tags:
        return Parsed(None, map_fn(data, tag, stop))
    if tag == ERROR and isinstance(data, dict) and data.get("description") is not None:
        return Parsed(RemoteError.from_payload(data), None)
    if tag == ERROR and data is not None:
        return Parsed(ProtocolError.missing_description(), None)
    if tag == ERROR:
        return Parsed(ProtocolError.missing_payload(), None)
    return Parsed(ProtocolError.unexpected_type(str(tag), tags), None)
