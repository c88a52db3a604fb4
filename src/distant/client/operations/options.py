"""Per-call options and calling-convention helpers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from distant.client.config import ApiSettings

# Keys of an options mapping that are not passed through to the transport
_KNOWN_KEYS = ("timeout", "interval", "multi")


@dataclass
class CallOptions:
    """
    Options for a single operation call.

    Unset values fall back field by field to the client settings when the
    call is made.
    """

    timeout: float | None = None
    """Budget in seconds for a blocking call."""

    interval: float | None = None
    """Poll interval in seconds for polling accessors."""

    multi: bool | None = None
    """Override of the operation's multiplicity flag."""

    extra: dict[str, Any] = field(default_factory=dict)
    """Anything else, passed through to the transport untouched."""

    @classmethod
    def coerce(cls, options: "CallOptions | Mapping[str, Any] | None") -> "CallOptions":
        """
        Build from ``None``, a mapping, or an existing instance.

        Raises:
            TypeError: If ``options`` is none of those.
        """
        if options is None:
            return cls()
        if isinstance(options, CallOptions):
            return options
        if isinstance(options, Mapping):
            return cls(
                timeout=options.get("timeout"),
                interval=options.get("interval"),
                multi=options.get("multi"),
                extra={k: v for k, v in options.items() if k not in _KNOWN_KEYS},
            )
        raise TypeError(f"options must be a mapping or CallOptions, not {type(options).__name__}")

    def resolve(self, settings: ApiSettings) -> "CallOptions":
        """Return a copy with timeout and interval defaulted from ``settings``."""
        return replace(
            self,
            timeout=self.timeout if self.timeout is not None else settings.max_timeout,
            interval=self.interval if self.interval is not None else settings.timeout_interval,
            extra=dict(self.extra),
        )


def split_call_args(
    options: Any,
    callback: Callable[..., Any] | None,
) -> tuple[CallOptions, Callable[..., Any] | None]:
    """
    Apply the argument shift of ``op(request, callback)``.

    A callable passed in the options position is taken as the callback when
    no explicit callback was given.

    Raises:
        TypeError: If the callback is not callable.
    """
    if callable(options) and callback is None:
        callback, options = options, None
    if callback is not None and not callable(callback):
        raise TypeError(f"callback must be callable, not {type(callback).__name__}")
    return CallOptions.coerce(options), callback
