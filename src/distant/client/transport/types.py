"""Transport layer types."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class SendOptions:
    """Options handed to a transport alongside one batch of messages."""

    multi: bool = False
    """Whether the batch expects a stream of events rather than one."""

    timeout: float | None = None
    """Caller's timeout budget in seconds, if any."""

    extra: dict[str, Any] = field(default_factory=dict)
    """Transport-specific options passed through from the caller."""
