"""Abstract base transport and subscription stop handles."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from distant.client.protocol.messages import Event, Message
from distant.client.transport.types import SendOptions


class StopHandle:
    """
    Capability that ends event delivery for one subscription.

    Transports create one per dispatched batch and hand it to every event of
    that batch. Stopping is idempotent: only the first call reaches the
    underlying unsubscribe function.
    """

    def __init__(self, unsubscribe: Callable[[], None] | None = None):
        self._unsubscribe = unsubscribe
        self._stopped = False

    @property
    def stopped(self) -> bool:
        """Whether the subscription has been stopped."""
        return self._stopped

    def stop(self) -> None:
        """Stop receiving events for this subscription."""
        if self._stopped:
            return
        self._stopped = True
        if self._unsubscribe is not None:
            self._unsubscribe()

    def __call__(self) -> None:
        self.stop()

    def __repr__(self) -> str:
        return f"StopHandle(stopped={self._stopped})"


# Handler the core passes to Transport.send for each received event
EventHandler = Callable[[Event, StopHandle], None]


class Transport(ABC):
    """
    Abstract base class for distant transports.

    A transport owns the connection, framing and correlation ids. The client
    only submits batches and receives the events each batch produces.
    """

    @abstractmethod
    async def send(
        self,
        messages: list[Message],
        options: SendOptions,
        on_event: EventHandler,
    ) -> None:
        """
        Dispatch a batch of messages.

        ``on_event`` is invoked from the event loop once per received event
        (or, for ``options.multi``, until the subscription is stopped) with
        the event and the batch's stop handle.

        Args:
            messages: Validated messages sent as one batch.
            options: Multiplicity flag plus caller options.
            on_event: Per-event handler.

        Raises:
            Exception: Any failure to dispatch; reported to the caller as a
                ``TransportError``.
        """
        pass
