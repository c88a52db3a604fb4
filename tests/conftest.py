"""Pytest configuration and fixtures."""

import asyncio
from typing import Any

import pytest

from distant.client.api import DistantApi
from distant.client.config import ApiSettings
from distant.client.protocol.messages import Event, Message
from distant.client.transport.base import EventHandler, StopHandle, Transport
from distant.client.transport.types import SendOptions

# Enable async tests without marking each one
pytest_plugins = ["pytest_asyncio"]


class Subscription:
    """One dispatched batch as seen by the fake transport."""

    def __init__(self, messages: list[Message], options: SendOptions, on_event: EventHandler):
        self.messages = messages
        self.options = options
        self.on_event = on_event
        self.unsubscribe_count = 0
        self.stop_handle = StopHandle(self._unsubscribe)

    @property
    def active(self) -> bool:
        return not self.stop_handle.stopped

    def _unsubscribe(self) -> None:
        self.unsubscribe_count += 1

    def emit(self, type: str, data: Any = None) -> bool:
        """Deliver an event unless the subscription was stopped."""
        if not self.active:
            return False
        self.on_event(Event(type=type, data=data), self.stop_handle)
        return True


class FakeTransport(Transport):
    """
    Scripted in-memory transport.

    Records every batch; events queued with ``respond_with`` are delivered
    from the event loop after the next ``send`` returns.
    """

    def __init__(self):
        self.subscriptions: list[Subscription] = []
        self.fail_with: Exception | None = None
        self._scripts: list[list[Event]] = []

    @property
    def send_count(self) -> int:
        return len(self.subscriptions)

    @property
    def last(self) -> Subscription:
        return self.subscriptions[-1]

    def respond_with(self, *events: Event) -> None:
        """Queue events for the next dispatched batch."""
        self._scripts.append(list(events))

    async def send(self, messages, options, on_event) -> None:
        if self.fail_with is not None:
            raise self.fail_with

        subscription = Subscription(messages, options, on_event)
        self.subscriptions.append(subscription)

        if self._scripts:
            loop = asyncio.get_running_loop()
            for event in self._scripts.pop(0):
                loop.call_soon(subscription.emit, event.type, event.data)


async def settle(rounds: int = 5) -> None:
    """Let pending event loop callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def transport():
    """A fresh scripted transport."""
    return FakeTransport()


@pytest.fixture
def settings():
    """Short timeouts so blocking calls fail fast."""
    return ApiSettings(max_timeout=0.5, timeout_interval=0.01)


@pytest.fixture
def api(transport, settings):
    """API surface over the scripted transport."""
    return DistantApi(transport, settings)


@pytest.fixture
def run_loop():
    """Coroutine that lets pending event loop callbacks run."""
    return settle
