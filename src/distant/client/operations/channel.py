"""Blocking result channel.

Bridges one asynchronous resolution into an awaitable wait bounded by a
timeout. Awaiting the channel yields to the event loop, so the event that
resolves it keeps being delivered.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, NamedTuple, TYPE_CHECKING

from distant.client.protocol.errors import DistantError, TimeoutError

if TYPE_CHECKING:
    from distant.client.transport.base import StopHandle

logger = logging.getLogger(__name__)

# (error, value, stop) -> None
Callback = Callable[[DistantError | None, Any, "StopHandle | None"], None]


class OperationResult(NamedTuple):
    """Result of an operation: ``err, value, stop = await op(...)``."""

    error: DistantError | None = None
    value: Any = None
    stop: "StopHandle | None" = None

    @property
    def ok(self) -> bool:
        """Whether the operation succeeded."""
        return self.error is None


def invoke_callback(
    callback: Callback,
    error: DistantError | None = None,
    value: Any = None,
    stop: "StopHandle | None" = None,
) -> None:
    """Invoke a caller's callback, logging anything it raises."""
    try:
        callback(error, value, stop)
    except Exception:
        logger.exception(f"Callback {callback!r} raised")


class ResultChannel:
    """
    Single-assignment result slot with a timeout watchdog.

    The first ``resolve`` wins; later ones are dropped. If nothing resolves
    the channel within ``timeout`` seconds, it resolves itself with a
    ``TimeoutError``. A ``timeout`` of ``None`` disables the watchdog.
    """

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout
        self._loop = asyncio.get_running_loop()
        self._future: asyncio.Future[OperationResult] = self._loop.create_future()
        self._watchdog: asyncio.TimerHandle | None = None
        if timeout is not None:
            self._watchdog = self._loop.call_later(timeout, self._expire)

    @property
    def resolved(self) -> bool:
        """Whether a result has been assigned."""
        return self._future.done()

    def resolve(
        self,
        error: DistantError | None = None,
        value: Any = None,
        stop: "StopHandle | None" = None,
    ) -> bool:
        """
        Assign the result if none has been assigned yet.

        Returns:
            True if this call assigned the result.
        """
        if self._future.done():
            logger.debug("Dropping resolution of an already resolved channel")
            return False

        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None
        self._future.set_result(OperationResult(error, value, stop))
        return True

    def on_resolved(self, callback: Callback) -> None:
        """Invoke ``callback(error, value, stop)`` once the channel resolves."""
        self._future.add_done_callback(
            lambda future: invoke_callback(callback, *future.result())
        )

    async def wait(self) -> OperationResult:
        """Suspend until the channel resolves and return its result."""
        return await asyncio.shield(self._future)

    def _expire(self) -> None:
        self._watchdog = None
        if self.resolve(TimeoutError.after(self.timeout)):
            logger.debug(f"Channel timed out after {self.timeout}s")
