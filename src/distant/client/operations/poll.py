"""Polling accessor for locally buffered session state."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from distant.client.config import ApiSettings
from distant.client.operations.channel import Callback, OperationResult, ResultChannel
from distant.client.operations.options import split_call_args


class Poller:
    """
    Evaluates a predicate on a repeating timer until it yields a value.

    The first truthy value resolves the call. Blocking calls are bounded by
    the timeout budget; callback calls poll until the predicate holds unless
    an explicit ``timeout`` option is given.
    """

    def __init__(self, settings: ApiSettings | None = None):
        self.settings = settings or ApiSettings()

    async def __call__(
        self,
        check: Callable[[], Any],
        options: Any = None,
        callback: Callback | None = None,
    ) -> OperationResult:
        options, callback = split_call_args(options, callback)
        interval = options.interval if options.interval is not None else self.settings.timeout_interval
        timeout = options.timeout
        if timeout is None and callback is None:
            timeout = self.settings.max_timeout

        channel = ResultChannel(timeout)
        task = asyncio.ensure_future(self._run(check, interval, channel))
        channel.on_resolved(lambda *_: task.cancel())

        if callback is not None:
            channel.on_resolved(callback)
            return OperationResult()
        return await channel.wait()

    @staticmethod
    async def _run(check: Callable[[], Any], interval: float, channel: ResultChannel) -> None:
        while not channel.resolved:
            value = check()
            if value:
                channel.resolve(None, value)
                return
            await asyncio.sleep(interval)
