"""Filesystem watch sessions."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from distant.client.config import ApiSettings
from distant.client.operations.channel import Callback, OperationResult, invoke_callback
from distant.client.operations.factory import (
    Intercepted,
    Interceptor,
    Operation,
    OperationDescriptor,
)
from distant.client.operations.options import split_call_args
from distant.client.protocol.errors import SessionError
from distant.client.protocol.response import OK
from distant.client.protocol.schema import optional
from distant.client.transport.base import StopHandle, Transport

logger = logging.getLogger(__name__)

CHANGED = "changed"

WATCH_REQUEST = {
    "path": "string",
    "recursive": optional("boolean"),
    "only": optional("list"),
    "except": optional("list"),
}

UNWATCH = OperationDescriptor.define(
    "unwatch",
    OK,
    request={"path": "string"},
)


@dataclass
class WatchSession:
    """An acknowledged watch on one path."""

    path: str
    stop: StopHandle | None = None


@dataclass
class WatchChange:
    """A change reported under a watched path."""

    path: str
    """The watched path."""

    kind: str | None = None
    """Kind of change (create, modify, remove, ...)."""

    paths: list[str] = field(default_factory=list)
    """Paths affected by the change."""


@dataclass
class WatchEvent:
    """A watch stream event after mapping."""

    type: str
    data: Any = None


def _map_event(data: Any, tag: str, stop: StopHandle | None) -> WatchEvent:
    return WatchEvent(type=tag, data=data)


class WatchSessions(Interceptor):
    """
    Registry of watched paths for one client.

    ``watch`` registers a session when the peer acknowledges it and keeps
    forwarding change events; ``unwatch`` stops and removes the session.
    """

    def __init__(self, transport: Transport, settings: ApiSettings | None = None):
        self.settings = settings or ApiSettings()
        self._watches: dict[str, WatchSession] = {}
        self.descriptor = OperationDescriptor.define(
            "watch",
            (OK, CHANGED),
            request=WATCH_REQUEST,
            multi=True,
            map=_map_event,
            interceptor=self,
        )
        self._watch = Operation(transport, self.descriptor, self.settings)
        self._unwatch = Operation(transport, UNWATCH, self.settings)

    def __len__(self) -> int:
        return len(self._watches)

    def __contains__(self, path: object) -> bool:
        return path in self._watches

    def get(self, path: str) -> WatchSession | None:
        """Look up the session watching ``path``."""
        return self._watches.get(path)

    async def watch(
        self,
        request: str | Mapping[str, Any],
        options: Any = None,
        callback: Callback | None = None,
    ) -> OperationResult:
        """
        Watch a path for changes.

        ``request`` is a path or a ``{path, recursive?, only?, except?}``
        mapping. The callback receives the ``WatchSession`` once the watch is
        acknowledged, then a ``WatchChange`` for every change. A blocking call
        returns the session.
        """
        if isinstance(request, str):
            request = {"path": request}
        return await self._watch(request, options, callback)

    async def unwatch(
        self,
        request: str | Mapping[str, Any],
        options: Any = None,
        callback: Callback | None = None,
    ) -> OperationResult:
        """
        Stop watching a path.

        Local delivery ends immediately; the peer is then asked to release
        its watcher and its answer is reported.
        """
        options, callback = split_call_args(options, callback)
        path = request if isinstance(request, str) else request.get("path")

        session = self._watches.pop(path, None)
        if session is None:
            error = SessionError(f"No watch registered for {path}")
            if callback is not None:
                invoke_callback(callback, error)
                return OperationResult()
            return OperationResult(error)

        if session.stop is not None:
            session.stop()
        logger.debug(f"Removed watch on {path}")
        return await self._unwatch({"path": path}, options, callback)

    def intercept(self, result: Intercepted, forward: Callback) -> None:
        path = result.messages[0].data.get("path") if result.messages else None

        if result.error is not None:
            session = self._watches.get(path)
            if session is not None and session.stop is result.stop:
                del self._watches[path]
                logger.debug(f"Removed watch on {path} after error: {result.error}")
            if result.stop is not None:
                result.stop()
            forward(result.error, None, result.stop)
            return

        event: WatchEvent = result.data

        if event.type == OK:
            existing = self._watches.get(path)
            if existing is not None and existing.stop is not None and existing.stop is not result.stop:
                logger.debug(f"Replacing existing watch on {path}")
                existing.stop()
            session = WatchSession(path=path, stop=result.stop)
            self._watches[path] = session
            forward(None, session, result.stop)
        elif event.type == CHANGED:
            data = event.data or {}
            change = WatchChange(
                path=path,
                kind=data.get("kind"),
                paths=list(data.get("paths") or []),
            )
            forward(None, change, result.stop)
