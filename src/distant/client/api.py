"""Distant client API surface."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Mapping

from distant.client.config import ApiSettings
from distant.client.operations.channel import Callback, OperationResult, invoke_callback
from distant.client.operations.factory import Operation, OperationDescriptor
from distant.client.operations.options import CallOptions, split_call_args
from distant.client.protocol.response import OK
from distant.client.protocol.schema import optional
from distant.client.sessions.process import ProcessSessions
from distant.client.sessions.watch import WatchSessions
from distant.client.transport.base import Transport


APPEND_FILE = OperationDescriptor.define(
    "file_append",
    OK,
    request={"path": "string", "data": "bytes"},
)

APPEND_FILE_TEXT = OperationDescriptor.define(
    "file_append_text",
    OK,
    request={"path": "string", "text": "string"},
)

COPY = OperationDescriptor.define(
    "copy",
    OK,
    request={"src": "string", "dst": "string"},
)

CREATE_DIR = OperationDescriptor.define(
    "dir_create",
    OK,
    request={"path": "string", "all": optional("boolean")},
)

EXISTS = OperationDescriptor.define(
    "exists",
    "exists",
    request={"path": "string"},
    response={"value": "boolean"},
)

METADATA = OperationDescriptor.define(
    "metadata",
    "metadata",
    request={
        "path": "string",
        "canonicalize": optional("boolean"),
        "resolve_file_type": optional("boolean"),
    },
    response={
        "canonicalized_path": optional("string"),
        "file_type": "string",
        "len": "number",
        "readonly": "boolean",
        "accessed": optional("number"),
        "created": optional("number"),
        "modified": optional("number"),
        "unix": optional("mapping"),
        "windows": optional("mapping"),
    },
)

READ_DIR = OperationDescriptor.define(
    "dir_read",
    "dir_entries",
    request={
        "path": "string",
        "depth": optional("number"),
        "absolute": optional("boolean"),
        "canonicalize": optional("boolean"),
        "include_root": optional("boolean"),
    },
    response={"entries": "list", "errors": "list"},
)

READ_FILE = OperationDescriptor.define(
    "file_read",
    "blob",
    request={"path": "string"},
    response={"data": "bytes"},
)

READ_FILE_TEXT = OperationDescriptor.define(
    "file_read_text",
    "text",
    request={"path": "string"},
    response={"data": "string"},
)

REMOVE = OperationDescriptor.define(
    "remove",
    OK,
    request={"path": "string", "force": optional("boolean")},
)

RENAME = OperationDescriptor.define(
    "rename",
    OK,
    request={"src": "string", "dst": "string"},
)

SYSTEM_INFO = OperationDescriptor.define(
    "system_info",
    "system_info",
    response={
        "family": "string",
        "os": "string",
        "arch": "string",
        "current_dir": "string",
        "main_separator": "string",
    },
)

WRITE_FILE = OperationDescriptor.define(
    "file_write",
    OK,
    request={"path": "string", "data": "bytes"},
)

WRITE_FILE_TEXT = OperationDescriptor.define(
    "file_write_text",
    OK,
    request={"path": "string", "text": "string"},
)


class DistantApi:
    """
    Typed operations over a distant transport.

    Every operation supports both calling conventions:

        err, value, stop = await api.exists({"path": "/tmp"})
        await api.exists({"path": "/tmp"}, callback)

    Process and watch registries are owned by this instance and only
    reachable through the operations it exposes.
    """

    def __init__(self, transport: Transport, settings: ApiSettings | None = None):
        """
        Initialize API surface.

        Args:
            transport: Transport used by every operation.
            settings: Default timeout and poll interval, read at call time.
        """
        self.transport = transport
        self.settings = settings or ApiSettings()

        self._processes = ProcessSessions(transport, self.settings)
        self._watches = WatchSessions(transport, self.settings)
        self._tasks: set[asyncio.Task] = set()

        self.append_file = self._operation(APPEND_FILE)
        self.append_file_text = self._operation(APPEND_FILE_TEXT)
        self.copy = self._operation(COPY)
        self.create_dir = self._operation(CREATE_DIR)
        self.exists = self._operation(EXISTS)
        self.metadata = self._operation(METADATA)
        self.read_dir = self._operation(READ_DIR)
        self.read_file = self._operation(READ_FILE)
        self.read_file_text = self._operation(READ_FILE_TEXT)
        self.remove = self._operation(REMOVE)
        self.rename = self._operation(RENAME)
        self.spawn = self._operation(self._processes.descriptor)
        self.system_info = self._operation(SYSTEM_INFO)
        self.write_file = self._operation(WRITE_FILE)
        self.write_file_text = self._operation(WRITE_FILE_TEXT)
        self.watch = self._watches.watch
        self.unwatch = self._watches.unwatch

    @property
    def processes(self) -> ProcessSessions:
        """Live processes spawned through this API."""
        return self._processes

    @property
    def watches(self) -> WatchSessions:
        """Watched paths registered through this API."""
        return self._watches

    def _operation(self, descriptor: OperationDescriptor) -> Operation:
        return Operation(self.transport, descriptor, self.settings)

    async def spawn_wait(
        self,
        request: Mapping[str, Any],
        options: Any = None,
        callback: Callback | None = None,
    ) -> OperationResult:
        """
        Spawn a process and wait for it to finish.

        Resolves with a ``ProcessOutput`` holding the exit status and all
        output that was not read while the process ran.
        """
        options, callback = split_call_args(options, callback)
        if callback is None:
            return await self._spawn_wait(request, options)

        task = asyncio.ensure_future(self._spawn_wait(request, options))
        self._tasks.add(task)

        def done(t: asyncio.Task) -> None:
            self._tasks.discard(t)
            if not t.cancelled():
                invoke_callback(callback, *t.result())

        task.add_done_callback(done)
        return OperationResult()

    async def _spawn_wait(self, request: Mapping[str, Any], options: CallOptions) -> OperationResult:
        loop = asyncio.get_running_loop()
        budget = options.timeout if options.timeout is not None else self.settings.max_timeout
        deadline = loop.time() + budget

        err, process, stop = await self.spawn(request, replace(options, timeout=budget))
        if err is not None:
            return OperationResult(err)

        # Spawn and wait share one timeout budget
        remaining = max(deadline - loop.time(), 0.0)
        err, process, _ = await process.wait(replace(options, timeout=remaining))
        if err is not None:
            return OperationResult(err, None, stop)
        return OperationResult(None, process.output(), stop)
