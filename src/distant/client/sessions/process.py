"""Process sessions driven by the spawn event stream."""

from __future__ import annotations

import logging
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
from distant.client.operations.poll import Poller
from distant.client.protocol.errors import ProtocolError, SessionError
from distant.client.protocol.response import OK
from distant.client.protocol.schema import optional
from distant.client.transport.base import StopHandle, Transport

logger = logging.getLogger(__name__)

# Spawn event tags
PROC_SPAWNED = "proc_spawned"
PROC_STDOUT = "proc_stdout"
PROC_STDERR = "proc_stderr"
PROC_DONE = "proc_done"

SPAWN_RESULT_TYPES = (PROC_SPAWNED, PROC_STDOUT, PROC_STDERR, PROC_DONE)

# Status recorded when a done event does not carry one
DEFAULT_DONE_STATUS = "exited"

PROC_STDIN = OperationDescriptor.define(
    "proc_stdin",
    OK,
    request={
        "id": ("number", "string"),
        "data": ("bytes", "string"),
    },
)

PROC_KILL = OperationDescriptor.define(
    "proc_kill",
    OK,
    request={
        "id": ("number", "string"),
    },
)

SPAWN_REQUEST = {
    "cmd": "string",
    "args": optional("list"),
    "persist": optional("boolean"),
    "pty": optional("mapping"),
}


@dataclass
class ProcessOutput:
    """Collected result of a finished process."""

    success: bool
    exit_code: int | None
    status: str | None
    stdout: list[Any] = field(default_factory=list)
    stderr: list[Any] = field(default_factory=list)


@dataclass
class ProcessEvent:
    """A spawn stream event after mapping."""

    type: str
    data: Any = None
    process: "Process | None" = None


class Process:
    """
    Handle to a spawned remote process.

    Output chunks are buffered locally as events arrive; reads drain the
    buffer so no chunk is returned twice.
    """

    def __init__(
        self,
        raw_id: Any,
        stop: StopHandle | None,
        registry: dict[str, "Process"],
        transport: Transport,
        settings: ApiSettings,
    ):
        self.id = str(raw_id)
        self.stop = stop
        self.status: str | None = None
        self.exit_code: int | None = None
        self.success: bool | None = None

        self._raw_id = raw_id
        self._registry = registry
        self._stdout: list[Any] = []
        self._stderr: list[Any] = []
        self._write_stdin = Operation(transport, PROC_STDIN, settings)
        self._kill = Operation(transport, PROC_KILL, settings)
        self._poll = Poller(settings)

    def is_active(self) -> bool:
        """Whether the process is still tracked by its client."""
        return self._registry.get(self.id) is self

    def is_done(self) -> bool:
        """Whether a terminal status has been recorded."""
        return self.status is not None

    async def write_stdin(
        self,
        data: bytes | str,
        options: Any = None,
        callback: Callback | None = None,
    ) -> OperationResult:
        """Send ``data`` to the process's stdin."""
        options, callback = split_call_args(options, callback)
        if self.is_done():
            return self._finished("write to", callback)
        return await self._write_stdin({"id": self._raw_id, "data": data}, options, callback)

    async def read_stdout(self, options: Any = None, callback: Callback | None = None) -> OperationResult:
        """Wait for buffered stdout chunks and drain them."""
        return await self._poll(lambda: self._drain("_stdout"), options, callback)

    async def read_stderr(self, options: Any = None, callback: Callback | None = None) -> OperationResult:
        """Wait for buffered stderr chunks and drain them."""
        return await self._poll(lambda: self._drain("_stderr"), options, callback)

    async def wait(self, options: Any = None, callback: Callback | None = None) -> OperationResult:
        """
        Wait for the process to finish.

        The first poll that observes a terminal status removes the process
        from its client's registry and resolves with this handle.
        """
        return await self._poll(self._check_done, options, callback)

    async def kill(self, options: Any = None, callback: Callback | None = None) -> OperationResult:
        """Ask the remote peer to kill the process."""
        options, callback = split_call_args(options, callback)
        if self.is_done():
            return self._finished("kill", callback)
        return await self._kill({"id": self._raw_id}, options, callback)

    def output(self) -> ProcessOutput:
        """Drain both buffers into a ``ProcessOutput``."""
        return ProcessOutput(
            success=bool(self.success),
            exit_code=self.exit_code,
            status=self.status,
            stdout=self._drain("_stdout") or [],
            stderr=self._drain("_stderr") or [],
        )

    def _finished(self, action: str, callback: Callback | None) -> OperationResult:
        error = SessionError(f"Cannot {action} process {self.id}: already {self.status}")
        if callback is not None:
            invoke_callback(callback, error)
            return OperationResult()
        return OperationResult(error)

    def _drain(self, buffer: str) -> list[Any] | None:
        chunks = getattr(self, buffer)
        if not chunks:
            return None
        setattr(self, buffer, [])
        return chunks

    def _check_done(self) -> "Process | None":
        if self.status is None:
            return None
        if self._registry.get(self.id) is self:
            del self._registry[self.id]
        return self

    def _append(self, buffer: str, chunks: Any) -> None:
        if isinstance(chunks, list):
            getattr(self, buffer).extend(chunks)
        elif chunks is not None:
            getattr(self, buffer).append(chunks)

    def _finish(self, data: dict[str, Any]) -> None:
        self.status = data.get("status") or DEFAULT_DONE_STATUS
        self.exit_code = data.get("code")
        success = data.get("success")
        self.success = bool(success) if success is not None else self.exit_code == 0

    def __repr__(self) -> str:
        return f"Process(id={self.id}, status={self.status}, exit_code={self.exit_code})"


class ProcessSessions(Interceptor):
    """
    Registry of live processes for one client.

    Maps spawn events into ``ProcessEvent`` values, creating a ``Process``
    on ``proc_spawned``, and routes the rest of the stream into the matching
    process's buffers.
    """

    def __init__(self, transport: Transport, settings: ApiSettings | None = None):
        """
        Initialize process registry.

        Args:
            transport: Transport bound into each process's sub-operations.
            settings: Defaults for timeouts and poll intervals.
        """
        self.transport = transport
        self.settings = settings or ApiSettings()
        self._processes: dict[str, Process] = {}
        self.descriptor = OperationDescriptor.define(
            "proc_spawn",
            SPAWN_RESULT_TYPES,
            request=SPAWN_REQUEST,
            multi=True,
            map=self.map_event,
            interceptor=self,
        )

    def __len__(self) -> int:
        return len(self._processes)

    def __contains__(self, process_id: object) -> bool:
        return str(process_id) in self._processes

    def get(self, process_id: Any) -> Process | None:
        """Look up a live process by id."""
        return self._processes.get(str(process_id))

    def map_event(self, data: Any, tag: str, stop: StopHandle | None) -> ProcessEvent:
        """Map one spawn stream event, registering new processes."""
        if tag != PROC_SPAWNED:
            return ProcessEvent(type=tag, data=data)

        if not isinstance(data, dict) or data.get("id") is None:
            raise ProtocolError.malformed(tag, "missing process id")

        process = Process(data["id"], stop, self._processes, self.transport, self.settings)
        if process.id in self._processes:
            logger.warning(f"Replacing live process {process.id} with a new spawn")
        self._processes[process.id] = process
        logger.debug(f"Registered process {process.id}")
        return ProcessEvent(type=tag, data=data, process=process)

    def intercept(self, result: Intercepted, forward: Callback) -> None:
        if result.error is not None:
            forward(result.error, None, result.stop)
            return

        event: ProcessEvent = result.data
        if event.type == PROC_SPAWNED:
            forward(None, event.process, result.stop)
            return

        data = event.data or {}
        process = self._processes.get(str(data.get("id")))
        if process is None:
            logger.debug(f"Dropping {event.type} for unknown process {data.get('id')}")
            return

        if event.type == PROC_DONE:
            process._finish(data)
            logger.debug(f"Process {process.id} finished with {process.status} ({process.exit_code})")
            if result.stop is not None:
                result.stop()
        elif event.type == PROC_STDOUT:
            process._append("_stdout", data.get("data"))
        elif event.type == PROC_STDERR:
            process._append("_stderr", data.get("data"))
