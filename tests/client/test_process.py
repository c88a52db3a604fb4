"""Tests for process sessions."""

import asyncio
import time
from unittest.mock import MagicMock

import pytest

from distant.client import DistantApi
from distant.client.config import ApiSettings
from distant.client.protocol import (
    Event,
    ProtocolError,
    RemoteError,
    SessionError,
    TimeoutError,
    ValidationError,
)
from distant.client.sessions import Process, ProcessOutput


async def spawn(api, transport):
    """Spawn a process and deliver its spawned event."""
    transport.respond_with(Event("proc_spawned", {"id": 1}))
    err, process, stop = await api.spawn({"cmd": "echo", "args": ["hi"]})
    assert err is None
    return process, transport.last


class TestSpawn:
    """Tests for the spawn operation."""

    @pytest.mark.asyncio
    async def test_spawned_event_yields_handle(self, api, transport):
        process, subscription = await spawn(api, transport)

        assert isinstance(process, Process)
        assert process.id == "1"
        assert process.stop is subscription.stop_handle
        assert process.is_active()
        assert not process.is_done()
        assert "1" in api.processes
        assert subscription.options.multi is True

    @pytest.mark.asyncio
    async def test_callback_gets_handle_once(self, api, transport):
        callback = MagicMock()
        await api.spawn({"cmd": "ls"}, callback)
        subscription = transport.last

        subscription.emit("proc_spawned", {"id": 7})
        subscription.emit("proc_stdout", {"id": 7, "data": ["a"]})
        subscription.emit("proc_done", {"id": 7, "success": True, "code": 0})

        callback.assert_called_once()
        err, process, _ = callback.call_args.args
        assert err is None
        assert process.id == "7"
        assert process.is_done()

    @pytest.mark.asyncio
    async def test_remote_error_forwarded(self, api, transport):
        transport.respond_with(Event("error", {"kind": "not_found", "description": "no such cmd"}))

        err, process, _ = await api.spawn({"cmd": "nope"})

        assert isinstance(err, RemoteError)
        assert process is None
        assert len(api.processes) == 0

    @pytest.mark.asyncio
    async def test_invalid_request(self, api, transport):
        err, _, _ = await api.spawn({"cmd": "ls", "args": "-l"})

        assert isinstance(err, ValidationError)
        assert transport.send_count == 0


class TestProcessLifecycle:
    """Tests for buffered output and waiting."""

    @pytest.mark.asyncio
    async def test_stdout_drained_once(self, api, transport):
        process, subscription = await spawn(api, transport)

        subscription.emit("proc_stdout", {"id": 1, "data": ["hi"]})
        err, chunks, _ = await process.read_stdout()
        assert err is None
        assert chunks == ["hi"]

        err, chunks, _ = await process.read_stdout({"timeout": 0.05})
        assert isinstance(err, TimeoutError)
        assert chunks is None

    @pytest.mark.asyncio
    async def test_stderr_buffered_separately(self, api, transport):
        process, subscription = await spawn(api, transport)

        subscription.emit("proc_stderr", {"id": 1, "data": ["oops", "again"]})
        subscription.emit("proc_stdout", {"id": 1, "data": "single chunk"})

        assert (await process.read_stderr()).value == ["oops", "again"]
        assert (await process.read_stdout()).value == ["single chunk"]

    @pytest.mark.asyncio
    async def test_read_waits_for_output(self, api, transport, run_loop):
        process, subscription = await spawn(api, transport)
        callback = MagicMock()

        await process.read_stdout(callback)
        await run_loop()
        callback.assert_not_called()

        subscription.emit("proc_stdout", {"id": 1, "data": ["later"]})
        for _ in range(50):
            if callback.called:
                break
            await asyncio.sleep(0.01)

        callback.assert_called_once_with(None, ["later"], None)

    @pytest.mark.asyncio
    async def test_wait_removes_session(self, api, transport):
        process, subscription = await spawn(api, transport)

        subscription.emit("proc_done", {"id": 1, "status": "exited", "code": 0})
        assert not subscription.active
        assert "1" in api.processes

        err, done, _ = await process.wait()

        assert err is None
        assert done is process
        assert done.status == "exited"
        assert done.exit_code == 0
        assert done.success
        assert "1" not in api.processes
        assert not process.is_active()
        assert process.is_done()

    @pytest.mark.asyncio
    async def test_wait_times_out_while_running(self, api, transport):
        process, _ = await spawn(api, transport)

        err, _, _ = await process.wait({"timeout": 0.05})

        assert isinstance(err, TimeoutError)
        assert "1" in api.processes

    @pytest.mark.asyncio
    async def test_done_without_status_defaults(self, api, transport):
        process, subscription = await spawn(api, transport)

        subscription.emit("proc_done", {"id": 1, "success": False, "code": 2})
        await process.wait()

        assert process.status == "exited"
        assert process.exit_code == 2
        assert process.success is False

    @pytest.mark.asyncio
    async def test_events_for_removed_session_dropped(self, api, transport, caplog):
        process, subscription = await spawn(api, transport)
        subscription.emit("proc_done", {"id": 1, "code": 0})
        await process.wait()

        # A late event on another subscription for the removed id
        other_callback = MagicMock()
        await api.spawn({"cmd": "ls"}, other_callback)
        transport.last.emit("proc_stdout", {"id": 1, "data": ["late"]})

        other_callback.assert_not_called()
        assert "1" not in api.processes
        assert "Failed to handle" not in caplog.text

    @pytest.mark.asyncio
    async def test_output_drains_everything(self, api, transport):
        process, subscription = await spawn(api, transport)
        subscription.emit("proc_stdout", {"id": 1, "data": ["a", "b"]})
        subscription.emit("proc_stderr", {"id": 1, "data": ["c"]})
        subscription.emit("proc_done", {"id": 1, "success": True, "code": 0})

        output = process.output()

        assert output == ProcessOutput(
            success=True, exit_code=0, status="exited", stdout=["a", "b"], stderr=["c"]
        )
        assert process.output().stdout == []


class TestProcessSubOperations:
    """Tests for stdin and kill bound to a process."""

    @pytest.mark.asyncio
    async def test_write_stdin(self, api, transport):
        process, _ = await spawn(api, transport)
        transport.respond_with(Event("ok"))

        err, value, _ = await process.write_stdin("input\n")

        assert (err, value) == (None, True)
        [msg] = transport.last.messages
        assert msg.type == "proc_stdin"
        assert msg.data == {"id": 1, "data": "input\n"}

    @pytest.mark.asyncio
    async def test_kill(self, api, transport):
        process, _ = await spawn(api, transport)
        callback = MagicMock()

        await process.kill(callback)
        transport.last.emit("ok")

        [msg] = transport.last.messages
        assert msg.type == "proc_kill"
        assert msg.data == {"id": 1}
        callback.assert_called_once_with(None, True, transport.last.stop_handle)

    @pytest.mark.asyncio
    async def test_finished_process_rejects_stdin_and_kill(self, api, transport):
        process, subscription = await spawn(api, transport)
        subscription.emit("proc_done", {"id": 1, "code": 0})
        sends = transport.send_count

        err, _, _ = await process.write_stdin("late\n")
        assert isinstance(err, SessionError)

        callback = MagicMock()
        await process.kill(callback)
        assert isinstance(callback.call_args.args[0], SessionError)

        assert transport.send_count == sends


class TestMalformedSpawnStream:
    """Tests for spawn events missing required data."""

    @pytest.mark.asyncio
    async def test_spawned_without_id(self, transport):
        api = DistantApi(transport, ApiSettings(max_timeout=5.0))
        transport.respond_with(Event("proc_spawned", {}))
        started = time.monotonic()

        err, process, _ = await api.spawn({"cmd": "ls"})

        assert isinstance(err, ProtocolError)
        assert "missing process id" in str(err)
        assert process is None
        assert time.monotonic() - started < 1.0
        assert not transport.last.active
        assert len(api.processes) == 0
