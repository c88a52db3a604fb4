"""Tests for watch sessions."""

from unittest.mock import MagicMock

import pytest

from distant.client.protocol import Event, RemoteError, SessionError, ValidationError
from distant.client.sessions import WatchChange, WatchSession


class TestWatch:
    """Tests for registering watches and forwarding changes."""

    @pytest.mark.asyncio
    async def test_ack_registers_session(self, api, transport):
        transport.respond_with(Event("ok"))

        err, session, stop = await api.watch("/project")

        assert err is None
        assert session == WatchSession(path="/project", stop=transport.last.stop_handle)
        assert "/project" in api.watches
        assert transport.last.options.multi is True
        assert transport.last.messages[0].data == {"path": "/project"}

    @pytest.mark.asyncio
    async def test_changes_forwarded_without_stopping(self, api, transport):
        callback = MagicMock()
        await api.watch({"path": "/project", "recursive": True}, callback)
        subscription = transport.last

        subscription.emit("ok")
        subscription.emit("changed", {"kind": "modify", "paths": ["/project/a.txt"]})
        subscription.emit("changed", {"kind": "remove", "paths": ["/project/b.txt"]})

        values = [c.args[1] for c in callback.call_args_list]
        assert isinstance(values[0], WatchSession)
        assert values[1:] == [
            WatchChange(path="/project", kind="modify", paths=["/project/a.txt"]),
            WatchChange(path="/project", kind="remove", paths=["/project/b.txt"]),
        ]
        assert subscription.active

    @pytest.mark.asyncio
    async def test_rewatch_replaces_previous(self, api, transport):
        transport.respond_with(Event("ok"))
        await api.watch("/project")
        first = transport.last

        transport.respond_with(Event("ok"))
        await api.watch("/project")

        assert not first.active
        assert api.watches.get("/project").stop is transport.last.stop_handle

    @pytest.mark.asyncio
    async def test_remote_error(self, api, transport):
        transport.respond_with(Event("error", {"kind": "permission_denied", "description": "denied"}))

        err, session, _ = await api.watch("/root")

        assert isinstance(err, RemoteError)
        assert session is None
        assert "/root" not in api.watches

    @pytest.mark.asyncio
    async def test_invalid_request(self, api, transport):
        err, _, _ = await api.watch({"path": "/a", "only": "modify"})

        assert isinstance(err, ValidationError)
        assert transport.send_count == 0

    @pytest.mark.asyncio
    async def test_error_after_ack_removes_session(self, api, transport):
        callback = MagicMock()
        await api.watch("/project", callback)
        subscription = transport.last

        subscription.emit("ok")
        subscription.emit("error", {"kind": "other", "description": "watcher died"})

        err, value, _ = callback.call_args.args
        assert isinstance(err, RemoteError)
        assert value is None
        assert "/project" not in api.watches
        assert not subscription.active


class TestUnwatch:
    """Tests for removing watches."""

    @pytest.mark.asyncio
    async def test_unwatch_stops_and_removes(self, api, transport):
        transport.respond_with(Event("ok"))
        await api.watch("/project")
        watch_subscription = transport.last

        transport.respond_with(Event("ok"))
        err, value, _ = await api.unwatch("/project")

        assert (err, value) == (None, True)
        assert not watch_subscription.active
        assert "/project" not in api.watches
        assert transport.last.messages[0].type == "unwatch"

        # Later changes for the stopped subscription are not delivered
        assert not watch_subscription.emit("changed", {"kind": "modify", "paths": []})

    @pytest.mark.asyncio
    async def test_unwatch_unknown_path(self, api, transport):
        err, value, _ = await api.unwatch("/never-watched")

        assert isinstance(err, SessionError)
        assert value is None
        assert transport.send_count == 0

    @pytest.mark.asyncio
    async def test_unwatch_unknown_path_callback(self, api, transport):
        callback = MagicMock()

        await api.unwatch({"path": "/never-watched"}, callback)

        assert isinstance(callback.call_args.args[0], SessionError)

    @pytest.mark.asyncio
    async def test_stopping_twice_is_noop(self, api, transport):
        transport.respond_with(Event("ok"))
        _, session, _ = await api.watch("/project")

        session.stop()
        session.stop()

