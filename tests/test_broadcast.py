"""Tests for SSE fan-out and connection lifecycle."""

import asyncio

import pytest

from giveaway.core.errors import ConnectionWriteError
from giveaway.models import ConnectionState, LiveConnection
from giveaway.services import BroadcastService, format_sse
from tests.factories import drain


class TestFormatSse:
    def test_data_frame(self):
        assert format_sse({"type": "heartbeat"}) == 'data: {"type": "heartbeat"}\n\n'


class TestLiveConnection:
    """Test the per-connection buffer."""

    def test_send_when_closed(self):
        connection = LiveConnection("u1")
        connection.close()

        assert connection.state is ConnectionState.CLOSED
        with pytest.raises(ConnectionWriteError):
            connection.send(format_sse({"type": "x"}))

    def test_send_when_full(self):
        connection = LiveConnection("u1", buffer_size=1)
        connection.send("data: {}\n\n")

        with pytest.raises(ConnectionWriteError):
            connection.send("data: {}\n\n")

    def test_close_fits_final_frame_into_full_buffer(self):
        """The terminal frame and end-of-stream marker queue behind the backlog."""
        connection = LiveConnection("u1", buffer_size=2)
        connection.send(format_sse({"type": "a"}))
        connection.send(format_sse({"type": "b"}))

        connection.close(format_sse({"type": "server_shutdown"}))

        assert connection.pending == 4
        assert drain(connection) == [
            {"type": "a"},
            {"type": "b"},
            {"type": "server_shutdown"},
            None,
        ]

    def test_pending_counts_queued_frames(self):
        connection = LiveConnection("u1", buffer_size=3)
        connection.send(format_sse({"type": "a"}))
        connection.send(format_sse({"type": "b"}))

        assert connection.pending == 2
        drain(connection)
        assert connection.pending == 0

    def test_close_is_idempotent(self):
        connection = LiveConnection("u1")
        connection.close()
        connection.close()

        assert drain(connection) == [None]

    @pytest.mark.asyncio
    async def test_frames_end_on_close(self):
        connection = LiveConnection("u1")
        connection.send(format_sse({"type": "a"}))
        connection.close()

        frames = [frame async for frame in connection.frames()]

        assert frames == [format_sse({"type": "a"})]


class TestBroadcastService:
    """Test fan-out to live connections."""

    @pytest.mark.asyncio
    async def test_open_sends_connection_status(self, broadcaster, connections):
        connection = broadcaster.open_connection("u1")

        events = drain(connection)
        assert len(events) == 1
        assert events[0]["type"] == "connection_status"
        assert events[0]["status"] == "connected"
        assert "timestamp" in events[0]
        assert connections.count("u1") == 1

        broadcaster.shutdown()

    @pytest.mark.asyncio
    async def test_broadcast_without_connections_is_noop(self, broadcaster):
        assert broadcaster.broadcast("nobody", {"type": "entry_added"}) == 0

    @pytest.mark.asyncio
    async def test_broadcast_is_tenant_scoped(self, broadcaster):
        """Every stream of the tenant gets the event and no other tenant does."""
        first = broadcaster.open_connection("u1")
        second = broadcaster.open_connection("u1")
        other = broadcaster.open_connection("u2")
        for connection in (first, second, other):
            drain(connection)

        delivered = broadcaster.broadcast("u1", {"type": "entry_added", "username": "alice"})

        assert delivered == 2
        assert drain(first) == [{"type": "entry_added", "username": "alice"}]
        assert drain(second) == [{"type": "entry_added", "username": "alice"}]
        assert drain(other) == []

        broadcaster.shutdown()

    @pytest.mark.asyncio
    async def test_failed_write_prunes_connection(self, connections):
        """A stream whose buffer is full is closed and unregistered."""
        broadcaster = BroadcastService(connections, heartbeat_interval=30.0, buffer_size=2)
        stalled = broadcaster.open_connection("u1")
        healthy = broadcaster.open_connection("u1")
        heartbeat = stalled._heartbeat_task
        drain(healthy)

        broadcaster.broadcast("u1", {"type": "one"})
        drain(healthy)
        delivered = broadcaster.broadcast("u1", {"type": "two"})

        assert delivered == 1
        assert stalled.state is ConnectionState.CLOSED
        assert connections.snapshot("u1") == [healthy]

        await asyncio.sleep(0.01)
        assert heartbeat.cancelled()

        broadcaster.shutdown()

    @pytest.mark.asyncio
    async def test_heartbeat(self, connections):
        broadcaster = BroadcastService(connections, heartbeat_interval=0.01, buffer_size=50)
        connection = broadcaster.open_connection("u1")

        await asyncio.sleep(0.05)

        types = [event["type"] for event in drain(connection)]
        assert types[0] == "connection_status"
        assert "heartbeat" in types[1:]

        broadcaster.shutdown()

    @pytest.mark.asyncio
    async def test_heartbeat_failure_closes_connection(self, connections):
        """A stream that cannot take a heartbeat is dropped and gets no more."""
        broadcaster = BroadcastService(connections, heartbeat_interval=0.01, buffer_size=1)
        connection = broadcaster.open_connection("u1")

        await asyncio.sleep(0.05)

        assert connection.state is ConnectionState.CLOSED
        assert connections.count("u1") == 0
        assert connection._heartbeat_task is None

    @pytest.mark.asyncio
    async def test_close_connection_cancels_heartbeat(self, broadcaster, connections):
        connection = broadcaster.open_connection("u1")
        heartbeat = connection._heartbeat_task

        broadcaster.close_connection(connection)
        await asyncio.sleep(0.01)

        assert heartbeat.cancelled()
        assert connections.count() == 0

    @pytest.mark.asyncio
    async def test_close_tenant(self, broadcaster, connections):
        broadcaster.open_connection("u1")
        broadcaster.open_connection("u1")
        keep = broadcaster.open_connection("u2")

        assert broadcaster.close_tenant("u1") == 2
        assert connections.all_connections() == [keep]

        broadcaster.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_notifies_every_stream(self, broadcaster, connections):
        streams = [broadcaster.open_connection(tenant) for tenant in ("u1", "u1", "u2")]
        for connection in streams:
            drain(connection)

        assert broadcaster.shutdown() == 3

        for connection in streams:
            final, end = drain(connection)
            assert final["type"] == "server_shutdown"
            assert final["message"]
            assert "timestamp" in final
            assert end is None
            assert connection.state is ConnectionState.CLOSED
        assert connections.count() == 0

    @pytest.mark.asyncio
    async def test_shutdown_reaches_stream_with_full_buffer(self, connections):
        """A stream whose buffer holds only the connect frame still ends cleanly."""
        broadcaster = BroadcastService(connections, heartbeat_interval=30.0, buffer_size=1)
        connection = broadcaster.open_connection("u1")

        assert broadcaster.shutdown() == 1

        status, final, end = drain(connection)
        assert status["type"] == "connection_status"
        assert final["type"] == "server_shutdown"
        assert end is None
