"""
WebSocket Transport Tests
=========================

Runs a real websockets server on localhost and checks the event sequence
each connection emits, plus one end-to-end reconnect cycle.
"""

import asyncio
import socket

import websockets

from scrcpy_viewer.decoder import RawFileSinkFactory
from scrcpy_viewer.models import SessionState
from scrcpy_viewer.stream import SessionController, WebSocketTransport
from scrcpy_viewer.stream.events import (
    MessageReceived,
    TransportClosed,
    TransportFailed,
    TransportOpened,
)


CHUNK = b"\x00\x00\x00\x01\x67\x42\x00\x1f"


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def _port(server) -> int:
    return server.sockets[0].getsockname()[1]


async def _wait_for(predicate, timeout: float = 5.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


def _transport() -> WebSocketTransport:
    return WebSocketTransport(ping_interval=None, open_timeout=2, close_timeout=1)


class TestWebSocketConnection:
    """Tests for the events one connection emits."""

    def test_normal_session(self):
        """Verify open, messages in order, then a clean close."""

        async def handler(ws):
            await ws.send(CHUNK)
            await ws.send('{"error": "device not found"}')

        async def scenario():
            events = []
            async with websockets.serve(handler, "127.0.0.1", 0) as server:
                conn = _transport().open(f"ws://127.0.0.1:{_port(server)}/", 7, events.append)
                await asyncio.wait_for(conn.task, timeout=5)
            return events

        events = asyncio.run(scenario())

        assert events[0] == TransportOpened(7)
        assert events[1] == MessageReceived(7, CHUNK)
        assert events[2] == MessageReceived(7, '{"error": "device not found"}')
        assert isinstance(events[3], TransportClosed)
        assert events[3].code == 1000
        assert len(events) == 4

    def test_abnormal_close(self):
        """Verify an error close code emits failure then close."""

        async def handler(ws):
            await ws.close(code=1011, reason="encoder died")

        async def scenario():
            events = []
            async with websockets.serve(handler, "127.0.0.1", 0) as server:
                conn = _transport().open(f"ws://127.0.0.1:{_port(server)}/", 1, events.append)
                await asyncio.wait_for(conn.task, timeout=5)
            return events

        events = asyncio.run(scenario())

        assert events[0] == TransportOpened(1)
        assert isinstance(events[1], TransportFailed)
        assert events[2] == TransportClosed(1, 1011, "encoder died")

    def test_connection_refused(self):
        """Verify a refused connection emits failure then close, never open."""

        async def scenario():
            events = []
            conn = _transport().open(f"ws://127.0.0.1:{_free_port()}/", 3, events.append)
            await asyncio.wait_for(conn.task, timeout=5)
            return events

        events = asyncio.run(scenario())

        assert len(events) == 2
        assert isinstance(events[0], TransportFailed)
        assert events[0].connection_id == 3
        assert events[1] == TransportClosed(3, None, "")

    def test_close_before_open(self):
        """Verify closing before the handshake emits nothing."""

        async def scenario():
            events = []
            conn = _transport().open(f"ws://127.0.0.1:{_free_port()}/", 1, events.append)
            conn.close()
            conn.close()
            await asyncio.gather(conn.task, return_exceptions=True)
            return events, conn

        events, conn = asyncio.run(scenario())

        assert events == []
        assert conn.closed
        assert conn.task.cancelled()

    def test_no_events_after_close(self):
        """Verify a closed connection stops emitting mid-stream."""
        hold = None

        async def handler(ws):
            await ws.send(CHUNK)
            await hold.wait()

        async def scenario():
            nonlocal hold
            hold = asyncio.Event()
            events = []
            async with websockets.serve(handler, "127.0.0.1", 0) as server:
                conn = _transport().open(f"ws://127.0.0.1:{_port(server)}/", 1, events.append)
                await _wait_for(lambda: len(events) >= 2)
                conn.close()
                await asyncio.gather(conn.task, return_exceptions=True)
                hold.set()
            return events

        events = asyncio.run(scenario())

        assert events == [TransportOpened(1), MessageReceived(1, CHUNK)]

    def test_dispatch_error_still_closes(self):
        """Verify an exception raised by the event handler ends in failure then close."""

        async def handler(ws):
            await ws.send("boom")
            await ws.wait_closed()

        async def scenario():
            events = []

            def emit(event):
                events.append(event)
                if isinstance(event, MessageReceived):
                    raise RuntimeError("handler bug")

            async with websockets.serve(handler, "127.0.0.1", 0) as server:
                conn = _transport().open(f"ws://127.0.0.1:{_port(server)}/", 4, emit)
                await asyncio.wait_for(conn.task, timeout=5)
            return events, conn

        events, conn = asyncio.run(scenario())

        assert events[:2] == [TransportOpened(4), MessageReceived(4, "boom")]
        assert events[2] == TransportFailed(4, "handler bug")
        assert events[3] == TransportClosed(4, None, "")
        assert len(events) == 4
        assert not conn.task.cancelled()


class TestSessionOverWebSocket:
    """End-to-end session against a real server."""

    def test_reconnects_after_server_close(self, tmp_path):
        """Verify the session records, closes, waits and reconnects."""
        path = tmp_path / "stream.h264"

        async def handler(ws):
            await ws.send(CHUNK)

        async def scenario():
            states = []
            async with websockets.serve(handler, "127.0.0.1", 0) as server:
                controller = SessionController(
                    url=f"ws://127.0.0.1:{_port(server)}/",
                    sink_factory=RawFileSinkFactory(),
                    render_target=path,
                    reconnect_delay=0.05,
                    transport=_transport(),
                )
                controller.add_listener(lambda status: states.append(status.state))

                async with controller:
                    await _wait_for(lambda: controller.status.reconnect_count >= 2)

                assert controller.disposed
                assert not controller.has_sink
                assert not controller.reconnect_pending
            return states

        states = asyncio.run(scenario())

        assert states[:4] == [
            SessionState.CONNECTING,
            SessionState.CONNECTED,
            SessionState.DISCONNECTED,
            SessionState.CONNECTING,
        ]
        assert SessionState.ERROR not in states

        data = path.read_bytes()
        assert data.startswith(CHUNK * 2)
        assert len(data) % len(CHUNK) == 0

    def test_unparsable_text_does_not_stall_reconnect(self, tmp_path):
        """Verify deeply nested text is discarded and the session still reconnects."""
        path = tmp_path / "stream.h264"

        async def handler(ws):
            await ws.send("[" * 100000 + "]" * 100000)

        async def scenario():
            states = []
            async with websockets.serve(handler, "127.0.0.1", 0) as server:
                controller = SessionController(
                    url=f"ws://127.0.0.1:{_port(server)}/",
                    sink_factory=RawFileSinkFactory(),
                    render_target=path,
                    reconnect_delay=0.05,
                    transport=_transport(),
                )
                controller.add_listener(lambda status: states.append(status.state))

                async with controller:
                    await _wait_for(lambda: controller.status.reconnect_count >= 1)
                discarded = controller.metrics.diagnostics_discarded
            return states, discarded

        states, discarded = asyncio.run(scenario())

        assert states[:4] == [
            SessionState.CONNECTING,
            SessionState.CONNECTED,
            SessionState.DISCONNECTED,
            SessionState.CONNECTING,
        ]
        assert discarded >= 1
