"""
WebSocket Transport
===================

Connection layer between the stream server and the session controller.

Each WebSocketConnection runs one reader task that:
    - Connects to the server endpoint
    - Emits TransportOpened once the handshake completes
    - Emits one MessageReceived per inbound message, in arrival order
    - Emits TransportFailed + TransportClosed on connect failure, abnormal
      close or an unexpected error in the reader, TransportClosed alone on
      a normal close

Design Rules:
    - Read-only: nothing is sent beyond handshake and keepalive pings
    - close() is idempotent and valid in any state, including before
      the handshake completes
    - After close() the connection emits no further events
"""

import asyncio
import logging
from typing import Callable, Optional, Protocol

import websockets
from websockets.exceptions import (
    ConnectionClosedError,
    InvalidHandshake,
    InvalidURI,
)

from scrcpy_viewer.stream.events import (
    MessageReceived,
    SessionEvent,
    TransportClosed,
    TransportFailed,
    TransportOpened,
)


logger = logging.getLogger(__name__)


EventEmitter = Callable[[SessionEvent], None]


class Connection(Protocol):
    """Live transport handle owned by the session controller."""

    connection_id: int

    def close(self) -> None:
        ...


class Transport(Protocol):
    """Opens connections that report through an event emitter."""

    def open(self, url: str, connection_id: int, emit: EventEmitter) -> Connection:
        ...


class WebSocketConnection:
    """
    One WebSocket connection attempt.

    Attributes:
        url: WebSocket URL
        connection_id: Generation id stamped on every emitted event
        closed: Whether close() has been called
    """

    def __init__(
        self,
        url: str,
        connection_id: int,
        emit: EventEmitter,
        connect_kwargs: dict,
    ) -> None:
        self.url = url
        self.connection_id = connection_id
        self._emit_event = emit
        self._connect_kwargs = connect_kwargs
        self._closed: bool = False
        self._task: asyncio.Task = asyncio.get_running_loop().create_task(
            self._run(),
            name=f"ws_connection_{connection_id}",
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def task(self) -> asyncio.Task:
        return self._task

    def close(self) -> None:
        """Stop the reader task; the websocket is closed as it unwinds."""
        if self._closed:
            return
        self._closed = True
        self._task.cancel()

    def _emit(self, event: SessionEvent) -> None:
        if self._closed:
            return
        self._emit_event(event)

    async def _run(self) -> None:
        cid = self.connection_id
        try:
            async with websockets.connect(self.url, **self._connect_kwargs) as ws:
                logger.info(f"WebSocket connected: {self.url}")
                self._emit(TransportOpened(cid))

                async for message in ws:
                    if self._closed:
                        break
                    self._emit(MessageReceived(cid, message))

                logger.info("WebSocket closed normally")
                self._emit(TransportClosed(cid, ws.close_code, ws.close_reason or ""))

        except asyncio.CancelledError:
            logger.debug(f"Connection {cid} cancelled")
            raise
        except ConnectionClosedError as e:
            code = e.rcvd.code if e.rcvd is not None else None
            reason = e.rcvd.reason if e.rcvd is not None else ""
            logger.warning(f"WebSocket closed with error: {e}")
            self._emit(TransportFailed(cid, str(e)))
            self._emit(TransportClosed(cid, code, reason))
        except (OSError, InvalidHandshake, InvalidURI, asyncio.TimeoutError) as e:
            logger.error(f"WebSocket error: {e!r}")
            self._emit(TransportFailed(cid, str(e) or type(e).__name__))
            self._emit(TransportClosed(cid, None, ""))
        except Exception as e:
            # Any other error ends the connection
            logger.exception(f"Unexpected error on connection {cid}")
            self._emit(TransportFailed(cid, str(e) or type(e).__name__))
            self._emit(TransportClosed(cid, None, ""))


class WebSocketTransport:
    """
    Opens WebSocketConnections on the running event loop.

    Example:
        transport = WebSocketTransport(ping_interval=20, ping_timeout=10)
        conn = transport.open("ws://localhost:8000/api/video/stream", 1, emit)
    """

    def __init__(
        self,
        ping_interval: Optional[float] = 20,
        ping_timeout: Optional[float] = 10,
        close_timeout: Optional[float] = 5,
        open_timeout: Optional[float] = 10,
        max_size: Optional[int] = None,
    ) -> None:
        self._connect_kwargs = {
            "ping_interval": ping_interval,
            "ping_timeout": ping_timeout,
            "close_timeout": close_timeout,
            "open_timeout": open_timeout,
            "max_size": max_size,
        }

    def open(self, url: str, connection_id: int, emit: EventEmitter) -> WebSocketConnection:
        return WebSocketConnection(url, connection_id, emit, self._connect_kwargs)
