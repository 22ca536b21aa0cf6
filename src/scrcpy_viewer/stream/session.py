"""
Session Controller
==================

Owns the lifecycle of a live stream session.

This module provides the SessionController class which:
    - Opens one transport connection per attempt
    - Creates a decoder sink when the connection opens and destroys it
      when the connection closes
    - Routes inbound messages through the FrameRouter
    - Publishes SessionStatus on every transition
    - Reconnects after a fixed delay, forever, until disposed

State Machine:
    (start)                        --connect()-->        CONNECTING
    CONNECTING                     --transport open-->   CONNECTED
    CONNECTING/CONNECTED           --transport error-->  ERROR
    CONNECTING/CONNECTED/ERROR     --transport closed--> DISCONNECTED
    any                            --decoder error-->    ERROR
    any                            --server error-->     ERROR
    DISCONNECTED                   --reconnect timer-->  CONNECTING

Design Rules:
    - All mutations go through dispatch(), one event at a time
    - Events stamped with an older connection_id are discarded
    - Nothing is fed to a sink after its connection closed
    - Teardown destroys the sink first, then closes the connection
    - After dispose() every event is discarded
    - Reconnect delay is fixed with no attempt cap (the peer is a local
      service); swap in capped exponential backoff for remote peers
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional, Protocol

from scrcpy_viewer.decoder.base import DecoderOptions, DecoderSink, SinkFactory
from scrcpy_viewer.models.session import (
    CONNECTION_ERROR,
    DECODER_ERROR,
    INITIALIZATION_FAILED,
    SessionState,
    SessionStatus,
)
from scrcpy_viewer.stream.events import (
    DecoderFailed,
    MessageReceived,
    ReconnectDue,
    SessionEvent,
    TransportClosed,
    TransportFailed,
    TransportOpened,
)
from scrcpy_viewer.stream.router import FrameRouter, RouterMetrics
from scrcpy_viewer.stream.transport import Connection, Transport, WebSocketTransport


logger = logging.getLogger(__name__)


DEFAULT_RECONNECT_DELAY = 3.0

StatusListener = Callable[[SessionStatus], None]


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Anything with loop.call_later() semantics."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        ...


class SessionController:
    """
    Stream session state machine.

    Attributes:
        url: WebSocket URL of the stream endpoint
        reconnect_delay: Seconds between a close and the next attempt
        status: Latest published SessionStatus

    Example:
        controller = SessionController(
            url="ws://localhost:8000/api/video/stream",
            sink_factory=PyAVSinkFactory(),
            render_target=LatestFrameTarget(),
        )
        controller.add_listener(lambda status: print(status.state))

        async with controller:
            await controller.wait_disposed()
    """

    def __init__(
        self,
        url: str,
        sink_factory: SinkFactory,
        render_target: Any,
        options: Optional[DecoderOptions] = None,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        transport: Optional[Transport] = None,
        scheduler: Optional[Scheduler] = None,
        logger: logging.Logger = logger,
    ) -> None:
        """
        Initialize session controller.

        Args:
            url: WebSocket URL of the stream endpoint
            sink_factory: Creates one decoder sink per connection
            render_target: Where decoded frames go (None = unavailable)
            options: Decoder options passed to the sink factory
            reconnect_delay: Fixed delay before reconnecting
            transport: Connection factory (defaults to WebSocketTransport)
            scheduler: Timer source (defaults to the running event loop)
            logger: Logger for lifecycle messages
        """
        if reconnect_delay <= 0:
            raise ValueError("reconnect_delay must be > 0")

        self.url = url
        self.reconnect_delay = reconnect_delay
        self._sink_factory = sink_factory
        self._render_target = render_target
        self._options = options or DecoderOptions()
        self._transport = transport or WebSocketTransport()
        self._scheduler = scheduler
        self._log = logger
        self._router = FrameRouter(logger=logger)

        # Owned resources
        self._connection: Optional[Connection] = None
        self._sink: Optional[DecoderSink] = None
        self._timer: Optional[TimerHandle] = None

        # State
        self._status = SessionStatus()
        self._connection_id: int = 0
        self._reconnect_count: int = 0
        self._disposed: bool = False
        self._disposed_event = asyncio.Event()
        self._listeners: List[StatusListener] = []

    # -------------------------------------------------------------------------
    # Observable surface
    # -------------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def state(self) -> SessionState:
        return self._status.state

    @property
    def error_detail(self) -> Optional[str]:
        return self._status.error_detail

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def has_sink(self) -> bool:
        return self._sink is not None

    @property
    def reconnect_pending(self) -> bool:
        return self._timer is not None

    @property
    def metrics(self) -> RouterMetrics:
        return self._router.metrics

    def add_listener(self, listener: StatusListener) -> None:
        """Register a callback invoked synchronously with each new status."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def connect(self) -> None:
        """
        Start a new connection attempt.

        Tears down any live connection first and cancels a pending
        reconnect. No-op after dispose().
        """
        if self._disposed:
            self._log.warning("connect() called on disposed session, ignoring")
            return

        self._cancel_timer()
        self._teardown()

        if self._render_target is None:
            self._log.error("Initialization error: render target unavailable")
            self._publish(SessionState.ERROR, INITIALIZATION_FAILED)
            return

        self._connection_id += 1
        cid = self._connection_id
        self._publish(SessionState.CONNECTING, None)
        self._log.info(f"Connecting to {self.url} (connection {cid})")

        try:
            self._connection = self._transport.open(self.url, cid, self.dispatch)
        except Exception as e:
            # Same outcome as a connection that fails right away
            self._log.error(f"WebSocket error: could not open connection: {e!r}")
            self._publish(SessionState.ERROR, CONNECTION_ERROR)
            self._publish(SessionState.DISCONNECTED, None)
            self._schedule_reconnect()

    def dispose(self) -> None:
        """
        Tear the session down for good.

        Cancels the reconnect timer, closes the connection and destroys the
        decoder sink. Idempotent; later events are discarded.
        """
        if self._disposed:
            return
        self._disposed = True
        self._cancel_timer()
        self._teardown()
        self._disposed_event.set()
        self._log.info("Session disposed")

    async def wait_disposed(self) -> None:
        await self._disposed_event.wait()

    async def __aenter__(self) -> "SessionController":
        self.connect()
        return self

    async def __aexit__(self, *args) -> None:
        self.dispose()

    # -------------------------------------------------------------------------
    # Event handling
    # -------------------------------------------------------------------------

    def dispatch(self, event: SessionEvent) -> None:
        """
        Apply a single event. The only entry point for transport, decoder
        and timer callbacks.
        """
        if self._disposed:
            self._log.debug(f"Discarding {event!r}: session disposed")
            return

        if event.connection_id != self._connection_id:
            self._log.debug(f"Discarding stale {event!r}")
            return

        if isinstance(event, ReconnectDue):
            self._on_reconnect_due()
            return

        if self._connection is None:
            # Connection already torn down; late callback from it
            self._log.debug(f"Discarding {event!r}: connection closed")
            return

        if isinstance(event, MessageReceived):
            self._on_message(event)
        elif isinstance(event, TransportOpened):
            self._on_open()
        elif isinstance(event, TransportFailed):
            self._on_transport_failed(event)
        elif isinstance(event, TransportClosed):
            self._on_transport_closed(event)
        elif isinstance(event, DecoderFailed):
            self._on_decoder_failed(event)
        else:
            raise TypeError(f"Unknown session event: {event!r}")

    def _on_open(self) -> None:
        if self.state != SessionState.CONNECTING or self._sink is not None:
            self._log.warning(f"Unexpected transport open in state {self.state.value}")
            return

        cid = self._connection_id
        try:
            self._sink = self._sink_factory.create(
                self._render_target,
                self._options,
                lambda reason: self.dispatch(DecoderFailed(cid, reason)),
            )
        except Exception as e:
            self._log.error(f"Initialization error: {e}")
            self._teardown()
            self._publish(SessionState.ERROR, INITIALIZATION_FAILED)
            return

        self._log.info("WebSocket connected")
        self._publish(SessionState.CONNECTED, None)

    def _on_message(self, event: MessageReceived) -> None:
        detail = self._router.route(event.data, self._sink)
        if detail is not None:
            self._publish(SessionState.ERROR, detail)

    def _on_transport_failed(self, event: TransportFailed) -> None:
        self._log.error(f"WebSocket error: {event.reason}")
        if self.state not in (SessionState.CONNECTING, SessionState.CONNECTED):
            # Already in ERROR; keep the first detail
            return
        self._publish(SessionState.ERROR, CONNECTION_ERROR)

    def _on_transport_closed(self, event: TransportClosed) -> None:
        self._log.info(f"WebSocket closed (code={event.code})")
        self._teardown()
        self._publish(SessionState.DISCONNECTED, None)
        self._schedule_reconnect()

    def _on_decoder_failed(self, event: DecoderFailed) -> None:
        self._log.error(f"Decoder error: {event.reason}")
        self._publish(SessionState.ERROR, DECODER_ERROR)

    def _on_reconnect_due(self) -> None:
        if self._timer is None or self.state != SessionState.DISCONNECTED:
            self._log.debug("Discarding reconnect: no reconnect pending")
            return
        self._timer = None
        self._reconnect_count += 1
        self._log.info(f"Attempting to reconnect (attempt {self._reconnect_count})")
        self.connect()

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------

    def _teardown(self) -> None:
        """Destroy the sink, then close its connection."""
        sink, self._sink = self._sink, None
        if sink is not None:
            try:
                sink.destroy()
            except Exception:
                self._log.exception("Decoder cleanup error")

        connection, self._connection = self._connection, None
        if connection is not None:
            connection.close()

    def _schedule_reconnect(self) -> None:
        self._cancel_timer()
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._timer = scheduler.call_later(
            self.reconnect_delay,
            self.dispatch,
            ReconnectDue(self._connection_id),
        )
        self._log.info(f"Reconnecting in {self.reconnect_delay:.1f}s")

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _publish(self, state: SessionState, error_detail: Optional[str]) -> None:
        previous = self._status
        self._status = SessionStatus(
            state=state,
            error_detail=error_detail if state == SessionState.ERROR else None,
            connection_id=self._connection_id,
            reconnect_count=self._reconnect_count,
        )
        if previous.state != state:
            self._log.info(f"Session state: {previous.state.value} -> {state.value}")

        for listener in list(self._listeners):
            try:
                listener(self._status)
            except Exception:
                self._log.exception("Status listener failed")
