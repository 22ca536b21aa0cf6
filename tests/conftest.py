"""
Test Configuration
==================

Pytest fixtures and test doubles for scrcpy-viewer.

The session controller takes its transport, timer source and decoder sink
factory as collaborators; the fakes here let tests drive every event by
hand and advance time deterministically.
"""

from typing import Any, Callable, List, Optional

import pytest

from scrcpy_viewer.decoder.base import DecoderError, DecoderInitError, DecoderOptions
from scrcpy_viewer.stream.session import SessionController


# =============================================================================
# Timer source
# =============================================================================

class FakeTimer:
    """TimerHandle returned by FakeScheduler.call_later."""

    def __init__(self, when: float, callback: Callable, args: tuple) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manually advanced clock with loop.call_later() semantics."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: List[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable, *args: Any) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> List[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for timer in sorted(self.pending, key=lambda t: t.when):
            if timer.when <= self.now + 1e-9 and not timer.cancelled:
                timer.fired = True
                timer.callback(*timer.args)


# =============================================================================
# Transport
# =============================================================================

class FakeConnection:
    def __init__(self, url: str, connection_id: int) -> None:
        self.url = url
        self.connection_id = connection_id
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def close(self) -> None:
        self.close_calls += 1


class FakeTransport:
    """Records opened connections; events are injected by the test."""

    def __init__(self) -> None:
        self.connections: List[FakeConnection] = []
        self.emit: Optional[Callable] = None
        self.fail_next_open = False

    def open(self, url: str, connection_id: int, emit: Callable) -> FakeConnection:
        if self.fail_next_open:
            self.fail_next_open = False
            raise RuntimeError("transport unavailable")
        self.emit = emit
        conn = FakeConnection(url, connection_id)
        self.connections.append(conn)
        return conn

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]


# =============================================================================
# Decoder sink
# =============================================================================

class FakeSink:
    def __init__(self, render_target: Any, options: DecoderOptions, on_error: Callable) -> None:
        self.render_target = render_target
        self.options = options
        self.on_error = on_error
        self.fed: List[bytes] = []
        self.destroy_calls = 0
        self.feed_exception: Optional[Exception] = None
        self.destroy_exception: Optional[Exception] = None

    @property
    def destroyed(self) -> bool:
        return self.destroy_calls > 0

    def feed(self, data: bytes) -> None:
        if self.destroyed:
            raise DecoderError("feed() after destroy()")
        if self.feed_exception is not None:
            raise self.feed_exception
        self.fed.append(data)

    def destroy(self) -> None:
        self.destroy_calls += 1
        if self.destroy_exception is not None:
            raise self.destroy_exception


class FakeSinkFactory:
    def __init__(self) -> None:
        self.sinks: List[FakeSink] = []
        self.fail_next_create = False

    def create(self, render_target: Any, options: DecoderOptions, on_error: Callable) -> FakeSink:
        if self.fail_next_create:
            self.fail_next_create = False
            raise DecoderInitError("render target unavailable")
        sink = FakeSink(render_target, options, on_error)
        self.sinks.append(sink)
        return sink

    @property
    def last(self) -> FakeSink:
        return self.sinks[-1]


# =============================================================================
# Fixtures
# =============================================================================

STREAM_URL = "ws://localhost:8000/api/video/stream"


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def sink_factory():
    return FakeSinkFactory()


@pytest.fixture
def controller(scheduler, transport, sink_factory):
    """SessionController wired to fakes, not yet connected."""
    return SessionController(
        url=STREAM_URL,
        sink_factory=sink_factory,
        render_target="video-element",
        transport=transport,
        scheduler=scheduler,
    )


@pytest.fixture
def connected(controller):
    """SessionController that has connected and received transport open."""
    from scrcpy_viewer.stream.events import TransportOpened

    controller.connect()
    controller.dispatch(TransportOpened(1))
    return controller


@pytest.fixture
def recorded_statuses(controller):
    """Every status published by the controller, in order."""
    statuses = []
    controller.add_listener(statuses.append)
    return statuses
