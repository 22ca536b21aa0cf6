"""
Stream Module
=============

Live stream consumption: connection lifecycle, message routing and
reconnection.

This module provides the session layer for scrcpy-viewer:
    - SessionController: State machine owning connection, decoder sink and
      reconnect timer
    - FrameRouter: Classifies inbound messages (server error vs video bytes)
    - WebSocketTransport: websockets-based connection factory
    - Session events: the explicit event types driving the controller

Example:
    from scrcpy_viewer.decoder import LatestFrameTarget
    from scrcpy_viewer.decoder.pyav import PyAVSinkFactory
    from scrcpy_viewer.stream import SessionController

    target = LatestFrameTarget()
    controller = SessionController(
        url="ws://localhost:8000/api/video/stream",
        sink_factory=PyAVSinkFactory(),
        render_target=target,
    )

    # Run until disposed
    async with controller:
        await controller.wait_disposed()
"""

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
from scrcpy_viewer.stream.session import DEFAULT_RECONNECT_DELAY, SessionController
from scrcpy_viewer.stream.transport import (
    Connection,
    Transport,
    WebSocketConnection,
    WebSocketTransport,
)


__all__ = [
    "SessionController",
    "DEFAULT_RECONNECT_DELAY",
    "FrameRouter",
    "RouterMetrics",
    "Connection",
    "Transport",
    "WebSocketConnection",
    "WebSocketTransport",
    "SessionEvent",
    "TransportOpened",
    "MessageReceived",
    "TransportFailed",
    "TransportClosed",
    "DecoderFailed",
    "ReconnectDue",
]
