"""
scrcpy-viewer
=============

Live H.264 stream client for a scrcpy-style video endpoint.

This package consumes a server-pushed binary video stream over a WebSocket,
hands the raw elementary stream to a decoder sink and keeps the session
alive across transient failures without operator intervention.

Components:
    - stream: Session state machine, message routing, WebSocket transport
    - decoder: Decoder sink contract, PyAV and raw-file sinks
    - models: Session state and server message schemas
    - main: FastAPI status service

Example:
    from scrcpy_viewer.config import settings
    from scrcpy_viewer.main import create_session

    # Service is started via the scrcpy-viewer console script
    # See main.py for entry point
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
