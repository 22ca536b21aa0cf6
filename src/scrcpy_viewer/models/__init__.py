"""
Data Models
===========

Pydantic models for scrcpy-viewer.

Models:
    Session:
        - SessionState: Enum of lifecycle states
        - SessionStatus: Observable snapshot of a session

    Messages:
        - ServerErrorMessage: Error notification pushed as a text frame
        - parse_server_message: Text frame parser
"""

from scrcpy_viewer.models.session import (
    CONNECTION_ERROR,
    DECODER_ERROR,
    INITIALIZATION_FAILED,
    UNKNOWN_SERVER_ERROR,
    SessionState,
    SessionStatus,
)
from scrcpy_viewer.models.messages import ServerErrorMessage, parse_server_message

__all__ = [
    # Session
    "SessionState",
    "SessionStatus",
    "CONNECTION_ERROR",
    "DECODER_ERROR",
    "INITIALIZATION_FAILED",
    "UNKNOWN_SERVER_ERROR",
    # Messages
    "ServerErrorMessage",
    "parse_server_message",
]
