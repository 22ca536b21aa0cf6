"""
Session State Models
====================

This module defines the observable state of a stream session.

Core Concepts:
    - SessionState: Discrete lifecycle states (CONNECTING, CONNECTED,
      DISCONNECTED, ERROR)
    - SessionStatus: Snapshot handed to presentation collaborators

Transitions:
    (start)      → CONNECTING:   connect() invoked
    CONNECTING   → CONNECTED:    transport open
    any live     → ERROR:        transport error, decoder error, server error
    any live     → DISCONNECTED: transport closed
    DISCONNECTED → CONNECTING:   reconnect timer fires

Example:
    from scrcpy_viewer.models.session import SessionState, SessionStatus

    status = SessionStatus(state=SessionState.ERROR, error_detail="Connection error")
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


CONNECTION_ERROR = "Connection error"
DECODER_ERROR = "Video decoder error"
UNKNOWN_SERVER_ERROR = "Unknown error"
INITIALIZATION_FAILED = "Initialization failed"


class SessionState(str, Enum):
    """
    Lifecycle states of a stream session.

    Exactly one state is active at any time. The state is owned by the
    SessionController and only observed by everyone else.

    Attributes:
        CONNECTING: Connection attempt in progress (initial state)
        CONNECTED: Transport open, decoder sink live
        DISCONNECTED: Transport closed, reconnect pending
        ERROR: Transport, decoder or server reported a failure
    """

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class SessionStatus(BaseModel):
    """
    Read-only snapshot of a session, published on every transition.

    Attributes:
        state: Current lifecycle state
        error_detail: Human-readable failure text (only set in ERROR)
        connection_id: Generation of the current connection attempt
        reconnect_count: Number of reconnects fired so far
    """

    state: SessionState = Field(
        default=SessionState.CONNECTING,
        description="Current lifecycle state",
    )

    error_detail: Optional[str] = Field(
        default=None,
        description="Failure text, present only when state is ERROR",
    )

    connection_id: int = Field(
        default=0,
        ge=0,
        description="Generation counter of the current connection attempt",
    )

    reconnect_count: int = Field(
        default=0,
        ge=0,
        description="Number of reconnect attempts fired",
    )

    model_config = {"frozen": True}

    @property
    def is_connected(self) -> bool:
        return self.state == SessionState.CONNECTED
