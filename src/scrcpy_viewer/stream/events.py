"""
Session Events
==============

Explicit event types fed to SessionController.dispatch().

Transport callbacks, decoder error callbacks and the reconnect timer all
translate into one of these events, so every mutation of session state goes
through a single serialized handler.

Every event carries the connection_id of the connection that produced it.
The controller compares it against the current connection and discards
events from older generations.
"""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True, slots=True)
class TransportOpened:
    """Transport handshake completed."""

    connection_id: int


@dataclass(frozen=True, slots=True)
class MessageReceived:
    """One transport-delivered message (text or binary)."""

    connection_id: int
    data: Union[bytes, str]

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the payload."""
        kind = "text" if isinstance(self.data, str) else "binary"
        return (
            f"MessageReceived(connection_id={self.connection_id}, "
            f"{kind}, len={len(self.data)})"
        )


@dataclass(frozen=True, slots=True)
class TransportFailed:
    """Transport reported an error (connect failure or abnormal close)."""

    connection_id: int
    reason: str = ""


@dataclass(frozen=True, slots=True)
class TransportClosed:
    """Transport closed, regardless of cause."""

    connection_id: int
    code: Optional[int] = None
    reason: str = ""


@dataclass(frozen=True, slots=True)
class DecoderFailed:
    """Decoder sink bound to this connection reported an internal error."""

    connection_id: int
    reason: str = ""


@dataclass(frozen=True, slots=True)
class ReconnectDue:
    """Reconnect timer scheduled after this connection closed has fired."""

    connection_id: int


SessionEvent = Union[
    TransportOpened,
    MessageReceived,
    TransportFailed,
    TransportClosed,
    DecoderFailed,
    ReconnectDue,
]
