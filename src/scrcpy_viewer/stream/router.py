"""
Frame Router
============

Classifies each inbound message and routes it.

    - Text   → parsed as a server error notification; returned to the
               controller so it can enter ERROR. Unparsable text is logged
               and discarded.
    - Binary → forwarded verbatim to the decoder sink. Zero-length
               messages are ignored.

Design Rules:
    - Does NOT modify payloads
    - Does NOT queue or batch; routes strictly in arrival order
    - Feed failures are logged, never propagated (they are transient at
      the decode layer)
"""

import logging
from typing import Optional, Union

from scrcpy_viewer.decoder.base import DecoderSink
from scrcpy_viewer.models.messages import parse_server_message


logger = logging.getLogger(__name__)


class RouterMetrics:
    """Metrics for FrameRouter observability."""

    __slots__ = (
        "frames_forwarded",
        "bytes_forwarded",
        "empty_frames",
        "server_errors",
        "diagnostics_discarded",
        "feed_errors",
    )

    def __init__(self) -> None:
        self.frames_forwarded: int = 0
        self.bytes_forwarded: int = 0
        self.empty_frames: int = 0
        self.server_errors: int = 0
        self.diagnostics_discarded: int = 0
        self.feed_errors: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_forwarded": self.frames_forwarded,
            "bytes_forwarded": self.bytes_forwarded,
            "empty_frames": self.empty_frames,
            "server_errors": self.server_errors,
            "diagnostics_discarded": self.diagnostics_discarded,
            "feed_errors": self.feed_errors,
        }


class FrameRouter:
    """
    Routes inbound messages between the decoder sink and the error surface.

    Attributes:
        metrics: Operational metrics

    Example:
        router = FrameRouter()
        detail = router.route(message, sink)
        if detail is not None:
            enter_error_state(detail)
    """

    def __init__(self, logger: logging.Logger = logger) -> None:
        self._log = logger
        self.metrics = RouterMetrics()

    def route(
        self,
        data: Union[bytes, bytearray, memoryview, str],
        sink: Optional[DecoderSink],
    ) -> Optional[str]:
        """
        Route a single message.

        Args:
            data: Message payload as delivered by the transport
            sink: Decoder sink of the current connection, if any

        Returns:
            Error detail to surface if the message was a server error
            notification, None otherwise
        """
        if isinstance(data, str):
            return self._route_text(data)

        if len(data) == 0:
            self.metrics.empty_frames += 1
            return None

        if sink is None:
            # Only possible during teardown of the current connection
            self._log.debug(f"Dropping {len(data)} bytes, no decoder sink")
            return None

        try:
            sink.feed(bytes(data))
        except Exception as e:
            self.metrics.feed_errors += 1
            self._log.error(f"Feed error: {e}")
            return None

        self.metrics.frames_forwarded += 1
        self.metrics.bytes_forwarded += len(data)
        return None

    def _route_text(self, text: str) -> Optional[str]:
        message = parse_server_message(text)
        if message is None:
            self.metrics.diagnostics_discarded += 1
            self._log.warning(f"Received non-JSON text message: {text[:200]!r}")
            return None

        self.metrics.server_errors += 1
        self._log.error(f"Server error: {message.detail}")
        return message.detail
