"""
Decoder Sink Contract
=====================

The decoder sink turns raw H.264 elementary-stream bytes into displayable
frames. The session controller treats it as a pluggable black box with two
operations, feed() and destroy(), and creates one sink per connection.

Design Rules:
    - create() fails fast with DecoderInitError if the render target is missing
    - feed() may buffer internally
    - Malformed input is reported through on_error, scheduled on the event
      loop, never raised synchronously from feed()
    - destroy() is idempotent and releases all buffers
"""

from typing import Any, Callable, Optional, Protocol

import numpy as np
from pydantic import BaseModel, Field


ErrorCallback = Callable[[str], None]


class DecoderError(Exception):
    """Raised when a decoder sink cannot accept data."""
    pass


class DecoderInitError(DecoderError):
    """Raised when a decoder sink cannot be created."""
    pass


class DecoderOptions(BaseModel):
    """Decoder sink options."""

    codec: str = Field(default="h264", description="Elementary stream codec")
    pixel_format: str = Field(
        default="bgr24",
        description="Pixel format of frames handed to the render target",
    )
    debug: bool = Field(default=False, description="Verbose decoder logging")


class RenderTarget(Protocol):
    """Receives decoded frames."""

    def show(self, frame: np.ndarray) -> None:
        ...


class DecoderSink(Protocol):
    """
    Protocol for decoder sinks.

    One instance is bound to exactly one connection and must not be fed
    after destroy().
    """

    def feed(self, data: bytes) -> None:
        """Push raw compressed video bytes."""
        ...

    def destroy(self) -> None:
        """Release decoder resources. Safe to call more than once."""
        ...


class SinkFactory(Protocol):
    """Creates decoder sinks bound to a render target."""

    def create(
        self,
        render_target: Any,
        options: DecoderOptions,
        on_error: ErrorCallback,
    ) -> DecoderSink:
        ...


def require_render_target(render_target: Optional[Any]) -> Any:
    """Raise DecoderInitError if there is nowhere to render to."""
    if render_target is None:
        raise DecoderInitError("Render target unavailable")
    return render_target
