"""
PyAV Decoder Sink
=================

Decodes a raw H.264 elementary stream with PyAV (libavcodec, CPU) and pushes
each decoded picture to the render target as a numpy array.

The stream is Annex B as produced by scrcpy; message boundaries are
transport framing only, so the codec parser is responsible for finding
access units inside and across messages.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

import av
from av.error import FFmpegError

from scrcpy_viewer.decoder.base import (
    DecoderError,
    DecoderInitError,
    DecoderOptions,
    ErrorCallback,
    require_render_target,
)


logger = logging.getLogger(__name__)


def _call_soon(callback: Callable[..., None], *args: Any) -> None:
    """Schedule callback on the running loop, or call it now if there is none."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        callback(*args)
        return
    loop.call_soon(callback, *args)


class PyAVDecoderSink:
    """
    Decoder sink backed by a PyAV CodecContext.

    Attributes:
        options: Decoder options
        frames_decoded: Number of pictures pushed to the render target
        destroyed: Whether destroy() has been called
    """

    def __init__(
        self,
        render_target: Any,
        options: DecoderOptions,
        on_error: ErrorCallback,
        schedule: Callable[..., None] = _call_soon,
    ) -> None:
        self._target = require_render_target(render_target)
        self.options = options
        self._on_error = on_error
        self._schedule = schedule
        self.frames_decoded: int = 0
        self._error_reported = False

        try:
            self._codec: Optional[av.CodecContext] = av.CodecContext.create(
                options.codec, "r"
            )
        except (FFmpegError, ValueError) as e:
            raise DecoderInitError(f"Cannot open {options.codec} decoder: {e}")

        logger.info(
            f"PyAVDecoderSink created: codec={options.codec}, "
            f"pixel_format={options.pixel_format}"
        )

    @property
    def destroyed(self) -> bool:
        return self._codec is None

    def feed(self, data: bytes) -> None:
        """
        Parse and decode a chunk of the elementary stream.

        Raises:
            DecoderError: If the sink has been destroyed
        """
        codec = self._codec
        if codec is None:
            raise DecoderError("feed() after destroy()")

        try:
            for packet in codec.parse(data):
                for frame in codec.decode(packet):
                    self._show(frame)
        except FFmpegError as e:
            self._report_error(str(e))

    def _show(self, frame: av.VideoFrame) -> None:
        image = frame.to_ndarray(format=self.options.pixel_format)
        self.frames_decoded += 1
        if self.options.debug and self.frames_decoded == 1:
            h, w = image.shape[:2]
            logger.debug(f"First frame decoded: {w}x{h}")
        self._target.show(image)

    def _report_error(self, reason: str) -> None:
        logger.error(f"Decode error: {reason}")
        # Only the first error per sink reaches the session
        if self._error_reported:
            return
        self._error_reported = True
        self._schedule(self._on_error, reason)

    def destroy(self) -> None:
        """Drop the codec context and any bytes buffered in its parser."""
        if self._codec is None:
            return
        self._codec = None
        logger.info(f"PyAVDecoderSink destroyed after {self.frames_decoded} frames")


class PyAVSinkFactory:
    """Creates a fresh PyAVDecoderSink per connection."""

    def create(
        self,
        render_target: Any,
        options: DecoderOptions,
        on_error: ErrorCallback,
    ) -> PyAVDecoderSink:
        return PyAVDecoderSink(render_target, options, on_error)
