"""
Raw File Sink
=============

Records the elementary stream to disk instead of decoding it. The output
is playable with `ffplay -f h264 <path>`.

The render target for this sink is the output path.
"""

import logging
from pathlib import Path
from typing import Any, BinaryIO, Optional

from scrcpy_viewer.decoder.base import (
    DecoderError,
    DecoderInitError,
    DecoderOptions,
    ErrorCallback,
    require_render_target,
)


logger = logging.getLogger(__name__)


class RawFileSink:
    """Appends every fed chunk to a file, unmodified."""

    def __init__(self, path: Path, options: DecoderOptions) -> None:
        self.path = path
        self.options = options
        self.bytes_written: int = 0
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._file: Optional[BinaryIO] = open(path, "ab")
        except OSError as e:
            raise DecoderInitError(f"Cannot open {path} for writing: {e}")
        logger.info(f"Recording stream to {path}")

    def feed(self, data: bytes) -> None:
        if self._file is None:
            raise DecoderError("feed() after destroy()")
        self._file.write(data)
        self.bytes_written += len(data)

    def destroy(self) -> None:
        if self._file is None:
            return
        f, self._file = self._file, None
        f.close()
        logger.info(f"Closed {self.path} ({self.bytes_written} bytes)")


class RawFileSinkFactory:
    """
    Creates a RawFileSink per connection.

    Every sink appends to the same path, so the streams of successive
    connections are concatenated into one recording.

    Write errors surface synchronously from feed() (and are logged by the
    router); the on_error callback is unused since nothing is decoded.
    """

    def create(
        self,
        render_target: Any,
        options: DecoderOptions,
        on_error: ErrorCallback,
    ) -> RawFileSink:
        path = Path(require_render_target(render_target))
        return RawFileSink(path, options)
