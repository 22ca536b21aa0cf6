"""
Decoder Module
==============

Decoder sinks turn raw H.264 elementary-stream bytes into frames.

Components:
    - DecoderSink / SinkFactory: Contract used by the session controller
    - PyAVDecoderSink: libavcodec decoding via PyAV
    - RawFileSink: Records the stream to disk without decoding
    - LatestFrameTarget: Thread-safe render target holding the newest frame

Design Philosophy:
    Decoding is treated as a pluggable black box. The session controller
    only ever calls create(), feed() and destroy().
"""

from scrcpy_viewer.decoder.base import (
    DecoderError,
    DecoderInitError,
    DecoderOptions,
    DecoderSink,
    RenderTarget,
    SinkFactory,
)
from scrcpy_viewer.decoder.raw_file import RawFileSink, RawFileSinkFactory
from scrcpy_viewer.decoder.targets import LatestFrameTarget


def create_sink_factory(backend: str) -> SinkFactory:
    """
    Create sink factory based on backend name.

    PyAV is imported lazily so the file backend works without it.
    """
    if backend == "pyav":
        from scrcpy_viewer.decoder.pyav import PyAVSinkFactory
        return PyAVSinkFactory()
    elif backend == "file":
        return RawFileSinkFactory()
    else:
        raise ValueError(f"Unknown decoder backend: {backend}")


__all__ = [
    "DecoderError",
    "DecoderInitError",
    "DecoderOptions",
    "DecoderSink",
    "RenderTarget",
    "SinkFactory",
    "RawFileSink",
    "RawFileSinkFactory",
    "LatestFrameTarget",
    "create_sink_factory",
]
