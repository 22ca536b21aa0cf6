"""
Frame Router Tests
==================

Classification and routing of inbound messages.
"""

import logging

from scrcpy_viewer.decoder.base import DecoderOptions
from scrcpy_viewer.stream.router import FrameRouter

from conftest import FakeSink


def _sink():
    return FakeSink("video-element", DecoderOptions(), lambda reason: None)


class TestBinaryRouting:
    """Tests for binary payloads."""

    def test_bytes_forwarded_verbatim(self):
        """Verify bytes reach the sink unchanged."""
        router = FrameRouter()
        sink = _sink()

        result = router.route(b"\x00\x00\x00\x01\x65\x88", sink)

        assert result is None
        assert sink.fed == [b"\x00\x00\x00\x01\x65\x88"]
        assert router.metrics.frames_forwarded == 1
        assert router.metrics.bytes_forwarded == 6

    def test_buffer_types_converted_to_bytes(self):
        """Verify bytearray and memoryview payloads are fed as bytes."""
        router = FrameRouter()
        sink = _sink()

        router.route(bytearray(b"\x01\x02"), sink)
        router.route(memoryview(b"\x03"), sink)

        assert sink.fed == [b"\x01\x02", b"\x03"]
        assert all(type(chunk) is bytes for chunk in sink.fed)

    def test_empty_binary_not_forwarded(self):
        """Verify zero-length messages are counted but not fed."""
        router = FrameRouter()
        sink = _sink()

        assert router.route(b"", sink) is None
        assert sink.fed == []
        assert router.metrics.empty_frames == 1
        assert router.metrics.feed_errors == 0

    def test_no_sink(self):
        """Verify bytes without a sink are dropped quietly."""
        router = FrameRouter()

        assert router.route(b"\x01", None) is None
        assert router.metrics.frames_forwarded == 0

    def test_feed_exception_logged(self, caplog):
        """Verify feed exceptions are caught and logged."""
        router = FrameRouter()
        sink = _sink()
        sink.feed_exception = ValueError("truncated NAL")

        with caplog.at_level(logging.ERROR):
            result = router.route(b"\x01", sink)

        assert result is None
        assert router.metrics.feed_errors == 1
        assert router.metrics.frames_forwarded == 0
        assert "Feed error: truncated NAL" in caplog.text


class TestTextRouting:
    """Tests for text payloads."""

    def test_error_payload(self):
        """Verify an error notification returns the server's text."""
        router = FrameRouter()

        assert router.route('{"error":"device not found"}', _sink()) == "device not found"
        assert router.metrics.server_errors == 1

    def test_error_payload_with_context(self):
        """Verify extra fields do not prevent recognising the error."""
        router = FrameRouter()

        detail = router.route('{"error": "scrcpy exited", "code": 2}', _sink())

        assert detail == "scrcpy exited"

    def test_text_never_reaches_sink(self):
        """Verify text frames are never fed to the decoder."""
        router = FrameRouter()
        sink = _sink()

        router.route('{"error":"x"}', sink)
        router.route("hello", sink)

        assert sink.fed == []

    def test_non_json_discarded(self, caplog):
        """Verify unparsable text is logged and returns no error."""
        router = FrameRouter()

        with caplog.at_level(logging.WARNING):
            assert router.route("not json", _sink()) is None

        assert router.metrics.diagnostics_discarded == 1
        assert "non-JSON" in caplog.text

    def test_injected_logger(self, caplog):
        """Verify the router logs through the logger it was given."""
        custom = logging.getLogger("tests.router")
        router = FrameRouter(logger=custom)

        with caplog.at_level(logging.WARNING, logger="tests.router"):
            router.route("garbage", None)

        assert any(r.name == "tests.router" for r in caplog.records)

    def test_metrics_to_dict(self):
        """Verify metrics export every counter."""
        router = FrameRouter()
        router.route(b"\x01\x02", _sink())

        exported = router.metrics.to_dict()

        assert exported == {
            "frames_forwarded": 1,
            "bytes_forwarded": 2,
            "empty_frames": 0,
            "server_errors": 0,
            "diagnostics_discarded": 0,
            "feed_errors": 0,
        }

    def test_deeply_nested_text_discarded(self):
        """Verify text the JSON parser cannot handle is discarded, not raised."""
        router = FrameRouter()
        sink = _sink()

        assert router.route("[" * 100000 + "]" * 100000, sink) is None
        assert router.metrics.diagnostics_discarded == 1
        assert sink.fed == []
