"""
scrcpy-viewer Status Service
============================

FastAPI entry point that runs one stream session and exposes its state.

The session connects to the video stream endpoint, decodes H.264 into the
latest-frame target and reconnects on its own. This service is the
observable surface for presentation collaborators.

Endpoints:
    GET  /           - Service information
    GET  /health     - Liveness probe (is process alive?)
    GET  /ready      - Readiness probe (is the stream connected?)
    GET  /status     - Current session state and error detail
    GET  /metrics    - Routing counters + session status
    GET  /frame.jpg  - Latest decoded frame
    WS   /ws/status  - Session status pushed on every transition
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, Response

from scrcpy_viewer.config import Settings, settings, setup_logging
from scrcpy_viewer.decoder import DecoderOptions, LatestFrameTarget, create_sink_factory
from scrcpy_viewer.models.session import SessionStatus
from scrcpy_viewer.stream import SessionController, WebSocketTransport


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_session: Optional[SessionController] = None
_frame_target: Optional[LatestFrameTarget] = None
_startup_time: float = 0.0


def get_session() -> Optional[SessionController]:
    return _session

def get_frame_target() -> Optional[LatestFrameTarget]:
    return _frame_target


# =============================================================================
# Session Factory
# =============================================================================

def create_session(
    config: Settings,
    frame_target: Optional[LatestFrameTarget] = None,
) -> SessionController:
    """
    Create a session controller from settings.

    The 'pyav' backend renders into frame_target; the 'file' backend
    records to decoder.record_path.
    """
    backend = config.decoder.backend
    sink_factory = create_sink_factory(backend)

    render_target: Any
    if backend == "file":
        render_target = Path(config.decoder.record_path)
    else:
        render_target = frame_target

    transport = WebSocketTransport(
        ping_interval=config.stream.ping_interval,
        ping_timeout=config.stream.ping_timeout,
        close_timeout=config.stream.close_timeout,
        open_timeout=config.stream.open_timeout,
        max_size=config.stream.max_message_bytes,
    )

    logger.info(f"Decoder backend: {backend}")
    return SessionController(
        url=config.stream.url,
        sink_factory=sink_factory,
        render_target=render_target,
        options=DecoderOptions(
            codec=config.decoder.codec,
            pixel_format=config.decoder.pixel_format,
            debug=config.decoder.debug,
        ),
        reconnect_delay=config.stream.reconnect_delay_seconds,
        transport=transport,
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _session, _frame_target, _startup_time

    _startup_time = time.time()
    logger.info(f"Starting {settings.app.name} {settings.app.version}")
    logger.info(f"Stream URL: {settings.stream.url}")

    _frame_target = LatestFrameTarget()
    _session = create_session(settings, _frame_target)
    _session.connect()

    yield

    logger.info("Shutting down gracefully...")
    _session.dispose()
    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="scrcpy-viewer",
    description="Live H.264 stream client with automatic reconnection",
    version=settings.app.version,
    lifespan=lifespan,
)


def _status_payload(status: SessionStatus) -> dict:
    return status.model_dump(mode="json")


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "scrcpy-viewer",
        "version": settings.app.version,
        "stream_url": settings.stream.url,
        "decoder_backend": settings.decoder.backend,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """Liveness probe - always 200 while the process is running."""
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe.

    Returns 200 if the stream is connected, 503 otherwise.
    """
    session = get_session()
    if session is not None and session.status.is_connected:
        return JSONResponse({"status": "ready", **_status_payload(session.status)})

    payload = {"status": "not_ready"}
    if session is not None:
        payload.update(_status_payload(session.status))
    return JSONResponse(payload, status_code=503)


@app.get("/status")
async def status() -> JSONResponse:
    """Current session state and error detail."""
    session = get_session()
    if session is None:
        return JSONResponse({"error": "Session not started"}, status_code=503)
    return JSONResponse(_status_payload(session.status))


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    session = get_session()
    target = get_frame_target()

    session_metrics = {}
    if session is not None:
        session_metrics = {
            **_status_payload(session.status),
            "reconnect_pending": session.reconnect_pending,
            **session.metrics.to_dict(),
        }

    frame_metrics = {}
    if target is not None:
        frame_metrics = {
            "frames_rendered": target.frame_count,
            "last_frame_at": target.last_frame_at,
        }

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        **session_metrics,
        **frame_metrics,
    })


@app.get("/frame.jpg")
async def frame_jpg() -> Response:
    """Latest decoded frame as JPEG."""
    target = get_frame_target()
    jpeg = target.snapshot_jpeg() if target is not None else None
    if jpeg is None:
        return JSONResponse({"error": "No frame available yet"}, status_code=503)
    return Response(content=jpeg, media_type="image/jpeg")


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/status")
async def status_stream(websocket: WebSocket) -> None:
    """Push the session status on connect and on every transition."""
    session = get_session()
    await websocket.accept()
    if session is None:
        await websocket.close(code=1011)
        return

    queue: asyncio.Queue = asyncio.Queue()
    listener = queue.put_nowait
    session.add_listener(listener)
    logger.info("Client connected to /ws/status")

    try:
        await websocket.send_json(_status_payload(session.status))
        while True:
            status = await queue.get()
            await websocket.send_json(_status_payload(status))
    except WebSocketDisconnect:
        pass
    finally:
        session.remove_listener(listener)
        logger.info("Client disconnected from /ws/status")


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    import uvicorn

    setup_logging(settings)
    uvicorn.run(
        "scrcpy_viewer.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
