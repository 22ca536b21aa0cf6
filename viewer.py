"""
scrcpy-viewer — Real-Time OpenCV Viewer
=======================================

Architecture:
    Thread 1 (daemon)  : asyncio loop running the SessionController
                         (WebSocket → PyAV decoder → LatestFrameTarget)
    Main thread        : cv2.imshow render loop with a status overlay

The overlay mirrors the session state:
    connecting    → "Connecting..."
    disconnected  → "Disconnected, reconnecting..."
    error         → "Connection failed" + error detail

Usage:  python viewer.py [--url ws://localhost:8000/api/video/stream]
Controls: q/ESC quit, s print session status
"""

import argparse
import asyncio
import threading
from typing import Optional

import cv2
import numpy as np

from scrcpy_viewer.config import settings, setup_logging
from scrcpy_viewer.decoder import LatestFrameTarget
from scrcpy_viewer.main import create_session
from scrcpy_viewer.models.session import SessionState, SessionStatus
from scrcpy_viewer.stream import SessionController


# =============================================================================
# Thread-safe shared state
# =============================================================================

_lock = threading.Lock()
_state = {
    "status": SessionStatus(),
}


def _get(k):
    with _lock:
        return _state.get(k)


def _set(k, v):
    with _lock:
        _state[k] = v


# =============================================================================
# Thread 1 — Session loop
# =============================================================================

class SessionThread(threading.Thread):
    """Runs one SessionController on a private event loop."""

    def __init__(self, target: LatestFrameTarget) -> None:
        super().__init__(name="session", daemon=True)
        self._target = target
        self._loop = asyncio.new_event_loop()
        self._session: Optional[SessionController] = None
        self._started = threading.Event()

    def run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_until_complete(self._main())
        self._loop.close()

    async def _main(self) -> None:
        self._session = create_session(settings, self._target)
        self._session.add_listener(lambda status: _set("status", status))
        self._started.set()
        async with self._session:
            await self._session.wait_disposed()

    def stop(self, timeout: float = 5.0) -> None:
        """Dispose the session from the loop thread and wait for exit."""
        self._started.wait(timeout)
        if self._session is not None:
            self._loop.call_soon_threadsafe(self._session.dispose)
        self.join(timeout)


# =============================================================================
# Overlay
# =============================================================================

_OVERLAY_TEXT = {
    SessionState.CONNECTING: ("Connecting...", (255, 255, 255)),
    SessionState.DISCONNECTED: ("Disconnected, reconnecting...", (0, 200, 255)),
    SessionState.ERROR: ("Connection failed", (60, 60, 255)),
}


def draw_status_overlay(canvas: np.ndarray, status: SessionStatus) -> np.ndarray:
    """Dim the frame and print the session state unless connected."""
    if status.state == SessionState.CONNECTED:
        return canvas

    overlay = (canvas * 0.5).astype(np.uint8)
    h, w = overlay.shape[:2]
    text, color = _OVERLAY_TEXT[status.state]

    (tw, th), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.8, 2)
    cv2.putText(overlay, text, ((w - tw) // 2, h // 2),
                cv2.FONT_HERSHEY_SIMPLEX, 0.8, color, 2)

    if status.state == SessionState.ERROR and status.error_detail:
        detail = status.error_detail[:80]
        (dw, _), _ = cv2.getTextSize(detail, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 1)
        cv2.putText(overlay, detail, ((w - dw) // 2, h // 2 + th + 16),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, (180, 180, 180), 1)
    return overlay


# =============================================================================
# Main render loop
# =============================================================================

def main():
    parser = argparse.ArgumentParser(description="scrcpy stream viewer")
    parser.add_argument("--url", type=str, default=settings.stream.url,
                        help="WebSocket URL of the video stream")
    parser.add_argument("--fps", type=int, default=60,
                        help="Display refresh rate (default: 60)")
    args = parser.parse_args()

    settings.stream.url = args.url
    settings.decoder.backend = "pyav"
    setup_logging(settings)

    print("=" * 60)
    print("scrcpy Real-Time Viewer")
    print("=" * 60)
    print(f"  Stream:  {settings.stream.url}")
    print()
    print("  Controls:")
    print("    q/ESC  — quit")
    print("    s      — print session status")
    print("=" * 60)

    target = LatestFrameTarget()
    session_thread = SessionThread(target)
    session_thread.start()

    window_name = "scrcpy Viewer"
    cv2.namedWindow(window_name, cv2.WINDOW_NORMAL)
    cv2.resizeWindow(window_name, 540, 960)
    frame_interval_ms = max(1, int(1000 / args.fps))

    try:
        while True:
            frame = target.latest()
            status = _get("status")

            if frame is not None:
                display_frame = draw_status_overlay(frame, status)
            else:
                blank = np.full((960, 540, 3), 0, dtype=np.uint8)
                display_frame = draw_status_overlay(blank, status)

            cv2.imshow(window_name, display_frame)

            key = cv2.waitKey(frame_interval_ms) & 0xFF
            if key == ord('q') or key == 27:
                break
            elif key == ord('s'):
                print(f"[status] {status.state.value}  "
                      f"error={status.error_detail}  "
                      f"reconnects={status.reconnect_count}  "
                      f"frames={target.frame_count}")
    finally:
        session_thread.stop()
        cv2.destroyAllWindows()
        print("\n[viewer] Shutdown.")


if __name__ == "__main__":
    main()
