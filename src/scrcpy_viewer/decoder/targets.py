"""
Render Targets
==============

Thread-safe holder for the most recently decoded frame.

The decoder pushes frames from the event loop thread; the HTTP service and
the OpenCV viewer read them from their own threads.
"""

import threading
import time
from typing import Optional, Tuple

import cv2
import numpy as np


class LatestFrameTarget:
    """
    Render target that keeps only the newest frame.

    Attributes:
        frame_count: Total frames received
        last_frame_at: UNIX timestamp of the newest frame (0.0 if none)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frame: Optional[np.ndarray] = None
        self.frame_count: int = 0
        self.last_frame_at: float = 0.0

    def show(self, frame: np.ndarray) -> None:
        with self._lock:
            self._frame = frame
            self.frame_count += 1
            self.last_frame_at = time.time()

    def latest(self) -> Optional[np.ndarray]:
        """Newest frame, or None if nothing has been decoded yet."""
        with self._lock:
            return self._frame

    def clear(self) -> None:
        with self._lock:
            self._frame = None

    def dimensions(self) -> Optional[Tuple[int, int]]:
        """(height, width) of the newest frame."""
        frame = self.latest()
        if frame is None:
            return None
        return frame.shape[:2]

    def snapshot_jpeg(self, quality: int = 85) -> Optional[bytes]:
        """
        Encode the newest frame as JPEG.

        Returns:
            JPEG bytes, or None if there is no frame or encoding failed
        """
        frame = self.latest()
        if frame is None:
            return None
        ok, buf = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, quality])
        if not ok:
            return None
        return buf.tobytes()
