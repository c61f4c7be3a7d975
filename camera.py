import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class CameraFrame:
    frame: Optional[np.ndarray]
    timestamp: float
    ok: bool


class FrameSource:
    """An OpenCV capture the controller can open, read and release."""

    def __init__(self):
        self._capture: Optional[cv2.VideoCapture] = None

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    def _open_capture(self, *args) -> bool:
        self._capture = cv2.VideoCapture(*args)
        if not self._capture.isOpened():
            logger.error("Could not open video source %s", args[0])
            self._capture = None
            return False
        return True

    def _grab(self) -> Optional[np.ndarray]:
        ok, frame = self._capture.read()
        return frame if ok else None

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None


class CameraStream(FrameSource):
    """Live webcam. Suspending keeps the device open so live tracking resumes at once."""

    def __init__(self, camera_index: int = 0, width: int = 640, height: int = 480, target_fps: int = 30):
        super().__init__()
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self.target_fps = target_fps
        self.suspended = False
        self._last_time = time.time()

    def open(self) -> bool:
        backend = cv2.CAP_DSHOW if sys.platform.startswith("win") else cv2.CAP_ANY
        if not self._open_capture(self.camera_index, backend):
            return False
        for prop, value in (
            (cv2.CAP_PROP_FRAME_WIDTH, self.width),
            (cv2.CAP_PROP_FRAME_HEIGHT, self.height),
            (cv2.CAP_PROP_FPS, self.target_fps),
        ):
            self._capture.set(prop, value)
        self.suspended = False
        return True

    def suspend(self) -> None:
        self.suspended = True

    def resume(self) -> None:
        self.suspended = False

    def _pace(self) -> float:
        # Sleep so frames are not pulled faster than target_fps.
        now = time.time()
        if self.target_fps > 0:
            wait = 1.0 / float(self.target_fps) - (now - self._last_time)
            if wait > 0:
                time.sleep(wait)
                now = time.time()
        self._last_time = now
        return now

    def read(self) -> CameraFrame:
        if not self.is_open or self.suspended:
            return CameraFrame(None, time.time(), False)
        frame = self._grab()
        if frame is None:
            return CameraFrame(None, time.time(), False)
        return CameraFrame(frame, self._pace(), True)


class VideoFileStream(FrameSource):
    """Recorded video read frame by frame, timestamped by its playback position."""

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)
        self.ended = False

    def open(self) -> bool:
        self.ended = False
        return self._open_capture(str(self.path))

    def read(self) -> CameraFrame:
        if not self.is_open or self.ended:
            return CameraFrame(None, time.time(), False)
        frame = self._grab()
        if frame is None:
            self.ended = True
            return CameraFrame(None, time.time(), False)
        return CameraFrame(frame, self._capture.get(cv2.CAP_PROP_POS_MSEC) / 1000.0, True)
