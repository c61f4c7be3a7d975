import logging
import time
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class VideoRecorder:
    """Write tracked camera frames to a file so they can be replayed through the tracker."""

    def __init__(self, output_dir: Union[str, Path], fps: float = 30.0, fourcc: str = "mp4v"):
        self.output_dir = Path(output_dir)
        self.fps = fps
        self.fourcc = fourcc
        self._writer: Optional[cv2.VideoWriter] = None
        self._path: Optional[Path] = None
        self.frame_count = 0

    def start(self) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._path = self.output_dir / f"recording_{int(time.time() * 1000)}.mp4"
        self._writer = None
        self.frame_count = 0
        return self._path

    def write(self, frame: np.ndarray) -> None:
        if self._path is None:
            return
        if self._writer is None:
            # Frame size is only known once the first frame arrives.
            height, width = frame.shape[:2]
            self._writer = cv2.VideoWriter(
                str(self._path), cv2.VideoWriter_fourcc(*self.fourcc), self.fps, (width, height)
            )
            if not self._writer.isOpened():
                logger.error("Could not open video writer for %s", self._path)
                self._writer = None
                self._path = None
                return
        self._writer.write(frame)
        self.frame_count += 1

    def stop(self) -> Optional[Path]:
        path = self._path
        if self._writer is not None:
            self._writer.release()
        self._writer = None
        self._path = None
        if path is None or self.frame_count == 0:
            return None
        logger.info("Recorded %d video frames to %s", self.frame_count, path)
        return path
