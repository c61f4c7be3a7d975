import logging
from typing import Callable, List, Optional

import cv2
import mediapipe as mp

from errors import TrackingUnavailable
from pose_types import LandmarkPoint, LandmarkSet

logger = logging.getLogger(__name__)

ResultCallback = Callable[[LandmarkSet, float], None]


class HolisticTracker:
    """MediaPipe Holistic wrapper producing one LandmarkSet per frame.

    Results are delivered to callbacks registered with ``on_results``, so the
    same consumer serves live camera frames and recorded video frames.
    """

    def __init__(
        self,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        model_complexity: int = 0,
        visibility_threshold: float = 0.5,
    ):
        self.visibility_threshold = visibility_threshold
        self._callbacks: List[ResultCallback] = []
        try:
            self._mp_holistic = mp.solutions.holistic
            self._holistic = self._mp_holistic.Holistic(
                static_image_mode=False,
                model_complexity=model_complexity,
                smooth_landmarks=True,
                enable_segmentation=False,
                refine_face_landmarks=False,
                min_detection_confidence=min_detection_confidence,
                min_tracking_confidence=min_tracking_confidence,
            )
        except (AttributeError, RuntimeError, OSError) as exc:
            raise TrackingUnavailable(f"Error initializing body tracking: {exc}") from exc

    def on_results(self, callback: ResultCallback) -> None:
        self._callbacks.append(callback)

    def send(self, frame_bgr, timestamp: float) -> LandmarkSet:
        landmarks = self.process(frame_bgr)
        for callback in self._callbacks:
            callback(landmarks, timestamp)
        return landmarks

    def process(self, frame_bgr) -> LandmarkSet:
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        frame_rgb.flags.writeable = False
        results = self._holistic.process(frame_rgb)
        return LandmarkSet(
            pose=self._convert(results.pose_landmarks, use_visibility=True),
            left_hand=self._convert(results.left_hand_landmarks, use_visibility=False),
            right_hand=self._convert(results.right_hand_landmarks, use_visibility=False),
        )

    def _convert(self, landmark_list, use_visibility: bool) -> Optional[List[Optional[LandmarkPoint]]]:
        if landmark_list is None:
            return None
        points: List[Optional[LandmarkPoint]] = []
        for lm in landmark_list.landmark:
            # Hand landmarks carry no visibility score.
            confidence = lm.visibility if use_visibility else 1.0
            if use_visibility and confidence < self.visibility_threshold:
                points.append(None)
                continue
            points.append(LandmarkPoint(lm.x, lm.y, lm.z, confidence))
        return points

    def close(self) -> None:
        self._holistic.close()
        self._callbacks.clear()
