from dataclasses import dataclass
from typing import Optional

from geometry import distance_3d, map_range
from joint_mappings.base import JointMapping
from pose_types import INDEX_TIP, MIDDLE_TIP, THUMB_TIP, LandmarkSet


@dataclass
class GripThresholds:
    open_distance: float
    closed_distance: float
    max_angle: float


class FingerGripMapping(JointMapping):
    """Thumb-to-fingertip spread drives a single finger joint between 0 and max_angle."""

    name = "finger_grip"

    def __init__(
        self,
        side: str,
        open_distance: float = 0.08,
        closed_distance: float = 0.04,
        max_angle: float = 1.0,
    ):
        if side not in ("left", "right"):
            raise ValueError(f"Unknown hand side: {side}")
        self.side = side
        self.name = f"{side}_finger_grip"
        self._group = f"{side}_hand"
        self.required_points = [
            (self._group, THUMB_TIP),
            (self._group, INDEX_TIP),
            (self._group, MIDDLE_TIP),
        ]
        self._thresholds = GripThresholds(
            open_distance=open_distance,
            closed_distance=closed_distance,
            max_angle=max_angle,
        )

    def evaluate(self, landmarks: LandmarkSet) -> Optional[float]:
        if not self.has_required(landmarks):
            return None
        thumb = landmarks.point(self._group, THUMB_TIP)
        index = landmarks.point(self._group, INDEX_TIP)
        middle = landmarks.point(self._group, MIDDLE_TIP)
        thumb_index = distance_3d(thumb, index)
        thumb_middle = distance_3d(thumb, middle)

        t = self._thresholds
        is_open = thumb_index > t.open_distance and thumb_middle > t.open_distance
        is_closed = thumb_index < t.closed_distance and thumb_middle < t.closed_distance

        angle = 0.0
        if is_open:
            angle = map_range(thumb_index, t.open_distance, t.open_distance * 1.875, 0.0, t.max_angle)
        elif is_closed:
            angle = map_range(thumb_index, t.closed_distance * 0.75, t.closed_distance * 1.5, t.max_angle, 0.0)
        return max(0.0, min(angle, t.max_angle))
