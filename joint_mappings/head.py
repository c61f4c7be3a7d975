import math
from dataclasses import dataclass
from typing import Optional

from geometry import map_range
from joint_mappings.base import JointMapping
from pose_types import NOSE, LandmarkSet


@dataclass
class HeadRange:
    limit: float


class HeadMapping(JointMapping):
    """Nose position in the frame drives head yaw (x) or pitch (y)."""

    name = "head"
    required_points = [("pose", NOSE)]

    def __init__(self, axis: str = "yaw", limit: float = math.pi / 2):
        if axis not in ("yaw", "pitch"):
            raise ValueError(f"Unknown head axis: {axis}")
        self.axis = axis
        self.name = f"head_{axis}"
        self._range = HeadRange(limit=limit)

    def evaluate(self, landmarks: LandmarkSet) -> Optional[float]:
        if not self.has_required(landmarks):
            return None
        nose = landmarks.point("pose", NOSE)
        value = nose.x if self.axis == "yaw" else nose.y
        return map_range(value, 0.0, 1.0, -self._range.limit, self._range.limit)
