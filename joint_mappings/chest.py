import math
from typing import Optional

from geometry import map_range, midpoint
from joint_mappings.base import JointMapping
from pose_types import LEFT_SHOULDER, RIGHT_SHOULDER, LandmarkSet


class ChestMapping(JointMapping):
    """Shoulder midpoint drives a damped torso yaw (x) or pitch (y)."""

    name = "chest"
    required_points = [("pose", LEFT_SHOULDER), ("pose", RIGHT_SHOULDER)]

    def __init__(self, axis: str = "yaw", limit: float = math.pi / 2, gain: float = 0.3):
        if axis not in ("yaw", "pitch"):
            raise ValueError(f"Unknown chest axis: {axis}")
        self.axis = axis
        self.name = f"chest_{axis}"
        self.limit = limit
        self.gain = gain

    def evaluate(self, landmarks: LandmarkSet) -> Optional[float]:
        if not self.has_required(landmarks):
            return None
        center = midpoint(
            landmarks.point("pose", LEFT_SHOULDER),
            landmarks.point("pose", RIGHT_SHOULDER),
        )
        value = center.x if self.axis == "yaw" else center.y
        return map_range(value, 0.0, 1.0, -self.limit, self.limit) * self.gain
