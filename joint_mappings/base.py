from typing import List, Optional, Tuple

from pose_types import LandmarkSet

# (group, index) where group is "pose", "left_hand" or "right_hand".
PointRef = Tuple[str, int]


class JointMapping:
    name = "base"
    required_points: List[PointRef] = []

    def has_required(self, landmarks: LandmarkSet) -> bool:
        return all(landmarks.point(group, idx) is not None for group, idx in self.required_points)

    def evaluate(self, landmarks: LandmarkSet) -> Optional[float]:
        """Return the joint angle in radians, or None to leave the joint untouched."""
        raise NotImplementedError
