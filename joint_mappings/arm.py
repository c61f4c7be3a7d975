import math
from dataclasses import dataclass
from typing import Optional

from geometry import map_range, three_point_angle
from joint_mappings.base import JointMapping
from pose_types import (
    LEFT_ELBOW,
    LEFT_SHOULDER,
    RIGHT_ELBOW,
    RIGHT_SHOULDER,
    WRIST,
    LandmarkPoint,
    LandmarkSet,
)

_SIDES = {
    "left": ("left_hand", LEFT_SHOULDER, LEFT_ELBOW),
    "right": ("right_hand", RIGHT_SHOULDER, RIGHT_ELBOW),
}


@dataclass
class ArmRange:
    in_min: float
    in_max: float
    out_min: float
    out_max: float


class _ArmMapping(JointMapping):
    name = "arm"

    def __init__(self, side: str, arm_range: ArmRange):
        if side not in _SIDES:
            raise ValueError(f"Unknown arm side: {side}")
        self.side = side
        self._hand_group, self._shoulder_idx, self._elbow_idx = _SIDES[side]
        # The hand tracker's wrist is steadier than the pose wrist.
        self.required_points = [
            (self._hand_group, WRIST),
            ("pose", self._shoulder_idx),
            ("pose", self._elbow_idx),
        ]
        self._range = arm_range

    def _wrist(self, landmarks: LandmarkSet) -> LandmarkPoint:
        return landmarks.point(self._hand_group, WRIST)

    def _scale(self, value: float) -> float:
        r = self._range
        return map_range(value, r.in_min, r.in_max, r.out_min, r.out_max)


class ShoulderRollMapping(_ArmMapping):
    def __init__(self, side: str, limit: float = math.pi / 4):
        super().__init__(side, ArmRange(0.0, 1.0, -limit, limit))
        self.name = f"{side}_shoulder_roll"

    def evaluate(self, landmarks: LandmarkSet) -> Optional[float]:
        if not self.has_required(landmarks):
            return None
        return self._scale(self._wrist(landmarks).x)


class ShoulderPitchMapping(_ArmMapping):
    def __init__(self, side: str, low: float = -math.pi, high: float = math.pi / 6, reach: float = 0.75):
        super().__init__(side, ArmRange(0.0, reach, low, high))
        self.name = f"{side}_shoulder_pitch"

    def evaluate(self, landmarks: LandmarkSet) -> Optional[float]:
        if not self.has_required(landmarks):
            return None
        return self._scale(self._wrist(landmarks).y)


class ElbowFlexMapping(_ArmMapping):
    def __init__(self, side: str, max_flex: float = math.pi / 2, margin: float = 0.1):
        # Straight arm (angle near pi) maps to 0, fully bent to -max_flex.
        super().__init__(side, ArmRange(margin, math.pi - margin, -max_flex, 0.0))
        self.name = f"{side}_elbow_flex"

    def evaluate(self, landmarks: LandmarkSet) -> Optional[float]:
        if not self.has_required(landmarks):
            return None
        shoulder = landmarks.point("pose", self._shoulder_idx)
        elbow = landmarks.point("pose", self._elbow_idx)
        angle = three_point_angle(shoulder, elbow, self._wrist(landmarks))
        return self._scale(angle)
