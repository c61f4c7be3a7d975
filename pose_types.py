import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

POSE_LANDMARK_COUNT = 33
HAND_LANDMARK_COUNT = 21

# MediaPipe pose indices used by the joint mappings.
NOSE = 0
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12
LEFT_ELBOW = 13
RIGHT_ELBOW = 14

# MediaPipe hand indices.
WRIST = 0
THUMB_TIP = 4
INDEX_TIP = 8
MIDDLE_TIP = 12


@dataclass
class LandmarkPoint:
    x: float
    y: float
    z: float = 0.0
    confidence: float = 1.0


PointList = Optional[List[Optional[LandmarkPoint]]]


@dataclass
class LandmarkSet:
    pose: PointList = None
    left_hand: PointList = None
    right_hand: PointList = None

    @property
    def empty(self) -> bool:
        return self.pose is None and self.left_hand is None and self.right_hand is None

    def point(self, group: str, index: int) -> Optional[LandmarkPoint]:
        points = getattr(self, group)
        if points is None or index < 0 or index >= len(points):
            return None
        return points[index]


@dataclass(frozen=True)
class JointCommand:
    joints: Mapping[str, float] = field(default_factory=dict)
    timestamp_ms: int = 0

    def __post_init__(self):
        clean: Dict[str, float] = {}
        for name, value in dict(self.joints).items():
            try:
                value = float(value)
            except (TypeError, ValueError):
                logger.debug("Dropping non-numeric value for %s: %r", name, value)
                continue
            if not math.isfinite(value):
                logger.debug("Dropping non-finite value for %s: %r", name, value)
                continue
            clean[name] = value
        object.__setattr__(self, "joints", MappingProxyType(clean))
        object.__setattr__(self, "timestamp_ms", int(self.timestamp_ms))

    def get(self, name: str, default: Optional[float] = None) -> Optional[float]:
        return self.joints.get(name, default)

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp_ms, "joints": dict(self.joints)}


@dataclass(frozen=True)
class RecordedSequence:
    commands: Tuple[JointCommand, ...] = ()

    def __len__(self) -> int:
        return len(self.commands)

    def __iter__(self):
        return iter(self.commands)

    def __getitem__(self, idx: int) -> JointCommand:
        return self.commands[idx]

    def relative_timestamps(self) -> List[int]:
        if not self.commands:
            return []
        start = self.commands[0].timestamp_ms
        return [cmd.timestamp_ms - start for cmd in self.commands]

    @classmethod
    def from_commands(cls, commands: Sequence[JointCommand]) -> "RecordedSequence":
        return cls(tuple(commands))
