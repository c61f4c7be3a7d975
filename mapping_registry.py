import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from joint_mappings import (
    ChestMapping,
    ElbowFlexMapping,
    FingerGripMapping,
    HeadMapping,
    JointMapping,
    ShoulderPitchMapping,
    ShoulderRollMapping,
)
from model_normalizer import NormalizationProfile
from pose_types import JointCommand, LandmarkSet

logger = logging.getLogger(__name__)


@dataclass
class RobotProfile:
    key: str
    name: str
    mappings: Dict[str, JointMapping]
    normalization: NormalizationProfile = field(default_factory=NormalizationProfile)


def get_joint_mappings() -> Dict[str, JointMapping]:
    mappings: Dict[str, JointMapping] = {
        "HEAD_JOINT0": HeadMapping("yaw"),
        "HEAD_JOINT1": HeadMapping("pitch"),
        "CHEST_JOINT0": ChestMapping("yaw"),
        "CHEST_JOINT1": ChestMapping("pitch"),
    }

    for side, prefix in (("left", "LARM"), ("right", "RARM")):
        mappings[f"{prefix}_JOINT0"] = ShoulderRollMapping(side)
        mappings[f"{prefix}_JOINT1"] = ShoulderPitchMapping(side)
        mappings[f"{prefix}_JOINT4"] = ElbowFlexMapping(side)
        grip = FingerGripMapping(side)
        mappings[f"{prefix}_F_JOINT0"] = grip
        mappings[f"{prefix}_F_JOINT1"] = grip

    return mappings


def get_robot_profiles() -> Dict[str, RobotProfile]:
    profiles: List[RobotProfile] = [
        RobotProfile(
            "jaxon_jvrc",
            "JAXON JVRC",
            get_joint_mappings(),
            NormalizationProfile(up_axis="z", scale=0.001),
        ),
        # The hexapod is driven by discrete commands elsewhere; tracking leaves it at rest.
        RobotProfile(
            "hexapod_robot",
            "Hexapod Robot",
            {},
            NormalizationProfile(up_axis="z", scale=10.0),
        ),
        RobotProfile("generic", "Uploaded robot", get_joint_mappings()),
    ]
    return {profile.key: profile for profile in profiles}


def get_robot_profile(key: Optional[str]) -> RobotProfile:
    profiles = get_robot_profiles()
    if key is None:
        return profiles["generic"]
    if key not in profiles:
        logger.warning("Unknown robot profile %r, using generic", key)
        return profiles["generic"]
    return profiles[key]


def match_robot_profile(robot_name: Optional[str]) -> RobotProfile:
    """Pick a known profile from a URDF robot name, falling back to generic."""
    profiles = get_robot_profiles()
    normalized = (robot_name or "").lower().replace("-", "_").replace(" ", "_")
    for key, profile in profiles.items():
        if key != "generic" and key in normalized:
            return profile
    return profiles["generic"]


class JointMapper:
    """Evaluate every joint mapping against one landmark set."""

    def __init__(self, mappings: Optional[Dict[str, JointMapping]] = None):
        self.mappings = dict(mappings) if mappings is not None else get_joint_mappings()

    def map(self, landmarks: LandmarkSet, timestamp_ms: int = 0) -> JointCommand:
        angles: Dict[str, float] = {}
        if landmarks is None or landmarks.empty:
            return JointCommand(joints=angles, timestamp_ms=timestamp_ms)
        for joint_name, mapping in self.mappings.items():
            value = mapping.evaluate(landmarks)
            if value is None:
                continue
            if not math.isfinite(value):
                logger.debug("Dropping %s this frame: non-finite angle %r", joint_name, value)
                continue
            angles[joint_name] = value
        return JointCommand(joints=angles, timestamp_ms=timestamp_ms)
