from joint_mappings.arm import ElbowFlexMapping, ShoulderPitchMapping, ShoulderRollMapping
from joint_mappings.base import JointMapping
from joint_mappings.chest import ChestMapping
from joint_mappings.hand import FingerGripMapping
from joint_mappings.head import HeadMapping

__all__ = [
    "JointMapping",
    "HeadMapping",
    "ShoulderRollMapping",
    "ShoulderPitchMapping",
    "ElbowFlexMapping",
    "FingerGripMapping",
    "ChestMapping",
]
