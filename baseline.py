from pose_types import JointCommand

# Rest pose: URDF zero configuration for every joint the mappings drive.
REST_JOINT_NAMES = (
    "HEAD_JOINT0",
    "HEAD_JOINT1",
    "CHEST_JOINT0",
    "CHEST_JOINT1",
    "LARM_JOINT0",
    "LARM_JOINT1",
    "LARM_JOINT4",
    "RARM_JOINT0",
    "RARM_JOINT1",
    "RARM_JOINT4",
    "LARM_F_JOINT0",
    "LARM_F_JOINT1",
    "RARM_F_JOINT0",
    "RARM_F_JOINT1",
)

POSE_BASELINE = JointCommand(joints={name: 0.0 for name in REST_JOINT_NAMES}, timestamp_ms=0)
