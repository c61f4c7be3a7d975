import math

import pytest

from baseline import POSE_BASELINE
from conftest import make_hand, make_pose
from joint_mappings import (
    ChestMapping,
    ElbowFlexMapping,
    FingerGripMapping,
    HeadMapping,
    ShoulderPitchMapping,
    ShoulderRollMapping,
)
from mapping_registry import JointMapper, get_robot_profile, match_robot_profile
from pose_types import (
    INDEX_TIP,
    LEFT_ELBOW,
    LEFT_SHOULDER,
    MIDDLE_TIP,
    NOSE,
    THUMB_TIP,
    WRIST,
    LandmarkSet,
)


def test_centered_nose_without_hands_keeps_head_at_baseline():
    landmarks = LandmarkSet(pose=make_pose({NOSE: (0.5, 0.5)}), left_hand=None, right_hand=None)
    command = JointMapper().map(landmarks, timestamp_ms=10)

    assert command.get("HEAD_JOINT0") == pytest.approx(POSE_BASELINE.get("HEAD_JOINT0"))
    assert command.get("HEAD_JOINT1") == pytest.approx(POSE_BASELINE.get("HEAD_JOINT1"))
    # Arm and finger joints need the hands.
    assert "LARM_JOINT0" not in command.joints
    assert "RARM_F_JOINT0" not in command.joints


def test_head_follows_nose():
    landmarks = LandmarkSet(pose=make_pose({NOSE: (1.0, 0.0)}))
    assert HeadMapping("yaw").evaluate(landmarks) == pytest.approx(math.pi / 2)
    assert HeadMapping("pitch").evaluate(landmarks) == pytest.approx(-math.pi / 2)


def test_missing_nose_returns_none():
    assert HeadMapping("yaw").evaluate(LandmarkSet(pose=make_pose({}))) is None


def test_shoulder_roll_and_pitch(upper_body):
    roll = ShoulderRollMapping("left").evaluate(upper_body)
    # wrist.x = 0.8 on [0, 1] -> [-pi/4, pi/4]
    assert roll == pytest.approx(-math.pi / 4 + 0.8 * math.pi / 2)

    pitch = ShoulderPitchMapping("left").evaluate(upper_body)
    expected = -math.pi + (0.4 / 0.75) * (math.pi / 6 + math.pi)
    assert pitch == pytest.approx(expected)


def test_arm_needs_same_side_elbow(upper_body):
    upper_body.pose[LEFT_ELBOW] = None
    assert ShoulderRollMapping("left").evaluate(upper_body) is None
    assert ShoulderRollMapping("right").evaluate(upper_body) is not None


def test_elbow_straight_arm_is_zero():
    landmarks = LandmarkSet(
        pose=make_pose({LEFT_SHOULDER: (0.2, 0.5), LEFT_ELBOW: (0.4, 0.5)}),
        left_hand=make_hand({WRIST: (0.6, 0.5)}),
    )
    assert ElbowFlexMapping("left").evaluate(landmarks) == pytest.approx(0.0)


def test_elbow_bent_arm_is_negative():
    landmarks = LandmarkSet(
        pose=make_pose({LEFT_SHOULDER: (0.2, 0.5), LEFT_ELBOW: (0.4, 0.5)}),
        left_hand=make_hand({WRIST: (0.4, 0.3)}),
    )
    value = ElbowFlexMapping("left").evaluate(landmarks)
    assert -math.pi / 2 <= value < 0.0


def _hand_with_spread(spread):
    return make_hand({
        WRIST: (0.5, 0.9),
        THUMB_TIP: (0.5, 0.5),
        INDEX_TIP: (0.5 + spread, 0.5),
        MIDDLE_TIP: (0.5, 0.5 + spread),
    })


def test_finger_grip_open_hand():
    landmarks = LandmarkSet(right_hand=_hand_with_spread(0.15))
    assert FingerGripMapping("right").evaluate(landmarks) == pytest.approx(1.0)


def test_finger_grip_closed_hand():
    landmarks = LandmarkSet(right_hand=_hand_with_spread(0.03))
    assert FingerGripMapping("right").evaluate(landmarks) == pytest.approx(1.0)


def test_finger_grip_between_thresholds_is_zero():
    landmarks = LandmarkSet(right_hand=_hand_with_spread(0.06))
    assert FingerGripMapping("right").evaluate(landmarks) == 0.0


def test_chest_is_damped(upper_body):
    yaw = ChestMapping("yaw").evaluate(upper_body)
    assert yaw == pytest.approx(0.0)
    pitch = ChestMapping("pitch").evaluate(upper_body)
    assert pitch == pytest.approx(0.0)


def test_mapper_covers_all_mapped_joints(upper_body):
    command = JointMapper().map(upper_body, timestamp_ms=42)
    assert command.timestamp_ms == 42
    for name in ("HEAD_JOINT0", "CHEST_JOINT0", "LARM_JOINT0", "LARM_JOINT1", "LARM_JOINT4", "RARM_JOINT0"):
        assert name in command.joints
    # Hands have no finger tips in this fixture.
    assert "LARM_F_JOINT0" not in command.joints


def test_mapper_empty_landmarks():
    command = JointMapper().map(LandmarkSet(), timestamp_ms=5)
    assert dict(command.joints) == {}
    assert dict(JointMapper().map(None).joints) == {}


class _BrokenMapping(HeadMapping):
    def evaluate(self, landmarks):
        return float("nan")


def test_mapper_drops_non_finite_values(upper_body):
    mapper = JointMapper({"HEAD_JOINT0": _BrokenMapping(), "HEAD_JOINT1": HeadMapping("pitch")})
    command = mapper.map(upper_body)
    assert "HEAD_JOINT0" not in command.joints
    assert "HEAD_JOINT1" in command.joints


def test_profiles():
    assert get_robot_profile("jaxon_jvrc").normalization.up_axis == "z"
    assert get_robot_profile("nope").key == "generic"
    assert match_robot_profile("JAXON_JVRC").key == "jaxon_jvrc"
    assert match_robot_profile("hexapod-robot").key == "hexapod_robot"
    assert match_robot_profile("something_else").key == "generic"
