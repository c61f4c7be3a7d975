from pathlib import Path

import numpy as np
import pytest
import trimesh

from camera import CameraFrame
from pose_types import (
    LEFT_ELBOW,
    LEFT_SHOULDER,
    NOSE,
    POSE_LANDMARK_COUNT,
    HAND_LANDMARK_COUNT,
    RIGHT_ELBOW,
    RIGHT_SHOULDER,
    WRIST,
    LandmarkPoint,
    LandmarkSet,
)

PRIMITIVE_URDF = b"""<?xml version="1.0"?>
<robot name="test_bot">
  <link name="base_link">
    <visual>
      <geometry><box size="0.4 0.2 1.0"/></geometry>
    </visual>
  </link>
  <link name="head">
    <visual>
      <geometry><sphere radius="0.1"/></geometry>
    </visual>
  </link>
  <link name="arm">
    <visual>
      <origin xyz="0 0 -0.2" rpy="0 0 0"/>
      <geometry><cylinder radius="0.05" length="0.4"/></geometry>
    </visual>
  </link>
  <link name="finger"/>
  <joint name="HEAD_JOINT0" type="revolute">
    <parent link="base_link"/>
    <child link="head"/>
    <origin xyz="0 0 0.6" rpy="0 0 0"/>
    <axis xyz="0 0 1"/>
    <limit lower="-0.5" upper="0.5" effort="1" velocity="1"/>
  </joint>
  <joint name="LARM_JOINT0" type="revolute">
    <parent link="base_link"/>
    <child link="arm"/>
    <origin xyz="0.25 0 0.4" rpy="0 0 0"/>
    <axis xyz="1 0 0"/>
    <limit lower="-1.0" upper="1.0" effort="1" velocity="1"/>
  </joint>
  <joint name="LARM_F_JOINT0" type="fixed">
    <parent link="arm"/>
    <child link="finger"/>
    <origin xyz="0 0 -0.4" rpy="0 0 0"/>
  </joint>
</robot>
"""

MESH_URDF = b"""<?xml version="1.0"?>
<robot name="mesh_bot">
  <link name="base_link">
    <visual>
      <geometry><mesh filename="package://mesh_bot/meshes/Body.STL"/></geometry>
    </visual>
  </link>
  <link name="wheel">
    <visual>
      <geometry><mesh filename="package://mesh_bot/meshes/missing_wheel.stl"/></geometry>
    </visual>
  </link>
  <joint name="WHEEL_JOINT" type="continuous">
    <parent link="base_link"/>
    <child link="wheel"/>
    <origin xyz="0 0 0.1"/>
    <axis xyz="0 1 0"/>
  </joint>
</robot>
"""


@pytest.fixture
def primitive_urdf() -> bytes:
    return PRIMITIVE_URDF


@pytest.fixture
def mesh_urdf() -> bytes:
    return MESH_URDF


@pytest.fixture
def stl_bytes() -> bytes:
    return trimesh.creation.box(extents=(0.5, 0.3, 0.8)).export(file_type="stl")


def make_pose(points):
    """Pose list with only the given indices filled."""
    pose = [None] * POSE_LANDMARK_COUNT
    for idx, (x, y) in points.items():
        pose[idx] = LandmarkPoint(x, y)
    return pose


def make_hand(points):
    hand = [None] * HAND_LANDMARK_COUNT
    for idx, (x, y) in points.items():
        hand[idx] = LandmarkPoint(x, y)
    return hand


@pytest.fixture
def upper_body() -> LandmarkSet:
    pose = make_pose({
        NOSE: (0.5, 0.3),
        LEFT_SHOULDER: (0.6, 0.5),
        RIGHT_SHOULDER: (0.4, 0.5),
        LEFT_ELBOW: (0.7, 0.6),
        RIGHT_ELBOW: (0.3, 0.6),
    })
    return LandmarkSet(
        pose=pose,
        left_hand=make_hand({WRIST: (0.8, 0.4)}),
        right_hand=make_hand({WRIST: (0.2, 0.4)}),
    )


class FakeTracker:
    def __init__(self, results=None):
        self.results = list(results or [])
        self.default = LandmarkSet()
        self.callbacks = []
        self.sent = []
        self.closed = False

    def on_results(self, callback):
        self.callbacks.append(callback)

    def send(self, frame, timestamp):
        self.sent.append(timestamp)
        landmarks = self.results.pop(0) if self.results else self.default
        for callback in self.callbacks:
            callback(landmarks, timestamp)
        return landmarks

    def close(self):
        self.closed = True


class FakeSource:
    def __init__(self, frames=None, can_open=True):
        self.frames = frames
        self.can_open = can_open
        self.opened = False
        self.suspended = False
        self.released = False
        self.ended = False
        self.reads = 0

    def open(self):
        self.opened = self.can_open
        return self.can_open

    def suspend(self):
        self.suspended = True

    def resume(self):
        self.suspended = False

    def read(self):
        if not self.opened or self.suspended or self.ended:
            return CameraFrame(None, 0.0, False)
        if self.frames is not None and self.reads >= self.frames:
            self.ended = True
            return CameraFrame(None, 0.0, False)
        self.reads += 1
        return CameraFrame(np.zeros((4, 4, 3), dtype=np.uint8), self.reads / 30.0, True)

    def release(self):
        self.released = True
        self.opened = False


class FakeVideoRecorder:
    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self.frames = 0
        self.path = None
        self.count = 0

    def start(self):
        self.count += 1
        self.path = self.output_dir / f"take_{self.count}.mp4"
        self.frames = 0
        return self.path

    def write(self, frame):
        if self.path is not None:
            self.frames += 1

    def stop(self):
        path, self.path = self.path, None
        if path is None or self.frames == 0:
            return None
        path.write_bytes(b"video")
        return path


class StepClock:
    def __init__(self, step: float = 1.0 / 30.0):
        self.now = 100.0
        self.step = step

    def __call__(self):
        self.now += self.step
        return self.now


@pytest.fixture
def clock():
    return StepClock()


