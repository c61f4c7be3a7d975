import pytest

from baseline import POSE_BASELINE
from conftest import FakeSource, FakeTracker, FakeVideoRecorder, StepClock
from controller import DriveMode, RetargetingController
from mapping_registry import JointMapper
from pose_types import JointCommand, LandmarkSet
from session import RetargetSession
from smoothing import TemporalSmoother


class Harness:
    def __init__(self, tmp_path, results=None, camera=None, tracker=True, replay_frames=3):
        self.session = RetargetSession()
        self.tracker = FakeTracker(results) if tracker else None
        self.camera = camera or FakeSource()
        self.video = FakeVideoRecorder(tmp_path)
        self.replays = []
        self.commands = []
        self.statuses = []
        self.replay_frames = replay_frames
        self.controller = RetargetingController(
            session=self.session,
            tracker=self.tracker,
            mapper=JointMapper(),
            smoother=TemporalSmoother(factor=0.2),
            live_source=self.camera,
            video_recorder=self.video,
            clock=StepClock(),
            on_command=self.commands.append,
            on_status=self.statuses.append,
            replay_factory=self._replay_source,
        )

    def _replay_source(self, path):
        source = FakeSource(frames=self.replay_frames)
        self.replays.append(source)
        return source

    def record(self, frames):
        self.controller.start_recording()
        for _ in range(frames):
            self.controller.tick()
        return self.controller.stop_recording()


@pytest.fixture
def harness(tmp_path):
    h = Harness(tmp_path)
    assert h.controller.start()
    return h


def test_camera_failure_holds_baseline(tmp_path, primitive_urdf):
    h = Harness(tmp_path, camera=FakeSource(can_open=False))
    h.session.load_description(primitive_urdf)
    h.session.apply_command(JointCommand({"HEAD_JOINT0": 0.4}))

    assert h.controller.start() is False
    assert h.controller.status == "Error accessing camera"
    assert h.session.model.get_joint("HEAD_JOINT0").angle == 0.0
    assert dict(h.commands[-1].joints) == dict(POSE_BASELINE.joints)
    assert h.controller.tick() is None


def test_missing_tracker_is_not_fatal(tmp_path):
    h = Harness(tmp_path, tracker=False)
    assert h.controller.start() is False
    assert h.controller.status == "Body tracking unavailable"


def test_live_frames_produce_smoothed_commands(tmp_path, upper_body):
    h = Harness(tmp_path, results=[upper_body])
    h.controller.start()
    frame = h.controller.tick()

    assert frame is not None and frame.ok
    raw = JointMapper().map(upper_body)
    command = h.commands[-1]
    assert command.get("LARM_JOINT0") == pytest.approx(raw.get("LARM_JOINT0") * 0.2)
    assert h.controller.last_landmarks is upper_body


def test_lost_subject_holds_previous_values(tmp_path, upper_body):
    h = Harness(tmp_path, results=[upper_body, LandmarkSet()])
    h.controller.start()
    h.controller.start_recording()
    h.controller.tick()
    h.controller.tick()
    sequence = h.controller.stop_recording()

    assert len(sequence) == 2
    assert dict(sequence[1].joints) == dict(sequence[0].joints)
    assert sequence[0].get("LARM_JOINT0") != 0.0


def test_ten_recorded_frames_keep_order(harness):
    sequence = harness.record(10)

    assert len(sequence) == 10
    timestamps = [c.timestamp_ms for c in sequence]
    assert all(a < b for a, b in zip(timestamps, timestamps[1:]))
    assert harness.session.recorded_sequence is sequence
    assert harness.session.recorded_video_path.exists()
    assert harness.video.frames == 10


def test_new_recording_discards_previous(harness):
    harness.record(5)
    old_video = harness.session.recorded_video_path

    harness.controller.start_recording()
    assert len(harness.controller.recorder) == 0
    assert harness.session.recorded_sequence is None
    assert not old_video.exists()

    harness.controller.tick()
    sequence = harness.controller.stop_recording()
    assert len(sequence) == 1


def test_stop_recording_when_idle(harness):
    assert harness.controller.stop_recording() is None


def test_replay_requires_a_recording(harness):
    assert harness.controller.start_replay() is False
    assert harness.controller.mode is DriveMode.LIVE


def test_replay_is_blocked_while_recording(harness):
    harness.record(3)
    harness.controller.start_recording()
    assert harness.controller.start_replay() is False
    assert harness.controller.mode is DriveMode.LIVE


def test_replay_suspends_live_and_resumes_at_end(harness):
    harness.record(4)
    live_reads = harness.camera.reads
    sent = len(harness.tracker.sent)

    assert harness.controller.start_replay() is True
    assert harness.controller.mode is DriveMode.REPLAY
    assert harness.camera.suspended
    assert not harness.camera.released

    for _ in range(3):
        assert harness.controller.tick() is not None
    assert harness.camera.reads == live_reads
    assert len(harness.tracker.sent) == sent + 3

    # The source runs dry on the next read.
    assert harness.controller.tick() is None
    assert harness.controller.mode is DriveMode.LIVE
    assert not harness.camera.suspended
    assert harness.replays[0].released

    harness.controller.tick()
    assert harness.camera.reads == live_reads + 1


def test_replayed_commands_are_not_recorded(harness):
    sequence = harness.record(2)
    harness.controller.start_replay()
    harness.controller.tick()
    assert harness.session.recorded_sequence is sequence
    assert len(harness.controller.recorder) == 0


def test_recording_is_blocked_during_replay(harness):
    harness.record(2)
    harness.controller.start_replay()
    assert harness.controller.start_recording() is False
    harness.controller.stop_replay()
    assert harness.controller.mode is DriveMode.LIVE
    assert harness.controller.start_recording() is True


def test_toggles(harness):
    assert harness.controller.toggle_recording() is True
    harness.controller.tick()
    assert harness.controller.toggle_recording() is False
    assert harness.controller.toggle_replay() is True
    assert harness.controller.toggle_replay() is False
    assert harness.controller.mode is DriveMode.LIVE


def test_clear_resets_everything(harness, primitive_urdf):
    harness.session.load_description(primitive_urdf)
    harness.record(2)
    harness.controller.start_recording()
    harness.controller.tick()

    harness.controller.clear()

    assert not harness.controller.recording
    assert harness.session.model is None
    assert harness.session.recorded_sequence is None
    assert harness.controller.smoother.state == dict(POSE_BASELINE.joints)
    assert harness.controller.status == "Cleared"
    assert "Cleared" in harness.statuses


def test_smoothing_toggle(harness):
    harness.controller.set_smoothing(False)
    assert harness.controller.smoother.enabled is False


def test_stop_releases_sources(harness):
    harness.controller.start_recording()
    harness.controller.tick()
    harness.controller.stop()
    assert harness.camera.released
    assert harness.tracker.closed
    assert harness.session.recorded_sequence is not None
    assert harness.controller.tick() is None


def test_clear_restores_generic_mappings(harness, primitive_urdf):
    harness.session.load_description(primitive_urdf, profile="hexapod_robot")
    harness.controller.mapper = JointMapper(harness.session.profile.mappings)
    assert harness.controller.mapper.mappings == {}

    harness.controller.clear()

    assert harness.session.profile.key == "generic"
    assert set(harness.controller.mapper.mappings) == set(JointMapper().mappings)
