import logging
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from baseline import POSE_BASELINE
from camera import CameraFrame, VideoFileStream
from history import CommandRecorder
from mapping_registry import JointMapper
from pose_types import JointCommand, LandmarkSet, RecordedSequence
from session import RetargetSession
from smoothing import TemporalSmoother
from video_recorder import VideoRecorder

logger = logging.getLogger(__name__)


class DriveMode(Enum):
    LIVE = "live"
    REPLAY = "replay"


class RetargetingController:
    """Drive the session's robot from tracked frames.

    In LIVE mode frames come from the camera; in REPLAY mode from the last
    recorded video. Only the active source is read. Both go through the same
    tracker, so every command is produced by ``handle_results``.
    """

    def __init__(
        self,
        session: RetargetSession,
        tracker,
        mapper: JointMapper,
        smoother: TemporalSmoother,
        live_source,
        video_recorder: Optional[VideoRecorder] = None,
        recorder: Optional[CommandRecorder] = None,
        clock: Callable[[], float] = time.monotonic,
        on_command: Optional[Callable[[JointCommand], None]] = None,
        on_status: Optional[Callable[[str], None]] = None,
        replay_factory: Callable[[Path], object] = VideoFileStream,
    ):
        self.session = session
        self.tracker = tracker
        self.mapper = mapper
        self.smoother = smoother
        self.live_source = live_source
        self.video_recorder = video_recorder
        self.recorder = recorder or CommandRecorder()
        self.clock = clock
        self.on_command = on_command
        self.on_status = on_status
        self.replay_factory = replay_factory

        self.mode = DriveMode.LIVE
        self.running = False
        self.status = "Idle"
        self.last_frame = None
        self.last_landmarks: Optional[LandmarkSet] = None
        self.last_command: JointCommand = POSE_BASELINE
        self._replay_source = None
        self._last_timestamp_ms = 0

        if tracker is not None:
            tracker.on_results(self.handle_results)

    @property
    def recording(self) -> bool:
        return self.recorder.active

    def _set_status(self, message: str) -> None:
        self.status = message
        logger.info(message)
        if self.on_status is not None:
            self.on_status(message)

    def _emit(self, command: JointCommand) -> None:
        self.last_command = command
        self.session.apply_command(command)
        if self.on_command is not None:
            self.on_command(command)

    def _hold_baseline(self) -> None:
        self.smoother.reset()
        self._emit(JointCommand(joints=self.smoother.state, timestamp_ms=self._next_timestamp()))

    def _next_timestamp(self) -> int:
        timestamp = int(self.clock() * 1000)
        # Command timestamps strictly increase even when ticks share a millisecond.
        timestamp = max(timestamp, self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp
        return timestamp

    # Lifecycle

    def start(self) -> bool:
        if self.tracker is None:
            self._set_status("Body tracking unavailable")
            self._hold_baseline()
            return False
        if not self.live_source.open():
            self._set_status("Error accessing camera")
            self._hold_baseline()
            return False
        self.running = True
        self.mode = DriveMode.LIVE
        self._set_status("Tracking live")
        return True

    def stop(self) -> None:
        self.stop_replay()
        if self.recorder.active:
            self.stop_recording()
        self.running = False
        self.live_source.release()
        if self.tracker is not None:
            self.tracker.close()

    def tick(self) -> Optional[CameraFrame]:
        """Read one frame from the active source and send it to the tracker."""
        if not self.running:
            return None

        if self.mode is DriveMode.REPLAY:
            frame = self._replay_source.read()
            if not frame.ok:
                if self._replay_source.ended:
                    self._set_status("Replay finished")
                    self.stop_replay()
                return None
        else:
            frame = self.live_source.read()
            if not frame.ok:
                return None
            if self.recorder.active and self.video_recorder is not None:
                self.video_recorder.write(frame.frame)

        self.last_frame = frame.frame
        self.tracker.send(frame.frame, frame.timestamp)
        return frame

    def handle_results(self, landmarks: LandmarkSet, timestamp: float = 0.0) -> JointCommand:
        self.last_landmarks = landmarks
        raw = self.mapper.map(landmarks, self._next_timestamp())
        # An empty raw command leaves the smoother holding its previous values.
        command = self.smoother.update(raw)
        self.recorder.append(command)
        self._emit(command)
        return command

    # Recording

    def start_recording(self) -> bool:
        if self.mode is DriveMode.REPLAY:
            self._set_status("Stop replay before recording")
            return False
        self.session.discard_recording()
        self.smoother.reset()
        self.recorder.start()
        if self.video_recorder is not None:
            self.video_recorder.start()
        self._set_status("Recording")
        return True

    def stop_recording(self) -> Optional[RecordedSequence]:
        sequence = self.recorder.stop()
        if sequence is None:
            return None
        video_path = self.video_recorder.stop() if self.video_recorder is not None else None
        self.session.set_recording(sequence, video_path)
        self._set_status(f"Recorded {len(sequence)} frames")
        return sequence

    def toggle_recording(self) -> bool:
        if self.recorder.active:
            self.stop_recording()
            return False
        return self.start_recording()

    # Replay

    def start_replay(self) -> bool:
        if self.mode is DriveMode.REPLAY:
            return True
        if self.recorder.active:
            self._set_status("Stop recording before replay")
            return False
        video_path = self.session.recorded_video_path
        if video_path is None or not Path(video_path).exists():
            self._set_status("No recorded video to play")
            return False

        source = self.replay_factory(video_path)
        if not source.open():
            self._set_status("Could not open recorded video")
            return False

        self.live_source.suspend()
        self._replay_source = source
        self.smoother.reset()
        self.mode = DriveMode.REPLAY
        self._set_status("Replaying recording")
        return True

    def stop_replay(self) -> None:
        if self.mode is not DriveMode.REPLAY:
            return
        if self._replay_source is not None:
            self._replay_source.release()
        self._replay_source = None
        self.mode = DriveMode.LIVE
        self.live_source.resume()
        self._set_status("Tracking live")

    def toggle_replay(self) -> bool:
        if self.mode is DriveMode.REPLAY:
            self.stop_replay()
            return False
        return self.start_replay()

    # Misc

    def set_smoothing(self, enabled: bool) -> None:
        self.smoother.enabled = enabled
        logger.info("Smoothing %s", "enabled" if enabled else "disabled")

    def clear(self) -> None:
        self.stop_replay()
        if self.recorder.active:
            self.recorder.stop()
            if self.video_recorder is not None:
                path = self.video_recorder.stop()
                if path is not None:
                    path.unlink(missing_ok=True)
        self.session.clear()
        self.mapper = JointMapper(self.session.profile.mappings)
        self._hold_baseline()
        self._set_status("Cleared")
