import argparse
import logging
import time
from pathlib import Path

import cv2
import numpy as np

from camera import CameraStream
from config import RetargetConfig
from controller import RetargetingController
from errors import RetargetError, TrackingUnavailable
from history import CommandRecorder, export_sequence
from logging_utils import setup_logging
from mapping_registry import JointMapper
from pose_detection import HolisticTracker
from session import RetargetSession
from smoothing import TemporalSmoother
from ui import draw_joint_panel, draw_status_panel, status_lines
from video_recorder import VideoRecorder
from visualization import draw_landmarks, draw_robot

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Drive a URDF robot from camera body tracking.")
    parser.add_argument("--urdf", type=Path, help="Robot description (.urdf/.xml)")
    parser.add_argument("--meshes", type=Path, nargs="*", default=[], help="Mesh files referenced by the URDF")
    parser.add_argument("--archive", type=Path, help="ZIP with a URDF and its meshes")
    parser.add_argument("--profile", help="Robot profile key (jaxon_jvrc, hexapod_robot, generic)")
    parser.add_argument("--camera", type=int, help="Camera index")
    parser.add_argument("--no-smoothing", action="store_true", help="Disable temporal smoothing")
    parser.add_argument("--smoothing-factor", type=float, help="Smoothing factor in (0, 1]")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...)")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> RetargetConfig:
    config = RetargetConfig.from_env()
    if args.camera is not None:
        config.camera_index = args.camera
    if args.no_smoothing:
        config.smoothing_enabled = False
    if args.smoothing_factor is not None:
        config.smoothing_factor = args.smoothing_factor
    if args.log_level:
        config.log_level = args.log_level
    if args.profile:
        config.profile = args.profile
    return config


def create_controller(config: RetargetConfig, session: RetargetSession, on_command=None, on_status=None) -> RetargetingController:
    try:
        tracker = HolisticTracker(
            min_detection_confidence=config.min_detection_confidence,
            min_tracking_confidence=config.min_tracking_confidence,
            model_complexity=config.model_complexity,
            visibility_threshold=config.visibility_threshold,
        )
    except TrackingUnavailable as exc:
        logger.error("%s", exc)
        tracker = None

    return RetargetingController(
        session=session,
        tracker=tracker,
        mapper=JointMapper(session.profile.mappings),
        smoother=TemporalSmoother(config.smoothing_factor, enabled=config.smoothing_enabled),
        live_source=CameraStream(config.camera_index, config.camera_width, config.camera_height, config.target_fps),
        video_recorder=VideoRecorder(config.recording_dir, fps=config.recording_fps),
        recorder=CommandRecorder(),
        on_command=on_command,
        on_status=on_status,
    )


def load_robot(session: RetargetSession, args: argparse.Namespace, profile) -> bool:
    try:
        if args.archive:
            session.load_archive(args.archive, profile)
        elif args.urdf:
            session.load_files(args.urdf, args.meshes, profile)
        else:
            return False
    except RetargetError as exc:
        logger.error("Could not load robot: %s", exc)
        return False
    return True


def main(argv=None):
    args = parse_args(argv)
    config = build_config(args)
    setup_logging(config.log_level)

    window_name = "Robot Retargeting"
    session = RetargetSession(target_size=config.target_size)
    load_robot(session, args, config.profile)
    controller = create_controller(config, session)
    controller.start()

    cv2.namedWindow(window_name, cv2.WINDOW_NORMAL)
    while True:
        if cv2.getWindowProperty(window_name, cv2.WND_PROP_VISIBLE) < 1:
            break
        cam_frame = controller.tick()
        if cam_frame is not None:
            frame = cam_frame.frame.copy()
        else:
            frame = np.zeros((config.camera_height, config.camera_width, 3), dtype=np.uint8)

        draw_landmarks(frame, controller.last_landmarks)
        robot_view = np.zeros_like(frame)
        draw_robot(robot_view, session.model)
        draw_joint_panel(robot_view, controller.last_command)
        robot_name = session.model.name if session.model is not None else "none"
        draw_status_panel(frame, status_lines(
            controller.status,
            controller.mode.value,
            controller.recording,
            controller.smoother.enabled,
            robot_name,
        ))
        cv2.imshow(window_name, np.hstack([frame, robot_view]))

        key = cv2.waitKey(1) & 0xFF
        if key == ord("q"):
            break
        if key == ord("r"):
            controller.toggle_recording()
        elif key == ord("p"):
            controller.toggle_replay()
        elif key == ord("s"):
            controller.set_smoothing(not controller.smoother.enabled)
        elif key == ord("c"):
            controller.clear()
        elif key == ord("e"):
            if session.recorded_sequence is None:
                logger.info("Nothing recorded to export")
            else:
                export_sequence(session.recorded_sequence, Path(config.recording_dir) / f"sequence_{int(time.time())}.json")

    controller.stop()
    session.clear()
    cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
