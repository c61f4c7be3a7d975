import math
from typing import Optional, Tuple

import cv2
import mediapipe as mp
import numpy as np

from model_normalizer import CameraFraming, frame_camera
from pose_types import LandmarkPoint, LandmarkSet, PointList
from robot_model import RobotModel


def _to_pixel(lm: LandmarkPoint, image_size: Tuple[int, int]) -> Tuple[int, int]:
    width, height = image_size
    return int(lm.x * width), int(lm.y * height)


def _draw_points(frame, points: PointList, connections, line_color, point_color, radius: int) -> None:
    if points is None:
        return
    height, width = frame.shape[:2]
    for a, b in connections:
        if a >= len(points) or b >= len(points):
            continue
        lm_a = points[a]
        lm_b = points[b]
        if lm_a is None or lm_b is None:
            continue
        cv2.line(frame, _to_pixel(lm_a, (width, height)), _to_pixel(lm_b, (width, height)), line_color, 2)
    for lm in points:
        if lm is None:
            continue
        cv2.circle(frame, _to_pixel(lm, (width, height)), radius, point_color, -1)


def draw_landmarks(frame, landmarks: Optional[LandmarkSet]) -> None:
    if landmarks is None or landmarks.empty:
        return
    _draw_points(frame, landmarks.pose, mp.solutions.pose.POSE_CONNECTIONS, (0, 255, 0), (0, 255, 255), 4)
    hand_connections = mp.solutions.hands.HAND_CONNECTIONS
    _draw_points(frame, landmarks.left_hand, hand_connections, (255, 128, 0), (255, 200, 0), 3)
    _draw_points(frame, landmarks.right_hand, hand_connections, (0, 128, 255), (0, 200, 255), 3)


def draw_overlay(frame, text_lines, origin=(10, 30)) -> None:
    x, y = origin
    for line in text_lines:
        cv2.putText(frame, line, (x, y), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2)
        y += 28


def project_points(
    points: np.ndarray,
    framing: CameraFraming,
    image_size: Tuple[int, int],
    fov_deg: float = 75.0,
) -> np.ndarray:
    """Pinhole projection of world points into pixel coordinates (NaN when behind the camera)."""
    width, height = image_size
    points = np.asarray(points, dtype=float).reshape(-1, 3)
    forward = framing.target - framing.position
    forward = forward / max(np.linalg.norm(forward), 1e-9)
    right = np.cross(forward, np.array([0.0, 1.0, 0.0]))
    right = right / max(np.linalg.norm(right), 1e-9)
    up = np.cross(right, forward)

    rel = points - framing.position
    x = rel @ right
    y = rel @ up
    z = rel @ forward
    focal = (height / 2.0) / math.tan(math.radians(fov_deg) / 2.0)
    with np.errstate(divide="ignore", invalid="ignore"):
        u = width / 2.0 + focal * x / z
        v = height / 2.0 - focal * y / z
    pixels = np.stack([u, v], axis=1)
    pixels[z <= framing.near] = np.nan
    return pixels


def draw_robot(canvas, model: Optional[RobotModel], framing: Optional[CameraFraming] = None, fov_deg: float = 75.0) -> None:
    """Stick-figure view of the robot: one line per joint between its parent and child link frames."""
    if model is None:
        draw_overlay(canvas, ["No robot loaded"])
        return
    height, width = canvas.shape[:2]
    framing = framing or frame_camera(model.bounds(), fov_deg)

    positions = model.link_positions()
    names = list(positions)
    pixels = project_points(np.array([positions[n] for n in names]), framing, (width, height), fov_deg)
    lookup = dict(zip(names, pixels))

    # Ground line at y = 0.
    ground = project_points(np.array([[-1.0, 0.0, 0.0], [1.0, 0.0, 0.0]]), framing, (width, height), fov_deg)
    if not np.isnan(ground).any():
        cv2.line(canvas, tuple(int(v) for v in ground[0]), tuple(int(v) for v in ground[1]), (90, 90, 90), 1)

    for parent, child in model.skeleton_edges():
        a = lookup.get(parent)
        b = lookup.get(child)
        if a is None or b is None or np.isnan(a).any() or np.isnan(b).any():
            continue
        cv2.line(canvas, (int(a[0]), int(a[1])), (int(b[0]), int(b[1])), (200, 200, 200), 2)
    for point in pixels:
        if np.isnan(point).any():
            continue
        cv2.circle(canvas, (int(point[0]), int(point[1])), 3, (0, 180, 255), -1)
