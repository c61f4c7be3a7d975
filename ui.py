import math
from typing import List

import cv2

from pose_types import JointCommand

KEY_HINTS = "r rec | p play | s smooth | c clear | e export | q quit"


def draw_joint_panel(frame, command: JointCommand, panel_width: int = 260) -> None:
    height, width = frame.shape[:2]
    x0 = width - panel_width
    cv2.rectangle(frame, (x0, 0), (width, height), (30, 30, 30), -1)
    cv2.rectangle(frame, (x0, 0), (width, height), (80, 80, 80), 2)

    y = 30
    cv2.putText(frame, "Joints (deg)", (x0 + 12, y), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2)
    y += 25

    for name in sorted(command.joints):
        if y > height - 10:
            break
        value = math.degrees(command.joints[name])
        color = (0, 255, 180) if abs(value) > 1.0 else (220, 220, 220)
        cv2.putText(frame, f"{name:<14} {value:7.1f}", (x0 + 12, y), cv2.FONT_HERSHEY_SIMPLEX, 0.45, color, 1)
        y += 20


def status_lines(status: str, mode: str, recording: bool, smoothing: bool, robot_name: str) -> List[str]:
    lines = [
        f"Robot: {robot_name}",
        f"Mode: {mode}{' (REC)' if recording else ''}",
        f"Smoothing: {'on' if smoothing else 'off'}",
        status,
    ]
    return lines


def draw_status_panel(frame, lines, origin=(10, 30)) -> None:
    x, y = origin
    for line in lines:
        cv2.putText(frame, line, (x, y), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2)
        y += 28
    height = frame.shape[0]
    cv2.putText(frame, KEY_HINTS, (x, height - 12), cv2.FONT_HERSHEY_SIMPLEX, 0.5, (180, 180, 180), 1)
