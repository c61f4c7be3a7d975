"""
Runtime configuration for the retargeting apps.

Values come from the dataclass defaults, then RETARGET_* environment
variables, then command-line flags.
"""

import os
import tempfile
from dataclasses import dataclass, field, fields
from typing import Optional


@dataclass
class RetargetConfig:
    # Camera
    camera_index: int = 0
    camera_width: int = 640
    camera_height: int = 480
    target_fps: int = 30

    # Tracker
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    model_complexity: int = 0
    visibility_threshold: float = 0.5

    # Smoothing
    smoothing_enabled: bool = True
    smoothing_factor: float = 0.2

    # Recording
    recording_fps: float = 30.0
    recording_dir: str = field(default_factory=lambda: os.path.join(tempfile.gettempdir(), "robot-retarget"))

    # Model placement
    target_size: float = 2.0
    profile: Optional[str] = None

    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ=None) -> "RetargetConfig":
        environ = os.environ if environ is None else environ
        config = cls()
        for f in fields(cls):
            raw = environ.get(f"RETARGET_{f.name.upper()}")
            if raw is None:
                continue
            setattr(config, f.name, _coerce(raw, getattr(config, f.name)))
        if "LOG_LEVEL" in environ and "RETARGET_LOG_LEVEL" not in environ:
            config.log_level = environ["LOG_LEVEL"]
        return config


def _coerce(raw: str, current):
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw
