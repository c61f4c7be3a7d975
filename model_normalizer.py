"""Place a freshly loaded robot upright, scaled and standing on the ground.

The renderer is Y-up. URDF files are usually authored Z-up, so unless a
profile says otherwise a model whose Z extent is at least its Y extent is
rotated -90 degrees about X. This guess is only a default: pass an explicit
``up_axis`` in the profile when it is wrong for a model.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from scipy.spatial.transform import Rotation as R

from robot_model import RobotModel

logger = logging.getLogger(__name__)

DEFAULT_TARGET_SIZE = 2.0

_UP_ROTATIONS = {
    "y": np.eye(3),
    "z": R.from_euler("x", -90.0, degrees=True).as_matrix(),
    "x": R.from_euler("z", 90.0, degrees=True).as_matrix(),
}


@dataclass
class NormalizationProfile:
    up_axis: Optional[str] = None
    scale: Optional[float] = None
    target_size: float = DEFAULT_TARGET_SIZE


@dataclass
class CameraFraming:
    position: np.ndarray
    target: np.ndarray
    near: float
    far: float


def guess_up_axis(size: np.ndarray) -> str:
    return "z" if size[2] >= size[1] else "y"


def upright_rotation(up_axis: str) -> np.ndarray:
    if up_axis not in _UP_ROTATIONS:
        raise ValueError(f"Unknown up axis: {up_axis}")
    return _UP_ROTATIONS[up_axis].copy()


def normalize_model(
    model: RobotModel,
    profile: Optional[NormalizationProfile] = None,
    anchor: Sequence[float] = (0.0, 0.0, 0.0),
) -> RobotModel:
    profile = profile or NormalizationProfile()
    anchor = np.asarray(anchor, dtype=float)

    model.reset_transform()
    bounds = model.bounds()
    size = bounds[1] - bounds[0]

    up_axis = profile.up_axis or guess_up_axis(size)
    model.rotation = upright_rotation(up_axis)

    if profile.scale is not None:
        scale = float(profile.scale)
    else:
        max_dim = float(np.max(np.abs(model.rotation @ size)))
        scale = profile.target_size / max_dim if max_dim > 1e-9 else 1.0
    model.scale = scale

    bounds = model.bounds()
    center = (bounds[0] + bounds[1]) / 2.0
    model.position = np.array([
        anchor[0] - center[0],
        anchor[1] - bounds[0][1],
        anchor[2] - center[2],
    ])
    logger.info(
        "Normalized %s: up=%s scale=%.4g position=%s",
        model.name,
        up_axis,
        scale,
        np.round(model.position, 4).tolist(),
    )
    return model


def frame_camera(bounds: np.ndarray, fov_deg: float = 75.0, distance_factor: float = 1.8) -> CameraFraming:
    """Camera pose that fits the whole bounding box in view."""
    bounds = np.asarray(bounds, dtype=float)
    center = (bounds[0] + bounds[1]) / 2.0
    size = bounds[1] - bounds[0]
    max_dim = float(np.max(size))
    fov = math.radians(fov_deg)
    distance = abs(max_dim / 2.0 / math.tan(fov / 2.0)) * distance_factor
    distance = max(distance, 1e-3)
    position = np.array([center[0], center[1] + size[1] / 2.0, center[2] + distance])
    return CameraFraming(position=position, target=center, near=0.001, far=distance * 3.0)
