import math
from typing import Optional

from pose_types import LandmarkPoint


def map_range(value: float, in_min: float, in_max: float, out_min: float, out_max: float) -> float:
    # Clamp first so the result never leaves [out_min, out_max].
    lo, hi = min(in_min, in_max), max(in_min, in_max)
    if hi - lo < 1e-12:
        return out_min
    clamped = max(lo, min(value, hi))
    t = (clamped - in_min) / (in_max - in_min)
    result = out_min + t * (out_max - out_min)
    out_lo, out_hi = min(out_min, out_max), max(out_min, out_max)
    return max(out_lo, min(result, out_hi))


def three_point_angle(
    a: Optional[LandmarkPoint], b: Optional[LandmarkPoint], c: Optional[LandmarkPoint]
) -> float:
    # Angle at b between rays b->a and b->c, from the difference of their polar angles.
    if a is None or b is None or c is None:
        return 0.0
    rad = math.atan2(c.y - b.y, c.x - b.x) - math.atan2(a.y - b.y, a.x - b.x)
    angle = abs(rad)
    if angle > math.pi:
        angle = 2.0 * math.pi - angle
    return angle


def distance_3d(a: LandmarkPoint, b: LandmarkPoint) -> float:
    return math.sqrt((a.x - b.x) ** 2 + (a.y - b.y) ** 2 + (a.z - b.z) ** 2)


def midpoint(a: LandmarkPoint, b: LandmarkPoint) -> LandmarkPoint:
    return LandmarkPoint(
        (a.x + b.x) / 2.0,
        (a.y + b.y) / 2.0,
        (a.z + b.z) / 2.0,
        min(a.confidence, b.confidence),
    )
