from typing import Dict

from baseline import POSE_BASELINE
from pose_types import JointCommand


class TemporalSmoother:
    """Exponential blend of successive joint commands.

    Every joint present in the raw command moves ``factor`` of the way from its
    previous smoothed value towards the raw value. Joints missing from the raw
    command keep their last smoothed value, so a lost subject never snaps the
    robot back to zero.
    """

    def __init__(self, factor: float = 0.2, enabled: bool = True, baseline: JointCommand = POSE_BASELINE):
        self.factor = factor
        self.enabled = enabled
        self._baseline = baseline
        self._state: Dict[str, float] = dict(baseline.joints)

    @property
    def factor(self) -> float:
        return self._factor

    @factor.setter
    def factor(self, value: float) -> None:
        if not 0.0 < value <= 1.0:
            raise ValueError(f"Smoothing factor must be in (0, 1], got {value}")
        self._factor = float(value)

    @property
    def state(self) -> Dict[str, float]:
        return dict(self._state)

    def reset(self) -> None:
        self._state = dict(self._baseline.joints)

    def update(self, raw: JointCommand) -> JointCommand:
        for name, target in raw.joints.items():
            if not self.enabled:
                self._state[name] = target
                continue
            # Joints the baseline does not know start from their first raw value.
            prev = self._state.get(name, target)
            self._state[name] = prev + (target - prev) * self._factor
        return JointCommand(joints=dict(self._state), timestamp_ms=raw.timestamp_ms)
