"""
Control channel state.

``ControlChannels`` and ``MotorThrustSet`` are the live, mutable state owned by
the control engine. ``ControlInputs`` is the immutable per-tick snapshot handed
to the dynamics mapper.
"""

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping

from ..utils.maths import clamp

CHANNEL_RANGES = {
    "roll": (-1.0, 1.0),
    "pitch": (-1.0, 1.0),
    "yaw": (-1.0, 1.0),
    "throttle": (0.0, 1.0),
}
MOTOR_RANGE = (0.0, 1.0)
MOTOR_NAMES = ("motor1", "motor2", "motor3", "motor4")


@dataclass
class ControlChannels:
    """Normalized stick channels: roll/pitch/yaw in [-1, 1], throttle in [0, 1]."""
    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0
    throttle: float = 0.5

    def set(self, name: str, value: float) -> None:
        """Set a channel, clamped to its range."""
        low, high = channel_range(name)
        value = float(value)
        if math.isnan(value):
            value = max(low, 0.0)
        setattr(self, name, clamp(value, low, high))

    def adjust(self, name: str, delta: float) -> None:
        self.set(name, getattr(self, name) + delta)

    def enforce_bounds(self) -> None:
        for name in CHANNEL_RANGES:
            self.set(name, getattr(self, name))

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in CHANNEL_RANGES}


@dataclass
class MotorThrustSet:
    """Normalized thrust of each motor in [0, 1] (FR, FL, RL, RR)."""
    motor1: float = 0.6125
    motor2: float = 0.6125
    motor3: float = 0.6125
    motor4: float = 0.6125

    def set(self, name: str, value: float) -> None:
        if name not in MOTOR_NAMES:
            raise KeyError(f"Unknown motor: {name}")
        value = float(value)
        if math.isnan(value):
            value = 0.0
        setattr(self, name, clamp(value, *MOTOR_RANGE))

    def adjust(self, name: str, delta: float) -> None:
        self.set(name, getattr(self, name) + delta)

    def enforce_bounds(self) -> None:
        for name in MOTOR_NAMES:
            self.set(name, getattr(self, name))

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in MOTOR_NAMES}


@dataclass(frozen=True)
class ControlInputs:
    """Read-only snapshot of the channels and motor thrusts for one tick."""
    roll: float
    pitch: float
    yaw: float
    throttle: float
    motor_thrusts: Mapping[str, float]

    @classmethod
    def capture(cls, channels: ControlChannels, motors: MotorThrustSet) -> "ControlInputs":
        return cls(
            roll=channels.roll,
            pitch=channels.pitch,
            yaw=channels.yaw,
            throttle=channels.throttle,
            motor_thrusts=MappingProxyType(motors.as_dict()),
        )


@dataclass
class ControlState:
    """Handle on the live channels and motor thrusts, given to timeline mutations."""
    channels: ControlChannels
    motors: MotorThrustSet

    def enforce_bounds(self) -> None:
        self.channels.enforce_bounds()
        self.motors.enforce_bounds()

    def snapshot(self) -> ControlInputs:
        return ControlInputs.capture(self.channels, self.motors)


def channel_range(name: str):
    try:
        return CHANNEL_RANGES[name]
    except KeyError:
        raise KeyError(f"Unknown channel: {name}") from None
