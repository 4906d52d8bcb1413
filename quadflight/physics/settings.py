"""
Flight dynamics settings for the quadrotor.

A single settings record drives the dynamics mapper in both control modes.
The simpler unified-thrust airframe and the per-motor airframe are presets of
the same record rather than separate code paths.
"""

import math
from dataclasses import dataclass, field, asdict, replace
from enum import Enum
from typing import Any, Dict, List, Tuple

Vector3 = Tuple[float, float, float]


class ControlMode(Enum):
    """How control channels become forces on the airframe."""
    UNIFIED = "unified"      # Throttle -> central thrust, roll/pitch/yaw -> body torque
    PER_MOTOR = "per_motor"  # Four motor thrusts applied at the motor positions


def _default_motor_positions() -> List[Vector3]:
    return [
        (1.0, 0.0, 1.0),    # Motor 1: Front-Right
        (-1.0, 0.0, 1.0),   # Motor 2: Front-Left
        (-1.0, 0.0, -1.0),  # Motor 3: Rear-Left
        (1.0, 0.0, -1.0),   # Motor 4: Rear-Right
    ]


@dataclass
class FlightDynamicsSettings:
    """Physical and aerodynamic parameters of the drone."""

    mass: float = 0.25                   # kg
    drag_coefficient: float = 0.47       # Approximate for a cube
    lift_coefficient: float = 0.3
    frontal_area: float = 0.25           # m^2
    air_density: float = 1.225           # kg/m^3 at sea level
    max_thrust: float = 1.0              # N per motor
    torque_strength: float = 0.5         # N*m at full stick
    max_velocity: float = 50.0           # m/s
    max_angular_velocity: float = 10.0   # rad/s
    motor_positions: List[Vector3] = field(default_factory=_default_motor_positions)
    control_mode: ControlMode = ControlMode.UNIFIED

    def __post_init__(self):
        """Normalize field types and validate ranges."""
        if isinstance(self.control_mode, str):
            self.control_mode = ControlMode(self.control_mode.lower())
        self.motor_positions = [tuple(float(c) for c in pos) for pos in self.motor_positions]
        self.validate()

    def validate(self) -> None:
        """Raise ``ValueError`` if any parameter is out of range."""
        if not self.mass > 0:
            raise ValueError(f"mass must be positive: {self.mass}")
        for name in ("drag_coefficient", "lift_coefficient", "frontal_area",
                     "air_density", "max_thrust", "torque_strength"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a finite non-negative number: {value}")
        if not self.max_velocity > 0:
            raise ValueError(f"max_velocity must be positive: {self.max_velocity}")
        if not self.max_angular_velocity > 0:
            raise ValueError(f"max_angular_velocity must be positive: {self.max_angular_velocity}")
        if len(self.motor_positions) != 4:
            raise ValueError(f"Exactly four motor positions are required, got {len(self.motor_positions)}")
        for pos in self.motor_positions:
            if len(pos) != 3:
                raise ValueError(f"Motor position must have three components: {pos}")

    @property
    def use_individual_motors(self) -> bool:
        return self.control_mode is ControlMode.PER_MOTOR

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (YAML friendly)."""
        data = asdict(self)
        data["control_mode"] = self.control_mode.value
        data["motor_positions"] = [list(pos) for pos in self.motor_positions]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlightDynamicsSettings":
        """Build settings from a dictionary, ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def with_mode(self, mode: ControlMode) -> "FlightDynamicsSettings":
        """Copy of these settings using another control mode."""
        return replace(self, control_mode=mode, motor_positions=list(self.motor_positions))


UNIFIED_PRESET = FlightDynamicsSettings()
PER_MOTOR_PRESET = FlightDynamicsSettings(control_mode=ControlMode.PER_MOTOR)
