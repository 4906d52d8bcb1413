"""
Flight dynamics mapping.

Turns a control snapshot into forces and torques on the drone's rigid body
each tick:

- Aerodynamic drag opposing the velocity and a simplified lift along body-up
- Unified mode: central thrust from throttle plus a body torque from
  roll/pitch/yaw
- Per-motor mode: four motor thrusts applied at the motor positions, torque
  arising from the off-centre application points

The world is Y-up: body-up is local +Y.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Tuple

import numpy as np
from pyquaternion import Quaternion

from ..utils.maths import clamp_magnitude
from .provider import BodyHandle, BoxShape, ProviderUnavailableError, RigidBodyProvider, Transform
from .settings import ControlMode, FlightDynamicsSettings

logger = logging.getLogger(__name__)

BODY_UP = np.array([0.0, 1.0, 0.0])
MOTOR_KEYS = ("motor1", "motor2", "motor3", "motor4")


def clamp_velocity(vector: np.ndarray, cap: float) -> Tuple[np.ndarray, bool]:
    """
    Rescale a velocity to the cap magnitude if it exceeds it.

    Returns:
        Tuple of (possibly rescaled vector, whether it was rescaled)
    """
    vector = np.asarray(vector, dtype=float)
    if np.linalg.norm(vector) > cap:
        return clamp_magnitude(vector, cap), True
    return vector, False


class VelocityClamp:
    """Post-step limit on linear and angular speed of tracked bodies."""

    def __init__(self, max_velocity: float, max_angular_velocity: float):
        self.max_velocity = max_velocity
        self.max_angular_velocity = max_angular_velocity

    def apply(self, provider: RigidBodyProvider, handles: Iterable[BodyHandle]) -> int:
        """
        Clamp every given body; returns how many velocity vectors were rescaled.
        """
        clamped = 0
        for handle in handles:
            velocity, linear_hit = clamp_velocity(provider.get_linear_velocity(handle), self.max_velocity)
            if linear_hit:
                provider.set_linear_velocity(handle, velocity)
                clamped += 1

            angular, angular_hit = clamp_velocity(provider.get_angular_velocity(handle),
                                                  self.max_angular_velocity)
            if angular_hit:
                provider.set_angular_velocity(handle, angular)
                clamped += 1
        return clamped


@dataclass
class AppliedLoads:
    """Forces and torques pushed into the provider during one ``apply`` call (world frame)."""
    drag: np.ndarray = field(default_factory=lambda: np.zeros(3))
    lift: np.ndarray = field(default_factory=lambda: np.zeros(3))
    thrust: np.ndarray = field(default_factory=lambda: np.zeros(3))
    torque: np.ndarray = field(default_factory=lambda: np.zeros(3))
    motor_forces: List[Tuple[np.ndarray, np.ndarray]] = field(default_factory=list)

    @property
    def net_force(self) -> np.ndarray:
        return self.drag + self.lift + self.thrust


class FlightDynamicsMapper:
    """
    Maps control channels onto the drone's rigid body.

    The mapper owns exactly one body, created in the provider at construction.
    The control mode is read from the settings once and never changes.
    """

    def __init__(self,
                 provider: Optional[RigidBodyProvider],
                 settings: Optional[FlightDynamicsSettings] = None,
                 shape: Optional[BoxShape] = None,
                 initial_transform: Optional[Transform] = None):
        """
        Create the drone body in ``provider``.

        Args:
            provider: Physics backend (required)
            settings: Flight dynamics parameters (defaults to the unified airframe)
            shape: Collision box for the drone
            initial_transform: Starting pose (defaults to 1 m above the origin)

        Raises:
            ProviderUnavailableError: if no provider is given
        """
        if provider is None:
            raise ProviderUnavailableError("Flight dynamics mapper requires a rigid body provider")

        self.provider = provider
        self.settings = settings if settings is not None else FlightDynamicsSettings()
        self.control_mode = self.settings.control_mode
        self.shape = shape if shape is not None else BoxShape()
        self._motor_positions = np.array(self.settings.motor_positions, dtype=float)

        if initial_transform is None:
            initial_transform = Transform(position=np.array([0.0, 1.0, 0.0]),
                                          orientation=Quaternion(1, 0, 0, 0))
        self.handle = provider.create_body(self.shape, self.settings.mass, initial_transform)
        self.last_loads = AppliedLoads()

        logger.info(f"Flight dynamics mapper ready: mode={self.control_mode.value}, "
                    f"mass={self.settings.mass}kg, max_thrust={self.settings.max_thrust}N")

    # -- aerodynamics ----------------------------------------------------

    def compute_drag(self, velocity: np.ndarray) -> np.ndarray:
        """Drag = -0.5 * rho * Cd * A * |v|^2 along the velocity direction."""
        velocity = np.asarray(velocity, dtype=float)
        speed = float(np.linalg.norm(velocity))
        if speed == 0.0:
            return np.zeros(3)
        s = self.settings
        magnitude = 0.5 * s.air_density * s.drag_coefficient * s.frontal_area * speed * speed
        return -magnitude * (velocity / speed)

    def compute_lift(self, velocity: np.ndarray, orientation: Quaternion) -> np.ndarray:
        """Lift = 0.5 * rho * Cl * |v|^2 along body-up, regardless of velocity direction."""
        speed_sq = float(np.dot(velocity, velocity))
        s = self.settings
        magnitude = 0.5 * s.lift_coefficient * s.air_density * speed_sq
        return magnitude * orientation.rotate(BODY_UP)

    # -- thrust ----------------------------------------------------------

    def compute_unified(self, inputs, orientation: Quaternion) -> Tuple[np.ndarray, np.ndarray]:
        """Central thrust and body torque for unified mode."""
        s = self.settings
        thrust = orientation.rotate(BODY_UP * (inputs.throttle * s.max_thrust))
        torque_local = np.array([
            s.torque_strength * inputs.roll,
            -s.torque_strength * inputs.yaw,
            s.torque_strength * inputs.pitch,
        ])
        return np.asarray(thrust), np.asarray(orientation.rotate(torque_local))

    def compute_motor_forces(self, motor_thrusts: Mapping[str, float], position: np.ndarray,
                             orientation: Quaternion) -> List[Tuple[np.ndarray, np.ndarray]]:
        """(force, world application point) for each defined motor."""
        forces = []
        for index, key in enumerate(MOTOR_KEYS):
            thrust = motor_thrusts.get(key)
            if thrust is None:
                logger.error(f"Motor '{key}' has no thrust value; skipping")
                continue
            force = np.asarray(orientation.rotate(BODY_UP * (thrust * self.settings.max_thrust)))
            point = np.asarray(orientation.rotate(self._motor_positions[index])) + position
            forces.append((force, point))
        return forces

    # -- per tick --------------------------------------------------------

    def apply(self, inputs, state=None) -> AppliedLoads:
        """
        Push this tick's forces and torques into the provider.

        Args:
            inputs: Control snapshot (``ControlInputs``)
            state: Optional already-validated body state with ``position``,
                ``orientation`` and ``linear_velocity``; read from the provider
                when omitted

        Returns:
            The loads that were applied
        """
        if state is not None:
            position, orientation, velocity = state.position, state.orientation, state.linear_velocity
        else:
            position, orientation = self.provider.get_transform(self.handle)
            velocity = self.provider.get_linear_velocity(self.handle)

        loads = AppliedLoads()
        loads.drag = self.compute_drag(velocity)
        if np.any(loads.drag):
            self.provider.apply_central_force(self.handle, loads.drag)
        loads.lift = self.compute_lift(velocity, orientation)
        self.provider.apply_central_force(self.handle, loads.lift)

        if self.control_mode is ControlMode.PER_MOTOR:
            loads.motor_forces = self.compute_motor_forces(inputs.motor_thrusts, position, orientation)
            for force, point in loads.motor_forces:
                self.provider.apply_force_at_position(self.handle, force, point)
                loads.thrust = loads.thrust + force
        else:
            loads.thrust, loads.torque = self.compute_unified(inputs, orientation)
            self.provider.apply_central_force(self.handle, loads.thrust)
            self.provider.apply_torque(self.handle, loads.torque)

        self.last_loads = loads
        return loads
