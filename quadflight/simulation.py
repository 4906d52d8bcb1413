"""
Per-tick flight simulation loop.

One tick:

    controls.update(dt) -> snapshot -> mapper.apply(snapshot)
    -> provider.step(dt, max_sub_steps) -> guarded read-back
    -> velocity clamp on every tracked body -> sync listeners

Everything runs on the caller's thread and finishes inside the tick.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import numpy as np
from pyquaternion import Quaternion

from .config import SimulationConfig
from .controls.channels import ControlInputs
from .controls.engine import ControlChannelEngine
from .physics.dynamics import AppliedLoads, FlightDynamicsMapper, VelocityClamp
from .physics.provider import BodyHandle, BoxShape, ProviderUnavailableError, RigidBodyProvider, Transform
from .physics.world import PhysicsWorld
from .utils.maths import finite_or

logger = logging.getLogger(__name__)

SyncListener = Callable[[BodyHandle, np.ndarray, Quaternion], None]


@dataclass
class BodyState:
    """Validated read-back of one body."""
    position: np.ndarray
    orientation: Quaternion
    linear_velocity: np.ndarray
    angular_velocity: np.ndarray


class BodyStateGuard:
    """
    Substitutes the last known-good value for any non-finite component read
    back from the provider, so a corrupted step never propagates.
    """

    def __init__(self, provider: RigidBodyProvider, handle: BodyHandle):
        self.provider = provider
        self.handle = handle
        position, orientation = provider.get_transform(handle)
        self._last = BodyState(
            position=finite_or(position, np.zeros(3)),
            orientation=Quaternion(orientation) if np.all(np.isfinite(orientation.elements)) else Quaternion(),
            linear_velocity=finite_or(provider.get_linear_velocity(handle), np.zeros(3)),
            angular_velocity=finite_or(provider.get_angular_velocity(handle), np.zeros(3)),
        )
        self.substitutions = 0

    @property
    def last_good(self) -> BodyState:
        return self._last

    def _check(self, name: str, values: np.ndarray, fallback: np.ndarray, whole: bool = False) -> np.ndarray:
        values = np.asarray(values, dtype=float)
        if np.all(np.isfinite(values)):
            return values
        self.substitutions += 1
        logger.warning(f"Non-finite {name} on body {self.handle}: {values.tolist()}; "
                       f"using last known-good value")
        if whole:
            return np.array(fallback, dtype=float)
        return finite_or(values, fallback)

    def read(self) -> BodyState:
        """Read, sanitize and remember the body's state; sanitized velocities are written back."""
        position, orientation = self.provider.get_transform(self.handle)
        linear = np.asarray(self.provider.get_linear_velocity(self.handle), dtype=float)
        angular = np.asarray(self.provider.get_angular_velocity(self.handle), dtype=float)

        state = BodyState(
            position=self._check("position", position, self._last.position),
            # Mixing quaternion components would denormalize it
            orientation=Quaternion(self._check("orientation", orientation.elements,
                                               self._last.orientation.elements, whole=True)),
            linear_velocity=self._check("linear velocity", linear, self._last.linear_velocity),
            angular_velocity=self._check("angular velocity", angular, self._last.angular_velocity),
        )
        if not np.all(np.isfinite(linear)):
            self.provider.set_linear_velocity(self.handle, state.linear_velocity)
        if not np.all(np.isfinite(angular)):
            self.provider.set_angular_velocity(self.handle, state.angular_velocity)

        self._last = state
        return state

    def refresh_velocities(self) -> None:
        """Re-read velocities after they were changed in the provider (e.g. clamped)."""
        self._last.linear_velocity = self._check(
            "linear velocity", self.provider.get_linear_velocity(self.handle), self._last.linear_velocity)
        self._last.angular_velocity = self._check(
            "angular velocity", self.provider.get_angular_velocity(self.handle), self._last.angular_velocity)


class FlightSimulation:
    """Wires the control engine, the dynamics mapper and a physics provider together."""

    def __init__(self,
                 provider: Optional[RigidBodyProvider],
                 controls: Optional[ControlChannelEngine] = None,
                 config: Optional[SimulationConfig] = None):
        """
        Args:
            provider: Physics backend (required)
            controls: Control engine; built from ``config.controls`` if omitted
            config: Simulator configuration

        Raises:
            ProviderUnavailableError: if no provider is given
        """
        if provider is None:
            raise ProviderUnavailableError("Flight simulation requires a rigid body provider")

        self.config = config if config is not None else SimulationConfig()
        self.provider = provider
        if controls is None:
            c = self.config.controls
            controls = ControlChannelEngine(
                control_rate=c.control_rate,
                centering_rate=c.centering_rate,
                initial_throttle=c.initial_throttle,
                initial_motor_thrust=c.initial_motor_thrust,
                register_default_scripts=c.register_default_scripts,
            )
        self.controls = controls

        physics = self.config.physics
        self.mapper = FlightDynamicsMapper(
            provider,
            self.config.flight,
            shape=BoxShape(physics.drone_half_extents),
            initial_transform=Transform(position=np.array(physics.initial_position, dtype=float),
                                        orientation=Quaternion(1, 0, 0, 0)),
        )
        self.velocity_clamp = VelocityClamp(self.config.flight.max_velocity,
                                            self.config.flight.max_angular_velocity)

        self._guards: Dict[BodyHandle, BodyStateGuard] = {}
        self.track_body(self.mapper.handle)
        self._sync_listeners: List[SyncListener] = []

        self.tick_count = 0
        self.sim_time = 0.0
        self.last_inputs: Optional[ControlInputs] = None
        self.last_loads: Optional[AppliedLoads] = None

    @classmethod
    def with_reference_world(cls, config: Optional[SimulationConfig] = None,
                             controls: Optional[ControlChannelEngine] = None) -> "FlightSimulation":
        """Build a simulation on top of the built-in ``PhysicsWorld``."""
        config = config if config is not None else SimulationConfig()
        p = config.physics
        world = PhysicsWorld(
            gravity=p.gravity,
            fixed_time_step=p.fixed_time_step,
            ground_height=p.ground_height,
            linear_damping=p.linear_damping,
            angular_damping=p.angular_damping,
        )
        return cls(world, controls=controls, config=config)

    # -- bodies & listeners ---------------------------------------------

    def track_body(self, handle: BodyHandle) -> None:
        """Include a body in read-back, velocity clamping and sync."""
        if handle not in self._guards:
            self._guards[handle] = BodyStateGuard(self.provider, handle)

    @property
    def tracked_bodies(self):
        return tuple(self._guards)

    def add_sync_listener(self, listener: SyncListener) -> None:
        self._sync_listeners.append(listener)

    def body_state(self, handle: Optional[BodyHandle] = None) -> BodyState:
        """Last validated state of a tracked body (the drone by default)."""
        handle = self.mapper.handle if handle is None else handle
        return self._guards[handle].last_good

    # -- loop ------------------------------------------------------------

    def tick(self, dt: float) -> ControlInputs:
        """Run one full control -> physics -> read-back cycle."""
        inputs = self.controls.update(dt)
        drone_guard = self._guards[self.mapper.handle]
        self.last_loads = self.mapper.apply(inputs, state=drone_guard.read())

        self.provider.step(dt, self.config.physics.max_sub_steps)

        states = {handle: guard.read() for handle, guard in self._guards.items()}
        self.velocity_clamp.apply(self.provider, states.keys())
        for guard in self._guards.values():
            guard.refresh_velocities()

        for handle, state in states.items():
            for listener in self._sync_listeners:
                listener(handle, state.position, state.orientation)

        self.tick_count += 1
        self.sim_time += dt
        self.last_inputs = inputs
        return inputs

    def run(self, duration: float, dt: float = 1 / 60) -> int:
        """Tick headless for ``duration`` seconds; returns the number of ticks."""
        if dt <= 0:
            raise ValueError(f"dt must be positive: {dt}")
        ticks = int(round(duration / dt))
        for _ in range(ticks):
            self.tick(dt)
        return ticks
