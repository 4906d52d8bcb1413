"""
Reference physics world.

A small rigid-body world implementing ``RigidBodyProvider``: gravity, a static
ground plane, damping and Bullet-style fixed sub-stepping. It is enough to fly
the drone headless and in tests; any other engine can be plugged in through
the provider interface.
"""

import logging
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
from pyquaternion import Quaternion

from .provider import BodyHandle, BoxShape, ProviderUnavailableError, RigidBodyProvider, Transform
from .rigid_body import RigidBody

logger = logging.getLogger(__name__)


class PhysicsWorld(RigidBodyProvider):
    """World state manager for the drone simulation"""

    def __init__(self,
                 gravity: Sequence[float] = (0.0, -9.81, 0.0),
                 fixed_time_step: float = 1 / 60,
                 ground_height: Optional[float] = 0.0,
                 linear_damping: float = 0.7,
                 angular_damping: float = 0.7):
        """
        Initialize the physics world.

        Args:
            gravity: Gravity acceleration [gx, gy, gz] in m/s^2 (Y is up)
            fixed_time_step: Internal integration step (s)
            ground_height: Y coordinate of the static ground plane, or None for no ground
            linear_damping: Linear damping given to every new body
            angular_damping: Angular damping given to every new body
        """
        gravity = np.asarray(gravity, dtype=float)
        if gravity.shape != (3,) or not np.all(np.isfinite(gravity)):
            raise ProviderUnavailableError(f"Invalid gravity vector: {gravity}")
        if not fixed_time_step > 0:
            raise ProviderUnavailableError(f"fixed_time_step must be positive: {fixed_time_step}")

        self.gravity = gravity
        self.fixed_time_step = float(fixed_time_step)
        self.ground_height = ground_height
        self.linear_damping = linear_damping
        self.angular_damping = angular_damping

        self.time = 0.0
        self._accumulator = 0.0
        self._bodies: Dict[BodyHandle, RigidBody] = {}
        self._next_handle = 1

        logger.info(f"Physics world ready: gravity={self.gravity.tolist()}, "
                    f"fixed_time_step={self.fixed_time_step:.5f}s, ground={self.ground_height}")

    # -- body management -------------------------------------------------

    def create_body(self, shape: BoxShape, mass: float, initial_transform: Transform) -> BodyHandle:
        body = RigidBody(
            mass=mass,
            inertia=shape.local_inertia(mass),
            half_extents=np.asarray(shape.half_extents, dtype=float),
            position=np.asarray(initial_transform.position, dtype=float),
            orientation=initial_transform.orientation,
            linear_damping=self.linear_damping,
            angular_damping=self.angular_damping,
        )
        handle = BodyHandle(self._next_handle)
        self._next_handle += 1
        self._bodies[handle] = body
        logger.debug(f"Created body {handle}: mass={mass}kg, half_extents={shape.half_extents}")
        return handle

    def body(self, handle: BodyHandle) -> RigidBody:
        """Direct access to the underlying body."""
        try:
            return self._bodies[handle]
        except KeyError:
            raise KeyError(f"Unknown body handle: {handle}") from None

    @property
    def handles(self) -> Tuple[BodyHandle, ...]:
        return tuple(self._bodies)

    # -- stepping --------------------------------------------------------

    def step(self, dt: float, max_sub_steps: int = 10) -> int:
        """
        Advance the simulation.

        With ``max_sub_steps > 0`` elapsed time accumulates and is consumed in
        ``fixed_time_step`` chunks, at most ``max_sub_steps`` per call; time
        beyond that is dropped. With ``max_sub_steps <= 0`` the world steps by
        ``dt`` directly. Accumulated loads act on every sub-step and are
        cleared afterwards.
        """
        if dt < 0:
            raise ValueError(f"dt must be non-negative: {dt}")

        if max_sub_steps > 0:
            self._accumulator += dt
            num_steps = int(self._accumulator / self.fixed_time_step)
            self._accumulator -= num_steps * self.fixed_time_step
            if num_steps > max_sub_steps:
                logger.debug(f"Dropping {num_steps - max_sub_steps} sub-steps (max {max_sub_steps})")
                num_steps = max_sub_steps
            step_size = self.fixed_time_step
        else:
            num_steps = 1 if dt > 0 else 0
            step_size = dt

        for _ in range(num_steps):
            self._single_step(step_size)

        for body in self._bodies.values():
            body.clear_loads()
        return num_steps

    def _single_step(self, dt: float) -> None:
        for body in self._bodies.values():
            body.integrate(dt, self.gravity)
            if self.ground_height is not None:
                self._resolve_ground_contact(body)
        self.time += dt

    def _resolve_ground_contact(self, body: RigidBody) -> None:
        """Keep the body on top of the ground plane."""
        penetration = self.ground_height - body.lowest_point()
        if penetration > 0:
            body.position[1] += penetration
            if body.velocity[1] < 0:
                body.velocity[1] = 0.0

    # -- state access ----------------------------------------------------

    def get_transform(self, handle: BodyHandle) -> Tuple[np.ndarray, Quaternion]:
        body = self.body(handle)
        return body.position.copy(), Quaternion(body.orientation)

    def get_linear_velocity(self, handle: BodyHandle) -> np.ndarray:
        return self.body(handle).velocity.copy()

    def set_linear_velocity(self, handle: BodyHandle, velocity: np.ndarray) -> None:
        self.body(handle).velocity = np.asarray(velocity, dtype=float).copy()

    def get_angular_velocity(self, handle: BodyHandle) -> np.ndarray:
        return self.body(handle).angular_velocity.copy()

    def set_angular_velocity(self, handle: BodyHandle, angular_velocity: np.ndarray) -> None:
        self.body(handle).angular_velocity = np.asarray(angular_velocity, dtype=float).copy()

    # -- loads -----------------------------------------------------------

    def apply_central_force(self, handle: BodyHandle, force: np.ndarray) -> None:
        self.body(handle).apply_force(force)

    def apply_force_at_position(self, handle: BodyHandle, force: np.ndarray,
                                world_position: np.ndarray) -> None:
        body = self.body(handle)
        body.apply_force(force, offset=np.asarray(world_position, dtype=float) - body.position)

    def apply_torque(self, handle: BodyHandle, torque: np.ndarray) -> None:
        self.body(handle).apply_torque(torque)
