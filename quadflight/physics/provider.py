"""
Rigid body provider interface.

The flight stack never integrates motion itself. It talks to a physics
backend through this narrow interface: create a body, step the world, read
the body's transform and velocities, and push forces and torques into it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import NewType, Tuple

import numpy as np
from pyquaternion import Quaternion

BodyHandle = NewType("BodyHandle", int)


class ProviderUnavailableError(RuntimeError):
    """The physics backend is missing or failed to initialize."""


@dataclass(frozen=True)
class BoxShape:
    """Axis-aligned box collision shape, described by its half extents (m)."""
    half_extents: Tuple[float, float, float] = (0.5, 0.1, 0.5)

    def local_inertia(self, mass: float) -> np.ndarray:
        """Diagonal inertia tensor of a solid box of the given mass."""
        hx, hy, hz = (2.0 * h for h in self.half_extents)
        return np.diag([
            mass / 12.0 * (hy ** 2 + hz ** 2),
            mass / 12.0 * (hx ** 2 + hz ** 2),
            mass / 12.0 * (hx ** 2 + hy ** 2),
        ])


@dataclass
class Transform:
    """World transform of a body: origin plus orientation."""
    position: np.ndarray
    orientation: Quaternion

    @classmethod
    def identity(cls) -> "Transform":
        return cls(position=np.zeros(3), orientation=Quaternion(1, 0, 0, 0))


class RigidBodyProvider(ABC):
    """Operations the flight stack needs from a physics engine."""

    @abstractmethod
    def create_body(self, shape: BoxShape, mass: float, initial_transform: Transform) -> BodyHandle:
        """Add a dynamic body to the world and return its handle."""

    @abstractmethod
    def step(self, dt: float, max_sub_steps: int = 10) -> int:
        """Advance the world by ``dt`` seconds; returns the number of sub-steps taken."""

    @abstractmethod
    def get_transform(self, handle: BodyHandle) -> Tuple[np.ndarray, Quaternion]:
        """Return ``(position, orientation)`` of the body."""

    @abstractmethod
    def get_linear_velocity(self, handle: BodyHandle) -> np.ndarray:
        ...

    @abstractmethod
    def set_linear_velocity(self, handle: BodyHandle, velocity: np.ndarray) -> None:
        ...

    @abstractmethod
    def get_angular_velocity(self, handle: BodyHandle) -> np.ndarray:
        ...

    @abstractmethod
    def set_angular_velocity(self, handle: BodyHandle, angular_velocity: np.ndarray) -> None:
        ...

    @abstractmethod
    def apply_central_force(self, handle: BodyHandle, force: np.ndarray) -> None:
        """Apply a force through the centre of mass (world frame)."""

    @abstractmethod
    def apply_force_at_position(self, handle: BodyHandle, force: np.ndarray,
                                world_position: np.ndarray) -> None:
        """Apply a force at a world-space point; the offset from the origin produces torque."""

    @abstractmethod
    def apply_torque(self, handle: BodyHandle, torque: np.ndarray) -> None:
        """Apply a world-frame torque."""
