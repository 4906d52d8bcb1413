"""
6-DOF rigid body for the reference physics world.

Quaternion attitude, world-frame angular velocity and torque, semi-implicit
Euler integration and exponential damping.
"""

from typing import Optional

import numpy as np
from pyquaternion import Quaternion


class RigidBody:
    """
    Single dynamic rigid body.

    Forces and torques accumulate until the next ``integrate`` call and are
    then cleared by the owning world.
    """

    # Numerical stability limits on accumulated loads
    MAX_FORCE = 1.0e5          # N
    MAX_TORQUE = 1.0e4         # N*m

    def __init__(self,
                 mass: float,
                 inertia: np.ndarray,
                 half_extents: np.ndarray,
                 position: Optional[np.ndarray] = None,
                 orientation: Optional[Quaternion] = None,
                 linear_damping: float = 0.0,
                 angular_damping: float = 0.0):
        """
        Initialize rigid body.

        Args:
            mass: Mass of the body (kg)
            inertia: 3x3 body-frame inertia matrix (kg*m^2)
            half_extents: Half size of the collision box [x, y, z] (m)
            position: Initial position [x, y, z] (m)
            orientation: Initial orientation
            linear_damping: Fraction of linear velocity lost per second
            angular_damping: Fraction of angular velocity lost per second
        """
        if mass <= 0:
            raise ValueError(f"Rigid body mass must be positive: {mass}")
        self.mass = float(mass)
        self.inertia = np.array(inertia, dtype=float)
        self.inertia_inv = np.linalg.inv(self.inertia)
        self.half_extents = np.array(half_extents, dtype=float)

        self.position = np.array(position, dtype=float) if position is not None else np.zeros(3)
        self.orientation = orientation if orientation is not None else Quaternion(1, 0, 0, 0)
        self.velocity = np.zeros(3)
        self.angular_velocity = np.zeros(3)

        self.linear_damping = linear_damping
        self.angular_damping = angular_damping

        self.applied_force = np.zeros(3)
        self.applied_torque = np.zeros(3)

    def apply_force(self, force: np.ndarray, offset: Optional[np.ndarray] = None) -> None:
        """
        Accumulate a world-frame force.

        Args:
            force: Force vector [fx, fy, fz] in N
            offset: Application point relative to the centre of mass (m)
        """
        force = np.asarray(force, dtype=float)
        self.applied_force += force
        if offset is not None:
            self.applied_torque += np.cross(np.asarray(offset, dtype=float), force)

    def apply_torque(self, torque: np.ndarray) -> None:
        """Accumulate a world-frame torque [tx, ty, tz] in N*m."""
        self.applied_torque += np.asarray(torque, dtype=float)

    def clear_loads(self) -> None:
        self.applied_force = np.zeros(3)
        self.applied_torque = np.zeros(3)

    def world_inertia_inv(self) -> np.ndarray:
        """Inverse inertia tensor rotated into the world frame."""
        R = self.orientation.rotation_matrix
        return R @ self.inertia_inv @ R.T

    def integrate(self, dt: float, gravity: np.ndarray) -> None:
        """
        Advance the body by one fixed step.

        Args:
            dt: Time step (s)
            gravity: Gravity acceleration vector (m/s^2)
        """
        force = self._sanitize_vector(self.applied_force, self.MAX_FORCE)
        torque = self._sanitize_vector(self.applied_torque, self.MAX_TORQUE)

        # Linear motion
        acceleration = force / self.mass + gravity
        self.velocity = self.velocity + acceleration * dt
        self.velocity *= (1.0 - self.linear_damping) ** dt
        self.position = self.position + self.velocity * dt

        # Angular motion with gyroscopic term
        R = self.orientation.rotation_matrix
        inertia_world = R @ self.inertia @ R.T
        gyroscopic = np.cross(self.angular_velocity, inertia_world @ self.angular_velocity)
        angular_acceleration = self.world_inertia_inv() @ (torque - gyroscopic)
        self.angular_velocity = self.angular_velocity + angular_acceleration * dt
        self.angular_velocity *= (1.0 - self.angular_damping) ** dt

        self._integrate_orientation(dt)

    def _integrate_orientation(self, dt: float) -> None:
        """q_dot = 0.5 * omega * q, with omega in the world frame."""
        omega_mag = np.linalg.norm(self.angular_velocity)
        if omega_mag > 1e-12:
            omega_quaternion = Quaternion(0, *self.angular_velocity)
            self.orientation = self.orientation + 0.5 * dt * (omega_quaternion * self.orientation)
            self.orientation = self.orientation.normalised

            if not np.isfinite(self.orientation.norm) or self.orientation.norm < 1e-6:
                self.orientation = Quaternion(1, 0, 0, 0)

    def lowest_point(self) -> float:
        """Lowest world Y coordinate of the collision box."""
        corners = np.array([[sx, sy, sz] for sx in (-1, 1) for sy in (-1, 1) for sz in (-1, 1)])
        world = (self.orientation.rotation_matrix @ (corners * self.half_extents).T).T
        return float(np.min(world[:, 1]) + self.position[1])

    def _sanitize_vector(self, vector: np.ndarray, max_magnitude: float) -> np.ndarray:
        """Sanitize a load vector to prevent numerical overflow."""
        vector = np.nan_to_num(vector, nan=0.0, posinf=max_magnitude, neginf=-max_magnitude)
        magnitude = np.linalg.norm(vector)
        if magnitude > max_magnitude:
            vector = vector * (max_magnitude / magnitude)
        return vector
