"""
Physics modules.

Contains the rigid body provider interface, the reference physics world,
flight dynamics settings and the mapper that turns control channels into
forces and torques.
"""

from .provider import BodyHandle, BoxShape, ProviderUnavailableError, RigidBodyProvider, Transform
from .settings import ControlMode, FlightDynamicsSettings, PER_MOTOR_PRESET, UNIFIED_PRESET
from .rigid_body import RigidBody
from .world import PhysicsWorld
from .dynamics import AppliedLoads, FlightDynamicsMapper, VelocityClamp, clamp_velocity

__all__ = [
    "BodyHandle",
    "BoxShape",
    "ProviderUnavailableError",
    "RigidBodyProvider",
    "Transform",
    "ControlMode",
    "FlightDynamicsSettings",
    "PER_MOTOR_PRESET",
    "UNIFIED_PRESET",
    "RigidBody",
    "PhysicsWorld",
    "AppliedLoads",
    "FlightDynamicsMapper",
    "VelocityClamp",
    "clamp_velocity",
]
