"""
Pytest configuration and shared fixtures.

- Test markers for the different test categories
- A manual millisecond clock for script timing
- A recording rigid body provider for exact force/torque checks
- Engine and physics world fixtures
"""

from typing import Dict, List, Tuple

import numpy as np
import pytest
from pyquaternion import Quaternion

from quadflight.controls.engine import ControlChannelEngine
from quadflight.controls.inputs import KeyboardState
from quadflight.physics.provider import BodyHandle, RigidBodyProvider
from quadflight.physics.world import PhysicsWorld


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "physics: marks tests that validate physics behaviour"
    )
    config.addinivalue_line(
        "markers", "controls: marks tests of the control channel engine and scripts"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that run the full tick loop"
    )


class ManualClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class RecordingProvider(RigidBodyProvider):
    """Provider that stores body state and records every load pushed into it."""

    def __init__(self):
        self.bodies: Dict[BodyHandle, dict] = {}
        self.central_forces: List[np.ndarray] = []
        self.forces_at: List[Tuple[np.ndarray, np.ndarray]] = []
        self.torques: List[np.ndarray] = []
        self.steps: List[Tuple[float, int]] = []

    def create_body(self, shape, mass, initial_transform):
        handle = BodyHandle(len(self.bodies) + 1)
        self.bodies[handle] = {
            "position": np.array(initial_transform.position, dtype=float),
            "orientation": Quaternion(initial_transform.orientation),
            "velocity": np.zeros(3),
            "angular_velocity": np.zeros(3),
        }
        return handle

    def step(self, dt, max_sub_steps=10):
        self.steps.append((dt, max_sub_steps))
        return 1

    def get_transform(self, handle):
        body = self.bodies[handle]
        return body["position"].copy(), Quaternion(body["orientation"])

    def set_orientation(self, handle, orientation):
        self.bodies[handle]["orientation"] = orientation

    def get_linear_velocity(self, handle):
        return self.bodies[handle]["velocity"].copy()

    def set_linear_velocity(self, handle, velocity):
        self.bodies[handle]["velocity"] = np.asarray(velocity, dtype=float)

    def get_angular_velocity(self, handle):
        return self.bodies[handle]["angular_velocity"].copy()

    def set_angular_velocity(self, handle, angular_velocity):
        self.bodies[handle]["angular_velocity"] = np.asarray(angular_velocity, dtype=float)

    def apply_central_force(self, handle, force):
        self.central_forces.append(np.asarray(force, dtype=float))

    def apply_force_at_position(self, handle, force, world_position):
        self.forces_at.append((np.asarray(force, dtype=float), np.asarray(world_position, dtype=float)))

    def apply_torque(self, handle, torque):
        self.torques.append(np.asarray(torque, dtype=float))


@pytest.fixture
def clock():
    """Manual clock starting at t=0 ms"""
    return ManualClock()


@pytest.fixture
def keyboard():
    return KeyboardState()


@pytest.fixture
def engine(keyboard, clock):
    """Control engine on the manual clock with the built-in scripts registered"""
    return ControlChannelEngine(keyboard=keyboard, clock=clock)


@pytest.fixture
def recording_provider():
    return RecordingProvider()


@pytest.fixture
def free_space_world():
    """World without gravity, ground or damping, stepping in exact quarter seconds"""
    return PhysicsWorld(gravity=(0.0, 0.0, 0.0), fixed_time_step=0.25, ground_height=None,
                        linear_damping=0.0, angular_damping=0.0)
