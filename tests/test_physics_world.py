"""
Tests for the reference physics world: integration, sub-stepping, damping,
ground contact and force application.
"""

import math

import numpy as np
import pytest
from pyquaternion import Quaternion

from quadflight.physics.provider import BoxShape, ProviderUnavailableError, Transform
from quadflight.physics.world import PhysicsWorld

pytestmark = pytest.mark.physics


def spawn(world, position=(0.0, 0.0, 0.0), mass=1.0, half_extents=(0.5, 0.1, 0.5)):
    return world.create_body(BoxShape(half_extents), mass,
                             Transform(np.array(position, dtype=float), Quaternion(1, 0, 0, 0)))


class TestConstruction:
    """World parameters are validated up front."""

    def test_invalid_gravity(self):
        with pytest.raises(ProviderUnavailableError):
            PhysicsWorld(gravity=(0.0, -9.81))
        with pytest.raises(ProviderUnavailableError):
            PhysicsWorld(gravity=(0.0, float("nan"), 0.0))

    def test_invalid_time_step(self):
        with pytest.raises(ProviderUnavailableError):
            PhysicsWorld(fixed_time_step=0.0)

    def test_handles_are_unique(self, free_space_world):
        first = spawn(free_space_world)
        second = spawn(free_space_world)
        assert first != second
        assert free_space_world.handles == (first, second)

    def test_unknown_handle(self, free_space_world):
        with pytest.raises(KeyError):
            free_space_world.get_transform(42)


class TestIntegration:
    """Semi-implicit Euler under gravity and applied loads."""

    def test_free_fall(self):
        world = PhysicsWorld(fixed_time_step=0.25, ground_height=None,
                             linear_damping=0.0, angular_damping=0.0)
        handle = spawn(world, position=(0.0, 10.0, 0.0))

        assert world.step(1.0) == 4
        np.testing.assert_array_almost_equal(world.get_linear_velocity(handle), [0.0, -9.81, 0.0])
        # Sum of v_i * dt over four quarter steps: 9.81 * 0.0625 * (1 + 2 + 3 + 4)
        position, _ = world.get_transform(handle)
        assert position[1] == pytest.approx(10.0 - 9.81 * 0.0625 * 10)
        assert world.time == pytest.approx(1.0)

    def test_central_force(self, free_space_world):
        handle = spawn(free_space_world, mass=2.0)
        free_space_world.apply_central_force(handle, np.array([4.0, 0.0, 0.0]))
        free_space_world.step(0.25)
        np.testing.assert_array_almost_equal(free_space_world.get_linear_velocity(handle), [0.5, 0.0, 0.0])

    def test_force_at_position_generates_torque(self, free_space_world):
        handle = spawn(free_space_world)
        free_space_world.apply_force_at_position(handle, np.array([0.0, 1.0, 0.0]), np.array([1.0, 0.0, 1.0]))
        np.testing.assert_array_almost_equal(free_space_world.body(handle).applied_torque, [-1.0, 0.0, 1.0])

    def test_torque_rotates_body(self, free_space_world):
        handle = spawn(free_space_world)
        free_space_world.apply_torque(handle, np.array([0.0, 0.1, 0.0]))
        free_space_world.step(0.25)
        free_space_world.step(0.25)

        assert free_space_world.get_angular_velocity(handle)[1] > 0.0
        _, orientation = free_space_world.get_transform(handle)
        assert orientation.norm == pytest.approx(1.0)
        assert not np.allclose(orientation.elements, [1.0, 0.0, 0.0, 0.0])

    def test_loads_cleared_after_step(self, free_space_world):
        handle = spawn(free_space_world)
        free_space_world.apply_central_force(handle, np.array([1.0, 0.0, 0.0]))
        free_space_world.step(0.25)
        free_space_world.step(0.25)
        # Velocity only gained from the first step
        np.testing.assert_array_almost_equal(free_space_world.get_linear_velocity(handle), [0.25, 0.0, 0.0])
        np.testing.assert_array_equal(free_space_world.body(handle).applied_force, np.zeros(3))


class TestSubStepping:
    """Fixed sub-steps with a cap."""

    def test_accumulates_partial_steps(self, free_space_world):
        spawn(free_space_world)
        assert free_space_world.step(0.125) == 0
        assert free_space_world.step(0.125) == 1

    def test_sub_step_cap(self, free_space_world):
        spawn(free_space_world)
        assert free_space_world.step(10.0, max_sub_steps=3) == 3
        assert free_space_world.time == pytest.approx(0.75)

    def test_direct_step_without_sub_steps(self, free_space_world):
        handle = spawn(free_space_world)
        free_space_world.set_linear_velocity(handle, np.array([1.0, 0.0, 0.0]))
        assert free_space_world.step(0.1, max_sub_steps=0) == 1
        position, _ = free_space_world.get_transform(handle)
        assert position[0] == pytest.approx(0.1)

    def test_negative_dt_rejected(self, free_space_world):
        with pytest.raises(ValueError):
            free_space_world.step(-0.1)


class TestDampingAndGround:
    """Body damping and the static ground plane."""

    def test_linear_damping(self):
        world = PhysicsWorld(gravity=(0.0, 0.0, 0.0), fixed_time_step=1.0, ground_height=None,
                             linear_damping=0.5, angular_damping=0.5)
        handle = spawn(world)
        world.set_linear_velocity(handle, np.array([10.0, 0.0, 0.0]))
        world.set_angular_velocity(handle, np.array([0.0, 2.0, 0.0]))
        world.step(1.0)
        np.testing.assert_array_almost_equal(world.get_linear_velocity(handle), [5.0, 0.0, 0.0])
        assert world.get_angular_velocity(handle)[1] == pytest.approx(1.0)

    def test_body_rests_on_ground(self):
        world = PhysicsWorld()
        handle = spawn(world, position=(0.0, 0.1, 0.0))
        for _ in range(60):
            world.step(1 / 60)
        position, _ = world.get_transform(handle)
        assert position[1] == pytest.approx(0.1)
        assert world.get_linear_velocity(handle)[1] == pytest.approx(0.0)

    def test_falling_body_stops_at_ground(self):
        world = PhysicsWorld()
        handle = spawn(world, position=(0.0, 2.0, 0.0))
        for _ in range(180):
            world.step(1 / 60)
        position, _ = world.get_transform(handle)
        assert position[1] == pytest.approx(0.1)
        assert math.isfinite(position[1])
