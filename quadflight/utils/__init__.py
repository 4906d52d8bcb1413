"""Utility helpers shared by the control and physics packages."""

from .maths import clamp, move_towards, clamp_magnitude, finite_or, is_number

__all__ = ["clamp", "move_towards", "clamp_magnitude", "finite_or", "is_number"]
