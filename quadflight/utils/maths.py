"""Mathematical utilities for quadflight"""

import math

import numpy as np


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a value between min and max."""
    return max(min_val, min(max_val, value))


def move_towards(value: float, target: float, step: float) -> float:
    """
    Move a value towards a target by at most ``step`` without overshooting.

    Args:
        value: Current value
        target: Value to approach
        step: Maximum change allowed in this call (non-negative)

    Returns:
        The updated value
    """
    if value > target:
        return max(target, value - step)
    return min(target, value + step)


def clamp_magnitude(vector: np.ndarray, max_magnitude: float) -> np.ndarray:
    """
    Rescale a vector so its magnitude does not exceed ``max_magnitude``.

    Direction is preserved; vectors already within the limit are returned
    unchanged (as a float copy).
    """
    vector = np.asarray(vector, dtype=float)
    magnitude = float(np.linalg.norm(vector))
    if magnitude > max_magnitude and magnitude > 0.0:
        return vector * (max_magnitude / magnitude)
    return vector.copy()


def finite_or(values: np.ndarray, fallback: np.ndarray) -> np.ndarray:
    """Replace every non-finite component of ``values`` with the matching ``fallback`` component."""
    values = np.asarray(values, dtype=float)
    fallback = np.asarray(fallback, dtype=float)
    return np.where(np.isfinite(values), values, fallback)


def is_number(value) -> bool:
    """True for real numbers (ints/floats), excluding bools."""
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, np.integer, np.floating)) and not math.isnan(float(value))
