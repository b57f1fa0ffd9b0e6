"""Two-zone force law (short-range repulsion + color-dependent shell)."""
from __future__ import annotations

import numpy as np

from .force_table import ForceTable

NEAR_FACTOR = 10.0
FAR_FACTOR = 20.0
MIN_DISTANCE = 1.0


def radial_falloff(
    distance: float,
    point_size: float,
    near_factor: float = NEAR_FACTOR,
    far_factor: float = FAR_FACTOR,
    min_distance: float = MIN_DISTANCE,
) -> float:
    """
    Return the distance-dependent multiplier applied to a table coefficient.

    The falloff has three pieces:
    - d < near: linear ramp from -1 at d=0 to 0 at d=near (universal repulsion)
    - near <= d < far: quadratic ramp t^2 with t = (d - near) / near
    - d >= far: zero

    Pairs closer than ``min_distance`` yield 0 (singularity guard, this also
    covers a particle paired with itself).

    Args:
        distance: Distance between the two particles
        point_size: Length scale of the zones

    Returns:
        Falloff factor in [-1, (far - near)^2 / near^2)
    """
    if distance < min_distance:
        return 0.0
    near = point_size * near_factor
    far = point_size * far_factor
    if distance < near:
        return -1.0 + distance / near
    if distance < far:
        t = (distance - near) / near
        return t * t
    return 0.0


def force_magnitude(
    distance: float,
    color_a: int,
    color_b: int,
    table: ForceTable,
    point_size: float,
    near_factor: float = NEAR_FACTOR,
    far_factor: float = FAR_FACTOR,
    min_distance: float = MIN_DISTANCE,
) -> float:
    """Signed force particle of ``color_a`` feels toward ``color_b``; + pulls, - pushes."""
    falloff = radial_falloff(distance, point_size, near_factor, far_factor, min_distance)
    if falloff == 0.0:
        return 0.0
    return float(table[color_a, color_b]) * falloff


def falloff_array(
    distances: np.ndarray,
    point_size: float,
    near_factor: float = NEAR_FACTOR,
    far_factor: float = FAR_FACTOR,
    min_distance: float = MIN_DISTANCE,
) -> np.ndarray:
    """Vectorized :func:`radial_falloff` over an array of distances."""
    near = point_size * near_factor
    far = point_size * far_factor
    t = (distances - near) / near
    result = np.where(distances < near, -1.0 + distances / near, t * t)
    result[(distances >= far) | (distances < min_distance)] = 0.0
    return result


falloff = falloff_array
