"""
Vector Module

Point3 helpers. A point is a float64 array of shape (3,); a batch of points
is an array of shape (n, 3).
"""

from typing import Optional
import numpy as np

from .errors import DegenerateVectorError, ShapeMismatchError, SurfaceGrowthError


def as_point3(v) -> np.ndarray:
    """Coerce v to a fresh (3,) float64 array."""
    point = np.array(v, dtype=np.float64)
    if point.shape != (3,):
        raise ShapeMismatchError(f"Expected a 3-vector, got shape {point.shape}")
    return point


def as_points(points) -> np.ndarray:
    """Coerce points to an (n, 3) float64 array."""
    arr = np.asarray(points, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr.reshape(1, -1)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ShapeMismatchError(f"Expected points of shape (n, 3), got {arr.shape}")
    return arr


def dot(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.dot(as_point3(a), as_point3(b)))


def cross(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.cross(as_point3(a), as_point3(b))


def length(v: np.ndarray) -> float:
    return float(np.linalg.norm(as_point3(v)))


def normalize(v: np.ndarray) -> np.ndarray:
    """
    Return v scaled to unit length.

    Raises:
        DegenerateVectorError: If v has zero length.
    """
    v = as_point3(v)
    norm = np.linalg.norm(v)
    if norm == 0.0:
        raise DegenerateVectorError("Cannot normalize a zero-length vector")
    return v / norm


def project_onto_plane(v: np.ndarray, normal: np.ndarray) -> np.ndarray:
    """Remove the component of v along the (not necessarily unit) normal."""
    n = normalize(normal)
    v = as_point3(v)
    return v - np.dot(v, n) * n


def random_unit_vector(rng: np.random.Generator, max_attempts: int = 64) -> np.ndarray:
    """
    Draw a unit vector uniformly distributed over the sphere.

    Samples the cube [-1, 1)³ and rejects points outside the unit ball
    before normalizing.

    Args:
        rng: Source of randomness
        max_attempts: Number of cube samples to try before giving up

    Returns:
        Unit vector of shape (3,)
    """
    for _ in range(max_attempts):
        v = rng.random(3) * 2.0 - 1.0
        squared = float(np.dot(v, v))
        if 0.0 < squared <= 1.0:
            return v / np.sqrt(squared)
    raise SurfaceGrowthError(
        f"Rejection sampling found no point in the unit ball after {max_attempts} attempts"
    )


def random_tangent_direction(rng: np.random.Generator, normal: np.ndarray,
                             max_attempts: int = 64) -> np.ndarray:
    """
    Draw a unit vector uniformly distributed over the circle orthogonal to
    normal.

    The azimuth of a uniform sphere sample is uniform, so dropping its normal
    component and renormalizing gives a uniform direction in the plane.
    """
    n = normalize(normal)
    last: Optional[Exception] = None
    for _ in range(max_attempts):
        v = random_unit_vector(rng, max_attempts)
        tangent = v - np.dot(v, n) * n
        try:
            return normalize(tangent)
        except DegenerateVectorError as exc:
            last = exc
    raise SurfaceGrowthError(
        f"No tangent direction found after {max_attempts} attempts"
    ) from last
