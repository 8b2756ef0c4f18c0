"""
Scalar Fields Module

Implicit scalar fields whose zero level-set is the surface being tiled.
"""

import numpy as np
from typing import Callable
from abc import ABC, abstractmethod

from surfgrow.core.vector import as_points
from surfgrow.fields.simplex import SimplexNoise3D


class ScalarField(ABC):
    """
    Abstract base class for scalar fields.

    Subclasses implement ``evaluate`` on an (n, 3) batch; ``__call__`` accepts
    either a single point (returning a float) or a batch (returning an array).
    Fields must be pure: the same input always yields the same output.
    """

    @abstractmethod
    def evaluate(self, points: np.ndarray) -> np.ndarray:
        """
        Evaluate the field on a batch of points.

        Args:
            points: Array of shape (n, 3)

        Returns:
            Array of shape (n,)
        """
        pass

    def __call__(self, points):
        arr = np.asarray(points, dtype=np.float64)
        single = arr.ndim == 1
        values = self.evaluate(as_points(arr))
        if single:
            return float(values[0])
        return values


class SimplexNoiseField(ScalarField):
    """
    Level set of seeded simplex noise.

    f(p) = 0.5 * (noise(frequency * p) + 1) - level_curve

    The noise is remapped to [0, 1] and offset so the surface sits where the
    remapped noise equals level_curve.
    """

    def __init__(self, seed: int = 123, level_curve: float = 0.3,
                 frequency: float = 1.0):
        """
        Initialize noise field.

        Args:
            seed: Seed for the noise permutation table
            level_curve: Iso-value of the remapped noise, in (0, 1)
            frequency: Spatial frequency applied to input points
        """
        if frequency <= 0:
            raise ValueError("Frequency must be positive")
        self.seed = seed
        self.level_curve = level_curve
        self.frequency = frequency
        self.noise = SimplexNoise3D(seed)

    def evaluate(self, points: np.ndarray) -> np.ndarray:
        s = self.noise(points * self.frequency)
        return 0.5 * (s + 1.0) - self.level_curve

    def __repr__(self) -> str:
        return (f"SimplexNoiseField(seed={self.seed}, "
                f"level_curve={self.level_curve}, frequency={self.frequency})")


class SphereField(ScalarField):
    """
    Sphere of given radius.

    f(p) = |p - center| - radius
    """

    def __init__(self, radius: float = 1.0, center=(0.0, 0.0, 0.0)):
        if radius <= 0:
            raise ValueError("Radius must be positive")
        self.radius = radius
        self.center = np.asarray(center, dtype=np.float64)

    def evaluate(self, points: np.ndarray) -> np.ndarray:
        return np.linalg.norm(points - self.center, axis=1) - self.radius

    def __repr__(self) -> str:
        return f"SphereField(radius={self.radius}, center={self.center})"


class FunctionField(ScalarField):
    """Field backed by a vectorized callable (n, 3) -> (n,)."""

    def __init__(self, func: Callable[[np.ndarray], np.ndarray]):
        self.func = func

    def evaluate(self, points: np.ndarray) -> np.ndarray:
        return np.asarray(self.func(points), dtype=np.float64)


class SquaredField(ScalarField):
    """
    Square of another field.

    Its minima include the zero set of the wrapped field, which makes it the
    objective for gradient descent toward the surface.
    """

    def __init__(self, field: ScalarField):
        self.field = field

    def evaluate(self, points: np.ndarray) -> np.ndarray:
        values = self.field.evaluate(points)
        return values * values

    def __repr__(self) -> str:
        return f"SquaredField({self.field!r})"


def create_field(name: str, **kwargs) -> ScalarField:
    """
    Factory function to create field instances.

    Args:
        name: Field type name ('simplex', 'sphere')
        **kwargs: Field-specific parameters

    Returns:
        ScalarField instance
    """
    name = name.lower()

    if name == 'simplex':
        seed = kwargs.get('seed', 123)
        level_curve = kwargs.get('level_curve', 0.3)
        frequency = kwargs.get('frequency', 1.0)
        return SimplexNoiseField(seed, level_curve, frequency)
    elif name == 'sphere':
        radius = kwargs.get('radius', 1.0)
        center = kwargs.get('center', (0.0, 0.0, 0.0))
        return SphereField(radius, center)
    else:
        raise ValueError(f"Unknown field type: {name}")


__all__ = [
    'ScalarField',
    'SimplexNoiseField',
    'SphereField',
    'FunctionField',
    'SquaredField',
    'SimplexNoise3D',
    'create_field',
]
