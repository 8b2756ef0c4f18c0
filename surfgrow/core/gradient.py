"""
Gradient Module

Finite-difference gradient estimation for black-box scalar fields.
"""

from typing import Callable
import numpy as np

from .vector import as_points


DEFAULT_EPSILON = 1e-6


def numerical_gradient(func: Callable, points, epsilon: float = DEFAULT_EPSILON) -> np.ndarray:
    """
    Estimate the gradient of func with one-sided (forward) differences.

        grad_i = (f(p + eps * e_i) - f(p)) / eps

    The truncation error is first order in eps. The estimator does not care
    which field it differentiates; callers use it on a surface field and on
    its square alike.

    Args:
        func: Vectorized field, (n, 3) -> (n,)
        points: A single point (3,) or a batch (n, 3)
        epsilon: Finite difference step

    Returns:
        Gradient of shape (3,) for a single point, else (n, 3)
    """
    arr = np.asarray(points, dtype=np.float64)
    single = arr.ndim == 1
    pts = as_points(arr)

    base = np.asarray(func(pts), dtype=np.float64)
    grad = np.empty_like(pts)
    for axis in range(3):
        shifted = pts.copy()
        shifted[:, axis] += epsilon
        grad[:, axis] = (np.asarray(func(shifted), dtype=np.float64) - base) / epsilon

    if single:
        return grad[0]
    return grad
