"""
Errors Module

Exception hierarchy for surface growth.

Only DegenerateSeedError is fatal to a run; the other conditions are
recovered from locally by the component that detects them.
"""


class SurfaceGrowthError(RuntimeError):
    """Base class for all simulation errors."""


class DegenerateSeedError(SurfaceGrowthError):
    """
    Raised when seeding converges to a local minimum of f² that is not on
    the surface, i.e. no zero level-set is reachable from the origin.
    """

    def __init__(self, point, squared_value: float):
        self.point = point
        self.squared_value = squared_value
        super().__init__(
            f"Seed descent stalled at {point} with f^2 = {squared_value:.3e}; "
            f"no surface reachable from the origin"
        )


class NonConvergenceError(SurfaceGrowthError):
    """Raised when Newton-Raphson projection exceeds its iteration cap."""

    def __init__(self, point, iterations: int):
        self.point = point
        self.iterations = iterations
        super().__init__(
            f"Projection of {point} did not converge in {iterations} iterations"
        )


class DegenerateVectorError(SurfaceGrowthError):
    """Raised when a zero-length vector is normalized."""


class ShapeMismatchError(ValueError):
    """Raised when a vector or point batch does not have 3 components."""
