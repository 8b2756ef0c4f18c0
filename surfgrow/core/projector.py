"""
Projector Module

Root finding that maps arbitrary points onto the zero level-set of a field.

Two strategies are provided:
- Damped Newton-Raphson along the gradient: fast near a root, unreliable
  far from one.
- Gradient descent on f²: globally convergent but slow, and may stall in a
  basin whose minimum is not on the surface.

Seeding descends first and then polishes with Newton-Raphson.
"""

from typing import Tuple
import logging
import numpy as np
from dataclasses import dataclass

from .errors import NonConvergenceError
from .gradient import numerical_gradient
from .vector import as_point3, as_points
from surfgrow.fields import ScalarField, SquaredField


logger = logging.getLogger(__name__)


@dataclass
class ProjectorConfig:
    """Configuration for surface projection."""
    tolerance: float = 1e-6          # τ: values below this count as zero
    speed_limit: float = 0.01        # Maximum displacement per iteration
    descent_rate: float = 0.05       # k: gradient descent multiplier
    max_iterations: int = 10_000     # Iteration cap for both strategies
    gradient_epsilon: float = 1e-6   # Finite difference step

    def __post_init__(self):
        """Validate configuration."""
        if self.tolerance <= 0:
            raise ValueError("Tolerance must be positive")
        if self.speed_limit <= 0:
            raise ValueError("Speed limit must be positive")
        if self.descent_rate <= 0:
            raise ValueError("Descent rate must be positive")
        if self.max_iterations <= 0:
            raise ValueError("Max iterations must be positive")
        if self.gradient_epsilon <= 0:
            raise ValueError("Gradient epsilon must be positive")


@dataclass
class DescentResult:
    """
    Outcome of gradient descent on f².

    Attributes:
        point: Where descent stopped (polished onto the surface if on_surface)
        squared_value: f² at the point where descent stopped
        iterations: Number of descent iterations taken
        on_surface: Whether the minimum reached lies on the zero level-set
    """
    point: np.ndarray
    squared_value: float
    iterations: int
    on_surface: bool


class SurfaceProjector:
    """
    Projects points onto the zero level-set of a scalar field.
    """

    def __init__(self, field: ScalarField, config: ProjectorConfig = None):
        if config is None:
            config = ProjectorConfig()
        self.field = field
        self.squared_field = SquaredField(field)
        self.config = config

    def gradient(self, points) -> np.ndarray:
        """Gradient of the surface field at a point or batch of points."""
        return numerical_gradient(self.field, points, self.config.gradient_epsilon)

    def newton_raphson_project_many(self, points) -> Tuple[np.ndarray, np.ndarray]:
        """
        Newton-Raphson projection of a batch of points.

        Each point iterates

            x <- x - clip(f(x) / |grad f(x)|, -speed_limit, speed_limit) * grad f(x) / |grad f(x)|

        until |f(x)| < τ and the last step is shorter than τ. Points are
        retired independently as they converge. A point whose gradient
        vanishes cannot be projected and is reported as not converged.

        Args:
            points: Array of shape (n, 3)

        Returns:
            Tuple of (projected points, converged mask)
        """
        x = as_points(points).copy()
        n = len(x)
        converged = np.zeros(n, dtype=bool)
        active = np.arange(n)
        tol = self.config.tolerance
        limit = self.config.speed_limit

        for _ in range(self.config.max_iterations):
            if len(active) == 0:
                break

            xa = x[active]
            value = self.field.evaluate(xa)
            grad = self.gradient(xa)
            slope = np.linalg.norm(grad, axis=1)

            flat = slope == 0.0
            safe_slope = np.where(flat, 1.0, slope)
            speed = np.clip(value / safe_slope, -limit, limit)
            speed[flat] = 0.0
            direction = grad / safe_slope[:, None]
            x[active] = xa - speed[:, None] * direction

            done = (np.abs(value) < tol) & (np.abs(speed) < tol) & ~flat
            converged[active[done]] = True
            active = active[~(done | flat)]

        return x, converged

    def newton_raphson_project(self, point) -> np.ndarray:
        """
        Newton-Raphson projection of a single point.

        Only reliable when started close to the surface (within about one
        speed_limit step).

        Raises:
            NonConvergenceError: If the tolerance is not reached.
        """
        start = as_point3(point)
        projected, converged = self.newton_raphson_project_many(start[None, :])
        if not converged[0]:
            raise NonConvergenceError(start, self.config.max_iterations)
        return projected[0]

    def gradient_descent_project(self, point) -> DescentResult:
        """
        Descend f² toward the surface, then polish with Newton-Raphson.

        Iterates x <- x - min(k * |grad f²|, speed_limit) * normalize(grad f²)
        until |grad f²| < τ, or until f² < τ, in which case the point is
        already close enough for Newton-Raphson to finish. If descent stalls
        with f² >= τ, the point is a local minimum off the surface and is
        returned with on_surface=False.

        Args:
            point: Starting point (3,)

        Returns:
            DescentResult describing where descent ended
        """
        x = as_point3(point)
        tol = self.config.tolerance
        limit = self.config.speed_limit
        k = self.config.descent_rate
        squared = self.squared_field(x)
        iterations = 0

        while iterations < self.config.max_iterations and squared >= tol:
            grad = numerical_gradient(self.squared_field, x, self.config.gradient_epsilon)
            slope = float(np.linalg.norm(grad))
            if slope < tol:
                break
            speed = min(k * slope, limit)
            x = x - speed * grad / slope
            squared = self.squared_field(x)
            iterations += 1

        if squared >= tol:
            logger.debug("Descent stalled at %s with f^2 = %.3e after %d iterations",
                         x, squared, iterations)
            return DescentResult(point=x, squared_value=squared,
                                 iterations=iterations, on_surface=False)

        polished = self.newton_raphson_project(x)
        return DescentResult(point=polished, squared_value=self.squared_field(polished),
                             iterations=iterations, on_surface=True)

    def __repr__(self) -> str:
        return f"SurfaceProjector(field={self.field!r}, tol={self.config.tolerance})"
