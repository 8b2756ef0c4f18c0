"""
Growth Module

Grows a particle population that tiles the zero level-set of a scalar field.

A run is seeded once by projecting the origin onto the surface. Each step
then rebuilds the octree, relaxes the particles with tangent-plane
repulsion, and inserts one particle next to the most isolated one whenever
the median nearest-neighbor distance exceeds the target edge length.
Insertion resets the force strength; otherwise it decays geometrically.
Once it falls below τ² the run is quiescent and steps become no-ops.
"""

from typing import Optional
import logging
import numpy as np
from dataclasses import dataclass, field
from enum import Enum

from .errors import DegenerateSeedError, NonConvergenceError, SurfaceGrowthError
from .forces import RepulsionModel
from .projector import ProjectorConfig, SurfaceProjector
from .tree import Tree, TreeConfig
from .vector import as_point3, random_tangent_direction
from surfgrow.fields import ScalarField


logger = logging.getLogger(__name__)


class GrowthPhase(Enum):
    """Lifecycle of a growth run."""
    SEEDING = "seeding"
    GROWING = "growing"
    PAUSED = "paused"


@dataclass
class GrowthConfig:
    """Configuration for surface growth."""
    target_edge_length: float = 0.05        # Desired spacing between particles
    repulsion_radius_factor: float = 2.5    # Repulsion radius as a multiple of target spacing
    speed_limit: float = 0.01               # Max displacement per step/iteration
    tolerance: float = 1e-6                 # τ
    initial_force_strength: float = 1e-3    # Strength after seeding and after each insertion
    half_life: float = 50.0                 # Steps for force strength to halve
    descent_rate: float = 0.05              # Gradient descent multiplier k
    max_iterations: int = 10_000            # Projection iteration cap
    gradient_epsilon: float = 1e-6          # Finite difference step
    max_sampling_attempts: int = 64         # Rejection sampling retry cap
    ncrit: int = 16                         # Octree leaf capacity
    max_depth: int = 12                     # Octree depth cap

    def __post_init__(self):
        """Validate configuration."""
        if self.target_edge_length <= 0:
            raise ValueError("Target edge length must be positive")
        if self.repulsion_radius_factor <= 0:
            raise ValueError("Repulsion radius factor must be positive")
        if self.initial_force_strength <= 0:
            raise ValueError("Initial force strength must be positive")
        if self.half_life <= 0:
            raise ValueError("Half-life must be positive")
        if self.max_sampling_attempts <= 0:
            raise ValueError("Max sampling attempts must be positive")
        # Remaining fields are validated by the configs derived from them
        self.projector_config()
        self.tree_config()

    @property
    def max_repulsion_radius(self) -> float:
        return self.repulsion_radius_factor * self.target_edge_length

    @property
    def decay_factor(self) -> float:
        """Per-step multiplier on force strength, 0.5 ** (1 / half_life)."""
        return 0.5 ** (1.0 / self.half_life)

    def projector_config(self) -> ProjectorConfig:
        return ProjectorConfig(
            tolerance=self.tolerance,
            speed_limit=self.speed_limit,
            descent_rate=self.descent_rate,
            max_iterations=self.max_iterations,
            gradient_epsilon=self.gradient_epsilon,
        )

    def tree_config(self) -> TreeConfig:
        return TreeConfig(max_depth=self.max_depth, ncrit=self.ncrit)


@dataclass
class SimulationState:
    """
    Mutable state of one growth run.

    Attributes:
        positions: Particle positions, shape (n, 3), in insertion order
        force_strength: Current repulsion strength
        last_displaced_index: Particle most recently copied to insert a new one
        step_count: Number of completed steps
        phase: Current lifecycle phase
    """
    positions: np.ndarray = field(default_factory=lambda: np.empty((0, 3)))
    force_strength: float = 0.0
    last_displaced_index: Optional[int] = None
    step_count: int = 0
    phase: GrowthPhase = GrowthPhase.SEEDING

    @property
    def num_particles(self) -> int:
        return len(self.positions)


@dataclass
class StepStats:
    """Diagnostics for one step."""
    step: int
    particle_count: int
    average_neighbors: float
    median_separation: float
    most_isolated_distance: float
    force_strength: float
    max_displacement: float = 0.0
    inserted: bool = False
    paused: bool = False
    reverted: int = 0


class SurfaceGrowth:
    """
    Surface-constrained particle growth.

    Usage:
        growth = SurfaceGrowth(SimplexNoiseField(seed=7, level_curve=0.2))
        growth.seed()
        for _ in range(1000):
            stats = growth.step()
    """

    def __init__(self, field: ScalarField, config: Optional[GrowthConfig] = None,
                 rng: Optional[np.random.Generator] = None):
        """
        Initialize growth.

        Args:
            field: Scalar field whose zero level-set is tiled
            config: Growth configuration (optional)
            rng: Source of all randomness; defaults to default_rng(0)
        """
        if config is None:
            config = GrowthConfig()
        if rng is None:
            rng = np.random.default_rng(0)

        self.field = field
        self.config = config
        self.rng = rng
        self.projector = SurfaceProjector(field, config.projector_config())
        self.repulsion = RepulsionModel(self.projector, config.max_repulsion_radius)
        self.state = SimulationState()

    def seed(self, origin=(0.0, 0.0, 0.0)) -> np.ndarray:
        """
        Start (or restart) the run from a single particle.

        The origin is descended onto the surface and becomes the first
        particle.

        Returns:
            The seed particle (3,)

        Raises:
            DegenerateSeedError: If descent stalls at a minimum off the surface.
        """
        origin = as_point3(origin)
        try:
            result = self.projector.gradient_descent_project(origin)
        except NonConvergenceError as exc:
            raise DegenerateSeedError(exc.point, self.projector.squared_field(exc.point)) from exc

        if not result.on_surface:
            raise DegenerateSeedError(result.point, result.squared_value)

        self.state = SimulationState(
            positions=result.point[None, :].copy(),
            force_strength=self.config.initial_force_strength,
            phase=GrowthPhase.GROWING,
        )
        logger.info("Seeded at %s after %d descent iterations", result.point, result.iterations)
        return result.point.copy()

    def step(self) -> StepStats:
        """
        Advance the simulation by one step.

        Returns:
            StepStats for the step

        Raises:
            SurfaceGrowthError: If called before seed().
        """
        state = self.state
        if state.phase is GrowthPhase.SEEDING:
            raise SurfaceGrowthError("seed() must be called before step()")

        tol = self.config.tolerance
        if state.force_strength < tol * tol:
            if state.phase is not GrowthPhase.PAUSED:
                logger.info("Force strength %.3e below %.1e; growth paused at %d particles",
                            state.force_strength, tol * tol, state.num_particles)
                state.phase = GrowthPhase.PAUSED
            state.step_count += 1
            return StepStats(
                step=state.step_count,
                particle_count=state.num_particles,
                average_neighbors=float('nan'),
                median_separation=float('nan'),
                most_isolated_distance=float('nan'),
                force_strength=state.force_strength,
                paused=True,
            )

        tree = Tree(state.positions, self.config.tree_config())
        result = self.repulsion.relax(state.positions, tree, state.force_strength)
        state.positions = result.positions

        inserted = False
        if result.median_separation > self.config.target_edge_length:
            inserted = self._insert_near(result.most_isolated_index)

        state.force_strength *= self.config.decay_factor
        state.step_count += 1

        stats = StepStats(
            step=state.step_count,
            particle_count=state.num_particles,
            average_neighbors=result.average_neighbors,
            median_separation=result.median_separation,
            most_isolated_distance=result.most_isolated_distance,
            force_strength=state.force_strength,
            max_displacement=result.max_displacement,
            inserted=inserted,
            reverted=result.reverted,
        )
        logger.debug("Step %d: n=%d median=%.4f neighbors=%.2f strength=%.3e",
                     stats.step, stats.particle_count, stats.median_separation,
                     stats.average_neighbors, stats.force_strength)
        return stats

    def _insert_near(self, index: int) -> bool:
        """
        Insert a particle one speed_limit away from particle index, in a
        random direction tangent to the surface.
        """
        state = self.state
        origin = state.positions[index]
        normal = self.projector.gradient(origin)
        if not np.any(normal):
            logger.warning("Zero gradient at particle %d; skipping insertion", index)
            return False

        direction = random_tangent_direction(self.rng, normal, self.config.max_sampling_attempts)
        candidate = origin + self.config.speed_limit * direction
        try:
            particle = self.projector.newton_raphson_project(candidate)
        except NonConvergenceError:
            logger.warning("Inserted particle near %d did not reach the surface; skipping", index)
            return False

        state.positions = np.vstack([state.positions, particle])
        state.force_strength = self.config.initial_force_strength
        state.last_displaced_index = index
        state.phase = GrowthPhase.GROWING
        return True

    def particles(self) -> np.ndarray:
        """Read-only snapshot of particle positions, shape (n, 3)."""
        snapshot = self.state.positions.copy()
        snapshot.setflags(write=False)
        return snapshot

    def gradient_at(self, point) -> np.ndarray:
        """Surface gradient (unnormalized normal) at a point."""
        return self.projector.gradient(as_point3(point))

    def run(self, num_steps: int):
        """Yield StepStats for num_steps consecutive steps."""
        for _ in range(num_steps):
            yield self.step()

    def __repr__(self) -> str:
        return (f"SurfaceGrowth(field={self.field!r}, n={self.state.num_particles}, "
                f"phase={self.state.phase.value})")
