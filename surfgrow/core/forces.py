"""
Forces Module

Inverse-square repulsion between neighboring particles, constrained to the
tangent plane of the surface.

For particle i with neighbors N(i) inside the repulsion radius:

    force(i) = sum_j strength * normalize(p_i - p_j) / |p_i - p_j|²

The force is projected onto the plane orthogonal to the field gradient at
p_i, and all forces are scaled by a common factor so the largest one does not
exceed the speed limit. After the move every particle is pulled back onto
the surface with Newton-Raphson.
"""

import logging
import numpy as np
from dataclasses import dataclass

from .projector import SurfaceProjector
from .tree import Tree


logger = logging.getLogger(__name__)


@dataclass
class RepulsionResult:
    """
    Outcome of one repulsion pass.

    Attributes:
        positions: Particle positions after the move and re-projection
        forces: Tangent-projected, speed-limited displacement per particle
        neighbor_counts: Number of neighbors inside the repulsion radius
        min_separation: Distance to the nearest neighbor (inf if none)
        most_isolated_index: Index of the particle with the largest min_separation
        most_isolated_distance: That particle's min_separation
        median_separation: Median of min_separation over all particles
        average_neighbors: Mean of neighbor_counts
        reverted: Number of particles whose re-projection failed and were
            left at their pre-step position
    """
    positions: np.ndarray
    forces: np.ndarray
    neighbor_counts: np.ndarray
    min_separation: np.ndarray
    most_isolated_index: int
    most_isolated_distance: float
    median_separation: float
    average_neighbors: float
    reverted: int = 0

    @property
    def max_displacement(self) -> float:
        if len(self.forces) == 0:
            return 0.0
        return float(np.max(np.linalg.norm(self.forces, axis=1)))


class RepulsionModel:
    """
    Pairwise repulsion on the surface, with density statistics gathered
    during the same neighbor scan.
    """

    def __init__(self, projector: SurfaceProjector, max_repulsion_radius: float):
        """
        Args:
            projector: Projector for the surface the particles live on
            max_repulsion_radius: Neighbors further than this exert no force
        """
        if max_repulsion_radius <= 0:
            raise ValueError("Repulsion radius must be positive")
        self.projector = projector
        self.max_repulsion_radius = max_repulsion_radius

    @property
    def speed_limit(self) -> float:
        return self.projector.config.speed_limit

    def compute_forces(self, positions: np.ndarray, tree: Tree, strength: float):
        """
        Raw repulsion forces and neighbor statistics.

        The neighbor pairs are gathered from the tree once and summed in a
        single batch. Coincident neighbors are never paired, so they
        contribute nothing.

        Returns:
            Tuple of (forces, neighbor_counts, min_squared_separation)
        """
        n = len(positions)
        forces = np.zeros((n, 3))
        min_sq = np.full(n, np.inf)

        rows, cols = tree.query_pairs(self.max_repulsion_radius)
        neighbor_counts = np.bincount(rows, minlength=n).astype(np.int64)
        if len(rows) == 0:
            return forces, neighbor_counts, min_sq

        diff = positions[rows] - positions[cols]
        d2 = np.sum(diff * diff, axis=1)
        # normalize(diff) / d² == diff / d³
        np.add.at(forces, rows, strength * diff / (d2 * np.sqrt(d2))[:, None])
        np.minimum.at(min_sq, rows, d2)

        return forces, neighbor_counts, min_sq

    def project_to_tangent(self, positions: np.ndarray, forces: np.ndarray) -> np.ndarray:
        """
        Remove the component of each force along the surface normal.

        Particles with a vanishing gradient get zero force since their
        tangent plane is undefined.
        """
        if len(positions) == 0:
            return forces
        grad = self.projector.gradient(positions)
        norm = np.linalg.norm(grad, axis=1)
        flat = norm == 0.0
        normals = grad / np.where(flat, 1.0, norm)[:, None]
        along = np.sum(forces * normals, axis=1)
        tangent = forces - along[:, None] * normals
        tangent[flat] = 0.0
        return tangent

    def limit_speed(self, forces: np.ndarray) -> np.ndarray:
        """
        Scale all forces by one common factor so the largest magnitude does
        not exceed the speed limit. Directions and ratios are preserved.
        """
        if len(forces) == 0:
            return forces
        max_magnitude = float(np.max(np.linalg.norm(forces, axis=1)))
        if max_magnitude > self.speed_limit:
            return forces * (self.speed_limit / max_magnitude)
        return forces

    def relax(self, positions: np.ndarray, tree: Tree, strength: float) -> RepulsionResult:
        """
        Run one repulsion pass: compute forces, move, re-project.

        Args:
            positions: Current particle positions, shape (n, 3)
            tree: Octree built over positions
            strength: Current force strength

        Returns:
            RepulsionResult with new positions and density statistics
        """
        forces, neighbor_counts, min_sq = self.compute_forces(positions, tree, strength)
        forces = self.limit_speed(self.project_to_tangent(positions, forces))

        moved, converged = self.projector.newton_raphson_project_many(positions + forces)
        reverted = int(np.sum(~converged))
        if reverted:
            logger.warning("Re-projection failed for %d particle(s); reverting them this step",
                           reverted)
            moved[~converged] = positions[~converged]
            forces = forces.copy()
            forces[~converged] = 0.0

        min_separation = np.sqrt(min_sq)
        if len(positions):
            most_isolated = int(np.argmax(min_separation))
            most_isolated_distance = float(min_separation[most_isolated])
            median_separation = float(np.median(min_separation))
            average_neighbors = float(np.mean(neighbor_counts))
        else:
            most_isolated, most_isolated_distance = -1, 0.0
            median_separation, average_neighbors = 0.0, 0.0

        return RepulsionResult(
            positions=moved,
            forces=forces,
            neighbor_counts=neighbor_counts,
            min_separation=min_separation,
            most_isolated_index=most_isolated,
            most_isolated_distance=most_isolated_distance,
            median_separation=median_separation,
            average_neighbors=average_neighbors,
            reverted=reverted,
        )
