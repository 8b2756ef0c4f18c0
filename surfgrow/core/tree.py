"""
Tree Module

Adaptive octree over the particle set for radius neighbor queries.

The tree is a cache: it is rebuilt from the current positions every
simulation step and never updated incrementally.
"""

from typing import List, Optional, Tuple
from collections import deque
import numpy as np
from dataclasses import dataclass

from .cell import Cell, CellType
from .vector import as_point3, as_points


@dataclass
class TreeConfig:
    """Configuration for tree construction."""
    max_depth: int = 12          # Maximum tree depth
    ncrit: int = 16              # Maximum particles per leaf (adaptive refinement)

    def __post_init__(self):
        """Validate configuration."""
        if self.max_depth <= 0:
            raise ValueError("Max depth must be positive")
        if self.ncrit <= 0:
            raise ValueError("Ncrit must be positive")


class Tree:
    """
    Octree over an (n, 3) array of particle positions.

    Leaves hold indices into the position array. Leaves split into octants
    when they hold more than ncrit particles, up to max_depth.
    """

    def __init__(self, positions, config: Optional[TreeConfig] = None):
        """
        Initialize the tree with particle positions.

        Args:
            positions: Array of shape (n, 3)
            config: Tree configuration parameters
        """
        if config is None:
            config = TreeConfig()

        self.positions = as_points(positions) if len(positions) else np.empty((0, 3))
        self.config = config
        self.root: Optional[Cell] = None
        self.leaves: List[Cell] = []
        self.cells_by_level: List[List[Cell]] = []

        if len(self.positions):
            self._build_tree()

    def _compute_bounding_box(self) -> Tuple[np.ndarray, float]:
        """
        Compute a cubic bounding box for all particles.

        Returns:
            Tuple of (center, size)
        """
        min_coords = np.min(self.positions, axis=0)
        max_coords = np.max(self.positions, axis=0)

        center = (min_coords + max_coords) / 2.0
        size = float(np.max(max_coords - min_coords))

        if size == 0.0:
            size = 1.0

        # Add small padding to avoid boundary issues
        size *= 1.01

        return center, size

    def _build_tree(self):
        """Build the hierarchical tree structure."""
        center, size = self._compute_bounding_box()

        self.root = Cell(
            center=center,
            size=size,
            level=0,
            index=0,
            cell_type=CellType.ROOT
        )
        self.root.indices = np.arange(len(self.positions), dtype=np.int64)

        self._subdivide_cell(self.root)
        self._index_levels()
        self._collect_leaves()

    def _subdivide_cell(self, cell: Cell):
        """
        Split an overfull leaf and redistribute its particles by octant.
        """
        if len(cell.indices) <= self.config.ncrit or cell.level >= self.config.max_depth:
            return

        children = cell.subdivide()
        octants = cell.octant_of(self.positions[cell.indices])
        for child in children:
            child.indices = cell.indices[octants == child.index]

        # Clear particles from parent (now internal node)
        cell.indices = np.empty(0, dtype=np.int64)

        for child in children:
            self._subdivide_cell(child)

    def _index_levels(self):
        """Build an index of cells by their level."""
        self.cells_by_level = []
        queue = deque([self.root])

        while queue:
            cell = queue.popleft()
            while len(self.cells_by_level) <= cell.level:
                self.cells_by_level.append([])
            self.cells_by_level[cell.level].append(cell)
            queue.extend(cell.children)

    def _collect_leaves(self):
        """Collect all leaf cells holding at least one particle."""
        self.leaves = [cell for level in self.cells_by_level for cell in level
                       if cell.is_leaf and len(cell.indices) > 0]

    def query_radius_indices(self, center, radius: float) -> np.ndarray:
        """
        Indices of particles at distance d from center with 0 < d < radius.

        Particles coinciding with center are excluded.

        Args:
            center: Query point (3,)
            radius: Query radius

        Returns:
            Sorted array of particle indices
        """
        if self.root is None:
            return np.empty(0, dtype=np.int64)

        c = as_point3(center)
        x, y, z = float(c[0]), float(c[1]), float(c[2])
        r2 = radius * radius
        found = []

        stack = [self.root]
        while stack:
            cell = stack.pop()
            if not cell.overlaps_sphere(x, y, z, radius):
                continue
            if cell.is_leaf:
                if len(cell.indices) == 0:
                    continue
                d2 = np.sum((self.positions[cell.indices] - c) ** 2, axis=1)
                hits = cell.indices[(d2 < r2) & (d2 > 0.0)]
                if len(hits):
                    found.append(hits)
            else:
                stack.extend(cell.children)

        if not found:
            return np.empty(0, dtype=np.int64)
        return np.sort(np.concatenate(found))

    def query_pairs(self, radius: float) -> Tuple[np.ndarray, np.ndarray]:
        """
        All ordered neighbor pairs (i, j) with 0 < |p_i - p_j| < radius.

        Each leaf is matched against every leaf within radius of its box,
        and the pair distances between the two are computed in one pass.
        Both (i, j) and (j, i) are returned.

        Returns:
            Tuple of (rows, cols) index arrays, sorted by row then column
        """
        empty = np.empty(0, dtype=np.int64)
        if self.root is None:
            return empty, empty

        r2 = radius * radius
        rows, cols = [], []

        for leaf in self.leaves:
            targets = self.positions[leaf.indices]
            stack = [self.root]
            while stack:
                cell = stack.pop()
                if leaf.squared_distance_to_cell(cell) >= r2:
                    continue
                if not cell.is_leaf:
                    stack.extend(cell.children)
                    continue
                if len(cell.indices) == 0:
                    continue

                diff = targets[:, None, :] - self.positions[cell.indices][None, :, :]
                d2 = np.sum(diff * diff, axis=2)
                ti, si = np.nonzero((d2 < r2) & (d2 > 0.0))
                if len(ti):
                    rows.append(leaf.indices[ti])
                    cols.append(cell.indices[si])

        if not rows:
            return empty, empty
        rows = np.concatenate(rows)
        cols = np.concatenate(cols)
        order = np.lexsort((cols, rows))
        return rows[order], cols[order]

    def query_radius(self, center, radius: float) -> np.ndarray:
        """
        Positions of particles strictly within radius of center, excluding
        exact self-matches.

        Returns:
            Array of shape (k, 3)
        """
        return self.positions[self.query_radius_indices(center, radius)]

    def get_max_level(self) -> int:
        """Return the maximum tree level."""
        return len(self.cells_by_level) - 1

    def get_cells_at_level(self, level: int) -> List[Cell]:
        """Get all cells at a specific level."""
        if 0 <= level < len(self.cells_by_level):
            return self.cells_by_level[level]
        return []

    def get_leaf_containing(self, position) -> Optional[Cell]:
        """Find the leaf cell containing a given position."""
        if self.root is None:
            return None
        position = as_point3(position)
        if not self.root.contains(position):
            return None

        cell = self.root
        while not cell.is_leaf:
            octant = int(cell.octant_of(position[None, :])[0])
            cell = cell.children[octant]
        return cell

    def get_statistics(self) -> dict:
        """
        Compute and return tree statistics.

        Returns:
            Dictionary with tree statistics
        """
        num_cells = sum(len(level) for level in self.cells_by_level)
        occupancy = [leaf.num_particles for leaf in self.leaves] or [0]

        return {
            'num_particles': len(self.positions),
            'num_cells': num_cells,
            'num_leaves': len(self.leaves),
            'max_depth': self.get_max_level(),
            'avg_particles_per_leaf': float(np.mean(occupancy)),
            'max_particles_per_leaf': int(max(occupancy)),
        }

    def __len__(self) -> int:
        return len(self.positions)

    def __repr__(self) -> str:
        stats = self.get_statistics()
        return (f"Tree(N={stats['num_particles']}, "
                f"cells={stats['num_cells']}, "
                f"leaves={stats['num_leaves']}, "
                f"depth={stats['max_depth']})")
