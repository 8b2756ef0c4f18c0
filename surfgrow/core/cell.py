"""
Cell Module

Represents a cell (octant) in the octree over the particle set.
"""

from typing import List, Optional
import numpy as np
from dataclasses import dataclass, field
from enum import Enum


class CellType(Enum):
    """Type of cell in the tree."""
    ROOT = "root"
    INTERNAL = "internal"
    LEAF = "leaf"


# Octant offsets in units of a quarter of the parent size. Bit 0 of the
# octant index selects +x, bit 1 selects +y, bit 2 selects +z.
OCTANT_OFFSETS = np.array([
    (-1, -1, -1),
    (1, -1, -1),
    (-1, 1, -1),
    (1, 1, -1),
    (-1, -1, 1),
    (1, -1, 1),
    (-1, 1, 1),
    (1, 1, 1),
], dtype=np.float64)


@dataclass
class Cell:
    """
    Represents a cubic cell in the octree.

    Attributes:
        center: Center coordinates of the cell
        size: Side length of the cell
        level: Tree level (0 = root)
        index: Octant index within the parent (0 for the root)
        parent: Parent cell reference (None for root)
        children: List of child cells
        indices: Indices of the particles in this cell (only for leaves)
        cell_type: Type of cell (root, internal, or leaf)
    """
    center: np.ndarray
    size: float
    level: int
    index: int
    parent: Optional['Cell'] = None
    children: List['Cell'] = field(default_factory=list)
    indices: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.int64))
    cell_type: CellType = CellType.LEAF

    def __post_init__(self):
        """Validate and initialize cell properties."""
        self.center = np.asarray(self.center, dtype=np.float64)
        half_size = self.size / 2.0
        # Plain floats keep the per-query pruning test out of numpy
        self._lo = tuple(float(c - half_size) for c in self.center)
        self._hi = tuple(float(c + half_size) for c in self.center)

    @property
    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        """Return the minimum and maximum coordinates of the cell."""
        return np.array(self._lo), np.array(self._hi)

    @property
    def is_leaf(self) -> bool:
        """Check if this is a leaf cell."""
        return len(self.children) == 0

    @property
    def num_particles(self) -> int:
        """Return the number of particles in this cell."""
        if self.is_leaf:
            return len(self.indices)
        return sum(child.num_particles for child in self.children)

    def contains(self, point: np.ndarray) -> bool:
        """Check if a point is inside this cell."""
        min_bound, max_bound = self.bounds
        return bool(np.all((point >= min_bound) & (point <= max_bound)))

    def squared_distance_to_point(self, x: float, y: float, z: float) -> float:
        """
        Squared distance from a point to the closest point of the cell.
        Returns 0 if the point is inside.
        """
        lo, hi = self._lo, self._hi
        d2 = 0.0
        for c, a, b in ((x, lo[0], hi[0]), (y, lo[1], hi[1]), (z, lo[2], hi[2])):
            if c < a:
                d2 += (a - c) * (a - c)
            elif c > b:
                d2 += (c - b) * (c - b)
        return d2

    def overlaps_sphere(self, x: float, y: float, z: float, radius: float) -> bool:
        """
        Check whether any point strictly within radius of (x, y, z) can lie
        in this cell.
        """
        return self.squared_distance_to_point(x, y, z) < radius * radius

    def squared_distance_to_cell(self, other: 'Cell') -> float:
        """Squared gap between two cells. Returns 0 if they touch or overlap."""
        d2 = 0.0
        for a_lo, a_hi, b_lo, b_hi in zip(self._lo, self._hi, other._lo, other._hi):
            gap = max(b_lo - a_hi, a_lo - b_hi, 0.0)
            d2 += gap * gap
        return d2

    def octant_of(self, positions: np.ndarray) -> np.ndarray:
        """
        Octant index of each position relative to the cell center.

        Coordinates equal to the center go to the upper octant, so every
        position maps to exactly one child.
        """
        upper = positions >= self.center
        return (upper[:, 0].astype(np.int64)
                | (upper[:, 1].astype(np.int64) << 1)
                | (upper[:, 2].astype(np.int64) << 2))

    def subdivide(self) -> List['Cell']:
        """
        Subdivide this cell into 8 octants.

        Returns:
            List of newly created child cells
        """
        half_size = self.size / 2.0
        quarter_size = half_size / 2.0

        self.children = []
        for i, offset in enumerate(OCTANT_OFFSETS):
            child = Cell(
                center=self.center + quarter_size * offset,
                size=half_size,
                level=self.level + 1,
                index=i,
                parent=self,
                cell_type=CellType.LEAF
            )
            self.children.append(child)

        if self.cell_type is not CellType.ROOT:
            self.cell_type = CellType.INTERNAL
        return self.children

    def __repr__(self) -> str:
        type_str = self.cell_type.value
        return (f"Cell({type_str}, level={self.level}, idx={self.index}, "
                f"center={self.center}, size={self.size:.3f}, n={self.num_particles})")
