"""
Simplex Noise Module

Vectorized 3D simplex noise with a seeded permutation table.

noise(p) lies in roughly [-1, 1], is smooth, and is exactly 0 at every
lattice vertex (in particular at the origin).
"""

import numpy as np


F3 = 1.0 / 3.0
G3 = 1.0 / 6.0

GRAD3 = np.array([
    [1, 1, 0], [-1, 1, 0], [1, -1, 0], [-1, -1, 0],
    [1, 0, 1], [-1, 0, 1], [1, 0, -1], [-1, 0, -1],
    [0, 1, 1], [0, -1, 1], [0, 1, -1], [0, -1, -1],
], dtype=np.float64)


class SimplexNoise3D:
    """
    3D simplex noise.

    The permutation table is drawn once from numpy's default_rng(seed), so a
    given seed always produces the same noise function.

    Attributes:
        seed: Seed used to build the permutation table
        perm: Doubled permutation table (512 entries)
    """

    def __init__(self, seed: int = 0):
        self.seed = seed
        rng = np.random.default_rng(seed)
        table = rng.permutation(256).astype(np.int64)
        self.perm = np.concatenate([table, table])
        self.perm_mod12 = self.perm % 12

    def _corner(self, x: np.ndarray, y: np.ndarray, z: np.ndarray,
                gi: np.ndarray) -> np.ndarray:
        """Contribution of one simplex corner at offset (x, y, z)."""
        t = 0.6 - x * x - y * y - z * z
        g = GRAD3[gi]
        contribution = t ** 4 * (g[:, 0] * x + g[:, 1] * y + g[:, 2] * z)
        return np.where(t < 0.0, 0.0, contribution)

    def __call__(self, points: np.ndarray) -> np.ndarray:
        """
        Evaluate noise at an (n, 3) array of points.

        Returns:
            Array of shape (n,)
        """
        points = np.asarray(points, dtype=np.float64)
        x, y, z = points[:, 0], points[:, 1], points[:, 2]

        # Skew to find the simplex cell
        s = (x + y + z) * F3
        i = np.floor(x + s).astype(np.int64)
        j = np.floor(y + s).astype(np.int64)
        k = np.floor(z + s).astype(np.int64)
        t = (i + j + k) * G3
        x0 = x - (i - t)
        y0 = y - (j - t)
        z0 = z - (k - t)

        # Rank the offsets to pick which of the six tetrahedra we are in
        xy = x0 >= y0
        yz = y0 >= z0
        xz = x0 >= z0
        c1 = xy & yz            # X Y Z order
        c2 = xy & ~yz & xz      # X Z Y
        c3 = xy & ~yz & ~xz     # Z X Y
        c4 = ~xy & ~yz          # Z Y X
        c5 = ~xy & yz & ~xz     # Y Z X
        c6 = ~xy & yz & xz      # Y X Z

        i1 = (c1 | c2).astype(np.int64)
        j1 = (c5 | c6).astype(np.int64)
        k1 = (c3 | c4).astype(np.int64)
        i2 = (c1 | c2 | c3 | c6).astype(np.int64)
        j2 = (c1 | c4 | c5 | c6).astype(np.int64)
        k2 = (c2 | c3 | c4 | c5).astype(np.int64)

        x1 = x0 - i1 + G3
        y1 = y0 - j1 + G3
        z1 = z0 - k1 + G3
        x2 = x0 - i2 + 2.0 * G3
        y2 = y0 - j2 + 2.0 * G3
        z2 = z0 - k2 + 2.0 * G3
        x3 = x0 - 1.0 + 3.0 * G3
        y3 = y0 - 1.0 + 3.0 * G3
        z3 = z0 - 1.0 + 3.0 * G3

        ii = i & 255
        jj = j & 255
        kk = k & 255
        perm = self.perm
        gi0 = self.perm_mod12[ii + perm[jj + perm[kk]]]
        gi1 = self.perm_mod12[ii + i1 + perm[jj + j1 + perm[kk + k1]]]
        gi2 = self.perm_mod12[ii + i2 + perm[jj + j2 + perm[kk + k2]]]
        gi3 = self.perm_mod12[ii + 1 + perm[jj + 1 + perm[kk + 1]]]

        n = (self._corner(x0, y0, z0, gi0) +
             self._corner(x1, y1, z1, gi1) +
             self._corner(x2, y2, z2, gi2) +
             self._corner(x3, y3, z3, gi3))
        return 32.0 * n

    def __repr__(self) -> str:
        return f"SimplexNoise3D(seed={self.seed})"
