"""
Surface-Constrained Particle Growth

Tiles the zero level-set of an implicit scalar field with an approximately
uniform particle population.

This package includes:
- Seeded simplex-noise scalar fields and finite-difference gradients
- Newton-Raphson and gradient-descent projection onto the level-set
- Adaptive octree for radius neighbor queries
- Tangent-plane inverse-square repulsion with a global speed limit
- Growth controller inserting particles where the surface is sparse
- Cooperative frame driver for continuous visualization
"""

from surfgrow.core import (
    SurfaceGrowth,
    GrowthConfig,
    GrowthPhase,
    SimulationState,
    StepStats,
    SurfaceProjector,
    ProjectorConfig,
    RepulsionModel,
    Tree,
    TreeConfig,
    Cell,
    CellType,
    numerical_gradient,
    SurfaceGrowthError,
    DegenerateSeedError,
    NonConvergenceError,
    DegenerateVectorError,
    ShapeMismatchError,
)
from surfgrow.fields import (
    ScalarField,
    SimplexNoiseField,
    SphereField,
    FunctionField,
    SquaredField,
    create_field,
)
from surfgrow.driver import FrameDriver

__version__ = '0.1.0'

__all__ = [
    # Core classes
    'SurfaceGrowth',
    'GrowthConfig',
    'GrowthPhase',
    'SimulationState',
    'StepStats',
    'SurfaceProjector',
    'ProjectorConfig',
    'RepulsionModel',
    'Tree',
    'TreeConfig',
    'Cell',
    'CellType',
    'numerical_gradient',
    'FrameDriver',
    # Errors
    'SurfaceGrowthError',
    'DegenerateSeedError',
    'NonConvergenceError',
    'DegenerateVectorError',
    'ShapeMismatchError',
    # Fields
    'ScalarField',
    'SimplexNoiseField',
    'SphereField',
    'FunctionField',
    'SquaredField',
    'create_field',
]
