"""
Surface Growth Core Module

This module contains the core data structures and algorithms for growing
particles on an implicit surface.
"""

from .errors import (
    SurfaceGrowthError,
    DegenerateSeedError,
    NonConvergenceError,
    DegenerateVectorError,
    ShapeMismatchError,
)
from .vector import (
    as_point3,
    as_points,
    dot,
    cross,
    length,
    normalize,
    project_onto_plane,
    random_unit_vector,
    random_tangent_direction,
)
from .gradient import numerical_gradient
from .cell import Cell, CellType
from .tree import Tree, TreeConfig
from .projector import ProjectorConfig, SurfaceProjector, DescentResult
from .forces import RepulsionModel, RepulsionResult
from .growth import GrowthConfig, GrowthPhase, SimulationState, StepStats, SurfaceGrowth

__all__ = [
    'SurfaceGrowthError',
    'DegenerateSeedError',
    'NonConvergenceError',
    'DegenerateVectorError',
    'ShapeMismatchError',
    'as_point3',
    'as_points',
    'dot',
    'cross',
    'length',
    'normalize',
    'project_onto_plane',
    'random_unit_vector',
    'random_tangent_direction',
    'numerical_gradient',
    'Cell',
    'CellType',
    'Tree',
    'TreeConfig',
    'ProjectorConfig',
    'SurfaceProjector',
    'DescentResult',
    'RepulsionModel',
    'RepulsionResult',
    'GrowthConfig',
    'GrowthPhase',
    'SimulationState',
    'StepStats',
    'SurfaceGrowth',
]
