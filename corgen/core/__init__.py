"""Core components for CorGen.

Re-exports the building blocks shared by every generator:

- ``CorrelationMatrixBuilder``, ``CorrelationMatrixSet`` and its variants,
  ``gen_cor_mat``: correlation matrices per group.
- ``ShapeAdapter``, ``detect_shape``: wide/long expansion and reassembly.
- ``VariableDef``, ``normalize_definitions``: multi-distribution definitions.
"""

from .matrices import (
    CorrelationMatrixBuilder,
    CorrelationMatrixSet,
    PerGroupMatrices,
    PerSizeMatrices,
    UniformMatrix,
    build_correlation_matrix,
    gen_cor_mat,
)
from .shapes import ShapeAdapter, detect_shape
from .definitions import VariableDef, normalize_definitions

__all__ = [
    # Matrices
    "CorrelationMatrixBuilder",
    "CorrelationMatrixSet",
    "UniformMatrix",
    "PerGroupMatrices",
    "PerSizeMatrices",
    "build_correlation_matrix",
    "gen_cor_mat",
    # Shapes
    "ShapeAdapter",
    "detect_shape",
    # Definitions
    "VariableDef",
    "normalize_definitions",
]
