"""
Gaussian copula sampling for CorGen.

Draws correlated standard-normal vectors per group and maps them to
uniform(0, 1) margins with the standard-normal CDF.

Algorithm:

1. Draw all ``N = sum(group_sizes)`` i.i.d. standard normals at once, in
   group-major then within-group order.
2. Multiply each group's block by a square root of its correlation matrix
   (Cholesky, eigen-decomposition for singular PSD matrices). Groups that
   share a matrix are transformed in one batched product.
3. Apply ``scipy.stats.norm.cdf`` elementwise.

Because the stream is consumed before any batching, the mapping from
``(group, sequence)`` to random-stream position never depends on how groups
are batched.

Note:
    The copula preserves the target Pearson correlation in normal space only.
    After quantile transforms to non-normal margins the realised correlation
    differs systematically from the target.
"""

from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.stats import norm

from ..core.matrices import CorrelationMatrixSet
from ..errors import InvalidCorrelationMatrix
from ..utils.validators import MATRIX_TOLERANCE

__all__ = ["CopulaSampler"]

FLOAT_NEAR_ZERO = 1e-15


def _matrix_sqrt(corr_matrix: np.ndarray, tolerance: float = MATRIX_TOLERANCE) -> np.ndarray:
    """Compute a square root ``L`` with ``L @ L.T == corr_matrix``.

    Uses the Cholesky factor, falling back to the eigen-decomposition for
    positive semi-definite matrices that are singular (e.g. ``rho = 1``).

    Raises:
        InvalidCorrelationMatrix: If the matrix has an eigenvalue below
            ``-tolerance``.
    """
    try:
        return np.linalg.cholesky(corr_matrix)
    except np.linalg.LinAlgError:
        eigenvals, eigenvecs = np.linalg.eigh(corr_matrix)
        if eigenvals.min() < -tolerance:
            raise InvalidCorrelationMatrix(
                f"Correlation matrix must be positive semi-definite (smallest eigenvalue {eigenvals.min():.3g})"
            ) from None
        eigenvals = np.maximum(eigenvals, FLOAT_NEAR_ZERO)
        return eigenvecs @ np.diag(np.sqrt(eigenvals))


def _group_starts(group_sizes: np.ndarray) -> np.ndarray:
    """Row offset of each group in the flat group-major layout."""
    starts = np.zeros(len(group_sizes), dtype=np.int64)
    if len(group_sizes) > 1:
        starts[1:] = np.cumsum(group_sizes)[:-1]
    return starts


def _correlate_blocks(
    z: np.ndarray,
    starts: np.ndarray,
    blocks: Dict[Hashable, Tuple[np.ndarray, List[int]]],
) -> np.ndarray:
    """Apply each block's matrix square root to its groups' slices of *z*.

    Args:
        z: Flat i.i.d. standard normals in group-major order.
        starts: Row offset of each group.
        blocks: ``{key: (square_root, [group positions])}``; every group in
            a block has the square root's dimension.

    Returns:
        Flat correlated normals, same layout as *z*.
    """
    out = np.empty_like(z)
    for factor, positions in blocks.values():
        size = factor.shape[0]
        rows = starts[np.asarray(positions, dtype=np.int64)][:, None] + np.arange(size)
        out[rows] = z[rows] @ factor.T
    return out


class CopulaSampler:
    """Correlated uniform draws per group via a Gaussian copula.

    Args:
        rng: Random generator; all draws consume this single stream.
        tolerance: Eigenvalue tolerance for the matrix square root.
    """

    def __init__(self, rng: np.random.Generator, tolerance: float = MATRIX_TOLERANCE):
        self.rng = rng
        self.tolerance = tolerance

    def sample_normal(
        self,
        group_sizes: Sequence[int],
        correlation: CorrelationMatrixSet,
        group_ids: Optional[Sequence[Any]] = None,
    ) -> np.ndarray:
        """Draw correlated standard normals for every group.

        Args:
            group_sizes: Size of each group, in traversal order.
            correlation: Matrix set resolving each group's correlation matrix.
            group_ids: Group identifiers (needed by per-group matrix sets);
                defaults to positions.

        Returns:
            Flat array of length ``sum(group_sizes)`` in group-major order.
        """
        group_sizes = np.asarray(group_sizes, dtype=np.int64)
        if group_ids is None:
            group_ids = list(range(len(group_sizes)))

        # Resolve matrices before touching the stream
        partition = correlation.partition(group_ids, group_sizes)
        blocks = {key: (_matrix_sqrt(matrix, self.tolerance), positions) for key, (matrix, positions) in partition.items()}

        z = self.rng.standard_normal(int(group_sizes.sum()))
        return _correlate_blocks(z, _group_starts(group_sizes), blocks)

    def sample(
        self,
        group_sizes: Sequence[int],
        correlation: CorrelationMatrixSet,
        group_ids: Optional[Sequence[Any]] = None,
    ) -> np.ndarray:
        """Draw correlated uniform(0, 1) values for every group (flat, group-major)."""
        return norm.cdf(self.sample_normal(group_sizes, correlation, group_ids))

    def sample_groups(
        self,
        group_sizes: Sequence[int],
        correlation: CorrelationMatrixSet,
        group_ids: Optional[Sequence[Any]] = None,
    ) -> List[np.ndarray]:
        """Like ``sample`` but split into one uniform vector per group."""
        group_sizes = np.asarray(group_sizes, dtype=np.int64)
        flat = self.sample(group_sizes, correlation, group_ids)
        return np.split(flat, np.cumsum(group_sizes)[:-1])
