"""
Correlation matrix construction for CorGen.

Builds correlation matrices from a structure keyword and a scalar coefficient
(independence, compound symmetry, AR(1)), validates explicit matrices, and
resolves per-group matrix sets for clustered data whose group sizes differ.
"""

from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import DimensionMismatch, InvalidCorrelationMatrix, InvalidParameter
from ..utils.validators import (
    MATRIX_TOLERANCE,
    _validate_correlation_matrix,
    _validate_numeric_parameter,
    _validate_rho,
    _validate_structure,
)

__all__ = [
    "CorrelationMatrixBuilder",
    "CorrelationMatrixSet",
    "UniformMatrix",
    "PerGroupMatrices",
    "PerSizeMatrices",
    "build_correlation_matrix",
    "gen_cor_mat",
]


def build_correlation_matrix(n: int, corstr: str, rho: float) -> np.ndarray:
    """Build an ``n x n`` correlation matrix with the given structure.

    Structures:

    - ``"ind"``: identity.
    - ``"cs"``: unit diagonal, every off-diagonal entry equal to *rho*.
      Positive semi-definite for ``rho`` in ``[-1/(n-1), 1]``.
    - ``"ar1"``: entry ``(i, j)`` equal to ``rho ** |i - j|``.
      Positive semi-definite for ``rho`` in ``(-1, 1)``.

    The feasible ranges above are advisory; the matrix is returned as the
    formula yields it.

    Args:
        n: Matrix dimension (>= 1).
        corstr: ``"ind"``, ``"cs"`` or ``"ar1"`` (aliases accepted).
        rho: Correlation coefficient in ``[-1, 1]``.

    Returns:
        ``(n, n)`` float64 array.

    Raises:
        InvalidParameter: If *n*, *corstr* or *rho* is invalid.
    """
    _validate_numeric_parameter(n, "nvars", expected_types=(int, np.integer), min_val=1).raise_if_invalid(InvalidParameter)
    structure, result = _validate_structure(corstr)
    result.raise_if_invalid(InvalidParameter)

    n = int(n)
    if structure == "ind":
        return np.eye(n)

    if rho is None:
        raise InvalidParameter(f"rho must be provided for correlation structure '{structure}'")
    _validate_rho(rho).raise_if_invalid(InvalidParameter)
    rho = float(rho)

    if structure == "cs":
        matrix = np.full((n, n), rho, dtype=np.float64)
        np.fill_diagonal(matrix, 1.0)
        return matrix

    # ar1
    exponents = np.abs(np.arange(n)[:, None] - np.arange(n)[None, :])
    return np.power(rho, exponents).astype(np.float64)


class CorrelationMatrixSet:
    """Correlation matrices for a sequence of groups.

    Subclasses decide which matrix a group uses. Groups that share a matrix
    share a block key, so samplers can transform them in one batch.
    """

    def matrix_for(self, position: int, group_id: Any, size: int) -> np.ndarray:
        raise NotImplementedError

    def block_key(self, position: int, group_id: Any, size: int) -> Hashable:
        raise NotImplementedError

    def partition(self, group_ids: Sequence[Any], sizes: Sequence[int]) -> Dict[Hashable, Tuple[np.ndarray, List[int]]]:
        """Group positions by shared matrix.

        Returns:
            ``{block_key: (matrix, [group positions])}`` in first-seen order.
        """
        blocks: Dict[Hashable, Tuple[np.ndarray, List[int]]] = {}
        for position, (group_id, size) in enumerate(zip(group_ids, sizes)):
            key = self.block_key(position, group_id, int(size))
            if key not in blocks:
                blocks[key] = (self.matrix_for(position, group_id, int(size)), [])
            blocks[key][1].append(position)
        return blocks


class UniformMatrix(CorrelationMatrixSet):
    """One matrix applied to every group; all groups must have its dimension."""

    def __init__(self, matrix: np.ndarray):
        self.matrix = np.asarray(matrix, dtype=np.float64)

    @property
    def dim(self) -> int:
        return self.matrix.shape[0]

    def matrix_for(self, position, group_id, size):
        if size != self.dim:
            raise DimensionMismatch(f"Dimension of correlation matrix ({self.dim}) not equal to cluster size ({size}) for id {group_id!r}")
        return self.matrix

    def block_key(self, position, group_id, size):
        return None

    def __repr__(self):
        return f"UniformMatrix(dim={self.dim})"


class PerGroupMatrices(CorrelationMatrixSet):
    """Explicit matrix for each group, keyed by group id."""

    def __init__(self, matrices: Dict[Any, np.ndarray]):
        self.matrices = {key: np.asarray(value, dtype=np.float64) for key, value in matrices.items()}

    def matrix_for(self, position, group_id, size):
        try:
            matrix = self.matrices[group_id]
        except KeyError:
            raise DimensionMismatch(f"No correlation matrix supplied for id {group_id!r}") from None
        if matrix.shape[0] != size:
            raise DimensionMismatch(
                f"Dimensions of correlation matrix for id {group_id!r} ({matrix.shape[0]}) not equal to cluster size ({size})"
            )
        return matrix

    def block_key(self, position, group_id, size):
        return ("group", position)

    def __repr__(self):
        return f"PerGroupMatrices(n_groups={len(self.matrices)})"


class PerSizeMatrices(CorrelationMatrixSet):
    """Structural matrices built lazily, once per distinct group size."""

    def __init__(self, corstr: str, rho: Optional[float]):
        self.corstr = corstr
        self.rho = rho
        self._cache: Dict[int, np.ndarray] = {}

    def matrix_for(self, position, group_id, size):
        if size not in self._cache:
            self._cache[size] = build_correlation_matrix(size, self.corstr, self.rho)
        return self._cache[size]

    def block_key(self, position, group_id, size):
        return ("size", size)

    def __repr__(self):
        return f"PerSizeMatrices(corstr={self.corstr!r}, rho={self.rho}, cached_sizes={sorted(self._cache)})"


def _is_matrix_list(cor_matrix: Any) -> bool:
    """True when *cor_matrix* is a list/tuple of 2-D matrices rather than one nested-list matrix."""
    if isinstance(cor_matrix, np.ndarray):
        return cor_matrix.ndim == 3
    if isinstance(cor_matrix, (list, tuple)) and len(cor_matrix) > 0:
        return np.ndim(cor_matrix[0]) == 2
    return False


class CorrelationMatrixBuilder:
    """Builds and validates correlation matrices.

    Attributes:
        tolerance: Absolute tolerance for symmetry, unit-diagonal and
            eigenvalue checks (default ``1e-8``).
    """

    def __init__(self, tolerance: float = MATRIX_TOLERANCE):
        self.tolerance = tolerance

    def build(self, n: int, corstr: str, rho: Optional[float] = None) -> np.ndarray:
        """Build a structural correlation matrix (see ``build_correlation_matrix``)."""
        return build_correlation_matrix(n, corstr, rho)

    def validate(self, matrix: Any) -> np.ndarray:
        """Return *matrix* as a float64 array if it is a valid correlation matrix.

        Raises:
            InvalidCorrelationMatrix: If the matrix is not square, not
                symmetric, lacks a unit diagonal, or has an eigenvalue below
                ``-tolerance``.
        """
        _validate_correlation_matrix(matrix, self.tolerance).raise_if_invalid(InvalidCorrelationMatrix)
        return np.asarray(matrix, dtype=np.float64)

    def from_cors(self, cors: Sequence[float], n: int) -> np.ndarray:
        """Build an ``n x n`` matrix from its upper-triangle correlations (row-major)."""
        cors = np.asarray(cors, dtype=np.float64).ravel()
        expected = n * (n - 1) // 2
        if cors.size != expected:
            raise DimensionMismatch(f"Length of cors ({cors.size}) does not match nvars ({n}); expected {expected}")
        matrix = np.eye(n)
        upper = np.triu_indices(n, k=1)
        matrix[upper] = cors
        matrix[(upper[1], upper[0])] = cors
        return self.validate(matrix)

    def matrix_set(
        self,
        group_ids: Sequence[Any],
        sizes: Sequence[int],
        cor_matrix: Any = None,
        rho: Optional[float] = None,
        corstr: Optional[str] = None,
    ) -> CorrelationMatrixSet:
        """Resolve the caller's correlation arguments into a matrix set.

        An explicit *cor_matrix* takes precedence over *rho*/*corstr*. It may
        be a single matrix (every group must match its dimension), a list of
        matrices in ascending group-id order, or a dict keyed by group id.

        Raises:
            InvalidCorrelationMatrix: If an explicit matrix is invalid.
            DimensionMismatch: If matrix dimensions or list length disagree
                with the groups.
            InvalidParameter: If neither a matrix nor a structure is usable.
        """
        sizes = np.asarray(sizes, dtype=np.int64)

        if cor_matrix is not None:
            if isinstance(cor_matrix, dict):
                matrices = {key: self.validate(value) for key, value in cor_matrix.items()}
                missing = [gid for gid in group_ids if gid not in matrices]
                if missing:
                    raise DimensionMismatch(f"No correlation matrix supplied for ids: {', '.join(map(str, missing[:5]))}")
                matrix_set: CorrelationMatrixSet = PerGroupMatrices(matrices)
            elif _is_matrix_list(cor_matrix):
                if len(cor_matrix) != len(group_ids):
                    raise DimensionMismatch(
                        f"Number of correlation matrices ({len(cor_matrix)}) not equal to number of clusters ({len(group_ids)})"
                    )
                dims = np.array([np.shape(matrix)[0] for matrix in cor_matrix])
                if np.any(dims != sizes):
                    raise DimensionMismatch("Dimensions of correlation matrices in cor_matrix not equal to cluster sizes")
                matrix_set = PerGroupMatrices({gid: self.validate(matrix) for gid, matrix in zip(group_ids, cor_matrix)})
            else:
                matrix = self.validate(cor_matrix)
                if np.any(sizes != matrix.shape[0]):
                    raise DimensionMismatch(f"Dimensions of cor_matrix ({matrix.shape[0]}) not equal to cluster sizes")
                matrix_set = UniformMatrix(matrix)
            return matrix_set

        if corstr is None:
            raise InvalidParameter("Either both rho and corstr must be provided or cor_matrix must be provided")
        structure, result = _validate_structure(corstr)
        result.raise_if_invalid(InvalidParameter)
        if structure != "ind":
            if rho is None:
                raise InvalidParameter("Either both rho and corstr must be provided or cor_matrix must be provided")
            _validate_rho(rho).raise_if_invalid(InvalidParameter)

        if len(sizes) > 0 and np.all(sizes == sizes[0]):
            return UniformMatrix(self.build(int(sizes[0]), structure, rho))
        return PerSizeMatrices(structure, rho)


def gen_cor_mat(
    nvars: Union[int, Sequence[int]],
    cors: Optional[Sequence[float]] = None,
    rho: Optional[float] = None,
    corstr: str = "cs",
    nclusters: int = 1,
) -> Union[np.ndarray, List[np.ndarray]]:
    """Create one correlation matrix, or a list of them for several clusters.

    Args:
        nvars: Matrix dimension, or a sequence of dimensions (one per cluster).
        cors: Upper-triangle correlations (row-major). When given, *rho* and
            *corstr* are ignored and the same matrix is used for every
            cluster; requires a single *nvars*.
        rho: Correlation coefficient for *corstr*.
        corstr: ``"ind"``, ``"cs"`` or ``"ar1"``.
        nclusters: Number of matrices to return.

    Returns:
        A single ``ndarray`` when *nclusters* is 1, otherwise a list of
        *nclusters* matrices.

    Example:
        >>> gen_cor_mat(3, rho=0.5, corstr="ar1")
        >>> gen_cor_mat([2, 3, 4], rho=0.4, corstr="cs", nclusters=3)
    """
    _validate_numeric_parameter(nclusters, "nclusters", expected_types=(int, np.integer), min_val=1).raise_if_invalid(
        InvalidParameter
    )
    builder = CorrelationMatrixBuilder()

    if np.ndim(nvars) == 0:
        dims = [int(nvars)] * nclusters
    else:
        dims = [int(n) for n in nvars]
        if len(dims) != nclusters:
            raise DimensionMismatch(f"Length of nvars ({len(dims)}) not equal to nclusters ({nclusters})")

    if cors is not None:
        if len(set(dims)) != 1:
            raise InvalidParameter("cors can only be used with a single value of nvars")
        matrices = [builder.from_cors(cors, dims[0])] * nclusters
    else:
        structure, result = _validate_structure(corstr)
        result.raise_if_invalid(InvalidParameter)
        if rho is None and structure != "ind":
            raise InvalidParameter("Either cors or rho must be provided")
        matrices = [builder.build(n, corstr, rho) for n in dims]

    if nclusters == 1:
        return matrices[0]
    return [matrix.copy() for matrix in matrices]
