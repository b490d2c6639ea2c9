"""
Correlated binary data via the Emrich–Piedmonte algorithm.

For target marginal probabilities ``p`` and a target (Pearson) correlation
matrix between the binary variables:

1. Each pairwise correlation is turned into the joint probability
   ``P(X_i = 1, X_j = 1) = rho_ij * sqrt(p_i q_i p_j q_j) + p_i p_j``.
   It must lie inside the Fréchet bounds ``[max(0, p_i + p_j - 1), min(p_i, p_j)]``.
2. A latent normal correlation ``r_ij`` is found such that the bivariate
   normal orthant probability ``Phi2(Phi^-1(p_i), Phi^-1(p_j); r_ij)`` equals
   that joint probability.
3. Latent normals with correlation matrix ``R = [r_ij]`` are drawn and
   dichotomised at ``Phi^-1(p)``. This draws from the 2^n-cell joint table of
   orthant probabilities without enumerating it.

Reference:
    Emrich LJ, Piedmonte MR. A Method for Generating High-Dimensional
    Multivariate Binary Variates. The American Statistician 1991;45:302-4.
"""

from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.integrate import quad
from scipy.optimize import brentq
from scipy.stats import norm

from ..core.matrices import CorrelationMatrixSet, UniformMatrix
from ..errors import DimensionMismatch, InfeasibleCorrelation, InvalidParameter
from ..utils.validators import MATRIX_TOLERANCE, _validate_probabilities
from .copula import _correlate_blocks, _group_starts, _matrix_sqrt

__all__ = ["EmrichPiedmonteSampler", "joint_probability", "correlation_bounds"]

# Slack on the Fréchet bounds before a target is declared infeasible
FEASIBILITY_TOLERANCE = 1e-10


def joint_probability(p1: float, p2: float, rho: float) -> float:
    """Probability that both Bernoulli variables equal 1 for correlation *rho*."""
    return rho * np.sqrt(p1 * (1 - p1) * p2 * (1 - p2)) + p1 * p2


def correlation_bounds(p1: float, p2: float) -> Tuple[float, float]:
    """Attainable Pearson correlation range between Bernoulli(p1) and Bernoulli(p2)."""
    scale = np.sqrt(p1 * (1 - p1) * p2 * (1 - p2))
    lower = (max(0.0, p1 + p2 - 1) - p1 * p2) / scale
    upper = (min(p1, p2) - p1 * p2) / scale
    return float(lower), float(upper)


def _bivariate_normal_cdf(h: float, k: float, r: float) -> float:
    """``P(Z1 <= h, Z2 <= k)`` for standard normals with correlation *r*.

    Integrates the bivariate density over the correlation parameter
    (Plackett's identity), which is deterministic and accurate for |r| < 1.
    """
    if r >= 1.0:
        return float(norm.cdf(min(h, k)))
    if r <= -1.0:
        return float(max(0.0, norm.cdf(h) + norm.cdf(k) - 1.0))

    def density(t):
        s = 1.0 - t * t
        return np.exp(-(h * h - 2.0 * t * h * k + k * k) / (2.0 * s)) / (2.0 * np.pi * np.sqrt(s))

    integral, _ = quad(density, 0.0, r, epsabs=1e-13, epsrel=1e-11, limit=200)
    return float(norm.cdf(h) * norm.cdf(k) + integral)


class EmrichPiedmonteSampler:
    """Generates correlated binary vectors matching marginals and correlations.

    Latent correlation matrices are cached per (target matrix, probability
    vector), so groups sharing both are solved once.

    Args:
        rng: Random generator; all draws consume this single stream.
        tolerance: Eigenvalue tolerance for the latent matrix.
    """

    def __init__(self, rng: np.random.Generator, tolerance: float = MATRIX_TOLERANCE):
        self.rng = rng
        self.tolerance = tolerance
        self._latent_cache: Dict[Tuple[bytes, bytes], np.ndarray] = {}

    def latent_correlation(self, probs: Sequence[float], correlation: np.ndarray) -> np.ndarray:
        """Solve for the latent normal correlation matrix.

        Args:
            probs: Marginal success probabilities, each in (0, 1).
            correlation: Target correlation matrix between the binary
                variables (dimension ``len(probs)``).

        Returns:
            Latent correlation matrix (positive semi-definite).

        Raises:
            InvalidParameter: If a probability is outside (0, 1).
            DimensionMismatch: If matrix and probability lengths differ.
            InfeasibleCorrelation: If a pairwise target is outside the
                attainable range, or the latent matrix is not PSD.
        """
        probs = np.asarray(probs, dtype=np.float64)
        correlation = np.asarray(correlation, dtype=np.float64)
        _validate_probabilities(probs).raise_if_invalid(InvalidParameter)
        n = len(probs)
        if correlation.shape != (n, n):
            raise DimensionMismatch(f"Correlation matrix shape {correlation.shape} does not match {n} probabilities")

        key = (correlation.tobytes(), probs.tobytes())
        if key in self._latent_cache:
            return self._latent_cache[key]

        thresholds = norm.ppf(probs)
        latent = np.eye(n)
        for i in range(n - 1):
            for j in range(i + 1, n):
                latent[i, j] = latent[j, i] = self._solve_pair(probs[i], probs[j], correlation[i, j], thresholds[i], thresholds[j])

        if n > 1:
            smallest = np.linalg.eigvalsh(latent).min()
            if smallest < -self.tolerance:
                raise InfeasibleCorrelation(
                    f"Implied latent correlation matrix is not positive semi-definite (smallest eigenvalue {smallest:.3g})"
                )

        self._latent_cache[key] = latent
        return latent

    @staticmethod
    def _solve_pair(p1: float, p2: float, rho: float, h: float, k: float) -> float:
        """Latent normal correlation reproducing the pairwise joint probability."""
        target = joint_probability(p1, p2, rho)
        lower = max(0.0, p1 + p2 - 1)
        upper = min(p1, p2)

        if target < lower - FEASIBILITY_TOLERANCE or target > upper + FEASIBILITY_TOLERANCE:
            lo, hi = correlation_bounds(p1, p2)
            raise InfeasibleCorrelation(
                f"Correlation {rho} is not attainable for probabilities ({p1}, {p2}); valid range is [{lo:.4f}, {hi:.4f}]"
            )
        if target >= upper - FEASIBILITY_TOLERANCE:
            return 1.0
        if target <= lower + FEASIBILITY_TOLERANCE:
            return -1.0

        return float(brentq(lambda r: _bivariate_normal_cdf(h, k, r) - target, -1.0, 1.0, xtol=1e-12))

    def sample(self, probs: Sequence[float], correlation: np.ndarray) -> np.ndarray:
        """Draw one binary vector with the given marginals and correlation."""
        probs = np.asarray(probs, dtype=np.float64)
        return self.sample_groups(probs, [len(probs)], UniformMatrix(correlation))

    def sample_many(self, n: int, probs: Sequence[float], correlation: np.ndarray) -> np.ndarray:
        """Draw *n* independent binary vectors; returns an ``(n, len(probs))`` array."""
        probs = np.asarray(probs, dtype=np.float64)
        k = len(probs)
        flat = self.sample_groups(np.tile(probs, n), [k] * n, UniformMatrix(correlation))
        return flat.reshape(n, k)

    def sample_groups(
        self,
        probs: Sequence[float],
        group_sizes: Sequence[int],
        correlation: CorrelationMatrixSet,
        group_ids: Optional[Sequence[Any]] = None,
    ) -> np.ndarray:
        """Draw one correlated binary vector per group.

        Args:
            probs: Flat per-row probabilities in group-major order.
            group_sizes: Size of each group, in traversal order.
            correlation: Matrix set resolving each group's target matrix.
            group_ids: Group identifiers; defaults to positions.

        Returns:
            Flat int array of 0/1 draws aligned with *probs*.
        """
        probs = np.asarray(probs, dtype=np.float64)
        group_sizes = np.asarray(group_sizes, dtype=np.int64)
        if group_ids is None:
            group_ids = list(range(len(group_sizes)))
        if probs.shape[0] != group_sizes.sum():
            raise DimensionMismatch(f"Got {probs.shape[0]} probabilities for {group_sizes.sum()} rows")

        starts = _group_starts(group_sizes)

        # Solve every latent matrix before touching the stream
        blocks: Dict[Hashable, Tuple[np.ndarray, List[int]]] = {}
        factors: Dict[Tuple[bytes, bytes], np.ndarray] = {}
        for block_key, (matrix, positions) in correlation.partition(group_ids, group_sizes).items():
            size = matrix.shape[0]
            for position in positions:
                group_probs = probs[starts[position] : starts[position] + size]
                latent_key = (matrix.tobytes(), group_probs.tobytes())
                if latent_key not in factors:
                    factors[latent_key] = _matrix_sqrt(self.latent_correlation(group_probs, matrix), self.tolerance)
                key = (block_key, latent_key)
                if key not in blocks:
                    blocks[key] = (factors[latent_key], [])
                blocks[key][1].append(position)

        z = self.rng.standard_normal(int(group_sizes.sum()))
        latent = _correlate_blocks(z, starts, blocks)
        return (latent <= norm.ppf(probs)).astype(np.int64)
