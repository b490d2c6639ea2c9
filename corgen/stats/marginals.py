"""
Marginal distribution mapping for CorGen.

Transforms copula uniforms into target marginals with per-row parameters via
``scipy.stats`` quantile functions. Each distribution is registered in
``DISTRIBUTIONS`` with its parameter count and quantile function; gamma and
negative binomial first convert (mean, dispersion) to natural parameters.

Parameterisation:

=============  ===========  ==========  =========================================
distribution   param1       param2      transform
=============  ===========  ==========  =========================================
normal         mean         variance    ``mean + sqrt(variance) * norm.ppf(u)``
poisson        mean         --          ``poisson.ppf(u, mean)``
binary         probability  --          ``bernoulli.ppf(u, p)``
gamma          mean         dispersion  variance = d * mean**2
negBinomial    mean         dispersion  variance = mean + d * mean**2
uniform        minimum      maximum     ``min + (max - min) * u``
=============  ===========  ==========  =========================================

Uniforms of exactly 0 or 1 follow scipy's ppf boundary conventions.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import numpy as np
from scipy import stats

from ..errors import InvalidParameter, ParameterCountMismatch, UnsupportedDistribution

__all__ = [
    "DISTRIBUTIONS",
    "MarginalMapper",
    "gamma_shape_rate",
    "negbinom_size_prob",
    "normalize_distribution",
]


def gamma_shape_rate(mean, dispersion) -> Tuple[np.ndarray, np.ndarray]:
    """Convert gamma mean and dispersion to (shape, rate).

    With variance ``dispersion * mean**2``: ``shape = 1 / dispersion`` and
    ``rate = 1 / (dispersion * mean)``.

    Raises:
        InvalidParameter: If any mean or dispersion is not positive.
    """
    mean = np.asarray(mean, dtype=np.float64)
    dispersion = np.asarray(dispersion, dtype=np.float64)
    if np.any(~(mean > 0)):
        raise InvalidParameter("Gamma mean must be positive")
    if np.any(~(dispersion > 0)):
        raise InvalidParameter("Gamma dispersion must be positive")
    shape = 1.0 / dispersion
    rate = 1.0 / (dispersion * mean)
    return shape, rate


def negbinom_size_prob(mean, dispersion) -> Tuple[np.ndarray, np.ndarray]:
    """Convert negative binomial mean and dispersion to (size, prob).

    With variance ``mean + dispersion * mean**2``: ``size = 1 / dispersion``
    and ``prob = size / (size + mean) = 1 / (1 + dispersion * mean)``.

    Raises:
        InvalidParameter: If any mean is negative or any dispersion is not
            positive (which would imply a non-positive size).
    """
    mean = np.asarray(mean, dtype=np.float64)
    dispersion = np.asarray(dispersion, dtype=np.float64)
    if np.any(~(mean >= 0)):
        raise InvalidParameter("Negative binomial mean must be non-negative")
    if np.any(~(dispersion > 0)):
        raise InvalidParameter("Negative binomial dispersion must be positive")
    size = 1.0 / dispersion
    prob = 1.0 / (1.0 + dispersion * mean)
    return size, prob


def _check_normal(mean, variance):
    if np.any(~(np.asarray(variance, dtype=np.float64) >= 0)):
        raise InvalidParameter("Normal variance must be non-negative")


def _check_poisson(mean, _unused=None):
    if np.any(~(np.asarray(mean, dtype=np.float64) >= 0)):
        raise InvalidParameter("Poisson mean must be non-negative")


def _check_binary(prob, _unused=None):
    prob = np.asarray(prob, dtype=np.float64)
    if np.any(~((prob >= 0) & (prob <= 1))):
        raise InvalidParameter("Binary probability must be in [0, 1]")


def _check_uniform(low, high):
    if np.any(~(np.asarray(high, dtype=np.float64) >= np.asarray(low, dtype=np.float64))):
        raise InvalidParameter("Uniform maximum must not be below minimum")


def _normal_ppf(u, mean, variance):
    # Zero variance yields the mean itself
    return np.asarray(mean, dtype=np.float64) + np.sqrt(np.asarray(variance, dtype=np.float64)) * stats.norm.ppf(u)


def _poisson_ppf(u, mean, _unused=None):
    return stats.poisson.ppf(u, mean)


def _binary_ppf(u, prob, _unused=None):
    return stats.bernoulli.ppf(u, prob)


def _gamma_ppf(u, mean, dispersion):
    shape, rate = gamma_shape_rate(mean, dispersion)
    return stats.gamma.ppf(u, shape, scale=1.0 / rate)


def _negbinom_ppf(u, mean, dispersion):
    size, prob = negbinom_size_prob(mean, dispersion)
    return stats.nbinom.ppf(u, size, prob)


def _uniform_ppf(u, low, high):
    # Equal bounds yield the bound itself
    low = np.asarray(low, dtype=np.float64)
    return low + (np.asarray(high, dtype=np.float64) - low) * u


@dataclass(frozen=True)
class _DistributionRule:
    """Parameter contract and quantile transform for one distribution."""

    n_params: int
    check: Callable
    quantile: Callable
    discrete: bool


DISTRIBUTIONS: Dict[str, _DistributionRule] = {
    "normal": _DistributionRule(2, _check_normal, _normal_ppf, discrete=False),
    "poisson": _DistributionRule(1, _check_poisson, _poisson_ppf, discrete=True),
    "binary": _DistributionRule(1, _check_binary, _binary_ppf, discrete=True),
    "gamma": _DistributionRule(2, gamma_shape_rate, _gamma_ppf, discrete=False),
    "negBinomial": _DistributionRule(2, negbinom_size_prob, _negbinom_ppf, discrete=True),
    "uniform": _DistributionRule(2, _check_uniform, _uniform_ppf, discrete=False),
}

_ALIASES = {
    "normal": "normal",
    "gaussian": "normal",
    "poisson": "poisson",
    "binary": "binary",
    "bernoulli": "binary",
    "gamma": "gamma",
    "negbinomial": "negBinomial",
    "negative_binomial": "negBinomial",
    "nb": "negBinomial",
    "uniform": "uniform",
}


def normalize_distribution(dist: str) -> str:
    """Return the canonical distribution name.

    Raises:
        UnsupportedDistribution: If *dist* is not recognised.
    """
    if isinstance(dist, str):
        key = dist.strip().lower().replace("-", "_").replace(" ", "_")
        if key in _ALIASES:
            return _ALIASES[key]
    raise UnsupportedDistribution(f"Unknown distribution: {dist!r}. Valid options: {', '.join(DISTRIBUTIONS)}")


class MarginalMapper:
    """Maps copula uniforms to target marginals with per-row parameters."""

    @staticmethod
    def check_parameter_count(dist: str, n_params: int) -> str:
        """Validate the number of parameters for *dist*; returns the canonical name.

        Raises:
            UnsupportedDistribution: Unknown distribution.
            ParameterCountMismatch: Wrong number of parameters.
        """
        name = normalize_distribution(dist)
        expected = DISTRIBUTIONS[name].n_params
        if n_params > expected:
            raise ParameterCountMismatch(f"Too many parameters ({n_params}) for {name}; expected {expected}")
        if n_params < expected:
            raise ParameterCountMismatch(f"Too few parameters ({n_params}) for {name}; expected {expected}")
        return name

    def validate_parameters(self, dist: str, param1, param2: Optional[object] = None) -> str:
        """Check parameter values for *dist* without drawing anything.

        Returns:
            The canonical distribution name.

        Raises:
            ParameterCountMismatch: Wrong number of parameters.
            InvalidParameter: Out-of-range parameter values.
        """
        name = self.check_parameter_count(dist, 1 if param2 is None else 2)
        DISTRIBUTIONS[name].check(param1, param2)
        return name

    def transform(self, u, dist: str, param1, param2: Optional[object] = None) -> np.ndarray:
        """Quantile-transform uniforms *u* into *dist*.

        Args:
            u: Uniform(0, 1) values (scalar or array).
            dist: Distribution name (see module docstring).
            param1: First parameter, scalar or per-row array.
            param2: Second parameter for two-parameter distributions.

        Returns:
            Array of generated values; integer-valued distributions keep
            float dtype when *u* hits a boundary (scipy returns -1 or inf).
        """
        name = self.validate_parameters(dist, param1, param2)
        u = np.asarray(u, dtype=np.float64)
        values = DISTRIBUTIONS[name].quantile(u, param1, param2)
        values = np.asarray(values, dtype=np.float64)
        if DISTRIBUTIONS[name].discrete and np.all(np.isfinite(values)):
            return values.astype(np.int64)
        return values
