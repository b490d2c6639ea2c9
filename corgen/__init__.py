"""CorGen - correlated multivariate data generation.

Adds correlated columns to tables, or builds new tables, with normal,
Poisson, binary, gamma, negative binomial or uniform marginals joined by a
Gaussian copula. Correlated binary data can also be generated exactly with
the Emrich-Piedmonte method.

Example:
    >>> import pandas as pd
    >>> from corgen import CorrelatedDataGenerator
    >>>
    >>> gen = CorrelatedDataGenerator(seed=2137)
    >>> df = pd.DataFrame({"id": range(1, 101), "p": 0.3})
    >>> gen.add_cor_gen(df, nvars=4, rho=0.2, corstr="ar1",
    ...                 dist="binary", param1="p", method="ep")
"""

from importlib.metadata import version as _get_version

from .core.definitions import VariableDef
from .core.matrices import CorrelationMatrixBuilder, gen_cor_mat
from .errors import (
    CorGenError,
    DimensionMismatch,
    InfeasibleCorrelation,
    InvalidCorrelationMatrix,
    InvalidParameter,
    NameCountMismatch,
    ParameterCountMismatch,
    UnsupportedDistribution,
    UnsupportedMethod,
)
from .generator import (
    DEFAULT_GENERATOR_CONFIG,
    CorrelatedDataGenerator,
    add_cor_data,
    add_cor_flex,
    add_cor_gen,
    gen_cor_data,
    gen_cor_gen,
)

__version__ = _get_version("CorGen")

__all__ = [
    # Generation
    "CorrelatedDataGenerator",
    "DEFAULT_GENERATOR_CONFIG",
    "add_cor_gen",
    "add_cor_flex",
    "add_cor_data",
    "gen_cor_gen",
    "gen_cor_data",
    "VariableDef",
    # Correlation matrices
    "CorrelationMatrixBuilder",
    "gen_cor_mat",
    # Errors
    "CorGenError",
    "InvalidCorrelationMatrix",
    "DimensionMismatch",
    "ParameterCountMismatch",
    "InfeasibleCorrelation",
    "UnsupportedMethod",
    "NameCountMismatch",
    "UnsupportedDistribution",
    "InvalidParameter",
]
