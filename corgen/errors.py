"""
Error types for CorGen.

Every error raised for bad input derives from ``CorGenError``, which is a
``ValueError`` so callers catching ``ValueError`` keep working.
"""


class CorGenError(ValueError):
    """Base class for all CorGen input errors."""

    pass


class InvalidCorrelationMatrix(CorGenError):
    """Matrix is not square, symmetric, unit-diagonal or positive semi-definite."""

    pass


class DimensionMismatch(CorGenError):
    """Matrix dimension does not match a group size, or list length does not match group count."""

    pass


class ParameterCountMismatch(CorGenError):
    """Wrong number of distribution parameters for the requested distribution."""

    pass


class InfeasibleCorrelation(CorGenError):
    """Requested binary correlation is not attainable for the given marginal probabilities."""

    pass


class UnsupportedMethod(CorGenError):
    """Generation method is unknown or not allowed for the distribution."""

    pass


class NameCountMismatch(CorGenError):
    """Number of supplied column names does not match the number of new columns."""

    pass


class UnsupportedDistribution(CorGenError):
    """Distribution keyword is not recognised."""

    pass


class InvalidParameter(CorGenError):
    """Argument is missing or outside its valid range."""

    pass


__all__ = [
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
