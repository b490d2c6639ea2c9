"""
Validation utilities for CorGen.

This module provides validation functions for generator inputs, distribution
parameters, and correlation-matrix constraints. Each validator returns a
``_ValidationResult``; callers decide which error type to raise.
"""

import warnings
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Type, Union

import numpy as np

__all__ = []

# Tolerance for symmetry, unit-diagonal and eigenvalue checks
MATRIX_TOLERANCE = 1e-8

VALID_METHODS = ("copula", "ep")
VALID_STRUCTURES = ("ind", "cs", "ar1")

_STRUCTURE_ALIASES = {
    "ind": "ind",
    "independence": "ind",
    "cs": "cs",
    "compound_symmetry": "cs",
    "exchangeable": "cs",
    "ar1": "ar1",
    "ar(1)": "ar1",
    "autoregressive": "ar1",
}


@dataclass
class _ValidationResult:
    """Outcome of a validation check, carrying errors and warnings.

    Attributes:
        is_valid: ``True`` if no errors were found.
        errors: List of error messages (empty when valid).
        warnings: List of non-fatal warning messages.
    """

    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def raise_if_invalid(self, error_cls: Type[Exception] = ValueError):
        """Raise *error_cls* if the validation failed, otherwise emit any warnings."""
        if not self.is_valid:
            if len(self.errors) == 1:
                raise error_cls(self.errors[0])
            error_msg = "Validation failed:\n" + "\n".join(f"• {err}" for err in self.errors)
            raise error_cls(error_msg)
        for message in self.warnings:
            warnings.warn(message, UserWarning, stacklevel=3)


class _Validator:
    """Static helpers for type and range checks used by all validators."""

    @staticmethod
    def _check_type(value: Any, expected_types: tuple, name: str) -> Optional[str]:
        """Check if value has expected type."""
        if isinstance(value, bool) or not isinstance(value, expected_types):
            actual_type = type(value).__name__
            expected = expected_types[0].__name__ if len(expected_types) == 1 else f"one of {[t.__name__ for t in expected_types]}"
            return f"{name} must be {expected}, got {actual_type}"
        return None

    @staticmethod
    def _check_range(
        value: Union[int, float],
        min_val: Optional[float],
        max_val: Optional[float],
        name: str,
    ) -> Optional[str]:
        """Check if value is within range."""
        if min_val is not None and value < min_val:
            return f"{name} must be >= {min_val}, got {value}"
        if max_val is not None and value > max_val:
            return f"{name} must be <= {max_val}, got {value}"
        return None


_validator = _Validator()


def _validate_numeric_parameter(
    value: Any,
    name: str,
    expected_types: tuple = (int, float, np.integer, np.floating),
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
) -> _ValidationResult:
    """Generic validation for numeric parameters."""
    errors: List[str] = []

    type_error = _validator._check_type(value, expected_types, name)
    if type_error:
        errors.append(type_error)
        return _ValidationResult(False, errors, [])

    range_error = _validator._check_range(value, min_val, max_val, name)
    if range_error:
        errors.append(range_error)

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_rho(rho: Any) -> _ValidationResult:
    """Validate a scalar correlation coefficient (-1 <= rho <= 1)."""
    return _validate_numeric_parameter(rho, "rho", min_val=-1, max_val=1)


def _validate_structure(corstr: Any) -> Tuple[str, _ValidationResult]:
    """Validate a correlation structure keyword and return its canonical name."""
    if isinstance(corstr, str):
        key = corstr.strip().lower().replace("-", "_").replace(" ", "_")
        if key in _STRUCTURE_ALIASES:
            return _STRUCTURE_ALIASES[key], _ValidationResult(True, [], [])
    return "", _ValidationResult(
        False,
        [f"Unknown correlation structure: {corstr!r}. Valid options: {', '.join(VALID_STRUCTURES)}"],
        [],
    )


def _validate_correlation_matrix(
    corr_matrix: Optional[np.ndarray],
    tolerance: float = MATRIX_TOLERANCE,
) -> _ValidationResult:
    """Validate correlation matrix meets mathematical requirements."""
    errors = []

    if corr_matrix is None:
        errors.append("Correlation matrix is None")
        return _ValidationResult(False, errors, [])

    try:
        corr_matrix = np.asarray(corr_matrix, dtype=np.float64)
    except (TypeError, ValueError):
        errors.append("Correlation matrix must be numeric")
        return _ValidationResult(False, errors, [])

    # Shape check
    if corr_matrix.ndim != 2 or corr_matrix.shape[0] != corr_matrix.shape[1]:
        errors.append(f"Correlation matrix must be square, got shape {corr_matrix.shape}")
        return _ValidationResult(False, errors, [])

    if corr_matrix.shape[0] == 0:
        errors.append("Correlation matrix must have at least one row")
        return _ValidationResult(False, errors, [])

    if not np.all(np.isfinite(corr_matrix)):
        errors.append("Correlation matrix contains non-finite values")
        return _ValidationResult(False, errors, [])

    # Diagonal check
    if not np.allclose(np.diag(corr_matrix), 1.0, rtol=0.0, atol=tolerance):
        errors.append("Diagonal elements of correlation matrix must be 1")

    # Symmetry check
    if not np.allclose(corr_matrix, corr_matrix.T, rtol=0.0, atol=tolerance):
        errors.append("Correlation matrix must be symmetric")
        return _ValidationResult(False, errors, [])

    # Range check
    if np.any(np.abs(corr_matrix) > 1 + tolerance):
        errors.append("All correlations must be between -1 and 1")

    # Positive semi-definite check
    try:
        eigenvals = np.linalg.eigvalsh(corr_matrix)
        if np.any(eigenvals < -tolerance):
            errors.append(f"Correlation matrix must be positive semi-definite (smallest eigenvalue {eigenvals.min():.3g})")
    except np.linalg.LinAlgError:
        errors.append("Cannot compute eigenvalues of correlation matrix")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_method(method: Any, dist: str) -> _ValidationResult:
    """Validate the generation method and its compatibility with *dist*."""
    if method not in VALID_METHODS:
        return _ValidationResult(
            False,
            [f"Unknown method: {method!r}. Valid options: {', '.join(VALID_METHODS)}"],
            [],
        )
    if method == "ep" and dist != "binary":
        return _ValidationResult(False, [f"Method 'ep' applies only to binary data generation, not {dist}"], [])
    return _ValidationResult(True, [], [])


def _validate_columns(columns: Sequence[str], available: Sequence[Any]) -> _ValidationResult:
    """Check that every name in *columns* is present in *available*."""
    missing = [col for col in columns if col not in available]
    if missing:
        return _ValidationResult(
            False,
            [f"Variables not found in data: {', '.join(map(str, missing))}. Available: {', '.join(map(str, available))}"],
            [],
        )
    return _ValidationResult(True, [], [])


def _validate_new_names(
    names: Sequence[str],
    expected: int,
    wide: bool,
) -> _ValidationResult:
    """Validate the number of caller-supplied names for the generated columns."""
    errors: List[str] = []

    if len(names) != expected:
        if wide:
            errors.append(f"Number of names ({len(names)}) not equal to specified nvars ({expected})")
        else:
            errors.append(f"Long format can have only {expected} name. {len(names)} have been provided")
        return _ValidationResult(False, errors, [])

    return _ValidationResult(True, [], [])


def _validate_name_collisions(names: Sequence[str], existing: Sequence[Any]) -> _ValidationResult:
    """Reject generated column names that already exist in the table."""
    if len(set(names)) != len(names):
        return _ValidationResult(False, [f"Column names must be unique, got {list(names)}"], [])
    clashes = [name for name in names if name in existing]
    if clashes:
        return _ValidationResult(False, [f"Column names already in data: {', '.join(map(str, clashes))}"], [])
    return _ValidationResult(True, [], [])


def _validate_probabilities(probs: np.ndarray, name: str = "probability", strict: bool = True) -> _ValidationResult:
    """Validate probabilities.

    With ``strict`` every value must lie inside (0, 1). Otherwise the closed
    interval [0, 1] is accepted and values of exactly 0 or 1 only warn, since
    they give a constant column.
    """
    probs = np.asarray(probs, dtype=np.float64)
    if strict:
        bad = ~((probs > 0) & (probs < 1))
        bounds = "strictly between 0 and 1"
    else:
        bad = ~((probs >= 0) & (probs <= 1))
        bounds = "between 0 and 1"
    if np.any(bad):
        first = probs[bad][0]
        return _ValidationResult(False, [f"Each {name} must be {bounds}, got {first}"], [])

    warnings: List[str] = []
    if not strict and np.any((probs == 0) | (probs == 1)):
        warnings.append(f"Some {name} values are exactly 0 or 1; those draws will be constant")
    return _ValidationResult(True, [], warnings)
