"""
Formula evaluation for covariate-dependent parameters.

The generator only needs a narrow capability: given a formula, a table of
covariates and a link name, return one numeric parameter per row. Any object
implementing ``FormulaEvaluator`` can be supplied; ``PandasFormulaEvaluator``
is the default and delegates expression parsing to ``DataFrame.eval``.
"""

from typing import Any, Protocol, Union, runtime_checkable

import numpy as np
import pandas as pd
from scipy.special import expit

from ..errors import InvalidParameter

__all__ = ["FormulaEvaluator", "PandasFormulaEvaluator", "apply_inverse_link", "VALID_LINKS"]

VALID_LINKS = ("identity", "log", "logit")


def apply_inverse_link(values: np.ndarray, link: str) -> np.ndarray:
    """Map a linear predictor to the parameter scale.

    ``identity`` returns values unchanged, ``log`` exponentiates, ``logit``
    applies the logistic function.
    """
    if link == "identity":
        return values
    if link == "log":
        return np.exp(values)
    if link == "logit":
        return expit(values)
    raise InvalidParameter(f"Unknown link: {link!r}. Valid options: {', '.join(VALID_LINKS)}")


@runtime_checkable
class FormulaEvaluator(Protocol):
    """Protocol for formula evaluation collaborators."""

    def evaluate(self, formula: Any, data: pd.DataFrame, link: str = "identity") -> np.ndarray:
        """Return one parameter value per row of *data*."""
        ...


class PandasFormulaEvaluator:
    """Evaluates constants, column names and ``DataFrame.eval`` expressions.

    Example:
        >>> evaluator = PandasFormulaEvaluator()
        >>> evaluator.evaluate("-1 + 0.5 * x", df, link="logit")
    """

    def evaluate(self, formula: Union[str, float, int], data: pd.DataFrame, link: str = "identity") -> np.ndarray:
        n = len(data)

        if isinstance(formula, (int, float, np.integer, np.floating)) and not isinstance(formula, bool):
            linear = np.full(n, float(formula))
        elif isinstance(formula, str):
            text = formula.strip()
            if not text:
                raise InvalidParameter("Formula cannot be empty")
            if text in data.columns:
                linear = data[text].to_numpy(dtype=np.float64)
            else:
                try:
                    result = data.eval(text, engine="python")
                except Exception as exc:
                    raise InvalidParameter(f"Cannot evaluate formula '{formula}': {exc}") from exc
                linear = np.broadcast_to(np.asarray(result, dtype=np.float64), (n,)).copy()
        else:
            raise InvalidParameter(f"Formula must be a string or a number, got {type(formula).__name__}")

        return apply_inverse_link(linear, link)
