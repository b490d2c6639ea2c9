"""
Variable definitions for multi-distribution correlated generation.

Each ``VariableDef`` describes one new column produced by
``add_cor_flex``: its distribution, a formula for the mean (on the link
scale), and the variance or dispersion for two-parameter families.
"""

from dataclasses import dataclass
from typing import Any, List, Sequence, Union

import pandas as pd

from ..errors import InvalidParameter, UnsupportedDistribution
from ..stats.marginals import normalize_distribution
from ..utils.formulas import VALID_LINKS

__all__ = ["VariableDef", "normalize_definitions", "FLEX_DISTRIBUTIONS"]

# Distributions available to add_cor_flex
FLEX_DISTRIBUTIONS = ("normal", "gamma", "binary", "poisson", "negBinomial")


@dataclass
class VariableDef:
    """Definition of one generated variable.

    Attributes:
        varname: Name of the new column.
        formula: Mean on the link scale; a number, a column name, or an
            expression over existing columns.
        variance: Variance (normal) or dispersion (gamma, negBinomial);
            ignored for binary and poisson.
        dist: Distribution name.
        link: ``"identity"``, ``"log"`` or ``"logit"``.
    """

    varname: str
    formula: Any
    variance: float = 0.0
    dist: str = "normal"
    link: str = "identity"

    def __post_init__(self):
        if not isinstance(self.varname, str) or not self.varname.strip():
            raise InvalidParameter(f"varname must be a non-empty string, got {self.varname!r}")
        self.dist = normalize_distribution(self.dist)
        if self.dist not in FLEX_DISTRIBUTIONS:
            raise UnsupportedDistribution(
                f"Only implemented for the following distributions: {', '.join(FLEX_DISTRIBUTIONS)}; got {self.dist}"
            )
        if self.link not in VALID_LINKS:
            raise InvalidParameter(f"Unknown link '{self.link}' for {self.varname}. Valid options: {', '.join(VALID_LINKS)}")

    @property
    def needs_variance(self) -> bool:
        return self.dist in ("normal", "gamma", "negBinomial")


def normalize_definitions(defs: Union[pd.DataFrame, Sequence[Any]]) -> List[VariableDef]:
    """Convert a definitions table or list into ``VariableDef`` objects.

    Accepts a DataFrame with columns ``varname``, ``formula`` and optionally
    ``variance``, ``dist``, ``link``; a list of dicts with those keys; or a
    list of ``VariableDef``.
    """
    if isinstance(defs, pd.DataFrame):
        records = defs.to_dict(orient="records")
    else:
        records = list(defs)

    if not records:
        raise InvalidParameter("At least one variable definition is required")

    definitions = []
    for record in records:
        if isinstance(record, VariableDef):
            definitions.append(record)
        elif isinstance(record, dict):
            fields = {key: record[key] for key in ("varname", "formula", "variance", "dist", "link") if key in record}
            definitions.append(VariableDef(**fields))
        else:
            raise InvalidParameter(f"Variable definitions must be dicts or VariableDef, got {type(record).__name__}")

    names = [d.varname for d in definitions]
    if len(set(names)) != len(names):
        raise InvalidParameter(f"Variable names must be unique, got {names}")
    return definitions
