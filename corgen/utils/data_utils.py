"""
Input normalisation for CorGen.

Converts the supported table formats (pandas DataFrame, dict of columns)
into a ``pandas.DataFrame`` the generator can work on.
"""

from typing import Any

import numpy as np
import pandas as pd

__all__ = ["normalize_table"]


def normalize_table(data: Any) -> pd.DataFrame:
    """
    Convert user-supplied data into a DataFrame.

    Accepted inputs:
        - pandas DataFrame: used as-is (never modified in place)
        - dict of {name: array}: keys become column names

    Args:
        data: Table in any supported format.

    Returns:
        A DataFrame.

    Raises:
        TypeError: If *data* is an unsupported type.
        ValueError: If dict columns have different lengths.
    """
    # --- pandas DataFrame ---------------------------------------------------
    if isinstance(data, pd.DataFrame):
        return data

    # --- dict ---------------------------------------------------------------
    if isinstance(data, dict):
        lengths = {name: np.size(values) for name, values in data.items()}
        if len(set(lengths.values())) > 1:
            raise ValueError(f"All columns must have the same length, got {lengths}")
        return pd.DataFrame({name: np.asarray(values) for name, values in data.items()})

    # --- unsupported --------------------------------------------------------
    raise TypeError("data must be a pandas DataFrame or a dict of columns")
