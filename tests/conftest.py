"""
Shared pytest fixtures for CorGen tests.
"""

import numpy as np
import pandas as pd
import pytest

from tests.config import SEED


@pytest.fixture
def rng():
    """Fresh seeded random generator."""
    return np.random.default_rng(SEED)


@pytest.fixture
def wide_data():
    """One row per id with a covariate and a rate column."""
    n = 200
    return pd.DataFrame(
        {
            "id": np.arange(1, n + 1),
            "x": np.linspace(-1, 1, n),
            "lam": np.full(n, 4.0),
        }
    )


@pytest.fixture
def long_data():
    """Ids 1..60 with 2 to 5 rows each, shuffled so ids are not contiguous."""
    sizes = np.tile([2, 3, 4, 5], 15)
    ids = np.repeat(np.arange(1, len(sizes) + 1), sizes)
    frame = pd.DataFrame(
        {
            "id": ids,
            "visit": np.concatenate([np.arange(size) for size in sizes]),
            "mu": 3.0,
        }
    )
    order = np.random.default_rng(7).permutation(len(frame))
    return frame.iloc[order].reset_index(drop=True)
