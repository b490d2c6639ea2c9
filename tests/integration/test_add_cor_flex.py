"""
Integration tests for add_cor_flex.
"""

import numpy as np
import pandas as pd
import pytest

from tests.config import N_STANDARD, SEED


@pytest.fixture
def definitions():
    return pd.DataFrame(
        {
            "varname": ["score", "event", "visits", "cost", "claims"],
            "formula": ["1 + x", "-0.5 + x", "0.5", "1", "1"],
            "variance": [1.0, 0.0, 0.0, 0.5, 0.3],
            "dist": ["normal", "binary", "poisson", "gamma", "negBinomial"],
            "link": ["identity", "logit", "log", "log", "log"],
        }
    )


class TestAddCorFlex:
    """Mixed distributions for one subject."""

    def test_columns_and_types(self, wide_data, definitions):
        from corgen import CorrelatedDataGenerator

        result = CorrelatedDataGenerator(seed=SEED).add_cor_flex(wide_data, definitions, rho=0.3, corstr="cs")
        assert list(result.columns) == ["id", "x", "lam", "score", "event", "visits", "cost", "claims"]
        assert set(result["event"].unique()) <= {0, 1}
        assert (result["visits"] >= 0).all()
        assert (result["cost"] > 0).all()
        assert result.index.equals(wide_data.index)

    def test_normal_correlation(self):
        from corgen import CorrelatedDataGenerator

        data = pd.DataFrame({"id": np.arange(N_STANDARD)})
        defs = [
            {"varname": "a", "formula": 0, "variance": 1},
            {"varname": "b", "formula": 5, "variance": 4},
            {"varname": "c", "formula": -2, "variance": 1},
        ]
        result = CorrelatedDataGenerator(seed=SEED).add_cor_flex(data, defs, rho=0.5, corstr="cs")
        empirical = result[["a", "b", "c"]].corr().to_numpy()
        assert empirical[np.triu_indices(3, k=1)] == pytest.approx([0.5, 0.5, 0.5], abs=0.03)
        assert result["b"].mean() == pytest.approx(5.0, abs=0.05)
        assert result["b"].std() == pytest.approx(2.0, abs=0.05)

    def test_tau_matches_converted_rho(self, wide_data, definitions):
        from corgen import CorrelatedDataGenerator

        with_tau = CorrelatedDataGenerator(seed=SEED).add_cor_flex(wide_data, definitions, tau=0.3)
        with_rho = CorrelatedDataGenerator(seed=SEED).add_cor_flex(wide_data, definitions, rho=float(np.sin(np.pi * 0.3 / 2)))
        pd.testing.assert_frame_equal(with_tau, with_rho)

    def test_tau_overrides_rho_with_warning(self, wide_data, definitions):
        from corgen import CorrelatedDataGenerator

        with pytest.warns(UserWarning, match="tau provided"):
            CorrelatedDataGenerator(seed=SEED).add_cor_flex(wide_data, definitions, rho=0.2, tau=0.3)

    def test_tau_out_of_range(self, wide_data, definitions):
        from corgen import CorrelatedDataGenerator
        from corgen.errors import InvalidParameter

        with pytest.raises(InvalidParameter, match="tau"):
            CorrelatedDataGenerator(seed=SEED).add_cor_flex(wide_data, definitions, tau=1.5)

    def test_explicit_matrix(self, wide_data):
        from corgen import CorrelatedDataGenerator

        defs = [{"varname": "a", "formula": "x", "variance": 1}, {"varname": "b", "formula": 2, "dist": "poisson"}]
        corr = np.array([[1.0, 0.4], [0.4, 1.0]])
        result = CorrelatedDataGenerator(seed=SEED).add_cor_flex(wide_data, defs, cor_matrix=corr)
        assert {"a", "b"} <= set(result.columns)

    def test_matrix_dimension_mismatch(self, wide_data):
        from corgen import CorrelatedDataGenerator
        from corgen.errors import DimensionMismatch

        defs = [{"varname": "a", "formula": 0, "variance": 1}, {"varname": "b", "formula": 0, "variance": 1}]
        with pytest.raises(DimensionMismatch):
            CorrelatedDataGenerator(seed=SEED).add_cor_flex(wide_data, defs, cor_matrix=np.eye(3))

    def test_long_data_rejected(self, long_data, definitions):
        from corgen import CorrelatedDataGenerator
        from corgen.errors import InvalidParameter

        with pytest.raises(InvalidParameter, match="one row per"):
            CorrelatedDataGenerator(seed=SEED).add_cor_flex(long_data, definitions)

    def test_name_collision(self, wide_data):
        from corgen import CorrelatedDataGenerator
        from corgen.errors import InvalidParameter

        with pytest.raises(InvalidParameter, match="already in data"):
            CorrelatedDataGenerator(seed=SEED).add_cor_flex(wide_data, [{"varname": "x", "formula": 0}])

    def test_invalid_dispersion_before_sampling(self, wide_data):
        from corgen import CorrelatedDataGenerator
        from corgen.errors import InvalidParameter

        gen = CorrelatedDataGenerator(seed=SEED)
        before = gen._rng.bit_generator.state
        with pytest.raises(InvalidParameter, match="dispersion"):
            gen.add_cor_flex(wide_data, [{"varname": "g", "formula": 1, "variance": 0, "dist": "gamma", "link": "log"}])
        assert gen._rng.bit_generator.state == before
