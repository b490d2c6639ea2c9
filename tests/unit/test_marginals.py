"""
Tests for marginal distribution mapping.
"""

import numpy as np
import pytest

from tests.config import SEED

N_VALUES = 50_000


def _uniforms(n=N_VALUES):
    return np.random.default_rng(SEED).random(n)


class TestParameterConversions:
    """Test (mean, dispersion) conversions."""

    def test_gamma_shape_rate(self):
        from corgen.stats.marginals import gamma_shape_rate

        shape, rate = gamma_shape_rate(2.0, 0.5)
        assert shape == pytest.approx(2.0)
        assert rate == pytest.approx(1.0)
        assert shape / rate == pytest.approx(2.0)

    def test_negbinom_size_prob(self):
        from corgen.stats.marginals import negbinom_size_prob

        size, prob = negbinom_size_prob(4.0, 0.5)
        assert size == pytest.approx(2.0)
        assert prob == pytest.approx(1 / 3)
        assert size * (1 - prob) / prob == pytest.approx(4.0)

    @pytest.mark.parametrize("dispersion", [0.0, -1.0])
    def test_gamma_rejects_non_positive_dispersion(self, dispersion):
        from corgen.errors import InvalidParameter
        from corgen.stats.marginals import gamma_shape_rate

        with pytest.raises(InvalidParameter, match="dispersion"):
            gamma_shape_rate(2.0, dispersion)

    @pytest.mark.parametrize("dispersion", [0.0, -0.5])
    def test_negbinom_rejects_non_positive_dispersion(self, dispersion):
        from corgen.errors import InvalidParameter
        from corgen.stats.marginals import negbinom_size_prob

        with pytest.raises(InvalidParameter, match="dispersion"):
            negbinom_size_prob(4.0, dispersion)

    def test_gamma_rejects_non_positive_mean(self):
        from corgen.errors import InvalidParameter
        from corgen.stats.marginals import gamma_shape_rate

        with pytest.raises(InvalidParameter, match="mean"):
            gamma_shape_rate([1.0, 0.0], 1.0)


class TestParameterCount:
    """Test the per-distribution parameter contract."""

    def test_gamma_with_one_parameter(self):
        from corgen.errors import ParameterCountMismatch
        from corgen.stats.marginals import MarginalMapper

        with pytest.raises(ParameterCountMismatch, match="Too few"):
            MarginalMapper.check_parameter_count("gamma", 1)

    def test_poisson_with_two_parameters(self):
        from corgen.errors import ParameterCountMismatch
        from corgen.stats.marginals import MarginalMapper

        with pytest.raises(ParameterCountMismatch, match="Too many"):
            MarginalMapper.check_parameter_count("poisson", 2)

    @pytest.mark.parametrize(
        "name, canonical",
        [("Gaussian", "normal"), ("bernoulli", "binary"), ("negative-binomial", "negBinomial"), ("negBinomial", "negBinomial")],
    )
    def test_aliases(self, name, canonical):
        from corgen.stats.marginals import normalize_distribution

        assert normalize_distribution(name) == canonical

    def test_unknown_distribution(self):
        from corgen.errors import UnsupportedDistribution
        from corgen.stats.marginals import normalize_distribution

        with pytest.raises(UnsupportedDistribution, match="Unknown distribution"):
            normalize_distribution("weibull")

    def test_registry_parameter_counts(self):
        from corgen.stats.marginals import DISTRIBUTIONS

        counts = {name: rule.n_params for name, rule in DISTRIBUTIONS.items()}
        assert counts == {"normal": 2, "poisson": 1, "binary": 1, "gamma": 2, "negBinomial": 2, "uniform": 2}


class TestTransform:
    """Test quantile transforms."""

    def test_poisson_moments(self):
        from corgen.stats.marginals import MarginalMapper

        values = MarginalMapper().transform(_uniforms(), "poisson", 5.0)
        assert values.dtype == np.int64
        assert values.mean() == pytest.approx(5.0, abs=0.1)
        assert values.var() == pytest.approx(5.0, abs=0.5)

    def test_gamma_moments(self):
        from corgen.stats.marginals import MarginalMapper

        values = MarginalMapper().transform(_uniforms(), "gamma", 2.0, 0.5)
        assert values.mean() == pytest.approx(2.0, abs=0.05)
        assert values.var() == pytest.approx(2.0, abs=0.2)

    def test_negbinom_moments(self):
        from corgen.stats.marginals import MarginalMapper

        values = MarginalMapper().transform(_uniforms(), "negBinomial", 4.0, 0.5)
        assert values.dtype == np.int64
        assert values.mean() == pytest.approx(4.0, abs=0.1)
        # variance = mean + d * mean**2
        assert values.var() == pytest.approx(12.0, abs=0.8)

    def test_normal_location_scale(self):
        from corgen.stats.marginals import MarginalMapper

        values = MarginalMapper().transform(_uniforms(), "normal", 10.0, 4.0)
        assert values.mean() == pytest.approx(10.0, abs=0.05)
        assert values.std() == pytest.approx(2.0, abs=0.05)

    def test_normal_zero_variance_returns_mean(self):
        from corgen.stats.marginals import MarginalMapper

        values = MarginalMapper().transform([0.1, 0.5, 0.9], "normal", 3.0, 0.0)
        np.testing.assert_array_equal(values, [3.0, 3.0, 3.0])

    def test_binary_threshold(self):
        from corgen.stats.marginals import MarginalMapper

        values = MarginalMapper().transform([0.5, 0.9], "binary", 0.3)
        np.testing.assert_array_equal(values, [0, 1])
        assert values.dtype == np.int64

    def test_uniform_range(self):
        from corgen.stats.marginals import MarginalMapper

        values = MarginalMapper().transform([0.0, 0.25, 1.0], "uniform", 2.0, 6.0)
        np.testing.assert_allclose(values, [2.0, 3.0, 6.0])

    def test_uniform_equal_bounds_returns_bound(self):
        from corgen.stats.marginals import MarginalMapper

        values = MarginalMapper().transform([0.0, 0.3, 0.8, 1.0], "uniform", 5.0, 5.0)
        np.testing.assert_array_equal(values, [5.0, 5.0, 5.0, 5.0])

    def test_uniform_per_row_equal_bounds(self):
        from corgen.stats.marginals import MarginalMapper

        values = MarginalMapper().transform([0.5, 0.5], "uniform", np.array([1.0, 2.0]), np.array([1.0, 4.0]))
        np.testing.assert_allclose(values, [1.0, 3.0])

    def test_per_row_parameters(self):
        from corgen.stats.marginals import MarginalMapper

        values = MarginalMapper().transform([0.5, 0.5], "normal", np.array([0.0, 100.0]), np.array([1.0, 1.0]))
        np.testing.assert_allclose(values, [0.0, 100.0])

    def test_boundary_uniform_keeps_float(self):
        from corgen.stats.marginals import MarginalMapper

        values = MarginalMapper().transform([0.5, 1.0], "poisson", 3.0)
        assert values.dtype == np.float64
        assert np.isinf(values[1])

    def test_negative_poisson_mean_rejected(self):
        from corgen.errors import InvalidParameter
        from corgen.stats.marginals import MarginalMapper

        with pytest.raises(InvalidParameter, match="Poisson mean"):
            MarginalMapper().validate_parameters("poisson", [1.0, -2.0])

    def test_binary_probability_out_of_range(self):
        from corgen.errors import InvalidParameter
        from corgen.stats.marginals import MarginalMapper

        with pytest.raises(InvalidParameter, match="probability"):
            MarginalMapper().transform([0.5], "binary", 1.5)

    def test_uniform_reversed_bounds(self):
        from corgen.errors import InvalidParameter
        from corgen.stats.marginals import MarginalMapper

        with pytest.raises(InvalidParameter, match="Uniform"):
            MarginalMapper().validate_parameters("uniform", 5.0, 1.0)
