"""
Tests for multi-distribution variable definitions.
"""

import pandas as pd
import pytest


class TestVariableDef:
    """Test single definitions."""

    def test_defaults(self):
        from corgen.core.definitions import VariableDef

        definition = VariableDef("y", "1 + x")
        assert definition.dist == "normal"
        assert definition.link == "identity"
        assert definition.variance == 0.0
        assert definition.needs_variance

    def test_distribution_alias_normalised(self):
        from corgen.core.definitions import VariableDef

        assert VariableDef("y", 0.3, dist="bernoulli", link="logit").dist == "binary"

    def test_one_parameter_families_ignore_variance(self):
        from corgen.core.definitions import VariableDef

        assert not VariableDef("y", 2, dist="poisson", link="log").needs_variance

    def test_uniform_not_supported(self):
        from corgen.core.definitions import VariableDef
        from corgen.errors import UnsupportedDistribution

        with pytest.raises(UnsupportedDistribution, match="Only implemented"):
            VariableDef("y", 1, dist="uniform")

    def test_unknown_link(self):
        from corgen.core.definitions import VariableDef
        from corgen.errors import InvalidParameter

        with pytest.raises(InvalidParameter, match="Unknown link"):
            VariableDef("y", 1, link="sqrt")

    def test_empty_name(self):
        from corgen.core.definitions import VariableDef
        from corgen.errors import InvalidParameter

        with pytest.raises(InvalidParameter, match="varname"):
            VariableDef(" ", 1)


class TestNormalizeDefinitions:
    """Test conversion from tables and lists."""

    def test_from_dataframe(self):
        from corgen.core.definitions import normalize_definitions

        table = pd.DataFrame(
            {
                "varname": ["a", "b"],
                "formula": ["1 + x", "0.5"],
                "variance": [2.0, 1.0],
                "dist": ["normal", "gamma"],
                "link": ["identity", "log"],
            }
        )
        definitions = normalize_definitions(table)
        assert [d.varname for d in definitions] == ["a", "b"]
        assert definitions[1].dist == "gamma"
        assert definitions[1].link == "log"

    def test_from_dicts_and_objects(self):
        from corgen.core.definitions import VariableDef, normalize_definitions

        definitions = normalize_definitions([{"varname": "a", "formula": 1}, VariableDef("b", 2, dist="poisson")])
        assert [d.dist for d in definitions] == ["normal", "poisson"]

    def test_duplicate_names(self):
        from corgen.core.definitions import normalize_definitions
        from corgen.errors import InvalidParameter

        with pytest.raises(InvalidParameter, match="unique"):
            normalize_definitions([{"varname": "a", "formula": 1}, {"varname": "a", "formula": 2}])

    def test_empty(self):
        from corgen.core.definitions import normalize_definitions
        from corgen.errors import InvalidParameter

        with pytest.raises(InvalidParameter, match="At least one"):
            normalize_definitions([])

    def test_bad_record_type(self):
        from corgen.core.definitions import normalize_definitions
        from corgen.errors import InvalidParameter

        with pytest.raises(InvalidParameter, match="dicts or VariableDef"):
            normalize_definitions([("a", 1)])
