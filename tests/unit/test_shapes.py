"""
Tests for wide/long expansion and reassembly.
"""

import numpy as np
import pandas as pd
import pytest


class TestDetectShape:
    """Test shape detection."""

    def test_wide(self, wide_data):
        from corgen.core.shapes import WIDE, detect_shape

        assert detect_shape(wide_data, "id") == WIDE

    def test_long(self, long_data):
        from corgen.core.shapes import LONG, detect_shape

        assert detect_shape(long_data, "id") == LONG


class TestShapeAdapterInit:
    """Test input checks."""

    def test_missing_idvar(self, wide_data):
        from corgen.core.shapes import ShapeAdapter
        from corgen.errors import InvalidParameter

        with pytest.raises(InvalidParameter, match="not found"):
            ShapeAdapter(wide_data, "subject")

    def test_empty_table(self):
        from corgen.core.shapes import ShapeAdapter
        from corgen.errors import InvalidParameter

        with pytest.raises(InvalidParameter, match="at least one row"):
            ShapeAdapter(pd.DataFrame({"id": []}), "id")

    def test_missing_ids(self):
        from corgen.core.shapes import ShapeAdapter
        from corgen.errors import InvalidParameter

        with pytest.raises(InvalidParameter, match="missing values"):
            ShapeAdapter(pd.DataFrame({"id": [1.0, np.nan]}), "id")


class TestExpand:
    """Test working-table construction."""

    def test_wide_expansion(self, wide_data):
        from corgen.core.shapes import SEQ_COLUMN, ShapeAdapter

        adapter = ShapeAdapter(wide_data, "id")
        working = adapter.expand(3)
        assert len(working) == 3 * len(wide_data)
        np.testing.assert_array_equal(working[SEQ_COLUMN].to_numpy()[:6], [1, 2, 3, 1, 2, 3])
        np.testing.assert_array_equal(adapter.group_sizes, np.full(len(wide_data), 3))
        np.testing.assert_array_equal(adapter.group_ids, wide_data["id"].to_numpy())

    def test_wide_requires_nvars(self, wide_data):
        from corgen.core.shapes import ShapeAdapter
        from corgen.errors import InvalidParameter

        with pytest.raises(InvalidParameter, match="nvars"):
            ShapeAdapter(wide_data, "id").expand(0)

    def test_long_groups_in_ascending_id_order(self, long_data):
        from corgen.core.shapes import ShapeAdapter

        adapter = ShapeAdapter(long_data, "id")
        working = adapter.expand()
        assert len(working) == len(long_data)
        assert list(adapter.group_ids) == sorted(long_data["id"].unique())
        expected_sizes = long_data.groupby("id").size().sort_index().to_numpy()
        np.testing.assert_array_equal(adapter.group_sizes, expected_sizes)
        assert working["id"].is_monotonic_increasing

    def test_long_sequence_follows_appearance(self):
        from corgen.core.shapes import SEQ_COLUMN, ShapeAdapter

        data = pd.DataFrame({"id": [2, 1, 2, 1, 2], "tag": list("abcde")})
        working = ShapeAdapter(data, "id").expand()
        assert list(working["tag"]) == list("bdace")
        assert list(working[SEQ_COLUMN]) == [1, 2, 1, 2, 3]

    def test_caller_table_untouched(self, long_data):
        from corgen.core.shapes import ShapeAdapter

        before = long_data.copy()
        ShapeAdapter(long_data, "id").expand()
        pd.testing.assert_frame_equal(long_data, before)


class TestReassemble:
    """Test joining generated values back."""

    def test_long_values_return_to_original_rows(self):
        from corgen.core.shapes import ShapeAdapter

        data = pd.DataFrame({"id": [2, 1, 2, 1, 2], "tag": list("abcde")}, index=[10, 11, 12, 13, 14])
        adapter = ShapeAdapter(data, "id")
        adapter.expand()
        result = adapter.reassemble(np.arange(5), ["X"])
        assert list(result.columns) == ["id", "tag", "X"]
        assert list(result.index) == [10, 11, 12, 13, 14]
        assert list(result["X"]) == [2, 0, 3, 1, 4]

    def test_wide_pivots_into_columns(self):
        from corgen.core.shapes import ShapeAdapter

        data = pd.DataFrame({"id": [3, 1, 2]})
        adapter = ShapeAdapter(data, "id")
        adapter.expand(2)
        result = adapter.reassemble(np.arange(6), ["A", "B"])
        assert list(result.columns) == ["id", "A", "B"]
        assert list(result["id"]) == [3, 1, 2]
        assert list(result["A"]) == [4, 0, 2]
        assert list(result["B"]) == [5, 1, 3]

    def test_attach_columns(self):
        from corgen.core.shapes import ShapeAdapter

        data = pd.DataFrame({"id": [3, 1, 2]})
        adapter = ShapeAdapter(data, "id")
        adapter.expand(2)
        result = adapter.attach_columns({"A": [10, 20, 30], "B": [0.1, 0.2, 0.3]})
        assert list(result["A"]) == [30, 10, 20]
        assert list(result["B"]) == [0.3, 0.1, 0.2]

    def test_attach_columns_requires_wide(self, long_data):
        from corgen.core.shapes import ShapeAdapter

        adapter = ShapeAdapter(long_data, "id")
        adapter.expand()
        with pytest.raises(RuntimeError, match="wide"):
            adapter.attach_columns({"A": np.zeros(adapter.group_ids.size)})

    def test_wrong_value_count(self, wide_data):
        from corgen.core.shapes import ShapeAdapter

        adapter = ShapeAdapter(wide_data, "id")
        adapter.expand(2)
        with pytest.raises(RuntimeError, match="Generated"):
            adapter.reassemble(np.zeros(3), ["A", "B"])

    def test_reassemble_before_expand(self, wide_data):
        from corgen.core.shapes import ShapeAdapter

        with pytest.raises(RuntimeError, match="expand"):
            ShapeAdapter(wide_data, "id").reassemble(np.zeros(3), ["A"])
