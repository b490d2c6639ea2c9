"""
Wide/long shape handling for CorGen.

A table with one row per id is *wide*: each subject is expanded into
``nvars`` synthetic rows (a group of size ``nvars``) and the generated values
are pivoted back into ``nvars`` columns. A table whose ids repeat is *long*:
the repeats form the groups and one new column is added per row. Wide data is
therefore handled as long data whose groups all have size ``nvars``.

Working tables are sorted stably by ``(id, sequence)``; groups are traversed
in ascending id order and, within a group, by order of appearance.
"""

from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..errors import InvalidParameter

__all__ = ["ShapeAdapter", "detect_shape", "WIDE", "LONG", "SEQ_COLUMN"]

WIDE = "wide"
LONG = "long"

SEQ_COLUMN = "_corgen_seq"
_VALUE_COLUMN = "_corgen_value"
_MERGE_COLUMN = "_corgen_merge"


def detect_shape(data: pd.DataFrame, idvar: str) -> str:
    """Return ``"wide"`` if every id appears once, otherwise ``"long"``."""
    max_repeats = data.groupby(idvar, sort=False).size().max()
    return WIDE if max_repeats == 1 else LONG


class ShapeAdapter:
    """Expands a caller's table into groups and reassembles generated values.

    Args:
        data: Caller's table; never modified.
        idvar: Name of the identifier column.

    Attributes:
        shape: ``"wide"`` or ``"long"``.
        working: Expanded table sorted by ``(id, sequence)`` (after ``expand``).
        group_ids: Ids of the groups in traversal order (after ``expand``).
        group_sizes: Sizes of the groups in traversal order (after ``expand``).
    """

    def __init__(self, data: pd.DataFrame, idvar: str):
        if idvar not in data.columns:
            raise InvalidParameter(f"Id variable '{idvar}' not found in data. Available: {', '.join(map(str, data.columns))}")
        if len(data) == 0:
            raise InvalidParameter("data must contain at least one row")
        if data[idvar].isna().any():
            raise InvalidParameter(f"Id variable '{idvar}' contains missing values")

        self.data = data
        self.idvar = idvar
        self.shape = detect_shape(data, idvar)
        self.working: Optional[pd.DataFrame] = None
        self.group_ids: Optional[np.ndarray] = None
        self.group_sizes: Optional[np.ndarray] = None
        self.nvars: Optional[int] = None

    @property
    def is_wide(self) -> bool:
        return self.shape == WIDE

    def expand(self, nvars: Optional[int] = None) -> pd.DataFrame:
        """Build the working table, one row per value to generate.

        Args:
            nvars: Number of new variables per subject (wide data only).

        Returns:
            Working table sorted by ``(id, sequence)`` with a sequence column
            ``SEQ_COLUMN`` running 1..group size within each id.
        """
        if self.is_wide:
            if nvars is None or int(nvars) < 1:
                raise InvalidParameter(f"nvars must be a positive integer for wide data, got {nvars}")
            nvars = int(nvars)
            positions = np.repeat(np.arange(len(self.data)), nvars)
            working = self.data.iloc[positions].reset_index(drop=True)
            working[SEQ_COLUMN] = np.tile(np.arange(1, nvars + 1), len(self.data))
            self.nvars = nvars
        else:
            working = self.data.reset_index(drop=True)
            working[SEQ_COLUMN] = working.groupby(self.idvar, sort=False).cumcount() + 1

        working = working.sort_values([self.idvar, SEQ_COLUMN], kind="mergesort").reset_index(drop=True)
        sizes = working.groupby(self.idvar, sort=True).size()

        self.working = working
        self.group_ids = sizes.index.to_numpy()
        self.group_sizes = sizes.to_numpy(dtype=np.int64)
        return working

    def rows_for_sequence(self, seq: int) -> pd.DataFrame:
        """Working rows holding sequence number *seq* (one per subject in wide data)."""
        self._require_expanded()
        return self.working[self.working[SEQ_COLUMN] == seq]

    def reassemble(self, values: Sequence[Any], names: List[str]) -> pd.DataFrame:
        """Join generated values back onto a copy of the caller's table.

        Args:
            values: One value per working row, in working-table order.
            names: ``nvars`` column names (wide) or a single name (long).

        Returns:
            Caller's table plus the generated column(s), in the original row
            order and with the original index.

        Raises:
            RuntimeError: If a key fails to match between the generated and
                original tables.
        """
        self._require_expanded()
        values = np.asarray(values)
        if values.shape[0] != len(self.working):
            raise RuntimeError(f"Generated {values.shape[0]} values for {len(self.working)} rows")

        generated = pd.DataFrame(
            {
                self.idvar: self.working[self.idvar].to_numpy(),
                SEQ_COLUMN: self.working[SEQ_COLUMN].to_numpy(),
                _VALUE_COLUMN: values,
            }
        )

        if self.is_wide:
            pivoted = generated.pivot(index=self.idvar, columns=SEQ_COLUMN, values=_VALUE_COLUMN)
            pivoted = pivoted.reindex(columns=range(1, self.nvars + 1))
            pivoted.columns = list(names)
            pivoted = pivoted.reset_index()
            result = self._merge_subjects(pivoted)
        else:
            original = self.data.reset_index(drop=True)
            original[SEQ_COLUMN] = original.groupby(self.idvar, sort=False).cumcount() + 1
            generated = generated.rename(columns={_VALUE_COLUMN: names[0]})
            result = original.merge(
                generated, on=[self.idvar, SEQ_COLUMN], how="left", validate="one_to_one", indicator=_MERGE_COLUMN
            )
            result = result.drop(columns=SEQ_COLUMN)

        return self._finish(result)

    def attach_columns(self, columns: Dict[str, Sequence[Any]]) -> pd.DataFrame:
        """Join per-subject columns onto a copy of a wide table.

        Args:
            columns: Mapping of new column name to one value per subject, in
                ascending id order (the order of ``group_ids``).

        Returns:
            Caller's table plus the new columns, in the original row order.
        """
        self._require_expanded()
        if not self.is_wide:
            raise RuntimeError("attach_columns() requires wide data")
        frame = pd.DataFrame({self.idvar: self.group_ids})
        for name, values in columns.items():
            values = np.asarray(values)
            if values.shape[0] != len(self.group_ids):
                raise RuntimeError(f"Generated {values.shape[0]} values for {len(self.group_ids)} subjects")
            frame[name] = values
        return self._finish(self._merge_subjects(frame))

    def _merge_subjects(self, frame: pd.DataFrame) -> pd.DataFrame:
        original = self.data.reset_index(drop=True)
        return original.merge(frame, on=self.idvar, how="left", validate="one_to_one", indicator=_MERGE_COLUMN)

    def _finish(self, result: pd.DataFrame) -> pd.DataFrame:
        unmatched = int((result[_MERGE_COLUMN] != "both").sum())
        if unmatched:
            raise RuntimeError(f"{unmatched} rows could not be matched to generated values")

        result = result.drop(columns=_MERGE_COLUMN)
        result.index = self.data.index
        return result

    def _require_expanded(self):
        if self.working is None:
            raise RuntimeError("expand() must be called before reassembling")
