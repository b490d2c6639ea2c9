"""
Correlated data generation for CorGen.

``CorrelatedDataGenerator`` ties the pieces together: the caller's table is
expanded into groups (``ShapeAdapter``), each group gets a correlation
matrix (``CorrelationMatrixBuilder``), correlated uniforms or binary vectors
are drawn (``CopulaSampler`` / ``EmrichPiedmonteSampler``), mapped to their
marginals (``MarginalMapper``) and joined back onto a copy of the table.

All arguments are validated before the first random draw, so a failing call
never consumes the random stream and never returns a partial table.

Example:
    >>> gen = CorrelatedDataGenerator(seed=2137)
    >>> df = pd.DataFrame({"id": range(1, 201), "lam": 5.0})
    >>> out = gen.add_cor_gen(df, nvars=3, rho=0.4, corstr="cs",
    ...                       dist="poisson", param1="lam")
"""

import warnings
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .core.definitions import normalize_definitions
from .core.matrices import CorrelationMatrixBuilder, _is_matrix_list
from .core.shapes import ShapeAdapter
from .errors import (
    DimensionMismatch,
    InvalidParameter,
    NameCountMismatch,
    UnsupportedMethod,
)
from .stats.binary_ep import EmrichPiedmonteSampler
from .stats.copula import CopulaSampler
from .stats.marginals import MarginalMapper
from .utils.data_utils import normalize_table
from .utils.formulas import FormulaEvaluator, PandasFormulaEvaluator
from .utils.parsers import _default_names, _parse_names
from .utils.validators import (
    MATRIX_TOLERANCE,
    _validate_columns,
    _validate_method,
    _validate_name_collisions,
    _validate_new_names,
    _validate_numeric_parameter,
    _validate_probabilities,
    _validate_structure,
)

__all__ = [
    "CorrelatedDataGenerator",
    "DEFAULT_GENERATOR_CONFIG",
    "add_cor_data",
    "add_cor_flex",
    "add_cor_gen",
    "gen_cor_data",
    "gen_cor_gen",
]

DEFAULT_GENERATOR_CONFIG = {
    "tolerance": MATRIX_TOLERANCE,  # symmetry / diagonal / eigenvalue tolerance
    "idvar": "id",  # id column of generated tables
    "long_name": "X",  # default name of the single long-format column
    "wide_prefix": "V",  # wide columns default to V1..Vk
    "period_column": "period",  # within-id sequence column of gen_cor_gen
}

_PARAM1_COLUMN = "_corgen_param1"
_PARAM2_COLUMN = "_corgen_param2"


def _first_matrix(cor_matrix: Any) -> np.ndarray:
    """Return one representative matrix of a matrix, list or dict argument."""
    if isinstance(cor_matrix, dict):
        if not cor_matrix:
            raise DimensionMismatch("cor_matrix dict is empty")
        return np.asarray(next(iter(cor_matrix.values())))
    if _is_matrix_list(cor_matrix):
        return np.asarray(cor_matrix[0])
    return np.asarray(cor_matrix)


def _check_row_count(n: Any) -> int:
    _validate_numeric_parameter(n, "n", expected_types=(int, np.integer), min_val=1).raise_if_invalid(InvalidParameter)
    return int(n)


class CorrelatedDataGenerator:
    """Adds correlated columns to tables, or builds new correlated tables.

    Args:
        seed: Seed for the generator's random stream; ``None`` for fresh
            entropy. Same seed and same inputs give identical output.
        evaluator: Formula evaluator for parameter expressions (defaults to
            ``PandasFormulaEvaluator``).
        tolerance: Tolerance for correlation-matrix checks.

    Attributes:
        seed: Current seed.
        config: Copy of ``DEFAULT_GENERATOR_CONFIG`` with instance overrides.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        evaluator: Optional[FormulaEvaluator] = None,
        tolerance: float = DEFAULT_GENERATOR_CONFIG["tolerance"],
    ):
        self.config: Dict[str, Any] = dict(DEFAULT_GENERATOR_CONFIG)
        self.config["tolerance"] = tolerance
        self.evaluator = evaluator if evaluator is not None else PandasFormulaEvaluator()

        self._builder = CorrelationMatrixBuilder(tolerance)
        self._mapper = MarginalMapper()
        self.set_seed(seed)

    def set_seed(self, seed: Optional[int] = None):
        """Reset the random stream.

        Args:
            seed: Non-negative integer, or ``None`` for fresh entropy.

        Returns:
            self: For method chaining.

        Raises:
            TypeError: If *seed* is not an integer or ``None``.
            ValueError: If *seed* is negative.
        """
        if seed is not None:
            if isinstance(seed, bool) or not isinstance(seed, (int, np.integer)):
                raise TypeError("seed must be an integer or None")
            if seed < 0:
                raise ValueError("seed must be non-negative")

        self.seed = seed
        self._rng = np.random.default_rng(seed)
        return self

    # ------------------------------------------------------------------
    # Single-distribution generation
    # ------------------------------------------------------------------

    def add_cor_gen(
        self,
        data: Union[pd.DataFrame, Dict[str, Any]],
        nvars: Optional[int] = None,
        idvar: str = "id",
        rho: Optional[float] = None,
        corstr: Optional[str] = None,
        cor_matrix: Any = None,
        *,
        dist: str,
        param1: Any,
        param2: Any = None,
        cnames: Optional[Union[str, Sequence[str]]] = None,
        method: str = "copula",
    ) -> pd.DataFrame:
        """Add correlated columns of one distribution to *data*.

        Wide data (one row per id) gets ``nvars`` new columns per subject;
        long data (repeated ids) gets one new column whose values are
        correlated within each id.

        Args:
            data: Caller's table; never modified.
            nvars: Number of new columns (wide data only).
            idvar: Identifier column.
            rho: Correlation coefficient for *corstr*.
            corstr: ``"ind"``, ``"cs"`` or ``"ar1"``.
            cor_matrix: Explicit correlation matrix, a list of matrices in
                ascending id order, or a dict keyed by id. Overrides
                *nvars*, *rho* and *corstr*.
            dist: ``"normal"``, ``"poisson"``, ``"binary"``, ``"gamma"``,
                ``"negBinomial"`` or ``"uniform"``.
            param1: First parameter: a column name, a number, or a formula.
            param2: Second parameter for two-parameter distributions.
            cnames: New column names, as a sequence or ``"a, b, c"``.
            method: ``"copula"`` or ``"ep"`` (binary only).

        Returns:
            A new DataFrame with the original columns plus the generated ones,
            in the original row order.

        Raises:
            UnsupportedDistribution, ParameterCountMismatch, UnsupportedMethod,
            InvalidParameter, NameCountMismatch, InvalidCorrelationMatrix,
            DimensionMismatch, InfeasibleCorrelation: See ``corgen.errors``.
        """
        data = normalize_table(data)
        dist = self._mapper.check_parameter_count(dist, 1 if param2 is None else 2)
        _validate_method(method, dist).raise_if_invalid(UnsupportedMethod)

        adapter = ShapeAdapter(data, idvar)
        if adapter.is_wide:
            nvars = self._resolve_wide_nvars(nvars, rho, corstr, cor_matrix)
            defaults = _default_names(nvars, self.config["wide_prefix"])
        else:
            if cor_matrix is None and corstr is None:
                raise InvalidParameter("Either both rho and corstr must be provided or cor_matrix must be provided")
            if cor_matrix is not None and (rho is not None or corstr is not None):
                warnings.warn("cor_matrix provided; rho and corstr are ignored", UserWarning, stacklevel=2)
            if nvars is not None:
                warnings.warn("nvars is ignored for long data; group sizes come from the id column", UserWarning, stacklevel=2)
            nvars = None
            defaults = [self.config["long_name"]]

        names = self._resolve_names(cnames, defaults, adapter.is_wide, data.columns)

        working = adapter.expand(nvars)
        correlation = self._builder.matrix_set(adapter.group_ids, adapter.group_sizes, cor_matrix, rho, corstr)
        values1 = self._resolve_parameter(param1, working)
        values2 = self._resolve_parameter(param2, working)

        if method == "ep":
            _validate_probabilities(values1, "param1").raise_if_invalid(InvalidParameter)
            sampler = EmrichPiedmonteSampler(self._rng, self.config["tolerance"])
            values = sampler.sample_groups(values1, adapter.group_sizes, correlation, adapter.group_ids)
        else:
            if dist == "binary":
                _validate_probabilities(values1, "param1", strict=False).raise_if_invalid(InvalidParameter)
            self._mapper.validate_parameters(dist, values1, values2)
            uniforms = CopulaSampler(self._rng, self.config["tolerance"]).sample(adapter.group_sizes, correlation, adapter.group_ids)
            values = self._mapper.transform(uniforms, dist, values1, values2)

        return adapter.reassemble(values, names)

    def gen_cor_gen(
        self,
        n: int,
        nvars: Optional[int],
        params1: Any,
        params2: Any = None,
        *,
        dist: str,
        rho: Optional[float] = None,
        corstr: Optional[str] = None,
        cor_matrix: Any = None,
        wide: bool = False,
        cnames: Optional[Union[str, Sequence[str]]] = None,
        method: str = "copula",
        idvar: str = DEFAULT_GENERATOR_CONFIG["idvar"],
    ) -> pd.DataFrame:
        """Generate a fresh table of *n* ids with *nvars* correlated values each.

        Args:
            n: Number of ids.
            nvars: Values per id; taken from *cor_matrix* when ``None``.
            params1: First parameter, a scalar or one value per variable.
            params2: Second parameter, likewise.
            dist, rho, corstr, cor_matrix, method: As in ``add_cor_gen``.
            wide: Return one column per variable instead of long rows.
            cnames: Column names (``nvars`` names when wide, one when long).
            idvar: Name of the id column.

        Returns:
            Long table ``(id, period, X)`` or wide table ``(id, V1..Vk)``.
        """
        n = _check_row_count(n)
        dist = self._mapper.check_parameter_count(dist, 1 if params2 is None else 2)
        _validate_method(method, dist).raise_if_invalid(UnsupportedMethod)

        if nvars is None:
            if cor_matrix is None:
                raise InvalidParameter("Either nvars or cor_matrix must be provided")
            nvars = _first_matrix(cor_matrix).shape[0]
        _validate_numeric_parameter(nvars, "nvars", expected_types=(int, np.integer), min_val=2).raise_if_invalid(
            InvalidParameter
        )
        nvars = int(nvars)

        values1 = self._broadcast_params(params1, nvars, "params1")
        values2 = None if params2 is None else self._broadcast_params(params2, nvars, "params2")

        period = self.config["period_column"]
        long_name = self.config["long_name"]
        if wide:
            names = self._resolve_names(cnames, _default_names(nvars, self.config["wide_prefix"]), True, [idvar])
        else:
            names = self._resolve_names(cnames, [long_name], False, [idvar, period])
            long_name = names[0]

        table = pd.DataFrame(
            {
                idvar: np.repeat(np.arange(1, n + 1), nvars),
                period: np.tile(np.arange(nvars), n),
                _PARAM1_COLUMN: np.tile(values1, n),
            }
        )
        if values2 is not None:
            table[_PARAM2_COLUMN] = np.tile(values2, n)

        result = self.add_cor_gen(
            table,
            idvar=idvar,
            rho=rho,
            corstr=corstr,
            cor_matrix=cor_matrix,
            dist=dist,
            param1=_PARAM1_COLUMN,
            param2=None if values2 is None else _PARAM2_COLUMN,
            cnames=[long_name],
            method=method,
        )
        result = result.drop(columns=[col for col in (_PARAM1_COLUMN, _PARAM2_COLUMN) if col in result.columns])

        if not wide:
            return result

        wide_result = result.pivot(index=idvar, columns=period, values=long_name)
        wide_result.columns = names
        return wide_result.reset_index()

    # ------------------------------------------------------------------
    # Mixed-distribution and normal generation
    # ------------------------------------------------------------------

    def add_cor_flex(
        self,
        data: Union[pd.DataFrame, Dict[str, Any]],
        defs: Any,
        rho: float = 0,
        tau: Optional[float] = None,
        corstr: str = "cs",
        cor_matrix: Any = None,
        idvar: str = "id",
    ) -> pd.DataFrame:
        """Add several correlated columns with different distributions.

        Every definition's mean is evaluated on the subject's row and passed
        through its inverse link; the columns of one subject share a Gaussian
        copula with the requested correlation.

        Args:
            data: Table with one row per id.
            defs: Variable definitions (see ``normalize_definitions``).
            rho: Correlation coefficient for *corstr*.
            tau: Kendall's tau; overrides *rho* via ``sin(pi * tau / 2)``.
            corstr: ``"ind"``, ``"cs"`` or ``"ar1"``.
            cor_matrix: Explicit matrix with one row per definition.
            idvar: Identifier column.

        Returns:
            A new DataFrame with one column per definition appended.
        """
        data = normalize_table(data)
        definitions = normalize_definitions(defs)
        nvars = len(definitions)

        adapter = ShapeAdapter(data, idvar)
        if not adapter.is_wide:
            raise InvalidParameter(f"add_cor_flex requires one row per '{idvar}'")
        names = [definition.varname for definition in definitions]
        _validate_name_collisions(names, data.columns).raise_if_invalid(InvalidParameter)

        if tau is not None:
            _validate_numeric_parameter(tau, "tau", min_val=-1, max_val=1).raise_if_invalid(InvalidParameter)
            if rho:
                warnings.warn("tau provided; rho is ignored", UserWarning, stacklevel=2)
            rho = float(np.sin(np.pi * tau / 2))

        adapter.expand(nvars)
        correlation = self._builder.matrix_set(adapter.group_ids, adapter.group_sizes, cor_matrix, rho, corstr)

        subjects = adapter.rows_for_sequence(1)
        parameters = []
        for definition in definitions:
            mean = self.evaluator.evaluate(definition.formula, subjects, definition.link)
            second = definition.variance if definition.needs_variance else None
            self._mapper.validate_parameters(definition.dist, mean, second)
            parameters.append((mean, second))

        uniforms = CopulaSampler(self._rng, self.config["tolerance"]).sample(adapter.group_sizes, correlation, adapter.group_ids)
        uniforms = uniforms.reshape(-1, nvars)

        columns = {
            definition.varname: self._mapper.transform(uniforms[:, j], definition.dist, *parameters[j])
            for j, definition in enumerate(definitions)
        }
        return adapter.attach_columns(columns)

    def add_cor_data(
        self,
        data: Union[pd.DataFrame, Dict[str, Any]],
        idvar: str,
        mu: Sequence[float],
        sigma: Union[float, Sequence[float]],
        cor_matrix: Any = None,
        rho: Optional[float] = None,
        corstr: str = "ind",
        cnames: Optional[Union[str, Sequence[str]]] = None,
    ) -> pd.DataFrame:
        """Add multivariate normal columns with means *mu* and SDs *sigma*.

        Args:
            data: Table with one row per id.
            idvar: Identifier column.
            mu: Means, one per new column.
            sigma: Standard deviations; a scalar applies to every column.
            cor_matrix: Explicit correlation matrix (overrides *rho*).
            rho: Correlation coefficient for *corstr*.
            corstr: ``"ind"``, ``"cs"`` or ``"ar1"``.
            cnames: New column names (default ``V1..Vk``).
        """
        data = normalize_table(data)
        mu = np.atleast_1d(np.asarray(mu, dtype=np.float64)).ravel()
        nvars = mu.size
        sigma = np.asarray(sigma, dtype=np.float64)
        if sigma.ndim == 0:
            sigma = np.full(nvars, float(sigma))
        sigma = sigma.ravel()
        if sigma.size != nvars:
            raise DimensionMismatch(f"Length of sigma ({sigma.size}) not equal to length of mu ({nvars})")
        if np.any(~(sigma >= 0)):
            raise InvalidParameter("sigma must be non-negative")

        adapter = ShapeAdapter(data, idvar)
        if not adapter.is_wide:
            raise InvalidParameter(f"add_cor_data requires one row per '{idvar}'")
        names = self._resolve_names(cnames, _default_names(nvars, self.config["wide_prefix"]), True, data.columns)

        if cor_matrix is not None and rho is not None:
            warnings.warn("cor_matrix provided; rho and corstr are ignored", UserWarning, stacklevel=2)

        adapter.expand(nvars)
        correlation = self._builder.matrix_set(adapter.group_ids, adapter.group_sizes, cor_matrix, rho, corstr)
        z = CopulaSampler(self._rng, self.config["tolerance"]).sample_normal(adapter.group_sizes, correlation, adapter.group_ids)
        values = mu + z.reshape(-1, nvars) * sigma

        return adapter.attach_columns({name: values[:, j] for j, name in enumerate(names)})

    def gen_cor_data(
        self,
        n: int,
        mu: Sequence[float],
        sigma: Union[float, Sequence[float]],
        cor_matrix: Any = None,
        rho: Optional[float] = None,
        corstr: str = "ind",
        cnames: Optional[Union[str, Sequence[str]]] = None,
        idvar: str = DEFAULT_GENERATOR_CONFIG["idvar"],
    ) -> pd.DataFrame:
        """Generate *n* ids with multivariate normal columns (see ``add_cor_data``)."""
        n = _check_row_count(n)
        data = pd.DataFrame({idvar: np.arange(1, n + 1)})
        return self.add_cor_data(data, idvar, mu, sigma, cor_matrix=cor_matrix, rho=rho, corstr=corstr, cnames=cnames)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_wide_nvars(self, nvars, rho, corstr, cor_matrix) -> int:
        if cor_matrix is None:
            if nvars is None or corstr is None:
                raise InvalidParameter("Either nvars, rho and corstr all must be provided or cor_matrix must be provided")
            structure, result = _validate_structure(corstr)
            result.raise_if_invalid(InvalidParameter)
            if rho is None and structure != "ind":
                raise InvalidParameter("Either nvars, rho and corstr all must be provided or cor_matrix must be provided")
            _validate_numeric_parameter(nvars, "nvars", expected_types=(int, np.integer), min_val=2).raise_if_invalid(
                InvalidParameter
            )
            return int(nvars)

        if nvars is not None or rho is not None or corstr is not None:
            warnings.warn("cor_matrix provided; nvars, rho and corstr are ignored", UserWarning, stacklevel=3)
        matrix = _first_matrix(cor_matrix)
        if matrix.ndim != 2:
            raise DimensionMismatch(f"cor_matrix must be 2-dimensional, got shape {matrix.shape}")
        return int(matrix.shape[0])

    @staticmethod
    def _resolve_names(cnames, defaults: List[str], wide: bool, existing: Sequence[Any]) -> List[str]:
        names = _parse_names(cnames)
        if names is None:
            names = list(defaults)
        else:
            _validate_new_names(names, len(defaults), wide).raise_if_invalid(NameCountMismatch)
        _validate_name_collisions(names, existing).raise_if_invalid(InvalidParameter)
        return names

    def _resolve_parameter(self, source: Any, working: pd.DataFrame) -> Optional[np.ndarray]:
        """One parameter value per working row from a column, constant or formula."""
        if source is None:
            return None
        if isinstance(source, str) and source.strip().isidentifier():
            _validate_columns([source.strip()], list(working.columns)).raise_if_invalid(InvalidParameter)
        values = np.asarray(self.evaluator.evaluate(source, working), dtype=np.float64)
        if values.shape != (len(working),):
            raise InvalidParameter(f"Parameter {source!r} must give one value per row, got shape {values.shape}")
        if np.any(np.isnan(values)):
            raise InvalidParameter(f"Parameter {source!r} contains missing values")
        return values

    @staticmethod
    def _broadcast_params(params: Any, nvars: int, name: str) -> np.ndarray:
        values = np.asarray(params, dtype=np.float64)
        if values.ndim == 0:
            return np.full(nvars, float(values))
        values = values.ravel()
        if values.size != nvars:
            raise DimensionMismatch(f"Length of {name} ({values.size}) not equal to nvars ({nvars})")
        return values


# ----------------------------------------------------------------------
# Functional API: one fresh generator per call
# ----------------------------------------------------------------------


def add_cor_gen(data, *args, seed: Optional[int] = None, **kwargs) -> pd.DataFrame:
    """Functional form of ``CorrelatedDataGenerator.add_cor_gen``."""
    return CorrelatedDataGenerator(seed=seed).add_cor_gen(data, *args, **kwargs)


def add_cor_flex(data, defs, *args, seed: Optional[int] = None, **kwargs) -> pd.DataFrame:
    """Functional form of ``CorrelatedDataGenerator.add_cor_flex``."""
    return CorrelatedDataGenerator(seed=seed).add_cor_flex(data, defs, *args, **kwargs)


def add_cor_data(data, idvar, mu, sigma, *args, seed: Optional[int] = None, **kwargs) -> pd.DataFrame:
    """Functional form of ``CorrelatedDataGenerator.add_cor_data``."""
    return CorrelatedDataGenerator(seed=seed).add_cor_data(data, idvar, mu, sigma, *args, **kwargs)


def gen_cor_data(n, mu, sigma, *args, seed: Optional[int] = None, **kwargs) -> pd.DataFrame:
    """Functional form of ``CorrelatedDataGenerator.gen_cor_data``."""
    return CorrelatedDataGenerator(seed=seed).gen_cor_data(n, mu, sigma, *args, **kwargs)


def gen_cor_gen(n, nvars, params1, *args, seed: Optional[int] = None, **kwargs) -> pd.DataFrame:
    """Functional form of ``CorrelatedDataGenerator.gen_cor_gen``."""
    return CorrelatedDataGenerator(seed=seed).gen_cor_gen(n, nvars, params1, *args, **kwargs)
