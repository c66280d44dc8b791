"""
Sample tables.

A SampleTable is the per-walkthrough data: one row per sample, a sample
identifier, explanatory columns (continuous covariates or categorical
factors with an explicit level order) and a continuous response such as a
measured expression value.

The level order of each factor is part of the table, not of the model: the
first declared level is the reference (baseline) level whenever a design
matrix is built with reference coding. Re-levelling returns a new table.

Usage:
    from lmdesign.core.table import SampleTable

    table = SampleTable.from_columns(
        factors={'genotype': ['wt', 'wt', 'mut', 'mut']},
        levels={'genotype': ['wt', 'mut']},
        response=[5.1, 4.9, 7.2, 6.8],
    )
    table = SampleTable.from_dataframe(df, response='expression', factors=['genotype'])
    table = SampleTable.from_file("samples.csv", response='expression', factors=['genotype'])
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from lmdesign.core.exceptions import ValidationError, DimensionError
from lmdesign.core.validation import (
    check_array,
    check_finite,
    check_1d,
    check_levels,
    check_unique,
)

DEFAULT_SAMPLE_ID = 'sample'
DEFAULT_RESPONSE = 'expression'


@dataclass(frozen=True, eq=False)
class SampleTable:
    """
    Immutable table of samples for one worked example.

    Construct via factory classmethods, not directly.
    """
    _frame: pd.DataFrame
    _sample_id: str
    _response: str | None
    _factors: tuple[str, ...]
    _covariates: tuple[str, ...]
    _metadata: dict[str, Any] = field(default_factory=dict)

    # === Factory Methods ===

    @classmethod
    def from_columns(
        cls,
        *,
        factors: Mapping[str, Sequence[Any]] | None = None,
        covariates: Mapping[str, ArrayLike] | None = None,
        response: ArrayLike | None = None,
        samples: Sequence[Any] | None = None,
        levels: Mapping[str, Sequence[Any]] | None = None,
        response_name: str = DEFAULT_RESPONSE,
        sample_id: str = DEFAULT_SAMPLE_ID,
        metadata: Mapping[str, Any] | None = None,
    ) -> SampleTable:
        """
        Build a table from plain columns.

        Args:
            factors: {name: labels}. Labels are stored as strings.
            covariates: {name: numeric values}
            response: Response values, or None for a design-only table
            samples: Sample identifiers. Default 's1'..'sN'.
            levels: {factor: ordered levels}. Factors without an entry use
                sorted unique labels.
            response_name: Column name of the response
            sample_id: Column name of the sample identifier
            metadata: Free-form metadata (e.g. true generating values)

        Returns:
            Validated SampleTable

        Raises:
            ValidationError: Bad values, unknown levels, duplicate ids
            DimensionError: Columns of different lengths
        """
        factors = dict(factors or {})
        covariates = dict(covariates or {})
        levels = dict(levels or {})

        unknown = sorted(set(levels) - set(factors))
        if unknown:
            raise ValidationError(f"levels given for unknown factors: {unknown}")

        data: dict[str, Any] = {}
        for name, values in factors.items():
            data[name] = _as_categorical(values, levels.get(name), name)
        for name, values in covariates.items():
            data[name] = _as_numeric(values, name)
        if response is not None:
            data[response_name] = _as_numeric(response, response_name)

        lengths = {name: len(col) for name, col in data.items()}
        if len(set(lengths.values())) > 1:
            details = ", ".join(f"{k}={v}" for k, v in lengths.items())
            raise DimensionError(f"Inconsistent lengths: {details}")
        n = next(iter(lengths.values())) if lengths else len(samples or ())

        if samples is None:
            sample_ids = [f"s{i + 1}" for i in range(n)]
        else:
            sample_ids = [str(s) for s in samples]
            if len(sample_ids) != n:
                raise DimensionError(
                    f"Inconsistent lengths: {sample_id}={len(sample_ids)}, columns={n}"
                )

        return cls._build(
            pd.DataFrame({sample_id: sample_ids, **data}),
            sample_id=sample_id,
            response=response_name if response is not None else None,
            factors=tuple(factors),
            covariates=tuple(covariates),
            metadata=dict(metadata or {}),
        )

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        *,
        response: str | None = None,
        factors: Sequence[str] = (),
        covariates: Sequence[str] = (),
        sample_id: str | None = None,
        levels: Mapping[str, Sequence[Any]] | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> SampleTable:
        """
        Build a table from a pandas DataFrame.

        A factor column that is already a pandas Categorical keeps its
        category order unless overridden in `levels`. When `sample_id` is
        None, the DataFrame index supplies the identifiers.
        """
        levels = dict(levels or {})
        wanted = list(factors) + list(covariates) + ([response] if response else [])
        if sample_id is not None:
            wanted.append(sample_id)
        missing = [c for c in wanted if c not in df.columns]
        if missing:
            raise ValidationError(
                f"DataFrame has no columns {missing}. Available: {list(df.columns)}"
            )

        factor_levels: dict[str, Sequence[Any]] = {}
        for name in factors:
            if name in levels:
                factor_levels[name] = levels[name]
            elif isinstance(df[name].dtype, pd.CategoricalDtype):
                factor_levels[name] = [str(c) for c in df[name].cat.categories]

        samples = df[sample_id].tolist() if sample_id is not None else df.index.tolist()

        return cls.from_columns(
            factors={name: df[name].tolist() for name in factors},
            covariates={name: df[name].to_numpy() for name in covariates},
            response=df[response].to_numpy() if response else None,
            samples=samples,
            levels=factor_levels,
            response_name=response or DEFAULT_RESPONSE,
            sample_id=sample_id or DEFAULT_SAMPLE_ID,
            metadata=metadata,
        )

    @classmethod
    def from_file(cls, path: str | Path, **kwargs: Any) -> SampleTable:
        """
        Build a table from a CSV or TSV file.

        Keyword arguments are passed to from_dataframe().
        """
        path = Path(path)
        suffix = path.suffix.lower()

        if suffix == '.csv':
            df = pd.read_csv(path)
        elif suffix == '.tsv':
            df = pd.read_csv(path, sep='\t')
        else:
            raise ValidationError(f"Unknown file format: {suffix}")

        metadata = dict(kwargs.pop('metadata', None) or {})
        metadata.setdefault('source_path', str(path))
        return cls.from_dataframe(df, metadata=metadata, **kwargs)

    @classmethod
    def _build(
        cls,
        frame: pd.DataFrame,
        *,
        sample_id: str,
        response: str | None,
        factors: tuple[str, ...],
        covariates: tuple[str, ...],
        metadata: dict[str, Any],
    ) -> SampleTable:
        """Internal builder with validation."""
        names = [sample_id, *factors, *covariates] + ([response] if response else [])
        check_unique(names, 'column names')
        check_unique(frame[sample_id].tolist(), sample_id)
        frame = frame.copy()
        frame.index = pd.Index(frame[sample_id].tolist())
        return cls(
            _frame=frame,
            _sample_id=sample_id,
            _response=response,
            _factors=factors,
            _covariates=covariates,
            _metadata=metadata,
        )

    # === Column Access ===

    def keys(self) -> frozenset[str]:
        """Names of all explanatory and response columns."""
        return frozenset(self._factors + self._covariates + (
            (self._response,) if self._response else ()
        ))

    def __getitem__(self, key: str) -> NDArray[Any]:
        return self.column(key)

    def __contains__(self, key: object) -> bool:
        return key in self.keys()

    def __len__(self) -> int:
        return self.n

    def column(self, name: str) -> NDArray[Any]:
        """
        Return one column as a numpy array.

        Factor columns come back as string arrays, numeric columns as float64.

        Raises:
            KeyError: If the column does not exist, listing what does
        """
        if name not in self.keys():
            raise KeyError(
                f"SampleTable has no column '{name}'. Available: {sorted(self.keys())}"
            )
        if name in self._factors:
            return self._frame[name].astype(str).to_numpy()
        return self._frame[name].to_numpy(dtype=np.float64)

    # === Properties ===

    @property
    def n(self) -> int:
        """Number of samples."""
        return len(self._frame)

    @property
    def sample_ids(self) -> list[str]:
        return self._frame[self._sample_id].tolist()

    @property
    def sample_id_name(self) -> str:
        return self._sample_id

    @property
    def response_name(self) -> str | None:
        return self._response

    @property
    def response(self) -> NDArray[np.floating[Any]]:
        """Response column as float64."""
        if self._response is None:
            raise ValidationError("SampleTable has no response column")
        return self.column(self._response)

    @property
    def factor_names(self) -> tuple[str, ...]:
        return self._factors

    @property
    def covariate_names(self) -> tuple[str, ...]:
        return self._covariates

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self._metadata)

    @property
    def frame(self) -> pd.DataFrame:
        """
        Copy of the underlying DataFrame.

        Factor columns are pandas Categoricals in declared level order, which
        is what the formula layer reads the reference level from.
        """
        return self._frame.copy()

    # === Factor Levels ===

    def factor_levels(self, name: str) -> list[str]:
        """Declared level order of a factor."""
        if name not in self._factors:
            raise KeyError(f"'{name}' is not a factor. Factors: {list(self._factors)}")
        return [str(c) for c in self._frame[name].cat.categories]

    def reference_level(self, name: str) -> str:
        """Reference (baseline) level of a factor: its first declared level."""
        return self.factor_levels(name)[0]

    def with_levels(self, name: str, levels: Sequence[str]) -> SampleTable:
        """
        Return a new table with the levels of `name` reordered.

        The set of levels must be unchanged; only their order (and therefore
        the reference level) moves.
        """
        current = self.factor_levels(name)
        if sorted(levels) != sorted(current):
            raise ValidationError(
                f"{name}: new levels {list(levels)} must be a reordering of {current}"
            )
        frame = self._frame.copy()
        frame[name] = frame[name].cat.reorder_categories(list(levels))
        return SampleTable(
            _frame=frame,
            _sample_id=self._sample_id,
            _response=self._response,
            _factors=self._factors,
            _covariates=self._covariates,
            _metadata=dict(self._metadata),
        )

    def relevel(self, name: str, reference: str) -> SampleTable:
        """Return a new table with `reference` moved to the front of `name`'s levels."""
        current = self.factor_levels(name)
        if reference not in current:
            raise ValidationError(f"{name}: {reference!r} is not a level of {current}")
        return self.with_levels(name, [reference] + [lv for lv in current if lv != reference])

    def group_means(self, by: str | Sequence[str]) -> pd.Series:
        """
        Sample mean of the response per level (or level combination).

        Levels with no samples are omitted.

        Args:
            by: A factor name or list of factor names

        Returns:
            Series of means indexed by level (MultiIndex for several factors)
        """
        by_list = [by] if isinstance(by, str) else list(by)
        for name in by_list:
            self.factor_levels(name)
        if self._response is None:
            raise ValidationError("SampleTable has no response column")
        return self._frame.groupby(by_list, observed=True)[self.response_name].mean()

    def __repr__(self) -> str:
        return (
            f"SampleTable(n={self.n}, factors={list(self._factors)}, "
            f"covariates={list(self._covariates)}, response={self._response!r})"
        )


def _as_categorical(
    values: Sequence[Any],
    levels: Sequence[Any] | None,
    name: str,
) -> pd.Categorical:
    """Convert labels to a string Categorical in the declared level order."""
    labels = [str(v) for v in values]
    if levels is None:
        level_list = sorted(set(labels))
    else:
        level_list = [str(lv) for lv in levels]
    check_levels(labels, level_list, name)
    return pd.Categorical(labels, categories=level_list)


def _as_numeric(values: ArrayLike, name: str) -> NDArray[np.floating[Any]]:
    arr = check_array(values, name)
    check_1d(arr, name)
    check_finite(arr, name)
    return arr
