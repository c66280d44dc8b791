"""
Design matrices.

A ModelMatrix is the numeric design matrix of a linear model together with
everything needed to interpret it: column names, which columns belong to
which model term, the level order of every factor, and a way to build the
same columns for new rows (used for marginal predictions).

Two construction routes produce the same object:
    build_model_matrix(factors, covariates=..., coding=...)   explicit dicts
    model_matrix(formula, table)                              formula (see formula.py)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from lmdesign.core.exceptions import ValidationError, DimensionError
from lmdesign.core.linalg import qr_decompose
from lmdesign.core.validation import check_2d, check_array, check_finite, check_levels
from lmdesign.design._coding import (
    encode_means,
    encode_reference,
    interaction_columns,
    interaction_labels,
    means_labels,
    reference_labels,
)

Coding = Literal['reference', 'means']

INTERCEPT = 'Intercept'


@dataclass(frozen=True, eq=False)
class ModelMatrix:
    """
    Encoded design matrix with metadata.

    Attributes:
        X: (n, p) float64 design matrix
        column_names: label of every column
        term_names: ordered model terms ('Intercept', 'age', 'genotype',
            'genotype:treatment', ...)
        term_slices: term name -> column slice in X
        factor_levels: factor name -> declared level order
        covariates: names of continuous columns in the model
        has_intercept: whether a column of ones is present
        coding: 'reference' when an intercept absorbs the baseline level,
            'means' when the first factor has one column per level
        formula: the formula this matrix was built from, if any
        sample_ids: row labels
    """
    X: NDArray[np.floating[Any]]
    column_names: tuple[str, ...]
    term_names: tuple[str, ...]
    term_slices: dict[str, slice]
    factor_levels: dict[str, list[str]]
    covariates: tuple[str, ...]
    has_intercept: bool
    coding: str
    formula: str | None = None
    sample_ids: tuple[str, ...] | None = None
    design_info: Any = field(default=None, repr=False, compare=False)
    _spec: dict[str, Any] | None = field(default=None, repr=False, compare=False)

    @property
    def n(self) -> int:
        return self.X.shape[0]

    @property
    def p(self) -> int:
        return self.X.shape[1]

    @property
    def rank(self) -> int:
        """Numerical column rank of X."""
        return qr_decompose(self.X).rank

    @property
    def is_full_rank(self) -> bool:
        return self.p <= self.n and self.rank == self.p

    def term_columns(self, term: str) -> list[str]:
        """Column names belonging to one model term."""
        if term not in self.term_slices:
            raise ValidationError(
                f"No term {term!r}. Terms: {list(self.term_names)}"
            )
        return list(self.column_names[self.term_slices[term]])

    def to_frame(self) -> pd.DataFrame:
        """The design matrix as a DataFrame indexed by sample id."""
        index = list(self.sample_ids) if self.sample_ids is not None else None
        return pd.DataFrame(self.X, index=index, columns=list(self.column_names))

    def rows_for(self, frame: pd.DataFrame) -> NDArray[np.floating[Any]]:
        """
        Build design-matrix rows for new data.

        Args:
            frame: DataFrame holding every factor and covariate the model uses

        Returns:
            (m, p) float64 matrix with the same columns as X
        """
        if self.design_info is not None:
            import patsy

            try:
                (rows,) = patsy.build_design_matrices(
                    [self.design_info], frame, NA_action='raise'
                )
            except patsy.PatsyError as e:
                raise ValidationError(f"cannot build rows for new data: {e}") from e
            return np.asarray(rows, dtype=np.float64)

        if self._spec is None:
            raise ValidationError(
                "ModelMatrix was built from raw arrays and cannot encode new data"
            )
        missing = [
            c for c in list(self.factor_levels) + list(self.covariates)
            if c not in frame.columns
        ]
        if missing:
            raise ValidationError(f"new data is missing columns {missing}")
        mm = build_model_matrix(
            {name: frame[name].astype(str).tolist() for name in self.factor_levels},
            levels=self.factor_levels,
            covariates={name: frame[name].to_numpy() for name in self.covariates},
            **self._spec,
        )
        return mm.X

    def __repr__(self) -> str:
        return (
            f"ModelMatrix(n={self.n}, p={self.p}, coding={self.coding!r}, "
            f"columns={list(self.column_names)})"
        )


def build_model_matrix(
    factors: Mapping[str, Sequence[Any]],
    *,
    levels: Mapping[str, Sequence[str]] | None = None,
    covariates: Mapping[str, ArrayLike] | None = None,
    coding: Coding = 'reference',
    include_intercept: bool = True,
    interactions: Sequence[tuple[str, str]] = (),
    sample_ids: Sequence[str] | None = None,
) -> ModelMatrix:
    """
    Build a design matrix from categorical factors and optional covariates.

    Column layout: intercept (if requested), then each factor in the order
    given, then each covariate, then each interaction.

    With coding='reference' every factor drops its first declared level.
    With coding='means' the first factor gets one column per level; when
    include_intercept is False the remaining factors are reference coded
    (otherwise the matrix could never be full rank). Asking for means
    coding together with an intercept gives every factor a full set of
    indicators, which is rank-deficient by construction; fitting it raises
    SingularMatrixError.

    Args:
        factors: {name: 1D labels}
        levels: {name: declared level order}; default sorted unique labels
        covariates: {name: 1D numeric values}
        coding: 'reference' or 'means'
        include_intercept: whether to prepend an intercept column
        interactions: (factor_or_covariate_a, factor_or_covariate_b) pairs
        sample_ids: row labels

    Returns:
        ModelMatrix
    """
    if coding not in ('reference', 'means'):
        raise ValidationError(f"coding must be 'reference' or 'means', got {coding!r}")
    if not factors and not covariates and not include_intercept:
        raise ValidationError("model has no columns")

    levels = dict(levels or {})
    covariates = dict(covariates or {})

    lengths = {name: len(values) for name, values in factors.items()}
    lengths.update({name: len(np.atleast_1d(values)) for name, values in covariates.items()})
    if len(set(lengths.values())) > 1:
        details = ", ".join(f"{k}={v}" for k, v in lengths.items())
        raise DimensionError(f"Inconsistent lengths: {details}")
    if lengths:
        n = next(iter(lengths.values()))
    elif sample_ids is not None:
        n = len(sample_ids)
    else:
        raise ValidationError("cannot infer the number of rows of an intercept-only model")

    columns: list[NDArray] = []
    column_names: list[str] = []
    term_slices: dict[str, slice] = {}
    term_names: list[str] = []
    factor_levels: dict[str, list[str]] = {}
    col_offset = 0

    def add_term(name: str, block: NDArray, labels: list[str]) -> None:
        nonlocal col_offset
        ncols = block.shape[1]
        columns.append(block)
        column_names.extend(labels)
        term_slices[name] = slice(col_offset, col_offset + ncols)
        term_names.append(name)
        col_offset += ncols

    if include_intercept:
        add_term(INTERCEPT, np.ones((n, 1), dtype=np.float64), [INTERCEPT])

    blocks: dict[str, tuple[NDArray, list[str]]] = {}

    for i, (name, values) in enumerate(factors.items()):
        labels = [str(v) for v in values]
        level_list = [str(lv) for lv in levels.get(name, sorted(set(labels)))]
        check_levels(labels, level_list, name)
        factor_levels[name] = level_list

        full = coding == 'means' and (include_intercept or i == 0)
        if full:
            X_coded, coded = encode_means(labels, level_list)
            col_labels = means_labels(name, coded)
        else:
            X_coded, coded, _ = encode_reference(labels, level_list)
            col_labels = reference_labels(name, coded)
        blocks[name] = (X_coded, col_labels)
        add_term(name, X_coded, col_labels)

    for name, values in covariates.items():
        cov = check_array(values, name).reshape(-1, 1)
        check_finite(cov, name)
        blocks[name] = (cov, [name])
        add_term(name, cov, [name])

    for name_a, name_b in interactions:
        for name in (name_a, name_b):
            if name not in blocks:
                raise ValidationError(
                    f"interaction {name_a}:{name_b} refers to unknown term {name!r}"
                )
        X_a, labels_a = blocks[name_a]
        X_b, labels_b = blocks[name_b]
        add_term(
            f"{name_a}:{name_b}",
            interaction_columns(X_a, X_b),
            interaction_labels(labels_a, labels_b),
        )

    X = np.hstack(columns)

    return ModelMatrix(
        X=X,
        column_names=tuple(column_names),
        term_names=tuple(term_names),
        term_slices=term_slices,
        factor_levels=factor_levels,
        covariates=tuple(covariates),
        has_intercept=include_intercept,
        coding=coding,
        sample_ids=tuple(str(s) for s in sample_ids) if sample_ids is not None else None,
        _spec={
            'coding': coding,
            'include_intercept': include_intercept,
            'interactions': tuple(interactions),
        },
    )


def from_arrays(
    X: ArrayLike,
    column_names: Sequence[str] | None = None,
) -> ModelMatrix:
    """
    Wrap a raw numeric matrix as a ModelMatrix.

    Each column becomes its own term. The matrix cannot encode new data.
    """
    X_arr = check_array(X, 'X')
    if X_arr.ndim == 1:
        X_arr = X_arr.reshape(-1, 1)
    check_2d(X_arr, 'X')
    p = X_arr.shape[1]
    if column_names is None:
        column_names = [f"x{j}" for j in range(p)]
    elif len(column_names) != p:
        raise DimensionError(
            f"column_names: got {len(column_names)} names for {p} columns"
        )
    names = tuple(str(c) for c in column_names)
    has_intercept = bool(p and np.all(X_arr[:, 0] == 1.0))
    return ModelMatrix(
        X=X_arr,
        column_names=names,
        term_names=names,
        term_slices={name: slice(j, j + 1) for j, name in enumerate(names)},
        factor_levels={},
        covariates=(),
        has_intercept=has_intercept,
        coding='reference' if has_intercept else 'means',
    )
