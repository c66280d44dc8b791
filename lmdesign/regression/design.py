"""
Regression Design.

A RegressionDesign pairs a ModelMatrix (the explanatory side) with a
response vector. It is what backends consume. Built either from raw arrays
or from a formula evaluated against a SampleTable.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from lmdesign.core.exceptions import FormulaError
from lmdesign.core.table import SampleTable
from lmdesign.core.validation import (
    check_1d,
    check_array,
    check_consistent_length,
    check_finite,
    check_min_samples,
)
from lmdesign.design.formula import model_matrix, split_formula
from lmdesign.design.model_matrix import ModelMatrix, from_arrays


@dataclass(frozen=True)
class RegressionDesign:
    """
    Regression design: model matrix plus response.

    Immutable after construction.

    Construction:
        RegressionDesign.from_arrays(X, y)
        RegressionDesign.from_arrays(X, y, column_names=['Intercept', 'x'])
        RegressionDesign.from_formula("expression ~ genotype", table)
        RegressionDesign.from_model_matrix(mm, y)
    """
    _model_matrix: ModelMatrix
    _y: NDArray[np.floating[Any]]
    _response_name: str | None = None
    _table: SampleTable | None = None

    @classmethod
    def from_arrays(
        cls,
        X: ArrayLike,
        y: ArrayLike,
        *,
        column_names: Sequence[str] | None = None,
    ) -> RegressionDesign:
        """Build a design directly from arrays."""
        return cls.from_model_matrix(from_arrays(X, column_names), y)

    @classmethod
    def from_model_matrix(
        cls,
        mm: ModelMatrix,
        y: ArrayLike,
        *,
        response_name: str | None = None,
        table: SampleTable | None = None,
    ) -> RegressionDesign:
        """Pair an existing ModelMatrix with a response."""
        y_arr = check_array(y, 'y')
        if y_arr.ndim == 2 and y_arr.shape[1] == 1:
            y_arr = y_arr.ravel()
        check_1d(y_arr, 'y')
        check_finite(y_arr, 'y')
        check_finite(mm.X, 'X')
        check_consistent_length(mm.X, y_arr, names=('X', 'y'))
        check_min_samples(y_arr, 1, 'y')
        return cls(
            _model_matrix=mm,
            _y=y_arr,
            _response_name=response_name,
            _table=table,
        )

    @classmethod
    def from_formula(cls, formula: str, table: SampleTable) -> RegressionDesign:
        """
        Build a design from a formula.

        The response is the formula's left-hand side, or the table's
        response column when the formula has none.

        Raises:
            FormulaError: Unknown response or unparseable right-hand side
        """
        lhs, _ = split_formula(formula)
        response_name = lhs if lhs is not None else table.response_name
        if response_name is None:
            raise FormulaError(
                f"formula {formula!r} has no response and the table has none",
                formula=formula,
            )
        if response_name not in table:
            raise FormulaError(
                f"response {response_name!r} is not a column of the table. "
                f"Available: {sorted(table.keys())}",
                formula=formula,
            )
        if response_name in table.factor_names:
            raise FormulaError(
                f"response {response_name!r} is a factor, expected a numeric column",
                formula=formula,
            )
        mm = model_matrix(formula, table)
        return cls.from_model_matrix(
            mm, table.column(response_name), response_name=response_name, table=table
        )

    # === Properties ===

    @property
    def X(self) -> NDArray[np.floating[Any]]:
        """Design matrix (n x p)."""
        return self._model_matrix.X

    @property
    def y(self) -> NDArray[np.floating[Any]]:
        """Response vector (n,)."""
        return self._y

    @property
    def n(self) -> int:
        """Number of observations."""
        return self._model_matrix.n

    @property
    def p(self) -> int:
        """Number of coefficients."""
        return self._model_matrix.p

    @property
    def model_matrix(self) -> ModelMatrix:
        return self._model_matrix

    @property
    def column_names(self) -> tuple[str, ...]:
        return self._model_matrix.column_names

    @property
    def response_name(self) -> str | None:
        return self._response_name

    @property
    def table(self) -> SampleTable | None:
        """Original SampleTable, if the design came from a formula."""
        return self._table
