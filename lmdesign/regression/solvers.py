"""
Solver dispatch for regression.

This module provides the fit() and lm() functions (public API) and backend
selection.
"""

from collections.abc import Sequence
from typing import Literal

from numpy.typing import ArrayLike

from lmdesign.core.table import SampleTable
from lmdesign.regression.design import RegressionDesign
from lmdesign.regression.solution import LinearSolution
from lmdesign.regression.backends.cpu import CPUQRBackend


BackendChoice = Literal['auto', 'cpu', 'cpu_qr']


def fit(
    X: ArrayLike | RegressionDesign,
    y: ArrayLike | None = None,
    *,
    column_names: Sequence[str] | None = None,
    backend: BackendChoice = 'auto',
) -> LinearSolution:
    """
    Fit a linear regression model.

    Solves the ordinary least squares problem:
        min_β ||y - Xβ||²

    Args:
        X: Design matrix (n x p), or a prepared RegressionDesign
        y: Response vector (n,). Required unless X is a RegressionDesign.
        column_names: Optional labels for the columns of X
        backend: 'auto', 'cpu' or 'cpu_qr' (all the same QR backend)

    Returns:
        LinearSolution with coefficients, inference and summary methods

    Raises:
        ValidationError: If inputs are invalid
        DimensionError: If X and y have inconsistent dimensions
        SingularMatrixError: If X is rank-deficient

    Example:
        >>> import numpy as np
        >>> from lmdesign.regression import fit
        >>>
        >>> X = np.column_stack([np.ones(4), [0.0, 1.0, 2.0, 3.0]])
        >>> result = fit(X, [1.0, 3.0, 5.0, 7.0], column_names=['Intercept', 'x'])
        >>> print(result.coefficients)   # [1. 2.]
    """
    if isinstance(X, RegressionDesign):
        design = X
    else:
        if y is None:
            raise ValueError("y required when X is not a RegressionDesign")
        design = RegressionDesign.from_arrays(X, y, column_names=column_names)

    backend_impl = _get_backend(backend)
    result = backend_impl.solve(design)
    return LinearSolution(_result=result, _design=design)


def lm(
    formula: str,
    table: SampleTable,
    *,
    backend: BackendChoice = 'auto',
) -> LinearSolution:
    """
    Fit a linear model from a formula.

    Args:
        formula: R-style formula, e.g. "expression ~ genotype" or
            "~ 0 + genotype" (response taken from the table)
        table: SampleTable with the response and explanatory columns

    Returns:
        LinearSolution whose coefficients are named after the design columns

    Raises:
        FormulaError: If the formula cannot be evaluated on the table
        SingularMatrixError: If the design matrix is rank-deficient

    Example:
        >>> sol = lm("expression ~ genotype", table)
        >>> sol.coef['genotype[T.mutant]']
    """
    design = RegressionDesign.from_formula(formula, table)
    return fit(design, backend=backend)


def _get_backend(choice: BackendChoice) -> CPUQRBackend:
    """
    Select and instantiate the appropriate backend.

    Raises:
        ValueError: If unknown backend specified
    """
    if choice in ('auto', 'cpu', 'cpu_qr'):
        return CPUQRBackend()
    raise ValueError(f"Unknown backend: {choice!r}")
