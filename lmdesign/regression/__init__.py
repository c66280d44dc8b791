"""
Linear models fitted by ordinary least squares.

Public API:
    fit(X, y, ...) -> LinearSolution
    lm(formula, table) -> LinearSolution

Both handle:
    - Input validation
    - Design construction
    - Backend selection
    - Result wrapping

Example:
    >>> from lmdesign.regression import lm
    >>> result = lm("expression ~ genotype", table)
    >>> print(result.coef_table())
    >>> print(result.summary())
"""

from lmdesign.regression.design import RegressionDesign
from lmdesign.regression.solution import LinearSolution, LinearParams
from lmdesign.regression.solvers import fit, lm

__all__ = [
    "fit",
    "lm",
    "RegressionDesign",
    "LinearSolution",
    "LinearParams",
]
