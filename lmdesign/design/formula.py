"""
Formula interface.

Turns an R-style model formula plus a SampleTable into a ModelMatrix, using
patsy for parsing and column construction:

    ~ age                       intercept + covariate
    ~ genotype                  intercept + k-1 indicators (reference coding)
    ~ 0 + genotype              one indicator per level (means coding)
    ~ genotype * treatment      main effects + interaction products
    ~ condition + batch + age   factor of interest + nuisance terms

Factor columns reach patsy as pandas Categoricals, so the table's declared
level order decides the reference level. A left-hand side
(`expression ~ genotype`) names the response; model_matrix() ignores it and
lm() uses it.
"""

from __future__ import annotations

import patsy

from lmdesign.core.exceptions import FormulaError
from lmdesign.core.table import SampleTable
from lmdesign.design.model_matrix import INTERCEPT, ModelMatrix


def split_formula(formula: str) -> tuple[str | None, str]:
    """
    Split a formula into (response name or None, right-hand side formula).

    The returned right-hand side always starts with '~'.

    Raises:
        FormulaError: If there is no '~' or more than one
    """
    if formula.count('~') != 1:
        raise FormulaError(
            f"formula must contain exactly one '~', got {formula!r}", formula=formula
        )
    lhs, rhs = formula.split('~')
    lhs = lhs.strip()
    if not rhs.strip():
        raise FormulaError(f"formula has an empty right-hand side: {formula!r}", formula=formula)
    return (lhs or None), f"~ {rhs.strip()}"


def model_matrix(formula: str, table: SampleTable) -> ModelMatrix:
    """
    Build the design matrix for a formula.

    Args:
        formula: R-style formula; a left-hand side is allowed and ignored
        table: SampleTable holding every variable the formula mentions

    Returns:
        ModelMatrix with patsy column names and term slices

    Raises:
        FormulaError: If the formula cannot be parsed or references
            columns the table does not have

    Example:
        >>> mm = model_matrix("~ genotype", table)
        >>> mm.column_names
        ('Intercept', 'genotype[T.mutant]')
    """
    _, rhs = split_formula(formula)
    frame = table.frame

    try:
        dm = patsy.dmatrix(rhs, frame, NA_action='raise', return_type='dataframe')
    except patsy.PatsyError as e:
        raise FormulaError(f"cannot build design matrix for {formula!r}: {e}", formula=formula) from e

    design_info = dm.design_info
    column_names = tuple(design_info.column_names)
    term_slices = dict(design_info.term_name_slices)

    used = _variables(design_info)
    factor_levels = {
        name: table.factor_levels(name) for name in table.factor_names if name in used
    }
    covariates = tuple(name for name in table.covariate_names if name in used)
    has_intercept = INTERCEPT in column_names

    return ModelMatrix(
        X=dm.to_numpy(dtype=float),
        column_names=column_names,
        term_names=tuple(term_slices),
        term_slices=term_slices,
        factor_levels=factor_levels,
        covariates=covariates,
        has_intercept=has_intercept,
        coding='reference' if has_intercept else 'means',
        formula=formula,
        sample_ids=tuple(table.sample_ids),
        design_info=design_info,
    )


def _variables(design_info: patsy.DesignInfo) -> set[str]:
    """Names of the data columns a design refers to."""
    names: set[str] = set()
    for factor in design_info.factor_infos:
        names.update(factor.code.replace('(', ' ').replace(')', ' ').replace(',', ' ').split())
    return names
