"""
Marginal predictions (estimated marginal means) and comparisons among them.

The reference grid holds every combination of factor levels in the model,
with covariates fixed (at their sample mean unless given). The marginal
mean of a level is the model prediction averaged, with equal weight, over
the grid rows carrying that level. Each marginal mean is therefore a
linear contrast l'β, and differences between means are differences of the
corresponding l vectors, so all of them reuse the contrast machinery.
"""

from __future__ import annotations

import itertools
import time
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd
from scipy import stats as sp_stats

from lmdesign.core.exceptions import ValidationError
from lmdesign.core.result import Result
from lmdesign.core.tolerances import (
    DEFAULT_CONF_LEVEL,
    DEFAULT_PAIRWISE_ADJUST,
    DEFAULT_TRT_VS_CTRL_ADJUST,
)
from lmdesign.core.validation import check_conf_level
from lmdesign.contrasts._common import MarginalMean, MarginalParams
from lmdesign.contrasts._p_adjust import VALID_METHODS
from lmdesign.contrasts.contrast import evaluate_contrasts
from lmdesign.contrasts.solution import ContrastSolution, MarginalMeansSolution

if TYPE_CHECKING:
    from lmdesign.regression.solution import LinearSolution

COMPARISON_METHODS = VALID_METHODS + ('tukey',)


def reference_grid(
    solution: LinearSolution,
    at: Mapping[str, float] | None = None,
) -> pd.DataFrame:
    """
    Every combination of the model's factor levels.

    Args:
        solution: Fitted LinearSolution
        at: Covariate values to hold fixed. Covariates not listed are held
            at their sample mean, which needs the fit's SampleTable.

    Returns:
        DataFrame with one Categorical column per factor (declared level
        order) and one constant column per covariate
    """
    mm = solution.model_matrix
    covariate_values = _covariate_values(solution, at)

    factor_names = list(mm.factor_levels)
    combos = list(itertools.product(*(mm.factor_levels[f] for f in factor_names)))
    grid = pd.DataFrame(
        {
            name: pd.Categorical(
                [combo[i] for combo in combos], categories=mm.factor_levels[name]
            )
            for i, name in enumerate(factor_names)
        },
        index=range(len(combos)),
    )
    for name, value in covariate_values.items():
        grid[name] = float(value)
    return grid


def marginal_means(
    solution: LinearSolution,
    factors: str | Sequence[str],
    *,
    at: Mapping[str, float] | None = None,
    conf_level: float = DEFAULT_CONF_LEVEL,
) -> MarginalMeansSolution:
    """
    Estimated marginal means for one factor or a combination of factors.

    Args:
        solution: Fitted LinearSolution built from a formula or a
            ModelMatrix that can encode new rows
        factors: Factor name, or several names for cell means
        at: Covariate values (default: sample means)
        conf_level: Confidence level for the intervals

    Returns:
        MarginalMeansSolution, one mean per level (or level combination)

    Example:
        >>> sol = lm("expression ~ genotype + treatment", table)
        >>> emm = marginal_means(sol, 'treatment')
        >>> print(emm.summary())
        >>> print(emm.pairwise().summary())
    """
    t0 = time.perf_counter()
    check_conf_level(conf_level)

    mm = solution.model_matrix
    factor_list = [factors] if isinstance(factors, str) else list(factors)
    if not factor_list:
        raise ValidationError("factors: at least one factor is required")
    for name in factor_list:
        if name not in mm.factor_levels:
            raise ValidationError(
                f"{name!r} is not a factor of the model. Factors: {list(mm.factor_levels)}"
            )

    grid = reference_grid(solution, at)
    Xg = mm.rows_for(grid)

    rows: list[np.ndarray] = []
    labels: list[str] = []
    for combo in itertools.product(*(mm.factor_levels[f] for f in factor_list)):
        mask = np.ones(len(grid), dtype=bool)
        for name, level in zip(factor_list, combo):
            mask &= (grid[name].astype(str) == level).to_numpy()
        rows.append(Xg[mask].mean(axis=0))
        labels.append(":".join(combo))
    L = np.vstack(rows)

    estimates = L @ solution.coefficients
    se = np.sqrt(np.clip(np.diag(L @ solution.vcov @ L.T), 0.0, None))
    df = solution.df_residual
    if df > 0:
        crit = float(sp_stats.t.ppf(0.5 + conf_level / 2.0, df))
    else:
        crit = float('nan')

    means = tuple(
        MarginalMean(
            level=labels[i],
            estimate=float(estimates[i]),
            se=float(se[i]),
            df=int(df),
            ci_lower=float(estimates[i] - crit * se[i]),
            ci_upper=float(estimates[i] + crit * se[i]),
        )
        for i in range(len(labels))
    )

    held = {name: float(grid[name].iloc[0]) for name in mm.covariates}
    params = MarginalParams(
        factors=tuple(factor_list),
        means=means,
        L=L,
        column_names=tuple(solution.column_names),
        conf_level=conf_level,
        at=held,
    )
    result = Result(
        params=params,
        info={
            'averaged_over': [f for f in mm.factor_levels if f not in factor_list],
            'grid_size': len(grid),
        },
        timing={'total_seconds': time.perf_counter() - t0},
        backend_name='cpu',
        warnings=solution.warnings,
    )
    return MarginalMeansSolution(_result=result, _solution=solution)


def pairwise(
    emm: MarginalMeansSolution,
    adjust: str | None = None,
) -> ContrastSolution:
    """
    All pairwise differences between marginal means.

    Each row is a later level minus an earlier level in declared order
    ('mutant - wildtype'), so with two levels it equals the reference-coded
    coefficient.

    Args:
        emm: Marginal means
        adjust: 'tukey' (default) or any p.adjust method

    Returns:
        ContrastSolution with k(k-1)/2 rows and a joint F-test
    """
    adjust = DEFAULT_PAIRWISE_ADJUST if adjust is None else adjust
    _check_adjust(adjust)
    levels = emm.levels
    k = len(levels)
    if k < 2:
        raise ValidationError(f"pairwise comparisons need at least 2 levels, got {k}")

    rows, labels = [], []
    for i, j in itertools.combinations(range(k), 2):
        rows.append(emm.L[j] - emm.L[i])
        labels.append(f"{levels[j]} - {levels[i]}")

    return evaluate_contrasts(
        emm.solution,
        np.vstack(rows),
        labels,
        conf_level=emm.conf_level,
        adjust=adjust,
        family_size=k,
        joint=True,
        info={'family': 'pairwise', 'factors': list(emm.factors)},
    )


def treatment_vs_control(
    emm: MarginalMeansSolution,
    control: str | None = None,
    adjust: str | None = None,
) -> ContrastSolution:
    """
    Every level minus the control level.

    Args:
        emm: Marginal means
        control: Control level. Default: the first (reference) level.
        adjust: p.adjust method (default 'holm')
    """
    adjust = DEFAULT_TRT_VS_CTRL_ADJUST if adjust is None else adjust
    _check_adjust(adjust)
    ctrl = _control_index(emm, control)
    levels = emm.levels

    rows, labels = [], []
    for i, level in enumerate(levels):
        if i == ctrl:
            continue
        rows.append(emm.L[i] - emm.L[ctrl])
        labels.append(f"{level} - {levels[ctrl]}")

    return evaluate_contrasts(
        emm.solution,
        np.vstack(rows),
        labels,
        conf_level=emm.conf_level,
        adjust=adjust,
        family_size=len(rows) + 1 if adjust == 'tukey' else len(rows),
        info={'family': 'trt.vs.ctrl', 'control': levels[ctrl]},
    )


def average_vs_control(
    emm: MarginalMeansSolution,
    control: str | None = None,
) -> ContrastSolution:
    """
    Average of all other levels minus the control level.

    The weights over the marginal means, 1/(k-1) for each treatment and -1
    for the control, sum to zero.
    """
    ctrl = _control_index(emm, control)
    k = len(emm.levels)
    if k < 2:
        raise ValidationError(f"need at least 2 levels, got {k}")
    weights = np.full(k, 1.0 / (k - 1))
    weights[ctrl] = -1.0
    L = (weights @ emm.L)[None, :]
    label = f"avg({', '.join(lv for i, lv in enumerate(emm.levels) if i != ctrl)}) - {emm.levels[ctrl]}"
    return evaluate_contrasts(
        emm.solution,
        L,
        [label],
        conf_level=emm.conf_level,
        info={'family': 'average.vs.ctrl', 'control': emm.levels[ctrl], 'weights': weights},
    )


def _control_index(emm: MarginalMeansSolution, control: str | None) -> int:
    if control is None:
        return 0
    if control not in emm.levels:
        raise ValidationError(f"control {control!r} is not one of {emm.levels}")
    return emm.levels.index(control)


def _check_adjust(adjust: str) -> None:
    if adjust not in COMPARISON_METHODS:
        raise ValidationError(f"adjust must be one of {COMPARISON_METHODS}, got {adjust!r}")


def _covariate_values(
    solution: LinearSolution,
    at: Mapping[str, float] | None,
) -> dict[str, float]:
    mm = solution.model_matrix
    at = dict(at or {})
    unknown = sorted(set(at) - set(mm.covariates))
    if unknown:
        raise ValidationError(
            f"at: {unknown} are not covariates of the model. Covariates: {list(mm.covariates)}"
        )
    values: dict[str, float] = {}
    for name in mm.covariates:
        if name in at:
            values[name] = float(at[name])
        elif solution.table is not None:
            values[name] = float(np.mean(solution.table.column(name)))
        else:
            raise ValidationError(
                f"covariate {name!r}: no value given in `at` and no SampleTable to average"
            )
    return values
