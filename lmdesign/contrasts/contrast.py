"""
Linear contrasts of fitted coefficients.

A contrast is a weight vector c over the model coefficients. Its estimate
is c'β, its standard error sqrt(c' V c) with V the coefficient covariance
matrix, and it is tested with Student's t on the model's residual degrees
of freedom. Several contrasts stack into a matrix L and can additionally be
tested jointly with a Wald F statistic.

Contrasts can be written as
    - a weight vector or matrix in coefficient order
    - a {column name: weight} mapping, or {label: mapping/vector} for several
    - a string over column names, parsed by patsy:
        "genotype[mutant] - genotype[wildtype]"
        "treatment[T.drugA] - treatment[T.drugB] = 0"
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from numbers import Real
from typing import Any, TYPE_CHECKING, Union

import numpy as np
import patsy
from numpy.typing import ArrayLike, NDArray
from scipy import stats as sp_stats

from lmdesign.core.exceptions import DimensionError, ValidationError
from lmdesign.core.result import Result
from lmdesign.core.tolerances import DEFAULT_CONF_LEVEL, DEFAULT_CONTRAST_ADJUST
from lmdesign.core.validation import check_conf_level, check_finite
from lmdesign.contrasts._common import ContrastParams, ContrastRow, JointTest
from lmdesign.contrasts._p_adjust import VALID_METHODS, p_adjust
from lmdesign.contrasts.solution import ContrastSolution

if TYPE_CHECKING:
    from lmdesign.regression.solution import LinearSolution

ContrastSpec = Union[str, Sequence[str], Mapping[str, Any], ArrayLike]


def contrast_matrix(
    spec: ContrastSpec,
    column_names: Sequence[str],
) -> tuple[NDArray[np.floating[Any]], list[str], NDArray[np.floating[Any]]]:
    """
    Turn a contrast specification into (L, labels, null values).

    Args:
        spec: See module docstring
        column_names: Coefficient names, in coefficient order

    Returns:
        L: (k, p) weights
        labels: k row labels
        null: (k,) hypothesised values (zero unless a string says "= c")

    Raises:
        ValidationError: Unknown column names or an unparseable expression
        DimensionError: Weight vectors of the wrong width
    """
    names = list(column_names)
    p = len(names)

    if isinstance(spec, str) or (
        isinstance(spec, Sequence) and spec and all(isinstance(s, str) for s in spec)
    ):
        exprs = [spec] if isinstance(spec, str) else list(spec)
        try:
            constraint = patsy.DesignInfo(names).linear_constraint(exprs)
        except patsy.PatsyError as e:
            raise ValidationError(f"cannot parse contrast {spec!r}: {e}") from e
        return (
            np.asarray(constraint.coefs, dtype=np.float64),
            [_strip_equals_zero(e) for e in exprs],
            np.asarray(constraint.constants, dtype=np.float64).ravel(),
        )

    if isinstance(spec, Mapping):
        if all(isinstance(v, Real) for v in spec.values()):
            row = _weights_from_mapping(spec, names)
            return row[None, :], [describe_weights(row, names)], np.zeros(1)
        rows, labels = [], []
        for label, weights in spec.items():
            if isinstance(weights, Mapping):
                rows.append(_weights_from_mapping(weights, names))
            else:
                rows.append(_weights_from_vector(weights, p, str(label)))
            labels.append(str(label))
        return np.vstack(rows), labels, np.zeros(len(rows))

    L = np.asarray(spec, dtype=np.float64)
    if L.ndim == 1:
        L = L[None, :]
    if L.ndim != 2 or L.shape[1] != p:
        raise DimensionError(
            f"contrast: expected {p} weights per row (one per coefficient), got shape {L.shape}"
        )
    check_finite(L, 'contrast')
    return L, [describe_weights(row, names) for row in L], np.zeros(L.shape[0])


def describe_weights(weights: NDArray[np.floating[Any]], names: Sequence[str]) -> str:
    """Readable label such as 'b - a' or '0.5*b + 0.5*c - a'."""
    parts: list[str] = []
    for w, name in zip(weights, names):
        if w == 0:
            continue
        sign = '-' if w < 0 else '+'
        mag = abs(w)
        term = name if np.isclose(mag, 1.0) else f"{mag:g}*{name}"
        parts.append(f"{sign} {term}")
    if not parts:
        return "0"
    text = " ".join(parts)
    return text[2:] if text.startswith('+ ') else f"-{text[2:]}"


def contrast(
    solution: LinearSolution,
    L: ContrastSpec,
    *,
    labels: Sequence[str] | None = None,
    conf_level: float = DEFAULT_CONF_LEVEL,
    adjust: str = DEFAULT_CONTRAST_ADJUST,
    joint: bool | None = None,
) -> ContrastSolution:
    """
    Estimate and test linear contrasts of a fitted model.

    Args:
        solution: Fitted LinearSolution
        L: Contrast specification (vector, matrix, mapping or expression)
        labels: Optional row labels overriding the generated ones
        conf_level: Confidence level for the intervals
        adjust: p-value adjustment across rows (see VALID_METHODS)
        joint: Report a joint F-test. Default: when there is more than one row.

    Returns:
        ContrastSolution

    Example:
        >>> sol = lm("expression ~ 0 + genotype", table)
        >>> c = contrast(sol, "genotype[mutant] - genotype[wildtype]")
        >>> c.estimates[0]
    """
    t0 = time.perf_counter()
    check_conf_level(conf_level)
    if adjust not in VALID_METHODS:
        raise ValidationError(f"adjust must be one of {VALID_METHODS}, got {adjust!r}")

    L_mat, row_labels, null = contrast_matrix(L, solution.column_names)
    if labels is not None:
        if len(labels) != L_mat.shape[0]:
            raise DimensionError(
                f"labels: got {len(labels)} labels for {L_mat.shape[0]} contrasts"
            )
        row_labels = [str(lb) for lb in labels]

    return evaluate_contrasts(
        solution,
        L_mat,
        row_labels,
        null=null,
        conf_level=conf_level,
        adjust=adjust,
        joint=L_mat.shape[0] > 1 if joint is None else joint,
        t0=t0,
    )


def term_test(solution: LinearSolution, term: str) -> ContrastSolution:
    """
    Joint F-test that every coefficient of one model term is zero.

    For a factor term this asks whether the factor matters at all, e.g.
    term_test(sol, 'tissue').

    Returns:
        ContrastSolution with one row per coefficient and the F-test in .joint
    """
    names = solution.model_matrix.term_columns(term)
    L_mat = np.zeros((len(names), len(solution.column_names)))
    for i, name in enumerate(names):
        L_mat[i, solution.column_names.index(name)] = 1.0
    return evaluate_contrasts(solution, L_mat, names, joint=True, info={'term': term})


def evaluate_contrasts(
    solution: LinearSolution,
    L: NDArray[np.floating[Any]],
    labels: Sequence[str],
    *,
    null: NDArray[np.floating[Any]] | None = None,
    conf_level: float = DEFAULT_CONF_LEVEL,
    adjust: str = 'none',
    family_size: int | None = None,
    joint: bool = False,
    info: dict[str, Any] | None = None,
    t0: float | None = None,
) -> ContrastSolution:
    """
    Core contrast computation shared by every comparison family.

    Besides the p.adjust methods, adjust='tukey' uses the studentized range
    distribution over `family_size` means (for pairwise differences).
    """
    t0 = time.perf_counter() if t0 is None else t0
    k = L.shape[0]
    null = np.zeros(k) if null is None else null
    family_size = k if family_size is None else family_size

    beta = solution.coefficients
    V = solution.vcov
    df = solution.df_residual

    estimates = L @ beta
    cov = L @ V @ L.T
    se = np.sqrt(np.clip(np.diag(cov), 0.0, None))
    with np.errstate(divide='ignore', invalid='ignore'):
        t_values = (estimates - null) / se

    run_warnings: list[str] = []
    if df <= 0:
        run_warnings.append("No residual degrees of freedom: tests are undefined")
        p_raw = np.full(k, np.nan)
        crit = float('nan')
        p_values = p_raw
    else:
        p_raw = 2.0 * sp_stats.t.sf(np.abs(t_values), df)
        alpha = 1.0 - conf_level
        if adjust == 'tukey':
            p_values = np.minimum(
                sp_stats.studentized_range.sf(np.abs(t_values) * np.sqrt(2.0), family_size, df),
                1.0,
            )
            crit = float(sp_stats.studentized_range.ppf(conf_level, family_size, df)) / np.sqrt(2.0)
        else:
            p_values = p_adjust(p_raw, method=adjust)
            if adjust == 'bonferroni':
                crit = float(sp_stats.t.ppf(1.0 - alpha / (2.0 * k), df))
            else:
                crit = float(sp_stats.t.ppf(1.0 - alpha / 2.0, df))

    rows = tuple(
        ContrastRow(
            label=labels[i],
            estimate=float(estimates[i]),
            se=float(se[i]),
            df=int(df),
            t_value=float(t_values[i]) if np.isfinite(t_values[i]) else float('nan'),
            p_value=float(p_values[i]),
            ci_lower=float(estimates[i] - crit * se[i]),
            ci_upper=float(estimates[i] + crit * se[i]),
            null=float(null[i]),
        )
        for i in range(k)
    )

    joint_test = _wald_f(estimates - null, cov, df) if joint else None

    params = ContrastParams(
        rows=rows,
        L=L,
        column_names=tuple(solution.column_names),
        conf_level=conf_level,
        adjust=adjust,
        joint=joint_test,
    )
    result = Result(
        params=params,
        info={'adjust': adjust, 'family_size': family_size, **(info or {})},
        timing={'total_seconds': time.perf_counter() - t0},
        backend_name='cpu',
        warnings=tuple(run_warnings),
    )
    return ContrastSolution(_result=result)


def _wald_f(
    diff: NDArray[np.floating[Any]],
    cov: NDArray[np.floating[Any]],
    df_den: int,
) -> JointTest:
    """
    F = d' (L V L')⁺ d / q with q = rank(L V L').

    Linearly dependent rows (e.g. all pairwise differences of three means)
    only count once towards q.
    """
    if df_den <= 0 or not np.all(np.isfinite(cov)):
        return JointTest(f_value=float('nan'), df_num=len(diff), df_den=df_den, p_value=float('nan'))
    q = int(np.linalg.matrix_rank(cov))
    if q == 0:
        return JointTest(f_value=float('nan'), df_num=0, df_den=df_den, p_value=float('nan'))
    f_value = float(diff @ np.linalg.pinv(cov) @ diff) / q
    p_value = float(sp_stats.f.sf(f_value, q, df_den))
    return JointTest(f_value=f_value, df_num=q, df_den=df_den, p_value=p_value)


def _weights_from_mapping(weights: Mapping[str, Any], names: list[str]) -> NDArray[np.floating[Any]]:
    unknown = [k for k in weights if k not in names]
    if unknown:
        raise ValidationError(
            f"contrast refers to unknown coefficients {unknown}. Coefficients: {names}"
        )
    row = np.zeros(len(names), dtype=np.float64)
    for name, w in weights.items():
        row[names.index(name)] = float(w)
    return row


def _weights_from_vector(weights: ArrayLike, p: int, label: str) -> NDArray[np.floating[Any]]:
    row = np.asarray(weights, dtype=np.float64).ravel()
    if row.shape[0] != p:
        raise DimensionError(f"contrast {label!r}: expected {p} weights, got {row.shape[0]}")
    return row


def _strip_equals_zero(expr: str) -> str:
    text = expr.strip()
    if text.replace(' ', '').endswith('=0'):
        return text[:text.rindex('=')].strip()
    return text
