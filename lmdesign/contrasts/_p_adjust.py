"""
Multiple testing correction matching R's p.adjust().

Methods: holm, hochberg, hommel, bonferroni, BH, BY, fdr (alias for BH), none.
Used when a family of contrasts (pairwise differences, treatments vs.
control) is tested at once.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray, ArrayLike

from lmdesign.core.exceptions import ValidationError

VALID_METHODS = (
    "holm", "hochberg", "hommel", "bonferroni", "BH", "BY", "fdr", "none"
)


def p_adjust(
    p: ArrayLike,
    method: str = "holm",
    n: int | None = None,
) -> NDArray[np.floating]:
    """
    Adjust p-values for multiple comparisons. Matches R p.adjust().

    Parameters
    ----------
    p : array-like
        Vector of p-values.
    method : str
        One of VALID_METHODS.
    n : int or None
        Number of comparisons. Default len(p).

    Returns
    -------
    ndarray
        Adjusted p-values clipped to [0, 1]. NaN stays NaN.
    """
    if method not in VALID_METHODS:
        raise ValidationError(
            f"method must be one of {VALID_METHODS}, got {method!r}"
        )

    p_arr = np.asarray(p, dtype=np.float64).ravel()
    n_valid = int(np.sum(~np.isnan(p_arr)))
    n_tests = n_valid if n is None else n
    if n is not None and n < n_valid:
        raise ValidationError(f"n ({n}) must be >= number of p-values ({n_valid})")

    result = p_arr.copy()
    if method == "none" or n_valid == 0:
        return result

    valid_idx = np.flatnonzero(~np.isnan(p_arr))
    pv = p_arr[valid_idx]

    if method == "bonferroni":
        adjusted = pv * n_tests
    elif method == "holm":
        adjusted = _step_down(pv, n_tests)
    elif method == "hochberg":
        adjusted = _step_up(pv, _hochberg_multipliers(len(pv), n_tests))
    elif method == "hommel":
        adjusted = _hommel(pv, n_tests)
    elif method in ("BH", "fdr"):
        adjusted = _step_up(pv, n_tests / np.arange(len(pv), 0, -1, dtype=np.float64))
    else:  # BY
        cm = np.sum(1.0 / np.arange(1, n_tests + 1, dtype=np.float64))
        adjusted = _step_up(pv, cm * n_tests / np.arange(len(pv), 0, -1, dtype=np.float64))

    result[valid_idx] = np.clip(adjusted, 0.0, 1.0)
    return result


def _step_down(pv: NDArray, n: int) -> NDArray:
    """Holm: ascending p times (n - rank + 1), cumulative max."""
    order = np.argsort(pv)
    multipliers = np.arange(n, n - len(pv), -1, dtype=np.float64)
    adjusted_sorted = np.maximum.accumulate(pv[order] * multipliers)
    result = np.empty(len(pv), dtype=np.float64)
    result[order] = adjusted_sorted
    return result


def _hochberg_multipliers(lp: int, n: int) -> NDArray:
    """Multipliers for p-values sorted descending: n - i + 1 for i = lp..1."""
    return np.arange(n - lp + 1, n + 1, dtype=np.float64)


def _step_up(pv: NDArray, multipliers: NDArray) -> NDArray:
    """
    Shared step-up procedure.

    `multipliers` apply to the p-values sorted in descending order; the
    adjusted sequence is then made monotone with a cumulative min.
    """
    order = np.argsort(pv)[::-1]
    adjusted_sorted = np.minimum.accumulate(pv[order] * multipliers)
    result = np.empty(len(pv), dtype=np.float64)
    result[order] = adjusted_sorted
    return result


def _hommel(pv: NDArray, n: int) -> NDArray:
    """
    Hommel's method, following the loop in R's stats::p.adjust.

    When n exceeds the number of p-values the list is padded with ones.
    """
    lp = len(pv)
    if n == 1:
        return pv.copy()

    work = np.ones(n, dtype=np.float64)
    work[:lp] = pv
    order = np.argsort(work, kind='stable')
    sp = work[order]
    ranks = np.arange(1, n + 1, dtype=np.float64)

    q = np.full(n, np.min(n * sp / ranks))
    pa = q.copy()
    for m in range(n - 1, 1, -1):
        head = n - m + 1
        q1 = np.min(m * sp[head:] / np.arange(2, m + 1, dtype=np.float64))
        q[:head] = np.minimum(m * sp[:head], q1)
        q[head:] = q[head - 1]
        pa = np.maximum(pa, q)

    combined = np.maximum(pa, sp)
    unsorted = np.empty(n, dtype=np.float64)
    unsorted[order] = combined
    return unsorted[:lp]
