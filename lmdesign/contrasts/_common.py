"""
Common data types for contrasts and marginal means.

Frozen parameter payloads that go inside Result[P] envelopes.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class ContrastRow:
    """One estimated linear combination c'β and its test against `null`."""
    label: str
    estimate: float
    se: float
    df: int
    t_value: float
    p_value: float
    ci_lower: float
    ci_upper: float
    null: float = 0.0


@dataclass(frozen=True)
class JointTest:
    """Wald F-test that all rows of a contrast matrix equal their null values."""
    f_value: float
    df_num: int
    df_den: int
    p_value: float


@dataclass(frozen=True)
class ContrastParams:
    """
    Parameter payload for a set of contrasts.

    L holds one contrast vector per row, in the coefficient order of
    `column_names`.
    """
    rows: tuple[ContrastRow, ...]
    L: NDArray[np.floating[Any]]
    column_names: tuple[str, ...]
    conf_level: float
    adjust: str
    joint: JointTest | None


@dataclass(frozen=True)
class MarginalMean:
    """Model-predicted mean for one level (or level combination)."""
    level: str
    estimate: float
    se: float
    df: int
    ci_lower: float
    ci_upper: float


@dataclass(frozen=True)
class MarginalParams:
    """
    Parameter payload for marginal means.

    Row i of L averages the reference-grid rows belonging to means[i].
    """
    factors: tuple[str, ...]
    means: tuple[MarginalMean, ...]
    L: NDArray[np.floating[Any]]
    column_names: tuple[str, ...]
    conf_level: float
    at: dict[str, float]
