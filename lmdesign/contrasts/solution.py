"""
User-facing contrast and marginal-means solution types.

Each solution wraps a Result[Params] and provides accessors, a DataFrame
view and an emmeans-style text summary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from lmdesign.core._format import SIGNIF_LEGEND, fmt_num, fmt_p, significance_stars
from lmdesign.core.result import Result
from lmdesign.contrasts._common import (
    ContrastParams,
    ContrastRow,
    JointTest,
    MarginalMean,
    MarginalParams,
)

if TYPE_CHECKING:
    from lmdesign.regression.solution import LinearSolution


# =====================================================================
# ContrastSolution
# =====================================================================


@dataclass
class ContrastSolution:
    """
    Estimated contrasts of a fitted model.

    Produced by contrast(), term_test(), pairwise(), treatment_vs_control()
    and average_vs_control().
    """
    _result: Result[ContrastParams]

    @property
    def rows(self) -> tuple[ContrastRow, ...]:
        return self._result.params.rows

    @property
    def labels(self) -> list[str]:
        return [row.label for row in self.rows]

    @property
    def estimates(self) -> NDArray[np.floating[Any]]:
        return np.array([row.estimate for row in self.rows])

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        return np.array([row.se for row in self.rows])

    @property
    def t_statistics(self) -> NDArray[np.floating[Any]]:
        return np.array([row.t_value for row in self.rows])

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        """p-values after the family's multiple-comparison adjustment."""
        return np.array([row.p_value for row in self.rows])

    @property
    def df(self) -> int:
        return self.rows[0].df

    @property
    def L(self) -> NDArray[np.floating[Any]]:
        """Contrast matrix, one row per contrast."""
        return self._result.params.L

    @property
    def column_names(self) -> tuple[str, ...]:
        return self._result.params.column_names

    @property
    def joint(self) -> JointTest | None:
        """Joint F-test of all rows, when there is more than one."""
        return self._result.params.joint

    @property
    def conf_level(self) -> float:
        return self._result.params.conf_level

    @property
    def adjust(self) -> str:
        return self._result.params.adjust

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def __getitem__(self, label: str) -> ContrastRow:
        for row in self.rows:
            if row.label == label:
                return row
        raise KeyError(f"No contrast {label!r}. Available: {self.labels}")

    def to_frame(self) -> pd.DataFrame:
        """Contrast table indexed by label."""
        return pd.DataFrame(
            {
                'estimate': self.estimates,
                'SE': self.standard_errors,
                'df': [row.df for row in self.rows],
                't.ratio': self.t_statistics,
                'p.value': self.p_values,
                'lower.CL': [row.ci_lower for row in self.rows],
                'upper.CL': [row.ci_upper for row in self.rows],
            },
            index=self.labels,
        )

    def summary(self) -> str:
        """Generate emmeans-style contrast table."""
        width = max(12, max(len(label) for label in self.labels))
        rule = "-" * (width + 66)
        lines = [
            "Linear Contrasts",
            "=" * (width + 66),
            f"{'contrast':<{width}} {'estimate':>10} {'SE':>10} {'df':>5} "
            f"{'t.ratio':>9} {'p.value':>10} {'lower.CL':>9} {'upper.CL':>9}",
            rule,
        ]
        for row in self.rows:
            lines.append(
                f"{row.label:<{width}} {fmt_num(row.estimate, 10, '.4f')} "
                f"{fmt_num(row.se, 10, '.4f')} {row.df:>5} "
                f"{fmt_num(row.t_value, 9, '.3f')} {fmt_p(row.p_value)} "
                f"{fmt_num(row.ci_lower, 9, '.3f')} {fmt_num(row.ci_upper, 9, '.3f')} "
                f"{significance_stars(row.p_value)}".rstrip()
            )
        lines.append(rule)
        lines.append(SIGNIF_LEGEND)
        lines.append(f"Confidence level used: {self.conf_level}")
        if self.adjust != 'none':
            family = self.info.get('family_size', len(self.rows))
            lines.append(f"P value adjustment: {self.adjust} method for {family} estimates")
        if self.joint is not None:
            j = self.joint
            lines.append(
                f"Joint test: F({j.df_num}, {j.df_den}) = "
                f"{fmt_num(j.f_value, 1, '.4f').strip()}, p = {fmt_p(j.p_value, 1).strip()}"
            )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"ContrastSolution(n_contrasts={len(self.rows)}, adjust={self.adjust!r})"


# =====================================================================
# MarginalMeansSolution
# =====================================================================


@dataclass
class MarginalMeansSolution:
    """
    Estimated marginal means of a fitted model.

    Produced by marginal_means(). Comparisons between the means are built
    from its L matrix, so they share the model's covariance.
    """
    _result: Result[MarginalParams]
    _solution: LinearSolution

    @property
    def means(self) -> tuple[MarginalMean, ...]:
        return self._result.params.means

    @property
    def levels(self) -> list[str]:
        return [m.level for m in self.means]

    @property
    def estimates(self) -> NDArray[np.floating[Any]]:
        return np.array([m.estimate for m in self.means])

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        return np.array([m.se for m in self.means])

    @property
    def factors(self) -> tuple[str, ...]:
        return self._result.params.factors

    @property
    def L(self) -> NDArray[np.floating[Any]]:
        return self._result.params.L

    @property
    def at(self) -> dict[str, float]:
        """Covariate values the means are evaluated at."""
        return self._result.params.at

    @property
    def conf_level(self) -> float:
        return self._result.params.conf_level

    @property
    def solution(self) -> LinearSolution:
        return self._solution

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def __getitem__(self, level: str) -> MarginalMean:
        for m in self.means:
            if m.level == level:
                return m
        raise KeyError(f"No level {level!r}. Available: {self.levels}")

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                'emmean': self.estimates,
                'SE': self.standard_errors,
                'df': [m.df for m in self.means],
                'lower.CL': [m.ci_lower for m in self.means],
                'upper.CL': [m.ci_upper for m in self.means],
            },
            index=pd.Index(self.levels, name=":".join(self.factors)),
        )

    def pairwise(self, adjust: str | None = None) -> ContrastSolution:
        from lmdesign.contrasts.marginal import pairwise
        return pairwise(self, adjust=adjust)

    def treatment_vs_control(
        self, control: str | None = None, adjust: str | None = None,
    ) -> ContrastSolution:
        from lmdesign.contrasts.marginal import treatment_vs_control
        return treatment_vs_control(self, control=control, adjust=adjust)

    def average_vs_control(self, control: str | None = None) -> ContrastSolution:
        from lmdesign.contrasts.marginal import average_vs_control
        return average_vs_control(self, control=control)

    def summary(self) -> str:
        """Generate emmeans-style table of marginal means."""
        name = ":".join(self.factors)
        width = max(12, len(name), max(len(level) for level in self.levels))
        rule = "-" * (width + 50)
        lines = [
            f"Estimated Marginal Means: {name}",
            "=" * (width + 50),
            f"{name:<{width}} {'emmean':>10} {'SE':>10} {'df':>5} {'lower.CL':>10} {'upper.CL':>10}",
            rule,
        ]
        for m in self.means:
            lines.append(
                f"{m.level:<{width}} {fmt_num(m.estimate, 10, '.4f')} "
                f"{fmt_num(m.se, 10, '.4f')} {m.df:>5} "
                f"{fmt_num(m.ci_lower, 10, '.4f')} {fmt_num(m.ci_upper, 10, '.4f')}"
            )
        lines.append(rule)
        averaged = self.info.get('averaged_over', [])
        if averaged:
            lines.append(f"Results are averaged over the levels of: {', '.join(averaged)}")
        if self.at:
            held = ", ".join(f"{k} = {v:.4g}" for k, v in self.at.items())
            lines.append(f"Covariates held at: {held}")
        lines.append(f"Confidence level used: {self.conf_level}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"MarginalMeansSolution(factors={list(self.factors)}, levels={self.levels})"
