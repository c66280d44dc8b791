"""
Regression solution types.

Contains the parameter payload and user-facing solution wrapper.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy import stats as sp_stats

from lmdesign.core._format import SIGNIF_LEGEND, fmt_num, fmt_p, significance_stars
from lmdesign.core.exceptions import ValidationError
from lmdesign.core.result import Result
from lmdesign.core.table import SampleTable
from lmdesign.core.tolerances import DEFAULT_CONF_LEVEL
from lmdesign.core.validation import check_conf_level

if TYPE_CHECKING:
    from lmdesign.design.model_matrix import ModelMatrix
    from lmdesign.regression.design import RegressionDesign


@dataclass(frozen=True)
class LinearParams:
    """
    Parameter payload for linear regression.

    This is the immutable data computed by backends.
    """
    coefficients: NDArray[np.floating[Any]]
    residuals: NDArray[np.floating[Any]]
    fitted_values: NDArray[np.floating[Any]]
    xtx_inv: NDArray[np.floating[Any]]
    rss: float
    tss: float
    rank: int
    df_residual: int


@dataclass
class LinearSolution:
    """
    User-facing regression results.

    Wraps the backend Result and provides named accessors for coefficients,
    their covariance, standard errors, t statistics and p-values.
    """
    _result: Result[LinearParams]
    _design: RegressionDesign

    # === Fit ===

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        return self._result.params.coefficients

    @property
    def coef(self) -> pd.Series:
        """Coefficients indexed by column name."""
        return pd.Series(self.coefficients, index=list(self.column_names), name='Estimate')

    @property
    def column_names(self) -> tuple[str, ...]:
        return self._design.column_names

    @property
    def residuals(self) -> NDArray[np.floating[Any]]:
        return self._result.params.residuals

    @property
    def fitted_values(self) -> NDArray[np.floating[Any]]:
        return self._result.params.fitted_values

    @property
    def rss(self) -> float:
        return self._result.params.rss

    @property
    def tss(self) -> float:
        return self._result.params.tss

    @property
    def n_obs(self) -> int:
        return self._design.n

    @property
    def rank(self) -> int:
        return self._result.params.rank

    @property
    def df_residual(self) -> int:
        """Residual degrees of freedom: observations minus coefficients."""
        return self._result.params.df_residual

    @property
    def r_squared(self) -> float:
        if self.tss == 0:
            return 1.0 if self.rss == 0 else 0.0
        return 1.0 - (self.rss / self.tss)

    @property
    def adjusted_r_squared(self) -> float:
        n = self.n_obs
        p = self.rank
        if n - p <= 0 or self.tss == 0:
            return self.r_squared
        # R's convention: the intercept is not counted as a predictor
        df_int = 1 if self._design.model_matrix.has_intercept else 0
        return 1.0 - (1.0 - self.r_squared) * (n - df_int) / (n - p)

    @property
    def sigma_squared(self) -> float:
        """Residual variance RSS / df_residual (NaN without residual df)."""
        if self.df_residual <= 0:
            return float('nan')
        return self.rss / self.df_residual

    @property
    def residual_std_error(self) -> float:
        return float(np.sqrt(self.sigma_squared))

    # === Inference ===

    @property
    def vcov(self) -> NDArray[np.floating[Any]]:
        """Coefficient covariance matrix σ² (X'X)⁻¹."""
        return self.sigma_squared * self._result.params.xtx_inv

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        """
        Standard errors of coefficients.

        Computed as SE(β) = sqrt(diag(σ² (X'X)⁻¹))
        """
        return np.sqrt(np.diag(self.vcov))

    @property
    def t_statistics(self) -> NDArray[np.floating[Any]]:
        """t-statistics for coefficients."""
        with np.errstate(divide='ignore', invalid='ignore'):
            t = self.coefficients / self.standard_errors
        return np.where(np.isfinite(t), t, np.nan)

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        """Two-sided p-values from Student's t with df_residual degrees of freedom."""
        if self.df_residual <= 0:
            return np.full(len(self.coefficients), np.nan)
        return 2.0 * sp_stats.t.sf(np.abs(self.t_statistics), self.df_residual)

    def confint(self, level: float = DEFAULT_CONF_LEVEL) -> pd.DataFrame:
        """
        Confidence intervals for the coefficients.

        Returns:
            DataFrame with columns 'lower' and 'upper' indexed by column name
        """
        check_conf_level(level)
        if self.df_residual <= 0:
            t_crit = float('nan')
        else:
            t_crit = float(sp_stats.t.ppf(0.5 + level / 2.0, self.df_residual))
        margin = t_crit * self.standard_errors
        return pd.DataFrame(
            {'lower': self.coefficients - margin, 'upper': self.coefficients + margin},
            index=list(self.column_names),
        )

    def coef_table(self) -> pd.DataFrame:
        """Coefficient table: estimate, standard error, t value, p-value."""
        return pd.DataFrame(
            {
                'Estimate': self.coefficients,
                'Std. Error': self.standard_errors,
                't value': self.t_statistics,
                'Pr(>|t|)': self.p_values,
            },
            index=list(self.column_names),
        )

    # === Model ===

    @property
    def design(self) -> RegressionDesign:
        return self._design

    @property
    def model_matrix(self) -> ModelMatrix:
        return self._design.model_matrix

    @property
    def formula(self) -> str | None:
        return self._design.model_matrix.formula

    @property
    def table(self) -> SampleTable | None:
        return self._design.table

    def predict(self, new_data: pd.DataFrame | SampleTable | None = None) -> NDArray[np.floating[Any]]:
        """
        Predicted response.

        Args:
            new_data: Rows to predict for. None returns the fitted values.

        Returns:
            (m,) predictions
        """
        if new_data is None:
            return self.fitted_values
        frame = new_data.frame if isinstance(new_data, SampleTable) else new_data
        if not isinstance(frame, pd.DataFrame):
            raise ValidationError(
                f"new_data: expected DataFrame or SampleTable, got {type(new_data).__name__}"
            )
        return self.model_matrix.rows_for(frame) @ self.coefficients

    # === Envelope ===

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def has_warning(self, substring: str) -> bool:
        return self._result.has_warning(substring)

    def summary(self) -> str:
        """Generate R-style summary output."""
        title = "Linear Regression Results"
        if self.formula is not None:
            response = self._design.response_name or "y"
            title = f"{title}: {response} {self.formula[self.formula.index('~'):]}"
        width = max(len(name) for name in self.column_names)
        width = max(width, 12)
        rule = "-" * (width + 52)
        lines = [
            title,
            "=" * (width + 52),
            f"Observations: {self.n_obs}",
            f"Coefficients: {len(self.coefficients)}",
            "",
            f"{'':<{width}} {'Estimate':>12} {'Std. Error':>12} {'t value':>10} {'Pr(>|t|)':>10}",
            rule,
        ]

        for name, coef, se, t, p in zip(
            self.column_names, self.coefficients, self.standard_errors,
            self.t_statistics, self.p_values,
        ):
            lines.append(
                f"{name:<{width}} {fmt_num(coef, 12, '.6f')} {fmt_num(se, 12, '.6f')} "
                f"{fmt_num(t, 10, '.3f')} {fmt_p(p)} {significance_stars(p)}".rstrip()
            )

        lines.append(rule)
        lines.append(SIGNIF_LEGEND)
        lines.append("")
        lines.append(
            f"Residual standard error: {self.residual_std_error:.6f} "
            f"on {self.df_residual} degrees of freedom"
        )
        lines.append(
            f"Multiple R-squared: {self.r_squared:.6f}, "
            f"Adjusted R-squared: {self.adjusted_r_squared:.6f}"
        )
        for w in self.warnings:
            lines.append(f"Warning: {w}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"LinearSolution(n={self.n_obs}, p={len(self.coefficients)}, "
            f"df_residual={self.df_residual}, r_squared={self.r_squared:.4f})"
        )
