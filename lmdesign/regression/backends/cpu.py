"""
CPU backend for linear regression.

Uses QR decomposition via LAPACK (through NumPy/SciPy). Rank-deficient
designs are rejected rather than fitted with aliased coefficients.
"""

from typing import Any
import warnings

import numpy as np

from lmdesign.core.result import Result
from lmdesign.core.timing import Timer
from lmdesign.core.linalg import qr_solve, unscaled_covariance
from lmdesign.regression.design import RegressionDesign
from lmdesign.regression.solution import LinearParams


class CPUQRBackend:
    """
    CPU backend using QR decomposition.

    Takes a RegressionDesign and produces a Result[LinearParams].
    """

    @property
    def name(self) -> str:
        return 'cpu_qr'

    def solve(self, design: RegressionDesign) -> Result[LinearParams]:
        """
        Solve OLS via QR decomposition.

        Algorithm:
            1. Compute QR decomposition: X = QR, check full column rank
            2. Solve: β = R⁻¹ Q'y
            3. Compute residuals, fitted values, (X'X)⁻¹ and diagnostics

        Raises:
            SingularMatrixError: If X is rank-deficient
        """
        timer = Timer()
        timer.start()

        X = design.X
        y = design.y
        n, p = design.n, design.p

        with timer.section('qr_solve'):
            coefficients, qr_result = qr_solve(X, y, column_names=design.column_names)

        with timer.section('residuals'):
            fitted_values = X @ coefficients
            residuals = y - fitted_values

        with timer.section('statistics'):
            rss = float(residuals @ residuals)
            # Without an intercept R-squared is taken about zero, as in R
            if design.model_matrix.has_intercept:
                tss = float(np.sum((y - np.mean(y)) ** 2))
            else:
                tss = float(y @ y)
            xtx_inv = unscaled_covariance(qr_result)

        timer.stop()

        df_residual = n - p
        run_warnings: list[str] = []
        if df_residual == 0:
            msg = (
                f"No residual degrees of freedom (n={n}, p={p}): the model "
                f"interpolates the data and standard errors are undefined."
            )
            warnings.warn(msg, RuntimeWarning, stacklevel=3)
            run_warnings.append(msg)

        params = LinearParams(
            coefficients=coefficients,
            residuals=residuals,
            fitted_values=fitted_values,
            xtx_inv=xtx_inv,
            rss=rss,
            tss=tss,
            rank=qr_result.rank,
            df_residual=df_residual,
        )

        info: dict[str, Any] = {
            'method': 'qr',
            'rank': qr_result.rank,
        }

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(run_warnings),
        )
