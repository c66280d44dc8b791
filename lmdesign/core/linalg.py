"""
QR decomposition kernels.

Provides the least-squares primitives every fit goes through: a reduced QR
decomposition with numerical rank, a triangular solve for the coefficients,
and the unscaled covariance (X'X)^-1 computed from R.
"""

from dataclasses import dataclass
from typing import Literal, Any
import numpy as np
from numpy.typing import NDArray
from scipy.linalg import qr as pivoted_qr, solve_triangular

from lmdesign.core.exceptions import SingularMatrixError
from lmdesign.core.tolerances import RANK_EPS_FACTOR


@dataclass(frozen=True)
class QRResult:
    """
    Result of QR decomposition.

    Attributes:
        Q: Orthogonal matrix (n x k where k = min(n, p) for reduced mode)
        R: Upper triangular matrix (k x p)
        rank: Numerical rank determined from R diagonal
    """
    Q: NDArray[np.floating[Any]]
    R: NDArray[np.floating[Any]]
    rank: int


def qr_decompose(
    X: NDArray[np.floating[Any]],
    mode: Literal['reduced', 'complete'] = 'reduced'
) -> QRResult:
    """
    QR decomposition using LAPACK (via NumPy).

    Computes X = QR where Q is orthogonal and R is upper triangular. The
    rank comes from a column-pivoted QR (scipy), whose R diagonal is
    non-increasing, so a zero column early in X does not hide later
    independent columns.

    Args:
        X: Matrix to decompose (n x p)
        mode: 'reduced' for economy QR, 'complete' for full QR

    Returns:
        QRResult with Q, R, and numerical rank
    """
    Q, R = np.linalg.qr(X, mode=mode)
    R_pivoted, _ = pivoted_qr(X, mode='r', pivoting=True)
    return QRResult(Q=Q, R=R, rank=qr_rank(R_pivoted, X.shape))


def qr_rank(R: NDArray[np.floating[Any]], shape: tuple[int, int]) -> int:
    """
    Numerical rank from the diagonal of R.

    A diagonal entry counts when it exceeds
    max(n, p) * eps * max|diag(R)|.
    """
    diag_R = np.abs(np.diag(R))
    if len(diag_R) == 0 or np.max(diag_R) == 0:
        return 0
    tol = RANK_EPS_FACTOR * max(shape) * np.finfo(R.dtype).eps * np.max(diag_R)
    return int(np.sum(diag_R > tol))


def qr_solve(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    *,
    column_names: tuple[str, ...] | None = None,
) -> tuple[NDArray[np.floating[Any]], QRResult]:
    """
    Solve least squares via QR decomposition.

    Solves: min_β ||y - Xβ||² with
        X = QR
        β = R⁻¹ Q'y

    Args:
        X: Design matrix (n x p)
        y: Response vector (n,)
        column_names: Column labels, carried on the error for diagnostics

    Returns:
        (β, qr_result)

    Raises:
        SingularMatrixError: If X does not have full column rank
    """
    n, p = X.shape
    qr_result = qr_decompose(X, mode='reduced')

    if n < p or qr_result.rank < p:
        rank = min(qr_result.rank, n)
        raise SingularMatrixError(
            f"Singular design matrix: rank={rank}, expected={p}. "
            f"At least one column is a linear combination of the others "
            f"(e.g. an intercept plus an indicator for every factor level).",
            matrix_name='X',
            rank=rank,
            expected_rank=p,
            column_names=column_names,
        )

    Qty = qr_result.Q.T @ y
    beta = solve_triangular(qr_result.R[:p, :p], Qty[:p], lower=False)
    return beta, qr_result


def unscaled_covariance(qr_result: QRResult) -> NDArray[np.floating[Any]]:
    """
    Compute (X'X)⁻¹ = R⁻¹ R⁻ᵀ from a full-rank QR decomposition.

    Multiplied by σ² this is the coefficient covariance matrix.
    """
    p = qr_result.R.shape[1]
    R_inv = solve_triangular(qr_result.R[:p, :p], np.eye(p), lower=False)
    return R_inv @ R_inv.T
