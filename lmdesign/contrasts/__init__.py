"""
Contrasts and marginal predictions.

Public API:
    contrast(solution, L, ...) -> ContrastSolution
    term_test(solution, term) -> ContrastSolution      # joint F-test of one term
    marginal_means(solution, factors, ...) -> MarginalMeansSolution
    pairwise(emm, adjust='tukey') -> ContrastSolution
    treatment_vs_control(emm, control=None) -> ContrastSolution
    average_vs_control(emm, control=None) -> ContrastSolution
    reference_grid(solution, at=None) -> DataFrame
    p_adjust(p, method) -> ndarray
"""

from lmdesign.contrasts._p_adjust import p_adjust
from lmdesign.contrasts.contrast import contrast, contrast_matrix, term_test
from lmdesign.contrasts.marginal import (
    average_vs_control,
    marginal_means,
    pairwise,
    reference_grid,
    treatment_vs_control,
)
from lmdesign.contrasts.solution import ContrastSolution, MarginalMeansSolution

__all__ = [
    "contrast",
    "contrast_matrix",
    "term_test",
    "marginal_means",
    "pairwise",
    "treatment_vs_control",
    "average_vs_control",
    "reference_grid",
    "p_adjust",
    "ContrastSolution",
    "MarginalMeansSolution",
]
