"""
Plots of fitted models (matplotlib).

Public API:
    plot_covariate_fit(solution, table, x, ax=None) -> Axes
    plot_group_fit(solution, table, factor, ax=None) -> Axes
    plot_interaction(solution, table, x_factor, trace_factor, ax=None) -> Axes
    plot_design_matrix(model_matrix, ax=None) -> Axes
"""

from lmdesign.plotting.fits import (
    plot_covariate_fit,
    plot_design_matrix,
    plot_group_fit,
    plot_interaction,
)

__all__ = [
    "plot_covariate_fit",
    "plot_group_fit",
    "plot_interaction",
    "plot_design_matrix",
]
