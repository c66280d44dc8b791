"""
Figures for fitted linear models.

Every function draws onto an existing Axes (or a new single-panel figure
when ax is None) and returns the Axes. Nothing here calls plt.show() or
saves files; callers decide what to do with the figure.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.axes import Axes
from matplotlib.lines import Line2D

from lmdesign.core.exceptions import ValidationError
from lmdesign.core.table import SampleTable
from lmdesign.contrasts.marginal import marginal_means

if TYPE_CHECKING:
    from lmdesign.design.model_matrix import ModelMatrix
    from lmdesign.regression.solution import LinearSolution

FIGSIZE_SINGLE = (7.0, 4.2)
POINT_SIZE = 30
POINT_ALPHA = 0.7
JITTER_WIDTH = 0.08
FIT_COLOR = "#d62728"
LINE_GRID_POINTS = 100


def _new_axes(ax: Axes | None) -> Axes:
    if ax is None:
        _, ax = plt.subplots(figsize=FIGSIZE_SINGLE)
    return ax


def _jitter(n: int, seed: int = 0) -> np.ndarray:
    """Deterministic horizontal jitter for strip plots."""
    rng = np.random.default_rng(seed)
    return rng.uniform(-JITTER_WIDTH, JITTER_WIDTH, size=n)


def _response_label(solution: LinearSolution, table: SampleTable) -> str:
    return solution.design.response_name or table.response_name or "response"


def plot_covariate_fit(
    solution: LinearSolution,
    table: SampleTable,
    x: str,
    ax: Axes | None = None,
) -> Axes:
    """
    Scatter the response against one covariate and draw the fitted line.

    For formula fits the line is the model prediction with every other
    covariate at its sample mean and every factor at its reference level.
    For array fits it is Intercept + slope * x from the coefficients named
    'Intercept' and `x`.
    """
    ax = _new_axes(ax)
    xs = table.column(x).astype(float)
    ys = table.response
    ax.scatter(xs, ys, s=POINT_SIZE, alpha=POINT_ALPHA, color="black", label="samples")

    grid = np.linspace(xs.min(), xs.max(), LINE_GRID_POINTS)
    mm = solution.model_matrix
    if mm.design_info is not None or mm.factor_levels or mm.covariates:
        frame = pd.DataFrame({x: grid})
        for name in mm.covariates:
            if name != x:
                frame[name] = float(np.mean(table.column(name)))
        for name, levels in mm.factor_levels.items():
            frame[name] = pd.Categorical([levels[0]] * len(grid), categories=levels)
        fitted = solution.predict(frame)
    else:
        coef = solution.coef
        if x not in coef.index:
            raise ValidationError(f"no coefficient named {x!r}. Columns: {list(coef.index)}")
        fitted = coef.get('Intercept', 0.0) + coef[x] * grid

    ax.plot(grid, fitted, color=FIT_COLOR, linewidth=2.0, label="fitted")
    ax.set_xlabel(x)
    ax.set_ylabel(_response_label(solution, table))
    ax.legend(frameon=False)
    return ax


def plot_group_fit(
    solution: LinearSolution,
    table: SampleTable,
    factor: str,
    ax: Axes | None = None,
    show_intercept: bool = True,
) -> Axes:
    """
    Strip plot of the response by factor level with the fitted level means.

    Fitted means are the model's marginal means, drawn as short horizontal
    segments. With reference coding the intercept (the reference-level
    mean) is drawn as a dashed line.
    """
    ax = _new_axes(ax)
    levels = table.factor_levels(factor)
    values = table.column(factor)
    ys = table.response
    positions = np.array([levels.index(v) for v in values], dtype=float)
    ax.scatter(
        positions + _jitter(len(ys)), ys,
        s=POINT_SIZE, alpha=POINT_ALPHA, color="black",
    )

    emm = marginal_means(solution, factor)
    for i, level in enumerate(levels):
        ax.hlines(emm[level].estimate, i - 0.25, i + 0.25, color=FIT_COLOR, linewidth=2.5)

    if show_intercept and solution.model_matrix.has_intercept:
        ax.axhline(
            solution.coef['Intercept'] if 'Intercept' in solution.coef.index
            else solution.coefficients[0],
            color="grey", linestyle="--", linewidth=1.2, label="Intercept",
        )
        ax.legend(frameon=False)

    ax.set_xticks(range(len(levels)))
    ax.set_xticklabels(levels)
    ax.set_xlim(-0.5, len(levels) - 0.5)
    ax.set_xlabel(factor)
    ax.set_ylabel(_response_label(solution, table))
    return ax


def plot_interaction(
    solution: LinearSolution,
    table: SampleTable,
    x_factor: str,
    trace_factor: str,
    ax: Axes | None = None,
) -> Axes:
    """
    Interaction plot: samples and fitted cell means of x_factor, one trace
    per level of trace_factor. Parallel traces mean additive effects.
    """
    ax = _new_axes(ax)
    x_levels = table.factor_levels(x_factor)
    trace_levels = table.factor_levels(trace_factor)
    x_values = table.column(x_factor)
    trace_values = table.column(trace_factor)
    ys = table.response

    emm = marginal_means(solution, [x_factor, trace_factor])
    colors = plt.rcParams['axes.prop_cycle'].by_key()['color']
    n_traces = len(trace_levels)
    handles: list[Any] = []
    for j, trace in enumerate(trace_levels):
        color = colors[j % len(colors)]
        offset = (j - (n_traces - 1) / 2.0) * 0.1
        mask = trace_values == trace
        positions = np.array([x_levels.index(v) for v in x_values[mask]], dtype=float)
        ax.scatter(
            positions + offset, ys[mask],
            s=POINT_SIZE, alpha=POINT_ALPHA, color=color,
        )
        cell_means = [emm[f"{lv}:{trace}"].estimate for lv in x_levels]
        ax.plot(
            np.arange(len(x_levels)) + offset, cell_means,
            color=color, marker="D", linewidth=2.0,
        )
        handles.append(Line2D([0], [0], color=color, marker="D", label=trace))

    ax.set_xticks(range(len(x_levels)))
    ax.set_xticklabels(x_levels)
    ax.set_xlabel(x_factor)
    ax.set_ylabel(_response_label(solution, table))
    ax.legend(handles=handles, title=trace_factor, frameon=False)
    return ax


def plot_design_matrix(model_matrix: ModelMatrix, ax: Axes | None = None) -> Axes:
    """Heatmap of the design matrix, one labelled column per coefficient."""
    ax = _new_axes(ax)
    X = model_matrix.X
    ax.imshow(X, aspect="auto", cmap="Greys", interpolation="nearest")
    ax.set_xticks(range(model_matrix.p))
    ax.set_xticklabels(model_matrix.column_names, rotation=45, ha="right")
    if model_matrix.sample_ids is not None:
        ax.set_yticks(range(model_matrix.n))
        ax.set_yticklabels(model_matrix.sample_ids)
    ax.set_ylabel("sample")
    title = model_matrix.formula or f"{model_matrix.coding} coding"
    ax.set_title(title)
    return ax
