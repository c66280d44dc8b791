"""
Worked examples.

Each walkthrough builds a synthetic table, fits one or more linear models,
evaluates contrasts and marginal means, and (optionally) draws figures. The
outcome is a Walkthrough record whose report() prints everything the way
the generated notebooks show it.

    >>> from lmdesign.tutorials import run_all
    >>> for name, wt in run_all(plot=False).items():
    ...     print(wt.report())
"""

from __future__ import annotations

import warnings
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.figure import Figure

from lmdesign import datasets
from lmdesign.core.exceptions import SingularMatrixError
from lmdesign.core.table import SampleTable
from lmdesign.contrasts import (
    ContrastSolution,
    MarginalMeansSolution,
    contrast,
    marginal_means,
    term_test,
)
from lmdesign.design import ModelMatrix, build_model_matrix, model_matrix
from lmdesign.plotting import (
    plot_covariate_fit,
    plot_design_matrix,
    plot_group_fit,
    plot_interaction,
)
from lmdesign.regression import LinearSolution, fit, lm
from lmdesign.regression.design import RegressionDesign

FIGSIZE_PAIR = (11.0, 4.2)


@dataclass
class Walkthrough:
    """Everything one worked example computed, keyed by short names."""
    name: str
    title: str
    tables: dict[str, SampleTable] = field(default_factory=dict)
    designs: dict[str, ModelMatrix] = field(default_factory=dict)
    fits: dict[str, LinearSolution] = field(default_factory=dict)
    contrasts: dict[str, ContrastSolution] = field(default_factory=dict)
    marginal: dict[str, MarginalMeansSolution] = field(default_factory=dict)
    figures: dict[str, Figure] = field(default_factory=dict)
    notes: list[str] = field(default_factory=list)

    def report(self) -> str:
        """Plain-text report: design matrices, fits, marginal means, contrasts, notes."""
        sections = [self.title, "#" * len(self.title)]
        for key, mm in self.designs.items():
            sections += ["", f"[design] {key}", mm.to_frame().to_string()]
        for key, sol in self.fits.items():
            sections += ["", f"[fit] {key}", sol.summary()]
        for key, emm in self.marginal.items():
            sections += ["", f"[marginal means] {key}", emm.summary()]
        for key, con in self.contrasts.items():
            sections += ["", f"[contrast] {key}", con.summary()]
        if self.notes:
            sections += ["", "Notes:"] + [f"  - {note}" for note in self.notes]
        return "\n".join(sections)

    def close_figures(self) -> None:
        for fig in self.figures.values():
            plt.close(fig)
        self.figures.clear()


# =====================================================================
# Walkthroughs
# =====================================================================


def two_point_line(a: float = 1.0, b: float = 2.0, plot: bool = True) -> Walkthrough:
    """A line through two points: the fit is exact and leaves no residual df."""
    wt = Walkthrough('two_point_line', 'Two points define a line')
    table = datasets.two_point_line(a, b)
    wt.tables['data'] = table
    wt.designs['~ x'] = model_matrix('~ x', table)

    # the zero-df warning is recorded on the solution and shown in its summary
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', RuntimeWarning)
        sol = lm('expression ~ x', table)
    wt.fits['expression ~ x'] = sol

    wt.notes.append(
        f"Intercept {sol.coef['Intercept']:.6g} (a = {a:g}), "
        f"slope {sol.coef['x']:.6g} (b = {b:g})"
    )
    if sol.has_warning('residual degrees of freedom'):
        wt.notes.append(
            f"Residual df = {sol.n_obs} observations - {len(sol.coefficients)} "
            f"coefficients = {sol.df_residual}: standard errors are undefined"
        )

    if plot:
        fig, ax = plt.subplots(figsize=(6.0, 4.2))
        plot_covariate_fit(sol, table, 'x', ax=ax)
        wt.figures['fit'] = fig
    return wt


def age_covariate(seed: int | None = None, plot: bool = True) -> Walkthrough:
    """Expression against a continuous covariate."""
    wt = Walkthrough('age_covariate', 'A continuous covariate: expression and age')
    table = datasets.age_expression(seed=seed)
    wt.tables['data'] = table
    sol = lm('expression ~ age', table)
    wt.designs['~ age'] = sol.model_matrix
    wt.fits['expression ~ age'] = sol

    true = table.metadata['true_coefficients']
    ci = sol.confint()
    wt.notes.append(
        f"Slope {sol.coef['age']:.4f} per year, 95% CI "
        f"[{ci.loc['age', 'lower']:.4f}, {ci.loc['age', 'upper']:.4f}] "
        f"(generated with {true['age']:g})"
    )
    wt.notes.append(
        "The intercept is the predicted expression at age 0, far outside the data"
    )
    centred = sol.predict(pd.DataFrame({'age': [table.column('age').mean()]}))
    wt.notes.append(f"Predicted expression at the mean age: {centred[0]:.4f}")

    if plot:
        fig, axes = plt.subplots(1, 2, figsize=FIGSIZE_PAIR)
        plot_covariate_fit(sol, table, 'age', ax=axes[0])
        plot_design_matrix(sol.model_matrix, ax=axes[1])
        wt.figures['fit'] = fig
    return wt


def genotype_two_level(seed: int | None = None, plot: bool = True) -> Walkthrough:
    """A two-level factor under reference and means coding."""
    wt = Walkthrough('genotype_two_level', 'A two-level factor: reference vs. means coding')
    table = datasets.genotype_expression(seed=seed)
    wt.tables['data'] = table

    ref = lm('expression ~ genotype', table)
    means = lm('expression ~ 0 + genotype', table)
    wt.designs['~ genotype'] = ref.model_matrix
    wt.designs['~ 0 + genotype'] = means.model_matrix
    wt.fits['reference coding'] = ref
    wt.fits['means coding'] = means

    diff = contrast(means, 'genotype[mutant] - genotype[wildtype]')
    wt.contrasts['mutant - wildtype (means coding)'] = diff

    group = table.group_means('genotype')
    wt.notes.append(
        f"Reference coding: Intercept {ref.coef['Intercept']:.4f} = wildtype mean "
        f"{group['wildtype']:.4f}; genotype[T.mutant] {ref.coef['genotype[T.mutant]']:.4f} "
        f"= mutant - wildtype"
    )
    wt.notes.append(
        f"Means coding: one coefficient per level, equal to the level means "
        f"{group['wildtype']:.4f} and {group['mutant']:.4f}"
    )
    wt.notes.append(
        f"The contrast mutant - wildtype from the means fit ({diff.estimates[0]:.4f}) "
        f"reproduces the reference-coded slope"
    )

    releveled = lm('expression ~ genotype', table.relevel('genotype', 'mutant'))
    wt.fits['reference = mutant'] = releveled
    wt.notes.append(
        f"Re-levelling to mutant flips the sign: genotype[T.wildtype] = "
        f"{releveled.coef['genotype[T.wildtype]']:.4f}"
    )

    singular = build_model_matrix(
        {'genotype': table.column('genotype')},
        levels={'genotype': table.factor_levels('genotype')},
        coding='means',
        include_intercept=True,
        sample_ids=table.sample_ids,
    )
    wt.designs['Intercept + every level (singular)'] = singular
    if not singular.is_full_rank:
        wt.notes.append(
            f"Intercept + every level has {singular.p} columns but rank {singular.rank}"
        )
    try:
        fit(RegressionDesign.from_model_matrix(singular, table.response, table=table))
    except SingularMatrixError as e:
        wt.notes.append(f"Intercept plus an indicator for every level: {e}")

    if plot:
        fig, axes = plt.subplots(1, 2, figsize=FIGSIZE_PAIR, sharey=True)
        plot_group_fit(ref, table, 'genotype', ax=axes[0])
        axes[0].set_title('~ genotype')
        plot_group_fit(means, table, 'genotype', ax=axes[1])
        axes[1].set_title('~ 0 + genotype')
        wt.figures['fit'] = fig
    return wt


def treatment_multi_level(seed: int | None = None, plot: bool = True) -> Walkthrough:
    """A control and several treatments: marginal means and comparison families."""
    wt = Walkthrough('treatment_multi_level', 'A multi-level factor: control and treatments')
    table = datasets.treatment_expression(seed=seed)
    wt.tables['data'] = table
    levels = table.factor_levels('treatment')
    control, treatments = levels[0], levels[1:]

    sol = lm('expression ~ treatment', table)
    wt.designs['~ treatment'] = sol.model_matrix
    wt.fits['expression ~ treatment'] = sol
    wt.contrasts['does treatment matter?'] = term_test(sol, 'treatment')

    emm = marginal_means(sol, 'treatment')
    wt.marginal['treatment'] = emm
    wt.contrasts['pairwise (Tukey)'] = emm.pairwise()
    wt.contrasts['treatment vs. control (Holm)'] = emm.treatment_vs_control()
    wt.contrasts['average of treatments - control'] = emm.average_vs_control()

    means = lm('expression ~ 0 + treatment', table)
    wt.fits['expression ~ 0 + treatment'] = means
    weights: dict[str, Any] = {f'treatment[{lv}]': 1.0 / len(treatments) for lv in treatments}
    weights[f'treatment[{control}]'] = -1.0
    custom = contrast(means, weights, labels=['average of treatments - control'])
    wt.contrasts['custom weights on means coding'] = custom

    raw = float(sum(w * means.coef[name] for name, w in weights.items()))
    wt.notes.append(
        f"Weights {', '.join(f'{w:+.3g}' for w in weights.values())} sum to zero; "
        f"by hand {raw:.4f}, via contrast() {custom.estimates[0]:.4f}"
    )
    wt.notes.append(
        "Pairwise differences use the Tukey adjustment; comparisons against the "
        "control use Holm"
    )

    if plot:
        fig, ax = plt.subplots(figsize=(7.0, 4.2))
        plot_group_fit(sol, table, 'treatment', ax=ax)
        wt.figures['fit'] = fig
    return wt


def genotype_treatment_interaction(seed: int | None = None, plot: bool = True) -> Walkthrough:
    """Two crossed factors, once with additive and once with non-additive effects."""
    wt = Walkthrough(
        'genotype_treatment_interaction',
        'Two factors and their interaction: additive vs. non-additive data',
    )
    for key, additive in (('additive', True), ('non-additive', False)):
        table = datasets.genotype_treatment_expression(additive=additive, seed=seed)
        wt.tables[key] = table
        sol = lm('expression ~ genotype * treatment', table)
        wt.fits[f'{key}: genotype * treatment'] = sol
        wt.contrasts[f'{key}: interaction term'] = term_test(sol, 'genotype:treatment')
        cells = marginal_means(sol, ['genotype', 'treatment'])
        wt.marginal[f'{key}: cell means'] = cells
        wt.marginal[f'{key}: genotype'] = marginal_means(sol, 'genotype')

        name = 'genotype[T.mutant]:treatment[T.treated]'
        true = table.metadata['true_coefficients'][name]
        row = wt.contrasts[f'{key}: interaction term'][name]
        wt.notes.append(
            f"{key}: interaction estimate {row.estimate:.4f} (generated {true:g}), "
            f"p = {row.p_value:.3g}"
        )
    wt.designs['~ genotype * treatment'] = wt.fits['additive: genotype * treatment'].model_matrix

    additive_only = lm('expression ~ genotype + treatment', wt.tables['non-additive'])
    wt.fits['non-additive: genotype + treatment'] = additive_only
    wt.notes.append(
        "Dropping the interaction from non-additive data averages the treatment "
        f"effect over genotypes: {additive_only.coef['treatment[T.treated]']:.4f}"
    )

    if plot:
        fig, axes = plt.subplots(1, 2, figsize=FIGSIZE_PAIR, sharey=True)
        for ax, key in zip(axes, ('additive', 'non-additive')):
            plot_interaction(
                wt.fits[f'{key}: genotype * treatment'], wt.tables[key],
                'treatment', 'genotype', ax=ax,
            )
            ax.set_title(key)
        wt.figures['interaction'] = fig
        fig_mm, ax_mm = plt.subplots(figsize=(7.0, 5.0))
        plot_design_matrix(wt.designs['~ genotype * treatment'], ax=ax_mm)
        wt.figures['design'] = fig_mm
    return wt


def nuisance_covariates(seed: int | None = None, plot: bool = True) -> Walkthrough:
    """Adjusting a condition effect for batch, lane, technician and age."""
    wt = Walkthrough('nuisance_covariates', 'Nuisance factors and covariates')
    table = datasets.batch_expression(seed=seed)
    wt.tables['data'] = table

    naive = lm('expression ~ condition', table)
    full = lm(table.metadata['formula'], table)
    wt.designs['full model'] = full.model_matrix
    wt.fits['condition only'] = naive
    wt.fits['adjusted'] = full

    for term in ('batch', 'lane', 'technician', 'age'):
        wt.contrasts[f'term: {term}'] = term_test(full, term)
    emm = marginal_means(full, 'condition')
    wt.marginal['condition'] = emm
    wt.contrasts['disease - control'] = emm.pairwise()

    name = 'condition[T.disease]'
    se_naive = naive.standard_errors[naive.column_names.index(name)]
    se_full = full.standard_errors[full.column_names.index(name)]
    wt.notes.append(
        f"Condition effect: {naive.coef[name]:.4f} (SE {se_naive:.4f}, df {naive.df_residual}) "
        f"unadjusted, {full.coef[name]:.4f} (SE {se_full:.4f}, df {full.df_residual}) adjusted"
    )
    wt.notes.append(
        "Nuisance terms soak up variance; each costs residual degrees of freedom"
    )
    wt.notes.append(
        f"Marginal means are averaged over {', '.join(emm.info['averaged_over'])} "
        f"with age held at {emm.at['age']:.1f}"
    )

    if plot:
        fig, axes = plt.subplots(1, 2, figsize=FIGSIZE_PAIR)
        plot_group_fit(full, table, 'condition', ax=axes[0])
        plot_design_matrix(full.model_matrix, ax=axes[1])
        wt.figures['fit'] = fig
    return wt


WALKTHROUGHS: dict[str, Callable[..., Walkthrough]] = {
    'two_point_line': two_point_line,
    'age_covariate': age_covariate,
    'genotype_two_level': genotype_two_level,
    'treatment_multi_level': treatment_multi_level,
    'genotype_treatment_interaction': genotype_treatment_interaction,
    'nuisance_covariates': nuisance_covariates,
}


def run_all(plot: bool = False) -> dict[str, Walkthrough]:
    """Run every walkthrough in order."""
    return {name: func(plot=plot) for name, func in WALKTHROUGHS.items()}
