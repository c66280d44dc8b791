"""
Render the walkthroughs as Jupyter notebooks with nbformat.

Each notebook is narrative markdown interleaved with code cells that call
the library directly, so it runs top to bottom in a fresh kernel:

    >>> from lmdesign.tutorials import write_notebooks
    >>> paths = write_notebooks("notebooks/")
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from pathlib import Path

import nbformat

from lmdesign.core.exceptions import ValidationError
from lmdesign.tutorials.walkthroughs import WALKTHROUGHS


def md(src: str) -> nbformat.NotebookNode:
    return nbformat.v4.new_markdown_cell(src)


def code(src: str) -> nbformat.NotebookNode:
    return nbformat.v4.new_code_cell(src)


SETUP = code("""\
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from lmdesign import datasets
from lmdesign.contrasts import contrast, marginal_means, term_test
from lmdesign.design import build_model_matrix, model_matrix
from lmdesign.plotting import (
    plot_covariate_fit, plot_design_matrix, plot_group_fit, plot_interaction,
)
from lmdesign.regression import fit, lm\
""")


CELLS: dict[str, list[nbformat.NotebookNode]] = {

# ── two_point_line ───────────────────────────────────────────────────────────
'two_point_line': [
md("""\
# Two points define a line

A linear model with an intercept and one covariate has two coefficients. \
With exactly two observations the least-squares line passes through both \
points: the fit is exact, the residuals are zero, and there are \
`n - p = 0` residual degrees of freedom left to estimate the noise.\
"""),
code("""\
table = datasets.two_point_line(a=1.0, b=2.0)
table.frame\
"""),
md("""\
The design matrix has a column of ones (the intercept) and the covariate itself.\
"""),
code("""\
model_matrix("~ x", table).to_frame()\
"""),
code("""\
sol = lm("expression ~ x", table)
print(sol.summary())\
"""),
md("""\
The intercept equals `a` and the slope equals `b`. Standard errors, t values and \
p-values are `NA`: without residual degrees of freedom there is no estimate of \
the residual variance.\
"""),
code("""\
plot_covariate_fit(sol, table, "x");\
"""),
],

# ── age_covariate ────────────────────────────────────────────────────────────
'age_covariate': [
md("""\
# A continuous covariate: expression and age

Here expression drifts linearly with donor age. The slope is the expected \
change in expression per year; the intercept is the prediction at age 0.\
"""),
code("""\
table = datasets.age_expression()
table.frame.head()\
"""),
code("""\
sol = lm("expression ~ age", table)
print(sol.summary())
sol.confint()\
"""),
md("""\
The residual degrees of freedom are the number of samples minus the two \
coefficients, and every standard error uses them.\
"""),
code("""\
print(sol.n_obs, len(sol.coefficients), sol.df_residual)
sol.predict(pd.DataFrame({"age": [table.column("age").mean()]}))\
"""),
code("""\
fig, axes = plt.subplots(1, 2, figsize=(11, 4.2))
plot_covariate_fit(sol, table, "age", ax=axes[0])
plot_design_matrix(sol.model_matrix, ax=axes[1]);\
"""),
],

# ── genotype_two_level ───────────────────────────────────────────────────────
'genotype_two_level': [
md("""\
# A two-level factor: reference vs. means coding

A categorical factor enters the design matrix as indicator columns. With an \
intercept, the first level (wildtype) is the **reference**: the intercept is \
its mean and the indicator coefficient is the difference mutant - wildtype.\
"""),
code("""\
table = datasets.genotype_expression()
print(table.group_means("genotype"))
model_matrix("~ genotype", table).to_frame()\
"""),
code("""\
ref = lm("expression ~ genotype", table)
print(ref.summary())\
"""),
md("""\
Without an intercept (`~ 0 + genotype`) every level gets its own indicator and \
each coefficient is that level's mean. The difference of interest is now a \
**contrast** of two coefficients.\
"""),
code("""\
means = lm("expression ~ 0 + genotype", table)
print(means.summary())
print(contrast(means, "genotype[mutant] - genotype[wildtype]").summary())\
"""),
md("""\
The reference level is a property of the table's level order. Re-levelling \
changes which coefficient is estimated, not the fitted values.\
"""),
code("""\
lm("expression ~ genotype", table.relevel("genotype", "mutant")).coef_table()\
"""),
md("""\
An intercept together with an indicator for every level is rank deficient: \
the indicators sum to the intercept column. The fit refuses such a design \
instead of silently dropping a coefficient.\
"""),
code("""\
singular = build_model_matrix(
    {"genotype": table.column("genotype")},
    levels={"genotype": table.factor_levels("genotype")},
    coding="means",
    include_intercept=True,
)
from lmdesign.core.exceptions import SingularMatrixError

try:
    fit(singular.X, table.response, column_names=singular.column_names)
except SingularMatrixError as e:
    print(type(e).__name__, e)\
"""),
code("""\
fig, axes = plt.subplots(1, 2, figsize=(11, 4.2), sharey=True)
plot_group_fit(ref, table, "genotype", ax=axes[0])
plot_group_fit(means, table, "genotype", ax=axes[1]);\
"""),
],

# ── treatment_multi_level ────────────────────────────────────────────────────
'treatment_multi_level': [
md("""\
# A multi-level factor: control and treatments

With k levels, reference coding gives k - 1 indicators, each a treatment \
minus the control. A joint F-test asks whether the factor matters at all.\
"""),
code("""\
table = datasets.treatment_expression()
sol = lm("expression ~ treatment", table)
print(sol.summary())
print(term_test(sol, "treatment").summary())\
"""),
md("""\
**Marginal means** are the model's predicted mean for each level. Comparisons \
between them come in families, each with its own multiplicity adjustment.\
"""),
code("""\
emm = marginal_means(sol, "treatment")
print(emm.summary())
print(emm.pairwise().summary())              # Tukey
print(emm.treatment_vs_control().summary())  # Holm\
"""),
md("""\
A custom contrast: the average of the treatments minus the control. Its \
weights sum to zero, and the estimate is the same whether computed by hand \
from the means-coded coefficients or by `contrast()`.\
"""),
code("""\
means = lm("expression ~ 0 + treatment", table)
w = {"treatment[control]": -1, "treatment[drugA]": 1/3,
     "treatment[drugB]": 1/3, "treatment[drugC]": 1/3}
by_hand = sum(v * means.coef[k] for k, v in w.items())
print(by_hand)
print(contrast(means, w).summary())
print(emm.average_vs_control().summary())\
"""),
code("""\
plot_group_fit(sol, table, "treatment");\
"""),
],

# ── genotype_treatment_interaction ───────────────────────────────────────────
'genotype_treatment_interaction': [
md("""\
# Two factors and their interaction

`~ genotype * treatment` expands to both main effects plus their interaction, \
whose column is the elementwise product of the two indicators. The \
interaction coefficient measures how much the treatment effect differs \
between genotypes.\
"""),
code("""\
additive = datasets.genotype_treatment_expression(additive=True)
model_matrix("~ genotype * treatment", additive).to_frame()\
"""),
md("""\
When the data are generated additively the interaction estimate is zero up to \
noise; with `sigma=0` it is exactly zero.\
"""),
code("""\
exact = datasets.genotype_treatment_expression(additive=True, sigma=0.0)
lm("expression ~ genotype * treatment", exact).coef\
"""),
code("""\
sol_add = lm("expression ~ genotype * treatment", additive)
print(sol_add.summary())\
"""),
code("""\
nonadd = datasets.genotype_treatment_expression(additive=False)
sol_non = lm("expression ~ genotype * treatment", nonadd)
print(sol_non.summary())
print(marginal_means(sol_non, ["genotype", "treatment"]).summary())\
"""),
code("""\
fig, axes = plt.subplots(1, 2, figsize=(11, 4.2), sharey=True)
plot_interaction(sol_add, additive, "treatment", "genotype", ax=axes[0])
plot_interaction(sol_non, nonadd, "treatment", "genotype", ax=axes[1]);\
"""),
],

# ── nuisance_covariates ──────────────────────────────────────────────────────
'nuisance_covariates': [
md("""\
# Nuisance factors and covariates

Real experiments carry variation from batch, sequencing lane, technician and \
donor characteristics. Including them in the model removes that variation \
from the residuals, at a cost of one residual degree of freedom per column.\
"""),
code("""\
table = datasets.batch_expression()
naive = lm("expression ~ condition", table)
full = lm("expression ~ condition + batch + lane + technician + age", table)
print(naive.summary())
print(full.summary())\
"""),
code("""\
for term in ["batch", "lane", "technician", "age"]:
    j = term_test(full, term).joint
    print(f"{term:<11} F({j.df_num}, {j.df_den}) = {j.f_value:.3f}, p = {j.p_value:.3g}")\
"""),
md("""\
Marginal means of the condition average over the nuisance levels with age \
held at its sample mean.\
"""),
code("""\
emm = marginal_means(full, "condition")
print(emm.summary())
print(emm.pairwise().summary())\
"""),
code("""\
fig, axes = plt.subplots(1, 2, figsize=(11, 4.2))
plot_group_fit(full, table, "condition", ax=axes[0])
plot_design_matrix(full.model_matrix, ax=axes[1]);\
"""),
],
}


def build_notebook(name: str) -> nbformat.NotebookNode:
    """
    Build the notebook for one walkthrough.

    Raises:
        ValidationError: If `name` is not a known walkthrough
    """
    if name not in CELLS:
        raise ValidationError(f"Unknown walkthrough {name!r}. Available: {list(WALKTHROUGHS)}")
    nb = nbformat.v4.new_notebook()
    cells = copy.deepcopy(CELLS[name])
    nb.cells = [cells[0], nbformat.v4.new_code_cell(SETUP.source), *cells[1:]]
    nb.metadata['kernelspec'] = {
        'display_name': 'Python 3',
        'language': 'python',
        'name': 'python3',
    }
    nbformat.validate(nb)
    return nb


def write_notebooks(
    directory: str | Path,
    names: Iterable[str] | None = None,
) -> list[Path]:
    """
    Write one <name>.ipynb per walkthrough into `directory`.

    Returns:
        Paths written, in walkthrough order
    """
    out = Path(directory)
    out.mkdir(parents=True, exist_ok=True)
    paths = []
    for name in (list(WALKTHROUGHS) if names is None else list(names)):
        path = out / f"{name}.ipynb"
        nbformat.write(build_notebook(name), path)
        paths.append(path)
    return paths
