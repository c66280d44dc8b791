"""
Worked examples and the notebooks generated from them.

Public API:
    WALKTHROUGHS: {name: walkthrough function}
    run_all(plot=False) -> {name: Walkthrough}
    build_notebook(name) -> nbformat.NotebookNode
    write_notebooks(directory) -> [Path]
"""

from lmdesign.tutorials.notebooks import build_notebook, write_notebooks
from lmdesign.tutorials.walkthroughs import (
    WALKTHROUGHS,
    Walkthrough,
    age_covariate,
    genotype_treatment_interaction,
    genotype_two_level,
    nuisance_covariates,
    run_all,
    treatment_multi_level,
    two_point_line,
)

__all__ = [
    "WALKTHROUGHS",
    "Walkthrough",
    "run_all",
    "build_notebook",
    "write_notebooks",
    "two_point_line",
    "age_covariate",
    "genotype_two_level",
    "treatment_multi_level",
    "genotype_treatment_interaction",
    "nuisance_covariates",
]
