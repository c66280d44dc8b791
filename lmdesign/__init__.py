"""
lmdesign: design matrices, linear models and contrasts for expression data.

Worked examples of ordinary least squares on small gene-expression tables:
how formulas become design matrices, what the fitted coefficients mean under
reference and means coding, and how contrasts and marginal means answer the
questions an experiment was designed for.

Submodules:
    design: Design matrices from formulas or explicit factor dicts
    regression: OLS fits (fit, lm)
    contrasts: Linear contrasts, marginal means, multiplicity adjustment
    plotting: matplotlib figures of fitted models
    datasets: Seeded synthetic tables
    tutorials: Walkthroughs and notebook generation
"""

__version__ = "0.1.0"

from lmdesign import design
from lmdesign import regression
from lmdesign import contrasts
from lmdesign import datasets
from lmdesign.core.table import SampleTable
from lmdesign.regression import fit, lm

__all__ = [
    "__version__",
    "design",
    "regression",
    "contrasts",
    "datasets",
    "SampleTable",
    "fit",
    "lm",
]
