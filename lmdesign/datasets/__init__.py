"""
Seeded synthetic tables used by the walkthroughs.

Example:
    >>> from lmdesign.datasets import genotype_expression
    >>> table = genotype_expression(seed=1)
    >>> table.metadata['true_coefficients']
"""

from lmdesign.datasets.synthetic import (
    DEFAULT_SEED,
    age_expression,
    batch_expression,
    genotype_expression,
    genotype_treatment_expression,
    treatment_expression,
    two_point_line,
)

__all__ = [
    "DEFAULT_SEED",
    "two_point_line",
    "age_expression",
    "genotype_expression",
    "treatment_expression",
    "genotype_treatment_expression",
    "batch_expression",
]
