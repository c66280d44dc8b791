"""
pytest configuration and shared fixtures.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from lmdesign import datasets
from lmdesign.core.table import SampleTable


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def genotype_table():
    """Two-level factor, wildtype is the reference level."""
    return datasets.genotype_expression(seed=1)


@pytest.fixture
def treatment_table():
    """Control plus three treatments, five samples each."""
    return datasets.treatment_expression(seed=2)


@pytest.fixture
def small_table():
    """Hand-written table with known group means (wt 2.0, mut 5.0)."""
    return SampleTable.from_columns(
        factors={'genotype': ['wt', 'wt', 'wt', 'mut', 'mut', 'mut']},
        levels={'genotype': ['wt', 'mut']},
        covariates={'age': [30.0, 40.0, 50.0, 35.0, 45.0, 55.0]},
        response=[1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
    )


@pytest.fixture
def collinear_data(rng):
    """Dataset with perfect collinearity (should fail)."""
    n = 20
    x1 = rng.standard_normal(n)
    x2 = rng.standard_normal(n)
    X = np.column_stack([np.ones(n), x1, x2, x1 + x2])
    y = rng.standard_normal(n)
    return X, y
