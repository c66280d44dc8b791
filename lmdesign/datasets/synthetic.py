"""
Synthetic expression tables for the worked examples.

Every generator draws from numpy.random.default_rng(seed), so the same call
returns the same table. The values used to generate the data are stored in
the table's metadata:

    metadata['formula']            model the data were generated from
    metadata['true_coefficients']  {column name: value} for that formula,
                                   with patsy column names
    metadata['sigma']              residual standard deviation

With sigma=0 the data are exact and a fit of metadata['formula'] recovers
true_coefficients to machine precision.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from lmdesign.core.exceptions import ValidationError
from lmdesign.core.table import SampleTable

DEFAULT_SEED = 42


def _rng(seed: int | None) -> np.random.Generator:
    return np.random.default_rng(DEFAULT_SEED if seed is None else seed)


def _noise(rng: np.random.Generator, sigma: float, n: int) -> np.ndarray:
    if sigma < 0:
        raise ValidationError(f"sigma must be non-negative, got {sigma}")
    if sigma == 0:
        return np.zeros(n)
    return rng.normal(0.0, sigma, size=n)


def _check_replicates(n: int, name: str, minimum: int = 1) -> None:
    if n < minimum:
        raise ValidationError(f"{name} must be at least {minimum}, got {n}")


def two_point_line(
    a: float = 1.0,
    b: float = 2.0,
    x: Sequence[float] = (0.0, 1.0),
) -> SampleTable:
    """
    Two noise-free points on the line y = a + b*x.

    A straight line through two points is an exact fit: the intercept is a,
    the slope is b and there are no residual degrees of freedom left.
    """
    xs = np.asarray(x, dtype=np.float64)
    if xs.shape != (2,) or xs[0] == xs[1]:
        raise ValidationError(f"x must hold two distinct values, got {list(x)}")
    return SampleTable.from_columns(
        covariates={'x': xs},
        response=a + b * xs,
        metadata={
            'formula': 'expression ~ x',
            'true_coefficients': {'Intercept': a, 'x': b},
            'sigma': 0.0,
        },
    )


def age_expression(
    n: int = 20,
    intercept: float = 2.0,
    slope: float = 0.05,
    sigma: float = 0.3,
    age_range: tuple[float, float] = (20.0, 70.0),
    seed: int | None = None,
) -> SampleTable:
    """Expression that drifts linearly with donor age."""
    _check_replicates(n, 'n', minimum=3)
    rng = _rng(seed)
    age = np.round(rng.uniform(*age_range, size=n), 1)
    expression = intercept + slope * age + _noise(rng, sigma, n)
    return SampleTable.from_columns(
        covariates={'age': age},
        response=expression,
        metadata={
            'formula': 'expression ~ age',
            'true_coefficients': {'Intercept': intercept, 'age': slope},
            'sigma': sigma,
        },
    )


def genotype_expression(
    n_per_group: int = 6,
    means: Mapping[str, float] | None = None,
    sigma: float = 0.5,
    seed: int | None = None,
) -> SampleTable:
    """
    One two-level factor. The first key of `means` is the reference level.

    Default: wildtype 5.0, mutant 7.0.
    """
    _check_replicates(n_per_group, 'n_per_group')
    means = dict(means or {'wildtype': 5.0, 'mutant': 7.0})
    if len(means) != 2:
        raise ValidationError(f"means must have exactly 2 levels, got {list(means)}")
    return _one_factor_table('genotype', means, n_per_group, sigma, seed)


def treatment_expression(
    n_per_group: int = 5,
    means: Mapping[str, float] | None = None,
    sigma: float = 0.5,
    seed: int | None = None,
) -> SampleTable:
    """
    One multi-level factor: a control and several treatments.

    Default: control 5.0, drugA 6.5, drugB 7.0, drugC 5.2.
    """
    _check_replicates(n_per_group, 'n_per_group')
    means = dict(means or {'control': 5.0, 'drugA': 6.5, 'drugB': 7.0, 'drugC': 5.2})
    if len(means) < 3:
        raise ValidationError(f"means must have at least 3 levels, got {list(means)}")
    return _one_factor_table('treatment', means, n_per_group, sigma, seed)


def genotype_treatment_expression(
    additive: bool = True,
    n_per_cell: int = 4,
    baseline: float = 5.0,
    genotype_effect: float = 1.5,
    treatment_effect: float = 2.0,
    interaction: float = 1.5,
    sigma: float = 0.4,
    seed: int | None = None,
) -> SampleTable:
    """
    Two crossed two-level factors, genotype (wildtype, mutant) and treatment
    (untreated, treated).

    Cell means are baseline + genotype_effect*[mutant] +
    treatment_effect*[treated], plus `interaction` in the mutant/treated
    cell unless additive is True.
    """
    _check_replicates(n_per_cell, 'n_per_cell')
    rng = _rng(seed)
    inter = 0.0 if additive else float(interaction)

    genotypes, treatments, means = [], [], []
    for g in ('wildtype', 'mutant'):
        for t in ('untreated', 'treated'):
            mu = (
                baseline
                + genotype_effect * (g == 'mutant')
                + treatment_effect * (t == 'treated')
                + inter * (g == 'mutant' and t == 'treated')
            )
            genotypes.extend([g] * n_per_cell)
            treatments.extend([t] * n_per_cell)
            means.extend([mu] * n_per_cell)

    n = len(means)
    return SampleTable.from_columns(
        factors={'genotype': genotypes, 'treatment': treatments},
        levels={'genotype': ['wildtype', 'mutant'], 'treatment': ['untreated', 'treated']},
        response=np.asarray(means) + _noise(rng, sigma, n),
        metadata={
            'formula': 'expression ~ genotype * treatment',
            'true_coefficients': {
                'Intercept': baseline,
                'genotype[T.mutant]': genotype_effect,
                'treatment[T.treated]': treatment_effect,
                'genotype[T.mutant]:treatment[T.treated]': inter,
            },
            'additive': additive,
            'sigma': sigma,
        },
    )


def batch_expression(
    n_per_cell: int = 3,
    baseline: float = 6.0,
    condition_effect: float = 1.2,
    batch_effect: float = 0.8,
    lane_effect: float = -0.3,
    technician_effect: float = 0.4,
    age_slope: float = 0.02,
    sigma: float = 0.3,
    seed: int | None = None,
) -> SampleTable:
    """
    Condition of interest (control, disease) measured across nuisance
    factors: processing batch (b1, b2), sequencing lane (L1, L2), technician
    (A, B), plus donor age.

    Every condition/batch/lane combination holds n_per_cell samples and
    technicians alternate within a cell, starting from A in lane L1 and
    from B in lane L2, so every condition sees both technicians equally
    often and no nuisance factor is confounded with the condition.
    """
    _check_replicates(n_per_cell, 'n_per_cell', minimum=2)
    rng = _rng(seed)

    rows: dict[str, list[Any]] = {'condition': [], 'batch': [], 'lane': [], 'technician': []}
    for c in ('control', 'disease'):
        for b in ('b1', 'b2'):
            for lane_index, lane in enumerate(('L1', 'L2')):
                for r in range(n_per_cell):
                    rows['condition'].append(c)
                    rows['batch'].append(b)
                    rows['lane'].append(lane)
                    rows['technician'].append('AB'[(r + lane_index) % 2])

    n = len(rows['condition'])
    age = np.round(rng.uniform(25.0, 65.0, size=n), 1)
    cond = np.array(rows['condition']) == 'disease'
    batch = np.array(rows['batch']) == 'b2'
    lane = np.array(rows['lane']) == 'L2'
    tech = np.array(rows['technician']) == 'B'
    expression = (
        baseline
        + condition_effect * cond
        + batch_effect * batch
        + lane_effect * lane
        + technician_effect * tech
        + age_slope * age
        + _noise(rng, sigma, n)
    )

    return SampleTable.from_columns(
        factors=rows,
        levels={
            'condition': ['control', 'disease'],
            'batch': ['b1', 'b2'],
            'lane': ['L1', 'L2'],
            'technician': ['A', 'B'],
        },
        covariates={'age': age},
        response=expression,
        metadata={
            'formula': 'expression ~ condition + batch + lane + technician + age',
            'true_coefficients': {
                'Intercept': baseline,
                'condition[T.disease]': condition_effect,
                'batch[T.b2]': batch_effect,
                'lane[T.L2]': lane_effect,
                'technician[T.B]': technician_effect,
                'age': age_slope,
            },
            'sigma': sigma,
        },
    )


def _one_factor_table(
    factor: str,
    means: dict[str, float],
    n_per_group: int,
    sigma: float,
    seed: int | None,
) -> SampleTable:
    rng = _rng(seed)
    levels = list(means)
    labels = [lv for lv in levels for _ in range(n_per_group)]
    mu = np.array([means[lv] for lv in labels])
    reference = levels[0]
    true = {'Intercept': means[reference]}
    true.update({f"{factor}[T.{lv}]": means[lv] - means[reference] for lv in levels[1:]})
    return SampleTable.from_columns(
        factors={factor: labels},
        levels={factor: levels},
        response=mu + _noise(rng, sigma, len(labels)),
        metadata={
            'formula': f'expression ~ {factor}',
            'true_coefficients': true,
            'true_means': dict(means),
            'sigma': sigma,
        },
    )
