"""
Factor coding.

Handles the translation from a categorical factor to numeric indicator
columns, given the factor's declared level order.

Key concepts:
    - Reference coding: k-1 indicator columns, the first declared level is
      the baseline absorbed by the intercept
    - Means coding: k indicator columns, one per level, for models without
      an intercept
    - Interaction: elementwise products of all column pairs of two terms

Column labels follow the patsy convention so that names look the same
whether a matrix came from a formula or from explicit dictionaries:
    genotype[T.mutant]        reference coding
    genotype[mutant]          means coding
    genotype[T.mutant]:treatment[T.drug]
"""

from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray


def encode_reference(
    values: Sequence[Any],
    levels: Sequence[str],
) -> tuple[NDArray[np.floating[Any]], list[str], str]:
    """
    Reference (treatment) coding for a single factor.

    Drops the first declared level and creates k-1 indicator columns.

    Args:
        values: 1D labels (compared as strings)
        levels: Declared level order; levels[0] is the reference

    Returns:
        (X_coded, coded_levels, reference) where:
            X_coded: (n, k-1) float64 indicator matrix
            coded_levels: the k-1 non-reference level names (column order)
            reference: the dropped reference level
    """
    labels = np.array([str(v) for v in values])
    reference = levels[0]
    coded_levels = list(levels[1:])

    X = np.zeros((len(labels), len(coded_levels)), dtype=np.float64)
    for j, level in enumerate(coded_levels):
        X[:, j] = (labels == level).astype(np.float64)

    return X, coded_levels, reference


def encode_means(
    values: Sequence[Any],
    levels: Sequence[str],
) -> tuple[NDArray[np.floating[Any]], list[str]]:
    """
    Means (cell-means) coding for a single factor.

    One indicator column per level, including the first. Used when the
    model has no intercept, so each coefficient is that level's mean.

    Returns:
        (X_coded, levels) with X_coded of shape (n, k)
    """
    labels = np.array([str(v) for v in values])
    X = np.zeros((len(labels), len(levels)), dtype=np.float64)
    for j, level in enumerate(levels):
        X[:, j] = (labels == level).astype(np.float64)
    return X, list(levels)


def interaction_columns(
    X_a: NDArray[np.floating[Any]], X_b: NDArray[np.floating[Any]],
) -> NDArray[np.floating[Any]]:
    """
    Compute interaction columns as the elementwise product of all
    column pairs from X_a and X_b.

    Column order: for each column i of X_a, every column j of X_b.

    Returns:
        (n, p_a * p_b) interaction columns
    """
    n = X_a.shape[0]
    p_a = X_a.shape[1]
    p_b = X_b.shape[1]
    X_int = np.empty((n, p_a * p_b), dtype=np.float64)

    col = 0
    for i in range(p_a):
        for j in range(p_b):
            X_int[:, col] = X_a[:, i] * X_b[:, j]
            col += 1

    return X_int


def reference_labels(factor: str, coded_levels: Sequence[str]) -> list[str]:
    return [f"{factor}[T.{level}]" for level in coded_levels]


def means_labels(factor: str, levels: Sequence[str]) -> list[str]:
    return [f"{factor}[{level}]" for level in levels]


def interaction_labels(labels_a: Sequence[str], labels_b: Sequence[str]) -> list[str]:
    return [f"{a}:{b}" for a in labels_a for b in labels_b]
