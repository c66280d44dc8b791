"""
Tests for factor coding primitives.
"""

import numpy as np
from numpy.testing import assert_array_equal

from lmdesign.design import encode_means, encode_reference, interaction_columns


VALUES = ['ctrl', 'drugA', 'drugB', 'ctrl', 'drugB']
LEVELS = ['ctrl', 'drugA', 'drugB']


class TestEncodeReference:
    """Treatment coding drops the reference level."""

    def test_drops_first_level(self):
        X, coded, reference = encode_reference(VALUES, LEVELS)
        assert reference == 'ctrl'
        assert coded == ['drugA', 'drugB']
        assert_array_equal(X, [[0, 0], [1, 0], [0, 1], [0, 0], [0, 1]])

    def test_level_order_decides_reference(self):
        X, coded, reference = encode_reference(VALUES, ['drugB', 'ctrl', 'drugA'])
        assert reference == 'drugB'
        assert coded == ['ctrl', 'drugA']
        assert X.shape == (5, 2)


class TestEncodeMeans:
    """Means coding keeps one column per level."""

    def test_one_column_per_level(self):
        X, levels = encode_means(VALUES, LEVELS)
        assert levels == LEVELS
        assert_array_equal(X.sum(axis=1), np.ones(5))
        assert_array_equal(X[:, 0], [1, 0, 0, 1, 0])


class TestInteractionColumns:
    """Elementwise products of main-effect columns."""

    def test_elementwise_products(self):
        A = np.array([[1.0], [0.0], [1.0], [0.0]])
        B = np.array([[1.0, 0.0], [1.0, 0.0], [0.0, 1.0], [0.0, 1.0]])
        X = interaction_columns(A, B)
        assert_array_equal(X, [[1, 0], [0, 0], [0, 1], [0, 0]])

    def test_covariate_by_factor(self):
        age = np.array([[30.0], [40.0], [50.0]])
        g = np.array([[0.0], [1.0], [1.0]])
        assert_array_equal(interaction_columns(g, age), [[0.0], [40.0], [50.0]])
