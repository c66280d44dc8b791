"""
Tests for design-matrix construction.

Validates:
    - Formula route (patsy) column layout and naming
    - Explicit-dict route produces the same matrices
    - Means coding with an intercept is rank deficient
    - Building rows for new data
"""

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from lmdesign import datasets
from lmdesign.core.exceptions import DimensionError, FormulaError, ValidationError
from lmdesign.design import build_model_matrix, from_arrays, model_matrix, split_formula


@pytest.fixture
def crossed_table():
    return datasets.genotype_treatment_expression(n_per_cell=2, seed=3)


# ═══════════════════════════════════════════════════════════════════════
# Formula route
# ═══════════════════════════════════════════════════════════════════════


class TestSplitFormula:
    """Response and right-hand side of a formula."""

    def test_with_response(self):
        assert split_formula("expression ~ genotype") == ('expression', '~ genotype')

    def test_without_response(self):
        assert split_formula("~ 0 + genotype") == (None, '~ 0 + genotype')

    @pytest.mark.parametrize("formula", ["expression", "y ~ x ~ z", "y ~ "])
    def test_malformed(self, formula):
        with pytest.raises(FormulaError) as exc_info:
            split_formula(formula)
        assert exc_info.value.formula == formula


class TestModelMatrixFormula:
    """Formula-built model matrices."""

    def test_covariate(self, small_table):
        mm = model_matrix("~ age", small_table)
        assert mm.column_names == ('Intercept', 'age')
        assert_array_equal(mm.X[:, 1], small_table.column('age'))
        assert mm.has_intercept
        assert mm.covariates == ('age',)
        assert mm.factor_levels == {}

    def test_reference_coding(self, small_table):
        mm = model_matrix("~ genotype", small_table)
        assert mm.column_names == ('Intercept', 'genotype[T.mut]')
        assert_array_equal(mm.X[:, 1], [0, 0, 0, 1, 1, 1])
        assert mm.coding == 'reference'
        assert mm.factor_levels == {'genotype': ['wt', 'mut']}

    def test_means_coding(self, small_table):
        mm = model_matrix("~ 0 + genotype", small_table)
        assert mm.column_names == ('genotype[wt]', 'genotype[mut]')
        assert not mm.has_intercept
        assert mm.coding == 'means'

    def test_minus_one_suppresses_intercept(self, small_table):
        mm = model_matrix("~ genotype - 1", small_table)
        assert mm.column_names == ('genotype[wt]', 'genotype[mut]')

    def test_response_side_ignored(self, small_table):
        a = model_matrix("expression ~ genotype", small_table)
        b = model_matrix("~ genotype", small_table)
        assert_array_equal(a.X, b.X)

    def test_relevel_changes_reference(self, small_table):
        mm = model_matrix("~ genotype", small_table.relevel('genotype', 'mut'))
        assert mm.column_names == ('Intercept', 'genotype[T.wt]')

    def test_interaction(self, crossed_table):
        mm = model_matrix("~ genotype * treatment", crossed_table)
        assert mm.column_names == (
            'Intercept',
            'genotype[T.mutant]',
            'treatment[T.treated]',
            'genotype[T.mutant]:treatment[T.treated]',
        )
        assert mm.term_names == ('Intercept', 'genotype', 'treatment', 'genotype:treatment')
        assert_array_equal(mm.X[:, 3], mm.X[:, 1] * mm.X[:, 2])

    def test_explicit_interaction_same_as_star(self, crossed_table):
        a = model_matrix("~ genotype * treatment", crossed_table)
        b = model_matrix("~ genotype + treatment + genotype:treatment", crossed_table)
        assert a.column_names == b.column_names
        assert_array_equal(a.X, b.X)

    def test_term_columns(self, crossed_table):
        mm = model_matrix("~ genotype * treatment", crossed_table)
        assert mm.term_columns('treatment') == ['treatment[T.treated]']
        with pytest.raises(ValidationError, match="No term"):
            mm.term_columns('batch')

    def test_to_frame(self, small_table):
        frame = model_matrix("~ genotype", small_table).to_frame()
        assert list(frame.index) == small_table.sample_ids
        assert list(frame.columns) == ['Intercept', 'genotype[T.mut]']

    def test_unknown_column(self, small_table):
        with pytest.raises(FormulaError):
            model_matrix("~ batch", small_table)

    def test_unparseable(self, small_table):
        with pytest.raises(FormulaError):
            model_matrix("~ genotype +", small_table)


# ═══════════════════════════════════════════════════════════════════════
# Explicit-dict route
# ═══════════════════════════════════════════════════════════════════════


class TestBuildModelMatrix:
    """Explicit factor and covariate designs."""

    def test_reference_matches_formula(self, small_table):
        built = build_model_matrix(
            {'genotype': small_table.column('genotype')},
            levels={'genotype': ['wt', 'mut']},
            covariates={'age': small_table.column('age')},
        )
        formula = model_matrix("~ genotype + age", small_table)
        assert built.column_names == formula.column_names
        assert_allclose(built.X, formula.X)

    def test_means_matches_formula(self, small_table):
        built = build_model_matrix(
            {'genotype': small_table.column('genotype')},
            levels={'genotype': ['wt', 'mut']},
            coding='means',
            include_intercept=False,
        )
        formula = model_matrix("~ 0 + genotype", small_table)
        assert built.column_names == formula.column_names
        assert_allclose(built.X, formula.X)

    def test_interaction_matches_formula(self, crossed_table):
        built = build_model_matrix(
            {name: crossed_table.column(name) for name in ('genotype', 'treatment')},
            levels={name: crossed_table.factor_levels(name) for name in ('genotype', 'treatment')},
            interactions=[('genotype', 'treatment')],
        )
        formula = model_matrix("~ genotype * treatment", crossed_table)
        assert built.column_names == formula.column_names
        assert built.term_names == formula.term_names
        assert_allclose(built.X, formula.X)

    def test_means_with_intercept_is_singular(self, small_table):
        mm = build_model_matrix(
            {'genotype': small_table.column('genotype')},
            levels={'genotype': ['wt', 'mut']},
            coding='means',
            include_intercept=True,
        )
        assert mm.column_names == ('Intercept', 'genotype[wt]', 'genotype[mut]')
        assert mm.rank == 2
        assert not mm.is_full_rank

    def test_default_levels_sorted(self):
        mm = build_model_matrix({'g': ['b', 'a', 'b']})
        assert mm.factor_levels == {'g': ['a', 'b']}
        assert mm.column_names == ('Intercept', 'g[T.b]')

    def test_bad_coding(self):
        with pytest.raises(ValidationError, match="coding"):
            build_model_matrix({'g': ['a', 'b']}, coding='sum')

    def test_inconsistent_lengths(self):
        with pytest.raises(DimensionError):
            build_model_matrix({'g': ['a', 'b']}, covariates={'age': [1.0, 2.0, 3.0]})

    def test_unknown_interaction_term(self):
        with pytest.raises(ValidationError, match="unknown term"):
            build_model_matrix({'g': ['a', 'b']}, interactions=[('g', 'h')])

    def test_rows_for_new_data(self, small_table):
        mm = build_model_matrix(
            {'genotype': small_table.column('genotype')},
            levels={'genotype': ['wt', 'mut']},
            covariates={'age': small_table.column('age')},
        )
        rows = mm.rows_for(pd.DataFrame({'genotype': ['mut', 'wt'], 'age': [20.0, 60.0]}))
        assert_array_equal(rows, [[1.0, 1.0, 20.0], [1.0, 0.0, 60.0]])

    def test_rows_for_missing_column(self, small_table):
        mm = build_model_matrix(
            {'genotype': small_table.column('genotype')},
            covariates={'age': small_table.column('age')},
        )
        with pytest.raises(ValidationError, match="missing columns"):
            mm.rows_for(pd.DataFrame({'genotype': ['wt']}))


class TestFromArrays:
    """Raw matrices wrapped as ModelMatrix."""

    def test_equality_is_identity(self):
        a = from_arrays(np.eye(3))
        b = from_arrays(np.eye(3))
        assert a == a
        assert a != b

    def test_three_dimensional_rejected(self):
        with pytest.raises(DimensionError, match="expected 2D"):
            from_arrays(np.zeros((2, 2, 2)))

    def test_intercept_detected(self):
        mm = from_arrays(np.column_stack([np.ones(3), [1.0, 2.0, 3.0]]), ['Intercept', 'x'])
        assert mm.has_intercept
        assert mm.column_names.index('x') == 1

    def test_default_names(self):
        mm = from_arrays(np.array([[2.0, 1.0], [3.0, 4.0]]))
        assert mm.column_names == ('x0', 'x1')
        assert not mm.has_intercept

    def test_cannot_encode_new_data(self):
        mm = from_arrays(np.eye(2))
        with pytest.raises(ValidationError, match="raw arrays"):
            mm.rows_for(pd.DataFrame({'x0': [1.0]}))

    def test_name_count_mismatch(self):
        with pytest.raises(DimensionError):
            from_arrays(np.eye(2), ['a'])
