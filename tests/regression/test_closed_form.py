"""
Closed-form checks of fitted coefficients.

Each test compares a fit against a quantity that can be computed by hand:
the generating line, group sample means, or differences of them.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from lmdesign import datasets
from lmdesign.contrasts import contrast
from lmdesign.core.tolerances import EQUIVALENT, EXACT
from lmdesign.regression import lm


# ═══════════════════════════════════════════════════════════════════════
# Covariates
# ═══════════════════════════════════════════════════════════════════════


class TestTwoPointLine:
    """Two noise-free points give an exact line."""

    @pytest.mark.parametrize("a, b", [(1.0, 2.0), (-3.5, 0.25), (0.0, -1.0)])
    def test_recovers_line_exactly(self, a, b):
        table = datasets.two_point_line(a, b)
        with pytest.warns(RuntimeWarning):
            sol = lm("expression ~ x", table)
        assert sol.coef['Intercept'] == pytest.approx(a, abs=EXACT.atol)
        assert sol.coef['x'] == pytest.approx(b, abs=EXACT.atol)
        assert_allclose(sol.residuals, 0.0, atol=EXACT.atol)
        assert sol.df_residual == 0

    def test_other_x_positions(self):
        table = datasets.two_point_line(2.0, 3.0, x=(-1.0, 4.0))
        with pytest.warns(RuntimeWarning):
            sol = lm("expression ~ x", table)
        assert_allclose(sol.coefficients, [2.0, 3.0], atol=EXACT.atol)


class TestNoiseFreeRecovery:
    """Noise-free data recover the generating coefficients."""

    def test_age(self):
        table = datasets.age_expression(sigma=0.0)
        sol = lm(table.metadata['formula'], table)
        true = table.metadata['true_coefficients']
        assert_allclose(sol.coef[list(true)], list(true.values()), atol=1e-9)

    def test_nuisance_model(self):
        table = datasets.batch_expression(sigma=0.0)
        sol = lm(table.metadata['formula'], table)
        true = table.metadata['true_coefficients']
        assert_allclose(sol.coef[list(true)], list(true.values()), atol=1e-9)


# ═══════════════════════════════════════════════════════════════════════
# Factors
# ═══════════════════════════════════════════════════════════════════════


class TestTwoLevelFactor:
    """Reference and means coding of a two-level factor."""

    def test_reference_coding(self, genotype_table):
        sol = lm("expression ~ genotype", genotype_table)
        means = genotype_table.group_means('genotype')
        assert sol.coef['Intercept'] == pytest.approx(means['wildtype'], abs=EXACT.atol)
        assert sol.coef['genotype[T.mutant]'] == pytest.approx(
            means['mutant'] - means['wildtype'], abs=EXACT.atol
        )

    def test_means_coding(self, genotype_table):
        sol = lm("expression ~ 0 + genotype", genotype_table)
        means = genotype_table.group_means('genotype')
        assert sol.coef['genotype[wildtype]'] == pytest.approx(means['wildtype'], abs=EXACT.atol)
        assert sol.coef['genotype[mutant]'] == pytest.approx(means['mutant'], abs=EXACT.atol)

    def test_means_contrast_equals_reference_slope(self, genotype_table):
        ref = lm("expression ~ genotype", genotype_table)
        means = lm("expression ~ 0 + genotype", genotype_table)
        diff = contrast(means, "genotype[mutant] - genotype[wildtype]")
        assert diff.estimates[0] == pytest.approx(
            ref.coef['genotype[T.mutant]'], abs=EQUIVALENT.atol
        )
        # same model, so the standard errors agree as well
        slope_se = ref.standard_errors[ref.column_names.index('genotype[T.mutant]')]
        assert diff.standard_errors[0] == pytest.approx(slope_se, rel=EQUIVALENT.rtol)

    def test_parameterisations_share_fit(self, genotype_table):
        ref = lm("expression ~ genotype", genotype_table)
        means = lm("expression ~ 0 + genotype", genotype_table)
        assert_allclose(ref.fitted_values, means.fitted_values, atol=EQUIVALENT.atol)
        assert ref.df_residual == means.df_residual == genotype_table.n - 2

    def test_relevel_flips_sign(self, genotype_table):
        ref = lm("expression ~ genotype", genotype_table)
        flipped = lm("expression ~ genotype", genotype_table.relevel('genotype', 'mutant'))
        assert flipped.coef['genotype[T.wildtype]'] == pytest.approx(
            -ref.coef['genotype[T.mutant]'], abs=EQUIVALENT.atol
        )


class TestMultiLevelFactor:
    """Average-of-treatments contrast on a multi-level factor."""

    def test_coefficients_are_differences_from_control(self, treatment_table):
        sol = lm("expression ~ treatment", treatment_table)
        means = treatment_table.group_means('treatment')
        for level in ('drugA', 'drugB', 'drugC'):
            assert sol.coef[f'treatment[T.{level}]'] == pytest.approx(
                means[level] - means['control'], abs=EXACT.atol
            )

    def test_zero_sum_contrast_matches_raw_coefficients(self, treatment_table):
        sol = lm("expression ~ 0 + treatment", treatment_table)
        weights = np.array([-1.0, 1 / 3, 1 / 3, 1 / 3])
        assert weights.sum() == pytest.approx(0.0)
        result = contrast(sol, weights)
        assert result.estimates[0] == pytest.approx(weights @ sol.coefficients, abs=EXACT.atol)


class TestInteraction:
    """Interaction coefficient for additive and non-additive data."""

    def test_additive_exact_data_has_zero_interaction(self):
        table = datasets.genotype_treatment_expression(additive=True, sigma=0.0)
        sol = lm("expression ~ genotype * treatment", table)
        assert sol.coef['genotype[T.mutant]:treatment[T.treated]'] == pytest.approx(0.0, abs=1e-10)

    def test_nonadditive_exact_data_recovers_interaction(self):
        table = datasets.genotype_treatment_expression(additive=False, interaction=1.5, sigma=0.0)
        sol = lm("expression ~ genotype * treatment", table)
        assert sol.coef['genotype[T.mutant]:treatment[T.treated]'] == pytest.approx(1.5, abs=1e-10)

    def test_noisy_additive_interaction_near_zero(self):
        table = datasets.genotype_treatment_expression(additive=True, sigma=0.4, n_per_cell=8)
        sol = lm("expression ~ genotype * treatment", table)
        idx = sol.column_names.index('genotype[T.mutant]:treatment[T.treated]')
        assert abs(sol.coefficients[idx]) < 4 * sol.standard_errors[idx]

    def test_interaction_is_difference_of_differences(self):
        table = datasets.genotype_treatment_expression(additive=False, seed=5)
        sol = lm("expression ~ genotype * treatment", table)
        m = table.group_means(['genotype', 'treatment'])
        expected = (
            (m[('mutant', 'treated')] - m[('mutant', 'untreated')])
            - (m[('wildtype', 'treated')] - m[('wildtype', 'untreated')])
        )
        assert sol.coef['genotype[T.mutant]:treatment[T.treated]'] == pytest.approx(
            expected, abs=EXACT.atol
        )


class TestResidualDFEverywhere:
    """df_residual = n - p for every model."""

    @pytest.mark.parametrize("formula, table_fn", [
        ("expression ~ age", datasets.age_expression),
        ("expression ~ genotype", datasets.genotype_expression),
        ("expression ~ 0 + treatment", datasets.treatment_expression),
        ("expression ~ genotype * treatment", datasets.genotype_treatment_expression),
        ("expression ~ condition + batch + lane + technician + age", datasets.batch_expression),
    ])
    def test_df_is_n_minus_p(self, formula, table_fn):
        table = table_fn()
        sol = lm(formula, table)
        assert sol.df_residual == table.n - len(sol.coefficients)
        assert sol.sigma_squared == pytest.approx(sol.rss / sol.df_residual)
