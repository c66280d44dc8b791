"""
Tests for linear contrasts and term tests.

Validates:
    - Every way of writing a contrast gives the same L matrix
    - Estimate, SE, t, p and CI against closed forms
    - Joint Wald F-test
    - Multiplicity adjustment and input validation
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy import stats

from lmdesign.contrasts import contrast, contrast_matrix, p_adjust, term_test
from lmdesign.core.exceptions import DimensionError, ValidationError
from lmdesign.regression import fit, lm


NAMES = ('Intercept', 'treatment[T.drugA]', 'treatment[T.drugB]', 'treatment[T.drugC]')


@pytest.fixture
def treatment_fit(treatment_table):
    return lm("expression ~ treatment", treatment_table)


@pytest.fixture
def means_fit(treatment_table):
    return lm("expression ~ 0 + treatment", treatment_table)


# ═══════════════════════════════════════════════════════════════════════
# contrast_matrix
# ═══════════════════════════════════════════════════════════════════════


class TestContrastMatrix:
    """Building L from vectors, dicts and expressions."""

    def test_vector(self):
        L, labels, null = contrast_matrix([0, 1, -1, 0], NAMES)
        assert_allclose(L, [[0, 1, -1, 0]])
        assert labels == ['treatment[T.drugA] - treatment[T.drugB]']
        assert_allclose(null, [0.0])

    def test_matrix(self):
        L, labels, _ = contrast_matrix(np.eye(4)[1:], NAMES)
        assert L.shape == (3, 4)
        assert labels == list(NAMES[1:])

    def test_mapping(self):
        L, _, _ = contrast_matrix({'treatment[T.drugA]': 1, 'treatment[T.drugB]': -1}, NAMES)
        assert_allclose(L, [[0, 1, -1, 0]])

    def test_mapping_of_rows(self):
        L, labels, _ = contrast_matrix(
            {'A vs B': {'treatment[T.drugA]': 1, 'treatment[T.drugB]': -1},
             'C': [0, 0, 0, 1]},
            NAMES,
        )
        assert labels == ['A vs B', 'C']
        assert_allclose(L, [[0, 1, -1, 0], [0, 0, 0, 1]])

    def test_expression(self):
        L, labels, null = contrast_matrix("treatment[T.drugA] - treatment[T.drugB]", NAMES)
        assert_allclose(L, [[0, 1, -1, 0]])
        assert labels == ['treatment[T.drugA] - treatment[T.drugB]']
        assert_allclose(null, [0.0])

    def test_expression_with_null(self):
        _, _, null = contrast_matrix("treatment[T.drugA] = 1.5", NAMES)
        assert_allclose(null, [1.5])

    def test_several_expressions(self):
        L, _, _ = contrast_matrix(["treatment[T.drugA]", "treatment[T.drugC]"], NAMES)
        assert_allclose(L, [[0, 1, 0, 0], [0, 0, 0, 1]])

    def test_scaled_weights_label(self):
        _, labels, _ = contrast_matrix([0, 0.5, 0.5, 0], NAMES)
        assert labels == ['0.5*treatment[T.drugA] + 0.5*treatment[T.drugB]']

    def test_wrong_width(self):
        with pytest.raises(DimensionError, match="expected 4 weights"):
            contrast_matrix([1, -1], NAMES)

    def test_unknown_coefficient(self):
        with pytest.raises(ValidationError, match="unknown coefficients"):
            contrast_matrix({'treatment[T.drugZ]': 1}, NAMES)

    def test_unparseable_expression(self):
        with pytest.raises(ValidationError, match="cannot parse"):
            contrast_matrix("treatment[T.drugZ] - Intercept", NAMES)


# ═══════════════════════════════════════════════════════════════════════
# contrast
# ═══════════════════════════════════════════════════════════════════════


class TestContrast:
    """Estimates, standard errors and tests of contrasts."""

    def test_single_coefficient_matches_fit(self, treatment_fit):
        c = contrast(treatment_fit, "treatment[T.drugA]")
        j = treatment_fit.column_names.index('treatment[T.drugA]')
        assert c.estimates[0] == pytest.approx(treatment_fit.coefficients[j])
        assert c.standard_errors[0] == pytest.approx(treatment_fit.standard_errors[j])
        assert c.t_statistics[0] == pytest.approx(treatment_fit.t_statistics[j])
        assert c.p_values[0] == pytest.approx(treatment_fit.p_values[j])
        assert c.df == treatment_fit.df_residual
        assert c.joint is None

    def test_closed_form(self, treatment_fit):
        w = np.array([0.0, 1.0, -1.0, 0.0])
        c = contrast(treatment_fit, w, conf_level=0.9)
        est = w @ treatment_fit.coefficients
        se = np.sqrt(w @ treatment_fit.vcov @ w)
        row = c.rows[0]
        assert row.estimate == pytest.approx(est)
        assert row.se == pytest.approx(se)
        t_crit = stats.t.ppf(0.95, treatment_fit.df_residual)
        assert row.ci_lower == pytest.approx(est - t_crit * se)
        assert row.ci_upper == pytest.approx(est + t_crit * se)

    def test_null_value(self, treatment_fit):
        c = contrast(treatment_fit, "treatment[T.drugA] = 1")
        row = c.rows[0]
        assert row.null == 1.0
        assert row.t_value == pytest.approx((row.estimate - 1.0) / row.se)

    def test_labels_override(self, treatment_fit):
        c = contrast(treatment_fit, [0, 1, 0, 0], labels=['drugA effect'])
        assert c.labels == ['drugA effect']
        assert c['drugA effect'].estimate == pytest.approx(treatment_fit.coef['treatment[T.drugA]'])
        with pytest.raises(KeyError):
            c['drugB effect']

    def test_labels_count_mismatch(self, treatment_fit):
        with pytest.raises(DimensionError):
            contrast(treatment_fit, [0, 1, 0, 0], labels=['a', 'b'])

    def test_adjust(self, treatment_fit):
        L = np.eye(4)[1:]
        raw = contrast(treatment_fit, L)
        adjusted = contrast(treatment_fit, L, adjust='holm')
        assert_allclose(adjusted.p_values, p_adjust(raw.p_values, 'holm'))
        assert adjusted.adjust == 'holm'

    def test_bonferroni_widens_intervals(self, treatment_fit):
        L = np.eye(4)[1:]
        raw = contrast(treatment_fit, L).to_frame()
        bonf = contrast(treatment_fit, L, adjust='bonferroni').to_frame()
        assert np.all(
            (bonf['upper.CL'] - bonf['lower.CL']) > (raw['upper.CL'] - raw['lower.CL'])
        )

    def test_invalid_adjust(self, treatment_fit):
        with pytest.raises(ValidationError, match="adjust must be one of"):
            contrast(treatment_fit, [0, 1, 0, 0], adjust='scheffe')

    def test_to_frame(self, treatment_fit):
        frame = contrast(treatment_fit, np.eye(4)[1:]).to_frame()
        assert list(frame.columns) == [
            'estimate', 'SE', 'df', 't.ratio', 'p.value', 'lower.CL', 'upper.CL'
        ]
        assert len(frame) == 3

    def test_summary(self, treatment_fit):
        text = contrast(treatment_fit, np.eye(4)[1:], adjust='holm').summary()
        assert "Linear Contrasts" in text
        assert "holm method for 3 estimates" in text
        assert "Joint test: F(3," in text

    def test_zero_df_gives_nan(self):
        X = np.array([[1.0, 0.0], [1.0, 1.0]])
        with pytest.warns(RuntimeWarning):
            sol = fit(X, [1.0, 3.0], column_names=['Intercept', 'x'])
        c = contrast(sol, {'Intercept': 1, 'x': 1})
        assert c.estimates[0] == pytest.approx(3.0)
        assert np.isnan(c.p_values[0])
        assert c.warnings


class TestJointTest:
    """Joint Wald F-tests of model terms."""

    def test_term_test_matches_anova_f(self, treatment_fit, treatment_table):
        result = term_test(treatment_fit, 'treatment')
        k, n = 4, treatment_table.n
        rss = treatment_fit.rss
        tss = treatment_fit.tss
        f_expected = ((tss - rss) / (k - 1)) / (rss / (n - k))
        assert result.joint.f_value == pytest.approx(f_expected, rel=1e-10)
        assert result.joint.df_num == 3
        assert result.joint.df_den == n - k
        assert result.joint.p_value == pytest.approx(stats.f.sf(f_expected, 3, n - k))
        assert result.info['term'] == 'treatment'

    def test_single_row_f_is_t_squared(self, treatment_fit):
        c = contrast(treatment_fit, [0, 1, 0, 0], joint=True)
        assert c.joint.f_value == pytest.approx(c.t_statistics[0] ** 2)
        assert c.joint.p_value == pytest.approx(c.p_values[0])

    def test_dependent_rows_count_once(self, means_fit):
        L = np.array([
            [-1, 1, 0, 0],
            [-1, 0, 1, 0],
            [0, -1, 1, 0],
        ], dtype=float)
        c = contrast(means_fit, L)
        assert c.joint.df_num == 2

    def test_unknown_term(self, treatment_fit):
        with pytest.raises(ValidationError, match="No term"):
            term_test(treatment_fit, 'batch')
