"""
Tests for the lmdesign exception hierarchy.

Validates:
    - Inheritance chain (all exceptions catchable via LmDesignError)
    - Diagnostic attributes on SingularMatrixError and FormulaError
    - Default attribute values (None for optional attributes)
"""

import pytest

from lmdesign.core.exceptions import (
    DimensionError,
    FormulaError,
    LmDesignError,
    NumericalError,
    SingularMatrixError,
    ValidationError,
)


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every exception is catchable via LmDesignError."""

    def test_validation_error_is_lmdesign_error(self):
        with pytest.raises(LmDesignError):
            raise ValidationError("bad input")

    def test_dimension_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise DimensionError("wrong shape")

    def test_formula_error_is_validation_error(self):
        with pytest.raises(ValidationError):
            raise FormulaError("bad formula", formula="y ~")

    def test_singular_matrix_error_is_numerical_error(self):
        with pytest.raises(NumericalError):
            raise SingularMatrixError("singular")

    def test_singular_matrix_error_is_not_validation_error(self):
        assert not isinstance(SingularMatrixError("singular"), ValidationError)


# ═══════════════════════════════════════════════════════════════════════
# Diagnostic attributes
# ═══════════════════════════════════════════════════════════════════════


class TestSingularMatrixError:
    """Diagnostics carried on singular-design errors."""

    def test_attributes(self):
        err = SingularMatrixError(
            "rank deficient", matrix_name='X', rank=2, expected_rank=3,
            column_names=('Intercept', 'g[a]', 'g[b]'),
        )
        assert err.matrix_name == 'X'
        assert err.rank == 2
        assert err.expected_rank == 3
        assert err.column_names == ('Intercept', 'g[a]', 'g[b]')
        assert str(err) == "rank deficient"

    def test_defaults_are_none(self):
        err = SingularMatrixError("singular")
        assert err.matrix_name is None
        assert err.rank is None
        assert err.expected_rank is None
        assert err.column_names is None


class TestFormulaError:
    """Formula errors are validation errors."""

    def test_formula_attribute(self):
        err = FormulaError("cannot parse", formula="y ~ x +")
        assert err.formula == "y ~ x +"
        assert "cannot parse" in str(err)

    def test_formula_default_none(self):
        assert FormulaError("oops").formula is None
