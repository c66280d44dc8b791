"""
Exception hierarchy for lmdesign.

All exceptions inherit from LmDesignError to allow catching any
library-specific error.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""


class LmDesignError(Exception):
    """Base exception for all lmdesign errors."""
    pass


class ValidationError(LmDesignError):
    """
    Input validation failed.

    Raised when user-provided tables, formulas, contrasts or arrays fail
    validation checks.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect or inconsistent.

    Raised when columns have different lengths or a contrast vector does
    not match the number of model coefficients.
    """
    pass


class FormulaError(ValidationError):
    """
    A model formula could not be turned into a design matrix.

    Attributes:
        formula: The offending formula string
    """

    def __init__(self, message: str, formula: str | None = None):
        super().__init__(message)
        self.formula = formula


class NumericalError(LmDesignError):
    """Numerical computation failed."""
    pass


class SingularMatrixError(NumericalError):
    """
    Design matrix is singular (rank-deficient).

    The only failure mode of an OLS fit. Typically caused by specifying both
    an intercept and a full set of factor-level indicators, or by a
    covariate that is an exact linear combination of other columns.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        rank: Numerical rank, if computed
        expected_rank: Rank required for a unique solution (number of columns)
        column_names: Column labels of the matrix, if known
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        rank: int | None = None,
        expected_rank: int | None = None,
        column_names: tuple[str, ...] | None = None,
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.rank = rank
        self.expected_rank = expected_rank
        self.column_names = column_names
