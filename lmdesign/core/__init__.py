"""
Core infrastructure for lmdesign.

Shared abstractions used by the design, regression and contrasts
submodules.

Key components:
    table: SampleTable, the per-example data container
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    linalg: QR least-squares kernels
    timing: Section timer recorded on every result
"""

from lmdesign.core.table import SampleTable
from lmdesign.core.result import Result
from lmdesign.core.exceptions import (
    LmDesignError,
    ValidationError,
    DimensionError,
    FormulaError,
    NumericalError,
    SingularMatrixError,
)

__all__ = [
    "SampleTable",
    "Result",
    "LmDesignError",
    "ValidationError",
    "DimensionError",
    "FormulaError",
    "NumericalError",
    "SingularMatrixError",
]
