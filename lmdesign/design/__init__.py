"""
Design matrices.

Public API:
    model_matrix(formula, table) -> ModelMatrix
    build_model_matrix(factors, ...) -> ModelMatrix
    encode_reference / encode_means / interaction_columns

Example:
    >>> from lmdesign.design import model_matrix
    >>> mm = model_matrix("~ 0 + genotype", table)
    >>> print(mm.to_frame())
"""

from lmdesign.design._coding import encode_means, encode_reference, interaction_columns
from lmdesign.design.formula import model_matrix, split_formula
from lmdesign.design.model_matrix import ModelMatrix, build_model_matrix, from_arrays

__all__ = [
    "ModelMatrix",
    "model_matrix",
    "build_model_matrix",
    "from_arrays",
    "split_formula",
    "encode_reference",
    "encode_means",
    "interaction_columns",
]
