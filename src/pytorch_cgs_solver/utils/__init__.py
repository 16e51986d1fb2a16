"""
Utility functions for pytorch_cgs_solver.
"""

from .matrix_utils import (
    DEFAULT_DTYPE,
    MatVecOperator,
    to_vector,
    to_matrix,
    is_square,
    matvec,
    matvec_into,
    dot,
    matrix_operator,
    as_operator,
    create_tridiagonal_sparse_coo,
    create_convection_diffusion_2d,
    compute_residual,
    compute_relative_residual,
)

__all__ = [
    'DEFAULT_DTYPE',
    'MatVecOperator',
    'to_vector',
    'to_matrix',
    'is_square',
    'matvec',
    'matvec_into',
    'dot',
    'matrix_operator',
    'as_operator',
    'create_tridiagonal_sparse_coo',
    'create_convection_diffusion_2d',
    'compute_residual',
    'compute_relative_residual',
]
