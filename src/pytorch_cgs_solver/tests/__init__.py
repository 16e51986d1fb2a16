"""
Test suite for pytorch_cgs_solver package.

This test suite validates:
1. Convergence and breakdown handling of the CGS solver
2. Buffer reuse, warm starts and structural error reporting
3. The unified factory interface
"""

__all__ = [
    'test_cgs',
    'test_solver',
    'test_matrix_utils',
]
