"""
PyTorch CGS Solver - Conjugate Gradient Squared for Linear Systems

This package solves square linear systems Ax = b with the Conjugate Gradient
Squared (CGS) Krylov method, in pure PyTorch:

- **CGSSolver**: reusable solver object with preallocated work buffers and a
  warm-started solution vector
- **Matrix-free solves**: supply ``apply(input, output)`` instead of a matrix
- **Factory layer**: ``create_solver`` returns a solver behind the common
  ``LinearSolver`` interface

Quick Start:
    >>> from pytorch_cgs_solver import CGSSolver, solve
    >>>
    >>> # One-shot solve
    >>> x = solve(A, b)
    >>>
    >>> # Reusable solver
    >>> solver = CGSSolver(A, tolerance=1e-8, max_iterations=200)
    >>> x = solver.solve(b)
    >>> print(solver.iterations_done, solver.error)

Matrix-free Usage:
    >>> from pytorch_cgs_solver import CGSSolver, as_operator
    >>> solver = CGSSolver()
    >>> x = solver.solve_with_operator(as_operator(lambda v: A @ v), b)

Generic Interface:
    >>> from pytorch_cgs_solver import create_solver, solve_system
    >>> solver = create_solver('cgs', A)
    >>> x, result = solve_system(A, b, method='cgs')
"""

__version__ = '1.0.0'
__author__ = 'Litianyu141'
__license__ = 'Apache-2.0'

# Import CGS solver
from .cgs import (
    CGSSolver,
    solve,
    DEFAULT_TOLERANCE,
    DEFAULT_MAX_ITERATIONS,
    BREAKDOWN_THRESHOLD,
)

# Import main solver interface
from .solver import (
    LinearSolver,
    SolverResult,
    SolverMethod,
    available_methods,
    create_solver,
    solve_system,
)

# Import error reporting
from .errors import (
    SolverError,
    SolverWarning,
    ErrorHandler,
    warning_error_handler,
    silent_error_handler,
)

# Import diagnostics
from .monitor import (
    IterationMonitor,
    StreamMonitor,
    HistoryMonitor,
)

# Import matrix utilities
from .utils.matrix_utils import (
    DEFAULT_DTYPE,
    MatVecOperator,
    matrix_operator,
    as_operator,
    create_tridiagonal_sparse_coo,
    create_convection_diffusion_2d,
    compute_residual,
    compute_relative_residual,
)

__all__ = [
    # Version info
    '__version__',
    '__author__',
    '__license__',

    # CGS solver
    'CGSSolver',
    'solve',
    'DEFAULT_TOLERANCE',
    'DEFAULT_MAX_ITERATIONS',
    'BREAKDOWN_THRESHOLD',

    # Main solver interface
    'LinearSolver',
    'SolverResult',
    'SolverMethod',
    'available_methods',
    'create_solver',
    'solve_system',

    # Error reporting
    'SolverError',
    'SolverWarning',
    'ErrorHandler',
    'warning_error_handler',
    'silent_error_handler',

    # Diagnostics
    'IterationMonitor',
    'StreamMonitor',
    'HistoryMonitor',

    # Matrix utilities
    'DEFAULT_DTYPE',
    'MatVecOperator',
    'matrix_operator',
    'as_operator',
    'create_tridiagonal_sparse_coo',
    'create_convection_diffusion_2d',
    'compute_residual',
    'compute_relative_residual',
]
