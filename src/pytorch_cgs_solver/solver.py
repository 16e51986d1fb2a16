#!/usr/bin/env python3
# Copyright 2025 Litianyu141
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Unified Linear System Solver Interface

This module defines the capability interface shared by the iterative
solvers of this package and a factory that builds them by name, so that
calling code can switch algorithms without importing a concrete solver
class.

Example:
    >>> from pytorch_cgs_solver import create_solver, solve_system
    >>>
    >>> # Build a solver behind the common interface
    >>> solver = create_solver('cgs', A, tolerance=1e-8, max_iterations=100)
    >>> x = solver.solve(b)
    >>> print(solver.iterations_done, solver.error)
    >>>
    >>> # Or solve once and get a summary
    >>> x, result = solve_system(A, b, method='cgs')
    >>> print(f"Converged: {result.converged}, Iterations: {result.iterations}")
"""

import torch
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, Union, runtime_checkable
from enum import Enum
from dataclasses import dataclass

from .cgs import CGSSolver, DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE
from .errors import ErrorHandler, SolverError
from .monitor import IterationMonitor
from .utils.matrix_utils import MatVecOperator, compute_relative_residual, to_matrix


class SolverMethod(Enum):
    """Available solver methods."""
    CGS = "cgs"


@runtime_checkable
class LinearSolver(Protocol):
    """
    Capability interface of an iterative solver.

    Implementations keep their configuration (``tolerance``,
    ``max_iterations``) as mutable attributes, report the work done by the
    last solve through ``iterations_done`` and structural input errors
    through ``error``.
    """

    tolerance: float
    max_iterations: int

    @property
    def iterations_done(self) -> int:
        ...

    @property
    def error(self) -> SolverError:
        ...

    @property
    def residual_norm(self) -> float:
        ...

    def configure(
        self,
        tolerance: Optional[float] = None,
        max_iterations: Optional[int] = None
    ) -> None:
        ...

    def reset(self) -> None:
        ...

    def set_initial_guess(self, x0: torch.Tensor) -> None:
        ...

    def solve(self, b: torch.Tensor) -> torch.Tensor:
        ...

    def solve_with_matrix(self, A: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        ...

    def solve_with_operator(self, apply: Optional[MatVecOperator], b: torch.Tensor) -> torch.Tensor:
        ...


@dataclass
class SolverResult:
    """Result from a one-shot solve."""
    x: torch.Tensor           # Solution vector
    converged: bool           # Whether the residual reached the tolerance
    iterations: int           # Number of iterations performed
    residual: Optional[float] # Final relative residual ||b - Ax|| / ||b||
    error: SolverError        # Structural error code (OK on success)
    method: str               # Method used


_SOLVER_FACTORIES: Dict[SolverMethod, Callable[..., LinearSolver]] = {
    SolverMethod.CGS: CGSSolver,
}


def available_methods() -> List[str]:
    """Get list of available solver method names."""
    return [method.value for method in _SOLVER_FACTORIES]


def _parse_method(method: Union[str, SolverMethod]) -> SolverMethod:
    if isinstance(method, SolverMethod):
        return method
    try:
        return SolverMethod(str(method).lower())
    except ValueError:
        raise ValueError(
            f"Method '{method}' is not available. "
            f"Available methods: {available_methods()}"
        ) from None


def create_solver(
    method: Union[str, SolverMethod] = "cgs",
    A: Optional[torch.Tensor] = None,
    *,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    error_handler: Optional[ErrorHandler] = None,
    monitor: Optional[IterationMonitor] = None
) -> LinearSolver:
    """
    Create a solver behind the ``LinearSolver`` interface.

    Args:
        method: Solver method name ('cgs')
        A: Matrix to bind (optional; an empty placeholder is bound otherwise)
        tolerance: Convergence tolerance on the residual norm
        max_iterations: Maximum number of iterations
        error_handler: Handler for structural input errors
        monitor: Optional per-iteration diagnostics hook

    Returns:
        A configured solver instance

    Example:
        >>> solver = create_solver('cgs', A)
        >>> x = solver.solve(b)
    """
    factory = _SOLVER_FACTORIES[_parse_method(method)]
    solver = factory(A, error_handler=error_handler, monitor=monitor)
    solver.configure(tolerance=tolerance, max_iterations=max_iterations)
    return solver


def solve_system(
    A: Union[torch.Tensor, MatVecOperator],
    b: torch.Tensor,
    x0: Optional[torch.Tensor] = None,
    method: Union[str, SolverMethod] = "cgs",
    verbose: bool = False,
    **kwargs: Any
) -> Tuple[torch.Tensor, SolverResult]:
    """
    Solve the linear system Ax = b with a freshly created solver.

    Args:
        A: Coefficient matrix (dense or sparse tensor, nested list or
            array) or ``apply(input, output)`` operator for matrix-free solves
        b: Right-hand side vector
        x0: Initial guess (optional, zeros otherwise)
        method: Solver method ('cgs')
        verbose: Whether to print a summary line
        **kwargs: Passed to ``create_solver`` (tolerance, max_iterations,
            error_handler, monitor)

    Returns:
        Tuple of (solution tensor, SolverResult with details)

    Example:
        >>> x, result = solve_system(A, b, tolerance=1e-8)
        >>> print(f"Converged: {result.converged}, Iterations: {result.iterations}")
    """
    method = _parse_method(method)
    if A is not None and not isinstance(A, torch.Tensor) and not callable(A):
        A = to_matrix(A)
    matrix_free = not isinstance(A, torch.Tensor)

    solver = create_solver(method, None if matrix_free else A, **kwargs)
    if x0 is not None:
        solver.set_initial_guess(x0)

    if matrix_free:
        x = solver.solve_with_operator(A, b)
    else:
        x = solver.solve(b)

    residual = None
    if solver.error is SolverError.OK and x.numel() > 0:
        residual = compute_relative_residual(A, x, b)

    result = SolverResult(
        x=x,
        converged=solver.error is SolverError.OK and solver.residual_norm <= solver.tolerance,
        iterations=solver.iterations_done,
        residual=residual,
        error=solver.error,
        method=method.value
    )

    if verbose:
        print(f"{method.value}: converged={result.converged}, "
              f"iterations={result.iterations}, residual={result.residual}, "
              f"error={result.error.name}")

    return x, result
