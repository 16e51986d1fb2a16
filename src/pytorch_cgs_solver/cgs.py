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
PyTorch Conjugate Gradient Squared (CGS) solver.

CGS solves general (not necessarily symmetric) square systems Ax = b without
ever applying the transpose of A. Every iteration costs two matrix-vector
products and works entirely in six preallocated scratch vectors, so repeated
solves of the same size do not allocate.

The solver object keeps its solution vector between calls: a second solve
starts from the previous answer. Call ``reset()`` for a cold start.

Example:
    >>> import torch
    >>> from pytorch_cgs_solver import CGSSolver
    >>>
    >>> A = torch.tensor([[4.0, 1.0], [1.0, 3.0]], dtype=torch.float64)
    >>> b = torch.tensor([1.0, 2.0], dtype=torch.float64)
    >>> solver = CGSSolver(A, tolerance=1e-10)
    >>> x = solver.solve(b)
    >>> print(solver.iterations_done, solver.error)
"""

import math
import torch
from typing import Optional, Tuple, Union

from .errors import ErrorHandler, SolverError, warning_error_handler
from .monitor import IterationMonitor
from .utils.matrix_utils import (
    DEFAULT_DTYPE,
    MatVecOperator,
    dot,
    is_square,
    matvec_into,
    to_matrix,
    to_vector,
)

DEFAULT_TOLERANCE = 1e-6
DEFAULT_MAX_ITERATIONS = 30

# |rho| or |sigma| at or below this value ends the iteration
BREAKDOWN_THRESHOLD = torch.finfo(DEFAULT_DTYPE).eps ** 2


class CGSSolver:
    """
    Conjugate Gradient Squared solver with reusable work buffers.

    Attributes:
        tolerance: Absolute tolerance on ||b - Ax|| (default 1e-6)
        max_iterations: Iteration cap (default 30)
        error_handler: Called with ``(SolverError, message)`` on input errors
        monitor: Optional per-iteration diagnostics hook
        tiny: Breakdown threshold
        x: Current solution, reused as the initial guess of the next solve

    Three entry points share the same iteration:
        - ``solve(b)`` uses the matrix bound with ``initialize``
        - ``solve_with_matrix(A, b)`` uses ``A`` for one call only
        - ``solve_with_operator(apply, b)`` is matrix-free

    Input errors are not raised. They set ``error`` and call the error
    handler, and the solve returns the unchanged solution.
    """

    def __init__(
        self,
        A: Optional[torch.Tensor] = None,
        *,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        error_handler: Optional[ErrorHandler] = None,
        monitor: Optional[IterationMonitor] = None
    ):
        self.tolerance = DEFAULT_TOLERANCE
        self.max_iterations = DEFAULT_MAX_ITERATIONS
        self.configure(tolerance=tolerance, max_iterations=max_iterations)
        self.error_handler = error_handler if error_handler is not None else warning_error_handler
        self.monitor = monitor
        self.tiny = BREAKDOWN_THRESHOLD

        self.error = SolverError.OK
        self._iterations_done = 0
        self._residual_norm = 0.0
        self._size = -1
        self._device: Optional[torch.device] = None

        self.A: Optional[torch.Tensor] = None
        self.x = torch.zeros(0, dtype=DEFAULT_DTYPE)
        self._resid0 = self._resid = self._p = self._q = self._u = self._v = self.x

        self.initialize(A if A is not None else torch.zeros(0, 0, dtype=DEFAULT_DTYPE))

    @property
    def iterations_done(self) -> int:
        """Number of iterations performed by the last solve."""
        return self._iterations_done

    @property
    def residual_norm(self) -> float:
        """Norm of the recursively updated residual after the last solve."""
        return self._residual_norm

    @property
    def size(self) -> int:
        """Current problem size of the work buffers."""
        return self._size

    @property
    def scratch_buffers(self) -> Tuple[torch.Tensor, ...]:
        """The six work vectors (resid0, resid, p, q, u, v)."""
        return (self._resid0, self._resid, self._p, self._q, self._u, self._v)

    def configure(
        self,
        tolerance: Optional[float] = None,
        max_iterations: Optional[int] = None
    ) -> None:
        """
        Update the stopping criteria.

        Args:
            tolerance: New tolerance, must be positive
            max_iterations: New iteration cap, must be at least 1
        """
        if tolerance is not None:
            if tolerance <= 0:
                raise ValueError(f"tolerance must be positive, got {tolerance}")
            self.tolerance = tolerance
        if max_iterations is not None:
            if max_iterations < 1:
                raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
            self.max_iterations = int(max_iterations)

    def initialize(self, A: torch.Tensor) -> None:
        """
        Bind a copy of the system matrix and size the work buffers to it.

        An empty (0 x 0) matrix is a valid placeholder. A non-square matrix
        is reported as ``NOT_SQUARE_MATRIX`` but stays bound, so ``solve``
        keeps reporting it until a valid matrix is bound.
        """
        if not isinstance(A, torch.Tensor):
            A = to_matrix(A)
        self.A = A.to(DEFAULT_DTYPE).clone()
        self.error = SolverError.OK
        if not is_square(self.A):
            self._fail(SolverError.NOT_SQUARE_MATRIX,
                       f"matrix must be square, but has shape {tuple(self.A.shape)}")
            return
        self.ensure_capacity(self.A.shape[0], device=self.A.device)

    def ensure_capacity(
        self,
        size: int,
        device: Optional[Union[str, torch.device]] = None
    ) -> bool:
        """
        Make sure the work buffers and ``x`` hold ``size`` elements.

        Nothing happens when the buffers already have that size on the
        requested device. Otherwise all of them are reallocated as zeros,
        which also discards the current solution.

        Returns:
            True if the buffers were reallocated
        """
        device = torch.device(device) if device is not None else (self._device or torch.device('cpu'))
        if size == self._size and device == self._device:
            return False

        def alloc():
            return torch.zeros(size, dtype=DEFAULT_DTYPE, device=device)

        self._resid0 = alloc()
        self._resid = alloc()
        self._p = alloc()
        self._q = alloc()
        self._u = alloc()
        self._v = alloc()
        self.x = alloc()
        self._size = size
        self._device = device
        return True

    def reset(self) -> None:
        """Zero the stored solution so the next solve starts cold."""
        self.x.zero_()

    def set_initial_guess(self, x0: torch.Tensor) -> None:
        """Load ``x0`` as the starting point of the next solve."""
        x0 = to_vector(x0)
        self.ensure_capacity(x0.numel(), device=x0.device)
        self.x.copy_(x0)

    def solve(self, b: torch.Tensor) -> torch.Tensor:
        """
        Solve ``A x = b`` for the bound matrix.

        Args:
            b: Right-hand side of length ``A.shape[0]``

        Returns:
            Copy of the solution vector
        """
        return self._solve_matrix(self.A, b)

    def solve_with_matrix(self, A: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        """Solve ``A x = b`` for ``A`` without binding it to the solver."""
        if not isinstance(A, torch.Tensor):
            A = to_matrix(A)
        return self._solve_matrix(A.to(DEFAULT_DTYPE), b)

    def solve_with_operator(
        self,
        apply: Optional[MatVecOperator],
        b: torch.Tensor
    ) -> torch.Tensor:
        """
        Matrix-free solve.

        Args:
            apply: Callable ``apply(input, output)`` writing ``A @ input``
                into the preallocated ``output``. It is called twice per
                iteration and once to form the initial residual.
            b: Right-hand side vector

        Returns:
            Copy of the solution vector
        """
        self.error = SolverError.OK
        if apply is None:
            self._fail(SolverError.NIL_OPERATOR, "linear operator is not set")
            return self.x.clone()
        if not callable(apply):
            raise TypeError(f'linear operator must be a function: {apply}')

        b = to_vector(b)
        self.ensure_capacity(b.numel(), device=b.device)
        self._iterate(apply, b)
        return self.x.clone()

    def _solve_matrix(self, A: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        self.error = SolverError.OK
        if A.numel() == 0:
            return self.x.clone()
        if not is_square(A):
            self._fail(SolverError.NOT_SQUARE_MATRIX,
                       f"matrix must be square, but has shape {tuple(A.shape)}")
            return self.x.clone()

        b = to_vector(b, device=A.device)
        n = A.shape[0]
        if b.numel() != n:
            self._fail(SolverError.SIZE_MISMATCH,
                       f"right-hand side has length {b.numel()}, expected {n}")
            return self.x.clone()

        self.ensure_capacity(n, device=A.device)

        def apply(v: torch.Tensor, out: torch.Tensor) -> None:
            matvec_into(A, v, out)

        self._iterate(apply, b)
        return self.x.clone()

    def _iterate(self, apply: MatVecOperator, b: torch.Tensor) -> None:
        """Run the CGS recurrence in place on the work buffers and ``x``."""
        resid0, resid, p, q, u, v = self.scratch_buffers
        x = self.x
        monitor = self.monitor
        report = getattr(monitor, "message", None)

        # resid0 = b - A x
        apply(x, v)
        torch.sub(b, v, out=resid0)
        resid.copy_(resid0)

        residual_norm = 1.0
        rho = 1.0
        k = 0
        while k < self.max_iterations and residual_norm > self.tolerance:
            rho_prev = rho
            rho = dot(resid0, resid)
            if abs(rho) <= self.tiny:
                if report is not None:
                    report(f"CGS breakdown at iteration {k}: |rho| = {abs(rho):.3e}")
                break

            if k > 0:
                beta = rho / rho_prev
                # u = resid + beta q;  p = u + beta (q + beta p)
                torch.add(resid, q, alpha=beta, out=u)
                p.mul_(beta).add_(q).mul_(beta).add_(u)
            else:
                u.copy_(resid)
                p.copy_(u)

            apply(p, q)
            sigma = dot(resid0, q)
            if abs(sigma) <= self.tiny:
                if report is not None:
                    report(f"CGS breakdown at iteration {k}: |sigma| = {abs(sigma):.3e}")
                break
            alpha = rho / sigma

            # q = u - alpha q;  u = u + q;  x = x + alpha u
            q.mul_(-alpha).add_(u)
            u.add_(q)
            x.add_(u, alpha=alpha)

            apply(u, v)
            resid.add_(v, alpha=-alpha)
            residual_norm = math.sqrt(max(dot(resid, resid), 0.0))

            if monitor is not None:
                monitor(k, residual_norm)
            k += 1

        if k == 0:
            residual_norm = math.sqrt(max(dot(resid, resid), 0.0))
        self._iterations_done = k
        self._residual_norm = residual_norm

    def _fail(self, error: SolverError, message: str) -> None:
        self.error = error
        self.error_handler(error, message)

    def __repr__(self) -> str:
        return (
            f"CGSSolver(size={self._size}, tolerance={self.tolerance}, "
            f"max_iterations={self.max_iterations}, "
            f"iterations_done={self._iterations_done}, error={self.error.name})"
        )


def solve(
    A: torch.Tensor,
    b: torch.Tensor,
    *,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    error_handler: Optional[ErrorHandler] = None
) -> torch.Tensor:
    """
    Solve ``A x = b`` once with a throwaway ``CGSSolver``.

    Work buffers are allocated on every call; keep a ``CGSSolver`` around
    when solving many systems of the same size.

    Args:
        A: Square matrix (dense or sparse)
        b: Right-hand side vector
        tolerance: Absolute tolerance on the residual norm
        max_iterations: Iteration cap
        error_handler: Handler for input errors (default: warning)

    Returns:
        Solution vector
    """
    solver = CGSSolver(
        tolerance=tolerance,
        max_iterations=max_iterations,
        error_handler=error_handler
    )
    b = to_vector(b)
    solver.ensure_capacity(b.numel(), device=b.device)
    return solver.solve_with_matrix(A, b)
