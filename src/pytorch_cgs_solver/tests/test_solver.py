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
Test Unified Interface: create_solver / solve_system

Tests include:
- Method lookup and the LinearSolver capability interface
- One-shot solves through the factory, with matrices and operators
- Agreement with SciPy's CGS implementation
"""

import sys

import numpy as np
import pytest
import scipy.sparse.linalg
import torch

from pytorch_cgs_solver import (
    CGSSolver,
    HistoryMonitor,
    LinearSolver,
    SolverError,
    SolverMethod,
    SolverResult,
    available_methods,
    create_convection_diffusion_2d,
    create_solver,
    matrix_operator,
    silent_error_handler,
    solve,
    solve_system,
)


def create_test_system(n: int = 5):
    """Non-symmetric convection-diffusion system on an n x n grid."""
    A = create_convection_diffusion_2d(n, n, wind=0.3).to_dense()
    x_true = torch.arange(1, n * n + 1, dtype=torch.float64) / (n * n)
    return A, torch.mv(A, x_true), x_true


class TestFactory:

    def test_available_methods(self):
        assert available_methods() == ['cgs']

    def test_create_by_name_and_enum(self):
        A, b, _ = create_test_system()
        for method in ('cgs', 'CGS', SolverMethod.CGS):
            solver = create_solver(method, A)
            assert isinstance(solver, CGSSolver)
            assert isinstance(solver, LinearSolver)

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="not available"):
            create_solver('gmres')

    def test_configuration_is_applied(self):
        monitor = HistoryMonitor()
        solver = create_solver('cgs', tolerance=1e-9, max_iterations=12,
                               error_handler=silent_error_handler, monitor=monitor)

        assert solver.tolerance == 1e-9
        assert solver.max_iterations == 12
        assert solver.error_handler is silent_error_handler
        assert solver.monitor is monitor

    def test_invalid_configuration(self):
        with pytest.raises(ValueError):
            create_solver('cgs', tolerance=-1.0)

    def test_interface_drives_the_solver(self):
        A, b, x_true = create_test_system()

        def run(solver: LinearSolver) -> torch.Tensor:
            solver.configure(tolerance=1e-10, max_iterations=200)
            x = solver.solve_with_matrix(A, b)
            assert solver.error is SolverError.OK
            assert 0 < solver.iterations_done <= 200
            return x

        x = run(create_solver('cgs'))
        assert torch.allclose(x, x_true, atol=1e-7)


class TestSolveSystem:

    def test_matrix_solve(self):
        A, b, x_true = create_test_system()
        x, result = solve_system(A, b, tolerance=1e-10, max_iterations=200)

        assert isinstance(result, SolverResult)
        assert result.converged
        assert result.error is SolverError.OK
        assert result.method == 'cgs'
        assert result.residual < 1e-8
        assert result.iterations > 0
        assert torch.allclose(x, x_true, atol=1e-7)
        assert result.x is x

    def test_operator_solve(self):
        A, b, _ = create_test_system()
        x_matrix, _ = solve_system(A, b, tolerance=1e-10, max_iterations=200)
        x_operator, result = solve_system(matrix_operator(A), b, tolerance=1e-10, max_iterations=200)

        assert result.converged
        assert torch.allclose(x_matrix, x_operator, atol=1e-12)

    def test_array_like_matrix(self):
        A, b, _ = create_test_system()
        x_tensor, _ = solve_system(A, b, tolerance=1e-10, max_iterations=200)
        x_list, from_list = solve_system(A.tolist(), b, tolerance=1e-10, max_iterations=200)
        x_array, from_array = solve_system(A.numpy(), b, tolerance=1e-10, max_iterations=200)

        assert from_list.error is SolverError.OK
        assert from_array.converged
        assert torch.allclose(x_tensor, x_list, atol=1e-12)
        assert torch.allclose(x_tensor, x_array, atol=1e-12)

    def test_initial_guess(self):
        A, b, x_true = create_test_system()
        _, cold = solve_system(A, b, tolerance=1e-10, max_iterations=200)
        _, warm = solve_system(A, b, x0=x_true, tolerance=1e-10, max_iterations=200)

        assert warm.iterations < cold.iterations

    def test_not_converged_within_cap(self):
        A, b, _ = create_test_system()
        _, result = solve_system(A, b, tolerance=1e-14, max_iterations=2)

        assert not result.converged
        assert result.iterations == 2
        assert result.error is SolverError.OK

    def test_structural_error(self):
        _, result = solve_system(None, torch.ones(3, dtype=torch.float64),
                                 error_handler=silent_error_handler)

        assert result.error is SolverError.NIL_OPERATOR
        assert not result.converged
        assert result.residual is None

    def test_verbose(self, capsys):
        A, b, _ = create_test_system(3)
        solve_system(A, b, verbose=True)
        assert "cgs: converged=True" in capsys.readouterr().out

    def test_matches_convenience_function(self):
        A, b, _ = create_test_system()
        x, _ = solve_system(A, b)
        assert torch.allclose(x, solve(A, b), atol=1e-12)


class TestAgainstScipy:

    def test_same_solution_as_scipy_cgs(self):
        A, b, _ = create_test_system(6)
        x, result = solve_system(A, b, tolerance=1e-11, max_iterations=500)

        x_scipy, info = scipy.sparse.linalg.cgs(A.numpy(), b.numpy(), rtol=1e-10, maxiter=500)

        assert result.converged
        assert info == 0
        np.testing.assert_allclose(x.numpy(), x_scipy, rtol=1e-6, atol=1e-7)


def main():
    """Run the unified interface tests."""
    sys.exit(pytest.main([__file__, "-v"]))


if __name__ == '__main__':
    main()
