#!/usr/bin/env python3
"""
Basic Usage Examples for the PyTorch CGS Solver

This file demonstrates the solver object, matrix-free solves, warm starts
and the generic factory interface on small test systems.
"""

import sys
import time

import torch

from pytorch_cgs_solver import (
    CGSSolver,
    SolverError,
    StreamMonitor,
    as_operator,
    create_convection_diffusion_2d,
    create_solver,
    create_tridiagonal_sparse_coo,
    silent_error_handler,
    solve,
    solve_system,
)


def example_dense_solve(device):
    """Solve a small non-symmetric dense system"""
    print("\n🔧 Dense Matrix Example")
    print("-" * 40)

    n = 100
    torch.manual_seed(42)
    A = torch.randn(n, n, dtype=torch.float64, device=device) * 0.1
    A = A + torch.eye(n, dtype=torch.float64, device=device) * 5  # Diagonally dominant

    x_true = torch.randn(n, dtype=torch.float64, device=device)
    b = A @ x_true

    solver = CGSSolver(A, tolerance=1e-10, max_iterations=200)
    x = solver.solve(b)
    error = torch.norm(x - x_true).item()
    print(f"CGS: iterations={solver.iterations_done}, residual={solver.residual_norm:.2e}, error={error:.2e}")

    x_once = solve(A, b, tolerance=1e-10, max_iterations=200)
    print(f"One-shot solve matches: {torch.allclose(x, x_once)}")


def example_sparse_and_matrix_free(device):
    """Sparse convection-diffusion system, with and without a matrix"""
    print("\n🕸️  Sparse / Matrix-free Example")
    print("-" * 40)

    A = create_convection_diffusion_2d(30, 30, wind=0.3, device=device)
    n = A.shape[0]
    print(f"Sparse matrix size: {n}x{n}, non-zeros: {A._nnz()}")

    b = torch.ones(n, dtype=torch.float64, device=device)

    start_time = time.time()
    x_sparse, result = solve_system(A, b, tolerance=1e-8, max_iterations=1000)
    print(f"Sparse matrix: time={time.time() - start_time:.4f}s, "
          f"iterations={result.iterations}, relative residual={result.residual:.2e}")

    # The same operator applied as a 5-point stencil without storing A
    def stencil(v):
        u = v.reshape(30, 30)
        out = 4.0 * u
        out[1:, :] -= 1.3 * u[:-1, :]
        out[:-1, :] -= 0.7 * u[1:, :]
        out[:, 1:] -= u[:, :-1]
        out[:, :-1] -= u[:, 1:]
        return out.reshape(-1)

    start_time = time.time()
    x_free, result = solve_system(as_operator(stencil), b, tolerance=1e-8, max_iterations=1000)
    print(f"Matrix-free:   time={time.time() - start_time:.4f}s, "
          f"iterations={result.iterations}, relative residual={result.residual:.2e}")
    print(f"Difference: {torch.norm(x_sparse - x_free).item():.2e}")


def example_warm_start_and_monitor(device):
    """Reuse a solver across right-hand sides and watch convergence"""
    print("\n🔁 Warm Start Example")
    print("-" * 40)

    A = create_tridiagonal_sparse_coo(50, device=device)
    b = torch.ones(50, dtype=torch.float64, device=device)

    solver = create_solver('cgs', A, tolerance=1e-8, max_iterations=500,
                           monitor=StreamMonitor(sys.stdout, precision=12))
    solver.solve(b)
    print(f"Cold start: {solver.iterations_done} iterations")

    solver.monitor = None
    solver.solve(b * 1.001)
    print(f"Warm start: {solver.iterations_done} iterations")

    solver.reset()
    solver.solve(b * 1.001)
    print(f"After reset: {solver.iterations_done} iterations")


def example_error_reporting(device):
    """Structural errors are reported, not raised"""
    print("\n⚠️  Error Reporting Example")
    print("-" * 40)

    solver = CGSSolver(torch.eye(3, dtype=torch.float64, device=device),
                       error_handler=silent_error_handler)
    x = solver.solve(torch.ones(4, dtype=torch.float64, device=device))
    print(f"Size mismatch: error={solver.error.name}, x={x.tolist()}")

    solver.solve_with_operator(None, torch.ones(3, dtype=torch.float64, device=device))
    print(f"Missing operator: error={solver.error.name}")
    assert solver.error is SolverError.NIL_OPERATOR


def main():
    """Run all examples"""
    print("🚀 PyTorch CGS Solver - Examples")
    print("=" * 60)

    device = 'cuda' if torch.cuda.is_available() else 'cpu'
    print(f"📍 Using device: {device}")

    example_dense_solve(device)
    example_sparse_and_matrix_free(device)
    example_warm_start_and_monitor(device)
    example_error_reporting(device)

    print("\n✅ All examples completed!")


if __name__ == "__main__":
    main()
