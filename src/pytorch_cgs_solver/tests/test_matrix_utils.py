"""
Tests for the tensor helpers in pytorch_cgs_solver.utils.
"""

import sys

import numpy as np
import pytest
import torch

from pytorch_cgs_solver.utils import (
    DEFAULT_DTYPE,
    as_operator,
    compute_relative_residual,
    compute_residual,
    create_convection_diffusion_2d,
    create_tridiagonal_sparse_coo,
    dot,
    is_square,
    matrix_operator,
    matvec,
    matvec_into,
    to_vector,
)


class TestPrimitives:

    def test_matvec_dense_and_sparse(self):
        A_sparse = create_tridiagonal_sparse_coo(5)
        A_dense = A_sparse.to_dense()
        x = torch.arange(5, dtype=DEFAULT_DTYPE)

        expected = A_dense.numpy() @ x.numpy()
        np.testing.assert_allclose(matvec(A_dense, x).numpy(), expected)
        np.testing.assert_allclose(matvec(A_sparse, x).numpy(), expected)
        np.testing.assert_allclose(matvec(A_sparse.to_sparse_csr(), x).numpy(), expected)

    def test_matvec_into_writes_in_place(self):
        A = create_tridiagonal_sparse_coo(4).to_dense()
        x = torch.ones(4, dtype=DEFAULT_DTYPE)
        out = torch.empty(4, dtype=DEFAULT_DTYPE)
        ptr = out.data_ptr()

        matvec_into(A, x, out)
        assert out.data_ptr() == ptr
        assert out.tolist() == [1.0, 0.0, 0.0, 1.0]

    def test_dot(self):
        a = torch.tensor([1.0, 2.0, 3.0], dtype=DEFAULT_DTYPE)
        assert dot(a, a) == 14.0

    def test_is_square(self):
        assert is_square(torch.zeros(3, 3))
        assert is_square(torch.zeros(0, 0))
        assert not is_square(torch.zeros(3, 2))
        assert not is_square(torch.zeros(3))

    def test_to_vector(self):
        v = to_vector([1, 2, 3])
        assert v.dtype == DEFAULT_DTYPE
        assert v.shape == (3,)
        assert to_vector(np.ones((2, 2))).shape == (4,)


class TestOperators:

    def test_matrix_operator(self):
        A = create_convection_diffusion_2d(3, 3)
        apply = matrix_operator(A)
        x = torch.rand(9, dtype=DEFAULT_DTYPE)
        out = torch.zeros(9, dtype=DEFAULT_DTYPE)

        apply(x, out)
        assert torch.allclose(out, matvec(A, x))

    def test_matrix_operator_rejects_non_square(self):
        with pytest.raises(ValueError, match="square"):
            matrix_operator(torch.zeros(2, 3))

    def test_as_operator(self):
        apply = as_operator(lambda v: 2.0 * v)
        out = torch.zeros(3, dtype=DEFAULT_DTYPE)
        apply(torch.ones(3, dtype=DEFAULT_DTYPE), out)
        assert out.tolist() == [2.0, 2.0, 2.0]

    def test_as_operator_rejects_non_callable(self):
        with pytest.raises(TypeError):
            as_operator("not a function")


class TestBuilders:

    def test_tridiagonal(self):
        A = create_tridiagonal_sparse_coo(4, diag_val=3.0, off_diag_val=-0.5).to_dense()
        assert torch.equal(torch.diagonal(A), torch.full((4,), 3.0, dtype=DEFAULT_DTYPE))
        assert torch.equal(A, A.T)
        assert A[0, 1] == -0.5 and A[0, 2] == 0.0

    def test_tridiagonal_single_entry(self):
        A = create_tridiagonal_sparse_coo(1).to_dense()
        assert A.tolist() == [[2.0]]

    def test_convection_diffusion_symmetry(self):
        poisson = create_convection_diffusion_2d(4, 3, wind=0.0).to_dense()
        convective = create_convection_diffusion_2d(4, 3, wind=0.5).to_dense()

        assert poisson.shape == (12, 12)
        assert torch.equal(poisson, poisson.T)
        assert not torch.equal(convective, convective.T)


class TestResiduals:

    def test_residual_for_matrix_and_operator(self):
        A = create_tridiagonal_sparse_coo(6)
        x = torch.ones(6, dtype=DEFAULT_DTYPE)
        b = torch.zeros(6, dtype=DEFAULT_DTYPE)

        r_matrix = compute_residual(A, x, b)
        r_operator = compute_residual(matrix_operator(A), x, b)
        assert torch.allclose(r_matrix, r_operator)
        assert torch.allclose(r_matrix, -matvec(A, x))

    def test_relative_residual(self):
        A = torch.eye(2, dtype=DEFAULT_DTYPE)
        b = torch.tensor([3.0, 4.0], dtype=DEFAULT_DTYPE)

        assert compute_relative_residual(A, b, b) == 0.0
        assert compute_relative_residual(A, torch.zeros(2, dtype=DEFAULT_DTYPE), b) == pytest.approx(1.0)

    def test_relative_residual_zero_rhs(self):
        A = torch.eye(2, dtype=DEFAULT_DTYPE)
        x = torch.tensor([3.0, 4.0], dtype=DEFAULT_DTYPE)
        assert compute_relative_residual(A, x, torch.zeros(2)) == pytest.approx(5.0)


if __name__ == '__main__':
    sys.exit(pytest.main([__file__, "-v"]))
