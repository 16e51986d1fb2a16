"""
Matrix and vector utility functions for pytorch_cgs_solver.

This module holds the tensor primitives the CGS engine is built on
(matrix-vector products for dense and sparse matrices, dot products),
adaptors that turn matrices and plain functions into matrix-free
operators, and helpers for building test systems and checking residuals.
"""

import torch
from typing import Callable, Optional, Union

# Use highest precision available
DEFAULT_DTYPE = torch.float64

# Matrix-free operator: apply(input, output) writes A @ input into output
MatVecOperator = Callable[[torch.Tensor, torch.Tensor], None]


def to_vector(
    v: Union[torch.Tensor, list, tuple],
    device: Optional[Union[str, torch.device]] = None
) -> torch.Tensor:
    """
    Convert an array-like to a 1D tensor in ``DEFAULT_DTYPE``.

    Args:
        v: Tensor, numpy array or sequence of numbers
        device: Target device (default: same as input)

    Returns:
        1D float64 tensor
    """
    v = torch.as_tensor(v, device=device)
    if v.ndim != 1:
        v = v.reshape(-1)
    return v.to(DEFAULT_DTYPE)


def to_matrix(A: Union[torch.Tensor, list, tuple]) -> torch.Tensor:
    """Convert a dense or sparse matrix to ``DEFAULT_DTYPE``."""
    if isinstance(A, torch.Tensor):
        return A.to(DEFAULT_DTYPE)
    return torch.as_tensor(A, dtype=DEFAULT_DTYPE)


def is_square(A: torch.Tensor) -> bool:
    """Check that ``A`` is a 2D matrix with as many rows as columns."""
    return A.ndim == 2 and A.shape[0] == A.shape[1]


def matvec(A: torch.Tensor, x: torch.Tensor) -> torch.Tensor:
    """
    Matrix-vector product for dense and sparse (COO/CSR) matrices.

    Args:
        A: Matrix of shape (n, n)
        x: Vector of shape (n,)

    Returns:
        A @ x
    """
    if A.layout != torch.strided:
        return torch.sparse.mm(A, x.unsqueeze(-1)).squeeze(-1)
    return torch.mv(A, x)


def matvec_into(A: torch.Tensor, x: torch.Tensor, out: torch.Tensor) -> None:
    """Write ``A @ x`` into the preallocated vector ``out``."""
    if A.layout != torch.strided:
        out.copy_(torch.sparse.mm(A, x.unsqueeze(-1)).squeeze(-1))
    else:
        torch.mv(A, x, out=out)


def dot(a: torch.Tensor, b: torch.Tensor) -> float:
    """Dot product of two real vectors as a Python float."""
    return torch.dot(a, b).item()


def matrix_operator(A: torch.Tensor) -> MatVecOperator:
    """
    Wrap a dense or sparse matrix as a matrix-free operator.

    Args:
        A: Square matrix

    Returns:
        Callable ``apply(input, output)`` writing ``A @ input`` into ``output``
    """
    if not is_square(A):
        raise ValueError(
            f'linear operator must be a square matrix, but has shape: {tuple(A.shape)}')
    A = to_matrix(A)

    def apply(x: torch.Tensor, out: torch.Tensor) -> None:
        matvec_into(A, x, out)

    return apply


def as_operator(f: Callable[[torch.Tensor], torch.Tensor]) -> MatVecOperator:
    """
    Adapt a function ``f(v) -> A @ v`` to the ``apply(input, output)`` form.

    The returned operator copies the result of ``f`` into the output buffer,
    so ``f`` is free to allocate its return value.
    """
    if not callable(f):
        raise TypeError(f'linear operator must be a function: {f}')

    def apply(x: torch.Tensor, out: torch.Tensor) -> None:
        out.copy_(f(x))

    return apply


def create_tridiagonal_sparse_coo(
    n: int,
    diag_val: float = 2.0,
    off_diag_val: float = -1.0,
    device: str = 'cpu',
    dtype: torch.dtype = DEFAULT_DTYPE
) -> torch.Tensor:
    """
    Create a tridiagonal sparse COO tensor.

    Args:
        n: Matrix dimension
        diag_val: Main diagonal value
        off_diag_val: Off-diagonal value
        device: Target device
        dtype: Data type

    Returns:
        Sparse COO tensor representing a tridiagonal matrix
    """
    main = torch.arange(n, device=device)
    indices = [torch.stack([main, main])]
    values = [torch.full((n,), diag_val, device=device, dtype=dtype)]

    if n > 1:
        off = torch.arange(n - 1, device=device)
        indices.append(torch.stack([off, off + 1]))
        indices.append(torch.stack([off + 1, off]))
        values.append(torch.full((n - 1,), off_diag_val, device=device, dtype=dtype))
        values.append(torch.full((n - 1,), off_diag_val, device=device, dtype=dtype))

    sparse_matrix = torch.sparse_coo_tensor(
        torch.cat(indices, dim=1), torch.cat(values), (n, n),
        device=device, dtype=dtype
    )
    return sparse_matrix.coalesce()


def create_convection_diffusion_2d(
    nx: int,
    ny: int,
    wind: float = 0.5,
    device: str = 'cpu',
    dtype: torch.dtype = DEFAULT_DTYPE
) -> torch.Tensor:
    """
    Create a non-symmetric 2D convection-diffusion matrix (5-point stencil).

    The diffusion part is the standard Poisson stencil; ``wind`` adds an
    upwind-free central convection term in x which breaks symmetry.

    Args:
        nx: Number of grid points in x direction
        ny: Number of grid points in y direction
        wind: Convection strength (0 gives the symmetric Poisson matrix)
        device: Target device
        dtype: Data type

    Returns:
        Sparse COO tensor of shape (nx * ny, nx * ny)
    """
    n = nx * ny

    def idx(i, j):
        return i * ny + j

    row_indices = []
    col_indices = []
    values = []

    for i in range(nx):
        for j in range(ny):
            k = idx(i, j)

            row_indices.append(k)
            col_indices.append(k)
            values.append(4.0)

            if i > 0:
                row_indices.append(k)
                col_indices.append(idx(i - 1, j))
                values.append(-1.0 - wind)
            if i < nx - 1:
                row_indices.append(k)
                col_indices.append(idx(i + 1, j))
                values.append(-1.0 + wind)
            if j > 0:
                row_indices.append(k)
                col_indices.append(idx(i, j - 1))
                values.append(-1.0)
            if j < ny - 1:
                row_indices.append(k)
                col_indices.append(idx(i, j + 1))
                values.append(-1.0)

    indices = torch.tensor([row_indices, col_indices], device=device, dtype=torch.long)
    values = torch.tensor(values, device=device, dtype=dtype)

    sparse_matrix = torch.sparse_coo_tensor(indices, values, (n, n), device=device, dtype=dtype)
    return sparse_matrix.coalesce()


def compute_residual(
    A: Union[torch.Tensor, MatVecOperator],
    x: torch.Tensor,
    b: torch.Tensor
) -> torch.Tensor:
    """
    Compute the residual r = b - Ax.

    Args:
        A: Matrix (dense or sparse) or ``apply(input, output)`` operator
        x: Solution vector
        b: Right-hand side vector

    Returns:
        Residual vector
    """
    x = to_vector(x)
    b = to_vector(b, device=x.device)
    if isinstance(A, torch.Tensor):
        Ax = matvec(to_matrix(A), x)
    else:
        Ax = torch.empty_like(x)
        A(x, Ax)
    return b - Ax


def compute_relative_residual(
    A: Union[torch.Tensor, MatVecOperator],
    x: torch.Tensor,
    b: torch.Tensor
) -> float:
    """
    Compute the relative residual ||b - Ax|| / ||b||.

    A zero right-hand side gives the absolute residual norm instead.
    """
    residual = compute_residual(A, x, b)
    b_norm = torch.norm(to_vector(b)).item()
    r_norm = torch.norm(residual).item()
    return r_norm / b_norm if b_norm > 0 else r_norm
