"""
In-Place Kernels for Least-Squares Gradient Descent
===================================================

Hand-written loops for the pieces of one gradient step on

    f(x) = ||A x - b||^2,        grad f(x) = 2 A^T (A x - b)

Matrices are row-major (C-contiguous): the inner loop of `matvec` walks
one row of M, and the accumulation over j always runs in ascending order
so results are reproducible bit for bit.

Every kernel is compiled by numba and specialized on the concrete dtypes
of its arguments, float32 or float64. The public wrappers check dtypes
(TypeError) and shapes (DimensionMismatch) before entering compiled code;
the compiled bodies never allocate.
"""

import numpy as np
from numba import njit

from .exceptions import DimensionMismatch


# =============================================================================
# COMPILED KERNELS
# =============================================================================

@njit(cache=True)
def _transpose_kernel(At, A):
    m, n = A.shape
    for i in range(m):
        for j in range(n):
            At[j, i] = A[i, j]
    return At


@njit(cache=True)
def _matvec_kernel(out, M, v):
    p, q = M.shape
    for i in range(p):
        acc = 0.0
        for j in range(q):
            acc += M[i, j] * v[j]
        out[i] = acc
    return out


@njit(cache=True)
def _gradient_kernel(grad, residual, x, A, b, At):
    _matvec_kernel(residual, A, x)
    for i in range(residual.shape[0]):
        residual[i] -= b[i]
    _matvec_kernel(grad, At, residual)
    for j in range(grad.shape[0]):
        grad[j] *= 2.0
    return grad


@njit(cache=True)
def _descent_kernel(x, grad, residual, A, b, At, iterations, step):
    # hot loop: no allocations
    for _ in range(iterations):
        _gradient_kernel(grad, residual, x, A, b, At)
        for j in range(x.shape[0]):
            x[j] -= step * grad[j]
    return x


# =============================================================================
# DTYPE AND SHAPE CHECKS
# =============================================================================

SUPPORTED_DTYPES = (np.dtype(np.float32), np.dtype(np.float64))


def kernel_dtype(*arrays) -> np.dtype:
    """
    Working dtype for real inputs: float64.

    Integer and boolean inputs are promoted, extended precision
    (np.longdouble) is rounded down to float64.

    Raises
    ------
    TypeError
        For complex, object or other non-real inputs.
    """
    dtype = np.result_type(*arrays, np.float64)
    if dtype.kind != 'f':
        raise TypeError(f"expected real floating-point data, got {dtype}")
    return np.dtype(np.float64)


def _require_supported(name: str, *arrays):
    for a in arrays:
        if a.dtype not in SUPPORTED_DTYPES:
            raise TypeError(f"{name}: unsupported dtype {a.dtype}, "
                            f"expected float32 or float64")


def _require_matrix(name: str, M: np.ndarray):
    if M.ndim != 2:
        raise ValueError(f"{name} must be a 2-D matrix, got {M.ndim}-D")


def _check_matvec(out: np.ndarray, M: np.ndarray, v: np.ndarray):
    _require_matrix("matvec", M)
    _require_supported("matvec", out, M, v)
    p, q = M.shape
    if v.shape != (q,):
        raise DimensionMismatch("matvec: v", (q,), v.shape)
    if out.shape != (p,):
        raise DimensionMismatch("matvec: out", (p,), out.shape)


def _check_gradient(grad, residual, x, A, b, At):
    _require_matrix("evaluate_gradient", A)
    _require_supported("evaluate_gradient", grad, residual, x, A, b, At)
    m, n = A.shape
    if At.shape != (n, m):
        raise DimensionMismatch("evaluate_gradient: At", (n, m), At.shape)
    if x.shape != (n,):
        raise DimensionMismatch("evaluate_gradient: x", (n,), x.shape)
    if grad.shape != (n,):
        raise DimensionMismatch("evaluate_gradient: grad", (n,), grad.shape)
    if b.shape != (m,):
        raise DimensionMismatch("evaluate_gradient: b", (m,), b.shape)
    if residual.shape != (m,):
        raise DimensionMismatch("evaluate_gradient: residual", (m,), residual.shape)


# =============================================================================
# PUBLIC KERNELS
# =============================================================================

def transpose(A: np.ndarray) -> np.ndarray:
    """
    Materialize the transpose of A as a new C-contiguous matrix.

    The result has the dtype of A, so later kernels see one concrete
    element type.
    """
    _require_matrix("transpose", A)
    _require_supported("transpose", A)
    m, n = A.shape
    At = np.empty((n, m), dtype=A.dtype)
    return _transpose_kernel(At, A)


def matvec(out: np.ndarray, M: np.ndarray, v: np.ndarray) -> np.ndarray:
    """
    Compute M @ v into `out`, overwriting every element.

    Parameters
    ----------
    out : np.ndarray
        Output buffer (p,)
    M : np.ndarray
        Matrix (p x q)
    v : np.ndarray
        Vector (q,)

    Returns
    -------
    np.ndarray
        `out`, for chaining

    Raises
    ------
    DimensionMismatch
        If the shapes do not conform exactly.
    """
    _check_matvec(out, M, v)
    return _matvec_kernel(out, M, v)


def evaluate_gradient(grad: np.ndarray,
                      residual: np.ndarray,
                      x: np.ndarray,
                      A: np.ndarray,
                      b: np.ndarray,
                      At: np.ndarray) -> np.ndarray:
    """
    Evaluate residual = A x - b and grad = 2 At residual in place.

    At must be the transpose of A, computed once by the caller. Both
    buffers are fully overwritten; `grad` is returned.
    """
    _check_gradient(grad, residual, x, A, b, At)
    return _gradient_kernel(grad, residual, x, A, b, At)


def descent_loop(x: np.ndarray,
                 grad: np.ndarray,
                 residual: np.ndarray,
                 A: np.ndarray,
                 b: np.ndarray,
                 At: np.ndarray,
                 iterations: int,
                 step: float) -> np.ndarray:
    """
    Run `iterations` fixed-step gradient updates on x in place.

    All buffers are caller-owned. Nothing is allocated once the kernel is
    compiled, whatever the iteration count.
    """
    _check_gradient(grad, residual, x, A, b, At)
    if iterations < 0:
        raise ValueError(f"iterations must be non-negative, got {iterations}")
    return _descent_kernel(x, grad, residual, A, b, At, int(iterations), float(step))


def objective(x: np.ndarray, A: np.ndarray, b: np.ndarray) -> float:
    """Least-squares objective ||A x - b||^2."""
    _require_matrix("objective", A)
    _require_supported("objective", x, A, b)
    m, n = A.shape
    if x.shape != (n,):
        raise DimensionMismatch("objective: x", (n,), x.shape)
    if b.shape != (m,):
        raise DimensionMismatch("objective: b", (m,), b.shape)
    residual = np.empty(m, dtype=np.result_type(A, x))
    _matvec_kernel(residual, A, x)
    residual -= b
    return float(np.dot(residual, residual))
