"""
Reference Implementations for Benchmarking
==========================================

Earlier, slower versions of the descent routine. They compute the same
iterates as the in-place solver and exist only so the benchmark harness
has something to compare against; they are not exported from the
package.

- descent_naive: slice-then-reduce matvec, untyped (object) transpose
  rebuilt inside every gradient call, fresh arrays every step.
- descent_typed: explicit loops and dtype-aware buffers, but still a new
  transpose, residual and gradient on every call.
"""

import numpy as np

from .base import DEFAULT_ITERATIONS, DEFAULT_STEP, check_problem


# =============================================================================
# VERSION 1: NAIVE
# =============================================================================

def transpose_naive(A):
    m, n = A.shape
    At = np.empty((n, m), dtype=object)  # element type unknown
    for i in range(m):
        for j in range(n):
            At[j, i] = A[i, j]
    return At


def matvec_naive(A, v):
    return np.array([np.sum(A[i, :] * v) for i in range(A.shape[0])])


def objective_naive(x, A, b):
    residual = matvec_naive(A, x) - b
    return float(np.sum(residual ** 2))


def gradient_naive(x, A, b):
    residual = matvec_naive(A, x) - b
    At = transpose_naive(A)
    halfgrad = matvec_naive(At, residual)
    return 2 * halfgrad


def descent_naive(x0, A, b, iterations=DEFAULT_ITERATIONS, step=DEFAULT_STEP):
    x = np.array(x0, dtype=np.float64)
    for _ in range(iterations):
        x = x - step * gradient_naive(x, A, b)
    return x


# =============================================================================
# VERSION 2: TYPED LOOPS
# =============================================================================

def transpose_typed(A: np.ndarray) -> np.ndarray:
    m, n = A.shape
    At = np.empty((n, m), dtype=A.dtype)
    for i in range(m):
        for j in range(n):
            At[j, i] = A[i, j]
    return At


def matvec_typed(A: np.ndarray, v: np.ndarray) -> np.ndarray:
    dtype = np.result_type(A, v)
    m, n = A.shape
    r = np.zeros(m, dtype=dtype)
    for i in range(m):
        acc = dtype.type(0)
        for j in range(n):
            acc += A[i, j] * v[j]
        r[i] = acc
    return r


def objective_typed(x: np.ndarray, A: np.ndarray, b: np.ndarray) -> float:
    residual = matvec_typed(A, x) - b
    return float(np.dot(residual, residual))


def gradient_typed(x: np.ndarray, A: np.ndarray, b: np.ndarray) -> np.ndarray:
    residual = matvec_typed(A, x) - b
    At = transpose_typed(A)
    return 2 * matvec_typed(At, residual)


def descent_typed(x0: np.ndarray,
                  A: np.ndarray,
                  b: np.ndarray,
                  iterations: int = DEFAULT_ITERATIONS,
                  step: float = DEFAULT_STEP) -> np.ndarray:
    A = np.asarray(A, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    x = np.array(x0, dtype=np.float64)
    check_problem(A, b, x)
    for _ in range(iterations):
        x = x - step * gradient_typed(x, A, b)
    return x
