"""
Gradient Descent through Library Calls
======================================

Same iteration as the in-place solver, but every step is delegated to
numpy/BLAS instead of hand-written loops:

    residual = A @ x        (numpy.matmul into a preallocated buffer)
    residual -= b
    grad = A.T @ residual   (A.T is a view, nothing is copied)
    grad *= 2
    x += (-step) * grad     (BLAS daxpy, updates x in place)

BLAS may reorder the inner sums, so results agree with the in-place
solver to rounding error, not bit for bit.
"""

import numpy as np
from scipy.linalg.blas import daxpy

from .base import DEFAULT_ITERATIONS, DEFAULT_STEP, DescentSolver, check_problem
from .kernels import kernel_dtype


def library_gradient(grad: np.ndarray,
                     residual: np.ndarray,
                     x: np.ndarray,
                     A: np.ndarray,
                     b: np.ndarray) -> np.ndarray:
    """Evaluate grad = 2 A^T (A x - b) with in-place numpy calls."""
    np.matmul(A, x, out=residual)
    residual -= b
    np.matmul(A.T, residual, out=grad)
    grad *= 2.0
    return grad


def library_loop(x: np.ndarray,
                 grad: np.ndarray,
                 residual: np.ndarray,
                 A: np.ndarray,
                 b: np.ndarray,
                 iterations: int,
                 step: float) -> np.ndarray:
    for _ in range(iterations):
        library_gradient(grad, residual, x, A, b)
        x = daxpy(grad, x, a=-step)
    return x


class LibraryDescentSolver(DescentSolver):
    """
    Fixed-step gradient descent using numpy.matmul and BLAS level-1 updates.
    """
    
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.name = "Library Descent"
    
    def _solve_impl(self, 
                    A: np.ndarray, 
                    b: np.ndarray, 
                    x0: np.ndarray) -> np.ndarray:
        m, n = A.shape
        x = x0.copy()
        grad = np.empty(n)
        residual = np.empty(m)
        return library_loop(x, grad, residual, A, b, self.iterations, self.step)


def solve_library(x0: np.ndarray,
                  A: np.ndarray,
                  b: np.ndarray,
                  iterations: int = DEFAULT_ITERATIONS,
                  step: float = DEFAULT_STEP) -> np.ndarray:
    """Functional form of LibraryDescentSolver; returns the final iterate."""
    x0, A, b = np.asarray(x0), np.asarray(A), np.asarray(b)
    dtype = kernel_dtype(x0, A, b)
    A = np.ascontiguousarray(A, dtype=dtype)
    b = np.ascontiguousarray(b, dtype=dtype)
    x = np.array(x0, dtype=dtype)
    m, n = check_problem(A, b, x)
    if iterations < 0:
        raise ValueError(f"iterations must be non-negative, got {iterations}")
    return library_loop(x, np.empty(n), np.empty(m), A, b, iterations, step)
