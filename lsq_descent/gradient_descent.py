"""
In-Place Gradient Descent for Least Squares
===========================================

Minimizes f(x) = ||A x - b||^2 with a fixed step:

    x <- x - step * 2 A^T (A x - b)

All working memory (x, grad, residual and the transpose At) is set up
once per solve; the iteration loop then runs without allocating.

There is no stopping criterion: exactly `iterations` steps are taken.
A step larger than 2 / L, with L = 2 sigma_max(A)^2, makes the iterate
diverge. That is left to the caller.
"""

import numpy as np

from .base import DEFAULT_ITERATIONS, DEFAULT_STEP, DescentSolver, check_problem
from .kernels import descent_loop, kernel_dtype, transpose


class InPlaceDescentSolver(DescentSolver):
    """
    Fixed-step gradient descent built on the compiled in-place kernels.
    
    Per-iteration cost: two matrix-vector products, O(mn), no allocation.
    """
    
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.name = "In-Place Descent"
    
    def _solve_impl(self, 
                    A: np.ndarray, 
                    b: np.ndarray, 
                    x0: np.ndarray) -> np.ndarray:
        """
        Solve using the allocation-free loop.
        
        Setup:
        1. x = copy(x0)
        2. grad, residual = empty buffers
        3. At = transpose(A), once
        
        Loop (iterations times):
        1. residual = A x - b
        2. grad = 2 At residual
        3. x -= step * grad
        """
        m, n = A.shape
        x = x0.copy()
        grad = np.empty(n, dtype=x.dtype)
        residual = np.empty(m, dtype=x.dtype)
        At = transpose(A)
        
        descent_loop(x, grad, residual, A, b, At, self.iterations, self.step)
        
        return x


def solve(x0: np.ndarray,
          A: np.ndarray,
          b: np.ndarray,
          iterations: int = DEFAULT_ITERATIONS,
          step: float = DEFAULT_STEP) -> np.ndarray:
    """
    Return the iterate after `iterations` fixed-size gradient steps from x0.

    Real inputs of any precision are worked in float64 (integers are
    promoted, np.longdouble is rounded). `x0` is never modified.

    Parameters
    ----------
    x0 : np.ndarray
        Initial iterate (n,)
    A : np.ndarray
        Matrix (m x n)
    b : np.ndarray
        Target vector (m,)
    iterations : int
        Number of steps; 0 returns a copy of x0
    step : float
        Fixed step size

    Returns
    -------
    np.ndarray
        Final iterate (n,)

    Raises
    ------
    DimensionMismatch
        If the shapes of x0, A and b do not conform.
    TypeError
        If any input is complex or otherwise not real-valued.
    """
    x0, A, b = np.asarray(x0), np.asarray(A), np.asarray(b)
    dtype = kernel_dtype(x0, A, b)
    A = np.ascontiguousarray(A, dtype=dtype)
    b = np.ascontiguousarray(b, dtype=dtype)
    x = np.array(x0, dtype=dtype)
    m, n = check_problem(A, b, x)
    
    grad = np.empty(n, dtype=dtype)
    residual = np.empty(m, dtype=dtype)
    At = transpose(A)
    
    return descent_loop(x, grad, residual, A, b, At, iterations, step)
