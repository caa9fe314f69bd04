"""
Base class for least-squares descent solvers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np
import time

from .exceptions import DimensionMismatch
from .kernels import objective

# =============================================================================
# CONFIGURATION
# =============================================================================

DEFAULT_ITERATIONS = 1000
DEFAULT_STEP = 1e-3


@dataclass
class DescentResult:
    """Container for solver results and diagnostics."""
    solution: np.ndarray
    iterations: int
    step: float
    initial_objective: float
    final_objective: float
    elapsed_time: float
    solver_name: str
    
    # Additional diagnostics
    relative_decrease: float = 0.0
    
    def __post_init__(self):
        if self.initial_objective > 0:
            self.relative_decrease = (
                (self.initial_objective - self.final_objective) / self.initial_objective
            )


def check_problem(A: np.ndarray, b: np.ndarray, x0: np.ndarray) -> Tuple[int, int]:
    """
    Check that (x0, A, b) conform and return (m, n).

    Raises
    ------
    ValueError
        If A is not a matrix
    DimensionMismatch
        If len(b) != m or len(x0) != n
    """
    if A.ndim != 2:
        raise ValueError(f"A must be a 2-D matrix, got {A.ndim}-D")
    m, n = A.shape
    if b.shape != (m,):
        raise DimensionMismatch("solve: b", (m,), b.shape)
    if x0.shape != (n,):
        raise DimensionMismatch("solve: x0", (n,), x0.shape)
    return m, n


def make_problem(m: int = 10,
                 n: int = 20,
                 seed: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Build a standard-normal least-squares problem.

    Returns
    -------
    tuple
        (A, b, x0) with A of shape (m, n), b of length m and x0 = 0
    """
    rng = np.random.default_rng(seed)
    A = rng.standard_normal((m, n))
    b = rng.standard_normal(m)
    x0 = np.zeros(n)
    return A, b, x0


class DescentSolver(ABC):
    """
    Abstract base class for fixed-step gradient descent on ||Ax - b||^2.
    
    All solvers share identical interface for fair comparison.
    """
    
    def __init__(self, 
                 iterations: int = DEFAULT_ITERATIONS,
                 step: float = DEFAULT_STEP,
                 verbose: bool = False):
        """
        Initialize solver with iteration parameters.
        
        Parameters
        ----------
        iterations : int
            Exact number of gradient steps (no early stopping)
        step : float
            Fixed step size; not checked against the conditioning of A^T A
        verbose : bool
            Print progress
        """
        if iterations < 0:
            raise ValueError(f"iterations must be non-negative, got {iterations}")
        self.iterations = int(iterations)
        self.step = float(step)
        self.verbose = verbose
        self.name = "DescentSolver"
    
    @abstractmethod
    def _solve_impl(self, 
                    A: np.ndarray, 
                    b: np.ndarray, 
                    x0: np.ndarray) -> np.ndarray:
        """
        Internal solve implementation.
        
        Parameters
        ----------
        A : np.ndarray
            Matrix (m x n), C-contiguous float64
        b : np.ndarray
            Target vector (m,)
        x0 : np.ndarray
            Initial iterate (n,); must not be mutated
            
        Returns
        -------
        np.ndarray
            Final iterate (n,)
        """
        pass
    
    def solve(self, 
              A: np.ndarray, 
              b: np.ndarray, 
              x0: Optional[np.ndarray] = None) -> DescentResult:
        """
        Minimize ||A x - b||^2 from x0.
        
        Parameters
        ----------
        A : np.ndarray
            Matrix (m x n)
        b : np.ndarray
            Target vector (m,)
        x0 : np.ndarray, optional
            Initial iterate. If None, uses zero vector.
            
        Returns
        -------
        DescentResult
            Final iterate and objective diagnostics
        """
        # Ensure proper shapes
        A = np.ascontiguousarray(A, dtype=np.float64)
        b = np.asarray(b, dtype=np.float64).flatten()
        
        if x0 is None:
            x0 = np.zeros(A.shape[1] if A.ndim == 2 else 0, dtype=np.float64)
        else:
            x0 = np.asarray(x0, dtype=np.float64).flatten()
        
        check_problem(A, b, x0)
        
        initial_objective = objective(x0, A, b)
        self._log("start", initial_objective)
        
        # Time the solve
        start_time = time.perf_counter()
        x = self._solve_impl(A, b, x0)
        elapsed_time = time.perf_counter() - start_time
        
        final_objective = objective(x, A, b)
        self._log("done", final_objective)
        
        return DescentResult(
            solution=x,
            iterations=self.iterations,
            step=self.step,
            initial_objective=initial_objective,
            final_objective=final_objective,
            elapsed_time=elapsed_time,
            solver_name=self.name,
        )
    
    def _log(self, stage: str, value: float):
        """Log solver progress."""
        if self.verbose:
            print(f"  {self.name} {stage:>5} ({self.iterations} iters, step={self.step:.1e}): "
                  f"f(x) = {value:.6e}")
