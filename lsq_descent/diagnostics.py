"""
Numerical Diagnostics for Least-Squares Descent
===============================================

Quality checks that sit outside the solver itself:

    1. Gradient check: analytic directional derivative vs forward difference
    2. Reference solution: minimum-norm least-squares solution via LAPACK
    3. Conditioning: singular values of A, Lipschitz constant of grad f
    4. Optimality gap: f(x) - f(x*) and distance to x*

The step-size bound computed here is informative only. The solvers never
check or clip the step.
"""

from dataclasses import dataclass, asdict
from typing import Optional
import warnings

import numpy as np
from scipy.linalg import lstsq, svdvals

from .kernels import evaluate_gradient, objective, transpose


# =============================================================================
# CONFIGURATION
# =============================================================================

FINITE_DIFFERENCE_EPS = 1e-4
GRADIENT_RTOL = 1e-2


@dataclass
class GradientCheck:
    """Result of comparing the analytic gradient against finite differences."""
    analytic: float
    finite_difference: float
    relative_error: float
    passed: bool


@dataclass
class DescentDiagnostics:
    """Container for detailed numerical diagnostics of a single solve."""
    solver_name: str
    iterations: int
    step: float
    
    # Objective metrics
    initial_objective: float
    final_objective: float
    optimal_objective: float
    optimality_gap: float
    
    # Error metrics (relative to reference solution)
    two_norm_error: float
    relative_solution_error: float
    
    # Problem conditioning
    sigma_max: float
    sigma_min: float
    lipschitz_constant: float
    max_stable_step: float
    
    diverged: bool = False
    
    def to_dict(self) -> dict:
        return asdict(self)


def gradient(x: np.ndarray, A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Allocate buffers and return 2 A^T (A x - b)."""
    m, n = A.shape
    dtype = np.result_type(A, x, np.float64)
    grad = np.empty(n, dtype=dtype)
    residual = np.empty(m, dtype=dtype)
    return evaluate_gradient(grad, residual, x, A, b, transpose(A))


def gradient_check(x: np.ndarray,
                   A: np.ndarray,
                   b: np.ndarray,
                   direction: Optional[np.ndarray] = None,
                   eps: float = FINITE_DIFFERENCE_EPS,
                   rtol: float = GRADIENT_RTOL,
                   seed: Optional[int] = None) -> GradientCheck:
    """
    Compare <grad f(x), h> with (f(x + eps h) - f(x)) / eps.
    
    Parameters
    ----------
    x : np.ndarray
        Point of evaluation (n,)
    A, b : np.ndarray
        Problem data
    direction : np.ndarray, optional
        Direction h. If None, drawn uniformly from [0, 1)^n.
    eps : float
        Forward-difference step
    rtol : float
        Relative tolerance for `passed`
    """
    if direction is None:
        direction = np.random.default_rng(seed).random(x.shape[0])
    
    analytic = float(np.dot(gradient(x, A, b), direction))
    finite_difference = (objective(x + eps * direction, A, b) - objective(x, A, b)) / eps
    
    scale = max(abs(analytic), abs(finite_difference))
    relative_error = abs(analytic - finite_difference) / scale if scale > 0 else 0.0
    
    return GradientCheck(
        analytic=analytic,
        finite_difference=finite_difference,
        relative_error=relative_error,
        passed=relative_error <= rtol,
    )


def reference_solution(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Compute the minimum-norm least-squares solution.
    
    Uses scipy's lstsq which employs LAPACK routines. From x0 = 0,
    gradient descent converges to this same point.
    """
    x_ref, _, _, _ = lstsq(A, b)
    return x_ref


def lipschitz_constant(A: np.ndarray) -> float:
    """Lipschitz constant of grad f: L = 2 sigma_max(A)^2."""
    return 2.0 * float(svdvals(A)[0]) ** 2


def max_stable_step(A: np.ndarray) -> float:
    """Largest step for which fixed-step descent does not diverge: 2 / L."""
    L = lipschitz_constant(A)
    return np.inf if L == 0 else 2.0 / L


def condition_number(A: np.ndarray) -> float:
    """Ratio of largest to smallest nonzero singular value of A."""
    s = svdvals(A)
    nonzero = s[s > s[0] * max(A.shape) * np.finfo(float).eps]
    if nonzero.size == 0:
        return np.inf
    return float(nonzero[0] / nonzero[-1])


def diagnose(x: np.ndarray,
             x0: np.ndarray,
             A: np.ndarray,
             b: np.ndarray,
             iterations: int,
             step: float,
             solver_name: str = "In-Place Descent") -> DescentDiagnostics:
    """Compare a finished iterate against the reference solution."""
    x_ref = reference_solution(A, b)
    s = svdvals(A)
    L = lipschitz_constant(A)
    limit = max_stable_step(A)
    
    initial = objective(x0, A, b)
    final = objective(x, A, b)
    optimal = objective(x_ref, A, b)
    
    ref_norm = np.linalg.norm(x_ref)
    error = float(np.linalg.norm(x - x_ref))
    
    diverged = not np.isfinite(final) or final > initial
    if diverged:
        warnings.warn(
            f"{solver_name}: objective rose from {initial:.3e} to {final:.3e} "
            f"(step={step:.1e}, 2/L={limit:.3e})",
            RuntimeWarning,
        )
    
    return DescentDiagnostics(
        solver_name=solver_name,
        iterations=iterations,
        step=step,
        initial_objective=initial,
        final_objective=final,
        optimal_objective=optimal,
        optimality_gap=final - optimal,
        two_norm_error=error,
        relative_solution_error=error / ref_norm if ref_norm > 0 else error,
        sigma_max=float(s[0]),
        sigma_min=float(s[-1]),
        lipschitz_constant=L,
        max_stable_step=limit,
        diverged=bool(diverged),
    )
