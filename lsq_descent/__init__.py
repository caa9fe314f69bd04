"""
Least-Squares Gradient Descent
==============================

Fixed-step gradient descent for the ordinary least-squares objective:

    f(x) = ||A x - b||^2,    grad f(x) = 2 A^T (A x - b)

Solvers:
- In-Place Descent (compiled loops, no allocation per iteration)
- Library Descent (numpy.matmul + BLAS daxpy)

Kernels:
- transpose, matvec, evaluate_gradient, descent_loop, objective
"""

from .exceptions import DimensionMismatch
from .kernels import transpose, matvec, evaluate_gradient, descent_loop, objective
from .base import DescentSolver, DescentResult, make_problem
from .gradient_descent import InPlaceDescentSolver, solve
from .library_descent import LibraryDescentSolver, solve_library

__all__ = [
    'DimensionMismatch',
    'transpose',
    'matvec',
    'evaluate_gradient',
    'descent_loop',
    'objective',
    'DescentSolver',
    'DescentResult',
    'make_problem',
    'InPlaceDescentSolver',
    'LibraryDescentSolver',
    'solve',
    'solve_library',
]
