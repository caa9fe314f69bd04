import numpy as np
import pytest

from lsq_descent import solve
from lsq_descent.diagnostics import (
    DescentDiagnostics,
    condition_number,
    diagnose,
    gradient,
    gradient_check,
    lipschitz_constant,
    max_stable_step,
    reference_solution,
)


def test_gradient_allocates_and_matches(problem, rng):
    A, b, _ = problem
    x = rng.standard_normal(20)
    np.testing.assert_allclose(gradient(x, A, b), 2 * A.T @ (A @ x - b), rtol=1e-12)


def test_gradient_check_along_descent_direction(problem, rng):
    A, b, _ = problem
    x = rng.standard_normal(20)
    check = gradient_check(x, A, b, direction=-gradient(x, A, b))
    assert check.passed
    assert check.analytic < 0
    assert check.relative_error < 1e-2


def test_gradient_check_zero_tolerance(problem):
    A, b, x0 = problem
    check = gradient_check(x0, A, b, seed=0, rtol=0.0)
    assert check.relative_error > 0
    assert not check.passed


def test_reference_solution_is_minimum_norm(problem):
    A, b, _ = problem
    np.testing.assert_allclose(reference_solution(A, b), np.linalg.pinv(A) @ b, atol=1e-10)


def test_lipschitz_constant(problem):
    A, _, _ = problem
    L = lipschitz_constant(A)
    assert L == pytest.approx(2 * np.linalg.norm(A, 2) ** 2, rel=1e-10)
    assert max_stable_step(A) == pytest.approx(2 / L)


def test_max_stable_step_of_zero_matrix():
    assert max_stable_step(np.zeros((3, 2))) == np.inf


def test_condition_number(problem):
    A, _, _ = problem
    assert condition_number(A) == pytest.approx(np.linalg.cond(A), rel=1e-8)


def test_condition_number_of_zero_matrix():
    assert condition_number(np.zeros((3, 2))) == np.inf


def test_diagnose_converged_run(problem):
    A, b, x0 = problem
    x = solve(x0, A, b)
    diag = diagnose(x, x0, A, b, 1000, 1e-3)
    assert isinstance(diag, DescentDiagnostics)
    assert not diag.diverged
    assert diag.final_objective < diag.initial_objective
    assert diag.optimality_gap >= -1e-9
    assert diag.step < diag.max_stable_step
    assert set(diag.to_dict()) >= {'solver_name', 'optimality_gap', 'diverged'}


def test_diagnose_warns_on_divergence(problem):
    A, b, x0 = problem
    step = 1.5 * max_stable_step(A)
    x = solve(x0, A, b, iterations=100, step=step)
    with pytest.warns(RuntimeWarning):
        diag = diagnose(x, x0, A, b, 100, step)
    assert diag.diverged
