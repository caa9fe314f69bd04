import numpy as np
import pytest

from lsq_descent import (
    DescentResult,
    DimensionMismatch,
    InPlaceDescentSolver,
    LibraryDescentSolver,
    objective,
    solve,
    solve_library,
)
from lsq_descent.diagnostics import gradient_check, max_stable_step, reference_solution


class TestSolve:

    def test_gradient_correctness(self, problem, rng):
        A, b, _ = problem
        x = rng.standard_normal(20)
        h = rng.random(20)
        check = gradient_check(x, A, b, direction=h, eps=1e-4, rtol=1e-2)
        assert check.passed
        assert check.analytic == pytest.approx(check.finite_difference, rel=1e-2)

    def test_objective_decrease(self, problem):
        A, b, x0 = problem
        xf = solve(x0, A, b, iterations=1000, step=1e-3)
        assert objective(xf, A, b) < objective(x0, A, b)

    def test_defaults(self, problem):
        A, b, x0 = problem
        np.testing.assert_array_equal(
            solve(x0, A, b), solve(x0, A, b, iterations=1000, step=1e-3))

    def test_deterministic(self, problem):
        A, b, x0 = problem
        first = solve(x0, A, b)
        second = solve(x0, A, b)
        assert first.tobytes() == second.tobytes()

    def test_does_not_mutate_x0(self, problem):
        A, b, _ = problem
        x0 = np.ones(20)
        solve(x0, A, b, iterations=50)
        np.testing.assert_array_equal(x0, np.ones(20))

    def test_zero_iterations(self, problem, rng):
        A, b, _ = problem
        x0 = rng.standard_normal(20)
        x = solve(x0, A, b, iterations=0)
        np.testing.assert_array_equal(x, x0)
        assert x is not x0

    def test_converges_to_minimum_norm_solution(self, problem):
        A, b, x0 = problem
        x = solve(x0, A, b, iterations=20000, step=0.5 * max_stable_step(A))
        np.testing.assert_allclose(x, reference_solution(A, b), atol=1e-6)

    def test_accepts_lists_and_ints(self):
        A = [[2, 0], [0, 1], [1, 1]]
        x = solve([0, 0], A, [1, 2, 3], iterations=10)
        assert x.dtype == np.float64
        assert x.shape == (2,)

    def test_extended_precision_runs_in_float64(self, problem):
        A, b, x0 = problem
        x = solve(x0.astype(np.longdouble), A.astype(np.longdouble), b.astype(np.longdouble),
                  iterations=50)
        assert x.dtype == np.float64
        np.testing.assert_array_equal(x, solve(x0, A, b, iterations=50))

    def test_complex_input_rejected(self, problem):
        A, b, x0 = problem
        with pytest.raises(TypeError):
            solve(x0, A.astype(np.complex128), b)

    def test_b_length_mismatch(self, problem):
        A, b, x0 = problem
        with pytest.raises(DimensionMismatch):
            solve(x0, A, np.zeros(11))

    def test_x0_length_mismatch(self, problem):
        A, b, _ = problem
        with pytest.raises(DimensionMismatch):
            solve(np.zeros(10), A, b)

    def test_large_step_diverges_without_error(self, problem):
        A, b, x0 = problem
        x = solve(x0, A, b, iterations=100, step=1.5 * max_stable_step(A))
        assert objective(x, A, b) > objective(x0, A, b)

    def test_non_finite_values_propagate(self, problem):
        A, b, x0 = problem
        x = solve(x0, A, b, iterations=1000, step=1e10)
        assert not np.all(np.isfinite(x))


class TestInPlaceDescentSolver:

    def test_result(self, problem):
        A, b, x0 = problem
        result = InPlaceDescentSolver().solve(A, b, x0)
        assert isinstance(result, DescentResult)
        assert result.solver_name == "In-Place Descent"
        assert result.iterations == 1000
        assert result.step == 1e-3
        assert result.final_objective < result.initial_objective
        assert 0 < result.relative_decrease <= 1
        assert result.elapsed_time >= 0

    def test_matches_functional_solve(self, problem):
        A, b, x0 = problem
        result = InPlaceDescentSolver(iterations=200, step=2e-3).solve(A, b, x0)
        np.testing.assert_array_equal(
            result.solution, solve(x0, A, b, iterations=200, step=2e-3))

    def test_default_x0_is_zero(self, problem):
        A, b, x0 = problem
        solver = InPlaceDescentSolver(iterations=0)
        np.testing.assert_array_equal(solver.solve(A, b).solution, np.zeros(20))

    def test_flattens_column_vectors(self, problem):
        A, b, x0 = problem
        result = InPlaceDescentSolver(iterations=10).solve(A, b.reshape(-1, 1), x0.reshape(-1, 1))
        assert result.solution.shape == (20,)

    def test_negative_iterations(self):
        with pytest.raises(ValueError):
            InPlaceDescentSolver(iterations=-1)

    def test_dimension_mismatch(self, problem):
        A, b, x0 = problem
        with pytest.raises(DimensionMismatch):
            InPlaceDescentSolver().solve(A, b[:-1], x0)

    def test_verbose(self, problem, capsys):
        A, b, x0 = problem
        InPlaceDescentSolver(iterations=5, verbose=True).solve(A, b, x0)
        out = capsys.readouterr().out
        assert "In-Place Descent" in out
        assert "f(x)" in out


class TestLibraryDescent:

    def test_matches_in_place(self, problem):
        A, b, x0 = problem
        np.testing.assert_allclose(
            solve_library(x0, A, b), solve(x0, A, b), rtol=1e-8, atol=1e-10)

    def test_solver_class(self, problem):
        A, b, x0 = problem
        result = LibraryDescentSolver(iterations=300).solve(A, b, x0)
        assert result.solver_name == "Library Descent"
        assert result.final_objective < result.initial_objective

    def test_does_not_mutate_x0(self, problem):
        A, b, _ = problem
        x0 = np.ones(20)
        solve_library(x0, A, b, iterations=20)
        np.testing.assert_array_equal(x0, np.ones(20))

    def test_zero_iterations(self, problem):
        A, b, x0 = problem
        np.testing.assert_array_equal(solve_library(x0, A, b, iterations=0), x0)

    def test_extended_precision_input(self, problem):
        A, b, x0 = problem
        x = solve_library(x0, A.astype(np.longdouble), b, iterations=20)
        assert x.dtype == np.float64

    def test_negative_iterations(self, problem):
        A, b, x0 = problem
        with pytest.raises(ValueError):
            solve_library(x0, A, b, iterations=-3)
