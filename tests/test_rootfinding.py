"""
Unit tests for rootfinding module.
"""

import math
import pytest

from curvelib.utils.rootfinding import RootFindingError, bracket_root, solve_bounded


class TestBracketRoot:
    """Tests for bracket_root."""

    def test_full_bounds(self):
        a, b, fa, fb = bracket_root(lambda x: x - 0.3, 0.5, 0.0, 1.0)
        assert (a, b) == (0.0, 1.0)
        assert fa * fb < 0

    def test_grows_from_guess(self):
        """A small starting step expands until the root is enclosed."""
        a, b, fa, fb = bracket_root(lambda x: x - 0.9, 0.5, 0.0, 1.0, step=0.01)
        assert a <= 0.9 <= b
        assert fa * fb <= 0

    def test_stays_within_bounds(self):
        """The objective is never evaluated outside the bounds."""
        seen = []

        def func(x):
            seen.append(x)
            return x - 0.99

        bracket_root(func, 0.5, 0.0, 1.0, step=0.1)
        assert all(0.0 <= x <= 1.0 for x in seen)

    def test_non_monotone_objective(self):
        """Growing from the guess finds a root the bounds alone do not enclose."""
        func = lambda x: (x - 0.1) * (x - 2.5)  # noqa: E731
        assert func(-3.0) * func(3.0) > 0
        with pytest.raises(RootFindingError):
            bracket_root(func, 0.05, -3.0, 3.0)

        a, b, fa, fb = bracket_root(func, 0.05, -3.0, 3.0, step=0.01)
        assert a <= 0.1 <= b < 2.5
        assert fa * fb <= 0

    def test_no_root(self):
        with pytest.raises(RootFindingError):
            bracket_root(lambda x: x * x + 1.0, 0.0, -1.0, 1.0)

    def test_invalid_bounds(self):
        with pytest.raises(RootFindingError):
            bracket_root(lambda x: x, 0.0, 1.0, 1.0)


class TestSolveBounded:
    """Tests for solve_bounded."""

    def test_solves_to_accuracy(self):
        result = solve_bounded(lambda x: math.exp(-x) - 0.5, 1e-14, 0.5, 0.0, 5.0)
        assert abs(result.root - math.log(2.0)) < 1e-12
        assert result.evaluations > 0

    def test_warm_start(self):
        """A guess close to the root needs few evaluations."""
        func = lambda x: x ** 3 - 0.125  # noqa: E731
        cold = solve_bounded(func, 1e-12, 0.0, -1.0, 1.0)
        warm = solve_bounded(func, 1e-12, 0.5, -1.0, 1.0, step=1e-4)
        assert abs(warm.root - 0.5) < 1e-11
        assert warm.evaluations <= cold.evaluations

    def test_root_on_bound(self):
        result = solve_bounded(lambda x: x, 1e-12, 0.5, 0.0, 1.0)
        assert result.root == 0.0

    def test_failure_reports_best_residual(self):
        """Errors carry the smallest residual that was seen."""
        with pytest.raises(RootFindingError) as info:
            solve_bounded(lambda x: x + 2.0, 1e-12, 0.5, 0.0, 1.0)
        assert abs(info.value.last_value - 2.0) < 1e-15
        assert info.value.evaluations >= 2
