"""
Bounded one-dimensional root finding used by the bootstrap.

Provides:
- RootResult: Outcome of a successful solve
- RootFindingError: Raised when a root cannot be bracketed or refined
- bracket_root: Grow a bracket outward from a guess, clipped to bounds
- solve_bounded: Bracket, then refine with scipy's Brent solver

The bracket search never evaluates the function outside [lower, upper];
traits rely on this to keep discount factors positive.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from scipy.optimize import brentq

logger = logging.getLogger(__name__)

Func = Callable[[float], float]

GROWTH_FACTOR = 1.6
MAX_EVALUATIONS = 100


@dataclass
class RootResult:
    root: float
    evaluations: int
    bracket: Tuple[float, float]


class RootFindingError(RuntimeError):
    """Raised when root-finding fails to converge."""

    def __init__(self, message: str, last_value: float = math.nan, evaluations: int = 0):
        super().__init__(message)
        self.last_value = last_value
        self.evaluations = evaluations


class _CountingFunction:
    """Wraps the objective, counting calls and keeping the smallest residual."""

    def __init__(self, func: Func):
        self.func = func
        self.count = 0
        self.best_value = math.nan

    def __call__(self, x: float) -> float:
        self.count += 1
        value = float(self.func(x))
        if math.isnan(self.best_value) or abs(value) < abs(self.best_value):
            self.best_value = value
        return value


def bracket_root(
    func: Func,
    guess: float,
    lower: float,
    upper: float,
    step: Optional[float] = None,
    max_evaluations: int = MAX_EVALUATIONS,
) -> Tuple[float, float, float, float]:
    """
    Find an interval containing a sign change of func.

    Starts from [guess - step, guess + step] (or the full bounds when no
    step is given) and grows the side with the smaller residual by
    GROWTH_FACTOR until the signs differ or both bounds are reached.
    Objectives that are not monotone may share a sign at both bounds, so
    callers should give a step whenever a sensible guess exists.

    Args:
        func: Objective function
        guess: Starting point
        lower: Hard lower bound
        upper: Hard upper bound
        step: Initial half-width around the guess
        max_evaluations: Evaluation budget

    Returns:
        Tuple of (a, b, f(a), f(b)) with f(a) * f(b) <= 0

    Raises:
        RootFindingError: If no sign change is found
    """
    if not lower < upper:
        raise RootFindingError(f"invalid bounds: lower {lower} >= upper {upper}")

    guess = min(max(guess, lower), upper)
    if step is None or step <= 0.0:
        a, b = lower, upper
    else:
        a, b = max(lower, guess - step), min(upper, guess + step)
        if a == b:
            a, b = lower, upper

    fa, fb = func(a), func(b)
    evaluations = 2

    while fa * fb > 0.0:
        if a <= lower and b >= upper:
            raise RootFindingError(
                f"root not bracketed in [{lower:.6g}, {upper:.6g}]: "
                f"f(lower)={fa:.6g}, f(upper)={fb:.6g}"
            )
        if evaluations >= max_evaluations:
            raise RootFindingError(
                f"unable to bracket root in {max_evaluations} evaluations"
            )
        if (abs(fa) < abs(fb) or b >= upper) and a > lower:
            a = max(lower, a + GROWTH_FACTOR * (a - b))
            fa = func(a)
        else:
            b = min(upper, b + GROWTH_FACTOR * (b - a))
            fb = func(b)
        evaluations += 1

    return a, b, fa, fb


def solve_bounded(
    func: Func,
    accuracy: float,
    guess: float,
    lower: float,
    upper: float,
    step: Optional[float] = None,
    max_evaluations: int = MAX_EVALUATIONS,
) -> RootResult:
    """
    Solve func(x) = 0 for x in [lower, upper].

    Args:
        func: Objective function
        accuracy: Absolute tolerance on x
        guess: Starting point for the bracket search
        lower: Hard lower bound
        upper: Hard upper bound
        step: Initial bracket half-width (None searches the full bounds)
        max_evaluations: Evaluation budget shared by bracketing and Brent

    Returns:
        RootResult

    Raises:
        RootFindingError: If no root is found; carries the smallest
            residual seen in ``last_value``
    """
    counted = _CountingFunction(func)
    try:
        a, b, fa, fb = bracket_root(counted, guess, lower, upper, step, max_evaluations)
        if fa == 0.0:
            return RootResult(a, counted.count, (a, b))
        if fb == 0.0:
            return RootResult(b, counted.count, (a, b))

        remaining = max(max_evaluations - counted.count, 1)
        root, info = brentq(
            counted, a, b, xtol=accuracy, maxiter=remaining, full_output=True, disp=False
        )
        if not info.converged:
            raise RootFindingError(f"Brent solver failed to converge: {info.flag}")
    except RootFindingError as exc:
        raise RootFindingError(str(exc), counted.best_value, counted.count) from exc

    logger.debug("Root %.15g found in %d evaluations", root, counted.count)
    return RootResult(float(root), counted.count, (a, b))


__all__ = [
    "RootResult",
    "RootFindingError",
    "bracket_root",
    "solve_bounded",
]
