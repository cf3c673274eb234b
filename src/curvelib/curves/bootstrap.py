"""
Curve bootstrapping engines.

Implements the two algorithms used by PiecewiseYieldCurve:
1. IterativeBootstrap: solve one pillar at a time with a bounded 1-D
   root finder; global interpolators repeat full passes until the node
   values stop moving
2. LocalBootstrap: solve a small window of trailing pillars at once with
   scipy's least squares, freezing the sections behind the window

Both validate the helpers first:
- Sort instruments by pillar date
- Reject duplicate pillars, pillars on or before the reference date,
  invalid quotes and negative rates with positive-only interpolators

A bootstrap object serves a single curve; it keeps whether that curve
holds a valid solution so that the next calculation can warm start.
"""

from datetime import date
from typing import List, Tuple
import logging

import numpy as np
from scipy.optimize import least_squares

from ..errors import ConvergenceError, CurveConfigurationError, InvalidQuoteError
from ..utils.rootfinding import RootFindingError, solve_bounded

logger = logging.getLogger(__name__)

# relative half-widths of the first bracket around the guess
WARM_START_STEP = 1.0e-4
COLD_START_STEP = 1.0e-2


def _validate_and_link(curve) -> Tuple[List[date], List[float]]:
    """
    Sort and check the curve's helpers, then point them at the curve.

    Returns:
        Tuple of (node dates, node times), reference date first
    """
    helpers = curve._helpers
    if not helpers:
        raise CurveConfigurationError("no bootstrap helpers given")

    for i, helper in enumerate(helpers, start=1):
        if not helper.is_quote_valid():
            raise InvalidQuoteError(f"instrument {i} ({type(helper).__name__}) has an invalid quote")

    helpers.sort(key=lambda h: h.pillar_date())

    reference = curve.reference_date
    first = helpers[0].pillar_date()
    if first <= reference:
        raise CurveConfigurationError(
            f"first pillar {first} must be after the curve reference date {reference}"
        )
    for i in range(1, len(helpers)):
        if helpers[i].pillar_date() == helpers[i - 1].pillar_date():
            raise CurveConfigurationError(
                f"more than one instrument with pillar {helpers[i].pillar_date()} "
                f"({type(helpers[i - 1]).__name__} and {type(helpers[i]).__name__})"
            )

    check_rate_signs(helpers, curve.interpolator)

    for helper in helpers:
        helper.set_term_structure(curve)

    dates = [reference] + [h.pillar_date() for h in helpers]
    times = [curve.time_from_reference(d) for d in dates]
    return dates, times


def check_rate_signs(helpers, interpolator) -> None:
    """
    Reject negative rate quotes for interpolators of positive values.

    Helpers without a valid quote are skipped.

    Raises:
        CurveConfigurationError: If a rate quote is negative and the
            interpolator is positive-only
    """
    if not interpolator.positive_only:
        return
    for i, helper in enumerate(helpers, start=1):
        if helper.is_quote_valid() and helper.quote_is_rate() and helper.quote_value() < 0.0:
            raise CurveConfigurationError(
                f"instrument {i} quotes a negative rate ({helper.quote_value()}) which "
                f"{type(interpolator).__name__} cannot represent"
            )


class _Bootstrap:
    """Shared setup of the bootstrap engines."""

    def __init__(self):
        self._curve = None
        self._valid = False

    def setup(self, curve) -> None:
        """
        Attach the bootstrap to a curve and register the curve with its helpers.

        Raises:
            CurveConfigurationError: If the bootstrap already serves another
                curve, or the helpers cannot fit the interpolator
        """
        if self._curve is not None and self._curve is not curve:
            raise CurveConfigurationError(f"{type(self).__name__} is already attached to another curve")
        self._curve = curve
        n = len(curve._helpers)
        if n == 0:
            raise CurveConfigurationError("no bootstrap helpers given")
        if n + 1 < curve.interpolator.required_points:
            raise CurveConfigurationError(
                f"not enough instruments: {n} provided, "
                f"{curve.interpolator.required_points - 1} required"
            )
        for helper in curve._helpers:
            curve.register_with(helper)

    def _seed_is_valid(self, curve, n: int) -> bool:
        return self._valid and len(curve._data) == n + 1


class IterativeBootstrap(_Bootstrap):
    """
    Pillar-by-pillar bootstrap.

    Each node is solved so that its helper reprices exactly, using the
    trait's bounds and a bracket-then-Brent solver. Interpolators whose
    sections depend on later nodes need repeated passes; convergence is
    reached when no node moves by more than the curve accuracy.

    Attributes:
        max_iterations: Cap on full passes (default: the trait's)
    """

    def __init__(self, max_iterations: int = None):
        super().__init__()
        self.max_iterations = max_iterations

    def __repr__(self) -> str:
        return f"IterativeBootstrap(max_iterations={self.max_iterations})"

    def calculate(self, curve) -> None:
        dates, times = _validate_and_link(curve)
        helpers = curve._helpers
        trait = curve.trait
        interpolator = curve.interpolator
        accuracy = curve.accuracy
        max_iterations = self.max_iterations or trait.max_iterations
        n = len(helpers)

        valid_curve = self._seed_is_valid(curve, n)
        self._valid = False
        if valid_curve:
            data = list(curve._data)
        else:
            data = [trait.initial_value()] + [trait.initial_guess(times[1])] * n
        curve._set_nodes(dates, data)
        data = curve._data

        logger.debug(
            "Bootstrapping %d instruments (%s/%s, warm start=%s)",
            n, trait.name, interpolator.name, valid_curve
        )

        iteration = 0
        while True:
            previous = list(data)
            valid_data = valid_curve or iteration > 0

            for i in range(1, n + 1):
                helper = helpers[i - 1]
                if not valid_data:
                    # extend the interpolation a point at a time
                    curve._refit(i + 1)

                lower = trait.min_value_after(i, data, times, interpolator)
                upper = trait.max_value_after(i, data, times, interpolator)
                guess = trait.guess(i, data, times, valid_data)
                if not lower < guess < upper:
                    guess = 0.5 * (lower + upper)
                step = (WARM_START_STEP if valid_data else COLD_START_STEP) * max(abs(guess), 1.0)

                def error(x, i=i, helper=helper):
                    trait.update_guess(data, x, i)
                    curve._refit()
                    return helper.quote_error()

                try:
                    result = solve_bounded(error, accuracy, guess, lower, upper, step)
                except RootFindingError as exc:
                    logger.warning(
                        "Bootstrap failed at instrument %d (pillar %s), pass %d: %s",
                        i, dates[i], iteration + 1, exc
                    )
                    raise ConvergenceError(
                        f"could not reprice {type(helper).__name__}",
                        instrument_index=i,
                        pillar_date=dates[i],
                        residual=exc.last_value,
                        tolerance=accuracy,
                        iteration=iteration + 1,
                    ) from exc
                trait.update_guess(data, result.root, i)
                curve._refit()

            if not interpolator.is_global:
                break

            if valid_data:
                changes = [abs(data[i] - previous[i]) for i in range(1, n + 1)]
                change = max(changes)
                logger.debug("Bootstrap pass %d: max node change %.3e", iteration + 1, change)
                if change <= accuracy:
                    break
            iteration += 1
            if iteration >= max_iterations:
                errors = [abs(h.quote_error()) for h in helpers]
                worst = int(np.argmax(errors))
                raise ConvergenceError(
                    f"convergence not reached after {max_iterations} passes",
                    instrument_index=worst + 1,
                    pillar_date=dates[worst + 1],
                    residual=errors[worst],
                    tolerance=accuracy,
                    iteration=iteration,
                )

        self._valid = True
        logger.info(
            "Bootstrapped %d instruments in %d pass(es) (%s/%s)",
            n, iteration + 1, trait.name, interpolator.name
        )


class LocalBootstrap(_Bootstrap):
    """
    Windowed bootstrap for interpolators with local refits.

    For every new pillar the last ``localisation`` node values are solved
    together against the last ``localisation`` helpers; sections behind
    the window are frozen, so no global pass is needed. The first window
    solves the first ``localisation`` nodes.

    Attributes:
        localisation: Number of nodes solved together
        force_positive: Keep solved values non-negative
    """

    def __init__(self, localisation: int = 2, force_positive: bool = True):
        super().__init__()
        if localisation < 1:
            raise ValueError(f"localisation must be positive: {localisation}")
        self.localisation = localisation
        self.force_positive = force_positive

    def __repr__(self) -> str:
        return f"LocalBootstrap(localisation={self.localisation}, force_positive={self.force_positive})"

    def setup(self, curve) -> None:
        super().setup(curve)
        if not hasattr(curve.interpolator, "local_interpolate"):
            raise CurveConfigurationError(
                f"{type(curve.interpolator).__name__} does not support local bootstrapping"
            )
        n = len(curve._helpers)
        if n < self.localisation:
            raise CurveConfigurationError(
                f"not enough instruments: {n} provided, {self.localisation} required"
            )

    def calculate(self, curve) -> None:
        dates, times = _validate_and_link(curve)
        helpers = curve._helpers
        trait = curve.trait
        prototype = curve._interpolator_prototype
        accuracy = curve.accuracy
        localisation = self.localisation
        adjustment = getattr(prototype, "data_size_adjustment", 1)
        n = len(helpers)

        valid_curve = self._seed_is_valid(curve, n)
        self._valid = False
        if valid_curve:
            data = list(curve._data)
        else:
            data = [trait.initial_value()] * (n + 1)
        curve._set_nodes(dates, data)
        data = curve._data

        lower = 0.0 if self.force_positive else -np.inf
        previous_interpolator = None

        for i_inst in range(localisation - 1, n):
            initial = i_inst + 1 - localisation + adjustment
            n_variables = localisation + 1 - adjustment
            size = i_inst + 2

            interpolator = prototype.local_interpolate(
                np.asarray(times), size, np.asarray(data), localisation, previous_interpolator, n + 1
            )
            curve._interpolator = interpolator
            curve._active = size

            start = [data[initial + j] for j in range(n_variables - 1)]
            if i_inst >= localisation:
                start.append(trait.guess(initial + n_variables - 1, data, times, valid_curve))
            else:
                start.append(data[0])
            x0 = np.asarray(start, dtype=float)
            if self.force_positive:
                x0 = np.maximum(x0, 0.0)

            window = helpers[i_inst + 1 - localisation:i_inst + 1]

            def residuals(x, initial=initial, window=window):
                for j, value in enumerate(x):
                    trait.update_guess(data, float(value), initial + j)
                curve._refit()
                return np.array([h.quote_error() for h in window])

            result = least_squares(
                residuals, x0, bounds=(lower, np.inf),
                xtol=accuracy, ftol=accuracy, gtol=accuracy
            )
            if not result.success:
                worst = int(np.argmax(np.abs(result.fun)))
                index = i_inst + 1 - localisation + worst + 1
                logger.warning("Local bootstrap failed at pillar %s: %s", dates[index], result.message)
                raise ConvergenceError(
                    f"local solve failed: {result.message}",
                    instrument_index=index,
                    pillar_date=dates[index],
                    residual=float(result.fun[worst]),
                    tolerance=accuracy,
                    iteration=1,
                )
            residuals(result.x)
            previous_interpolator = interpolator

        self._valid = True
        logger.info("Locally bootstrapped %d instruments (%s)", n, prototype.name)


__all__ = [
    "check_rate_signs",
    "IterativeBootstrap",
    "LocalBootstrap",
    "COLD_START_STEP",
    "WARM_START_STEP",
]
