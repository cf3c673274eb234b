"""
Convex-monotone forward interpolation (Hagan & West, 2006).

Node values are read as period averages: ``values[i]`` is the average of
the interpolant over (times[i-1], times[i]], so the first value is
ignored. Each period is represented by a section object that knows its
value, its primitive and the forward it hands on to the next period.

monotonicity = 1 and quadraticity = 0 give the basic Hagan/West method;
lower monotonicity and/or positive quadraticity give smoother curves.
force_positive keeps the interpolant non-negative.

``local_interpolate`` rebuilds only the trailing sections and keeps the
earlier ones frozen, which is what the local bootstrap needs.
"""

import bisect
import math
from typing import List, Optional, Tuple

import numpy as np

from .interpolation import Interpolator


class EverywhereConstantSection:
    def __init__(self, value: float, prev_primitive: float, x_prev: float):
        self._value = value
        self.prev_primitive = prev_primitive
        self.x_prev = x_prev

    def value(self, x: float) -> float:
        return self._value

    def primitive(self, x: float) -> float:
        return self.prev_primitive + (x - self.x_prev) * self._value

    def f_next(self) -> float:
        return self._value


class ConstantGradSection:
    def __init__(self, f_prev: float, prev_primitive: float, x_prev: float, x_next: float, f_next: float):
        self.f_prev = f_prev
        self.prev_primitive = prev_primitive
        self.x_prev = x_prev
        self.grad = (f_next - f_prev) / (x_next - x_prev)
        self._f_next = f_next

    def value(self, x: float) -> float:
        return self.f_prev + (x - self.x_prev) * self.grad

    def primitive(self, x: float) -> float:
        dx = x - self.x_prev
        return self.prev_primitive + dx * (self.f_prev + 0.5 * dx * self.grad)

    def f_next(self) -> float:
        return self._f_next


class QuadraticSection:
    def __init__(self, x_prev, x_next, f_prev, f_next, f_average, prev_primitive):
        self.x_prev = x_prev
        self.prev_primitive = prev_primitive
        self._f_next = f_next
        self.a = 3 * f_prev + 3 * f_next - 6 * f_average
        self.b = -(4 * f_prev + 2 * f_next - 6 * f_average)
        self.c = f_prev
        self.x_scaling = x_next - x_prev

    def value(self, x: float) -> float:
        u = (x - self.x_prev) / self.x_scaling
        return self.a * u * u + self.b * u + self.c

    def primitive(self, x: float) -> float:
        u = (x - self.x_prev) / self.x_scaling
        return self.prev_primitive + self.x_scaling * (self.a / 3 * u * u + self.b / 2 * u + self.c) * u

    def f_next(self) -> float:
        return self._f_next


class QuadraticMinSection:
    """Quadratic section that is floored at zero by splitting out a flat middle region."""

    def __init__(self, x_prev, x_next, f_prev, f_next, f_average, prev_primitive):
        self.split_region = False
        self.x1 = x_prev
        self.x4 = x_next
        self.primitive1 = prev_primitive
        self._f_next = f_next
        self.a = 3 * f_prev + 3 * f_next - 6 * f_average
        self.b = -(4 * f_prev + 2 * f_next - 6 * f_average)
        self.c = f_prev
        d = self.b * self.b - 4 * self.a * self.c
        self.x_scaling = self.x4 - self.x1
        self.x_ratio = 1.0
        if d > 0:
            a_av = 36.0
            b_av = -24.0 * (f_prev + f_next)
            c_av = 4.0 * (f_prev * f_prev + f_prev * f_next + f_next * f_next)
            d_av = b_av * b_av - 4.0 * a_av * c_av
            if d_av >= 0.0:
                self.split_region = True
                av_root = (-b_av - math.sqrt(d_av)) / (2 * a_av)

                self.x_ratio = f_average / av_root
                self.x_scaling *= self.x_ratio

                self.a = 3 * f_prev + 3 * f_next - 6 * av_root
                self.b = -(4 * f_prev + 2 * f_next - 6 * av_root)
                self.c = f_prev
                x_root = -self.b / (2 * self.a)
                self.x2 = self.x1 + self.x_ratio * (self.x4 - self.x1) * x_root
                self.x3 = self.x4 - self.x_ratio * (self.x4 - self.x1) * (1 - x_root)
                self.primitive2 = (
                    self.primitive1
                    + self.x_scaling * (self.a / 3 * x_root * x_root + self.b / 2 * x_root + self.c) * x_root
                )

    def value(self, x: float) -> float:
        u = (x - self.x1) / (self.x4 - self.x1)
        if self.split_region:
            if x <= self.x2:
                u /= self.x_ratio
            elif x < self.x3:
                return 0.0
            else:
                u = 1.0 - (1.0 - u) / self.x_ratio
        return self.c + self.b * u + self.a * u * u

    def primitive(self, x: float) -> float:
        u = (x - self.x1) / (self.x4 - self.x1)
        if self.split_region:
            if x < self.x2:
                u /= self.x_ratio
            elif x < self.x3:
                return self.primitive2
            else:
                u = 1.0 - (1.0 - u) / self.x_ratio
        return self.primitive1 + self.x_scaling * (self.a / 3 * u * u + self.b / 2 * u + self.c) * u

    def f_next(self) -> float:
        return self._f_next


class ConvexMonotone2Section:
    def __init__(self, x_prev, x_next, g_prev, g_next, f_average, eta2, prev_primitive):
        self.x_prev = x_prev
        self.x_scaling = x_next - x_prev
        self.g_prev = g_prev
        self.g_next = g_next
        self.f_average = f_average
        self.eta2 = eta2
        self.prev_primitive = prev_primitive

    def value(self, x: float) -> float:
        u = (x - self.x_prev) / self.x_scaling
        if u <= self.eta2:
            return self.f_average + self.g_prev
        return (self.f_average + self.g_prev
                + (self.g_next - self.g_prev) / ((1 - self.eta2) ** 2) * (u - self.eta2) ** 2)

    def primitive(self, x: float) -> float:
        u = (x - self.x_prev) / self.x_scaling
        eta = self.eta2
        if u <= eta:
            return self.prev_primitive + self.x_scaling * (self.f_average * u + self.g_prev * u)
        return self.prev_primitive + self.x_scaling * (
            self.f_average * u + self.g_prev * u
            + (self.g_next - self.g_prev) / ((1 - eta) ** 2)
            * (1.0 / 3.0 * (u ** 3 - eta ** 3) - eta * u * u + eta * eta * u)
        )

    def f_next(self) -> float:
        return self.f_average + self.g_next


class ConvexMonotone3Section:
    def __init__(self, x_prev, x_next, g_prev, g_next, f_average, eta3, prev_primitive):
        self.x_prev = x_prev
        self.x_scaling = x_next - x_prev
        self.g_prev = g_prev
        self.g_next = g_next
        self.f_average = f_average
        self.eta3 = eta3
        self.prev_primitive = prev_primitive

    def value(self, x: float) -> float:
        u = (x - self.x_prev) / self.x_scaling
        if u <= self.eta3:
            return (self.f_average + self.g_next
                    + (self.g_prev - self.g_next) / (self.eta3 ** 2) * (self.eta3 - u) ** 2)
        return self.f_average + self.g_next

    def primitive(self, x: float) -> float:
        u = (x - self.x_prev) / self.x_scaling
        eta = self.eta3
        if u <= eta:
            return self.prev_primitive + self.x_scaling * (
                self.f_average * u + self.g_next * u
                + (self.g_prev - self.g_next) / (eta * eta)
                * (1.0 / 3.0 * u ** 3 - eta * u * u + eta * eta * u)
            )
        return self.prev_primitive + self.x_scaling * (
            self.f_average * u + self.g_next * u
            + (self.g_prev - self.g_next) / (eta * eta) * (1.0 / 3.0 * eta ** 3)
        )

    def f_next(self) -> float:
        return self.f_average + self.g_next


class ConvexMonotone4Section:
    def __init__(self, x_prev, x_next, g_prev, g_next, f_average, eta4, prev_primitive):
        self.x_prev = x_prev
        self.x_scaling = x_next - x_prev
        self.g_prev = g_prev
        self.g_next = g_next
        self.f_average = f_average
        self.eta4 = eta4
        self.prev_primitive = prev_primitive
        self.A = -0.5 * (eta4 * g_prev + (1 - eta4) * g_next)

    def value(self, x: float) -> float:
        u = (x - self.x_prev) / self.x_scaling
        eta, A = self.eta4, self.A
        if u <= eta:
            return self.f_average + A + (self.g_prev - A) * (eta - u) ** 2 / (eta * eta)
        return self.f_average + A + (self.g_next - A) * (u - eta) ** 2 / ((1 - eta) ** 2)

    def primitive(self, x: float) -> float:
        u = (x - self.x_prev) / self.x_scaling
        eta, A = self.eta4, self.A
        if u <= eta:
            return self.prev_primitive + self.x_scaling * (
                self.f_average + A + (self.g_prev - A) / (eta * eta) * (eta * eta - eta * u + 1.0 / 3.0 * u * u)
            ) * u
        return self.prev_primitive + self.x_scaling * (
            self.f_average * u + A * u + (self.g_prev - A) * (1.0 / 3.0 * eta)
            + (self.g_next - A) / ((1 - eta) ** 2)
            * (1.0 / 3.0 * u ** 3 - eta * u * u + eta * eta * u - 1.0 / 3.0 * eta ** 3)
        )

    def f_next(self) -> float:
        return self.f_average + self.g_next


class ConvexMonotone4MinSection(ConvexMonotone4Section):
    """Type-4 section shifted and split so that it never goes below zero."""

    def __init__(self, x_prev, x_next, g_prev, g_next, f_average, eta4, prev_primitive):
        super().__init__(x_prev, x_next, g_prev, g_next, f_average, eta4, prev_primitive)
        self.split_region = False
        if self.A + self.f_average <= 0.0:
            self.split_region = True
            f_prev = self.g_prev + self.f_average
            f_nxt = self.g_next + self.f_average
            reqd_shift = (eta4 * f_prev + (1 - eta4) * f_nxt) / 3.0 - self.f_average
            reqd_period = reqd_shift * self.x_scaling / (self.f_average + reqd_shift)
            x_adjust = self.x_scaling - reqd_period
            self.x_ratio = x_adjust / self.x_scaling

            self.f_average += reqd_shift
            self.g_next = f_nxt - self.f_average
            self.g_prev = f_prev - self.f_average
            self.A = -(eta4 * self.g_prev + (1.0 - eta4) * self.g_next) / 2.0
            self.x2 = self.x_prev + x_adjust * eta4
            self.x3 = self.x_prev + self.x_scaling - x_adjust * (1.0 - eta4)

    def value(self, x: float) -> float:
        if not self.split_region:
            return super().value(x)
        u = (x - self.x_prev) / self.x_scaling
        eta, A = self.eta4, self.A
        if x <= self.x2:
            u /= self.x_ratio
            return self.f_average + A + (self.g_prev - A) * (eta - u) ** 2 / (eta * eta)
        elif x < self.x3:
            return 0.0
        u = 1.0 - (1.0 - u) / self.x_ratio
        return self.f_average + A + (self.g_next - A) * (u - eta) ** 2 / ((1 - eta) ** 2)

    def primitive(self, x: float) -> float:
        if not self.split_region:
            return super().primitive(x)
        u = (x - self.x_prev) / self.x_scaling
        eta, A = self.eta4, self.A
        scale = self.x_scaling * self.x_ratio
        if x <= self.x2:
            u /= self.x_ratio
            return self.prev_primitive + scale * (
                self.f_average + A + (self.g_prev - A) / (eta * eta) * (eta * eta - eta * u + 1.0 / 3.0 * u * u)
            ) * u
        elif x <= self.x3:
            return self.prev_primitive + scale * (
                self.f_average * eta + A * eta + (self.g_prev - A) / (eta * eta) * (1.0 / 3.0 * eta ** 3)
            )
        u = 1.0 - (1.0 - u) / self.x_ratio
        return self.prev_primitive + scale * (
            self.f_average * u + A * u + (self.g_prev - A) * (1.0 / 3.0 * eta)
            + (self.g_next - A) / ((1.0 - eta) ** 2)
            * (1.0 / 3.0 * u ** 3 - eta * u * u + eta * eta * u - 1.0 / 3.0 * eta ** 3)
        )


class ComboSection:
    """Weighted blend of a quadratic and a convex-monotone section."""

    def __init__(self, quadratic, convex_monotone, quadraticity: float):
        if not 0.0 < quadraticity < 1.0:
            raise ValueError("Quadratic value must lie between 0 and 1")
        self.quadratic = quadratic
        self.convex_monotone = convex_monotone
        self.quadraticity = quadraticity

    def value(self, x: float) -> float:
        q = self.quadraticity
        return q * self.quadratic.value(x) + (1.0 - q) * self.convex_monotone.value(x)

    def primitive(self, x: float) -> float:
        q = self.quadraticity
        return q * self.quadratic.primitive(x) + (1.0 - q) * self.convex_monotone.primitive(x)

    def f_next(self) -> float:
        q = self.quadraticity
        return q * self.quadratic.f_next() + (1.0 - q) * self.convex_monotone.f_next()


Section = Tuple[float, object]


class ConvexMonotoneInterpolator(Interpolator):
    """
    Convex-monotone interpolation of period-average forwards.

    Attributes:
        quadraticity: Weight of the quadratic section in [0, 1]
        monotonicity: Monotonicity parameter in [0, 1]
        force_positive: Floor the interpolant at zero
    """

    name = "convex_monotone"
    is_global = True
    required_points = 2
    data_size_adjustment = 1

    def __init__(self, quadraticity: float = 0.3, monotonicity: float = 0.7, force_positive: bool = True):
        super().__init__()
        if not 0.0 <= monotonicity <= 1.0:
            raise ValueError("Monotonicity must lie between 0 and 1")
        if not 0.0 <= quadraticity <= 1.0:
            raise ValueError("Quadraticity must lie between 0 and 1")
        self.quadraticity = quadraticity
        self.monotonicity = monotonicity
        self.force_positive = force_positive
        self.flat_final_period = False
        self._preexisting: List[Section] = []
        self._sections: List[Section] = []
        self._keys: List[float] = []
        self._extrapolation = None

    def __repr__(self) -> str:
        return (f"ConvexMonotoneInterpolator(quadraticity={self.quadraticity}, "
                f"monotonicity={self.monotonicity}, force_positive={self.force_positive})")

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        self._set_data(times, values)
        if len(self.times) - len(self._preexisting) <= 1:
            raise ValueError("Too many existing sections have been supplied")
        self._build()

    def local_interpolate(
        self,
        times: np.ndarray,
        size: int,
        values: np.ndarray,
        localisation: int,
        previous: Optional["ConvexMonotoneInterpolator"],
        final_size: int
    ) -> "ConvexMonotoneInterpolator":
        """
        Fit the first ``size`` nodes, reusing frozen sections of a previous fit.

        Args:
            times: Node times (at least ``size`` of them)
            size: Number of nodes to fit
            values: Node values
            localisation: Number of trailing nodes being solved
            previous: Interpolator fitted at the previous step, if any
            final_size: Number of nodes once the curve is complete

        Returns:
            New fitted ConvexMonotoneInterpolator; the last period stays
            flat until ``size`` reaches ``final_size``
        """
        interp = ConvexMonotoneInterpolator(self.quadraticity, self.monotonicity, self.force_positive)
        interp.flat_final_period = size != final_size
        if size - localisation != 1 and previous is not None:
            interp._preexisting = previous.existing_sections()
        interp.fit(np.asarray(times)[:size], np.asarray(values)[:size])
        return interp

    def existing_sections(self) -> List[Section]:
        """Fitted sections, without the provisional flat final period."""
        sections = list(self._sections)
        if self.flat_final_period:
            sections.pop()
        return sections

    def _build(self) -> None:
        x, y = self.times, self.values
        n = len(x)

        if n == 2:
            single = EverywhereConstantSection(y[1], 0.0, x[0])
            self._set_sections([(x[1], single)], single)
            return

        f = [0.0] * n
        sections = list(self._preexisting)
        start = len(sections) + 1

        # boundary forwards
        for i in range(start, n - 1):
            dx_prev = x[i] - x[i - 1]
            dx = x[i + 1] - x[i]
            f[i] = dx_prev / (dx + dx_prev) * y[i] + dx / (dx + dx_prev) * y[i + 1]

        if start > 1:
            f[start - 1] = sections[-1][1].f_next()
        if start == 1:
            f[0] = 1.5 * y[1] - 0.5 * f[1]
        f[n - 1] = 1.5 * y[n - 1] - 0.5 * f[n - 2]

        if self.force_positive:
            f[0] = max(f[0], 0.0)
            f[n - 1] = max(f[n - 1], 0.0)

        primitive = 0.0
        for i in range(start - 1):
            primitive += y[i + 1] * (x[i + 1] - x[i])

        end = n - 1 if self.flat_final_period else n
        for i in range(start, end):
            sections.append((x[i], self._section(x[i - 1], x[i], f[i - 1], f[i], y[i], primitive)))
            primitive += y[i] * (x[i] - x[i - 1])

        if self.flat_final_period:
            extrapolation = EverywhereConstantSection(y[n - 1], primitive, x[n - 2])
            sections.append((x[n - 1], extrapolation))
        else:
            extrapolation = EverywhereConstantSection(sections[-1][1].value(x[-1]), primitive, x[-1])
        self._set_sections(sections, extrapolation)

    def _section(self, x_prev, x_next, f_prev, f_next, f_average, primitive):
        g_prev = f_prev - f_average
        g_next = f_next - f_average

        if abs(g_prev) < 1.0e-14 and abs(g_next) < 1.0e-14:
            return ConstantGradSection(f_prev, primitive, x_prev, x_next, f_next)

        quadraticity = self.quadraticity
        monotonicity = self.monotonicity
        force_positive = self.force_positive
        quadratic = None
        convex = None
        args = (x_prev, x_next, f_prev, f_next, f_average, primitive)

        if self.quadraticity > 0.0:
            if g_prev >= -2.0 * g_next and g_prev > -0.5 * g_next and force_positive:
                quadratic = QuadraticMinSection(*args)
            else:
                quadratic = QuadraticSection(*args)

        if self.quadraticity < 1.0:
            four = ConvexMonotone4MinSection if force_positive else ConvexMonotone4Section
            if ((g_prev > 0.0 and -0.5 * g_prev >= g_next >= -2.0 * g_prev) or
                    (g_prev < 0.0 and -0.5 * g_prev <= g_next <= -2.0 * g_prev)):
                quadraticity = 1.0
                if self.quadraticity == 0.0:
                    quadratic = QuadraticMinSection(*args) if force_positive else QuadraticSection(*args)
            elif (g_prev < 0.0 and g_next > -2.0 * g_prev) or (g_prev > 0.0 and g_next < -2.0 * g_prev):
                eta = (g_next + 2.0 * g_prev) / (g_next - g_prev)
                b2 = (1.0 + monotonicity) / 2.0
                if eta < b2:
                    convex = ConvexMonotone2Section(x_prev, x_next, g_prev, g_next, f_average, eta, primitive)
                else:
                    convex = four(x_prev, x_next, g_prev, g_next, f_average, b2, primitive)
            elif ((g_prev > 0.0 and 0.0 > g_next > -0.5 * g_prev) or
                  (g_prev < 0.0 and 0.0 < g_next < -0.5 * g_prev)):
                eta = g_next / (g_next - g_prev) * 3.0
                b3 = (1.0 - monotonicity) / 2.0
                if eta > b3:
                    convex = ConvexMonotone3Section(x_prev, x_next, g_prev, g_next, f_average, eta, primitive)
                else:
                    convex = four(x_prev, x_next, g_prev, g_next, f_average, b3, primitive)
            else:
                eta = g_next / (g_prev + g_next)
                b2 = (1.0 + monotonicity) / 2.0
                b3 = (1.0 - monotonicity) / 2.0
                eta = min(max(eta, b3), b2)
                convex = four(x_prev, x_next, g_prev, g_next, f_average, eta, primitive)

        if quadraticity == 1.0:
            return quadratic
        if quadraticity == 0.0:
            return convex
        return ComboSection(quadratic, convex, quadraticity)

    def _set_sections(self, sections: List[Section], extrapolation) -> None:
        self._sections = sections
        self._keys = [float(k) for k, _ in sections]
        self._extrapolation = extrapolation

    def _find(self, t: float):
        idx = bisect.bisect_right(self._keys, t)
        return self._sections[min(idx, len(self._sections) - 1)][1]

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        if t >= self.times[-1]:
            return float(self._extrapolation.value(t))
        return float(self._find(t).value(t))

    def primitive(self, t: float) -> float:
        self._check_fitted()
        if t >= self.times[-1]:
            return float(self._extrapolation.primitive(t))
        return float(self._find(t).primitive(t))

    def derivative(self, t: float) -> float:
        raise NotImplementedError("Convex-monotone spline derivative not implemented")


__all__ = [
    "ConvexMonotoneInterpolator",
]
