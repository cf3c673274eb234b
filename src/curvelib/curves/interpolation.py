"""
Interpolation methods for yield curves.

Provides:
- LinearInterpolator: Linear interpolation
- LogLinearInterpolator: Linear in log(value), for discount factors
- CubicSplineInterpolator: Natural cubic spline, optionally Hyman filtered
- LogCubicInterpolator: Cubic spline on log(value), monotonic by default
- BackwardFlatInterpolator: Piecewise constant, each section takes its right node value

The bootstrap refits an interpolator every time a node value changes, so
``fit`` works on arrays of at least ``required_points`` nodes and
``is_global`` tells whether a change in one node can move the curve in
distant sections (in which case the bootstrap has to iterate).

Outside the node range the first and last sections are extended.
"""

import copy
import math
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Optional

import numpy as np


class Interpolator(ABC):
    """Abstract base class for curve interpolation."""

    name = "abstract"
    is_global = False
    required_points = 2
    positive_only = False

    def __init__(self):
        self.times: Optional[np.ndarray] = None
        self.values: Optional[np.ndarray] = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def _set_data(self, times, values) -> None:
        times = np.asarray(times, dtype=np.float64)
        values = np.asarray(values, dtype=np.float64)
        if times.shape != values.shape:
            raise ValueError("Times and values must have same length")
        if len(times) < self.required_points:
            raise ValueError(
                f"{type(self).__name__} needs at least {self.required_points} points, got {len(times)}"
            )
        if np.any(np.diff(times) <= 0):
            raise ValueError("Times must be strictly increasing")
        self.times = times.copy()
        self.values = values.copy()

    def _check_fitted(self) -> None:
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")

    def _locate(self, t: float) -> int:
        """Index i of the section [times[i], times[i+1]] used for t."""
        idx = int(np.searchsorted(self.times, t, side='right')) - 1
        return max(0, min(idx, len(self.times) - 2))

    def copy(self) -> "Interpolator":
        """Independent copy including the fitted data."""
        return copy.deepcopy(self)

    @abstractmethod
    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit the interpolator to data points.

        Args:
            times: Array of year fractions (strictly increasing)
            values: Array of node values
        """
        pass

    @abstractmethod
    def interpolate(self, t: float) -> float:
        """
        Interpolate at a single point.

        Args:
            t: Year fraction

        Returns:
            Interpolated value
        """
        pass

    def __call__(self, t: float) -> float:
        """Convenience method to call interpolate."""
        return self.interpolate(t)

    @abstractmethod
    def derivative(self, t: float) -> float:
        """Return the first derivative at point t."""
        pass

    @abstractmethod
    def primitive(self, t: float) -> float:
        """Return the integral of the interpolant from times[0] to t."""
        pass


class LinearInterpolator(Interpolator):
    """Linear interpolation between knot points."""

    name = "linear"

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        self._set_data(times, values)
        dx = np.diff(self.times)
        self.slopes = np.diff(self.values) / dx
        areas = self.values[:-1] * dx + 0.5 * self.slopes * dx ** 2
        self.primitive_nodes = np.concatenate(([0.0], np.cumsum(areas)))

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        i = self._locate(t)
        return float(self.values[i] + self.slopes[i] * (t - self.times[i]))

    def derivative(self, t: float) -> float:
        self._check_fitted()
        return float(self.slopes[self._locate(t)])

    def primitive(self, t: float) -> float:
        self._check_fitted()
        i = self._locate(t)
        dx = t - self.times[i]
        return float(self.primitive_nodes[i] + self.values[i] * dx + 0.5 * self.slopes[i] * dx ** 2)


class LogLinearInterpolator(Interpolator):
    """
    Log-linear interpolation.

    Interpolates linearly in log(value) space and returns the value
    itself. On discount factors this gives piecewise constant forward
    rates.
    """

    name = "log_linear"
    positive_only = True

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        self._set_data(times, values)
        if np.any(self.values <= 0):
            raise ValueError("Log-linear interpolation requires positive values")
        self.log_values = np.log(self.values)
        self.slopes = np.diff(self.log_values) / np.diff(self.times)
        dx = np.diff(self.times)
        areas = np.array([
            _exp_section_integral(v, s, h)
            for v, s, h in zip(self.values[:-1], self.slopes, dx)
        ])
        self.primitive_nodes = np.concatenate(([0.0], np.cumsum(areas)))

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        i = self._locate(t)
        return float(np.exp(self.log_values[i] + self.slopes[i] * (t - self.times[i])))

    def derivative(self, t: float) -> float:
        self._check_fitted()
        i = self._locate(t)
        return float(self.slopes[i] * self.interpolate(t))

    def primitive(self, t: float) -> float:
        self._check_fitted()
        i = self._locate(t)
        return float(self.primitive_nodes[i]
                     + _exp_section_integral(self.values[i], self.slopes[i], t - self.times[i]))


def _exp_section_integral(v0: float, slope: float, dx: float) -> float:
    """Integral of v0 * exp(slope * u) for u in [0, dx]."""
    if abs(slope * dx) < 1e-12:
        return v0 * dx
    return v0 * np.expm1(slope * dx) / slope


class CubicSplineInterpolator(Interpolator):
    """
    Cubic spline interpolation.

    Uses natural cubic splines (second derivative = 0 at boundaries).
    Every node influences every section, so the spline is global.

    With ``monotonic=True`` the node derivatives go through Hyman's
    filter before the sections are built: wherever the data are locally
    monotone the interpolant is too, at the price of a discontinuous
    second derivative at the adjusted nodes.
    """

    name = "cubic"
    is_global = True

    def __init__(self, monotonic: bool = False):
        super().__init__()
        self.monotonic = monotonic

    def __repr__(self) -> str:
        return f"{type(self).__name__}(monotonic={self.monotonic})"

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit natural cubic spline.

        Solves tridiagonal system for second derivatives,
        then computes polynomial coefficients for each interval.
        """
        self._set_data(times, values)
        coefficients = _natural_spline_coefficients(self.times, self.values)
        if self.monotonic and len(self.times) > 2:
            h = np.diff(self.times)
            slopes = np.append(coefficients[:, 1], _section_derivative(coefficients[-1], h[-1]))
            filtered = _hyman_filter(slopes, np.diff(self.values) / h, h)
            self.adjusted = filtered != slopes
            coefficients = _hermite_coefficients(self.times, self.values, filtered)
        else:
            self.adjusted = np.zeros(len(self.times), dtype=bool)
        self.coefficients = coefficients
        h = np.diff(self.times)
        a, b, c, d = self.coefficients.T
        areas = a * h + b * h ** 2 / 2 + c * h ** 3 / 3 + d * h ** 4 / 4
        self.primitive_nodes = np.concatenate(([0.0], np.cumsum(areas)))

    def interpolate(self, t: float) -> float:
        """Evaluate cubic spline at point t."""
        self._check_fitted()
        i = self._locate(t)
        dx = t - self.times[i]
        a, b, c, d = self.coefficients[i]
        return float(a + b*dx + c*dx**2 + d*dx**3)

    def derivative(self, t: float) -> float:
        """First derivative of cubic spline at point t."""
        self._check_fitted()
        i = self._locate(t)
        dx = t - self.times[i]
        _, b, c, d = self.coefficients[i]
        return float(b + 2*c*dx + 3*d*dx**2)

    def second_derivative(self, t: float) -> float:
        """Second derivative of cubic spline at point t."""
        self._check_fitted()
        i = self._locate(t)
        dx = t - self.times[i]
        _, _, c, d = self.coefficients[i]
        return float(2*c + 6*d*dx)

    def primitive(self, t: float) -> float:
        self._check_fitted()
        i = self._locate(t)
        dx = t - self.times[i]
        a, b, c, d = self.coefficients[i]
        return float(self.primitive_nodes[i] + a*dx + b*dx**2/2 + c*dx**3/3 + d*dx**4/4)


class LogCubicInterpolator(Interpolator):
    """
    Cubic spline on log(value).

    Returns the value itself; suited to discount factors. The spline on
    log(value) is monotonic (Hyman filtered) by default, so positive
    rates give non-increasing discount factors between the nodes.
    Primitives use Gauss-Legendre quadrature on each section.
    """

    name = "log_cubic"
    is_global = True
    positive_only = True
    quadrature_points = 16

    def __init__(self, monotonic: bool = True):
        super().__init__()
        self.monotonic = monotonic

    def __repr__(self) -> str:
        return f"{type(self).__name__}(monotonic={self.monotonic})"

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        self._set_data(times, values)
        if np.any(self.values <= 0):
            raise ValueError("Log-cubic interpolation requires positive values")
        self._log_spline = CubicSplineInterpolator(monotonic=self.monotonic)
        self._log_spline.fit(self.times, np.log(self.values))
        # section integrals are only needed by primitive(); built on first use
        self._primitive_nodes = None

    def _section_integral(self, i: int, t: float) -> float:
        """Integral of the interpolant from times[i] to t along section i."""
        nodes, weights = _gauss_legendre(self.quadrature_points)
        half = 0.5 * (t - self.times[i])
        a, b, c, d = self._log_spline.coefficients[i]
        dx = half * (nodes + 1.0)
        return float(half * np.sum(weights * np.exp(a + b*dx + c*dx**2 + d*dx**3)))

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        return float(np.exp(self._log_spline.interpolate(t)))

    def derivative(self, t: float) -> float:
        return float(self._log_spline.derivative(t) * self.interpolate(t))

    def log_derivative(self, t: float) -> float:
        """Derivative of log(value) at t."""
        self._check_fitted()
        return self._log_spline.derivative(t)

    def primitive(self, t: float) -> float:
        self._check_fitted()
        if self._primitive_nodes is None:
            areas = [self._section_integral(i, self.times[i + 1]) for i in range(len(self.times) - 1)]
            self._primitive_nodes = np.concatenate(([0.0], np.cumsum(areas)))
        i = self._locate(t)
        return float(self._primitive_nodes[i] + self._section_integral(i, t))



class BackwardFlatInterpolator(Interpolator):
    """
    Backward-flat interpolation.

    On (times[i-1], times[i]] the interpolant equals values[i]; the first
    node's value is only used at times[0] itself.
    """

    name = "backward_flat"

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        self._set_data(times, values)
        areas = self.values[1:] * np.diff(self.times)
        self.primitive_nodes = np.concatenate(([0.0], np.cumsum(areas)))

    def _section(self, t: float) -> int:
        # index of the node whose value applies at t
        if t <= self.times[0]:
            return 0
        idx = int(np.searchsorted(self.times, t, side='left'))
        return min(idx, len(self.times) - 1)

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        return float(self.values[self._section(t)])

    def derivative(self, t: float) -> float:
        self._check_fitted()
        return 0.0

    def primitive(self, t: float) -> float:
        self._check_fitted()
        if t <= self.times[0]:
            return float(self.values[1] * (t - self.times[0]))
        i = self._section(t)
        return float(self.primitive_nodes[i - 1] + self.values[i] * (t - self.times[i - 1]))


def _natural_spline_coefficients(times: np.ndarray, values: np.ndarray) -> np.ndarray:
    """
    Coefficients [a, b, c, d] per section of a natural cubic spline.

    S_i(x) = a_i + b_i*(x-x_i) + c_i*(x-x_i)^2 + d_i*(x-x_i)^3
    """
    n = len(times)
    h = np.diff(times)

    if n == 2:
        # Degenerate to linear
        slope = (values[1] - values[0]) / h[0]
        return np.array([[values[0], slope, 0.0, 0.0]])

    # Natural spline: M[0] = M[n-1] = 0
    A = np.zeros((n, n))
    rhs = np.zeros(n)
    A[0, 0] = 1.0
    A[n-1, n-1] = 1.0
    for i in range(1, n-1):
        A[i, i-1] = h[i-1]
        A[i, i] = 2 * (h[i-1] + h[i])
        A[i, i+1] = h[i]
        rhs[i] = 6 * ((values[i+1] - values[i]) / h[i] - (values[i] - values[i-1]) / h[i-1])

    M = np.linalg.solve(A, rhs)

    coefficients = np.zeros((n-1, 4))
    for i in range(n-1):
        coefficients[i, 0] = values[i]
        coefficients[i, 1] = (values[i+1] - values[i]) / h[i] - h[i] * (M[i+1] + 2*M[i]) / 6
        coefficients[i, 2] = M[i] / 2
        coefficients[i, 3] = (M[i+1] - M[i]) / (6 * h[i])
    return coefficients


def _section_derivative(coefficients: np.ndarray, dx: float) -> float:
    """First derivative of one cubic section at distance dx from its left node."""
    _, b, c, d = coefficients
    return float(b + 2*c*dx + 3*d*dx**2)


def _hyman_filter(slopes: np.ndarray, secants: np.ndarray, h: np.ndarray) -> np.ndarray:
    """
    Hyman's monotonicity filter on node derivatives.

    Node derivatives are clipped to three times the neighbouring secant
    slopes (more where the data are convex or concave across three
    sections) and zeroed where they disagree in sign with the data.

    Reference: Dougherty, Edelman and Hyman, "Nonnegativity-,
    Monotonicity-, or Convexity-Preserving Cubic and Quintic Hermite
    Interpolation", Math. Comp. 52 (1989).

    Args:
        slopes: Derivative at each of the n nodes
        secants: Slope of each of the n - 1 sections
        h: Width of each section

    Returns:
        Filtered derivatives
    """
    n = len(slopes)
    S = secants
    filtered = np.array(slopes, dtype=np.float64)

    def clip(value: float, direction: float, limit: float) -> float:
        if value * direction > 0.0:
            return math.copysign(min(abs(value), limit), value)
        return 0.0

    filtered[0] = clip(filtered[0], S[0], abs(3.0 * S[0]))
    filtered[n - 1] = clip(filtered[n - 1], S[n - 2], abs(3.0 * S[n - 2]))

    for i in range(1, n - 1):
        pm = (S[i - 1] * h[i] + S[i] * h[i - 1]) / (h[i - 1] + h[i])
        M = 3.0 * min(abs(S[i - 1]), abs(S[i]), abs(pm))
        if i > 1 and (S[i - 1] - S[i - 2]) * (S[i] - S[i - 1]) > 0.0:
            pd = (S[i - 1] * (2.0 * h[i - 1] + h[i - 2]) - S[i - 2] * h[i - 1]) / (h[i - 2] + h[i - 1])
            if pm * pd > 0.0 and pm * (S[i - 1] - S[i - 2]) > 0.0:
                M = max(M, 1.5 * min(abs(pm), abs(pd)))
        if i < n - 2 and (S[i] - S[i - 1]) * (S[i + 1] - S[i]) > 0.0:
            pu = (S[i] * (2.0 * h[i] + h[i + 1]) - S[i + 1] * h[i]) / (h[i] + h[i + 1])
            if pm * pu > 0.0 and -pm * (S[i] - S[i - 1]) > 0.0:
                M = max(M, 1.5 * min(abs(pm), abs(pu)))
        filtered[i] = clip(filtered[i], pm, M)

    return filtered


def _hermite_coefficients(times: np.ndarray, values: np.ndarray, slopes: np.ndarray) -> np.ndarray:
    """
    Coefficients [a, b, c, d] per section of the cubic Hermite interpolant
    matching the given values and node derivatives.
    """
    h = np.diff(times)
    S = np.diff(values) / h
    coefficients = np.zeros((len(times) - 1, 4))
    coefficients[:, 0] = values[:-1]
    coefficients[:, 1] = slopes[:-1]
    coefficients[:, 2] = (3.0 * S - slopes[1:] - 2.0 * slopes[:-1]) / h
    coefficients[:, 3] = (slopes[1:] + slopes[:-1] - 2.0 * S) / h ** 2
    return coefficients


@lru_cache(maxsize=None)
def _gauss_legendre(points: int):
    """Gauss-Legendre nodes and weights on [-1, 1]."""
    return np.polynomial.legendre.leggauss(points)


def create_interpolator(method: str, **kwargs) -> Interpolator:
    """
    Factory function to create an interpolator by name.

    Args:
        method: One of "linear", "log_linear", "cubic", "log_cubic",
            "backward_flat", "convex_monotone"
        **kwargs: Passed to the interpolator's constructor

    Returns:
        Interpolator instance
    """
    method = method.lower().replace("-", "_").replace(" ", "_")

    if method in ("linear", "lin"):
        return LinearInterpolator(**kwargs)
    elif method in ("log_linear", "loglinear"):
        return LogLinearInterpolator(**kwargs)
    elif method in ("cubic_spline", "cubic", "spline"):
        return CubicSplineInterpolator(**kwargs)
    elif method in ("log_cubic", "logcubic"):
        return LogCubicInterpolator(**kwargs)
    elif method in ("backward_flat", "backwardflat"):
        return BackwardFlatInterpolator(**kwargs)
    elif method in ("convex_monotone", "convexmonotone"):
        from .convex_monotone import ConvexMonotoneInterpolator
        return ConvexMonotoneInterpolator(**kwargs)
    else:
        raise ValueError(f"Unknown interpolation method: {method}")


__all__ = [
    "Interpolator",
    "LinearInterpolator",
    "LogLinearInterpolator",
    "CubicSplineInterpolator",
    "LogCubicInterpolator",
    "BackwardFlatInterpolator",
    "create_interpolator",
]
