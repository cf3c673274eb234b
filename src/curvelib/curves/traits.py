"""
Bootstrap traits - which quantity a piecewise curve interpolates.

Provides:
- BootstrapTrait: Common interface
- Discount: Interpolates discount factors
- ZeroYield: Interpolates continuously compounded zero rates
- ForwardRate: Interpolates instantaneous forward rates

A trait supplies the seed values and solver bounds for each node, and
turns the interpolated quantity back into discount factors and
forward rates.
"""

import math
from abc import ABC, abstractmethod
from typing import FrozenSet, List, Sequence

from ..errors import CurveConfigurationError
from .interpolation import Interpolator

# floor used for rates when the interpolator cannot represent negatives
POSITIVE_RATE_FLOOR = 1.0e-10


class BootstrapTrait(ABC):
    """
    Strategy defining the interpolated quantity of a piecewise curve.

    Attributes:
        name: Trait name
        max_rate: Largest absolute rate used to bound node values
        avg_rate: Rate used for first guesses
        max_iterations: Cap on global bootstrap passes
        supported_interpolators: Names of interpolators this trait accepts
    """

    name = "abstract"
    max_rate = 1.0
    avg_rate = 0.05
    max_iterations = 100
    supported_interpolators: FrozenSet[str] = frozenset()

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def check_interpolator(self, interpolator: Interpolator) -> None:
        """
        Raises:
            CurveConfigurationError: If the interpolator is not supported
        """
        if interpolator.name not in self.supported_interpolators:
            raise CurveConfigurationError(
                f"{type(interpolator).__name__} cannot be used with the {self.name} trait; "
                f"supported: {sorted(self.supported_interpolators)}"
            )

    @staticmethod
    def allows_negative_rates(interpolator: Interpolator) -> bool:
        return not interpolator.positive_only

    @abstractmethod
    def initial_value(self) -> float:
        """Value at the reference date before anything is solved."""

    @abstractmethod
    def initial_guess(self, t1: float) -> float:
        """Starting point for the first pillar at time t1."""

    @abstractmethod
    def guess(self, i: int, data: Sequence[float], times: Sequence[float], valid_data: bool) -> float:
        """Starting point for pillar i."""

    @abstractmethod
    def min_value_after(self, i: int, data: Sequence[float], times: Sequence[float],
                        interpolator: Interpolator) -> float:
        """Lower bound for the value at pillar i."""

    @abstractmethod
    def max_value_after(self, i: int, data: Sequence[float], times: Sequence[float],
                        interpolator: Interpolator) -> float:
        """Upper bound for the value at pillar i."""

    def update_guess(self, data: List[float], value: float, i: int) -> None:
        """Store a trial value for pillar i."""
        data[i] = value

    @abstractmethod
    def discount_impl(self, interpolator: Interpolator, t: float) -> float:
        """Discount factor at t from the fitted interpolator."""

    @abstractmethod
    def zero_yield_impl(self, interpolator: Interpolator, t: float) -> float:
        """Continuously compounded zero rate at t (t > 0)."""

    @abstractmethod
    def forward_impl(self, interpolator: Interpolator, t: float) -> float:
        """Instantaneous forward rate at t."""


class Discount(BootstrapTrait):
    """Interpolates discount factors."""

    name = "discount"
    max_rate = 1.0
    max_iterations = 100
    supported_interpolators = frozenset({"log_linear", "log_cubic", "linear"})

    def initial_value(self) -> float:
        return 1.0

    def initial_guess(self, t1: float) -> float:
        return 1.0 / (1.0 + self.avg_rate * t1)

    def guess(self, i, data, times, valid_data) -> float:
        if valid_data:
            return data[i]
        if i == 1:
            return self.initial_guess(times[1])
        # flat rate extrapolation
        r = -math.log(data[i - 1]) / times[i - 1]
        return math.exp(-r * times[i])

    def min_value_after(self, i, data, times, interpolator) -> float:
        dt = times[i] - times[i - 1]
        return data[i - 1] * math.exp(-self.max_rate * dt)

    def max_value_after(self, i, data, times, interpolator) -> float:
        if self.allows_negative_rates(interpolator):
            dt = times[i] - times[i - 1]
            return data[i - 1] * math.exp(self.max_rate * dt)
        return data[i - 1]

    def discount_impl(self, interpolator, t) -> float:
        return interpolator(t)

    def zero_yield_impl(self, interpolator, t) -> float:
        return -math.log(interpolator(t)) / t

    def forward_impl(self, interpolator, t) -> float:
        if interpolator.name == "log_cubic":
            return -interpolator.log_derivative(t)
        return -interpolator.derivative(t) / interpolator(t)


class _RateTrait(BootstrapTrait):
    """Shared guesses and bounds for traits interpolating rates."""

    max_rate = 3.0
    max_iterations = 30

    def initial_value(self) -> float:
        # dummy value at the reference date, overwritten with the first pillar's
        return self.avg_rate

    def initial_guess(self, t1: float) -> float:
        return self.avg_rate

    def guess(self, i, data, times, valid_data) -> float:
        if valid_data:
            return data[i]
        if i == 1:
            return self.avg_rate
        return data[i - 1]

    def min_value_after(self, i, data, times, interpolator) -> float:
        if self.allows_negative_rates(interpolator):
            return -self.max_rate
        return POSITIVE_RATE_FLOOR

    def max_value_after(self, i, data, times, interpolator) -> float:
        return self.max_rate

    def update_guess(self, data: List[float], value: float, i: int) -> None:
        data[i] = value
        if i == 1:
            # no information before the first pillar: extend it flat
            data[0] = value


class ZeroYield(_RateTrait):
    """Interpolates continuously compounded zero rates."""

    name = "zero_yield"
    supported_interpolators = frozenset({"linear", "cubic", "log_linear"})

    def discount_impl(self, interpolator, t) -> float:
        if t == 0.0:
            return 1.0
        return math.exp(-interpolator(t) * t)

    def zero_yield_impl(self, interpolator, t) -> float:
        return interpolator(t)

    def forward_impl(self, interpolator, t) -> float:
        return interpolator(t) + t * interpolator.derivative(t)


class ForwardRate(_RateTrait):
    """Interpolates instantaneous forward rates."""

    name = "forward_rate"
    supported_interpolators = frozenset({"linear", "backward_flat", "cubic", "convex_monotone"})

    def discount_impl(self, interpolator, t) -> float:
        if t == 0.0:
            return 1.0
        return math.exp(-interpolator.primitive(t))

    def zero_yield_impl(self, interpolator, t) -> float:
        return interpolator.primitive(t) / t

    def forward_impl(self, interpolator, t) -> float:
        return interpolator(t)


def create_trait(name: str) -> BootstrapTrait:
    """
    Factory function to create a trait by name.

    Args:
        name: One of "discount", "zero_yield", "forward_rate"

    Returns:
        BootstrapTrait instance
    """
    key = name.lower().replace("-", "_").replace(" ", "_")
    if key in ("discount", "df"):
        return Discount()
    elif key in ("zero_yield", "zero", "zeroyield"):
        return ZeroYield()
    elif key in ("forward_rate", "forward", "forwardrate"):
        return ForwardRate()
    raise ValueError(f"Unknown bootstrap trait: {name}")


__all__ = [
    "BootstrapTrait",
    "Discount",
    "ZeroYield",
    "ForwardRate",
    "create_trait",
    "POSITIVE_RATE_FLOOR",
]
