"""
Yield term structures.

The curve classes provide:
- Discount factor P(t)
- Zero rate z(t) as an InterestRate in any day count and compounding
- Forward rate f(t1, t2)
- Instantaneous forward rate f(t)

Provides:
- YieldTermStructure: Lazy base class with range checks, jumps and a
  fixed or moving reference date
- InterpolatedCurve: Curve defined by interpolated node values
- FlatForward: Constant-rate curve driven by a quote
- CurveNode: A single resolved node

Times are year fractions from the reference date in the curve's day
count. Beyond the last node curves continue with a flat instantaneous
forward.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence, Union
import math

import numpy as np
import pandas as pd

from ..conventions import CompoundingConvention, DayCount, InterestRate, year_fraction
from ..dates import Calendar
from ..errors import CurveConfigurationError, ExtrapolationError
from ..handles import Handle, quote_handle
from ..patterns import LazyObject
from ..quotes import Quote
from ..settings import Settings
from .interpolation import Interpolator
from .traits import BootstrapTrait

DateOrTime = Union[date, float]

# time step used for rates at a single point
_DT = 1.0e-4
# tolerance on the last node when checking the curve range
_TIME_TOLERANCE = 1.0e-12


@dataclass
class CurveNode:
    """A single resolved point on the curve."""
    date: date
    time: float  # Year fraction from reference date
    value: float  # Interpolated quantity (discount, zero or forward)
    discount_factor: float
    zero_rate: float  # Continuously compounded


class YieldTermStructure(LazyObject):
    """
    Base class of yield curves.

    The reference date is either fixed, or moves with the global
    evaluation date (advanced by ``settlement_days`` on ``calendar``).

    Attributes:
        day_count: Day count used to turn dates into times
        calendar: Calendar used for the moving reference date
        settlement_days: Business days from evaluation to reference date

    Subclasses implement ``discount_impl(t)`` and ``max_date()``.
    """

    def __init__(
        self,
        reference_date: Optional[date] = None,
        day_count: DayCount = DayCount.ACT_365,
        settlement_days: Optional[int] = None,
        calendar: Optional[Calendar] = None,
        jumps: Sequence[Union[Handle, Quote, float]] = (),
        jump_dates: Sequence[date] = ()
    ):
        super().__init__()
        if reference_date is not None and settlement_days is not None:
            raise CurveConfigurationError("give either a reference date or settlement days, not both")

        self.day_count = day_count
        self.calendar = calendar or Calendar()
        self.settlement_days = settlement_days
        self._fixed_reference = reference_date
        self._moving = reference_date is None
        self._reference_cache: Optional[date] = None
        self._extrapolate = False

        if self._moving:
            if self.settlement_days is None:
                self.settlement_days = 0
            self.register_with(Settings.instance())

        if jump_dates and len(jump_dates) != len(jumps):
            raise CurveConfigurationError(
                f"mismatch between number of jumps ({len(jumps)}) and jump dates ({len(jump_dates)})"
            )
        self._jumps: List[Handle] = [quote_handle(j) for j in jumps]
        self._jump_dates: List[date] = list(jump_dates)
        for jump in self._jumps:
            self.register_with(jump)

    def update(self) -> None:
        if self._moving:
            self._reference_cache = None
        super().update()

    @property
    def reference_date(self) -> date:
        """Date at which discount factors equal one."""
        if not self._moving:
            return self._fixed_reference
        if self._reference_cache is None:
            today = Settings.instance().evaluation_date
            self._reference_cache = self.calendar.advance(today, self.settlement_days, 'D')
        return self._reference_cache

    @property
    def moving(self) -> bool:
        """Whether the reference date follows the evaluation date."""
        return self._moving

    def time_from_reference(self, d: date) -> float:
        """Year fraction from the reference date to d in the curve's day count."""
        return year_fraction(self.reference_date, d, self.day_count)

    def max_date(self) -> date:
        raise NotImplementedError

    def max_time(self) -> float:
        return self.time_from_reference(self.max_date())

    # Extrapolation

    def enable_extrapolation(self) -> None:
        self._extrapolate = True

    def disable_extrapolation(self) -> None:
        self._extrapolate = False

    @property
    def allows_extrapolation(self) -> bool:
        return self._extrapolate

    def _to_time(self, x: DateOrTime) -> float:
        if isinstance(x, date):
            return self.time_from_reference(x)
        return float(x)

    def _check_range(self, t: float, extrapolate: bool, requested: DateOrTime) -> None:
        if t < 0.0:
            raise ExtrapolationError(
                f"{requested} is before the reference date {self.reference_date}",
                requested=requested, max_date=None
            )
        if extrapolate or self._extrapolate:
            return
        if t - self.max_time() > _TIME_TOLERANCE:
            max_date = self.max_date()
            raise ExtrapolationError(
                f"{requested} is past the max curve date {max_date}",
                requested=requested, max_date=max_date
            )

    # Jumps

    @property
    def jumps(self) -> List[Handle]:
        return list(self._jumps)

    def jump_dates(self) -> List[date]:
        """Jump dates; by default December 31 of successive years from the reference year."""
        if self._jump_dates:
            return list(self._jump_dates)
        year = self.reference_date.year
        return [date(year + i, 12, 31) for i in range(len(self._jumps))]

    def jump_times(self) -> List[float]:
        return [self.time_from_reference(d) for d in self.jump_dates()]

    def _jump_effect(self, t: float) -> float:
        effect = 1.0
        for jump_time, jump in zip(self.jump_times(), self._jumps):
            if 0.0 < jump_time < t:
                value = jump.current_link().value()
                if not 0.0 < value <= 1.0:
                    raise CurveConfigurationError(f"invalid jump value {value} at time {jump_time}")
                effect *= value
        return effect

    # Curve interface

    def discount_impl(self, t: float) -> float:
        raise NotImplementedError

    def forward_impl(self, t: float) -> float:
        """Instantaneous forward from the log-discount slope."""
        t1 = max(t - _DT / 2.0, 0.0)
        t2 = t1 + _DT
        return math.log(self.discount_impl(t1) / self.discount_impl(t2)) / _DT

    def discount(self, x: DateOrTime, extrapolate: bool = False) -> float:
        """
        Discount factor at a date or time.

        Args:
            x: Date, or time in years from the reference date
            extrapolate: Allow times past the last node for this call

        Returns:
            Discount factor

        Raises:
            ExtrapolationError: If x is before the reference date, or past
                the last node while extrapolation is disabled
        """
        t = self._to_time(x)
        self._check_range(t, extrapolate, x)
        if not self._jumps:
            return self.discount_impl(t)
        return self.discount_impl(t) * self._jump_effect(t)

    def zero_rate(
        self,
        x: DateOrTime,
        day_count: Optional[DayCount] = None,
        compounding: CompoundingConvention = CompoundingConvention.CONTINUOUS,
        extrapolate: bool = False
    ) -> InterestRate:
        """
        Zero rate to a date or time.

        Args:
            x: Date, or time in years
            day_count: Day count of the result (default: the curve's)
            compounding: Compounding of the result
            extrapolate: Allow times past the last node

        Returns:
            InterestRate
        """
        dc = day_count or self.day_count
        if isinstance(x, date):
            if x == self.reference_date:
                compound = 1.0 / self.discount(_DT, extrapolate)
                return InterestRate.implied_rate(compound, dc, compounding, _DT)
            compound = 1.0 / self.discount(x, extrapolate)
            return InterestRate.implied_rate_between(compound, dc, compounding, self.reference_date, x)

        t = float(x)
        if t == 0.0:
            t = _DT
        compound = 1.0 / self.discount(t, extrapolate)
        return InterestRate.implied_rate(compound, dc, compounding, t)

    def forward_rate(
        self,
        start: DateOrTime,
        end: DateOrTime,
        day_count: Optional[DayCount] = None,
        compounding: CompoundingConvention = CompoundingConvention.SIMPLE,
        extrapolate: bool = False
    ) -> InterestRate:
        """
        Forward rate between two dates or times.

        With dates the rate accrues over ``day_count(start, end)``; with
        times it accrues over ``end - start``. Equal endpoints give the
        rate over a short period starting there.

        Args:
            start: Start date or time
            end: End date or time
            day_count: Day count of the result (default: the curve's)
            compounding: Compounding of the result
            extrapolate: Allow times past the last node

        Returns:
            InterestRate
        """
        dc = day_count or self.day_count
        if isinstance(start, date) and isinstance(end, date):
            if end < start:
                raise ValueError(f"forward start {start} is after end {end}")
            if start == end:
                t1 = self.time_from_reference(start)
                compound = self.discount(t1, extrapolate) / self.discount(t1 + _DT, True)
                return InterestRate.implied_rate(compound, dc, compounding, _DT)
            compound = self.discount(start, extrapolate) / self.discount(end, extrapolate)
            return InterestRate.implied_rate_between(compound, dc, compounding, start, end)

        t1, t2 = self._to_time(start), self._to_time(end)
        if t2 < t1:
            raise ValueError(f"forward start {t1} is after end {t2}")
        if t2 == t1:
            t2 = t1 + _DT
            compound = self.discount(t1, extrapolate) / self.discount(t2, True)
        else:
            compound = self.discount(t1, extrapolate) / self.discount(t2, extrapolate)
        return InterestRate.implied_rate(compound, dc, compounding, t2 - t1)

    def instantaneous_forward(self, x: DateOrTime, extrapolate: bool = False) -> float:
        """Continuously compounded instantaneous forward rate at a date or time."""
        t = self._to_time(x)
        self._check_range(t, extrapolate, x)
        return self.forward_impl(t)


class InterpolatedCurve(YieldTermStructure):
    """
    Curve defined by a trait and an interpolator over resolved nodes.

    The trait decides which quantity the nodes hold (discount factors,
    zero rates or instantaneous forwards); the interpolator fills in
    between nodes. Node values are given directly or computed by a
    subclass in ``perform_calculations()``.

    Attributes:
        trait: Interpolated quantity
        interpolator: Interpolation method
    """

    def __init__(
        self,
        trait: BootstrapTrait,
        interpolator: Interpolator,
        reference_date: Optional[date] = None,
        day_count: DayCount = DayCount.ACT_365,
        settlement_days: Optional[int] = None,
        calendar: Optional[Calendar] = None,
        jumps: Sequence[Union[Handle, Quote, float]] = (),
        jump_dates: Sequence[date] = (),
        dates: Optional[Sequence[date]] = None,
        data: Optional[Sequence[float]] = None
    ):
        super().__init__(reference_date, day_count, settlement_days, calendar, jumps, jump_dates)
        trait.check_interpolator(interpolator)
        self.trait = trait
        self._interpolator = interpolator
        self._dates: List[date] = []
        self._times: List[float] = []
        self._data: List[float] = []
        self._active = 0

        if dates is not None or data is not None:
            if dates is None or data is None or len(dates) != len(data):
                raise CurveConfigurationError("dates and data must be given together with equal lengths")
            if dates[0] != self.reference_date:
                raise CurveConfigurationError(
                    f"first node {dates[0]} must be the reference date {self.reference_date}"
                )
            self._set_nodes(list(dates), list(data))
            self._refit(len(dates))

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(reference={self.reference_date}, trait={self.trait.name}, "
                f"interpolator={self._interpolator.name}, nodes={len(self._dates)})")

    @property
    def interpolator(self) -> Interpolator:
        return self._interpolator

    def _set_nodes(self, dates: List[date], data: List[float]) -> None:
        self._dates = dates
        self._times = [self.time_from_reference(d) for d in dates]
        self._data = data

    def _refit(self, size: Optional[int] = None) -> None:
        """Fit the interpolator to the first ``size`` nodes (default: as before)."""
        if size is not None:
            self._active = size
        self._interpolator.fit(
            np.asarray(self._times[:self._active]), np.asarray(self._data[:self._active])
        )

    def perform_calculations(self) -> None:
        pass

    def max_date(self) -> date:
        self.calculate()
        if not self._dates:
            raise CurveConfigurationError("curve has no nodes")
        return self._dates[-1]

    def times(self) -> List[float]:
        self.calculate()
        return list(self._times)

    def dates(self) -> List[date]:
        self.calculate()
        return list(self._dates)

    def data(self) -> List[float]:
        self.calculate()
        return list(self._data)

    def nodes(self) -> List[CurveNode]:
        """Resolved nodes with their discount factors and zero rates."""
        self.calculate()
        result = []
        for d, t, value in zip(self._dates, self._times, self._data):
            df = self.discount(t)
            zero = -math.log(df) / t if t > 0.0 else float(self.zero_rate(0.0))
            result.append(CurveNode(date=d, time=t, value=value, discount_factor=df, zero_rate=zero))
        return result

    def to_frame(self) -> pd.DataFrame:
        """Nodes as a DataFrame with date, time, value, discount and zero_rate columns."""
        return pd.DataFrame([
            {
                "date": node.date,
                "time": node.time,
                "value": node.value,
                "discount": node.discount_factor,
                "zero_rate": node.zero_rate,
            }
            for node in self.nodes()
        ])

    def discount_impl(self, t: float) -> float:
        self.calculate()
        t_last = self._times[self._active - 1]
        if t <= t_last:
            return self.trait.discount_impl(self._interpolator, t)
        df_last = self.trait.discount_impl(self._interpolator, t_last)
        f_last = self.trait.forward_impl(self._interpolator, t_last)
        return df_last * math.exp(-f_last * (t - t_last))

    def forward_impl(self, t: float) -> float:
        self.calculate()
        t_last = self._times[self._active - 1]
        return self.trait.forward_impl(self._interpolator, min(t, t_last))


class FlatForward(YieldTermStructure):
    """
    Curve with a constant forward rate.

    Attributes:
        rate: Handle to the quoted rate
        compounding: Compounding of the quoted rate
    """

    def __init__(
        self,
        reference_date: Optional[date],
        rate: Union[Handle, Quote, float],
        day_count: DayCount = DayCount.ACT_365,
        compounding: CompoundingConvention = CompoundingConvention.CONTINUOUS,
        settlement_days: Optional[int] = None,
        calendar: Optional[Calendar] = None
    ):
        super().__init__(reference_date, day_count, settlement_days, calendar)
        self.rate = quote_handle(rate)
        self.compounding = compounding
        self.register_with(self.rate)

    def __repr__(self) -> str:
        return f"FlatForward(reference={self.reference_date}, rate={self.rate.current_link().value()})"

    def _interest_rate(self) -> InterestRate:
        return InterestRate(self.rate.current_link().value(), self.day_count, self.compounding)

    def max_date(self) -> date:
        return date.max - timedelta(days=1)

    def discount_impl(self, t: float) -> float:
        return self._interest_rate().discount_factor(t)

    def forward_impl(self, t: float) -> float:
        if self.compounding == CompoundingConvention.CONTINUOUS:
            return self.rate.current_link().value()
        return super().forward_impl(t)


def create_flat_curve(
    reference_date: date,
    rate: float,
    day_count: DayCount = DayCount.ACT_365,
    compounding: CompoundingConvention = CompoundingConvention.CONTINUOUS
) -> FlatForward:
    """
    Create a flat yield curve.

    Args:
        reference_date: Date where discount factors equal one
        rate: Flat rate
        day_count: Curve day count
        compounding: Compounding of the rate

    Returns:
        FlatForward curve
    """
    return FlatForward(reference_date, rate, day_count, compounding)


__all__ = [
    "CurveNode",
    "YieldTermStructure",
    "InterpolatedCurve",
    "FlatForward",
    "create_flat_curve",
]
