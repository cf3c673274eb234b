"""
Day count conventions, business day adjustments and interest rate algebra.

Supported Day Counts:
- ACT/360: Actual days / 360 (money markets, Euribor)
- ACT/365: Actual days / 365 (fixed)
- ACT/ACT: Actual days / actual days in year, ISDA split by calendar year
- 30/360: US bond basis
- 30E/360: Eurobond basis (EUR swap fixed legs)

Business Day Conventions:
- Following: Move to next business day
- Modified Following: Move to next business day, unless it falls in next month (then previous)
- Preceding: Move to previous business day
- Modified Preceding: Move to previous business day, unless it falls in previous month (then next)

InterestRate wraps a rate with its day count and compounding so that
rates can be converted to and from compound factors.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional
import calendar
import math


class DayCount(Enum):
    """Day count convention enumeration."""
    ACT_360 = "ACT/360"
    ACT_365 = "ACT/365"
    ACT_ACT = "ACT/ACT"
    THIRTY_360 = "30/360"
    THIRTY_E_360 = "30E/360"

    @classmethod
    def from_string(cls, s: str) -> "DayCount":
        """Parse day count from string representation."""
        mapping = {
            "ACT/360": cls.ACT_360,
            "ACT360": cls.ACT_360,
            "ACT/365": cls.ACT_365,
            "ACT365": cls.ACT_365,
            "ACT/365F": cls.ACT_365,
            "ACT/ACT": cls.ACT_ACT,
            "ACTACT": cls.ACT_ACT,
            "30/360": cls.THIRTY_360,
            "30360": cls.THIRTY_360,
            "30E/360": cls.THIRTY_E_360,
            "30E360": cls.THIRTY_E_360,
        }
        key = s.upper().replace(" ", "")
        if key in mapping:
            return mapping[key]
        raise ValueError(f"Unknown day count convention: {s}")


class BusinessDayConvention(Enum):
    """Business day adjustment convention."""
    MODIFIED_FOLLOWING = "ModifiedFollowing"
    FOLLOWING = "Following"
    PRECEDING = "Preceding"
    MODIFIED_PRECEDING = "ModifiedPreceding"
    UNADJUSTED = "Unadjusted"


class CompoundingConvention(Enum):
    """Interest rate compounding convention."""
    CONTINUOUS = "Continuous"
    ANNUAL = "Annual"
    SEMI_ANNUAL = "SemiAnnual"
    QUARTERLY = "Quarterly"
    MONTHLY = "Monthly"
    SIMPLE = "Simple"

    @property
    def frequency(self) -> Optional[int]:
        """Compounding periods per year, None for simple and continuous."""
        return _COMPOUNDING_FREQUENCY.get(self)


_COMPOUNDING_FREQUENCY = {
    CompoundingConvention.ANNUAL: 1,
    CompoundingConvention.SEMI_ANNUAL: 2,
    CompoundingConvention.QUARTERLY: 4,
    CompoundingConvention.MONTHLY: 12,
}


@dataclass
class Conventions:
    """
    Container for instrument conventions.

    Attributes:
        day_count: Day count convention for accrual
        business_day: Business day adjustment rule
        compounding: Rate compounding convention
        payment_frequency: Number of payments per year (1=annual, 2=semi, 4=quarterly)
        settlement_days: Business days to settle from trade date
        end_of_month: Whether month-end dates roll to month-end
    """
    day_count: DayCount = DayCount.ACT_360
    business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
    compounding: CompoundingConvention = CompoundingConvention.SIMPLE
    payment_frequency: int = 1  # Annual
    settlement_days: int = 2
    end_of_month: bool = False

    @classmethod
    def euribor(cls) -> "Conventions":
        """Euribor money market conventions (deposits, FRAs, float legs)."""
        return cls(
            day_count=DayCount.ACT_360,
            business_day=BusinessDayConvention.MODIFIED_FOLLOWING,
            compounding=CompoundingConvention.SIMPLE,
            payment_frequency=2,
            settlement_days=2,
            end_of_month=True
        )

    @classmethod
    def eur_swap_fixed(cls) -> "Conventions":
        """EUR vanilla swap fixed leg conventions."""
        return cls(
            day_count=DayCount.THIRTY_E_360,
            business_day=BusinessDayConvention.UNADJUSTED,
            compounding=CompoundingConvention.ANNUAL,
            payment_frequency=1,
            settlement_days=2
        )

    @classmethod
    def bond(cls) -> "Conventions":
        """Fixed rate bond conventions."""
        return cls(
            day_count=DayCount.ACT_ACT,
            business_day=BusinessDayConvention.FOLLOWING,
            compounding=CompoundingConvention.SEMI_ANNUAL,
            payment_frequency=2,
            settlement_days=3
        )


def _days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def year_fraction(start: date, end: date, day_count: DayCount) -> float:
    """
    Calculate year fraction between two dates using specified day count convention.

    The result is signed: swapping the dates flips the sign.

    Args:
        start: Start date
        end: End date
        day_count: Day count convention

    Returns:
        Year fraction as float
    """
    if start == end:
        return 0.0
    if start > end:
        return -year_fraction(end, start, day_count)

    actual_days = (end - start).days

    if day_count == DayCount.ACT_360:
        return actual_days / 360.0

    elif day_count == DayCount.ACT_365:
        return actual_days / 365.0

    elif day_count == DayCount.ACT_ACT:
        if start.year == end.year:
            return actual_days / _days_in_year(start.year)
        total = (date(start.year + 1, 1, 1) - start).days / _days_in_year(start.year)
        total += end.year - start.year - 1
        total += (end - date(end.year, 1, 1)).days / _days_in_year(end.year)
        return total

    elif day_count == DayCount.THIRTY_360:
        # 30/360 US bond basis
        d1, d2 = start.day, end.day
        if d1 == 31:
            d1 = 30
        if d2 == 31 and d1 == 30:
            d2 = 30
        return (360 * (end.year - start.year) + 30 * (end.month - start.month) + (d2 - d1)) / 360.0

    elif day_count == DayCount.THIRTY_E_360:
        d1, d2 = min(start.day, 30), min(end.day, 30)
        return (360 * (end.year - start.year) + 30 * (end.month - start.month) + (d2 - d1)) / 360.0

    else:
        raise ValueError(f"Unknown day count: {day_count}")


def is_business_day(d: date, holidays: Optional[set] = None) -> bool:
    """
    Check if a date is a business day.

    Uses weekend-only calendar by default (Saturday/Sunday are non-business days).

    Args:
        d: Date to check
        holidays: Optional set of holiday dates

    Returns:
        True if business day, False otherwise
    """
    # Weekend check (0 = Monday, 5 = Saturday, 6 = Sunday)
    if d.weekday() >= 5:
        return False

    if holidays and d in holidays:
        return False

    return True


def adjust_business_day(
    d: date,
    convention: BusinessDayConvention,
    holidays: Optional[set] = None
) -> date:
    """
    Adjust a date according to business day convention.

    Args:
        d: Date to adjust
        convention: Business day adjustment rule
        holidays: Optional set of holiday dates

    Returns:
        Adjusted date
    """
    if convention == BusinessDayConvention.UNADJUSTED or is_business_day(d, holidays):
        return d

    one_day = timedelta(days=1)

    if convention in (BusinessDayConvention.FOLLOWING, BusinessDayConvention.MODIFIED_FOLLOWING):
        adjusted = d
        while not is_business_day(adjusted, holidays):
            adjusted += one_day
        if convention == BusinessDayConvention.MODIFIED_FOLLOWING and adjusted.month != d.month:
            return adjust_business_day(d, BusinessDayConvention.PRECEDING, holidays)
        return adjusted

    elif convention in (BusinessDayConvention.PRECEDING, BusinessDayConvention.MODIFIED_PRECEDING):
        adjusted = d
        while not is_business_day(adjusted, holidays):
            adjusted -= one_day
        if convention == BusinessDayConvention.MODIFIED_PRECEDING and adjusted.month != d.month:
            return adjust_business_day(d, BusinessDayConvention.FOLLOWING, holidays)
        return adjusted

    raise ValueError(f"Unknown business day convention: {convention}")


@dataclass(frozen=True)
class InterestRate:
    """
    An interest rate with its day count and compounding.

    Attributes:
        rate: Rate as a decimal (0.05 = 5%)
        day_count: Day count used to measure accrual periods
        compounding: Compounding convention
    """
    rate: float
    day_count: DayCount
    compounding: CompoundingConvention = CompoundingConvention.CONTINUOUS

    def __float__(self) -> float:
        return float(self.rate)

    def compound_factor(self, t: float) -> float:
        """
        Growth of one unit over time t.

        Args:
            t: Accrual period in years (must be non-negative)

        Returns:
            Compound factor
        """
        if t < 0.0:
            raise ValueError(f"negative time not allowed: {t}")
        if self.compounding == CompoundingConvention.SIMPLE:
            return 1.0 + self.rate * t
        if self.compounding == CompoundingConvention.CONTINUOUS:
            return math.exp(self.rate * t)
        f = self.compounding.frequency
        return (1.0 + self.rate / f) ** (f * t)

    def discount_factor(self, t: float) -> float:
        """Inverse of the compound factor over t."""
        return 1.0 / self.compound_factor(t)

    def compound_factor_between(self, start: date, end: date) -> float:
        """Compound factor between two dates using this rate's day count."""
        return self.compound_factor(year_fraction(start, end, self.day_count))

    def equivalent_rate(
        self,
        day_count: DayCount,
        compounding: CompoundingConvention,
        t: float
    ) -> "InterestRate":
        """Rate with the given conventions producing the same growth over t."""
        return InterestRate.implied_rate(self.compound_factor(t), day_count, compounding, t)

    @staticmethod
    def implied_rate(
        compound: float,
        day_count: DayCount,
        compounding: CompoundingConvention,
        t: float
    ) -> "InterestRate":
        """
        Rate that produces the given compound factor over time t.

        Args:
            compound: Compound factor (must be positive)
            day_count: Day count attached to the result
            compounding: Compounding of the result
            t: Accrual period in years

        Returns:
            InterestRate
        """
        if compound <= 0.0:
            raise ValueError(f"positive compound factor required: {compound}")
        if compound == 1.0:
            if t < 0.0:
                raise ValueError(f"non-negative time required: {t}")
            return InterestRate(0.0, day_count, compounding)
        if t <= 0.0:
            raise ValueError(f"positive time required: {t}")

        if compounding == CompoundingConvention.SIMPLE:
            r = (compound - 1.0) / t
        elif compounding == CompoundingConvention.CONTINUOUS:
            r = math.log(compound) / t
        else:
            f = compounding.frequency
            r = (compound ** (1.0 / (f * t)) - 1.0) * f
        return InterestRate(r, day_count, compounding)

    @staticmethod
    def implied_rate_between(
        compound: float,
        day_count: DayCount,
        compounding: CompoundingConvention,
        start: date,
        end: date
    ) -> "InterestRate":
        """Rate implied by a compound factor between two dates."""
        return InterestRate.implied_rate(
            compound, day_count, compounding, year_fraction(start, end, day_count)
        )


__all__ = [
    "DayCount",
    "BusinessDayConvention",
    "CompoundingConvention",
    "Conventions",
    "InterestRate",
    "year_fraction",
    "is_business_day",
    "adjust_business_day",
]
