"""
Date utilities for rates calculations.

Provides:
- DateUtils: Tenor parsing, month arithmetic and IMM dates
- Calendar: Business day calendar with advance/adjust operations
- Schedule: Coupon schedule generated backward from the termination date
"""

from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple
import calendar as _calendar
import re

from .conventions import (
    BusinessDayConvention,
    adjust_business_day,
    is_business_day,
)


IMM_MONTHS = (3, 6, 9, 12)


class DateUtils:
    """Utility class for date manipulation in rates contexts."""

    # Tenor regex pattern: number + unit (D/W/M/Y)
    TENOR_PATTERN = re.compile(r'^([+-]?\d+)([DWMY])$', re.IGNORECASE)

    @staticmethod
    def parse_tenor(tenor: str) -> Tuple[int, str]:
        """
        Parse a tenor string into (amount, unit).

        Args:
            tenor: Tenor string like "1D", "3M", "2Y"

        Returns:
            Tuple of (amount, unit) where unit is D/W/M/Y

        Raises:
            ValueError: If tenor format is invalid
        """
        match = DateUtils.TENOR_PATTERN.match(tenor.upper().strip())
        if not match:
            raise ValueError(f"Invalid tenor format: {tenor}. Expected format like '3M', '2Y'")

        return int(match.group(1)), match.group(2).upper()

    @staticmethod
    def tenor_in_months(tenor: str) -> int:
        """Length of a month- or year-based tenor in months."""
        amount, unit = DateUtils.parse_tenor(tenor)
        if unit == 'M':
            return amount
        if unit == 'Y':
            return 12 * amount
        raise ValueError(f"Tenor {tenor} is not a whole number of months")

    @staticmethod
    def add_months(start: date, months: int) -> date:
        """Add calendar months, clamping the day to the target month's length."""
        year = start.year + (start.month + months - 1) // 12
        month = (start.month + months - 1) % 12 + 1
        day = min(start.day, _calendar.monthrange(year, month)[1])
        return date(year, month, day)

    @staticmethod
    def end_of_month(d: date) -> date:
        """Last calendar day of the month containing d."""
        return date(d.year, d.month, _calendar.monthrange(d.year, d.month)[1])

    @staticmethod
    def add_tenor(start: date, tenor: str, holidays: Optional[set] = None) -> date:
        """
        Add a tenor to a date without business day adjustment.

        Day tenors count business days against the optional holiday set.

        Args:
            start: Starting date
            tenor: Tenor string (e.g., "1D", "3M", "2Y")
            holidays: Optional holiday calendar

        Returns:
            End date
        """
        amount, unit = DateUtils.parse_tenor(tenor)

        if unit == 'D':
            return Calendar(holidays).advance(start, amount, 'D')
        elif unit == 'W':
            return start + timedelta(weeks=amount)
        elif unit == 'M':
            return DateUtils.add_months(start, amount)
        elif unit == 'Y':
            return DateUtils.add_months(start, 12 * amount)

        raise ValueError(f"Unknown tenor unit: {unit}")

    @staticmethod
    def tenor_to_years(tenor: str) -> float:
        """
        Convert tenor to approximate year fraction.

        Args:
            tenor: Tenor string

        Returns:
            Approximate years as float
        """
        amount, unit = DateUtils.parse_tenor(tenor)

        if unit == 'D':
            return amount / 365.0
        elif unit == 'W':
            return amount * 7 / 365.0
        elif unit == 'M':
            return amount / 12.0
        elif unit == 'Y':
            return float(amount)
        else:
            raise ValueError(f"Unknown tenor unit: {unit}")

    @staticmethod
    def third_wednesday(year: int, month: int) -> date:
        """Third Wednesday of the given month."""
        first = date(year, month, 1)
        offset = (2 - first.weekday()) % 7
        return first + timedelta(days=offset + 14)

    @staticmethod
    def is_imm_date(d: date, main_cycle: bool = True) -> bool:
        """
        Check whether d is an IMM date (third Wednesday of the month).

        Args:
            d: Date to check
            main_cycle: Restrict to March, June, September and December

        Returns:
            True if d is an IMM date
        """
        if main_cycle and d.month not in IMM_MONTHS:
            return False
        return d == DateUtils.third_wednesday(d.year, d.month)

    @staticmethod
    def next_imm_date(d: date, main_cycle: bool = True) -> date:
        """First IMM date strictly after d."""
        year, month = d.year, d.month
        while True:
            if not main_cycle or month in IMM_MONTHS:
                candidate = DateUtils.third_wednesday(year, month)
                if candidate > d:
                    return candidate
            month += 1
            if month > 12:
                month = 1
                year += 1


class Calendar:
    """
    Business day calendar.

    Weekends are never business days; additional holidays may be supplied.
    All operations are pure functions of their inputs.

    Attributes:
        name: Calendar name
        holidays: Frozen set of non-weekend holidays
    """

    def __init__(self, holidays: Optional[Iterable[date]] = None, name: str = "WeekendsOnly"):
        self.name = name
        self.holidays = frozenset(holidays or ())

    def __repr__(self) -> str:
        return f"Calendar({self.name!r}, holidays={len(self.holidays)})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Calendar) and self.holidays == other.holidays

    def __hash__(self) -> int:
        return hash(self.holidays)

    def is_business_day(self, d: date) -> bool:
        return is_business_day(d, self.holidays)

    def is_holiday(self, d: date) -> bool:
        return not self.is_business_day(d)

    def end_of_month(self, d: date) -> date:
        """Last business day of the month containing d."""
        return self.adjust(DateUtils.end_of_month(d), BusinessDayConvention.PRECEDING)

    def is_end_of_month(self, d: date) -> bool:
        """True when d is on or after the month's last business day."""
        return d.month != self.adjust(d + timedelta(days=1)).month

    def adjust(
        self,
        d: date,
        convention: BusinessDayConvention = BusinessDayConvention.FOLLOWING
    ) -> date:
        return adjust_business_day(d, convention, self.holidays)

    def advance(
        self,
        d: date,
        n: int,
        unit: str = 'D',
        convention: BusinessDayConvention = BusinessDayConvention.FOLLOWING,
        end_of_month: bool = False
    ) -> date:
        """
        Advance a date by a number of time units.

        Days are business days and the result is not adjusted further.
        Weeks, months and years are calendar periods followed by an
        adjustment; with end_of_month set, a month-end start date lands on
        the last business day of the target month.

        Args:
            d: Start date
            n: Number of units (may be negative)
            unit: One of D, W, M, Y
            convention: Adjustment for W/M/Y periods
            end_of_month: Apply the end-of-month rule

        Returns:
            Advanced date
        """
        unit = unit.upper()
        if unit == 'D':
            if n == 0:
                return self.adjust(d, convention)
            step = timedelta(days=1 if n > 0 else -1)
            result = d
            remaining = abs(n)
            while remaining > 0:
                result += step
                if self.is_business_day(result):
                    remaining -= 1
            return result

        if unit == 'W':
            return self.adjust(d + timedelta(weeks=n), convention)

        if unit in ('M', 'Y'):
            months = n if unit == 'M' else 12 * n
            result = DateUtils.add_months(d, months)
            if end_of_month and self.is_end_of_month(d):
                return self.end_of_month(result)
            return self.adjust(result, convention)

        raise ValueError(f"Unknown time unit: {unit}")

    def advance_tenor(
        self,
        d: date,
        tenor: str,
        convention: BusinessDayConvention = BusinessDayConvention.FOLLOWING,
        end_of_month: bool = False
    ) -> date:
        """Advance a date by a tenor string such as "2D", "6M" or "10Y"."""
        amount, unit = DateUtils.parse_tenor(tenor)
        return self.advance(d, amount, unit, convention, end_of_month)

    def business_days_between(
        self,
        start: date,
        end: date,
        include_first: bool = True,
        include_last: bool = False
    ) -> int:
        """
        Count business days between two dates.

        Returns a negative count when end precedes start.
        """
        if start == end:
            return 1 if include_first and include_last and self.is_business_day(start) else 0
        if start > end:
            return -self.business_days_between(end, start, include_last, include_first)

        count = 0
        current = start if include_first else start + timedelta(days=1)
        while current < end:
            if self.is_business_day(current):
                count += 1
            current += timedelta(days=1)
        if include_last and self.is_business_day(end):
            count += 1
        return count


class Schedule:
    """
    Regular schedule of period dates.

    Dates are generated backward from the termination date in steps of
    the tenor, so any stub is a short first period.

    Attributes:
        dates: Adjusted schedule dates, effective date first
        tenor: Period length (e.g. "6M", "1Y")
        calendar: Calendar used for adjustment
        convention: Adjustment of all but the termination date
        termination_convention: Adjustment of the termination date
    """

    def __init__(
        self,
        effective: date,
        termination: date,
        tenor: str,
        calendar: Calendar,
        convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        termination_convention: Optional[BusinessDayConvention] = None,
        end_of_month: bool = False
    ):
        if termination <= effective:
            raise ValueError(f"termination {termination} must be after effective {effective}")

        self.tenor = tenor
        self.calendar = calendar
        self.convention = convention
        self.termination_convention = termination_convention or convention
        self.end_of_month = end_of_month

        months = DateUtils.tenor_in_months(tenor)
        if months <= 0:
            raise ValueError(f"Schedule tenor must be positive: {tenor}")

        use_eom = end_of_month and calendar.is_end_of_month(termination)

        unadjusted = [termination]
        k = 1
        while True:
            previous = DateUtils.add_months(termination, -k * months)
            if use_eom:
                previous = calendar.end_of_month(previous)
            if previous <= effective:
                break
            unadjusted.insert(0, previous)
            k += 1
        unadjusted.insert(0, effective)

        adjusted = [calendar.adjust(d, self.convention) for d in unadjusted[:-1]]
        adjusted.append(calendar.adjust(unadjusted[-1], self.termination_convention))

        # adjustment can collapse a very short stub onto the next date
        self.dates: List[date] = [adjusted[0]]
        for d in adjusted[1:]:
            if d > self.dates[-1]:
                self.dates.append(d)

    def __len__(self) -> int:
        return len(self.dates)

    def __iter__(self):
        return iter(self.dates)

    def __getitem__(self, i: int) -> date:
        return self.dates[i]

    @property
    def start_date(self) -> date:
        return self.dates[0]

    @property
    def end_date(self) -> date:
        return self.dates[-1]

    def periods(self) -> List[Tuple[date, date]]:
        """Consecutive (accrual start, accrual end) pairs."""
        return list(zip(self.dates[:-1], self.dates[1:]))


__all__ = [
    "DateUtils",
    "Calendar",
    "Schedule",
    "IMM_MONTHS",
]
