"""
Interest rate indexes.

Provides:
- FixingHistory: Stored fixings of one index, shared by its clones
- IborIndex: Term deposit index (e.g. Euribor 6M) with fixing history
  and forecasting from a yield curve handle

Adding a fixing through any clone notifies the observers of every
clone, since they all observe the same history.
"""

from datetime import date
from typing import Dict, Optional
import logging

from .conventions import BusinessDayConvention, Conventions, DayCount, year_fraction
from .dates import Calendar, DateUtils
from .errors import CurveConfigurationError
from .handles import Handle
from .patterns import Observable, Observer
from .settings import Settings

logger = logging.getLogger(__name__)


class FixingHistory(Observable):
    """Fixings by date; notifies its observers whenever it changes."""

    def __init__(self):
        super().__init__()
        self.values: Dict[date, float] = {}

    def __contains__(self, fixing_date: date) -> bool:
        return fixing_date in self.values


class IborIndex(Observable, Observer):
    """
    Ibor-style index.

    Past fixings come from the stored history; fixings on or after the
    evaluation date are forecast from the forecasting curve.

    Attributes:
        name: Index family name (e.g. "Euribor")
        tenor: Deposit tenor (e.g. "6M")
        fixing_days: Business days between fixing and value date
        calendar: Fixing calendar
        convention: Business day convention for the maturity date
        end_of_month: End-of-month rule for the maturity date
        day_count: Accrual day count
        forecast_curve: Handle to the forecasting yield curve
    """

    def __init__(
        self,
        name: str,
        tenor: str,
        fixing_days: int,
        calendar: Calendar,
        convention: BusinessDayConvention,
        end_of_month: bool,
        day_count: DayCount,
        forecast_curve: Optional[Handle] = None
    ):
        Observable.__init__(self)
        Observer.__init__(self)
        DateUtils.parse_tenor(tenor)
        self.name = name
        self.tenor = tenor.upper()
        self.fixing_days = fixing_days
        self.calendar = calendar
        self.convention = convention
        self.end_of_month = end_of_month
        self.day_count = day_count
        self.forecast_curve = forecast_curve if forecast_curve is not None else Handle()
        self._history = FixingHistory()
        self.register_with(self._history)
        self.register_with(self.forecast_curve)

    @classmethod
    def euribor(
        cls,
        tenor: str = "6M",
        forecast_curve: Optional[Handle] = None,
        calendar: Optional[Calendar] = None
    ) -> "IborIndex":
        """Euribor index with the standard money market conventions."""
        conv = Conventions.euribor()
        return cls(
            name="Euribor",
            tenor=tenor,
            fixing_days=conv.settlement_days,
            calendar=calendar or Calendar(),
            convention=conv.business_day,
            end_of_month=conv.end_of_month,
            day_count=conv.day_count,
            forecast_curve=forecast_curve,
        )

    def __repr__(self) -> str:
        return f"IborIndex({self.full_name})"

    @property
    def full_name(self) -> str:
        return f"{self.name}{self.tenor} {self.day_count.value}"

    def update(self) -> None:
        pass

    def clone(self, forecast_curve: Handle) -> "IborIndex":
        """Same index forecasting from another curve; the fixing history is shared."""
        cloned = IborIndex(
            self.name, self.tenor, self.fixing_days, self.calendar,
            self.convention, self.end_of_month, self.day_count, forecast_curve
        )
        cloned.unregister_with(cloned._history)
        cloned._history = self._history
        cloned.register_with(self._history)
        return cloned

    # Dates

    def value_date(self, fixing_date: date) -> date:
        return self.calendar.advance(fixing_date, self.fixing_days, 'D')

    def fixing_date(self, value_date: date) -> date:
        return self.calendar.advance(value_date, -self.fixing_days, 'D')

    def maturity_date(self, value_date: date) -> date:
        amount, unit = DateUtils.parse_tenor(self.tenor)
        return self.calendar.advance(value_date, amount, unit, self.convention, self.end_of_month)

    def is_valid_fixing_date(self, d: date) -> bool:
        return self.calendar.is_business_day(d)

    # Fixings

    def add_fixing(self, fixing_date: date, value: float, force_overwrite: bool = False) -> None:
        """
        Store a historical fixing and notify the observers of every clone.

        Raises:
            CurveConfigurationError: If the date is not a fixing date, or a
                different fixing is already stored and not overwritten
        """
        if not self.is_valid_fixing_date(fixing_date):
            raise CurveConfigurationError(f"{fixing_date} is not a valid fixing date for {self.full_name}")
        existing = self._history.values.get(fixing_date)
        if existing is not None and existing != value and not force_overwrite:
            raise CurveConfigurationError(
                f"duplicated fixing for {self.full_name} on {fixing_date}: {existing} vs {value}"
            )
        self._history.values[fixing_date] = float(value)
        logger.debug("Stored %s fixing %s on %s", self.full_name, value, fixing_date)
        self._history.notify_observers()

    def clear_fixings(self) -> None:
        self._history.values.clear()
        self._history.notify_observers()

    @property
    def fixing_history(self) -> FixingHistory:
        """History shared with every clone of this index."""
        return self._history

    def fixings(self) -> Dict[date, float]:
        return dict(self._history.values)

    def is_fixed(self, fixing_date: date, forecast_todays_fixing: bool = False) -> bool:
        """
        Whether the fixing on a date comes from the stored history.

        Past fixings always do; today's does when it is stored, unless
        ``forecast_todays_fixing`` is set.
        """
        today = Settings.instance().evaluation_date
        if fixing_date < today:
            return True
        return (fixing_date == today and not forecast_todays_fixing
                and fixing_date in self._history)

    def fixing(self, fixing_date: date, forecast_todays_fixing: bool = False) -> float:
        """
        Index fixing on a date.

        Args:
            fixing_date: Fixing date
            forecast_todays_fixing: Forecast today's fixing even if it is stored

        Returns:
            Fixing as a decimal

        Raises:
            CurveConfigurationError: If a past fixing is missing
        """
        if self.is_fixed(fixing_date, forecast_todays_fixing):
            if fixing_date not in self._history:
                raise CurveConfigurationError(f"missing {self.full_name} fixing for {fixing_date}")
            return self._history.values[fixing_date]
        value_date = self.value_date(fixing_date)
        return self.forecast_rate(value_date, self.maturity_date(value_date))


    def forecast_rate(self, start: date, end: date) -> float:
        """
        Simple forward rate between two dates off the forecasting curve.

        Returns:
            (P(start)/P(end) - 1) / tau(start, end)
        """
        curve = self.forecast_curve.current_link()
        tau = year_fraction(start, end, self.day_count)
        return (curve.discount(start) / curve.discount(end) - 1.0) / tau


__all__ = [
    "FixingHistory",
    "IborIndex",
]
