"""
Curve instruments for bootstrapping.

Defines the rate helpers used to build yield curves:
- DepositRateHelper: Money market deposits
- FraRateHelper: Forward Rate Agreements
- FuturesRateHelper: IMM interest rate futures
- SwapRateHelper: Vanilla fixed-float par swaps
- FixedRateBondHelper: Fixed rate bonds quoted by clean price
- IborIborBasisSwapRateHelper: Tenor basis swaps

Each helper knows how to:
1. Compute its dates (earliest, latest and pillar) from the evaluation date
2. Price itself off the curve being bootstrapped (``implied_quote``)
3. Report its error against the market quote (``quote_error``)

Helpers observe their quotes and the fixing history of their index, and
forward changes to the curve; they never observe the curve they
calibrate. Each helper forecasts through a private index bound to the
curve being built, so the helper and the curve do not form a
notification cycle.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional, Sequence, Tuple, Union

from ..conventions import BusinessDayConvention, DayCount, year_fraction
from ..dates import Calendar, DateUtils, Schedule
from ..errors import CurveConfigurationError, HelperNotReadyError
from ..handles import Handle, RelinkableHandle, as_handle, quote_handle
from ..indexes import IborIndex
from ..patterns import Observable, Observer
from ..pricers.bonds import BondPricer, FixedRateBond
from ..pricers.swaps import BASIS_POINT, SwapPricer, floating_rate, make_vanilla_swap
from ..quotes import Quote
from ..settings import Settings

QuoteLike = Union[Handle, Quote, float]


class RateHelper(Observable, Observer, ABC):
    """
    Abstract base for bootstrap instruments.

    Attributes:
        quote: Handle to the market quote
    """

    def __init__(self, quote: QuoteLike):
        Observable.__init__(self)
        Observer.__init__(self)
        self.quote = quote_handle(quote)
        self.register_with(self.quote)
        self._term_structure = None
        self._earliest: Optional[date] = None
        self._latest: Optional[date] = None
        self._pillar: Optional[date] = None
        self._maturity: Optional[date] = None

    def __repr__(self) -> str:
        value = self.quote.current_link().value() if self.is_quote_valid() else None
        return f"{type(self).__name__}(pillar={self._pillar}, quote={value})"

    def update(self) -> None:
        pass

    # Dates

    def earliest_date(self) -> date:
        return self._earliest

    def latest_date(self) -> date:
        """Last date the helper needs from the curve."""
        return self._latest

    def pillar_date(self) -> date:
        """Curve node solved for this helper."""
        return self._pillar if self._pillar is not None else self._latest

    def maturity_date(self) -> date:
        return self._maturity if self._maturity is not None else self._latest

    # Curve linkage

    @property
    def term_structure(self):
        return self._term_structure

    def set_term_structure(self, curve) -> None:
        """Price against ``curve`` from now on (without observing it)."""
        if curve is None:
            raise CurveConfigurationError("null term structure given")
        self._term_structure = curve

    def _curve(self):
        if self._term_structure is None:
            raise HelperNotReadyError(f"term structure not set for {type(self).__name__}")
        return self._term_structure

    # Quotes

    def is_quote_valid(self) -> bool:
        return not self.quote.empty() and self.quote.current_link().is_valid()

    def quote_value(self) -> float:
        return self.quote.current_link().value()

    def quote_is_rate(self) -> bool:
        """Whether the quote is an interest rate (rather than a price or spread)."""
        return True

    @abstractmethod
    def implied_quote(self) -> float:
        """Quote implied by the current term structure."""

    def quote_error(self) -> float:
        """Implied minus market quote."""
        return self.implied_quote() - self.quote_value()


class RelativeDateRateHelper(RateHelper):
    """Helper whose dates are recomputed when the evaluation date moves."""

    def __init__(self, quote: QuoteLike):
        super().__init__(quote)
        self.register_with(Settings.instance())
        self._evaluation_date = Settings.instance().evaluation_date

    def update(self) -> None:
        today = Settings.instance().evaluation_date
        if today != self._evaluation_date:
            self._evaluation_date = today
            self._initialize_dates()
        super().update()

    @abstractmethod
    def _initialize_dates(self) -> None:
        """Compute the helper's dates from the evaluation date."""


class _IndexRateHelper(RelativeDateRateHelper):
    """Shared machinery for helpers implying a simple forward through an index."""

    def __init__(self, rate: QuoteLike, index: IborIndex):
        super().__init__(rate)
        self._handle = RelinkableHandle()
        self.index = index.clone(self._handle)
        self.register_with(self.index.fixing_history)

    def set_term_structure(self, curve) -> None:
        self._handle.link_to(curve, register_as_observer=False)
        super().set_term_structure(curve)

    def implied_quote(self) -> float:
        self._curve()
        return self.index.forecast_rate(self._earliest, self._maturity)


class DepositRateHelper(_IndexRateHelper):
    """
    Money market deposit.

    Simple interest from spot to spot + tenor:
    R = (P(start)/P(end) - 1) / tau
    """

    def __init__(
        self,
        rate: QuoteLike,
        tenor: Optional[str] = None,
        fixing_days: int = 2,
        calendar: Optional[Calendar] = None,
        convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        end_of_month: bool = True,
        day_count: DayCount = DayCount.ACT_360,
        index: Optional[IborIndex] = None
    ):
        if index is None:
            if tenor is None:
                raise CurveConfigurationError("deposit needs either a tenor or an index")
            index = IborIndex("Deposit", tenor, fixing_days, calendar or Calendar(),
                              convention, end_of_month, day_count)
        super().__init__(rate, index)
        self._initialize_dates()

    def _initialize_dates(self) -> None:
        today = self.index.calendar.adjust(Settings.instance().evaluation_date)
        self._earliest = self.index.value_date(today)
        self._maturity = self.index.maturity_date(self._earliest)
        self._latest = self._pillar = self._maturity


class FraRateHelper(_IndexRateHelper):
    """
    Forward Rate Agreement.

    Simple forward over [spot + m1 months, spot + m2 months]:
    F = (P(T1)/P(T2) - 1) / tau
    """

    def __init__(
        self,
        rate: QuoteLike,
        months_to_start: int,
        months_to_end: Optional[int] = None,
        fixing_days: int = 2,
        calendar: Optional[Calendar] = None,
        convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        end_of_month: bool = True,
        day_count: DayCount = DayCount.ACT_360,
        index: Optional[IborIndex] = None
    ):
        if index is None:
            if months_to_end is None:
                raise CurveConfigurationError("FRA needs either an end month or an index")
            if months_to_end <= months_to_start:
                raise CurveConfigurationError(
                    f"FRA end month ({months_to_end}) must be after start month ({months_to_start})"
                )
            index = IborIndex("FRA", f"{months_to_end - months_to_start}M", fixing_days,
                              calendar or Calendar(), convention, end_of_month, day_count)
        self.months_to_start = months_to_start
        super().__init__(rate, index)
        self._initialize_dates()

    def _initialize_dates(self) -> None:
        today = self.index.calendar.adjust(Settings.instance().evaluation_date)
        spot = self.index.value_date(today)
        self._earliest = self.index.calendar.advance(
            spot, self.months_to_start, 'M', self.index.convention, self.index.end_of_month
        )
        self._maturity = self.index.maturity_date(self._earliest)
        self._latest = self._pillar = self._maturity


class FuturesRateHelper(RateHelper):
    """
    IMM interest rate future quoted by price.

    Price = 100 * (1 - (F + convexity adjustment)), where F is the simple
    forward over the contract period.
    """

    def __init__(
        self,
        price: QuoteLike,
        imm_date: date,
        length_in_months: int = 3,
        calendar: Optional[Calendar] = None,
        convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        end_of_month: bool = True,
        day_count: DayCount = DayCount.ACT_360,
        convexity_adjustment: QuoteLike = 0.0
    ):
        super().__init__(price)
        if not DateUtils.is_imm_date(imm_date, main_cycle=False):
            raise CurveConfigurationError(f"{imm_date} is not a valid IMM date")
        calendar = calendar or Calendar()
        self.day_count = day_count
        self.convexity_adjustment = quote_handle(convexity_adjustment)
        self.register_with(self.convexity_adjustment)
        self._earliest = imm_date
        self._maturity = calendar.advance(imm_date, length_in_months, 'M', convention, end_of_month)
        self._latest = self._pillar = self._maturity
        self._year_fraction = year_fraction(self._earliest, self._maturity, day_count)

    def quote_is_rate(self) -> bool:
        return False

    def implied_quote(self) -> float:
        curve = self._curve()
        forward = (curve.discount(self._earliest) / curve.discount(self._maturity) - 1.0) / self._year_fraction
        convexity = self.convexity_adjustment.current_link().value()
        return 100.0 * (1.0 - (forward + convexity))


class SwapRateHelper(RelativeDateRateHelper):
    """
    Par vanilla swap.

    The floating index forecasts off the curve being built; discounting
    uses the exogenous curve when one is given and the curve being
    built otherwise.

    Fair rate = (PV_float + spread * A_float) / A_fixed
    """

    def __init__(
        self,
        rate: QuoteLike,
        tenor: str,
        calendar: Calendar,
        fixed_frequency: int,
        fixed_convention: BusinessDayConvention,
        fixed_day_count: DayCount,
        ibor_index: IborIndex,
        spread: QuoteLike = 0.0,
        forward_start: str = "0D",
        discounting_curve: Optional[Handle] = None
    ):
        super().__init__(rate)
        if fixed_frequency <= 0 or 12 % fixed_frequency != 0:
            raise CurveConfigurationError(f"unsupported fixed leg frequency: {fixed_frequency}")
        self.tenor = tenor
        self.calendar = calendar
        self.fixed_tenor = f"{12 // fixed_frequency}M"
        self.fixed_convention = fixed_convention
        self.fixed_day_count = fixed_day_count
        self.forward_start = forward_start
        self.spread = quote_handle(spread)
        self.register_with(self.spread)

        self._handle = RelinkableHandle()
        self.index = ibor_index.clone(self._handle)
        self.register_with(self.index.fixing_history)
        self._discount_handle = as_handle(discounting_curve) if discounting_curve is not None else None
        self.register_with(self._discount_handle)
        self.swap = None
        self._initialize_dates()

    def _initialize_dates(self) -> None:
        today = self.calendar.adjust(Settings.instance().evaluation_date)
        spot = self.calendar.advance(today, self.index.fixing_days, 'D')
        amount, unit = DateUtils.parse_tenor(self.forward_start)
        start = spot if amount == 0 else self.calendar.advance(spot, amount, unit, self.index.convention)
        self.swap = make_vanilla_swap(
            start, self.tenor, self.index,
            fixed_tenor=self.fixed_tenor,
            fixed_convention=self.fixed_convention,
            fixed_day_count=self.fixed_day_count,
            calendar=self.calendar,
        )
        self._earliest = self.swap.start_date
        self._latest = self._pillar = self._maturity = self.swap.maturity_date

    def set_term_structure(self, curve) -> None:
        self._handle.link_to(curve, register_as_observer=False)
        super().set_term_structure(curve)

    def implied_quote(self) -> float:
        self._curve()
        pricer = SwapPricer(self._discount_handle if self._discount_handle is not None else self._handle)
        float_npv = pricer.floating_leg_npv(self.swap)
        float_annuity = pricer.floating_leg_bps(self.swap) / BASIS_POINT
        fixed_annuity = pricer.fixed_leg_bps(self.swap) / BASIS_POINT
        spread = self.spread.current_link().value()
        return (float_npv + spread * float_annuity) / fixed_annuity


class FixedRateBondHelper(RelativeDateRateHelper):
    """
    Fixed rate bond quoted by clean price per 100 face.

    The implied quote is the bond's clean price off the curve at the
    bond's settlement date.
    """

    def __init__(
        self,
        clean_price: QuoteLike,
        settlement_days: int,
        face_amount: float,
        schedule: Schedule,
        coupons: Union[float, Sequence[float]],
        day_count: DayCount,
        payment_convention: BusinessDayConvention = BusinessDayConvention.FOLLOWING,
        redemption: float = 100.0,
        issue_date: Optional[date] = None
    ):
        super().__init__(clean_price)
        self.bond = FixedRateBond(
            settlement_days, face_amount, schedule, coupons, day_count,
            payment_convention, redemption, issue_date
        )
        self._handle = RelinkableHandle()
        self._initialize_dates()

    def _initialize_dates(self) -> None:
        self._earliest = self.bond.settlement_date()
        self._latest = self._pillar = self._maturity = self.bond.maturity_date

    def quote_is_rate(self) -> bool:
        return False

    def set_term_structure(self, curve) -> None:
        self._handle.link_to(curve, register_as_observer=False)
        super().set_term_structure(curve)

    def implied_quote(self) -> float:
        self._curve()
        return BondPricer(self._handle).clean_price(self.bond, self.bond.settlement_date())


def _ibor_leg_value(schedule: Schedule, index: IborIndex, discount_curve) -> Tuple[float, float]:
    """PV and annuity of a unit-notional floating leg without spread."""
    reference = discount_curve.reference_date
    npv = 0.0
    annuity = 0.0
    for start, end in schedule.periods():
        if end <= reference:
            continue
        weighted = year_fraction(start, end, index.day_count) * discount_curve.discount(end)
        npv += floating_rate(index, start, end) * weighted
        annuity += weighted
    return npv, annuity


class IborIborBasisSwapRateHelper(RelativeDateRateHelper):
    """
    Tenor basis swap: pay base index + basis, receive the other index.

    One index forecasts off the curve being built (the base index when
    ``bootstrap_base_curve`` is set), the other off its own curve;
    discounting uses the exogenous handle.

    Basis = (PV_other - PV_base) / A_base
    """

    def __init__(
        self,
        basis: QuoteLike,
        tenor: str,
        settlement_days: int,
        calendar: Calendar,
        convention: BusinessDayConvention,
        end_of_month: bool,
        base_index: IborIndex,
        other_index: IborIndex,
        discount_handle: Union[Handle, object],
        bootstrap_base_curve: bool
    ):
        super().__init__(basis)
        self.tenor = tenor
        self.settlement_days = settlement_days
        self.calendar = calendar
        self.convention = convention
        self.end_of_month = end_of_month
        self.bootstrap_base_curve = bootstrap_base_curve
        self._handle = RelinkableHandle()
        if bootstrap_base_curve:
            self.base_index = base_index.clone(self._handle)
            self.other_index = other_index
            self.register_with(self.other_index)
            self.register_with(self.base_index.fixing_history)
        else:
            self.base_index = base_index
            self.other_index = other_index.clone(self._handle)
            self.register_with(self.base_index)
            self.register_with(self.other_index.fixing_history)
        self.discount_handle = as_handle(discount_handle)
        self.register_with(self.discount_handle)
        self._initialize_dates()

    def _initialize_dates(self) -> None:
        today = Settings.instance().evaluation_date
        self._earliest = self.calendar.advance(today, self.settlement_days, 'D')
        self._maturity = self.calendar.advance_tenor(self._earliest, self.tenor, self.convention)
        self.base_schedule = Schedule(
            self._earliest, self._maturity, self.base_index.tenor, self.calendar,
            self.convention, self.convention, self.end_of_month
        )
        self.other_schedule = Schedule(
            self._earliest, self._maturity, self.other_index.tenor, self.calendar,
            self.convention, self.convention, self.end_of_month
        )
        self._latest = self._pillar = max(
            self._maturity, self.base_schedule.end_date, self.other_schedule.end_date
        )

    def quote_is_rate(self) -> bool:
        return False

    def set_term_structure(self, curve) -> None:
        self._handle.link_to(curve, register_as_observer=False)
        super().set_term_structure(curve)

    def implied_quote(self) -> float:
        self._curve()
        discount_curve = self.discount_handle.current_link()
        base_npv, base_annuity = _ibor_leg_value(self.base_schedule, self.base_index, discount_curve)
        other_npv, _ = _ibor_leg_value(self.other_schedule, self.other_index, discount_curve)
        return (other_npv - base_npv) / base_annuity


__all__ = [
    "RateHelper",
    "RelativeDateRateHelper",
    "DepositRateHelper",
    "FraRateHelper",
    "FuturesRateHelper",
    "SwapRateHelper",
    "FixedRateBondHelper",
    "IborIborBasisSwapRateHelper",
]
