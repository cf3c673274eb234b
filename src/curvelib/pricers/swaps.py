"""
Interest rate swap pricing engine.

Prices vanilla fixed-float swaps with a discounting curve; floating
coupons are forecast by the swap's Ibor index, which carries its own
forecasting curve (multi-curve setup). Passing the same curve to both
gives the single-curve case.

Pricing formula:
    PV_fixed = N * K * sum(tau_i * DF(T_i))
    PV_float = N * sum((F_j + s) * tau_j * DF(T_j))
    PV_swap  = PV_float - PV_fixed   (fixed payer)

Provides:
- FixedFloatSwap: Swap description (schedules, rate, spread, index)
- make_vanilla_swap: Standard swap builder shared with the curve helpers
- SwapPricer: Discounting engine
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Union

from ..conventions import BusinessDayConvention, DayCount, year_fraction
from ..dates import Calendar, DateUtils, Schedule
from ..handles import Handle, as_handle
from ..indexes import IborIndex

BASIS_POINT = 1.0e-4


@dataclass
class SwapLegCashflow:
    """A single swap leg cashflow."""
    date: date
    amount: float  # Fixed amount or projected floating amount
    accrual_start: date
    accrual_end: date
    year_fraction: float
    discount_factor: float = 1.0
    rate: Optional[float] = None  # Fixed rate, or forecast fixing plus spread


@dataclass
class SwapCashflows:
    """Complete swap cashflows for both legs."""
    fixed_leg: List[SwapLegCashflow]
    floating_leg: List[SwapLegCashflow]
    notional: float
    pay_receive: str  # "PAY" or "RECEIVE" (fixed leg)

    @property
    def pv_fixed(self) -> float:
        """PV of fixed leg."""
        return sum(cf.amount * cf.discount_factor for cf in self.fixed_leg)

    @property
    def pv_floating(self) -> float:
        """PV of floating leg."""
        return sum(cf.amount * cf.discount_factor for cf in self.floating_leg)

    @property
    def net_pv(self) -> float:
        """Net PV to the holder (fixed payer when pay_receive is "PAY")."""
        if self.pay_receive == "PAY":
            return self.pv_floating - self.pv_fixed
        return self.pv_fixed - self.pv_floating


@dataclass
class FixedFloatSwap:
    """
    Vanilla fixed against Ibor swap.

    Attributes:
        fixed_schedule: Fixed leg accrual schedule
        float_schedule: Floating leg accrual schedule
        fixed_rate: Fixed coupon rate (decimal)
        fixed_day_count: Fixed leg day count
        index: Ibor index paid on the floating leg
        spread: Spread over the index (decimal)
        notional: Notional amount
        pay_receive: "PAY" or "RECEIVE" fixed
    """
    fixed_schedule: Schedule
    float_schedule: Schedule
    fixed_rate: float
    fixed_day_count: DayCount
    index: IborIndex
    spread: float = 0.0
    notional: float = 1.0
    pay_receive: str = "PAY"

    @property
    def start_date(self) -> date:
        return min(self.fixed_schedule.start_date, self.float_schedule.start_date)

    @property
    def maturity_date(self) -> date:
        return max(self.fixed_schedule.end_date, self.float_schedule.end_date)


def make_vanilla_swap(
    effective: date,
    tenor: str,
    index: IborIndex,
    fixed_rate: float = 0.0,
    fixed_tenor: str = "1Y",
    fixed_convention: BusinessDayConvention = BusinessDayConvention.UNADJUSTED,
    fixed_day_count: DayCount = DayCount.THIRTY_E_360,
    calendar: Optional[Calendar] = None,
    spread: float = 0.0,
    notional: float = 1.0,
    pay_receive: str = "PAY"
) -> FixedFloatSwap:
    """
    Build a vanilla swap starting on ``effective``.

    The termination date is ``effective + tenor`` (unadjusted); the fixed
    leg rolls with ``fixed_tenor`` and ``fixed_convention``, the floating
    leg with the index tenor and convention.

    Args:
        effective: Start date
        tenor: Swap length (e.g. "5Y")
        index: Floating leg index
        fixed_rate: Fixed rate (decimal)
        fixed_tenor: Fixed leg period
        fixed_convention: Fixed leg date adjustment
        fixed_day_count: Fixed leg day count
        calendar: Fixed leg calendar (default: the index calendar)
        spread: Floating spread
        notional: Notional amount
        pay_receive: "PAY" or "RECEIVE" fixed

    Returns:
        FixedFloatSwap
    """
    calendar = calendar or index.calendar
    termination = DateUtils.add_tenor(effective, tenor)
    fixed_schedule = Schedule(
        effective, termination, fixed_tenor, calendar, fixed_convention, fixed_convention
    )
    float_schedule = Schedule(
        effective, termination, index.tenor, index.calendar, index.convention, index.convention
    )
    return FixedFloatSwap(
        fixed_schedule=fixed_schedule,
        float_schedule=float_schedule,
        fixed_rate=fixed_rate,
        fixed_day_count=fixed_day_count,
        index=index,
        spread=spread,
        notional=notional,
        pay_receive=pay_receive.upper(),
    )


def floating_rate(index: IborIndex, accrual_start: date, accrual_end: date) -> float:
    """
    Fixing paid over an accrual period.

    Uses the stored fixing whenever the index would (past fixings, and
    today's once it is stored); otherwise forecasts over the accrual
    period itself.
    """
    fixing_date = index.fixing_date(accrual_start)
    if index.is_fixed(fixing_date):
        return index.fixing(fixing_date)
    return index.forecast_rate(accrual_start, accrual_end)


class SwapPricer:
    """
    Discounting swap engine.

    Cashflows paid on or before the discount curve's reference date are
    ignored.

    Attributes:
        discount_handle: Handle to the discounting curve
    """

    def __init__(self, discount_curve: Union[Handle, object]):
        self.discount_handle = as_handle(discount_curve)

    @property
    def discount_curve(self):
        return self.discount_handle.current_link()

    def generate_cashflows(self, swap: FixedFloatSwap) -> SwapCashflows:
        """
        Generate swap cashflows for both legs.

        Args:
            swap: Swap to price

        Returns:
            SwapCashflows with discount factors filled in
        """
        curve = self.discount_curve
        reference = curve.reference_date

        fixed_cfs = []
        for start, end in swap.fixed_schedule.periods():
            if end <= reference:
                continue
            yf = year_fraction(start, end, swap.fixed_day_count)
            fixed_cfs.append(SwapLegCashflow(
                date=end,
                amount=swap.notional * swap.fixed_rate * yf,
                accrual_start=start,
                accrual_end=end,
                year_fraction=yf,
                discount_factor=curve.discount(end),
                rate=swap.fixed_rate
            ))

        float_cfs = []
        for start, end in swap.float_schedule.periods():
            if end <= reference:
                continue
            yf = year_fraction(start, end, swap.index.day_count)
            rate = floating_rate(swap.index, start, end) + swap.spread
            float_cfs.append(SwapLegCashflow(
                date=end,
                amount=swap.notional * rate * yf,
                accrual_start=start,
                accrual_end=end,
                year_fraction=yf,
                discount_factor=curve.discount(end),
                rate=rate
            ))

        return SwapCashflows(
            fixed_leg=fixed_cfs,
            floating_leg=float_cfs,
            notional=swap.notional,
            pay_receive=swap.pay_receive
        )

    def fixed_leg_bps(self, swap: FixedFloatSwap) -> float:
        """PV of one basis point paid on the fixed leg."""
        curve = self.discount_curve
        reference = curve.reference_date
        annuity = sum(
            year_fraction(start, end, swap.fixed_day_count) * curve.discount(end)
            for start, end in swap.fixed_schedule.periods() if end > reference
        )
        return swap.notional * annuity * BASIS_POINT

    def floating_leg_bps(self, swap: FixedFloatSwap) -> float:
        """PV of one basis point of spread on the floating leg."""
        curve = self.discount_curve
        reference = curve.reference_date
        annuity = sum(
            year_fraction(start, end, swap.index.day_count) * curve.discount(end)
            for start, end in swap.float_schedule.periods() if end > reference
        )
        return swap.notional * annuity * BASIS_POINT

    def fixed_leg_npv(self, swap: FixedFloatSwap) -> float:
        return self.generate_cashflows(swap).pv_fixed

    def floating_leg_npv(self, swap: FixedFloatSwap) -> float:
        """PV of the floating leg including the spread."""
        return self.generate_cashflows(swap).pv_floating

    def npv(self, swap: FixedFloatSwap) -> float:
        """
        Swap present value.

        Returns:
            PV to the holder (positive = in-the-money for the specified direction)
        """
        return self.generate_cashflows(swap).net_pv

    def fair_rate(self, swap: FixedFloatSwap) -> float:
        """Fixed rate that sets the swap value to zero."""
        cashflows = self.generate_cashflows(swap)
        return cashflows.pv_floating / (self.fixed_leg_bps(swap) / BASIS_POINT)

    def fair_spread(self, swap: FixedFloatSwap) -> float:
        """Floating spread that sets the swap value to zero."""
        cashflows = self.generate_cashflows(swap)
        float_annuity = self.floating_leg_bps(swap) / BASIS_POINT
        return swap.spread + (cashflows.pv_fixed - cashflows.pv_floating) / float_annuity


__all__ = [
    "BASIS_POINT",
    "SwapLegCashflow",
    "SwapCashflows",
    "FixedFloatSwap",
    "make_vanilla_swap",
    "floating_rate",
    "SwapPricer",
]
