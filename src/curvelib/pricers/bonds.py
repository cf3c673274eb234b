"""
Bond pricing engine.

Prices fixed rate bonds using discount factors from a yield curve.

Features:
- Cashflow generation from a coupon schedule
- Accrued interest at settlement
- Dirty and clean prices discounted to the settlement date

Conventions:
- Prices and accrued amounts are expressed per 100 face value
- Only cashflows paid after the settlement date are included
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence, Union

from ..conventions import BusinessDayConvention, DayCount, year_fraction
from ..dates import Schedule
from ..handles import Handle, as_handle
from ..settings import Settings


@dataclass
class BondCashflow:
    """A single bond cashflow."""
    date: date  # Payment date
    amount: float  # In currency units of the face amount
    type: str  # "COUPON" or "PRINCIPAL"
    accrual_start: Optional[date] = None
    accrual_end: Optional[date] = None


class FixedRateBond:
    """
    Fixed rate bullet bond.

    Attributes:
        settlement_days: Business days from trade to settlement
        face_amount: Face amount
        schedule: Coupon accrual schedule
        coupons: Coupon rates per period (the last one repeats)
        day_count: Accrual day count
        payment_convention: Adjustment of payment dates
        redemption: Redemption per 100 face
        issue_date: Issue date (default: schedule start)
    """

    def __init__(
        self,
        settlement_days: int,
        face_amount: float,
        schedule: Schedule,
        coupons: Union[float, Sequence[float]],
        day_count: DayCount,
        payment_convention: BusinessDayConvention = BusinessDayConvention.FOLLOWING,
        redemption: float = 100.0,
        issue_date: Optional[date] = None
    ):
        self.settlement_days = settlement_days
        self.face_amount = face_amount
        self.schedule = schedule
        self.coupons = [float(coupons)] if isinstance(coupons, (int, float)) else [float(c) for c in coupons]
        if not self.coupons:
            raise ValueError("at least one coupon rate is required")
        self.day_count = day_count
        self.payment_convention = payment_convention
        self.redemption = redemption
        self.issue_date = issue_date or schedule.start_date
        self.calendar = schedule.calendar
        self._cashflows = self._build_cashflows()

    def __repr__(self) -> str:
        return (f"FixedRateBond(maturity={self.maturity_date}, coupon={self.coupons[0]}, "
                f"face={self.face_amount})")

    def _build_cashflows(self) -> List[BondCashflow]:
        cashflows = []
        for k, (start, end) in enumerate(self.schedule.periods()):
            rate = self.coupons[min(k, len(self.coupons) - 1)]
            cashflows.append(BondCashflow(
                date=self.calendar.adjust(end, self.payment_convention),
                amount=self.face_amount * rate * year_fraction(start, end, self.day_count),
                type="COUPON",
                accrual_start=start,
                accrual_end=end
            ))
        cashflows.append(BondCashflow(
            date=self.calendar.adjust(self.schedule.end_date, self.payment_convention),
            amount=self.face_amount * self.redemption / 100.0,
            type="PRINCIPAL"
        ))
        return cashflows

    def cashflows(self) -> List[BondCashflow]:
        return list(self._cashflows)

    @property
    def maturity_date(self) -> date:
        """Date of the last payment."""
        return max(cf.date for cf in self._cashflows)

    def settlement_date(self, trade_date: Optional[date] = None) -> date:
        """Settlement for a trade on trade_date (default: the evaluation date)."""
        trade_date = trade_date or Settings.instance().evaluation_date
        settlement = self.calendar.advance(trade_date, self.settlement_days, 'D')
        return max(settlement, self.issue_date)

    def accrued_amount(self, settlement: Optional[date] = None) -> float:
        """
        Accrued interest per 100 face at settlement.

        Only the coupons paid on the next payment date after settlement
        accrue.
        """
        settlement = settlement or self.settlement_date()
        upcoming = [cf for cf in self._cashflows if cf.type == "COUPON" and cf.date > settlement]
        if not upcoming:
            return 0.0
        next_date = min(cf.date for cf in upcoming)
        accrued = 0.0
        for cf in upcoming:
            if cf.date != next_date or settlement <= cf.accrual_start:
                continue
            period = year_fraction(cf.accrual_start, cf.accrual_end, self.day_count)
            elapsed = year_fraction(cf.accrual_start, min(settlement, cf.accrual_end), self.day_count)
            accrued += cf.amount * elapsed / period
        return accrued / self.face_amount * 100.0


class BondPricer:
    """
    Bond pricing engine.

    Prices bonds by discounting cashflows using a yield curve.

    Attributes:
        discount_handle: Handle to the discounting curve
    """

    def __init__(self, discount_curve: Union[Handle, object]):
        self.discount_handle = as_handle(discount_curve)

    @property
    def discount_curve(self):
        return self.discount_handle.current_link()

    def npv(self, bond: FixedRateBond) -> float:
        """
        Present value at the curve's reference date.

        Returns:
            PV in currency units
        """
        curve = self.discount_curve
        reference = curve.reference_date
        return sum(cf.amount * curve.discount(cf.date) for cf in bond.cashflows() if cf.date > reference)

    def dirty_price(self, bond: FixedRateBond, settlement: Optional[date] = None) -> float:
        """
        Dirty price per 100 face, valued at the settlement date.

        Args:
            bond: Bond to price
            settlement: Settlement date (default: the bond's settlement date)

        Returns:
            Dirty price
        """
        settlement = settlement or bond.settlement_date()
        curve = self.discount_curve
        value = sum(cf.amount * curve.discount(cf.date) for cf in bond.cashflows() if cf.date > settlement)
        return value / curve.discount(settlement) / bond.face_amount * 100.0

    def clean_price(self, bond: FixedRateBond, settlement: Optional[date] = None) -> float:
        """Dirty price less accrued interest, per 100 face."""
        settlement = settlement or bond.settlement_date()
        return self.dirty_price(bond, settlement) - bond.accrued_amount(settlement)

    def price(self, bond: FixedRateBond, settlement: Optional[date] = None):
        """
        Price a bond.

        Returns:
            Tuple of (dirty_price, clean_price, accrued_interest)
        """
        settlement = settlement or bond.settlement_date()
        dirty = self.dirty_price(bond, settlement)
        accrued = bond.accrued_amount(settlement)
        return dirty, dirty - accrued, accrued


__all__ = [
    "BondCashflow",
    "FixedRateBond",
    "BondPricer",
]
