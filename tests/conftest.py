"""
Shared fixtures: a fixed evaluation date and a EUR-style market.

Market data (percent, prices per 100):
- Deposits 1W to 9M
- FRAs 1x4 to 9x12
- Par swaps 1Y to 30Y against Euribor 6M
- Fixed rate bonds 6M to 10Y
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List

import pytest

from curvelib.conventions import BusinessDayConvention, DayCount
from curvelib.curves import (
    DepositRateHelper,
    FixedRateBondHelper,
    FraRateHelper,
    SwapRateHelper,
)
from curvelib.dates import Calendar, Schedule
from curvelib.indexes import IborIndex
from curvelib.patterns import Observer
from curvelib.quotes import SimpleQuote
from curvelib.settings import SavedSettings, Settings

TODAY = date(2024, 1, 15)  # Monday
SETTLEMENT_DAYS = 2

DEPOSIT_DATA = [("1W", 4.559), ("1M", 4.581), ("2M", 4.573), ("3M", 4.557), ("6M", 4.496), ("9M", 4.490)]

FRA_DATA = [(1, 4, 4.581), (2, 5, 4.573), (3, 6, 4.557), (6, 9, 4.496), (9, 12, 4.490)]

SWAP_DATA = [
    ("1Y", 4.54), ("2Y", 4.63), ("3Y", 4.75), ("4Y", 4.86), ("5Y", 4.99),
    ("6Y", 5.11), ("7Y", 5.23), ("8Y", 5.33), ("9Y", 5.41), ("10Y", 5.47),
    ("12Y", 5.60), ("15Y", 5.75), ("20Y", 5.89), ("25Y", 5.95), ("30Y", 5.96),
]

# (n, unit, length in years, coupon %, clean price)
BOND_DATA = [
    (6, 'M', 5, 4.75, 101.320),
    (1, 'Y', 3, 2.75, 100.590),
    (2, 'Y', 5, 5.00, 105.650),
    (5, 'Y', 11, 5.50, 113.610),
    (10, 'Y', 11, 3.75, 104.070),
]


class Flag(Observer):
    """Observer recording how often it was notified."""

    def __init__(self, *observables):
        super().__init__()
        self.up = False
        self.count = 0
        for observable in observables:
            self.register_with(observable)

    def lower(self):
        self.up = False

    def update(self):
        self.up = True
        self.count += 1


@dataclass
class MarketData:
    """Quotes and helpers of the test market."""
    calendar: Calendar
    euribor6m: IborIndex
    deposit_quotes: Dict[str, SimpleQuote] = field(default_factory=dict)
    fra_quotes: Dict[str, SimpleQuote] = field(default_factory=dict)
    swap_quotes: Dict[str, SimpleQuote] = field(default_factory=dict)
    bond_quotes: List[SimpleQuote] = field(default_factory=list)
    deposit_helpers: List = field(default_factory=list)
    fra_helpers: List = field(default_factory=list)
    swap_helpers: List = field(default_factory=list)
    bond_helpers: List = field(default_factory=list)

    @property
    def rate_helpers(self) -> List:
        """Deposits and swaps."""
        return self.deposit_helpers + self.swap_helpers

    @property
    def rate_quotes(self) -> List[SimpleQuote]:
        return list(self.deposit_quotes.values()) + list(self.swap_quotes.values())


@pytest.fixture(autouse=True)
def evaluation_date():
    """Pin the evaluation date and restore it after the test."""
    with SavedSettings():
        Settings.instance().evaluation_date = TODAY
        yield TODAY


@pytest.fixture
def calendar():
    return Calendar()


@pytest.fixture
def euribor6m(calendar):
    return IborIndex.euribor("6M", calendar=calendar)


@pytest.fixture
def market(calendar, euribor6m):
    """Full set of quotes and helpers."""
    data = MarketData(calendar=calendar, euribor6m=euribor6m)

    for tenor, rate in DEPOSIT_DATA:
        quote = SimpleQuote(rate / 100.0, name=f"DEP{tenor}")
        data.deposit_quotes[tenor] = quote
        data.deposit_helpers.append(DepositRateHelper(
            quote, tenor, SETTLEMENT_DAYS, calendar,
            BusinessDayConvention.MODIFIED_FOLLOWING, True, DayCount.ACT_360
        ))

    for start, end, rate in FRA_DATA:
        quote = SimpleQuote(rate / 100.0, name=f"FRA{start}x{end}")
        data.fra_quotes[f"{start}x{end}"] = quote
        data.fra_helpers.append(FraRateHelper(
            quote, start, end, SETTLEMENT_DAYS, calendar,
            BusinessDayConvention.MODIFIED_FOLLOWING, True, DayCount.ACT_360
        ))

    for tenor, rate in SWAP_DATA:
        quote = SimpleQuote(rate / 100.0, name=f"IRS{tenor}")
        data.swap_quotes[tenor] = quote
        data.swap_helpers.append(SwapRateHelper(
            quote, tenor, calendar, 1,
            BusinessDayConvention.UNADJUSTED, DayCount.THIRTY_E_360, euribor6m
        ))

    for n, unit, length, coupon, price in BOND_DATA:
        quote = SimpleQuote(price, name=f"BOND{n}{unit}")
        data.bond_quotes.append(quote)
        maturity = calendar.advance(TODAY, n, unit)
        issue = calendar.advance(maturity, -length, 'Y')
        schedule = Schedule(
            issue, maturity, "6M", calendar,
            BusinessDayConvention.UNADJUSTED, BusinessDayConvention.UNADJUSTED
        )
        data.bond_helpers.append(FixedRateBondHelper(
            quote, 3, 100.0, schedule, [coupon / 100.0], DayCount.ACT_ACT,
            BusinessDayConvention.FOLLOWING, 100.0, issue
        ))

    return data
