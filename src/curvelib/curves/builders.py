"""
Curve construction from tabular market quotes.

Provides:
- BootstrapResult: Curve plus repricing diagnostics
- helpers_from_quotes: Build rate helpers from quote records
- bootstrap_from_quotes: Quotes in, bootstrapped curve out
- repricing_errors: Quote error of every helper on a curve

Quote records are dicts (or DataFrame rows) with keys
``instrument_type``, ``tenor`` and ``quote``:
    {"instrument_type": "DEPOSIT", "tenor": "3M", "quote": 0.04557}
    {"instrument_type": "FRA", "start_tenor": "3M", "tenor": "3M", "quote": 0.04557}
    {"instrument_type": "FUTURE", "tenor": "3M", "quote": 95.40}
    {"instrument_type": "SWAP", "tenor": "5Y", "quote": 0.0499}

Rates are decimals and futures are prices per 100. A FUTURE row uses
the first IMM date after the evaluation date plus its tenor (or an
explicit ``imm_date``).
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Union
import logging

import pandas as pd

from ..conventions import Conventions, DayCount
from ..dates import Calendar, DateUtils
from ..errors import ConvergenceError, CurveConfigurationError
from ..indexes import IborIndex
from ..settings import Settings
from .bootstrap import IterativeBootstrap
from .instruments import (
    DepositRateHelper,
    FraRateHelper,
    FuturesRateHelper,
    RateHelper,
    SwapRateHelper,
)
from .interpolation import Interpolator, create_interpolator
from .piecewise import PiecewiseYieldCurve
from .traits import BootstrapTrait, create_trait

logger = logging.getLogger(__name__)


@dataclass
class BootstrapResult:
    """Result of curve bootstrap."""
    curve: PiecewiseYieldCurve
    repricing_errors: Dict[date, float]
    success: bool
    message: str


def repricing_errors(curve: PiecewiseYieldCurve) -> Dict[date, float]:
    """
    Verify that instruments reprice to their quotes.

    Returns dict of {pillar date: error} where error = implied - quoted.
    """
    curve.calculate()
    return {helper.pillar_date(): helper.quote_error() for helper in curve.helpers}


def _records(quotes: Union[pd.DataFrame, Iterable[Dict]]) -> List[Dict]:
    if isinstance(quotes, pd.DataFrame):
        # missing cells become absent keys
        return [{k: v for k, v in row.items() if not pd.isna(v)} for row in quotes.to_dict("records")]
    return [dict(q) for q in quotes]


def helpers_from_quotes(
    quotes: Union[pd.DataFrame, Iterable[Dict]],
    calendar: Optional[Calendar] = None,
    ibor_index: Optional[IborIndex] = None
) -> List[RateHelper]:
    """
    Build rate helpers from quote records.

    Args:
        quotes: Records with instrument_type, tenor and quote
        calendar: Calendar for all instruments (default: weekends only)
        ibor_index: Floating index of the swaps (default: Euribor 6M)

    Returns:
        List of helpers in input order

    Raises:
        CurveConfigurationError: On unknown instrument types
    """
    calendar = calendar or Calendar()
    ibor_index = ibor_index or IborIndex.euribor("6M", calendar=calendar)
    money_market = Conventions.euribor()
    fixed_leg = Conventions.eur_swap_fixed()

    helpers: List[RateHelper] = []
    for q in _records(quotes):
        inst_type = str(q.get("instrument_type", "")).upper()
        tenor = str(q.get("tenor", "")).upper()
        quote = float(q["quote"])
        day_count_name = q.get("day_count")
        if not isinstance(day_count_name, str):
            day_count_name = money_market.day_count.value
        day_count = DayCount.from_string(day_count_name)

        if inst_type == "DEPOSIT":
            helpers.append(DepositRateHelper(
                quote, tenor, money_market.settlement_days, calendar,
                money_market.business_day, money_market.end_of_month, day_count
            ))
        elif inst_type == "FRA":
            start = DateUtils.tenor_in_months(str(q.get("start_tenor", "0M")))
            helpers.append(FraRateHelper(
                quote, start, start + DateUtils.tenor_in_months(tenor),
                money_market.settlement_days, calendar,
                money_market.business_day, money_market.end_of_month, day_count
            ))
        elif inst_type in ("FUT", "FUTURE"):
            imm_date = q.get("imm_date")
            if isinstance(imm_date, datetime):
                imm_date = imm_date.date()
            elif isinstance(imm_date, str):
                imm_date = date.fromisoformat(imm_date)
            elif not isinstance(imm_date, date):
                after = DateUtils.add_tenor(Settings.instance().evaluation_date, tenor)
                imm_date = DateUtils.next_imm_date(after)
            helpers.append(FuturesRateHelper(
                quote, imm_date, 3, calendar,
                money_market.business_day, money_market.end_of_month, day_count,
                convexity_adjustment=float(q.get("convexity_adjustment", 0.0))
            ))
        elif inst_type == "SWAP":
            helpers.append(SwapRateHelper(
                quote, tenor, calendar,
                int(q.get("fixed_frequency", fixed_leg.payment_frequency)),
                fixed_leg.business_day,
                fixed_leg.day_count,
                ibor_index
            ))
        else:
            raise CurveConfigurationError(f"unknown instrument type: {inst_type!r}")

    return helpers


def bootstrap_from_quotes(
    reference_date: Optional[date],
    quotes: Union[pd.DataFrame, Iterable[Dict]],
    trait: Union[str, BootstrapTrait] = "discount",
    interpolator: Union[str, Interpolator] = "log_linear",
    day_count: DayCount = DayCount.ACT_365,
    calendar: Optional[Calendar] = None,
    ibor_index: Optional[IborIndex] = None,
    bootstrap=None,
    accuracy: float = 1.0e-12,
    tolerance: float = 1.0e-8
) -> BootstrapResult:
    """
    Convenience function to bootstrap a curve from quote records.

    Helper dates follow the global evaluation date. With no reference
    date the curve settles two business days after it.

    Args:
        reference_date: Curve reference date, or None for a moving curve
        quotes: Quote records (list of dicts or DataFrame)
        trait: Trait or trait name
        interpolator: Interpolator or interpolator name
        day_count: Curve day count
        calendar: Instrument calendar
        ibor_index: Swap floating index
        bootstrap: Bootstrap engine (default IterativeBootstrap)
        accuracy: Solver accuracy
        tolerance: Largest repricing error accepted as success

    Returns:
        BootstrapResult with curve and diagnostics
    """
    if isinstance(trait, str):
        trait = create_trait(trait)
    if isinstance(interpolator, str):
        interpolator = create_interpolator(interpolator)

    helpers = helpers_from_quotes(quotes, calendar, ibor_index)
    curve = PiecewiseYieldCurve(
        helpers, trait, interpolator,
        reference_date=reference_date,
        day_count=day_count,
        settlement_days=None if reference_date is not None else 2,
        calendar=calendar,
        bootstrap=bootstrap or IterativeBootstrap(),
        accuracy=accuracy,
    )

    try:
        errors = repricing_errors(curve)
    except ConvergenceError as exc:
        logger.warning("Bootstrap from %d quotes failed: %s", len(helpers), exc)
        return BootstrapResult(curve=curve, repricing_errors={}, success=False, message=str(exc))

    max_error = max(abs(e) for e in errors.values())
    if max_error > tolerance:
        return BootstrapResult(
            curve=curve,
            repricing_errors=errors,
            success=False,
            message=f"Repricing error {max_error:.2e} exceeds tolerance {tolerance:.2e}"
        )
    return BootstrapResult(
        curve=curve,
        repricing_errors=errors,
        success=True,
        message="Bootstrap successful"
    )


__all__ = [
    "BootstrapResult",
    "helpers_from_quotes",
    "bootstrap_from_quotes",
    "repricing_errors",
]
