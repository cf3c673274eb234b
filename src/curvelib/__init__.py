"""
curvelib: Piecewise yield curve bootstrapping

A modular library for:
- Bootstrapping discount, zero and forward curves from deposits, FRAs,
  futures, swaps, bonds and basis swaps
- Keeping curves lazily up to date as market quotes change
- Pricing the calibrating instruments (swaps, bonds) off any curve

Scope: single-currency linear instruments.
"""

__version__ = "0.1.0"

# Core modules
from .conventions import (
    DayCount,
    BusinessDayConvention,
    CompoundingConvention,
    Conventions,
    InterestRate,
    year_fraction,
)
from .dates import Calendar, DateUtils, Schedule
from .errors import (
    CurveError,
    CurveConfigurationError,
    InvalidQuoteError,
    EmptyHandleError,
    HelperNotReadyError,
    ExtrapolationError,
    ConvergenceError,
)

# Market objects
from .patterns import Observable, Observer, LazyObject
from .quotes import Quote, SimpleQuote, DerivedQuote
from .handles import Handle, RelinkableHandle
from .settings import Settings, SavedSettings
from .indexes import FixingHistory, IborIndex

# Curves
from .curves import (
    PiecewiseYieldCurve,
    InterpolatedCurve,
    FlatForward,
    IterativeBootstrap,
    LocalBootstrap,
    Discount,
    ZeroYield,
    ForwardRate,
    bootstrap_from_quotes,
)

# Pricers
from .pricers import BondPricer, SwapPricer, FixedRateBond, make_vanilla_swap

__all__ = [
    "__version__",
    # Core
    "DayCount",
    "BusinessDayConvention",
    "CompoundingConvention",
    "Conventions",
    "InterestRate",
    "year_fraction",
    "Calendar",
    "DateUtils",
    "Schedule",
    # Errors
    "CurveError",
    "CurveConfigurationError",
    "InvalidQuoteError",
    "EmptyHandleError",
    "HelperNotReadyError",
    "ExtrapolationError",
    "ConvergenceError",
    # Market objects
    "Observable",
    "Observer",
    "LazyObject",
    "Quote",
    "SimpleQuote",
    "DerivedQuote",
    "Handle",
    "RelinkableHandle",
    "Settings",
    "SavedSettings",
    "FixingHistory",
    "IborIndex",
    # Curves
    "PiecewiseYieldCurve",
    "InterpolatedCurve",
    "FlatForward",
    "IterativeBootstrap",
    "LocalBootstrap",
    "Discount",
    "ZeroYield",
    "ForwardRate",
    "bootstrap_from_quotes",
    # Pricers
    "BondPricer",
    "SwapPricer",
    "FixedRateBond",
    "make_vanilla_swap",
]
