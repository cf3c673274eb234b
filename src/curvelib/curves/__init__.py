"""
Curves package - yield curve construction and bootstrapping.

Provides:
- PiecewiseYieldCurve: Curve bootstrapped from rate helpers
- InterpolatedCurve / FlatForward: Curves from known nodes or a flat rate
- IterativeBootstrap / LocalBootstrap: Bootstrap engines
- Rate helpers: Deposits, FRAs, futures, swaps, bonds and basis swaps
- Traits and interpolators: What is interpolated, and how
"""

from .curve import (
    CurveNode,
    YieldTermStructure,
    InterpolatedCurve,
    FlatForward,
    create_flat_curve,
)
from .piecewise import PiecewiseYieldCurve
from .bootstrap import IterativeBootstrap, LocalBootstrap
from .builders import BootstrapResult, bootstrap_from_quotes, helpers_from_quotes, repricing_errors
from .interpolation import (
    Interpolator,
    LinearInterpolator,
    LogLinearInterpolator,
    CubicSplineInterpolator,
    LogCubicInterpolator,
    BackwardFlatInterpolator,
    create_interpolator,
)
from .convex_monotone import ConvexMonotoneInterpolator
from .traits import BootstrapTrait, Discount, ZeroYield, ForwardRate, create_trait
from .instruments import (
    RateHelper,
    RelativeDateRateHelper,
    DepositRateHelper,
    FraRateHelper,
    FuturesRateHelper,
    SwapRateHelper,
    FixedRateBondHelper,
    IborIborBasisSwapRateHelper,
)

__all__ = [
    "CurveNode",
    "YieldTermStructure",
    "InterpolatedCurve",
    "FlatForward",
    "create_flat_curve",
    "PiecewiseYieldCurve",
    "IterativeBootstrap",
    "LocalBootstrap",
    "BootstrapResult",
    "bootstrap_from_quotes",
    "helpers_from_quotes",
    "repricing_errors",
    "Interpolator",
    "LinearInterpolator",
    "LogLinearInterpolator",
    "CubicSplineInterpolator",
    "LogCubicInterpolator",
    "BackwardFlatInterpolator",
    "ConvexMonotoneInterpolator",
    "create_interpolator",
    "BootstrapTrait",
    "Discount",
    "ZeroYield",
    "ForwardRate",
    "create_trait",
    "RateHelper",
    "RelativeDateRateHelper",
    "DepositRateHelper",
    "FraRateHelper",
    "FuturesRateHelper",
    "SwapRateHelper",
    "FixedRateBondHelper",
    "IborIborBasisSwapRateHelper",
]
