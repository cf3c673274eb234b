"""
Pricers package - instrument pricing.

Provides pricing engines for:
- Fixed rate bonds
- Vanilla fixed-float interest rate swaps

The curve helpers price their instruments with the same engines.
"""

from .bonds import (
    BondPricer,
    BondCashflow,
    FixedRateBond,
)
from .swaps import (
    BASIS_POINT,
    SwapPricer,
    SwapCashflows,
    SwapLegCashflow,
    FixedFloatSwap,
    make_vanilla_swap,
    floating_rate,
)

__all__ = [
    "BondPricer",
    "BondCashflow",
    "FixedRateBond",
    "BASIS_POINT",
    "SwapPricer",
    "SwapCashflows",
    "SwapLegCashflow",
    "FixedFloatSwap",
    "make_vanilla_swap",
    "floating_rate",
]
