"""
Piecewise yield curve bootstrapped from market instruments.

The curve observes its helpers (and through them their quotes), so any
quote change marks it dirty; the next query re-runs the bootstrap,
warm-started from the previous solution.

Example:
    >>> curve = PiecewiseYieldCurve(helpers, Discount(), LogLinearInterpolator(),
    ...                             reference_date=date(2024, 1, 17))
    >>> curve.discount(date(2025, 1, 17))
"""

from datetime import date
from typing import List, Optional, Sequence, Union

from ..conventions import DayCount
from ..dates import Calendar
from ..errors import CurveConfigurationError
from ..handles import Handle
from ..quotes import Quote, SimpleQuote
from .bootstrap import IterativeBootstrap, check_rate_signs
from .curve import InterpolatedCurve
from .instruments import RateHelper
from .interpolation import Interpolator
from .traits import BootstrapTrait


class PiecewiseYieldCurve(InterpolatedCurve):
    """
    Yield curve whose nodes are solved so that every helper reprices.

    Attributes:
        trait: Interpolated quantity (Discount, ZeroYield or ForwardRate)
        accuracy: Solver tolerance on node values
        bootstrap: Bootstrap engine (IterativeBootstrap by default)
    """

    def __init__(
        self,
        helpers: Sequence[RateHelper],
        trait: BootstrapTrait,
        interpolator: Interpolator,
        reference_date: Optional[date] = None,
        day_count: DayCount = DayCount.ACT_365,
        settlement_days: Optional[int] = None,
        calendar: Optional[Calendar] = None,
        bootstrap=None,
        accuracy: float = 1.0e-12,
        jumps: Sequence[Union[Handle, Quote, float]] = (),
        jump_dates: Sequence[date] = ()
    ):
        super().__init__(
            trait, interpolator,
            reference_date=reference_date,
            day_count=day_count,
            settlement_days=settlement_days,
            calendar=calendar,
            jumps=jumps,
            jump_dates=jump_dates,
        )
        if not helpers:
            raise CurveConfigurationError("no bootstrap helpers given")
        if accuracy <= 0.0:
            raise CurveConfigurationError(f"accuracy must be positive: {accuracy}")
        self._helpers: List[RateHelper] = list(helpers)
        self._interpolator_prototype = interpolator
        self.accuracy = accuracy
        self.bootstrap = bootstrap if bootstrap is not None else IterativeBootstrap()
        self.bootstrap.setup(self)
        self._check_pillars()
        check_rate_signs(self._helpers, interpolator)

    def __repr__(self) -> str:
        return (f"PiecewiseYieldCurve(reference={self.reference_date}, trait={self.trait.name}, "
                f"interpolator={self._interpolator_prototype.name}, helpers={len(self._helpers)})")

    def _check_pillars(self) -> None:
        pillars = sorted(h.pillar_date() for h in self._helpers)
        for earlier, later in zip(pillars[:-1], pillars[1:]):
            if earlier == later:
                raise CurveConfigurationError(f"more than one instrument with pillar {later}")

    @property
    def helpers(self) -> List[RateHelper]:
        """Helpers sorted by pillar date, linked to this curve."""
        self.calculate()
        return list(self._helpers)

    def perform_calculations(self) -> None:
        self.bootstrap.calculate(self)

    def clone(self) -> InterpolatedCurve:
        """
        Frozen snapshot of the current curve.

        The snapshot copies nodes, interpolator, jump values, reference
        date and extrapolation flag; later quote changes do not reach it.
        """
        self.calculate()
        snapshot = InterpolatedCurve(
            self.trait,
            self._interpolator.copy(),
            reference_date=self.reference_date,
            day_count=self.day_count,
            calendar=self.calendar,
            jumps=[SimpleQuote(j.current_link().value()) for j in self._jumps],
            jump_dates=self.jump_dates() if self._jumps else (),
        )
        snapshot._set_nodes(list(self._dates), list(self._data))
        snapshot._active = self._active
        if self._extrapolate:
            snapshot.enable_extrapolation()
        snapshot.calculate()
        snapshot.freeze()
        return snapshot


__all__ = [
    "PiecewiseYieldCurve",
]
