"""
Exception hierarchy for curve construction and queries.

Provides:
- CurveError: Root of all library errors
- CurveConfigurationError: Invalid helper sets or trait/interpolator choices
- InvalidQuoteError: Empty or invalid market quotes
- ConvergenceError: Bootstrap failed to reprice an instrument
- ExtrapolationError: Query outside the curve's range
- HelperNotReadyError: Helper queried before a term structure was set
- EmptyHandleError: Dereferencing an unlinked handle

Most classes also derive from the builtin exception the condition
corresponds to (ValueError / RuntimeError), so callers catching those
keep working.
"""

from datetime import date
from typing import Optional


class CurveError(Exception):
    """Base class for curvelib errors."""


class CurveConfigurationError(CurveError, ValueError):
    """Raised when a curve cannot be built from the given configuration."""


class InvalidQuoteError(CurveError, ValueError):
    """Raised when a quote is empty or flagged invalid."""


class EmptyHandleError(CurveError, RuntimeError):
    """Raised when an empty handle is dereferenced."""


class HelperNotReadyError(CurveError, RuntimeError):
    """Raised when a rate helper is evaluated without a term structure."""


class ExtrapolationError(CurveError, ValueError):
    """
    Raised when a curve is queried outside its range.

    Attributes:
        requested: Requested date or time
        max_date: Last date (or time) the curve covers
    """

    def __init__(self, message: str, requested=None, max_date=None):
        super().__init__(message)
        self.requested = requested
        self.max_date = max_date


class ConvergenceError(CurveError, RuntimeError):
    """
    Raised when the bootstrap cannot reprice an instrument.

    Attributes:
        instrument_index: Position of the failing helper (sorted by pillar),
            1-based to match the curve node it solves
        pillar_date: Pillar date of the failing helper
        residual: Last quote error observed
        tolerance: Accuracy that was requested
        iteration: Bootstrap pass in which the failure occurred
    """

    def __init__(
        self,
        message: str,
        instrument_index: int,
        pillar_date: Optional[date],
        residual: float,
        tolerance: float,
        iteration: int,
    ):
        self.message = message
        self.instrument_index = instrument_index
        self.pillar_date = pillar_date
        self.residual = residual
        self.tolerance = tolerance
        self.iteration = iteration
        super().__init__(str(self))

    def __str__(self) -> str:
        return (
            f"{self.message} (instrument {self.instrument_index}, "
            f"pillar {self.pillar_date}, residual {self.residual:.3e}, "
            f"tolerance {self.tolerance:.1e}, iteration {self.iteration})"
        )


__all__ = [
    "CurveError",
    "CurveConfigurationError",
    "InvalidQuoteError",
    "EmptyHandleError",
    "HelperNotReadyError",
    "ExtrapolationError",
    "ConvergenceError",
]
