"""
Lazily recalculated objects.

A LazyObject is marked dirty when any of its dependencies notifies and
recomputes on the next request for results.
"""

import logging
from enum import Enum

from .observable import Observable, Observer

logger = logging.getLogger(__name__)


class CalculationState(Enum):
    """Calculation state of a lazy object."""
    DIRTY = "dirty"
    VALID = "valid"


class LazyObject(Observable, Observer):
    """
    Base class for objects whose results are computed on demand.

    Subclasses implement ``perform_calculations()`` and call
    ``calculate()`` at the top of every public query.
    """

    def __init__(self):
        Observable.__init__(self)
        Observer.__init__(self)
        self._state = CalculationState.DIRTY
        self._frozen = False

    @property
    def state(self) -> CalculationState:
        return self._state

    @property
    def is_calculated(self) -> bool:
        return self._state is CalculationState.VALID

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def update(self) -> None:
        if not self._frozen:
            self._state = CalculationState.DIRTY

    def forwards_notifications(self) -> bool:
        return not self._frozen

    def calculate(self) -> None:
        """Run perform_calculations() if the object is dirty and not frozen."""
        if self._state is CalculationState.DIRTY and not self._frozen:
            # set first so that queries made during the calculation don't recurse
            self._state = CalculationState.VALID
            try:
                self.perform_calculations()
            except Exception:
                self._state = CalculationState.DIRTY
                raise

    def recalculate(self) -> None:
        """Force a recalculation, even if frozen, and notify observers."""
        was_frozen = self._frozen
        self._frozen = False
        self._state = CalculationState.DIRTY
        try:
            self.calculate()
        finally:
            self._frozen = was_frozen
        self.notify_observers()

    def freeze(self) -> None:
        """Stop reacting to notifications; results stay as they are."""
        self._frozen = True

    def unfreeze(self) -> None:
        """Resume reacting to notifications and recompute on next request."""
        if self._frozen:
            self._frozen = False
            self._state = CalculationState.DIRTY
            self.notify_observers()

    def perform_calculations(self) -> None:
        raise NotImplementedError


__all__ = [
    "CalculationState",
    "LazyObject",
]
