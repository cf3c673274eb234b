"""
Process-wide settings.

Provides:
- Settings: Singleton holding the global evaluation date
- SavedSettings: Context manager restoring the evaluation date on exit

Settings is itself observable: objects whose dates depend on "today"
register with ``Settings.instance()`` and are notified when the
evaluation date changes.
"""

import logging
from datetime import date
from typing import Optional

from .patterns import Observable

logger = logging.getLogger(__name__)


class Settings(Observable):
    """Global evaluation date."""

    _instance: Optional["Settings"] = None

    def __init__(self):
        super().__init__()
        self._evaluation_date: Optional[date] = None

    @classmethod
    def instance(cls) -> "Settings":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def evaluation_date(self) -> date:
        """Evaluation date; today's date unless explicitly set."""
        return self._evaluation_date or date.today()

    @evaluation_date.setter
    def evaluation_date(self, d: Optional[date]) -> None:
        if d == self._evaluation_date:
            return
        previous = self.evaluation_date
        self._evaluation_date = d
        if self.evaluation_date != previous:
            logger.debug("Evaluation date moved from %s to %s", previous, self.evaluation_date)
            self.notify_observers()

    def reset_evaluation_date(self) -> None:
        """Go back to tracking today's date."""
        self.evaluation_date = None


class SavedSettings:
    """
    Save the evaluation date and restore it on exit.

    Example:
        with SavedSettings():
            Settings.instance().evaluation_date = date(2024, 1, 15)
            ...
    """

    def __enter__(self) -> "SavedSettings":
        self._saved = Settings.instance()._evaluation_date
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        Settings.instance().evaluation_date = self._saved


__all__ = [
    "Settings",
    "SavedSettings",
]
