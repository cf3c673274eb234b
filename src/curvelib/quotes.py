"""
Market quotes.

Provides:
- Quote: Abstract observable scalar
- SimpleQuote: Settable quote that notifies when its value changes
- DerivedQuote: Quote computed from another quote through a function
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from .errors import InvalidQuoteError
from .patterns import Observable, Observer


class Quote(Observable, ABC):
    """Observable market value."""

    @abstractmethod
    def value(self) -> float:
        """Current value; raises InvalidQuoteError when invalid."""

    @abstractmethod
    def is_valid(self) -> bool:
        """Whether the quote currently holds a usable value."""


class SimpleQuote(Quote):
    """
    Quote holding a settable value.

    Attributes:
        name: Optional label used in messages
    """

    def __init__(self, value: Optional[float] = None, name: str = ""):
        super().__init__()
        self.name = name
        self._value = None if value is None else float(value)

    def __repr__(self) -> str:
        label = f"{self.name}=" if self.name else ""
        return f"SimpleQuote({label}{self._value})"

    def value(self) -> float:
        if self._value is None:
            raise InvalidQuoteError(f"invalid quote {self.name or repr(self)}")
        return self._value

    def is_valid(self) -> bool:
        return self._value is not None

    def set_value(self, value: Optional[float]) -> float:
        """
        Set a new value, notifying observers only if it changed.

        Returns:
            Difference between the new and the old value (0 if either is unset)
        """
        new = None if value is None else float(value)
        if new == self._value:
            return 0.0
        diff = new - self._value if new is not None and self._value is not None else 0.0
        self._value = new
        self.notify_observers()
        return diff

    def reset(self) -> None:
        """Invalidate the quote."""
        self.set_value(None)


class DerivedQuote(Quote, Observer):
    """Quote equal to ``func(underlying.value())``."""

    def __init__(self, underlying, func: Callable[[float], float]):
        Quote.__init__(self)
        Observer.__init__(self)
        # local import to avoid a cycle with handles
        from .handles import as_handle
        self.underlying = as_handle(underlying)
        self.func = func
        self.register_with(self.underlying)

    def value(self) -> float:
        if not self.is_valid():
            raise InvalidQuoteError("invalid underlying quote")
        return float(self.func(self.underlying.current_link().value()))

    def is_valid(self) -> bool:
        return not self.underlying.empty() and self.underlying.current_link().is_valid()

    def update(self) -> None:
        pass


__all__ = [
    "Quote",
    "SimpleQuote",
    "DerivedQuote",
]
