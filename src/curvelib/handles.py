"""
Handles - indirection to shared market objects.

Provides:
- Handle: Reference to an object that forwards its notifications
- RelinkableHandle: Handle whose target can be swapped at runtime
- as_handle / quote_handle: Coerce objects and floats into handles
"""

from typing import Optional, Union

from .errors import EmptyHandleError
from .patterns import Observable, Observer
from .quotes import Quote, SimpleQuote


class Handle(Observable, Observer):
    """
    Reference to an observable object.

    Observers of the handle are notified whenever the linked object
    notifies (if the handle registers with it) and when the handle is
    relinked.
    """

    def __init__(self, link: Optional[Observable] = None, register_as_observer: bool = True):
        Observable.__init__(self)
        Observer.__init__(self)
        self._link = None
        self._is_observer = False
        self._set_link(link, register_as_observer)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._link!r})"

    def _set_link(self, link: Optional[Observable], register_as_observer: bool) -> bool:
        if link is self._link and register_as_observer == self._is_observer:
            return False
        if self._link is not None and self._is_observer:
            self.unregister_with(self._link)
        self._link = link
        self._is_observer = register_as_observer
        if link is not None and register_as_observer:
            self.register_with(link)
        return True

    @property
    def link(self):
        """Linked object, possibly None."""
        return self._link

    def current_link(self):
        """
        Linked object.

        Raises:
            EmptyHandleError: If nothing is linked
        """
        if self._link is None:
            raise EmptyHandleError("empty handle cannot be dereferenced")
        return self._link

    def empty(self) -> bool:
        return self._link is None

    def update(self) -> None:
        pass


class RelinkableHandle(Handle):
    """Handle that can be pointed at a different object."""

    def link_to(self, link: Optional[Observable], register_as_observer: bool = True) -> None:
        """
        Point the handle at a new object and notify observers.

        Relinking to the current object with the same registration flag is a no-op.
        """
        if self._set_link(link, register_as_observer):
            self.notify_observers()


def as_handle(obj: Union[Handle, Observable, None]) -> Handle:
    """Wrap an object in a Handle unless it already is one."""
    if isinstance(obj, Handle):
        return obj
    return Handle(obj)


def quote_handle(value: Union[Handle, Quote, float]) -> Handle:
    """Handle to a quote, building a SimpleQuote for plain numbers."""
    if isinstance(value, Handle):
        return value
    if isinstance(value, Quote):
        return Handle(value)
    return Handle(SimpleQuote(float(value)))


__all__ = [
    "Handle",
    "RelinkableHandle",
    "as_handle",
    "quote_handle",
]
