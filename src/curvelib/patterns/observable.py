"""
Observer/observable notification graph.

Provides:
- Observable: Keeps weak references to its observers and notifies them
- Observer: Registers with observables and reacts in update()

A mutation calls ``notify_observers()`` once. The call walks the whole
graph of transitive observers depth-first and calls ``update()`` on each
of them exactly once, even when the graph contains diamonds (for example
a quote feeding both a helper and, through the helper, a curve that a
pricer also observes directly).

``update()`` must only flag state; forwarding is done by the traversal.
The graph must be acyclic.
"""

import logging
import weakref
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class Observable:
    """Object whose mutations are broadcast to registered observers."""

    def __init__(self):
        self._observer_refs: List[weakref.ref] = []

    def _register_observer(self, observer: "Observer") -> None:
        for ref in self._observer_refs:
            if ref() is observer:
                return
        self._observer_refs.append(weakref.ref(observer))

    def _unregister_observer(self, observer: "Observer") -> None:
        self._observer_refs = [
            ref for ref in self._observer_refs
            if ref() is not None and ref() is not observer
        ]

    @property
    def observers(self) -> List["Observer"]:
        """Live observers in registration order."""
        live = []
        alive_refs = []
        for ref in self._observer_refs:
            observer = ref()
            if observer is not None:
                live.append(observer)
                alive_refs.append(ref)
        self._observer_refs = alive_refs
        return live

    def forwards_notifications(self) -> bool:
        """Whether notifications reaching this object continue to its observers."""
        return True

    def notify_observers(self) -> None:
        """
        Notify every transitive observer exactly once.

        Raises:
            RuntimeError: If one or more observers failed; all observers are
                still updated before the error is raised
        """
        visited: Dict[int, Observer] = {}
        stack = list(reversed(self.observers))
        errors = []

        while stack:
            observer = stack.pop()
            if id(observer) in visited:
                continue
            visited[id(observer)] = observer
            try:
                observer.update()
            except Exception as exc:
                logger.error("Observer %r failed to update: %s", observer, exc)
                errors.append(exc)
            if isinstance(observer, Observable) and observer.forwards_notifications():
                stack.extend(reversed(observer.observers))

        if errors:
            raise RuntimeError(
                f"{len(errors)} observer(s) failed during notification: "
                + "; ".join(str(e) for e in errors)
            ) from errors[0]


class Observer(ABC):
    """Object that depends on one or more observables."""

    def __init__(self):
        self._observables: List[Observable] = []

    @property
    def observables(self) -> List[Observable]:
        return list(self._observables)

    def register_with(self, observable: Optional[Observable]) -> None:
        """Subscribe to an observable; None and repeated registrations are ignored."""
        if observable is None:
            return
        if any(o is observable for o in self._observables):
            return
        observable._register_observer(self)
        self._observables.append(observable)

    def unregister_with(self, observable: Optional[Observable]) -> None:
        if observable is None:
            return
        observable._unregister_observer(self)
        self._observables = [o for o in self._observables if o is not observable]

    def unregister_with_all(self) -> None:
        for observable in self._observables:
            observable._unregister_observer(self)
        self._observables = []

    @abstractmethod
    def update(self) -> None:
        """React to a notification from an observed object."""


__all__ = [
    "Observable",
    "Observer",
]
