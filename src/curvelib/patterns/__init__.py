"""
Patterns package - notification and lazy evaluation building blocks.

Provides:
- Observable / Observer: Weakly-referenced notification graph
- LazyObject: Dirty/valid state machine with deferred recomputation
"""

from .observable import Observable, Observer
from .lazy import CalculationState, LazyObject

__all__ = [
    "Observable",
    "Observer",
    "CalculationState",
    "LazyObject",
]
