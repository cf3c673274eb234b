"""Numerical utilities."""

from .rootfinding import RootResult, RootFindingError, bracket_root, solve_bounded

__all__ = [
    "RootResult",
    "RootFindingError",
    "bracket_root",
    "solve_bounded",
]
