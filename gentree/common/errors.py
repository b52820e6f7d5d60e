"""
Exceptions raised by generative trees.

ArgumentError is a contract violation detected before any mutation.
StateError means the tree no longer matches the state an operation relies on.
"""

from __future__ import annotations


class GenerativeTreeError(Exception):
    """Base class for all gentree errors."""


class ArgumentError(GenerativeTreeError, ValueError):
    """Invalid input; the tree is left untouched."""


class StateError(GenerativeTreeError, RuntimeError):
    """Generation context points at elements or children that no longer exist."""


def require_open_unit(name: str, value) -> float:
    """Return value as a float, or raise ArgumentError unless 0 < value < 1."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ArgumentError(f"{name} must be a number, got {value!r}") from None
    if not 0.0 < value < 1.0:
        raise ArgumentError(
            f"{name} must be between 0.0 and 1.0 (exclusive), got {value}"
        )
    return float(value)
