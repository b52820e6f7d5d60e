"""
Gentree: small, mutable, explainable sequence generators.

A GenerativeTree samples each element from a distribution conditioned on the
elements before it and adapts those distributions from positive and negative
feedback.
"""

__version__ = "0.1.0"

from .common import (
    ArgumentError,
    GenerativeTreeError,
    StateError,
    TreeParams,
)
from .common import rng
from .choice import WeightedChoice
from .trees import GenerativeTree

__all__ = [
    "ArgumentError",
    "GenerativeTree",
    "GenerativeTreeError",
    "StateError",
    "TreeParams",
    "WeightedChoice",
    "rng",
]
