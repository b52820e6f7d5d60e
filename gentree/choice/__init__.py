"""
Single-layer weighted choice.

WeightedChoice is the distribution every GenerativeTree node owns; used on its
own it is a memoryless sampler.
"""

from .weighted_choice import WeightedChoice

__all__ = ["WeightedChoice"]
