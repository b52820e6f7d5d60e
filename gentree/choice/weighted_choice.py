"""
Weighted choice over a finite vocabulary.

Key design principles:
- Probabilities live in a dict kept in ascending element order
- The values always sum to exactly 1.0, added left to right in enumeration
  order, after every mutation
- Reinforcement moves mass onto or away from one element and rescales the rest
- Structural edits (add/remove/prune) never go below the configured floor size
"""

from __future__ import annotations

import logging
import math
import threading
from types import MappingProxyType
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from gentree.common import rng
from gentree.common.errors import ArgumentError, require_open_unit
from gentree.common.schemas import TreeParams

logger = logging.getLogger(__name__)

# Smallest positive double; a negatively reinforced element never drops to it
SMALLEST_PROBABILITY = math.ulp(0.0)

_MAX_ROUNDING_PASSES = 4


def _ordered(elements: Iterable[Hashable]) -> List[Hashable]:
    try:
        return sorted(elements)
    except TypeError as e:
        raise ArgumentError(f"Elements must be mutually comparable: {e}") from e


def _plain_sum(values: Iterable[float]) -> float:
    # Left to right; builtin sum() compensates on newer interpreters
    total = 0.0
    for p in values:
        total += p
    return total


class WeightedChoice:
    """
    Normalized probability distribution that can be sampled and reinforced.

    Attributes:
        params: TreeParams (floor size) shared with the owning tree
        rounding_error: Residual added by the most recent rounding fix
    """

    def __init__(
        self,
        choices: Iterable[Hashable],
        probabilities: Optional[Sequence[float]] = None,
        params: Optional[TreeParams] = None,
    ):
        """
        Build a distribution over choices.

        Args:
            choices: Vocabulary to pick from
            probabilities: Optional probabilities parallel to choices; must sum
                to exactly 1.0. Uniform when omitted.
            params: TreeParams, defaults to TreeParams()

        Raises:
            ArgumentError: On empty input, None elements, duplicates,
                mismatched lengths or a sum other than 1.0
        """
        if choices is None:
            raise ArgumentError("choices must not be None")
        if isinstance(choices, Mapping):
            raise ArgumentError(
                "Use WeightedChoice.from_distribution() for explicit distributions"
            )
        choices = list(choices)
        if not choices:
            raise ArgumentError("Must have at least 1 element in choices")
        if any(c is None for c in choices):
            raise ArgumentError("choices must not contain None")

        if probabilities is None:
            unique = _ordered(set(choices))
            entries = {c: 1.0 / len(unique) for c in unique}
        else:
            probabilities = list(probabilities)
            if len(probabilities) != len(choices):
                raise ArgumentError(
                    f"choices and probabilities must have the same length "
                    f"({len(choices)} != {len(probabilities)})"
                )
            if len(set(choices)) != len(choices):
                raise ArgumentError("choices must not contain duplicates")
            entries = dict(zip(choices, probabilities))
            entries = {c: entries[c] for c in _ordered(entries)}
            self._validate_distribution(entries)
            entries = {c: float(p) for c, p in entries.items()}

        self.params = params if params is not None else TreeParams()
        self.rounding_error = 0.0
        self._probs: Dict[Hashable, float] = entries
        self._lock = threading.RLock()
        self._fix_rounding()

    @classmethod
    def from_distribution(
        cls, distribution: Mapping[Hashable, float], params: Optional[TreeParams] = None
    ) -> WeightedChoice:
        """
        Build from an explicit element -> probability mapping.

        The mapping is copied; values must already sum to exactly 1.0.
        """
        if distribution is None:
            raise ArgumentError("distribution must not be None")
        if not isinstance(distribution, Mapping):
            raise ArgumentError("distribution must be a mapping")
        if len(distribution) == 0:
            raise ArgumentError("Must have at least 1 entry in the distribution")
        keys = list(distribution.keys())
        return cls(keys, [distribution[k] for k in keys], params=params)

    @staticmethod
    def _validate_distribution(entries: Mapping[Hashable, float]) -> None:
        if any(k is None for k in entries):
            raise ArgumentError("distribution must not contain None elements")
        for element, p in entries.items():
            if isinstance(p, bool) or not isinstance(p, (int, float, np.floating)):
                raise ArgumentError(f"Probability of {element!r} is not a number: {p!r}")
            if not 0.0 < p <= 1.0:
                raise ArgumentError(
                    f"Probability of {element!r} must be in (0.0, 1.0], got {p}"
                )
        total = _plain_sum(float(p) for p in entries.values())
        if total != 1.0:
            raise ArgumentError(
                f"Probabilities must add up to exactly 1.0, got {total!r}"
            )

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def probabilities(self) -> Mapping[Hashable, float]:
        """Live read-only view of the distribution."""
        return MappingProxyType(self._probs)

    @property
    def elements(self) -> tuple:
        return tuple(self._probs)

    def probability(self, element: Hashable) -> Optional[float]:
        """Probability of element, or None if it is not in the vocabulary."""
        return self._probs.get(element)

    def as_array(self) -> np.ndarray:
        """Probabilities in enumeration order."""
        with self._lock:
            return np.fromiter(self._probs.values(), dtype=float, count=len(self._probs))

    def total(self) -> float:
        """Sum of the probabilities in enumeration order."""
        return _plain_sum(self._probs.values())

    def __len__(self) -> int:
        return len(self._probs)

    def __contains__(self, element: Any) -> bool:
        return element in self._probs

    def __iter__(self):
        return iter(self.elements)

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def sample(self) -> Hashable:
        """
        Draw one element.

        Walks the entries in enumeration order and returns the first whose
        cumulative mass exceeds a uniform draw from [0, 1).
        """
        with self._lock:
            return self._pick(rng.uniform())

    def _pick(self, r: float) -> Hashable:
        elements = list(self._probs)
        cumulative = np.cumsum(np.fromiter(self._probs.values(), dtype=float))
        index = int(np.searchsorted(cumulative, r, side="right"))
        # A draw above the accumulated mass can only come from rounding
        return elements[min(index, len(elements) - 1)]

    # ------------------------------------------------------------------
    # Reinforcement
    # ------------------------------------------------------------------

    def reinforce_positive(self, element: Hashable, strength: float) -> float:
        """
        Make element more likely.

        Args:
            element: Element to reinforce
            strength: Fraction in (0, 1); applied to P when P <= 0.5 and to
                1 - P otherwise

        Returns:
            The element's new probability (unchanged when the increase would
            reach 1.0)
        """
        strength = require_open_unit("strength", strength)
        with self._lock:
            old = self._require(element)
            delta = strength * (1.0 - old) if old > 0.5 else strength * old
            if old + delta >= 1.0 or len(self._probs) == 1:
                logger.debug(f"Positive reinforcement of {element!r} saturated at {old}")
                return old
            return self._reassign(element, old, old + delta)

    def reinforce_negative(self, element: Hashable, strength: float) -> float:
        """
        Make element less likely.

        Returns:
            The element's new probability (unchanged when it would fall to the
            smallest positive double)
        """
        strength = require_open_unit("strength", strength)
        with self._lock:
            old = self._require(element)
            new = old - strength * old
            if new <= SMALLEST_PROBABILITY or len(self._probs) == 1:
                logger.debug(f"Negative reinforcement of {element!r} floored at {old}")
                return old
            return self._reassign(element, old, new)

    def set_probability(self, element: Hashable, probability: float) -> float:
        """Set element's probability directly and rescale everything else."""
        probability = require_open_unit("probability", probability)
        with self._lock:
            old = self._require(element)
            if len(self._probs) == 1:
                raise ArgumentError(
                    "A single-element distribution must keep probability 1.0"
                )
            return self._reassign(element, old, probability)

    def set_probabilities(self, probabilities: Sequence[float]) -> None:
        """Replace all values, in enumeration order."""
        probabilities = list(probabilities)
        with self._lock:
            if len(probabilities) != len(self._probs):
                raise ArgumentError(
                    f"Expected {len(self._probs)} probabilities, got {len(probabilities)}"
                )
            entries = dict(zip(self._probs, probabilities))
            self._validate_distribution(entries)
            for element, p in entries.items():
                self._probs[element] = float(p)
            self._fix_rounding()

    def _require(self, element: Hashable) -> float:
        if element not in self._probs:
            raise ArgumentError(f"{element!r} is not in this distribution")
        return self._probs[element]

    def _reassign(self, element: Hashable, old: float, new: float) -> float:
        scale = (1.0 - new) / (self.total() - old)
        for key in self._probs:
            self._probs[key] *= scale
        self._probs[element] = new
        self._fix_rounding()
        return self._probs[element]

    # ------------------------------------------------------------------
    # Structural edits
    # ------------------------------------------------------------------

    def add(self, element: Hashable, probability: Optional[float] = None) -> bool:
        """
        Add element to the vocabulary.

        Without probability the element gets 1/n of the old mass before
        renormalizing; with probability p in (0, 1) everything else is scaled
        by 1 - p. Existing entries are never overwritten.

        Returns:
            True if the element was added

        Raises:
            ArgumentError: For None, a probability outside (0, 1) or an
                element that cannot be ordered with the others; nothing is
                changed in that case
        """
        if element is None:
            raise ArgumentError("element must not be None")
        if probability is not None:
            probability = require_open_unit("probability", probability)
        with self._lock:
            if element in self._probs:
                return False
            order = _ordered(list(self._probs) + [element])
            if probability is None:
                self._insert(order, element, 1.0 / len(self._probs))
            else:
                for key in self._probs:
                    self._probs[key] *= 1.0 - probability
                self._insert(order, element, probability)
            self._renormalize()
            return True

    def check_insertable(self, element: Hashable) -> None:
        """Raise ArgumentError unless add(element) would be accepted."""
        if element is None:
            raise ArgumentError("element must not be None")
        with self._lock:
            if element not in self._probs:
                _ordered(list(self._probs) + [element])

    def _insert(self, order: List[Hashable], element: Hashable, probability: float) -> None:
        values = dict(self._probs)
        values[element] = probability
        # Rebuild in place so live views stay attached
        self._probs.clear()
        for key in order:
            self._probs[key] = values[key]

    def remove(self, element: Hashable) -> bool:
        """
        Remove element unless that would go below the floor size.

        Returns:
            True if the element was removed
        """
        with self._lock:
            if element not in self._probs:
                return False
            if len(self._probs) - 1 < self.params.floor_size:
                logger.debug(f"Refusing to remove {element!r}: at floor size")
                return False
            del self._probs[element]
            self._renormalize()
            return True

    def prune(self, threshold: Optional[float] = None) -> List[Hashable]:
        """
        Remove the least likely elements.

        Without threshold, removes the entries tied at the minimum; with one,
        removes every entry at or below it. Entries within rounding error of
        the maximum are always kept, a fully tied distribution is left alone
        and removal stops at the floor size.

        Returns:
            Removed elements, least likely first
        """
        if threshold is not None:
            threshold = require_open_unit("threshold", threshold)
        with self._lock:
            if len(self._probs) <= self.params.floor_size:
                return []
            low = min(self._probs.values())
            high = max(self._probs.values())
            if low == high:
                return []
            bound = low if threshold is None else threshold
            ceiling = high - abs(self.rounding_error)
            candidates = sorted(
                (k for k, p in self._probs.items() if p <= bound and p < ceiling),
                key=lambda k: self._probs[k],
            )
            removed = []
            for element in candidates:
                if len(self._probs) <= self.params.floor_size:
                    break
                del self._probs[element]
                removed.append(element)
            if removed:
                self._renormalize()
                logger.debug(f"Pruned {removed!r}")
            return removed

    def clear(self) -> None:
        """Forget learned weights: uniform over the current elements."""
        with self._lock:
            for key in self._probs:
                self._probs[key] = 1.0 / len(self._probs)
            self._fix_rounding()

    def copy(self) -> WeightedChoice:
        """Independent copy with the same elements, weights and params."""
        with self._lock:
            clone = WeightedChoice.__new__(WeightedChoice)
            clone.params = self.params.__copy__()
            clone.rounding_error = self.rounding_error
            clone._probs = dict(self._probs)
            clone._lock = threading.RLock()
            return clone

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def _renormalize(self) -> None:
        scale = 1.0 / self.total()
        for key in self._probs:
            self._probs[key] *= scale
        self._fix_rounding()

    def _fix_rounding(self) -> None:
        keys = list(self._probs)
        for i in range(_MAX_ROUNDING_PASSES):
            residual = 1.0 - self.total()
            if i == 0:
                self.rounding_error = residual
            if residual == 0.0:
                return
            target = keys[0]
            if self._probs[target] + residual <= 0.0:
                target = max(self._probs, key=self._probs.get)
            self._probs[target] += residual
        # Still an ulp off: the last addend closes the sum exactly
        head = _plain_sum(self._probs[k] for k in keys[:-1])
        if head < 1.0:
            self._probs[keys[-1]] = 1.0 - head

    def __repr__(self) -> str:
        return f"WeightedChoice(elements={len(self._probs)}, floor={self.params.floor_size})"

    def __str__(self) -> str:
        return "".join(f"[{k!r} = {p * 100.0:.4f}%]" for k, p in self._probs.items())
