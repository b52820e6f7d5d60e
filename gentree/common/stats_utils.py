"""
Pure statistical utility functions.

Used to inspect what a tree has learned and to check sampled output against a
distribution.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import TYPE_CHECKING, Dict, Hashable, Iterable, Mapping, Sequence, Tuple, Union

import numpy as np
from scipy import stats

if TYPE_CHECKING:
    from gentree.choice import WeightedChoice


def _values(distribution: Union[Mapping[Hashable, float], WeightedChoice]) -> np.ndarray:
    probabilities = getattr(distribution, "probabilities", distribution)
    return np.fromiter(probabilities.values(), dtype=float)


def entropy(distribution: Union[Mapping[Hashable, float], WeightedChoice]) -> float:
    """
    Shannon entropy (nats) of a distribution.

    Args:
        distribution: Element -> probability mapping or WeightedChoice

    Returns:
        Entropy, 0.0 for a single certain element
    """
    probs = _values(distribution)
    # Compute entropy only for non-zero probabilities (0*log(0) = 0 by convention)
    mask = probs > 0
    return float(-np.sum(probs[mask] * np.log(probs[mask])))


def empirical_distribution(
    samples: Iterable[Hashable], elements: Sequence[Hashable]
) -> Dict[Hashable, float]:
    """
    Observed frequency of each element.

    Args:
        samples: Sampled values
        elements: Elements to report, in order; unseen ones get 0.0

    Returns:
        Element -> fraction of samples
    """
    counts = Counter(samples)
    total = sum(counts.values())
    if total == 0:
        return {e: 0.0 for e in elements}
    return {e: counts.get(e, 0) / total for e in elements}


def chi_square_test(
    samples: Sequence[Hashable], expected: Mapping[Hashable, float]
) -> Tuple[float, float]:
    """
    Goodness of fit of samples to expected probabilities.

    Args:
        samples: Sampled values (all must be keys of expected)
        expected: Element -> probability

    Returns:
        (chi-square statistic, p-value)
    """
    elements = list(expected)
    counts = Counter(samples)
    unknown = set(counts) - set(elements)
    if unknown:
        raise ValueError(f"Samples contain elements outside expected: {unknown!r}")
    n = len(samples)
    observed = np.array([counts.get(e, 0) for e in elements], dtype=float)
    probs = np.array([expected[e] for e in elements], dtype=float)
    # scipy requires the sums to agree to a relative tolerance
    f_exp = probs / probs.sum() * n
    result = stats.chisquare(observed, f_exp=f_exp)
    return float(result.statistic), float(result.pvalue)


def transition_counts(
    samples: Sequence[Hashable], order: int
) -> Dict[Tuple[Hashable, ...], Counter]:
    """
    Count which element follows each context of length order.

    Args:
        samples: Consecutive generated values
        order: Context length (depth - 1 for a generative tree)

    Returns:
        Context tuple -> Counter of following elements
    """
    if order < 0:
        raise ValueError(f"order must be non-negative, got {order}")
    table: Dict[Tuple[Hashable, ...], Counter] = defaultdict(Counter)
    for i in range(order, len(samples)):
        table[tuple(samples[i - order : i])][samples[i]] += 1
    return dict(table)
