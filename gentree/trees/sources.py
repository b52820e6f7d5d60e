"""
Sources a node's distribution can be built from.

A source is a vocabulary (any iterable), an explicit distribution (mapping of
element -> probability summing to exactly 1.0) or a WeightedChoice to copy.
"""

from __future__ import annotations

from typing import Hashable, Iterable, Mapping, Union

from gentree.choice import WeightedChoice
from gentree.common.schemas import TreeParams

ChoiceSource = Union[Iterable[Hashable], Mapping[Hashable, float], WeightedChoice]


def materialize(source: ChoiceSource) -> ChoiceSource:
    """Turn one-shot iterables into lists so a source can build many nodes."""
    if source is None or isinstance(source, (Mapping, WeightedChoice, list, tuple)):
        return source
    return list(source)


def make_choice(source: ChoiceSource, params: TreeParams) -> WeightedChoice:
    """Build a fresh, independently owned WeightedChoice from source."""
    if isinstance(source, WeightedChoice):
        choice = source.copy()
        choice.params = params
        return choice
    if isinstance(source, Mapping):
        return WeightedChoice.from_distribution(source, params=params)
    return WeightedChoice(source, params=params)
