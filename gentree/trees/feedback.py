"""
Feedback along an observed sequence.

reinforce() nudges, at every level, the local choice the sequence made: the
root for sequence[0], the child keyed by sequence[0] for sequence[1], and so
on. This is the same path generate() takes to produce that sequence from an
empty window.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import TYPE_CHECKING, Hashable, List, Sequence

from gentree.common.errors import ArgumentError, require_open_unit

if TYPE_CHECKING:
    from .tree import GenerativeTree

logger = logging.getLogger(__name__)


def reinforce(
    tree: GenerativeTree,
    sequence: Sequence[Hashable],
    strength: float,
    positive: bool = True,
) -> List[float]:
    """
    Reinforce sequence positively or negatively, one level per element.

    Args:
        tree: Node the sequence starts from
        sequence: Non-empty list or tuple of elements, no longer than the
            path it describes
        strength: Fraction in (0, 1) passed to each node's reinforcement
        positive: True to encourage the sequence, False to discourage it

    Returns:
        New probability of each element at its level

    Raises:
        ArgumentError: If the sequence is empty, strength is out of range, or
            the sequence leaves the tree. Nothing is mutated in that case.
    """
    if not isinstance(sequence, (list, tuple)):
        raise ArgumentError(
            f"sequence must be a list or tuple, got {type(sequence).__name__}"
        )
    if len(sequence) == 0:
        raise ArgumentError("sequence must contain at least one element")
    strength = require_open_unit("strength", strength)

    with ExitStack() as stack:
        nodes = []
        node = tree
        for i, element in enumerate(sequence):
            stack.enter_context(node._lock)
            if element not in node.choice:
                raise ArgumentError(
                    f"{element!r} at position {i} is not in the distribution "
                    f"at level {node.level}"
                )
            nodes.append(node)
            if i < len(sequence) - 1:
                node = node.child(element)
                if node is None:
                    raise ArgumentError(
                        f"sequence is longer than the tree: no subtree follows "
                        f"{element!r} at position {i}"
                    )

        results = []
        for node, element in zip(nodes, sequence):
            if positive:
                results.append(node.choice.reinforce_positive(element, strength))
            else:
                results.append(node.choice.reinforce_negative(element, strength))
        logger.debug(
            f"{'Positive' if positive else 'Negative'} feedback "
            f"strength={strength} on {list(sequence)!r}"
        )
        return results
