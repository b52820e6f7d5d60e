"""
Whole-tree structural edits.

Every edit validates its arguments before touching the tree, then walks it
from the given node downwards holding each node's lock while it recurses into
the children, so locks are always taken parent before child.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import TYPE_CHECKING, Hashable, Optional

from gentree.choice import WeightedChoice
from gentree.common.errors import ArgumentError, require_open_unit

from .sources import ChoiceSource, make_choice, materialize

if TYPE_CHECKING:
    from .tree import GenerativeTree

logger = logging.getLogger(__name__)


def add_layer(tree: GenerativeTree, choices: ChoiceSource) -> int:
    """
    Append a layer below every leaf.

    Each leaf node gets one new child per element of its distribution, built
    from choices.

    Args:
        tree: Root of the subtree to grow
        choices: Vocabulary or explicit distribution for the new nodes

    Returns:
        Number of nodes added
    """
    choices = materialize(choices)
    template = make_choice(choices, tree.params)
    added = _add_layer(tree, choices)
    logger.info(
        f"Added layer of {len(template)} elements: {added} new nodes, "
        f"depth now {tree.depth()}"
    )
    return added


def _add_layer(node: GenerativeTree, choices: ChoiceSource) -> int:
    with node._lock:
        if node.is_leaf():
            for element in node.choice.elements:
                node._children[element] = node._spawn(choices, 1)
            return len(node.choice)
        return sum(_add_layer(child, choices) for child in list(node._children.values()))


def add_to_all(
    tree: GenerativeTree,
    element: Hashable,
    probability: Optional[float] = None,
    child_choices: Optional[ChoiceSource] = None,
) -> None:
    """
    Add element to every distribution in the subtree.

    Existing entries keep their learned probability; remove the element first
    to reset it. Nodes that have children but none for element get a new
    subtree built from child_choices (when given), as deep as its siblings;
    new subtrees are recursed into like any other child.

    Raises:
        ArgumentError: If any node could not take element; checked on the
            whole subtree before the first node changes
    """
    if element is None:
        raise ArgumentError("element must not be None")
    if probability is not None:
        probability = require_open_unit("probability", probability)
    child_choices = materialize(child_choices)
    template = None
    if child_choices is not None:
        template = make_choice(child_choices, tree.params)
    with ExitStack() as stack:
        _check_insertable(tree, element, template, stack)
        _add_to_all(tree, element, probability, child_choices)


def _check_insertable(
    node: GenerativeTree,
    element: Hashable,
    template: Optional[WeightedChoice],
    stack: ExitStack,
) -> None:
    stack.enter_context(node._lock)
    node.choice.check_insertable(element)
    if template is not None and node._children and element not in node._children:
        template.check_insertable(element)
    for child in node._children.values():
        _check_insertable(child, element, template, stack)


def _add_to_all(
    node: GenerativeTree,
    element: Hashable,
    probability: Optional[float],
    child_choices: Optional[ChoiceSource],
) -> None:
    with node._lock:
        node.add(element, probability, child_choices)
        for child in list(node._children.values()):
            _add_to_all(child, element, probability, child_choices)


def remove_from_all(tree: GenerativeTree, element: Hashable) -> int:
    """
    Remove element from every distribution in the subtree.

    Nodes at the floor size keep it.

    Returns:
        Number of nodes the element was removed from
    """
    with tree._lock:
        removed = 1 if tree.remove(element) else 0
        for child in list(tree._children.values()):
            removed += remove_from_all(child, element)
        return removed


def prune_all(tree: GenerativeTree, threshold: Optional[float] = None) -> int:
    """
    Prune every distribution in the subtree.

    Returns:
        Number of entries removed
    """
    if threshold is not None:
        threshold = require_open_unit("threshold", threshold)
    with tree._lock:
        removed = len(tree.prune(threshold))
        for child in list(tree._children.values()):
            removed += prune_all(child, threshold)
        return removed
