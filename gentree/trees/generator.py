"""
Cursor-driven generation.

The nodes whose cursors are set always form one path from the root: the root's
cursor names the oldest element of the window, each cursor selects the child
holding the next one. A step either extends that path by one node or, once
the path cannot go deeper, slides the window: the oldest element is dropped,
the remaining history is replayed from the root and the node it reaches
samples the new element.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import TYPE_CHECKING, Hashable, List, Optional, Sequence

from gentree.common.errors import ArgumentError, StateError

if TYPE_CHECKING:
    from .tree import GenerativeTree

logger = logging.getLogger(__name__)


def cursor_path(
    tree: GenerativeTree, stack: Optional[ExitStack] = None, strict: bool = True
) -> List[GenerativeTree]:
    """
    Nodes holding the current window, root first.

    Args:
        tree: Root of the walk
        stack: If given, each visited node's lock is entered on it
        strict: Raise StateError when a cursor names an element that has been
            removed (even if it was added back since); otherwise stop the
            walk there

    Returns:
        Nodes with a cursor, in window order (empty before the first step)
    """
    path = []
    node = tree
    while node is not None:
        if stack is not None:
            stack.enter_context(node._lock)
        if node.cursor is None:
            break
        if node._cursor_stale or node.cursor not in node.choice:
            if strict:
                raise StateError(
                    f"Cursor {node.cursor!r} at level {node.level} names a removed "
                    f"element; call clear_history() after structural edits"
                )
            break
        path.append(node)
        node = node.child(node.cursor)
    return path


def generate(tree: GenerativeTree) -> Hashable:
    """
    Produce the next element from tree.

    Returns:
        An element of the vocabulary of the node that sampled it

    Raises:
        StateError: If the cursor chain points at removed elements
    """
    with ExitStack() as stack:
        path = cursor_path(tree, stack)
        if not path:
            return _emit(tree)

        last = path[-1]
        following = last.child(last.cursor)
        if following is not None:
            return _emit(following)

        history = [node.cursor for node in path]
        for node in path:
            node.cursor = None
        return _slide(tree, history[1:], stack)


def generate_sequence(tree: GenerativeTree, n: int) -> List[Hashable]:
    """Produce n consecutive elements from tree."""
    if isinstance(n, bool) or not isinstance(n, int) or n < 0:
        raise ArgumentError(f"n must be a non-negative integer, got {n!r}")
    return [generate(tree) for _ in range(n)]


def _emit(node: GenerativeTree) -> Hashable:
    value = node.choice.sample()
    node.cursor = value
    node._cursor_stale = False
    return value


def _slide(tree: GenerativeTree, history: List[Hashable], stack: ExitStack) -> Hashable:
    dropped = 1
    nodes = _walk(tree, history, stack)
    while nodes is None:
        # History that no longer maps onto the tree loses its oldest element
        history = history[1:]
        dropped += 1
        nodes = _walk(tree, history, stack)
    logger.debug(f"Window slid by {dropped}, conditioning on {history!r}")
    for node, element in zip(nodes, history):
        node.cursor = element
        node._cursor_stale = False
    return _emit(nodes[-1])


def _walk(
    tree: GenerativeTree, history: Sequence[Hashable], stack: ExitStack
) -> Optional[List[GenerativeTree]]:
    """Nodes visited replaying history from tree, or None if it leaves the tree."""
    nodes = [tree]
    node = tree
    for element in history:
        if element not in node.choice:
            return None
        node = node.child(element)
        if node is None:
            return None
        stack.enter_context(node._lock)
        nodes.append(node)
    return nodes
