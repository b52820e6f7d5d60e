"""
Generative tree implementation.

Key design principles:
- Every node owns a WeightedChoice over its local vocabulary
- Children are keyed by element; an element without a child ends generation
  context at that node
- Parents are weak references so subtrees are released with their owner
- Each node records the last element it generated (its cursor); the chain of
  cursors from the root is the history window used for conditioning
"""

from __future__ import annotations

import logging
import threading
import weakref
from types import MappingProxyType
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional

from gentree.choice import WeightedChoice
from gentree.common.errors import ArgumentError
from gentree.common.schema_utils import deterministic_id
from gentree.common.schemas import TreeParams

from . import editing, feedback, generator
from .sources import ChoiceSource, make_choice, materialize

logger = logging.getLogger(__name__)


def _check_depth(depth: Any) -> int:
    if isinstance(depth, bool) or not isinstance(depth, int):
        raise ArgumentError(f"depth must be an integer, got {depth!r}")
    if depth < 1:
        raise ArgumentError(f"depth must be at least 1, got {depth}")
    return depth


class GenerativeTree:
    """
    Node in a generative tree.

    Design:
    - The root's distribution picks the first element
    - The child keyed by the previous element picks the next one, and so on,
      giving an order-(depth - 1) memory model
    - Reinforcement and structural edits mutate nodes in place

    Attributes:
        choice: Distribution over this node's vocabulary
        level: Distance from the root (0 for the root)
        params: TreeParams shared by the whole tree
        cursor: Last element generated by this node, or None
    """

    def __init__(
        self,
        choices: ChoiceSource,
        depth: int = 1,
        params: Optional[TreeParams] = None,
    ):
        """
        Build a tree of the given depth.

        Args:
            choices: Vocabulary (any iterable) or explicit distribution
                (element -> probability mapping summing to exactly 1.0). Every
                node of the tree starts from its own copy.
            depth: Number of layers; 1 is memoryless
            params: TreeParams, defaults to TreeParams()

        Raises:
            ArgumentError: For an empty vocabulary/distribution or depth < 1
        """
        depth = _check_depth(depth)
        choices = materialize(choices)
        params = params if params is not None else TreeParams()
        self._setup(make_choice(choices, params), 0, None, params)
        self._grow(choices, depth)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Built tree depth={depth} elements={len(self.choice)} "
                f"params={params.get_id()[:8]}"
            )

    @classmethod
    def from_distribution(
        cls,
        distribution: Mapping[Hashable, float],
        depth: int = 1,
        params: Optional[TreeParams] = None,
    ) -> GenerativeTree:
        """Build a tree whose every node starts from distribution."""
        if not isinstance(distribution, Mapping):
            raise ArgumentError("distribution must be a mapping")
        return cls(distribution, depth=depth, params=params)

    def _setup(
        self,
        choice: WeightedChoice,
        level: int,
        parent: Optional[GenerativeTree],
        params: TreeParams,
    ) -> None:
        self.choice = choice
        self.level = level
        self.params = params
        self.cursor: Optional[Hashable] = None
        # Set when the cursor's element was removed; cleared by clear_history()
        self._cursor_stale = False
        self._children: Dict[Hashable, GenerativeTree] = {}
        self._parent_ref = weakref.ref(parent) if parent is not None else None
        self._lock = threading.RLock()

    @classmethod
    def _node(
        cls,
        choice: WeightedChoice,
        level: int,
        parent: Optional[GenerativeTree],
        params: TreeParams,
    ) -> GenerativeTree:
        node = cls.__new__(cls)
        node._setup(choice, level, parent, params)
        return node

    def _grow(self, source: ChoiceSource, depth: int) -> None:
        if depth > 1:
            for element in self.choice.elements:
                self._children[element] = self._spawn(source, depth - 1)

    def _spawn(self, source: ChoiceSource, depth: int) -> GenerativeTree:
        """Build a child subtree of the given depth below this node."""
        child = GenerativeTree._node(
            make_choice(source, self.params), self.level + 1, self, self.params
        )
        child._grow(source, depth)
        return child

    def _child_depth(self) -> int:
        """Depth a new child needs to line up with its siblings."""
        return max((c.depth() for c in self._children.values()), default=1)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def probabilities(self) -> Mapping[Hashable, float]:
        """Live read-only view of this node's distribution."""
        return self.choice.probabilities

    @property
    def children(self) -> Mapping[Hashable, GenerativeTree]:
        """Live read-only view of element -> child subtree."""
        return MappingProxyType(self._children)

    @property
    def parent(self) -> Optional[GenerativeTree]:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    def child(self, element: Hashable) -> Optional[GenerativeTree]:
        """Get child subtree for a given element."""
        return self._children.get(element)

    def is_leaf(self) -> bool:
        """Check if this node has no children."""
        return len(self._children) == 0

    def root(self) -> GenerativeTree:
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def depth(self) -> int:
        """Number of layers from this node down to its deepest leaf."""
        if self.is_leaf():
            return 1
        return 1 + max(child.depth() for child in self._children.values())

    def local_size(self) -> int:
        """Number of elements in this node's distribution."""
        return len(self.choice)

    def size(self) -> int:
        """Number of distribution entries over the whole subtree."""
        return len(self.choice) + sum(c.size() for c in self._children.values())

    def node_count(self) -> int:
        return 1 + sum(c.node_count() for c in self._children.values())

    def leaves(self) -> List[GenerativeTree]:
        """All nodes in this subtree without children."""
        leaves = []

        def collect_leaves(node: GenerativeTree):
            if node.is_leaf():
                leaves.append(node)
            else:
                for child in node._children.values():
                    collect_leaves(child)

        collect_leaves(self)
        return leaves

    def leaf_entry_count(self) -> int:
        """Number of distribution entries held by leaf nodes."""
        return sum(len(leaf.choice) for leaf in self.leaves())

    def get_all_descendants(self) -> List[GenerativeTree]:
        """Get all descendant nodes via DFS."""
        descendants = []

        def traverse(node: GenerativeTree):
            for child in node._children.values():
                descendants.append(child)
                traverse(child)

        traverse(self)
        return descendants

    def path_to_root(self) -> List[GenerativeTree]:
        """Get path from the root to this node."""
        path = []
        current = self
        while current is not None:
            path.append(current)
            current = current.parent
        return list(reversed(path))

    def find_node(self, path: Iterable[Hashable]) -> Optional[GenerativeTree]:
        """
        Follow elements down from this node.

        Args:
            path: Elements to descend through, root side first

        Returns:
            Node reached, or None if the path leaves the tree
        """
        node = self
        for element in path:
            node = node.child(element)
            if node is None:
                return None
        return node

    def history(self) -> List[Hashable]:
        """Elements in the current generation window, oldest first."""
        return [node.cursor for node in generator.cursor_path(self, strict=False)]

    # ------------------------------------------------------------------
    # Narrow mutation API
    # ------------------------------------------------------------------

    def set_probability(self, element: Hashable, probability: float) -> float:
        """Set one element's probability here, rescaling the others."""
        with self._lock:
            return self.choice.set_probability(element, probability)

    def insert_element(
        self,
        element: Hashable,
        probability: Optional[float] = None,
        child_choices: Optional[ChoiceSource] = None,
    ) -> bool:
        return self.add(element, probability, child_choices)

    def remove_element(self, element: Hashable) -> bool:
        return self.remove(element)

    # ------------------------------------------------------------------
    # Generation and feedback
    # ------------------------------------------------------------------

    def generate(self) -> Hashable:
        """Produce the next element conditioned on the current window."""
        return generator.generate(self)

    def generate_sequence(self, n: int) -> List[Hashable]:
        """Produce n consecutive elements."""
        return generator.generate_sequence(self, n)

    def reinforce_positive(self, target: Any, strength: float) -> Any:
        """
        Make target more likely.

        A list is a path starting at this node (see reinforce()); anything else
        is one element of this node's distribution.

        Returns:
            New probability, or one per level for a path
        """
        if isinstance(target, list):
            return feedback.reinforce(self, target, strength, positive=True)
        with self._lock:
            return self.choice.reinforce_positive(target, strength)

    def reinforce_negative(self, target: Any, strength: float) -> Any:
        """Make target less likely; same forms as reinforce_positive()."""
        if isinstance(target, list):
            return feedback.reinforce(self, target, strength, positive=False)
        with self._lock:
            return self.choice.reinforce_negative(target, strength)

    def reinforce(
        self, sequence: List[Hashable], strength: float, positive: bool = True
    ) -> List[float]:
        """Reinforce each element of sequence along the path it would take."""
        return feedback.reinforce(self, sequence, strength, positive=positive)

    def reinforce_positive_path(
        self, sequence: List[Hashable], strength: float
    ) -> List[float]:
        return feedback.reinforce(self, sequence, strength, positive=True)

    def reinforce_negative_path(
        self, sequence: List[Hashable], strength: float
    ) -> List[float]:
        return feedback.reinforce(self, sequence, strength, positive=False)

    # ------------------------------------------------------------------
    # Local structural edits
    # ------------------------------------------------------------------

    def add(
        self,
        element: Hashable,
        probability: Optional[float] = None,
        child_choices: Optional[ChoiceSource] = None,
    ) -> bool:
        """
        Add element to this node's distribution.

        Args:
            element: Element to add; an existing entry is left untouched
            probability: Optional probability in (0, 1) for the new entry
            child_choices: Vocabulary or distribution for a new child subtree,
                created when this node has children but none for element

        Returns:
            True if the element was added to the distribution
        """
        child_choices = materialize(child_choices)
        if child_choices is not None:
            make_choice(child_choices, self.params)
        with self._lock:
            added = self.choice.add(element, probability)
            if (
                child_choices is not None
                and self._children
                and element not in self._children
            ):
                self._children[element] = self._spawn(
                    child_choices, self._child_depth()
                )
            return added

    def remove(self, element: Hashable) -> bool:
        """Remove element and its subtree unless at the floor size."""
        with self._lock:
            removed = self.choice.remove(element)
            if removed:
                self._drop(element)
            return removed

    def prune(self, threshold: Optional[float] = None) -> List[Hashable]:
        """Prune this node's least likely elements along with their subtrees."""
        with self._lock:
            removed = self.choice.prune(threshold)
            for element in removed:
                self._drop(element)
            return removed

    def _drop(self, element: Hashable) -> None:
        self._children.pop(element, None)
        if self.cursor is not None and self.cursor == element:
            self._cursor_stale = True

    # ------------------------------------------------------------------
    # Whole-tree edits
    # ------------------------------------------------------------------

    def add_layer(self, choices: ChoiceSource) -> int:
        """Give every leaf one new child per element; returns nodes added."""
        return editing.add_layer(self, choices)

    def add_to_all(
        self,
        element: Hashable,
        probability: Optional[float] = None,
        child_choices: Optional[ChoiceSource] = None,
    ) -> None:
        editing.add_to_all(self, element, probability, child_choices)

    def remove_from_all(self, element: Hashable) -> int:
        return editing.remove_from_all(self, element)

    def prune_all(self, threshold: Optional[float] = None) -> int:
        return editing.prune_all(self, threshold)

    def clear_probs(self) -> None:
        """Reset this node to a uniform distribution over its elements."""
        with self._lock:
            self.choice.clear()

    def clear_all_probs(self) -> None:
        """Reset every distribution in the subtree, keeping its structure."""
        with self._lock:
            self.choice.clear()
            for child in self._children.values():
                child.clear_all_probs()

    def clear_history(self) -> None:
        """Forget generation context; learned probabilities are kept."""
        with self._lock:
            self.cursor = None
            self._cursor_stale = False
            for child in self._children.values():
                child.clear_history()

    # ------------------------------------------------------------------
    # Copying and diagnostics
    # ------------------------------------------------------------------

    def clone(self) -> GenerativeTree:
        """
        Deep copy of this subtree.

        The copy shares no distribution, child map or parent link with the
        source. Cursors are copied, so the clone continues generation from the
        same window. The clone is a root: no parent and levels start at 0.
        """
        with self._lock:
            return self._copy_under(None, 0, self.params.__copy__())

    def _copy_under(
        self, parent: Optional[GenerativeTree], level: int, params: TreeParams
    ) -> GenerativeTree:
        choice = self.choice.copy()
        choice.params = params
        node = GenerativeTree._node(choice, level, parent, params)
        node.cursor = self.cursor
        node._cursor_stale = self._cursor_stale
        for element, child in self._children.items():
            with child._lock:
                node._children[element] = child._copy_under(node, level + 1, params)
        return node

    def __copy__(self) -> GenerativeTree:
        return self.clone()

    def __deepcopy__(self, memo) -> GenerativeTree:
        return self.clone()

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data view of weights and structure."""
        with self._lock:
            return {
                "probabilities": {repr(k): p for k, p in self.choice.probabilities.items()},
                "children": {
                    repr(k): child.snapshot() for k, child in self._children.items()
                },
            }

    def fingerprint(self, places: int = 12) -> str:
        """Deterministic id of the snapshot, to compare trees by content."""
        return deterministic_id(self.snapshot(), places=places)

    def render(self, indent: str = "  ") -> str:
        """Indented text of every node's weights, marking cursors with '<-'."""
        lines = []

        def visit(node: GenerativeTree, label: str, depth: int):
            cursor = f" <- {node.cursor!r}" if node.cursor is not None else ""
            lines.append(f"{indent * depth}{label}{node.choice}{cursor}")
            for element, child in node._children.items():
                visit(child, f"{element!r} -> ", depth + 1)

        with self._lock:
            visit(self, "", 0)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"GenerativeTree(level={self.level}, "
            f"elements={len(self.choice)}, "
            f"children={len(self._children)}, "
            f"cursor={self.cursor!r})"
        )

    def __str__(self) -> str:
        """Human-readable string representation."""
        lines = [
            "GenerativeTree:",
            f"  Level: {self.level} | Depth: {self.depth()} | is_leaf: {self.is_leaf()}",
            f"  Nodes: {self.node_count()} | Entries: {self.size()}",
            f"  History: {self.history()!r}",
            self.render(indent="    "),
        ]
        return "\n".join(lines)
