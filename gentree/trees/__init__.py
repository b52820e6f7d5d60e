"""
Generative trees.

Key concepts:
- GenerativeTree: a node owning a WeightedChoice plus one child per element
- Depth k conditions each element on the previous k - 1
- generate() walks the cursor window; reinforce() walks an observed sequence
- Structural edits grow or shrink every node of a subtree

Usage:
    tree = GenerativeTree({"a", "b", "c"}, depth=3)

    # Produce a sequence
    values = tree.generate_sequence(10)

    # Encourage what was just produced
    tree.reinforce(values[-3:], strength=0.5)

    # Grow one more layer of memory
    tree.add_layer({"a", "b", "c"})
"""

from .tree import GenerativeTree

__all__ = ["GenerativeTree"]
