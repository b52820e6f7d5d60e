"""
Simple example demonstrating gentree.

This example shows how to:
1. Build a generative tree over a small vocabulary
2. Generate sequences conditioned on recent history
3. Reward and punish sequences
4. Grow and prune the tree
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import gentree
from gentree.common.stats_utils import entropy, transition_counts


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    gentree.rng.seed(7)

    print("=" * 80)
    print("Gentree: order-k sequence generation with feedback")
    print("=" * 80)
    print()

    # ===================================================================
    # 1. Build a tree
    # ===================================================================
    print("1. Building a depth-3 tree over four notes...")
    print()

    notes = ["C", "E", "G", "B"]
    tree = gentree.GenerativeTree(notes, depth=3)
    print(f"   Nodes: {tree.node_count()} | Entries: {tree.size()}")
    print(f"   Root entropy: {entropy(tree.choice):.4f} nats")
    print()

    # ===================================================================
    # 2. Generate before any feedback
    # ===================================================================
    print("2. Generating with uniform weights...")
    print()

    print(f"   {' '.join(tree.generate_sequence(16))}")
    print(f"   Window: {tree.history()}")
    print()

    # ===================================================================
    # 3. Feedback
    # ===================================================================
    print("3. Rewarding C-E-G and punishing B-B...")
    print()

    for _ in range(10):
        tree.reinforce_positive_path(["C", "E", "G"], 0.3)
        tree.reinforce_negative_path(["B", "B"], 0.3)

    print(f"   P(G | C, E) = {tree.find_node(['C', 'E']).probabilities['G']:.4f}")
    print(f"   P(B | B)    = {tree.child('B').probabilities['B']:.4f}")
    print()

    tree.clear_history()
    sequence = tree.generate_sequence(400)
    counts = transition_counts(sequence, order=2)
    print(f"   After (C, E): {dict(counts.get(('C', 'E'), {}))}")
    print()

    # ===================================================================
    # 4. Structural edits
    # ===================================================================
    print("4. Growing and pruning...")
    print()

    tree.add_to_all("D", child_choices=notes + ["D"])
    tree.add_layer(notes)
    print(f"   Depth: {tree.depth()} | Nodes: {tree.node_count()}")

    removed = tree.prune_all(0.05)
    tree.clear_history()
    print(f"   Pruned {removed} entries | Nodes: {tree.node_count()}")
    print(f"   {' '.join(tree.generate_sequence(16))}")
    print()

    # ===================================================================
    # 5. Clone and inspect
    # ===================================================================
    print("5. Cloning...")
    print()

    snapshot = tree.clone()
    snapshot.clear_all_probs()
    print(f"   Original fingerprint: {tree.fingerprint()}")
    print(f"   Reset clone:          {snapshot.fingerprint()}")
    print()
    print(tree.find_node(["C"]).render())


if __name__ == "__main__":
    main()
