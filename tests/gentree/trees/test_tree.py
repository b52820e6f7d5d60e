"""
Tests for GenerativeTree construction, accessors and local edits.

Tests for gentree/trees/tree.py
"""

from __future__ import annotations

import copy
import gc
import logging
from unittest.mock import patch

import pytest

from gentree.common import ArgumentError, TreeParams
from gentree.trees import GenerativeTree


class TestTreeCreation:
    """Test GenerativeTree construction."""

    def test_depth_one(self, shallow_tree):
        """Test a depth-1 tree is a single leaf root."""
        assert shallow_tree.is_leaf()
        assert shallow_tree.depth() == 1
        assert shallow_tree.level == 0
        assert shallow_tree.parent is None

    def test_full_shape(self, binary_tree):
        """Test every node has one child per element down to the leaves."""
        assert binary_tree.depth() == 3
        assert binary_tree.node_count() == 7
        assert binary_tree.size() == 14
        assert len(binary_tree.leaves()) == 4
        assert set(binary_tree.children) == {0, 1}
        for leaf in binary_tree.leaves():
            assert leaf.level == 2

    def test_every_node_uniform(self, binary_tree, assert_tree_normalized):
        assert_tree_normalized(binary_tree)
        for node in binary_tree.get_all_descendants():
            assert node.probabilities == {0: 0.5, 1: 0.5}

    def test_from_distribution(self):
        """Test every node starts from the given distribution."""
        tree = GenerativeTree.from_distribution({"x": 0.25, "y": 0.75}, depth=2)
        for node in [tree] + tree.get_all_descendants():
            assert node.probabilities == {"x": 0.25, "y": 0.75}

    def test_from_distribution_requires_mapping(self):
        with pytest.raises(ArgumentError):
            GenerativeTree.from_distribution(["x", "y"])

    def test_one_shot_iterable(self):
        """Test a generator vocabulary builds every node."""
        tree = GenerativeTree((e for e in "ab"), depth=2)
        assert tree.node_count() == 3
        assert all(len(node.choice) == 2 for node in tree.get_all_descendants())

    def test_weighted_choice_source_is_copied(self, skewed_choice):
        """Test nodes do not share a WeightedChoice passed in."""
        tree = GenerativeTree(skewed_choice, depth=2)
        tree.reinforce_positive("c", 0.5)
        assert skewed_choice.probability("c") == 0.125
        assert tree.child("a").probabilities["c"] == 0.125

    def test_nodes_are_independent(self, binary_tree):
        """Test reinforcing one node leaves its siblings alone."""
        binary_tree.child(0).reinforce_positive(1, 0.5)
        assert binary_tree.child(1).probabilities == {0: 0.5, 1: 0.5}

    def test_params_shared_by_nodes(self, letter_tree):
        """Test every node uses the tree's params."""
        for node in letter_tree.get_all_descendants():
            assert node.params is letter_tree.params
            assert node.choice.params.floor_size == 2

    def test_debug_log_names_params(self, binary_vocab, caplog):
        with caplog.at_level(logging.DEBUG, logger="gentree.trees.tree"):
            GenerativeTree(binary_vocab, depth=2)
        assert "Built tree depth=2" in caplog.text
        assert TreeParams().get_id()[:8] in caplog.text

    def test_params_id_skipped_without_debug(self, binary_vocab, caplog):
        """Test the params id is only hashed when debug logging is on."""
        with caplog.at_level(logging.INFO, logger="gentree.trees.tree"):
            with patch.object(TreeParams, "get_id", autospec=True) as get_id:
                GenerativeTree(binary_vocab, depth=2)
        get_id.assert_not_called()

    @pytest.mark.parametrize("depth", [0, -1, 1.5, "2", True])
    def test_invalid_depth(self, binary_vocab, depth):
        with pytest.raises(ArgumentError, match="depth"):
            GenerativeTree(binary_vocab, depth=depth)

    @pytest.mark.parametrize("choices", [[], {}, None])
    def test_empty_vocabulary(self, choices):
        with pytest.raises(ArgumentError):
            GenerativeTree(choices, depth=2)


class TestTreeAccessors:
    """Test navigation helpers."""

    def test_parent_links(self, binary_tree):
        """Test child -> parent navigation."""
        leaf = binary_tree.find_node([1, 0])
        assert leaf.parent is binary_tree.child(1)
        assert leaf.root() is binary_tree
        assert leaf.path_to_root() == [binary_tree, binary_tree.child(1), leaf]

    def test_parent_is_weak(self, binary_vocab):
        """Test a detached subtree does not keep its parent alive."""
        tree = GenerativeTree(binary_vocab, depth=2)
        child = tree.child(0)
        del tree
        gc.collect()
        assert child.parent is None

    def test_find_node(self, binary_tree):
        assert binary_tree.find_node([]) is binary_tree
        assert binary_tree.find_node([0]) is binary_tree.child(0)
        assert binary_tree.find_node([0, 5]) is None
        assert binary_tree.find_node([0, 1, 0]) is None

    def test_children_view_is_read_only(self, binary_tree):
        with pytest.raises(TypeError):
            binary_tree.children[5] = binary_tree

    def test_local_size(self, letter_tree):
        assert letter_tree.local_size() == 4
        assert letter_tree.leaf_entry_count() == 16

    def test_descendants(self, binary_tree):
        assert len(binary_tree.get_all_descendants()) == 6

    def test_equality_is_identity(self, binary_tree):
        assert binary_tree == binary_tree
        assert binary_tree != binary_tree.clone()


class TestNarrowMutation:
    """Test the per-node mutation API."""

    def test_set_probability(self, binary_tree):
        binary_tree.set_probability(0, 0.25)
        assert binary_tree.probabilities[1] == pytest.approx(0.75)

    def test_insert_element_with_subtree(self, binary_tree):
        """Test a new element on an inner node gets a subtree as deep as its siblings."""
        assert binary_tree.insert_element(2, child_choices=[0, 1])
        new = binary_tree.child(2)
        assert new is not None
        assert new.depth() == 2
        assert new.level == 1
        assert new.parent is binary_tree

    def test_insert_without_subtree(self, binary_tree, assert_normalized):
        """Test an element without child_choices has no subtree."""
        assert binary_tree.insert_element(2, 0.5)
        assert binary_tree.child(2) is None
        assert binary_tree.probabilities[2] == pytest.approx(0.5)
        assert_normalized(binary_tree.choice)

    def test_insert_on_leaf_never_adds_children(self, shallow_tree):
        shallow_tree.insert_element(2, child_choices=[0, 1])
        assert shallow_tree.is_leaf()
        assert 2 in shallow_tree.probabilities

    def test_insert_existing_keeps_weight(self, binary_tree):
        binary_tree.reinforce_positive(0, 0.5)
        assert not binary_tree.insert_element(0, 0.1)
        assert binary_tree.probabilities[0] == pytest.approx(0.75)

    def test_insert_invalid_child_choices(self, binary_tree):
        """Test bad child_choices is rejected before the element is added."""
        with pytest.raises(ArgumentError):
            binary_tree.insert_element(2, child_choices=[])
        assert 2 not in binary_tree.probabilities

    def test_remove_element_drops_subtree(self, ternary_vocab):
        tree = GenerativeTree(ternary_vocab, depth=2)
        assert tree.remove_element(1)
        assert tree.child(1) is None
        assert set(tree.children) == {0, 2}
        assert tree.probabilities[0] == pytest.approx(0.5)

    def test_remove_at_floor(self, binary_vocab):
        tree = GenerativeTree(binary_vocab, depth=2, params=TreeParams(floor_size=2))
        assert not tree.remove_element(0)
        assert tree.child(0) is not None

    def test_prune_drops_subtrees(self, binary_tree):
        binary_tree.reinforce_positive(0, 0.5)
        assert binary_tree.prune() == [1]
        assert binary_tree.child(1) is None
        assert binary_tree.probabilities == {0: 1.0}


class TestResets:
    """Test clear_probs / clear_all_probs / clear_history."""

    def test_clear_probs_is_local(self, binary_tree):
        binary_tree.reinforce_positive(0, 0.5)
        binary_tree.child(0).reinforce_positive(0, 0.5)
        binary_tree.clear_probs()
        assert binary_tree.probabilities == {0: 0.5, 1: 0.5}
        assert binary_tree.child(0).probabilities[0] == pytest.approx(0.75)

    def test_clear_all_probs(self, binary_tree):
        binary_tree.reinforce([0, 1, 1], 0.5)
        binary_tree.clear_all_probs()
        for node in [binary_tree] + binary_tree.get_all_descendants():
            assert node.probabilities == {0: 0.5, 1: 0.5}
        assert binary_tree.node_count() == 7

    def test_clear_history_keeps_weights(self, binary_tree):
        binary_tree.generate_sequence(4)
        binary_tree.reinforce_positive(1, 0.5)
        binary_tree.clear_history()
        assert binary_tree.history() == []
        assert all(n.cursor is None for n in binary_tree.get_all_descendants())
        assert binary_tree.probabilities[1] == pytest.approx(0.75)


class TestClone:
    """Test clone independence."""

    def test_clone_matches(self, binary_tree):
        binary_tree.reinforce([1, 0, 1], 0.3)
        clone = binary_tree.clone()
        assert clone.fingerprint() == binary_tree.fingerprint()
        assert clone.node_count() == binary_tree.node_count()

    def test_clone_is_independent(self, binary_tree):
        """Test mutating the clone leaves the source unchanged and vice versa."""
        before = binary_tree.fingerprint()
        clone = binary_tree.clone()

        clone.reinforce([0, 0, 0], 0.5)
        clone.add_layer({0, 1})
        clone.remove_from_all(1)
        assert binary_tree.fingerprint() == before
        assert binary_tree.depth() == 3

        binary_tree.reinforce([1, 1, 1], 0.5)
        assert clone.probabilities == {0: 1.0}

    def test_clone_of_subtree_is_root(self, binary_tree):
        sub = binary_tree.child(1).clone()
        assert sub.parent is None
        assert sub.level == 0
        assert sub.child(0).level == 1
        assert sub.child(0).parent is sub

    def test_clone_copies_cursors(self, binary_tree):
        binary_tree.generate_sequence(2)
        clone = binary_tree.clone()
        assert clone.history() == binary_tree.history()

    def test_clone_keeps_stale_cursor(self, binary_tree):
        """Test a clone taken after removing the cursor's element still needs a reset."""
        value = binary_tree.generate()
        binary_tree.remove(value)
        binary_tree.add(value)
        clone = binary_tree.clone()
        assert clone.history() == []
        clone.clear_history()
        assert len(clone.generate_sequence(3)) == 3

    def test_clone_params_independent(self, letter_tree):
        clone = letter_tree.clone()
        assert clone.params is not letter_tree.params
        assert clone.child("a").params is clone.params

    def test_copy_protocol(self, binary_tree):
        assert copy.copy(binary_tree).fingerprint() == binary_tree.fingerprint()
        assert copy.deepcopy(binary_tree).fingerprint() == binary_tree.fingerprint()


class TestDiagnostics:
    """Test snapshot / fingerprint / render."""

    def test_snapshot_structure(self, binary_vocab):
        tree = GenerativeTree(binary_vocab, depth=2)
        snap = tree.snapshot()
        assert snap["probabilities"] == {"0": 0.5, "1": 0.5}
        assert set(snap["children"]) == {"0", "1"}
        assert snap["children"]["0"]["children"] == {}

    def test_fingerprint_tracks_weights(self, binary_tree):
        before = binary_tree.fingerprint()
        binary_tree.child(1).reinforce_negative(0, 0.5)
        assert binary_tree.fingerprint() != before

    def test_render_marks_cursor(self, shallow_tree):
        value = shallow_tree.generate()
        text = shallow_tree.render()
        assert f"<- {value!r}" in text
        assert "50.0000%" in text

    def test_render_indents_children(self, binary_vocab):
        lines = GenerativeTree(binary_vocab, depth=2).render(indent="..").splitlines()
        assert len(lines) == 3
        assert lines[1].startswith("..0 -> ")

    def test_str(self, binary_tree):
        text = str(binary_tree)
        assert text.startswith("GenerativeTree:")
        assert "Nodes: 7 | Entries: 14" in text

    def test_repr(self, shallow_tree):
        assert repr(shallow_tree) == (
            "GenerativeTree(level=0, elements=2, children=0, cursor=None)"
        )
