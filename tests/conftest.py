"""
Pytest configuration and shared fixtures for gentree tests.

Provides vocabularies, prebuilt trees and probability assertions.
"""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from gentree.choice import WeightedChoice
from gentree.common import TreeParams, rng
from gentree.trees.tree import GenerativeTree

# =============================================================================
# Random Source
# =============================================================================


@pytest.fixture(autouse=True)
def seeded_rng():
    """Seed the calling thread's random source for every test."""
    rng.seed(1234)
    yield
    rng.seed(None)


# =============================================================================
# Vocabulary Fixtures
# =============================================================================


@pytest.fixture
def binary_vocab() -> set:
    return {0, 1}


@pytest.fixture
def ternary_vocab() -> set:
    return {0, 1, 2}


@pytest.fixture
def letters() -> list:
    return ["a", "b", "c", "d"]


# =============================================================================
# WeightedChoice / GenerativeTree Fixtures
# =============================================================================


@pytest.fixture
def uniform_pair(binary_vocab) -> WeightedChoice:
    return WeightedChoice(binary_vocab)


@pytest.fixture
def skewed_choice() -> WeightedChoice:
    """Distribution with a clear minimum at 'c'."""
    return WeightedChoice.from_distribution({"a": 0.5, "b": 0.375, "c": 0.125})


@pytest.fixture
def shallow_tree(binary_vocab) -> GenerativeTree:
    return GenerativeTree(binary_vocab, depth=1)


@pytest.fixture
def binary_tree(binary_vocab) -> GenerativeTree:
    """Depth-3 tree over {0, 1}."""
    return GenerativeTree(binary_vocab, depth=3)


@pytest.fixture
def letter_tree(letters) -> GenerativeTree:
    """Depth-2 tree over four letters with floor size 2."""
    return GenerativeTree(letters, depth=2, params=TreeParams(floor_size=2))


# =============================================================================
# Probability Assertions
# =============================================================================


@pytest.fixture
def assert_normalized():
    """Fixture to assert a distribution sums to exactly 1.0."""

    def _assert_normalized(distribution):
        probabilities = getattr(distribution, "probabilities", distribution)
        values = list(probabilities.values())
        assert all(p > 0 for p in values), "Probabilities must be positive"
        total = 0.0
        for p in values:
            total += p
        assert total == 1.0, f"Probabilities sum to {total!r}"

    return _assert_normalized


@pytest.fixture
def assert_tree_normalized(assert_normalized):
    """Fixture to assert every node of a tree is normalized and consistent."""

    def _assert_tree(tree: GenerativeTree):
        for node in [tree] + tree.get_all_descendants():
            assert_normalized(node.choice)
            assert set(node.children) <= set(node.probabilities)

    return _assert_tree


@pytest.fixture
def assert_array_close():
    """Fixture for array comparison with tolerance."""

    def _assert_close(actual, expected, rtol=1e-9, atol=1e-12):
        np.testing.assert_allclose(actual, expected, rtol=rtol, atol=atol)

    return _assert_close


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "statistical: marks sampling-based tests")
