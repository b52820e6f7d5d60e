"""
Thread-local random source.

Each thread draws from its own numpy Generator so concurrent sampling never
shares generator state.
"""

from __future__ import annotations

import threading
from typing import Optional

import numpy as np

_local = threading.local()


def get_rng() -> np.random.Generator:
    """Return the calling thread's generator, creating it on first use."""
    rng = getattr(_local, "rng", None)
    if rng is None:
        rng = np.random.default_rng()
        _local.rng = rng
    return rng


def seed(value: Optional[int] = None) -> None:
    """Reseed the calling thread's generator (None draws fresh OS entropy)."""
    _local.rng = np.random.default_rng(value)


def uniform() -> float:
    """Draw from [0, 1)."""
    return float(get_rng().random())
