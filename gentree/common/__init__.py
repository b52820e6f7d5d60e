"""
Shared building blocks.

This module contains:
- Error types (ArgumentError, StateError)
- Configuration schemas (TreeParams)
- The thread-local random source
- Deterministic ids for plain-data snapshots
"""

from .errors import ArgumentError, GenerativeTreeError, StateError
from .schema_utils import SchemaClass, deterministic_id
from .schemas import TreeParams

__all__ = [
    "ArgumentError",
    "GenerativeTreeError",
    "SchemaClass",
    "StateError",
    "TreeParams",
    "deterministic_id",
]
