"""
Memory systems for observed nADICO actions.

This module provides:
- BaseKeyValueMemory: fixed-capacity record buffer with oldest-first eviction
- NAdicoActionMemory: action chain records with subsequence queries
"""

from .base import BaseKeyValueMemory, MemoryEntry
from .action_memory import NAdicoActionMemory, ValueAggregation, to_aggregation

__all__ = [
    "BaseKeyValueMemory",
    "MemoryEntry",
    "NAdicoActionMemory",
    "ValueAggregation",
    "to_aggregation",
]
