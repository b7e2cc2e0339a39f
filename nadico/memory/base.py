"""
Base key-value memory.

Fixed-capacity buffer of (key, value) records. Once full, every new record
evicts the oldest one. Records are never merged on insertion; all
aggregation happens at query time.
"""

from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from ..errors import InvalidInput

K = TypeVar("K")


@dataclass
class MemoryEntry(Generic[K]):
    """
    Single memory record.

    Attributes:
        key: Memorized key (e.g. an observed action expression)
        value: Valence attached to the key
    """

    key: K
    value: float


class BaseKeyValueMemory(Generic[K]):
    """
    Fixed-capacity key-value memory with oldest-first eviction.
    """

    def __init__(self, number_of_entries: int = 100, owner: Optional[str] = None):
        """
        Initialize memory.

        Args:
            number_of_entries: Maximum number of records to store
            owner: Identifier of the owning agent
        """
        if number_of_entries is None or number_of_entries < 0:
            raise InvalidInput(f"Invalid number of memory entries: {number_of_entries}")
        self._history: deque = deque(maxlen=number_of_entries)
        self._number_of_entries = number_of_entries
        self._owner = owner

    @property
    def owner(self) -> Optional[str]:
        return self._owner

    @property
    def number_of_entries(self) -> int:
        """Maximum memory capacity."""
        return self._number_of_entries

    @property
    def entries(self) -> List[MemoryEntry]:
        """Stored records (oldest first)."""
        return list(self._history)

    def set_number_of_entries(self, number_of_entries: int) -> None:
        """
        Change the capacity, keeping the most recent records.

        Args:
            number_of_entries: New maximum number of records
        """
        if number_of_entries is None or number_of_entries < 0:
            raise InvalidInput(f"Invalid number of memory entries: {number_of_entries}")
        self._history = deque(self._history, maxlen=number_of_entries)
        self._number_of_entries = number_of_entries

    def memorize(self, key: K, value: float) -> None:
        """
        Add a record, evicting the oldest one if the memory is full.

        Args:
            key: Key to memorize
            value: Associated value
        """
        if key is None or value is None:
            raise InvalidInput("Memory keys and values must not be None")
        self._history.append(MemoryEntry(key, float(value)))

    def clear(self) -> None:
        """Clear all stored records."""
        self._history.clear()

    def is_empty(self) -> bool:
        """Check if memory is empty."""
        return len(self._history) == 0

    def keys(self) -> List[K]:
        """Keys of all records (oldest first, duplicates retained)."""
        return [entry.key for entry in self._history]

    def _extreme_entry(self, highest: bool) -> Optional[MemoryEntry]:
        selected = None
        for entry in self._history:
            # Strict comparison: earliest record wins ties
            if selected is None or (entry.value > selected.value if highest else entry.value < selected.value):
                selected = entry
        return selected

    def highest_value_entry(self) -> Optional[Tuple[K, float]]:
        """(key, value) of the record with the highest raw value, or None if empty."""
        entry = self._extreme_entry(highest=True)
        return (entry.key, entry.value) if entry is not None else None

    def lowest_value_entry(self) -> Optional[Tuple[K, float]]:
        """(key, value) of the record with the lowest raw value, or None if empty."""
        entry = self._extreme_entry(highest=False)
        return (entry.key, entry.value) if entry is not None else None

    def key_with_highest_value(self) -> Optional[K]:
        entry = self._extreme_entry(highest=True)
        return entry.key if entry is not None else None

    def key_with_lowest_value(self) -> Optional[K]:
        entry = self._extreme_entry(highest=False)
        return entry.key if entry is not None else None

    def complete_entries(self) -> Dict[Any, Tuple[int, float]]:
        """
        Group records by key equality.

        Returns:
            key -> (count, sum of values), in order of first occurrence
        """
        grouped: Dict[Any, Tuple[int, float]] = {}
        for entry in self._history:
            count, total = grouped.get(entry.key, (0, 0.0))
            grouped[entry.key] = (count + 1, total + entry.value)
        return grouped

    def __len__(self) -> int:
        """Return current number of records."""
        return len(self._history)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(number_of_entries={self._number_of_entries}, current={len(self)})"
