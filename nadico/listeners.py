"""
Collaborator contracts of the generalizer.

- MemoryChangeListener: notified after every successful generalization
- GeneralizationProvider: supplies generalized individual markers
"""

from abc import ABC, abstractmethod
from typing import Dict, List


class MemoryChangeListener(ABC):
    """Observer of generalizer state changes."""

    @abstractmethod
    def memory_changed(self) -> None:
        """
        React to a new generalization result.

        Raises:
            MemoryUpdateFailure: If the listener cannot process the update
        """
        pass


class GeneralizationProvider(ABC):
    """
    Source of individual-marker generalizations.

    Individual markers (e.g. NAME) are erased during generalization unless a
    provider maps them onto more abstract markers first. At most one provider
    may be registered per generalizer.
    """

    @abstractmethod
    def generalize_attributes(self, individual_markers: Dict[str, List[str]]) -> Dict[str, List[str]]:
        """
        Generalize individual markers.

        Args:
            individual_markers: Copy of the markers to generalize

        Returns:
            Replacement individual markers (must not be None)
        """
        pass
