"""
Discrete deontic value mapper.

Uses only the three terms of the classical ADICO grammar: positive values
are obligations (MUST), negative values prohibitions (MUST NOT), and zero
is a permission (MAY).
"""

from typing import Dict, Optional

from ..errors import ConfigurationError, InvalidInput
from .base import DeonticValueMapper
from .values import DISCRETE_DEONTICS, DeonticTerm, NormativeValence


class DiscreteDeonticValueMapper(DeonticValueMapper):
    """Sign-based mapper without compartments."""

    def term_for_value(self, value: float) -> DeonticTerm:
        if value > 0:
            return DeonticTerm.MUST
        if value < 0:
            return DeonticTerm.MUST_NOT
        return DeonticTerm.MAY

    def invert(self, value: float) -> float:
        return -value

    def normative_center(self, max_movement: Optional[float] = None) -> float:
        return 0.0

    def valence_for_term(self, term: DeonticTerm) -> int:
        if term not in DISCRETE_DEONTICS:
            raise InvalidInput(f"Deontic term {term} is not defined for discrete ranges")
        if term == DeonticTerm.MUST:
            return NormativeValence.POSITIVE.value
        if term == DeonticTerm.MUST_NOT:
            return NormativeValence.NEGATIVE.value
        return NormativeValence.NEUTRAL.value

    def inner_boundaries(self) -> Dict[DeonticTerm, float]:
        raise ConfigurationError("Discrete deontic ranges have no inner boundaries")
