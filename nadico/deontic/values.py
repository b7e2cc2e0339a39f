"""
Deontic vocabulary of the nADICO grammar.

Based on Crawford & Ostrom (1995), extended by Frantz et al. (2013) with a
continuous deontic spectrum:

    MUST NOT < SHOULD NOT < MAY NOT < INDIFFERENT < MAY < SHOULD < MUST

The tables in this module are fixed and shared by all value mappers.
"""

from enum import Enum
from typing import Dict, List


class DeonticTerm(Enum):
    """The seven deontic terms, ordered from prescription to proscription."""
    MUST = "MUST"
    SHOULD = "SHOULD"
    MAY = "MAY"
    INDIFFERENT = "INDIFFERENT"
    MAY_NOT = "MAY NOT"
    SHOULD_NOT = "SHOULD NOT"
    MUST_NOT = "MUST NOT"

    def __str__(self) -> str:
        return self.value


class NormativeValence(Enum):
    """Sign of a deontic: prescriptive, neutral or proscriptive."""
    POSITIVE = 1
    NEUTRAL = 0
    NEGATIVE = -1


# Inner terms used for equi-width compartmentation (extremes excluded)
RANGE_DEONTICS: List[DeonticTerm] = [
    DeonticTerm.SHOULD_NOT,
    DeonticTerm.MAY_NOT,
    DeonticTerm.MAY,
    DeonticTerm.SHOULD,
]

DEONTIC_ORDER: Dict[DeonticTerm, int] = {
    DeonticTerm.MUST_NOT: 1,
    DeonticTerm.SHOULD_NOT: 2,
    DeonticTerm.MAY_NOT: 3,
    DeonticTerm.INDIFFERENT: 4,
    DeonticTerm.MAY: 5,
    DeonticTerm.SHOULD: 6,
    DeonticTerm.MUST: 7,
}

SIGNED_DEONTIC_ORDER: Dict[DeonticTerm, int] = {
    term: order - DEONTIC_ORDER[DeonticTerm.INDIFFERENT]
    for term, order in DEONTIC_ORDER.items()
}

DEONTIC_INVERSION: Dict[DeonticTerm, DeonticTerm] = {
    DeonticTerm.MUST: DeonticTerm.MUST_NOT,
    DeonticTerm.SHOULD: DeonticTerm.SHOULD_NOT,
    DeonticTerm.MAY: DeonticTerm.MAY_NOT,
    DeonticTerm.INDIFFERENT: DeonticTerm.INDIFFERENT,
    DeonticTerm.MAY_NOT: DeonticTerm.MAY,
    DeonticTerm.SHOULD_NOT: DeonticTerm.SHOULD,
    DeonticTerm.MUST_NOT: DeonticTerm.MUST,
}

# Discrete policy: only extremes and the permissive center
DISCRETE_DEONTICS: Dict[DeonticTerm, float] = {
    DeonticTerm.MUST: float("inf"),
    DeonticTerm.MAY: 0.0,
    DeonticTerm.MUST_NOT: float("-inf"),
}

TERM_VALENCE: Dict[DeonticTerm, NormativeValence] = {
    DeonticTerm.MUST: NormativeValence.POSITIVE,
    DeonticTerm.SHOULD: NormativeValence.POSITIVE,
    DeonticTerm.MAY: NormativeValence.POSITIVE,
    DeonticTerm.INDIFFERENT: NormativeValence.NEUTRAL,
    DeonticTerm.MAY_NOT: NormativeValence.NEGATIVE,
    DeonticTerm.SHOULD_NOT: NormativeValence.NEGATIVE,
    DeonticTerm.MUST_NOT: NormativeValence.NEGATIVE,
}


def invert(term: DeonticTerm) -> DeonticTerm:
    """Return the symmetric partner of a deontic term."""
    return DEONTIC_INVERSION[term]
