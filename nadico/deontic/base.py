"""
Abstract base class for deontic value mappers.

A mapper translates numeric valences into deontic terms relative to the
current boundaries of a DeonticRange, and back:

- term_for_value(): classify a valence
- invert(): mirror a valence across the normative center
- normative_center(): current center of the range
- normative_valence(): sign of a value, term or expression
- inner_boundaries(): upper bound per deontic compartment
"""

import numbers
from abc import ABC, abstractmethod
from typing import Dict, Optional, Union

from ..errors import InvalidInput
from .values import DEONTIC_ORDER, TERM_VALENCE, DeonticTerm


class DeonticValueMapper(ABC):
    """
    Abstract base class for all value mappers.

    Mappers hold no boundaries of their own; they read them from the
    range they were created for on every call, so a range update is
    visible immediately.
    """

    def __init__(self, deontic_range):
        """
        Initialize mapper.

        Args:
            deontic_range: DeonticRange providing boundaries and tolerance
        """
        self._range = deontic_range

    @property
    def lower(self) -> float:
        """Lower range boundary (0.0 while undetermined)."""
        value = self._range.lower_boundary
        return 0.0 if value is None else float(value)

    @property
    def upper(self) -> float:
        """Upper range boundary (0.0 while undetermined)."""
        value = self._range.upper_boundary
        return 0.0 if value is None else float(value)

    @property
    def tolerance_fraction(self) -> float:
        """Fraction of a range span treated as close to an extreme or the center."""
        return self._range.config.tolerance_around_extremes

    @abstractmethod
    def term_for_value(self, value: float) -> DeonticTerm:
        """
        Classify a numeric value into a deontic term.

        Args:
            value: Valence to classify

        Returns:
            Deontic term for the value under the current boundaries
        """
        pass

    @abstractmethod
    def invert(self, value: float) -> float:
        """
        Mirror a value across the normative center.

        Args:
            value: Valence to invert

        Returns:
            Value at the proportionally opposite position of the range
        """
        pass

    @abstractmethod
    def normative_center(self, max_movement: Optional[float] = None) -> float:
        """
        Get the normative center of the range.

        Args:
            max_movement: Optional bound on center drift, as fraction of
                the previous full range

        Returns:
            Current normative center
        """
        pass

    @abstractmethod
    def inner_boundaries(self) -> Dict[DeonticTerm, float]:
        """
        Get the upper boundary of each deontic compartment.

        Returns:
            Ordered mapping from term to its upper boundary, lowest first
        """
        pass

    def valence_for_term(self, term: DeonticTerm) -> int:
        """Normative valence (-1, 0, +1) of a deontic term."""
        if term not in TERM_VALENCE:
            raise InvalidInput(f"Unknown deontic term: {term}")
        return TERM_VALENCE[term].value

    def normative_valence(self, subject: Union[float, DeonticTerm, object]) -> int:
        """
        Determine the normative valence of a value, term or expression.

        The valence of a value is the valence of the term the value maps to,
        so classification and valence never disagree.

        Args:
            subject: Numeric valence, deontic term, or expression carrying
                a deontic value

        Returns:
            -1, 0 or +1
        """
        if isinstance(subject, DeonticTerm):
            return self.valence_for_term(subject)
        if isinstance(subject, numbers.Real):
            return self.valence_for_term(self.term_for_value(float(subject)))
        deontic = getattr(subject, "deontic", None)
        if deontic is None:
            raise InvalidInput(f"Cannot determine normative valence of {subject!r}")
        return self.valence_for_term(self.term_for_value(deontic))

    def normalized_value(self, value: float) -> float:
        """
        Map a value onto (0, 1) based on the rank of its deontic term.

        Args:
            value: Valence to normalize

        Returns:
            Midpoint of the term's slot on a seven-slot unit scale
        """
        return (DEONTIC_ORDER[self.term_for_value(value)] - 0.5) / len(DEONTIC_ORDER)

    def normalized_value_for_term(self, term: DeonticTerm, upper_boundary: bool = True) -> float:
        """
        Map a deontic term onto (0, 1].

        Args:
            term: Deontic term
            upper_boundary: Return the slot's upper end instead of its midpoint

        Returns:
            Normalized position of the term
        """
        order = DEONTIC_ORDER[term]
        if upper_boundary:
            return order / len(DEONTIC_ORDER)
        return (order - 0.5) / len(DEONTIC_ORDER)

    @staticmethod
    def _reflect(value: float, center: float, lower: float, upper: float) -> float:
        """Reflect value across center, scaled by the span on either side."""
        upper_span = abs(upper - center)
        lower_span = abs(center - lower)
        if value == center:
            return value
        if upper_span == 0 or lower_span == 0:
            return 2 * center - value
        if value > center:
            return center - (value - center) / upper_span * lower_span
        return center + (center - value) / lower_span * upper_span

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(lower={self.lower}, upper={self.upper})"
