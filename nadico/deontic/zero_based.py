"""
Zero-based equi-compartment deontic value mapper.

The normative center is fixed at zero. The positive half [0, upper] and the
negative half [lower, 0] are each split into two compartments, so a skewed
range (e.g. rewards far larger than punishments) still classifies both sides
with the full deontic vocabulary. Tolerance bands are relative to the half a
value falls into.
"""

from typing import Dict, Optional

from ..errors import InvalidInput
from .base import DeonticValueMapper
from .values import RANGE_DEONTICS, DeonticTerm

CENTER = 0.0


class ZeroBasedDeonticValueMapper(DeonticValueMapper):
    """Mapper with a fixed center of zero and independently scaled halves."""

    def _half_span(self, value: float) -> float:
        return self.upper - CENTER if value > CENTER else CENTER - self.lower

    def term_for_value(self, value: float) -> DeonticTerm:
        if value is None:
            raise InvalidInput("Cannot map missing value to deontic term")
        lower, upper = self.lower, self.upper
        # No range developed yet
        if value == CENTER or upper == lower:
            return DeonticTerm.INDIFFERENT
        span = self._half_span(value)
        tolerance = self.tolerance_fraction * span
        if CENTER - tolerance < value < CENTER + tolerance:
            return DeonticTerm.INDIFFERENT
        if value > CENTER and value >= upper - tolerance:
            return DeonticTerm.MUST
        if value < CENTER and value <= lower + tolerance:
            return DeonticTerm.MUST_NOT

        half = len(RANGE_DEONTICS) // 2
        compartment = span / half
        offset = int(abs(value - CENTER) / compartment) if compartment else 0
        if value > CENTER:
            index = half + offset
        else:
            index = half - 1 - offset
        return RANGE_DEONTICS[min(max(index, 0), len(RANGE_DEONTICS) - 1)]

    def invert(self, value: float) -> float:
        if value is None:
            raise InvalidInput("Cannot invert missing deontic value")
        return self._reflect(value, CENTER, self.lower, self.upper)

    def normative_center(self, max_movement: Optional[float] = None) -> float:
        return CENTER

    def inner_boundaries(self) -> Dict[DeonticTerm, float]:
        lower, upper = self.lower, self.upper
        half = len(RANGE_DEONTICS) // 2
        current = lower
        tolerance = self.tolerance_fraction * (CENTER - lower)
        compartment = (CENTER - lower) / half
        boundaries: Dict[DeonticTerm, float] = {}
        for i, term in enumerate(RANGE_DEONTICS):
            if i == half:
                # Last negative compartment ends at the lower edge of the center band
                boundaries[RANGE_DEONTICS[i - 1]] = CENTER - tolerance
                tolerance = self.tolerance_fraction * (upper - CENTER)
                boundaries[DeonticTerm.INDIFFERENT] = CENTER + tolerance
                compartment = (upper - CENTER) / half
                current = CENTER
            current += compartment
            boundaries[term] = current
        return boundaries
