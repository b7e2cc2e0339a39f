"""
Symmetric deontic value mapper.

Splits [lower, upper] into four equal-width compartments for the inner
deontics (SHOULD NOT, MAY NOT, MAY, SHOULD). The midpoint is the normative
center; a tolerance band around it yields INDIFFERENT, and analogous bands
at the boundaries yield MUST NOT and MUST.
"""

from typing import Dict, Optional

from .base import DeonticValueMapper
from .values import RANGE_DEONTICS, DeonticTerm


class SymmetricDeonticValueMapper(DeonticValueMapper):
    """
    Mapper with a center at the midpoint of the observed range.

    Derived quantities (width, center, tolerance) are recalculated lazily
    whenever the range boundaries have changed since the last call. The
    previous center and full range are retained to bound center drift.
    """

    def __init__(self, deontic_range):
        super().__init__(deontic_range)
        self._full_range = 0.0
        self._old_full_range = 0.0
        self._width = 0.0
        self._center = 0.0
        self._old_center = 0.0
        self._tolerance = 0.0
        self._last_lower = 0.0
        self._last_upper = 0.0

    def _recalculate(self) -> None:
        """Update width, center and tolerance if the boundaries moved."""
        lower, upper = self.lower, self.upper
        if lower == self._last_lower and upper == self._last_upper:
            return
        self._old_full_range = self._full_range
        self._full_range = abs(upper - lower)
        self._last_lower = lower
        self._last_upper = upper
        self._width = self._full_range / len(RANGE_DEONTICS)
        self._old_center = self._center
        self._center = upper - self._full_range / 2
        self._tolerance = self.tolerance_fraction * self._full_range

    @property
    def center(self) -> float:
        """Midpoint of the current range."""
        self._recalculate()
        return self._center

    @property
    def width(self) -> float:
        """Width of a single inner compartment."""
        self._recalculate()
        return self._width

    def term_for_value(self, value: float) -> DeonticTerm:
        self._recalculate()
        if value >= self.upper - self._tolerance:
            return DeonticTerm.MUST
        if value <= self.lower + self._tolerance:
            return DeonticTerm.MUST_NOT
        if self._center - self._tolerance <= value <= self._center + self._tolerance:
            return DeonticTerm.INDIFFERENT
        index = int((value - self.lower) / self._width)
        return RANGE_DEONTICS[min(max(index, 0), len(RANGE_DEONTICS) - 1)]

    def invert(self, value: float) -> float:
        self._recalculate()
        return self._reflect(value, self._center, self.lower, self.upper)

    def normative_center(self, max_movement: Optional[float] = None) -> float:
        self._recalculate()
        if max_movement is None:
            return self._center
        max_move = max_movement * self._old_full_range
        # Nudge only applies when the center has not moved in the last update
        if self._old_center == self._center:
            if self._old_center > self._center:
                return self._old_center - max_move
            return self._old_center + max_move
        return self._center

    def inner_boundaries(self) -> Dict[DeonticTerm, float]:
        self._recalculate()
        boundaries = {DeonticTerm.MUST_NOT: self.lower}
        half = len(RANGE_DEONTICS) // 2
        for i, term in enumerate(RANGE_DEONTICS):
            if i == half:
                boundaries[DeonticTerm.INDIFFERENT] = self._center
            boundaries[term] = self.lower + self._width * (i + 1)
        boundaries[DeonticTerm.MUST] = self.upper
        return boundaries
