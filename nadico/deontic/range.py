"""
Dynamic deontic range.

Tracks the interval of valences observed by a generalizer and delegates
classification of values into deontic terms to a value mapper. The range
registers itself as a memory change listener of its generalizer and
recomputes its boundaries after every generalization round, according to
the configured DeonticRangeType.
"""

import logging
import math
from collections import deque
from typing import Optional, Union

import numpy as np

from ..config import DeonticRangeConfig, DeonticRangeType
from ..errors import ConfigurationError, InvalidInput, MemoryUpdateFailure
from ..listeners import MemoryChangeListener
from . import create_mapper
from .values import DeonticTerm

logger = logging.getLogger(__name__)

# Largest finite single-precision value; valences at or beyond it are saturated
FLOAT_LIMIT = float(np.finfo(np.float32).max)


class DeonticRange(MemoryChangeListener):
    """
    Numeric interval [lower, upper] over which valences are classified.

    Boundaries are None until the first update for the expanding and
    situational policies; the history policy starts at 0/0 and the static
    policy at its configured values.
    """

    def __init__(self, generalizer=None, config: Optional[DeonticRangeConfig] = None):
        """
        Initialize deontic range.

        Args:
            generalizer: Generalizer providing min/max statements; the range
                registers itself as its memory change listener
            config: Range configuration (defaults to DeonticRangeConfig())
        """
        self._config = config if config is not None else DeonticRangeConfig()
        self._range_type = self._config.range_type
        self._lower: Optional[float] = None
        self._upper: Optional[float] = None
        self._history_lower: Optional[deque] = None
        self._history_upper: Optional[deque] = None

        if self._range_type == DeonticRangeType.STATIC_MIN_MAX:
            self._setup_static_range(self._config.static_lower, self._config.static_upper)
        elif self._range_type == DeonticRangeType.HISTORY_MIN_MAX:
            self._setup_history_range(self._config.history_length)
        elif self._range_type not in (
            DeonticRangeType.EXPANDING_MIN_MAX,
            DeonticRangeType.SITUATIONAL_MIN_MAX,
            DeonticRangeType.DISCRETE,
        ):
            raise ConfigurationError(f"Unknown deontic range type: {self._range_type}")

        self._mapper = create_mapper(self._config.mapper_kind, self)

        self._generalizer = generalizer
        if generalizer is not None:
            generalizer.register_memory_change_listener(self)
        logger.debug("Initialized deontic range %s with %s", self._range_type.value, self._mapper)

    def _setup_static_range(self, lower: Optional[float], upper: Optional[float]) -> None:
        if lower is None:
            raise ConfigurationError("Static deontic range requires a lower boundary")
        if upper is None:
            raise ConfigurationError("Static deontic range requires an upper boundary")
        self._lower = float(lower)
        self._upper = float(upper)

    def _setup_history_range(self, history_length: int) -> None:
        self._history_lower = deque(maxlen=history_length)
        self._history_upper = deque(maxlen=history_length)
        self._lower = 0.0
        self._upper = 0.0

    @property
    def config(self) -> DeonticRangeConfig:
        """Range configuration."""
        return self._config

    @property
    def range_type(self) -> DeonticRangeType:
        """Update policy of this range."""
        return self._range_type

    @property
    def lower_boundary(self) -> Optional[float]:
        """Current lower boundary (None before the first update)."""
        return self._lower

    @property
    def upper_boundary(self) -> Optional[float]:
        """Current upper boundary (None before the first update)."""
        return self._upper

    @property
    def mapper(self):
        """Value mapper classifying values against this range."""
        return self._mapper

    @property
    def generalizer(self):
        """Generalizer this range listens to."""
        return self._generalizer

    def memory_changed(self) -> None:
        """Recompute boundaries from the generalizer's extreme statements."""
        if self._generalizer is None:
            raise MemoryUpdateFailure("No generalizer registered for deontic range calculation")

        min_expr = self._generalizer.statement_with_min_valence()
        max_expr = self._generalizer.statement_with_max_valence()
        min_valence = min_expr.deontic if min_expr is not None else None
        max_valence = max_expr.deontic if max_expr is not None else None
        if min_valence is None or max_valence is None:
            logger.warning("Ignored deontic range update since memory is empty.")
            return

        if min_valence <= -FLOAT_LIMIT or math.isnan(min_valence) or math.isinf(min_valence):
            raise MemoryUpdateFailure(
                f"{self._generalizer.owner}: deontic range update failed, lower value "
                f"outside number range: {min_valence} (context: {self._generalizer.context})"
            )
        if max_valence >= FLOAT_LIMIT or math.isnan(max_valence) or math.isinf(max_valence):
            raise MemoryUpdateFailure(
                f"{self._generalizer.owner}: deontic range update failed, upper value "
                f"outside number range: {max_valence} (context: {self._generalizer.context})"
            )

        if self._range_type in (DeonticRangeType.DISCRETE, DeonticRangeType.STATIC_MIN_MAX):
            return
        elif self._range_type == DeonticRangeType.EXPANDING_MIN_MAX:
            if self._lower is None:
                self._lower = min_valence
            if self._upper is None:
                self._upper = max_valence
            self._lower = min(self._lower, min_valence)
            self._upper = max(self._upper, max_valence)
        elif self._range_type == DeonticRangeType.SITUATIONAL_MIN_MAX:
            self._lower = min_valence
            self._upper = max_valence
        elif self._range_type == DeonticRangeType.HISTORY_MIN_MAX:
            self._history_lower.append(min_valence)
            self._history_upper.append(max_valence)
            self._lower = float(np.mean(self._history_lower))
            self._upper = float(np.mean(self._history_upper))
        else:
            raise MemoryUpdateFailure(
                f"Unknown deontic range type {self._range_type} (context: {self._generalizer.context})"
            )
        logger.debug("Deontic range updated to [%s, %s]", self._lower, self._upper)

    def deontic_term_for_expression(self, expression) -> DeonticTerm:
        """
        Classify the deontic value of a statement or action.

        Args:
            expression: Non-combination expression with a deontic value

        Returns:
            Deontic term for the expression's deontic value
        """
        if expression is None or expression.is_combination():
            raise InvalidInput(f"Cannot derive deontic term for {expression!r}")
        if expression.deontic is None:
            raise InvalidInput(f"Expression carries no deontic value: {expression}")
        return self._mapper.term_for_value(expression.deontic)

    def term_for_value(self, value: float) -> DeonticTerm:
        """Classify a numeric value."""
        return self._mapper.term_for_value(value)

    def invert(self, value: float) -> float:
        """Invert a value across the normative center."""
        return self._mapper.invert(value)

    def normative_center(self) -> float:
        """Normative center, with drift bounded by the configured movement."""
        return self._mapper.normative_center(self._config.maximum_movement_in_deontic_center)

    def normative_valence(self, subject: Union[float, DeonticTerm, object]) -> int:
        """Normative valence (-1, 0, +1) of a value, term or expression."""
        return self._mapper.normative_valence(subject)

    def _tolerance(self) -> float:
        lower = self._lower if self._lower is not None else 0.0
        upper = self._upper if self._upper is not None else 0.0
        return abs(upper - lower) * self._config.tolerance_around_extremes

    def value_within_upper_boundary_tolerance(self, value: float) -> bool:
        """Check whether a value lies in the tolerance band below the upper boundary."""
        upper = self._upper if self._upper is not None else 0.0
        return upper - self._tolerance() <= value

    def value_within_lower_boundary_tolerance(self, value: float) -> bool:
        """Check whether a value lies in the tolerance band above the lower boundary."""
        lower = self._lower if self._lower is not None else 0.0
        return lower + self._tolerance() >= value

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(type={self._range_type.value}, "
            f"lower={self._lower}, upper={self._upper})"
        )
