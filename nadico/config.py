"""
Configuration module for the nADICO engine.

Defines the deontic range policies, value mapper choices and aggregation
strategies, together with the dataclasses that bundle them:

- DeonticRangeConfig: how valence boundaries are tracked and classified
- NAdicoConfig: generalizer-level settings, including the range config

Range types:
- DISCRETE: sign-based classification, boundaries are never updated
- STATIC_MIN_MAX: fixed boundaries given up front
- EXPANDING_MIN_MAX: boundaries only ever widen
- SITUATIONAL_MIN_MAX: boundaries follow the last generalization round
- HISTORY_MIN_MAX: boundaries are means over a bounded history
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import ConfigurationError


class DeonticRangeType(Enum):
    """Policies for updating deontic range boundaries."""
    DISCRETE = "discrete"
    STATIC_MIN_MAX = "static_min_max"
    EXPANDING_MIN_MAX = "expanding_min_max"
    SITUATIONAL_MIN_MAX = "situational_min_max"
    HISTORY_MIN_MAX = "history_min_max"


class MapperKind(Enum):
    """Available deontic value mappers."""
    SYMMETRIC = "symmetric"
    ZERO_BASED = "zero_based"
    DISCRETE = "discrete"


class AggregationStrategy(Enum):
    """How instance valences combine into a generalized deontic."""
    SUM = "sum"                      # Sum of instance valences (default)
    MEAN = "mean"                    # Sum divided by number of instances
    OPPORTUNISTIC = "opportunistic"  # Instance valence furthest from normative center


@dataclass
class DeonticRangeConfig:
    """Configuration of a deontic range and its value mapper."""

    range_type: DeonticRangeType = DeonticRangeType.HISTORY_MIN_MAX
    history_length: int = 100  # Only used for HISTORY_MIN_MAX

    # Only used for STATIC_MIN_MAX
    static_lower: Optional[float] = 0.0
    static_upper: Optional[float] = 0.0

    tolerance_around_extremes: float = 0.05  # Fraction of range near extremes/center
    maximum_movement_in_deontic_center: float = 1.0  # Fraction of previous range
    mapper_kind: MapperKind = MapperKind.ZERO_BASED

    def __post_init__(self):
        if isinstance(self.range_type, str):
            self.range_type = DeonticRangeType(self.range_type)
        if isinstance(self.mapper_kind, str):
            self.mapper_kind = MapperKind(self.mapper_kind)

    def validate(self) -> None:
        """Validate configuration parameters."""
        if self.history_length < 1:
            raise ConfigurationError("history_length must be at least 1")
        if not 0 <= self.tolerance_around_extremes <= 1:
            raise ConfigurationError("tolerance_around_extremes must be in [0, 1]")
        if not 0 <= self.maximum_movement_in_deontic_center <= 1:
            raise ConfigurationError("maximum_movement_in_deontic_center must be in [0, 1]")

        if self.range_type == DeonticRangeType.STATIC_MIN_MAX:
            if self.static_lower is None or self.static_upper is None:
                raise ConfigurationError("Static deontic range requires lower and upper boundary")
            if self.static_lower > self.static_upper:
                raise ConfigurationError("static_lower must not exceed static_upper")


@dataclass
class NAdicoConfig:
    """
    Configuration for a generalizer and the deontic range it owns.

    The two round thresholds are carried for the host simulation, which
    decides when a stable statement becomes an established norm. Nothing in
    this package reads them beyond validate().
    """

    deontic_range: DeonticRangeConfig = field(default_factory=DeonticRangeConfig)
    aggregation_strategy: AggregationStrategy = AggregationStrategy.SUM
    remove_non_attribute_aim_properties: bool = False

    # Read by the host only
    rounds_of_stability_before_norm_establishment: int = 100
    rounds_of_deviation_before_switching_to_permissive_deontic: int = 200

    def __post_init__(self):
        if isinstance(self.aggregation_strategy, str):
            self.aggregation_strategy = AggregationStrategy(self.aggregation_strategy)

    def validate(self) -> None:
        """Validate configuration parameters."""
        self.deontic_range.validate()
        if self.rounds_of_stability_before_norm_establishment < 1:
            raise ConfigurationError(
                "rounds_of_stability_before_norm_establishment must be at least 1"
            )
        if self.rounds_of_deviation_before_switching_to_permissive_deontic < 1:
            raise ConfigurationError(
                "rounds_of_deviation_before_switching_to_permissive_deontic must be at least 1"
            )


# Default configurations
DEFAULT_RANGE_CONFIG = DeonticRangeConfig()

DEFAULT_CONFIG = NAdicoConfig()

# =============================================================================
# Preset Configurations
# =============================================================================

# Classical ADICO: MUST / MAY / MUST NOT by sign only
DISCRETE_CONFIG = NAdicoConfig(
    deontic_range=DeonticRangeConfig(
        range_type=DeonticRangeType.DISCRETE,
        mapper_kind=MapperKind.DISCRETE,
    ),
)

# Boundaries never shrink; extreme sanctions are remembered forever
EXPANDING_CONFIG = NAdicoConfig(
    deontic_range=DeonticRangeConfig(range_type=DeonticRangeType.EXPANDING_MIN_MAX),
)

# Boundaries track only the most recent generalization round
SITUATIONAL_CONFIG = NAdicoConfig(
    deontic_range=DeonticRangeConfig(range_type=DeonticRangeType.SITUATIONAL_MIN_MAX),
)

# Midpoint-centered classification with slow center drift
SYMMETRIC_HISTORY_CONFIG = NAdicoConfig(
    deontic_range=DeonticRangeConfig(
        range_type=DeonticRangeType.HISTORY_MIN_MAX,
        history_length=100,
        tolerance_around_extremes=0.05,
        maximum_movement_in_deontic_center=0.05,
        mapper_kind=MapperKind.SYMMETRIC,
    ),
)
