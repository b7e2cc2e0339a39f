"""
nADICO institutional grammar engine.

Infers generalized norms from valenced action observations in agent-based
simulations. This package contains:

- expression: Attributes / Aim / Conditions and recursive nADICO expressions
- deontic: deontic terms, value mappers and the dynamic deontic range
- generalizer: level-0 and higher-order generalization, ADIC derivation
- memory: fixed-capacity action memory with subsequence queries
"""

from .config import (
    AggregationStrategy,
    DeonticRangeConfig,
    DeonticRangeType,
    MapperKind,
    NAdicoConfig,
)
from .errors import (
    ConfigurationError,
    ExpressionShapeError,
    GeneralizationDepthError,
    InvalidInput,
    MemoryUpdateFailure,
    NAdicoError,
)
from .listeners import GeneralizationProvider, MemoryChangeListener
from .expression import (
    Aim,
    Attributes,
    Combinator,
    Conditions,
    EqualityMode,
    ExpressionType,
    NAdicoExpression,
    NAdicoFactory,
)
from .deontic import DeonticRange, DeonticTerm, NormativeValence
from .generalizer import NAdicoGeneralizer
from .memory import NAdicoActionMemory, ValueAggregation

__all__ = [
    "AggregationStrategy",
    "DeonticRangeConfig",
    "DeonticRangeType",
    "MapperKind",
    "NAdicoConfig",
    "ConfigurationError",
    "ExpressionShapeError",
    "GeneralizationDepthError",
    "InvalidInput",
    "MemoryUpdateFailure",
    "NAdicoError",
    "GeneralizationProvider",
    "MemoryChangeListener",
    "Aim",
    "Attributes",
    "Combinator",
    "Conditions",
    "EqualityMode",
    "ExpressionType",
    "NAdicoExpression",
    "NAdicoFactory",
    "DeonticRange",
    "DeonticTerm",
    "NormativeValence",
    "NAdicoGeneralizer",
    "NAdicoActionMemory",
    "ValueAggregation",
]
