"""
nADICO expression model.

This module provides:
- Attributes, Aim, Conditions: the ABIC components
- NAdicoExpression: action / statement / combination with or-else nesting
- NAdicoFactory: construction with shape validation
"""

from .components import Aim, Attributes, Conditions
from .expression import (
    Combinator,
    EqualityMode,
    ExpressionType,
    NAdicoExpression,
    to_combinator,
)
from .factory import NAdicoFactory, sort_by_count

__all__ = [
    "Aim",
    "Attributes",
    "Conditions",
    "Combinator",
    "EqualityMode",
    "ExpressionType",
    "NAdicoExpression",
    "NAdicoFactory",
    "sort_by_count",
    "to_combinator",
]
