"""
Deontic values, value mappers and the dynamic deontic range.

This module provides:
- DeonticTerm: the seven-term deontic vocabulary and its lookup tables
- SymmetricDeonticValueMapper: midpoint-centered equi-width compartments
- ZeroBasedDeonticValueMapper: zero-centered, independently scaled halves
- DiscreteDeonticValueMapper: MUST / MAY / MUST NOT by sign
- DeonticRange: boundary tracking fed by generalization rounds
"""

from typing import Union

from ..config import DeonticRangeType, MapperKind
from ..errors import ConfigurationError
from .values import (
    DEONTIC_INVERSION,
    DEONTIC_ORDER,
    DISCRETE_DEONTICS,
    RANGE_DEONTICS,
    SIGNED_DEONTIC_ORDER,
    DeonticTerm,
    NormativeValence,
    invert,
)
from .base import DeonticValueMapper
from .symmetric import SymmetricDeonticValueMapper
from .zero_based import ZeroBasedDeonticValueMapper
from .discrete import DiscreteDeonticValueMapper


def create_mapper(kind: Union[MapperKind, str], deontic_range) -> DeonticValueMapper:
    """
    Factory function to create value mapper instances.

    Args:
        kind: Mapper kind (enum or string)
        deontic_range: Range the mapper reads its boundaries from

    Returns:
        DeonticValueMapper instance
    """
    mapper_classes = {
        MapperKind.SYMMETRIC: SymmetricDeonticValueMapper,
        MapperKind.ZERO_BASED: ZeroBasedDeonticValueMapper,
        MapperKind.DISCRETE: DiscreteDeonticValueMapper,
    }

    if isinstance(kind, str):
        try:
            kind = MapperKind(kind)
        except ValueError:
            pass

    if kind not in mapper_classes:
        raise ConfigurationError(
            f"Unknown mapper kind: {kind}. "
            f"Available: {[k.value for k in mapper_classes]}"
        )

    return mapper_classes[kind](deontic_range)


from .range import DeonticRange  # noqa: E402

__all__ = [
    "DeonticTerm",
    "NormativeValence",
    "RANGE_DEONTICS",
    "DEONTIC_ORDER",
    "SIGNED_DEONTIC_ORDER",
    "DEONTIC_INVERSION",
    "DISCRETE_DEONTICS",
    "invert",
    "DeonticValueMapper",
    "SymmetricDeonticValueMapper",
    "ZeroBasedDeonticValueMapper",
    "DiscreteDeonticValueMapper",
    "DeonticRange",
    "DeonticRangeType",
    "MapperKind",
    "create_mapper",
]
