"""
Generalization of valenced observations into nADICO statements.

This module provides:
- NAdicoGeneralizer: level-0 and higher-order generalization, ADIC derivation
- helper: stringification, per-activity aggregation, DataFrame export
"""

from .generalizer import NAdicoGeneralizer, observation_items
from .helper import (
    aggregate_value_for_max_activity,
    build_activity_string,
    calculate_intersection_metric,
    contains_activity,
    get_aim_and_deontic_value,
    get_deontic_value_for_activity,
    get_deontic_value_for_statement_containing_activity,
    get_leading_activity_with_aggregated_deontic_value,
    get_stringified_aic_statement,
    get_stringified_nadico_stmt_and_deontic_value,
    to_frame,
)

__all__ = [
    "NAdicoGeneralizer",
    "observation_items",
    "aggregate_value_for_max_activity",
    "build_activity_string",
    "calculate_intersection_metric",
    "contains_activity",
    "get_aim_and_deontic_value",
    "get_deontic_value_for_activity",
    "get_deontic_value_for_statement_containing_activity",
    "get_leading_activity_with_aggregated_deontic_value",
    "get_stringified_aic_statement",
    "get_stringified_nadico_stmt_and_deontic_value",
    "to_frame",
]
