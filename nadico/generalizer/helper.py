"""
Helper routines over generalized expressions.

Stringification of activities and AIC statements, per-activity aggregation
of deontic values, selection of the best permissible activity from ranked
memory results, and conversion to pandas DataFrames for analysis.
"""

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from ..deontic import DeonticTerm
from ..errors import InvalidInput
from ..expression import Attributes, NAdicoExpression
from ..expression.components import format_map


def _values_only(mapping: Mapping) -> str:
    values = []
    for value in mapping.values():
        if isinstance(value, (list, tuple, set, frozenset)):
            values.extend(str(v) for v in value)
        else:
            values.append(str(value))
    return ", ".join(values)


def build_activity_string(
    expression: NAdicoExpression,
    extended: bool = False,
    ignored_keys: Optional[Iterable[str]] = None,
    only_values: bool = False,
    include_deontic: bool = False,
    use_valence: bool = False,
) -> str:
    """
    Render an expression as a compact activity string.

    Args:
        expression: Expression to render
        extended: Include individual markers, aim properties and all conditions
        ignored_keys: Aim property keys to leave out
        only_values: Render marker values without their keys
        include_deontic: Prefix the activity with the deontic term
        use_valence: Render the normative valence instead of the term

    Returns:
        e.g. "{ROLE=[r1]}: MAY act-{ROLE=[r2]}: act0"
    """
    ignored = set(ignored_keys or [])

    if expression.is_combination():
        elements = [
            build_activity_string(e, extended, ignored, only_values, include_deontic, use_valence)
            for e in expression.nested_expressions
        ]
        return "(" + f" {expression.combinator} ".join(elements) + ")"

    parts: List[str] = []
    attributes = expression.attributes
    if attributes is not None:
        if extended and attributes.individual_markers:
            markers = attributes.individual_markers
            parts.append(_values_only(markers) if only_values else format_map(markers))
            parts.append(" ")
        social = attributes.social_markers
        parts.append(_values_only(social) if only_values else format_map(social))
        parts.append(": ")

    if expression.aim is not None:
        deontic_range = expression.deontic_range
        if include_deontic and expression.deontic is not None and deontic_range is not None:
            if use_valence:
                parts.append(str(deontic_range.normative_valence(expression.deontic)))
            else:
                parts.append(str(deontic_range.term_for_value(expression.deontic)))
            parts.append(" ")
        parts.append(str(expression.aim.activity))
        if extended:
            properties = [
                f"{key}-{value}" for key, value in expression.aim.properties.items() if key not in ignored
            ]
            if properties:
                parts.append(" (" + ", ".join(properties) + ")")

    conditions = expression.conditions
    if conditions is not None and not conditions.is_empty():
        def render(nested):
            return build_activity_string(nested, extended, ignored, only_values, include_deontic, use_valence)

        if extended:
            entries = []
            for key, value in conditions.properties.items():
                entries.append(f"{key}-{render(value) if isinstance(value, NAdicoExpression) else value}")
            parts.append(" (" + ", ".join(entries) + ")")
        else:
            previous = conditions.get_previous_action()
            if previous is not None:
                parts.append("-" + render(previous))

    return "".join(parts)


def get_stringified_aic_statement(expression: NAdicoExpression) -> str:
    """AIC rendering with marker values only and without deontic."""
    return build_activity_string(expression, extended=False, only_values=True, include_deontic=False)


def _aggregate_by_key(
    expressions: Iterable[NAdicoExpression],
    key_function,
    ignored_deontics: Optional[Iterable[DeonticTerm]] = None,
) -> Dict[str, float]:
    ignored = set(ignored_deontics or [])
    aggregated: Dict[str, float] = {}
    for expression in expressions:
        if ignored and expression.deontic is not None and expression.deontic_range is not None:
            if expression.deontic_range.term_for_value(expression.deontic) in ignored:
                continue
        key = key_function(expression)
        aggregated[key] = aggregated.get(key, 0.0) + (expression.deontic or 0.0)
    return aggregated


def get_aim_and_deontic_value(
    expressions: Iterable[NAdicoExpression],
    ignored_deontics: Optional[Iterable[DeonticTerm]] = None,
) -> Dict[str, float]:
    """Activity string -> summed deontic, skipping expressions with ignored deontic terms."""
    return _aggregate_by_key(expressions, build_activity_string, ignored_deontics)


def get_stringified_nadico_stmt_and_deontic_value(
    expressions: Iterable[NAdicoExpression],
    ignored_deontics: Optional[Iterable[DeonticTerm]] = None,
) -> Dict[str, float]:
    """Full statement rendering -> summed deontic."""
    return _aggregate_by_key(expressions, str, ignored_deontics)


def get_leading_activity_with_aggregated_deontic_value(
    expressions: Iterable[NAdicoExpression],
) -> Dict[Optional[str], float]:
    """Top-level activity -> summed deontic."""
    aggregated: Dict[Optional[str], float] = {}
    for expression in expressions:
        activity = expression.aim.activity if expression.aim is not None else None
        aggregated[activity] = aggregated.get(activity, 0.0) + (expression.deontic or 0.0)
    return aggregated


def get_deontic_value_for_activity(expressions: Iterable[NAdicoExpression], activity: str) -> float:
    """Summed deontic of all expressions whose top-level aim performs the activity."""
    return sum(
        e.deontic or 0.0
        for e in expressions
        if e.aim is not None and e.aim.activity == activity
    )


def contains_activity(expressions: Iterable[NAdicoExpression], activity: str) -> bool:
    """Whether any expression performs the activity at top level."""
    if activity is None:
        raise InvalidInput("Activity to check for must not be None")
    return any(e.aim is not None and e.aim.activity == activity for e in expressions)


def get_deontic_value_for_statement_containing_activity(
    expressions: Iterable[NAdicoExpression],
    activity: str,
) -> float:
    """
    Summed deontic of expressions performing the activity, either at top
    level or anywhere in their preceding chain.
    """
    total = 0.0
    for expression in expressions:
        if expression.aim is not None and expression.aim.activity == activity:
            total += expression.deontic or 0.0
            continue
        previous = expression.conditions.get_previous_action() if expression.conditions is not None else None
        if previous is not None and previous.contains_activity_recursively(activity):
            total += expression.deontic or 0.0
    return total


def aggregate_value_for_max_activity(
    ranked: Sequence[Tuple[NAdicoExpression, float]],
    permissible_activities: Iterable[str],
) -> Optional[Tuple[NAdicoExpression, float]]:
    """
    Select the best permissible activity from a ranked list.

    The first ranked expression containing any permissible activity is
    selected and the initial action of its chain gives the leading activity.
    The values of the selected and all lower-ranked entries whose chains
    contain that activity are summed.

    Args:
        ranked: (expression, value) pairs, best first
        permissible_activities: Activities the agent may perform

    Returns:
        (initial expression of the selected chain, aggregated value), or None
    """
    permissible = list(permissible_activities)
    selected_index = None
    for index, (expression, _) in enumerate(ranked):
        if expression.contains_any_activity_recursively(permissible):
            selected_index = index
            break
    if selected_index is None:
        return None

    leading = ranked[selected_index][0].get_initial_expressions(1)
    if leading.aim is None:
        return None
    activity = leading.aim.activity
    total = sum(value for expression, value in ranked[selected_index:]
                if expression.contains_activity_recursively(activity))
    return leading, total


def calculate_intersection_metric(first: Attributes, second: Attributes) -> float:
    """
    Share of social marker pairs two attribute sets have in common.

    Returns:
        |intersection| / |union| over (category, marker) pairs, 1.0 if both are empty
    """
    pairs_first = {(k, v) for k, values in first.social_markers.items() for v in values}
    pairs_second = {(k, v) for k, values in second.social_markers.items() for v in values}
    union = pairs_first | pairs_second
    if not union:
        return 1.0
    return len(pairs_first & pairs_second) / len(union)


def to_frame(generalized: Mapping[NAdicoExpression, Sequence[NAdicoExpression]]) -> pd.DataFrame:
    """
    Tabulate generalized expressions.

    Args:
        generalized: Generalized expression -> instances

    Returns:
        DataFrame with one row per group (statement, activity, deontic, term, count)
    """
    rows = []
    for expression, instances in generalized.items():
        deontic_range = expression.deontic_range
        term = None
        if expression.deontic is not None and deontic_range is not None:
            term = str(deontic_range.term_for_value(expression.deontic))
        rows.append({
            "statement": get_stringified_aic_statement(expression),
            "activity": expression.aim.activity if expression.aim is not None else None,
            "deontic": expression.deontic,
            "term": term,
            "count": len(instances),
        })
    return pd.DataFrame(rows, columns=["statement", "activity", "deontic", "term", "count"])
