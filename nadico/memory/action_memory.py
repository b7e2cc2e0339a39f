"""
Action memory for nADICO expressions.

Stores observed action expressions with their valences and answers
subsequence queries over the stored action chains:

- as last expression: the query is the top-level action of a record
- as previous expression: the query occurs in the previous-action spine
- on any level: union of both

Conditions are matched strictly (empty conditions only match empty
conditions, chains are compared at fixed depth) or as wildcards (empty
conditions match anything, chains are searched level by level).
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from ..errors import ConfigurationError, ExpressionShapeError, InvalidInput
from ..expression import Aim, Attributes, Conditions, NAdicoExpression
from .base import BaseKeyValueMemory

logger = logging.getLogger(__name__)


class ValueAggregation(Enum):
    """Aggregation of the values of matching memory records."""
    COUNT = "count"
    SUM = "sum"
    MEAN = "mean"


def to_aggregation(value: Union[ValueAggregation, str]) -> ValueAggregation:
    """Convert a string to a ValueAggregation, raising InvalidInput for unknown values."""
    if isinstance(value, ValueAggregation):
        return value
    try:
        return ValueAggregation(str(value).lower())
    except ValueError:
        raise InvalidInput(
            f"Invalid value aggregation strategy: {value}. "
            f"Available: {[a.value for a in ValueAggregation]}"
        ) from None


def _marker_sets(markers: Dict[str, List[str]]) -> Dict[str, frozenset]:
    return {key: frozenset(values) for key, values in markers.items()}


class NAdicoActionMemory(BaseKeyValueMemory[NAdicoExpression]):
    """
    Fixed-capacity memory of (action expression, valence) records.

    Queries optionally generalize records (and the query) before matching,
    which requires the owner's generalizer.
    """

    def __init__(self, number_of_entries: int = 100, owner: Optional[str] = None, generalizer=None):
        """
        Initialize action memory.

        Args:
            number_of_entries: Maximum number of records
            owner: Identifier of the owning agent
            generalizer: NAdicoGeneralizer used for generalizing queries
        """
        super().__init__(number_of_entries, owner)
        self._generalizer = generalizer

    @property
    def generalizer(self):
        return self._generalizer

    def _generalize(self, expression: NAdicoExpression) -> NAdicoExpression:
        if self._generalizer is None:
            raise ConfigurationError(
                f"{self._owner}: generalizer has not been specified for action memory"
            )
        return self._generalizer.generalize_expression(expression)

    # ------------------------------------------------------------------
    # Direct value lookups
    # ------------------------------------------------------------------

    def get_value_for_key(
        self,
        expression: NAdicoExpression,
        aggregation: Union[ValueAggregation, str] = ValueAggregation.SUM,
        generalize: bool = False,
        strict: bool = True,
    ) -> Optional[float]:
        """
        Aggregate the values of all records matching an expression.

        Args:
            expression: Query expression (not generalized)
            aggregation: COUNT, SUM or MEAN
            generalize: Generalize records before matching
            strict: Strict (vs. wildcard) conditions matching

        Returns:
            Aggregated value, or None if no record matches
        """
        aggregation = to_aggregation(aggregation)
        matches = 0
        total = 0.0
        for entry in self._history:
            candidate = self._generalize(entry.key) if generalize else entry.key
            if self.match(expression, candidate, False, strict):
                matches += 1
                total += entry.value

        if matches == 0:
            return None
        if aggregation == ValueAggregation.COUNT:
            return float(matches)
        if aggregation == ValueAggregation.MEAN:
            return total / matches
        return total

    def get_count_for_key(self, expression: NAdicoExpression) -> Optional[float]:
        """Number of records strictly matching an expression."""
        return self.get_value_for_key(expression, ValueAggregation.COUNT)

    def get_mean_value_for_key(self, expression: NAdicoExpression) -> Optional[float]:
        """Mean value of records strictly matching an expression."""
        return self.get_value_for_key(expression, ValueAggregation.MEAN)

    def get_all_keys(self) -> List[NAdicoExpression]:
        return self.keys()

    def get_max_nadico_expression(self) -> Optional[Tuple[NAdicoExpression, float]]:
        """Record with the highest raw valence, irrespective of content."""
        return self.highest_value_entry()

    def get_ranked_nadico_expressions(
        self,
        aggregation: Union[ValueAggregation, str] = ValueAggregation.SUM,
    ) -> List[Tuple[NAdicoExpression, float]]:
        """
        Generalize all records, group them and rank the groups.

        Args:
            aggregation: COUNT, SUM or MEAN over each group's records

        Returns:
            (generalized expression, aggregated value), highest first
        """
        aggregation = to_aggregation(aggregation)
        grouped: Dict[NAdicoExpression, Tuple[int, float]] = {}
        for key, (count, total) in self.complete_entries().items():
            generalized = self._generalize(key)
            previous_count, previous_total = grouped.get(generalized, (0, 0.0))
            grouped[generalized] = (previous_count + count, previous_total + total)

        ranked = []
        for key, (count, total) in grouped.items():
            if aggregation == ValueAggregation.COUNT:
                value = float(count)
            elif aggregation == ValueAggregation.MEAN:
                value = total / count
            else:
                value = total
            ranked.append((key, value))
        ranked.sort(key=lambda pair: pair[1], reverse=True)
        return ranked

    # ------------------------------------------------------------------
    # Subsequence queries
    # ------------------------------------------------------------------

    def _expressions_with_given_expression(
        self,
        expression: NAdicoExpression,
        as_previous_expression: bool,
        max_only: bool,
        generalize: bool,
        return_complete_expression: bool,
        strict: bool,
        aggregation: Union[ValueAggregation, str],
    ) -> Dict[NAdicoExpression, float]:
        aggregation = to_aggregation(aggregation)
        query = self._generalize(expression) if generalize else expression.make_copy()

        matching: Dict[NAdicoExpression, float] = {}
        seen: List[NAdicoExpression] = []
        for item in self.keys():
            if generalize:
                item = self._generalize(item)
            if item in seen:
                continue
            seen.append(item)
            if not self.match(query, item, as_previous_expression, strict):
                continue
            value = self.get_value_for_key(item, aggregation, generalize, strict)
            if return_complete_expression:
                key = item.make_copy()
            else:
                length = min(expression.total_expression_sequence_length() + 1, item.total_expression_sequence_length())
                key = item.make_copy().get_initial_expressions(length)
            matching[key] = value

        if max_only and len(matching) > 1:
            maximum = max(matching.values())
            matching = {key: value for key, value in matching.items() if value == maximum}
        logger.debug(
            "%s: %d matches for %s (previous: %s, strict: %s, generalized: %s)",
            self._owner, len(matching), expression, as_previous_expression, strict, generalize,
        )
        return matching

    @staticmethod
    def _first(matching: Dict[NAdicoExpression, float]) -> Optional[Tuple[NAdicoExpression, float]]:
        return next(iter(matching.items()), None)

    def get_max_nadico_expression_as_last_expression(
        self,
        expression: NAdicoExpression,
        generalize: bool = False,
        strict: bool = True,
        aggregation: Union[ValueAggregation, str] = ValueAggregation.SUM,
    ) -> Optional[Tuple[NAdicoExpression, float]]:
        """First record with the highest value that has the expression as its top-level action."""
        return self._first(self.get_max_nadico_expressions_as_last_expression(
            expression, generalize, strict, aggregation))

    def get_max_nadico_expressions_as_last_expression(
        self,
        expression: NAdicoExpression,
        generalize: bool = False,
        strict: bool = True,
        aggregation: Union[ValueAggregation, str] = ValueAggregation.SUM,
    ) -> Dict[NAdicoExpression, float]:
        """All highest-valued records that have the expression as their top-level action."""
        return self._expressions_with_given_expression(
            expression, False, True, generalize, True, strict, aggregation)

    def get_nadico_expressions_as_last_expression(
        self,
        expression: NAdicoExpression,
        generalize: bool = False,
        strict: bool = True,
        aggregation: Union[ValueAggregation, str] = ValueAggregation.SUM,
    ) -> Dict[NAdicoExpression, float]:
        """All records that have the expression as their top-level action."""
        return self._expressions_with_given_expression(
            expression, False, False, generalize, True, strict, aggregation)

    def get_max_nadico_expression_as_previous_expression(
        self,
        expression: NAdicoExpression,
        generalize: bool = False,
        return_complete_expression: bool = True,
        strict: bool = True,
        aggregation: Union[ValueAggregation, str] = ValueAggregation.SUM,
    ) -> Optional[Tuple[NAdicoExpression, float]]:
        """First highest-valued record containing the expression in its preceding chain."""
        return self._first(self.get_max_nadico_expressions_as_previous_expression(
            expression, generalize, return_complete_expression, strict, aggregation))

    def get_max_nadico_expressions_as_previous_expression(
        self,
        expression: NAdicoExpression,
        generalize: bool = False,
        return_complete_expression: bool = True,
        strict: bool = True,
        aggregation: Union[ValueAggregation, str] = ValueAggregation.SUM,
    ) -> Dict[NAdicoExpression, float]:
        """
        All highest-valued records containing the expression in their preceding chain.

        Args:
            expression: Subsequence to find
            generalize: Generalize query and records before matching
            return_complete_expression: Return complete records instead of the
                query chain extended by its immediate successor (searching A in
                A <- B <- C yields A <- B)
            strict: Strict (vs. wildcard) conditions matching
            aggregation: COUNT, SUM or MEAN
        """
        return self._expressions_with_given_expression(
            expression, True, True, generalize, return_complete_expression, strict, aggregation)

    def get_nadico_expressions_as_previous_expression(
        self,
        expression: NAdicoExpression,
        generalize: bool = False,
        return_complete_expression: bool = True,
        strict: bool = True,
        aggregation: Union[ValueAggregation, str] = ValueAggregation.SUM,
    ) -> Dict[NAdicoExpression, float]:
        """All records containing the expression in their preceding chain."""
        return self._expressions_with_given_expression(
            expression, True, False, generalize, return_complete_expression, strict, aggregation)

    def _expressions_on_any_level(
        self,
        expression: NAdicoExpression,
        max_only: bool,
        generalize: bool,
        return_complete_expression: bool,
        strict: bool,
        aggregation: Union[ValueAggregation, str],
    ) -> Dict[NAdicoExpression, float]:
        matching = self._expressions_with_given_expression(
            expression, True, max_only, generalize, return_complete_expression, strict, aggregation)
        # Same-level results take precedence for keys found by both searches
        matching.update(self._expressions_with_given_expression(
            expression, False, max_only, generalize, return_complete_expression, strict, aggregation))
        return matching

    def get_max_nadico_expressions_on_any_level(
        self,
        expression: NAdicoExpression,
        generalize: bool = False,
        return_complete_expression: bool = True,
        strict: bool = True,
        aggregation: Union[ValueAggregation, str] = ValueAggregation.SUM,
    ) -> Dict[NAdicoExpression, float]:
        """
        Highest-valued records containing the expression on any level.

        The maximum is determined separately for the previous-expression and
        the last-expression search before both results are merged.
        """
        return self._expressions_on_any_level(
            expression, True, generalize, return_complete_expression, strict, aggregation)

    def get_nadico_expressions_on_any_level(
        self,
        expression: NAdicoExpression,
        generalize: bool = False,
        return_complete_expression: bool = True,
        strict: bool = True,
        aggregation: Union[ValueAggregation, str] = ValueAggregation.SUM,
    ) -> Dict[NAdicoExpression, float]:
        """All records containing the expression on any level."""
        return self._expressions_on_any_level(
            expression, False, generalize, return_complete_expression, strict, aggregation)

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def match(
        self,
        expression: NAdicoExpression,
        candidate: NAdicoExpression,
        match_preceding_subsequence: bool = False,
        strict: bool = True,
    ) -> bool:
        """
        Match a query expression against a memorized candidate.

        Args:
            expression: Query expression
            candidate: Memorized expression
            match_preceding_subsequence: Look for the query in the candidate's
                preceding chain instead of on its top level
            strict: Strict (vs. wildcard) conditions matching
        """
        if expression.is_combination() and candidate.is_combination():
            return self.match_combinations(expression, candidate, match_preceding_subsequence, strict)
        if expression.is_combination() or candidate.is_combination():
            return False
        if expression.type is None or candidate.type is None:
            raise ExpressionShapeError(
                f"Unsupported expression comparison: query {expression}, candidate {candidate}"
            )
        if expression.is_action() != candidate.is_action():
            return False
        return self.match_actions(expression, candidate, match_preceding_subsequence, strict)

    def match_combinations(
        self,
        expression: NAdicoExpression,
        candidate: NAdicoExpression,
        match_preceding_subsequence: bool = False,
        strict: bool = True,
    ) -> bool:
        """Match combinations element by element in order."""
        if expression.combinator != candidate.combinator:
            return False
        if len(expression.nested_expressions) > len(candidate.nested_expressions):
            return False
        return all(
            self.match(nested, candidate.nested_expressions[i], match_preceding_subsequence, strict)
            for i, nested in enumerate(expression.nested_expressions)
        )

    def match_actions(
        self,
        expression: NAdicoExpression,
        candidate: NAdicoExpression,
        match_preceding_subsequence: bool = False,
        strict: bool = True,
    ) -> bool:
        """Match actions on the same level or within the candidate's preceding chain."""
        if candidate is None:
            raise InvalidInput("Memorized expression for comparison must not be None")
        if expression is None:
            return True

        if match_preceding_subsequence:
            length = expression.total_expression_sequence_length()
            if candidate.total_expression_sequence_length() <= length:
                return False
            if strict:
                candidate = candidate.get_initial_expressions(length)
            else:
                while candidate.total_expression_sequence_length() > 1:
                    candidate = candidate.backtrack_preceding_expressions(1)
                    if self.match_aic(expression, candidate, strict):
                        return True
                return False

        return self.match_aic(expression, candidate, strict)

    def match_aic(self, expression: NAdicoExpression, candidate: NAdicoExpression, strict: bool = True) -> bool:
        """Match attributes, aim and conditions of a query against a candidate."""
        return (
            self.match_attributes(expression.attributes, candidate.attributes)
            and self.match_aim(expression.aim, candidate.aim)
            and self.match_conditions(expression.conditions, candidate.conditions, strict)
        )

    @staticmethod
    def match_attributes(attributes: Optional[Attributes], candidate: Optional[Attributes]) -> bool:
        """Every marker category of the query must carry the same values in the candidate."""
        if attributes is None or attributes.is_empty():
            return True
        if candidate is None:
            return False
        individual = _marker_sets(candidate.individual_markers)
        social = _marker_sets(candidate.social_markers)
        for key, values in _marker_sets(attributes.individual_markers).items():
            if individual.get(key) != values:
                return False
        for key, values in _marker_sets(attributes.social_markers).items():
            if social.get(key) != values:
                return False
        return True

    @staticmethod
    def match_aim(aim: Optional[Aim], candidate: Optional[Aim]) -> bool:
        """Activity (if given) and every property of the query must match the candidate."""
        if aim is None or aim.is_empty():
            return True
        if candidate is None:
            return False
        if aim.activity:
            if not candidate.activity or candidate.activity != aim.activity:
                return False
        for key, value in aim.properties.items():
            if key not in candidate.properties or candidate.properties[key] != value:
                return False
        return True

    @staticmethod
    def match_conditions(conditions: Optional[Conditions], candidate: Optional[Conditions], strict: bool = True) -> bool:
        """
        Match conditions.

        Empty query conditions match anything in wildcard mode, and only empty
        candidate conditions in strict mode. Otherwise every query property must
        be present with an equal value.
        """
        if conditions is None or conditions.is_empty():
            if not strict:
                return True
            return candidate is None or candidate.is_empty()
        if candidate is None:
            return False
        for key, value in conditions.properties.items():
            if key not in candidate.properties or candidate.properties[key] != value:
                return False
        return True
