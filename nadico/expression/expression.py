"""
nADICO expressions.

Based on the Grammar of Institutions (Crawford & Ostrom 1995) and its nested
extension nADICO (Frantz et al. 2013). An expression is one of three
variants:

- ACTION: observed behavior, Attributes + aIm + Conditions
- STATEMENT: institutional statement, additionally a Deontic and an
  optional "or else" consequence
- COMBINATION: AND/OR/XOR over nested expressions, without own ABIC

Action chains are expressed through Conditions.PREVIOUS_ACTION; the nesting
level and parent back-reference describe the or-else/combination tree.
Type transitions (make_action, make_statement, make_combination) rewrite the
expression in place.
"""

from enum import Enum
from typing import Iterable, List, Optional, Union

from ..errors import ExpressionShapeError, InvalidInput
from .components import Attributes, Conditions


class ExpressionType(Enum):
    """Variants of a nADICO expression."""
    ACTION = "ACTION"
    STATEMENT = "STATEMENT"
    COMBINATION = "COMBINATION"


class Combinator(Enum):
    """Logical operators joining nested expressions."""
    AND = "AND"
    OR = "OR"
    XOR = "XOR"

    def __str__(self) -> str:
        return self.value


class EqualityMode(Enum):
    """Granularity of expression comparison."""
    AIC = "AIC"        # Attributes, aIm, Conditions (+ combinator, nested elements)
    ADIC = "ADIC"      # AIC + Deontic
    NADICO = "nADICO"  # ADIC + level, count, parent, or-else, nested at nADICO level


def to_combinator(value: Union[Combinator, str, None]) -> Optional[Combinator]:
    """Convert a string to a Combinator, raising InvalidInput for unknown values."""
    if value is None or isinstance(value, Combinator):
        return value
    try:
        return Combinator(str(value).upper())
    except ValueError:
        raise InvalidInput(f"Invalid combinator value provided: {value}") from None


class NAdicoExpression:
    """
    Recursive nADICO expression.

    Attributes:
        type: Variant (ACTION, STATEMENT, COMBINATION)
        attributes: Actor identity (None for combinations)
        deontic: Numeric deontic value (valence for actions)
        aim: Activity (None for combinations)
        conditions: Context including the previous action (None for combinations)
        nested_expressions: Ordered elements of a combination (no AIC duplicates)
        combinator: Logical operator of a combination
        count: Number of instances a generalized statement was derived from
        probability: Optional probability annotation
        deontic_inverted: Whether the deontic was inverted during derivation
        level: Nesting depth (0 for roots)
    """

    WILDCARD = "*"
    DEFAULT_COMBINATOR = Combinator.AND

    def __init__(self, expression_type: Optional[ExpressionType] = None, deontic_range=None):
        self.type = expression_type
        self._deontic_range = deontic_range
        self._parent: Optional["NAdicoExpression"] = None
        self._or_else: Optional["NAdicoExpression"] = None
        self.level = 0

        self.attributes: Optional[Attributes] = None
        self.deontic: Optional[float] = None
        self.aim = None
        self.conditions: Optional[Conditions] = None

        self.nested_expressions: List["NAdicoExpression"] = []
        self.combinator: Optional[Combinator] = None

        self.count: Optional[int] = None
        self.probability: Optional[float] = None
        self.deontic_inverted = False

    # ------------------------------------------------------------------
    # Variant checks
    # ------------------------------------------------------------------

    def is_action(self) -> bool:
        return self.type == ExpressionType.ACTION

    def is_statement(self) -> bool:
        return self.type == ExpressionType.STATEMENT

    def is_combination(self) -> bool:
        return self.type == ExpressionType.COMBINATION

    # ------------------------------------------------------------------
    # Tree structure
    # ------------------------------------------------------------------

    @property
    def parent(self) -> Optional["NAdicoExpression"]:
        """Parent in the or-else/combination tree (non-owning)."""
        return self._parent

    @property
    def or_else(self) -> Optional["NAdicoExpression"]:
        """Consequential expression applying if this statement is violated."""
        return self._or_else

    @property
    def deontic_range(self):
        """Deontic range of the tree root, falling back to this expression's own."""
        if self._parent is not None:
            inherited = self._parent.deontic_range
            if inherited is not None:
                return inherited
        return self._deontic_range

    @deontic_range.setter
    def deontic_range(self, deontic_range) -> None:
        self._deontic_range = deontic_range

    def set_or_else(self, expression: Optional["NAdicoExpression"]) -> None:
        """
        Attach a consequence to this statement.

        Args:
            expression: Statement or combination; None is ignored
        """
        if expression is None:
            return
        if self.is_action():
            raise ExpressionShapeError("Cannot add 'or else' expression to action")
        if expression.is_action():
            raise ExpressionShapeError("Cannot add action as 'or else' expression")
        expression.set_parent(self)
        self._or_else = expression

    def set_parent(self, parent: Optional["NAdicoExpression"]) -> None:
        """
        Set the parent and propagate nesting levels.

        Nested elements of a combination share the combination's parent;
        an or-else expression has its containing expression as parent.
        """
        if self._parent is not parent:
            self._parent = parent
        self.level = parent.level + 1 if parent is not None else 0
        if self.is_combination():
            for expression in self.nested_expressions:
                expression.set_parent(self._parent)
        if self._or_else is not None:
            self._or_else.set_parent(self)

    def delete_parent(self) -> None:
        self.set_parent(None)

    def sum_of_consequential_deontics(self) -> float:
        """Sum of the deontic values of all consequential statements."""
        consequence = self._or_else
        if consequence is None:
            return 0.0
        if not consequence.is_combination():
            return consequence.deontic or 0.0
        return self._sum_nested_deontics(consequence)

    @staticmethod
    def _sum_nested_deontics(combination: "NAdicoExpression") -> float:
        total = 0.0
        for expression in combination.nested_expressions:
            if expression.is_combination():
                total += NAdicoExpression._sum_nested_deontics(expression)
            elif expression.deontic is not None:
                total += expression.deontic
        return total

    # ------------------------------------------------------------------
    # Type transitions
    # ------------------------------------------------------------------

    def make_action(self) -> "NAdicoExpression":
        if self.is_combination() or self.is_statement():
            raise ExpressionShapeError("Combinations and statements cannot be converted into actions")
        self.type = ExpressionType.ACTION
        return self

    def make_statement(self) -> "NAdicoExpression":
        """
        Convert this expression into a statement.

        A combination with several elements keeps its shape and converts each
        element instead; a combination with a single element collapses into it.
        """
        if self.is_combination():
            if len(self.nested_expressions) > 1:
                for expression in self.nested_expressions:
                    expression.make_statement()
                return self
            if len(self.nested_expressions) == 1:
                source = self.nested_expressions[0]
                self.attributes = source.attributes
                self.deontic = source.deontic
                self.aim = source.aim
                self.conditions = source.conditions
                self._or_else = source.or_else
                self.nested_expressions = []
            self.combinator = None
        self.type = ExpressionType.STATEMENT
        if self._or_else is not None:
            self._or_else.set_parent(self)
        return self

    def make_combination(self, combinator: Union[Combinator, str, None] = None) -> "NAdicoExpression":
        """
        Convert this expression into a combination.

        Populated ABIC content is preserved as the first nested statement.
        """
        if self.is_combination():
            raise ExpressionShapeError("Combination cannot be made into combination")
        combinator = to_combinator(combinator)
        self.type = ExpressionType.COMBINATION
        self.combinator = combinator if combinator is not None else self.DEFAULT_COMBINATOR
        if self.attributes is not None or self.aim is not None or self.conditions is not None:
            statement = NAdicoExpression(ExpressionType.STATEMENT)
            statement.attributes = self.attributes
            statement.deontic = self.deontic
            statement.aim = self.aim
            statement.conditions = self.conditions
            statement.set_or_else(self._or_else)
            statement.set_parent(self._parent)
            self.nested_expressions.append(statement)
        self.attributes = None
        self.deontic = None
        self.aim = None
        self.conditions = None
        self._or_else = None
        return self

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def _append_nested(self, expression: "NAdicoExpression") -> None:
        if expression not in self.nested_expressions:
            self.nested_expressions.append(expression)

    def add_expression(
        self,
        expression: "NAdicoExpression",
        combinator: Union[Combinator, str, None] = None,
    ) -> "NAdicoExpression":
        """
        Combine an expression with this one.

        Args:
            expression: Expression to add
            combinator: Operator joining both; required if this expression
                is not yet a combination

        Returns:
            Root of the resulting combination (self, or the added expression
            if it became the new outer combination)
        """
        combinator = to_combinator(combinator)
        if expression is None:
            raise InvalidInput(f"Passed no expression to add to {self}")
        if self.combinator is None and combinator is None:
            raise InvalidInput("Cannot pass null combinator for first element in combination")

        if self._or_else is not None or expression.or_else is not None:
            if self.is_statement() or self.is_action():
                self.make_combination(combinator)
            expression.set_parent(self._parent)
            self._append_nested(expression)
            return self

        if self.is_combination():
            if expression.is_combination():
                expression.set_parent(self._parent)
                if self.combinator == expression.combinator:
                    for nested in expression.nested_expressions:
                        self._append_nested(nested)
                else:
                    self._append_nested(expression)
                return self
            if expression.is_statement() or expression.is_action():
                if combinator is not None and combinator != self.combinator:
                    expression.make_combination(combinator)
                    expression.set_parent(self._parent)
                    return expression.add_expression(self)
                expression.set_parent(self._parent)
                self._append_nested(expression)
                return self
            raise ExpressionShapeError(f"Cannot add expression of unknown type: {expression}")

        if self.is_statement() or self.is_action():
            if expression.is_combination():
                self.make_combination(combinator)
                expression.set_parent(self._parent)
                if expression.combinator == combinator:
                    for nested in expression.nested_expressions:
                        self._append_nested(nested)
                else:
                    self._append_nested(expression)
                return self
            if expression.is_statement() or expression.is_action():
                self.make_combination(combinator)
                expression.set_parent(self._parent)
                self._append_nested(expression)
                return self
            raise ExpressionShapeError(f"Cannot add expression of unknown type: {expression}")

        raise ExpressionShapeError(f"Expression of unknown type does not accept additions: {self}")

    def add_expressions(
        self,
        expressions: Iterable["NAdicoExpression"],
        combinator: Union[Combinator, str, None] = None,
    ) -> "NAdicoExpression":
        """Add several expressions in order; returns the resulting root."""
        root = self
        for expression in expressions:
            root = root.add_expression(expression, combinator)
        return root

    # ------------------------------------------------------------------
    # Recursive traversals
    # ------------------------------------------------------------------

    def _previous(self) -> Optional["NAdicoExpression"]:
        if self.conditions is None:
            return None
        return self.conditions.get_previous_action()

    def contains_social_marker_recursively(self, category: str, marker: str) -> bool:
        """True iff every reachable action/statement carries the social marker."""
        if self.is_action() or self.is_statement():
            if self.attributes is None or not self.attributes.has_social_marker(category, marker):
                return False
            previous = self._previous()
            if previous is not None:
                return previous.contains_social_marker_recursively(category, marker)
            return True
        if self.is_combination():
            return all(
                expression.contains_social_marker_recursively(category, marker)
                for expression in self.nested_expressions
            )
        raise ExpressionShapeError(f"Cannot check attributes of expression of unknown type: {self.type}")

    def contains_activity_recursively(self, activity: str) -> bool:
        """True iff any reachable action/statement performs the activity."""
        if self.is_action() or self.is_statement():
            if self.aim is not None and self.aim.activity == activity:
                return True
            previous = self._previous()
            return previous is not None and previous.contains_activity_recursively(activity)
        if self.is_combination():
            return any(
                expression.contains_activity_recursively(activity)
                for expression in self.nested_expressions
            )
        raise ExpressionShapeError(f"Cannot check aim of expression of unknown type: {self.type}")

    def contains_any_activity_recursively(self, activities: Iterable[str]) -> bool:
        return any(self.contains_activity_recursively(activity) for activity in activities)

    def count_activity_occurrence_recursively(self, activity: str) -> int:
        """Number of reachable actions/statements performing the activity."""
        if self.is_action() or self.is_statement():
            count = 1 if self.aim is not None and self.aim.activity == activity else 0
            previous = self._previous()
            if previous is not None:
                count += previous.count_activity_occurrence_recursively(activity)
            return count
        if self.is_combination():
            return sum(
                expression.count_activity_occurrence_recursively(activity)
                for expression in self.nested_expressions
            )
        raise ExpressionShapeError(f"Cannot check aim of expression of unknown type: {self.type}")

    def replace_social_markers_recursively(self, social_markers) -> None:
        """Replace the social markers of every reachable action/statement."""
        if self.is_action() or self.is_statement():
            if self.attributes is None:
                self.attributes = Attributes()
            self.attributes.replace_social_markers(social_markers)
            previous = self._previous()
            if previous is not None:
                previous.replace_social_markers_recursively(social_markers)
        elif self.is_combination():
            for expression in self.nested_expressions:
                expression.replace_social_markers_recursively(social_markers)
        else:
            raise ExpressionShapeError(f"Cannot modify attributes of expression of unknown type: {self.type}")

    # ------------------------------------------------------------------
    # Chain navigation
    # ------------------------------------------------------------------

    def number_of_preceding_expressions(self) -> int:
        count = 0
        previous = self._previous()
        while previous is not None:
            count += 1
            previous = previous._previous()
        return count

    def total_expression_sequence_length(self) -> int:
        return self.number_of_preceding_expressions() + 1

    def backtrack_preceding_expressions(self, levels: int) -> "NAdicoExpression":
        """Walk the given number of previous-action hops back."""
        if levels < 0:
            raise InvalidInput(f"Illegal backtracking specification: {levels}")
        desired = self
        for _ in range(levels):
            desired = desired._previous()
            if desired is None:
                raise InvalidInput(f"Expression chain is shorter than {levels} preceding expressions")
        return desired

    def get_initial_expressions(self, number: int) -> "NAdicoExpression":
        """
        Get the earliest part of the chain.

        Args:
            number: Length of the prefix to return (at least 1)

        Returns:
            Expression in this chain whose total sequence length is number
        """
        if number < 1:
            raise InvalidInput("Cannot return less than 1 initial expression")
        excluded = self.total_expression_sequence_length() - number
        if excluded < 0:
            raise InvalidInput(
                f"Length of expression sequence ({self.total_expression_sequence_length()}) "
                f"is too small to extract {number} entries"
            )
        return self.backtrack_preceding_expressions(excluded)

    # ------------------------------------------------------------------
    # Copying and comparison
    # ------------------------------------------------------------------

    def make_copy(self, deontic_range=None) -> "NAdicoExpression":
        """
        Deep copy of this expression.

        The copy is a new root: its parent is not preserved. Or-else and
        nested elements are copied and re-parented within the copy.

        Args:
            deontic_range: Range for the copy (defaults to this expression's range)
        """
        copy = NAdicoExpression(
            self.type,
            deontic_range if deontic_range is not None else self.deontic_range,
        )
        copy.attributes = self.attributes.copy() if self.attributes is not None else None
        copy.deontic = self.deontic
        copy.aim = self.aim.copy() if self.aim is not None else None
        copy.conditions = self.conditions.copy() if self.conditions is not None else None
        copy.combinator = self.combinator
        copy.count = self.count
        copy.probability = self.probability
        copy.deontic_inverted = self.deontic_inverted
        for expression in self.nested_expressions:
            nested = expression.make_copy()
            nested.set_parent(copy.parent)
            copy.nested_expressions.append(nested)
        if self._or_else is not None:
            or_else = self._or_else.make_copy()
            or_else.set_parent(copy)
            copy._or_else = or_else
        return copy

    def equality_key(self, mode: EqualityMode = EqualityMode.AIC) -> tuple:
        """Hashable key identifying this expression at the given granularity."""
        if mode == EqualityMode.NADICO:
            nested = tuple(e.equality_key(EqualityMode.NADICO) for e in self.nested_expressions)
        else:
            nested = tuple(self.nested_expressions)
        key = (self.attributes, self.aim, self.conditions, self.combinator, nested)
        if mode in (EqualityMode.ADIC, EqualityMode.NADICO):
            key += (self.deontic,)
        if mode == EqualityMode.NADICO:
            or_else = self._or_else.equality_key(EqualityMode.NADICO) if self._or_else is not None else None
            key += (self.level, self.count, or_else, self._parent)
        return key

    def equals(self, other, mode: Union[EqualityMode, str] = EqualityMode.AIC) -> bool:
        """Compare with another expression at the given granularity."""
        if isinstance(mode, str):
            mode = EqualityMode(mode)
        if self is other:
            return True
        if not isinstance(other, NAdicoExpression):
            return False
        return self.equality_key(mode) == other.equality_key(mode)

    def __eq__(self, other) -> bool:
        if not isinstance(other, NAdicoExpression):
            return NotImplemented
        return self.equals(other, EqualityMode.AIC)

    def __hash__(self) -> int:
        return hash(self.equality_key(EqualityMode.AIC))

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _deontic_string(self) -> str:
        if self.deontic is None:
            return ""
        text = f", D={self.deontic}"
        if self.deontic_inverted:
            text += " (inv)"
        deontic_range = self.deontic_range
        if deontic_range is not None:
            text += f" ({deontic_range.term_for_value(self.deontic)})"
        return text

    def __str__(self) -> str:
        if self.is_statement():
            text = f"L{self.level}"
            if self.probability is not None:
                text += f" (p: {self.probability})"
            if self.count is not None:
                text += f" (Count: {self.count})"
            text += f": A={self.attributes}{self._deontic_string()}, I={self.aim}, C={self.conditions}"
            if self._or_else is not None:
                text += f", O=({self._or_else})"
            return text
        if self.is_combination():
            if not self.nested_expressions:
                return f"Empty combination with combinator {self.combinator}"
            joined = f" {self.combinator} ".join(f"({e})" for e in self.nested_expressions)
            text = f"({joined})"
            if self._or_else is not None:
                text += f", O=({self._or_else})"
            return text
        if self.is_action():
            deontic = f", D={self.deontic}" if self.deontic is not None else ""
            if self.deontic_inverted:
                deontic += " (inv)"
            return f"NAdicoAction [A={self.attributes}{deontic}, I={self.aim}, C={self.conditions}]"
        return f"Invalid expression type {self.type}"

    def __repr__(self) -> str:
        return str(self)

