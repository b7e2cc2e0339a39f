"""
Construction and validation of nADICO expressions.
"""

from typing import Iterable, List, Optional, Union

from ..errors import ExpressionShapeError
from .components import Aim, Attributes, Conditions
from .expression import Combinator, ExpressionType, NAdicoExpression, to_combinator


class NAdicoFactory:
    """
    Creates actions, statements and combinations attached to a deontic range.

    With validation enabled, every created expression is checked for a legal
    shape (see validate()).
    """

    def __init__(self, deontic_range=None, perform_validation: bool = True):
        """
        Initialize factory.

        Args:
            deontic_range: Range attached to every created expression
            perform_validation: Validate expressions after creation
        """
        self._deontic_range = deontic_range
        self._perform_validation = perform_validation

    @property
    def deontic_range(self):
        return self._deontic_range

    def _range(self, deontic_range):
        return deontic_range if deontic_range is not None else self._deontic_range

    def create_action(
        self,
        attributes: Optional[Attributes],
        aim: Optional[Aim],
        conditions: Optional[Conditions],
        deontic_range=None,
    ) -> NAdicoExpression:
        """Create an action from its AIC components."""
        action = NAdicoExpression(ExpressionType.ACTION, self._range(deontic_range))
        action.attributes = attributes
        action.aim = aim
        action.conditions = conditions
        return self._validated(action)

    def create_action_with_empty_instances(
        self,
        attributes: Attributes,
        aim: Optional[Aim] = None,
    ) -> NAdicoExpression:
        """Create an action, filling in empty Aim and Conditions where missing."""
        return self.create_action(
            attributes,
            aim if aim is not None else Aim(),
            Conditions(),
        )

    def create_statement(
        self,
        attributes: Optional[Attributes] = None,
        deontic: Optional[float] = None,
        aim: Optional[Aim] = None,
        conditions: Optional[Conditions] = None,
        or_else: Optional[NAdicoExpression] = None,
        deontic_range=None,
    ) -> NAdicoExpression:
        """Create a statement, optionally with an or-else consequence."""
        statement = NAdicoExpression(ExpressionType.STATEMENT, self._range(deontic_range))
        statement.attributes = attributes
        statement.deontic = deontic
        statement.aim = aim
        statement.conditions = conditions
        statement.set_or_else(or_else)
        return self._validated(statement)

    def create_combination(
        self,
        combinator: Union[Combinator, str],
        *expressions: NAdicoExpression,
    ) -> NAdicoExpression:
        """Create a combination joining the given expressions in order."""
        combination = NAdicoExpression(ExpressionType.STATEMENT, self._deontic_range)
        combination.make_combination(to_combinator(combinator))
        for expression in expressions:
            combination = combination.add_expression(expression, combinator)
        return self._validated(combination)

    def _validated(self, expression: NAdicoExpression) -> NAdicoExpression:
        if self._perform_validation:
            self.validate(expression)
        return expression

    @staticmethod
    def validate(expression: NAdicoExpression) -> bool:
        """
        Check the shape of an expression.

        Raises:
            ExpressionShapeError: If the variant is unset, or a combination
                carries ABIC content or an invalid combinator
        """
        if expression.type is None:
            raise ExpressionShapeError("Expression type has not been specified")
        if expression.is_combination():
            if (
                expression.attributes is not None
                or expression.aim is not None
                or expression.conditions is not None
            ):
                raise ExpressionShapeError(f"Combination must not carry attributes, aim or conditions: {expression}")
            if not isinstance(expression.combinator, Combinator):
                raise ExpressionShapeError(f"Combination has invalid combinator: {expression.combinator}")
        return True


def sort_by_count(expressions: Iterable[NAdicoExpression]) -> List[NAdicoExpression]:
    """Stable sort by count, highest first; expressions without count go last."""
    return sorted(
        expressions,
        key=lambda e: e.count if e.count is not None else float("-inf"),
        reverse=True,
    )
