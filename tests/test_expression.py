"""
Tests for NAdicoExpression: nesting, type transitions, composition,
chain navigation, recursive traversals, copying and equality.
"""

import pytest

from nadico.errors import ExpressionShapeError, InvalidInput
from nadico.expression import (
    Aim,
    Attributes,
    Combinator,
    Conditions,
    EqualityMode,
    ExpressionType,
    NAdicoFactory,
)

factory = NAdicoFactory()


def statement(activity, deontic=None, role="r1", previous=None):
    return factory.create_statement(
        Attributes(social_markers={"ROLE": [role]}),
        deontic,
        Aim(activity),
        Conditions(previous_action=previous),
    )


def action(activity, role="r1", previous=None, name="a"):
    return factory.create_action(
        Attributes({"NAME": [name]}, {"ROLE": [role]}),
        Aim(activity),
        Conditions(previous_action=previous),
    )


def chain(*activities):
    """Build an action chain, earliest activity first; returns the latest action."""
    current = None
    for activity in activities:
        current = action(activity, previous=current)
    return current


class TestNesting:
    """Tests for parent, level and or-else handling."""

    def test_set_parent_propagates_level(self):
        parent = statement("p")
        first, second = statement("a"), statement("b")
        combination = factory.create_combination(Combinator.AND, first, second)

        combination.set_parent(parent)

        assert combination.level == 1
        assert first.parent is parent
        assert second.parent is parent
        assert first.level == 1

    def test_or_else_is_nested_one_level_deeper(self):
        monitored = statement("a", 1.0)
        consequence = statement("b", -1.0)

        monitored.set_or_else(consequence)

        assert monitored.or_else is consequence
        assert consequence.parent is monitored
        assert consequence.level == 1

    def test_or_else_on_action_raises(self):
        with pytest.raises(ExpressionShapeError):
            action("a").set_or_else(statement("b"))

    def test_action_as_or_else_raises(self):
        with pytest.raises(ExpressionShapeError):
            statement("a").set_or_else(action("b"))

    def test_delete_parent_resets_level(self):
        monitored = statement("a")
        consequence = statement("b")
        monitored.set_or_else(consequence)

        consequence.delete_parent()

        assert consequence.parent is None
        assert consequence.level == 0

    def test_deontic_range_inherited_from_root(self):
        sentinel = object()
        monitored = NAdicoFactory(sentinel).create_statement(Attributes(), 1.0, Aim("a"), Conditions())
        consequence = statement("b")
        monitored.set_or_else(consequence)

        assert consequence.deontic_range is sentinel

    def test_sum_of_consequential_deontics(self):
        monitored = statement("a", 1.0)
        assert monitored.sum_of_consequential_deontics() == 0.0

        monitored.set_or_else(statement("b", -1.0))
        assert monitored.sum_of_consequential_deontics() == pytest.approx(-1.0)

        other = statement("c", 1.0)
        other.set_or_else(factory.create_combination("AND", statement("d", 1.0), statement("e", 2.0)))
        assert other.sum_of_consequential_deontics() == pytest.approx(3.0)


class TestTypeTransitions:
    """Tests for make_action / make_statement / make_combination."""

    def test_make_combination_moves_content_into_nested_statement(self):
        original = statement("act", 2.0)
        attributes = original.attributes

        original.make_combination(Combinator.OR)

        assert original.is_combination()
        assert original.attributes is None
        assert original.aim is None
        assert original.conditions is None
        assert original.deontic is None
        assert original.combinator == Combinator.OR
        assert len(original.nested_expressions) == 1
        nested = original.nested_expressions[0]
        assert nested.is_statement()
        assert nested.attributes is attributes
        assert nested.deontic == 2.0

    def test_make_combination_twice_raises(self):
        combination = statement("a").make_combination("AND")
        with pytest.raises(ExpressionShapeError):
            combination.make_combination("OR")

    def test_unknown_combinator_raises(self):
        with pytest.raises(InvalidInput):
            statement("a").make_combination("NAND")

    def test_make_statement_from_action(self):
        expression = action("a")
        expression.make_statement()
        assert expression.type == ExpressionType.STATEMENT

    def test_make_action_from_statement_raises(self):
        with pytest.raises(ExpressionShapeError):
            statement("a").make_action()

    def test_single_element_combination_collapses(self):
        combination = statement("act", 2.0).make_combination("AND")

        combination.make_statement()

        assert combination.is_statement()
        assert combination.aim.activity == "act"
        assert combination.deontic == 2.0
        assert combination.combinator is None
        assert combination.nested_expressions == []

    def test_multi_element_combination_converts_elements(self):
        combination = factory.create_combination("XOR", action("a"), action("b"))

        combination.make_statement()

        assert combination.is_combination()
        assert all(e.is_statement() for e in combination.nested_expressions)


class TestComposition:
    """Tests for add_expression()."""

    def test_first_addition_requires_combinator(self):
        with pytest.raises(InvalidInput):
            statement("a").add_expression(statement("b"))

    def test_adding_statement_creates_combination(self):
        root = statement("a").add_expression(statement("b"), "AND")

        assert root.is_combination()
        assert [e.aim.activity for e in root.nested_expressions] == ["a", "b"]

    def test_same_combinator_flattens(self):
        first = factory.create_combination("AND", statement("a"), statement("b"))
        second = factory.create_combination("AND", statement("c"), statement("d"))

        root = first.add_expression(second)

        assert root is first
        assert [e.aim.activity for e in root.nested_expressions] == ["a", "b", "c", "d"]

    def test_different_combinator_nests(self):
        first = factory.create_combination("AND", statement("a"), statement("b"))
        second = factory.create_combination("OR", statement("c"), statement("d"))

        root = first.add_expression(second)

        assert len(root.nested_expressions) == 3
        assert root.nested_expressions[2] is second

    def test_statement_with_other_combinator_becomes_root(self):
        combination = factory.create_combination("AND", statement("a"), statement("b"))

        root = combination.add_expression(statement("c"), "OR")

        assert root.combinator == Combinator.OR
        assert len(root.nested_expressions) == 2
        assert root.nested_expressions[1] is combination

    def test_duplicate_elements_are_skipped(self):
        combination = factory.create_combination("AND", statement("a"), statement("a"), statement("b"))
        assert len(combination.nested_expressions) == 2

    def test_add_expressions_returns_root(self):
        root = statement("a").add_expressions([statement("b"), statement("c")], "OR")
        assert len(root.nested_expressions) == 3


class TestChainNavigation:
    """Tests for previous-action chains."""

    def test_sequence_length(self):
        latest = chain("e0", "e1", "e2")

        assert latest.number_of_preceding_expressions() == 2
        assert latest.total_expression_sequence_length() == 3

    def test_backtrack(self):
        latest = chain("e0", "e1", "e2")

        assert latest.backtrack_preceding_expressions(0) is latest
        assert latest.backtrack_preceding_expressions(1).aim.activity == "e1"
        with pytest.raises(InvalidInput):
            latest.backtrack_preceding_expressions(-1)
        with pytest.raises(InvalidInput):
            latest.backtrack_preceding_expressions(5)

    def test_initial_expressions(self):
        latest = chain("e0", "e1", "e2")

        for k in range(1, 4):
            assert latest.get_initial_expressions(k).total_expression_sequence_length() == k
        assert latest.get_initial_expressions(1).aim.activity == "e0"
        with pytest.raises(InvalidInput):
            latest.get_initial_expressions(0)
        with pytest.raises(InvalidInput):
            latest.get_initial_expressions(4)


class TestRecursiveTraversals:
    """Tests for marker and activity traversals."""

    def test_social_marker_must_be_present_throughout(self):
        latest = action("b", previous=action("a"))
        assert latest.contains_social_marker_recursively("ROLE", "r1")

        mixed = action("b", previous=action("a", role="r2"))
        assert not mixed.contains_social_marker_recursively("ROLE", "r1")

    def test_activity_search(self):
        latest = chain("a", "b", "a")

        assert latest.contains_activity_recursively("b")
        assert not latest.contains_activity_recursively("c")
        assert latest.contains_any_activity_recursively(["c", "b"])
        assert latest.count_activity_occurrence_recursively("a") == 2

    def test_activity_search_in_combination(self):
        combination = factory.create_combination("AND", action("a"), action("b", previous=action("c")))

        assert combination.contains_activity_recursively("c")
        assert combination.count_activity_occurrence_recursively("b") == 1

    def test_replace_social_markers_in_chain(self):
        latest = chain("a", "b")

        latest.replace_social_markers_recursively({"TEAM": ["t1"]})

        assert latest.attributes.social_markers == {"TEAM": ["t1"]}
        assert latest.conditions.get_previous_action().attributes.social_markers == {"TEAM": ["t1"]}


class TestCopyAndEquality:
    """Tests for make_copy() and comparison modes."""

    def test_copy_is_deep(self):
        original = statement("a", 1.0, previous=action("p"))
        original.set_or_else(statement("b", -1.0))

        copy = original.make_copy()
        copy.attributes.add_social_marker("ROLE", "r9")
        copy.conditions.get_previous_action().aim.set_activity("q")

        assert original.attributes.social_markers == {"ROLE": ["r1"]}
        assert original.conditions.get_previous_action().aim.activity == "p"
        assert copy.or_else is not original.or_else
        assert copy.or_else.parent is copy

    def test_copy_is_new_root(self):
        monitored = statement("a")
        consequence = statement("b")
        monitored.set_or_else(consequence)

        copy = consequence.make_copy()

        assert copy.parent is None
        assert copy.level == 0
        assert copy == consequence

    def test_aic_equality_ignores_deontic_and_count(self):
        first = statement("a", 1.0)
        second = statement("a", 5.0)
        second.count = 3

        assert first == second
        assert hash(first) == hash(second)
        assert first.equals(second, EqualityMode.AIC)
        assert not first.equals(second, EqualityMode.ADIC)
        assert not first.equals(second, "nADICO")

    def test_aic_equality_includes_chain(self):
        assert action("b", previous=action("a")) != action("b", previous=action("c"))
        assert action("b", previous=action("a")) == action("b", previous=action("a"))

    def test_expressions_usable_as_dict_keys(self):
        counts = {}
        for expression in [action("a"), action("a"), action("b")]:
            counts[expression] = counts.get(expression, 0) + 1
        assert sorted(counts.values()) == [1, 2]


class TestRendering:
    """Tests for string rendering."""

    def test_statement_rendering(self):
        expression = statement("a", 1.0)
        expression.count = 2
        text = str(expression)

        assert text.startswith("L0 (Count: 2): A=A(*, {ROLE=[r1]}), D=1.0")
        assert "I=I(a, *)" in text

    def test_action_rendering(self):
        assert str(action("a")).startswith("NAdicoAction [A=A({NAME=[a]}, {ROLE=[r1]})")

    def test_combination_rendering(self):
        combination = factory.create_combination("OR", statement("a"), statement("b"))
        assert " OR " in str(combination)
