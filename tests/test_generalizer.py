"""
Tests for NAdicoGeneralizer: generalization, aggregation strategies,
higher-order generalization, ADIC derivation and collaborator handling.
"""

import pytest

from nadico.config import AggregationStrategy, NAdicoConfig
from nadico.errors import (
    ConfigurationError,
    GeneralizationDepthError,
    InvalidInput,
    MemoryUpdateFailure,
)
from nadico.expression import Aim, Attributes, Conditions, NAdicoFactory
from nadico.generalizer import NAdicoGeneralizer, observation_items
from nadico.listeners import GeneralizationProvider, MemoryChangeListener

factory = NAdicoFactory()


def observed(name, actor, activity, previous=None, **social):
    social_markers = {"ACTOR": [actor]} if actor is not None else {}
    for category, marker in social.items():
        social_markers[category] = [marker]
    return factory.create_action(
        Attributes({"NAME": [name]}, social_markers),
        Aim(activity),
        Conditions(previous_action=previous),
    )


class CountingListener(MemoryChangeListener):
    def __init__(self):
        self.calls = 0

    def memory_changed(self):
        self.calls += 1


class FailingListener(MemoryChangeListener):
    def memory_changed(self):
        raise MemoryUpdateFailure("listener rejected update")


class GroupProvider(GeneralizationProvider):
    def __init__(self, markers):
        self.markers = markers

    def generalize_attributes(self, individual_markers):
        return self.markers


class TestObservationInput:
    """Tests for observation normalization."""

    def test_mapping_and_pairs(self):
        expression = observed("a1", "alpha", "act")

        assert observation_items({expression: 1.0}) == [(expression, 1.0)]
        assert observation_items([(expression, 1.0), (expression, 2.0)]) == [(expression, 1.0), (expression, 2.0)]

    def test_none_raises(self):
        with pytest.raises(InvalidInput):
            observation_items(None)


class TestAggregationStrategies:
    """Valences of AIC-equal observations combine per strategy."""

    def observations(self):
        return [
            (observed("a1", "alpha", "act"), 1.0),
            (observed("a2", "alpha", "act"), 2.0),
            (observed("a3", "alpha", "act"), -0.5),
        ]

    def generalize(self, strategy):
        generalizer = NAdicoGeneralizer("agent", config=NAdicoConfig(aggregation_strategy=strategy))
        return generalizer.generalize_valenced_expressions(self.observations())

    def test_sum(self):
        result = self.generalize(AggregationStrategy.SUM)

        assert len(result) == 1
        key, instances = next(iter(result.items()))
        assert key.deontic == pytest.approx(2.5)
        assert len(instances) == 3
        assert key.attributes.individual_markers == {}
        assert key.attributes.social_markers == {"ACTOR": ["alpha"]}

    def test_mean(self):
        key = next(iter(self.generalize(AggregationStrategy.MEAN)))
        assert key.deontic == pytest.approx(2.5 / 3)

    def test_opportunistic_picks_value_furthest_from_center(self):
        result = self.generalize("opportunistic")

        key, instances = next(iter(result.items()))
        assert key.deontic == pytest.approx(2.0)
        assert len(instances) == 3
        assert sorted(i.deontic for i in instances) == [-0.5, 1.0, 2.0]

    def test_distinct_groups(self):
        generalizer = NAdicoGeneralizer("agent")
        result = generalizer.generalize_valenced_expressions({
            observed("a1", "alpha", "act"): 1.0,
            observed("b1", "beta", "act"): -1.0,
        })
        assert len(result) == 2
        assert generalizer.get_cached_generalized_valenced_expressions() is result

    def test_extreme_statements(self):
        generalizer = NAdicoGeneralizer("agent")
        generalizer.generalize_valenced_expressions({
            observed("a1", "alpha", "act"): 3.0,
            observed("b1", "beta", "act"): -2.0,
        })

        assert generalizer.statement_with_max_valence().deontic == 3.0
        assert generalizer.statement_with_min_valence().deontic == -2.0
        assert generalizer.deontic_range.lower_boundary == pytest.approx(-2.0)
        assert generalizer.deontic_range.upper_boundary == pytest.approx(3.0)

    def test_input_is_not_modified(self):
        expression = observed("a1", "alpha", "act")
        NAdicoGeneralizer("agent").generalize_valenced_expressions({expression: 1.0})

        assert expression.attributes.individual_markers == {"NAME": ["a1"]}
        assert expression.deontic is None


class TestGeneralizationErrors:
    """Tests for rejected observations and failed updates."""

    def test_empty_individual_markers_raise(self):
        expression = factory.create_action(Attributes(social_markers={"ROLE": ["r1"]}), Aim("act"), Conditions())
        with pytest.raises(InvalidInput):
            NAdicoGeneralizer("agent").generalize_valenced_expressions({expression: 1.0})

    def test_saturated_valence_fails_range_update(self):
        with pytest.raises(MemoryUpdateFailure):
            NAdicoGeneralizer("agent").generalize_valenced_expressions({observed("a1", "alpha", "act"): 1e39})

    @pytest.mark.parametrize("neighbours", [[], [("other", -1.0), ("third", 1.0)]])
    def test_nan_valence_fails_range_update(self, neighbours):
        observations = [(observed("a1", "alpha", "act"), float("nan"))]
        observations += [(observed("a2", "beta", activity), value) for activity, value in neighbours]

        with pytest.raises(MemoryUpdateFailure):
            NAdicoGeneralizer("agent").generalize_valenced_expressions(observations)

    def test_failing_listener_on_level_zero(self):
        generalizer = NAdicoGeneralizer("agent", listeners=[FailingListener()])
        with pytest.raises(MemoryUpdateFailure):
            generalizer.generalize_valenced_expressions({observed("a1", "alpha", "act"): 1.0})

    def test_failing_listener_on_higher_level(self):
        generalizer = NAdicoGeneralizer("agent", listeners=[FailingListener()])
        expression = observed("a1", "alpha", "act", ROLE="r1")
        with pytest.raises(InvalidInput):
            generalizer.generalize_valenced_expressions_on_higher_level({expression: 1.0}, 1)


class TestCollaborators:
    """Tests for listeners and generalization providers."""

    def test_listener_notified_per_round(self):
        listener = CountingListener()
        generalizer = NAdicoGeneralizer("agent", listeners=[listener])

        generalizer.generalize_valenced_expressions({observed("a1", "alpha", "act"): 1.0})
        generalizer.generalize_valenced_expressions({observed("a1", "alpha", "act"): 2.0})

        assert listener.calls == 2
        generalizer.deregister_memory_change_listener(listener)
        generalizer.generalize_valenced_expressions({observed("a1", "alpha", "act"): 2.0})
        assert listener.calls == 2

    def test_range_is_registered_listener(self):
        generalizer = NAdicoGeneralizer("agent")
        assert generalizer.memory_change_listeners == [generalizer.deontic_range]

    def test_provider_replaces_individual_markers(self):
        generalizer = NAdicoGeneralizer("agent", provider=GroupProvider({"GROUP": ["g1"]}))

        generalized = generalizer.generalize_attributes(Attributes({"NAME": ["a1"]}, {"ROLE": ["r1"]}))

        assert generalized.individual_markers == {"GROUP": ["g1"]}
        assert generalized.social_markers == {"ROLE": ["r1"]}

    def test_multiple_providers_raise(self):
        generalizer = NAdicoGeneralizer("agent")
        generalizer.register_generalization_provider(GroupProvider({}))
        generalizer.register_generalization_provider(GroupProvider({}))

        with pytest.raises(ConfigurationError):
            generalizer.generalize_expression(observed("a1", "alpha", "act"))

    def test_provider_returning_none_raises(self):
        generalizer = NAdicoGeneralizer("agent", provider=GroupProvider(None))
        with pytest.raises(ConfigurationError):
            generalizer.generalize_attributes(Attributes({"NAME": ["a1"]}))

    def test_without_provider_individual_markers_are_removed(self):
        generalizer = NAdicoGeneralizer("agent")
        original = observed("a1", "alpha", "act", previous=observed("b1", "beta", "r1"))

        generalized = generalizer.generalize_expression(original)

        assert generalized.attributes.individual_markers == {}
        assert generalized.conditions.get_previous_action().attributes.individual_markers == {}
        assert original.attributes.individual_markers == {"NAME": ["a1"]}

    def test_aim_properties(self):
        generalizer = NAdicoGeneralizer("agent", config=NAdicoConfig(remove_non_attribute_aim_properties=True))
        aim = Aim("give", "amount", "3", "target", Attributes({"NAME": ["b"]}, {"ROLE": ["r2"]}))

        generalized = generalizer.generalize_aim(aim)

        assert generalized.properties["amount"] == ""
        assert generalized.properties["target"] == Attributes(social_markers={"ROLE": ["r2"]})
        assert aim.properties["amount"] == "3"


class TestHigherOrderGeneralization:
    """Tests for generalization over social marker subsets."""

    def test_powerset(self):
        assert NAdicoGeneralizer.powerset([1, 2]) == [(), (2,), (1,), (1, 2)]
        assert NAdicoGeneralizer.filter_by_set_size(NAdicoGeneralizer.powerset("abc"), 2) == [
            ("b", "c"), ("a", "c"), ("a", "b"),
        ]

    def test_level_one_groups_by_single_markers(self):
        generalizer = NAdicoGeneralizer("agent")
        observations = {
            observed("a1", None, "act", ROLE="r1", TEAM="t1"): 1.0,
            observed("a2", None, "act", ROLE="r1", TEAM="t2"): 2.0,
        }

        result = generalizer.generalize_valenced_expressions_on_higher_level(observations, 1)

        groups = {}
        for key, instances in result.items():
            (category, markers), = key.attributes.social_markers.items()
            groups[(category, tuple(markers))] = (key.deontic, len(instances))
        assert groups == {
            ("ROLE", ("r1",)): (3.0, 2),
            ("TEAM", ("t1",)): (1.0, 1),
            ("TEAM", ("t2",)): (2.0, 1),
        }
        assert generalizer.get_cached_generalized_valenced_expressions_for_level(1) is result

    def test_level_beyond_markers_raises(self):
        generalizer = NAdicoGeneralizer("agent")
        with pytest.raises(GeneralizationDepthError):
            generalizer.generalize_valenced_expressions_on_higher_level(
                {observed("a1", None, "act", ROLE="r1"): 1.0}, 1)

    def test_extract_social_markers_follows_chain(self):
        generalizer = NAdicoGeneralizer("agent")
        expression = observed("a1", "alpha", "act", previous=observed("b1", "beta", "r1"))

        assert generalizer.extract_social_markers([expression]) == {"ACTOR": ["alpha", "beta"]}


class TestAdicDerivation:
    """Tests for splitting generalized chains into monitored and consequential statements."""

    def test_sanction_is_attached_as_or_else(self):
        generalizer = NAdicoGeneralizer("agent")
        beta = observed("b1", "beta", "r1")
        alpha = observed("a1", "alpha", "act", previous=beta)
        generalizer.generalize_valenced_expressions({alpha: 1.0})

        statements = generalizer.derive_adic_statements()

        assert len(statements) == 1
        monitored = statements[0]
        assert monitored.is_statement()
        assert monitored.aim.activity == "r1"
        assert monitored.deontic == pytest.approx(1.0)
        assert monitored.count == 1
        consequence = monitored.or_else
        assert consequence.is_statement()
        assert consequence.aim.activity == "act"
        assert consequence.deontic == pytest.approx(-1.0)
        assert consequence.deontic_inverted
        assert consequence.parent is monitored
        assert consequence.level == 1
        assert consequence.conditions.is_empty()
        assert generalizer.get_nadico_expressions() is statements

        # Observations and cache keep their chains
        assert alpha.conditions.get_previous_action() is beta
        cached = next(iter(generalizer.get_cached_generalized_valenced_expressions()))
        assert cached.conditions.get_previous_action() is not None

    def test_descriptive_norm_without_predecessor(self):
        generalizer = NAdicoGeneralizer("agent")
        generalizer.generalize_valenced_expressions({observed("a1", "alpha", "act"): 2.0})

        statement, = generalizer.derive_adic_statements()

        assert statement.or_else is None
        assert statement.deontic == pytest.approx(2.0)
        assert statement.count == 1
        assert not statement.deontic_inverted

    def test_differing_attributes_skip_own_actions(self):
        beta = observed("b1", "beta", "r1")
        own = observed("a1", "alpha", "x", previous=beta)
        latest = observed("a1", "alpha", "act", previous=own)

        generalizer = NAdicoGeneralizer("agent")
        generalizer.generalize_valenced_expressions({latest: 1.0})

        monitored, = generalizer.derive_adic_statements(require_differing_attributes=True)
        assert monitored.aim.activity == "r1"
        assert monitored.or_else.aim.activity == "act"
        assert monitored.or_else.conditions.get_previous_action().aim.activity == "x"
        assert monitored.or_else.conditions.get_previous_action().is_statement()

        monitored, = generalizer.derive_adic_statements()
        assert monitored.aim.activity == "x"
        assert monitored.or_else.conditions.is_empty()

    def test_explicit_subject_starts_search_at_predecessors(self):
        beta = observed("b1", "beta", "r1")
        latest = observed("a1", "alpha", "act", previous=beta)
        generalizer = NAdicoGeneralizer("agent")
        generalizer.generalize_valenced_expressions({latest: 1.0})

        monitored, = generalizer.derive_adic_statements(
            require_differing_attributes=True,
            subject_attributes=Attributes(social_markers={"ACTOR": ["gamma"]}),
        )
        assert monitored.aim.activity == "r1"
        assert monitored.or_else.aim.activity == "act"

        statement, = generalizer.derive_adic_statements(
            require_differing_attributes=True,
            subject_attributes=Attributes(social_markers={"ACTOR": ["beta"]}),
        )
        assert statement.aim.activity == "act"
        assert statement.or_else is None

    def test_statements_sorted_by_count(self):
        generalizer = NAdicoGeneralizer("agent")
        generalizer.generalize_valenced_expressions([
            (observed("a1", "alpha", "rare"), 1.0),
            (observed("a1", "alpha", "common"), 1.0),
            (observed("a2", "alpha", "common"), 1.0),
        ])

        statements = generalizer.derive_adic_statements()

        assert [s.aim.activity for s in statements] == ["common", "rare"]
        assert [s.count for s in statements] == [2, 1]

    def test_derivation_is_deterministic(self):
        generalizer = NAdicoGeneralizer("agent")
        generalizer.generalize_valenced_expressions({
            observed("a1", "alpha", "act", previous=observed("b1", "beta", "r1")): 1.0,
            observed("a1", "alpha", "other", previous=observed("b1", "beta", "r2")): -1.0,
        })

        first = [str(s) for s in generalizer.derive_adic_statements()]
        second = [str(s) for s in generalizer.derive_adic_statements()]

        assert first == second

    def test_empty_input_yields_nothing(self):
        generalizer = NAdicoGeneralizer("agent")
        assert generalizer.derive_adic_statements() == []
        assert generalizer.derive_adic_statements_for_level(2) == []

    def test_derivation_for_level(self):
        generalizer = NAdicoGeneralizer("agent")
        generalizer.generalize_valenced_expressions_on_higher_level({
            observed("a1", None, "act", ROLE="r1", TEAM="t1"): 1.0,
        }, 1)

        statements = generalizer.derive_adic_statements_for_level(1)

        assert len(statements) == 2
        assert generalizer.get_nadico_expressions_for_level(1) is statements
        assert generalizer.get_nadico_expressions() == []

    def test_delete_monitored_statement_uses_identity(self):
        generalizer = NAdicoGeneralizer("agent")
        first = observed("b1", "beta", "r1")
        chain = observed("a1", "alpha", "act", previous=observed("a1", "alpha", "x", previous=first))

        assert not generalizer.delete_monitored_statement_from_chain(chain, observed("b1", "beta", "r1"))
        assert generalizer.delete_monitored_statement_from_chain(chain, first)
        assert chain.total_expression_sequence_length() == 2
