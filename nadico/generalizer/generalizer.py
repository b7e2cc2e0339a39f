"""
nADICO generalizer.

Distills valenced action observations into generalized institutional
statements, following the nADICO norm-inference approach (Frantz et al.
2014, 2015):

1. Generalization: individual markers are erased (or abstracted by a
   provider), observations are grouped on AIC equality and their valences
   aggregated into the group's deontic.
2. Higher-order generalization: groups are formed over subsets of social
   markers, yielding progressively more abstract statements.
3. ADIC derivation: generalized action chains are split into a monitored
   statement and a consequential statement attached as "or else", with the
   consequential deontic inverted (sanction view).

The generalizer owns a DeonticRange, which listens for generalization
results and recalibrates the numeric-to-deontic mapping.
"""

import logging
import math
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..config import AggregationStrategy, NAdicoConfig
from ..deontic import DeonticRange
from ..errors import (
    ConfigurationError,
    ExpressionShapeError,
    GeneralizationDepthError,
    InvalidInput,
    MemoryUpdateFailure,
)
from ..expression import Aim, Attributes, Conditions, NAdicoExpression, NAdicoFactory, sort_by_count
from ..listeners import GeneralizationProvider, MemoryChangeListener

logger = logging.getLogger(__name__)

GeneralizedExpressions = Dict[NAdicoExpression, List[NAdicoExpression]]
Observations = Union[Mapping[NAdicoExpression, float], Iterable[Tuple[NAdicoExpression, float]]]


def observation_items(observations: Observations) -> List[Tuple[NAdicoExpression, float]]:
    """
    Normalize observations to a list of (expression, valence) pairs.

    Accepts a mapping or an iterable of pairs; the latter allows repeated
    observations of AIC-equal expressions.
    """
    if observations is None:
        raise InvalidInput("Observations must not be None")
    if isinstance(observations, Mapping):
        return list(observations.items())
    return [(expression, value) for expression, value in observations]


class NAdicoGeneralizer:
    """
    Central coordinator of norm inference for one agent.

    Maintains caches of the latest generalization results (level 0 and
    higher levels) and of the ADIC statements derived from them.
    """

    def __init__(
        self,
        owner: str,
        context: Optional[str] = None,
        config: Optional[NAdicoConfig] = None,
        provider: Optional[GeneralizationProvider] = None,
        listeners: Optional[Iterable[MemoryChangeListener]] = None,
    ):
        """
        Initialize generalizer.

        Args:
            owner: Identifier of the owning agent
            context: Free-text context used in error messages
            config: Engine configuration (defaults to NAdicoConfig())
            provider: Optional provider for individual-marker generalization
            listeners: Additional memory change listeners
        """
        self._owner = owner
        self._context = context
        self._config = config if config is not None else NAdicoConfig()
        self._config.validate()

        self.aggregation_strategy = self._config.aggregation_strategy
        self.remove_non_attribute_aim_properties = self._config.remove_non_attribute_aim_properties

        self._listeners: List[MemoryChangeListener] = []
        self._providers: List[GeneralizationProvider] = []

        self._cached_generalized: GeneralizedExpressions = {}
        self._cached_generalized_higher_level: Dict[int, GeneralizedExpressions] = {}
        self._cached_nadico_statements: List[NAdicoExpression] = []
        self._cached_nadico_statements_higher_level: Dict[int, List[NAdicoExpression]] = {}

        # Range registers itself as listener
        self._deontic_range = DeonticRange(self, self._config.deontic_range)
        self._factory = NAdicoFactory(self._deontic_range)

        if provider is not None:
            self.register_generalization_provider(provider)
        for listener in listeners or []:
            self.register_memory_change_listener(listener)

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def context(self) -> Optional[str]:
        return self._context

    @property
    def config(self) -> NAdicoConfig:
        return self._config

    @property
    def deontic_range(self) -> DeonticRange:
        """Deontic range calibrated by this generalizer's results."""
        return self._deontic_range

    @property
    def factory(self) -> NAdicoFactory:
        """Factory creating expressions attached to this generalizer's range."""
        return self._factory

    # ------------------------------------------------------------------
    # Listener and provider registration
    # ------------------------------------------------------------------

    def register_memory_change_listener(self, listener: MemoryChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def deregister_memory_change_listener(self, listener: MemoryChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def memory_change_listeners(self) -> List[MemoryChangeListener]:
        return list(self._listeners)

    def notify_memory_change_listeners(self) -> None:
        """Inform all listeners about a new generalization result."""
        for listener in self._listeners:
            listener.memory_changed()

    def register_generalization_provider(self, provider: GeneralizationProvider) -> None:
        if provider not in self._providers:
            self._providers.append(provider)

    def deregister_generalization_provider(self, provider: GeneralizationProvider) -> None:
        if provider in self._providers:
            self._providers.remove(provider)

    @property
    def generalization_providers(self) -> List[GeneralizationProvider]:
        return list(self._providers)

    # ------------------------------------------------------------------
    # Caches
    # ------------------------------------------------------------------

    def get_cached_generalized_valenced_expressions(self) -> GeneralizedExpressions:
        """Level-0 generalization result (read-only)."""
        return self._cached_generalized

    def get_cached_generalized_valenced_expressions_for_level(self, level: int) -> Optional[GeneralizedExpressions]:
        """Higher-order generalization result for a level (read-only)."""
        return self._cached_generalized_higher_level.get(level)

    def get_nadico_expressions(self) -> List[NAdicoExpression]:
        """ADIC statements derived from the level-0 cache."""
        return self._cached_nadico_statements

    def get_nadico_expressions_for_level(self, level: int) -> List[NAdicoExpression]:
        """ADIC statements derived from a higher-level cache."""
        return self._cached_nadico_statements_higher_level.get(level, [])

    def _statement_with_extreme_valence(self, minimum: bool) -> Optional[NAdicoExpression]:
        extreme_statement = None
        extreme = math.inf if minimum else -math.inf
        for expression in self._cached_generalized:
            if expression.deontic is None:
                continue
            if math.isnan(expression.deontic):
                return expression
            # Strict comparison: first encountered wins ties
            if (minimum and expression.deontic < extreme) or (not minimum and expression.deontic > extreme):
                extreme = expression.deontic
                extreme_statement = expression
        return extreme_statement

    def statement_with_min_valence(self) -> Optional[NAdicoExpression]:
        return self._statement_with_extreme_valence(minimum=True)

    def statement_with_max_valence(self) -> Optional[NAdicoExpression]:
        return self._statement_with_extreme_valence(minimum=False)

    # ------------------------------------------------------------------
    # Generalization of individual expressions
    # ------------------------------------------------------------------

    def generalize_expression(self, expression: NAdicoExpression) -> NAdicoExpression:
        """
        Generalize a copy of an expression.

        Args:
            expression: Action, statement or combination

        Returns:
            Generalized copy; the input is left untouched
        """
        return self._generalize_in_place(expression.make_copy(self._deontic_range))

    def _generalize_in_place(self, expression: NAdicoExpression) -> NAdicoExpression:
        if expression.is_combination():
            for nested in expression.nested_expressions:
                self._generalize_in_place(nested)
            return expression
        if expression.is_action() or expression.is_statement():
            if expression.attributes is not None:
                expression.attributes = self.generalize_attributes(expression.attributes)
            if expression.aim is not None:
                expression.aim = self.generalize_aim(expression.aim)
            if expression.conditions is not None:
                expression.conditions = self.generalize_conditions(expression.conditions)
            return expression
        raise ExpressionShapeError(f"Unknown expression type for generalization: {expression}")

    def generalize_attributes(self, attributes: Attributes) -> Attributes:
        """
        Generalize attributes.

        Social markers are retained. Individual markers are replaced by the
        registered provider's result, or removed if no provider is registered.
        """
        generalized = Attributes().copy_from(attributes)
        if len(self._providers) > 1:
            raise ConfigurationError(
                "Individual attribute generalization for multiple providers is not supported"
            )
        if self._providers:
            provider = self._providers[0]
            markers = provider.generalize_attributes(
                {key: list(values) for key, values in generalized.individual_markers.items()}
            )
            if markers is None:
                raise ConfigurationError(f"Generalization provider {provider!r} returned no markers")
            generalized.replace_individual_markers(markers)
        else:
            logger.debug("No generalization provider registered, removing individual markers")
            generalized.individual_markers.clear()
        return generalized

    def generalize_aim(self, aim: Aim) -> Aim:
        """Generalize Attributes-valued aim properties; optionally blank the others."""
        generalized = Aim().copy_from(aim)
        for key, value in generalized.properties.items():
            if isinstance(value, Attributes):
                generalized.properties[key] = self.generalize_attributes(value)
            elif self.remove_non_attribute_aim_properties:
                generalized.properties[key] = ""
        return generalized

    def generalize_conditions(self, conditions: Conditions) -> Conditions:
        """Generalize a copy of conditions, recursing into contained expressions."""
        generalized = conditions.copy()
        for expression in generalized.expressions():
            self._generalize_in_place(expression)
        return generalized

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    @staticmethod
    def _aggregate(
        generalized: GeneralizedExpressions,
        generalized_instance: NAdicoExpression,
        instance: NAdicoExpression,
        value: float,
    ) -> None:
        """Add an instance and its valence to the AIC-equal group, or open a new group."""
        if instance.attributes is None or not instance.attributes.individual_markers:
            raise InvalidInput(f"Individual markers of action observation are empty: {instance}")
        instance.deontic = value
        for key, instances in generalized.items():
            if key == generalized_instance:
                instances.append(instance)
                key.deontic = value if key.deontic is None else key.deontic + value
                return
        generalized_instance.deontic = value
        generalized[generalized_instance] = [instance]

    def _apply_aggregation_strategy(self, generalized: GeneralizedExpressions) -> GeneralizedExpressions:
        """Rewrite summed group deontics according to the active strategy."""
        if self.aggregation_strategy == AggregationStrategy.OPPORTUNISTIC:
            center = self._deontic_range.normative_center()
            if center is None or math.isnan(center) or math.isinf(center):
                center = 0.0
            for key, instances in generalized.items():
                values = [i.deontic for i in instances if i.deontic is not None]
                low = min(values) if values else center
                high = max(values) if values else center
                key.deontic = high if abs(high - center) > abs(center - low) else low
        elif self.aggregation_strategy == AggregationStrategy.MEAN:
            for key, instances in generalized.items():
                key.deontic = key.deontic / len(instances)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "%s: %d grouped expressions: %s",
                self._owner, len(generalized), list(generalized.keys()),
            )
        return generalized

    # ------------------------------------------------------------------
    # Level-0 and higher-order generalization
    # ------------------------------------------------------------------

    def generalize_valenced_expressions(self, observations: Observations) -> GeneralizedExpressions:
        """
        Generalize valenced observations on all social markers (level 0).

        Args:
            observations: Mapping or pairs of observed expression -> valence

        Returns:
            Generalized expression (aggregated valence as deontic) -> instances
        """
        generalized: GeneralizedExpressions = {}
        for expression, value in self.copy_valenced_expressions(observations):
            general = self._generalize_in_place(expression.make_copy(self._deontic_range))
            self._aggregate(generalized, general, expression, value)

        generalized = self._apply_aggregation_strategy(generalized)
        self._cached_generalized = generalized
        self.notify_memory_change_listeners()
        return generalized

    def generalize_valenced_expressions_on_higher_level(
        self,
        observations: Observations,
        level: int,
    ) -> GeneralizedExpressions:
        """
        Generalize valenced observations on subsets of their social markers.

        Args:
            observations: Mapping or pairs of observed expression -> valence
            level: Number of social marker pairs to drop (at least 1)

        Returns:
            Generalized expression per retained marker subset -> instances
        """
        items = self.copy_valenced_expressions(observations)
        max_social_markers = max(
            (len(e.attributes.social_markers) for e, _ in items if e.attributes is not None),
            default=0,
        )
        set_size = max_social_markers - level
        if set_size < 1:
            logger.error(
                "Cannot generalize on level %d. Max. generalization level: %d",
                level, max_social_markers - 1,
            )
            raise GeneralizationDepthError(
                f"Cannot generalize on level {level}. "
                f"Max. generalization level: {max_social_markers - 1}"
            )

        social_markers = self.extract_social_markers(e for e, _ in items)
        pairs = [(key, value) for key, values in social_markers.items() for value in values]
        subsets = self.filter_by_set_size(self.powerset(pairs), set_size)
        logger.debug("Higher-order generalization over marker sets: %s", subsets)

        generalized: GeneralizedExpressions = {}
        for expression, value in items:
            general = self._generalize_in_place(expression.make_copy(self._deontic_range))
            for subset in subsets:
                if all(general.contains_social_marker_recursively(k, v) for k, v in subset):
                    instance_copy = general.make_copy()
                    instance_copy.replace_social_markers_recursively(self._pairs_to_markers(subset))
                    self._aggregate(generalized, instance_copy, expression, value)

        generalized = self._apply_aggregation_strategy(generalized)
        self._cached_generalized_higher_level[level] = generalized
        try:
            self.notify_memory_change_listeners()
        except MemoryUpdateFailure as e:
            raise InvalidInput(f"Deontic range update failed after level {level} generalization") from e
        return generalized

    @staticmethod
    def _pairs_to_markers(pairs: Sequence[Tuple[str, str]]) -> Dict[str, List[str]]:
        markers: Dict[str, List[str]] = {}
        for key, value in pairs:
            values = markers.setdefault(key, [])
            if value not in values:
                values.append(value)
        return markers

    @staticmethod
    def powerset(items: Sequence) -> List[tuple]:
        """All subsets of items, each preserving the input order."""
        subsets: List[tuple] = [()]
        for item in items:
            extended = []
            for subset in subsets:
                extended.append(subset)
                extended.append(subset + (item,))
            subsets = extended
        return subsets

    @staticmethod
    def filter_by_set_size(subsets: Iterable[tuple], size: int) -> List[tuple]:
        return [subset for subset in subsets if len(subset) == size]

    def extract_social_markers(self, expressions: Iterable[NAdicoExpression]) -> Dict[str, List[str]]:
        """Union of social markers over expressions, their chains and nested elements."""
        markers: Dict[str, List[str]] = {}
        for expression in expressions:
            self._collect_social_markers(expression, markers)
        return markers

    def _collect_social_markers(self, expression: NAdicoExpression, markers: Dict[str, List[str]]) -> None:
        if expression.is_combination():
            for nested in expression.nested_expressions:
                self._collect_social_markers(nested, markers)
            return
        if expression.attributes is not None:
            for key, values in expression.attributes.social_markers.items():
                collected = markers.setdefault(key, [])
                collected.extend(v for v in values if v not in collected)
        if expression.conditions is not None:
            for nested in expression.conditions.expressions():
                self._collect_social_markers(nested, markers)

    # ------------------------------------------------------------------
    # ADIC derivation
    # ------------------------------------------------------------------

    def derive_adic_statements(
        self,
        generalized: Optional[GeneralizedExpressions] = None,
        require_differing_attributes: bool = False,
        subject_attributes: Optional[Attributes] = None,
    ) -> List[NAdicoExpression]:
        """
        Derive ADIC statements with "or else" consequences.

        Args:
            generalized: Generalized expressions (defaults to the level-0 cache)
            require_differing_attributes: Pick the first preceding expression
                whose attributes differ from the subject as monitored statement,
                instead of the immediate previous action
            subject_attributes: Subject perspective (defaults to each
                expression's own attributes)

        Returns:
            Statements sorted by count (descending)
        """
        if generalized is None:
            generalized = self._cached_generalized
        statements = self._derive_adic_statements(generalized, require_differing_attributes, subject_attributes)
        self._cached_nadico_statements = statements
        return statements

    def derive_adic_statements_for_level(
        self,
        level: int,
        subject_attributes: Optional[Attributes] = None,
        require_differing_attributes: bool = False,
    ) -> List[NAdicoExpression]:
        """Derive ADIC statements from the cached higher-order generalization of a level."""
        generalized = self._cached_generalized_higher_level.get(level, {})
        statements = self._derive_adic_statements(generalized, require_differing_attributes, subject_attributes)
        self._cached_nadico_statements_higher_level[level] = statements
        return statements

    def _derive_adic_statements(
        self,
        generalized: GeneralizedExpressions,
        require_differing_attributes: bool,
        subject_attributes: Optional[Attributes],
    ) -> List[NAdicoExpression]:
        if not generalized:
            logger.warning("Cannot derive ADIC statements yet. Not enough data.")
            return []

        statements: List[NAdicoExpression] = []
        for key, instances in generalized.items():
            expression = key.make_copy(self._deontic_range)

            if require_differing_attributes:
                leading = subject_attributes if subject_attributes is not None else expression.attributes
                candidate = None
                for preceding in self._immediate_predecessors(expression):
                    candidate = self.preceding_expression_with_different_attributes(leading, preceding)
                    if candidate is not None:
                        break
            else:
                candidate = expression.conditions.get_previous_action() if expression.conditions is not None else None

            if candidate is not None:
                self.delete_monitored_statement_from_chain(expression, candidate)

            consequential = expression.make_statement()
            self.convert_actions_to_statements([consequential])

            if candidate is not None:
                monitored = candidate.make_copy(self._deontic_range).make_statement()
                self.convert_actions_to_statements([monitored])
                monitored.set_or_else(consequential)
                monitored.deontic = consequential.deontic
                if consequential.deontic is not None:
                    consequential.deontic = self._deontic_range.invert(consequential.deontic)
                consequential.deontic_inverted = True
                monitored.count = len(instances)
                statements.append(monitored)
            else:
                consequential.count = len(instances)
                statements.append(consequential)

        return sort_by_count(statements)

    @staticmethod
    def _immediate_predecessors(expression: NAdicoExpression) -> List[NAdicoExpression]:
        if expression.is_combination():
            candidates = [e.conditions.get_previous_action() for e in expression.nested_expressions if e.conditions]
        else:
            candidates = [expression.conditions.get_previous_action()] if expression.conditions else []
        return [c for c in candidates if c is not None]

    def preceding_expression_with_different_attributes(
        self,
        leading_attributes: Optional[Attributes],
        expression: NAdicoExpression,
    ) -> Optional[NAdicoExpression]:
        """
        Find the first expression in a chain whose attributes differ.

        A combination is returned as a whole if any of its elements differs;
        otherwise its elements' chains are searched depth-first.
        """
        if expression.is_combination():
            if any(nested.attributes != leading_attributes for nested in expression.nested_expressions):
                return expression
            for nested in expression.nested_expressions:
                found = self.preceding_expression_with_different_attributes(leading_attributes, nested)
                if found is not None:
                    return found
            return None
        if expression.attributes is None or expression.attributes != leading_attributes:
            return expression
        previous = expression.conditions.get_previous_action() if expression.conditions else None
        if previous is None:
            return None
        return self.preceding_expression_with_different_attributes(leading_attributes, previous)

    def delete_monitored_statement_from_chain(
        self,
        chain: NAdicoExpression,
        target: NAdicoExpression,
    ) -> bool:
        """
        Detach target from a chain.

        Returns:
            True if the target was found (and removed, unless it is the chain itself)
        """
        if chain is target:
            return True
        if chain.is_combination():
            for nested in chain.nested_expressions:
                if nested is target:
                    chain.nested_expressions = [e for e in chain.nested_expressions if e is not target]
                    return True
                if self.delete_monitored_statement_from_chain(nested, target):
                    return True
            return False
        if chain.conditions is None:
            return False
        previous = chain.conditions.get_previous_action()
        if previous is None:
            return False
        if previous is target:
            chain.conditions.remove_previous_action()
            return True
        return self.delete_monitored_statement_from_chain(previous, target)

    def convert_actions_to_statements(self, expressions: Iterable[NAdicoExpression]) -> List[NAdicoExpression]:
        """Recursively turn actions (including those in conditions and combinations) into statements."""
        converted = []
        for expression in expressions:
            if expression.is_combination():
                self.convert_actions_to_statements(expression.nested_expressions)
            else:
                if expression.is_action():
                    expression.make_statement()
                if expression.conditions is not None:
                    self.convert_actions_to_statements(expression.conditions.expressions())
            converted.append(expression)
        return converted

    # ------------------------------------------------------------------
    # Copy helpers
    # ------------------------------------------------------------------

    @staticmethod
    def copy_valenced_expressions(observations: Observations) -> List[Tuple[NAdicoExpression, float]]:
        """Deep copy of observations as (expression, valence) pairs."""
        return [(expression.make_copy(), float(value)) for expression, value in observation_items(observations)]

    @staticmethod
    def copy_expression_map(generalized: GeneralizedExpressions) -> GeneralizedExpressions:
        """Deep copy of generalized expressions and their instances."""
        return {
            key.make_copy(): [instance.make_copy() for instance in instances]
            for key, instances in generalized.items()
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(owner={self._owner}, "
            f"strategy={self.aggregation_strategy.value}, groups={len(self._cached_generalized)})"
        )
