"""
ABIC components of nADICO expressions.

- Attributes: actor identity as individual markers (erasable during
  generalization, e.g. NAME) and social markers (retained, e.g. ROLE)
- Aim: activity label plus typed properties
- Conditions: context properties; PREVIOUS_ACTION links to the preceding
  expression in an action chain

Mutating methods return self so calls can be chained. Markers are kept as
ordered lists without duplicates and compare as sets.
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from ..errors import InvalidInput

WILDCARD = "*"


def _pairs(values: tuple, owner: str) -> List[tuple]:
    """Split a flat key/value argument sequence into pairs."""
    if len(values) % 2 != 0:
        raise InvalidInput(f"{owner} arguments must be specified in key-value pairs")
    return [(str(values[i]), values[i + 1]) for i in range(0, len(values), 2)]


def _unique(values: Union[str, Iterable[str]]) -> List[str]:
    if isinstance(values, str):
        values = [values]
    result: List[str] = []
    for value in values:
        if value not in result:
            result.append(value)
    return result


def _copy_markers(markers: Optional[Dict[str, Iterable[str]]]) -> Dict[str, List[str]]:
    if not markers:
        return {}
    return {key: _unique(values) for key, values in markers.items()}


def _as_sets(markers: Dict[str, List[str]]) -> Dict[str, frozenset]:
    return {key: frozenset(values) for key, values in markers.items()}


def freeze(value: Any) -> Any:
    """Hashable, order-insensitive representation of a property value."""
    if isinstance(value, dict):
        return frozenset((key, freeze(item)) for key, item in value.items())
    if isinstance(value, (list, set, tuple, frozenset)):
        return frozenset(freeze(item) for item in value)
    return value


def format_map(mapping: Dict[str, Any]) -> str:
    """Render a mapping as {key=value, ...}."""
    items = []
    for key, value in mapping.items():
        if isinstance(value, (list, tuple, set, frozenset)):
            value = "[" + ", ".join(str(v) for v in value) + "]"
        items.append(f"{key}={value}")
    return "{" + ", ".join(items) + "}"


class Attributes:
    """
    Identity of an actor.

    Attributes:
        individual_markers: Category -> marker values identifying an individual
        social_markers: Category -> marker values identifying a social group
    """

    def __init__(
        self,
        individual_markers: Optional[Dict[str, Iterable[str]]] = None,
        social_markers: Optional[Dict[str, Iterable[str]]] = None,
    ):
        self.individual_markers: Dict[str, List[str]] = _copy_markers(individual_markers)
        self.social_markers: Dict[str, List[str]] = _copy_markers(social_markers)

    @staticmethod
    def _add(markers: Dict[str, List[str]], category: str, marker: str) -> None:
        values = markers.setdefault(category, [])
        if marker not in values:
            values.append(marker)

    def add_individual_marker(self, category: str, marker: str) -> "Attributes":
        """Add a marker value to an individual marker category."""
        self._add(self.individual_markers, category, marker)
        return self

    def add_individual_markers(self, *pairs) -> "Attributes":
        """Add individual markers given as category, marker, category, marker, ..."""
        for category, marker in _pairs(pairs, "Individual marker"):
            self._add(self.individual_markers, category, marker)
        return self

    def replace_individual_marker(self, category: str, markers: Union[str, Iterable[str]]) -> "Attributes":
        """Replace all values of one individual marker category."""
        self.individual_markers[category] = _unique(markers)
        return self

    def replace_individual_markers(self, markers: Dict[str, Iterable[str]]) -> "Attributes":
        """Replace all individual markers."""
        self.individual_markers.clear()
        self.individual_markers.update(_copy_markers(markers))
        return self

    def add_social_marker(self, category: str, marker: str) -> "Attributes":
        """Add a marker value to a social marker category."""
        self._add(self.social_markers, category, marker)
        return self

    def add_social_markers(self, *pairs) -> "Attributes":
        """Add social markers given as category, marker, category, marker, ..."""
        for category, marker in _pairs(pairs, "Social marker"):
            self._add(self.social_markers, category, marker)
        return self

    def replace_social_marker(self, category: str, markers: Union[str, Iterable[str]]) -> "Attributes":
        """Replace all values of one social marker category."""
        self.social_markers[category] = _unique(markers)
        return self

    def replace_social_markers(self, markers: Dict[str, Iterable[str]]) -> "Attributes":
        """Replace all social markers."""
        self.social_markers.clear()
        self.social_markers.update(_copy_markers(markers))
        return self

    def has_social_marker(self, category: str, marker: str) -> bool:
        """Check whether a social marker value is present."""
        return marker in self.social_markers.get(category, [])

    def is_empty(self) -> bool:
        """Wildcard attributes carry neither individual nor social markers."""
        return not self.individual_markers and not self.social_markers

    def clear(self) -> "Attributes":
        """Remove all markers."""
        self.individual_markers.clear()
        self.social_markers.clear()
        return self

    def copy_from(self, other: Optional["Attributes"]) -> "Attributes":
        """Merge the markers of another instance into this one."""
        if other is not None:
            self.individual_markers.update(_copy_markers(other.individual_markers))
            self.social_markers.update(_copy_markers(other.social_markers))
        return self

    def copy(self) -> "Attributes":
        """Independent copy of this instance."""
        return Attributes(self.individual_markers, self.social_markers)

    def __eq__(self, other) -> bool:
        if self is other:
            return True
        if not isinstance(other, Attributes):
            return NotImplemented
        return (
            _as_sets(self.individual_markers) == _as_sets(other.individual_markers)
            and _as_sets(self.social_markers) == _as_sets(other.social_markers)
        )

    def __hash__(self) -> int:
        return hash((freeze(self.individual_markers), freeze(self.social_markers)))

    def __str__(self) -> str:
        if self.is_empty():
            return f"A({WILDCARD})"
        individual = format_map(self.individual_markers) if self.individual_markers else WILDCARD
        social = format_map(self.social_markers) if self.social_markers else WILDCARD
        return f"A({individual}, {social})"

    def __repr__(self) -> str:
        return str(self)


class Aim:
    """
    Activity performed by an actor.

    Attributes:
        activity: Activity label (None acts as wildcard)
        properties: Key -> value parameters of the activity (strings or
            nested Attributes)
    """

    def __init__(self, activity: Optional[str] = None, *properties):
        self.activity = activity
        self.properties: Dict[str, Any] = {}
        self.add_properties(*properties)

    def set_activity(self, activity: Optional[str]) -> "Aim":
        self.activity = activity
        return self

    def add_properties(self, *pairs) -> "Aim":
        """Add properties given as key, value, key, value, ..."""
        for key, value in _pairs(pairs, "Aim property"):
            self.properties[key] = value
        return self

    def is_empty(self) -> bool:
        """Wildcard aims have neither activity nor properties."""
        return self.activity is None and not self.properties

    def clear(self) -> "Aim":
        self.activity = None
        self.properties.clear()
        return self

    def copy_from(self, other: Optional["Aim"]) -> "Aim":
        """Take over activity and merge properties of another instance."""
        if other is not None:
            self.activity = other.activity
            for key, value in other.properties.items():
                self.properties[key] = value.copy() if isinstance(value, Attributes) else value
        return self

    def copy(self) -> "Aim":
        return Aim().copy_from(self)

    def __eq__(self, other) -> bool:
        if self is other:
            return True
        if not isinstance(other, Aim):
            return NotImplemented
        return self.activity == other.activity and self.properties == other.properties

    def __hash__(self) -> int:
        return hash((self.activity, freeze(self.properties)))

    def __str__(self) -> str:
        properties = format_map(self.properties) if self.properties else WILDCARD
        return f"I({self.activity}, {properties})"

    def __repr__(self) -> str:
        return str(self)


class Conditions:
    """
    Context of an action.

    Attributes:
        properties: Key -> value; PREVIOUS_ACTION holds the preceding
            expression of an action chain
    """

    PREVIOUS_ACTION = "PREVIOUS_ACTION"

    def __init__(self, *properties, previous_action=None):
        self.properties: Dict[str, Any] = {}
        self.add_properties(*properties)
        if previous_action is not None:
            self.set_previous_action(previous_action)

    def add_properties(self, *pairs) -> "Conditions":
        """Add properties given as key, value, key, value, ..."""
        for key, value in _pairs(pairs, "Conditions property"):
            self.properties[key] = value
        return self

    def set_previous_action(self, expression) -> "Conditions":
        self.properties[self.PREVIOUS_ACTION] = expression
        return self

    def get_previous_action(self):
        """Preceding expression in the chain, or None."""
        return self.properties.get(self.PREVIOUS_ACTION)

    def remove_previous_action(self):
        """Detach and return the preceding expression."""
        return self.properties.pop(self.PREVIOUS_ACTION, None)

    def expressions(self) -> List[Any]:
        """All property values that are expressions."""
        return [value for value in self.properties.values() if hasattr(value, "make_copy")]

    def is_empty(self) -> bool:
        return not self.properties

    def clear(self) -> "Conditions":
        self.properties.clear()
        return self

    def copy_from(self, other: Optional["Conditions"]) -> "Conditions":
        """Merge the properties of another instance (values are shared)."""
        if other is not None:
            self.properties.update(other.properties)
        return self

    def copy(self) -> "Conditions":
        """Copy with nested expressions deep-copied and other values shared."""
        conditions = Conditions()
        for key, value in self.properties.items():
            if hasattr(value, "make_copy"):
                value = value.make_copy()
            elif isinstance(value, Attributes):
                value = value.copy()
            conditions.properties[key] = value
        return conditions

    def __eq__(self, other) -> bool:
        if self is other:
            return True
        if not isinstance(other, Conditions):
            return NotImplemented
        return self.properties == other.properties

    def __hash__(self) -> int:
        return hash(freeze(self.properties))

    def __str__(self) -> str:
        properties = format_map(self.properties) if self.properties else WILDCARD
        return f"C({properties})"

    def __repr__(self) -> str:
        return str(self)
