"""
Speech rules: the textual rule language and its parsed representation.

A speech rule describes how to transform a tree node (MathML, XML, HTML)
into an ordered sequence of speech instructions. A rule string such as

    [n] ./*[1]; [t] "super"; [n] ./*[2] (pitch:0.35); [p] (pause:300)

is parsed into an Action: a list of typed Components, each carrying a
content expression and an ordered attribute mapping.

Component markers:
- [n] NODE: render a single node selected by the content expression
- [m] MULTI: render every node selected by the content expression
- [t] TEXT: speak a quoted literal or the string value of an expression
- [p] PERSONALITY: change voice attributes (pause, pitch, rate, volume)
- [s] legacy string marker, read as a quoted TEXT component
"""

from typing import Dict, Iterator, List, Optional
from dataclasses import dataclass, field
from enum import Enum


class RuleError(Exception):
    """Raised when a rule string is structurally invalid."""

    def __init__(self, message: str, text: str = ""):
        self.message = message
        self.text = text
        full_message = message
        if text:
            full_message += f" in {text!r}"
        super().__init__(full_message)


class ComponentType(str, Enum):
    """Kinds of speech rule components."""
    NODE = "NODE"
    MULTI = "MULTI"
    TEXT = "TEXT"
    PERSONALITY = "PERSONALITY"

    @classmethod
    def from_marker(cls, marker: str) -> "ComponentType":
        """
        Map a three character marker to a component type.

        Raises:
            RuleError: If the marker is unknown
        """
        component_type = _MARKERS.get(marker)
        if component_type is None:
            raise RuleError(f"Invalid component type {marker!r}")
        return component_type

    @property
    def marker(self) -> str:
        """Canonical marker used when printing a component."""
        return _CANONICAL_MARKERS[self]


_MARKERS: Dict[str, ComponentType] = {
    "[n]": ComponentType.NODE,
    "[m]": ComponentType.MULTI,
    "[t]": ComponentType.TEXT,
    "[p]": ComponentType.PERSONALITY,
    "[s]": ComponentType.TEXT,
}

_CANONICAL_MARKERS: Dict[ComponentType, str] = {
    ComponentType.NODE: "[n]",
    ComponentType.MULTI: "[m]",
    ComponentType.TEXT: "[t]",
    ComponentType.PERSONALITY: "[p]",
}

LEGACY_STRING_MARKER = "[s]"


def split_string(text: str, separator: str) -> List[str]:
    """
    Split a string at a separator, except inside double quoted substrings.

    For example, splitting '[t] "matrix; 3 by 3"; [n] ./*[1]' at ';'
    yields ['[t] "matrix; 3 by 3"', ' [n] ./*[1]'].

    Args:
        text: String to split
        separator: Single separator character

    Returns:
        List of segments (separators removed, whitespace kept)

    Raises:
        RuleError: If a double quoted substring is not terminated
    """
    segments: List[str] = []
    prefix = ""
    rest = text

    while rest:
        position = rest.find(separator)
        if position == -1:
            if rest.count('"') % 2 != 0:
                raise RuleError("Invalid string in expression", text)
            segments.append(prefix + rest)
            prefix = ""
            rest = ""
        elif rest[:position].count('"') % 2 == 0:
            segments.append(prefix + rest[:position])
            prefix = ""
            rest = rest[position + 1:]
        else:
            # Separator sits inside a quoted substring: skip to the closing quote.
            closing = rest.find('"', position)
            if closing == -1:
                raise RuleError("Invalid string in expression", text)
            prefix += rest[:closing + 1]
            rest = rest[closing + 1:]

    if prefix:
        segments.append(prefix)
    return segments


@dataclass
class Component:
    """
    A single instruction within a speech rule.

    Attributes:
        type: Kind of the component
        content: Query expression or quoted literal (empty for PERSONALITY)
        attributes: Ordered attribute mapping, e.g. {"pitch": "0.35"}
    """
    type: ComponentType
    content: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_string(cls, text: str) -> "Component":
        """
        Parse the string representation of a single component.

        Raises:
            RuleError: If the component is malformed
        """
        marker = text[:3]
        component_type = ComponentType.from_marker(marker)
        rest = text[3:].lstrip()
        if not rest:
            raise RuleError("Missing content", text)

        content = ""
        if marker == LEGACY_STRING_MARKER:
            closing = rest.find('"', 1)
            if rest[0] != '"' or closing == -1:
                raise RuleError("Invalid string syntax", text)
            content = '"' + rest[1:closing].strip() + '"'
            rest = rest[closing + 1:].lstrip()
        elif component_type == ComponentType.TEXT and rest[0] == '"':
            quoted = split_string(rest, "(")[0].strip()
            if not quoted.endswith('"') or len(quoted) < 2:
                raise RuleError("Invalid string syntax", text)
            content = quoted
            rest = rest[len(quoted):].strip()
            if "(" not in rest:
                rest = ""
        elif component_type != ComponentType.PERSONALITY:
            bracket = rest.find(" (")
            if bracket == -1:
                content = rest.strip()
                rest = ""
            else:
                content = rest[:bracket].strip()
                rest = rest[bracket:].lstrip()

        component = cls(type=component_type, content=content)
        if rest:
            component.add_attributes(rest)
        if component_type == ComponentType.PERSONALITY and not component.attributes:
            raise RuleError("Missing content", text)
        return component

    def add_attribute(self, token: str) -> None:
        """Add a single 'key:value' (or bare 'key') attribute."""
        name, colon, value = token.partition(":")
        name = name.strip()
        if not name:
            raise RuleError("Empty attribute name", token)
        self.attributes[name] = value.strip() if colon else "true"

    def add_attributes(self, block: str) -> None:
        """
        Add a parenthesised, comma separated attribute list.

        Raises:
            RuleError: If the block is not wrapped in parentheses
        """
        block = block.strip()
        if not (block.startswith("(") and block.endswith(")")):
            raise RuleError("Invalid attribute expression", block)
        for token in split_string(block[1:-1], ","):
            if token.strip():
                self.add_attribute(token)

    def get_attributes(self) -> List[str]:
        """Attributes as a list of 'key:value' strings."""
        return [f"{name}:{value}" for name, value in self.attributes.items()]

    def get_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Value of a single attribute."""
        return self.attributes.get(name, default)

    def __str__(self) -> str:
        output = self.type.marker
        if self.content:
            output += " " + self.content
        attributes = self.get_attributes()
        if attributes:
            output += " (" + ", ".join(attributes) + ")"
        return output


@dataclass
class Action:
    """
    An ordered list of components, the result of parsing one rule string.
    """
    components: List[Component] = field(default_factory=list)

    @classmethod
    def from_string(cls, text: str) -> "Action":
        """
        Parse a full rule string into an Action.

        Raises:
            RuleError: If any component is malformed
        """
        segments = [s.strip() for s in split_string(text, ";") if s.strip()]
        return cls([Component.from_string(segment) for segment in segments])

    def __str__(self) -> str:
        return "; ".join(str(component) for component in self.components)

    def __len__(self) -> int:
        return len(self.components)

    def __iter__(self) -> Iterator[Component]:
        return iter(self.components)


@dataclass
class Precondition:
    """
    Applicability condition of a speech rule.

    A node satisfies the precondition if the query selects the node itself
    and every constraint holds for it.

    Attributes:
        query: Node selector expression
        constraints: Conjunctive constraint expressions
    """
    query: str
    constraints: List[str] = field(default_factory=list)

    @property
    def specificity(self) -> int:
        """Number of constraints; more constraints means more specific."""
        return len(self.constraints)

    def __str__(self) -> str:
        if not self.constraints:
            return self.query
        return f"{self.query} [{', '.join(self.constraints)}]"


def parse_action(text: str) -> Action:
    """Parse a rule string. Raises RuleError on malformed input."""
    return Action.from_string(text)


def to_string(action: Action) -> str:
    """Canonical rule string of an Action."""
    return str(action)


__all__ = [
    "Action",
    "Component",
    "ComponentType",
    "Precondition",
    "RuleError",
    "LEGACY_STRING_MARKER",
    "parse_action",
    "split_string",
    "to_string",
]
