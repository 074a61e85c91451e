"""
Atoms: keyed bundles of speech rule actions indexed by domain and style.

An atom owns a two-level mapping domain -> style -> Action. The entry
default.default always exists, so resolution of any (domain, style)
pair terminates.
"""

from typing import Dict, List, Optional

from speech_rules.rules.speech_rule import Action

DEFAULT_DOMAIN = "default"
DEFAULT_STYLE = "default"

# Type alias for nested domain/style mappings
ActionMappings = Dict[str, Dict[str, Action]]


class ResolutionError(Exception):
    """
    Raised when no action is found even after all fallbacks.

    This signals a broken atom (default.default missing), not a lookup miss.
    """

    def __init__(self, key: str, domain: str, style: str):
        self.key = key
        self.domain = domain
        self.style = style
        message = (
            f"No action for '{key}' in {domain}.{style} and no "
            f"{DEFAULT_DOMAIN}.{DEFAULT_STYLE} fallback"
        )
        super().__init__(message)


def _union(first: List[str], second: List[str]) -> List[str]:
    """Ordered union of two lists."""
    return first + [item for item in second if item not in first]


class Atom:
    """
    Per-key record of actions.

    Example:
        atom = Atom("msup", "Mathml")
        atom.add_mapping("default", "default", Action.from_string('[n] ./*[1]'))
        action = atom.resolve("geometry", "verbose")  # falls back to default.default
    """

    def __init__(
        self,
        key: str,
        category: str = "",
        mappings: Optional[ActionMappings] = None
    ):
        self.key = key
        self.category = category
        self.mappings: ActionMappings = {DEFAULT_DOMAIN: {DEFAULT_STYLE: Action()}}
        if mappings:
            self.add_mappings(mappings)

    def add_mapping(self, domain: str, style: str, action: Action) -> None:
        """Store an action for one (domain, style) pair, replacing any old one."""
        self.mappings.setdefault(domain, {})[style] = action

    def add_mappings(self, mappings: ActionMappings) -> None:
        """Merge nested mappings; same pairs overwrite, new pairs are added."""
        for domain, styles in mappings.items():
            for style, action in styles.items():
                self.add_mapping(domain, style, action)

    def resolve(self, domain: str, style: str) -> Action:
        """
        Resolve the action for a domain and style.

        Resolution order:
        1. (domain, style)
        2. ("default", style) if the domain is unknown to this atom
        3. ("default", "default")

        A known domain without the requested style goes straight to step 3.

        Raises:
            ResolutionError: If default.default is missing
        """
        defaults = self.mappings.get(DEFAULT_DOMAIN, {})
        mapping = self.mappings.get(domain)
        if mapping is not None:
            action = mapping.get(style)
        else:
            action = defaults.get(style)
        if action is None:
            action = defaults.get(DEFAULT_STYLE)
        if action is None:
            raise ResolutionError(self.key, domain, style)
        return action

    # Name used by the rule store API.
    mapping_rule = resolve

    def has_mapping(self, domain: str, style: Optional[str] = None) -> bool:
        """True if the atom defines the domain (and style, if given)."""
        mapping = self.mappings.get(domain)
        if mapping is None:
            return False
        return style is None or style in mapping

    def all_domains(self) -> List[str]:
        """All domains of the atom."""
        return list(self.mappings.keys())

    def all_styles(self) -> List[str]:
        """All styles over all domains of the atom."""
        styles: List[str] = []
        for mapping in self.mappings.values():
            styles = _union(styles, list(mapping.keys()))
        return styles

    def to_string(self) -> str:
        """Readable dump of the atom for debugging."""
        lines = [
            f"key:\t\t{self.key}",
            f"category:\t{self.category}",
            "mappings:",
        ]
        for domain, styles in self.mappings.items():
            lines.append(f"\t{domain}:")
            for style, action in styles.items():
                lines.append(f"\t\t{style} -> {action}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"Atom(key={self.key!r}, category={self.category!r}, "
            f"domains={self.all_domains()})"
        )
