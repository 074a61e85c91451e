"""
SpeechRuleStore - registry of speech rules indexed by precondition.

The store keeps two structures:
- codomain: rule key -> Atom (the actions per domain and style)
- domain: list of (Precondition, key) pairs in registration order

Definition is error tolerant: malformed rules are logged and skipped so
a bulk load never aborts on a single bad entry. Lookup finds every
precondition matching a node, picks the most constrained one and
resolves the action for the requested domain and style.

After loading, the store can be frozen; from then on it is read-only and
can be shared for lookups.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging

from speech_rules.conditions.base import NodeEvaluator, is_valid_evaluator
from speech_rules.conditions.trace import LookupTrace, PreconditionTrace, node_label
from speech_rules.logger import log_rule_applied, log_rule_error
from speech_rules.rules.atom import Atom, ActionMappings
from speech_rules.rules.selector import RuleEntry, select_rule, trace_precondition
from speech_rules.rules.speech_rule import Action, Precondition, RuleError
from speech_rules.settings import settings

logger = logging.getLogger(__name__)


class StoreFrozenError(Exception):
    """Raised when a frozen store is asked to define rules."""

    def __init__(self, operation: str):
        self.operation = operation
        message = f"Cannot {operation}: rule store is frozen"
        super().__init__(message)


def _append_unique(target: List[str], items: List[str]) -> None:
    for item in items:
        if item not in target:
            target.append(item)


class SpeechRuleStore:
    """
    Store of speech rules with specificity based lookup.

    Example:
        store = SpeechRuleStore(XPathEvaluator())
        store.define_rule(
            "msup", "Mathml", "default.default",
            '[n] ./*[1]; [t] "super"; [n] ./*[2] (pitch:0.35)',
            "self::mathml:msup"
        )
        store.define_rule(
            "square", "Mathml", "default.default",
            '[n] ./*[1]; [t] "square" (pitch:0.35)',
            "self::mathml:msup", "./*[2][text()=2]"
        )
        action = store.lookup_rule(msup_node)  # square wins if exponent is 2
    """

    def __init__(self, evaluator: NodeEvaluator, debug: Optional[bool] = None):
        """
        Initialize store.

        Args:
            evaluator: Query and constraint evaluator
            debug: Log applied rules (defaults to settings rules.debug)

        Raises:
            TypeError: If evaluator does not implement NodeEvaluator
        """
        if not is_valid_evaluator(evaluator):
            raise TypeError(
                f"Evaluator must implement apply_query and apply_constraint, "
                f"got {type(evaluator).__name__}"
            )
        self.evaluator = evaluator
        if debug is None:
            debug = bool(settings.get_nested("rules.debug", False))
        self.debug = debug

        self.default_domain: str = settings.get_nested("rules.default_domain", "default")
        self.default_style: str = settings.get_nested("rules.default_style", "default")

        self._codomain: Dict[str, Atom] = {}
        self._domain: List[RuleEntry] = []
        self._frozen = False

        # Aggregates over all atoms
        self.domains: List[str] = []
        self.styles: List[str] = []
        self.categories: List[str] = []

    # =========================================================================
    # Definition
    # =========================================================================

    def _check_mutable(self, operation: str) -> None:
        if self._frozen:
            raise StoreFrozenError(operation)

    @staticmethod
    def _split_domain(key: str, domain: str) -> Optional[Tuple[str, str]]:
        """Split 'domain.style'; log and return None if malformed."""
        parts = domain.split(".")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            log_rule_error(key, "definition", f"Invalid domain assignment {domain!r}")
            return None
        return parts[0], parts[1]

    def define_rule(
        self,
        key: str,
        category: str,
        domain: str,
        rule_text: str,
        query: str,
        *constraints: str
    ) -> bool:
        """
        Define a rule from its string form.

        Args:
            key: Rule key
            category: Rule category (e.g. "Mathml")
            domain: 'domain.style' the rule text applies to
            rule_text: Rule string, e.g. '[n] ./*[1]; [t] "super"'
            query: Precondition query
            *constraints: Precondition constraints

        Returns:
            True if the rule was added, False if it was skipped

        Raises:
            StoreFrozenError: If the store is frozen
        """
        self._check_mutable("define rule")

        pair = self._split_domain(key, domain)
        if pair is None:
            return False
        outer, style = pair

        try:
            action = Action.from_string(rule_text)
        except RuleError as e:
            log_rule_error(key, "parse", e.message)
            return False

        self.add_rule(key, category, Precondition(query, list(constraints)), {outer: {style: action}})
        return True

    def define_rule_mappings(
        self,
        key: str,
        category: str,
        mappings: Mapping[str, Mapping[str, str]],
        query: str,
        *constraints: str,
        dropped: Optional[List[str]] = None
    ) -> bool:
        """
        Define a rule with rule texts for several domains and styles.

        Args:
            key: Rule key
            category: Rule category
            mappings: {domain: {style: rule_text}}
            query: Precondition query
            *constraints: Precondition constraints
            dropped: Receives the "domain.style" of every skipped rule text

        Returns:
            True if at least one rule text parsed and the rule was added
        """
        self._check_mutable("define rule")

        parsed: ActionMappings = {}
        for outer, styles in mappings.items():
            for style, rule_text in styles.items():
                if not outer or not style or "." in outer or "." in style:
                    log_rule_error(key, "definition", f"Invalid domain assignment {outer}.{style}")
                    if dropped is not None:
                        dropped.append(f"{outer}.{style}")
                    continue
                try:
                    parsed.setdefault(outer, {})[style] = Action.from_string(rule_text)
                except RuleError as e:
                    log_rule_error(key, "parse", f"{outer}.{style}: {e.message}")
                    if dropped is not None:
                        dropped.append(f"{outer}.{style}")

        if not parsed:
            return False

        self.add_rule(key, category, Precondition(query, list(constraints)), parsed)
        return True

    def add_rule(
        self,
        key: str,
        category: str,
        precondition: Precondition,
        mappings: ActionMappings
    ) -> Atom:
        """
        Add parsed mappings under a precondition.

        Mappings are merged into an existing atom for the key (same domain
        and style overwrite, new ones are added); otherwise a new atom is
        created.

        Returns:
            The atom for the key
        """
        self._check_mutable("add rule")

        atom = self._codomain.get(key)
        if atom is not None:
            atom.add_mappings(mappings)
        else:
            atom = Atom(key, category, mappings)
            self._codomain[key] = atom

        _append_unique(self.domains, atom.all_domains())
        _append_unique(self.styles, atom.all_styles())
        if atom.category:
            _append_unique(self.categories, [atom.category])

        self._domain.append((precondition, key))
        logger.debug("Rule added: %s [%s]", key, precondition)
        return atom

    def define_rule_alias(self, key: str, query: str, *constraints: str) -> bool:
        """
        Add another precondition for an existing rule.

        Returns:
            True if the alias was added, False if the key is unknown
        """
        self._check_mutable("define rule alias")

        if key not in self._codomain:
            log_rule_error(key, "alias", "Invalid rules. No alias defined.")
            return False
        self._domain.append((Precondition(query, list(constraints)), key))
        return True

    def freeze(self) -> None:
        """Make the store read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # =========================================================================
    # Lookup
    # =========================================================================

    def retrieve_atom(self, node: Any, trace: Optional[LookupTrace] = None) -> Optional[Atom]:
        """
        Atom of the most specific rule applicable to a node.

        Returns:
            Atom or None if no precondition matches
        """
        key = select_rule(node, self._domain, self.evaluator, trace)
        if key is None:
            return None
        return self._codomain[key]

    def lookup_rule(
        self,
        node: Any,
        domain: Optional[str] = None,
        style: Optional[str] = None,
        trace: Optional[LookupTrace] = None
    ) -> Optional[Action]:
        """
        Find the action for a node.

        Args:
            node: Node to speak
            domain: Domain (defaults to rules.default_domain)
            style: Style (defaults to rules.default_style)
            trace: Optional lookup trace to fill

        Returns:
            Action or None if node is None or no rule applies

        Raises:
            ResolutionError: If the selected atom has no fallback action
        """
        if node is None:
            return None

        domain = domain or self.default_domain
        style = style or self.default_style
        if trace is not None:
            trace.node = node_label(node)
            trace.domain = domain
            trace.style = style

        atom = self.retrieve_atom(node, trace)
        if atom is None:
            return None

        if self.debug:
            log_rule_applied(atom.key, domain, style)
        return atom.resolve(domain, style)

    # =========================================================================
    # Debugging
    # =========================================================================

    def print_all_rules(self) -> List[str]:
        """Readable dump of every atom."""
        return [atom.to_string() for atom in self._codomain.values()]

    def print_rules(self) -> None:
        """Log the dump of every atom at debug level."""
        for text in self.print_all_rules():
            logger.debug(text)

    def debug_precondition(self, key: str, node: Any) -> List[PreconditionTrace]:
        """
        Evaluate all preconditions of a rule against a node.

        Every query and constraint result is recorded individually, so it
        shows exactly which part of a precondition fails.

        Returns:
            One trace per precondition registered under the key
        """
        traces = [
            trace_precondition(node, precondition, self.evaluator, key, index)
            for index, precondition in enumerate(self.preconditions_for(key))
        ]
        if self.debug:
            for trace in traces:
                logger.debug(trace.to_compact_string())
        return traces

    # =========================================================================
    # Introspection
    # =========================================================================

    def get_atom(self, key: str) -> Optional[Atom]:
        return self._codomain.get(key)

    def has(self, key: str) -> bool:
        return key in self._codomain

    def list_keys(self) -> List[str]:
        return list(self._codomain.keys())

    def preconditions_for(self, key: str) -> List[Precondition]:
        """Preconditions registered under a key, in registration order."""
        return [precondition for precondition, k in self._domain if k == key]

    def get_stats(self) -> Dict[str, Any]:
        """Get store statistics."""
        return {
            "total_rules": len(self._codomain),
            "total_preconditions": len(self._domain),
            "domains": list(self.domains),
            "styles": list(self.styles),
            "categories": list(self.categories),
            "frozen": self._frozen,
        }

    def __len__(self) -> int:
        return len(self._codomain)

    def __contains__(self, key: str) -> bool:
        return key in self._codomain

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(rules={len(self._codomain)}, "
            f"preconditions={len(self._domain)}, frozen={self._frozen})"
        )
