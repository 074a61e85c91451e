"""
Speech rules: parsing, storage and lookup.

Main components:
- Action, Component, Precondition: Parsed rule representation
- Atom: Actions of one rule key per domain and style
- SpeechRuleStore: Rule registry with specificity based lookup
- MathmlStore: Store with MathML shorthands
"""

from speech_rules.rules.speech_rule import (
    Action,
    Component,
    ComponentType,
    Precondition,
    RuleError,
    parse_action,
    split_string,
    to_string
)
from speech_rules.rules.atom import (
    Atom,
    ResolutionError,
    DEFAULT_DOMAIN,
    DEFAULT_STYLE
)
from speech_rules.rules.selector import (
    test_precondition,
    trace_precondition,
    pick_most_constrained,
    select_rule
)
from speech_rules.rules.store import (
    SpeechRuleStore,
    StoreFrozenError
)
from speech_rules.rules.mathml_store import (
    MathmlStore,
    MATHML_CATEGORY,
    create_mathml_store
)


__all__ = [
    "Action",
    "Component",
    "ComponentType",
    "Precondition",
    "RuleError",
    "parse_action",
    "split_string",
    "to_string",
    "Atom",
    "ResolutionError",
    "DEFAULT_DOMAIN",
    "DEFAULT_STYLE",
    "test_precondition",
    "trace_precondition",
    "pick_most_constrained",
    "select_rule",
    "SpeechRuleStore",
    "StoreFrozenError",
    "MathmlStore",
    "MATHML_CATEGORY",
    "create_mathml_store",
]
