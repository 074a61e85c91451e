"""
Speech rule engine.

Turns tree nodes (MathML, XML) into speech actions: a rule language,
a rule store with most-specific-rule lookup and domain/style fallback,
and YAML rule tables.

Usage:
    from speech_rules import create_mathml_store

    store = create_mathml_store()
    action = store.lookup_rule(node, "default", "short")
"""

from speech_rules.rules import (
    Action,
    Atom,
    Component,
    ComponentType,
    MathmlStore,
    Precondition,
    ResolutionError,
    RuleError,
    SpeechRuleStore,
    StoreFrozenError,
    create_mathml_store,
    parse_action,
    to_string
)
from speech_rules.conditions import (
    CallableEvaluator,
    CustomQueries,
    LookupTrace,
    NodeEvaluator,
    XPathEvaluator
)
from speech_rules.rule_tables import (
    IngestReport,
    RuleTableLoadError,
    ingest_rule_table,
    load_rule_table,
    load_rule_tables
)

__version__ = "0.1.0"

__all__ = [
    "Action",
    "Atom",
    "Component",
    "ComponentType",
    "MathmlStore",
    "Precondition",
    "ResolutionError",
    "RuleError",
    "SpeechRuleStore",
    "StoreFrozenError",
    "create_mathml_store",
    "parse_action",
    "to_string",
    "CallableEvaluator",
    "CustomQueries",
    "LookupTrace",
    "NodeEvaluator",
    "XPathEvaluator",
    "IngestReport",
    "RuleTableLoadError",
    "ingest_rule_table",
    "load_rule_table",
    "load_rule_tables",
]
