"""
Precondition evaluation layer.

Main components:
- NodeEvaluator: Protocol for query and constraint evaluation
- CallableEvaluator: NodeEvaluator built from two plain functions
- XPathEvaluator: Default evaluator over lxml trees
- CustomQueries: Named query functions consulted before XPath
- PreconditionTrace, LookupTrace: Evaluation traces for debugging
"""

from speech_rules.conditions.base import (
    NodeEvaluator,
    CallableEvaluator,
    is_valid_evaluator
)
from speech_rules.conditions.functions import (
    FunctionStore,
    CustomQueries,
    CustomQuery
)
from speech_rules.conditions.trace import (
    ConditionEntry,
    PreconditionTrace,
    LookupTrace,
    Resolution,
    node_label
)
from speech_rules.conditions.xpath import (
    XPathEvaluator,
    MATHML_NAMESPACE,
    DEFAULT_NAMESPACES
)


__all__ = [
    "NodeEvaluator",
    "CallableEvaluator",
    "is_valid_evaluator",
    "FunctionStore",
    "CustomQueries",
    "CustomQuery",
    "ConditionEntry",
    "PreconditionTrace",
    "LookupTrace",
    "Resolution",
    "node_label",
    "XPathEvaluator",
    "MATHML_NAMESPACE",
    "DEFAULT_NAMESPACES",
]
