"""
Precondition matching and rule selection.

A precondition applies to a node if its query, evaluated with the node as
context, returns that same node and every constraint holds. Among all
applicable rules the one with the most constraints wins; ties go to the
rule registered first.
"""

from typing import Any, List, Optional, Sequence, Tuple

from speech_rules.conditions.base import NodeEvaluator
from speech_rules.conditions.trace import (
    LookupTrace,
    PreconditionTrace,
    Resolution,
    node_label
)
from speech_rules.rules.speech_rule import Precondition

# (precondition, rule key) in registration order
RuleEntry = Tuple[Precondition, str]


def test_precondition(node: Any, precondition: Precondition, evaluator: NodeEvaluator) -> bool:
    """
    Check whether a node satisfies a precondition.

    Args:
        node: Node to test
        precondition: Query and constraints
        evaluator: Evaluator for query and constraint expressions

    Returns:
        True if the query selects the node itself and all constraints hold
    """
    if evaluator.apply_query(node, precondition.query) is not node:
        return False
    return all(
        evaluator.apply_constraint(node, constraint)
        for constraint in precondition.constraints
    )


# Not a pytest test function.
test_precondition.__test__ = False


def trace_precondition(
    node: Any,
    precondition: Precondition,
    evaluator: NodeEvaluator,
    key: str = "",
    index: int = 0
) -> PreconditionTrace:
    """
    Evaluate a precondition and record every result.

    Unlike test_precondition this does not short-circuit: all constraints
    are evaluated so a failing rule can be diagnosed completely.
    """
    trace = PreconditionTrace(
        key=key,
        index=index,
        query=precondition.query,
        constraints=list(precondition.constraints),
    )
    result = evaluator.apply_query(node, precondition.query)
    trace.record(
        precondition.query,
        "query",
        result is node,
        node_label(result),
    )
    for constraint in precondition.constraints:
        trace.record(
            constraint,
            "constraint",
            bool(evaluator.apply_constraint(node, constraint)),
        )
    return trace


def pick_most_constrained(entries: Sequence[RuleEntry]) -> Optional[RuleEntry]:
    """
    Pick the entry with the most constraints.

    The sort is stable, so among equally constrained entries the first one
    in registration order wins.
    """
    if not entries:
        return None
    ranked = sorted(entries, key=lambda entry: -entry[0].specificity)
    return ranked[0]


def select_rule(
    node: Any,
    entries: Sequence[RuleEntry],
    evaluator: NodeEvaluator,
    trace: Optional[LookupTrace] = None
) -> Optional[str]:
    """
    Select the key of the most specific rule applicable to a node.

    Args:
        node: Node to find a rule for
        entries: (precondition, key) pairs in registration order
        evaluator: Expression evaluator
        trace: Optional lookup trace that receives one record per entry

    Returns:
        Rule key or None if no precondition matches
    """
    applicable: List[RuleEntry] = []
    for index, entry in enumerate(entries):
        precondition, key = entry
        if trace is not None:
            candidate = trace_precondition(node, precondition, evaluator, key, index)
            trace.add_candidate(candidate)
            matched = candidate.matched
        else:
            matched = test_precondition(node, precondition, evaluator)
        if matched:
            applicable.append(entry)

    best = pick_most_constrained(applicable)
    key = best[1] if best is not None else None

    if trace is not None:
        trace.set_result(key, Resolution.MATCHED if key else Resolution.NO_RULE)
    return key
