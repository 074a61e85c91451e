"""
Evaluator protocol for speech rule preconditions.

The rule engine never inspects nodes itself. It calls two side-effect free
functions supplied by the embedding: a query evaluator that applies a
selector expression to a node, and a constraint evaluator that applies a
boolean expression to a node. This module defines the protocol for both.
"""

from typing import Any, Callable, Protocol, runtime_checkable
from dataclasses import dataclass


@runtime_checkable
class NodeEvaluator(Protocol):
    """
    Protocol for evaluating precondition expressions against nodes.

    A query matches a node only if apply_query returns that very node.
    """

    def apply_query(self, node: Any, expression: str) -> Any:
        """Apply a selector expression, returning a node or None."""
        ...

    def apply_constraint(self, node: Any, expression: str) -> bool:
        """Apply a constraint expression."""
        ...


@dataclass
class CallableEvaluator:
    """
    NodeEvaluator built from two plain functions.

    Example:
        evaluator = CallableEvaluator(
            query_func=lambda node, expr: node if node.tag == "msup" else None,
            constraint_func=lambda node, expr: expr in node.flags
        )
    """
    query_func: Callable[[Any, str], Any]
    constraint_func: Callable[[Any, str], bool]

    def apply_query(self, node: Any, expression: str) -> Any:
        return self.query_func(node, expression)

    def apply_constraint(self, node: Any, expression: str) -> bool:
        return bool(self.constraint_func(node, expression))


def is_valid_evaluator(obj: Any) -> bool:
    """
    Check if an object implements the NodeEvaluator protocol.

    Args:
        obj: Object to check

    Returns:
        True if object implements NodeEvaluator, False otherwise
    """
    return isinstance(obj, NodeEvaluator)
