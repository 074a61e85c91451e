"""
Shared pytest fixtures for speech rule engine tests.

Provides fixtures for:
- Fake nodes and a dictionary driven evaluator
- XPath evaluator and MathML element builder
- Capturing rule engine log records
"""

import logging
import pytest
from io import StringIO
from typing import Any, Dict, List, Optional, Set

from lxml import etree

from speech_rules.conditions.base import CallableEvaluator
from speech_rules.conditions.xpath import MATHML_NAMESPACE, XPathEvaluator


# =============================================================================
# Fake Node Fixtures
# =============================================================================

class FakeNode:
    """Minimal node: a tag and a set of facts that constraints test."""

    def __init__(self, tag: str, facts: Optional[Set[str]] = None):
        self.tag = tag
        self.facts = facts or set()

    def __repr__(self) -> str:
        return f"FakeNode({self.tag!r})"


def _fake_query(node: Any, expression: str) -> Any:
    # Queries have the form "self::<tag>"
    if node is not None and expression == f"self::{node.tag}":
        return node
    return None


def _fake_constraint(node: Any, expression: str) -> bool:
    return expression in node.facts


@pytest.fixture
def make_node():
    """Factory for FakeNode."""
    def _create(tag: str, *facts: str) -> FakeNode:
        return FakeNode(tag, set(facts))
    return _create


@pytest.fixture
def fake_evaluator():
    """Evaluator for FakeNode: 'self::<tag>' queries and fact constraints."""
    return CallableEvaluator(_fake_query, _fake_constraint)


@pytest.fixture
def counting_evaluator():
    """Fake evaluator that records every call."""
    calls: List[tuple] = []

    def query(node, expression):
        calls.append(("query", expression))
        return _fake_query(node, expression)

    def constraint(node, expression):
        calls.append(("constraint", expression))
        return _fake_constraint(node, expression)

    evaluator = CallableEvaluator(query, constraint)
    evaluator.calls = calls
    return evaluator


# =============================================================================
# MathML Fixtures
# =============================================================================

@pytest.fixture
def xpath_evaluator():
    """XPath evaluator with the default MathML namespace binding."""
    return XPathEvaluator()


@pytest.fixture
def mathml():
    """
    Build a MathML element from a snippet.

    The snippet is wrapped in <math> with the MathML default namespace
    and the first child is returned.
    """
    def _build(snippet: str) -> etree._Element:
        root = etree.fromstring(
            f'<math xmlns="{MATHML_NAMESPACE}">{snippet}</math>'
        )
        return root[0]
    return _build


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def rule_log(monkeypatch):
    """
    Capture records of the 'speech_rules' logger tree.

    Yields a StringIO; log_rule_error records appear there in readable
    format.
    """
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    target = logging.getLogger("speech_rules")
    target.addHandler(handler)
    try:
        yield stream
    finally:
        target.removeHandler(handler)
