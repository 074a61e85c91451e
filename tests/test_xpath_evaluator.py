"""
Tests for XPathEvaluator and custom query functions.

Run with: pytest tests/test_xpath_evaluator.py -v
"""

import pytest

from speech_rules.conditions.base import CallableEvaluator, is_valid_evaluator
from speech_rules.conditions.functions import CustomQueries, FunctionStore
from speech_rules.conditions.xpath import XPathEvaluator


# =============================================================================
# EVALUATOR PROTOCOL TESTS
# =============================================================================

class TestEvaluatorProtocol:
    """Tests for the NodeEvaluator protocol."""

    def test_xpath_evaluator_is_valid(self, xpath_evaluator):
        assert is_valid_evaluator(xpath_evaluator)

    def test_callable_evaluator_is_valid(self, fake_evaluator):
        assert is_valid_evaluator(fake_evaluator)

    def test_plain_object_is_invalid(self):
        assert not is_valid_evaluator(object())

    def test_callable_evaluator_coerces_constraint(self):
        evaluator = CallableEvaluator(lambda n, e: n, lambda n, e: [n])
        assert evaluator.apply_constraint("node", "expr") is True


# =============================================================================
# QUERY TESTS
# =============================================================================

class TestApplyQuery:
    """Tests for XPathEvaluator.apply_query."""

    def test_self_query_returns_same_node(self, xpath_evaluator, mathml):
        node = mathml("<msup><mi>x</mi><mn>2</mn></msup>")
        assert xpath_evaluator.apply_query(node, "self::mathml:msup") is node

    def test_wrong_tag(self, xpath_evaluator, mathml):
        node = mathml("<msup><mi>x</mi><mn>2</mn></msup>")
        assert xpath_evaluator.apply_query(node, "self::mathml:msub") is None

    def test_unprefixed_name_does_not_match_namespace(self, xpath_evaluator, mathml):
        node = mathml("<mi>x</mi>")
        assert xpath_evaluator.apply_query(node, "self::mi") is None

    def test_first_of_several(self, xpath_evaluator, mathml):
        node = mathml("<mrow><mi>a</mi><mi>b</mi></mrow>")
        assert xpath_evaluator.apply_query(node, "./*") is node[0]

    def test_non_node_result(self, xpath_evaluator, mathml):
        node = mathml("<mi>x</mi>")
        assert xpath_evaluator.apply_query(node, "count(./*)") is None

    def test_invalid_expression(self, xpath_evaluator, mathml):
        node = mathml("<mi>x</mi>")
        assert xpath_evaluator.apply_query(node, "self::[[") is None

    def test_unknown_prefix(self, xpath_evaluator, mathml):
        node = mathml("<mi>x</mi>")
        assert xpath_evaluator.apply_query(node, "self::svg:g") is None

    def test_expression_cache(self, xpath_evaluator, mathml):
        node = mathml("<mi>x</mi>")
        xpath_evaluator.apply_query(node, "self::mathml:mi")
        xpath_evaluator.apply_query(node, "self::mathml:mi")
        assert len(xpath_evaluator._compiled) == 1

        xpath_evaluator.clear_cache()
        assert xpath_evaluator._compiled == {}


# =============================================================================
# CONSTRAINT TESTS
# =============================================================================

class TestApplyConstraint:
    """Tests for XPathEvaluator.apply_constraint."""

    def test_node_set(self, xpath_evaluator, mathml):
        node = mathml('<mi mathvariant="bold">x</mi>')
        assert xpath_evaluator.apply_constraint(node, "@mathvariant")
        assert not xpath_evaluator.apply_constraint(node, "@open")

    def test_comparison(self, xpath_evaluator, mathml):
        node = mathml('<mi mathvariant="normal">x</mi>')
        assert not xpath_evaluator.apply_constraint(node, '@mathvariant!="normal"')

    def test_text_comparison(self, xpath_evaluator, mathml):
        node = mathml("<msup><mi>x</mi><mn>2</mn></msup>")
        assert xpath_evaluator.apply_constraint(node, "./*[2][text()=2]")
        assert not xpath_evaluator.apply_constraint(node, "./*[2][text()=3]")

    def test_number(self, xpath_evaluator, mathml):
        node = mathml("<mrow><mi>a</mi><mi>b</mi></mrow>")
        assert xpath_evaluator.apply_constraint(node, "count(./*)")
        assert not xpath_evaluator.apply_constraint(node, "count(./mathml:mn)")

    def test_string(self, xpath_evaluator, mathml):
        node = mathml('<mfenced separators=";">x</mfenced>')
        assert xpath_evaluator.apply_constraint(node, "string(@separators)")
        assert not xpath_evaluator.apply_constraint(node, "string(@open)")

    def test_invalid_expression_is_false(self, xpath_evaluator, mathml):
        node = mathml("<mi>x</mi>")
        assert xpath_evaluator.apply_constraint(node, "[[") is False

    def test_namespace_override(self, mathml):
        evaluator = XPathEvaluator(namespaces={"m": "http://www.w3.org/1998/Math/MathML"})
        node = mathml("<mi>x</mi>")
        assert evaluator.apply_query(node, "self::m:mi") is node
        assert evaluator.apply_query(node, "self::mathml:mi") is None


# =============================================================================
# CUSTOM QUERY TESTS
# =============================================================================

class TestCustomQueries:
    """Tests for custom query functions."""

    @pytest.fixture
    def queries(self):
        queries = CustomQueries()

        @queries.function("CQFself")
        def self_query(node):
            return [node]

        @queries.function("CQFchildren")
        def children(node):
            return list(node)

        return queries

    def test_prefix_required(self, queries):
        assert not queries.add("firstChild", lambda node: [])
        assert "firstChild" not in queries
        assert queries.list_all() == ["CQFself", "CQFchildren"]
        assert len(queries) == 2

    def test_store_prefix(self):
        store = FunctionStore("CSF")
        assert store.add("CSFtext", str)
        assert store.has("CSFtext")
        assert store.lookup("CSFtext") is str
        assert repr(store) == "FunctionStore(prefix='CSF', functions=1)"

    def test_custom_query_used_before_xpath(self, queries, mathml):
        evaluator = XPathEvaluator(custom_queries=queries)
        node = mathml("<mrow><mi>a</mi></mrow>")
        assert evaluator.apply_query(node, "CQFself") is node
        assert evaluator.apply_query(node, "CQFchildren") is node[0]

    def test_custom_query_as_constraint(self, queries, mathml):
        evaluator = XPathEvaluator(custom_queries=queries)
        assert evaluator.apply_constraint(mathml("<mrow><mi>a</mi></mrow>"), "CQFchildren")
        assert not evaluator.apply_constraint(mathml("<mrow/>"), "CQFchildren")

    def test_empty_custom_query_result(self, queries, mathml):
        evaluator = XPathEvaluator(custom_queries=queries)
        assert evaluator.apply_query(mathml("<mrow/>"), "CQFchildren") is None
