"""
XPath evaluator for lxml trees.

Default NodeEvaluator for MathML and other XML documents. Query
expressions are resolved through the custom query store first and then
as XPath with the configured namespace prefixes (by default 'mathml' is
bound to the MathML namespace, so rules can say 'self::mathml:msup').

Constraints follow XPath boolean() semantics: a non-empty node-set, a
non-empty string, a non-zero number or true.
"""

from typing import Any, Dict, Optional
import logging
import math

from lxml import etree

from speech_rules.conditions.functions import CustomQueries
from speech_rules.settings import settings

logger = logging.getLogger(__name__)

MATHML_NAMESPACE = "http://www.w3.org/1998/Math/MathML"
DEFAULT_NAMESPACES = {"mathml": MATHML_NAMESPACE}


class XPathEvaluator:
    """
    NodeEvaluator over lxml elements.

    Example:
        evaluator = XPathEvaluator()
        root = etree.fromstring('<math xmlns="...MathML"><msup>...</msup></math>')
        node = root[0]
        evaluator.apply_query(node, "self::mathml:msup") is node  # True
        evaluator.apply_constraint(node, "./*[2][text()=2]")
    """

    def __init__(
        self,
        namespaces: Optional[Dict[str, str]] = None,
        custom_queries: Optional[CustomQueries] = None
    ):
        """
        Initialize evaluator.

        Args:
            namespaces: Prefix to URI map (defaults to settings xpath.namespaces)
            custom_queries: Store of named query functions
        """
        if namespaces is None:
            namespaces = settings.get_nested("xpath.namespaces", DEFAULT_NAMESPACES)
        self.namespaces = dict(namespaces)
        self.custom_queries = custom_queries if custom_queries is not None else CustomQueries()
        self._compiled: Dict[str, Optional[etree.XPath]] = {}

    def _compile(self, expression: str) -> Optional[etree.XPath]:
        """Compile and cache an expression; None if it is not valid XPath."""
        if expression not in self._compiled:
            try:
                self._compiled[expression] = etree.XPath(
                    expression, namespaces=self.namespaces
                )
            except etree.XPathError as e:
                logger.debug("Invalid XPath expression %r: %s", expression, e)
                self._compiled[expression] = None
        return self._compiled[expression]

    def evaluate(self, node: Any, expression: str) -> Any:
        """
        Evaluate an XPath expression with node as context.

        Returns:
            Raw lxml result (list, bool, float or string), None on error
        """
        xpath = self._compile(expression)
        if xpath is None:
            return None
        try:
            return xpath(node)
        except (etree.XPathError, TypeError) as e:
            logger.debug("Cannot evaluate %r: %s", expression, e)
            return None

    def apply_query(self, node: Any, expression: str) -> Any:
        """First node selected by the expression, or None."""
        func = self.custom_queries.lookup(expression)
        if func is not None:
            nodes = func(node)
            return nodes[0] if nodes else None

        result = self.evaluate(node, expression)
        if isinstance(result, list) and result:
            return result[0]
        return None

    def apply_constraint(self, node: Any, expression: str) -> bool:
        """True if the expression holds for the node."""
        func = self.custom_queries.lookup(expression)
        if func is not None:
            return bool(func(node))
        return self._to_boolean(self.evaluate(node, expression))

    @staticmethod
    def _to_boolean(result: Any) -> bool:
        """Convert an XPath result following boolean()."""
        if result is None:
            return False
        if isinstance(result, bool):
            return result
        if isinstance(result, float):
            return result != 0 and not math.isnan(result)
        if isinstance(result, (list, str)):
            return len(result) > 0
        return bool(result)

    def clear_cache(self) -> None:
        """Clear the compiled expression cache."""
        self._compiled.clear()

    def __repr__(self) -> str:
        return (
            f"XPathEvaluator(namespaces={sorted(self.namespaces)}, "
            f"custom_queries={len(self.custom_queries)}, "
            f"cached={len(self._compiled)})"
        )
