"""
MathmlStore - rule store for MathML trees.

Adds shorthands for rules that apply to a single MathML element and a
factory that builds a ready-to-use, frozen store from the bundled MathML
rule table.
"""

from pathlib import Path
from typing import Optional, Sequence, Union
import logging

from speech_rules.conditions.base import NodeEvaluator
from speech_rules.conditions.xpath import XPathEvaluator
from speech_rules.rule_tables import load_rule_tables
from speech_rules.rules.atom import DEFAULT_DOMAIN, DEFAULT_STYLE
from speech_rules.rules.store import SpeechRuleStore

logger = logging.getLogger(__name__)

MATHML_CATEGORY = "Mathml"


class MathmlStore(SpeechRuleStore):
    """
    Speech rule store for MathML.

    Example:
        store = MathmlStore(XPathEvaluator())
        store.define_default_mathml_rule("mi", "[n] text()")
        store.define_mathml_rule("mtable", "default.short", '[t] "matrix"; [m] ./*')
    """

    @staticmethod
    def element_query(name: str) -> str:
        """Query selecting a MathML element by tag name."""
        return f"self::mathml:{name}"

    def define_mathml_rule(self, key: str, domain: str, rule_text: str) -> bool:
        """Define a rule for the MathML element named key."""
        return self.define_rule(
            key, MATHML_CATEGORY, domain, rule_text, self.element_query(key)
        )

    def define_default_mathml_rule(self, key: str, rule_text: str) -> bool:
        """Define a default.default rule for the MathML element named key."""
        return self.define_mathml_rule(
            key, f"{DEFAULT_DOMAIN}.{DEFAULT_STYLE}", rule_text
        )


def create_mathml_store(
    evaluator: Optional[NodeEvaluator] = None,
    tables: Optional[Sequence[Union[str, Path]]] = None,
    debug: Optional[bool] = None
) -> MathmlStore:
    """
    Create a frozen MathML store with rules loaded from tables.

    Args:
        evaluator: Expression evaluator (defaults to XPathEvaluator)
        tables: Rule tables (defaults to settings rules.tables)
        debug: Debug mode of the store

    Returns:
        Frozen MathmlStore
    """
    store = MathmlStore(evaluator or XPathEvaluator(), debug=debug)
    report = load_rule_tables(store, tables)
    if not report.is_clean:
        logger.warning(
            "MathML store created with %d skipped entries", report.skipped
        )
    store.freeze()
    logger.debug("MathML store ready: %r", store)
    return store
