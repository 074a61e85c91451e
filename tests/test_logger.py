"""
Tests for structured logging (logger.py).
"""

import pytest
import json
import logging
from io import StringIO

from speech_rules.logger import (
    StructuredLogger,
    create_test_logger,
    log_rule_applied,
    log_rule_error
)


@pytest.fixture(autouse=True)
def clean_context():
    """Each test starts without extra context."""
    log = create_test_logger("context_reset")
    log.clear_context()
    yield
    log.clear_context()


class TestStructuredLoggerBasic:
    """Basic StructuredLogger tests"""

    def test_create_logger(self):
        log = create_test_logger("basic")
        assert log.name == "speech_rules.basic"
        assert log.logger.propagate is False

    def test_set_context(self):
        log = create_test_logger("context")

        log.set_context(table="mathml.yaml", rule="msup")
        assert log._extra_context == {"table": "mathml.yaml", "rule": "msup"}

        log.clear_context()
        assert log._extra_context == {}

    def test_format_structured(self):
        log = create_test_logger("format")
        log.set_context(table="mathml.yaml")

        result = log._format_structured("WARNING", "Rule definition skipped", key="msup")

        assert "timestamp" in result
        assert result["level"] == "WARNING"
        assert result["message"] == "Rule definition skipped"
        assert result["logger"] == "speech_rules.format"
        assert result["table"] == "mathml.yaml"
        assert result["key"] == "msup"


class TestStructuredLoggerOutput:
    """Output format tests"""

    def test_readable_format(self, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        stream = StringIO()
        log = create_test_logger("readable_output", stream=stream)

        log.warning("Rule definition skipped", key="msup", kind="parse")

        output = stream.getvalue()
        assert "WARNING" in output
        assert "Rule definition skipped [key=msup, kind=parse]" in output

    def test_readable_includes_context(self, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        stream = StringIO()
        log = create_test_logger("readable_context", stream=stream)

        log.set_context(table="mathml.yaml")
        log.info("Loading")

        assert "Loading [table=mathml.yaml]" in stream.getvalue()

    def test_json_format(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        stream = StringIO()
        log = create_test_logger("json_output", stream=stream)

        log.event("table_loaded", defined=3, skipped=0)

        record = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert record["level"] == "EVENT"
        assert record["message"] == "table_loaded"
        assert record["defined"] == 3

    def test_debug_filtered_at_info(self, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        stream = StringIO()
        log = create_test_logger("level_filter", stream=stream)

        log.debug("hidden")
        log.error("shown")

        output = stream.getvalue()
        assert "hidden" not in output
        assert "shown" in output


class TestRuleLogHelpers:
    """Tests for log_rule_error / log_rule_applied"""

    def test_log_rule_error(self, rule_log):
        log_rule_error("msup", "parse", "Invalid component type '[x]'")
        output = rule_log.getvalue()
        assert output.startswith("WARNING Rule definition skipped")
        assert "key=msup" in output
        assert "kind=parse" in output

    def test_log_rule_applied(self, rule_log):
        log_rule_applied("square", "default", "short")
        assert "INFO Applying rule square [domain=default, style=short]" in rule_log.getvalue()
