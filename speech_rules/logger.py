"""
Structured logging for the speech rule engine.

JSON lines for machine consumption, readable output for development.
Rule definition problems are reported through this logger so that bulk
loading never aborts on a single bad rule.

Usage:
    from speech_rules.logger import logger

    logger.set_context(table="mathml.yaml")
    logger.warning("Rule definition skipped", key="msup", kind="parse")
    logger.event("rule_applied", key="square", domain="default", style="default")
"""

import logging
import json
import os
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

from speech_rules.settings import settings


# Context-local storage for extra fields (e.g. the rule table being loaded)
_extra_context_var: ContextVar[Optional[Dict[str, Any]]] = ContextVar('extra_context', default=None)


class StructuredLogger:
    """
    Structured logger with readable and JSON output.

    Features:
    - JSON format (LOG_FORMAT=json or logging.format: json in settings)
    - Readable format by default
    - Context fields added to every record
    - event() for rule engine events
    """

    def __init__(self, name: str, stream: Optional[TextIO] = None):
        self.name = name
        self.logger = logging.getLogger(name)

        # Configure only once per logger name
        if not self.logger.handlers:
            self._setup_logger(stream)

    def _setup_logger(self, stream: Optional[TextIO]) -> None:
        """Configure level, handler and formatter from settings and environment"""
        level_name = settings.get_nested("logging.level", "INFO")
        level = getattr(logging, str(level_name).upper(), logging.INFO)
        self.logger.setLevel(level)

        handler = logging.StreamHandler(stream)
        handler.setLevel(level)

        if self._should_use_json():
            formatter = logging.Formatter("%(message)s")
        else:
            formatter = logging.Formatter(
                "[%(asctime)s] %(levelname)s - %(message)s",
                datefmt="%H:%M:%S"
            )

        handler.setFormatter(formatter)
        self.logger.addHandler(handler)

        # Avoid duplicate records through the root logger
        self.logger.propagate = False

    @property
    def _extra_context(self) -> Dict[str, Any]:
        """Context-local extra fields"""
        ctx = _extra_context_var.get()
        if ctx is None:
            ctx = {}
            _extra_context_var.set(ctx)
        return ctx

    def set_context(self, **kwargs: Any) -> None:
        """Set extra context fields (context-local)"""
        ctx = dict(self._extra_context)
        ctx.update(kwargs)
        _extra_context_var.set(ctx)

    def clear_context(self) -> None:
        """Clear extra context fields"""
        _extra_context_var.set({})

    def _format_structured(self, level: str, message: str, **kwargs: Any) -> Dict[str, Any]:
        """Build a structured record"""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level,
            "logger": self.name,
            "message": message,
        }

        if self._extra_context:
            log_entry.update(self._extra_context)

        if kwargs:
            log_entry.update(kwargs)

        return log_entry

    def _should_use_json(self) -> bool:
        """JSON output if LOG_FORMAT (or logging.format) says so"""
        default_format = settings.get_nested("logging.format", "readable")
        return os.environ.get("LOG_FORMAT", default_format) == "json"

    def _log(self, level: str, message: str, log_method, **kwargs: Any) -> None:
        """Common logging path"""
        if self._should_use_json():
            structured = self._format_structured(level, message, **kwargs)
            log_method(json.dumps(structured, ensure_ascii=False, default=str))
        else:
            fields = dict(self._extra_context)
            fields.update(kwargs)
            if fields:
                extras = ", ".join(f"{k}={v}" for k, v in fields.items())
                full_message = f"{message} [{extras}]"
            else:
                full_message = message

            log_method(full_message)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message"""
        self._log("DEBUG", message, self.logger.debug, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message"""
        self._log("INFO", message, self.logger.info, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message"""
        self._log("WARNING", message, self.logger.warning, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message"""
        self._log("ERROR", message, self.logger.error, **kwargs)

    def event(self, event_type: str, **kwargs: Any) -> None:
        """
        Log a rule engine event.

        Args:
            event_type: Event name (e.g. "rule_applied", "table_loaded")
            **kwargs: Event data

        Example:
            logger.event("table_loaded", source="mathml.yaml", defined=52)
        """
        self._log("EVENT", event_type, self.logger.info, **kwargs)


# Singleton logger
logger = StructuredLogger("speech_rules")


# =============================================================================
# Rule Logging Helpers
# =============================================================================

def log_rule_error(key: str, kind: str, reason: str) -> None:
    """
    Log a skipped rule definition.

    Args:
        key: Rule key
        kind: Error kind ("parse", "definition", "alias", "table")
        reason: Human-readable reason
    """
    logger.warning(
        "Rule definition skipped",
        key=key,
        kind=kind,
        reason=reason,
    )


def log_rule_applied(key: str, domain: str, style: str) -> None:
    """
    Log a rule applied during lookup (debug mode).

    Args:
        key: Rule key
        domain: Requested domain
        style: Requested style
    """
    logger.info(
        f"Applying rule {key}",
        domain=domain,
        style=style,
    )


# =============================================================================
# Test utilities
# =============================================================================

def create_test_logger(name: str = "test", stream: Optional[TextIO] = None) -> StructuredLogger:
    """Create an isolated logger for tests"""
    return StructuredLogger(f"speech_rules.{name}", stream=stream)
