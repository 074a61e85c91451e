"""
Rule tables: bulk rule definitions in YAML.

A rule table lists rules and aliases:

    rules:
      - key: msup
        category: Mathml
        query: self::mathml:msup
        mappings:
          default:
            default: '[n] ./*[1]; [t] "super"; [n] ./*[2] (pitch:0.35)'
    aliases:
      - key: square
        query: self::mathml:msup
        constraints: ['./mathml:mrow=./*[2]', 'count(./*[2]/*)=1']

Every entry is validated on its own. An invalid entry is logged and
skipped; the rest of the table is still loaded.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union, TYPE_CHECKING
from dataclasses import dataclass, field
import yaml

from pydantic import BaseModel, Field, ValidationError, field_validator

from speech_rules.logger import logger, log_rule_error
from speech_rules.settings import settings

if TYPE_CHECKING:
    from speech_rules.rules.store import SpeechRuleStore


# Directory of the rule tables shipped with the package
BUNDLED_TABLES_DIR = Path(__file__).parent / "data"


class RuleTableLoadError(Exception):
    """Raised when a rule table file cannot be read."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = str(path)
        self.reason = reason
        message = f"Failed to load rule table '{self.path}': {reason}"
        super().__init__(message)


# =============================================================================
# Entry schemas
# =============================================================================

class AliasDefinition(BaseModel):
    """Additional precondition for an existing rule."""
    key: str = Field(..., min_length=1, description="Key of an existing rule")
    query: str = Field(..., min_length=1, description="Precondition query")
    constraints: List[str] = Field(default_factory=list, description="Precondition constraints")


class RuleDefinition(AliasDefinition):
    """Rule with rule texts per domain and style."""
    category: str = Field("", description="Rule category")
    mappings: Dict[str, Dict[str, str]] = Field(
        ..., description="Rule texts as {domain: {style: rule_text}}"
    )

    @field_validator("mappings")
    @classmethod
    def mappings_not_empty(cls, value: Dict[str, Dict[str, str]]) -> Dict[str, Dict[str, str]]:
        if not any(value.values()):
            raise ValueError("at least one domain.style rule text is required")
        return value


# =============================================================================
# Loading
# =============================================================================

@dataclass
class IngestReport:
    """
    Result of ingesting one or more rule tables.

    Attributes:
        sources: Tables ingested
        defined: Keys of defined rules (a key may appear more than once)
        aliased: Keys of added aliases
        skipped: Number of entries skipped
        errors: Human-readable error messages
    """
    sources: List[str] = field(default_factory=list)
    defined: List[str] = field(default_factory=list)
    aliased: List[str] = field(default_factory=list)
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        """True if no entry was skipped."""
        return self.skipped == 0 and not self.errors

    def add_error(self, message: str) -> None:
        self.skipped += 1
        self.errors.append(message)

    def merge(self, other: "IngestReport") -> None:
        """Add the counts of another report."""
        self.sources.extend(other.sources)
        self.defined.extend(other.defined)
        self.aliased.extend(other.aliased)
        self.skipped += other.skipped
        self.errors.extend(other.errors)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "sources": list(self.sources),
            "defined": len(self.defined),
            "aliased": len(self.aliased),
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


def resolve_table_path(path: Union[str, Path]) -> Path:
    """
    Resolve a table path.

    A bare file name that does not exist relative to the working directory
    refers to a table shipped in speech_rules/data/.
    """
    path = Path(path)
    if not path.exists() and path.parent == Path("."):
        return BUNDLED_TABLES_DIR / path
    return path


def load_rule_table(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a rule table file.

    Args:
        path: File path or name of a bundled table

    Returns:
        Parsed table mapping

    Raises:
        RuleTableLoadError: If the file is missing, is not valid YAML or
            does not contain a mapping
    """
    file_path = resolve_table_path(path)
    if not file_path.exists():
        raise RuleTableLoadError(path, "File not found")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise RuleTableLoadError(file_path, f"YAML parse error: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuleTableLoadError(file_path, "Top level must be a mapping")
    return data


def _entries(data: Dict[str, Any], section: str, report: IngestReport) -> List[Any]:
    entries = data.get(section) or []
    if not isinstance(entries, list):
        log_rule_error(section, "table", f"Section '{section}' must be a list")
        report.add_error(f"{section}: section must be a list")
        return []
    return entries


def ingest_rule_table(
    store: "SpeechRuleStore",
    data: Dict[str, Any],
    source: str = ""
) -> IngestReport:
    """
    Define all rules and aliases of a parsed table in a store.

    Rules are defined before aliases so an alias may refer to any rule of
    the same table.

    Args:
        store: Target store
        data: Parsed table (see load_rule_table)
        source: Name used in log records

    Returns:
        IngestReport
    """
    report = IngestReport(sources=[source] if source else [])
    logger.set_context(table=source or "<inline>")
    try:
        for index, entry in enumerate(_entries(data, "rules", report)):
            try:
                rule = RuleDefinition.model_validate(entry)
            except ValidationError as e:
                key = entry.get("key", f"#{index}") if isinstance(entry, dict) else f"#{index}"
                log_rule_error(str(key), "table", str(e))
                report.add_error(f"rules[{index}]: invalid entry")
                continue
            dropped: List[str] = []
            if store.define_rule_mappings(
                rule.key, rule.category, rule.mappings, rule.query, *rule.constraints,
                dropped=dropped
            ):
                report.defined.append(rule.key)
                for domain in dropped:
                    report.add_error(f"rules[{index}]: {rule.key} {domain} not defined")
            else:
                report.add_error(f"rules[{index}]: {rule.key} not defined")

        for index, entry in enumerate(_entries(data, "aliases", report)):
            try:
                alias = AliasDefinition.model_validate(entry)
            except ValidationError as e:
                key = entry.get("key", f"#{index}") if isinstance(entry, dict) else f"#{index}"
                log_rule_error(str(key), "table", str(e))
                report.add_error(f"aliases[{index}]: invalid entry")
                continue
            if store.define_rule_alias(alias.key, alias.query, *alias.constraints):
                report.aliased.append(alias.key)
            else:
                report.add_error(f"aliases[{index}]: {alias.key} has no rule")

        logger.event(
            "table_loaded",
            defined=len(report.defined),
            aliased=len(report.aliased),
            skipped=report.skipped,
        )
    finally:
        logger.clear_context()
    return report


def load_rule_tables(
    store: "SpeechRuleStore",
    paths: Optional[Sequence[Union[str, Path]]] = None
) -> IngestReport:
    """
    Load several rule table files into a store.

    A table that cannot be loaded is logged and skipped.

    Args:
        store: Target store
        paths: Table files (defaults to settings rules.tables)

    Returns:
        Combined IngestReport
    """
    if paths is None:
        paths = settings.get_nested("rules.tables", [])

    report = IngestReport()
    for path in paths:
        try:
            data = load_rule_table(path)
        except RuleTableLoadError as e:
            log_rule_error(str(path), "table", e.reason)
            report.add_error(str(e))
            continue
        report.merge(ingest_rule_table(store, data, source=str(path)))
    return report
