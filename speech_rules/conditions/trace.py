"""
Traces of precondition evaluation.

Used to answer "why did this rule (not) fire for this node": a
PreconditionTrace records the query result and every constraint result of
one precondition, and a LookupTrace collects the traces of all candidates
considered during a single rule lookup.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Resolution(str, Enum):
    """
    Outcome of a rule lookup.

    - MATCHED: at least one precondition matched, a rule was selected
    - NO_RULE: no precondition matched the node
    - NONE: lookup not finished
    """
    MATCHED = "matched"
    NO_RULE = "no_rule"
    NONE = "none"


def node_label(node: Any) -> str:
    """Short human-readable label for a node (tag without namespace)."""
    if node is None:
        return "None"
    tag = getattr(node, "tag", None)
    if isinstance(tag, str):
        return tag.rsplit("}", 1)[-1]
    text = repr(node)
    return text if len(text) <= 40 else text[:37] + "..."


@dataclass
class ConditionEntry:
    """
    Record of a single expression evaluation.

    Attributes:
        expression: The query or constraint expression
        kind: "query" or "constraint"
        result: Whether the expression held
        detail: Extra information (e.g. the node a query returned)
    """
    expression: str
    kind: str
    result: bool
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "expression": self.expression,
            "kind": self.kind,
            "result": self.result,
            "detail": self.detail,
        }

    def to_compact_string(self) -> str:
        """Convert to compact string representation."""
        result_str = "PASS" if self.result else "FAIL"
        detail_str = f" ({self.detail})" if self.detail else ""
        return f"  {self.kind} {self.expression}: {result_str}{detail_str}"


@dataclass
class PreconditionTrace:
    """
    Trace of one precondition tested against one node.

    Attributes:
        key: Rule key the precondition belongs to
        index: Registration position of the precondition
        query: Query expression of the precondition
        constraints: Constraint expressions of the precondition
        entries: Evaluations in order (query first)
    """
    key: str
    index: int = 0
    query: str = ""
    constraints: List[str] = field(default_factory=list)
    entries: List[ConditionEntry] = field(default_factory=list)

    def record(
        self,
        expression: str,
        kind: str,
        result: bool,
        detail: str = ""
    ) -> None:
        """Record an expression evaluation."""
        self.entries.append(ConditionEntry(
            expression=expression,
            kind=kind,
            result=result,
            detail=detail,
        ))

    @property
    def query_matched(self) -> bool:
        return any(e.kind == "query" and e.result for e in self.entries)

    @property
    def failed_constraints(self) -> List[str]:
        return [e.expression for e in self.entries if e.kind == "constraint" and not e.result]

    @property
    def matched(self) -> bool:
        """True if the query matched and no constraint failed."""
        return self.query_matched and not self.failed_constraints

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "key": self.key,
            "index": self.index,
            "query": self.query,
            "constraints": list(self.constraints),
            "matched": self.matched,
            "entries": [e.to_dict() for e in self.entries],
        }

    def to_compact_string(self) -> str:
        """
        Convert to compact string.

        Example:
        [PRECONDITION] square #0: MATCH
          query self::mathml:msup: PASS (msup)
          constraint ./*[2][text()=2]: PASS
        """
        status = "MATCH" if self.matched else "NO MATCH"
        lines = [f"[PRECONDITION] {self.key} #{self.index}: {status}"]
        lines.extend(entry.to_compact_string() for entry in self.entries)
        return "\n".join(lines)


@dataclass
class LookupTrace:
    """
    Trace of a rule lookup for one node.

    Attributes:
        node: Label of the node looked up
        domain: Requested domain
        style: Requested style
        candidates: Precondition traces in registration order
        selected_key: Key of the selected rule (if any)
        resolution: Outcome of the lookup
    """
    node: str = ""
    domain: str = ""
    style: str = ""
    candidates: List[PreconditionTrace] = field(default_factory=list)
    selected_key: Optional[str] = None
    resolution: Resolution = Resolution.NONE
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    def add_candidate(self, trace: PreconditionTrace) -> None:
        self.candidates.append(trace)

    def set_result(self, selected_key: Optional[str], resolution: Resolution) -> None:
        """Set the final result of the lookup."""
        self.selected_key = selected_key
        self.resolution = resolution
        self.end_time = datetime.now()

    @property
    def matched_candidates(self) -> List[PreconditionTrace]:
        return [c for c in self.candidates if c.matched]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "node": self.node,
            "domain": self.domain,
            "style": self.style,
            "resolution": self.resolution.value,
            "selected_key": self.selected_key,
            "candidates_checked": len(self.candidates),
            "candidates_matched": len(self.matched_candidates),
            "candidates": [c.to_dict() for c in self.candidates],
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
        }

    def to_compact_string(self) -> str:
        """
        Convert to compact string, listing only matching candidates.

        Format:
        [LOOKUP] msup (default.default) -> square (matched)
          square #0 (1 constraints)
          msup #0 (0 constraints)
        """
        key_str = self.selected_key or "N/A"
        lines = [
            f"[LOOKUP] {self.node} ({self.domain}.{self.style}) -> "
            f"{key_str} ({self.resolution.value})"
        ]
        for candidate in self.matched_candidates:
            lines.append(
                f"  {candidate.key} #{candidate.index} "
                f"({len(candidate.constraints)} constraints)"
            )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"LookupTrace(node={self.node!r}, "
            f"resolution={self.resolution.value}, "
            f"selected={self.selected_key!r}, "
            f"checked={len(self.candidates)})"
        )
