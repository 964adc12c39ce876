"""
Finding types for ng-analyzer.

Issues and recommendations produced by rules, plus the diagnostics that
record non-fatal problems met along the way.

ng_analyzer/src/ng_analyzer/findings.py
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

__all__ = ["Severity", "Priority", "Issue", "Recommendation", "Diagnostic"]


class Severity(Enum):
    """Severity levels for issues."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other):
        """Enable sorting by severity."""
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def parse(cls, value: str) -> "Severity":
        """Parse a severity name, accepting the short form 'warn'."""
        key = str(value).strip().lower()
        if key == "warn":
            key = "warning"
        try:
            return cls(key)
        except ValueError:
            raise ValueError(
                f"Unknown severity '{value}' (expected error, warning or info)"
            ) from None

    @property
    def label(self) -> str:
        return self.value.capitalize()


_SEVERITY_RANK = {Severity.INFO: 0, Severity.WARNING: 1, Severity.ERROR: 2}


class Priority(Enum):
    """Priority of a recommendation."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def order(self) -> int:
        return {"High": 0, "Medium": 1, "Low": 2}[self.value]


@dataclass(frozen=True)
class Issue:
    """A rule violation attached to a project file."""

    severity: Severity
    rule_id: str
    message: str
    file_path: str
    line: Optional[int] = None
    column: Optional[int] = None

    def sort_key(self):
        return (self.file_path, self.rule_id, self.line or 0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert issue to dictionary for JSON output."""
        return {
            "severity": self.severity.label,
            "rule": self.rule_id,
            "message": self.message,
            "file_path": self.file_path,
            "line": self.line,
            "column": self.column,
        }


@dataclass(frozen=True)
class Recommendation:
    """Project-level advice derived from aggregate numbers."""

    category: str
    title: str
    description: str
    priority: Priority
    file_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "file_path": self.file_path,
        }


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal condition: parse warning, rule fault or dropped graph edge."""

    kind: str
    message: str
    file_path: Optional[str] = None
    rule_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "file_path": self.file_path,
            "rule": self.rule_id,
        }
