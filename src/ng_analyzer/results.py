"""
Result types returned by the analysis orchestrator, with their JSON form.

ng_analyzer/src/ng_analyzer/results.py
"""

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from .dependency_graph import DependencyGraph
from .findings import Diagnostic, Issue, Recommendation, Severity
from .metrics import ComponentMetrics, ProjectMetrics
from .models import Project

__all__ = ["AnalysisSummary", "AnalysisResult"]


@dataclass(frozen=True)
class AnalysisSummary:
    """
    Issue counts for one run.

    Per-severity counts cover every issue found, including those hidden by
    the severity floor; `shown` counts what survived the floor.

    ng_analyzer/src/ng_analyzer/results.py
    """

    profile: str
    analyzers: Tuple[str, ...]
    severity_floor: Severity
    total_found: int = 0
    shown: int = 0
    errors: int = 0
    warning_issues: int = 0
    infos: int = 0
    warnings: int = 0

    @property
    def hidden(self) -> int:
        return self.total_found - self.shown

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profile": self.profile,
            "analyzers": list(self.analyzers),
            "severity_floor": self.severity_floor.value,
            "total_found": self.total_found,
            "shown": self.shown,
            "hidden": self.hidden,
            "by_severity": {
                "error": self.errors,
                "warning": self.warning_issues,
                "info": self.infos,
            },
            "warnings": self.warnings,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """
    Everything one run produced; handed to the formatter as is.

    ng_analyzer/src/ng_analyzer/results.py
    """

    project: Project
    issues: Tuple[Issue, ...]
    metrics: ProjectMetrics
    recommendations: Tuple[Recommendation, ...]
    summary: AnalysisSummary
    diagnostics: Tuple[Diagnostic, ...] = ()
    component_metrics: Mapping[str, ComponentMetrics] = field(default_factory=lambda: MappingProxyType({}))
    graph: Optional[DependencyGraph] = None

    @property
    def has_errors(self) -> bool:
        return any(issue.severity is Severity.ERROR for issue in self.issues)

    @property
    def exit_code(self) -> int:
        return 1 if self.has_errors else 0

    def _metrics_dict(self) -> Dict[str, Any]:
        """Project aggregates, per-component numbers keyed by qualified name, and the graph."""
        document = self.metrics.to_dict()
        document["components"] = {
            key: self.component_metrics[key].to_dict() for key in sorted(self.component_metrics)
        }
        document["dependency_graph"] = self.graph.to_dict() if self.graph is not None else None
        return document

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project": self.project.to_dict(),
            "issues": [issue.to_dict() for issue in self.issues],
            "metrics": self._metrics_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "summary": self.summary.to_dict(),
            "warnings": [d.to_dict() for d in self.diagnostics],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
