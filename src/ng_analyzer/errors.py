"""
Error taxonomy for ng-analyzer.

Only ConfigError is ever raised out of the pipeline. The other conditions are
recorded as Diagnostic entries and the run continues.

ng_analyzer/src/ng_analyzer/errors.py
"""

from .findings import Diagnostic

__all__ = [
    "NgAnalyzerError",
    "ConfigError",
    "ParseWarning",
    "RuleEvaluationFault",
    "GraphInconsistency",
]


class NgAnalyzerError(Exception):
    """Base class for ng-analyzer errors."""


class ConfigError(NgAnalyzerError):
    """Fatal configuration problem; the run aborts before any analysis."""


class ParseWarning:
    """A parsed record was malformed or incomplete."""

    kind = "parse-warning"

    @classmethod
    def diagnostic(cls, message: str, file_path: str | None = None) -> Diagnostic:
        return Diagnostic(kind=cls.kind, message=message, file_path=file_path)


class RuleEvaluationFault:
    """A single rule predicate raised while evaluating one entity."""

    kind = "rule-fault"

    @classmethod
    def diagnostic(cls, rule_id: str, exc: BaseException, file_path: str | None = None) -> Diagnostic:
        return Diagnostic(
            kind=cls.kind,
            message=f"Rule '{rule_id}' failed: {type(exc).__name__}: {exc}",
            file_path=file_path,
            rule_id=rule_id,
        )


class GraphInconsistency:
    """An edge pointed outside the project model and was dropped."""

    kind = "graph-inconsistency"

    @classmethod
    def diagnostic(cls, source: str, target: str, file_path: str | None = None) -> Diagnostic:
        return Diagnostic(
            kind=cls.kind,
            message=f"Dropped edge {source} -> {target}: target is not part of the project",
            file_path=file_path,
        )
