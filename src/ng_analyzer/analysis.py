"""
Analysis orchestrator for ng-analyzer.

Runs the pipeline after the project model exists:

    Project -> (dependency graph, metrics) -> one task per analyzer category
            -> merge + sort -> severity floor -> recommendations -> AnalysisResult

Category tasks run on a thread pool. They share the project, graph, metrics
and resolved rules read-only and each returns its own issue list, so the
merged output depends only on content, never on completion order.

ng_analyzer/src/ng_analyzer/analysis.py
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .dependency_graph import DependencyGraphBuilder
from .errors import ConfigError
from .findings import Diagnostic, Issue, Severity
from .metrics import calculate_metrics
from .models import Project
from .project_builder import ProjectBuilder
from .recommendations import derive_recommendations
from .results import AnalysisResult, AnalysisSummary
from .rules import AnalyzerCategory, RuleEngine
from .validators import RuleContext, evaluate_rules

logger = logging.getLogger(__name__)

__all__ = ["AnalyzerCategory", "AnalysisOrchestrator", "run_analysis"]

AnalyzerSelection = Union[str, Iterable[Union[str, AnalyzerCategory]]]


def _categories(analyzers: AnalyzerSelection) -> Tuple[AnalyzerCategory, ...]:
    if isinstance(analyzers, str):
        return AnalyzerCategory.parse(analyzers)
    names = [a.value if isinstance(a, AnalyzerCategory) else a for a in analyzers]
    return AnalyzerCategory.parse(names)


def _severity(value: Union[str, Severity]) -> Severity:
    if isinstance(value, Severity):
        return value
    try:
        return Severity.parse(value)
    except ValueError as e:
        raise ConfigError(str(e)) from None


class AnalysisOrchestrator:
    """Dispatches analyzer categories and assembles the AnalysisResult."""

    def __init__(self, engine: Optional[RuleEngine] = None, max_workers: Optional[int] = None):
        self.engine = engine if engine is not None else RuleEngine()
        self.max_workers = max_workers

    def run(
        self,
        project: Project,
        analyzers: AnalyzerSelection = "full",
        severity_floor: Union[str, Severity] = Severity.INFO,
        parse_warnings: Sequence[Diagnostic] = (),
    ) -> AnalysisResult:
        """
        Analyze a built project.

        Raises:
            ConfigError: unknown analyzer name; raised before any analysis runs.
        """
        categories = _categories(analyzers)
        floor = _severity(severity_floor)
        logger.info(
            f"Running analyzers: {', '.join(c.value for c in categories)} "
            f"(profile '{self.engine.profile.name}', severity >= {floor.value})"
        )

        graph = DependencyGraphBuilder().build(project)
        report = calculate_metrics(project, graph, parse_warnings=len(parse_warnings))
        context = RuleContext(project=report.project, metrics=report, graph=graph)

        per_category = self._dispatch(categories, context)

        issues: List[Issue] = []
        diagnostics: List[Diagnostic] = list(parse_warnings)
        for category_issues, category_faults in per_category:
            issues.extend(category_issues)
            diagnostics.extend(category_faults)
        issues.sort(key=Issue.sort_key)

        shown = tuple(issue for issue in issues if not issue.severity < floor)
        summary = AnalysisSummary(
            profile=self.engine.profile.name,
            analyzers=tuple(c.value for c in categories),
            severity_floor=floor,
            total_found=len(issues),
            shown=len(shown),
            errors=sum(1 for i in issues if i.severity is Severity.ERROR),
            warning_issues=sum(1 for i in issues if i.severity is Severity.WARNING),
            infos=sum(1 for i in issues if i.severity is Severity.INFO),
            warnings=len(diagnostics),
        )
        recommendations = derive_recommendations(categories, context, self.engine)
        logger.info(
            f"Analysis complete: {summary.total_found} issues found, {summary.shown} shown, "
            f"{len(recommendations)} recommendations, {summary.warnings} warnings"
        )
        return AnalysisResult(
            project=report.project,
            issues=shown,
            metrics=report.summary,
            recommendations=tuple(recommendations),
            summary=summary,
            diagnostics=tuple(diagnostics),
            component_metrics=report.components,
            graph=graph,
        )

    def _dispatch(
        self, categories: Sequence[AnalyzerCategory], context: RuleContext
    ) -> List[Tuple[List[Issue], List[Diagnostic]]]:
        """Run each category on the pool; results come back in category order."""
        if self.max_workers == 1 or len(categories) == 1:
            return [self._run_category(c, context) for c in categories]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(self._run_category, c, context): c for c in categories}
            results = []
            for future in futures:
                category = futures[future]
                try:
                    results.append(future.result())
                except Exception as exc:
                    logger.error(f"Analyzer '{category.value}' failed: {exc}", exc_info=True)
                    results.append(
                        (
                            [],
                            [
                                Diagnostic(
                                    kind="rule-fault",
                                    message=f"Analyzer '{category.value}' failed: {type(exc).__name__}: {exc}",
                                )
                            ],
                        )
                    )
        return results

    def _run_category(
        self, category: AnalyzerCategory, context: RuleContext
    ) -> Tuple[List[Issue], List[Diagnostic]]:
        rules = self.engine.rules_for(category)
        issues, faults = evaluate_rules(rules, context)
        logger.debug(f"Analyzer '{category.value}': {len(rules)} rules, {len(issues)} issues")
        return issues, faults


def run_analysis(
    records: Iterable[Mapping],
    engine: Optional[RuleEngine] = None,
    analyzers: AnalyzerSelection = "full",
    severity_floor: Union[str, Severity] = Severity.INFO,
    ignore_globs: Sequence[str] = (),
    root_path: str = ".",
    max_workers: Optional[int] = None,
) -> AnalysisResult:
    """Build the project from parsed records and analyze it."""
    # validate the selection before any work is done
    _categories(analyzers)
    _severity(severity_floor)
    build = ProjectBuilder(root_path, ignore_globs, max_workers).build(records)
    orchestrator = AnalysisOrchestrator(engine, max_workers)
    return orchestrator.run(build.project, analyzers, severity_floor, build.warnings)
