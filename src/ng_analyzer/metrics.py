"""
Metric calculator for ng-analyzer.

Complexity score per component:

    1 + lifecycle hooks + public methods + branching constructs
      + structural template directives

Every term is a non-negative count, so adding any element never lowers the
score and a component with nothing in it scores exactly 1.

ng_analyzer/src/ng_analyzer/metrics.py
"""

import logging
import re
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .models import Component, ChangeDetectionStrategy, Project

logger = logging.getLogger(__name__)

__all__ = [
    "ComponentMetrics",
    "ProjectMetrics",
    "MetricsReport",
    "count_template_directives",
    "component_metrics",
    "calculate_metrics",
]

STRUCTURAL_DIRECTIVE_PATTERN = re.compile(
    r"\*ng(?:If|For|SwitchCase|SwitchDefault)\b"
    r"|\[ng(?:Switch|If|ForOf)\]"
    r"|(?<![\w@])@(?:if|else|for|switch|case|defer)\b"
)


def count_template_directives(template: Optional[str]) -> int:
    """Count structural directives and control-flow blocks in template text."""
    if not template:
        return 0
    return len(STRUCTURAL_DIRECTIVE_PATTERN.findall(template))


@dataclass(frozen=True)
class ComponentMetrics:
    """Derived numbers for one component."""

    lifecycle_hooks: int
    public_methods: int
    branches: int
    template_directives: int
    inputs: int
    outputs: int

    @property
    def complexity_score(self) -> int:
        return 1 + self.lifecycle_hooks + self.public_methods + self.branches + self.template_directives

    def to_dict(self) -> Dict[str, int]:
        return {
            "complexity_score": self.complexity_score,
            "lifecycle_hooks": self.lifecycle_hooks,
            "public_methods": self.public_methods,
            "branches": self.branches,
            "template_directives": self.template_directives,
            "inputs": self.inputs,
            "outputs": self.outputs,
        }


def component_metrics(component: Component) -> ComponentMetrics:
    """Compute the per-component numbers from the model alone."""
    methods = component.methods
    return ComponentMetrics(
        lifecycle_hooks=len(component.lifecycle_hooks),
        public_methods=sum(1 for m in methods if m.is_public and not m.is_lifecycle_hook),
        branches=sum(max(0, m.branch_count) for m in methods),
        template_directives=count_template_directives(component.template)
        + count_template_directives(component.template_source),
        inputs=len(component.inputs),
        outputs=len(component.outputs),
    )


@dataclass(frozen=True)
class ProjectMetrics:
    """Aggregate numbers for the whole project."""

    total_components: int = 0
    total_services: int = 0
    total_modules: int = 0
    total_directives: int = 0
    total_pipes: int = 0
    average_complexity: float = 0.0
    max_complexity: int = 0
    onpush_percentage: float = 0.0
    graph_nodes: int = 0
    graph_edges: int = 0
    dropped_edges: int = 0
    cycle_count: int = 0
    max_chain_depth: int = 0
    uncalled_service_methods: int = 0
    parse_warnings: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_components": self.total_components,
            "total_services": self.total_services,
            "total_modules": self.total_modules,
            "total_directives": self.total_directives,
            "total_pipes": self.total_pipes,
            "average_complexity": self.average_complexity,
            "max_complexity": self.max_complexity,
            "onpush_percentage": self.onpush_percentage,
            "graph_nodes": self.graph_nodes,
            "graph_edges": self.graph_edges,
            "dropped_edges": self.dropped_edges,
            "cycle_count": self.cycle_count,
            "max_chain_depth": self.max_chain_depth,
            "uncalled_service_methods": self.uncalled_service_methods,
            "parse_warnings": self.parse_warnings,
        }


@dataclass(frozen=True)
class MetricsReport:
    """Output of the calculator: the scored project plus its numbers."""

    project: Project
    components: Mapping[str, ComponentMetrics]
    summary: ProjectMetrics

    def for_component(self, component: Component) -> ComponentMetrics:
        return self.components[_key(component)]


def _key(component: Component) -> str:
    return f"{component.file_path}#{component.name}"


def calculate_metrics(project: Project, graph=None, parse_warnings: int = 0) -> MetricsReport:
    """
    Score every component and aggregate project numbers.

    Returns a new Project whose components carry complexity_score; the input
    project is left untouched. Graph numbers are filled when a graph is given.
    """
    per_component: Dict[str, ComponentMetrics] = {}
    scored = []
    for component in project.components:
        numbers = component_metrics(component)
        per_component[_key(component)] = numbers
        scored.append(replace(component, complexity_score=numbers.complexity_score))
        logger.debug(f"{component.name}: complexity {numbers.complexity_score}")

    scored_project = replace(project, components=tuple(scored), file_paths=project.file_paths)

    total = len(scored)
    scores = [c.complexity_score for c in scored]
    onpush = sum(1 for c in scored if c.change_detection is ChangeDetectionStrategy.ON_PUSH)

    summary = ProjectMetrics(
        total_components=total,
        total_services=len(project.services),
        total_modules=len(project.modules),
        total_directives=len(project.directives),
        total_pipes=len(project.pipes),
        average_complexity=round(sum(scores) / total, 2) if total else 0.0,
        max_complexity=max(scores) if scores else 0,
        onpush_percentage=round(onpush * 100.0 / total, 2) if total else 0.0,
        uncalled_service_methods=sum(
            1 for service in project.services for method in service.signatures if not method.called
        ),
        parse_warnings=parse_warnings,
    )
    if graph is not None:
        summary = replace(
            summary,
            graph_nodes=graph.graph.number_of_nodes(),
            graph_edges=graph.graph.number_of_edges(),
            dropped_edges=len(graph.dropped_edges),
            cycle_count=len(graph.cycles),
            max_chain_depth=max((chain.length for chain in graph.chains), default=0),
        )

    return MetricsReport(project=scored_project, components=MappingProxyType(per_component), summary=summary)
