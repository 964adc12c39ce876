"""
Cross-entity recommendations for ng-analyzer.

Recommendations come from aggregate ratios over the whole project rather than
from single entities, using fixed thresholds.

ng_analyzer/src/ng_analyzer/recommendations.py
"""

import logging
from typing import Dict, Iterator, List, Sequence

from .findings import Priority, Recommendation
from .models import ChangeDetectionStrategy
from .rules import RULES_BY_ID, AnalyzerCategory, RuleEngine
from .validators.performance import declared_components
from .validators.types import RuleContext, uncleaned_subscriptions

logger = logging.getLogger(__name__)

__all__ = ["derive_recommendations"]

DEFAULT_CHANGE_DETECTION_RATIO = 0.5
COMPLEX_COMPONENT_RATIO = 0.2
MIN_COMPONENTS_WITHOUT_SERVICES = 3
MAX_AVERAGE_INJECTIONS = 5.0
MIN_STATEFUL_SERVICES = 2
LARGE_MODULE_COMPONENTS = 8
LEAKING_COMPONENT_RATIO = 0.25


def _option(engine: RuleEngine, rule_id: str, key: str):
    rule = engine.get_rule(rule_id)
    options = rule.options if rule else RULES_BY_ID[rule_id].default_options
    return options[key]


def _component_recommendations(context: RuleContext, engine: RuleEngine) -> Iterator[Recommendation]:
    components = context.project.components
    total = len(components)
    if not total:
        return

    default = sum(1 for c in components if c.change_detection is ChangeDetectionStrategy.DEFAULT)
    if default / total >= DEFAULT_CHANGE_DETECTION_RATIO:
        yield Recommendation(
            category="component",
            title="Optimize Change Detection",
            description=f"{default} of {total} components use Default change detection; consider OnPush",
            priority=Priority.MEDIUM,
        )

    limit = _option(engine, "component-complexity", "max_complexity")
    complex_count = sum(1 for c in components if c.complexity_score > limit)
    if complex_count and complex_count / total >= COMPLEX_COMPONENT_RATIO:
        yield Recommendation(
            category="component",
            title="Reduce Component Complexity",
            description=(
                f"{complex_count} of {total} components exceed complexity {limit}; "
                "split them into smaller, focused components"
            ),
            priority=Priority.HIGH,
        )

    max_length = _option(engine, "inline-template-too-large", "max_template_length")
    large = sum(1 for c in components if c.template is not None and len(c.template) > max_length)
    if large:
        yield Recommendation(
            category="component",
            title="Optimize Template Size",
            description=f"{large} components have inline templates over {max_length} characters; move them to separate files",
            priority=Priority.LOW,
        )


def _dependency_recommendations(context: RuleContext, engine: RuleEngine) -> Iterator[Recommendation]:
    project = context.project
    if context.graph.cycles:
        yield Recommendation(
            category="dependency",
            title="Break Circular Dependencies",
            description=(
                f"{len(context.graph.cycles)} dependency cycle(s) detected; "
                "move shared logic into a separate service"
            ),
            priority=Priority.HIGH,
        )

    if not project.services and len(project.components) > MIN_COMPONENTS_WITHOUT_SERVICES:
        yield Recommendation(
            category="dependency",
            title="Consider Adding Services",
            description=(
                f"No services found across {len(project.components)} components; "
                "extract business logic into injectable services"
            ),
            priority=Priority.MEDIUM,
        )

    injectors = list(project.injecting_entities())
    if injectors:
        average = sum(len(e.dependencies) for e in injectors) / len(injectors)
        if average > MAX_AVERAGE_INJECTIONS:
            yield Recommendation(
                category="dependency",
                title="High Dependency Coupling",
                description=f"Entities inject {average:.1f} dependencies on average; consider facade services",
                priority=Priority.MEDIUM,
            )


def _state_recommendations(context: RuleContext, engine: RuleEngine) -> Iterator[Recommendation]:
    project = context.project
    stateful = sum(1 for s in project.services if s.mutable_fields)
    if stateful >= MIN_STATEFUL_SERVICES:
        yield Recommendation(
            category="state",
            title="Centralize State Management",
            description=f"{stateful} services hold mutable state; consider a centralized state store",
            priority=Priority.MEDIUM,
        )

    leaking = sum(1 for c in project.components if uncleaned_subscriptions(c))
    if leaking:
        yield Recommendation(
            category="state",
            title="Implement Proper Cleanup",
            description=(
                f"{leaking} components subscribe without cleanup in ngOnDestroy; "
                "unsubscribe there or use takeUntilDestroyed"
            ),
            priority=Priority.HIGH,
        )


def _performance_recommendations(context: RuleContext, engine: RuleEngine) -> Iterator[Recommendation]:
    project = context.project
    sizes = sorted(
        ((len(declared_components(m, project)), m) for m in project.modules),
        key=lambda pair: (-pair[0], pair[1].file_path, pair[1].name),
    )
    if sizes and sizes[0][0] > LARGE_MODULE_COMPONENTS:
        count, module = sizes[0]
        yield Recommendation(
            category="performance",
            title="Implement Lazy Loading",
            description=f"Module '{module.name}' declares {count} components; split it into lazily loaded feature modules",
            priority=Priority.MEDIUM,
            file_path=module.file_path,
        )

    total = len(project.components)
    leaking = sum(1 for c in project.components if uncleaned_subscriptions(c))
    if total and leaking / total >= LEAKING_COMPONENT_RATIO:
        yield Recommendation(
            category="performance",
            title="Prevent Memory Leaks",
            description=f"{leaking} of {total} components keep subscriptions alive after destruction",
            priority=Priority.HIGH,
        )


_DERIVERS = {
    AnalyzerCategory.COMPONENT: _component_recommendations,
    AnalyzerCategory.DEPENDENCY: _dependency_recommendations,
    AnalyzerCategory.STATE: _state_recommendations,
    AnalyzerCategory.PERFORMANCE: _performance_recommendations,
}


def derive_recommendations(
    categories: Sequence[AnalyzerCategory], context: RuleContext, engine: RuleEngine
) -> List[Recommendation]:
    """Recommendations for the requested categories, deduplicated by title."""
    by_title: Dict[str, Recommendation] = {}
    for category in categories:
        for recommendation in _DERIVERS[category](context, engine):
            by_title.setdefault(recommendation.title, recommendation)
    ordered = sorted(by_title.values(), key=lambda r: (r.priority.order, r.category, r.title))
    logger.debug(f"{len(ordered)} recommendation(s) derived")
    return ordered
