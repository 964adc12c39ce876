"""
Performance rule predicates.

ng_analyzer/src/ng_analyzer/validators/performance.py
"""

from typing import Any, Dict, Iterator, Mapping, Tuple

from ..models import ChangeDetectionStrategy, Component, Module, Project
from .types import Match, RuleContext, uncleaned_subscriptions

__all__ = [
    "check_default_change_detection",
    "check_lazy_loading",
    "check_unbalanced_modules",
    "check_memory_leak",
    "check_stylesheets",
    "check_bindings",
    "check_module_organization",
    "declared_components",
    "root_modules",
    "selector_prefix",
]


def check_default_change_detection(
    component: Component, context: RuleContext, options: Mapping[str, Any]
) -> Iterator[Match]:
    if (
        component.change_detection is ChangeDetectionStrategy.DEFAULT
        and component.complexity_score > options["min_complexity"]
    ):
        yield Match({"name": component.name, "score": component.complexity_score}, component.line)


def root_modules(project: Project) -> Tuple[Module, ...]:
    """Modules that bootstrap; failing that, modules no other module imports."""
    bootstrapping = tuple(m for m in project.modules if m.bootstrap)
    if bootstrapping:
        return bootstrapping
    imported = {name for m in project.modules for name in m.imports if name != m.name}
    return tuple(m for m in project.modules if m.name not in imported)


def declared_components(module: Module, project: Project) -> Tuple[Component, ...]:
    by_name: Dict[str, Component] = {}
    for component in project.components:
        by_name.setdefault(component.name, component)
    return tuple(by_name[name] for name in module.declarations if name in by_name)


def check_lazy_loading(module: Module, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    count = len(declared_components(module, context.project))
    if count <= options["component_threshold"]:
        return
    importers = sorted(
        root.name
        for root in root_modules(context.project)
        if root.name != module.name and module.name in root.imports
    )
    if importers:
        yield Match({"name": module.name, "count": count, "root": importers[0]}, module.line)


def check_memory_leak(component: Component, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    calls = uncleaned_subscriptions(component)
    if calls:
        yield Match({"name": component.name, "calls": ", ".join(calls)}, component.line)


def selector_prefix(selector: str, segments: int) -> str:
    """First dash-separated segments of a selector, e.g. 'app-user' of 'app-user-list'."""
    cleaned = selector.split(",")[0].strip().strip("[]").lower()
    return "-".join(cleaned.split("-")[: max(1, int(segments))])


def check_module_organization(module: Module, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    """Divergence = (distinct prefixes - 1) / (components - 1)."""
    selectors = [c.selector for c in declared_components(module, context.project) if c.selector]
    if len(selectors) < max(2, options["min_components"]):
        return
    prefixes = {selector_prefix(s, options["prefix_segments"]) for s in selectors}
    divergence = (len(prefixes) - 1) / (len(selectors) - 1)
    if divergence > options["max_divergence"]:
        yield Match(
            {"name": module.name, "prefixes": len(prefixes), "divergence": divergence},
            module.line,
        )


def check_unbalanced_modules(module: Module, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    """Reported on the module declaring the most components when the per-module average is too high."""
    project = context.project
    if len(project.modules) < 2:
        return
    average = len(project.components) / len(project.modules)
    limit = options["max_average_components"]
    if average <= limit:
        return
    largest = min(
        project.modules,
        key=lambda m: (-len(declared_components(m, project)), m.file_path, m.name),
    )
    if largest == module:
        count = len(declared_components(module, project))
        yield Match(
            {"name": module.name, "count": count, "average": average, "max_average_components": limit},
            module.line,
        )


def check_stylesheets(component: Component, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    limit = options["max_stylesheets"]
    count = len(component.style_urls)
    if count > limit:
        yield Match({"name": component.name, "count": count, "max_stylesheets": limit}, component.line)


def check_bindings(component: Component, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    limit = options["max_bindings"]
    count = len(component.inputs) + len(component.outputs)
    if count > limit:
        yield Match({"name": component.name, "count": count, "max_bindings": limit}, component.line)
