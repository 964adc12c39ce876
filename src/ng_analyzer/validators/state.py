"""
State rule predicates.

ng_analyzer/src/ng_analyzer/validators/state.py
"""

from typing import Any, Iterator, Mapping, Tuple

from ..models import ChangeDetectionStrategy, Component, Project, Service
from .types import (
    STATE_NAME_MARKERS,
    Match,
    RuleContext,
    injected_by,
    state_service_names,
    uncleaned_subscriptions,
)

__all__ = [
    "check_state_management",
    "check_state_service_naming",
    "check_unsubscribe_pattern",
    "check_complex_state",
    "check_state_change_detection",
]


def check_state_management(service: Service, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    """A service with enough mutable fields that several components inject."""
    fields = len(service.mutable_fields)
    if fields < options["min_mutable_fields"]:
        return
    consumers = len(injected_by(context.project, service.name))
    if consumers >= options["min_consumers"]:
        yield Match({"name": service.name, "fields": fields, "consumers": consumers}, service.line)


def check_state_service_naming(
    service: Service, context: RuleContext, options: Mapping[str, Any]
) -> Iterator[Match]:
    fields = len(service.mutable_fields)
    if fields < max(1, options["min_mutable_fields"]):
        return
    if not any(marker in service.name.lower() for marker in STATE_NAME_MARKERS):
        yield Match({"name": service.name, "fields": fields}, service.line)


def check_unsubscribe_pattern(
    component: Component, context: RuleContext, options: Mapping[str, Any]
) -> Iterator[Match]:
    calls = uncleaned_subscriptions(component)
    if calls:
        yield Match({"name": component.name, "calls": ", ".join(calls)}, component.line)


def check_complex_state(component: Component, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    limit = options["max_complexity"]
    fields = len(component.state_fields)
    if component.complexity_score > limit and fields >= max(1, options["min_state_fields"]):
        yield Match(
            {"name": component.name, "score": component.complexity_score, "max_complexity": limit, "fields": fields},
            component.line,
        )


def _injected_state(component: Component, state_names: frozenset) -> Tuple[str, ...]:
    return tuple(
        dep
        for dep in component.dependencies
        if dep in state_names or any(marker in dep.lower() for marker in STATE_NAME_MARKERS)
    )


def _default_state_consumers(project: Project) -> Tuple[Component, ...]:
    state_names = state_service_names(project)
    return tuple(
        c
        for c in project.components
        if c.change_detection is ChangeDetectionStrategy.DEFAULT and _injected_state(c, state_names)
    )


def check_state_change_detection(
    component: Component, context: RuleContext, options: Mapping[str, Any]
) -> Iterator[Match]:
    """Reported on each Default-strategy state consumer once there are too many of them."""
    limit = options["max_components"]
    consumers = _default_state_consumers(context.project)
    if len(consumers) <= limit or component not in consumers:
        return
    services = _injected_state(component, state_service_names(context.project))
    yield Match(
        {"name": component.name, "service": services[0], "count": len(consumers), "max_components": limit},
        component.line,
    )
