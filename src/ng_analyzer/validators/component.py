"""
Component rule predicates.

ng_analyzer/src/ng_analyzer/validators/component.py
"""

from typing import Any, Iterator, Mapping

from ..models import ChangeDetectionStrategy, Component
from .types import Match, RuleContext, subscription_calls

__all__ = [
    "check_complexity",
    "check_complexity_critical",
    "check_change_detection",
    "check_inputs",
    "check_outputs",
    "check_cleanup_pattern",
    "check_lifecycle_hooks",
    "check_missing_template",
    "check_template_conflict",
    "check_inline_template_size",
]


def check_complexity(component: Component, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    limit = options["max_complexity"]
    if component.complexity_score > limit:
        yield Match(
            {"name": component.name, "score": component.complexity_score, "max_complexity": limit},
            component.line,
        )


def check_complexity_critical(
    component: Component, context: RuleContext, options: Mapping[str, Any]
) -> Iterator[Match]:
    limit = options["max_complexity"]
    factor = options["critical_factor"]
    if component.complexity_score > limit * factor:
        yield Match(
            {
                "name": component.name,
                "score": component.complexity_score,
                "max_complexity": limit,
                "critical_factor": factor,
            },
            component.line,
        )


def check_change_detection(component: Component, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    if component.change_detection is ChangeDetectionStrategy.DEFAULT:
        yield Match({"name": component.name}, component.line)


def check_inputs(component: Component, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    limit = options["max_inputs"]
    if len(component.inputs) > limit:
        yield Match({"name": component.name, "count": len(component.inputs), "max_inputs": limit}, component.line)


def check_outputs(component: Component, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    limit = options["max_outputs"]
    if len(component.outputs) > limit:
        yield Match({"name": component.name, "count": len(component.outputs), "max_outputs": limit}, component.line)


def check_cleanup_pattern(component: Component, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    """Subscribing without an ngOnDestroy hook at all."""
    if "ngOnDestroy" in component.lifecycle_hooks:
        return
    calls = subscription_calls(component)
    if calls:
        yield Match({"name": component.name, "calls": ", ".join(calls)}, component.line)


def check_lifecycle_hooks(component: Component, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    limit = options["max_hooks"]
    count = len(component.lifecycle_hooks)
    if count > limit:
        yield Match({"name": component.name, "count": count, "max_hooks": limit}, component.line)


def check_missing_template(component: Component, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    if component.template is None and component.template_url is None:
        yield Match({"name": component.name}, component.line)


def check_template_conflict(component: Component, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    if component.template is not None and component.template_url is not None:
        yield Match({"name": component.name}, component.line)


def check_inline_template_size(
    component: Component, context: RuleContext, options: Mapping[str, Any]
) -> Iterator[Match]:
    limit = options["max_template_length"]
    if component.template is not None and len(component.template) > limit:
        yield Match(
            {"name": component.name, "length": len(component.template), "max_template_length": limit},
            component.line,
        )
