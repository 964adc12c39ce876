"""
Shared types and heuristics for rule predicates.

A predicate is a plain function `(entity, context, options) -> Iterator[Match]`.
The evaluator in registry.py turns each Match into an Issue using the rule's
message template and resolved severity.

ng_analyzer/src/ng_analyzer/validators/types.py
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Set, Tuple

from ..dependency_graph import DependencyGraph
from ..metrics import MetricsReport
from ..models import Component, Project

__all__ = [
    "Match",
    "RuleContext",
    "Predicate",
    "SUBSCRIPTION_CLEANUPS",
    "uncleaned_subscriptions",
    "subscription_calls",
    "injected_by",
    "state_service_names",
    "STATE_NAME_MARKERS",
]


@dataclass(frozen=True)
class Match:
    """One violation found by a predicate: message parameters plus an optional line."""

    params: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    line: Optional[int] = None


@dataclass(frozen=True)
class RuleContext:
    """Read-only inputs shared by every predicate of a run."""

    project: Project
    metrics: MetricsReport
    graph: DependencyGraph


Predicate = Callable[[Any, RuleContext, Mapping[str, Any]], Iterator[Match]]

# subscription-like call -> calls that undo it
SUBSCRIPTION_CLEANUPS: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "subscribe": ("unsubscribe", "complete"),
        "setInterval": ("clearInterval",),
        "addEventListener": ("removeEventListener",),
    }
)
SELF_CLEANING_CALLS = frozenset({"takeUntilDestroyed"})


def subscription_calls(component: Component) -> Tuple[str, ...]:
    """Subscription-like calls in methods that do not clean up after themselves."""
    found: Set[str] = set()
    for method in component.methods:
        if SELF_CLEANING_CALLS.intersection(method.calls):
            continue
        found.update(call for call in method.calls if call in SUBSCRIPTION_CLEANUPS)
    return tuple(sorted(found))


def _destroy_reachable_calls(component: Component) -> Set[str]:
    methods: Dict[str, Any] = {m.name: m for m in component.methods}
    if "ngOnDestroy" not in methods:
        return set()
    seen = {"ngOnDestroy"}
    pending = ["ngOnDestroy"]
    calls: Set[str] = set()
    while pending:
        method = methods[pending.pop()]
        for call in method.calls:
            calls.add(call)
            if call in methods and call not in seen:
                seen.add(call)
                pending.append(call)
    return calls


def uncleaned_subscriptions(component: Component) -> Tuple[str, ...]:
    """Subscription calls with no matching cleanup reachable from ngOnDestroy."""
    subscribed = subscription_calls(component)
    if not subscribed:
        return ()
    cleanup = _destroy_reachable_calls(component)
    return tuple(call for call in subscribed if not cleanup.intersection(SUBSCRIPTION_CLEANUPS[call]))


def injected_by(project: Project, service_name: str) -> Tuple[Component, ...]:
    """Components whose constructor injects the named service."""
    return tuple(c for c in project.components if service_name in c.dependencies)


STATE_NAME_MARKERS = ("state", "store")


def state_service_names(project: Project) -> frozenset:
    """Services holding mutable fields, or named as a state holder."""
    return frozenset(
        s.name
        for s in project.services
        if s.mutable_fields or any(marker in s.name.lower() for marker in STATE_NAME_MARKERS)
    )
