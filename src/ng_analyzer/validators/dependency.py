"""
Dependency rule predicates.

These read the prebuilt DependencyGraph; nothing here walks the graph itself.

ng_analyzer/src/ng_analyzer/validators/dependency.py
"""

from typing import Any, Iterator, Mapping

from ..dependency_graph import qualified_name
from .types import Match, RuleContext

__all__ = ["check_circular_dependency", "check_unused_dependency", "check_dependency_depth"]


def check_circular_dependency(entity, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    """One match per cycle the entity belongs to."""
    for cycle in context.graph.cycles_containing(qualified_name(entity)):
        yield Match({"name": entity.name, "cycle": cycle.describe()}, entity.line)


def check_unused_dependency(entity, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    """
    An injected parameter is unused when no member access in any method body
    starts with the parameter name.
    """
    accesses = [access for method in entity.methods for access in method.member_accesses]
    for param in entity.parameters:
        if not param.name:
            continue
        prefix = f"{param.name}."
        if any(access == param.name or access.startswith(prefix) for access in accesses):
            continue
        yield Match(
            {"name": entity.name, "dependency": param.type_name, "parameter": param.name},
            entity.line,
        )


def check_dependency_depth(entity, context: RuleContext, options: Mapping[str, Any]) -> Iterator[Match]:
    """Reported once per root whose longest chain exceeds max_depth."""
    node = qualified_name(entity)
    limit = options["max_depth"]
    for chain in context.graph.chains:
        if chain.root == node and chain.length > limit:
            yield Match(
                {
                    "name": entity.name,
                    "depth": chain.length,
                    "max_depth": limit,
                    "terminal": chain.terminal.rsplit("#", 1)[-1],
                },
                entity.line,
            )
