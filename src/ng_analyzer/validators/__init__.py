"""ng-analyzer validators sub-package.

Rule predicates grouped by category, with an immutable registry.

Responsibility: predicate module organization and re-exports only.
Rule logic belongs in the per-category modules.

ng_analyzer/src/ng_analyzer/validators/__init__.py
"""

# Core types first, registry last (it imports the category modules)
from .types import Match, Predicate, RuleContext
from .registry import PREDICATES, TARGETS, evaluate_rules, get_predicate

__all__ = [
    "Match",
    "Predicate",
    "RuleContext",
    "PREDICATES",
    "TARGETS",
    "evaluate_rules",
    "get_predicate",
]
