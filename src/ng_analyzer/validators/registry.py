"""Rule predicate registry and evaluator.

Maps each rule id to its predicate through an immutable lookup built at
import time, and evaluates a category's resolved rules over the project.

Responsibility: dispatch and fault isolation only.
Rule logic belongs in the per-category predicate modules.

ng_analyzer/src/ng_analyzer/validators/registry.py
"""

import logging
from types import MappingProxyType
from typing import Callable, Iterable, List, Mapping, Sequence, Tuple

from ..errors import ConfigError, RuleEvaluationFault
from ..findings import Diagnostic, Issue
from ..models import Project
from ..rules import RULES, ResolvedRule
from . import component, dependency, performance, state
from .types import Predicate, RuleContext

logger = logging.getLogger(__name__)

__all__ = ["PREDICATES", "TARGETS", "get_predicate", "evaluate_rules"]

PREDICATES: Mapping[str, Predicate] = MappingProxyType(
    {
        "component-complexity": component.check_complexity,
        "component-complexity-critical": component.check_complexity_critical,
        "change-detection-strategy": component.check_change_detection,
        "too-many-inputs": component.check_inputs,
        "too-many-outputs": component.check_outputs,
        "missing-cleanup-pattern": component.check_cleanup_pattern,
        "many-lifecycle-hooks": component.check_lifecycle_hooks,
        "missing-template": component.check_missing_template,
        "template-conflict": component.check_template_conflict,
        "inline-template-too-large": component.check_inline_template_size,
        "circular-dependency": dependency.check_circular_dependency,
        "unused-dependency": dependency.check_unused_dependency,
        "deep-dependency-chain": dependency.check_dependency_depth,
        "consider-state-management": state.check_state_management,
        "unclear-state-service-naming": state.check_state_service_naming,
        "missing-unsubscribe-pattern": state.check_unsubscribe_pattern,
        "complex-state-components": state.check_complex_state,
        "state-change-detection-mismatch": state.check_state_change_detection,
        "high-default-change-detection": performance.check_default_change_detection,
        "consider-lazy-loading": performance.check_lazy_loading,
        "unbalanced-modules": performance.check_unbalanced_modules,
        "potential-memory-leak": performance.check_memory_leak,
        "too-many-stylesheets": performance.check_stylesheets,
        "excessive-bindings": performance.check_bindings,
        "feature-module-organization": performance.check_module_organization,
    }
)

TARGETS: Mapping[str, Callable[[Project], Iterable]] = MappingProxyType(
    {
        "component": lambda project: project.components,
        "service": lambda project: project.services,
        "module": lambda project: project.modules,
        "injector": lambda project: tuple(project.injecting_entities()),
        "entity": lambda project: tuple(project.entities()),
    }
)

_missing = sorted({r.rule_id for r in RULES} - set(PREDICATES))
if _missing:
    raise ImportError(f"Rules without a predicate: {', '.join(_missing)}")


def get_predicate(rule_id: str) -> Predicate:
    try:
        return PREDICATES[rule_id]
    except KeyError:
        raise ConfigError(f"Unknown rule '{rule_id}'") from None


def evaluate_rules(
    rules: Sequence[ResolvedRule], context: RuleContext
) -> Tuple[List[Issue], List[Diagnostic]]:
    """
    Run resolved rules in order over their target entities.

    A predicate that raises is recorded as a rule-fault diagnostic for that
    entity; the remaining entities and rules still run.
    """
    issues: List[Issue] = []
    faults: List[Diagnostic] = []

    for rule in rules:
        predicate = get_predicate(rule.rule_id)
        definition = rule.definition
        for entity in TARGETS[definition.target](context.project):
            try:
                for match in predicate(entity, context, rule.options):
                    issues.append(
                        Issue(
                            severity=rule.severity,
                            rule_id=rule.rule_id,
                            message=definition.format_message(match.params),
                            file_path=entity.file_path,
                            line=match.line,
                        )
                    )
            except Exception as e:
                logger.warning(f"Rule '{rule.rule_id}' failed on {entity.file_path}: {e}")
                faults.append(RuleEvaluationFault.diagnostic(rule.rule_id, e, entity.file_path))

    return issues, faults
