"""
Rule management system for ng-analyzer.

Holds the rule table, the built-in profiles, and the engine that resolves a
profile (plus command-line overrides) into the effective rule set: which rules
run, at what severity, with which options.

ng_analyzer/src/ng_analyzer/rules.py
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ConfigError
from .findings import Severity

logger = logging.getLogger(__name__)

__all__ = [
    "AnalyzerCategory",
    "RuleDefinition",
    "RULES",
    "RULES_BY_ID",
    "RuleSetting",
    "Profile",
    "BUILTIN_PROFILES",
    "ResolvedRule",
    "RuleEngine",
    "create_default_rule_config",
]


class AnalyzerCategory(Enum):
    """Rule categories; each one is an independently dispatched analyzer."""

    COMPONENT = "component"
    DEPENDENCY = "dependency"
    STATE = "state"
    PERFORMANCE = "performance"

    @classmethod
    def parse(cls, names) -> Tuple["AnalyzerCategory", ...]:
        """
        Parse requested analyzer names into categories in declaration order.

        "full" (or "all") selects every category. Unknown names raise ConfigError.
        """
        if isinstance(names, str):
            names = [n for n in names.split(",")]
        requested = set()
        for raw in names:
            name = str(raw).strip().lower()
            if not name:
                continue
            if name in ("full", "all"):
                return tuple(cls)
            try:
                requested.add(cls(name))
            except ValueError:
                valid = ", ".join(c.value for c in cls)
                raise ConfigError(f"Unknown analyzer '{raw}' (expected one of: {valid}, full)") from None
        if not requested:
            raise ConfigError("No analyzers requested")
        return tuple(c for c in cls if c in requested)


@dataclass(frozen=True)
class RuleDefinition:
    """
    One row of the rule table.

    `target` names the entity collection the predicate runs over:
    component, service, module, injector (anything with constructor
    injection) or entity (every node of the dependency graph).
    """

    rule_id: str
    category: AnalyzerCategory
    default_severity: Severity
    target: str
    description: str
    message_template: str
    default_options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def format_message(self, params: Mapping[str, Any]) -> str:
        return self.message_template.format(**params)


def _rule(rule_id, category, severity, target, description, message, **options) -> RuleDefinition:
    return RuleDefinition(
        rule_id=rule_id,
        category=category,
        default_severity=severity,
        target=target,
        description=description,
        message_template=message,
        default_options=MappingProxyType(options),
    )


_C = AnalyzerCategory.COMPONENT
_D = AnalyzerCategory.DEPENDENCY
_S = AnalyzerCategory.STATE
_P = AnalyzerCategory.PERFORMANCE

# Order within a category is evaluation order.
RULES: Tuple[RuleDefinition, ...] = (
    _rule(
        "component-complexity", _C, Severity.WARNING, "component",
        "Component complexity score exceeds the configured maximum",
        "Component '{name}' has complexity score {score}, exceeding the maximum of {max_complexity}",
        max_complexity=10,
    ),
    _rule(
        "component-complexity-critical", _C, Severity.ERROR, "component",
        "Component complexity score is a multiple of the configured maximum",
        "Component '{name}' has complexity score {score}, more than {critical_factor}x the maximum "
        "of {max_complexity}; refactor it into smaller components",
        max_complexity=10,
        critical_factor=2,
    ),
    _rule(
        "change-detection-strategy", _C, Severity.INFO, "component",
        "Component uses the Default change-detection strategy",
        "Component '{name}' uses Default change detection; consider ChangeDetectionStrategy.OnPush",
    ),
    _rule(
        "too-many-inputs", _C, Severity.WARNING, "component",
        "Component declares too many input properties",
        "Component '{name}' has {count} inputs (maximum {max_inputs})",
        max_inputs=8,
    ),
    _rule(
        "too-many-outputs", _C, Severity.WARNING, "component",
        "Component declares too many output properties",
        "Component '{name}' has {count} outputs (maximum {max_outputs})",
        max_outputs=5,
    ),
    _rule(
        "missing-cleanup-pattern", _C, Severity.WARNING, "component",
        "Component subscribes without implementing ngOnDestroy",
        "Component '{name}' calls {calls} but does not implement ngOnDestroy",
    ),
    _rule(
        "many-lifecycle-hooks", _C, Severity.INFO, "component",
        "Component implements many lifecycle hooks",
        "Component '{name}' implements {count} lifecycle hooks (maximum {max_hooks}); check that all are needed",
        max_hooks=4,
    ),
    _rule(
        "missing-template", _C, Severity.ERROR, "component",
        "Component has neither template nor templateUrl",
        "Component '{name}' must specify either template or templateUrl",
    ),
    _rule(
        "template-conflict", _C, Severity.ERROR, "component",
        "Component sets both template and templateUrl",
        "Component '{name}' cannot have both template and templateUrl",
    ),
    _rule(
        "inline-template-too-large", _C, Severity.WARNING, "component",
        "Inline template exceeds the configured character limit",
        "Component '{name}' has an inline template of {length} characters "
        "(maximum {max_template_length}); consider moving it to a separate file",
        max_template_length=500,
    ),
    _rule(
        "circular-dependency", _D, Severity.ERROR, "entity",
        "Entity takes part in a dependency cycle",
        "Circular dependency: {cycle}",
    ),
    _rule(
        "unused-dependency", _D, Severity.WARNING, "injector",
        "Injected dependency is never accessed",
        "'{name}' injects {dependency} as '{parameter}' but never uses it",
    ),
    _rule(
        "deep-dependency-chain", _D, Severity.WARNING, "entity",
        "Dependency chain from a root exceeds the configured depth",
        "Dependency chain from '{name}' has depth {depth} (maximum {max_depth}), ending at '{terminal}'",
        max_depth=5,
    ),
    _rule(
        "consider-state-management", _S, Severity.INFO, "service",
        "Service holds mutable state shared by several components",
        "Service '{name}' holds {fields} mutable fields used by {consumers} components; "
        "consider a dedicated state management approach",
        min_mutable_fields=3,
        min_consumers=2,
    ),
    _rule(
        "unclear-state-service-naming", _S, Severity.WARNING, "service",
        "State-holding service whose name does not mention State or Store",
        "Service '{name}' holds {fields} mutable fields but its name does not reflect it; "
        "consider a name containing 'State' or 'Store'",
        min_mutable_fields=1,
    ),
    _rule(
        "missing-unsubscribe-pattern", _S, Severity.WARNING, "component",
        "Subscription without matching cleanup reachable from ngOnDestroy",
        "Component '{name}' calls {calls} without matching cleanup reachable from ngOnDestroy",
    ),
    _rule(
        "complex-state-components", _S, Severity.WARNING, "component",
        "Complex component that also holds local state",
        "Component '{name}' has complexity {score} (maximum {max_complexity}) and holds "
        "{fields} state fields; consider extracting state into a service",
        max_complexity=10,
        min_state_fields=1,
    ),
    _rule(
        "state-change-detection-mismatch", _S, Severity.WARNING, "component",
        "Components injecting state services keep Default change detection",
        "Component '{name}' injects state service {service} but uses Default change detection "
        "({count} components do, maximum {max_components}); consider OnPush",
        max_components=2,
    ),
    _rule(
        "high-default-change-detection", _P, Severity.WARNING, "component",
        "Complex component still uses Default change detection",
        "Component '{name}' has complexity {score} and uses Default change detection; "
        "OnPush would avoid unnecessary checks",
        min_complexity=8,
    ),
    _rule(
        "consider-lazy-loading", _P, Severity.INFO, "module",
        "Large module eagerly imported from a root module",
        "Module '{name}' declares {count} components and is eagerly imported by {root}; consider lazy loading",
        component_threshold=10,
    ),
    _rule(
        "unbalanced-modules", _P, Severity.INFO, "module",
        "Components are concentrated in too few modules",
        "Module '{name}' declares {count} components while modules average {average:.1f} "
        "(maximum {max_average_components}); spread components over feature modules",
        max_average_components=8,
    ),
    _rule(
        "potential-memory-leak", _P, Severity.WARNING, "component",
        "Subscription without cleanup can leak memory",
        "Component '{name}' may leak memory: {calls} without matching cleanup in ngOnDestroy",
    ),
    _rule(
        "too-many-stylesheets", _P, Severity.WARNING, "component",
        "Component references too many stylesheets",
        "Component '{name}' has {count} stylesheets (maximum {max_stylesheets}); consider consolidating styles",
        max_stylesheets=3,
    ),
    _rule(
        "excessive-bindings", _P, Severity.WARNING, "component",
        "Component declares too many input and output bindings",
        "Component '{name}' has {count} bindings (maximum {max_bindings}); "
        "fewer bindings make change detection cheaper",
        max_bindings=15,
    ),
    _rule(
        "feature-module-organization", _P, Severity.INFO, "module",
        "Module groups components with unrelated selector prefixes",
        "Module '{name}' declares components with {prefixes} different selector prefixes "
        "({divergence:.2f} divergence); consider splitting it into feature modules",
        min_components=3,
        prefix_segments=2,
        max_divergence=0.5,
    ),
)

RULES_BY_ID: Mapping[str, RuleDefinition] = MappingProxyType({r.rule_id: r for r in RULES})


@dataclass(frozen=True)
class RuleSetting:
    """A profile's entry for one rule; unset fields fall back to the rule defaults."""

    enabled: Optional[bool] = None
    severity: Optional[Severity] = None
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def merged_over(self, base: "RuleSetting") -> "RuleSetting":
        return RuleSetting(
            enabled=self.enabled if self.enabled is not None else base.enabled,
            severity=self.severity if self.severity is not None else base.severity,
            options=MappingProxyType({**base.options, **self.options}),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.enabled is not None:
            data["enabled"] = self.enabled
        if self.severity is not None:
            data["severity"] = self.severity.value
        if self.options:
            data["options"] = dict(self.options)
        return data


@dataclass(frozen=True)
class Profile:
    """A named bundle of rule settings."""

    name: str
    rules: Mapping[str, RuleSetting] = field(default_factory=lambda: MappingProxyType({}))
    description: str = ""

    def merged_over(self, base: "Profile") -> "Profile":
        """Overlay this profile's rules on another, rule by rule."""
        merged = dict(base.rules)
        for rule_id, setting in self.rules.items():
            merged[rule_id] = setting.merged_over(base.rules[rule_id]) if rule_id in base.rules else setting
        return Profile(
            name=self.name,
            rules=MappingProxyType(merged),
            description=self.description or base.description,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "rules": {rule_id: setting.to_dict() for rule_id, setting in self.rules.items()},
        }


def _setting(severity: Optional[str] = None, enabled: bool = True, **options) -> RuleSetting:
    return RuleSetting(
        enabled=enabled,
        severity=Severity(severity) if severity else None,
        options=MappingProxyType(options),
    )


def _profile(name: str, description: str, rules: Dict[str, RuleSetting]) -> Profile:
    return Profile(name=name, rules=MappingProxyType(rules), description=description)


BUILTIN_PROFILES: Mapping[str, Profile] = MappingProxyType(
    {
        "recommended": _profile(
            "recommended",
            "Balanced defaults for most Angular projects",
            {
                "component-complexity": _setting("warning", max_complexity=10),
                "change-detection-strategy": _setting("info"),
                "too-many-inputs": _setting("warning", max_inputs=8),
                "too-many-outputs": _setting("warning", max_outputs=5),
                "missing-cleanup-pattern": _setting("warning"),
                "circular-dependency": _setting("error"),
            },
        ),
        "strict": _profile(
            "strict",
            "Tighter thresholds and escalated severities",
            {
                "component-complexity": _setting("error", max_complexity=8),
                "component-complexity-critical": _setting("error", max_complexity=8),
                "change-detection-strategy": _setting("warning"),
                "too-many-inputs": _setting("error", max_inputs=6),
                "missing-template": _setting("error"),
                "missing-cleanup-pattern": _setting("error"),
                "circular-dependency": _setting("error"),
            },
        ),
        "relaxed": _profile(
            "relaxed",
            "Minimal rule set for legacy or prototype code",
            {
                "component-complexity": _setting("info", max_complexity=15),
                "component-complexity-critical": _setting(max_complexity=15),
                "circular-dependency": _setting("warning"),
                "change-detection-strategy": _setting(enabled=False),
                "many-lifecycle-hooks": _setting(enabled=False),
                "inline-template-too-large": _setting(enabled=False),
                "unused-dependency": _setting(enabled=False),
                "deep-dependency-chain": _setting(enabled=False),
                "consider-state-management": _setting(enabled=False),
                "unclear-state-service-naming": _setting(enabled=False),
                "complex-state-components": _setting(enabled=False),
                "state-change-detection-mismatch": _setting(enabled=False),
                "high-default-change-detection": _setting(enabled=False),
                "unbalanced-modules": _setting(enabled=False),
                "feature-module-organization": _setting(enabled=False),
            },
        ),
    }
)


@dataclass(frozen=True)
class ResolvedRule:
    """A rule with its effective severity and options under the active profile."""

    definition: RuleDefinition
    severity: Severity
    options: Mapping[str, Any]

    @property
    def rule_id(self) -> str:
        return self.definition.rule_id

    @property
    def category(self) -> AnalyzerCategory:
        return self.definition.category


class RuleEngine:
    """
    Resolves the active profile into the effective rule set.

    Resolution happens once in the constructor; afterwards the engine is
    read-only and can be shared across analyzer threads.
    """

    def __init__(
        self,
        profile: Optional[Profile] = None,
        overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ):
        """
        Initialize rule engine with a profile.

        Args:
            profile: Active profile; the built-in 'recommended' when omitted
            overrides: rule_id -> option overrides applied on top of the profile
        """
        self.profile = profile if profile is not None else BUILTIN_PROFILES["recommended"]
        self._overrides = {rule_id: dict(opts) for rule_id, opts in (overrides or {}).items()}
        self._validate()
        self._resolved: Tuple[ResolvedRule, ...] = self._resolve()
        self._by_id = MappingProxyType({r.rule_id: r for r in self._resolved})
        logger.debug(
            f"Profile '{self.profile.name}': {len(self._resolved)} of {len(RULES)} rules enabled"
        )

    @classmethod
    def from_options(
        cls,
        profile: Optional[Profile] = None,
        max_complexity: Optional[int] = None,
        depth: Optional[int] = None,
    ) -> "RuleEngine":
        """Build an engine with the command-line threshold overrides applied."""
        overrides: Dict[str, Dict[str, Any]] = {}
        if max_complexity is not None:
            overrides["component-complexity"] = {"max_complexity": max_complexity}
            overrides["component-complexity-critical"] = {"max_complexity": max_complexity}
            overrides["complex-state-components"] = {"max_complexity": max_complexity}
        if depth is not None:
            overrides["deep-dependency-chain"] = {"max_depth": depth}
        return cls(profile, overrides)

    def _validate(self):
        for rule_id in self.profile.rules:
            if rule_id not in RULES_BY_ID:
                raise ConfigError(f"Profile '{self.profile.name}' references unknown rule '{rule_id}'")
        for rule_id in self._overrides:
            if rule_id not in RULES_BY_ID:
                raise ConfigError(f"Override references unknown rule '{rule_id}'")
        for rule_id, setting in self.profile.rules.items():
            self._check_options(rule_id, setting.options)
        for rule_id, options in self._overrides.items():
            self._check_options(rule_id, options)

    def _check_options(self, rule_id: str, options: Mapping[str, Any]):
        defaults = RULES_BY_ID[rule_id].default_options
        for key, value in options.items():
            if key not in defaults:
                logger.warning(f"Rule '{rule_id}' has no option '{key}'; ignored")
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"Option '{key}' of rule '{rule_id}' must be a number, got {value!r}")
            if value < 0:
                raise ConfigError(f"Option '{key}' of rule '{rule_id}' must not be negative")

    def _resolve(self) -> Tuple[ResolvedRule, ...]:
        resolved = []
        for definition in RULES:
            setting = self.profile.rules.get(definition.rule_id, RuleSetting())
            if setting.enabled is False:
                logger.debug(f"Rule '{definition.rule_id}' disabled by profile")
                continue
            options = dict(definition.default_options)
            options.update((k, v) for k, v in setting.options.items() if k in options)
            options.update(
                (k, v) for k, v in self._overrides.get(definition.rule_id, {}).items() if k in options
            )
            resolved.append(
                ResolvedRule(
                    definition=definition,
                    severity=setting.severity or definition.default_severity,
                    options=MappingProxyType(options),
                )
            )
        return tuple(resolved)

    @property
    def rules(self) -> Tuple[ResolvedRule, ...]:
        return self._resolved

    def rules_for(self, category: AnalyzerCategory) -> Tuple[ResolvedRule, ...]:
        """Enabled rules of one category in evaluation order."""
        return tuple(r for r in self._resolved if r.category is category)

    def is_rule_enabled(self, rule_id: str) -> bool:
        return rule_id in self._by_id

    def get_rule_severity(self, rule_id: str) -> Severity:
        """Get effective severity for a rule (its default when disabled)."""
        rule = self._by_id.get(rule_id)
        return rule.severity if rule else RULES_BY_ID[rule_id].default_severity

    def get_rule(self, rule_id: str) -> Optional[ResolvedRule]:
        return self._by_id.get(rule_id)

    def get_rule_summary(self) -> Dict[str, Any]:
        """Get summary of rule configuration."""
        return {
            "profile": self.profile.name,
            "total_rules": len(RULES),
            "enabled_rules": len(self._resolved),
            "disabled_rules": len(RULES) - len(self._resolved),
            "overrides": sorted(self._overrides),
        }


def create_default_rule_config(profile_name: str = "recommended") -> Dict[str, Any]:
    """Create the rules section of a new configuration document."""
    if profile_name not in BUILTIN_PROFILES:
        raise ConfigError(
            f"Unknown profile '{profile_name}' (built-in profiles: {', '.join(sorted(BUILTIN_PROFILES))})"
        )
    return BUILTIN_PROFILES[profile_name].to_dict()
