"""Tests for rules engine."""

from types import MappingProxyType

import pytest

from ng_analyzer.errors import ConfigError
from ng_analyzer.findings import Severity
from ng_analyzer.rules import (
    BUILTIN_PROFILES,
    RULES,
    RULES_BY_ID,
    AnalyzerCategory,
    Profile,
    RuleEngine,
    RuleSetting,
    create_default_rule_config,
)


def _profile(**rules) -> Profile:
    return Profile(name="custom", rules=MappingProxyType(rules))


def test_rule_table_is_complete():
    """Test every rule has a category, unique id and formatted message."""
    assert len(RULES) == 25
    assert len(RULES_BY_ID) == len(RULES)
    by_category = {c: [r.rule_id for r in RULES if r.category is c] for c in AnalyzerCategory}
    assert by_category[AnalyzerCategory.COMPONENT][0] == "component-complexity"
    assert by_category[AnalyzerCategory.DEPENDENCY] == [
        "circular-dependency",
        "unused-dependency",
        "deep-dependency-chain",
    ]
    assert len(by_category[AnalyzerCategory.STATE]) == 5
    assert len(by_category[AnalyzerCategory.PERFORMANCE]) == 7


def test_default_severities():
    """Test the documented default severities."""
    assert RULES_BY_ID["missing-template"].default_severity is Severity.ERROR
    assert RULES_BY_ID["template-conflict"].default_severity is Severity.ERROR
    assert RULES_BY_ID["circular-dependency"].default_severity is Severity.ERROR
    assert RULES_BY_ID["change-detection-strategy"].default_severity is Severity.INFO
    assert RULES_BY_ID["component-complexity"].default_severity is Severity.WARNING


def test_recommended_profile_thresholds():
    """Test the recommended built-in matches its documented values."""
    engine = RuleEngine(BUILTIN_PROFILES["recommended"])

    complexity = engine.get_rule("component-complexity")
    assert complexity.severity is Severity.WARNING
    assert complexity.options["max_complexity"] == 10
    assert engine.get_rule("too-many-inputs").options["max_inputs"] == 8
    assert engine.get_rule("too-many-outputs").options["max_outputs"] == 5


def test_strict_profile_thresholds():
    """Test the strict built-in escalates severities and tightens limits."""
    engine = RuleEngine(BUILTIN_PROFILES["strict"])

    assert engine.get_rule("component-complexity").severity is Severity.ERROR
    assert engine.get_rule("component-complexity").options["max_complexity"] == 8
    assert engine.get_rule_severity("missing-template") is Severity.ERROR
    assert engine.get_rule_severity("change-detection-strategy") is Severity.WARNING


def test_relaxed_profile_disables_heuristics():
    """Test the relaxed built-in keeps a minimal rule set."""
    engine = RuleEngine(BUILTIN_PROFILES["relaxed"])

    assert not engine.is_rule_enabled("change-detection-strategy")
    assert not engine.is_rule_enabled("unused-dependency")
    assert engine.is_rule_enabled("missing-template")
    assert engine.get_rule("component-complexity").options["max_complexity"] == 15
    assert engine.get_rule_severity("circular-dependency") is Severity.WARNING


def test_rules_not_in_profile_use_defaults():
    """Test unreferenced rules run enabled at their default severity."""
    engine = RuleEngine(_profile())

    assert engine.is_rule_enabled("feature-module-organization")
    assert engine.get_rule_severity("feature-module-organization") is Severity.INFO
    assert len(engine.rules) == len(RULES)


def test_severity_override():
    """Test a profile severity replaces the rule default."""
    engine = RuleEngine(_profile(**{"component-complexity": RuleSetting(severity=Severity.ERROR)}))

    assert engine.get_rule_severity("component-complexity") is Severity.ERROR
    # options untouched by a severity-only override
    assert engine.get_rule("component-complexity").options["max_complexity"] == 10


def test_disabled_rule_skipped():
    """Test disabled rules are absent from the category rule lists."""
    engine = RuleEngine(_profile(**{"missing-template": RuleSetting(enabled=False)}))

    component_rules = [r.rule_id for r in engine.rules_for(AnalyzerCategory.COMPONENT)]
    assert "missing-template" not in component_rules
    assert "template-conflict" in component_rules


def test_unknown_rule_in_profile_is_config_error():
    """Test referencing a rule that does not exist."""
    with pytest.raises(ConfigError, match="no-such-rule"):
        RuleEngine(_profile(**{"no-such-rule": RuleSetting(enabled=True)}))


def test_non_numeric_option_is_config_error():
    """Test option values must be numbers."""
    setting = RuleSetting(options=MappingProxyType({"max_complexity": "ten"}))
    with pytest.raises(ConfigError, match="max_complexity"):
        RuleEngine(_profile(**{"component-complexity": setting}))


def test_command_line_overrides():
    """Test --max-complexity and --depth layer over the profile."""
    engine = RuleEngine.from_options(BUILTIN_PROFILES["strict"], max_complexity=20, depth=2)

    assert engine.get_rule("component-complexity").options["max_complexity"] == 20
    assert engine.get_rule("complex-state-components").options["max_complexity"] == 20
    assert engine.get_rule("deep-dependency-chain").options["max_depth"] == 2
    # severity still comes from the profile
    assert engine.get_rule_severity("component-complexity") is Severity.ERROR


def test_profile_merge_rule_by_rule():
    """Test a custom profile overlays a built-in of the same name."""
    custom = Profile(
        name="recommended",
        rules=MappingProxyType(
            {"component-complexity": RuleSetting(options=MappingProxyType({"max_complexity": 12}))}
        ),
    )
    merged = custom.merged_over(BUILTIN_PROFILES["recommended"])
    setting = merged.rules["component-complexity"]

    assert setting.severity is Severity.WARNING
    assert setting.options["max_complexity"] == 12
    assert "too-many-inputs" in merged.rules


def test_analyzer_category_parse():
    """Test analyzer name parsing, 'full' expansion and errors."""
    assert AnalyzerCategory.parse("full") == tuple(AnalyzerCategory)
    assert AnalyzerCategory.parse("state, component") == (AnalyzerCategory.COMPONENT, AnalyzerCategory.STATE)
    with pytest.raises(ConfigError, match="bogus"):
        AnalyzerCategory.parse("component,bogus")
    with pytest.raises(ConfigError):
        AnalyzerCategory.parse("")


def test_create_default_rule_config():
    """Test the rules section written for new projects."""
    config = create_default_rule_config("strict")

    assert config["rules"]["component-complexity"] == {
        "enabled": True,
        "severity": "error",
        "options": {"max_complexity": 8},
    }
    with pytest.raises(ConfigError):
        create_default_rule_config("nope")


def test_rule_summary():
    """Test rule summary counts."""
    summary = RuleEngine(BUILTIN_PROFILES["relaxed"]).get_rule_summary()

    assert summary["profile"] == "relaxed"
    assert summary["enabled_rules"] + summary["disabled_rules"] == summary["total_rules"]
    assert summary["disabled_rules"] == 12
