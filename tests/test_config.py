"""Tests for configuration loading and validation."""

import json
from pathlib import Path

import pytest

from ng_analyzer.config import (
    CONFIG_FILENAME,
    Config,
    default_config_document,
    discover_config,
    load_config,
    load_project_config,
    write_default_config,
)
from ng_analyzer.errors import ConfigError
from ng_analyzer.findings import Severity
from ng_analyzer.rules import BUILTIN_PROFILES, RuleEngine


def _write_json(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_defaults_without_document():
    """Test an empty Config resolves to the recommended profile."""
    config = Config()

    assert config.active_profile == "recommended"
    assert config.profile() is BUILTIN_PROFILES["recommended"]
    assert config.ignore_globs == []
    assert "profiles" in config
    assert config.get("missing", 42) == 42


def test_getitem_unknown_key():
    """Test unknown keys raise KeyError."""
    with pytest.raises(KeyError):
        Config()["nope"]


def test_load_json_config(temp_dir):
    """Test loading .ng-analyzer.json with a custom profile."""
    path = _write_json(
        temp_dir / CONFIG_FILENAME,
        {
            "profile": "team",
            "profiles": {
                "team": {
                    "description": "Team rules",
                    "rules": {
                        "component-complexity": {"severity": "error", "options": {"max_complexity": 12}},
                        "missing-template": "warning",
                        "unused-dependency": False,
                    },
                }
            },
            "ignore": ["**/legacy/**"],
        },
    )
    config = load_config(path)
    engine = RuleEngine(config.profile())

    assert config.source == path
    assert config.project_root == temp_dir.resolve()
    assert config.ignore_globs == ["**/legacy/**"]
    assert engine.get_rule_severity("component-complexity") is Severity.ERROR
    assert engine.get_rule("component-complexity").options["max_complexity"] == 12
    assert engine.get_rule_severity("missing-template") is Severity.WARNING
    assert not engine.is_rule_enabled("unused-dependency")


def test_load_toml_config(temp_dir):
    """Test a standalone TOML document."""
    path = temp_dir / "ng-analyzer.toml"
    path.write_text(
        'profile = "strict"\n'
        'ignore = ["**/generated/**"]\n',
        encoding="utf-8",
    )
    config = load_config(path)

    assert config.active_profile == "strict"
    assert config.profile() is BUILTIN_PROFILES["strict"]
    assert config.ignore_globs == ["**/generated/**"]


def test_load_pyproject_section(temp_dir):
    """Test the [tool.ng-analyzer] section of pyproject.toml."""
    path = temp_dir / "pyproject.toml"
    path.write_text(
        '[project]\nname = "demo"\n\n'
        '[tool.ng-analyzer]\nprofile = "relaxed"\n',
        encoding="utf-8",
    )

    assert load_config(path).active_profile == "relaxed"


def test_pyproject_without_section_is_error(temp_dir):
    """Test a pyproject.toml lacking the section."""
    path = temp_dir / "pyproject.toml"
    path.write_text('[project]\nname = "demo"\n', encoding="utf-8")

    with pytest.raises(ConfigError, match="tool.ng-analyzer"):
        load_config(path)


def test_custom_profile_merges_over_builtin(temp_dir):
    """Test a custom 'recommended' overrides one rule and keeps the rest."""
    path = _write_json(
        temp_dir / CONFIG_FILENAME,
        {"profiles": {"recommended": {"rules": {"too-many-inputs": {"options": {"max_inputs": 3}}}}}},
    )
    engine = RuleEngine(load_config(path).profile("recommended"))

    assert engine.get_rule("too-many-inputs").options["max_inputs"] == 3
    assert engine.get_rule("component-complexity").options["max_complexity"] == 10
    assert engine.get_rule_severity("too-many-inputs") is Severity.WARNING


@pytest.mark.parametrize(
    "document, fragment",
    [
        ({"profiles": {"x": {"rules": {"no-such-rule": True}}}}, "no-such-rule"),
        ({"profiles": {"x": {"rules": {"missing-template": "fatal"}}}}, "missing-template"),
        ({"unexpected": 1}, "unexpected"),
        ({"profile": "ghost"}, "ghost"),
        ([1, 2, 3], "must be an object"),
    ],
)
def test_invalid_documents(temp_dir, document, fragment):
    """Test invalid documents are ConfigErrors naming the problem."""
    path = _write_json(temp_dir / CONFIG_FILENAME, document)

    with pytest.raises(ConfigError, match=fragment):
        load_config(path)


def test_malformed_json_is_config_error(temp_dir):
    """Test a syntax error in the file."""
    path = temp_dir / CONFIG_FILENAME
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigError, match="Invalid configuration file"):
        load_config(path)


def test_missing_file_is_config_error(temp_dir):
    """Test a path that does not exist."""
    with pytest.raises(ConfigError, match="Cannot read"):
        load_config(temp_dir / "absent.json")


@pytest.mark.parametrize(
    "name, content",
    [
        ("cfg.json", b'{"ignore": ["\xff\xfe"]}'),
        ("cfg.toml", b'ignore = ["\xff\xfe"]\n'),
    ],
)
def test_non_utf8_file_is_config_error(temp_dir, name, content):
    """Test undecodable bytes are reported like any malformed file."""
    path = temp_dir / name
    path.write_bytes(content)

    with pytest.raises(ConfigError, match="Invalid configuration file"):
        load_config(path)


def test_discover_skips_undecodable_pyproject(temp_dir):
    """Test a pyproject.toml that is not UTF-8 is not treated as a config."""
    (temp_dir / "pyproject.toml").write_bytes(b'[tool.ng-analyzer]\nprofile = "\xff"\n')

    assert discover_config(temp_dir) is None


def test_unknown_profile_lists_available():
    """Test selecting a profile that is not defined."""
    with pytest.raises(ConfigError, match="recommended"):
        Config().profile("paranoid")


def test_discover_config_walks_up(temp_dir):
    """Test discovery from a nested directory."""
    _write_json(temp_dir / CONFIG_FILENAME, {"profile": "strict"})
    nested = temp_dir / "src" / "app"
    nested.mkdir(parents=True)

    found = discover_config(nested)

    assert found == (temp_dir / CONFIG_FILENAME).resolve()
    assert load_project_config(nested).active_profile == "strict"


def test_discover_prefers_json_over_pyproject(temp_dir):
    """Test .ng-analyzer.json wins in the same directory."""
    _write_json(temp_dir / CONFIG_FILENAME, {})
    (temp_dir / "pyproject.toml").write_text('[tool.ng-analyzer]\nprofile = "strict"\n', encoding="utf-8")

    assert discover_config(temp_dir).name == CONFIG_FILENAME


def test_write_default_config_round_trips(temp_dir):
    """Test the starter file loads back to the same profile settings."""
    path = write_default_config(temp_dir / CONFIG_FILENAME, "strict")
    config = load_config(path)
    engine = RuleEngine(config.profile())

    assert config.active_profile == "strict"
    assert engine.get_rule("component-complexity").options["max_complexity"] == 8
    assert engine.get_rule_severity("component-complexity") is Severity.ERROR
    assert config.ignore_globs == default_config_document("strict")["ignore"]


def test_write_default_config_refuses_overwrite(temp_dir):
    """Test an existing file is left alone."""
    path = temp_dir / CONFIG_FILENAME
    path.write_text("{}", encoding="utf-8")

    with pytest.raises(ConfigError, match="already exists"):
        write_default_config(path)
    assert path.read_text(encoding="utf-8") == "{}"
