"""Configuration loading for ng-analyzer.

Reads the configuration document from `.ng-analyzer.json`, a standalone TOML
file, or the [tool.ng-analyzer] section of pyproject.toml. The document is
validated with pydantic; anything unreadable or invalid is a ConfigError,
which aborts the run before analysis starts.

ng_analyzer/src/ng_analyzer/config.py
"""

import json
import logging
import sys
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError
from .findings import Severity
from .rules import BUILTIN_PROFILES, RULES_BY_ID, Profile, RuleSetting, create_default_rule_config

if sys.version_info >= (3, 11):

    import tomllib
else:

    try:

        import tomli as tomllib
    except ImportError as e:

        raise ImportError(
            "ng-analyzer requires Python 3.11+ or the 'tomli' package "
            "to parse TOML configuration on Python 3.10. "
            "Hint: Try running: pip install tomli"
        ) from e

logger = logging.getLogger(__name__)

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_PROFILE",
    "Config",
    "ConfigDocument",
    "load_config",
    "discover_config",
    "load_project_config",
    "default_config_document",
    "write_default_config",
]

CONFIG_FILENAME = ".ng-analyzer.json"
PYPROJECT_SECTION = "ng-analyzer"
DEFAULT_PROFILE = "recommended"
DEFAULT_IGNORE = ["**/node_modules/**", "**/dist/**", "**/*.spec.ts"]


class RuleSettingModel(BaseModel):
    """Schema for one rule entry inside a profile."""

    model_config = ConfigDict(extra="forbid")

    enabled: Optional[bool] = Field(default=None, description="Whether the rule runs")
    severity: Optional[str] = Field(default=None, description="Severity override: error, warning, info")
    options: Dict[str, Any] = Field(default_factory=dict, description="Rule thresholds")


class ProfileModel(BaseModel):
    """Schema for a named profile."""

    model_config = ConfigDict(extra="forbid")

    description: str = Field(default="", description="Human readable summary")
    rules: Dict[str, Union[bool, str, RuleSettingModel]] = Field(
        default_factory=dict,
        description="rule id -> setting; a bare string sets severity, a bare bool enables or disables",
    )


class OutputModel(BaseModel):
    """Schema for the output section, consumed by formatters."""

    formats: List[str] = Field(default_factory=lambda: ["json"], description="Report formats")
    path: Optional[str] = Field(default=None, description="Report output path")


class ConfigDocument(BaseModel):
    """Schema for the whole configuration document."""

    model_config = ConfigDict(extra="forbid")

    profile: Optional[str] = Field(default=None, description="Active profile name")
    profiles: Dict[str, ProfileModel] = Field(default_factory=dict, description="Custom profiles")
    ignore: List[str] = Field(default_factory=list, description="Glob patterns of files to skip")
    output: OutputModel = Field(default_factory=OutputModel, description="Output settings")


def _rule_setting(rule_id: str, raw: Union[bool, str, RuleSettingModel]) -> RuleSetting:
    if isinstance(raw, bool):
        return RuleSetting(enabled=raw)
    if isinstance(raw, str):
        raw = RuleSettingModel(severity=raw)
    severity = None
    if raw.severity is not None:
        try:
            severity = Severity.parse(raw.severity)
        except ValueError as e:
            raise ConfigError(f"Rule '{rule_id}': {e}") from None
    return RuleSetting(enabled=raw.enabled, severity=severity, options=MappingProxyType(dict(raw.options)))


def _profile_from_model(name: str, model: ProfileModel) -> Profile:
    rules = {}
    for rule_id, raw in model.rules.items():
        if rule_id not in RULES_BY_ID:
            raise ConfigError(f"Profile '{name}' references unknown rule '{rule_id}'")
        rules[rule_id] = _rule_setting(rule_id, raw)
    return Profile(name=name, rules=MappingProxyType(rules), description=model.description)


class Config:
    """Holds the validated ng-analyzer configuration.

    Attributes:
    project_root: Directory the configuration applies to.
    source: File the document was read from, or None for built-in defaults.
    document: The validated configuration document.

    ng_analyzer/src/ng_analyzer/config.py
    """

    def __init__(
        self,
        project_root: Optional[Path] = None,
        document: Optional[ConfigDocument] = None,
        source: Optional[Path] = None,
    ):
        self._project_root = project_root
        self._document = document if document is not None else ConfigDocument()
        self._source = source

    @property
    def project_root(self) -> Optional[Path]:
        return self._project_root

    @property
    def source(self) -> Optional[Path]:
        return self._source

    @property
    def document(self) -> ConfigDocument:
        return self._document

    @property
    def settings(self) -> Mapping[str, Any]:
        """Read-only view of the document as plain data."""
        return MappingProxyType(self._document.model_dump())

    @property
    def ignore_globs(self) -> List[str]:
        return list(self._document.ignore)

    @property
    def active_profile(self) -> str:
        return self._document.profile or DEFAULT_PROFILE

    def get(self, key: str, default: Any = None) -> Any:
        """Gets a top-level value, returning default if not found."""
        return self.settings.get(key, default)

    def __getitem__(self, key: str) -> Any:
        settings = self.settings
        if key not in settings:
            raise KeyError(f"Configuration key '{key}' not found")
        return settings[key]

    def __contains__(self, key: str) -> bool:
        return key in self.settings

    def profile_names(self) -> List[str]:
        return sorted(set(BUILTIN_PROFILES) | set(self._document.profiles))

    def profile(self, name: Optional[str] = None) -> Profile:
        """
        Resolve a profile by name.

        A custom profile that shares a built-in's name is merged over the
        built-in rule by rule. Unknown names raise ConfigError.
        """
        name = name or self.active_profile
        custom = self._document.profiles.get(name)
        builtin = BUILTIN_PROFILES.get(name)
        if custom is None and builtin is None:
            raise ConfigError(
                f"Unknown profile '{name}' (available: {', '.join(self.profile_names())})"
            )
        if custom is None:
            return builtin
        profile = _profile_from_model(name, custom)
        if builtin is not None:
            logger.debug(f"Merging custom profile '{name}' over the built-in one")
            profile = profile.merged_over(builtin)
        return profile


def _read_document(path: Path) -> Dict[str, Any]:
    try:
        if path.suffix == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
            if path.name == "pyproject.toml":
                section = data.get("tool", {}).get(PYPROJECT_SECTION)
                if section is None:
                    raise ConfigError(f"{path} has no [tool.{PYPROJECT_SECTION}] section")
                return section
            return data
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}") from e
    except (json.JSONDecodeError, tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Invalid configuration file {path}: {e}") from e


def load_config(path: Union[str, Path]) -> Config:
    """Load and validate a configuration document.

    Args:
    path: A .json file, a .toml file, or a pyproject.toml with a
    [tool.ng-analyzer] section.

    Raises:
    ConfigError: the file is missing, unreadable or invalid.

    ng_analyzer/src/ng_analyzer/config.py
    """
    path = Path(path)
    data = _read_document(path)
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {path} must be an object, got {type(data).__name__}")
    try:
        document = ConfigDocument.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    config = Config(path.resolve().parent, document, path)
    # resolve every custom profile now so bad rule ids fail before analysis
    for name in document.profiles:
        config.profile(name)
    if document.profile is not None:
        config.profile(document.profile)
    logger.info(f"Loaded ng-analyzer config from {path}")
    return config


def _has_pyproject_section(path: Path) -> bool:
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        logger.debug(f"Failed to read {path}: {e}")
        return False
    return PYPROJECT_SECTION in data.get("tool", {})


def discover_config(start_path: Union[str, Path]) -> Optional[Path]:
    """Walk up from start_path looking for .ng-analyzer.json or a pyproject.toml section."""
    current = Path(start_path).resolve()
    if current.is_file():
        current = current.parent

    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            logger.debug(f"Found {candidate}")
            return candidate
        pyproject = current / "pyproject.toml"
        if pyproject.is_file() and _has_pyproject_section(pyproject):
            logger.debug(f"Found [tool.{PYPROJECT_SECTION}] in {pyproject}")
            return pyproject
        if current.parent == current:
            return None
        current = current.parent


def load_project_config(start_path: Union[str, Path] = ".") -> Config:
    """Discover and load configuration, falling back to built-in defaults."""
    found = discover_config(start_path)
    if found is None:
        logger.debug(f"No ng-analyzer configuration found from {start_path}; using defaults")
        return Config(Path(start_path).resolve())
    return load_config(found)


def default_config_document(profile: str = DEFAULT_PROFILE) -> Dict[str, Any]:
    """The document `init` writes: the chosen built-in profile spelled out."""
    return {
        "profile": profile,
        "profiles": {profile: create_default_rule_config(profile)},
        "ignore": list(DEFAULT_IGNORE),
        "output": {"formats": ["json"], "path": "ng-analyzer-report"},
    }


def write_default_config(path: Union[str, Path], profile: str = DEFAULT_PROFILE) -> Path:
    """Write a starter configuration file; refuses to replace an existing one."""
    path = Path(path)
    if path.exists():
        raise ConfigError(f"{path} already exists")
    document = default_config_document(profile)
    try:
        path.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot write configuration file {path}: {e}") from e
    logger.info(f"Wrote {profile} configuration to {path}")
    return path
