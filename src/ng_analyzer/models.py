"""
Project model for ng-analyzer.

Immutable entity types built once per run by the project builder and shared
read-only by every analyzer task afterwards.

ng_analyzer/src/ng_analyzer/models.py
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Dict, Optional, Tuple

__all__ = [
    "LIFECYCLE_HOOKS",
    "ChangeDetectionStrategy",
    "Parameter",
    "MethodInfo",
    "PropertyInfo",
    "Component",
    "Service",
    "ServiceMethod",
    "Module",
    "Directive",
    "Pipe",
    "Project",
    "normalize_path",
]

LIFECYCLE_HOOKS = frozenset(
    {
        "ngOnInit",
        "ngOnDestroy",
        "ngOnChanges",
        "ngDoCheck",
        "ngAfterContentInit",
        "ngAfterContentChecked",
        "ngAfterViewInit",
        "ngAfterViewChecked",
    }
)


def normalize_path(path: str) -> str:
    """Return the forward-slash form of a file path regardless of platform."""
    normalized = PurePosixPath(path.replace("\\", "/")).as_posix()
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


class ChangeDetectionStrategy(Enum):
    """Angular change-detection strategy of a component."""

    DEFAULT = "Default"
    ON_PUSH = "OnPush"


@dataclass(frozen=True)
class Parameter:
    """A constructor parameter; its type name is the injected dependency."""

    name: str
    type_name: str
    modifiers: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MethodInfo:
    """Body facts about a class method as reported by the parser."""

    name: str
    modifiers: Tuple[str, ...] = ()
    branch_count: int = 0
    member_accesses: Tuple[str, ...] = ()
    calls: Tuple[str, ...] = ()
    line: Optional[int] = None

    @property
    def is_public(self) -> bool:
        return "private" not in self.modifiers and "protected" not in self.modifiers

    @property
    def is_lifecycle_hook(self) -> bool:
        return self.name in LIFECYCLE_HOOKS


@dataclass(frozen=True)
class PropertyInfo:
    """A class property with its annotations and modifiers."""

    name: str
    annotations: Tuple[str, ...] = ()
    modifiers: Tuple[str, ...] = ()

    @property
    def is_mutable(self) -> bool:
        return "readonly" not in self.modifiers and "static" not in self.modifiers


@dataclass(frozen=True)
class Component:
    """An @Component class."""

    name: str
    file_path: str
    selector: Optional[str] = None
    template: Optional[str] = None
    template_url: Optional[str] = None
    template_source: Optional[str] = None
    style_urls: Tuple[str, ...] = ()
    inputs: Tuple[str, ...] = ()
    outputs: Tuple[str, ...] = ()
    lifecycle_hooks: frozenset = frozenset()
    dependencies: Tuple[str, ...] = ()
    parameters: Tuple[Parameter, ...] = ()
    methods: Tuple[MethodInfo, ...] = ()
    properties: Tuple[PropertyInfo, ...] = ()
    change_detection: ChangeDetectionStrategy = ChangeDetectionStrategy.DEFAULT
    complexity_score: int = 0
    line: Optional[int] = None

    @property
    def state_fields(self) -> Tuple[PropertyInfo, ...]:
        """Mutable properties that are not component bindings."""
        bindings = set(self.inputs) | set(self.outputs)
        return tuple(p for p in self.properties if p.is_mutable and p.name not in bindings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "file_path": self.file_path,
            "selector": self.selector,
            "template_url": self.template_url,
            "has_inline_template": self.template is not None,
            "style_urls": list(self.style_urls),
            "inputs": list(self.inputs),
            "outputs": list(self.outputs),
            "lifecycle_hooks": sorted(self.lifecycle_hooks),
            "dependencies": list(self.dependencies),
            "change_detection": self.change_detection.value,
            "complexity_score": self.complexity_score,
        }


@dataclass(frozen=True)
class ServiceMethod:
    """A service method signature and whether another entity calls it."""

    name: str
    called: bool = False


@dataclass(frozen=True)
class Service:
    """An @Injectable class."""

    name: str
    file_path: str
    provided_in: Optional[str] = None
    injectable: bool = True
    dependencies: Tuple[str, ...] = ()
    parameters: Tuple[Parameter, ...] = ()
    methods: Tuple[MethodInfo, ...] = ()
    properties: Tuple[PropertyInfo, ...] = ()
    signatures: Tuple[ServiceMethod, ...] = ()
    line: Optional[int] = None

    @property
    def mutable_fields(self) -> Tuple[PropertyInfo, ...]:
        return tuple(p for p in self.properties if p.is_mutable)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "file_path": self.file_path,
            "provided_in": self.provided_in,
            "injectable": self.injectable,
            "dependencies": list(self.dependencies),
            "methods": [{"name": m.name, "called": m.called} for m in self.signatures],
        }


@dataclass(frozen=True)
class Module:
    """An @NgModule class."""

    name: str
    file_path: str
    declarations: Tuple[str, ...] = ()
    imports: Tuple[str, ...] = ()
    exports: Tuple[str, ...] = ()
    providers: Tuple[str, ...] = ()
    bootstrap: Tuple[str, ...] = ()
    line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "file_path": self.file_path,
            "declarations": list(self.declarations),
            "imports": list(self.imports),
            "exports": list(self.exports),
            "providers": list(self.providers),
            "bootstrap": list(self.bootstrap),
        }


@dataclass(frozen=True)
class Directive:
    """An @Directive class."""

    name: str
    file_path: str
    selector: Optional[str] = None
    inputs: Tuple[str, ...] = ()
    outputs: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()
    parameters: Tuple[Parameter, ...] = ()
    methods: Tuple[MethodInfo, ...] = ()
    line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "file_path": self.file_path,
            "selector": self.selector,
            "inputs": list(self.inputs),
            "outputs": list(self.outputs),
            "dependencies": list(self.dependencies),
        }


@dataclass(frozen=True)
class Pipe:
    """An @Pipe class."""

    name: str
    file_path: str
    pipe_name: Optional[str] = None
    pure: bool = True
    dependencies: Tuple[str, ...] = ()
    parameters: Tuple[Parameter, ...] = ()
    methods: Tuple[MethodInfo, ...] = ()
    line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "file_path": self.file_path,
            "pipe_name": self.pipe_name,
            "pure": self.pure,
            "dependencies": list(self.dependencies),
        }


@dataclass(frozen=True)
class Project:
    """
    The assembled project model.

    Entity collections are tuples sorted by (file_path, name), so two builds
    over the same records compare equal whatever the record order was.
    """

    root_path: str
    components: Tuple[Component, ...] = ()
    services: Tuple[Service, ...] = ()
    modules: Tuple[Module, ...] = ()
    directives: Tuple[Directive, ...] = ()
    pipes: Tuple[Pipe, ...] = ()
    file_paths: frozenset = field(default=frozenset(), compare=False)

    def __post_init__(self):
        if not self.file_paths:
            paths = {e.file_path for e in self.entities()}
            object.__setattr__(self, "file_paths", frozenset(paths))

    def entities(self):
        """Iterate every entity in a fixed kind order."""
        yield from self.components
        yield from self.services
        yield from self.modules
        yield from self.directives
        yield from self.pipes

    def injecting_entities(self):
        """Entities that can receive constructor injection."""
        yield from self.components
        yield from self.services
        yield from self.directives
        yield from self.pipes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root_path": self.root_path,
            "components": [c.to_dict() for c in self.components],
            "services": [s.to_dict() for s in self.services],
            "modules": [m.to_dict() for m in self.modules],
            "directives": [d.to_dict() for d in self.directives],
            "pipes": [p.to_dict() for p in self.pipes],
        }
