"""
Project model builder for ng-analyzer.

Turns parsed file records (one per source file, produced by an external
TypeScript parser) into the immutable Project model. Per-record extraction
may run on a thread pool; assembly is single-threaded and sorted so the model
never depends on record order or task completion order.

ng_analyzer/src/ng_analyzer/project_builder.py
"""

import fnmatch
import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import ParseWarning
from .findings import Diagnostic
from .models import (
    ChangeDetectionStrategy,
    Component,
    Directive,
    MethodInfo,
    Module,
    Parameter,
    Pipe,
    Project,
    PropertyInfo,
    Service,
    ServiceMethod,
    normalize_path,
)

logger = logging.getLogger(__name__)

__all__ = ["BuildResult", "ProjectBuilder", "build_project", "is_ignored"]

# Checked in this order: a pipe or directive may also carry @Injectable.
_DECORATOR_KINDS = (
    ("Component", "component"),
    ("Directive", "directive"),
    ("Pipe", "pipe"),
    ("NgModule", "module"),
    ("Injectable", "service"),
)
_ENTITY_KINDS = {"component", "service", "module", "directive", "pipe"}
_INPUT_ANNOTATIONS = {"Input", "input", "model"}
_OUTPUT_ANNOTATIONS = {"Output", "output", "model"}


@dataclass(frozen=True)
class BuildResult:
    """The built project plus parse warnings gathered along the way."""

    project: Project
    warnings: Tuple[Diagnostic, ...] = ()


def is_ignored(path: str, globs: Sequence[str]) -> bool:
    """Check a posix path against ignore globs; a leading '**/' may match nothing."""
    for pattern in globs:
        if fnmatch.fnmatchcase(path, pattern):
            return True
        if pattern.startswith("**/") and fnmatch.fnmatchcase(path, pattern[3:]):
            return True
    return False


class ProjectBuilder:
    """Builds a Project from parsed file records."""

    def __init__(
        self,
        root_path: str = ".",
        ignore_globs: Sequence[str] = (),
        max_workers: Optional[int] = None,
    ):
        self.root_path = normalize_path(root_path) if root_path else "."
        self.ignore_globs = tuple(ignore_globs)
        self.max_workers = max_workers

    def build(self, records: Iterable[Mapping]) -> BuildResult:
        """Build the project model; malformed records become parse warnings."""
        records = list(records)
        logger.info(f"Building project model from {len(records)} parsed records")

        if self.max_workers is not None and self.max_workers > 1 and len(records) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                extracted = list(executor.map(self._extract, records))
        else:
            extracted = [self._extract(record) for record in records]

        buckets: Dict[str, List[Any]] = {kind: [] for kind in _ENTITY_KINDS}
        warnings: List[Diagnostic] = []
        for kind, entity, record_warnings in extracted:
            warnings.extend(record_warnings)
            if entity is not None:
                buckets[kind].append(entity)

        def ordered(kind: str) -> Tuple[Any, ...]:
            return tuple(sorted(buckets[kind], key=lambda e: (e.file_path, e.name)))

        components = ordered("component")
        directives = ordered("directive")
        pipes = ordered("pipe")
        services = _mark_called_methods(ordered("service"), components + directives + pipes)

        project = Project(
            root_path=self.root_path,
            components=components,
            services=services,
            modules=ordered("module"),
            directives=directives,
            pipes=pipes,
        )
        warnings.sort(key=lambda w: (w.file_path or "", w.message))
        logger.info(
            f"Project model: {len(project.components)} components, {len(project.services)} services, "
            f"{len(project.modules)} modules, {len(project.directives)} directives, "
            f"{len(project.pipes)} pipes ({len(warnings)} parse warnings)"
        )
        return BuildResult(project=project, warnings=tuple(warnings))

    # Per-record extraction. Runs on worker threads, so it touches no shared state.

    def _extract(self, record: Any) -> Tuple[str, Any, List[Diagnostic]]:
        warnings: List[Diagnostic] = []

        if not isinstance(record, Mapping):
            warnings.append(ParseWarning.diagnostic(f"Record is not a mapping: {type(record).__name__}"))
            return "unknown", None, warnings

        raw_path = record.get("path")
        if not isinstance(raw_path, str) or not raw_path.strip():
            warnings.append(ParseWarning.diagnostic("Record has no file path; skipped"))
            return "unknown", None, warnings
        path = normalize_path(raw_path)

        if is_ignored(path, self.ignore_globs):
            logger.debug(f"Ignoring {path} (matches ignore glob)")
            return "unknown", None, warnings

        decorators = _decorator_map(record.get("decorators"), path, warnings)
        kind = _classify(record.get("kind"), decorators)
        if kind not in _ENTITY_KINDS:
            logger.debug(f"Skipping {path}: not an Angular entity")
            return kind, None, warnings

        name = record.get("class_name")
        if not isinstance(name, str) or not name.strip():
            warnings.append(ParseWarning.diagnostic(f"{kind} record has no class name; skipped", path))
            return kind, None, warnings

        members = _members(record.get("class_members"), path, warnings)
        line = _optional_int(record.get("line"))

        if kind == "component":
            entity = _component(name, path, decorators.get("Component", {}), members, record, line, warnings)
        elif kind == "service":
            entity = _service(name, path, decorators.get("Injectable"), members, line)
        elif kind == "module":
            entity = _module(name, path, decorators.get("NgModule", {}), line, warnings)
        elif kind == "directive":
            entity = _directive(name, path, decorators.get("Directive", {}), members, line)
        else:
            entity = _pipe(name, path, decorators.get("Pipe", {}), members, line)
        return kind, entity, warnings


def build_project(
    records: Iterable[Mapping],
    root_path: str = ".",
    ignore_globs: Sequence[str] = (),
    max_workers: Optional[int] = None,
) -> BuildResult:
    """Convenience wrapper around ProjectBuilder.build."""
    return ProjectBuilder(root_path, ignore_globs, max_workers).build(records)


class _Members:
    """Class members split by role."""

    def __init__(self):
        self.parameters: List[Parameter] = []
        self.methods: List[MethodInfo] = []
        self.properties: List[PropertyInfo] = []


def _decorator_map(raw: Any, path: str, warnings: List[Diagnostic]) -> Dict[str, Dict[str, Any]]:
    """Map decorator name to its structured args (empty dict when absent)."""
    result: Dict[str, Dict[str, Any]] = {}
    if raw is None:
        return result
    if not isinstance(raw, list):
        warnings.append(ParseWarning.diagnostic("'decorators' is not a list; ignored", path))
        return result
    for decorator in raw:
        if not isinstance(decorator, Mapping) or not isinstance(decorator.get("name"), str):
            warnings.append(ParseWarning.diagnostic("Decorator entry without a name; ignored", path))
            continue
        args = decorator.get("args")
        if isinstance(args, list):
            args = next((a for a in args if isinstance(a, Mapping)), {})
        result.setdefault(decorator["name"].lstrip("@"), dict(args) if isinstance(args, Mapping) else {})
    return result


def _classify(kind: Any, decorators: Mapping[str, Any]) -> str:
    for decorator_name, decorator_kind in _DECORATOR_KINDS:
        if decorator_name in decorators:
            return decorator_kind
    return kind if isinstance(kind, str) and kind in _ENTITY_KINDS else "unknown"


def _members(raw: Any, path: str, warnings: List[Diagnostic]) -> _Members:
    members = _Members()
    if raw is None:
        return members
    if not isinstance(raw, list):
        warnings.append(ParseWarning.diagnostic("'class_members' is not a list; ignored", path))
        return members

    for member in raw:
        if not isinstance(member, Mapping) or not isinstance(member.get("name"), str):
            warnings.append(ParseWarning.diagnostic("Class member without a name; ignored", path))
            continue
        name = member["name"]
        modifiers = _strings(member.get("modifiers"))
        member_kind = member.get("member_kind", "property")

        if member_kind == "method":
            if name == "constructor":
                members.parameters.extend(_parameters(member.get("parameters"), path, warnings))
                continue
            members.methods.append(
                MethodInfo(
                    name=name,
                    modifiers=modifiers,
                    branch_count=max(0, _optional_int(member.get("branch_count")) or 0),
                    member_accesses=tuple(_strip_this(a) for a in _strings(member.get("member_accesses"))),
                    calls=_strings(member.get("calls")),
                    line=_optional_int(member.get("line")),
                )
            )
        else:
            members.properties.append(
                PropertyInfo(
                    name=name,
                    annotations=tuple(a.lstrip("@") for a in _strings(member.get("annotations"))),
                    modifiers=modifiers,
                )
            )
    return members


def _parameters(raw: Any, path: str, warnings: List[Diagnostic]) -> List[Parameter]:
    params = []
    for param in raw or []:
        if not isinstance(param, Mapping):
            warnings.append(ParseWarning.diagnostic("Constructor parameter is not a mapping; ignored", path))
            continue
        type_name = param.get("type")
        if not isinstance(type_name, str) or not type_name.strip():
            warnings.append(
                ParseWarning.diagnostic(f"Constructor parameter '{param.get('name')}' has no type; ignored", path)
            )
            continue
        name = param.get("name") if isinstance(param.get("name"), str) else ""
        params.append(Parameter(name=name, type_name=_identifier(type_name), modifiers=_strings(param.get("modifiers"))))
    return params


def _component(
    name: str,
    path: str,
    args: Mapping[str, Any],
    members: _Members,
    record: Mapping,
    line: Optional[int],
    warnings: List[Diagnostic],
) -> Component:
    style_urls = _strings(args.get("styleUrls"))
    if isinstance(args.get("styleUrl"), str):
        style_urls += (args["styleUrl"],)

    strategy = ChangeDetectionStrategy.DEFAULT
    raw_strategy = args.get("changeDetection")
    if isinstance(raw_strategy, str) and raw_strategy.split(".")[-1] == "OnPush":
        strategy = ChangeDetectionStrategy.ON_PUSH

    template = _optional_str(args.get("template"), "template", path, warnings)
    template_url = _optional_str(args.get("templateUrl"), "templateUrl", path, warnings)

    return Component(
        name=name,
        file_path=path,
        selector=_optional_str(args.get("selector"), "selector", path, warnings),
        template=template,
        template_url=template_url,
        template_source=record.get("template_source") if isinstance(record.get("template_source"), str) else None,
        style_urls=style_urls,
        inputs=_annotated(members.properties, _INPUT_ANNOTATIONS),
        outputs=_annotated(members.properties, _OUTPUT_ANNOTATIONS),
        lifecycle_hooks=frozenset(m.name for m in members.methods if m.is_lifecycle_hook),
        dependencies=tuple(p.type_name for p in members.parameters),
        parameters=tuple(members.parameters),
        methods=tuple(members.methods),
        properties=tuple(members.properties),
        change_detection=strategy,
        line=line,
    )


def _service(
    name: str, path: str, args: Optional[Mapping[str, Any]], members: _Members, line: Optional[int]
) -> Service:
    args = args or {}
    provided_in = args.get("providedIn")
    return Service(
        name=name,
        file_path=path,
        provided_in=provided_in if isinstance(provided_in, str) else None,
        injectable=True,
        dependencies=tuple(p.type_name for p in members.parameters),
        parameters=tuple(members.parameters),
        methods=tuple(members.methods),
        properties=tuple(members.properties),
        signatures=tuple(ServiceMethod(m.name) for m in members.methods if not m.is_lifecycle_hook),
        line=line,
    )


def _module(
    name: str, path: str, args: Mapping[str, Any], line: Optional[int], warnings: List[Diagnostic]
) -> Module:
    def names(key: str) -> Tuple[str, ...]:
        value = args.get(key)
        if value is not None and not isinstance(value, list):
            warnings.append(ParseWarning.diagnostic(f"NgModule '{key}' is not a list; ignored", path))
            return ()
        return tuple(_identifier(v) for v in _strings(value))

    return Module(
        name=name,
        file_path=path,
        declarations=names("declarations"),
        imports=names("imports"),
        exports=names("exports"),
        providers=names("providers"),
        bootstrap=names("bootstrap"),
        line=line,
    )


def _directive(
    name: str, path: str, args: Mapping[str, Any], members: _Members, line: Optional[int]
) -> Directive:
    selector = args.get("selector")
    return Directive(
        name=name,
        file_path=path,
        selector=selector if isinstance(selector, str) else None,
        inputs=_annotated(members.properties, _INPUT_ANNOTATIONS),
        outputs=_annotated(members.properties, _OUTPUT_ANNOTATIONS),
        dependencies=tuple(p.type_name for p in members.parameters),
        parameters=tuple(members.parameters),
        methods=tuple(members.methods),
        line=line,
    )


def _pipe(name: str, path: str, args: Mapping[str, Any], members: _Members, line: Optional[int]) -> Pipe:
    pipe_name = args.get("name")
    return Pipe(
        name=name,
        file_path=path,
        pipe_name=pipe_name if isinstance(pipe_name, str) else None,
        pure=args.get("pure", True) is not False,
        dependencies=tuple(p.type_name for p in members.parameters),
        parameters=tuple(members.parameters),
        methods=tuple(members.methods),
        line=line,
    )


def _mark_called_methods(services: Tuple[Service, ...], consumers: Tuple[Any, ...]) -> Tuple[Service, ...]:
    """Flag service methods that some injecting entity accesses through its parameter."""
    called = set()
    for consumer in consumers + services:
        accesses = {a for method in consumer.methods for a in method.member_accesses}
        for param in consumer.parameters:
            prefix = f"{param.name}."
            for access in accesses:
                if access.startswith(prefix):
                    called.add((param.type_name, access[len(prefix):].split(".")[0]))

    return tuple(
        replace(
            service,
            signatures=tuple(
                ServiceMethod(s.name, called=(service.name, s.name) in called) for s in service.signatures
            ),
        )
        for service in services
    )


def _annotated(properties: Sequence[PropertyInfo], annotations: set) -> Tuple[str, ...]:
    return tuple(p.name for p in properties if annotations.intersection(p.annotations))


def _strings(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(v for v in value if isinstance(v, str))


def _identifier(expression: str) -> str:
    """'RouterModule.forRoot(routes)' -> 'RouterModule'."""
    return expression.strip().split("(")[0].split(".")[0].split("<")[0].strip()


def _strip_this(access: str) -> str:
    return access[5:] if access.startswith("this.") else access


def _optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _optional_str(value: Any, key: str, path: str, warnings: List[Diagnostic]) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    warnings.append(ParseWarning.diagnostic(f"Component '{key}' is not a string; treated as unset", path))
    return None
