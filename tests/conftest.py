"""Pytest configuration and fixtures for ng-analyzer tests."""

import json
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

import pytest


class RecordFactory:
    """Builds parsed-record mappings in the shape the external parser emits."""

    @staticmethod
    def method(
        name: str,
        branch_count: int = 0,
        accesses: Sequence[str] = (),
        calls: Sequence[str] = (),
        modifiers: Sequence[str] = (),
        line: Optional[int] = None,
    ) -> Dict[str, Any]:
        member = {
            "name": name,
            "member_kind": "method",
            "annotations": [],
            "modifiers": list(modifiers),
            "branch_count": branch_count,
            "member_accesses": list(accesses),
            "calls": list(calls),
        }
        if line is not None:
            member["line"] = line
        return member

    @staticmethod
    def prop(name: str, annotations: Sequence[str] = (), modifiers: Sequence[str] = ()) -> Dict[str, Any]:
        return {
            "name": name,
            "member_kind": "property",
            "annotations": list(annotations),
            "modifiers": list(modifiers),
        }

    @staticmethod
    def constructor(*params: Sequence[str]) -> Dict[str, Any]:
        """constructor(("http", "HttpClient"), ...)"""
        return {
            "name": "constructor",
            "member_kind": "method",
            "annotations": [],
            "modifiers": [],
            "parameters": [{"name": n, "type": t, "modifiers": ["private"]} for n, t in params],
        }

    def component(
        self,
        name: str = "FooComponent",
        path: Optional[str] = None,
        selector: Optional[str] = "app-foo",
        template: Optional[str] = None,
        template_url: Optional[str] = "./foo.component.html",
        change_detection: Optional[str] = None,
        members: Sequence[Dict[str, Any]] = (),
        line: Optional[int] = 5,
        **extra: Any,
    ) -> Dict[str, Any]:
        args: Dict[str, Any] = {}
        if selector is not None:
            args["selector"] = selector
        if template is not None:
            args["template"] = template
        if template_url is not None:
            args["templateUrl"] = template_url
        if change_detection is not None:
            args["changeDetection"] = change_detection
        record = {
            "path": path or f"src/app/{name.lower()}.ts",
            "kind": "component",
            "class_name": name,
            "decorators": [{"name": "Component", "args": args}],
            "class_members": list(members),
            "imports": [{"source": "@angular/core", "specifiers": ["Component"]}],
        }
        if line is not None:
            record["line"] = line
        record.update(extra)
        return record

    def service(
        self,
        name: str = "DataService",
        path: Optional[str] = None,
        members: Sequence[Dict[str, Any]] = (),
        provided_in: Optional[str] = "root",
        line: Optional[int] = 3,
    ) -> Dict[str, Any]:
        args = {"providedIn": provided_in} if provided_in else {}
        record = {
            "path": path or f"src/app/{name.lower()}.ts",
            "kind": "service",
            "class_name": name,
            "decorators": [{"name": "Injectable", "args": args}],
            "class_members": list(members),
            "imports": [],
        }
        if line is not None:
            record["line"] = line
        return record

    def module(
        self,
        name: str = "AppModule",
        path: Optional[str] = None,
        declarations: Sequence[str] = (),
        imports: Sequence[str] = (),
        exports: Sequence[str] = (),
        providers: Sequence[str] = (),
        bootstrap: Sequence[str] = (),
        line: Optional[int] = 10,
    ) -> Dict[str, Any]:
        record = {
            "path": path or f"src/app/{name.lower()}.ts",
            "kind": "module",
            "class_name": name,
            "decorators": [
                {
                    "name": "NgModule",
                    "args": {
                        "declarations": list(declarations),
                        "imports": list(imports),
                        "exports": list(exports),
                        "providers": list(providers),
                        "bootstrap": list(bootstrap),
                    },
                }
            ],
            "class_members": [],
            "imports": [],
        }
        if line is not None:
            record["line"] = line
        return record


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def rec() -> RecordFactory:
    """Factory for parsed records."""
    return RecordFactory()


@pytest.fixture
def foo_records(rec: RecordFactory) -> List[Dict[str, Any]]:
    """
    One component 'Foo' scoring 13: no template, Default change detection.

    1 + ngOnInit + refresh() + 10 branches = 13
    """
    return [
        rec.component(
            name="Foo",
            path="src/app/foo.component.ts",
            selector="app-foo",
            template_url=None,
            members=[rec.method("ngOnInit"), rec.method("refresh", branch_count=10)],
        )
    ]


@pytest.fixture
def sample_records(rec: RecordFactory) -> List[Dict[str, Any]]:
    """A small project touching every entity kind."""
    return [
        rec.module(
            "AppModule",
            declarations=["AppComponent", "UserListComponent", "HighlightDirective", "ShortenPipe"],
            imports=["BrowserModule", "HttpClientModule"],
            providers=["UserService"],
            bootstrap=["AppComponent"],
        ),
        rec.component(
            "AppComponent",
            selector="app-root",
            change_detection="ChangeDetectionStrategy.OnPush",
            members=[rec.method("ngOnInit")],
        ),
        rec.component(
            "UserListComponent",
            selector="app-user-list",
            template="<ul><li *ngFor=\"let u of users\">{{ u.name }}</li></ul>",
            template_url=None,
            members=[
                rec.constructor(("users", "UserService")),
                rec.prop("filter", annotations=["Input"]),
                rec.prop("selected", annotations=["Output"]),
                rec.method("ngOnInit", accesses=["users.load"], calls=["subscribe"]),
                rec.method("ngOnDestroy", calls=["unsubscribe"]),
            ],
        ),
        rec.service(
            "UserService",
            members=[
                rec.constructor(("http", "HttpClient")),
                rec.method("load", branch_count=1, accesses=["http.get"]),
                rec.method("save", accesses=["http.post"]),
            ],
        ),
        {
            "path": "src/app/highlight.directive.ts",
            "kind": "directive",
            "class_name": "HighlightDirective",
            "decorators": [{"name": "Directive", "args": {"selector": "[appHighlight]"}}],
            "class_members": [],
            "imports": [],
        },
        {
            "path": "src/app/shorten.pipe.ts",
            "kind": "pipe",
            "class_name": "ShortenPipe",
            "decorators": [{"name": "Pipe", "args": {"name": "shorten", "pure": True}}],
            "class_members": [],
            "imports": [],
        },
    ]


@pytest.fixture
def records_file(temp_dir: Path, sample_records) -> Path:
    """Write the sample records to a JSON file."""
    path = temp_dir / "records.json"
    path.write_text(json.dumps(sample_records))
    return path
