"""Tests for the project model builder."""

import random

from ng_analyzer.models import ChangeDetectionStrategy
from ng_analyzer.project_builder import ProjectBuilder, build_project, is_ignored


def test_builds_every_entity_kind(sample_records):
    """Test that each record lands in the right collection."""
    result = build_project(sample_records)
    project = result.project

    assert [c.name for c in project.components] == ["AppComponent", "UserListComponent"]
    assert [s.name for s in project.services] == ["UserService"]
    assert [m.name for m in project.modules] == ["AppModule"]
    assert [d.name for d in project.directives] == ["HighlightDirective"]
    assert [p.name for p in project.pipes] == ["ShortenPipe"]
    assert result.warnings == ()


def test_component_fields_extracted(sample_records):
    """Test selector, template, bindings, hooks and dependencies."""
    project = build_project(sample_records).project
    user_list = next(c for c in project.components if c.name == "UserListComponent")

    assert user_list.selector == "app-user-list"
    assert user_list.template.startswith("<ul>")
    assert user_list.template_url is None
    assert user_list.inputs == ("filter",)
    assert user_list.outputs == ("selected",)
    assert user_list.lifecycle_hooks == frozenset({"ngOnInit", "ngOnDestroy"})
    assert user_list.dependencies == ("UserService",)
    assert user_list.change_detection is ChangeDetectionStrategy.DEFAULT
    assert user_list.complexity_score == 0


def test_on_push_strategy_recognized(sample_records):
    """Test both spellings of OnPush."""
    project = build_project(sample_records).project
    app = next(c for c in project.components if c.name == "AppComponent")
    assert app.change_detection is ChangeDetectionStrategy.ON_PUSH


def test_module_lists_extracted(rec):
    """Test module call expressions reduce to identifiers."""
    record = rec.module(
        "AppModule",
        declarations=["AppComponent"],
        imports=["RouterModule.forRoot(routes)", "SharedModule"],
        exports=["AppComponent"],
    )
    module = build_project([record]).project.modules[0]

    assert module.declarations == ("AppComponent",)
    assert module.imports == ("RouterModule", "SharedModule")
    assert module.exports == ("AppComponent",)


def test_service_method_called_flag(sample_records):
    """Test a service method accessed through an injected parameter is marked called."""
    project = build_project(sample_records).project
    service = project.services[0]
    called = {m.name: m.called for m in service.signatures}

    assert called == {"load": True, "save": False}


def test_missing_class_name_is_parse_warning(rec):
    """Test a record without a class name is skipped with a warning."""
    record = rec.component()
    del record["class_name"]

    result = build_project([record, rec.service()])

    assert result.project.components == ()
    assert len(result.project.services) == 1
    assert len(result.warnings) == 1
    assert result.warnings[0].kind == "parse-warning"
    assert "class name" in result.warnings[0].message


def test_malformed_records_do_not_abort(rec):
    """Test non-mapping records and records without a path become warnings."""
    result = build_project(["not a record", {"kind": "component"}, rec.component()])

    assert len(result.project.components) == 1
    assert len(result.warnings) == 2


def test_unknown_records_are_ignored_silently():
    """Test plain TypeScript files produce no entity and no warning."""
    record = {"path": "src/app/util.ts", "kind": "unknown", "class_name": "Util", "decorators": []}
    result = build_project([record])

    assert list(result.project.entities()) == []
    assert result.warnings == ()


def test_decorator_takes_precedence_over_kind(rec):
    """Test classification by decorator before the kind field."""
    record = rec.service("Marker")
    record["kind"] = "component"
    project = build_project([record]).project

    assert [s.name for s in project.services] == ["Marker"]
    assert project.components == ()


def test_paths_normalized_to_posix(rec):
    """Test Windows separators become forward slashes."""
    record = rec.component(path="src\\app\\foo.component.ts")
    project = build_project([record]).project

    assert project.components[0].file_path == "src/app/foo.component.ts"


def test_duplicate_selectors_allowed(rec):
    """Test selector uniqueness is not enforced by the model."""
    records = [rec.component("A", selector="app-x"), rec.component("B", selector="app-x")]
    project = build_project(records).project

    assert [c.selector for c in project.components] == ["app-x", "app-x"]


def test_record_order_does_not_matter(sample_records):
    """Test shuffled input yields an equal project."""
    shuffled = list(sample_records)
    random.Random(7).shuffle(shuffled)

    assert build_project(shuffled).project == build_project(sample_records).project


def test_thread_pool_matches_sequential(sample_records):
    """Test parallel extraction assembles the same model."""
    sequential = ProjectBuilder(max_workers=None).build(sample_records)
    parallel = ProjectBuilder(max_workers=4).build(sample_records)

    assert parallel.project == sequential.project


def test_ignore_globs(rec):
    """Test ignored paths are dropped before classification."""
    records = [
        rec.component("Keep", path="src/app/keep.component.ts"),
        rec.component("Spec", path="src/app/keep.component.spec.ts"),
        rec.component("Vendor", path="node_modules/lib/vendor.component.ts"),
    ]
    project = build_project(records, ignore_globs=["**/*.spec.ts", "**/node_modules/**"]).project

    assert [c.name for c in project.components] == ["Keep"]


def test_is_ignored_double_star_matches_zero_directories():
    """Test a leading '**/' also matches at the root."""
    assert is_ignored("node_modules/x.ts", ["**/node_modules/**"])
    assert is_ignored("foo.spec.ts", ["**/*.spec.ts"])
    assert not is_ignored("src/app/foo.ts", ["**/*.spec.ts"])


def test_public_methods_exclude_private_and_constructor(rec):
    """Test constructor is not a method and private members keep their modifiers."""
    record = rec.component(
        members=[
            rec.constructor(("store", "Store")),
            rec.method("visible"),
            rec.method("hidden", modifiers=["private"]),
        ]
    )
    component = build_project([record]).project.components[0]

    assert [m.name for m in component.methods] == ["visible", "hidden"]
    assert [m.is_public for m in component.methods] == [True, False]
    assert component.parameters[0].name == "store"
    assert component.dependencies == ("Store",)


def test_this_prefix_stripped_from_accesses(rec):
    """Test member accesses are stored relative to this."""
    record = rec.component(members=[rec.method("load", accesses=["this.http.get"])])
    component = build_project([record]).project.components[0]

    assert component.methods[0].member_accesses == ("http.get",)
