from __future__ import annotations

from pathlib import Path
import textwrap

from ctorprune.config import PruneConfig
from ctorprune.refactor.engine import REWRITE_KIND, PruneEngine, _module_name, apply_plan


def _write(path: Path, source: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source).strip() + "\n")
    return path


def _package(tmp_path: Path) -> None:
    _write(tmp_path / "pkg" / "__init__.py", "from .base import Creator\n")
    _write(
        tmp_path / "pkg" / "base.py",
        """
        from typing import Protocol

        class Creator(Protocol):
            def __init__(self, name, size): ...

        class Sink(Protocol):
            def write(self, data): ...
        """,
    )
    _write(
        tmp_path / "pkg" / "impl.py",
        """
        from pkg import Creator
        from pkg.base import Sink

        class Widget(Creator):
            def __init__(self, name, size):
                self.name = name

        class Gadget(Sink):
            def __init__(self, path, mode, *, retries):
                self.path = path

            def write(self, data):
                return data
        """,
    )


def _statuses(plan) -> dict[str, str]:
    return {entry.target.rsplit("::", 1)[1]: entry.status for entry in plan.rewrite_plans}


def test_module_name_strips_src_and_init(tmp_path: Path) -> None:
    assert _module_name(tmp_path / "src" / "pkg" / "mod.py", tmp_path) == "pkg.mod"
    assert _module_name(tmp_path / "pkg" / "__init__.py", tmp_path) == "pkg"
    assert _module_name(Path("/elsewhere/tool.py"), tmp_path) == "elsewhere.tool"


def test_plan_paths_resolves_interfaces_across_modules(tmp_path: Path) -> None:
    _package(tmp_path)
    plan = PruneEngine(project_root=tmp_path).plan_paths([Path("pkg")])
    assert plan.errors == []
    statuses = _statuses(plan)
    assert statuses["Widget"] == "skipped"
    assert statuses["Gadget"] == "rewritten"
    assert statuses["Creator"] == "skipped"
    assert [Path(edit.path).name for edit in plan.edits] == ["impl.py"]
    replacement = plan.edits[0].replacement
    assert "def __init__(self, path):" in replacement
    assert "def __init__(self, name, size):" in replacement
    widget = next(entry for entry in plan.rewrite_plans if entry.target.endswith("::Widget"))
    assert widget.kind == REWRITE_KIND
    assert widget.non_rewrite_reasons == ["interface_constructor: pkg.base.Creator"]


def test_plan_source_rewrites_single_module() -> None:
    source = textwrap.dedent(
        """
        class Service:
            def __init__(self, client, timeout, debug):
                self.client = client
                self.timeout = timeout
        """
    ).strip() + "\n"
    plan = PruneEngine().plan_source(source, path="service.py")
    assert len(plan.edits) == 1
    edit = plan.edits[0]
    assert edit.path == "service.py"
    assert edit.start == (0, 0)
    assert edit.end == (4, 0)
    assert "def __init__(self, client, timeout):" in edit.replacement
    [entry] = plan.rewrite_plans
    assert entry.status == "rewritten"
    assert entry.target == "service.py::Service"
    assert entry.summary == "removed unused constructor parameters: debug"


def test_plan_source_reports_declined_candidates() -> None:
    source = textwrap.dedent(
        """
        class Service:
            def __init__(self, unused, used):
                self.used = used
        """
    ).strip() + "\n"
    plan = PruneEngine().plan_source(source)
    assert plan.edits == []
    [entry] = plan.rewrite_plans
    assert entry.status == "unchanged"
    assert entry.non_rewrite_reasons == ["removal_declined"]


def test_classes_without_constructor_produce_no_entries() -> None:
    plan = PruneEngine().plan_source("class Plain:\n    x = 1\n")
    assert plan.rewrite_plans == []
    assert plan.edits == []


def test_nested_classes_are_visited_with_qualified_targets() -> None:
    source = textwrap.dedent(
        """
        class Outer:
            def __init__(self, keep):
                self.keep = keep

            class Inner:
                def __init__(self, drop):
                    pass
        """
    ).strip() + "\n"
    plan = PruneEngine().plan_source(source, path="nested.py")
    assert _statuses(plan) == {"Outer.Inner": "rewritten"}
    assert "def __init__(self):" in plan.edits[0].replacement
    assert "def __init__(self, keep):" in plan.edits[0].replacement


def test_class_inside_function_uses_enclosing_qualname() -> None:
    source = textwrap.dedent(
        """
        def factory():
            class Local:
                def __init__(self, unused):
                    pass
            return Local
        """
    ).strip() + "\n"
    plan = PruneEngine().plan_source(source, path="factory.py")
    assert [entry.target for entry in plan.rewrite_plans] == ["factory.py::factory.Local"]


def test_parse_errors_are_reported_and_other_files_continue(tmp_path: Path) -> None:
    _write(tmp_path / "broken.py", "class Broken(:\n    pass\n")
    _write(
        tmp_path / "fine.py",
        """
        class Fine:
            def __init__(self, unused):
                pass
        """,
    )
    plan = PruneEngine(project_root=tmp_path).plan_paths([tmp_path])
    assert len(plan.errors) == 1
    assert plan.errors[0].startswith("LibCST parse failed for")
    assert [Path(edit.path).name for edit in plan.edits] == ["fine.py"]


def test_missing_file_is_reported(tmp_path: Path) -> None:
    plan = PruneEngine(project_root=tmp_path).plan_paths([Path("missing.py")])
    assert len(plan.errors) == 1
    assert plan.errors[0].startswith("Failed to read")


def test_exclude_patterns_skip_files(tmp_path: Path) -> None:
    _write(
        tmp_path / "generated" / "model.py",
        """
        class Model:
            def __init__(self, unused):
                pass
        """,
    )
    _write(
        tmp_path / "app.py",
        """
        class App:
            def __init__(self, unused):
                pass
        """,
    )
    engine = PruneEngine(project_root=tmp_path, config=PruneConfig(exclude=("generated/*",)))
    files = engine.collect_files([tmp_path])
    assert [path.name for path in files] == ["app.py"]


def test_unresolvable_base_is_skipped_until_configured_opaque(tmp_path: Path) -> None:
    source = textwrap.dedent(
        """
        from vendor import Base

        class Child(Base):
            def __init__(self, unused):
                pass
        """
    ).strip() + "\n"
    skipped = PruneEngine().plan_source(source)
    [entry] = skipped.rewrite_plans
    assert entry.status == "skipped"
    assert entry.non_rewrite_reasons[0].startswith("unresolvable")
    rewritten = PruneEngine(config=PruneConfig(opaque_bases=("vendor.Base",))).plan_source(source)
    assert rewritten.rewrite_plans[0].status == "rewritten"


def test_apply_plan_writes_files(tmp_path: Path) -> None:
    target = _write(
        tmp_path / "svc.py",
        """
        class Svc:
            def __init__(self, a, b):
                self.a = a
        """,
    )
    engine = PruneEngine(project_root=tmp_path)
    plan = engine.plan_paths([target])
    assert apply_plan(plan) == [str(target)]
    assert "def __init__(self, a):" in target.read_text()
    assert engine.plan_paths([target]).edits == []


def test_syntax_error_in_plan_source() -> None:
    plan = PruneEngine().plan_source("def broken(:\n", path="bad.py")
    assert plan.edits == []
    assert plan.errors and plan.errors[0].startswith("LibCST parse failed for bad.py")


def test_non_python_file_is_skipped_with_warning(tmp_path: Path) -> None:
    notes = tmp_path / "notes.txt"
    notes.write_text("class Fake:\n    def __init__(self, unused):\n        pass\n")
    plan = PruneEngine(project_root=tmp_path).plan_paths([notes])
    assert plan.warnings == [f"Skipped non-Python file {notes}"]
    assert plan.edits == []
    assert plan.errors == []
