from __future__ import annotations

from collections.abc import Iterable
from fnmatch import fnmatch
from pathlib import Path

import libcst as cst

from ctorprune.analysis.gate import RejectReason
from ctorprune.analysis.resolver import ClassIndex, ClassMetadata, NotResolvable, SymbolResolver
from ctorprune.analysis.timeout_context import check_deadline, deadline_loop_iter
from ctorprune.config import PruneConfig
from ctorprune.refactor.constructor_pass import ConstructorParamPass, PassResult
from ctorprune.refactor.editor import TreeEditor
from ctorprune.refactor.model import PrunePlan, RewritePlanEntry, TextEdit

REWRITE_KIND = "CTOR_PARAM_PRUNE"


def _module_name(path: Path, project_root: Path | None) -> str:
    rel = path.with_suffix("")
    if project_root is not None:
        try:
            rel = rel.relative_to(project_root)
        except ValueError:
            pass
    parts = list(rel.parts[1:] if rel.is_absolute() else rel.parts)
    if parts and parts[0] == "src":
        parts = parts[1:]
    if parts and parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts) or path.stem


class _PinnedResolver:
    """Resolves the original declaration of a class whose body was rewritten."""

    def __init__(self, resolver: SymbolResolver, original: cst.ClassDef) -> None:
        self.resolver = resolver
        self.original = original

    def resolve(self, class_def: cst.ClassDef) -> ClassMetadata | NotResolvable:
        return self.resolver.resolve(self.original)


def _entry_for(result: PassResult, target: str) -> RewritePlanEntry | None:
    if result.reason == RejectReason.NO_CONSTRUCTOR:
        return None
    if result.changed:
        return RewritePlanEntry(
            kind=REWRITE_KIND,
            status="rewritten",
            target=target,
            summary=f"removed unused constructor parameters: {', '.join(result.removed_names)}",
        )
    if result.reason is not None:
        reason = str(result.reason)
        if result.detail:
            reason = f"{reason}: {result.detail}"
        return RewritePlanEntry(
            kind=REWRITE_KIND,
            status="skipped",
            target=target,
            summary="constructor left as-is",
            non_rewrite_reasons=[reason],
        )
    if result.candidates:
        return RewritePlanEntry(
            kind=REWRITE_KIND,
            status="unchanged",
            target=target,
            summary=f"unused constructor parameters kept: {', '.join(result.candidates)}",
            non_rewrite_reasons=["removal_declined"],
        )
    return None


class _ConstructorPruneTransformer(cst.CSTTransformer):
    def __init__(
        self,
        *,
        resolver: SymbolResolver,
        config: PruneConfig,
        editor: TreeEditor | None,
        path: str,
    ) -> None:
        self.resolver = resolver
        self.config = config
        self.editor = editor
        self.path = path
        self.entries: list[RewritePlanEntry] = []
        self._stack: list[str] = []

    def visit_ClassDef(self, node: cst.ClassDef) -> bool:
        self._stack.append(node.name.value)
        return True

    def leave_ClassDef(
        self, original_node: cst.ClassDef, updated_node: cst.ClassDef
    ) -> cst.CSTNode:
        check_deadline()
        qualname = ".".join(self._stack)
        self._stack.pop()
        constructor_pass = ConstructorParamPass(
            _PinnedResolver(self.resolver, original_node),
            editor=self.editor,
            promotion_markers=self.config.promotion_markers,
        )
        result = constructor_pass.run(updated_node)
        entry = _entry_for(result, f"{self.path}::{qualname}")
        if entry is not None:
            self.entries.append(entry)
        return result.node

    def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
        self._stack.append(node.name.value)
        return True

    def leave_FunctionDef(
        self, original_node: cst.FunctionDef, updated_node: cst.FunctionDef
    ) -> cst.CSTNode:
        self._stack.pop()
        return updated_node


class PruneEngine:
    def __init__(
        self,
        project_root: Path | None = None,
        config: PruneConfig | None = None,
        editor: TreeEditor | None = None,
    ) -> None:
        self.project_root = project_root
        self.config = config if config is not None else PruneConfig()
        self.editor = editor

    def _excluded(self, path: Path) -> bool:
        if not self.config.exclude:
            return False
        rel = path
        if self.project_root is not None:
            try:
                rel = path.relative_to(self.project_root)
            except ValueError:
                pass
        text = rel.as_posix()
        return any(fnmatch(text, pattern) for pattern in self.config.exclude)

    def collect_files(self, paths: Iterable[Path]) -> list[Path]:
        files: list[Path] = []
        seen: set[Path] = set()
        for raw in paths:
            path = raw
            if self.project_root is not None and not path.is_absolute():
                path = self.project_root / path
            candidates = sorted(path.rglob("*.py")) if path.is_dir() else [path]
            for candidate in candidates:
                if candidate in seen or self._excluded(candidate):
                    continue
                seen.add(candidate)
                files.append(candidate)
        return files

    def plan_paths(self, paths: Iterable[Path]) -> PrunePlan:
        check_deadline()
        plan = PrunePlan()
        sources: dict[Path, str] = {}
        modules: dict[Path, cst.Module] = {}
        for path in deadline_loop_iter(self.collect_files(paths)):
            if path.suffix != ".py":
                plan.warnings.append(f"Skipped non-Python file {path}")
                continue
            try:
                source = path.read_text()
            except OSError as exc:
                plan.errors.append(f"Failed to read {path}: {exc}")
                continue
            try:
                module = cst.parse_module(source)
            except cst.ParserSyntaxError as exc:
                plan.errors.append(f"LibCST parse failed for {path}: {exc}")
                continue
            sources[path] = source
            modules[path] = module
        names = {path: _module_name(path, self.project_root) for path in modules}
        index = ClassIndex.from_modules(
            {names[path]: module for path, module in modules.items()},
            packages=[names[path] for path in modules if path.stem == "__init__"],
            interface_bases=self.config.interface_bases,
            opaque_bases=self.config.opaque_bases,
        )
        for path in deadline_loop_iter(list(modules)):
            self._plan_module(
                plan,
                path=path,
                source=sources[path],
                module=modules[path],
                resolver=index.resolver_for(names[path]),
            )
        return plan

    def plan_source(self, source: str, *, path: str = "<string>") -> PrunePlan:
        check_deadline()
        plan = PrunePlan()
        try:
            module = cst.parse_module(source)
        except cst.ParserSyntaxError as exc:
            plan.errors.append(f"LibCST parse failed for {path}: {exc}")
            return plan
        index = ClassIndex.from_module(
            module,
            interface_bases=self.config.interface_bases,
            opaque_bases=self.config.opaque_bases,
        )
        self._plan_module(
            plan,
            path=Path(path),
            source=source,
            module=module,
            resolver=index.resolver_for("__main__"),
        )
        return plan

    def _plan_module(
        self,
        plan: PrunePlan,
        *,
        path: Path,
        source: str,
        module: cst.Module,
        resolver: SymbolResolver,
    ) -> None:
        transformer = _ConstructorPruneTransformer(
            resolver=resolver,
            config=self.config,
            editor=self.editor,
            path=str(path),
        )
        new_module = module.visit(transformer)
        plan.rewrite_plans.extend(transformer.entries)
        new_source = new_module.code
        if new_source == source:
            return
        end_line = len(source.splitlines())
        plan.edits.append(
            TextEdit(
                path=str(path),
                start=(0, 0),
                end=(end_line, 0),
                replacement=new_source,
            )
        )


def apply_plan(plan: PrunePlan) -> list[str]:
    """Write whole-file replacements to disk; returns the paths written."""
    written: list[str] = []
    for edit in plan.edits:
        Path(edit.path).write_text(edit.replacement)
        written.append(edit.path)
    return written
