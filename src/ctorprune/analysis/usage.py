# ctorprune:decision_protocol_module
from __future__ import annotations

from collections.abc import Iterable

import libcst as cst

from ctorprune.analysis.signature import dotted_name, flatten_params
from ctorprune.invariants import never

# Calls that read the enclosing namespace without naming the variable.
_DYNAMIC_SCOPE_CALLS = frozenset({"locals", "eval", "exec"})
_DYNAMIC_SCOPE_CALLS_WITHOUT_ARGS = frozenset({"vars"})


def _bound_names(target: cst.BaseExpression) -> set[str]:
    if isinstance(target, cst.Name):
        return {target.value}
    if isinstance(target, (cst.Tuple, cst.List)):
        names: set[str] = set()
        for element in target.elements:
            names.update(_bound_names(element.value))
        return names
    if isinstance(target, cst.StarredElement):
        return _bound_names(target.value)
    return set()


def _import_bound_names(stmt: cst.Import | cst.ImportFrom) -> set[str]:
    if isinstance(stmt.names, cst.ImportStar):
        return set()
    names: set[str] = set()
    for alias in stmt.names:
        if alias.asname is not None and isinstance(alias.asname.name, cst.Name):
            names.add(alias.asname.name.value)
            continue
        full = dotted_name(alias.name)
        if full:
            names.add(full.split(".")[0])
    return names


def _function_param_names(params: cst.Parameters) -> set[str]:
    return {slot.name for slot in flatten_params(params)}


def _function_param_defaults(params: cst.Parameters) -> list[cst.BaseExpression]:
    return [slot.param.default for slot in flatten_params(params) if slot.param.default is not None]


def _function_annotations(function: cst.FunctionDef) -> list[cst.Annotation]:
    annotations = [
        slot.param.annotation
        for slot in flatten_params(function.params)
        if slot.param.annotation is not None
    ]
    if function.returns is not None:
        annotations.append(function.returns)
    return annotations


class _ReadFinder(cst.CSTVisitor):
    """Stops at the first ``Name`` in load position that matches ``name``."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.found = False

    def on_visit(self, node: cst.CSTNode) -> bool:
        if self.found:
            return False
        return super().on_visit(node)

    def _visit(self, node: cst.CSTNode | None) -> None:
        if node is not None and not self.found:
            node.visit(self)

    def _visit_all(self, nodes: Iterable[cst.CSTNode]) -> None:
        for node in nodes:
            self._visit(node)

    def _visit_target(self, target: cst.BaseExpression) -> None:
        # Bound names are stores; attribute and subscript bases are reads.
        if isinstance(target, cst.Name):
            return
        if isinstance(target, (cst.Tuple, cst.List)):
            for element in target.elements:
                self._visit_target(element.value)
            return
        if isinstance(target, cst.StarredElement):
            self._visit_target(target.value)
            return
        self._visit(target)

    def visit_Name(self, node: cst.Name) -> bool:
        if node.value == self.name:
            self.found = True
        return False

    def visit_Attribute(self, node: cst.Attribute) -> bool:
        self._visit(node.value)
        return False

    def visit_Arg(self, node: cst.Arg) -> bool:
        self._visit(node.value)
        return False

    def visit_AssignTarget(self, node: cst.AssignTarget) -> bool:
        self._visit_target(node.target)
        return False

    def visit_AnnAssign(self, node: cst.AnnAssign) -> bool:
        self._visit_target(node.target)
        self._visit(node.annotation)
        self._visit(node.value)
        return False

    def visit_For(self, node: cst.For) -> bool:
        self._visit(node.iter)
        self._visit_target(node.target)
        self._visit(node.body)
        self._visit(node.orelse)
        return False

    def visit_WithItem(self, node: cst.WithItem) -> bool:
        self._visit(node.item)
        if node.asname is not None:
            self._visit_target(node.asname.name)
        return False

    def visit_ExceptHandler(self, node: cst.ExceptHandler) -> bool:
        self._visit(node.type)
        self._visit(node.body)
        return False

    def visit_ExceptStarHandler(self, node: cst.ExceptStarHandler) -> bool:
        self._visit(node.type)
        self._visit(node.body)
        return False

    def visit_NamedExpr(self, node: cst.NamedExpr) -> bool:
        self._visit(node.value)
        return False

    def visit_Del(self, node: cst.Del) -> bool:
        self._visit_target(node.target)
        return False

    def visit_Import(self, node: cst.Import) -> bool:
        return False

    def visit_ImportFrom(self, node: cst.ImportFrom) -> bool:
        return False

    def visit_Global(self, node: cst.Global) -> bool:
        return False

    def visit_Nonlocal(self, node: cst.Nonlocal) -> bool:
        if any(item.name.value == self.name for item in node.names):
            self.found = True
        return False

    def visit_Call(self, node: cst.Call) -> bool:
        func = dotted_name(node.func)
        if func in _DYNAMIC_SCOPE_CALLS:
            self.found = True
        elif func in _DYNAMIC_SCOPE_CALLS_WITHOUT_ARGS and not node.args:
            self.found = True
        return not self.found

    def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
        self._visit_all(node.decorators)
        self._visit_all(_function_param_defaults(node.params))
        self._visit_all(_function_annotations(node))
        if self.name not in _function_param_names(node.params):
            self._visit(node.body)
        return False

    def visit_Lambda(self, node: cst.Lambda) -> bool:
        self._visit_all(_function_param_defaults(node.params))
        if self.name not in _function_param_names(node.params):
            self._visit(node.body)
        return False

    def visit_ClassDef(self, node: cst.ClassDef) -> bool:
        self._visit_all(node.decorators)
        self._visit_all(node.bases)
        self._visit_all(node.keywords)
        self._visit(node.body)
        return False

    def _visit_comprehension(
        self, elements: list[cst.BaseExpression], for_in: cst.CompFor
    ) -> None:
        # The outermost iterable is evaluated in the enclosing scope.
        self._visit(for_in.iter)
        bound: set[str] = set()
        clause: cst.CompFor | None = for_in
        while clause is not None:
            bound.update(_bound_names(clause.target))
            clause = clause.inner_for_in
        if self.name in bound:
            return
        clause = for_in
        while clause is not None:
            self._visit_target(clause.target)
            if clause is not for_in:
                self._visit(clause.iter)
            self._visit_all(condition.test for condition in clause.ifs)
            clause = clause.inner_for_in
        self._visit_all(elements)

    def visit_ListComp(self, node: cst.ListComp) -> bool:
        self._visit_comprehension([node.elt], node.for_in)
        return False

    def visit_SetComp(self, node: cst.SetComp) -> bool:
        self._visit_comprehension([node.elt], node.for_in)
        return False

    def visit_GeneratorExp(self, node: cst.GeneratorExp) -> bool:
        self._visit_comprehension([node.elt], node.for_in)
        return False

    def visit_DictComp(self, node: cst.DictComp) -> bool:
        self._visit_comprehension([node.key, node.value], node.for_in)
        return False

    def visit_MatchAs(self, node: cst.MatchAs) -> bool:
        self._visit(node.pattern)
        return False

    def visit_MatchStar(self, node: cst.MatchStar) -> bool:
        return False

    def visit_MatchMapping(self, node: cst.MatchMapping) -> bool:
        self._visit_all(node.elements)
        return False

    def visit_MatchKeywordElement(self, node: cst.MatchKeywordElement) -> bool:
        self._visit(node.pattern)
        return False


def reads_name(node: cst.CSTNode, name: str) -> bool:
    finder = _ReadFinder(name)
    node.visit(finder)
    return finder.found


def _statement_units(body: cst.BaseSuite) -> list[cst.CSTNode]:
    if isinstance(body, cst.SimpleStatementSuite):
        return list(body.body)
    units: list[cst.CSTNode] = []
    for stmt in body.body:
        if isinstance(stmt, cst.SimpleStatementLine):
            units.extend(stmt.body)
        else:
            units.append(stmt)
    return units


def _rebinds(unit: cst.CSTNode, name: str) -> bool:
    """Whether a top-level statement unconditionally rebinds ``name``."""
    if isinstance(unit, cst.Assign):
        return any(name in _bound_names(target.target) for target in unit.targets)
    if isinstance(unit, cst.AnnAssign):
        return unit.value is not None and name in _bound_names(unit.target)
    if isinstance(unit, cst.Del):
        return name in _bound_names(unit.target)
    if isinstance(unit, (cst.FunctionDef, cst.ClassDef)):
        return unit.name.value == name
    if isinstance(unit, (cst.Import, cst.ImportFrom)):
        return name in _import_bound_names(unit)
    return False


def _locate(function: cst.FunctionDef, param: cst.Param) -> int:
    slots = flatten_params(function.params)
    for slot in slots:
        if slot.param is param:
            return slot.position
    for slot in slots:
        if slot.name == param.name.value:
            return slot.position
    never("parameter does not belong to method", param=param.name.value)


def is_param_used(function: cst.FunctionDef, param: cst.Param) -> bool:
    """Whether ``param`` may be read by ``function``.

    Reachability is ignored: a read in dead code still counts. A read by the
    default value of a later parameter counts as well. The incoming value is
    unread when a top-level statement rebinds the name before any read.
    """
    name = param.name.value
    position = _locate(function, param)
    for slot in flatten_params(function.params)[position + 1 :]:
        if slot.param.default is not None and reads_name(slot.param.default, name):
            return True
    for unit in _statement_units(function.body):
        if reads_name(unit, name):
            return True
        if _rebinds(unit, name):
            return False
    return False
