from __future__ import annotations

from typing import Protocol, Union

import libcst as cst

from ctorprune.analysis.signature import flatten_params
from ctorprune.analysis.usage import reads_name

_Element = Union[cst.Param, cst.ParamSlash, cst.ParamStar]


class TreeEditor(Protocol):
    def can_remove(
        self, function: cst.FunctionDef, position: int, removing: frozenset[int]
    ) -> bool:
        """Whether dropping ``position`` is representable while ``removing`` all go."""

    def remove(self, function: cst.FunctionDef, positions: frozenset[int]) -> cst.FunctionDef:
        """Return ``function`` without the parameters at ``positions``."""


class _ForwardingDelRemover(cst.CSTTransformer):
    """Drops ``del name`` statements for removed parameters, outside nested scopes."""

    def __init__(self, names: frozenset[str]) -> None:
        self.names = names

    def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
        return False

    def visit_ClassDef(self, node: cst.ClassDef) -> bool:
        return False

    def visit_Lambda(self, node: cst.Lambda) -> bool:
        return False

    def _strip(self, stmt: cst.BaseSmallStatement) -> cst.BaseSmallStatement | None:
        if not isinstance(stmt, cst.Del):
            return stmt
        target = stmt.target
        if isinstance(target, cst.Name):
            return None if target.value in self.names else stmt
        if isinstance(target, (cst.Tuple, cst.List)):
            elements = [
                element
                for element in target.elements
                if not (isinstance(element.value, cst.Name) and element.value.value in self.names)
            ]
            if len(elements) == len(target.elements):
                return stmt
            if not elements:
                return None
            if len(elements) == 1:
                return stmt.with_changes(target=elements[0].value)
            elements[-1] = elements[-1].with_changes(comma=cst.MaybeSentinel.DEFAULT)
            return stmt.with_changes(target=target.with_changes(elements=elements))
        return stmt

    def _strip_all(
        self, body: tuple[cst.BaseSmallStatement, ...] | list[cst.BaseSmallStatement]
    ) -> list[cst.BaseSmallStatement] | None:
        kept: list[cst.BaseSmallStatement] = []
        for stmt in body:
            stripped = self._strip(stmt)
            if stripped is not None:
                kept.append(stripped)
        if len(kept) == len(body) and all(new is old for new, old in zip(kept, body)):
            return None
        if kept and body and kept[-1] is not body[-1]:
            kept[-1] = kept[-1].with_changes(semicolon=cst.MaybeSentinel.DEFAULT)
        return kept

    def leave_SimpleStatementLine(
        self, original_node: cst.SimpleStatementLine, updated_node: cst.SimpleStatementLine
    ) -> cst.SimpleStatementLine | cst.RemovalSentinel:
        kept = self._strip_all(updated_node.body)
        if kept is None:
            return updated_node
        if not kept:
            return cst.RemoveFromParent()
        return updated_node.with_changes(body=kept)

    def leave_SimpleStatementSuite(
        self, original_node: cst.SimpleStatementSuite, updated_node: cst.SimpleStatementSuite
    ) -> cst.SimpleStatementSuite:
        kept = self._strip_all(updated_node.body)
        if kept is None:
            return updated_node
        return updated_node.with_changes(body=kept or [cst.Pass()])

    def leave_IndentedBlock(
        self, original_node: cst.IndentedBlock, updated_node: cst.IndentedBlock
    ) -> cst.IndentedBlock:
        if updated_node.body:
            return updated_node
        return updated_node.with_changes(body=[cst.SimpleStatementLine([cst.Pass()])])


def _ordered_elements(parameters: cst.Parameters) -> list[tuple[str, _Element]]:
    elements: list[tuple[str, _Element]] = []
    elements.extend(("posonly", param) for param in parameters.posonly_params)
    if isinstance(parameters.posonly_ind, cst.ParamSlash):
        elements.append(("slash", parameters.posonly_ind))
    elements.extend(("params", param) for param in parameters.params)
    if isinstance(parameters.star_arg, (cst.Param, cst.ParamStar)):
        elements.append(("star_arg", parameters.star_arg))
    elements.extend(("kwonly", param) for param in parameters.kwonly_params)
    if isinstance(parameters.star_kwarg, cst.Param):
        elements.append(("star_kwarg", parameters.star_kwarg))
    return elements


def rebuild_parameters(parameters: cst.Parameters, positions: frozenset[int]) -> cst.Parameters:
    removed = {
        id(slot.param) for slot in flatten_params(parameters) if slot.position in positions
    }
    if not removed:
        return parameters
    original = _ordered_elements(parameters)
    kept = [(group, element) for group, element in original if id(element) not in removed]
    has_posonly = any(group == "posonly" for group, _ in kept)
    has_kwonly = any(group == "kwonly" for group, _ in kept)
    kept = [
        (group, element)
        for group, element in kept
        if not (group == "slash" and not has_posonly)
        and not (group == "star_arg" and isinstance(element, cst.ParamStar) and not has_kwonly)
    ]
    if kept and original and kept[-1][1] is not original[-1][1]:
        # The element now closing the list inherits the old closing comma.
        group, element = kept[-1]
        kept[-1] = (group, element.with_changes(comma=original[-1][1].comma))

    def _group(name: str) -> list[cst.Param]:
        return [element for group, element in kept if group == name]

    def _single(name: str) -> _Element | cst.MaybeSentinel:
        for group, element in kept:
            if group == name:
                return element
        return cst.MaybeSentinel.DEFAULT

    star_kwarg = _single("star_kwarg")
    return parameters.with_changes(
        posonly_params=_group("posonly"),
        posonly_ind=_single("slash"),
        params=_group("params"),
        star_arg=_single("star_arg"),
        kwonly_params=_group("kwonly"),
        star_kwarg=star_kwarg if isinstance(star_kwarg, cst.Param) else None,
    )


class CstTreeEditor:
    """Parameter removal on libcst function definitions.

    An edit is declined when a kept parameter's default value or annotation
    still reads the removed name.
    """

    def can_remove(
        self, function: cst.FunctionDef, position: int, removing: frozenset[int]
    ) -> bool:
        slots = flatten_params(function.params)
        name = slots[position].name
        for slot in slots:
            if slot.position == position or slot.position in removing:
                continue
            param = slot.param
            if param.default is not None and reads_name(param.default, name):
                return False
            if param.annotation is not None and reads_name(param.annotation, name):
                return False
        return True

    def remove(self, function: cst.FunctionDef, positions: frozenset[int]) -> cst.FunctionDef:
        slots = flatten_params(function.params)
        names = frozenset(slot.name for slot in slots if slot.position in positions)
        if not names:
            return function
        body = function.body.visit(_ForwardingDelRemover(names))
        return function.with_changes(
            params=rebuild_parameters(function.params, positions),
            body=body,
        )
