# ctorprune:decision_protocol_module
"""Flattened views over libcst parameter lists and class bodies.

Positions used throughout the pass index into the flattened parameter list:
positional-only parameters, positional-or-keyword parameters, ``*args``,
keyword-only parameters, ``**kwargs``, in that order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

import libcst as cst

CONSTRUCTOR_NAME = "__init__"


class ParamKind(StrEnum):
    POSITIONAL_ONLY = "positional_only"
    POSITIONAL = "positional"
    VAR_POSITIONAL = "var_positional"
    KEYWORD_ONLY = "keyword_only"
    VAR_KEYWORD = "var_keyword"


_POSITIONAL_KINDS = frozenset({ParamKind.POSITIONAL_ONLY, ParamKind.POSITIONAL})
_VARIADIC_KINDS = frozenset({ParamKind.VAR_POSITIONAL, ParamKind.VAR_KEYWORD})


@dataclass(frozen=True)
class ParamSlot:
    position: int
    param: cst.Param
    kind: ParamKind

    @property
    def name(self) -> str:
        return self.param.name.value

    @property
    def is_positional(self) -> bool:
        return self.kind in _POSITIONAL_KINDS

    @property
    def is_variadic(self) -> bool:
        return self.kind in _VARIADIC_KINDS


def flatten_params(parameters: cst.Parameters) -> tuple[ParamSlot, ...]:
    ordered: list[tuple[cst.Param, ParamKind]] = []
    ordered.extend((param, ParamKind.POSITIONAL_ONLY) for param in parameters.posonly_params)
    ordered.extend((param, ParamKind.POSITIONAL) for param in parameters.params)
    if isinstance(parameters.star_arg, cst.Param):
        ordered.append((parameters.star_arg, ParamKind.VAR_POSITIONAL))
    ordered.extend((param, ParamKind.KEYWORD_ONLY) for param in parameters.kwonly_params)
    if isinstance(parameters.star_kwarg, cst.Param):
        ordered.append((parameters.star_kwarg, ParamKind.VAR_KEYWORD))
    return tuple(
        ParamSlot(position=position, param=param, kind=kind)
        for position, (param, kind) in enumerate(ordered)
    )


def receiver_position(slots: tuple[ParamSlot, ...]) -> int | None:
    """The first positional parameter binds the instance (``self``)."""
    if slots and slots[0].is_positional:
        return slots[0].position
    return None


def candidate_slots(slots: tuple[ParamSlot, ...]) -> tuple[ParamSlot, ...]:
    """Parameters that may ever be removed: not the receiver, not variadic."""
    receiver = receiver_position(slots)
    return tuple(
        slot
        for slot in slots
        if slot.position != receiver and not slot.is_variadic
    )


def dotted_name(expr: cst.BaseExpression | None) -> str | None:
    if expr is None:
        return None
    if isinstance(expr, cst.Name):
        return expr.value
    if isinstance(expr, cst.Attribute):
        parts = []
        current: cst.BaseExpression | None = expr
        while isinstance(current, cst.Attribute):
            parts.append(current.attr.value)
            current = current.value
        if isinstance(current, cst.Name):
            parts.append(current.value)
            return ".".join(reversed(parts))
    return None


def decorator_names(function: cst.FunctionDef) -> list[str]:
    names: list[str] = []
    for decorator in function.decorators:
        expr = decorator.decorator
        if isinstance(expr, cst.Call):
            expr = expr.func
        name = dotted_name(expr)
        if name:
            names.append(name)
    return names


def class_methods(class_def: cst.ClassDef, name: str) -> list[cst.FunctionDef]:
    body = class_def.body
    if not isinstance(body, cst.IndentedBlock):
        return []
    return [
        stmt
        for stmt in body.body
        if isinstance(stmt, cst.FunctionDef) and stmt.name.value == name
    ]


def find_constructor(class_def: cst.ClassDef) -> cst.FunctionDef | None:
    """The ``__init__`` Python binds, i.e. the last definition in the body."""
    methods = class_methods(class_def, CONSTRUCTOR_NAME)
    return methods[-1] if methods else None
