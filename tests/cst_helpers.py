from __future__ import annotations

import textwrap

import libcst as cst

from ctorprune.analysis.resolver import ClassMetadata, NotResolvable
from ctorprune.analysis.signature import find_constructor, flatten_params


def parse(source: str) -> cst.Module:
    return cst.parse_module(textwrap.dedent(source).strip() + "\n")


def parse_function(source: str) -> cst.FunctionDef:
    node = parse(source).body[0]
    assert isinstance(node, cst.FunctionDef)
    return node


def first_class(module: cst.Module, name: str | None = None) -> cst.ClassDef:
    for stmt in module.body:
        if isinstance(stmt, cst.ClassDef) and (name is None or stmt.name.value == name):
            return stmt
    raise AssertionError(f"class {name} not found")


def param(function: cst.FunctionDef, name: str) -> cst.Param:
    for slot in flatten_params(function.params):
        if slot.name == name:
            return slot.param
    raise AssertionError(f"parameter {name} not found")


def param_names(function: cst.FunctionDef) -> list[str]:
    return [slot.name for slot in flatten_params(function.params)]


def constructor_param_names(class_def: cst.ClassDef) -> list[str]:
    constructor = find_constructor(class_def)
    assert constructor is not None
    return param_names(constructor)


def render(node: cst.CSTNode) -> str:
    return cst.Module(body=[node]).code


class StaticResolver:
    def __init__(self, result: ClassMetadata | NotResolvable | None = None) -> None:
        self.result = result if result is not None else ClassMetadata(name="Static")
        self.calls = 0

    def resolve(self, class_def: cst.ClassDef) -> ClassMetadata | NotResolvable:
        self.calls += 1
        return self.result
