# ctorprune:decision_protocol_module
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

import libcst as cst

from ctorprune.analysis.promotion import has_any_promoted
from ctorprune.analysis.resolver import ClassMetadata, NotResolvable, SymbolResolver
from ctorprune.analysis.signature import (
    CONSTRUCTOR_NAME,
    candidate_slots,
    class_methods,
    decorator_names,
    flatten_params,
)
from ctorprune.config import DEFAULT_PROMOTION_MARKERS

_ABSTRACT_DECORATORS = frozenset({"abstractmethod", "abc.abstractmethod"})
_OVERLOAD_DECORATORS = frozenset({"overload", "typing.overload", "typing_extensions.overload"})


class RejectReason(StrEnum):
    NO_CONSTRUCTOR = "no_constructor"
    OVERLOADED_CONSTRUCTOR = "overloaded_constructor"
    NO_PARAMETERS = "no_parameters"
    PROMOTED_PARAMETER = "promoted_parameter"
    ABSTRACT_CONSTRUCTOR = "abstract_constructor"
    UNRESOLVABLE = "unresolvable"
    CLASS_IS_INTERFACE = "class_is_interface"
    INTERFACE_CONSTRUCTOR = "interface_constructor"


@dataclass(frozen=True)
class Admit:
    constructor: cst.FunctionDef
    metadata: ClassMetadata


@dataclass(frozen=True)
class Reject:
    reason: RejectReason
    detail: str = ""


GateOutcome = Admit | Reject


def is_abstract(function: cst.FunctionDef) -> bool:
    return any(name in _ABSTRACT_DECORATORS for name in decorator_names(function))


def is_overload(function: cst.FunctionDef) -> bool:
    return any(name in _OVERLOAD_DECORATORS for name in decorator_names(function))


def admit(
    class_def: cst.ClassDef,
    resolver: SymbolResolver,
    *,
    promotion_markers: Iterable[str] = DEFAULT_PROMOTION_MARKERS,
) -> GateOutcome:
    """Return the constructor to analyze, or the first reason it must be left alone.

    Structural checks run before resolution so that classes without a usable
    constructor never reach the resolver.
    """
    methods = class_methods(class_def, CONSTRUCTOR_NAME)
    if not methods:
        return Reject(RejectReason.NO_CONSTRUCTOR)
    if any(is_overload(method) for method in methods):
        return Reject(RejectReason.OVERLOADED_CONSTRUCTOR)
    constructor = methods[-1]
    slots = flatten_params(constructor.params)
    if not candidate_slots(slots):
        return Reject(RejectReason.NO_PARAMETERS)
    if has_any_promoted([slot.param for slot in slots], promotion_markers):
        return Reject(RejectReason.PROMOTED_PARAMETER)
    if is_abstract(constructor):
        return Reject(RejectReason.ABSTRACT_CONSTRUCTOR)
    metadata = resolver.resolve(class_def)
    if isinstance(metadata, NotResolvable):
        return Reject(RejectReason.UNRESOLVABLE, metadata.reason)
    if metadata.is_interface:
        return Reject(RejectReason.CLASS_IS_INTERFACE, metadata.name)
    for interface in metadata.interfaces:
        if interface.declares_constructor:
            return Reject(RejectReason.INTERFACE_CONSTRUCTOR, interface.name)
    return Admit(constructor=constructor, metadata=metadata)
