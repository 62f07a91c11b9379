# ctorprune:decision_protocol_module
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

import libcst as cst

from ctorprune.analysis.gate import Reject, RejectReason, admit
from ctorprune.analysis.resolver import SymbolResolver
from ctorprune.analysis.signature import candidate_slots, flatten_params
from ctorprune.analysis.usage import is_param_used
from ctorprune.config import DEFAULT_PROMOTION_MARKERS
from ctorprune.refactor.editor import CstTreeEditor, TreeEditor
from ctorprune.refactor.pruner import prune


class PassStatus(StrEnum):
    CHANGED = "changed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class PassResult:
    status: PassStatus
    node: cst.ClassDef
    candidates: tuple[str, ...] = ()
    removed_positions: tuple[int, ...] = ()
    removed_names: tuple[str, ...] = ()
    reason: RejectReason | None = None
    detail: str = ""

    @property
    def changed(self) -> bool:
        return self.status == PassStatus.CHANGED


def _replace_method(
    class_def: cst.ClassDef, old: cst.FunctionDef, new: cst.FunctionDef
) -> cst.ClassDef:
    body = class_def.body
    if not isinstance(body, cst.IndentedBlock):
        return class_def
    statements = [new if stmt is old else stmt for stmt in body.body]
    return class_def.with_changes(body=body.with_changes(body=statements))


class ConstructorParamPass:
    """Drops constructor parameters that the constructor never reads."""

    def __init__(
        self,
        resolver: SymbolResolver,
        *,
        editor: TreeEditor | None = None,
        promotion_markers: Iterable[str] = DEFAULT_PROMOTION_MARKERS,
    ) -> None:
        self.resolver = resolver
        self.editor = editor if editor is not None else CstTreeEditor()
        self.promotion_markers = tuple(promotion_markers)

    def run(self, class_def: cst.ClassDef) -> PassResult:
        outcome = admit(
            class_def, self.resolver, promotion_markers=self.promotion_markers
        )
        if isinstance(outcome, Reject):
            return PassResult(
                status=PassStatus.UNCHANGED,
                node=class_def,
                reason=outcome.reason,
                detail=outcome.detail,
            )
        constructor = outcome.constructor
        slots = flatten_params(constructor.params)
        unused = [
            slot
            for slot in candidate_slots(slots)
            if not is_param_used(constructor, slot.param)
        ]
        if not unused:
            return PassResult(status=PassStatus.UNCHANGED, node=class_def)
        candidates = tuple(slot.name for slot in unused)
        pruned = prune(constructor, [slot.position for slot in unused], self.editor)
        if not pruned.removed:
            return PassResult(
                status=PassStatus.UNCHANGED,
                node=class_def,
                candidates=candidates,
            )
        removed_positions = tuple(sorted(pruned.removed))
        return PassResult(
            status=PassStatus.CHANGED,
            node=_replace_method(class_def, constructor, pruned.function),
            candidates=candidates,
            removed_positions=removed_positions,
            removed_names=tuple(slots[position].name for position in removed_positions),
        )
