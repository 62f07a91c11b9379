# ctorprune:decision_protocol_module
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import libcst as cst

from ctorprune.analysis.signature import (
    ParamKind,
    ParamSlot,
    candidate_slots,
    flatten_params,
)
from ctorprune.invariants import never
from ctorprune.refactor.editor import CstTreeEditor, TreeEditor


@dataclass(frozen=True)
class PruneOutcome:
    function: cst.FunctionDef
    removed: frozenset[int]


def _keeps_positional_binding(
    slots: tuple[ParamSlot, ...], position: int, removing: frozenset[int]
) -> bool:
    # Dropping a positional slot shifts every later positional argument.
    slot = slots[position]
    if not slot.is_positional:
        return True
    for later in slots[position + 1 :]:
        if later.kind == ParamKind.VAR_POSITIONAL:
            return False
        if later.is_positional and later.position not in removing:
            return False
    return True


def _assert_subsequence(
    before: tuple[ParamSlot, ...],
    after: tuple[ParamSlot, ...],
    removed: frozenset[int],
) -> None:
    expected = [slot.name for slot in before if slot.position not in removed]
    actual = [slot.name for slot in after]
    if actual != expected:
        never(
            "pruned parameter list is not an order-preserving filter",
            expected=",".join(expected),
            actual=",".join(actual),
        )


def prune(
    function: cst.FunctionDef,
    unused_positions: Iterable[int],
    editor: TreeEditor | None = None,
) -> PruneOutcome:
    """Remove the removable subset of ``unused_positions`` from ``function``.

    The removal set shrinks until every member keeps later positional
    arguments bound to the same slots and the editor accepts it; the new
    parameter list is then committed in one edit.
    """
    editor = editor if editor is not None else CstTreeEditor()
    slots = flatten_params(function.params)
    eligible = {slot.position for slot in candidate_slots(slots)}
    removing = frozenset(position for position in unused_positions if position in eligible)
    while removing:
        accepted = frozenset(
            position
            for position in removing
            if _keeps_positional_binding(slots, position, removing)
            and editor.can_remove(function, position, removing)
        )
        if accepted == removing:
            break
        removing = accepted
    if not removing:
        return PruneOutcome(function=function, removed=frozenset())
    updated = editor.remove(function, removing)
    _assert_subsequence(slots, flatten_params(updated.params), removing)
    return PruneOutcome(function=updated, removed=removing)
