# ctorprune:decision_protocol_module
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

Position = Tuple[int, int]


@dataclass(frozen=True)
class TextEdit:
    path: str
    start: Position
    end: Position
    replacement: str


@dataclass(frozen=True)
class RewritePlanEntry:
    kind: str
    status: str
    target: str
    summary: str
    non_rewrite_reasons: List[str] = field(default_factory=list)


@dataclass
class PrunePlan:
    edits: List[TextEdit] = field(default_factory=list)
    rewrite_plans: List[RewritePlanEntry] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
