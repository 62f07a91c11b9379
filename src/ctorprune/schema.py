from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel


class PruneRequestDTO(BaseModel):
    paths: List[str]
    root_path: Optional[str] = None
    config_path: Optional[str] = None
    apply: bool = False


class TextEditDTO(BaseModel):
    path: str
    start: Tuple[int, int]
    end: Tuple[int, int]
    replacement: str


class RewritePlanEntryDTO(BaseModel):
    kind: str
    status: str
    target: str
    summary: str
    non_rewrite_reasons: List[str] = []


class PruneResponseDTO(BaseModel):
    edits: List[TextEditDTO] = []
    rewrite_plans: List[RewritePlanEntryDTO] = []
    warnings: List[str] = []
    errors: List[str] = []
    applied: List[str] = []
