from __future__ import annotations

from collections.abc import Iterable, Sequence

import libcst as cst

from ctorprune.analysis.signature import dotted_name
from ctorprune.config import DEFAULT_PROMOTION_MARKERS


def _annotation_marker(annotation: cst.Annotation | None) -> str | None:
    if annotation is None:
        return None
    expr = annotation.annotation
    if isinstance(expr, cst.Subscript):
        expr = expr.value
    return dotted_name(expr)


def is_promoted(param: cst.Param, markers: Iterable[str] = DEFAULT_PROMOTION_MARKERS) -> bool:
    """A parameter whose annotation also declares a field of the instance."""
    marker = _annotation_marker(param.annotation)
    return marker is not None and marker in set(markers)


def has_any_promoted(
    params: Sequence[cst.Param],
    markers: Iterable[str] = DEFAULT_PROMOTION_MARKERS,
) -> bool:
    marker_set = set(markers)
    return any(is_promoted(param, marker_set) for param in params)
