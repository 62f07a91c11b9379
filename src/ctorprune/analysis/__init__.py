from ctorprune.analysis.gate import Admit, Reject, RejectReason, admit
from ctorprune.analysis.promotion import has_any_promoted, is_promoted
from ctorprune.analysis.resolver import (
    ClassIndex,
    ClassIndexResolver,
    ClassMetadata,
    InterfaceMetadata,
    NotResolvable,
    SymbolResolver,
)
from ctorprune.analysis.usage import is_param_used

__all__ = [
    "Admit",
    "ClassIndex",
    "ClassIndexResolver",
    "ClassMetadata",
    "InterfaceMetadata",
    "NotResolvable",
    "Reject",
    "RejectReason",
    "SymbolResolver",
    "admit",
    "has_any_promoted",
    "is_param_used",
    "is_promoted",
]
