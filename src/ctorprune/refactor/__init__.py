from ctorprune.refactor.constructor_pass import ConstructorParamPass, PassResult, PassStatus
from ctorprune.refactor.editor import CstTreeEditor, TreeEditor
from ctorprune.refactor.engine import PruneEngine, apply_plan
from ctorprune.refactor.model import PrunePlan, RewritePlanEntry, TextEdit
from ctorprune.refactor.pruner import PruneOutcome, prune

__all__ = [
    "ConstructorParamPass",
    "CstTreeEditor",
    "PassResult",
    "PassStatus",
    "PruneEngine",
    "PruneOutcome",
    "PrunePlan",
    "RewritePlanEntry",
    "TextEdit",
    "TreeEditor",
    "apply_plan",
    "prune",
]
