# Theory-of-mind beliefs: table, core, updates, decay and relative threat
from .table import INITIAL_UNCERTAINTY, NEUTRAL_AFFECT, NEUTRAL_PRIOR, ToMEntry, ToMTable, ToMTraits
from .core import ToMCore, compute_tom_core
from .update import ToMUpdate, extract_features, update_from_outcome
from .decay import apply_decay, decay_entry
from .threat import proximity, relative_threat, tom_threat

__all__ = [
    "INITIAL_UNCERTAINTY",
    "NEUTRAL_AFFECT",
    "NEUTRAL_PRIOR",
    "ToMEntry",
    "ToMTable",
    "ToMTraits",
    "ToMCore",
    "compute_tom_core",
    "ToMUpdate",
    "extract_features",
    "update_from_outcome",
    "apply_decay",
    "decay_entry",
    "proximity",
    "relative_threat",
    "tom_threat",
]
