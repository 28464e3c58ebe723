# Identity archetypes: catalog, tension and drift
from .catalog import (
    DEFAULT_ARCHETYPES,
    METRIC_KEYS,
    MU_GROUPS,
    Archetype,
    ArchetypeCatalog,
    default_archetypes,
)
from .drift import (
    DRIFT_RULES,
    DriftResult,
    DriftRule,
    TensionUpdate,
    check_drift,
    drift_probability,
    metric_distance,
    pick_drift_target,
    refresh_identity_profile,
    self_gap,
    update_tension,
)

__all__ = [
    "DEFAULT_ARCHETYPES",
    "METRIC_KEYS",
    "MU_GROUPS",
    "Archetype",
    "ArchetypeCatalog",
    "default_archetypes",
    "DRIFT_RULES",
    "DriftResult",
    "DriftRule",
    "TensionUpdate",
    "check_drift",
    "drift_probability",
    "metric_distance",
    "pick_drift_target",
    "refresh_identity_profile",
    "self_gap",
    "update_tension",
]
