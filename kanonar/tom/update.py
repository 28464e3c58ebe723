"""
Belief update from an observed action outcome.

The observer extracts event features from the action's tags, then moves
each believed trait of the actor by ``alpha x signal``, where the signal is
the trait model's weighted sum of features and ``alpha`` scales with the
observer's modeling quality and with being the action's target.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..actions import ActionRecord, action_tags
from ..config import ToMConfig
from ..util import clamp01
from .core import ToMCore
from .table import ToMEntry, ToMTable

logger = logging.getLogger(__name__)

FEATURE_TAGS: Dict[str, frozenset] = {
    "support": frozenset({"support", "help", "protect"}),
    "harm": frozenset({"harm", "attack", "punish"}),
    "betrayal": frozenset({"betrayal", "deceive", "lie"}),
    "hierarchical": frozenset({"order", "command", "leadership"}),
}

# trait -> feature -> weight
TRAIT_MODELS: Dict[str, Dict[str, float]] = {
    "trust": {"support": 0.6, "harm": -0.8, "betrayal": -1.2, "success": 0.2},
    "bond": {"support": 0.7, "harm": -0.4, "betrayal": -0.5},
    "conflict": {"harm": 0.7, "betrayal": 0.5, "support": -0.2},
    "competence": {"success": 0.5},
    "dominance": {"hierarchical": 0.4, "success": 0.1},
    "reliability": {"support": 0.4, "betrayal": -0.8},
    "obedience": {"hierarchical": 0.3},
    "fear": {"harm": 0.8, "hierarchical": 0.2},
}

# affect -> tags that are evidence for it
AFFECT_TAGS: Dict[str, frozenset] = {
    "anger": frozenset({"harm", "attack", "intimidate", "confront", "blame"}),
    "fear": frozenset({"avoid", "flee", "defensive"}),
    "distress": frozenset({"flee", "recover"}),
}


@dataclass
class ToMUpdate:
    """What one update changed."""
    observer_id: str
    target_id: str
    alpha: float
    features: Dict[str, float] = field(default_factory=dict)
    deltas: Dict[str, float] = field(default_factory=dict)
    uncertainty: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "observer_id": self.observer_id,
            "target_id": self.target_id,
            "alpha": self.alpha,
            "features": dict(self.features),
            "deltas": dict(self.deltas),
            "uncertainty": self.uncertainty,
        }


def extract_features(action: str, success: float) -> Dict[str, float]:
    """Binary tag features plus the outcome's success in [0, 1]."""
    tags = set(action_tags(action))
    features = {name: 1.0 if tags & group else 0.0 for name, group in FEATURE_TAGS.items()}
    features["success"] = clamp01(success)
    return features


def update_intensity(core: ToMCore, observer_is_target: bool, config: ToMConfig) -> float:
    intensity = config.base_intensity * (0.5 + core.quality)
    if observer_is_target:
        intensity *= config.target_intensity_boost
    return clamp01(intensity)


def update_from_outcome(
    table: ToMTable,
    observer_id: str,
    outcome: ActionRecord,
    core: ToMCore,
    tick: int,
    config: Optional[ToMConfig] = None,
) -> ToMUpdate:
    """
    Fold one observed action into the observer's belief about its actor.

    Args:
        table: World-wide ToM table (mutated)
        observer_id: Agent who saw the action
        outcome: The executed action
        core: The observer's ToM core
        tick: Current tick
        config: Update rates

    Returns:
        ToMUpdate describing the change
    """
    config = config or ToMConfig()
    entry: ToMEntry = table.ensure(observer_id, outcome.actor_id)

    features = extract_features(outcome.action, outcome.success)
    intensity = update_intensity(core, outcome.target_id == observer_id, config)
    alpha = config.trust_alpha * intensity

    deltas: Dict[str, float] = {}
    for trait, model in TRAIT_MODELS.items():
        signal = sum(w * features.get(name, 0.0) for name, w in model.items())
        if signal == 0.0:
            continue
        before = entry.traits.get(trait)
        entry.traits.set(trait, before + alpha * signal)
        deltas[trait] = entry.traits.get(trait) - before

    tags = set(action_tags(outcome.action))
    for affect, group in AFFECT_TAGS.items():
        observed = 1.0 if tags & group else 0.0
        current = entry.affect.get(affect, 0.0)
        entry.affect[affect] = clamp01(current + alpha * (observed - current))

    strength = max(features[name] for name in FEATURE_TAGS)
    info_gain = clamp01(core.quality * (0.5 + 0.5 * strength))
    entry.uncertainty = clamp01(entry.uncertainty * (1.0 - config.unc_alpha) + (1.0 - info_gain) * config.unc_alpha)
    entry.confidence_overall = clamp01((1.0 - entry.uncertainty) * (0.5 + 0.5 * core.quality))
    entry.evidence_count += 1
    entry.last_updated_tick = tick

    logger.debug(f"ToM {observer_id}->{outcome.actor_id} after {outcome.action}: {deltas}")
    return ToMUpdate(
        observer_id=observer_id,
        target_id=outcome.actor_id,
        alpha=alpha,
        features=features,
        deltas=deltas,
        uncertainty=entry.uncertainty,
    )
