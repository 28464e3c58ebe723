"""
Archetype catalog.

Each archetype belongs to a mu group (orientation class):

- SR: self-directed, radical
- OR: other-directed, reactive
- SN: self-directed, normative
- ON: other-directed, normative

Metric vectors are used for identity tension and the self/observed gap.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..errors import ConfigurationError

MU_GROUPS = ("SR", "OR", "SN", "ON")
METRIC_KEYS = ("agency", "sociality", "aggression", "order", "care", "openness")


@dataclass(frozen=True)
class Archetype:
    """
    Attributes:
        id: Archetype id
        mu: Mu group, one of ``MU_GROUPS``
        metrics: metric -> value in [0, 1]; missing metrics read 0.5
        preferred_tags: Action tags that are on-brand
        avoided_tags: Action tags that are off-brand
        goal_mods: goal definition id -> bias; above 0.2 counts as on-brand
        shadow_id: Archetype this one flips toward under tension
    """
    id: str
    mu: str
    label: str = ""
    metrics: Dict[str, float] = field(default_factory=dict)
    preferred_tags: Tuple[str, ...] = ()
    avoided_tags: Tuple[str, ...] = ()
    goal_mods: Dict[str, float] = field(default_factory=dict)
    shadow_id: Optional[str] = None

    def metric(self, key: str) -> float:
        return self.metrics.get(key, 0.5)


class ArchetypeCatalog:
    """Read-only archetype lookup, in declaration order."""

    def __init__(self, archetypes: List[Archetype]):
        for arch in archetypes:
            if arch.mu not in MU_GROUPS:
                raise ConfigurationError(f"Archetype {arch.id!r} has unknown mu group {arch.mu!r}")
        self._archetypes: Dict[str, Archetype] = {a.id: a for a in archetypes}

    def get(self, archetype_id: Optional[str]) -> Optional[Archetype]:
        if archetype_id is None:
            return None
        return self._archetypes.get(archetype_id)

    def all(self) -> List[Archetype]:
        return list(self._archetypes.values())

    def __contains__(self, archetype_id: object) -> bool:
        return archetype_id in self._archetypes

    def __len__(self) -> int:
        return len(self._archetypes)


DEFAULT_ARCHETYPES = [
    Archetype(
        "rebel", "SR", "Rebel",
        metrics={"agency": 0.9, "sociality": 0.4, "aggression": 0.7, "order": 0.1, "care": 0.4, "openness": 0.8},
        preferred_tags=("confront", "blame", "intimidate"), avoided_tags=("order", "passive"),
        goal_mods={"contain_threat": 0.3, "follow_orders": -0.4}, shadow_id="tool",
    ),
    Archetype(
        "trickster", "SR", "Trickster",
        metrics={"agency": 0.8, "sociality": 0.7, "aggression": 0.3, "order": 0.2, "care": 0.3, "openness": 0.9},
        preferred_tags=("deal", "info", "social"), avoided_tags=("order", "violence"),
        goal_mods={"gain_status": 0.3, "seek_information": 0.25}, shadow_id="hermit",
    ),
    Archetype(
        "hermit", "OR", "Hermit",
        metrics={"agency": 0.4, "sociality": 0.1, "aggression": 0.1, "order": 0.5, "care": 0.3, "openness": 0.4},
        preferred_tags=("avoid", "passive", "perceive"), avoided_tags=("social", "command"),
        goal_mods={"protect_self": 0.3, "rest": 0.25}, shadow_id="rebel",
    ),
    Archetype(
        "martyr", "OR", "Martyr",
        metrics={"agency": 0.3, "sociality": 0.6, "aggression": 0.1, "order": 0.6, "care": 0.9, "openness": 0.5},
        preferred_tags=("support", "protect", "care"), avoided_tags=("harm", "flee"),
        goal_mods={"aid_ally": 0.4, "protect_other": 0.3}, shadow_id="rebel",
    ),
    Archetype(
        "guardian", "SN", "Guardian",
        metrics={"agency": 0.7, "sociality": 0.6, "aggression": 0.4, "order": 0.8, "care": 0.8, "openness": 0.4},
        preferred_tags=("protect", "support", "defensive"), avoided_tags=("flee", "betrayal"),
        goal_mods={"protect_other": 0.4, "contain_threat": 0.25}, shadow_id="hermit",
    ),
    Archetype(
        "leader", "SN", "Leader",
        metrics={"agency": 0.9, "sociality": 0.8, "aggression": 0.4, "order": 0.8, "care": 0.5, "openness": 0.5},
        preferred_tags=("order", "command", "leadership"), avoided_tags=("passive", "flee"),
        goal_mods={"gain_status": 0.3, "follow_orders": 0.1}, shadow_id="tool",
    ),
    Archetype(
        "tool", "ON", "Tool",
        metrics={"agency": 0.2, "sociality": 0.4, "aggression": 0.3, "order": 0.9, "care": 0.3, "openness": 0.2},
        preferred_tags=("order", "passive"), avoided_tags=("confront", "blame"),
        goal_mods={"follow_orders": 0.4}, shadow_id="rebel",
    ),
    Archetype(
        "soldier", "ON", "Soldier",
        metrics={"agency": 0.5, "sociality": 0.5, "aggression": 0.7, "order": 0.9, "care": 0.4, "openness": 0.2},
        preferred_tags=("protect", "attack", "order"), avoided_tags=("flee", "deal"),
        goal_mods={"follow_orders": 0.3, "contain_threat": 0.3}, shadow_id="martyr",
    ),
]


def default_archetypes() -> ArchetypeCatalog:
    return ArchetypeCatalog(DEFAULT_ARCHETYPES)
