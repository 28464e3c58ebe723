"""
Archetype tension, shadow flips and probabilistic identity drift.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence

import numpy as np

from ..config import DriftConfig
from ..util import clamp01, sigmoid
from .catalog import METRIC_KEYS, Archetype, ArchetypeCatalog

if TYPE_CHECKING:
    from ..world import AgentState, ArchetypeState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DriftRule:
    """Adds ``boost`` to candidates in ``target_mu`` when ``condition`` holds."""
    target_mu: str
    boost: float
    condition: Callable[[Dict[str, float], float, float, float], bool]
    name: str = ""


# condition(trauma, guilt, shame, self_gap)
DRIFT_RULES: List[DriftRule] = [
    DriftRule("SR", 0.05, lambda t, g, s, gap: t["system"] > 0.6, "system_trauma_radical"),
    DriftRule("OR", 0.10, lambda t, g, s, gap: t["system"] > 0.8, "system_trauma_withdrawal"),
    DriftRule("OR", 0.05, lambda t, g, s, gap: t["world"] > 0.5, "world_trauma_withdrawal"),
    DriftRule("ON", 0.05, lambda t, g, s, gap: t["self"] > 0.6, "self_trauma_tool"),
    DriftRule("OR", 0.10, lambda t, g, s, gap: t["self"] > 0.8, "self_trauma_victim"),
    DriftRule("OR", 0.05, lambda t, g, s, gap: t["others"] > 0.7, "others_trauma_withdrawal"),
    DriftRule("OR", 0.10, lambda t, g, s, gap: g > 0.6 and gap > 0.4, "guilt_martyr"),
    DriftRule("SR", 0.05, lambda t, g, s, gap: s > 0.7 and gap > 0.3, "shame_compensation"),
]

BASE_CANDIDATE_WEIGHT = 0.1


@dataclass
class TensionUpdate:
    tension: float
    on_brand: bool
    off_brand: bool
    shadow_flip: bool


@dataclass
class DriftResult:
    """Outcome of one drift check."""
    probability: float
    roll: float
    drifted: bool = False
    new_self_id: Optional[str] = None
    actual_overwritten: bool = False


def _vector(arch: Archetype) -> np.ndarray:
    return np.array([arch.metric(k) for k in METRIC_KEYS], dtype=float)


def metric_distance(a: Archetype, b: Archetype) -> float:
    """Mean absolute metric difference in [0, 1]."""
    return float(np.mean(np.abs(_vector(a) - _vector(b))))


def self_gap(a: Optional[Archetype], b: Optional[Archetype]) -> float:
    """Cosine gap between two archetype metric vectors, mapped to [0, 1]."""
    if a is None or b is None:
        return 0.0
    va, vb = _vector(a), _vector(b)
    na, nb = np.linalg.norm(va), np.linalg.norm(vb)
    if na == 0 or nb == 0:
        return 0.0
    cos = float(np.dot(va, vb) / (na * nb))
    return 1.0 - clamp01((cos + 1.0) / 2.0)


def update_tension(
    state: "ArchetypeState",
    action_tags: Sequence[str],
    top_goal_id: Optional[str],
    archetype: Optional[Archetype],
    config: Optional[DriftConfig] = None,
) -> TensionUpdate:
    """
    Update identity tension after an action.

    On-brand actions or goals lower tension, off-brand actions raise it,
    and a neutral action lets it decay. Above the flip threshold with a
    shadow defined, shadow activation rises and tension resets.
    """
    config = config or DriftConfig()
    tags = set(action_tags)
    on_action = bool(archetype and tags & set(archetype.preferred_tags))
    off_action = bool(archetype and tags & set(archetype.avoided_tags))
    on_goal = bool(archetype and top_goal_id and archetype.goal_mods.get(top_goal_id, 0.0) > 0.2)

    tension = clamp01(state.tension)
    if on_goal or on_action:
        tension = max(0.0, tension - config.on_brand_delta)
    if off_action:
        tension = min(1.0, tension + config.off_brand_delta)
    if not on_action and not off_action:
        tension *= config.neutral_decay
    state.tension = clamp01(tension)

    flipped = False
    if state.tension > config.flip_threshold and state.shadow_id:
        state.shadow_activation = clamp01(state.shadow_activation + config.shadow_step)
        state.tension = config.flip_reset
        flipped = True
        logger.info(f"Shadow flip toward {state.shadow_id} (activation {state.shadow_activation:.2f})")

    return TensionUpdate(state.tension, on_action or on_goal, off_action, flipped)


def refresh_identity_profile(agent: "AgentState", catalog: ArchetypeCatalog, config: Optional[DriftConfig] = None) -> None:
    """Create or smooth the agent's self/observed identity profile."""
    from ..world import IdentityProfile

    config = config or DriftConfig()
    state = agent.archetype
    if state is None:
        return
    actual = catalog.get(state.actual_id)
    selfa = catalog.get(state.self_id)
    tension = metric_distance(actual, selfa) if actual and selfa else 0.0

    if agent.identity is None:
        agent.identity = IdentityProfile(state.actual_id, state.self_id, tension)
        return
    agent.identity.observed_id = state.actual_id
    agent.identity.self_id = state.self_id
    k = config.identity_smoothing
    agent.identity.tension_self_observed = clamp01(k * agent.identity.tension_self_observed + (1.0 - k) * tension)


def drift_probability(agent: "AgentState", gap: float, config: DriftConfig) -> float:
    tension = agent.identity.tension_self_observed if agent.identity else 0.0
    guilt = agent.psych.emotion("guilt")
    shame = agent.psych.emotion("shame")
    x = (tension + 0.4 * agent.body.stress + 1.5 * agent.psych.avg_trauma
         + 0.5 * gap + 0.3 * (guilt + shame) - config.drift_bias)
    return sigmoid(config.drift_gain * x)


def pick_drift_target(
    agent: "AgentState",
    catalog: ArchetypeCatalog,
    gap: float,
) -> Optional[str]:
    """Highest-weighted candidate under the drift rules; the shadow when none qualifies."""
    state = agent.archetype
    trauma = {k: agent.psych.trauma.get(k, 0.0) for k in ("self", "others", "world", "system")}
    guilt = agent.psych.emotion("guilt")
    shame = agent.psych.emotion("shame")

    best = state.shadow_id
    best_weight = 0.0
    for arch in catalog.all():
        if arch.id == state.actual_id:
            continue
        weight = BASE_CANDIDATE_WEIGHT
        for rule in DRIFT_RULES:
            if arch.mu == rule.target_mu and rule.condition(trauma, guilt, shame, gap):
                weight += rule.boost
        if weight > best_weight:
            best_weight = weight
            best = arch.id
    return best


def check_drift(
    agent: "AgentState",
    catalog: ArchetypeCatalog,
    rng: random.Random,
    config: Optional[DriftConfig] = None,
) -> DriftResult:
    """
    Probabilistic drift of the self-perceived archetype.

    A drift event fires when ``rng.random() < drift_scale * p``. It sets
    the self archetype and, only under severe trauma or a large self gap,
    the actual (observed) archetype too.
    """
    config = config or DriftConfig()
    state = agent.archetype
    if state is None or agent.identity is None:
        return DriftResult(probability=0.0, roll=1.0)

    gap = self_gap(catalog.get(state.actual_id), catalog.get(state.self_id))
    p = drift_probability(agent, gap, config)
    roll = rng.random()
    result = DriftResult(probability=p, roll=roll)
    if roll >= config.drift_scale * p:
        return result

    target = pick_drift_target(agent, catalog, gap)
    if target:
        state.self_id = target
        agent.identity.self_id = target
        result.drifted = True
        result.new_self_id = target
        if agent.psych.avg_trauma > config.severe_trauma or gap > config.severe_gap:
            state.actual_id = target
            agent.identity.observed_id = target
            result.actual_overwritten = True
        logger.info(f"Archetype drift for {agent.id}: self -> {target}"
                    f"{' (actual overwritten)' if result.actual_overwritten else ''}")
    agent.identity.tension_self_observed = 0.0
    return result
