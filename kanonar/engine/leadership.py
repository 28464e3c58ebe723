"""
Leadership: the group leader is whoever the others believe dominant,
competent and trustworthy, with hysteresis so leadership does not flap.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional

if TYPE_CHECKING:
    from ..world import WorldState

logger = logging.getLogger(__name__)

LEADER_WEIGHTS = {"dominance": 0.5, "trust": 0.3, "competence": 0.2}
HYSTERESIS = 0.1


@dataclass
class LeaderChange:
    previous_id: Optional[str]
    leader_id: str
    score: float


def leader_scores(world: "WorldState") -> Dict[str, float]:
    """
    Mean believed standing of each active agent among the other active agents.

    Observers without a belief about a candidate contribute the neutral 0.5.
    """
    active = [a for a in world.agents.values() if not a.collapsed]
    scores: Dict[str, float] = {}
    for candidate in active:
        observers = [o for o in active if o.id != candidate.id]
        if not observers:
            scores[candidate.id] = 0.5
            continue
        total = 0.0
        for observer in observers:
            entry = world.tom.get(observer.id, candidate.id)
            if entry is None:
                total += 0.5
                continue
            total += sum(w * entry.traits.get(name) for name, w in LEADER_WEIGHTS.items())
        scores[candidate.id] = total / len(observers)
    return scores


def maybe_change_leader(world: "WorldState", hysteresis: float = HYSTERESIS) -> Optional[LeaderChange]:
    """
    Re-evaluate leadership.

    The best-scoring agent takes over only when it beats the incumbent by
    more than ``hysteresis``, or when there is no active incumbent. Ties go
    to the earlier agent in world order. Legitimacy tracks the leader's
    score.
    """
    scores = leader_scores(world)
    if not scores:
        return None

    best_id = max(scores, key=lambda k: scores[k])
    current = world.find_agent(world.leader_id)
    if current is not None and not current.collapsed:
        current_score = scores.get(current.id, 0.0)
        world.legitimacy = current_score
        if best_id == current.id or scores[best_id] <= current_score + hysteresis:
            return None

    previous = world.leader_id
    world.leader_id = best_id
    world.legitimacy = scores[best_id]
    logger.info(f"Leader changed: {previous} -> {best_id} (score {scores[best_id]:.2f})")
    return LeaderChange(previous_id=previous, leader_id=best_id, score=scores[best_id])
