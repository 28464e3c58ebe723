"""
Action execution: resolves a chosen action against the world.

Success depends on the actor's fatigue and health. Effects are scaled by
success and touch the actor's body and emotions, the target's body and
emotions, and the target's relationship toward the actor.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..actions import ActionFamily, ActionRecord, get_action
from ..util import clamp01
from ..world import RelationEvent

if TYPE_CHECKING:
    from ..world import AgentState, WorldState

logger = logging.getLogger(__name__)

BASE_SUCCESS: Dict[ActionFamily, float] = {
    ActionFamily.DEFENSIVE: 0.9,
    ActionFamily.RECOVERY: 1.0,
    ActionFamily.PERCEPTION: 0.9,
    ActionFamily.SOCIAL: 0.8,
    ActionFamily.CARE: 0.85,
    ActionFamily.CONFLICT: 0.7,
    ActionFamily.VIOLENCE: 0.6,
}

EXERTION: Dict[ActionFamily, float] = {
    ActionFamily.DEFENSIVE: 0.06,
    ActionFamily.RECOVERY: 0.0,
    ActionFamily.PERCEPTION: 0.02,
    ActionFamily.SOCIAL: 0.02,
    ActionFamily.CARE: 0.04,
    ActionFamily.CONFLICT: 0.03,
    ActionFamily.VIOLENCE: 0.08,
}

# kind -> relation event kind recorded on the target's relationship
RELATION_EVENT_KIND = {
    "help": "help",
    "treat": "help",
    "guard": "support",
    "escort": "support",
    "talk": "talk",
    "ask_info": "talk",
    "negotiate": "deal",
    "trade": "deal",
    "investigate": "scrutiny",
    "accuse": "accusation",
    "threaten": "threat",
    "command": "command",
    "attack": "harm",
}

# kind -> target's relationship metric deltas toward the actor
RELATION_DELTAS: Dict[str, Dict[str, float]] = {
    "help": {"trust": 0.10, "closeness": 0.05, "obligation": 0.05},
    "treat": {"trust": 0.12, "closeness": 0.05, "obligation": 0.08},
    "guard": {"trust": 0.08, "obligation": 0.03},
    "escort": {"trust": 0.06, "respect": 0.03},
    "talk": {"closeness": 0.03},
    "ask_info": {"closeness": 0.02},
    "negotiate": {"trust": 0.04, "respect": 0.02},
    "trade": {"trust": 0.05},
    "investigate": {"trust": -0.03},
    "accuse": {"hostility": 0.10, "respect": -0.05, "trust": -0.05},
    "threaten": {"hostility": 0.12, "trust": -0.10},
    "command": {"respect": 0.02, "obligation": 0.03},
    "attack": {"hostility": 0.25, "trust": -0.20, "closeness": -0.05},
}

# kind -> target's emotion deltas
TARGET_EMOTIONS: Dict[str, Dict[str, float]] = {
    "attack": {"fear": 0.15, "anger": 0.15},
    "threaten": {"fear": 0.10, "anger": 0.05},
    "accuse": {"shame": 0.05, "anger": 0.08},
    "guard": {"fear": -0.05},
    "escort": {"fear": -0.04},
    "help": {"hope": 0.05},
    "treat": {"hope": 0.05},
}

# kind -> actor's emotion deltas
ACTOR_EMOTIONS: Dict[str, Dict[str, float]] = {
    "attack": {"guilt": 0.05, "anger": -0.05},
    "threaten": {"guilt": 0.02},
    "hide": {"fear": -0.05},
    "escape": {"fear": -0.08},
    "rest": {"fear": -0.02},
    "help": {"hope": 0.03},
}

INFO_ACTIONS = frozenset({"observe", "ask_info", "investigate"})


@dataclass
class ActionOutcome:
    """Result of executing one action."""
    record: ActionRecord
    effects: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> float:
        return self.record.success


def success_chance(agent: "AgentState", kind: str) -> float:
    """``base x (1 - 0.5 x fatigue) x (0.5 + 0.5 x hp)``, in [0, 1]."""
    base = BASE_SUCCESS.get(get_action(kind).family, 0.8)
    body = agent.body
    return clamp01(base * (1.0 - 0.5 * clamp01(body.fatigue)) * (0.5 + 0.5 * clamp01(body.hp)))


def _shift_emotions(agent: "AgentState", deltas: Dict[str, float], scale: float) -> Dict[str, float]:
    applied = {}
    for name, delta in deltas.items():
        before = agent.psych.emotion(name)
        agent.psych.emotions[name] = clamp01(before + delta * scale)
        applied[name] = agent.psych.emotions[name] - before
    return applied


def _apply_body(actor: "AgentState", target: Optional["AgentState"], kind: str, success: float) -> Dict[str, float]:
    effects: Dict[str, float] = {}
    family = get_action(kind).family
    body = actor.body

    body.fatigue = clamp01(body.fatigue + EXERTION.get(family, 0.02))
    if kind == "rest":
        body.fatigue = clamp01(body.fatigue - 0.15 * success)
        body.stress = clamp01(body.stress - 0.05 * success)
    elif kind in ("hide", "escape"):
        body.stress = clamp01(body.stress - 0.03 * success)
    elif family in (ActionFamily.CONFLICT, ActionFamily.VIOLENCE):
        body.stress = clamp01(body.stress + 0.03)

    if target is not None:
        if kind == "attack":
            damage = 0.15 * success
            target.body.hp = clamp01(target.body.hp - damage)
            target.body.pain = clamp01(target.body.pain + 0.2 * success)
            target.body.stress = clamp01(target.body.stress + 0.1 * success)
            effects["target_hp"] = -damage
        elif kind == "treat":
            heal = 0.1 * success
            target.body.hp = clamp01(target.body.hp + heal)
            target.body.pain = clamp01(target.body.pain - 0.1 * success)
            effects["target_hp"] = heal
        elif kind == "threaten":
            target.body.stress = clamp01(target.body.stress + 0.05 * success)
    return effects


def execute_action(
    world: "WorldState",
    agent: "AgentState",
    kind: str,
    target_id: Optional[str],
    tick: int,
) -> ActionOutcome:
    """
    Resolve one action and mutate the world in place.

    Args:
        world: World state (mutated)
        agent: Acting agent
        kind: Action kind
        target_id: Target agent for directed actions
        tick: Current tick

    Returns:
        ActionOutcome with the action record and applied effects

    Raises:
        UnknownAgentError: When ``target_id`` names no agent
    """
    target = world.get_agent(target_id) if target_id else None

    if agent.last_action == kind:
        agent.repeat_count += 1
    else:
        agent.last_action = kind
        agent.repeat_count = 1

    success = success_chance(agent, kind)
    effects: Dict[str, Any] = {"success": success}
    effects.update(_apply_body(agent, target, kind, success))
    effects["actor_emotions"] = _shift_emotions(agent, ACTOR_EMOTIONS.get(kind, {}), success)

    if kind in INFO_ACTIONS:
        agent.psych.info_need = clamp01(agent.psych.info_need - 0.1 * success)

    if target is not None:
        effects["target_emotions"] = _shift_emotions(target, TARGET_EMOTIONS.get(kind, {}), success)
        rel = target.relationship(agent.id)
        applied = {}
        for metric, delta in RELATION_DELTAS.get(kind, {}).items():
            before = getattr(rel, metric)
            applied[metric] = rel.adjust(metric, delta * success) - before
        effects["relationship"] = applied
        event_kind = RELATION_EVENT_KIND.get(kind)
        if event_kind:
            rel.remember(RelationEvent(tick=tick, kind=event_kind, actor_id=agent.id, intensity=success))
        if target.body.hp <= 0.0 and not target.collapsed:
            target.collapsed = True
            effects["target_collapsed"] = True
            logger.info(f"{target.id} collapsed after {kind} by {agent.id}")

    if kind == "command" and world.leader_id == agent.id:
        world.legitimacy = clamp01(world.legitimacy + 0.01 * success)

    record = ActionRecord(tick=tick, actor_id=agent.id, action=kind, target_id=target_id, success=success)
    logger.debug(f"{agent.id} {kind}->{target_id} success={success:.2f}")
    return ActionOutcome(record=record, effects=effects)
