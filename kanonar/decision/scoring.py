"""
Utility scoring of gated, costed possibilities.

score = clamp01(mix(raw, goal_bonus) x context_multiplier), where

- raw = clamp01(availability x (1 - cost) + preference)
- goal_bonus = tanh(gain x goal alignment)
- context_multiplier depends on the action family and the situational key
  (danger, uncertainty, surveillance, crowding, privacy), so context can
  override stable traits.

Scoring is pure: it reads atoms and returns a ``ScoredAction`` with the full
breakdown, and never mutates anything.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..actions import ActionFamily, get_action
from ..atoms.atomset import AtomSet
from ..atoms.model import Namespace, atom_id
from ..config import EngineConfig
from ..possibilities.model import Possibility
from ..util import clamp, clamp01
from .cost import compute_cost
from .gating import gate_possibility

CONTEXT_AXES = ("danger", "uncertainty", "surveillance", "crowd", "privacy")

# Multiplier weights per family over CONTEXT_AXES.
CONTEXT_WEIGHTS: Dict[ActionFamily, Tuple[float, ...]] = {
    ActionFamily.DEFENSIVE: (0.60, 0.10, 0.10, 0.00, -0.10),
    ActionFamily.RECOVERY: (-0.50, 0.00, 0.00, -0.10, 0.20),
    ActionFamily.PERCEPTION: (0.10, 0.40, 0.00, 0.00, 0.00),
    ActionFamily.SOCIAL: (-0.40, 0.10, -0.30, -0.10, 0.30),
    ActionFamily.CARE: (-0.10, 0.00, -0.10, -0.10, 0.20),
    ActionFamily.CONFLICT: (-0.20, -0.20, -0.30, 0.10, 0.10),
    ActionFamily.VIOLENCE: (0.10, -0.30, -0.40, -0.10, 0.20),
}

DEFENSIVE_KINDS = frozenset({"escape", "hide"})
HOSTILE_KINDS = frozenset({"accuse", "threaten", "attack"})


@dataclass
class ScoredAction:
    """
    A possibility after gating, costing and scoring.

    Attributes:
        possibility: The scored candidate
        cost: Scalar cost in [0, 1]
        score: Final score in [0, 1]
        allowed: False when any gate fired
        blocked_by: Present blocking atom ids
        reasons: Gate reasons (blocking ids and persona gates)
        breakdown: Every intermediate term, serializable
    """
    possibility: Possibility
    cost: float
    score: float
    allowed: bool
    blocked_by: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)
    breakdown: Dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.possibility.id

    @property
    def kind(self) -> str:
        return self.possibility.kind

    @property
    def target_id(self) -> Optional[str]:
        return self.possibility.target_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "possibility": self.possibility.to_dict(),
            "cost": self.cost,
            "score": self.score,
            "allowed": self.allowed,
            "blocked_by": list(self.blocked_by),
            "reasons": list(self.reasons),
            "breakdown": self.breakdown,
        }


def _bucket(value: float) -> int:
    if value >= 0.66:
        return 2
    if value >= 0.33:
        return 1
    return 0


def context_key(values: Dict[str, float]) -> str:
    """
    Compact, stable key for the situational vector.

    Example:
        >>> context_key({"danger": 0.9, "uncertainty": 0.1, "surveillance": 0.0, "crowd": 0.5, "privacy": 0.7})
        'danger:2|uncertainty:0|surveillance:0|crowd:1|privacy:2'
    """
    return "|".join(f"{axis}:{_bucket(values.get(axis, 0.0))}" for axis in CONTEXT_AXES)


def context_multiplier(family: ActionFamily, values: Dict[str, float], config: EngineConfig) -> float:
    weights = CONTEXT_WEIGHTS.get(family, (0.0,) * len(CONTEXT_AXES))
    raw = 1.0 + sum(w * values.get(axis, 0.0) for w, axis in zip(weights, CONTEXT_AXES))
    return clamp(raw, config.scoring.multiplier_min, config.scoring.multiplier_max)


def preference_terms(self_id: str, atoms: AtomSet, possibility: Possibility) -> Dict[str, float]:
    """Small trait, emotion and relationship-history terms, by name."""
    def trait(name: str) -> float:
        return atoms.magnitude(atom_id(Namespace.TRAIT, name, self_id), 0.0)

    def feel(name: str) -> float:
        return atoms.magnitude(atom_id(Namespace.FEEL, name, self_id), 0.0)

    terms: Dict[str, float] = {}
    family = possibility.family
    kind = possibility.kind

    if family is ActionFamily.DEFENSIVE:
        terms["safety_need"] = 0.25 * trait("safety_need")
        terms["paranoia"] = 0.20 * trait("paranoia")
        terms["power_drive"] = -0.15 * trait("power_drive")
    elif family in (ActionFamily.SOCIAL, ActionFamily.CARE):
        terms["care"] = 0.20 * trait("care")
        terms["paranoia"] = -0.15 * trait("paranoia")

    if kind in DEFENSIVE_KINDS:
        terms["fear"] = 0.30 * feel("fear")
    if kind in ("attack", "threaten"):
        terms["anger"] = 0.25 * feel("anger")
    if kind == "attack":
        terms["shame"] = -0.20 * feel("shame")

    other = possibility.target_id
    if other:
        harmed = atoms.magnitude(atom_id(Namespace.EVENT, "harmedBy", self_id, other), 0.0)
        helped = atoms.magnitude(atom_id(Namespace.EVENT, "helpedBy", self_id, other), 0.0)
        if kind in HOSTILE_KINDS and harmed:
            terms["harmed_by_target"] = 0.20 * harmed
        if kind in ("help", "talk") and helped:
            terms["helped_by_target"] = 0.15 * helped
        if kind == "attack" and helped:
            terms["helped_by_target"] = -0.20 * helped
    return terms


def goal_alignment(self_id: str, atoms: AtomSet, possibility: Possibility) -> Tuple[float, List[str]]:
    """
    Activation-weighted goal match for a possibility.

    Sums, over active goals, activation x domain match (the goal's
    ``domain:<axis>`` tag against the action's goal domains) plus explicit
    ``util:allow:<self>:<goal>:<action>`` links x activation. Goals aimed
    at a different agent than the possibility's target do not count.
    """
    domains = set(get_action(possibility.kind).goal_domains)
    total = 0.0
    used: List[str] = []
    for goal in atoms.find(Namespace.GOAL, "active", self_id):
        goal_target = goal.metric or None
        if goal_target and possibility.target_id and goal_target != possibility.target_id:
            continue
        activation = clamp01(goal.magnitude)
        goal_domains = {t.split(":", 1)[1] for t in goal.tags if t.startswith("domain:")}
        contributed = False
        if goal_domains & domains:
            total += activation
            contributed = True
        link_id = atom_id(Namespace.UTIL, "allow", self_id, goal.target or "", possibility.kind)
        if link_id in atoms:
            total += clamp01(atoms.magnitude(link_id, 0.0)) * activation
            used.append(link_id)
            contributed = True
        if contributed:
            used.append(goal.id)
    return total, used


def score_possibility(
    self_id: str,
    atoms: AtomSet,
    possibility: Possibility,
    config: Optional[EngineConfig] = None,
) -> ScoredAction:
    """
    Gate, cost and score one possibility.

    Args:
        self_id: Acting agent
        atoms: Snapshot atoms (goal atoms included)
        possibility: Candidate action
        config: Engine tuning

    Returns:
        ScoredAction with a complete breakdown
    """
    config = config or EngineConfig()
    gate = gate_possibility(self_id, atoms, possibility, config.gating)
    cost = compute_cost(self_id, atoms, possibility, config.cost)

    availability = clamp01(possibility.magnitude)
    prefs = preference_terms(self_id, atoms, possibility)
    preference = config.scoring.preference_scale * sum(prefs.values())
    raw = clamp01(availability * (1.0 - cost.total) + preference)

    alignment, goal_ids = goal_alignment(self_id, atoms, possibility)
    goal_bonus = clamp01(math.tanh(config.scoring.goal_gain * alignment))
    mix = config.scoring.goal_mix
    mixed = (1.0 - mix) * raw + mix * goal_bonus

    values = {axis: clamp01(atoms.magnitude(atom_id(Namespace.CTX, axis, self_id), 0.0)) for axis in CONTEXT_AXES}
    multiplier = context_multiplier(possibility.family, values, config)
    score = clamp01(mixed * multiplier)

    breakdown = {
        "availability": availability,
        "cost": cost.to_dict(),
        "preference": preference,
        "preference_terms": prefs,
        "raw": raw,
        "goal_alignment": alignment,
        "goal_bonus": goal_bonus,
        "mixed": mixed,
        "context": values,
        "context_key": context_key(values),
        "multiplier": multiplier,
        "score": score,
        "used_atom_ids": list(possibility.trace.used_atom_ids) + goal_ids,
    }
    return ScoredAction(
        possibility=possibility,
        cost=cost.total,
        score=score,
        allowed=gate.allowed,
        blocked_by=gate.blocked_by,
        reasons=gate.reasons,
        breakdown=breakdown,
    )


def rank_actions(scored: Iterable[ScoredAction]) -> List[ScoredAction]:
    """Allowed actions first, then by score descending; ties broken by id."""
    return sorted(scored, key=lambda s: (not s.allowed, -s.score, s.id))


def score_all(
    self_id: str,
    atoms: AtomSet,
    possibilities: Iterable[Possibility],
    config: Optional[EngineConfig] = None,
) -> List[ScoredAction]:
    """Score and rank a batch of possibilities."""
    return rank_actions(score_possibility(self_id, atoms, p, config) for p in possibilities)
