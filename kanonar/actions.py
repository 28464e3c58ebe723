"""
Action vocabulary shared by every stage of the pipeline.

Each action kind declares its family (used by cost and scoring), its tags
(used by theory-of-mind feature extraction and archetype tension), the goal
domains it serves, and which base prior feeds its learned-prior atom.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple


class ActionFamily(str, Enum):
    DEFENSIVE = "defensive"
    RECOVERY = "recovery"
    PERCEPTION = "perception"
    SOCIAL = "social"
    CARE = "care"
    CONFLICT = "conflict"
    VIOLENCE = "violence"


@dataclass(frozen=True)
class ActionSpec:
    kind: str
    family: ActionFamily
    label: str
    tags: Tuple[str, ...]
    directed: bool = False
    goal_domains: Tuple[str, ...] = ()
    prior: Optional[str] = None


def _spec(kind, family, label, tags, directed=False, domains=(), prior=None) -> ActionSpec:
    return ActionSpec(kind, family, label, tuple(tags), directed, tuple(domains), prior)


ACTIONS: Dict[str, ActionSpec] = {s.kind: s for s in (
    # self-only
    _spec("hide", ActionFamily.DEFENSIVE, "Hide", ["avoid", "defensive"], domains=["safety"]),
    _spec("escape", ActionFamily.DEFENSIVE, "Escape", ["avoid", "flee"], domains=["safety"]),
    _spec("wait", ActionFamily.RECOVERY, "Wait", ["passive"], domains=["rest"]),
    _spec("rest", ActionFamily.RECOVERY, "Rest", ["passive", "recover"], domains=["rest"]),
    _spec("observe", ActionFamily.PERCEPTION, "Observe", ["perceive"], domains=["knowledge"]),
    # other-directed
    _spec("talk", ActionFamily.SOCIAL, "Talk", ["social"], True, ["affiliation"], "ask_info"),
    _spec("ask_info", ActionFamily.SOCIAL, "Ask for information", ["social", "info"], True,
          ["knowledge", "affiliation"], "ask_info"),
    _spec("negotiate", ActionFamily.SOCIAL, "Negotiate", ["social", "deal"], True,
          ["control", "affiliation"], "negotiate"),
    _spec("trade", ActionFamily.SOCIAL, "Trade", ["social", "deal"], True, ["control", "status"], "negotiate"),
    _spec("help", ActionFamily.CARE, "Help", ["support", "help"], True, ["care", "affiliation"], "help"),
    _spec("treat", ActionFamily.CARE, "Treat wounds", ["support", "protect", "care"], True, ["care"], "help"),
    _spec("guard", ActionFamily.CARE, "Guard", ["protect", "support"], True, ["care", "safety"], "help"),
    _spec("escort", ActionFamily.CARE, "Escort", ["protect", "support", "leadership"], True,
          ["care", "safety"], "help"),
    _spec("investigate", ActionFamily.PERCEPTION, "Investigate", ["info", "perceive"], True,
          ["knowledge", "control"], "ask_info"),
    _spec("accuse", ActionFamily.CONFLICT, "Accuse", ["confront", "blame"], True, ["control", "duty"], "confront"),
    _spec("threaten", ActionFamily.CONFLICT, "Threaten", ["harm", "intimidate"], True, ["control"], "harm"),
    _spec("command", ActionFamily.CONFLICT, "Command", ["order", "command"], True,
          ["control", "status", "duty"], "confront"),
    _spec("attack", ActionFamily.VIOLENCE, "Attack", ["harm", "attack", "violence"], True,
          ["control", "safety"], "harm"),
)}

SELF_ACTIONS: Tuple[str, ...] = tuple(k for k, s in ACTIONS.items() if not s.directed)
OTHER_ACTIONS: Tuple[str, ...] = tuple(k for k, s in ACTIONS.items() if s.directed)

SOCIAL_FAMILIES: FrozenSet[ActionFamily] = frozenset({ActionFamily.SOCIAL, ActionFamily.CARE})
HIGH_COMMITMENT_CONFLICT: FrozenSet[str] = frozenset({"accuse", "threaten", "attack"})

FALLBACK_ACTION = "wait"


def get_action(kind: str) -> ActionSpec:
    """Spec for ``kind``; unknown kinds get a neutral social spec."""
    spec = ACTIONS.get(kind)
    if spec is None:
        return ActionSpec(kind, ActionFamily.SOCIAL, kind, ())
    return spec


def action_tags(kind: str) -> Tuple[str, ...]:
    return get_action(kind).tags


@dataclass(frozen=True)
class ActionRecord:
    """An executed action as later ticks perceive it."""
    tick: int
    actor_id: str
    action: str
    target_id: Optional[str] = None
    success: float = 1.0
