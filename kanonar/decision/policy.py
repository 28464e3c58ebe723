"""
Decision policy: turns an agent's snapshot into one chosen action.

The policy runs generation, gating, costing and scoring, then picks the top
allowed action. It never executes anything; the orchestrator does.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..actions import FALLBACK_ACTION, get_action
from ..atoms.atomset import AtomSet
from ..atoms.model import AtomTrace
from ..config import EngineConfig
from ..possibilities.model import Possibility
from ..possibilities.registry import DEFAULT_REGISTRY, BuilderRegistry, generate_possibilities
from .scoring import ScoredAction, score_all

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Intent:
    """An externally scripted action for one agent and one tick."""
    kind: str
    target_id: Optional[str] = None


@dataclass
class Decision:
    """
    Result of one agent's decision step.

    Attributes:
        agent_id: Deciding agent
        chosen: The action to execute (always allowed)
        ranked: Every scored candidate, best first
        scripted: True when ``chosen`` came from a scripted intent
        notes: Why the choice was made (fallbacks, rejected intents)
    """
    agent_id: str
    chosen: ScoredAction
    ranked: List[ScoredAction] = field(default_factory=list)
    scripted: bool = False
    notes: List[str] = field(default_factory=list)

    def to_dict(self, top: int = 5) -> Dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "chosen": self.chosen.to_dict(),
            "ranked": [s.to_dict() for s in self.ranked[:top]],
            "scripted": self.scripted,
            "notes": list(self.notes),
        }


def fallback_action(self_id: str) -> ScoredAction:
    """Zero-score wait, used when every candidate is blocked."""
    spec = get_action(FALLBACK_ACTION)
    possibility = Possibility(
        id=f"{FALLBACK_ACTION}:{self_id}",
        kind=spec.kind,
        label=spec.label,
        family=spec.family,
        magnitude=0.0,
        confidence=1.0,
        subject_id=self_id,
        trace=AtomTrace(notes=("fallback",)),
    )
    return ScoredAction(possibility=possibility, cost=0.0, score=0.0, allowed=True,
                        breakdown={"fallback": True})


class DecisionPolicy:
    """
    Bounded action selection over the possibility catalog.

    Example:
        >>> policy = DecisionPolicy(EngineConfig())
        >>> decision = policy.choose("mara", snapshot.atoms)
        >>> decision.chosen.kind
        'hide'
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        registry: Optional[BuilderRegistry] = None,
    ):
        self.config = config or EngineConfig()
        self.registry = registry if registry is not None else DEFAULT_REGISTRY

    def evaluate(self, self_id: str, atoms: AtomSet) -> List[ScoredAction]:
        """Generate and score every candidate, best first."""
        possibilities = generate_possibilities(self_id, atoms, self.registry, self.config.possibilities)
        return score_all(self_id, atoms, possibilities, self.config)

    def choose(self, self_id: str, atoms: AtomSet, intent: Optional[Intent] = None) -> Decision:
        """
        Pick the action for ``self_id``.

        A scripted ``intent`` wins when a matching candidate exists and is
        allowed; otherwise the best allowed candidate is chosen and the
        rejection is noted.
        """
        ranked = self.evaluate(self_id, atoms)
        notes: List[str] = []

        if intent is not None:
            match = next((s for s in ranked if s.kind == intent.kind and s.target_id == intent.target_id), None)
            if match is None:
                notes.append(f"intent {intent.kind}->{intent.target_id} unavailable")
            elif not match.allowed:
                notes.append(f"intent {intent.kind}->{intent.target_id} blocked: {', '.join(match.reasons)}")
            else:
                return Decision(self_id, match, ranked, scripted=True, notes=["scripted"])

        best = next((s for s in ranked if s.allowed), None)
        if best is None:
            notes.append("all candidates blocked; fallback")
            best = fallback_action(self_id)
        if notes:
            logger.debug(f"Decision for {self_id}: {'; '.join(notes)}")
        return Decision(self_id, best, ranked, notes=notes)
