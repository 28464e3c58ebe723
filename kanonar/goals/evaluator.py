"""
Concrete-goal evaluation.

A ``ConcreteGoalEvaluator`` turns combined axis logits into instantiated
goals. ``CatalogGoalEvaluator`` is the default: one goal per untargeted
definition, one per (definition, present other) for targeted ones, scored
with a softmax over raw logits.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

import numpy as np

from ..atoms.atomset import AtomSet
from ..atoms.model import Namespace, atom_id
from ..config import GoalConfig
from ..util import sanitize
from .catalog import GoalCatalog, GoalDef
from .logits import AxisLogits

logger = logging.getLogger(__name__)

# factor name -> (namespace, kind, metric, fallback) read on the (self, target) dyad
TARGET_FACTORS = {
    "rel.trust": (Namespace.REL, "state", "trust", 0.5),
    "rel.closeness": (Namespace.REL, "state", "closeness", 0.3),
    "rel.hostility": (Namespace.REL, "state", "hostility", 0.0),
    "rel.obligation": (Namespace.REL, "state", "obligation", 0.2),
    "tom.threat": (Namespace.TOM, "dyad", "threat", 0.1),
    "tom.vulnerability": (Namespace.TOM, "dyad", "vulnerability", 0.5),
    "tom.align": (Namespace.TOM, "dyad", "align", 0.5),
    "injury": (Namespace.WORLD, "injury", "", 0.0),
}


@dataclass
class GoalState:
    """
    One instantiated, scored goal.

    Attributes:
        id: ``<def_id>`` or ``<def_id>@<target_id>``
        def_id: Goal definition id
        domain: Primary axis
        base_logit: Axis-weighted logit
        dynamic_logit: Target-factor and bias contribution
        priority: Ordering key, overlays adjust it
        activation_score: Softmax score
        sacred: Exempt from negative overlays
        blocked: A blocking atom is present
        target_id: Other agent for targeted goals
        context_sources: Provenance of priority adjustments
        breakdown: Per-factor terms
    """
    id: str
    def_id: str
    domain: str
    base_logit: float = 0.0
    dynamic_logit: float = 0.0
    priority: float = 0.0
    activation_score: float = 0.0
    sacred: bool = False
    blocked: bool = False
    target_id: Optional[str] = None
    context_sources: List[str] = field(default_factory=list)
    breakdown: Dict[str, float] = field(default_factory=dict)

    @property
    def raw_logit(self) -> float:
        return self.base_logit + self.dynamic_logit

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "def_id": self.def_id,
            "domain": self.domain,
            "base_logit": self.base_logit,
            "dynamic_logit": self.dynamic_logit,
            "raw_logit": self.raw_logit,
            "priority": self.priority,
            "activation_score": self.activation_score,
            "sacred": self.sacred,
            "blocked": self.blocked,
            "target_id": self.target_id,
            "context_sources": list(self.context_sources),
            "breakdown": dict(self.breakdown),
        }


class ConcreteGoalEvaluator(Protocol):
    def evaluate(
        self,
        self_id: str,
        axis_logits: Dict[str, AxisLogits],
        atoms: AtomSet,
        others: Sequence[str],
    ) -> List[GoalState]:
        ...


def softmax(logits: Sequence[float], temperature: float = 1.0) -> np.ndarray:
    """Numerically stable softmax; empty input gives an empty array."""
    x = np.asarray(logits, dtype=float)
    if x.size == 0:
        return x
    x = np.nan_to_num(x, nan=0.0, posinf=1e6, neginf=-1e6) / max(temperature, 1e-6)
    x = x - x.max()
    e = np.exp(x)
    return e / e.sum()


class CatalogGoalEvaluator:
    """
    Default evaluator driven by a ``GoalCatalog``.

    Args:
        catalog: Goal axes and definitions
        config: Softmax temperature
    """

    def __init__(self, catalog: GoalCatalog, config: Optional[GoalConfig] = None):
        self.catalog = catalog
        self.config = config or GoalConfig()

    def _instantiate(
        self,
        goal: GoalDef,
        self_id: str,
        axis_logits: Dict[str, AxisLogits],
        atoms: AtomSet,
        target_id: Optional[str],
    ) -> GoalState:
        breakdown: Dict[str, float] = {}
        base = 0.0
        for axis, w in goal.axis_weights.items():
            term = w * axis_logits[axis].combined
            breakdown[f"axis.{axis}"] = term
            base += term

        dynamic = goal.bias
        if goal.bias:
            breakdown["bias"] = goal.bias
        if target_id is not None:
            for name, w in goal.target_factors.items():
                spec = TARGET_FACTORS.get(name)
                if spec is None:
                    continue
                ns, kind, metric, fallback = spec
                value = atoms.magnitude(atom_id(ns, kind, self_id, target_id, metric), fallback)
                breakdown[name] = w * value
                dynamic += w * value

        blocked = any(t.format(self=self_id) in atoms for t in goal.blocked_by)
        return GoalState(
            id=f"{goal.id}@{target_id}" if target_id else goal.id,
            def_id=goal.id,
            domain=goal.domain,
            base_logit=sanitize(base),
            dynamic_logit=sanitize(dynamic),
            sacred=goal.sacred,
            blocked=blocked,
            target_id=target_id,
            breakdown=breakdown,
        )

    def evaluate(
        self,
        self_id: str,
        axis_logits: Dict[str, AxisLogits],
        atoms: AtomSet,
        others: Sequence[str],
    ) -> List[GoalState]:
        goals: List[GoalState] = []
        for goal in self.catalog.goals.values():
            if goal.targeted:
                for other in others:
                    goals.append(self._instantiate(goal, self_id, axis_logits, atoms, other))
            else:
                goals.append(self._instantiate(goal, self_id, axis_logits, atoms, None))

        scores = softmax([g.raw_logit for g in goals], self.config.softmax_temperature)
        for goal, score in zip(goals, scores):
            goal.activation_score = float(score)
            goal.priority = float(score)
        return goals
