"""
Goal ecology: the full scored goal set of one agent for one tick.

Pipeline:
1. axis logits (trait, biography, context) combined with context weighting
   and the danger veto;
2. concrete-goal evaluation;
3. sort and partition into execute (top-K) / latent;
4. location and ToM/threat overlays (signed, floor-clamped, with
   provenance);
5. re-partition, so the final partition is ordered.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from ..atoms.model import Atom, Namespace, make_atom
from ..config import GoalConfig, ToMConfig
from ..errors import GoalCatalogError
from ..tom.table import ToMEntry
from ..tom.threat import relative_threat
from ..util import clamp01, sanitize
from .catalog import GoalCatalog
from .evaluator import CatalogGoalEvaluator, ConcreteGoalEvaluator, GoalState
from .logits import AxisLogits, combine_logits

if TYPE_CHECKING:
    from ..atoms.snapshot import Snapshot
    from ..world import AgentState, WorldState

logger = logging.getLogger(__name__)


@dataclass
class GoalEcology:
    """
    Partitioned goal set.

    ``execute`` and ``latent`` together hold every scored goal, ordered by
    priority descending, and every execute goal ranks at least as high as
    every latent one. ``queue`` mirrors ``latent``; ``drop`` stays empty.
    """
    agent_id: str
    tick: int = 0
    execute: List[GoalState] = field(default_factory=list)
    latent: List[GoalState] = field(default_factory=list)
    queue: List[GoalState] = field(default_factory=list)
    drop: List[GoalState] = field(default_factory=list)
    axis_logits: Dict[str, AxisLogits] = field(default_factory=dict)

    @classmethod
    def empty(cls, agent_id: str, tick: int = 0) -> "GoalEcology":
        return cls(agent_id=agent_id, tick=tick)

    @property
    def all_goals(self) -> List[GoalState]:
        return self.execute + self.latent

    @property
    def top(self) -> Optional[GoalState]:
        return self.execute[0] if self.execute else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "tick": self.tick,
            "execute": [g.to_dict() for g in self.execute],
            "latent": [g.to_dict() for g in self.latent],
            "queue": [g.id for g in self.queue],
            "drop": [g.id for g in self.drop],
            "axis_logits": {k: v.to_dict() for k, v in self.axis_logits.items()},
        }


def partition(goals: List[GoalState], top_k: int) -> Tuple[List[GoalState], List[GoalState]]:
    """Sort by priority (ties by id) and split into top-K and the rest."""
    ordered = sorted(goals, key=lambda g: (-g.priority, g.id))
    return ordered[:top_k], ordered[top_k:]


def _adjust(goal: GoalState, delta: float, source: str, config: GoalConfig) -> None:
    if goal.sacred and delta < 0:
        return
    scaled = config.overlay_gain * sanitize(delta)
    if scaled == 0.0:
        return
    goal.priority = max(config.priority_floor, sanitize(goal.priority + scaled))
    goal.context_sources.append(f"{source}:{scaled:+.3f}")


def apply_location_overlay(
    goals: List[GoalState],
    world: "WorldState",
    agent: "AgentState",
    config: GoalConfig,
) -> None:
    """Hazard at the agent's cell pushes self-protection and escape; authors add goal biases."""
    location = world.location_of(agent)
    if location is None:
        return
    hazard = location.cell_hazard(agent.position, location.hazard)
    source = f"location:{location.id}"
    for goal in goals:
        delta = 0.0
        if goal.def_id == "protect_self":
            delta += hazard
        elif goal.def_id == "escape":
            delta += hazard * location.exits
        delta += location.goal_bias.get(goal.def_id, 0.0)
        _adjust(goal, delta, source, config)


# minimum delta before a belief moves a goal at all
SAFETY_THRESHOLD = 0.1
CONTAIN_THRESHOLD = 0.2
SUPPORT_THRESHOLD = 0.1
BOND_THRESHOLD = 0.1


def tom_goal_deltas(entry: ToMEntry, threat: float) -> Dict[str, float]:
    """
    Per-definition deltas that one belief about another agent implies.

    ``threat`` is the relative threat of the other agent, not the raw
    belief reading. Deltas below their threshold are left out.
    """
    trust = entry.traits.trust
    align = entry.traits.align
    deltas: Dict[str, float] = {}

    if threat > SAFETY_THRESHOLD:
        deltas["protect_self"] = threat
        deltas["escape"] = 0.7 * threat

    contain = threat * max(0.0, 1.0 - trust)
    if contain > CONTAIN_THRESHOLD:
        deltas["contain_threat"] = contain

    support = max(0.0, align) * (1.0 - threat) * 0.6
    if support > SUPPORT_THRESHOLD:
        deltas["aid_ally"] = support
        deltas["protect_other"] = 0.8 * support

    bond = max(0.0, 0.6 * trust + 0.4 * align) * (1.0 - threat)
    if bond > BOND_THRESHOLD:
        deltas["maintain_bonds"] = bond
    return deltas


def apply_tom_overlay(
    goals: List[GoalState],
    world: "WorldState",
    agent: "AgentState",
    config: GoalConfig,
    tom_config: Optional[ToMConfig] = None,
) -> None:
    """
    Beliefs about present others adjust goals.

    Targeted goals take the delta for their own target; untargeted ones
    take the strongest delta over all present others.
    """
    untargeted: Dict[str, Tuple[float, str]] = {}
    per_target: Dict[Tuple[str, str], float] = {}
    for other in world.present_with(agent):
        entry = world.tom.get(agent.id, other.id) or ToMEntry(agent.id, other.id)
        threat = relative_threat(world, agent, other, tom_config)
        for def_id, delta in tom_goal_deltas(entry, threat).items():
            per_target[(def_id, other.id)] = delta
            if delta > untargeted.get(def_id, (float("-inf"), ""))[0]:
                untargeted[def_id] = (delta, other.id)

    for goal in goals:
        if goal.target_id is not None:
            delta = per_target.get((goal.def_id, goal.target_id))
            if delta is not None:
                _adjust(goal, delta, f"tom:{goal.target_id}", config)
        elif goal.def_id in untargeted:
            delta, other_id = untargeted[goal.def_id]
            _adjust(goal, delta, f"tom:{other_id}", config)


def compute_goal_ecology(
    world: "WorldState",
    agent_id: str,
    snapshot: Optional["Snapshot"],
    catalog: Optional[GoalCatalog],
    config: Optional[GoalConfig] = None,
    evaluator: Optional[ConcreteGoalEvaluator] = None,
    tom_config: Optional[ToMConfig] = None,
) -> GoalEcology:
    """
    Compute the goal ecology of one agent.

    Args:
        world: World state (read only)
        agent_id: Agent to compute for
        snapshot: The agent's snapshot this tick (atoms and domains)
        catalog: Goal axes and definitions
        config: Ecology knobs
        evaluator: Concrete-goal evaluator (defaults to the catalog evaluator)
        tom_config: Threat settings for the ToM overlay

    Returns:
        The ecology; empty when the agent or its snapshot is missing

    Raises:
        GoalCatalogError: When the goal-axis catalog is missing
    """
    if catalog is None or not catalog.axes:
        raise GoalCatalogError("Goal-axis catalog is missing")
    config = config or GoalConfig()

    agent = world.find_agent(agent_id)
    if agent is None or snapshot is None:
        logger.debug(f"No goal ecology for {agent_id}: agent or snapshot missing")
        return GoalEcology.empty(agent_id, world.tick)

    atoms = snapshot.atoms
    logits = combine_logits(agent.traits, agent.biography, snapshot.domains, atoms, agent.id, catalog, config)
    evaluator = evaluator or CatalogGoalEvaluator(catalog, config)
    goals = evaluator.evaluate(agent.id, logits, atoms, snapshot.frame.present_ids)
    for goal in goals:
        goal.priority = sanitize(goal.priority)
        goal.activation_score = clamp01(goal.activation_score)

    execute, latent = partition(goals, config.top_k)
    apply_location_overlay(execute + latent, world, agent, config)
    apply_tom_overlay(execute + latent, world, agent, config, tom_config)
    execute, latent = partition(execute + latent, config.top_k)

    return GoalEcology(
        agent_id=agent.id,
        tick=world.tick,
        execute=execute,
        latent=latent,
        queue=list(latent),
        drop=[],
        axis_logits=logits,
    )


def goal_atoms(ecology: GoalEcology, catalog: GoalCatalog) -> List[Atom]:
    """
    ``goal:active`` and ``util:allow`` atoms for the execute set.

    Activation is the goal's priority relative to the top goal, so the
    strongest goal reads 1.0. Blocked goals are skipped.
    """
    active = [g for g in ecology.execute if not g.blocked]
    if not active:
        return []
    top = max(g.priority for g in active) or 1.0
    self_id = ecology.agent_id
    atoms: List[Atom] = []
    for goal in active:
        activation = clamp01(goal.priority / top)
        atoms.append(make_atom(
            Namespace.GOAL, "active", self_id, goal.def_id, goal.target_id or "",
            magnitude=activation, source="goals", tags=(f"domain:{goal.domain}",),
            parts={"priority": goal.priority, "activation_score": goal.activation_score},
        ))
        definition = catalog.goal(goal.def_id)
        for action in (definition.allow if definition else ()):
            atoms.append(make_atom(Namespace.UTIL, "allow", self_id, goal.def_id, action,
                                   magnitude=1.0, source="goals"))
    return atoms
