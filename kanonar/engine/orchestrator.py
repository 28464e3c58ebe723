"""
Tick orchestrator: runs one simulation step over the whole world.

Stage order within a tick:

1. TickStart
2. perception (one snapshot per agent)
3. belief bookkeeping (relationships, identity profile)
4. leadership
5. goal ecology, goal atoms merged into the snapshot
6. decisions, archetype tension, ActionChosen
7. per agent in world order: execute (ActionApplied), narrative episode,
   physiology, drift check, then a ToM update for every other observer
   (TomUpdated)
8. scene tick (SceneOutcome)
9. event log cap, periodic report
10. ToM decay, tick += 1

Agents are visited in world insertion order and ToM updates are applied
sequentially, so a run is fully determined by its world and seed.
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..actions import FALLBACK_ACTION, ActionRecord, action_tags
from ..archetypes.catalog import ArchetypeCatalog, default_archetypes
from ..archetypes.drift import check_drift, refresh_identity_profile, self_gap, update_tension
from ..atoms.snapshot import Snapshot, SnapshotOptions, build_snapshot
from ..config import EngineConfig
from ..decision.policy import Decision, DecisionPolicy, Intent
from ..errors import UnknownAgentError
from ..goals.catalog import GoalCatalog, default_catalog
from ..goals.ecology import compute_goal_ecology, goal_atoms
from ..logging_config import get_logger
from ..metrics import TickMetrics
from ..possibilities.registry import BuilderRegistry
from ..tom.core import ToMCore, compute_tom_core
from ..tom.decay import apply_decay
from ..tom.update import update_from_outcome
from ..world import AgentState, WorldState
from .diagnostics import TickDiagnostics
from .events import (
    TickEvent,
    TickEventType,
    action_applied_event,
    action_chosen_event,
    drift_event,
    leader_changed_event,
    periodic_report_event,
    scene_outcome_event,
    tick_start_event,
    tom_updated_event,
)
from .execution import execute_action
from .leadership import maybe_change_leader
from .narrative import record_episode
from .physio import update_physio
from .scene import scene_tick
from .store import EventStore

logger = logging.getLogger(__name__)
event_log = get_logger(f"{__name__}.events")


@dataclass
class TickResult:
    """
    Everything one tick produced.

    Attributes:
        tick: The tick that ran
        events: Events emitted during the tick, in order
        diagnostics: Coercions, skips and notes
        traces: agent id -> explainability trace (domains, goals, ranked actions)
        decisions: agent id -> decision
    """
    tick: int
    events: List[TickEvent] = field(default_factory=list)
    diagnostics: Optional[TickDiagnostics] = None
    traces: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    decisions: Dict[str, Decision] = field(default_factory=dict)

    def chosen(self) -> Dict[str, str]:
        """agent id -> ``kind`` or ``kind->target``."""
        out = {}
        for agent_id, decision in self.decisions.items():
            c = decision.chosen
            out[agent_id] = f"{c.kind}->{c.target_id}" if c.target_id else c.kind
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick": self.tick,
            "events": [e.to_dict() for e in self.events],
            "diagnostics": self.diagnostics.to_dict() if self.diagnostics else None,
            "traces": self.traces,
        }


class SimulationRun:
    """
    Owns the world, the catalogs, the RNG and the event store of one run.

    Example:
        >>> run = SimulationRun(load_scenario("breach"), seed=7)
        >>> result = run.run_tick()
        >>> result.tick, sorted(result.chosen())
        (0, ['mara', 'oskar', 'vel'])
    """

    def __init__(
        self,
        world: WorldState,
        config: Optional[EngineConfig] = None,
        goal_catalog: Optional[GoalCatalog] = None,
        archetype_catalog: Optional[ArchetypeCatalog] = None,
        seed: Optional[int] = None,
        registry: Optional[BuilderRegistry] = None,
    ):
        """
        Initialize the run.

        Args:
            world: World state, mutated in place by every tick
            config: Tuning configuration
            goal_catalog: Goal axes and definitions (validated here)
            archetype_catalog: Archetype definitions
            seed: RNG seed; falls back to ``config.engine.seed``
            registry: Possibility builders

        Raises:
            GoalCatalogError: When the goal-axis catalog is missing or invalid
        """
        self.world = world
        self.config = config or EngineConfig()
        self.goal_catalog = goal_catalog if goal_catalog is not None else default_catalog()
        self.goal_catalog.validate()
        self.archetypes = archetype_catalog if archetype_catalog is not None else default_archetypes()
        self.seed = seed if seed is not None else self.config.engine.seed
        self.policy = DecisionPolicy(self.config, registry)
        self.store = EventStore(self.config.engine.event_log_max, self.config.engine.event_log_keep)
        self.metrics = TickMetrics()

        # External tooling hooks: agent id -> manual atoms / override ops
        self.manual_atoms: Dict[str, Any] = {}
        self.overrides: Dict[str, Any] = {}

        self.rng = random.Random(self.seed)
        self._last_actions: List[ActionRecord] = []
        self._tick_events: List[TickEvent] = []

    def reset(self) -> None:
        """Clear the event store, metrics and RNG; the world is left as is."""
        self.store.reset()
        self.metrics.reset()
        self.rng = random.Random(self.seed)
        self._last_actions = []
        logger.info("Simulation run reset")

    def _emit(self, event: TickEvent) -> None:
        self._tick_events.append(self.store.append(event))

    def _active_agents(self) -> List[AgentState]:
        return [a for a in self.world.agents.values() if not a.collapsed]

    def _self_gap(self, agent: AgentState) -> float:
        state = agent.archetype
        if state is None:
            return 0.0
        return self_gap(self.archetypes.get(state.actual_id), self.archetypes.get(state.self_id))

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _perceive(self, agents: List[AgentState], diag: TickDiagnostics) -> Dict[str, Snapshot]:
        snapshots: Dict[str, Snapshot] = {}
        for agent in agents:
            options = SnapshotOptions(
                manual_atoms=self.manual_atoms.get(agent.id),
                overrides=self.overrides.get(agent.id),
                recent_actions=self._last_actions,
                tom_config=self.config.tom,
            )
            snapshot = build_snapshot(self.world, agent, options)
            diag.record_coercions(agent.id, snapshot.coercions.entries)
            snapshots[agent.id] = snapshot
        return snapshots

    def _update_beliefs(self, agents: List[AgentState]) -> None:
        for agent in agents:
            for other in self.world.present_with(agent):
                agent.relationship(other.id)
                self.world.tom.ensure(agent.id, other.id)
            refresh_identity_profile(agent, self.archetypes, self.config.drift)

    def _update_goals(self, agents: List[AgentState], snapshots: Dict[str, Snapshot]) -> None:
        for agent in agents:
            snapshot = snapshots[agent.id]
            ecology = compute_goal_ecology(
                self.world, agent.id, snapshot, self.goal_catalog, self.config.goals,
                tom_config=self.config.tom,
            )
            agent.goal_ecology = ecology
            snapshots[agent.id] = snapshot.with_atoms(goal_atoms(ecology, self.goal_catalog))

    def _decide(
        self,
        agents: List[AgentState],
        snapshots: Dict[str, Snapshot],
        scripted: Dict[str, Intent],
        tick: int,
        diag: TickDiagnostics,
    ) -> Dict[str, Decision]:
        decisions: Dict[str, Decision] = {}
        for agent in agents:
            decision = self.policy.choose(agent.id, snapshots[agent.id].atoms, scripted.get(agent.id))
            decisions[agent.id] = decision
            for note in decision.notes:
                if note != "scripted":
                    diag.note(f"{agent.id}: {note}")

            ecology = agent.goal_ecology
            top = ecology.top if ecology is not None else None
            if agent.archetype is not None:
                update_tension(
                    agent.archetype,
                    action_tags(decision.chosen.kind),
                    top.def_id if top else None,
                    self.archetypes.get(agent.archetype.actual_id),
                    self.config.drift,
                )

            chosen = decision.chosen
            self._emit(action_chosen_event(tick, agent.id, chosen.kind, chosen.target_id,
                                           chosen.score, decision.scripted))
            self.metrics.record_action(chosen.kind)
            event_log.event(TickEventType.ACTION_CHOSEN.value, f"{agent.id} chose {chosen.kind}",
                            agent_id=agent.id, tick=tick, subsystem="decision",
                            target_id=chosen.target_id, score=chosen.score)
        return decisions

    def _observe(self, actor: AgentState, record: ActionRecord, cores: Dict[str, ToMCore], tick: int) -> None:
        for observer in self.world.agents.values():
            if observer.id == actor.id or observer.collapsed:
                continue
            core = cores.get(observer.id)
            if core is None:
                core = compute_tom_core(observer.cognition, self.config.tom)
                cores[observer.id] = core
            update = update_from_outcome(self.world.tom, observer.id, record, core, tick, self.config.tom)
            self._emit(tom_updated_event(tick, observer.id, update.to_dict()))

    def _execute(
        self,
        agents: List[AgentState],
        decisions: Dict[str, Decision],
        tick: int,
        diag: TickDiagnostics,
    ) -> List[ActionRecord]:
        records: List[ActionRecord] = []
        cores: Dict[str, ToMCore] = {}
        for agent in agents:
            if agent.collapsed:
                diag.skip(agent.id, "collapsed before acting")
                continue
            chosen = decisions[agent.id].chosen
            try:
                outcome = execute_action(self.world, agent, chosen.kind, chosen.target_id, tick)
            except UnknownAgentError as e:
                diag.skip(agent.id, f"unknown target {e}")
                continue
            records.append(outcome.record)
            self._emit(action_applied_event(tick, agent.id, chosen.kind, chosen.target_id,
                                            outcome.success, outcome.effects))

            record_episode(agent, outcome.record, self.config.engine.narrative_max)
            update_physio(agent, self._self_gap(agent), self.config.engine)

            drift = check_drift(agent, self.archetypes, self.rng, self.config.drift)
            if drift.drifted and drift.new_self_id:
                self._emit(drift_event(tick, agent.id, drift.new_self_id,
                                       drift.actual_overwritten, drift.probability))

            with self.metrics.timed("tom"):
                self._observe(agent, outcome.record, cores, tick)
        return records

    def _report(self, tick: int) -> Dict[str, Any]:
        window = self.config.engine.report_window
        applied = [
            e for e in self.store.recent(event_type=TickEventType.ACTION_APPLIED)
            if e.tick > tick - window
        ]
        counts: Dict[str, int] = {}
        for e in applied:
            kind = e.payload.get("action", FALLBACK_ACTION)
            counts[kind] = counts.get(kind, 0) + 1
        mean_success = sum(e.payload.get("success", 0.0) for e in applied) / len(applied) if applied else 0.0
        scene = self.world.scene
        return {
            "window": window,
            "actions": counts,
            "mean_success": mean_success,
            "leader_id": self.world.leader_id,
            "legitimacy": self.world.legitimacy,
            "scene": dict(scene.metrics) if scene else None,
            "collapsed": [a.id for a in self.world.agents.values() if a.collapsed],
        }

    def _trace(self, agent: AgentState, snapshot: Snapshot, decision: Decision) -> Dict[str, Any]:
        ecology = agent.goal_ecology
        return {
            "frame": snapshot.frame.to_dict(),
            "atom_count": len(snapshot.atoms),
            "domains": dict(snapshot.domains),
            "goals": [g.to_dict() for g in ecology.execute] if ecology is not None else [],
            "decision": decision.to_dict(),
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run_tick(self, scripted: Optional[Dict[str, Intent]] = None) -> TickResult:
        """
        Run one tick over every active agent.

        Args:
            scripted: agent id -> intent to force this tick; intents still
                pass gating and fall back to the policy when blocked

        Returns:
            TickResult with the tick's events, diagnostics and traces
        """
        started = time.perf_counter()
        world = self.world
        tick = world.tick
        diag = TickDiagnostics(tick=tick)
        self._tick_events = []

        scripted = dict(scripted or {})
        for agent_id in list(scripted):
            if world.find_agent(agent_id) is None:
                diag.skip(agent_id, "scripted intent for unknown agent")
                del scripted[agent_id]

        agents = self._active_agents()
        self._emit(tick_start_event(tick, [a.id for a in agents]))

        with self.metrics.timed("perception"):
            snapshots = self._perceive(agents, diag)
        self._update_beliefs(agents)

        change = maybe_change_leader(world)
        if change is not None:
            self._emit(leader_changed_event(tick, change.previous_id, change.leader_id, change.score))

        with self.metrics.timed("goals"):
            self._update_goals(agents, snapshots)
        with self.metrics.timed("decision"):
            decisions = self._decide(agents, snapshots, scripted, tick, diag)
        with self.metrics.timed("execution"):
            records = self._execute(agents, decisions, tick, diag)

        outcome = scene_tick(world, records)
        if outcome is not None and world.scene is not None:
            self._emit(scene_outcome_event(tick, world.scene.id, outcome.success, outcome.reason))

        self.store.cap()
        if tick % self.config.engine.report_every == 0:
            self._emit(periodic_report_event(tick, self._report(tick)))

        apply_decay(world.tom, tick, self.config.tom)
        self._last_actions = records
        world.tick += 1

        fallbacks = sum(1 for d in decisions.values() if d.chosen.breakdown.get("fallback"))
        self.metrics.record_tick(fallbacks=fallbacks, skips=sum(len(v) for v in diag.skipped.values()))

        traces = {a.id: self._trace(a, snapshots[a.id], decisions[a.id]) for a in agents}
        event_log.latency("tick", (time.perf_counter() - started) * 1000.0, tick=tick, subsystem="engine",
                          events=len(self._tick_events), actions=len(records))
        return TickResult(tick=tick, events=list(self._tick_events), diagnostics=diag,
                          traces=traces, decisions=decisions)

    def run(self, ticks: int, stop_on_scene_end: bool = True) -> List[TickResult]:
        """Run up to ``ticks`` ticks; stops early once the scene is done."""
        results = []
        for _ in range(max(0, ticks)):
            results.append(self.run_tick())
            if stop_on_scene_end and self.world.scene is not None and self.world.scene.done:
                break
        return results

    @property
    def last_actions(self) -> List[ActionRecord]:
        return list(self._last_actions)
