"""
Per-agent snapshot: the atom set, the domain vector and a frame summary.

Build order:
1. auto-derived atoms (body, psych, traits, location, relationships, ToM,
   recent events);
2. manual atoms (dedupe rule applies);
3. context axes and action priors, which read the atoms above;
4. the override layer, last.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence

from ..actions import ActionRecord
from ..lenient import CoercionLog
from .atomset import AtomSet
from .derive import (
    derive_action_priors,
    derive_body_atoms,
    derive_context_atoms,
    derive_event_atoms,
    derive_location_atoms,
    derive_psych_atoms,
    derive_relationship_atoms,
    derive_tom_atoms,
    derive_trait_atoms,
)
from .domains import compute_domains
from .model import Atom
from .overrides import OverrideLayer, coerce_atoms, coerce_override_ops

if TYPE_CHECKING:
    from ..config import ToMConfig
    from ..world import AgentState, WorldState

logger = logging.getLogger(__name__)


@dataclass
class SnapshotOptions:
    """
    Inputs to ``build_snapshot`` besides the world itself.

    ``manual_atoms`` and ``overrides`` may come from external tooling in
    any shape; they go through the lenient adapter and every coercion is
    recorded on the snapshot.
    """
    manual_atoms: Any = None
    overrides: Any = None
    recent_actions: Sequence[ActionRecord] = ()
    include_priors: bool = True
    tom_config: Optional["ToMConfig"] = None


@dataclass
class AgentFrame:
    """Compact summary of who and where the agent is this tick."""
    self_id: str
    tick: int
    location_id: Optional[str] = None
    present_ids: List[str] = field(default_factory=list)
    leader_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "self_id": self.self_id,
            "tick": self.tick,
            "location_id": self.location_id,
            "present_ids": list(self.present_ids),
            "leader_id": self.leader_id,
        }


@dataclass
class Snapshot:
    """Result of ``build_snapshot``."""
    atoms: AtomSet
    domains: Dict[str, float]
    frame: AgentFrame
    base: AtomSet
    overrides: OverrideLayer = field(default_factory=OverrideLayer)
    coercions: CoercionLog = field(default_factory=CoercionLog)

    def with_atoms(self, extra: Iterable[Atom]) -> "Snapshot":
        """
        New snapshot with ``extra`` merged under the override layer.

        Used for atoms produced after perception (goal activations), so
        overrides still get the last word.
        """
        base = self.base.copy()
        base.extend(extra)
        return Snapshot(
            atoms=self.overrides.apply(base),
            domains=self.domains,
            frame=self.frame,
            base=base,
            overrides=self.overrides,
            coercions=self.coercions,
        )


def _override_layer(raw: Any, log: CoercionLog) -> OverrideLayer:
    if isinstance(raw, OverrideLayer):
        return raw
    return OverrideLayer(coerce_override_ops(raw, log))


def build_snapshot(
    world: "WorldState",
    agent: "AgentState",
    options: Optional[SnapshotOptions] = None,
) -> Snapshot:
    """
    Derive the atom snapshot for one agent.

    Args:
        world: Current world state (read only)
        agent: Agent whose view is built
        options: Manual atoms, overrides and recent events

    Returns:
        Snapshot with atoms, domains and frame

    Example:
        >>> snap = build_snapshot(world, world.get_agent("mara"))
        >>> snap.atoms.magnitude("ctx:danger:mara")
        0.12
    """
    options = options or SnapshotOptions()
    log = CoercionLog()

    base = AtomSet()
    base.extend(derive_body_atoms(agent))
    base.extend(derive_psych_atoms(agent))
    base.extend(derive_trait_atoms(agent))
    base.extend(derive_location_atoms(world, agent))
    base.extend(derive_relationship_atoms(world, agent))
    base.extend(derive_tom_atoms(world, agent, options.tom_config))
    base.extend(derive_event_atoms(agent, options.recent_actions))

    base.extend(coerce_atoms(agent.manual_atoms, log))
    base.extend(coerce_atoms(options.manual_atoms, log))

    base.extend(derive_context_atoms(world, agent, base))
    if options.include_priors:
        base.extend(derive_action_priors(world, agent, base))

    layer = _override_layer(options.overrides, log)
    atoms = layer.apply(base)

    frame = AgentFrame(
        self_id=agent.id,
        tick=world.tick,
        location_id=agent.location_id,
        present_ids=[o.id for o in world.present_with(agent)],
        leader_id=world.leader_id,
    )
    if base.collisions:
        logger.debug(f"Snapshot {agent.id}@{world.tick}: {base.collisions} atom id collisions resolved")
    if log.entries:
        logger.warning(f"Snapshot {agent.id}@{world.tick}: {len(log)} malformed inputs coerced")

    return Snapshot(
        atoms=atoms,
        domains=compute_domains(atoms, agent.id),
        frame=frame,
        base=base,
        overrides=layer,
        coercions=log,
    )
