"""
Auto-derivation of atoms from world state.

Each ``derive_*`` function turns one family of signals (body, emotions,
traits, location, relationships, beliefs, recent events) into atoms for a
single observing agent. Context axes and learned action priors are derived
last because they read atoms produced by the earlier passes.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple

from ..actions import ACTIONS, OTHER_ACTIONS, ActionRecord, action_tags
from ..tom.threat import proximity, relative_threat
from ..util import clamp01
from .atomset import AtomSet
from .model import Atom, Namespace, atom_id, make_atom

if TYPE_CHECKING:
    from ..config import ToMConfig
    from ..world import AgentState, WorldState

logger = logging.getLogger(__name__)

TOM_ATOM_TRAITS = ("trust", "bond", "align", "dominance", "vulnerability", "conflict", "fear")

# Which recent-event atom each action tag produces for its target.
EVENT_KINDS_BY_TAG = (
    ("harm", "harmedBy"),
    ("support", "helpedBy"),
    ("intimidate", "threatenedBy"),
    ("confront", "accusedBy"),
    ("order", "commandedBy"),
)


def _noisy_or(terms: Iterable[Tuple[float, float]]) -> float:
    p = 1.0
    for w, x in terms:
        p *= 1.0 - clamp01(w) * clamp01(x)
    return clamp01(1.0 - p)


def derive_body_atoms(agent: "AgentState") -> List[Atom]:
    body = agent.body
    return [
        make_atom(Namespace.BODY, name, agent.id, magnitude=value, source="body")
        for name, value in (
            ("fatigue", body.fatigue),
            ("pain", body.pain),
            ("stress", body.stress),
            ("hp", body.hp),
        )
    ]


def derive_psych_atoms(agent: "AgentState") -> List[Atom]:
    atoms = [
        make_atom(Namespace.FEEL, name, agent.id, magnitude=value, source="psych")
        for name, value in sorted(agent.psych.emotions.items())
    ]
    atoms.append(make_atom(Namespace.NEED, "info", agent.id, magnitude=agent.psych.info_need, source="psych"))
    return atoms


def derive_trait_atoms(agent: "AgentState") -> List[Atom]:
    return [
        make_atom(Namespace.TRAIT, name, agent.id, magnitude=value, source="traits")
        for name, value in sorted(agent.traits.items())
    ]


def derive_location_atoms(world: "WorldState", agent: "AgentState") -> List[Atom]:
    """Map facts, affordances and protocol constraints of the agent's location."""
    location = world.location_of(agent)
    if location is None:
        return []
    sid = agent.id
    src = f"location:{location.id}"
    escape_route = clamp01(location.exits * (1.0 - 0.5 * location.crowding))
    atoms = [
        make_atom(Namespace.WORLD, "cover", sid, magnitude=location.cover, source=src),
        make_atom(Namespace.WORLD, "visibility", sid, magnitude=location.visibility, source=src),
        make_atom(Namespace.WORLD, "exits", sid, magnitude=location.exits, source=src),
        make_atom(Namespace.WORLD, "escape", sid, magnitude=escape_route, source=src,
                  parts={"exits": location.exits, "crowding": location.crowding}),
        make_atom(Namespace.WORLD, "hazard", sid, magnitude=location.cell_hazard(agent.position, location.hazard),
                  source=src),
    ]
    for affordance in location.affordances:
        atoms.append(make_atom(Namespace.WORLD, "aff", sid, metric=affordance, magnitude=1.0, source=src))
    for norm in location.norms:
        atoms.append(make_atom(Namespace.CON, "protocol", metric=norm, magnitude=1.0, source=src,
                               tags=("norm",)))
    if location.exits <= 0.0 or "locked" in location.affordances:
        atoms.append(make_atom(Namespace.CON, "exitBlocked", sid, magnitude=1.0, source=src))
    return atoms


def derive_relationship_atoms(world: "WorldState", agent: "AgentState") -> List[Atom]:
    """Relationship state, taboos, proximity and visible injury for present others."""
    atoms: List[Atom] = []
    for other in world.present_with(agent):
        rel = agent.relationship(other.id)
        for metric in rel.METRICS:
            atoms.append(make_atom(Namespace.REL, "state", agent.id, other.id, metric,
                                   magnitude=getattr(rel, metric), source="relationships"))
        for act in rel.taboos:
            atoms.append(make_atom(Namespace.CON, "taboo", agent.id, other.id, act,
                                   magnitude=1.0, source="relationships"))
        atoms.append(make_atom(Namespace.WORLD, "proximity", agent.id, other.id,
                               magnitude=proximity(world, agent, other), source="map"))
        atoms.append(make_atom(Namespace.WORLD, "injury", agent.id, other.id,
                               magnitude=1.0 - other.body.hp, source="perception"))
    return atoms


def derive_tom_atoms(world: "WorldState", agent: "AgentState", config: Optional["ToMConfig"] = None) -> List[Atom]:
    """Dyadic beliefs about present others, plus relative threat."""
    atoms: List[Atom] = []
    low_trust = config.threat_low_trust if config else 0.3
    bonus = config.threat_low_trust_bonus if config else 0.2
    for other in world.present_with(agent):
        entry = world.tom.get(agent.id, other.id)
        if entry is None:
            continue
        confidence = entry.confidence_overall
        for trait in TOM_ATOM_TRAITS:
            atoms.append(make_atom(Namespace.TOM, "dyad", agent.id, other.id, trait,
                                   magnitude=entry.traits.get(trait), confidence=confidence, source="tom"))
        atoms.append(make_atom(Namespace.TOM, "dyad", agent.id, other.id, "threat",
                               magnitude=entry.threat(low_trust, bonus), confidence=confidence, source="tom"))
        atoms.append(make_atom(Namespace.TOM, "dyad", agent.id, other.id, "uncertainty",
                               magnitude=entry.uncertainty, source="tom"))
        for affect, value in sorted(entry.affect.items()):
            atoms.append(make_atom(Namespace.TOM, "affect", agent.id, other.id, affect,
                                   magnitude=value, confidence=confidence, source="tom"))
    for other in world.present_with(agent):
        atoms.append(make_atom(Namespace.THREAT, "rel", agent.id, other.id,
                               magnitude=relative_threat(world, agent, other, config), source="threat"))
    return atoms


def derive_event_atoms(agent: "AgentState", recent: Sequence[ActionRecord]) -> List[Atom]:
    """
    Atoms for recent actions aimed at this agent.

    Several actions by the same actor collapse through the dedupe rule,
    so the strongest one survives.
    """
    atoms: List[Atom] = []
    for record in recent:
        if record.target_id != agent.id or record.actor_id == agent.id:
            continue
        tags = action_tags(record.action)
        for tag, kind in EVENT_KINDS_BY_TAG:
            if tag in tags:
                atoms.append(make_atom(
                    Namespace.EVENT, kind, agent.id, record.actor_id,
                    magnitude=clamp01(0.5 + 0.5 * record.success),
                    source="events", notes=(f"{record.action}@{record.tick}",),
                ))
    return atoms


def derive_context_atoms(
    world: "WorldState",
    agent: "AgentState",
    atoms: AtomSet,
) -> List[Atom]:
    """
    Situational ``ctx:*`` axes for the agent.

    Danger combines location hazard, relative threat from present others,
    missing exits and poor visibility as independent risk channels.
    """
    sid = agent.id
    location = world.location_of(agent)
    out: List[Atom] = []

    threats = atoms.find(Namespace.THREAT, "rel", sid)
    max_threat = max((a.magnitude for a in threats), default=0.0)
    threat_ids = tuple(a.id for a in threats)

    danger_terms = [(0.45, max_threat)]
    used = list(threat_ids)
    if location is not None:
        hazard_id = atom_id(Namespace.WORLD, "hazard", sid)
        hazard = max(location.hazard, atoms.magnitude(hazard_id, 0.0))
        danger_terms += [
            (0.55, hazard),
            (0.20, 1.0 - location.exits),
            (0.15, 1.0 - location.visibility),
        ]
        used.append(hazard_id)
    danger = _noisy_or(danger_terms)
    out.append(make_atom(Namespace.CTX, "danger", sid, magnitude=danger, source="context",
                         used=tuple(used), parts={"max_threat": max_threat}))

    tom_unc = [a.magnitude for a in atoms.find(Namespace.TOM, "dyad", sid) if a.metric == "uncertainty"]
    unc_terms = []
    if tom_unc:
        unc_terms.append(0.6 * (sum(tom_unc) / len(tom_unc)))
    if location is not None:
        unc_terms.append(0.4 * (1.0 - location.visibility))
    out.append(make_atom(Namespace.CTX, "uncertainty", sid, magnitude=sum(unc_terms), source="context"))

    if location is not None:
        src = f"location:{location.id}"
        for kind, value in (
            ("surveillance", location.surveillance),
            ("crowd", location.crowding),
            ("privacy", location.privacy),
            ("publicness", location.publicness),
            ("normPressure", location.norm_pressure),
            ("scarcity", location.scarcity),
        ):
            out.append(make_atom(Namespace.CTX, kind, sid, magnitude=value, source=src))

    if world.scene is not None and world.scene.max_ticks > 0:
        out.append(make_atom(Namespace.CTX, "timePressure", sid,
                             magnitude=world.tick / world.scene.max_ticks, source="scene"))

    if world.leader_id is not None:
        is_leader = world.leader_id == sid
        leader = world.find_agent(world.leader_id)
        present = leader is not None and (agent.location_id is None or leader.location_id == agent.location_id)
        out.append(make_atom(Namespace.CTX, "leader", sid, magnitude=1.0 if is_leader else 0.0, source="leadership"))
        if present and not is_leader:
            out.append(make_atom(Namespace.CTX, "hierarchy", sid, magnitude=world.legitimacy, source="leadership"))
    return out


def _prior_bases(atoms: AtomSet, sid: str, oid: str) -> Tuple[Dict[str, float], Tuple[str, ...]]:
    """Base priors for one dyad, from relationship, ToM and context atoms."""
    def rel(metric: str, fb: float) -> Tuple[str, float]:
        i = atom_id(Namespace.REL, "state", sid, oid, metric)
        return i, atoms.magnitude(i, fb)

    def tom(metric: str, fb: float) -> Tuple[str, float]:
        i = atom_id(Namespace.TOM, "dyad", sid, oid, metric)
        return i, atoms.magnitude(i, fb)

    def ctx(kind: str, fb: float) -> Tuple[str, float]:
        i = atom_id(Namespace.CTX, kind, sid)
        return i, atoms.magnitude(i, fb)

    reads = {
        "trust": rel("trust", 0.5),
        "closeness": rel("closeness", 0.3),
        "hostility": rel("hostility", 0.0),
        "obligation": rel("obligation", 0.2),
        "respect": rel("respect", 0.5),
        "tom_trust": tom("trust", 0.5),
        "tom_threat": tom("threat", 0.1),
        "danger": ctx("danger", 0.0),
        "publicness": ctx("publicness", 0.0),
        "surveillance": ctx("surveillance", 0.0),
        "norm": ctx("normPressure", 0.0),
    }
    v = {k: val for k, (_, val) in reads.items()}
    used = tuple(i for i, _ in reads.values() if i in atoms)

    social_risk = clamp01(0.45 * v["publicness"] + 0.35 * v["surveillance"] + 0.20 * v["norm"])
    help_ = clamp01(0.55 * v["trust"] + 0.2 * v["closeness"] + 0.2 * v["obligation"]
                    + 0.1 * v["tom_trust"] - 0.3 * v["tom_threat"]) * (1 - 0.45 * v["danger"])
    harm = clamp01(0.7 * v["hostility"] + 0.25 * v["tom_threat"] - 0.2 * v["trust"]) * (1 - 0.6 * social_risk)
    ask_info = clamp01(0.35 + 0.25 * (1 - v["tom_trust"]) + 0.25 * (1 - v["closeness"])
                       + 0.15 * v["respect"]) * (1 - 0.25 * v["danger"])
    confront = clamp01(0.2 + 0.5 * v["hostility"] + 0.25 * (1 - social_risk)
                       + 0.15 * v["respect"] - 0.35 * v["danger"])
    negotiate = clamp01(0.5 * ask_info + 0.3 * v["respect"] + 0.2 * (1 - social_risk))
    bases = {
        "help": help_,
        "harm": harm,
        "ask_info": ask_info,
        "confront": confront,
        "negotiate": negotiate,
    }
    return bases, used


def derive_action_priors(world: "WorldState", agent: "AgentState", atoms: AtomSet) -> List[Atom]:
    """``act:prior:<self>:<other>:<act>`` atoms for every directed action."""
    out: List[Atom] = []
    for other in world.present_with(agent):
        bases, used = _prior_bases(atoms, agent.id, other.id)
        for act in OTHER_ACTIONS:
            base = ACTIONS[act].prior
            if base is None:
                continue
            out.append(make_atom(Namespace.ACT, "prior", agent.id, other.id, act,
                                 magnitude=bases[base], source="priors", used=used,
                                 notes=(f"base={base}",)))
    return out
