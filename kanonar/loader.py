"""
World loader: builds a ``WorldState`` from plain data (parsed YAML/JSON).

This is an external boundary, so every field goes through the lenient
adapter: malformed values fall back to defaults and are recorded on the
``CoercionLog`` instead of raising.

Example document::

    locations:
      - id: yard
        hazard: 0.4
        norms: [noViolence]
    agents:
      - id: mara
        location_id: yard
        traits: {caution: 0.8}
        emotions: {fear: 0.7}
        archetype: {actual_id: hermit}
        relationships:
          oskar: {trust: 0.7}
    scene: {id: breach, max_ticks: 30}
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Iterable, Optional, Tuple

import yaml

from .archetypes.catalog import ArchetypeCatalog
from .errors import ConfigurationError
from .lenient import CoercionLog, as_dict, as_float, as_float_map, as_list, as_str
from .tom.table import ToMTable, ToMTraits
from .util import clamp01
from .world import (
    AgentState,
    ArchetypeState,
    BodyState,
    CognitionProfile,
    Location,
    PsychState,
    Relationship,
    Scene,
    WorldState,
)

logger = logging.getLogger(__name__)

LOCATION_FIELDS = ("hazard", "privacy", "publicness", "surveillance", "crowding", "cover",
                   "visibility", "exits", "scarcity", "norm_pressure")


def _unit(data: Dict[str, Any], key: str, default: float, where: str, log: CoercionLog) -> float:
    return clamp01(as_float(data.get(key), default, f"{where}.{key}", log))


def _position(value: Any, where: str, log: CoercionLog) -> Optional[Tuple[int, int]]:
    if value is None:
        return None
    items = as_list(value, where, log)
    if len(items) != 2:
        log.record(where, "position needs two coordinates")
        return None
    x = as_float(items[0], float("nan"), f"{where}[0]", log)
    y = as_float(items[1], float("nan"), f"{where}[1]", log)
    if x != x or y != y:
        return None
    return int(x), int(y)


def _cells(value: Any, where: str, log: CoercionLog) -> Dict[Tuple[int, int], float]:
    """``[[x, y, hazard], ...]`` or ``{"x,y": hazard}``."""
    cells: Dict[Tuple[int, int], float] = {}
    if isinstance(value, dict):
        for key, hazard in value.items():
            parts = str(key).split(",")
            pos = _position(parts, f"{where}.{key}", log)
            if pos is not None:
                cells[pos] = clamp01(as_float(hazard, 0.0, f"{where}.{key}", log))
        return cells
    for i, item in enumerate(as_list(value, where, log)):
        triple = as_list(item, f"{where}[{i}]", log)
        if len(triple) != 3:
            log.record(f"{where}[{i}]", "cell needs x, y, hazard")
            continue
        pos = _position(triple[:2], f"{where}[{i}]", log)
        if pos is not None:
            cells[pos] = clamp01(as_float(triple[2], 0.0, f"{where}[{i}]", log))
    return cells


def load_location(data: Any, where: str, log: CoercionLog) -> Optional[Location]:
    data = as_dict(data, where, log)
    loc_id = as_str(data.get("id")).strip()
    if not loc_id:
        log.record(where, "location without id dropped")
        return None
    location = Location(id=loc_id, name=as_str(data.get("name"), loc_id))
    for name in LOCATION_FIELDS:
        setattr(location, name, _unit(data, name, getattr(location, name), where, log))
    location.norms = [as_str(n) for n in as_list(data.get("norms"), f"{where}.norms", log)]
    location.affordances = [as_str(a) for a in as_list(data.get("affordances"), f"{where}.affordances", log)]
    location.cells = _cells(data.get("cells"), f"{where}.cells", log)
    size = _position(data.get("size"), f"{where}.size", log)
    if size is not None:
        location.size = (max(1, size[0]), max(1, size[1]))
    location.goal_bias = as_float_map(data.get("goal_bias"), f"{where}.goal_bias", log)
    return location


def load_relationship(data: Any, where: str, log: CoercionLog) -> Relationship:
    data = as_dict(data, where, log)
    rel = Relationship()
    for metric in Relationship.METRICS:
        setattr(rel, metric, _unit(data, metric, getattr(rel, metric), where, log))
    rel.taboos = [as_str(t) for t in as_list(data.get("taboos"), f"{where}.taboos", log)]
    return rel


def load_agent(
    data: Any,
    where: str,
    log: CoercionLog,
    archetypes: Optional[ArchetypeCatalog] = None,
) -> Optional[AgentState]:
    data = as_dict(data, where, log)
    agent_id = as_str(data.get("id")).strip()
    if not agent_id:
        log.record(where, "agent without id dropped")
        return None

    agent = AgentState(id=agent_id, name=as_str(data.get("name"), agent_id))
    agent.location_id = as_str(data.get("location_id")) or None
    agent.position = _position(data.get("position"), f"{where}.position", log)
    agent.traits = {k: clamp01(v) for k, v in as_float_map(data.get("traits"), f"{where}.traits", log).items()}
    agent.biography = as_float_map(data.get("biography"), f"{where}.biography", log)

    body_data = as_dict(data.get("body"), f"{where}.body", log)
    body = BodyState()
    for name in ("fatigue", "pain", "stress", "hp"):
        setattr(body, name, _unit(body_data, name, getattr(body, name), f"{where}.body", log))
    agent.body = body

    psych = PsychState()
    for name, value in as_float_map(data.get("emotions"), f"{where}.emotions", log).items():
        psych.emotions[name] = clamp01(value)
    for name, value in as_float_map(data.get("trauma"), f"{where}.trauma", log).items():
        psych.trauma[name] = clamp01(value)
    psych.info_need = _unit(data, "info_need", psych.info_need, where, log)
    agent.psych = psych

    cog_data = as_dict(data.get("cognition"), f"{where}.cognition", log)
    cognition = CognitionProfile()
    for name in CognitionProfile.__dataclass_fields__:
        setattr(cognition, name, _unit(cog_data, name, getattr(cognition, name), f"{where}.cognition", log))
    agent.cognition = cognition

    for other_id, raw in as_dict(data.get("relationships"), f"{where}.relationships", log).items():
        agent.relationships[str(other_id)] = load_relationship(raw, f"{where}.relationships.{other_id}", log)

    arch_data = data.get("archetype")
    if arch_data is not None:
        arch = as_dict(arch_data, f"{where}.archetype", log)
        actual_id = as_str(arch.get("actual_id")).strip()
        if actual_id:
            shadow_id = as_str(arch.get("shadow_id")).strip() or None
            if shadow_id is None and archetypes is not None:
                known = archetypes.get(actual_id)
                shadow_id = known.shadow_id if known else None
            agent.archetype = ArchetypeState(
                actual_id=actual_id,
                self_id=as_str(arch.get("self_id")).strip() or actual_id,
                shadow_id=shadow_id,
                shadow_activation=_unit(arch, "shadow_activation", 0.0, f"{where}.archetype", log),
                tension=_unit(arch, "tension", 0.0, f"{where}.archetype", log),
            )
        else:
            log.record(f"{where}.archetype", "archetype without actual_id dropped")

    agent.manual_atoms = as_list(data.get("manual_atoms"), f"{where}.manual_atoms", log)
    return agent


def load_tom(data: Any, agent_ids: Iterable[str], log: CoercionLog) -> ToMTable:
    """
    Beliefs keyed ``observer -> target -> entry``.

    Entries that are not mappings, or that name an unknown agent, are
    dropped; bad numbers inside an entry fall back to the neutral prior.
    """
    known = set(agent_ids)
    table = ToMTable()
    trait_names = set(ToMTraits.names())
    for observer_id, targets in as_dict(data, "world.tom", log).items():
        observer_id = str(observer_id)
        for target_id, raw in as_dict(targets, f"tom.{observer_id}", log).items():
            target_id = str(target_id)
            where = f"tom.{observer_id}.{target_id}"
            if not isinstance(raw, dict):
                log.record(where, f"belief entry dropped, got {type(raw).__name__}")
                continue
            if observer_id not in known or target_id not in known:
                log.record(where, "belief about unknown agent dropped")
                continue

            entry = table.ensure(observer_id, target_id)
            for name, value in as_float_map(raw.get("traits"), f"{where}.traits", log).items():
                if name in trait_names:
                    entry.traits.set(name, value)
                else:
                    log.record(f"{where}.traits.{name}", "unknown trait dropped")
            for name, value in as_float_map(raw.get("affect"), f"{where}.affect", log).items():
                entry.affect[name] = clamp01(value)
            entry.uncertainty = _unit(raw, "uncertainty", entry.uncertainty, where, log)
            entry.confidence_overall = _unit(raw, "confidence_overall", entry.confidence_overall, where, log)
            entry.evidence_count = max(0, int(as_float(raw.get("evidence_count"), 0, f"{where}.evidence_count", log)))
            entry.last_updated_tick = int(as_float(raw.get("last_updated_tick"), -1, f"{where}.last_updated_tick", log))
    return table


def build_world(
    spec: Any,
    archetypes: Optional[ArchetypeCatalog] = None,
    log: Optional[CoercionLog] = None,
) -> WorldState:
    """
    Build a world from plain data.

    Args:
        spec: Mapping with ``locations``, ``agents``, optional ``scene``,
            ``tom``, ``leader_id``, ``legitimacy`` and ``tick``
        archetypes: Catalog used to fill in missing shadow archetypes
        log: Coercion log to record into (a fresh one when omitted)

    Returns:
        The world; agents keep document order, which is the tick order
    """
    log = log if log is not None else CoercionLog()
    data = as_dict(spec, "world", log)
    world = WorldState()
    world.tick = max(0, int(as_float(data.get("tick"), 0, "world.tick", log)))

    for i, raw in enumerate(as_list(data.get("locations"), "world.locations", log)):
        location = load_location(raw, f"locations[{i}]", log)
        if location is not None:
            world.add_location(location)

    for i, raw in enumerate(as_list(data.get("agents"), "world.agents", log)):
        agent = load_agent(raw, f"agents[{i}]", log, archetypes)
        if agent is None:
            continue
        if agent.id in world.agents:
            log.record(f"agents[{i}]", f"duplicate agent id {agent.id!r} dropped")
            continue
        if agent.location_id and agent.location_id not in world.locations:
            log.record(f"agents[{i}]", f"unknown location {agent.location_id!r}")
            agent.location_id = None
        world.add_agent(agent)

    scene_data = data.get("scene")
    if scene_data is not None:
        scene = as_dict(scene_data, "world.scene", log)
        world.scene = Scene(id=as_str(scene.get("id"), "scene"))
        world.scene.metrics.update({k: clamp01(v) for k, v in
                                    as_float_map(scene.get("metrics"), "world.scene.metrics", log).items()})
        world.scene.max_ticks = max(1, int(as_float(scene.get("max_ticks"), world.scene.max_ticks,
                                                    "world.scene.max_ticks", log)))

    if data.get("tom") is not None:
        world.tom = load_tom(data.get("tom"), world.agents, log)

    leader_id = as_str(data.get("leader_id")).strip() or None
    if leader_id is not None and leader_id not in world.agents:
        log.record("world.leader_id", f"unknown leader {leader_id!r}")
        leader_id = None
    world.leader_id = leader_id
    world.legitimacy = _unit(data, "legitimacy", world.legitimacy, "world", log)

    if log.entries:
        logger.warning(f"World loaded with {len(log)} coerced inputs")
    logger.info(f"Loaded world: {len(world.agents)} agents, {len(world.locations)} locations")
    return world


def load_world_file(path: str, archetypes: Optional[ArchetypeCatalog] = None,
                    log: Optional[CoercionLog] = None) -> WorldState:
    """
    Load a world document from a YAML or JSON file.

    Raises:
        ConfigurationError: When the file is missing or cannot be parsed
    """
    if not os.path.exists(path):
        raise ConfigurationError(f"World file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load world from {path}: {e}") from e
    return build_world(data, archetypes, log)
