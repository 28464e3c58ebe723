"""
Relative threat between two agents.

Relative threat = ToM threat x map proximity x location risk x local cell
hazard, clamped to [0, 1].
"""
from __future__ import annotations

import math
from typing import TYPE_CHECKING, Optional

from ..util import clamp01
from .table import ToMEntry

if TYPE_CHECKING:
    from ..config import ToMConfig
    from ..world import AgentState, WorldState

SAME_LOCATION_PROXIMITY = 1.0
OTHER_LOCATION_PROXIMITY = 0.4
DEFAULT_LOCATION_RISK = 0.5
DEFAULT_CELL_HAZARD = 0.5


def proximity(world: "WorldState", a: "AgentState", b: "AgentState") -> float:
    """
    Inverse-normalized map distance in [0, 1].

    Without grid positions, agents at the same location count as adjacent
    (1.0) and agents elsewhere get a fixed 0.4.
    """
    if a.location_id != b.location_id:
        return OTHER_LOCATION_PROXIMITY
    location = world.locations.get(a.location_id) if a.location_id else None
    if location is None or a.position is None or b.position is None:
        return SAME_LOCATION_PROXIMITY
    dx = a.position[0] - b.position[0]
    dy = a.position[1] - b.position[1]
    return clamp01(1.0 - math.hypot(dx, dy) / location.max_distance())


def tom_threat(world: "WorldState", observer_id: str, target_id: str, config: Optional["ToMConfig"] = None) -> float:
    """Threat reading from the observer's ToM entry (neutral prior when absent)."""
    entry = world.tom.get(observer_id, target_id)
    if entry is None:
        entry = ToMEntry(observer_id=observer_id, target_id=target_id)
    if config is None:
        return entry.threat()
    return entry.threat(config.threat_low_trust, config.threat_low_trust_bonus)


def relative_threat(
    world: "WorldState",
    observer: "AgentState",
    target: "AgentState",
    config: Optional["ToMConfig"] = None,
) -> float:
    """
    How dangerous ``target`` is to ``observer`` right now.

    Location risk is read where the observer stands; the hazard is read at
    the target's cell, falling back to the hazard of the target's location.
    """
    threat = tom_threat(world, observer.id, target.id, config)
    here = world.location_of(observer)
    risk = here.risk if here is not None else DEFAULT_LOCATION_RISK
    there = world.location_of(target)
    hazard = there.cell_hazard(target.position, there.hazard) if there is not None else DEFAULT_CELL_HAZARD
    return clamp01(threat * proximity(world, observer, target) * risk * hazard)
