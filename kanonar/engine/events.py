"""
Tick event types.

Everything observable that happens during a tick is recorded as an event
in the run's ``EventStore``. Events are immutable and sequenced so a run
can be inspected or replayed tick by tick.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class TickEventType(str, Enum):
    """All event kinds emitted by the orchestrator."""

    TICK_START = "TickStart"
    ACTION_CHOSEN = "ActionChosen"
    ACTION_APPLIED = "ActionApplied"
    LEADER_CHANGED = "LeaderChanged"
    TOM_UPDATED = "TomUpdated"
    ARCHETYPE_DRIFT = "ArchetypeDrift"
    SCENE_OUTCOME = "SceneOutcome"
    PERIODIC_REPORT = "PeriodicReport"


@dataclass(frozen=True)
class TickEvent:
    """
    Immutable record of something that happened during a tick.

    Attributes:
        event_type: Kind of event
        tick: Tick it happened in
        agent_id: Agent the event is about, if any
        payload: Event-specific data
        seq: Sequence number, assigned by the store
    """
    event_type: TickEventType
    tick: int
    agent_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    seq: int = 0

    def with_seq(self, seq: int) -> "TickEvent":
        return TickEvent(self.event_type, self.tick, self.agent_id, self.payload, seq)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for logging/persistence."""
        return {
            "event_type": self.event_type.value,
            "tick": self.tick,
            "agent_id": self.agent_id,
            "payload": self.payload,
            "seq": self.seq,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TickEvent":
        """Deserialize from dictionary."""
        return cls(
            event_type=TickEventType(data["event_type"]),
            tick=int(data.get("tick", 0)),
            agent_id=data.get("agent_id"),
            payload=data.get("payload", {}),
            seq=int(data.get("seq", 0)),
        )


# Event factory functions for common events

def tick_start_event(tick: int, agent_ids) -> TickEvent:
    return TickEvent(TickEventType.TICK_START, tick, payload={"agents": list(agent_ids)})


def action_chosen_event(tick: int, agent_id: str, kind: str, target_id: Optional[str],
                        score: float, scripted: bool = False) -> TickEvent:
    """Create an action choice event."""
    return TickEvent(
        TickEventType.ACTION_CHOSEN, tick, agent_id,
        payload={"action": kind, "target_id": target_id, "score": score, "scripted": scripted},
    )


def action_applied_event(tick: int, agent_id: str, kind: str, target_id: Optional[str],
                         success: float, effects: Dict[str, Any]) -> TickEvent:
    """Create an action execution event."""
    return TickEvent(
        TickEventType.ACTION_APPLIED, tick, agent_id,
        payload={"action": kind, "target_id": target_id, "success": success, "effects": effects},
    )


def leader_changed_event(tick: int, old_id: Optional[str], new_id: Optional[str], score: float) -> TickEvent:
    return TickEvent(
        TickEventType.LEADER_CHANGED, tick, new_id,
        payload={"previous": old_id, "leader": new_id, "score": score},
    )


def tom_updated_event(tick: int, observer_id: str, update: Dict[str, Any]) -> TickEvent:
    return TickEvent(TickEventType.TOM_UPDATED, tick, observer_id, payload=update)


def drift_event(tick: int, agent_id: str, new_self_id: str, actual_overwritten: bool, probability: float) -> TickEvent:
    return TickEvent(
        TickEventType.ARCHETYPE_DRIFT, tick, agent_id,
        payload={"self_id": new_self_id, "actual_overwritten": actual_overwritten, "probability": probability},
    )


def scene_outcome_event(tick: int, scene_id: str, success: bool, reason: str) -> TickEvent:
    return TickEvent(
        TickEventType.SCENE_OUTCOME, tick,
        payload={"scene_id": scene_id, "success": success, "reason": reason},
    )


def periodic_report_event(tick: int, report: Dict[str, Any]) -> TickEvent:
    return TickEvent(TickEventType.PERIODIC_REPORT, tick, payload=report)
