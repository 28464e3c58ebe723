# Tick orchestrator and its stages
from .events import TickEvent, TickEventType
from .store import EventStore
from .diagnostics import TickDiagnostics
from .execution import ActionOutcome, execute_action, success_chance
from .leadership import LeaderChange, leader_scores, maybe_change_leader
from .physio import update_physio
from .scene import SCENE_EFFECTS, scene_tick
from .narrative import record_episode
from .orchestrator import SimulationRun, TickResult

__all__ = [
    "TickEvent",
    "TickEventType",
    "EventStore",
    "TickDiagnostics",
    "ActionOutcome",
    "execute_action",
    "success_chance",
    "LeaderChange",
    "leader_scores",
    "maybe_change_leader",
    "update_physio",
    "SCENE_EFFECTS",
    "scene_tick",
    "record_episode",
    "SimulationRun",
    "TickResult",
]
