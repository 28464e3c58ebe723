"""
Kanonar: explainable per-tick decision engine for simulated characters.

Each tick every agent perceives its situation as atoms, weighs candidate
actions against its goals, acts, and updates what it believes about the
others.
"""

from .config import EngineConfig
from .engine.orchestrator import SimulationRun, TickResult
from .loader import build_world
from .world import AgentState, Location, WorldState

__version__ = "0.1.0"

__all__ = [
    "EngineConfig",
    "SimulationRun",
    "TickResult",
    "build_world",
    "AgentState",
    "Location",
    "WorldState",
]
