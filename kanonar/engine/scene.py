"""
Scene bookkeeping: executed actions move the scene metrics, and the scene
ends on threat cleared, cohesion lost, or timeout.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, Optional

from ..actions import ActionRecord
from ..util import clamp01
from ..world import SceneResult

if TYPE_CHECKING:
    from ..world import WorldState

logger = logging.getLogger(__name__)

# kind -> scene metric deltas at full success
SCENE_EFFECTS: Dict[str, Dict[str, float]] = {
    "attack": {"threat": -0.08, "cohesion": -0.05},
    "guard": {"threat": -0.03, "cohesion": 0.02},
    "escort": {"threat": -0.02, "cohesion": 0.03},
    "investigate": {"threat": -0.02},
    "observe": {"threat": -0.01},
    "help": {"cohesion": 0.04},
    "treat": {"cohesion": 0.04},
    "talk": {"cohesion": 0.02},
    "negotiate": {"cohesion": 0.02, "threat": -0.01},
    "trade": {"cohesion": 0.01},
    "command": {"cohesion": 0.01},
    "accuse": {"cohesion": -0.04},
    "threaten": {"cohesion": -0.05},
    "escape": {"cohesion": -0.02},
}


def scene_tick(world: "WorldState", executed: Iterable[ActionRecord]) -> Optional[SceneResult]:
    """
    Apply the tick's actions to the scene and check for an outcome.

    Returns:
        The outcome if the scene finished during this call, else None
    """
    scene = world.scene
    if scene is None or scene.done:
        return None

    for record in executed:
        for metric, delta in SCENE_EFFECTS.get(record.action, {}).items():
            scene.metrics[metric] = clamp01(scene.metrics.get(metric, 0.5) + delta * record.success)

    outcome = None
    if scene.metrics.get("threat", 0.5) <= 0.0:
        outcome = SceneResult(success=True, reason="threat neutralized")
    elif scene.metrics.get("cohesion", 0.5) <= 0.0:
        outcome = SceneResult(success=False, reason="group cohesion collapsed")
    elif world.tick + 1 >= scene.max_ticks:
        outcome = SceneResult(success=False, reason="timeout")

    if outcome is not None:
        scene.done = True
        scene.outcome = outcome
        logger.info(f"Scene {scene.id} ended at tick {world.tick}: {outcome.reason}")
    return outcome
