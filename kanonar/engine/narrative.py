"""
Narrative episodes: structured memory of what each agent did.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..actions import ActionFamily, get_action
from ..util import clamp01
from ..world import Episode

if TYPE_CHECKING:
    from ..actions import ActionRecord
    from ..world import AgentState

FAMILY_SALIENCE = {
    ActionFamily.VIOLENCE: 0.5,
    ActionFamily.CONFLICT: 0.35,
    ActionFamily.CARE: 0.25,
    ActionFamily.DEFENSIVE: 0.2,
}


def record_episode(agent: "AgentState", record: "ActionRecord", max_episodes: Optional[int] = None) -> Episode:
    """
    Append an episode for ``record`` to the agent's narrative memory.

    ``max_episodes`` rebounds the memory first when given.
    """
    if max_episodes is not None:
        agent.narrative.resize(max_episodes)
    spec = get_action(record.action)
    salience = clamp01(0.2 + FAMILY_SALIENCE.get(spec.family, 0.0) + 0.3 * agent.body.stress)
    episode = Episode(
        tick=record.tick,
        action=record.action,
        target_id=record.target_id,
        success=record.success,
        salience=salience,
        tags=list(spec.tags),
    )
    agent.narrative.add(episode)
    return episode
