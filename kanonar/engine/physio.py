"""
Per-tick physiology: body state relaxes toward setpoints.

Internal conflict (the gap between the observed and self-perceived
archetype) raises the stress setpoint.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..config import EngineSettings
from ..util import clamp01

if TYPE_CHECKING:
    from ..world import AgentState

PAIN_RECOVERY = 0.05
EMOTION_DECAY = 0.05
EMOTION_BASELINE = {"fear": 0.1, "anger": 0.1, "sadness": 0.1, "hope": 0.5}


def update_physio(agent: "AgentState", self_gap: float = 0.0, settings: Optional[EngineSettings] = None) -> None:
    """
    Relax stress, fatigue, pain and transient emotions one tick.

    Guilt, shame and trauma are left alone; they are moral state, not
    physiology.
    """
    settings = settings or EngineSettings()
    tau = settings.physio_tau
    body = agent.body

    stress_target = clamp01(settings.stress_setpoint + settings.conflict_stress * clamp01(self_gap))
    body.stress = clamp01(body.stress + tau * (stress_target - body.stress))
    body.fatigue = clamp01(body.fatigue + tau * (settings.fatigue_setpoint - body.fatigue))
    body.pain = clamp01(body.pain - PAIN_RECOVERY)

    for name, baseline in EMOTION_BASELINE.items():
        value = agent.psych.emotion(name)
        agent.psych.emotions[name] = clamp01(value + EMOTION_DECAY * (baseline - value))
