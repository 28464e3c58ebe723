"""
Effort cost of a possibility.

Cost is a vector ``{time, energy, social, risk, moral}`` built from a
per-family base effort, bodily state, context and protocol strictness,
scalarized with the ``CostConfig`` weights and clamped to [0, 1].
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from ..actions import ActionFamily
from ..atoms.atomset import AtomSet
from ..atoms.model import Namespace, atom_id
from ..config import CostConfig
from ..possibilities.model import Possibility
from ..util import clamp01

COMPONENTS = ("time", "energy", "social", "risk", "moral")

# Base effort per family: (time, energy, social, risk, moral)
BASE_EFFORT: Dict[ActionFamily, tuple] = {
    ActionFamily.DEFENSIVE: (0.20, 0.25, 0.05, 0.15, 0.00),
    ActionFamily.RECOVERY: (0.30, 0.02, 0.00, 0.10, 0.00),
    ActionFamily.PERCEPTION: (0.25, 0.10, 0.05, 0.10, 0.00),
    ActionFamily.SOCIAL: (0.20, 0.10, 0.20, 0.10, 0.00),
    ActionFamily.CARE: (0.30, 0.25, 0.10, 0.15, 0.00),
    ActionFamily.CONFLICT: (0.15, 0.15, 0.35, 0.30, 0.20),
    ActionFamily.VIOLENCE: (0.10, 0.40, 0.40, 0.50, 0.50),
}

# How strongly danger raises risk, per family.
DANGER_RISK = {
    ActionFamily.DEFENSIVE: 0.15,
    ActionFamily.RECOVERY: 0.50,
    ActionFamily.PERCEPTION: 0.30,
    ActionFamily.SOCIAL: 0.30,
    ActionFamily.CARE: 0.40,
    ActionFamily.CONFLICT: 0.45,
    ActionFamily.VIOLENCE: 0.50,
}

# Share of bodily load that shows up as energy cost.
BODY_LOAD = {
    ActionFamily.RECOVERY: 0.3,
    ActionFamily.PERCEPTION: 0.6,
}

EXPOSED_FAMILIES = frozenset({ActionFamily.SOCIAL, ActionFamily.CONFLICT, ActionFamily.VIOLENCE})
DISCOUNTED_KINDS = frozenset({"escape", "hide"})


@dataclass
class CostBreakdown:
    total: float
    components: Dict[str, float] = field(default_factory=dict)
    discount: float = 0.0

    def to_dict(self) -> Dict[str, object]:
        return {"total": self.total, "components": dict(self.components), "discount": self.discount}


def compute_cost(
    self_id: str,
    atoms: AtomSet,
    possibility: Possibility,
    config: Optional[CostConfig] = None,
) -> CostBreakdown:
    """
    Cost of one possibility for ``self_id``.

    Body coefficients are non-negative and each component is clamped
    before weighting, so cost never decreases as fatigue, pain or stress
    rise.

    Args:
        self_id: Acting agent
        atoms: Snapshot atoms
        possibility: Candidate action
        config: Cost coefficients

    Returns:
        CostBreakdown with the scalar total in [0, 1]
    """
    config = config or CostConfig()

    def body(kind: str) -> float:
        return clamp01(atoms.magnitude(atom_id(Namespace.BODY, kind, self_id), 0.0))

    def ctx(kind: str) -> float:
        return clamp01(atoms.magnitude(atom_id(Namespace.CTX, kind, self_id), 0.0))

    family = possibility.family
    base = BASE_EFFORT.get(family, BASE_EFFORT[ActionFamily.SOCIAL])
    scale = config.base_effort_scale
    time_b, energy_b, social_b, risk_b, moral_b = (scale * b for b in base)

    load = (config.fatigue_coef * body("fatigue")
            + config.pain_coef * body("pain")
            + config.stress_coef * body("stress"))
    danger = ctx("danger")

    time_c = time_b + config.time_pressure_coef * ctx("timePressure")
    energy_c = energy_b + BODY_LOAD.get(family, 1.0) * load
    social_c = social_b
    if family in EXPOSED_FAMILIES:
        social_c += config.publicness_coef * ctx("publicness") + config.surveillance_coef * ctx("surveillance")
    risk_c = risk_b + DANGER_RISK.get(family, 0.3) * danger
    moral_c = moral_b
    if family is ActionFamily.VIOLENCE:
        strictness = max(
            atoms.magnitude(atom_id(Namespace.CON, "protocol", metric="noViolence"), 0.0),
            ctx("normPressure"),
        )
        moral_c += config.violence_penalty * strictness

    components = {
        "time": clamp01(time_c),
        "energy": clamp01(energy_c),
        "social": clamp01(social_c),
        "risk": clamp01(risk_c),
        "moral": clamp01(moral_c),
    }
    weights = {
        "time": config.w_time,
        "energy": config.w_energy,
        "social": config.w_social,
        "risk": config.w_risk,
        "moral": config.w_moral,
    }
    weight_sum = sum(weights.values()) or 1.0
    total = sum(weights[k] * components[k] for k in COMPONENTS) / weight_sum

    discount = 0.0
    if possibility.kind in DISCOUNTED_KINDS:
        discount = config.threat_discount * danger
    return CostBreakdown(total=clamp01(total - discount), components=components, discount=discount)
