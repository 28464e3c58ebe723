"""
Axis logits: trait (stable), biography (slow) and context (fast) layers,
and their combination under context weighting and the danger veto.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, Optional

from ..atoms.atomset import AtomSet
from ..atoms.model import Namespace, atom_id
from ..config import GoalConfig
from ..util import clamp01, ramp, sanitize
from .catalog import GoalCatalog

CONTEXT_WEIGHT_INPUTS = ("danger", "uncertainty", "time_pressure", "norm_pressure")


@dataclass
class AxisLogits:
    """Per-axis breakdown of the combined logit."""
    axis: str
    trait: float = 0.0
    bio: float = 0.0
    context: float = 0.0
    ctx_weight: float = 0.0
    damping: float = 0.0
    prio: float = 0.5
    prio_multiplier: float = 1.0
    veto: float = 0.0
    veto_term: float = 0.0
    combined: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def trait_logits(traits: Dict[str, float], catalog: GoalCatalog) -> Dict[str, float]:
    """Weighted centered traits; a missing trait sits at 0.5 and contributes nothing."""
    out = {}
    for axis in catalog.axes.values():
        total = 0.0
        for name, w in axis.trait_weights.items():
            t = clamp01(traits.get(name, 0.5))
            total += w * (t - 0.5) * 2.0
        out[axis.id] = sanitize(total)
    return out


def bio_logits(biography: Dict[str, float], catalog: GoalCatalog) -> Dict[str, float]:
    out = {}
    for axis in catalog.axes.values():
        total = sum(w * clamp01(biography.get(name, 0.0)) for name, w in axis.bio_weights.items())
        out[axis.id] = sanitize(total)
    return out


def context_logits(domains: Dict[str, float], catalog: GoalCatalog) -> Dict[str, float]:
    """Weighted domains; all zero when every domain is zero."""
    out = {}
    for axis in catalog.axes.values():
        total = sum(w * clamp01(domains.get(name, 0.0)) for name, w in axis.context_weights.items())
        out[axis.id] = sanitize(total)
    return out


def context_weight(domains: Dict[str, float], config: GoalConfig) -> float:
    """``floor + (1 - floor) * max(danger, uncertainty, time pressure, norm pressure)``."""
    peak = max(clamp01(domains.get(k, 0.0)) for k in CONTEXT_WEIGHT_INPUTS)
    floor = config.ctx_weight_floor
    return floor + (1.0 - floor) * peak


def combine_logits(
    traits: Dict[str, float],
    biography: Dict[str, float],
    domains: Dict[str, float],
    atoms: AtomSet,
    self_id: str,
    catalog: GoalCatalog,
    config: Optional[GoalConfig] = None,
) -> Dict[str, AxisLogits]:
    """
    Combine the three logit layers per axis.

    combined = trait + bio + damping x prio_multiplier x context +/- veto
    where damping is the context weight (raised toward 1 for survival
    axes) and prio comes from ``ctx:prio:<self>:<axis>`` atoms.

    Example:
        >>> logits = combine_logits({}, {}, {}, AtomSet(), "mara", default_catalog())
        >>> logits["safety"].combined
        0.0
    """
    config = config or GoalConfig()
    t_layer = trait_logits(traits, catalog)
    b_layer = bio_logits(biography, catalog)
    c_layer = context_logits(domains, catalog)

    ctx_w = context_weight(domains, config)
    veto = ramp(clamp01(domains.get("danger", 0.0)), config.danger_veto_lo, config.danger_veto_hi)

    out: Dict[str, AxisLogits] = {}
    for axis in catalog.axes.values():
        prio = clamp01(atoms.magnitude(atom_id(Namespace.CTX, "prio", self_id, "", axis.id), config.default_prio))
        prio_mult = config.prio_min + config.prio_span * prio
        if axis.survival:
            damping = ctx_w + (1.0 - ctx_w) * config.survival_relief
            veto_term = config.veto_boost * veto
        else:
            damping = ctx_w
            veto_term = -config.veto_suppress * veto
        combined = t_layer[axis.id] + b_layer[axis.id] + damping * prio_mult * c_layer[axis.id] + veto_term
        out[axis.id] = AxisLogits(
            axis=axis.id,
            trait=t_layer[axis.id],
            bio=b_layer[axis.id],
            context=c_layer[axis.id],
            ctx_weight=ctx_w,
            damping=damping,
            prio=prio,
            prio_multiplier=prio_mult,
            veto=veto,
            veto_term=veto_term,
            combined=sanitize(combined),
        )
    return out
