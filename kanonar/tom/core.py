"""
ToM core: how well an observer can model others.

Each output is a logistic transform of a declared weighted linear
combination of the observer's cognition profile.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import TYPE_CHECKING, Dict, Optional

from ..util import clamp01, sigmoid

if TYPE_CHECKING:
    from ..config import ToMConfig
    from ..world import CognitionProfile

# input name -> weight; "bias" is the constant term
QUALITY_WEIGHTS: Dict[str, float] = {
    "metacog": 0.30,
    "evidence_quality": 0.25,
    "model_calibration": 0.15,
    "memory_fidelity": 0.10,
    "info_hygiene": 0.10,
    "network_closeness": 0.10,
    "obs_noise": -0.20,
    "report_noise": -0.15,
    "dark_exposure": -0.15,
    "bias": -0.35,
}

UNCERTAINTY_WEIGHTS: Dict[str, float] = {
    "obs_noise": 0.35,
    "report_noise": 0.25,
    "dark_exposure": 0.20,
    "evidence_quality": -0.20,
    "metacog": -0.30,
    "model_calibration": -0.20,
    "bias": 0.25,
}

DEPTH_WEIGHTS: Dict[str, float] = {
    "metacog": 0.50,
    "memory_fidelity": 0.30,
    "network_closeness": 0.20,
    "bias": -0.50,
}

META_UNCERTAINTY_WEIGHTS: Dict[str, float] = {
    "model_calibration": -0.40,
    "metacog": -0.30,
    "dark_exposure": 0.30,
    "bias": 0.35,
}


@dataclass(frozen=True)
class ToMCore:
    """
    Attributes:
        quality: Modeling capability Q in [0, 1]
        uncertainty: Baseline uncertainty U in [0, 1]
        depth: Effective reasoning depth in [0, max_depth]
        meta_uncertainty: Uncertainty about one's own model, [0, 1]
    """
    quality: float
    uncertainty: float
    depth: float
    meta_uncertainty: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def _linear(profile: "CognitionProfile", weights: Dict[str, float]) -> float:
    total = weights.get("bias", 0.0)
    for name, w in weights.items():
        if name != "bias":
            total += w * clamp01(getattr(profile, name))
    return total


def compute_tom_core(profile: "CognitionProfile", config: Optional["ToMConfig"] = None) -> ToMCore:
    """
    Compute the observer's ToM core.

    Example:
        >>> core = compute_tom_core(CognitionProfile())
        >>> 0.5 < core.quality < 0.6
        True
    """
    gain = config.core_gain if config else 4.0
    max_depth = config.max_depth if config else 3.0
    return ToMCore(
        quality=sigmoid(gain * _linear(profile, QUALITY_WEIGHTS)),
        uncertainty=sigmoid(gain * _linear(profile, UNCERTAINTY_WEIGHTS)),
        depth=max_depth * sigmoid(gain * _linear(profile, DEPTH_WEIGHTS)),
        meta_uncertainty=sigmoid(gain * _linear(profile, META_UNCERTAINTY_WEIGHTS)),
    )
