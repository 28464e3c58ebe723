"""
Tuning configuration for the decision engine.

Every coefficient the pipeline uses lives in one of the dataclasses below.
Configs can be loaded from YAML/JSON files so designers can tune behavior
without modifying code.
"""
from __future__ import annotations

import os
import json
import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def _filtered(cls, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not isinstance(data, dict):
        return {}
    return {k: v for k, v in data.items() if k in cls.__dataclass_fields__}


@dataclass
class CostConfig:
    """
    Cost model coefficients.

    The cost vector is ``{time, energy, social, risk, moral}``; the
    ``w_*`` weights scalarize it. Body coefficients are kept non-negative
    so that cost never drops when fatigue, pain or stress rise.
    """
    w_time: float = 0.20
    w_energy: float = 0.30
    w_social: float = 0.20
    w_risk: float = 0.20
    w_moral: float = 0.10

    fatigue_coef: float = 0.35
    pain_coef: float = 0.25
    stress_coef: float = 0.20

    time_pressure_coef: float = 0.30
    publicness_coef: float = 0.45
    surveillance_coef: float = 0.25
    violence_penalty: float = 0.35
    threat_discount: float = 0.35
    base_effort_scale: float = 1.0

    def __post_init__(self):
        for name in ("w_time", "w_energy", "w_social", "w_risk", "w_moral"):
            setattr(self, name, _clamp(getattr(self, name), 0.0, 1.0))
        self.fatigue_coef = _clamp(self.fatigue_coef, 0.0, 2.0)
        self.pain_coef = _clamp(self.pain_coef, 0.0, 2.0)
        self.stress_coef = _clamp(self.stress_coef, 0.0, 2.0)
        self.threat_discount = _clamp(self.threat_discount, 0.0, 1.0)
        self.base_effort_scale = _clamp(self.base_effort_scale, 0.0, 3.0)


@dataclass
class PossibilityConfig:
    """Blend between the learned action prior and situational context."""
    prior_weight: float = 0.4
    default_prior: float = 0.5
    min_magnitude: float = 0.05

    def __post_init__(self):
        self.prior_weight = _clamp(self.prior_weight, 0.0, 1.0)
        self.default_prior = _clamp(self.default_prior, 0.0, 1.0)
        self.min_magnitude = _clamp(self.min_magnitude, 0.0, 1.0)


@dataclass
class GatingConfig:
    """Thresholds for persona hard gates."""
    persona_high: float = 0.7
    surveillance_high: float = 0.6
    privacy_low: float = 0.3
    info_need_override: float = 0.75
    norm_sensitive: float = 0.7
    violence_threshold: float = 1.1
    ambiguity_low: float = 0.3
    uncertainty_high: float = 0.6


@dataclass
class ScoringConfig:
    """Utility scorer knobs."""
    goal_mix: float = 0.20          # share of the goal bonus in the mix
    goal_gain: float = 1.5          # tanh gain for the goal bonus
    preference_scale: float = 1.0
    multiplier_min: float = 0.35
    multiplier_max: float = 1.65

    def __post_init__(self):
        self.goal_mix = _clamp(self.goal_mix, 0.0, 1.0)
        self.goal_gain = _clamp(self.goal_gain, 0.0, 10.0)
        self.multiplier_min = _clamp(self.multiplier_min, 0.0, 1.0)
        self.multiplier_max = max(1.0, self.multiplier_max)


@dataclass
class GoalConfig:
    """Goal ecology knobs."""
    top_k: int = 5
    ctx_weight_floor: float = 0.35
    prio_min: float = 0.60
    prio_span: float = 0.80
    default_prio: float = 0.5
    survival_relief: float = 0.5
    danger_veto_lo: float = 0.55
    danger_veto_hi: float = 0.80
    veto_boost: float = 1.5
    veto_suppress: float = 1.0
    softmax_temperature: float = 1.0
    overlay_gain: float = 0.25
    priority_floor: float = 0.0

    def __post_init__(self):
        self.top_k = max(1, int(self.top_k))
        self.ctx_weight_floor = _clamp(self.ctx_weight_floor, 0.0, 1.0)
        self.survival_relief = _clamp(self.survival_relief, 0.0, 1.0)
        self.softmax_temperature = max(0.05, self.softmax_temperature)
        if self.danger_veto_hi <= self.danger_veto_lo:
            self.danger_veto_hi = self.danger_veto_lo + 0.05


@dataclass
class ToMConfig:
    """Theory-of-mind update and decay rates."""
    trust_alpha: float = 0.35
    unc_alpha: float = 0.25
    base_intensity: float = 0.5
    target_intensity_boost: float = 1.5
    decay_rate: float = 0.05
    max_depth: float = 3.0
    core_gain: float = 4.0
    threat_low_trust: float = 0.3
    threat_low_trust_bonus: float = 0.2

    def __post_init__(self):
        self.trust_alpha = _clamp(self.trust_alpha, 0.0, 1.0)
        self.unc_alpha = _clamp(self.unc_alpha, 0.0, 1.0)
        self.decay_rate = _clamp(self.decay_rate, 0.0, 1.0)
        self.max_depth = max(0.0, self.max_depth)


@dataclass
class DriftConfig:
    """Archetype tension and drift constants."""
    on_brand_delta: float = 0.10
    off_brand_delta: float = 0.15
    neutral_decay: float = 0.95
    flip_threshold: float = 0.8
    flip_reset: float = 0.6
    shadow_step: float = 0.2
    drift_gain: float = 10.0
    drift_bias: float = 1.2
    drift_scale: float = 0.1
    severe_trauma: float = 0.6
    severe_gap: float = 0.7
    identity_smoothing: float = 0.9


@dataclass
class EngineSettings:
    """Orchestrator settings."""
    event_log_max: int = 2000
    event_log_keep: int = 1500
    report_every: int = 10
    report_window: int = 50
    narrative_max: int = 20
    physio_tau: float = 0.1
    stress_setpoint: float = 0.25
    fatigue_setpoint: float = 0.20
    conflict_stress: float = 0.5
    seed: Optional[int] = None

    def __post_init__(self):
        self.event_log_max = max(1, int(self.event_log_max))
        self.event_log_keep = max(1, min(int(self.event_log_keep), self.event_log_max))
        self.report_every = max(1, int(self.report_every))
        self.narrative_max = max(1, int(self.narrative_max))
        self.physio_tau = _clamp(self.physio_tau, 0.0, 1.0)


_SECTIONS = {
    "cost": CostConfig,
    "possibilities": PossibilityConfig,
    "gating": GatingConfig,
    "scoring": ScoringConfig,
    "goals": GoalConfig,
    "tom": ToMConfig,
    "drift": DriftConfig,
    "engine": EngineSettings,
}


@dataclass
class EngineConfig:
    """
    Full tuning configuration for a simulation run.

    Can be loaded from YAML/JSON files or created programmatically.
    Unknown keys are ignored so older files keep loading.
    """
    cost: CostConfig = field(default_factory=CostConfig)
    possibilities: PossibilityConfig = field(default_factory=PossibilityConfig)
    gating: GatingConfig = field(default_factory=GatingConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    goals: GoalConfig = field(default_factory=GoalConfig)
    tom: ToMConfig = field(default_factory=ToMConfig)
    drift: DriftConfig = field(default_factory=DriftConfig)
    engine: EngineSettings = field(default_factory=EngineSettings)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EngineConfig":
        """Create from dictionary, section by section."""
        data = data if isinstance(data, dict) else {}
        kwargs = {}
        for name, section_cls in _SECTIONS.items():
            kwargs[name] = section_cls(**_filtered(section_cls, data.get(name)))
        return cls(**kwargs)

    def merged(self, overrides: Dict[str, Any]) -> "EngineConfig":
        """Return a copy with ``overrides`` applied on top of this config."""
        base = self.to_dict()
        for section, values in (overrides or {}).items():
            if section in base and isinstance(values, dict):
                base[section].update(values)
        return EngineConfig.from_dict(base)

    def save(self, path: str) -> None:
        """Save config to a JSON or YAML file (by extension)."""
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            if path.endswith((".yaml", ".yml")):
                yaml.safe_dump(self.to_dict(), f, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> Optional["EngineConfig"]:
        """
        Load config from a JSON or YAML file.

        Returns None when the file does not exist. A file that exists but
        cannot be parsed is a setup error and raises ConfigurationError.
        """
        data = read_config_file(path)
        if data is None:
            return None
        return cls.from_dict(data)


def read_config_file(path: str) -> Optional[Dict[str, Any]]:
    """
    Read the raw mapping of a JSON or YAML config file.

    Only the keys the file sets are returned, so the result can be merged
    over a preset without resetting anything else.

    Returns:
        The mapping (empty for an empty file), or None when the file does
        not exist

    Raises:
        ConfigurationError: When the file cannot be parsed or its root is
            not a mapping
    """
    if not os.path.exists(path):
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()

        if path.endswith((".yaml", ".yml")):
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config from {path}: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ConfigurationError(f"Config root in {path} must be a mapping")

    logger.info(f"Loaded engine config from {path}")
    return data or {}


# Built-in tuning presets
PRESETS: Dict[str, Dict[str, Any]] = {
    "default": {},
    "cautious": {
        "cost": {"threat_discount": 0.5, "violence_penalty": 0.5},
        "gating": {"persona_high": 0.6, "violence_threshold": 1.3},
        "goals": {"danger_veto_lo": 0.45, "veto_boost": 2.0},
    },
    "volatile": {
        "scoring": {"multiplier_max": 1.65, "goal_mix": 0.1},
        "tom": {"trust_alpha": 0.5, "decay_rate": 0.02},
        "drift": {"drift_scale": 0.2, "flip_threshold": 0.7},
    },
}


def get_preset(name: str) -> Optional[EngineConfig]:
    """Get a built-in tuning preset by name."""
    preset = PRESETS.get(name.lower())
    if preset is None:
        return None
    return EngineConfig().merged(preset)


def list_presets() -> List[str]:
    """List available preset names."""
    return list(PRESETS.keys())


class ConfigManager:
    """
    Manages tuning configs with preset + custom file support.

    Example:
        >>> manager = ConfigManager("./tuning")
        >>> config = manager.get("cautious")  # Uses built-in preset
        >>> config = manager.get("my_scene")  # Loads ./tuning/my_scene.yaml
    """

    EXTENSIONS = (".yaml", ".yml", ".json")

    def __init__(self, config_dir: str = "./kanonar_configs"):
        """
        Initialize config manager.

        Args:
            config_dir: Directory for custom tuning files
        """
        self.config_dir = config_dir
        self._cache: Dict[str, EngineConfig] = {}

    def get(self, name: str) -> Optional[EngineConfig]:
        """
        Get a config by name.

        Checks in order:
        1. Cache
        2. Custom file (config_dir/name.yaml, .yml or .json)
        3. Built-in presets
        """
        key = name.lower()
        if key in self._cache:
            return self._cache[key]

        for ext in self.EXTENSIONS:
            path = os.path.join(self.config_dir, f"{key}{ext}")
            config = EngineConfig.load(path)
            if config is not None:
                self._cache[key] = config
                return config

        config = get_preset(key)
        if config is not None:
            self._cache[key] = config
        return config

    def save(self, name: str, config: EngineConfig) -> str:
        """Save a custom config and return its path."""
        path = os.path.join(self.config_dir, f"{name.lower()}.yaml")
        config.save(path)
        self._cache[name.lower()] = config
        return path

    def list_available(self) -> List[str]:
        """List presets and custom config names."""
        names = set(list_presets())
        if os.path.isdir(self.config_dir):
            for fname in os.listdir(self.config_dir):
                stem, ext = os.path.splitext(fname)
                if ext in self.EXTENSIONS:
                    names.add(stem)
        return sorted(names)

