"""
Goal-axis and concrete-goal catalogs.

Axes are the fixed motivational dimensions the ecology computes logits
over. Goal definitions are the concrete goals the default evaluator
instantiates from those logits. Catalogs are static content: loaded once,
never mutated by the engine.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..errors import GoalCatalogError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GoalAxis:
    """
    One motivational axis.

    Attributes:
        id: Axis id, also the domain tag on goal atoms
        survival: Survival axes get reduced context damping and the
            danger-veto boost
        trait_weights: trait name -> weight on the centered trait
        bio_weights: biography exposure -> weight
        context_weights: domain name -> weight
    """
    id: str
    label: str = ""
    survival: bool = False
    trait_weights: Dict[str, float] = field(default_factory=dict)
    bio_weights: Dict[str, float] = field(default_factory=dict)
    context_weights: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class GoalDef:
    """
    A concrete goal template.

    Attributes:
        id: Goal definition id
        domain: Primary axis
        axis_weights: axis -> weight on the combined axis logit
        bias: Constant logit offset
        targeted: Instantiated once per present other agent
        target_factors: factor name -> weight, for targeted goals
            (see ``kanonar.goals.evaluator.TARGET_FACTORS``)
        allow: Action kinds this goal explicitly endorses
        blocked_by: Atom id templates (``{self}`` substituted) that block it
        sacred: Never suppressed below its base priority by overlays
    """
    id: str
    domain: str
    axis_weights: Dict[str, float] = field(default_factory=dict)
    bias: float = 0.0
    targeted: bool = False
    target_factors: Dict[str, float] = field(default_factory=dict)
    allow: Tuple[str, ...] = ()
    blocked_by: Tuple[str, ...] = ()
    sacred: bool = False
    label: str = ""


class GoalCatalog:
    """
    Axes plus goal definitions.

    Raises:
        GoalCatalogError: When no axes are defined, or a goal references
            an unknown axis
    """

    def __init__(self, axes: List[GoalAxis], goals: List[GoalDef]):
        self.axes: Dict[str, GoalAxis] = {a.id: a for a in axes}
        self.goals: Dict[str, GoalDef] = {g.id: g for g in goals}
        self.validate()

    def validate(self) -> None:
        if not self.axes:
            raise GoalCatalogError("Goal-axis catalog is empty")
        for goal in self.goals.values():
            unknown = [a for a in [goal.domain, *goal.axis_weights] if a not in self.axes]
            if unknown:
                raise GoalCatalogError(f"Goal {goal.id!r} references unknown axes: {unknown}")

    @property
    def axis_ids(self) -> List[str]:
        return list(self.axes.keys())

    @property
    def survival_axes(self) -> List[str]:
        return [a.id for a in self.axes.values() if a.survival]

    def goal(self, def_id: str) -> Optional[GoalDef]:
        return self.goals.get(def_id)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GoalCatalog":
        """
        Build a catalog from plain data (e.g. a YAML document).

        Raises:
            GoalCatalogError: When ``data`` has no axes
        """
        if not isinstance(data, dict) or not data.get("axes"):
            raise GoalCatalogError("Goal catalog data has no 'axes'")
        axes = []
        for raw in data["axes"]:
            axes.append(GoalAxis(
                id=str(raw["id"]),
                label=str(raw.get("label", "")),
                survival=bool(raw.get("survival", False)),
                trait_weights=dict(raw.get("trait_weights", {})),
                bio_weights=dict(raw.get("bio_weights", {})),
                context_weights=dict(raw.get("context_weights", {})),
            ))
        goals = []
        for raw in data.get("goals", []):
            goals.append(GoalDef(
                id=str(raw["id"]),
                domain=str(raw["domain"]),
                axis_weights=dict(raw.get("axis_weights", {raw["domain"]: 1.0})),
                bias=float(raw.get("bias", 0.0)),
                targeted=bool(raw.get("targeted", False)),
                target_factors=dict(raw.get("target_factors", {})),
                allow=tuple(raw.get("allow", ())),
                blocked_by=tuple(raw.get("blocked_by", ())),
                sacred=bool(raw.get("sacred", False)),
                label=str(raw.get("label", "")),
            ))
        return cls(axes, goals)


DEFAULT_AXES = [
    GoalAxis(
        "safety", "Safety", survival=True,
        trait_weights={"safety_need": 1.0, "paranoia": 0.6},
        bio_weights={"violence": 0.8, "loss": 0.3},
        context_weights={"danger": 1.5, "avoidance": 0.5},
    ),
    GoalAxis(
        "care", "Care",
        trait_weights={"care": 1.0, "empathy": 0.5},
        bio_weights={"care_received": 0.6, "loss": 0.3},
        context_weights={"care": 1.2, "attachment": 0.4},
    ),
    GoalAxis(
        "affiliation", "Affiliation",
        trait_weights={"sociability": 1.0, "care": 0.3, "paranoia": -0.4},
        bio_weights={"care_received": 0.5, "betrayal": -0.6},
        context_weights={"intimacy": 0.8, "attachment": 0.6, "social": 0.3},
    ),
    GoalAxis(
        "control", "Control",
        trait_weights={"power_drive": 0.8, "paranoia": 0.3},
        bio_weights={"violence": 0.4, "betrayal": 0.5},
        context_weights={"danger": 0.4, "hierarchy": -0.3, "scarcity": 0.4},
    ),
    GoalAxis(
        "status", "Status",
        trait_weights={"ambition": 1.0, "power_drive": 0.4},
        bio_weights={"hierarchy": 0.5},
        context_weights={"hierarchy": 0.5, "social": 0.4},
    ),
    GoalAxis(
        "knowledge", "Knowledge",
        trait_weights={"curiosity": 1.0, "ambiguity_tolerance": 0.3},
        bio_weights={"betrayal": 0.3},
        context_weights={"uncertainty": 1.2},
    ),
    GoalAxis(
        "duty", "Duty",
        trait_weights={"norm_sensitivity": 0.8, "discipline": 0.6},
        bio_weights={"hierarchy": 0.7},
        context_weights={"obligation": 1.0, "hierarchy": 0.5},
    ),
    GoalAxis(
        "rest", "Rest",
        trait_weights={"discipline": -0.3},
        bio_weights={"loss": 0.2},
        context_weights={"fatigue": 1.2, "danger": -0.6},
    ),
]

DEFAULT_GOALS = [
    GoalDef("protect_self", "safety", {"safety": 1.0, "control": 0.2}, bias=0.2,
            allow=("hide", "guard", "observe"), label="Protect self"),
    GoalDef("escape", "safety", {"safety": 1.0, "rest": -0.2},
            allow=("escape", "hide"), blocked_by=("con:exitBlocked:{self}",), label="Get out"),
    GoalDef("rest", "rest", {"rest": 1.0}, allow=("rest", "wait"), label="Recover"),
    GoalDef("seek_information", "knowledge", {"knowledge": 1.0},
            allow=("observe", "ask_info", "investigate"), label="Find out what is going on"),
    GoalDef("follow_orders", "duty", {"duty": 1.0, "status": -0.2}, sacred=True,
            allow=("wait", "guard"), label="Follow orders"),
    GoalDef("gain_status", "status", {"status": 1.0, "control": 0.3},
            allow=("command", "negotiate", "trade"), label="Gain standing"),
    GoalDef("contain_threat", "control", {"control": 1.0, "safety": 0.4}, targeted=True,
            target_factors={"tom.threat": 2.0, "rel.hostility": 1.0, "rel.trust": -0.5},
            allow=("accuse", "threaten", "command", "attack"), label="Contain threat"),
    GoalDef("aid_ally", "care", {"care": 1.0}, targeted=True,
            target_factors={"injury": 1.5, "rel.closeness": 1.0, "tom.threat": -0.5},
            allow=("help", "treat"), label="Aid ally"),
    GoalDef("protect_other", "care", {"care": 0.8, "safety": 0.3}, targeted=True,
            target_factors={"tom.vulnerability": 1.0, "rel.closeness": 1.0},
            allow=("guard", "escort"), label="Protect other"),
    GoalDef("maintain_bonds", "affiliation", {"affiliation": 1.0}, targeted=True,
            target_factors={"rel.closeness": 1.0, "rel.trust": 0.5, "tom.threat": -0.5},
            allow=("talk", "help", "trade"), label="Maintain bonds"),
]


def default_catalog() -> GoalCatalog:
    return GoalCatalog(DEFAULT_AXES, DEFAULT_GOALS)
