# Goal ecology: axis logits, concrete goals, partition and overlays
from .catalog import DEFAULT_AXES, DEFAULT_GOALS, GoalAxis, GoalCatalog, GoalDef, default_catalog
from .logits import AxisLogits, bio_logits, combine_logits, context_logits, context_weight, trait_logits
from .evaluator import CatalogGoalEvaluator, ConcreteGoalEvaluator, GoalState, softmax
from .ecology import (
    GoalEcology,
    apply_location_overlay,
    apply_tom_overlay,
    compute_goal_ecology,
    goal_atoms,
    partition,
    tom_goal_deltas,
)

__all__ = [
    "DEFAULT_AXES",
    "DEFAULT_GOALS",
    "GoalAxis",
    "GoalCatalog",
    "GoalDef",
    "default_catalog",
    "AxisLogits",
    "bio_logits",
    "combine_logits",
    "context_logits",
    "context_weight",
    "trait_logits",
    "CatalogGoalEvaluator",
    "ConcreteGoalEvaluator",
    "GoalState",
    "softmax",
    "GoalEcology",
    "apply_location_overlay",
    "apply_tom_overlay",
    "compute_goal_ecology",
    "goal_atoms",
    "partition",
    "tom_goal_deltas",
]
