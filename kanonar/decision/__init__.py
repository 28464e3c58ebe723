"""
Decision layer: gating, cost, utility scoring and action selection.

Scoring is pure and agent-scoped; only the orchestrator executes the
chosen action.
"""

from .gating import GateResult, gate_possibility, persona_gates, present_blockers
from .cost import CostBreakdown, compute_cost
from .scoring import ScoredAction, context_key, rank_actions, score_all, score_possibility
from .policy import Decision, DecisionPolicy, Intent, fallback_action

__all__ = [
    "GateResult",
    "gate_possibility",
    "persona_gates",
    "present_blockers",
    "CostBreakdown",
    "compute_cost",
    "ScoredAction",
    "context_key",
    "rank_actions",
    "score_all",
    "score_possibility",
    "Decision",
    "DecisionPolicy",
    "Intent",
    "fallback_action",
]
