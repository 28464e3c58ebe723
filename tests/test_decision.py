"""
Tests for gating, cost, scoring and the decision policy.
"""
import pytest

from kanonar.actions import ActionFamily
from kanonar.atoms import AtomSet, Namespace, build_snapshot, make_atom
from kanonar.config import EngineConfig
from kanonar.decision import (
    DecisionPolicy,
    Intent,
    compute_cost,
    context_key,
    gate_possibility,
    rank_actions,
    score_possibility,
)
from kanonar.decision.scoring import context_multiplier
from kanonar.possibilities import BuilderRegistry, Possibility
from kanonar.possibilities.builders import AttackBuilder


def _possibility(kind="talk", family=ActionFamily.SOCIAL, target_id="vel", blocked_by=()):
    return Possibility(
        id=f"{kind}:mara:{target_id}" if target_id else f"{kind}:mara",
        kind=kind,
        label=kind,
        family=family,
        magnitude=0.6,
        confidence=1.0,
        subject_id="mara",
        target_id=target_id,
        blocked_by=tuple(blocked_by),
    )


def _atoms(**values):
    """Body/feel/trait/ctx atoms for mara from ``ns_kind=value`` keywords."""
    out = []
    for key, value in values.items():
        ns, kind = key.split("_", 1)
        out.append(make_atom(Namespace(ns), kind, "mara", magnitude=value))
    return AtomSet(out)


class TestGating:
    """Test presence-based and persona gates."""

    def test_present_blocker_blocks(self):
        """A blocking id that exists vetoes regardless of magnitude."""
        atoms = AtomSet([make_atom(Namespace.CON, "protocol", metric="noViolence", magnitude=0.0)])
        p = _possibility("attack", ActionFamily.VIOLENCE, blocked_by=("con:protocol:noViolence",))
        gate = gate_possibility("mara", atoms, p)
        assert not gate.allowed
        assert gate.blocked_by == ["con:protocol:noViolence"]

    def test_absent_blocker_allows(self):
        """Blocking ids that are absent do nothing."""
        p = _possibility("attack", ActionFamily.VIOLENCE, blocked_by=("con:protocol:noViolence",))
        assert gate_possibility("mara", AtomSet(), p).allowed

    def test_guarded_under_exposure(self):
        """Paranoid agents avoid social moves under surveillance."""
        atoms = _atoms(trait_paranoia=0.9, ctx_surveillance=0.8)
        gate = gate_possibility("mara", atoms, _possibility())
        assert "persona:guarded_under_exposure" in gate.reasons

    def test_info_need_overrides_guard(self):
        """A pressing need for information lifts the exposure gate."""
        atoms = _atoms(trait_paranoia=0.9, ctx_surveillance=0.8, need_info=0.9)
        assert gate_possibility("mara", atoms, _possibility()).allowed

    def test_norm_restraint(self):
        """Norm-sensitive agents do not attack without threat or anger."""
        atoms = _atoms(trait_norm_sensitivity=0.9)
        p = _possibility("attack", ActionFamily.VIOLENCE)
        assert "persona:norm_restraint" in gate_possibility("mara", atoms, p).reasons

    def test_ambiguity_averse(self):
        """Low tolerance plus high uncertainty blocks high-commitment conflict."""
        atoms = _atoms(trait_ambiguity_tolerance=0.1, ctx_uncertainty=0.8)
        p = _possibility("accuse", ActionFamily.CONFLICT)
        assert "persona:ambiguity_averse" in gate_possibility("mara", atoms, p).reasons


class TestCost:
    """Test the cost model."""

    def test_cost_bounded(self):
        """Total cost stays in [0, 1] even at extremes."""
        atoms = _atoms(body_fatigue=1.0, body_pain=1.0, body_stress=1.0, ctx_danger=1.0,
                       ctx_publicness=1.0, ctx_surveillance=1.0, ctx_timePressure=1.0)
        for family in ActionFamily:
            cost = compute_cost("mara", atoms, _possibility("x", family))
            assert 0.0 <= cost.total <= 1.0

    @pytest.mark.parametrize("body", ["fatigue", "pain", "stress"])
    def test_monotone_in_body_load(self, body):
        """Cost never drops as fatigue, pain or stress rise."""
        for family in ActionFamily:
            p = _possibility("x", family)
            previous = -1.0
            for level in (0.0, 0.3, 0.6, 1.0):
                total = compute_cost("mara", _atoms(**{f"body_{body}": level}), p).total
                assert total >= previous
                previous = total

    def test_threat_discount_for_escape(self):
        """Danger discounts escape relative to an undiscounted defensive move."""
        atoms = _atoms(ctx_danger=0.9)
        escape = compute_cost("mara", atoms, _possibility("escape", ActionFamily.DEFENSIVE, None))
        guard = compute_cost("mara", atoms, _possibility("brace", ActionFamily.DEFENSIVE, None))
        assert escape.discount > 0.0
        assert escape.total < guard.total

    def test_violence_moral_cost_under_norms(self):
        """A no-violence protocol raises the moral component of violence."""
        base = compute_cost("mara", AtomSet(), _possibility("attack", ActionFamily.VIOLENCE))
        strict = compute_cost(
            "mara",
            AtomSet([make_atom(Namespace.CON, "protocol", metric="noViolence", magnitude=1.0)]),
            _possibility("attack", ActionFamily.VIOLENCE),
        )
        assert strict.components["moral"] > base.components["moral"]


class TestScoring:
    """Test utility scoring."""

    def test_context_key(self):
        """Context keys bucket each axis into low, mid and high."""
        key = context_key({"danger": 0.9, "uncertainty": 0.1, "surveillance": 0.0, "crowd": 0.5, "privacy": 0.7})
        assert key == "danger:2|uncertainty:0|surveillance:0|crowd:1|privacy:2"
        assert context_key({}) == "danger:0|uncertainty:0|surveillance:0|crowd:0|privacy:0"

    def test_multiplier_clamped(self):
        """Extreme context cannot push the multiplier outside its bounds."""
        config = EngineConfig()
        low = context_multiplier(ActionFamily.VIOLENCE, {"uncertainty": 1.0, "surveillance": 1.0}, config)
        assert low == pytest.approx(config.scoring.multiplier_min)
        high = context_multiplier(ActionFamily.DEFENSIVE, {"danger": 1.0, "uncertainty": 1.0,
                                                          "surveillance": 1.0}, config)
        assert high <= config.scoring.multiplier_max

    def test_breakdown_complete(self):
        """The breakdown carries every intermediate term."""
        scored = score_possibility("mara", _atoms(ctx_danger=0.5), _possibility())
        for key in ("availability", "cost", "raw", "goal_bonus", "multiplier", "context_key", "score"):
            assert key in scored.breakdown
        assert 0.0 <= scored.score <= 1.0

    def test_goal_alignment_raises_score(self):
        """An active goal whose domain matches the action lifts its score."""
        p = _possibility("talk")
        plain = score_possibility("mara", AtomSet(), p)
        goal = make_atom(Namespace.GOAL, "active", "mara", "maintain_bonds", "vel",
                         magnitude=1.0, tags=("domain:affiliation",))
        aligned = score_possibility("mara", AtomSet([goal]), p)
        assert aligned.breakdown["goal_alignment"] > 0.0
        assert aligned.score > plain.score

    def test_goal_for_other_target_ignored(self):
        """A goal aimed at someone else does not count for this target."""
        goal = make_atom(Namespace.GOAL, "active", "mara", "maintain_bonds", "oskar",
                         magnitude=1.0, tags=("domain:affiliation",))
        scored = score_possibility("mara", AtomSet([goal]), _possibility("talk", target_id="vel"))
        assert scored.breakdown["goal_alignment"] == 0.0

    def test_rank_allowed_first(self):
        """Blocked actions rank below every allowed one."""
        atoms = AtomSet([make_atom(Namespace.CON, "protocol", metric="silence", magnitude=1.0)])
        blocked = score_possibility("mara", atoms, _possibility(blocked_by=("con:protocol:silence",)))
        allowed = score_possibility("mara", atoms, _possibility("rest", ActionFamily.RECOVERY, None))
        ranked = rank_actions([blocked, allowed])
        assert ranked[0] is allowed
        assert not ranked[1].allowed


class TestDecisionPolicy:
    """Test action selection."""

    def test_fear_favors_escape_and_hide(self, yard_world):
        """With high fear and cover, hide and escape outrank talk and negotiate."""
        snap = build_snapshot(yard_world, yard_world.get_agent("mara"))
        ranked = DecisionPolicy().evaluate("mara", snap.atoms)
        position = {s.id: i for i, s in enumerate(ranked)}
        for defensive in ("hide:mara", "escape:mara"):
            for social in ("talk:mara:oskar", "negotiate:mara:oskar"):
                assert position[defensive] < position[social]

    def test_chosen_is_always_allowed(self, breach_world):
        """The chosen action never has a present blocker."""
        policy = DecisionPolicy()
        for agent in breach_world.agents.values():
            snap = build_snapshot(breach_world, agent)
            decision = policy.choose(agent.id, snap.atoms)
            assert decision.chosen.allowed
            assert not [b for b in decision.chosen.possibility.blocked_by if b in snap.atoms]

    def test_fallback_when_everything_blocked(self):
        """When every candidate is vetoed the agent waits."""
        atoms = AtomSet([
            make_atom(Namespace.REL, "state", "mara", "vel", "hostility", magnitude=0.8),
            make_atom(Namespace.CON, "protocol", metric="noViolence", magnitude=1.0),
        ])
        policy = DecisionPolicy(registry=BuilderRegistry([AttackBuilder()]))
        decision = policy.choose("mara", atoms)
        assert decision.chosen.kind == "wait"
        assert decision.chosen.breakdown["fallback"] is True
        assert "all candidates blocked; fallback" in decision.notes

    def test_scripted_intent(self, breach_world):
        """An allowed scripted intent is taken as is."""
        snap = build_snapshot(breach_world, breach_world.get_agent("vel"))
        decision = DecisionPolicy().choose("vel", snap.atoms, Intent("talk", "oskar"))
        assert decision.scripted
        assert decision.chosen.id == "talk:vel:oskar"

    def test_blocked_intent_rejected(self):
        """A scripted intent that gating blocks falls back to the policy."""
        atoms = AtomSet([
            make_atom(Namespace.REL, "state", "mara", "vel", "hostility", magnitude=0.8),
            make_atom(Namespace.CON, "taboo", "mara", "vel", "attack", magnitude=1.0),
        ])
        decision = DecisionPolicy().choose("mara", atoms, Intent("attack", "vel"))
        assert not decision.scripted
        assert decision.chosen.kind != "attack"
        assert any("blocked" in n for n in decision.notes)

    def test_deterministic(self, breach_world):
        """Same atoms, same ranking."""
        snap = build_snapshot(breach_world, breach_world.get_agent("oskar"))
        policy = DecisionPolicy()
        first = [s.id for s in policy.evaluate("oskar", snap.atoms)]
        second = [s.id for s in policy.evaluate("oskar", snap.atoms)]
        assert first == second
