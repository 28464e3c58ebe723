"""
Tests for goal catalogs, axis logits and the goal ecology.
"""
import pytest

from kanonar.atoms import AgentFrame, AtomSet, Snapshot, build_snapshot, compute_domains
from kanonar.config import GoalConfig
from kanonar.errors import GoalCatalogError
from kanonar.goals import (
    GoalAxis,
    GoalCatalog,
    GoalDef,
    GoalState,
    apply_location_overlay,
    apply_tom_overlay,
    bio_logits,
    combine_logits,
    compute_goal_ecology,
    context_weight,
    default_catalog,
    goal_atoms,
    partition,
    softmax,
    trait_logits,
    tom_goal_deltas,
)
from kanonar.scenarios import load_scenario
from kanonar.tom import ToMEntry
from kanonar.world import AgentState, Location, WorldState


@pytest.fixture
def catalog():
    return default_catalog()


class TestGoalCatalog:
    """Test catalog validation."""

    def test_default_catalog_valid(self, catalog):
        """The built-in catalog has axes and survival axes."""
        assert "safety" in catalog.axis_ids
        assert catalog.survival_axes == ["safety"]
        assert catalog.goal("contain_threat").targeted

    def test_empty_axes_rejected(self):
        """A catalog without axes is a setup error."""
        with pytest.raises(GoalCatalogError):
            GoalCatalog([], [])

    def test_unknown_axis_rejected(self):
        """Goals must reference known axes."""
        with pytest.raises(GoalCatalogError):
            GoalCatalog([GoalAxis("safety")], [GoalDef("fly", "wonder")])

    def test_from_dict(self):
        """Plain data builds a catalog; missing axes raise."""
        cat = GoalCatalog.from_dict({
            "axes": [{"id": "safety", "survival": True, "trait_weights": {"safety_need": 1.0}}],
            "goals": [{"id": "duck", "domain": "safety", "allow": ["hide"]}],
        })
        assert cat.goal("duck").axis_weights == {"safety": 1.0}
        assert cat.goal("duck").allow == ("hide",)
        with pytest.raises(GoalCatalogError):
            GoalCatalog.from_dict({"goals": []})


class TestLogits:
    """Test the logit layers."""

    def test_trait_logit_centered(self, catalog):
        """Traits are centered at 0.5, so a missing trait adds nothing."""
        assert trait_logits({}, catalog)["safety"] == 0.0
        assert trait_logits({"safety_need": 1.0}, catalog)["safety"] == pytest.approx(1.0)

    def test_context_weight_floor(self):
        """Calm context weighs at the floor; full danger at 1."""
        config = GoalConfig()
        assert context_weight({}, config) == pytest.approx(config.ctx_weight_floor)
        assert context_weight({"danger": 1.0}, config) == pytest.approx(1.0)

    def test_danger_veto(self, catalog):
        """High danger boosts survival axes and suppresses the rest."""
        logits = combine_logits({}, {}, {"danger": 0.9}, AtomSet(), "mara", catalog)
        assert logits["safety"].veto == 1.0
        assert logits["safety"].veto_term > 0.0
        assert logits["status"].veto_term < 0.0

    def test_empty_atoms_leave_trait_and_bio_only(self, catalog):
        """With no atoms every context logit is zero."""
        traits = {"safety_need": 0.9, "curiosity": 0.2, "care": 0.7}
        bio = {"violence": 0.5, "care_received": 0.4}
        world = WorldState()
        world.add_agent(AgentState(id="mara", traits=traits, biography=bio))
        empty = AtomSet()
        snap = Snapshot(atoms=empty, domains=compute_domains(empty, "mara"),
                        frame=AgentFrame(self_id="mara", tick=0), base=empty)

        ecology = compute_goal_ecology(world, "mara", snap, catalog)
        t_layer = trait_logits(traits, catalog)
        b_layer = bio_logits(bio, catalog)
        for axis_id, logit in ecology.axis_logits.items():
            assert logit.context == 0.0
            assert logit.veto == 0.0
            assert logit.combined == pytest.approx(t_layer[axis_id] + b_layer[axis_id])

    def test_softmax(self):
        """Softmax sums to one and handles empty input."""
        scores = softmax([1.0, 2.0, 3.0])
        assert scores.sum() == pytest.approx(1.0)
        assert scores[2] > scores[1] > scores[0]
        assert softmax([]).size == 0


class TestGoalEcology:
    """Test ecology partition and overlays."""

    def test_partition_ordered(self, breach_world, catalog):
        """Execute goals all rank at least as high as latent goals."""
        config = GoalConfig()
        for agent in breach_world.agents.values():
            snap = build_snapshot(breach_world, agent)
            ecology = compute_goal_ecology(breach_world, agent.id, snap, catalog, config)
            assert len(ecology.execute) == config.top_k
            priorities = [g.priority for g in ecology.all_goals]
            assert priorities == sorted(priorities, reverse=True)
            assert min(g.priority for g in ecology.execute) >= max(g.priority for g in ecology.latent)
            assert ecology.queue == ecology.latent
            assert ecology.drop == []

    def test_targeted_goals_per_other(self, breach_world, catalog):
        """Targeted definitions are instantiated once per present other."""
        snap = build_snapshot(breach_world, breach_world.get_agent("mara"))
        ecology = compute_goal_ecology(breach_world, "mara", snap, catalog)
        ids = {g.id for g in ecology.all_goals}
        assert {"contain_threat@oskar", "contain_threat@vel", "aid_ally@vel"} <= ids
        assert len(ecology.all_goals) == 6 + 4 * 2

    def test_blocked_goal_not_emitted(self, catalog):
        """A blocked escape goal never becomes a goal atom."""
        world = load_scenario("standoff")
        snap = build_snapshot(world, world.get_agent("nell"))
        ecology = compute_goal_ecology(world, "nell", snap, catalog)
        escape = next(g for g in ecology.all_goals if g.def_id == "escape")
        assert escape.blocked
        ids = [a.id for a in goal_atoms(ecology, catalog)]
        assert "goal:active:nell:escape" not in ids

    def test_goal_atoms_relative_activation(self, breach_world, catalog):
        """The strongest active goal reads 1.0; allow links are emitted."""
        snap = build_snapshot(breach_world, breach_world.get_agent("mara"))
        ecology = compute_goal_ecology(breach_world, "mara", snap, catalog)
        atoms = goal_atoms(ecology, catalog)
        goals = [a for a in atoms if a.id.startswith("goal:active:")]
        assert max(a.magnitude for a in goals) == pytest.approx(1.0)
        assert all(0.0 <= a.magnitude <= 1.0 for a in goals)
        assert any(a.id.startswith("util:allow:mara:") for a in atoms)

    def test_missing_snapshot_gives_empty(self, breach_world, catalog):
        """No snapshot, empty ecology."""
        ecology = compute_goal_ecology(breach_world, "mara", None, catalog)
        assert ecology.execute == [] and ecology.top is None

    def test_missing_catalog_raises(self, breach_world):
        """A missing catalog is fatal."""
        with pytest.raises(GoalCatalogError):
            compute_goal_ecology(breach_world, "mara", None, None)

    def test_location_overlay_respects_sacred(self):
        """Negative overlays skip sacred goals and record provenance on others."""
        world = WorldState()
        world.add_location(Location(id="hall", goal_bias={"follow_orders": -1.0, "gain_status": -1.0}))
        agent = world.add_agent(AgentState(id="ilse", location_id="hall"))
        sacred = GoalState(id="follow_orders", def_id="follow_orders", domain="duty", priority=0.3, sacred=True)
        plain = GoalState(id="gain_status", def_id="gain_status", domain="status", priority=0.3)

        apply_location_overlay([sacred, plain], world, agent, GoalConfig())

        assert sacred.priority == 0.3
        assert sacred.context_sources == []
        assert plain.priority == pytest.approx(0.05)
        assert plain.context_sources == ["location:hall:-0.250"]

    def test_partition_short_of_k(self):
        """Fewer goals than K all execute; the two sets never overlap."""
        goals = [GoalState(id=g, def_id=g, domain="safety", priority=p)
                 for g, p in (("hide", 0.2), ("escape", 0.9), ("protect_self", 0.5))]
        execute, latent = partition(goals, top_k=5)
        assert [g.id for g in execute] == ["escape", "protect_self", "hide"]
        assert latent == []

        execute, latent = partition(goals, top_k=2)
        assert len(execute) == 2 and len(latent) == 1
        assert not {g.id for g in execute} & {g.id for g in latent}

    def test_ecology_execute_is_min_of_k_and_total(self, breach_world, catalog):
        """Execute holds min(K, total) goals and shares none with latent."""
        snap = build_snapshot(breach_world, breach_world.get_agent("mara"))
        for top_k in (3, 14, 40):
            ecology = compute_goal_ecology(breach_world, "mara", snap, catalog, GoalConfig(top_k=top_k))
            total = len(ecology.all_goals)
            assert len(ecology.execute) == min(top_k, total)
            assert not {g.id for g in ecology.execute} & {g.id for g in ecology.latent}


class TestToMOverlay:
    """Test goal adjustments from beliefs about others."""

    def test_deltas_respect_thresholds(self):
        """Small effects are dropped; strong threat suppresses support."""
        entry = ToMEntry("mara", "vel")

        calm = tom_goal_deltas(entry, 0.05)
        assert "protect_self" not in calm and "escape" not in calm
        assert "contain_threat" not in calm
        assert calm["aid_ally"] == pytest.approx(0.285)
        assert calm["maintain_bonds"] == pytest.approx(0.475)

        tense = tom_goal_deltas(entry, 0.5)
        assert tense["protect_self"] == pytest.approx(0.5)
        assert tense["escape"] == pytest.approx(0.35)
        assert tense["contain_threat"] == pytest.approx(0.25)
        assert tense["protect_other"] == pytest.approx(0.12)

        dire = tom_goal_deltas(entry, 0.9)
        assert "aid_ally" not in dire and "maintain_bonds" not in dire

    def test_safe_place_ignores_hostile_belief(self):
        """With no hazard the relative threat is zero, so safety goals stay put."""
        world = WorldState()
        world.add_location(Location(id="hall", hazard=0.0))
        agent = world.add_agent(AgentState(id="ilse", location_id="hall"))
        world.add_agent(AgentState(id="bram", location_id="hall"))
        traits = world.tom.ensure("ilse", "bram").traits
        traits.set("conflict", 0.9)
        traits.set("trust", 0.1)

        protect = GoalState(id="protect_self", def_id="protect_self", domain="safety", priority=0.3)
        contain = GoalState(id="contain_threat@bram", def_id="contain_threat", domain="safety",
                            priority=0.3, target_id="bram")
        bonds = GoalState(id="maintain_bonds", def_id="maintain_bonds", domain="affiliation", priority=0.3)

        apply_tom_overlay([protect, contain, bonds], world, agent, GoalConfig())

        assert protect.context_sources == [] and protect.priority == 0.3
        assert contain.context_sources == []
        assert bonds.context_sources == ["tom:bram:+0.065"]

    def test_hazard_at_the_others_cell_raises_safety(self):
        """A hostile agent standing in a dangerous spot pushes self-protection."""
        world = WorldState()
        world.add_location(Location(id="yard", hazard=0.9, exits=0.0, visibility=0.0))
        agent = world.add_agent(AgentState(id="ilse", location_id="yard"))
        world.add_agent(AgentState(id="bram", location_id="yard"))
        world.tom.ensure("ilse", "bram").traits.set("conflict", 0.9)

        protect = GoalState(id="protect_self", def_id="protect_self", domain="safety", priority=0.3)
        apply_tom_overlay([protect], world, agent, GoalConfig())

        assert protect.priority > 0.3
        assert protect.context_sources[0].startswith("tom:bram:+")
