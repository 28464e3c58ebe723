"""
Tests for the theory-of-mind table, updates, decay and threat.
"""
import pytest

from kanonar.actions import ActionRecord
from kanonar.config import ToMConfig
from kanonar.tom import (
    ToMEntry,
    ToMTable,
    apply_decay,
    compute_tom_core,
    extract_features,
    proximity,
    relative_threat,
    update_from_outcome,
)
from kanonar.world import AgentState, CognitionProfile, Location, WorldState


@pytest.fixture
def core():
    return compute_tom_core(CognitionProfile())


class TestToMTable:
    """Test table bookkeeping."""

    def test_ensure_starts_neutral(self):
        """New entries start from the neutral prior."""
        table = ToMTable()
        entry = table.ensure("mara", "vel")
        assert entry.traits.trust == 0.5
        assert entry.last_updated_tick == -1
        assert ("mara", "vel") in table
        assert table.ensure("mara", "vel") is entry
        assert len(table) == 1

    def test_entries_for_observer(self):
        """Each observer sees only its own slice."""
        table = ToMTable()
        table.ensure("mara", "vel")
        table.ensure("mara", "oskar")
        table.ensure("vel", "mara")
        assert set(table.entries_for("mara")) == {"vel", "oskar"}

    def test_serialization(self):
        """The table survives a dict round trip."""
        table = ToMTable()
        table.ensure("mara", "vel").traits.set("trust", 0.2)
        restored = ToMTable.from_dict(table.to_dict())
        assert restored.get("mara", "vel").traits.trust == pytest.approx(0.2)

    def test_threat_low_trust_bonus(self):
        """Low trust raises the threat reading."""
        entry = ToMEntry("mara", "vel")
        entry.traits.set("conflict", 0.3)
        assert entry.threat() == pytest.approx(0.3)
        entry.traits.set("trust", 0.1)
        assert entry.threat() == pytest.approx(0.5)


class TestUpdates:
    """Test belief updates from observed actions."""

    def test_features(self):
        """Attack tags map to the harm feature."""
        features = extract_features("attack", 0.7)
        assert features["harm"] == 1.0
        assert features["support"] == 0.0
        assert features["success"] == 0.7

    def test_harm_lowers_trust_and_raises_threat(self, core):
        """Being attacked lowers trust and raises the believed threat."""
        table = ToMTable()
        update = update_from_outcome(table, "mara", ActionRecord(1, "vel", "attack", "mara"), core, tick=1)
        entry = table.get("mara", "vel")
        assert entry.traits.trust < 0.5
        assert entry.threat() > 0.1
        assert update.deltas["trust"] < 0.0
        assert entry.last_updated_tick == 1
        assert entry.evidence_count == 1
        assert entry.affect["anger"] > 0.1

    def test_target_updates_more(self, core):
        """The target of an action updates harder than a bystander."""
        table = ToMTable()
        record = ActionRecord(1, "vel", "attack", "mara")
        as_target = update_from_outcome(table, "mara", record, core, tick=1)
        as_bystander = update_from_outcome(table, "oskar", record, core, tick=1)
        assert as_target.alpha == pytest.approx(1.5 * as_bystander.alpha)

    def test_help_raises_trust(self, core):
        """Supportive acts build trust and bond."""
        table = ToMTable()
        update_from_outcome(table, "mara", ActionRecord(1, "vel", "help", "mara"), core, tick=1)
        entry = table.get("mara", "vel")
        assert entry.traits.trust > 0.5
        assert entry.traits.bond > 0.1

    def test_values_stay_bounded(self, core):
        """Repeated harm never pushes traits out of [0, 1]."""
        table = ToMTable()
        for tick in range(50):
            update_from_outcome(table, "mara", ActionRecord(tick, "vel", "attack", "mara"), core, tick)
        entry = table.get("mara", "vel")
        for value in entry.traits.to_dict().values():
            assert 0.0 <= value <= 1.0
        assert 0.0 <= entry.uncertainty <= 1.0


class TestDecay:
    """Test decay toward the neutral prior."""

    def test_skips_entries_updated_this_tick(self, core):
        """Fresh evidence is not decayed in the same tick."""
        table = ToMTable()
        update_from_outcome(table, "mara", ActionRecord(3, "vel", "attack", "mara"), core, tick=3)
        assert apply_decay(table, 3) == 0

    def test_moves_toward_prior(self, core):
        """Unreinforced beliefs drift back toward neutral."""
        table = ToMTable()
        update_from_outcome(table, "mara", ActionRecord(3, "vel", "attack", "mara"), core, tick=3)
        before = table.get("mara", "vel").traits.trust
        assert apply_decay(table, 4) == 1
        after = table.get("mara", "vel").traits.trust
        assert before < after < 0.5

    def test_trust_and_threat_trend_to_baseline(self, core):
        """Over several quiet ticks both readings close in on the neutral prior."""
        table = ToMTable()
        update_from_outcome(table, "mara", ActionRecord(3, "vel", "attack", "mara"), core, tick=3)
        entry = table.get("mara", "vel")
        baseline = ToMEntry("mara", "vel")
        trust_gaps = [abs(entry.traits.trust - baseline.traits.trust)]
        threat_gaps = [abs(entry.threat() - baseline.threat())]
        for tick in range(4, 12):
            apply_decay(table, tick)
            trust_gaps.append(abs(entry.traits.trust - baseline.traits.trust))
            threat_gaps.append(abs(entry.threat() - baseline.threat()))
        assert all(b < a for a, b in zip(trust_gaps, trust_gaps[1:]))
        assert all(b < a for a, b in zip(threat_gaps, threat_gaps[1:]))

    def test_zero_rate_disables(self, core):
        """A zero decay rate leaves beliefs alone."""
        table = ToMTable()
        update_from_outcome(table, "mara", ActionRecord(3, "vel", "attack", "mara"), core, tick=3)
        before = table.get("mara", "vel").traits.trust
        assert apply_decay(table, 4, ToMConfig(decay_rate=0.0)) == 0
        assert table.get("mara", "vel").traits.trust == before


class TestCore:
    """Test the ToM core."""

    def test_default_profile(self, core):
        """An average profile gives middling quality and bounded depth."""
        assert 0.5 < core.quality < 0.6
        assert 0.0 <= core.uncertainty <= 1.0
        assert 0.0 <= core.depth <= 3.0

    def test_metacognition_improves_quality(self, core):
        """Better metacognition and less noise improve modeling."""
        sharp = compute_tom_core(CognitionProfile(metacog=0.95, obs_noise=0.0, report_noise=0.0))
        assert sharp.quality > core.quality
        assert sharp.uncertainty < core.uncertainty


class TestThreat:
    """Test proximity and relative threat."""

    def test_proximity_without_positions(self):
        """Same place counts as adjacent; elsewhere gets a fixed value."""
        world = WorldState()
        world.add_location(Location(id="yard"))
        a = world.add_agent(AgentState(id="a", location_id="yard"))
        b = world.add_agent(AgentState(id="b", location_id="yard"))
        c = world.add_agent(AgentState(id="c", location_id="gate"))
        assert proximity(world, a, b) == 1.0
        assert proximity(world, a, c) == 0.4

    def test_proximity_on_grid(self):
        """Opposite corners of the grid are as far as it gets."""
        world = WorldState()
        world.add_location(Location(id="yard", size=(10, 10)))
        a = world.add_agent(AgentState(id="a", location_id="yard", position=(0, 0)))
        b = world.add_agent(AgentState(id="b", location_id="yard", position=(9, 9)))
        assert proximity(world, a, b) == pytest.approx(0.0)
        b.position = (0, 0)
        assert proximity(world, a, b) == 1.0

    def test_relative_threat_bounded(self, yard_world):
        """Relative threat multiplies belief, proximity, risk and hazard."""
        mara = yard_world.get_agent("mara")
        oskar = yard_world.get_agent("oskar")
        calm = relative_threat(yard_world, mara, oskar)
        assert calm == pytest.approx(0.1 * 1.0 * 0.48 * 0.5)
        yard_world.tom.ensure("mara", "oskar").traits.set("conflict", 0.9)
        assert relative_threat(yard_world, mara, oskar) > calm

    def test_hazard_read_where_the_target_stands(self):
        """The hazard term comes from the target's cell, else its location."""
        world = WorldState()
        yard = world.add_location(Location(id="yard", hazard=0.2, size=(3, 3),
                                           cells={(0, 0): 0.0, (1, 0): 1.0}))
        a = world.add_agent(AgentState(id="a", location_id="yard"))
        b = world.add_agent(AgentState(id="b", location_id="yard"))
        assert relative_threat(world, a, b) == pytest.approx(0.1 * 1.0 * yard.risk * 0.2)

        a.position, b.position = (0, 0), (1, 0)
        expected = 0.1 * proximity(world, a, b) * yard.risk * 1.0
        assert relative_threat(world, a, b) == pytest.approx(expected)
