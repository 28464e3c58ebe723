"""
Tests for atoms, the atom set, overrides and snapshots.
"""
import math

import pytest

from kanonar.atoms import (
    DOMAIN_NAMES,
    Atom,
    AtomOrigin,
    AtomSet,
    Namespace,
    OverrideLayer,
    OverrideOp,
    SnapshotOptions,
    apply_overrides,
    build_snapshot,
    coerce_atoms,
    coerce_override_ops,
    make_atom,
    parse_atom_id,
)
from kanonar.lenient import CoercionLog


def _danger(magnitude, source="derive", subject="mara"):
    return make_atom(Namespace.CTX, "danger", subject, magnitude=magnitude, source=source)


class TestAtomModel:
    """Test atom construction and ids."""

    def test_id_rendered_from_key(self):
        """Ids join the structured key and skip empty parts."""
        atom = make_atom(Namespace.REL, "state", "mara", "oskar", "trust", magnitude=0.7)
        assert atom.id == "rel:state:mara:oskar:trust"
        assert atom.key.render() == atom.id

        protocol = make_atom(Namespace.CON, "protocol", metric="noViolence", magnitude=1.0)
        assert protocol.id == "con:protocol:noViolence"

    def test_magnitude_clamped(self):
        """Unsigned magnitudes land in [0, 1]; NaN becomes 0."""
        assert _danger(1.7).magnitude == 1.0
        assert _danger(-0.4).magnitude == 0.0
        assert _danger(float("nan")).magnitude == 0.0

    def test_signed_magnitude(self):
        """Atoms tagged signed keep negative magnitudes."""
        atom = make_atom(Namespace.CTX, "mood", "mara", magnitude=-0.5, tags=("signed",))
        assert atom.signed
        assert atom.magnitude == -0.5

    def test_parse_foreign_id(self):
        """Unknown namespaces map to misc; known ones split into parts."""
        key = parse_atom_id("tom:dyad:mara:vel:threat")
        assert key.namespace is Namespace.TOM
        assert (key.subject, key.target, key.metric) == ("mara", "vel", "threat")

        foreign = parse_atom_id("legacy:thing:x")
        assert foreign.namespace is Namespace.MISC


class TestAtomSet:
    """Test dedupe and indexed lookups."""

    def test_larger_magnitude_wins(self):
        """On id collision the atom with the larger magnitude stays."""
        atoms = AtomSet()
        atoms.add(_danger(0.3, "first"))
        atoms.add(_danger(0.8, "second"))
        atoms.add(_danger(0.5, "third"))

        assert atoms.get("ctx:danger:mara").source == "second"
        assert atoms.collisions == 2
        assert len(atoms) == 1

    def test_tie_keeps_existing(self):
        """Equal magnitudes keep the atom already present."""
        atoms = AtomSet([_danger(0.5, "first"), _danger(0.5, "second")])
        assert atoms.get("ctx:danger:mara").source == "first"

    def test_absolute_magnitude_compared(self):
        """A strong negative signed atom beats a weak positive one."""
        weak = make_atom(Namespace.CTX, "mood", "mara", magnitude=0.3, tags=("signed",))
        strong = make_atom(Namespace.CTX, "mood", "mara", magnitude=-0.8, tags=("signed",))
        atoms = AtomSet([weak, strong])
        assert atoms.magnitude("ctx:mood:mara") == -0.8

    def test_magnitude_fallback(self):
        """Missing atoms read as the declared fallback."""
        atoms = AtomSet()
        assert atoms.magnitude("ctx:danger:mara") == 0.0
        assert atoms.magnitude("ctx:danger:mara", 0.4) == 0.4

    def test_find_by_subject_and_target(self):
        """The secondary index narrows by namespace, kind, subject and target."""
        atoms = AtomSet([
            make_atom(Namespace.REL, "state", "mara", "oskar", "trust", magnitude=0.7),
            make_atom(Namespace.REL, "state", "mara", "vel", "trust", magnitude=0.2),
            make_atom(Namespace.REL, "state", "oskar", "mara", "trust", magnitude=0.6),
        ])
        assert len(atoms.find(Namespace.REL, "state")) == 3
        assert len(atoms.find(Namespace.REL, "state", "mara")) == 2
        found = atoms.find(Namespace.REL, "state", "mara", target="vel")
        assert [a.id for a in found] == ["rel:state:mara:vel:trust"]
        assert atoms.targets_of(Namespace.REL, "state", "mara") == ["oskar", "vel"]

    def test_replacement_moves_index_entry(self):
        """A winning atom is indexed under its own subject, not the loser's."""
        atoms = AtomSet()
        atoms.add(Atom(id="legacy:watch", namespace=Namespace.CTX, kind="watch", subject="mara", magnitude=0.2))
        atoms.add(Atom(id="legacy:watch", namespace=Namespace.CTX, kind="watch", subject="oskar", magnitude=0.9))

        assert atoms.find(Namespace.CTX, "watch", "mara") == []
        assert [a.subject for a in atoms.find(Namespace.CTX, "watch", "oskar")] == ["oskar"]
        assert len(atoms.find(Namespace.CTX, "watch")) == 1

    def test_put_and_remove_clear_index(self):
        """put replaces the index entry and remove drops it."""
        atoms = AtomSet([Atom(id="legacy:watch", namespace=Namespace.CTX, kind="watch", subject="mara", magnitude=0.5)])
        atoms.put(Atom(id="legacy:watch", namespace=Namespace.CTX, kind="watch", subject="vel", magnitude=0.1))
        assert atoms.targets_of(Namespace.CTX, "watch", "mara") == []
        assert len(atoms.find(Namespace.CTX, "watch", "vel")) == 1

        atoms.remove("legacy:watch")
        assert atoms.find(Namespace.CTX, "watch") == []

    def test_find_prefix(self):
        """Prefix scans cover foreign ids."""
        atoms = AtomSet(coerce_atoms([{"id": "legacy:flag:a", "magnitude": 1}]))
        assert [a.id for a in atoms.find_prefix("legacy:")] == ["legacy:flag:a"]

    def test_copy_is_independent(self):
        """Mutating a copy leaves the original untouched."""
        atoms = AtomSet([_danger(0.4)])
        clone = atoms.copy()
        clone.remove("ctx:danger:mara")
        assert "ctx:danger:mara" in atoms
        assert "ctx:danger:mara" not in clone


class TestOverrides:
    """Test override layer semantics."""

    @pytest.fixture
    def base(self):
        return AtomSet([_danger(0.2), make_atom(Namespace.FEEL, "fear", "mara", magnitude=0.4)])

    def test_upsert_then_delete_restores_baseline(self, base):
        """Deleting an upsert brings back the atom it shadowed."""
        layer = OverrideLayer([
            OverrideOp.upsert(_danger(0.9)),
            OverrideOp.delete("ctx:danger:mara"),
        ])
        assert layer.apply(base) == base

    def test_upsert_then_delete_of_new_id(self, base):
        """An id absent from the base is removed again by its delete."""
        result = apply_overrides(base, [
            OverrideOp.upsert(_danger(0.9, subject="ghost")),
            OverrideOp.delete("ctx:danger:ghost"),
        ])
        assert result == base

    def test_delete_restores_previous_upsert(self, base):
        """Stacked upserts unwind one delete at a time."""
        result = apply_overrides(base, [
            OverrideOp.upsert(_danger(0.6)),
            OverrideOp.upsert(_danger(0.9)),
            OverrideOp.delete("ctx:danger:mara"),
        ])
        atom = result.get("ctx:danger:mara")
        assert atom.magnitude == 0.6
        assert atom.origin is AtomOrigin.OVERRIDE

    def test_upsert_ignores_dedupe(self, base):
        """Overrides replace even when the new magnitude is smaller."""
        result = apply_overrides(base, [OverrideOp.upsert(_danger(0.05))])
        assert result.magnitude("ctx:danger:mara") == 0.05

    def test_delete_without_upsert_removes(self, base):
        """A plain delete retracts a derived atom."""
        result = apply_overrides(base, [OverrideOp.delete("feel:fear:mara")])
        assert "feel:fear:mara" not in result
        assert "ctx:danger:mara" in result

    def test_delete_missing_is_noop(self, base):
        """Deleting an absent id changes nothing."""
        assert apply_overrides(base, [OverrideOp.delete("ctx:nothing:mara")]) == base

    def test_base_not_mutated(self, base):
        """Applying a layer never touches its input."""
        apply_overrides(base, [OverrideOp.upsert(_danger(0.9))])
        assert base.magnitude("ctx:danger:mara") == 0.2

    def test_replay_is_deterministic(self, base):
        """The same layer on the same base yields equal sets."""
        layer = OverrideLayer([OverrideOp.upsert(_danger(0.9)), OverrideOp.delete("feel:fear:mara")])
        assert layer.apply(base) == layer.apply(base)


class TestLenientBoundary:
    """Test coercion of foreign manual atoms and override ops."""

    def test_non_collection_becomes_empty(self):
        """A string where a list is expected is coerced and logged."""
        log = CoercionLog()
        assert coerce_atoms("junk", log) == []
        assert len(log) == 1

    def test_atom_without_id_dropped(self):
        """Atoms lacking an id are skipped and logged."""
        log = CoercionLog()
        atoms = coerce_atoms([{"magnitude": 1.0}, {"id": "feel:fear:mara", "magnitude": "lots"}], log)
        assert [a.id for a in atoms] == ["feel:fear:mara"]
        assert atoms[0].magnitude == 0.0
        assert len(log) == 2

    def test_override_ops_parsed(self):
        """Upsert and delete dicts become ops; unknown ops are logged."""
        log = CoercionLog()
        ops = coerce_override_ops([
            {"op": "upsert", "atom": {"id": "ctx:danger:mara", "magnitude": 0.9}},
            {"op": "DELETE", "id": "ctx:danger:mara"},
            {"op": "explode"},
            {"op": "delete"},
        ], log)
        assert [op.kind.value for op in ops] == ["upsert", "delete"]
        assert ops[0].atom.origin is AtomOrigin.OVERRIDE
        assert len(log) == 2


class TestSnapshot:
    """Test per-agent snapshot construction."""

    def test_derived_atoms_present(self, breach_world):
        """Body, relationship and context atoms are derived for the agent."""
        snap = build_snapshot(breach_world, breach_world.get_agent("mara"))
        atoms = snap.atoms
        assert "ctx:danger:mara" in atoms
        assert "rel:state:mara:oskar:trust" in atoms
        assert "feel:fear:mara" in atoms
        assert "act:prior:mara:oskar:help" in atoms
        assert atoms.magnitude("rel:state:mara:oskar:trust") == pytest.approx(0.7)
        for atom in atoms:
            assert math.isfinite(atom.magnitude)
            assert -1.0 <= atom.magnitude <= 1.0

    def test_frame_and_domains(self, breach_world):
        """The frame lists present others; every domain is in [0, 1]."""
        snap = build_snapshot(breach_world, breach_world.get_agent("mara"))
        assert snap.frame.present_ids == ["oskar", "vel"]
        assert set(snap.domains) == set(DOMAIN_NAMES)
        assert all(0.0 <= v <= 1.0 for v in snap.domains.values())

    def test_manual_atom_dedupe(self, breach_world):
        """A stronger manual atom replaces the derived one; a weaker one does not."""
        mara = breach_world.get_agent("mara")
        strong = build_snapshot(breach_world, mara, SnapshotOptions(
            manual_atoms=[{"id": "feel:fear:mara", "magnitude": 0.95}]))
        weak = build_snapshot(breach_world, mara, SnapshotOptions(
            manual_atoms=[{"id": "feel:fear:mara", "magnitude": 0.1}]))
        assert strong.atoms.magnitude("feel:fear:mara") == 0.95
        assert weak.atoms.magnitude("feel:fear:mara") == pytest.approx(0.7)

    def test_override_upsert_delete_equals_baseline(self, breach_world):
        """Upserting then deleting danger reproduces the derived set exactly."""
        snap = build_snapshot(breach_world, breach_world.get_agent("mara"), SnapshotOptions(overrides=[
            {"op": "upsert", "atom": {"id": "ctx:danger:mara", "magnitude": 0.9}},
            {"op": "delete", "id": "ctx:danger:mara"},
        ]))
        assert snap.atoms == snap.base
        assert not snap.coercions.entries

    def test_overrides_win_over_later_atoms(self, breach_world):
        """Atoms merged after perception stay under the override layer."""
        snap = build_snapshot(breach_world, breach_world.get_agent("mara"), SnapshotOptions(overrides=[
            {"op": "upsert", "atom": {"id": "ctx:danger:mara", "magnitude": 0.9}},
        ]))
        merged = snap.with_atoms([_danger(1.0)])
        assert merged.atoms.magnitude("ctx:danger:mara") == 0.9

    def test_malformed_input_recorded(self, breach_world):
        """Garbage manual atoms are coerced and surface on the snapshot."""
        snap = build_snapshot(breach_world, breach_world.get_agent("mara"),
                              SnapshotOptions(manual_atoms=42, overrides={"op": "delete"}))
        assert len(snap.coercions) == 2
        assert "ctx:danger:mara" in snap.atoms

    def test_recent_harm_becomes_event_atom(self, duo_world):
        """An attack on the agent last tick shows up as event:harmedBy."""
        from kanonar.actions import ActionRecord

        record = ActionRecord(tick=0, actor_id="vel", action="attack", target_id="mara", success=1.0)
        snap = build_snapshot(duo_world, duo_world.get_agent("mara"), SnapshotOptions(recent_actions=[record]))
        assert snap.atoms.magnitude("event:harmedBy:mara:vel") == 1.0
        assert "event:harmedBy:vel:mara" not in snap.atoms

    def test_blocked_exit_constraint(self):
        """A locked location yields the exit-blocked constraint atom."""
        from kanonar.scenarios import load_scenario

        world = load_scenario("standoff")
        snap = build_snapshot(world, world.get_agent("nell"))
        assert "con:exitBlocked:nell" in snap.atoms
        assert "con:taboo:nell:rook:attack" in snap.atoms
