"""
Tests for possibility builders and the builder registry.
"""
import pytest

from kanonar.atoms import AtomSet, Namespace, SnapshotOptions, build_snapshot, make_atom
from kanonar.possibilities import (
    DEFAULT_REGISTRY,
    BuilderHelpers,
    BuilderRegistry,
    Possibility,
    PossibilityBuilder,
    generate_possibilities,
)
from kanonar.possibilities.builders import AttackBuilder, HideBuilder, _make


class FixedWait:
    """Minimal custom builder."""

    kind = "wait"

    def build(self, self_id, atoms, helpers):
        return [_make("wait", self_id, 0.99, helpers.view(), notes=("custom",))]


class TestBuilders:
    """Test individual builders in isolation."""

    def test_hide_from_cover_and_visibility(self):
        """Hide magnitude blends cover with low visibility."""
        atoms = AtomSet([
            make_atom(Namespace.WORLD, "cover", "mara", magnitude=0.8),
            make_atom(Namespace.WORLD, "visibility", "mara", magnitude=0.2),
        ])
        out = HideBuilder().build("mara", atoms, BuilderHelpers(atoms))
        assert len(out) == 1
        assert out[0].id == "hide:mara"
        assert out[0].magnitude == pytest.approx(0.8)
        assert set(out[0].trace.used_atom_ids) == {"world:cover:mara", "world:visibility:mara"}

    def test_hide_needs_cover(self):
        """No cover atom, no hide candidate."""
        atoms = AtomSet()
        assert HideBuilder().build("mara", atoms, BuilderHelpers(atoms)) == []

    def test_attack_one_per_other(self):
        """Directed builders emit one candidate per known other agent."""
        atoms = AtomSet([
            make_atom(Namespace.REL, "state", "mara", "vel", "hostility", magnitude=0.8),
            make_atom(Namespace.TOM, "dyad", "mara", "oskar", "threat", magnitude=0.2),
        ])
        out = AttackBuilder().build("mara", atoms, BuilderHelpers(atoms))
        assert [p.target_id for p in out] == ["vel", "oskar"]
        assert "con:protocol:noViolence" in out[0].blocked_by
        assert "con:taboo:mara:vel:attack" in out[0].blocked_by

    def test_builder_protocol(self):
        """Any object with kind and build satisfies the builder interface."""
        assert isinstance(FixedWait(), PossibilityBuilder)
        assert isinstance(HideBuilder(), PossibilityBuilder)


class TestRegistry:
    """Test the immutable builder registry."""

    def test_without_returns_new_registry(self):
        """Removing a kind leaves the default registry untouched."""
        registry = DEFAULT_REGISTRY.without("attack")
        assert "attack" not in registry
        assert "attack" in DEFAULT_REGISTRY
        assert len(registry) == len(DEFAULT_REGISTRY) - 1

    def test_with_builder_replaces_kind(self):
        """Adding a builder of an existing kind replaces it."""
        registry = DEFAULT_REGISTRY.with_builder(FixedWait())
        assert len(registry) == len(DEFAULT_REGISTRY)
        assert isinstance(registry.get("wait"), FixedWait)
        assert not isinstance(DEFAULT_REGISTRY.get("wait"), FixedWait)

    def test_custom_registry_used_by_generator(self):
        """The generator only runs the builders it is given."""
        atoms = AtomSet()
        out = generate_possibilities("mara", atoms, BuilderRegistry([FixedWait()]))
        assert [p.kind for p in out] == ["wait"]
        assert out[0].magnitude == 0.99


class TestGeneration:
    """Test generation over real snapshots."""

    def test_kinds_without_location(self, duo_world):
        """Without cover, exits or injuries those candidates are skipped."""
        snap = build_snapshot(duo_world, duo_world.get_agent("mara"))
        kinds = {p.kind for p in generate_possibilities("mara", snap.atoms)}
        assert "hide" not in kinds
        assert "escape" not in kinds
        assert "treat" not in kinds
        assert {"wait", "rest", "observe", "talk", "help", "accuse", "attack"} <= kinds

    def test_treat_when_other_injured(self, duo_world):
        """Visible injury enables the treat candidate."""
        duo_world.get_agent("vel").body.hp = 0.5
        snap = build_snapshot(duo_world, duo_world.get_agent("mara"))
        treat = [p for p in generate_possibilities("mara", snap.atoms) if p.kind == "treat"]
        assert [p.id for p in treat] == ["treat:mara:vel"]

    def test_ids_unique_and_values_bounded(self, yard_world):
        """Every candidate has a unique id and bounded magnitude and confidence."""
        snap = build_snapshot(yard_world, yard_world.get_agent("mara"))
        out = generate_possibilities("mara", snap.atoms)
        ids = [p.id for p in out]
        assert len(ids) == len(set(ids))
        for p in out:
            assert isinstance(p, Possibility)
            assert 0.0 <= p.magnitude <= 1.0
            assert 0.0 <= p.confidence <= 1.0
            assert all(i in snap.atoms for i in p.trace.used_atom_ids)

    def test_self_prior_blended(self, yard_world):
        """A learned self-action prior shifts the candidate's magnitude."""
        mara = yard_world.get_agent("mara")
        plain = build_snapshot(yard_world, mara)
        primed = build_snapshot(yard_world, mara, SnapshotOptions(
            manual_atoms=[{"id": "act:prior:mara:hide", "magnitude": 1.0}]))

        def hide(snap):
            return next(p for p in generate_possibilities("mara", snap.atoms) if p.kind == "hide")

        assert hide(primed).magnitude > hide(plain).magnitude
        assert "prior=1.000" in hide(primed).trace.notes
