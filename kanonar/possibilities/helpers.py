"""
Read helpers shared by possibility builders.

Helpers are stateless apart from the atom set and config they wrap; each
builder call opens its own ``AtomView`` so consulted ids never leak between
builders.
"""
from __future__ import annotations

from typing import List, Optional

from ..atoms.atomset import AtomSet
from ..atoms.model import Namespace, atom_id
from ..config import PossibilityConfig
from ..util import clamp01


class AtomView:
    """Reads atom magnitudes and records which ids were actually present."""

    def __init__(self, atoms: AtomSet):
        self._atoms = atoms
        self.used: List[str] = []

    def get(self, atom_id: str, fallback: float = 0.0) -> float:
        if atom_id in self._atoms:
            if atom_id not in self.used:
                self.used.append(atom_id)
            return clamp01(self._atoms.magnitude(atom_id, fallback))
        return fallback

    def has(self, atom_id: str) -> bool:
        return atom_id in self._atoms

    # Shorthands for the namespaces builders read most.

    def ctx(self, self_id: str, kind: str, fallback: float = 0.0) -> float:
        return self.get(atom_id(Namespace.CTX, kind, self_id), fallback)

    def rel(self, self_id: str, other_id: str, metric: str, fallback: float) -> float:
        return self.get(atom_id(Namespace.REL, "state", self_id, other_id, metric), fallback)

    def tom(self, self_id: str, other_id: str, metric: str, fallback: float) -> float:
        return self.get(atom_id(Namespace.TOM, "dyad", self_id, other_id, metric), fallback)

    def world(self, self_id: str, kind: str, fallback: float = 0.0, target: str = "") -> float:
        return self.get(atom_id(Namespace.WORLD, kind, self_id, target), fallback)

    def affordance(self, self_id: str, name: str) -> float:
        return self.get(atom_id(Namespace.WORLD, "aff", self_id, "", name), 0.0)

    def event(self, self_id: str, kind: str, other_id: str) -> float:
        return self.get(atom_id(Namespace.EVENT, kind, self_id, other_id), 0.0)


class BuilderHelpers:
    """
    Shared, read-only helpers handed to every builder.

    Args:
        atoms: Snapshot atoms
        config: Prior/context blend settings
    """

    def __init__(self, atoms: AtomSet, config: Optional[PossibilityConfig] = None):
        self.atoms = atoms
        self.config = config or PossibilityConfig()

    def view(self) -> AtomView:
        return AtomView(self.atoms)

    def others(self, self_id: str) -> List[str]:
        """
        Ids of agents co-occurring with ``self_id`` in relationship or
        ToM dyad atoms, in discovery order.
        """
        seen = self.atoms.targets_of(Namespace.REL, "state", self_id)
        for other in self.atoms.targets_of(Namespace.TOM, "dyad", self_id):
            if other not in seen:
                seen.append(other)
        return seen

    def prior(self, view: AtomView, self_id: str, act: str, other_id: str = "") -> float:
        """Learned prior for the action, or the configured default."""
        return view.get(atom_id(Namespace.ACT, "prior", self_id, other_id, act), self.config.default_prior)

    def has_prior(self, self_id: str, act: str, other_id: str = "") -> bool:
        return atom_id(Namespace.ACT, "prior", self_id, other_id, act) in self.atoms

    def blend(self, prior: float, context: float) -> float:
        w = self.config.prior_weight
        return clamp01(w * prior + (1.0 - w) * context)

    @staticmethod
    def clamp01(x: float) -> float:
        return clamp01(x)
