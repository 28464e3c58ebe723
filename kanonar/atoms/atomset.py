"""
Atom collection with dedupe and a secondary prefix index.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..util import sanitize
from .model import Atom, Namespace

logger = logging.getLogger(__name__)


class AtomSet:
    """
    Id-unique set of atoms for one agent snapshot.

    ``add`` applies the collision rule (the atom with the larger absolute
    magnitude stays; on a tie the existing atom stays). ``put`` replaces
    unconditionally and is used by the override layer.

    A secondary index keyed by ``(namespace, kind) -> subject -> ids``
    serves the bulk scans possibility builders need, e.g. every
    ``rel:state:<self>:*`` atom.
    """

    def __init__(self, atoms: Iterable[Atom] = ()):
        self._atoms: Dict[str, Atom] = {}
        self._index: Dict[Tuple[Namespace, str], Dict[str, List[str]]] = {}
        self.collisions = 0
        for atom in atoms:
            self.add(atom)

    # -- mutation ---------------------------------------------------------

    def add(self, atom: Atom) -> Atom:
        """Insert with the collision rule; returns the atom that is kept."""
        existing = self._atoms.get(atom.id)
        if existing is None:
            self._insert(atom)
            return atom
        self.collisions += 1
        if abs(atom.magnitude) > abs(existing.magnitude):
            self._replace(existing, atom)
            return atom
        return existing

    def put(self, atom: Atom) -> Optional[Atom]:
        """Insert or replace; returns the atom that was replaced, if any."""
        previous = self._atoms.get(atom.id)
        if previous is None:
            self._insert(atom)
        else:
            self._replace(previous, atom)
        return previous

    def remove(self, atom_id: str) -> Optional[Atom]:
        atom = self._atoms.pop(atom_id, None)
        if atom is not None:
            self._unindex(atom)
        return atom

    def extend(self, atoms: Iterable[Atom]) -> None:
        for atom in atoms:
            self.add(atom)

    def _insert(self, atom: Atom) -> None:
        self._atoms[atom.id] = atom
        self._reindex(atom)

    def _replace(self, previous: Atom, atom: Atom) -> None:
        self._unindex(previous)
        self._insert(atom)

    def _reindex(self, atom: Atom) -> None:
        bucket = self._index.setdefault((atom.namespace, atom.kind), {})
        ids = bucket.setdefault(atom.subject, [])
        if atom.id not in ids:
            ids.append(atom.id)

    def _unindex(self, atom: Atom) -> None:
        bucket = self._index.get((atom.namespace, atom.kind))
        if not bucket:
            return
        ids = bucket.get(atom.subject)
        if ids and atom.id in ids:
            ids.remove(atom.id)
            if not ids:
                del bucket[atom.subject]

    # -- queries ----------------------------------------------------------

    def get(self, atom_id: str) -> Optional[Atom]:
        return self._atoms.get(atom_id)

    def magnitude(self, atom_id: str, fallback: float = 0.0) -> float:
        """Magnitude of ``atom_id`` or the declared fallback when absent."""
        atom = self._atoms.get(atom_id)
        if atom is None:
            return fallback
        return sanitize(atom.magnitude, fallback)

    def find(
        self,
        namespace: Namespace,
        kind: str,
        subject: Optional[str] = None,
        target: Optional[str] = None,
    ) -> List[Atom]:
        """Indexed lookup by namespace/kind, optionally narrowed by subject and target."""
        bucket = self._index.get((namespace, kind))
        if not bucket:
            return []
        if subject is not None:
            ids = list(bucket.get(subject, ()))
        else:
            ids = [i for group in bucket.values() for i in group]
        atoms = [self._atoms[i] for i in ids if i in self._atoms]
        if target is not None:
            atoms = [a for a in atoms if a.target == target]
        return atoms

    def find_prefix(self, prefix: str) -> List[Atom]:
        """Linear scan for foreign id prefixes the index does not cover."""
        return [a for a in self._atoms.values() if a.id.startswith(prefix)]

    def targets_of(self, namespace: Namespace, kind: str, subject: str) -> List[str]:
        """Distinct targets co-occurring with ``subject`` under namespace/kind."""
        seen: List[str] = []
        for atom in self.find(namespace, kind, subject):
            if atom.target and atom.target != subject and atom.target not in seen:
                seen.append(atom.target)
        return seen

    def ids(self) -> List[str]:
        return list(self._atoms.keys())

    def copy(self) -> "AtomSet":
        clone = AtomSet()
        for atom in self._atoms.values():
            clone._insert(atom)
        clone.collisions = self.collisions
        return clone

    def to_list(self) -> List[Atom]:
        return list(self._atoms.values())

    def to_dict(self) -> Dict[str, Dict]:
        return {i: a.to_dict() for i, a in self._atoms.items()}

    def __contains__(self, atom_id: object) -> bool:
        return atom_id in self._atoms

    def __iter__(self) -> Iterator[Atom]:
        return iter(list(self._atoms.values()))

    def __len__(self) -> int:
        return len(self._atoms)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AtomSet):
            return NotImplemented
        return self._atoms == other._atoms

    def __repr__(self) -> str:
        return f"AtomSet({len(self._atoms)} atoms)"
