"""
Override protocol: ordered upsert/delete operations on an atom set.

External tooling uses it to inject manual facts without altering the
auto-derived atoms underneath. Ops are applied strictly in sequence and
the last write wins.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..lenient import CoercionLog, as_dict, as_float, as_list, as_str
from .atomset import AtomSet
from .model import Atom, AtomOrigin, atom_from_key

logger = logging.getLogger(__name__)


class OverrideKind(str, Enum):
    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class OverrideOp:
    """One override operation; ``atom`` is set for upserts only."""
    kind: OverrideKind
    atom_id: str
    atom: Optional[Atom] = None

    @classmethod
    def upsert(cls, atom: Atom) -> "OverrideOp":
        return cls(OverrideKind.UPSERT, atom.id, atom.with_origin(AtomOrigin.OVERRIDE, "override"))

    @classmethod
    def delete(cls, atom_id: str) -> "OverrideOp":
        return cls(OverrideKind.DELETE, atom_id)


class OverrideLayer:
    """
    Immutable, ordered list of override ops.

    Semantics of ``apply``:
    - upsert sets the atom, shadowing whatever was there;
    - delete retracts the most recent upsert of that id and restores the
      atom it shadowed; with no pending upsert it removes the atom;
    - deleting an id that is not present is a no-op.

    Replaying the same layer on the same base always gives the same set.

    Example:
        >>> layer = OverrideLayer([OverrideOp.upsert(atom), OverrideOp.delete(atom.id)])
        >>> layer.apply(base) == base
        True
    """

    def __init__(self, ops: Iterable[OverrideOp] = ()):
        self._ops: Tuple[OverrideOp, ...] = tuple(ops)

    @property
    def ops(self) -> Tuple[OverrideOp, ...]:
        return self._ops

    def then(self, *ops: OverrideOp) -> "OverrideLayer":
        """New layer with ``ops`` appended."""
        return OverrideLayer(self._ops + tuple(ops))

    def apply(self, base: AtomSet) -> AtomSet:
        result = base.copy()
        shadowed: Dict[str, List[Optional[Atom]]] = {}

        for op in self._ops:
            if op.kind is OverrideKind.UPSERT and op.atom is not None:
                previous = result.put(op.atom)
                shadowed.setdefault(op.atom_id, []).append(previous)
            elif op.kind is OverrideKind.DELETE:
                stack = shadowed.get(op.atom_id)
                if stack:
                    restored = stack.pop()
                    if restored is None:
                        result.remove(op.atom_id)
                    else:
                        result.put(restored)
                else:
                    result.remove(op.atom_id)

        return result

    def __len__(self) -> int:
        return len(self._ops)

    def __repr__(self) -> str:
        return f"OverrideLayer({len(self._ops)} ops)"


def apply_overrides(base: AtomSet, ops: Iterable[OverrideOp]) -> AtomSet:
    return OverrideLayer(ops).apply(base)


# -- boundary parsing ------------------------------------------------------

def atom_from_dict(raw: Any, origin: AtomOrigin, where: str, log: Optional[CoercionLog] = None) -> Optional[Atom]:
    """Parse a foreign atom dict; returns None (and logs) when it has no id."""
    data = as_dict(raw, where, log)
    atom_id = as_str(data.get("id")).strip()
    if not atom_id:
        if log is not None:
            log.record(where, "atom without id dropped")
        return None
    tags = tuple(str(t) for t in as_list(data.get("tags"), f"{where}.tags", log))
    return atom_from_key(
        atom_id,
        magnitude=as_float(data.get("magnitude"), 0.0, f"{where}.magnitude", log),
        origin=origin,
        source=as_str(data.get("source"), origin.value),
        confidence=as_float(data.get("confidence"), 1.0, f"{where}.confidence", log),
        tags=tags,
    )


def coerce_atoms(raw: Any, log: Optional[CoercionLog] = None, origin: AtomOrigin = AtomOrigin.MANUAL) -> List[Atom]:
    """Manual atoms from foreign input; non-collections become empty."""
    atoms = []
    for i, item in enumerate(as_list(raw, "atoms", log)):
        if isinstance(item, Atom):
            atoms.append(item.with_origin(origin))
            continue
        atom = atom_from_dict(item, origin, f"atoms[{i}]", log)
        if atom is not None:
            atoms.append(atom)
    return atoms


def coerce_override_ops(raw: Any, log: Optional[CoercionLog] = None) -> List[OverrideOp]:
    """
    Parse ``[{"op": "upsert", "atom": {...}} | {"op": "delete", "id": ...}]``.

    Unknown ops and malformed entries are skipped and logged.
    """
    ops: List[OverrideOp] = []
    for i, item in enumerate(as_list(raw, "overrides", log)):
        if isinstance(item, OverrideOp):
            ops.append(item)
            continue
        where = f"overrides[{i}]"
        data = as_dict(item, where, log)
        kind = as_str(data.get("op")).lower()
        if kind == OverrideKind.UPSERT.value:
            atom = atom_from_dict(data.get("atom"), AtomOrigin.OVERRIDE, f"{where}.atom", log)
            if atom is not None:
                ops.append(OverrideOp(OverrideKind.UPSERT, atom.id, atom))
        elif kind == OverrideKind.DELETE.value:
            atom_id = as_str(data.get("id")).strip()
            if atom_id:
                ops.append(OverrideOp.delete(atom_id))
            elif log is not None:
                log.record(where, "delete without id dropped")
        elif log is not None:
            log.record(where, f"unknown op {kind!r}")
    return ops
