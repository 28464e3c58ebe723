# Atom layer: normalized facts, overrides and per-agent snapshots
from .model import Atom, AtomKey, AtomOrigin, AtomTrace, Namespace, atom_id, make_atom, parse_atom_id
from .atomset import AtomSet
from .overrides import OverrideKind, OverrideLayer, OverrideOp, apply_overrides, coerce_atoms, coerce_override_ops
from .domains import DOMAIN_NAMES, compute_domains
from .snapshot import AgentFrame, Snapshot, SnapshotOptions, build_snapshot

__all__ = [
    "Atom",
    "AtomKey",
    "AtomOrigin",
    "AtomTrace",
    "Namespace",
    "atom_id",
    "make_atom",
    "parse_atom_id",
    "AtomSet",
    "OverrideKind",
    "OverrideLayer",
    "OverrideOp",
    "apply_overrides",
    "coerce_atoms",
    "coerce_override_ops",
    "DOMAIN_NAMES",
    "compute_domains",
    "AgentFrame",
    "Snapshot",
    "SnapshotOptions",
    "build_snapshot",
]
