"""
Atom: a normalized, provenance-carrying fact.

Atom ids are rendered from a structured key
``(namespace, kind, subject, target, metric)`` joined with ``:``, e.g.
``ctx:danger:mara`` or ``rel:state:mara:oskar:trust``. Code builds atoms
through ``make_atom`` so the key and the id never disagree.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..util import clamp, sanitize


class Namespace(str, Enum):
    """Atom namespaces."""

    CTX = "ctx"          # situational axes (danger, privacy, ...)
    BODY = "body"        # fatigue, pain, stress, hp
    FEEL = "feel"        # emotions
    TRAIT = "trait"      # stable personality traits
    REL = "rel"          # relationship state toward another agent
    TOM = "tom"          # theory-of-mind beliefs about another agent
    WORLD = "world"      # map / location facts and affordances
    CON = "con"          # constraints: protocols, taboos, blocked exits
    ACT = "act"          # learned action priors
    GOAL = "goal"        # active goals
    UTIL = "util"        # plan/goal allow links
    THREAT = "threat"    # relative threat between agents
    EVENT = "event"      # injected from recent tick events
    NEED = "need"        # drives such as information need
    MISC = "misc"        # foreign ids that match no namespace


class AtomOrigin(str, Enum):
    DERIVED = "derived"
    MANUAL = "manual"
    OVERRIDE = "override"


@dataclass(frozen=True)
class AtomKey:
    namespace: Namespace
    kind: str
    subject: str = ""
    target: str = ""
    metric: str = ""

    def render(self) -> str:
        parts = [self.namespace.value, self.kind, self.subject, self.target, self.metric]
        return ":".join(p for p in parts if p)


@dataclass(frozen=True)
class AtomTrace:
    """Explainability data: which atoms an atom was computed from."""
    used_atom_ids: Tuple[str, ...] = ()
    notes: Tuple[str, ...] = ()
    parts: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "used_atom_ids": list(self.used_atom_ids),
            "notes": list(self.notes),
            "parts": dict(self.parts),
        }


@dataclass(frozen=True)
class Atom:
    """
    One fact in an agent's snapshot.

    Attributes:
        id: Namespaced string id, unique within a snapshot
        namespace: Namespace enum
        kind: Fact kind within the namespace
        origin: derived | manual | override
        source: Producer of the atom (for debugging)
        subject: Agent the fact is about or held by
        target: Other agent (or goal) the fact points at, if any
        metric: Sub-measure, e.g. ``trust`` for relationship state
        magnitude: 0..1, or -1..1 for atoms tagged ``signed``
        confidence: 0..1
        tags: Free-form labels
        trace: Provenance
    """
    id: str
    namespace: Namespace
    kind: str
    origin: AtomOrigin = AtomOrigin.DERIVED
    source: str = "derive"
    subject: str = ""
    target: Optional[str] = None
    metric: str = ""
    magnitude: float = 0.0
    confidence: float = 1.0
    tags: Tuple[str, ...] = ()
    trace: AtomTrace = field(default_factory=AtomTrace)

    @property
    def key(self) -> AtomKey:
        return AtomKey(self.namespace, self.kind, self.subject, self.target or "", self.metric)

    @property
    def signed(self) -> bool:
        return "signed" in self.tags

    def with_origin(self, origin: AtomOrigin, source: Optional[str] = None) -> "Atom":
        return replace(self, origin=origin, source=source or self.source)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "namespace": self.namespace.value,
            "kind": self.kind,
            "origin": self.origin.value,
            "source": self.source,
            "subject": self.subject,
            "target": self.target,
            "metric": self.metric,
            "magnitude": self.magnitude,
            "confidence": self.confidence,
            "tags": list(self.tags),
            "trace": self.trace.to_dict(),
        }


def normalize_magnitude(value: Any, signed: bool = False) -> float:
    lo = -1.0 if signed else 0.0
    return clamp(sanitize(value), lo, 1.0)


def make_atom(
    namespace: Namespace,
    kind: str,
    subject: str = "",
    target: Optional[str] = None,
    metric: str = "",
    magnitude: float = 0.0,
    confidence: float = 1.0,
    origin: AtomOrigin = AtomOrigin.DERIVED,
    source: str = "derive",
    tags: Tuple[str, ...] = (),
    used: Tuple[str, ...] = (),
    notes: Tuple[str, ...] = (),
    parts: Optional[Dict[str, float]] = None,
) -> Atom:
    """Build an atom whose id is rendered from its structured key."""
    key = AtomKey(namespace, kind, subject, target or "", metric)
    signed = "signed" in tags
    return Atom(
        id=key.render(),
        namespace=namespace,
        kind=kind,
        origin=origin,
        source=source,
        subject=subject,
        target=target,
        metric=metric,
        magnitude=normalize_magnitude(magnitude, signed),
        confidence=clamp(sanitize(confidence, 1.0), 0.0, 1.0),
        tags=tuple(tags),
        trace=AtomTrace(tuple(used), tuple(notes), dict(parts or {})),
    )


def parse_atom_id(atom_id: str) -> AtomKey:
    """
    Best-effort structured key for a foreign atom id.

    ``ns:kind:subject[:target[:metric...]]``; an unknown namespace maps to
    ``misc``.
    """
    parts = str(atom_id).split(":")
    try:
        namespace = Namespace(parts[0])
    except ValueError:
        return AtomKey(Namespace.MISC, parts[0], ":".join(parts[1:]))
    kind = parts[1] if len(parts) > 1 else ""
    rest = parts[2:]
    subject = rest[0] if rest else ""
    target = rest[1] if len(rest) > 1 else ""
    metric = ":".join(rest[2:])
    return AtomKey(namespace, kind, subject, target, metric)


def atom_from_key(
    atom_id: str,
    magnitude: float,
    origin: AtomOrigin,
    source: str,
    confidence: float = 1.0,
    tags: Tuple[str, ...] = (),
) -> Atom:
    """Build an atom for an externally supplied id, keeping that id verbatim."""
    key = parse_atom_id(atom_id)
    signed = "signed" in tags
    return Atom(
        id=str(atom_id),
        namespace=key.namespace,
        kind=key.kind,
        origin=origin,
        source=source,
        subject=key.subject,
        target=key.target or None,
        metric=key.metric,
        magnitude=normalize_magnitude(magnitude, signed),
        confidence=clamp(sanitize(confidence, 1.0), 0.0, 1.0),
        tags=tuple(tags),
    )


def atom_id(namespace: Namespace, kind: str, subject: str = "", target: str = "", metric: str = "") -> str:
    """Render an id without building the atom."""
    return AtomKey(namespace, kind, subject, target or "", metric).render()
