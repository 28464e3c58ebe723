"""
Possibility: a candidate action before gating and scoring.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from ..actions import ActionFamily
from ..atoms.model import AtomTrace


@dataclass(frozen=True)
class Possibility:
    """
    A candidate action generated from one agent's snapshot.

    Attributes:
        id: Unique within the snapshot, ``<kind>:<self>[:<other>]``
        kind: Action kind (see ``kanonar.actions.ACTIONS``)
        label: Human-readable label
        family: Action family, drives cost and context modulation
        magnitude: Availability in [0, 1]
        confidence: Confidence in [0, 1]
        subject_id: Acting agent
        target_id: Other agent for directed actions
        blocked_by: Atom ids that veto this possibility when present
        requires: Atom ids the possibility was built on
        trace: Consulted atom ids and notes
    """
    id: str
    kind: str
    label: str
    family: ActionFamily
    magnitude: float
    confidence: float
    subject_id: str
    target_id: Optional[str] = None
    blocked_by: Tuple[str, ...] = ()
    requires: Tuple[str, ...] = ()
    trace: AtomTrace = field(default_factory=AtomTrace)

    @property
    def directed(self) -> bool:
        return self.target_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "label": self.label,
            "family": self.family.value,
            "magnitude": self.magnitude,
            "confidence": self.confidence,
            "subject_id": self.subject_id,
            "target_id": self.target_id,
            "blocked_by": list(self.blocked_by),
            "requires": list(self.requires),
            "trace": self.trace.to_dict(),
        }
