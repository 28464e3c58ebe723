"""
Hard gates: presence-based vetoes plus persona gates.

A possibility is blocked when any of its ``blocked_by`` ids is present in
the snapshot (magnitude does not matter). Persona gates add orthogonal
vetoes driven by traits, emotions and context.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..actions import HIGH_COMMITMENT_CONFLICT, SOCIAL_FAMILIES, ActionFamily
from ..atoms.atomset import AtomSet
from ..atoms.model import Namespace, atom_id
from ..config import GatingConfig
from ..possibilities.model import Possibility


@dataclass
class GateResult:
    """Outcome of gating one possibility."""
    allowed: bool
    blocked_by: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)


def _val(atoms: AtomSet, namespace: Namespace, kind: str, self_id: str, fallback: float = 0.0) -> float:
    return atoms.magnitude(atom_id(namespace, kind, self_id), fallback)


def present_blockers(possibility: Possibility, atoms: AtomSet) -> List[str]:
    """The ``blocked_by`` ids actually present in ``atoms``."""
    return [i for i in possibility.blocked_by if i in atoms]


def persona_gates(
    self_id: str,
    atoms: AtomSet,
    possibility: Possibility,
    config: GatingConfig,
) -> List[str]:
    """
    Persona vetoes for one possibility.

    Returns:
        Reason strings; empty when no persona gate fires
    """
    reasons: List[str] = []

    if possibility.family in SOCIAL_FAMILIES:
        paranoia = _val(atoms, Namespace.TRAIT, "paranoia", self_id)
        fear = _val(atoms, Namespace.FEEL, "fear", self_id)
        if paranoia > config.persona_high or fear > config.persona_high:
            surveillance = _val(atoms, Namespace.CTX, "surveillance", self_id)
            privacy = _val(atoms, Namespace.CTX, "privacy", self_id, 0.5)
            exposed = surveillance > config.surveillance_high or privacy < config.privacy_low
            info_need = _val(atoms, Namespace.NEED, "info", self_id)
            if exposed and info_need <= config.info_need_override:
                reasons.append("persona:guarded_under_exposure")

    if possibility.family is ActionFamily.VIOLENCE:
        norm = _val(atoms, Namespace.TRAIT, "norm_sensitivity", self_id)
        if norm > config.norm_sensitive:
            threat = 0.0
            if possibility.target_id:
                threat = atoms.magnitude(
                    atom_id(Namespace.TOM, "dyad", self_id, possibility.target_id, "threat"), 0.0)
            anger = _val(atoms, Namespace.FEEL, "anger", self_id)
            if threat + anger <= config.violence_threshold:
                reasons.append("persona:norm_restraint")

    if possibility.kind in HIGH_COMMITMENT_CONFLICT:
        tolerance = _val(atoms, Namespace.TRAIT, "ambiguity_tolerance", self_id, 0.5)
        uncertainty = _val(atoms, Namespace.CTX, "uncertainty", self_id)
        if tolerance < config.ambiguity_low and uncertainty > config.uncertainty_high:
            reasons.append("persona:ambiguity_averse")

    return reasons


def gate_possibility(
    self_id: str,
    atoms: AtomSet,
    possibility: Possibility,
    config: Optional[GatingConfig] = None,
) -> GateResult:
    config = config or GatingConfig()
    blockers = present_blockers(possibility, atoms)
    reasons = [f"blocked:{b}" for b in blockers]
    reasons.extend(persona_gates(self_id, atoms, possibility, config))
    return GateResult(allowed=not reasons, blocked_by=blockers, reasons=reasons)
