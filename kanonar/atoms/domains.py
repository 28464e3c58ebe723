"""
Domain vector: the situation condensed into a few 0..1 axes.

The goal ecology reads domains rather than raw atoms. Every domain is built
from atoms only, with 0 as the fallback, so an empty atom set yields an
all-zero vector.
"""
from __future__ import annotations

from typing import Dict

from ..util import clamp01
from .atomset import AtomSet
from .model import Namespace, atom_id

DOMAIN_NAMES = (
    "danger",
    "uncertainty",
    "intimacy",
    "hierarchy",
    "obligation",
    "norm_pressure",
    "avoidance",
    "attachment",
    "care",
    "social",
    "scarcity",
    "time_pressure",
    "fatigue",
)


def _max_of(atoms: AtomSet, namespace: Namespace, kind: str, subject: str, metric: str = "") -> float:
    values = [a.magnitude for a in atoms.find(namespace, kind, subject) if not metric or a.metric == metric]
    return max(values, default=0.0)


def compute_domains(atoms: AtomSet, self_id: str) -> Dict[str, float]:
    """
    Compute the domain vector for ``self_id``.

    Args:
        atoms: The agent's snapshot atoms
        self_id: Agent the domains are computed for

    Returns:
        Mapping of every name in ``DOMAIN_NAMES`` to a value in [0, 1]
    """
    def ctx(kind: str) -> float:
        return clamp01(atoms.magnitude(atom_id(Namespace.CTX, kind, self_id), 0.0))

    danger = ctx("danger")
    uncertainty = ctx("uncertainty")
    surveillance = ctx("surveillance")
    crowding = ctx("crowd")
    privacy = ctx("privacy")
    hierarchy = ctx("hierarchy")
    norm_pressure = ctx("normPressure")

    closeness = _max_of(atoms, Namespace.REL, "state", self_id, "closeness")
    support = _max_of(atoms, Namespace.EVENT, "helpedBy", self_id)
    injury = _max_of(atoms, Namespace.WORLD, "injury", self_id)
    obligation_rel = _max_of(atoms, Namespace.REL, "state", self_id, "obligation")

    intimacy = clamp01(0.7 * privacy * (1.0 - surveillance) + 0.3 * closeness)
    obligation = clamp01(0.5 * norm_pressure + 0.25 * hierarchy + 0.25 * obligation_rel)
    avoidance = clamp01(0.5 * danger + 0.3 * surveillance + 0.2 * crowding)
    attachment = clamp01(0.6 * intimacy * (1.0 - danger) + 0.4 * support)

    return {
        "danger": danger,
        "uncertainty": uncertainty,
        "intimacy": intimacy,
        "hierarchy": hierarchy,
        "obligation": obligation,
        "norm_pressure": norm_pressure,
        "avoidance": avoidance,
        "attachment": attachment,
        "care": clamp01(injury),
        "social": clamp01((support + crowding) / 2.0),
        "scarcity": ctx("scarcity"),
        "time_pressure": ctx("timePressure"),
        "fatigue": clamp01(atoms.magnitude(atom_id(Namespace.BODY, "fatigue", self_id), 0.0)),
    }
