"""
World-wide theory-of-mind table.

One ``ToMEntry`` per (observer, target) pair holds the observer's
probabilistic model of the target. Entries start at a neutral prior and are
only changed by the update and decay functions in this package.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, asdict, fields
from typing import Dict, Iterator, Optional, Tuple

from ..util import clamp01

logger = logging.getLogger(__name__)


@dataclass
class ToMTraits:
    """
    Believed traits of the target, all in [0, 1].

    The defaults double as the neutral prior that unreinforced beliefs
    decay back toward.
    """
    trust: float = 0.5
    bond: float = 0.1
    align: float = 0.5
    dominance: float = 0.5
    vulnerability: float = 0.5
    conflict: float = 0.1
    competence: float = 0.5
    reliability: float = 0.5
    obedience: float = 0.5
    fear: float = 0.1

    def get(self, name: str, default: float = 0.5) -> float:
        return getattr(self, name, default)

    def set(self, name: str, value: float) -> None:
        if name not in self.__dataclass_fields__:
            raise KeyError(name)
        setattr(self, name, clamp01(value))

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "ToMTraits":
        return cls(**{k: clamp01(v) for k, v in data.items() if k in cls.__dataclass_fields__})


NEUTRAL_PRIOR = ToMTraits()
NEUTRAL_AFFECT: Dict[str, float] = {"fear": 0.2, "anger": 0.1, "distress": 0.2}
INITIAL_UNCERTAINTY = 0.8


@dataclass
class ToMEntry:
    """
    One observer's belief about one target.

    Attributes:
        observer_id: Agent holding the belief
        target_id: Agent the belief is about
        traits: Believed trait values
        affect: Estimated current affect of the target
        uncertainty: How unsure the observer is (0 = certain)
        confidence_overall: Aggregate confidence, derived from uncertainty
            and the observer's model quality
        evidence_count: Number of observations folded in
        last_updated_tick: Tick of the last update (-1 = never)
    """
    observer_id: str
    target_id: str
    traits: ToMTraits = field(default_factory=ToMTraits)
    affect: Dict[str, float] = field(default_factory=lambda: dict(NEUTRAL_AFFECT))
    uncertainty: float = INITIAL_UNCERTAINTY
    confidence_overall: float = 1.0 - INITIAL_UNCERTAINTY
    evidence_count: int = 0
    last_updated_tick: int = -1

    def threat(self, low_trust: float = 0.3, low_trust_bonus: float = 0.2) -> float:
        """Hostility/fear reading: max(conflict, fear), raised when trust is low."""
        t = max(self.traits.conflict, self.traits.fear)
        if self.traits.trust < low_trust:
            t += low_trust_bonus
        return clamp01(t)

    def to_dict(self) -> Dict:
        return {
            "observer_id": self.observer_id,
            "target_id": self.target_id,
            "traits": self.traits.to_dict(),
            "affect": dict(self.affect),
            "uncertainty": self.uncertainty,
            "confidence_overall": self.confidence_overall,
            "evidence_count": self.evidence_count,
            "last_updated_tick": self.last_updated_tick,
            "threat": self.threat(),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ToMEntry":
        return cls(
            observer_id=data["observer_id"],
            target_id=data["target_id"],
            traits=ToMTraits.from_dict(data.get("traits", {})),
            affect={**NEUTRAL_AFFECT, **data.get("affect", {})},
            uncertainty=clamp01(data.get("uncertainty", INITIAL_UNCERTAINTY)),
            confidence_overall=clamp01(data.get("confidence_overall", 1.0 - INITIAL_UNCERTAINTY)),
            evidence_count=int(data.get("evidence_count", 0)),
            last_updated_tick=int(data.get("last_updated_tick", -1)),
        )


class ToMTable:
    """
    Beliefs of every observer about every other agent.

    Example:
        >>> table = ToMTable()
        >>> entry = table.ensure("mara", "oskar")
        >>> entry.traits.trust
        0.5
    """

    def __init__(self):
        self._entries: Dict[Tuple[str, str], ToMEntry] = {}

    def get(self, observer_id: str, target_id: str) -> Optional[ToMEntry]:
        return self._entries.get((observer_id, target_id))

    def ensure(self, observer_id: str, target_id: str) -> ToMEntry:
        """Get or create the entry, starting from the neutral prior."""
        key = (observer_id, target_id)
        entry = self._entries.get(key)
        if entry is None:
            entry = ToMEntry(observer_id=observer_id, target_id=target_id)
            self._entries[key] = entry
            logger.debug(f"New ToM entry {observer_id}->{target_id}")
        return entry

    def entries_for(self, observer_id: str) -> Dict[str, ToMEntry]:
        """The observer's slice of the table, keyed by target id."""
        return {t: e for (o, t), e in self._entries.items() if o == observer_id}

    def __iter__(self) -> Iterator[ToMEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._entries

    def to_dict(self) -> Dict[str, Dict[str, Dict]]:
        out: Dict[str, Dict[str, Dict]] = {}
        for (o, t), entry in self._entries.items():
            out.setdefault(o, {})[t] = entry.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Dict[str, Dict]]) -> "ToMTable":
        table = cls()
        for observer_id, targets in (data or {}).items():
            for target_id, raw in (targets or {}).items():
                raw = {**raw, "observer_id": observer_id, "target_id": target_id}
                table._entries[(observer_id, target_id)] = ToMEntry.from_dict(raw)
        return table
