"""
Per-tick diagnostics: what was coerced, skipped or noted while running.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


@dataclass
class TickDiagnostics:
    """
    Attributes:
        tick: Tick the diagnostics belong to
        coercions: agent id -> lenient-adapter coercions in its snapshot input
        skipped: agent id -> why a stage was skipped for it
        notes: Free-form notes (decision fallbacks, rejected intents)
    """
    tick: int
    coercions: Dict[str, List[str]] = field(default_factory=dict)
    skipped: Dict[str, List[str]] = field(default_factory=dict)
    notes: List[str] = field(default_factory=list)

    def record_coercions(self, agent_id: str, entries: List[str]) -> None:
        if entries:
            self.coercions.setdefault(agent_id, []).extend(entries)

    def skip(self, agent_id: str, reason: str) -> None:
        self.skipped.setdefault(agent_id, []).append(reason)
        logger.warning(f"Tick {self.tick}: skipped {agent_id}: {reason}")

    def note(self, msg: str) -> None:
        self.notes.append(msg)

    @property
    def coercion_count(self) -> int:
        return sum(len(v) for v in self.coercions.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick": self.tick,
            "coercions": {k: list(v) for k, v in self.coercions.items()},
            "coercion_count": self.coercion_count,
            "skipped": {k: list(v) for k, v in self.skipped.items()},
            "notes": list(self.notes),
        }
