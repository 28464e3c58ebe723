"""
Lenient adapter for foreign or legacy input at the external boundary.

Malformed input (a non-collection where a collection is expected, a
non-number where a number is expected) is coerced to an empty or fallback
value instead of raising. Every coercion is recorded on a ``CoercionLog``
so it shows up in the tick diagnostics rather than disappearing.

Internal code does not use these helpers; it works on the validated
dataclasses in ``kanonar.world`` and ``kanonar.atoms``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .util import sanitize

logger = logging.getLogger(__name__)


@dataclass
class CoercionLog:
    """Record of every coercion performed while reading external input."""
    entries: List[str] = field(default_factory=list)

    def record(self, where: str, reason: str) -> None:
        msg = f"{where}: {reason}"
        self.entries.append(msg)
        logger.debug(f"Coerced input {msg}")

    def __len__(self) -> int:
        return len(self.entries)


def as_list(value: Any, where: str, log: Optional[CoercionLog] = None) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if log is not None:
        log.record(where, f"expected list, got {type(value).__name__}")
    return []


def as_dict(value: Any, where: str, log: Optional[CoercionLog] = None) -> Dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    if log is not None:
        log.record(where, f"expected mapping, got {type(value).__name__}")
    return {}


def as_float(value: Any, fallback: float, where: str, log: Optional[CoercionLog] = None) -> float:
    if value is None:
        return fallback
    out = sanitize(value, fallback=float("nan"))
    if out != out:  # NaN marks a rejected value
        if log is not None:
            log.record(where, f"non-numeric value {value!r}")
        return fallback
    return out


def as_str(value: Any, fallback: str = "") -> str:
    if value is None:
        return fallback
    return str(value)


def as_float_map(value: Any, where: str, log: Optional[CoercionLog] = None) -> Dict[str, float]:
    """Mapping of names to numbers; bad entries are dropped and logged."""
    out: Dict[str, float] = {}
    for k, v in as_dict(value, where, log).items():
        f = as_float(v, float("nan"), f"{where}.{k}", log)
        if f == f:
            out[str(k)] = f
    return out
