"""
Decay of unreinforced beliefs toward the neutral prior.
"""
from __future__ import annotations

import logging
from typing import Optional

from ..config import ToMConfig
from ..util import clamp01
from .table import INITIAL_UNCERTAINTY, NEUTRAL_AFFECT, NEUTRAL_PRIOR, ToMEntry, ToMTable

logger = logging.getLogger(__name__)


def decay_entry(entry: ToMEntry, rate: float) -> None:
    """Move every trait, affect estimate and the uncertainty a step toward neutral."""
    for name in entry.traits.names():
        value = entry.traits.get(name)
        entry.traits.set(name, value + rate * (NEUTRAL_PRIOR.get(name) - value))
    for name, neutral in NEUTRAL_AFFECT.items():
        value = entry.affect.get(name, neutral)
        entry.affect[name] = clamp01(value + rate * (neutral - value))
    entry.uncertainty = clamp01(entry.uncertainty + rate * (INITIAL_UNCERTAINTY - entry.uncertainty))


def apply_decay(table: ToMTable, tick: int, config: Optional[ToMConfig] = None) -> int:
    """
    Decay every entry not updated during ``tick``.

    Call once per tick, after all updates.

    Returns:
        Number of entries decayed
    """
    rate = (config or ToMConfig()).decay_rate
    if rate <= 0.0:
        return 0
    count = 0
    for entry in table:
        if entry.last_updated_tick == tick:
            continue
        decay_entry(entry, rate)
        count += 1
    if count:
        logger.debug(f"Decayed {count} ToM entries at tick {tick}")
    return count
