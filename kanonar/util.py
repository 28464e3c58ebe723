from __future__ import annotations

import math
from typing import Any


def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


def clamp01(x: float) -> float:
    """Clamp to [0, 1], mapping non-finite values to 0."""
    if not is_finite(x):
        return 0.0
    return clamp(float(x), 0.0, 1.0)


def is_finite(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)


def sanitize(x: Any, fallback: float = 0.0, lo: float = -1e6, hi: float = 1e6) -> float:
    """
    Coerce a numeric value into a finite float.

    NaN and non-numbers become ``fallback``; infinities are clamped to the
    finite ``[lo, hi]`` range.
    """
    if isinstance(x, bool) or not isinstance(x, (int, float)):
        return fallback
    if math.isnan(x):
        return fallback
    return clamp(float(x), lo, hi)


def sigmoid(x: float) -> float:
    x = sanitize(x)
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def ramp(x: float, lo: float, hi: float) -> float:
    """Linear 0..1 ramp between ``lo`` and ``hi``."""
    if hi <= lo:
        return 1.0 if x >= hi else 0.0
    return clamp01((x - lo) / (hi - lo))
