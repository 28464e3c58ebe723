"""
Metrics collection for simulation runs.

Tracks:
- Per-stage latency (perception, goals, decision, execution, tom)
- Chosen action counts
- Fallback and skip counts
"""
from __future__ import annotations

import logging
import threading
import time
from collections import Counter, deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterator

import numpy as np

logger = logging.getLogger(__name__)

SAMPLE_WINDOW = 1000


@dataclass
class LatencyStats:
    """Running latency summary of one stage; percentiles use the last samples."""
    count: int = 0
    total_ms: float = 0.0
    min_ms: float = 0.0
    max_ms: float = 0.0
    samples: Deque[float] = field(default_factory=lambda: deque(maxlen=SAMPLE_WINDOW))

    def record(self, ms: float) -> None:
        self.min_ms = ms if self.count == 0 else min(self.min_ms, ms)
        self.max_ms = max(self.max_ms, ms)
        self.count += 1
        self.total_ms += ms
        self.samples.append(ms)

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count else 0.0

    def percentile(self, p: float) -> float:
        """Nearest sample at or above the ``p``-th percentile (0-100)."""
        if not self.samples:
            return 0.0
        return float(np.percentile(np.fromiter(self.samples, dtype=float), p, method="higher"))

    @property
    def p50(self) -> float:
        return self.percentile(50)

    @property
    def p95(self) -> float:
        return self.percentile(95)

    @property
    def p99(self) -> float:
        return self.percentile(99)

    def to_dict(self) -> Dict[str, float]:
        out = {"count": self.count}
        for key, value in (("avg_ms", self.avg_ms), ("min_ms", self.min_ms), ("max_ms", self.max_ms),
                           ("p50_ms", self.p50), ("p95_ms", self.p95), ("p99_ms", self.p99)):
            out[key] = round(value, 3)
        return out


class TickMetrics:
    """
    Metrics of one simulation run.

    Example:
        >>> metrics = TickMetrics()
        >>> with metrics.timed("decision"):
        ...     policy.choose("mara", atoms)
        >>> metrics.record_action("hide")
        >>> metrics.to_dict()["actions"]
        {'hide': 1}
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.ticks = 0
        self._stages: Dict[str, LatencyStats] = {}
        self._actions: Counter = Counter()
        self.fallbacks = 0
        self.skips = 0

    def record_latency(self, stage: str, ms: float) -> None:
        with self._lock:
            self._stages.setdefault(stage, LatencyStats()).record(ms)

    @contextmanager
    def timed(self, stage: str) -> Iterator[None]:
        """Time the enclosed block as ``stage``."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record_latency(stage, (time.perf_counter() - start) * 1000.0)

    def record_action(self, kind: str) -> None:
        with self._lock:
            self._actions[kind] += 1

    def record_tick(self, fallbacks: int = 0, skips: int = 0) -> None:
        with self._lock:
            self.ticks += 1
            self.fallbacks += fallbacks
            self.skips += skips

    def stage(self, name: str) -> LatencyStats:
        with self._lock:
            return self._stages.get(name, LatencyStats())

    def reset(self) -> None:
        with self._lock:
            self.ticks = 0
            self._stages = {}
            self._actions = Counter()
            self.fallbacks = 0
            self.skips = 0

    def to_dict(self) -> Dict:
        """Export as dictionary."""
        with self._lock:
            return {
                "ticks": self.ticks,
                "stages": {k: v.to_dict() for k, v in self._stages.items()},
                "actions": dict(self._actions),
                "fallbacks": self.fallbacks,
                "skips": self.skips,
            }

    def summary(self) -> str:
        """Human-readable summary."""
        data = self.to_dict()
        lines = [f"Ticks: {data['ticks']}  fallbacks: {data['fallbacks']}  skips: {data['skips']}"]
        for name, stats in data["stages"].items():
            lines.append(f"  {name}: avg={stats['avg_ms']}ms p95={stats['p95_ms']}ms")
        if data["actions"]:
            top = sorted(data["actions"].items(), key=lambda kv: (-kv[1], kv[0]))
            lines.append("  actions: " + ", ".join(f"{k}={v}" for k, v in top))
        return "\n".join(lines)
