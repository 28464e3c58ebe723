"""
Event store owned by a simulation run.

The orchestrator is the single writer; external tooling may read
concurrently through ``recent()`` and ``subscribe()``. The store has an
explicit lifecycle: it is created with the run and emptied by ``reset()``.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, List, Optional

from .events import TickEvent, TickEventType

logger = logging.getLogger(__name__)


class EventStore:
    """
    Sequenced, bounded log of tick events.

    Example:
        >>> store = EventStore(max_events=2000, keep_events=1500)
        >>> event = store.append(tick_start_event(0, ["mara"]))
        >>> event.seq, len(store)
        (1, 1)
    """

    def __init__(self, max_events: int = 2000, keep_events: int = 1500):
        """
        Initialize the store.

        Args:
            max_events: Length above which ``cap()`` trims the log
            keep_events: Number of newest events ``cap()`` keeps
        """
        self._lock = threading.RLock()
        self._events: List[TickEvent] = []
        self._seq = 0
        self.max_events = max(1, max_events)
        self.keep_events = max(1, min(keep_events, self.max_events))
        self._subscribers: List[Callable[[TickEvent], None]] = []

    def append(self, event: TickEvent) -> TickEvent:
        """Sequence and store an event; returns the stored copy."""
        with self._lock:
            self._seq += 1
            event = event.with_seq(self._seq)
            self._events.append(event)
            subscribers = list(self._subscribers)

        for sub in subscribers:
            try:
                sub(event)
            except Exception as e:
                logger.warning(f"Event subscriber error: {e}")
        return event

    def extend(self, events: Iterable[TickEvent]) -> List[TickEvent]:
        return [self.append(e) for e in events]

    def recent(self, n: Optional[int] = None, event_type: Optional[TickEventType] = None) -> List[TickEvent]:
        """Get recent events, optionally filtered by type."""
        with self._lock:
            events = list(self._events)
        if event_type is not None:
            events = [e for e in events if e.event_type == event_type]
        if n is not None:
            events = events[-n:] if n > 0 else []
        return events

    def since(self, seq: int) -> List[TickEvent]:
        """Events with a sequence number greater than ``seq``."""
        with self._lock:
            return [e for e in self._events if e.seq > seq]

    def cap(self) -> int:
        """
        Trim the log when it grew past ``max_events``.

        Returns:
            Number of events dropped
        """
        with self._lock:
            if len(self._events) <= self.max_events:
                return 0
            dropped = len(self._events) - self.keep_events
            self._events = self._events[-self.keep_events:]
        logger.debug(f"Event log capped, dropped {dropped} events")
        return dropped

    def reset(self) -> None:
        """Drop every event and restart sequencing."""
        with self._lock:
            self._events = []
            self._seq = 0
        logger.info("Event store reset")

    def subscribe(self, callback: Callable[[TickEvent], None]) -> Callable[[], None]:
        """
        Subscribe to appended events.

        Returns:
            Unsubscribe function
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def last_seq(self) -> int:
        with self._lock:
            return self._seq

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
