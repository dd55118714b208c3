"""Event log — the bounded history of one preview session.

A session produces a handful of events per edit (render, broadcast) plus
one per viewer connection, so a small ring buffer holds the whole useful
history.  Tests and ``-v`` diagnostics query it after the fact.

Appends come from the watcher thread, render threads and the Pounce
worker; every method takes the one ``threading.Lock``.
"""

import threading
from collections import Counter, deque
from typing import Any

from mdwatch.observability.events import StackEvent


def _event_path(event: object) -> str:
    """The document path an event is about (``""`` for viewer events)."""
    return getattr(event, "path", None) or getattr(event, "trigger_path", None) or ""


class EventLog:
    """Ring buffer of session events, newest last.

    Args:
        max_events: Oldest events are dropped beyond this many.

    """

    __slots__ = ("_events", "_lock")

    def __init__(self, max_events: int = 1_000) -> None:
        self._events: deque[StackEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    @property
    def max_events(self) -> int:
        return self._events.maxlen or 0

    def append(self, event: StackEvent) -> None:
        with self._lock:
            self._events.append(event)

    def _snapshot(self) -> list[StackEvent]:
        with self._lock:
            return list(self._events)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        path: str | None = None,
        limit: int = 100,
    ) -> list[StackEvent]:
        """Matching events, newest first.

        *path* is a substring match against the event's document path
        (``path`` or ``trigger_path``); *since_ns* compares against
        ``timestamp_ns``.
        """
        matches: list[StackEvent] = []
        for event in reversed(self._snapshot()):
            if event_type is not None and not isinstance(event, event_type):
                continue
            if since_ns and getattr(event, "timestamp_ns", 0) < since_ns:
                continue
            if path is not None and path not in _event_path(event):
                continue
            matches.append(event)
            if len(matches) == limit:
                break
        return matches

    def latest(self, event_type: type) -> StackEvent | None:
        """Most recent event of *event_type*, if any."""
        found = self.query(event_type=event_type, limit=1)
        return found[0] if found else None

    def count(self, event_type: type) -> int:
        """How many retained events are of *event_type*."""
        return sum(isinstance(e, event_type) for e in self._snapshot())

    def recent(self, n: int = 20) -> list[StackEvent]:
        """The last *n* events, oldest first."""
        return self._snapshot()[-n:]

    def clear(self) -> int:
        """Drop every event; returns how many there were."""
        with self._lock:
            dropped = len(self._events)
            self._events.clear()
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Totals per event class name."""
        events = self._snapshot()
        return {
            "total": len(events),
            "max_events": self.max_events,
            "by_type": dict(Counter(type(e).__name__ for e in events)),
        }
