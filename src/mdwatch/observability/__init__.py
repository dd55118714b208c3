"""Observability — one event model for the whole preview pipeline.

Aggregates events from:
- **Pounce**: Connection lifecycle (open, request, response, disconnect, close)
- **mdwatch**: Renders, watch failures, update broadcasts, viewer connections

All events are frozen dataclasses with nanosecond timestamps, safe for
concurrent production from the watcher thread and the server worker.

Quick Start:
    >>> from mdwatch.observability import StackCollector, EventLog, RenderFailed
    >>> collector = StackCollector(EventLog())
    >>> # Pass collector to Pounce as lifecycle_collector and to the pipeline
    >>> collector.log.query(event_type=RenderFailed)
    []

"""

from mdwatch.observability.collector import StackCollector
from mdwatch.observability.events import (
    DocumentRendered,
    RenderFailed,
    StackEvent,
    UpdateBroadcast,
    ViewerConnected,
    ViewerDisconnected,
    WatchFailed,
    now_ns,
)
from mdwatch.observability.log import EventLog

__all__ = [
    "DocumentRendered",
    "EventLog",
    "RenderFailed",
    "StackCollector",
    "StackEvent",
    "UpdateBroadcast",
    "ViewerConnected",
    "ViewerDisconnected",
    "WatchFailed",
    "now_ns",
]
