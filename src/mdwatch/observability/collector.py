"""Stack collector — the observer injected into every pipeline component.

Implements Pounce's ``LifecycleCollector`` protocol so it can be passed
directly to the Pounce server.  Also provides methods for recording
render, watch and update-stream events, and the ``-v`` debug channel.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.
    Safe for concurrent use from the watcher thread, render threads and
    the Pounce worker.

"""

from __future__ import annotations

import sys
from typing import Any

from mdwatch.observability.events import (
    DocumentRendered,
    RenderFailed,
    UpdateBroadcast,
    ViewerConnected,
    ViewerDisconnected,
    WatchFailed,
    now_ns,
)
from mdwatch.observability.log import EventLog


class StackCollector:
    """Unified event collector for the preview pipeline.

    Args:
        log: The EventLog to store events in.
        verbose: Echo ``debug()`` messages to stderr.

    """

    __slots__ = ("_log", "_verbose")

    def __init__(self, log: EventLog | None = None, *, verbose: bool = False) -> None:
        self._log = log if log is not None else EventLog()
        self._verbose = verbose

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    @property
    def verbose(self) -> bool:
        """Whether debug messages are echoed to stderr."""
        return self._verbose

    def debug(self, *parts: object) -> None:
        """Print a ``DEBUG:`` line to stderr when verbose."""
        if self._verbose:
            print("DEBUG:", *parts, file=sys.stderr)

    # ----- Pounce LifecycleCollector protocol -----

    def record(self, event: Any) -> None:
        """Record a Pounce lifecycle event.

        Pounce events are frozen dataclasses and are stored as-is.
        """
        self._log.append(event)

    # ----- Render events -----

    def record_render(
        self,
        path: str,
        *,
        events_collapsed: int = 1,
        artifact_bytes: int = 0,
        render_ms: float = 0.0,
    ) -> None:
        """Record a successful re-render."""
        self._log.append(
            DocumentRendered(
                path=path,
                events_collapsed=events_collapsed,
                artifact_bytes=artifact_bytes,
                render_ms=render_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_render_failure(self, path: str, exc: BaseException) -> None:
        """Record a failed re-render."""
        self._log.append(
            RenderFailed(
                path=path,
                error_type=type(exc).__name__,
                message=str(exc),
                timestamp_ns=now_ns(),
            )
        )

    # ----- Watch events -----

    def record_watch_error(self, path: str, message: str) -> None:
        """Record a watch failure (the watch loop keeps going)."""
        self._log.append(WatchFailed(path=path, message=message, timestamp_ns=now_ns()))

    # ----- Update stream events -----

    def record_broadcast(
        self,
        trigger_path: str,
        *,
        viewers_notified: int = 0,
        viewers_skipped: int = 0,
    ) -> None:
        """Record a fan-out of one settled update."""
        self._log.append(
            UpdateBroadcast(
                trigger_path=trigger_path,
                viewers_notified=viewers_notified,
                viewers_skipped=viewers_skipped,
                timestamp_ns=now_ns(),
            )
        )

    def record_viewer_connected(self, client_id: str) -> None:
        """Record a new update-stream connection."""
        self._log.append(ViewerConnected(client_id=client_id, timestamp_ns=now_ns()))

    def record_viewer_disconnected(self, client_id: str) -> None:
        """Record a closed update-stream connection."""
        self._log.append(ViewerDisconnected(client_id=client_id, timestamp_ns=now_ns()))
