"""Event model for the preview pipeline.

Defines event types for rendering, watching and the update stream.
Pounce lifecycle events are reused directly from ``pounce.lifecycle``.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Render events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DocumentRendered:
    """The document was re-rendered and the artifact replaced.

    Attributes:
        path: Document path (``<stdin>`` when reading standard input).
        events_collapsed: Raw change events folded into this render.
        artifact_bytes: Size of the new artifact.
        render_ms: Time spent reading and rendering in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    events_collapsed: int
    artifact_bytes: int
    render_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class RenderFailed:
    """A render attempt failed; the previous artifact was kept.

    Attributes:
        path: Document path.
        error_type: Exception class name.
        message: Exception message.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    error_type: str
    message: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Watch events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class WatchFailed:
    """The file watch failed or could not be re-armed.

    Attributes:
        path: Watched document path.
        message: What went wrong.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    message: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Update stream events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class UpdateBroadcast:
    """A settled update was offered to every connected viewer.

    Attributes:
        trigger_path: Document path that changed.
        viewers_notified: Viewers whose slot accepted the notification.
        viewers_skipped: Viewers whose slot was still full (notification dropped).
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    trigger_path: str
    viewers_notified: int
    viewers_skipped: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ViewerConnected:
    """A browser opened the update stream."""

    client_id: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ViewerDisconnected:
    """A browser closed the update stream."""

    client_id: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type StackEvent = (
    DocumentRendered
    | RenderFailed
    | WatchFailed
    | UpdateBroadcast
    | ViewerConnected
    | ViewerDisconnected
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
