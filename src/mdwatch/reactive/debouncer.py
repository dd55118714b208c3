"""Debouncer — collapses bursts of file events into one re-render.

Editors rarely save with a single filesystem event: write-to-temp then
rename, truncate then write, and metadata touches all arrive within a few
milliseconds.  The debouncer waits for a quiet period (the quiescence
window) after the *latest* event, then renders exactly once, stores the
result, and emits one ``SettledUpdate``.

Timeline for a burst of three events with a 50 ms window::

    e1 ──10ms── e2 ──10ms── e3 ────────50ms────────▶ render → SettledUpdate
       (timer)     (reset)     (reset)        (fires)

Events that arrive while a render is running are not lost: they start the
next burst.
"""

from __future__ import annotations

import asyncio
import contextlib
import sys
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from mdwatch._errors import RenderError
from mdwatch.observability.events import now_ns

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, AsyncIterator

    from mdwatch._types import ArtifactProducer
    from mdwatch.observability.collector import StackCollector
    from mdwatch.reactive.store import ArtifactStore


@dataclass(frozen=True, slots=True)
class SettledUpdate:
    """The artifact has been recomputed; it is safe to re-read it.

    Attributes:
        trigger_path: Path from the last event of the burst.
        events_collapsed: How many raw events the burst contained.
        version: ArtifactStore version written by this render.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    trigger_path: str
    events_collapsed: int
    version: int
    timestamp_ns: int


class Debouncer:
    """Turns raw change events into settled updates.

    The render callable runs in a worker thread so the event loop keeps
    serving requests; only one render is ever in flight.

    Args:
        store: Where rendered artifacts are written.
        render: Produces the new artifact (reads and renders the document).
        window: Quiescence window in seconds.
        collector: Observer for render results and failures.

    """

    __slots__ = ("_collector", "_render", "_renders", "_store", "_window")

    def __init__(
        self,
        store: ArtifactStore,
        render: ArtifactProducer,
        *,
        window: float = 0.05,
        collector: StackCollector | None = None,
    ) -> None:
        self._store = store
        self._render = render
        self._window = window
        self._collector = collector
        self._renders = 0

    @property
    def window(self) -> float:
        """Quiescence window in seconds."""
        return self._window

    @property
    def render_count(self) -> int:
        """Render attempts so far (successful or not)."""
        return self._renders

    async def settled(self, events: AsyncIterable[Any]) -> AsyncIterator[SettledUpdate]:
        """Yield one SettledUpdate per quiet burst of *events*.

        Each event only needs a ``path`` attribute (used for reporting).
        Ends when *events* is exhausted, after settling any pending burst.
        """
        iterator = aiter(events)
        pending_next: asyncio.Future[Any] | None = None
        exhausted = False
        try:
            while not exhausted:
                # Idle: wait as long as it takes for the first event.
                if pending_next is None:
                    pending_next = asyncio.ensure_future(iterator.__anext__())
                try:
                    last = await pending_next
                except StopAsyncIteration:
                    return
                pending_next = None
                count = 1

                # Quiescence: every new event restarts the window.
                while True:
                    pending_next = asyncio.ensure_future(iterator.__anext__())
                    done, _ = await asyncio.wait({pending_next}, timeout=self._window)
                    if not done:
                        # Window elapsed; the in-flight __anext__ carries
                        # over and becomes the start of the next burst.
                        break
                    future, pending_next = pending_next, None
                    try:
                        last = future.result()
                    except StopAsyncIteration:
                        exhausted = True
                        break
                    count += 1

                update = await self._settle(str(getattr(last, "path", "")), count)
                if update is not None:
                    yield update
        finally:
            if pending_next is not None:
                if not pending_next.done():
                    pending_next.cancel()
                with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration):
                    await pending_next

    async def _settle(self, trigger_path: str, count: int) -> SettledUpdate | None:
        """Render once and store the result; None if the render failed."""
        self._renders += 1
        t0 = time.perf_counter()
        try:
            artifact = await asyncio.to_thread(self._render)
        except Exception as exc:
            self._report_failure(trigger_path, exc)
            return None
        render_ms = (time.perf_counter() - t0) * 1000

        version = self._store.write(artifact)
        if self._collector is not None:
            self._collector.record_render(
                trigger_path,
                events_collapsed=count,
                artifact_bytes=len(artifact),
                render_ms=render_ms,
            )
            self._collector.debug(
                f"rendered {trigger_path} ({count} events, {render_ms:.1f}ms)",
            )
        return SettledUpdate(
            trigger_path=trigger_path,
            events_collapsed=count,
            version=version,
            timestamp_ns=now_ns(),
        )

    def _report_failure(self, trigger_path: str, exc: Exception) -> None:
        error = exc if isinstance(exc, RenderError) else RenderError(str(exc))
        if self._collector is not None:
            self._collector.record_render_failure(trigger_path, error)
        print(f"  Render error: {error} (keeping the last good page)", file=sys.stderr)
