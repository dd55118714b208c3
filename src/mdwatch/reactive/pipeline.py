"""Preview pipeline — connects the change source to the broadcaster.

Orchestrates the full change propagation flow:
    1. ChangeSource detects a change to the document (RawChangeEvent)
    2. Debouncer waits for the burst to settle, re-renders once, and writes
       the ArtifactStore
    3. Broadcaster offers one notification to every connected viewer

This is the one long-lived background task of a watch session.  It owns no
state of its own; errors in any step are reported and the loop keeps going.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mdwatch.content.watcher import ChangeSource
    from mdwatch.observability.collector import StackCollector
    from mdwatch.reactive.broadcaster import Broadcaster
    from mdwatch.reactive.debouncer import Debouncer, SettledUpdate


class PreviewPipeline:
    """Coordinates change propagation from file edit to browser notification.

    Args:
        source: Change source for the watched document.
        debouncer: Debouncer owning the render step.
        broadcaster: Fan-out to connected viewers.
        collector: Observer for broadcast events.

    """

    def __init__(
        self,
        source: ChangeSource,
        debouncer: Debouncer,
        broadcaster: Broadcaster,
        collector: StackCollector | None = None,
    ) -> None:
        self._source = source
        self._debouncer = debouncer
        self._broadcaster = broadcaster
        self._collector = collector
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        """Whether the pipeline task is active."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the watcher and spawn the pipeline task on the running loop."""
        if self.is_running:
            return
        self._source.start()
        self._task = asyncio.create_task(self.run(), name="mdwatch-pipeline")

    async def stop(self) -> None:
        """Cancel the pipeline task and stop the watcher."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await asyncio.to_thread(self._source.stop)

    async def run(self) -> None:
        """Consume settled updates until the change source ends."""
        async for update in self._debouncer.settled(self._source.changes()):
            try:
                self.handle_update(update)
            except Exception as exc:
                print(f"  Pipeline error: {exc}", file=sys.stderr)

    def handle_update(self, update: SettledUpdate) -> None:
        """Broadcast one settled update and log it."""
        notified, skipped = self._broadcaster.publish(update)
        if self._collector is not None:
            self._collector.record_broadcast(
                update.trigger_path,
                viewers_notified=notified,
                viewers_skipped=skipped,
            )
        self._log_update(update, notified)

    def _log_update(self, update: SettledUpdate, notified: int) -> None:
        """Log an update to stderr."""
        name = Path(update.trigger_path).name or update.trigger_path
        viewers = "viewer" if notified == 1 else "viewers"
        print(f"  {name} changed — {notified} {viewers} notified", file=sys.stderr)
