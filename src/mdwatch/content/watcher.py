"""Change source — watchfiles notifications for the one watched document.

Watches the document's *directory* rather than the file itself, so editors
that save by deleting and recreating the file (or renaming a temp file over
it) keep producing events.  Only events for the watched file name get
through.

The watcher runs watchfiles in a background thread and bridges events to an
asyncio queue for consumption by the debouncer.
"""

from __future__ import annotations

import asyncio
import contextlib
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from watchfiles import Change

from mdwatch._errors import WatchError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from mdwatch._types import ChangeKind
    from mdwatch.observability.collector import StackCollector


@dataclass(frozen=True, slots=True)
class RawChangeEvent:
    """A filesystem change to the watched document.

    Attributes:
        path: Absolute path to the changed file.
        kind: What happened to it.

    """

    path: Path
    kind: ChangeKind


# Mapping from watchfiles Change enum to our kind literals.  Anything else
# (a file appearing under the watched name) is "other".
_CHANGE_KIND_MAP: dict[Change, ChangeKind] = {
    Change.modified: "modified",
    Change.deleted: "removed",
}


class ChangeSource:
    """Lazy, unbounded stream of changes to one document.

    A removal re-arms the watch on the same path, since some editors replace
    the inode on save.  Watch failures are reported to the collector and
    stderr and retried; they never propagate.

    Args:
        path: Absolute path of the watched document.
        collector: Observer for watch errors and debug output.
        rearm_delay: Seconds to wait before retrying a failed watch.

    """

    def __init__(
        self,
        path: Path,
        *,
        collector: StackCollector | None = None,
        rearm_delay: float = 0.1,
    ) -> None:
        self._path = path
        self._collector = collector
        self._rearm_delay = rearm_delay
        # None marks the end of the stream.
        self._queue: asyncio.Queue[RawChangeEvent | None] = asyncio.Queue()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._last_error: str | None = None

    @property
    def path(self) -> Path:
        """The watched document."""
        return self._path

    @property
    def is_running(self) -> bool:
        """Whether the watcher background thread is active."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start watching in a background thread.

        Must be called from the event loop that will consume ``changes()``.
        """
        if self.is_running:
            return

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._watch_loop,
            name="mdwatch-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the watcher to stop and wait for the thread to finish.

        Safe to call from any thread.  Queued events are still delivered
        before ``changes()`` ends.
        """
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout=5.0)
        self._thread = None
        self._enqueue(None)

    async def changes(self) -> AsyncIterator[RawChangeEvent]:
        """Async iterator that yields RawChangeEvent objects as they occur.

        Ends as soon as ``stop()`` has run and the queued events are drained.
        """
        while (event := await self._queue.get()) is not None:
            yield event

    def _enqueue(self, event: RawChangeEvent | None) -> None:
        loop = self._loop
        if loop is None:
            return
        # The loop may already be closed during shutdown.
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(self._queue.put_nowait, event)

    # -- background thread --

    def _accepts(self, change: Change, path: str) -> bool:
        # recursive=False, so the name alone identifies the document.
        return Path(path).name == self._path.name

    def _watch_loop(self) -> None:
        """Background thread: (re-)arm watchfiles until stopped."""
        while not self._stop_event.is_set():
            directory = self._path.parent
            if not directory.is_dir():
                self._report(f"cannot re-arm watch: {directory} does not exist")
                self._stop_event.wait(self._rearm_delay)
                continue

            try:
                rearm = self._watch_once(directory)
            except Exception as exc:
                self._report(f"watch on {directory} failed: {exc}")
                self._stop_event.wait(self._rearm_delay)
                continue

            self._last_error = None
            if rearm and self._collector is not None:
                self._collector.debug("re-arming watch on", self._path)

    def _watch_once(self, directory: Path) -> bool:
        """Run one watch session.

        Returns True when the document was removed and the watch must be
        re-armed, False when the session ended because of ``stop()``.
        """
        from watchfiles import watch

        for raw_changes in watch(
            directory,
            watch_filter=self._accepts,
            stop_event=self._stop_event,
            recursive=False,
            debounce=20,
            step=5,
        ):
            removed = False
            for change_type, path_str in raw_changes:
                kind = _CHANGE_KIND_MAP.get(change_type, "other")
                self._emit(RawChangeEvent(path=Path(path_str), kind=kind))
                removed = removed or kind == "removed"
            if removed:
                return True
        return False

    def _emit(self, event: RawChangeEvent) -> None:
        if self._loop is None:
            return
        if self._collector is not None:
            self._collector.debug("change:", event.kind, event.path)
        self._enqueue(event)

    def _report(self, message: str) -> None:
        """Record a watch failure; repeated identical failures print once."""
        error = WatchError(message)
        if self._collector is not None:
            self._collector.record_watch_error(str(self._path), str(error))
        if message != self._last_error:
            print(f"  Watch error: {error}", file=sys.stderr)
            self._last_error = message
