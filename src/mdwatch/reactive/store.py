"""Artifact store — the single shared cell holding the rendered page.

The debouncer's render step is the only writer; every ``GET /`` handler is
a reader.  A shared/exclusive lock keeps readers from ever seeing a
half-replaced artifact while letting any number of them read together.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class ReadWriteLock:
    """Many readers or one writer.

    Writers take priority over readers that arrive while a writer is
    waiting, so a steady stream of snapshot requests cannot starve the
    render step.

    Thread-safe; works from both the event loop thread and render threads.
    Critical sections are a byte-buffer swap, so blocking is brief.

    """

    __slots__ = ("_cond", "_readers", "_writer", "_writers_waiting")

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        """Block until shared access is granted."""
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        """Release shared access."""
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        """Block until exclusive access is granted."""
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        """Release exclusive access."""
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        """Context manager holding shared access."""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        """Context manager holding exclusive access."""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    @property
    def readers(self) -> int:
        """Number of readers currently holding the lock."""
        with self._cond:
            return self._readers

    @property
    def write_held(self) -> bool:
        """Whether a writer currently holds the lock."""
        with self._cond:
            return self._writer


class ArtifactStore:
    """Holds the most recently rendered artifact.

    The artifact is an immutable ``bytes`` object that is replaced, never
    mutated, so a snapshot returned by :meth:`read` stays valid forever.

    Args:
        initial: Artifact served before the first render completes.
        lock: Reader/writer lock to use (a fresh one by default).

    """

    __slots__ = ("_artifact", "_lock", "_version")

    def __init__(self, initial: bytes = b"", *, lock: ReadWriteLock | None = None) -> None:
        self._artifact = bytes(initial)
        self._lock = lock if lock is not None else ReadWriteLock()
        self._version = 0

    def read(self) -> bytes:
        """Return a consistent snapshot of the current artifact."""
        with self._lock.read_locked():
            return self._artifact

    def write(self, artifact: bytes) -> int:
        """Replace the artifact; returns the new version number."""
        data = bytes(artifact)
        with self._lock.write_locked():
            self._artifact = data
            self._version += 1
            return self._version

    @property
    def version(self) -> int:
        """Number of writes so far."""
        with self._lock.read_locked():
            return self._version
