"""Tests for mdwatch.reactive.store — the shared artifact cell."""

from __future__ import annotations

import threading
import time

from mdwatch.reactive.store import ArtifactStore, ReadWriteLock


# ---------------------------------------------------------------------------
# ReadWriteLock
# ---------------------------------------------------------------------------


class TestReadWriteLock:
    """Shared/exclusive semantics."""

    def test_readers_share(self) -> None:
        lock = ReadWriteLock()
        lock.acquire_read()
        lock.acquire_read()
        assert lock.readers == 2
        lock.release_read()
        lock.release_read()
        assert lock.readers == 0

    def test_writer_is_exclusive(self) -> None:
        lock = ReadWriteLock()
        with lock.write_locked():
            assert lock.write_held
        assert not lock.write_held

    def test_writer_waits_for_readers(self) -> None:
        lock = ReadWriteLock()
        lock.acquire_read()
        acquired = threading.Event()

        def writer() -> None:
            with lock.write_locked():
                acquired.set()

        t = threading.Thread(target=writer)
        t.start()
        assert not acquired.wait(timeout=0.1)

        lock.release_read()
        assert acquired.wait(timeout=2.0)
        t.join(timeout=2.0)

    def test_reader_waits_for_writer(self) -> None:
        lock = ReadWriteLock()
        lock.acquire_write()
        acquired = threading.Event()

        def reader() -> None:
            with lock.read_locked():
                acquired.set()

        t = threading.Thread(target=reader)
        t.start()
        assert not acquired.wait(timeout=0.1)

        lock.release_write()
        assert acquired.wait(timeout=2.0)
        t.join(timeout=2.0)

    def test_waiting_writer_blocks_new_readers(self) -> None:
        """A queued writer goes before readers that arrive after it."""
        lock = ReadWriteLock()
        lock.acquire_read()
        order: list[str] = []

        def writer() -> None:
            with lock.write_locked():
                order.append("writer")

        def late_reader() -> None:
            with lock.read_locked():
                order.append("reader")

        w = threading.Thread(target=writer)
        w.start()
        time.sleep(0.05)
        r = threading.Thread(target=late_reader)
        r.start()
        time.sleep(0.05)
        assert order == []

        lock.release_read()
        w.join(timeout=2.0)
        r.join(timeout=2.0)
        assert order == ["writer", "reader"]


# ---------------------------------------------------------------------------
# ArtifactStore
# ---------------------------------------------------------------------------


class TestArtifactStore:
    """Snapshot reads and versioned writes."""

    def test_initial_artifact(self) -> None:
        store = ArtifactStore(b"<h1>Hi</h1>")
        assert store.read() == b"<h1>Hi</h1>"
        assert store.version == 0

    def test_empty_by_default(self) -> None:
        assert ArtifactStore().read() == b""

    def test_write_replaces_and_bumps_version(self) -> None:
        store = ArtifactStore(b"old")
        assert store.write(b"new") == 1
        assert store.write(b"newer") == 2
        assert store.read() == b"newer"
        assert store.version == 2

    def test_snapshot_survives_later_write(self) -> None:
        store = ArtifactStore(b"first")
        snapshot = store.read()
        store.write(b"second")
        assert snapshot == b"first"

    def test_bytearray_is_copied(self) -> None:
        buf = bytearray(b"abc")
        store = ArtifactStore()
        store.write(buf)  # type: ignore[arg-type]
        buf[0] = ord("z")
        assert store.read() == b"abc"

    def test_uses_injected_lock(self) -> None:
        lock = ReadWriteLock()
        store = ArtifactStore(b"x", lock=lock)
        lock.acquire_write()
        got: list[bytes] = []
        t = threading.Thread(target=lambda: got.append(store.read()))
        t.start()
        time.sleep(0.05)
        assert got == []
        lock.release_write()
        t.join(timeout=2.0)
        assert got == [b"x"]

    def test_concurrent_readers_never_see_torn_artifact(self) -> None:
        store = ArtifactStore(b"a" * 4096)
        stop = threading.Event()
        seen: set[bytes] = set()

        def reader() -> None:
            while not stop.is_set():
                seen.add(store.read())

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in readers:
            t.start()
        for i in range(200):
            store.write(bytes([ord("a") + i % 2]) * 4096)
        stop.set()
        for t in readers:
            t.join(timeout=2.0)

        assert seen <= {b"a" * 4096, b"b" * 4096}
