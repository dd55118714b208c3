"""Shared test fixtures for mdwatch."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator, Iterable, MutableMapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from mdwatch.observability.collector import StackCollector
from mdwatch.observability.log import EventLog


@pytest.fixture
def doc(tmp_path: Path) -> Path:
    """A markdown document on disk."""
    path = tmp_path / "doc.md"
    path.write_bytes(b"# Hi\n")
    return path


@pytest.fixture
def collector() -> StackCollector:
    """A quiet collector backed by a fresh EventLog."""
    return StackCollector(EventLog())


# ---------------------------------------------------------------------------
# Fake change events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FakeEvent:
    """Stand-in for RawChangeEvent; the debouncer only reads ``path``."""

    path: str
    kind: str = "modified"


async def scripted_events(
    delays: Iterable[float], *, path: str = "/doc.md", tail: float = 0.0,
) -> AsyncIterator[FakeEvent]:
    """Yield one event after each delay (seconds), then idle for *tail*."""
    for delay in delays:
        await asyncio.sleep(delay)
        yield FakeEvent(path=path)
    if tail:
        await asyncio.sleep(tail)


# ---------------------------------------------------------------------------
# Update stream driver
# ---------------------------------------------------------------------------


class UpdateStream:
    """Holds one ``GET /updates`` request open against an ASGI app.

    Chirp's ``TestClient.sse`` only counts ``data: `` frames (with a space),
    so this drives the app directly: ``receive()`` blocks until
    :meth:`disconnect` is called, and every body chunk is collected.

    Use inside ``async with TestClient(app)`` so the app is frozen and its
    startup hooks have run.
    """

    def __init__(self, app: Any, path: str = "/updates") -> None:
        self._app = app
        self._path = path
        self._disconnect = asyncio.Event()
        self._started = asyncio.Event()
        self._chunk_arrived = asyncio.Event()
        self._request_sent = False
        self._task: asyncio.Task[None] | None = None
        self.status = 0
        self.headers: dict[str, str] = {}
        self.chunks: list[bytes] = []

    @property
    def body(self) -> bytes:
        return b"".join(self.chunks)

    def frames(self) -> list[str]:
        """Complete non-comment frames received so far."""
        text = self.body.decode("utf-8")
        blocks = text.split("\n\n")[:-1]
        return [b + "\n\n" for b in blocks if b and not b.startswith(":")]

    async def __aenter__(self) -> UpdateStream:
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "GET",
            "path": self._path,
            "raw_path": self._path.encode("latin-1"),
            "query_string": b"",
            "root_path": "",
            "headers": [(b"accept", b"text/event-stream")],
            "server": ("testserver", 80),
            "client": ("127.0.0.1", 0),
        }
        self._task = asyncio.create_task(self._app(scope, self._receive, self._send))
        await asyncio.wait_for(self._started.wait(), timeout=5.0)
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.disconnect()

    async def disconnect(self) -> None:
        """Close the connection and wait for the handler to finish."""
        self._disconnect.set()
        if self._task is None:
            return
        try:
            await asyncio.wait_for(self._task, timeout=5.0)
        except TimeoutError:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    async def wait_for_frames(self, count: int, timeout: float = 5.0) -> list[str]:
        """Wait until at least *count* frames have arrived."""
        async with asyncio.timeout(timeout):
            while len(self.frames()) < count:
                self._chunk_arrived.clear()
                await self._chunk_arrived.wait()
        return self.frames()

    async def _receive(self) -> dict[str, Any]:
        if not self._request_sent:
            self._request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await self._disconnect.wait()
        return {"type": "http.disconnect"}

    async def _send(self, message: MutableMapping[str, Any]) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            for name, value in message.get("headers", []):
                self.headers[name.decode("latin-1")] = value.decode("latin-1")
            self._started.set()
        elif message["type"] == "http.response.body":
            chunk = message.get("body", b"")
            if chunk:
                self.chunks.append(chunk)
                self._chunk_arrived.set()
