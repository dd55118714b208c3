"""SSE broadcaster — fans settled updates out to connected viewers.

Each viewer gets a one-slot queue.  Delivery is a non-blocking
``put_nowait``: if a viewer has not consumed the previous notification yet,
the new one is dropped for that viewer.  This loss is intentional — a
notification only means "re-read the page", and the page always returns the
current artifact, so one pending notification is as good as several.  It
also means a viewer that never reads cannot slow down other viewers or the
debouncer.
"""

from __future__ import annotations

import asyncio
import threading
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from chirp import SSEEvent

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from mdwatch._types import ClientID
    from mdwatch.reactive.debouncer import SettledUpdate


class UpdateFrame(SSEEvent):
    """An ``update`` notification in its exact wire form.

    Chirp's ``SSEEvent.encode()`` writes ``data: update`` with a space; the
    live-reload protocol uses the bare ``data:update`` frame.
    """

    __slots__ = ()

    def encode(self) -> str:
        return f"data:{self.data}\n\n"


UPDATE_FRAME = UpdateFrame(data="update")


def _one_slot_queue() -> asyncio.Queue[SettledUpdate]:
    return asyncio.Queue(maxsize=1)


@dataclass(frozen=True, slots=True)
class ViewerConnection:
    """A connected update-stream client.

    Attributes:
        client_id: Unique identifier for this connection.
        queue: One-slot queue holding the next pending notification.

    """

    client_id: ClientID = field(default_factory=lambda: str(uuid.uuid4()))
    queue: asyncio.Queue[SettledUpdate] = field(
        default_factory=_one_slot_queue, compare=False, hash=False,
    )


class Broadcaster:
    """Manages update-stream subscriptions and delivers notifications.

    Thread-safe: the subscriber set is protected by a lock; delivery works
    on a snapshot, so subscribe/unsubscribe never race with iteration.

    """

    def __init__(self) -> None:
        self._subscribers: set[ViewerConnection] = set()
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        """Number of active update-stream connections."""
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, conn: ViewerConnection) -> None:
        """Register a viewer."""
        with self._lock:
            self._subscribers.add(conn)

    def unsubscribe(self, conn: ViewerConnection) -> None:
        """Remove a viewer.  Unknown connections are ignored."""
        with self._lock:
            self._subscribers.discard(conn)

    def get_subscribers(self) -> frozenset[ViewerConnection]:
        """Snapshot of current subscribers (no lock held on return)."""
        with self._lock:
            return frozenset(self._subscribers)

    def publish(self, update: SettledUpdate) -> tuple[int, int]:
        """Offer *update* to every subscriber without blocking.

        Must be called on the event loop that owns the viewer queues.

        Returns:
            ``(notified, skipped)`` — viewers whose slot took the update, and
            viewers whose slot was still full.

        """
        notified = skipped = 0
        for conn in self.get_subscribers():
            try:
                conn.queue.put_nowait(update)
                notified += 1
            except asyncio.QueueFull:
                skipped += 1
        return notified, skipped

    async def client_generator(self, conn: ViewerConnection) -> AsyncIterator[UpdateFrame]:
        """Yield one ``data:update`` frame per notification on *conn*'s queue.

        Used as the generator for Chirp's ``EventStream``.  Catches
        ``CancelledError`` (client disconnect / task cancellation) and
        ``GeneratorExit`` (generator cleanup) so a closing stream ends
        quietly instead of leaking ``StopAsyncIteration`` noise into the
        event loop's exception handler.

        """
        try:
            while True:
                await conn.queue.get()
                yield UPDATE_FRAME
        except (asyncio.CancelledError, GeneratorExit):
            return
