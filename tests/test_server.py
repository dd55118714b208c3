"""Tests for mdwatch.server — GET / and the /updates stream."""

from __future__ import annotations

import asyncio
import io
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from chirp.testing.client import TestClient

from conftest import UpdateStream
from mdwatch.content.renderer import LIVE_RELOAD_SCRIPT, DocumentRenderer
from mdwatch.content.watcher import ChangeSource
from mdwatch.observability.collector import StackCollector
from mdwatch.observability.events import ViewerConnected, ViewerDisconnected
from mdwatch.reactive.broadcaster import Broadcaster
from mdwatch.reactive.debouncer import Debouncer, SettledUpdate
from mdwatch.reactive.pipeline import PreviewPipeline
from mdwatch.reactive.store import ArtifactStore
from mdwatch.server import create_app


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _update(version: int = 1) -> SettledUpdate:
    return SettledUpdate(
        trigger_path="/doc.md", events_collapsed=1, version=version, timestamp_ns=0,
    )


async def _wait_for_viewers(broadcaster: Broadcaster, count: int = 1) -> None:
    """The stream subscribes once Chirp starts pulling its generator."""
    async with asyncio.timeout(5.0):
        while broadcaster.subscriber_count < count:
            await asyncio.sleep(0.01)


# ---------------------------------------------------------------------------
# GET /
# ---------------------------------------------------------------------------


class TestSnapshot:
    """The current artifact, with or without the reload script."""

    @pytest.mark.asyncio
    async def test_prepends_reload_script(self) -> None:
        store = ArtifactStore(b"<h1>Hi</h1>")
        app = create_app(store, Broadcaster())

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.status == 200
        assert response.body == LIVE_RELOAD_SCRIPT.encode() + b"<h1>Hi</h1>"

    @pytest.mark.asyncio
    async def test_nojs_returns_bare_artifact(self) -> None:
        store = ArtifactStore(b"<h1>Hi</h1>")
        app = create_app(store, Broadcaster())

        async with TestClient(app) as client:
            response = await client.get("/?nojs=true")

        assert response.status == 200
        assert response.body == b"<h1>Hi</h1>"

    @pytest.mark.asyncio
    async def test_other_nojs_values_keep_script(self) -> None:
        app = create_app(ArtifactStore(b"x"), Broadcaster())

        async with TestClient(app) as client:
            response = await client.get("/?nojs=1")

        assert response.body.startswith(b"<script")

    @pytest.mark.asyncio
    async def test_content_type_is_html(self) -> None:
        app = create_app(ArtifactStore(b"x"), Broadcaster())

        async with TestClient(app) as client:
            response = await client.get("/")

        assert response.content_type.startswith("text/html")

    @pytest.mark.asyncio
    async def test_reflects_latest_write(self) -> None:
        store = ArtifactStore(b"old")
        app = create_app(store, Broadcaster())

        async with TestClient(app) as client:
            store.write(b"new")
            response = await client.get("/?nojs=true")

        assert response.body == b"new"


# ---------------------------------------------------------------------------
# GET /updates
# ---------------------------------------------------------------------------


class TestUpdateStream:
    """SSE framing, fan-out and disconnect handling."""

    @pytest.mark.asyncio
    async def test_headers(self) -> None:
        app = create_app(ArtifactStore(), Broadcaster())

        async with TestClient(app), UpdateStream(app) as stream:
            pass

        assert stream.status == 200
        assert stream.headers["content-type"].startswith("text/event-stream")
        assert stream.headers["cache-control"] == "no-cache"
        assert stream.headers["connection"] == "keep-alive"

    @pytest.mark.asyncio
    async def test_update_frame_is_exact(self) -> None:
        broadcaster = Broadcaster()
        app = create_app(ArtifactStore(), broadcaster)

        async with TestClient(app), UpdateStream(app) as stream:
            await _wait_for_viewers(broadcaster)
            broadcaster.publish(_update())
            frames = await stream.wait_for_frames(1)

        assert frames == ["data:update\n\n"]
        assert stream.body == b"data:update\n\n"

    @pytest.mark.asyncio
    async def test_one_frame_per_consumed_update(self) -> None:
        broadcaster = Broadcaster()
        app = create_app(ArtifactStore(), broadcaster)

        async with TestClient(app), UpdateStream(app) as stream:
            await _wait_for_viewers(broadcaster)
            broadcaster.publish(_update(1))
            await stream.wait_for_frames(1)
            broadcaster.publish(_update(2))
            frames = await stream.wait_for_frames(2)

        assert frames == ["data:update\n\n", "data:update\n\n"]

    @pytest.mark.asyncio
    async def test_every_viewer_notified(self) -> None:
        broadcaster = Broadcaster()
        app = create_app(ArtifactStore(), broadcaster)

        async with TestClient(app), UpdateStream(app) as a, UpdateStream(app) as b:
            await _wait_for_viewers(broadcaster, 2)
            assert broadcaster.publish(_update()) == (2, 0)
            await a.wait_for_frames(1)
            await b.wait_for_frames(1)

    @pytest.mark.asyncio
    async def test_disconnect_trips_callback(self, collector: StackCollector) -> None:
        broadcaster = Broadcaster()
        calls: list[str] = []
        app = create_app(
            ArtifactStore(),
            broadcaster,
            on_disconnect=lambda: calls.append("left"),
            collector=collector,
        )

        async with TestClient(app):
            stream = UpdateStream(app)
            await stream.__aenter__()
            await _wait_for_viewers(broadcaster)
            assert calls == []

            await stream.disconnect()

        assert calls == ["left"]
        assert broadcaster.subscriber_count == 0
        assert len(collector.log.query(event_type=ViewerConnected)) == 1
        assert len(collector.log.query(event_type=ViewerDisconnected)) == 1


# ---------------------------------------------------------------------------
# Live pipeline
# ---------------------------------------------------------------------------


class TestLivePreview:
    """Edit the document on disk and watch the stream react."""

    @pytest.mark.asyncio
    async def test_rapid_edits_yield_one_frame(self, doc: Path) -> None:
        renderer = DocumentRenderer(doc)
        store = ArtifactStore(renderer())
        broadcaster = Broadcaster()
        pipeline = PreviewPipeline(
            ChangeSource(doc),
            Debouncer(store, renderer, window=0.05),
            broadcaster,
        )
        app = create_app(store, broadcaster, pipeline=pipeline)

        with patch.object(sys, "stderr", io.StringIO()):
            async with TestClient(app) as client:
                first = await client.get("/?nojs=true")
                assert b"Hi</h1>" in first.body

                async with UpdateStream(app) as stream:
                    await _wait_for_viewers(broadcaster)
                    await asyncio.sleep(0.3)

                    doc.write_bytes(b"# Bye\n")
                    doc.write_bytes(b"# Bye\n")

                    await stream.wait_for_frames(1)
                    await asyncio.sleep(0.5)
                    frames = stream.frames()

                    latest = await client.get("/?nojs=true")

            assert not pipeline.is_running

        assert frames == ["data:update\n\n"]
        assert b"Bye" in latest.body
        assert b"Hi" not in latest.body
