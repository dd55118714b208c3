"""Broadcast server — the Chirp app behind a live preview.

Two routes:

``GET /``
    The current artifact.  The live-reload script is prepended unless the
    request carries ``?nojs=true`` (which is what the script itself sends
    when it refetches the page, so it never injects itself twice).

``GET /updates``
    A Server-Sent Events stream.  Each settled update becomes one
    ``data:update`` frame.  When the browser goes away the stream's
    generator is closed by Chirp, the viewer is unsubscribed, and the
    ``on_disconnect`` callback fires — the tool treats a closed tab as
    "done working".

The app's startup/shutdown hooks own the preview pipeline task, so it lives
inside the event loop managed by Pounce.
"""

from __future__ import annotations

import contextlib
from pathlib import Path
from typing import TYPE_CHECKING

# Runtime imports: Chirp evaluates handler annotations when compiling routes.
from chirp import App, AppConfig, EventStream, Request, Response

from mdwatch.content.renderer import LIVE_RELOAD_SCRIPT
from mdwatch.reactive.broadcaster import ViewerConnection

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from mdwatch.observability.collector import StackCollector
    from mdwatch.reactive.broadcaster import Broadcaster, UpdateFrame
    from mdwatch.reactive.pipeline import PreviewPipeline
    from mdwatch.reactive.store import ArtifactStore

SNAPSHOT_ENDPOINT = "/"
UPDATES_ENDPOINT = "/updates"

_RELOAD_SCRIPT_BYTES = LIVE_RELOAD_SCRIPT.encode("utf-8")


def create_app(
    store: ArtifactStore,
    broadcaster: Broadcaster,
    *,
    on_disconnect: Callable[[], None] | None = None,
    pipeline: PreviewPipeline | None = None,
    collector: StackCollector | None = None,
    heartbeat_interval: float = 15.0,
) -> App:
    """Create the Chirp app serving the preview.

    Args:
        store: Artifact store read by ``GET /``.
        broadcaster: Fan-out that ``GET /updates`` subscribes to.
        on_disconnect: Called (from the server's event loop) each time an
            update stream closes.
        pipeline: Started on app startup and stopped on shutdown, if given.
        collector: Observer for viewer connect/disconnect events.
        heartbeat_interval: Seconds between SSE keep-alive comments.

    """
    # Plain HTML + SSE only: no static mount, no injected htmx helpers, and
    # no templates (the template dir just has to exist).
    app = App(
        config=AppConfig(
            template_dir=Path(__file__).parent,
            static_dir=None,
            debug=False,
            safe_target=False,
            sse_lifecycle=False,
        ),
    )

    async def snapshot(request: Request) -> Response:
        artifact = store.read()
        if request.query.get("nojs") != "true":
            artifact = _RELOAD_SCRIPT_BYTES + artifact
        return Response(body=artifact, content_type="text/html; charset=utf-8")

    async def updates(request: Request) -> EventStream:
        async def generate() -> AsyncIterator[UpdateFrame]:
            # Subscribe inside the generator: Chirp only runs its cleanup
            # (aclose) for generators that have started.
            conn = ViewerConnection()
            broadcaster.subscribe(conn)
            if collector is not None:
                collector.record_viewer_connected(conn.client_id)
                collector.debug("viewer connected:", conn.client_id)
            try:
                async with contextlib.aclosing(broadcaster.client_generator(conn)) as frames:
                    async for frame in frames:
                        yield frame
            finally:
                broadcaster.unsubscribe(conn)
                if collector is not None:
                    collector.record_viewer_disconnected(conn.client_id)
                    collector.debug("viewer disconnected:", conn.client_id)
                if on_disconnect is not None:
                    on_disconnect()

        return EventStream(generate(), heartbeat_interval=heartbeat_interval)

    app.route(SNAPSHOT_ENDPOINT, name="mdwatch:snapshot")(snapshot)
    app.route(UPDATES_ENDPOINT, name="mdwatch:updates")(updates)

    if pipeline is not None:
        _wire_pipeline(app, pipeline)

    return app


def _wire_pipeline(app: App, pipeline: PreviewPipeline) -> None:
    """Run *pipeline* for the lifetime of the app via Chirp lifecycle hooks.

    Flow:
        on_startup  → start the watcher thread and spawn the pipeline task
        file change → debounce → render → broadcast
        on_shutdown → cancel the pipeline task and stop the watcher

    """

    @app.on_startup
    async def _start_pipeline() -> None:
        pipeline.start()

    @app.on_shutdown
    async def _stop_pipeline() -> None:
        await pipeline.stop()
