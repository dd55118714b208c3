"""mdwatch application — wires the three modes together.

``run()`` dispatches on the configuration:

- **stdout**: render once, write the HTML fragment to standard output.
- **serve**: render into the page shell, write the temp file, open it.
- **watch**: initial render, then the live pipeline —
  ChangeSource → Debouncer → ArtifactStore → Broadcaster → ``/updates`` —
  served by Pounce until the viewer closes the tab.
"""

from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from mdwatch._errors import BrowserError, FatalEnvironmentError
from mdwatch.config_loader import load_config
from mdwatch.content.renderer import DocumentRenderer
from mdwatch.observability import DocumentRendered, EventLog, RenderFailed, StackCollector

if TYPE_CHECKING:
    from chirp import App

    from mdwatch.config import PreviewConfig
    from mdwatch.lifecycle import ProcessLifecycle
    from mdwatch.reactive.store import ArtifactStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def open_in_browser(target: str, browser: str | None = None) -> None:
    """Open *target* (a URL or file URI) in a browser.

    Raises:
        BrowserError: If no browser could be launched.

    """
    import webbrowser

    try:
        controller = webbrowser.get(browser) if browser else webbrowser.get()
    except webbrowser.Error as exc:
        msg = f"no browser available to open {target}: {exc}"
        raise BrowserError(msg) from exc
    if not controller.open(target):
        msg = f"browser could not open {target}"
        raise BrowserError(msg)


def write_tempfile(config: PreviewConfig, artifact: bytes) -> Path:
    """Write the serve-mode page to the configured temp file.

    Raises:
        FatalEnvironmentError: If the file cannot be written.

    """
    try:
        config.tempfile.write_bytes(artifact)
    except OSError as exc:
        msg = f"could not create a tempfile at {config.tempfile}: {exc.strerror or exc}"
        raise FatalEnvironmentError(msg) from exc
    return config.tempfile


def build_preview(
    config: PreviewConfig,
    renderer: DocumentRenderer,
    lifecycle: ProcessLifecycle,
    collector: StackCollector,
) -> tuple[App, ArtifactStore]:
    """Assemble the live pipeline and the Chirp app around *lifecycle*.

    The first render happens here, synchronously; if it fails the session
    never starts.

    """
    from mdwatch.content.watcher import ChangeSource
    from mdwatch.reactive.broadcaster import Broadcaster
    from mdwatch.reactive.debouncer import Debouncer
    from mdwatch.reactive.pipeline import PreviewPipeline
    from mdwatch.reactive.store import ArtifactStore
    from mdwatch.server import create_app

    assert config.path is not None
    store = ArtifactStore(renderer())
    broadcaster = Broadcaster()
    source = ChangeSource(config.path, collector=collector)
    debouncer = Debouncer(
        store, renderer, window=config.quiescence_window, collector=collector,
    )
    pipeline = PreviewPipeline(source, debouncer, broadcaster, collector)

    app = create_app(
        store,
        broadcaster,
        on_disconnect=lifecycle.viewer_disconnected,
        pipeline=pipeline,
        collector=collector,
        heartbeat_interval=config.heartbeat_interval,
    )
    return app, store


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


def render_to_stdout(
    config: PreviewConfig,
    *,
    stdin: BinaryIO | None = None,
    stdout: BinaryIO | None = None,
) -> None:
    """Render once and write the fragment to standard output."""
    renderer = DocumentRenderer(config.path, stdin=stdin)
    out = stdout if stdout is not None else sys.stdout.buffer
    out.write(renderer())
    out.flush()


def serve_once(config: PreviewConfig, *, stdin: BinaryIO | None = None) -> Path:
    """Render into the page shell, write the temp file, and open it."""
    from mdwatch.banner import print_banner

    renderer = DocumentRenderer(
        config.path, page_shell=True, syntax_theme=config.syntax_theme, stdin=stdin,
    )
    t0 = time.perf_counter()
    path = write_tempfile(config, renderer())
    load_ms = (time.perf_counter() - t0) * 1000

    print_banner(config, path.as_uri(), load_ms=load_ms)
    if config.open_browser:
        open_in_browser(path.as_uri(), config.browser)
    return path


def watch(config: PreviewConfig, *, collector: StackCollector | None = None) -> None:
    """Serve a live preview until the viewer closes the tab.

    Args:
        config: Resolved PreviewConfig with ``watch=True``.
        collector: Observer for pipeline events (a fresh one by default).

    """
    from mdwatch.banner import print_banner
    from mdwatch.lifecycle import ProcessLifecycle

    if collector is None:
        collector = StackCollector(EventLog(), verbose=config.verbose)

    renderer = DocumentRenderer(
        config.path, page_shell=True, syntax_theme=config.syntax_theme,
    )
    lifecycle = ProcessLifecycle(
        hosts=config.hosts,
        worker_mode=config.worker_mode,
        shutdown_timeout=config.shutdown_timeout,
        verbose=config.verbose,
        collector=collector,
    )

    t0 = time.perf_counter()
    app, _store = build_preview(config, renderer, lifecycle, collector)
    load_ms = (time.perf_counter() - t0) * 1000

    url = lifecycle.start(app)

    warnings: list[str] = []
    if config.open_browser:
        try:
            open_in_browser(url, config.browser)
        except BrowserError as exc:
            warnings.append(f"{exc} (open the URL yourself)")
    print_banner(config, url, load_ms=load_ms, warnings=warnings)

    try:
        lifecycle.wait()
    except KeyboardInterrupt:
        collector.debug("interrupted")
    finally:
        lifecycle.shutdown()

    collector.debug(
        "session ended:",
        f"{collector.log.count(DocumentRendered)} renders,",
        f"{collector.log.count(RenderFailed)} failed",
    )

    if lifecycle.error is not None and not lifecycle.viewer_left:
        msg = f"preview server stopped: {lifecycle.error}"
        raise FatalEnvironmentError(msg) from lifecycle.error


def run(config: PreviewConfig, *, stdin: BinaryIO | None = None) -> None:
    """Run whichever mode *config* selects."""
    match config.mode:
        case "watch":
            watch(config)
        case "serve":
            serve_once(config, stdin=stdin)
        case _:
            render_to_stdout(config, stdin=stdin)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def preview(path: str | Path, **kwargs: object) -> None:
    """Live-preview a markdown document until the browser tab is closed.

    Args:
        path: The markdown document to watch.
        **kwargs: Override PreviewConfig fields.

    """
    config = load_config(Path.cwd(), path=Path(path), watch=True, **kwargs)
    watch(config)
