"""mdwatch configuration.

PreviewConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass
from pathlib import Path

from mdwatch._errors import ConfigError, StreamingUnsupportedError, UsageError
from mdwatch._types import PreviewMode


@dataclass(frozen=True, slots=True)
class PreviewConfig:
    """Configuration for one mdwatch run.

    Attributes:
        path: The markdown document to render, or None to read stdin.
              Resolved to an absolute path on construction.
        serve: Wrap the output in the page shell and open it in a browser.
        watch: Serve a live preview and re-render on change (implies ``serve``).
        verbose: Print ``DEBUG:`` diagnostics to stderr.
        open_browser: Launch a browser for serve/watch modes.
        browser: Name of a registered ``webbrowser`` browser (None = default).
        quiescence_ms: Quiet period after the last change before re-rendering.
        hosts: Loopback hosts tried in order when binding the preview server.
        worker_mode: Pounce worker mode. ``"sync"`` cannot stream and is rejected.
        shutdown_timeout: Seconds Pounce waits for open streams when stopping.
        heartbeat_interval: Seconds between SSE keep-alive comments.
        tempfile: Where serve mode writes the rendered page.
        syntax_theme: Rosettes palette used for code-block colors.

    """

    path: Path | None = None
    serve: bool = False
    watch: bool = False
    verbose: bool = False
    open_browser: bool = True
    browser: str | None = None
    quiescence_ms: int = 50
    hosts: tuple[str, ...] = ("127.0.0.1", "::1")
    worker_mode: str = "async"
    shutdown_timeout: float = 1.0
    heartbeat_interval: float = 15.0
    tempfile: Path = Path("/tmp/mdwatch_tempfile.html")
    syntax_theme: str = "github-light"

    def __post_init__(self) -> None:
        if self.watch and self.path is None:
            msg = "-w needs a FILE to watch (stdin cannot be watched)"
            raise UsageError(msg)

        # -w implies -s
        if self.watch and not self.serve:
            object.__setattr__(self, "serve", True)

        # Resolve so watchfiles' absolute paths compare equal to ours.
        if self.path is not None and not self.path.is_absolute():
            object.__setattr__(self, "path", self.path.resolve())

        if not isinstance(self.tempfile, Path):
            object.__setattr__(self, "tempfile", Path(self.tempfile))
        if not isinstance(self.hosts, tuple):
            object.__setattr__(self, "hosts", tuple(self.hosts))

        if self.quiescence_ms <= 0:
            msg = f"quiescence_ms must be > 0 (got {self.quiescence_ms})"
            raise ConfigError(msg)
        if self.shutdown_timeout <= 0:
            msg = f"shutdown_timeout must be > 0 (got {self.shutdown_timeout})"
            raise ConfigError(msg)
        if self.heartbeat_interval <= 0:
            msg = f"heartbeat_interval must be > 0 (got {self.heartbeat_interval})"
            raise ConfigError(msg)
        if not self.hosts:
            msg = "hosts must name at least one loopback address"
            raise ConfigError(msg)

        if not isinstance(self.worker_mode, str):
            msg = f"worker_mode must be a string (got {self.worker_mode!r})"
            raise ConfigError(msg)
        # Sync workers answer streaming responses with 501.
        if self.worker_mode.lower() == "sync":
            msg = (
                "worker_mode='sync' cannot flush a streaming response; "
                "live reload needs 'async' or 'auto'"
            )
            raise StreamingUnsupportedError(msg)

    @property
    def mode(self) -> PreviewMode:
        """Which of the three modes this configuration runs."""
        if self.watch:
            return "watch"
        if self.serve:
            return "serve"
        return "stdout"

    @property
    def quiescence_window(self) -> float:
        """Quiescence window in seconds."""
        return self.quiescence_ms / 1000
