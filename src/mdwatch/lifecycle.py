"""Process lifecycle — the loopback server and the session's shutdown channel.

A preview session is one Pounce server on an ephemeral loopback port and one
human looking at it.  ``ProcessLifecycle`` starts the server in a background
thread, hands back its URL, and lets the caller block in ``wait()`` until the
session is over: the update stream trips ``viewer_disconnected()`` when the
tab closes, ``wait()`` returns, and the server is stopped.  Nothing calls
``sys.exit`` from inside the server, so the whole flow runs under test.
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

from pounce.config import ServerConfig
from pounce.net.listener import create_listener
from pounce.server import Server

from mdwatch._errors import BindError

if TYPE_CHECKING:
    from chirp import App

    from mdwatch.observability.collector import StackCollector


def format_url(host: str, port: int) -> str:
    """Base URL for *host*:*port*, bracketing IPv6 literals."""
    if ":" in host:
        return f"http://[{host}]:{port}"
    return f"http://{host}:{port}"


def pick_loopback_host(hosts: tuple[str, ...]) -> str:
    """Return the first host in *hosts* that an ephemeral port binds on.

    Raises:
        BindError: If none of them bind.

    """
    failures: list[str] = []
    for host in hosts:
        try:
            sock = create_listener(ServerConfig(host=host, port=0))
        except OSError as exc:
            failures.append(f"{host}: {exc}")
            continue
        sock.close()
        return host
    msg = "could not bind a loopback listener (" + "; ".join(failures) + ")"
    raise BindError(msg)


class ProcessLifecycle:
    """Runs the preview server and waits for the viewer to leave.

    Args:
        hosts: Loopback hosts to try, in order.
        worker_mode: Pounce worker mode (must support streaming).
        shutdown_timeout: Seconds Pounce waits for open streams when stopping.
        verbose: Let Pounce log at debug level.
        collector: Pounce lifecycle collector.
        startup_timeout: Seconds to wait for the server to become ready.

    """

    def __init__(
        self,
        *,
        hosts: tuple[str, ...] = ("127.0.0.1", "::1"),
        worker_mode: str = "async",
        shutdown_timeout: float = 1.0,
        verbose: bool = False,
        collector: StackCollector | None = None,
        startup_timeout: float = 10.0,
    ) -> None:
        self._hosts = hosts
        self._worker_mode = worker_mode
        self._shutdown_timeout = shutdown_timeout
        self._verbose = verbose
        self._collector = collector
        self._startup_timeout = startup_timeout
        self._server: Server | None = None
        self._thread: threading.Thread | None = None
        self._done = threading.Event()
        self._disconnected = threading.Event()
        self._error: BaseException | None = None
        self._url: str | None = None

    @property
    def url(self) -> str:
        """Base URL of the running server."""
        if self._url is None:
            msg = "ProcessLifecycle has not been started"
            raise RuntimeError(msg)
        return self._url

    @property
    def is_running(self) -> bool:
        """Whether the server thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def error(self) -> BaseException | None:
        """The exception that stopped the server thread, if any."""
        return self._error

    @property
    def viewer_left(self) -> bool:
        """Whether an update stream has closed."""
        return self._disconnected.is_set()

    def start(self, app: App) -> str:
        """Serve *app* on loopback and return the base URL.

        Raises:
            BindError: If no loopback host binds or the server fails to start.

        """
        if self._thread is not None:
            msg = "ProcessLifecycle is already running"
            raise RuntimeError(msg)

        host = pick_loopback_host(self._hosts)
        config = ServerConfig(
            host=host,
            port=0,
            workers=1,
            worker_mode=self._worker_mode,
            reload=False,
            access_log=False,
            log_level="debug" if self._verbose else "warning",
            shutdown_timeout=self._shutdown_timeout,
        )
        self._server = Server(config, app, lifecycle_collector=self._collector)
        self._thread = threading.Thread(target=self._serve, name="mdwatch-server", daemon=True)
        self._thread.start()

        deadline = time.monotonic() + self._startup_timeout
        # Private, but pounce.testing.TestServer waits on the same event.
        while not self._server._started_event.wait(timeout=0.05):
            if self._done.is_set():
                msg = f"preview server on {host} stopped before serving: {self._error}"
                raise BindError(msg)
            if time.monotonic() > deadline:
                self.shutdown()
                msg = f"preview server on {host} did not start within {self._startup_timeout}s"
                raise BindError(msg)

        addr = self._server.bound_addr
        bound_host, port = addr if addr is not None else (host, 0)
        self._url = format_url(bound_host, port)
        return self._url

    def viewer_disconnected(self) -> None:
        """Trip the shutdown channel.  Thread-safe and idempotent."""
        self._disconnected.set()
        self._done.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the viewer leaves or the server stops, then shut down.

        Returns:
            True if the session ended, False if *timeout* elapsed first.

        """
        if not self._done.wait(timeout=timeout):
            return False
        self.shutdown()
        return True

    def shutdown(self) -> None:
        """Stop the server and join its thread.  Idempotent."""
        self._done.set()
        if self._server is not None:
            self._server.shutdown()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._shutdown_timeout + 5.0)

    def _serve(self) -> None:
        """Server thread: run Pounce until shutdown; record how it ended."""
        assert self._server is not None
        try:
            self._server.run()
        except Exception as exc:
            self._error = exc
        finally:
            self._done.set()
