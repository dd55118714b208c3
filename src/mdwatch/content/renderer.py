"""Markdown rendering — document bytes in, artifact bytes out.

``render()`` is the pure transform: Patitas with GitHub-flavoured plugins and
Rosettes highlighting for fenced code.  ``wrap_page()`` adds the fixed page
shell used when the result is shown in a browser, and ``DocumentRenderer``
ties both to the document on disk (or a stdin snapshot) for the pipeline.
"""

from __future__ import annotations

import functools
import threading
from typing import TYPE_CHECKING, BinaryIO

from mdwatch._errors import RenderError
from mdwatch.content.highlight import CodeHighlighter, theme_css

if TYPE_CHECKING:
    from pathlib import Path

    from patitas import Markdown

_PLUGINS = ["table", "strikethrough", "task_lists", "footnotes", "autolinks"]


@functools.cache
def _markdown() -> Markdown:
    """Build the shared Patitas processor (immutable, safe across threads)."""
    from patitas import Markdown
    from patitas.highlighting import set_highlighter

    set_highlighter(CodeHighlighter())
    return Markdown(highlight=True, plugins=_PLUGINS)


def render(document: bytes) -> bytes:
    """Render a markdown document to an HTML fragment.

    Pure and deterministic: the same bytes always give the same artifact.
    Undecodable bytes are replaced rather than rejected.
    """
    source = document.decode("utf-8", errors="replace")
    return _markdown()(source).encode("utf-8")


# ---------------------------------------------------------------------------
# Page shell
# ---------------------------------------------------------------------------

_PAGE_STYLE = """\
a {
  color: #4183c4;
  text-decoration: none;
}
a:hover {
  text-decoration: underline;
}
h1 {
  border-bottom: 3px solid #ccc;
  padding-bottom: 10px;
}
body {
  font: 14px / 20px "Helvetica Neue", "Lucida Grande", Helvetica, Arial, Verdana, sans-serif;
}
pre, code {
  font-family: "Ubuntu Mono", Courier, monospace;
  background-color: #f0eeea;
  padding: 2px;
  overflow: auto;
}
pre {
  padding-left: 6px;
}
table {
  border-collapse: collapse;
}
th, td {
  border: 1px solid #ccc;
  padding: 4px 8px;
}
#wrapper {
  max-width: 800px;
  margin: 50px auto;
  border: 3px solid #ccc;
  padding: 0 15px;
}
"""

# Prepended to GET / responses.  On every update it refetches the page with
# ?nojs=true (so the script is not injected twice) and swaps the body.
LIVE_RELOAD_SCRIPT = """\
<script data-mdwatch-reload>
(function() {
  var updates = new EventSource("/updates");
  updates.onmessage = function() {
    fetch("?nojs=true", {cache: "no-store"})
      .then(function(r) { return r.ok ? r.text() : null; })
      .then(function(html) {
        if (html !== null) document.body.innerHTML = html;
      });
  };
})();
</script>
"""


def wrap_page(fragment: bytes, *, syntax_theme: str = "github-light") -> bytes:
    """Embed a rendered fragment in the page shell.

    Raises:
        LookupError: If *syntax_theme* is not a Rosettes palette.

    """
    head = (
        '<meta charset="utf-8">\n'
        "<body>\n"
        f'<style type="text/css">\n{_PAGE_STYLE}{theme_css(syntax_theme)}\n</style>\n'
        '<div id="wrapper">\n'
    )
    return head.encode("utf-8") + fragment + b"\n</div>\n</body>\n"


# ---------------------------------------------------------------------------
# Document → artifact
# ---------------------------------------------------------------------------


class DocumentRenderer:
    """Produces the current artifact for one document.

    Reads the watched file on every call.  Standard input cannot be re-read,
    so it is read once and the snapshot reused.

    Args:
        path: Document to render, or None for standard input.
        page_shell: Wrap the fragment with :func:`wrap_page`.
        syntax_theme: Rosettes palette for the shell's code colors.
        stdin: Binary stream used when *path* is None.

    """

    __slots__ = ("_lock", "_page_shell", "_path", "_stdin", "_stdin_bytes", "_syntax_theme")

    def __init__(
        self,
        path: Path | None,
        *,
        page_shell: bool = False,
        syntax_theme: str = "github-light",
        stdin: BinaryIO | None = None,
    ) -> None:
        self._path = path
        self._page_shell = page_shell
        self._syntax_theme = syntax_theme
        self._stdin = stdin
        self._stdin_bytes: bytes | None = None
        self._lock = threading.Lock()

    @property
    def label(self) -> str:
        """Human-readable name of the document."""
        return str(self._path) if self._path is not None else "<stdin>"

    def read(self) -> bytes:
        """Read the current document bytes.

        Raises:
            RenderError: If the document cannot be read.

        """
        if self._path is None:
            with self._lock:
                if self._stdin_bytes is None:
                    if self._stdin is None:
                        import sys

                        self._stdin = sys.stdin.buffer
                    try:
                        self._stdin_bytes = self._stdin.read()
                    except OSError as exc:
                        msg = f"cannot read standard input: {exc.strerror or exc}"
                        raise RenderError(msg) from exc
                return self._stdin_bytes

        try:
            return self._path.read_bytes()
        except OSError as exc:
            msg = f"cannot read {self._path}: {exc.strerror or exc}"
            raise RenderError(msg) from exc

    def __call__(self) -> bytes:
        """Read and render the document.

        Raises:
            RenderError: If reading or rendering fails.

        """
        document = self.read()
        try:
            artifact = render(document)
            if self._page_shell:
                artifact = wrap_page(artifact, syntax_theme=self._syntax_theme)
        except Exception as exc:
            msg = f"{self.label}: {exc}"
            raise RenderError(msg) from exc
        return artifact
