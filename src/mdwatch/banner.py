"""Startup banner — what mdwatch tells you before it goes quiet.

Printed to stderr so standard output stays reserved for rendered HTML.
Colors are dropped when ``NO_COLOR`` is set, ``TERM=dumb``, or stderr is
not a terminal.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mdwatch.config import PreviewConfig


def _color_enabled() -> bool:
    if os.environ.get("NO_COLOR") or os.environ.get("TERM") == "dumb":
        return False
    isatty = getattr(sys.stderr, "isatty", None)
    return bool(isatty and isatty())


_COLOR = _color_enabled()

# SGR codes
_BOLD, _DIM, _GREEN, _YELLOW, _CYAN = "1", "2", "32", "33", "36"


def _paint(text: str, *codes: str) -> str:
    """Wrap *text* in SGR *codes* when color is enabled."""
    if not _COLOR or not codes:
        return text
    return f"\033[{';'.join(codes)}m{text}\033[0m"


def _link(url: str) -> str:
    """*url* as an OSC 8 terminal hyperlink."""
    if not _COLOR:
        return url
    return f"\033]8;;{url}\033\\{_paint(url, _BOLD, _CYAN)}\033]8;;\033\\"


def serving_line(document: str, url: str) -> str:
    """The one-line summary of a watch session."""
    return f"Serving markdown rendered from {document} at {url}"


def print_banner(
    config: PreviewConfig,
    url: str,
    *,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> None:
    """Print the startup banner for serve or watch mode.

    Args:
        config: Resolved PreviewConfig.
        url: The live preview URL, or the temp file URI in serve mode.
        load_ms: Duration of the first render.
        warnings: Shown last, one per line.

    """
    from mdwatch import __version__

    document = str(config.path) if config.path is not None else "<stdin>"
    branch, last = _paint("├─", _DIM), _paint("└─", _DIM)

    rendered = f"rendered {document}"
    if load_ms > 0:
        rendered += " " + _paint(f"in {load_ms:.0f}ms", _DIM)

    if config.mode == "watch":
        details = [
            f"{branch} {rendered}",
            f"{branch} {_paint('live', _GREEN)} — SSE on {_paint('/updates', _DIM)}, "
            f"{config.quiescence_ms}ms quiet period",
            f"{last} closing the tab ends the session",
        ]
    else:
        details = [
            f"{branch} {rendered}",
            f"{last} written to {_paint(str(config.tempfile), _DIM)}",
        ]

    lines = [
        "",
        f"{_paint('mdwatch', _BOLD)} {_paint('v' + __version__, _DIM)}  "
        f"{_paint(f'[{config.mode}]', _GREEN)}",
        _paint("─" * 43, _DIM),
        *details,
        "",
        serving_line(document, _link(url)),
    ]
    if warnings:
        lines.append("")
        lines.extend(f"{_paint('!', _YELLOW)} {w}" for w in warnings)

    print("\n".join(f"  {line}" if line else "" for line in lines), file=sys.stderr)
    print(file=sys.stderr)
